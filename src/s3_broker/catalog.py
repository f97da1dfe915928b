"""Service catalog: services, plans and their S3 properties."""

from __future__ import annotations

import copy
import json
from dataclasses import dataclass, field
from typing import Any

from .errors import ConfigError


def _policy_text(value: Any) -> str:
    """Normalise a policy given as a YAML mapping or a JSON string."""
    if value is None or value == "":
        return ""
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return str(value).strip()


@dataclass(frozen=True)
class S3Properties:
    """Broker-private plan settings applied to buckets and credentials."""

    iam_policy: str = ""
    bucket_policy: str = ""
    encryption: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> S3Properties:
        data = data or {}
        return cls(
            iam_policy=_policy_text(data.get("iam_policy")),
            bucket_policy=_policy_text(data.get("bucket_policy")),
            encryption=_policy_text(data.get("encryption")),
        )

    def validate(self) -> None:
        if not self.iam_policy:
            raise ConfigError("Must provide a non-empty IAM Policy")


@dataclass(frozen=True)
class ServicePlan:
    """A plan offered by a service.

    A durable plan keeps bucket contents on deprovision, so deleting a
    non-empty bucket fails instead of silently destroying data.
    """

    id: str
    name: str
    description: str = ""
    free: bool = True
    durable: bool = False
    metadata: dict[str, Any] | None = None
    s3_properties: S3Properties = field(default_factory=S3Properties)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ServicePlan:
        return cls(
            id=str(data.get("id", "")),
            name=str(data.get("name", "")),
            description=str(data.get("description", "")),
            free=bool(data.get("free", True)),
            durable=bool(data.get("durable", False)),
            metadata=copy.deepcopy(data.get("metadata")),
            s3_properties=S3Properties.from_dict(data.get("s3_properties")),
        )

    def validate(self) -> None:
        if not self.id:
            raise ConfigError(f"Must provide a non-empty ID ({self.name or self})")
        if not self.name:
            raise ConfigError(f"Must provide a non-empty Name ({self.id})")
        if not self.description:
            raise ConfigError(f"Must provide a non-empty Description ({self.id})")
        try:
            self.s3_properties.validate()
        except ConfigError as e:
            raise ConfigError(f"Validating S3 Properties configuration: {e}") from e

    def to_external(self) -> dict[str, Any]:
        plan: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "free": self.free,
        }
        if self.metadata:
            plan["metadata"] = copy.deepcopy(self.metadata)
        return plan


@dataclass(frozen=True)
class Service:
    """A service offering."""

    id: str
    name: str
    description: str = ""
    bindable: bool = True
    plan_updateable: bool = False
    tags: tuple[str, ...] = ()
    metadata: dict[str, Any] | None = None
    plans: tuple[ServicePlan, ...] = ()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Service:
        return cls(
            id=str(data.get("id", "")),
            name=str(data.get("name", "")),
            description=str(data.get("description", "")),
            bindable=bool(data.get("bindable", True)),
            plan_updateable=bool(data.get("plan_updateable", False)),
            tags=tuple(data.get("tags") or ()),
            metadata=copy.deepcopy(data.get("metadata")),
            plans=tuple(ServicePlan.from_dict(plan) for plan in data.get("plans") or ()),
        )

    def validate(self) -> None:
        if not self.id:
            raise ConfigError(f"Must provide a non-empty ID ({self.name or self})")
        if not self.name:
            raise ConfigError(f"Must provide a non-empty Name ({self.id})")
        if not self.description:
            raise ConfigError(f"Must provide a non-empty Description ({self.id})")
        for plan in self.plans:
            try:
                plan.validate()
            except ConfigError as e:
                raise ConfigError(f"Validating Plans configuration: {e}") from e

    def to_external(self) -> dict[str, Any]:
        service: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "bindable": self.bindable,
            "plan_updateable": self.plan_updateable,
            "plans": [plan.to_external() for plan in self.plans],
        }
        if self.tags:
            service["tags"] = list(self.tags)
        if self.metadata:
            service["metadata"] = copy.deepcopy(self.metadata)
        return service


@dataclass(frozen=True)
class Catalog:
    """Immutable broker catalog, built once at startup."""

    services: tuple[Service, ...] = ()

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> Catalog:
        data = data or {}
        return cls(services=tuple(Service.from_dict(service) for service in data.get("services") or ()))

    def validate(self) -> None:
        for service in self.services:
            try:
                service.validate()
            except ConfigError as e:
                raise ConfigError(f"Validating Services configuration: {e}") from e

    def find_service(self, service_id: str) -> Service | None:
        for service in self.services:
            if service.id == service_id:
                return service
        return None

    def find_service_plan(self, plan_id: str) -> ServicePlan | None:
        for service in self.services:
            for plan in service.plans:
                if plan.id == plan_id:
                    return plan
        return None

    def list_service_plans(self) -> list[ServicePlan]:
        return [plan for service in self.services for plan in service.plans]

    def to_external(self) -> list[dict[str, Any]]:
        """Render the catalog as returned to the platform."""
        return [service.to_external() for service in self.services]
