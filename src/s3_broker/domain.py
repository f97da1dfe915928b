"""Request and response types of the service broker protocol."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any
from urllib.parse import quote_plus

from .constants import URI_SCHEME


@dataclass
class ProvisionDetails:
    service_id: str
    plan_id: str
    organization_guid: str = ""
    space_guid: str = ""
    raw_parameters: bytes | str | dict[str, Any] | None = None


@dataclass
class UpdateDetails:
    service_id: str
    plan_id: str
    raw_parameters: bytes | str | dict[str, Any] | None = None


@dataclass
class DeprovisionDetails:
    service_id: str
    plan_id: str


@dataclass
class BindDetails:
    service_id: str
    plan_id: str
    app_guid: str = ""
    raw_parameters: bytes | str | dict[str, Any] | None = None


@dataclass
class UnbindDetails:
    service_id: str = ""
    plan_id: str = ""


@dataclass
class Credentials:
    """Credentials returned by a successful bind. Never stored by the broker."""

    endpoint: str
    region: str
    bucket: str
    access_key_id: str = ""
    secret_access_key: str = field(default="", repr=False)
    additional_buckets: list[str] = field(default_factory=list)
    insecure_skip_verify: bool = False
    uri: str = field(default="", repr=False)

    def build_uri(self) -> str:
        """Compose the connection URI with percent-encoded key id and secret."""
        return (
            f"{URI_SCHEME}://{quote_plus(self.access_key_id)}:{quote_plus(self.secret_access_key)}"
            f"@{self.endpoint}/{self.bucket}"
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "uri": self.uri,
            "endpoint": self.endpoint,
            "region": self.region,
            "access_key_id": self.access_key_id,
            "secret_access_key": self.secret_access_key,
            "bucket": self.bucket,
            "additional_buckets": list(self.additional_buckets),
            "insecure_skip_verify": self.insecure_skip_verify,
        }
