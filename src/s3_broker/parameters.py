"""User-supplied request parameters."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

from .constants import OBJECT_OWNERSHIP_MODES
from .errors import InvalidParametersError


def decode_raw_parameters(raw: bytes | str | dict[str, Any] | None) -> dict[str, Any]:
    """Decode raw JSON parameters into a mapping.

    Raises:
        InvalidParametersError: If the JSON is malformed or not an object
    """
    if raw is None or raw == b"" or raw == "":
        return {}
    if isinstance(raw, dict):
        return raw
    try:
        decoded = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise InvalidParametersError(f"Invalid parameters: {e}") from e
    if decoded is None:
        return {}
    if not isinstance(decoded, dict):
        raise InvalidParametersError("Invalid parameters: expected a JSON object")
    return decoded


@dataclass
class ProvisionParameters:
    object_ownership: str | None = None

    @classmethod
    def from_raw(cls, raw: bytes | str | dict[str, Any] | None) -> ProvisionParameters:
        data = decode_raw_parameters(raw)
        ownership = data.get("object_ownership")
        if ownership is not None and ownership not in OBJECT_OWNERSHIP_MODES:
            raise InvalidParametersError(
                f"Invalid object_ownership {ownership!r}, expected one of {sorted(OBJECT_OWNERSHIP_MODES)}"
            )
        return cls(object_ownership=ownership)


@dataclass
class UpdateParameters:
    apply_immediately: bool = False

    @classmethod
    def from_raw(cls, raw: bytes | str | dict[str, Any] | None) -> UpdateParameters:
        data = decode_raw_parameters(raw)
        apply_immediately = data.get("apply_immediately", False)
        if not isinstance(apply_immediately, bool):
            raise InvalidParametersError("Invalid apply_immediately, expected a boolean")
        return cls(apply_immediately=apply_immediately)


@dataclass
class BindParameters:
    """Bind parameters.

    additional_instances names other service instances in the same space
    whose buckets the new credentials should also reach, e.g. for copying
    objects between buckets.
    """

    additional_instances: list[str] = field(default_factory=list)

    @classmethod
    def from_raw(cls, raw: bytes | str | dict[str, Any] | None) -> BindParameters:
        data = decode_raw_parameters(raw)
        instances = data.get("additional_instances") or []
        if not isinstance(instances, list) or not all(isinstance(name, str) for name in instances):
            raise InvalidParametersError("Invalid additional_instances, expected a list of instance names")
        return cls(additional_instances=instances)
