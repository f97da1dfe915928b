"""Broker exception taxonomy and backend error classification.

Input errors are fatal and never retried. Backend errors are wrapped into a
small set of classes so the orchestrator can decide, without looking at raw
provider codes, whether a failure is transient (access denied while a new
principal propagates), already satisfied (the thing is already gone) or
fatal.
"""

from __future__ import annotations

from botocore.exceptions import ClientError

from .constants import ACCESS_DENIED_CODES, ALREADY_EXISTS_CODES, MISSING_RESOURCE_CODES


class BrokerError(Exception):
    """Base class for all broker errors."""


class ConfigError(BrokerError, ValueError):
    """Configuration file or catalog is invalid."""


class InvalidParametersError(BrokerError):
    """Request parameters could not be decoded or are not allowed."""


class PlanNotFoundError(BrokerError):
    """Requested service plan is not in the catalog."""

    def __init__(self, plan_id: str) -> None:
        super().__init__(f"Service Plan '{plan_id}' not found")
        self.plan_id = plan_id


class ServiceNotFoundError(BrokerError):
    """Requested service is not in the catalog."""

    def __init__(self, service_id: str) -> None:
        super().__init__(f"Service '{service_id}' not found")
        self.service_id = service_id


class UnknownInstanceNameError(BrokerError):
    """An additional instance name could not be resolved in the directory."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Service instance {name} not found")
        self.name = name


class NoDirectoryConfiguredError(BrokerError):
    """Binding to additional instances requires a platform directory."""

    def __init__(self) -> None:
        super().__init__(
            "This broker is not configured to support binding to additional instances. "
            "Contact your Cloud Foundry operator for details."
        )


class DirectoryError(BrokerError):
    """The platform directory could not be queried."""


class PolicyDocumentError(BrokerError):
    """A policy template could not be rendered or inspected."""


class InstanceDoesNotExistError(BrokerError):
    """Protocol signal: the service instance does not exist."""

    def __init__(self, instance_id: str) -> None:
        super().__init__(f"instance {instance_id} does not exist")
        self.instance_id = instance_id


class OperationNotSupportedError(BrokerError):
    """The broker does not implement the requested operation."""


class BackendError(BrokerError):
    """An object storage or identity backend call failed."""

    def __init__(self, code: str, message: str) -> None:
        super().__init__(f"{code}: {message}")
        self.code = code
        self.message = message


class AccessDeniedError(BackendError):
    """Backend refused the call; may be transient while identities propagate."""


class ResourceMissingError(BackendError):
    """Bucket, principal, key or policy does not exist."""


class ResourceExistsError(BackendError):
    """Bucket, principal or policy already exists."""


class BatchDeleteError(BackendError):
    """Some objects failed to delete during a content purge."""

    def __init__(self, code: str, message: str, failures: list[BackendError]) -> None:
        super().__init__(code, message)
        self.failures = failures


def _client_error_code(error: ClientError) -> tuple[str, int | None]:
    response = error.response or {}
    code = str(response.get("Error", {}).get("Code", ""))
    status = response.get("ResponseMetadata", {}).get("HTTPStatusCode")
    return code, status


def classify_error_code(code: str, message: str, status: int | None = None) -> BackendError:
    """Build the classified backend error for a provider error code."""
    if code in ACCESS_DENIED_CODES:
        return AccessDeniedError(code, message)
    if code in MISSING_RESOURCE_CODES or status == 404:
        return ResourceMissingError(code, message)
    if code in ALREADY_EXISTS_CODES:
        return ResourceExistsError(code, message)
    return BackendError(code or "Unknown", message)


def classify_client_error(error: ClientError) -> BackendError:
    """Map a botocore ClientError onto the broker's backend error classes."""
    code, status = _client_error_code(error)
    message = str(error.response.get("Error", {}).get("Message", "")) or str(error)
    return classify_error_code(code, message, status)


def is_access_denied(error: BaseException) -> bool:
    """Check whether an error is an access-denied class error."""
    if isinstance(error, AccessDeniedError):
        return True
    if isinstance(error, ClientError):
        code, _ = _client_error_code(error)
        return code in ACCESS_DENIED_CODES
    return False


def is_missing_resource(error: BaseException) -> bool:
    """Check whether an error means the target resource does not exist."""
    if isinstance(error, ResourceMissingError):
        return True
    if isinstance(error, ClientError):
        code, status = _client_error_code(error)
        return code in MISSING_RESOURCE_CODES or status == 404
    return False


def is_batch_missing_only(error: BaseException) -> bool:
    """Check whether a batch delete failed only because objects were already gone."""
    if not isinstance(error, BatchDeleteError) or not error.failures:
        return False
    return all(is_missing_resource(failure) for failure in error.failures)
