"""Base identity store interface."""

from __future__ import annotations

from typing import Protocol


class IdentityStore(Protocol):
    """Protocol defining IAM principal, access key and policy operations."""

    def create_principal(self, name: str, path: str, tags: dict[str, str]) -> str:
        """Create a principal and return its id."""
        ...

    def delete_principal(self, name: str) -> None:
        """Delete a principal."""
        ...

    def create_access_key(self, name: str) -> tuple[str, str]:
        """Create an access key, returning (access key id, secret access key)."""
        ...

    def delete_access_key(self, name: str, access_key_id: str) -> None:
        """Delete one access key of a principal."""
        ...

    def list_access_keys(self, name: str) -> list[str]:
        """List the access key ids of a principal."""
        ...

    def create_policy(
        self,
        name: str,
        path: str,
        template: str,
        resource_arns: list[str],
        tags: dict[str, str],
    ) -> str:
        """Render a policy template against bucket ARNs, create it and return its ARN."""
        ...

    def delete_policy(self, policy_arn: str) -> None:
        """Delete a managed policy."""
        ...

    def attach_policy(self, name: str, policy_arn: str) -> None:
        """Attach a managed policy to a principal."""
        ...

    def detach_policy(self, name: str, policy_arn: str) -> None:
        """Detach a managed policy from a principal."""
        ...

    def list_attached_policies(self, name: str, path: str) -> list[str]:
        """List the ARNs of policies under path attached to a principal."""
        ...
