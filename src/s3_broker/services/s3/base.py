"""Base object storage store interface."""

from __future__ import annotations

from typing import Protocol

from ..aws.models import ResourceDetails


class ResourceStore(Protocol):
    """Protocol defining bucket operations used by the broker.

    Implementations raise the classified errors from ``s3_broker.errors``
    rather than raw provider exceptions.
    """

    def describe(self, name: str, partition: str) -> ResourceDetails:
        """Describe an existing bucket (region, ARN, endpoint)."""
        ...

    def create(self, name: str, details: ResourceDetails) -> str:
        """Create and configure a bucket, returning its location."""
        ...

    def apply_tagging(self, name: str, tags: dict[str, str]) -> None:
        """Replace the bucket's tag set."""
        ...

    def get_tags(self, name: str) -> dict[str, str]:
        """Get the bucket's tag set."""
        ...

    def apply_encryption(self, name: str, encryption: str) -> None:
        """Apply a server-side encryption configuration document."""
        ...

    def apply_policy(self, name: str, policy: str) -> None:
        """Apply a rendered bucket policy document."""
        ...

    def remove_public_access_guard(self, name: str) -> None:
        """Delete the public access block the platform sets on new buckets."""
        ...

    def list_buckets(self, prefix: str = "") -> list[str]:
        """List bucket names, optionally filtered by prefix."""
        ...

    def delete(self, name: str, purge_contents: bool = False) -> None:
        """Delete a bucket.

        Args:
            name: Bucket name
            purge_contents: If True, delete every object before the bucket
        """
        ...
