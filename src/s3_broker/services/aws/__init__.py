"""AWS (and S3-compatible) store implementations."""

from .bucket import S3ResourceStore
from .models import ResourceDetails
from .user import IAMIdentityStore

__all__ = ["IAMIdentityStore", "ResourceDetails", "S3ResourceStore"]
