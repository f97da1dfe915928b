"""Identity store interface."""

from .base import IdentityStore

__all__ = ["IdentityStore"]
