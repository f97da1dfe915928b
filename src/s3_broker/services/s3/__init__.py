"""Object storage store interface."""

from .base import ResourceStore

__all__ = ["ResourceStore"]
