"""Business logic services."""

from .namespace_service import NamespaceService

__all__ = ["NamespaceService"]
