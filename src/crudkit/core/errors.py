"""
Custom exceptions for crudkit.
"""

from __future__ import annotations

from typing import Optional


class CrudkitError(Exception):
    """Base exception for all crudkit errors."""
    pass


class ConfigurationError(CrudkitError):
    """Raised when an entity registration is invalid.

    Always raised at registration time, never while serving a request.
    """

    def __init__(self, message: str, entity: Optional[str] = None, field: Optional[str] = None):
        self.entity = entity
        self.field = field
        location = ".".join(part for part in (entity, field) if part)
        super().__init__(f"{location}: {message}" if location else message)


class ReflectionError(ConfigurationError):
    """Raised when a class cannot be introspected as a mapped entity."""
    pass


class RenderError(CrudkitError):
    """Wraps an exception raised by a custom display or edit callback."""

    def __init__(self, field: str, original: Exception):
        self.field = field
        self.original = original
        super().__init__(f"Rendering '{field}' failed: {original}")
