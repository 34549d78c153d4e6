"""Error hierarchy for ResourceQL.

Nothing in the core retries: every error here signals either a metadata /
configuration bug or a broken data contract and is meant to propagate.
"""
from __future__ import annotations

__all__ = [
    'ResourceQLError',
    'LogicError',
    'UnexpectedValueError',
    'NotFoundError',
    'TypeNotFoundError',
    'ResourceClassNotFoundError',
    'ConfigurationError',
]


class ResourceQLError(Exception):
    """Base class for all ResourceQL errors."""


class LogicError(ResourceQLError, RuntimeError):
    """An internal invariant was violated (e.g. the types container holds the wrong kind)."""


class UnexpectedValueError(ResourceQLError, ValueError):
    """A collaborator returned data that does not match the expected shape."""


class NotFoundError(ResourceQLError, LookupError):
    """A lookup by name or class failed."""


class TypeNotFoundError(NotFoundError):
    def __init__(self, name: str):
        super().__init__(f'Type with id "{name}" is not present in the types container')
        self.name = name


class ResourceClassNotFoundError(NotFoundError):
    def __init__(self, resource_class: str):
        super().__init__(f'Resource "{resource_class}" not found.')
        self.resource_class = resource_class


class ConfigurationError(ResourceQLError, ValueError):
    """Invalid configuration value."""
