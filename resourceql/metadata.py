"""Resource metadata consumed by the GraphQL type system.

Metadata is collected ahead of time (usually with :meth:`ResourceMetadataFactory.resource`)
and passed explicitly to every builder call; nothing here introspects classes lazily.
"""
from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, Mapping, Optional

from .exceptions import ResourceClassNotFoundError

logger = logging.getLogger(__name__)

__all__ = [
    'ITEM_QUERY',
    'COLLECTION_QUERY',
    'DEFAULT_OPERATIONS',
    'ResourceMetadata',
    'ResourceMetadataFactory',
    'PropertyType',
    'resource_class_name',
]

ITEM_QUERY = 'item_query'
COLLECTION_QUERY = 'collection_query'

# Operations exposed when a resource does not configure its GraphQL surface.
DEFAULT_OPERATIONS: Mapping[str, Mapping[str, Any]] = {
    ITEM_QUERY: {},
    COLLECTION_QUERY: {},
    'create': {},
    'update': {},
    'delete': {},
}


def resource_class_name(resource_class: Any) -> str:
    """Return the dotted import path of a resource class (or pass a path through)."""
    if isinstance(resource_class, str):
        return resource_class
    return f"{resource_class.__module__}.{resource_class.__qualname__}"


@dataclass(frozen=True)
class ResourceMetadata:
    """Describes one resource exposed through the generated API.

    Attributes:
        short_name: GraphQL base name of the resource (e.g. "Book").
        description: Description attached to the generated types.
        graphql: Per-operation attributes keyed by operation name
            (``item_query``, ``collection_query``, mutation and subscription
            names). Each value may carry ``normalization_context``, ``input``,
            ``output``, ``args`` and ``pagination_type``. ``None`` means the
            default operation set.
        attributes: Resource level attributes (``mercure``, ``pagination_type``...).
        interface: Whether the resource is exposed as a GraphQL interface.
    """

    short_name: str
    description: Optional[str] = None
    graphql: Optional[Mapping[str, Mapping[str, Any]]] = None
    attributes: Mapping[str, Any] = field(default_factory=dict)
    interface: bool = False

    def is_interface(self) -> bool:
        return self.interface

    def get_attribute(self, key: str, default: Any = None) -> Any:
        return self.attributes.get(key, default)

    def get_graphql(self) -> Mapping[str, Mapping[str, Any]]:
        if self.graphql is None:
            return DEFAULT_OPERATIONS
        return self.graphql

    def get_graphql_attribute(
        self,
        operation_name: Optional[str],
        key: str,
        default: Any = None,
        resource_fallback: bool = False,
    ) -> Any:
        """Return ``key`` for an operation, optionally falling back to the resource attribute."""
        operation = (self.graphql or {}).get(operation_name or '')
        if operation is not None and key in operation:
            return operation[key]
        if resource_fallback:
            return self.get_attribute(key, default)
        return default

    def subscription_names(self):
        """Only the update operation is subscribable, and only for Mercure-enabled resources."""
        if 'update' in self.get_graphql() and self.get_attribute('mercure', False):
            return ['update']
        return []


@dataclass(frozen=True)
class PropertyType:
    """Type information of a resource property (builtin type, class, collection)."""

    builtin_type: str
    nullable: bool = False
    class_name: Optional[str] = None
    collection: bool = False
    collection_value_type: Optional['PropertyType'] = None

    def is_collection(self) -> bool:
        return self.collection


class ResourceMetadataFactory:
    """In-memory metadata provider keyed by resource class.

    Register resources explicitly or with the :meth:`resource` decorator:

        resources = ResourceMetadataFactory()

        @resources.resource(graphql={'item_query': {}, 'create': {}})
        class Book(Base):
            ...
    """

    def __init__(self):
        self._metadata: Dict[Any, ResourceMetadata] = {}

    def register(self, resource_class: Any, metadata: ResourceMetadata) -> ResourceMetadata:
        if resource_class in self._metadata:
            logger.warning(f"Overriding metadata of resource {resource_class_name(resource_class)}")
        self._metadata[resource_class] = metadata
        return metadata

    def resource(
        self,
        short_name: Optional[str] = None,
        *,
        description: Optional[str] = None,
        graphql: Optional[Mapping[str, Mapping[str, Any]]] = None,
        attributes: Optional[Mapping[str, Any]] = None,
        interface: bool = False,
    ) -> Callable[[type], type]:
        """Class decorator registering a resource; description defaults to the docstring."""

        def decorator(cls: type) -> type:
            self.register(cls, ResourceMetadata(
                short_name=short_name or cls.__name__,
                description=description if description is not None else inspect.getdoc(cls),
                graphql=graphql,
                attributes=dict(attributes or {}),
                interface=interface,
            ))
            return cls

        return decorator

    def create(self, resource_class: Any) -> ResourceMetadata:
        try:
            return self._metadata[resource_class]
        except KeyError:
            raise ResourceClassNotFoundError(resource_class_name(resource_class)) from None

    def __contains__(self, resource_class: Any) -> bool:
        return resource_class in self._metadata

    def __iter__(self) -> Iterator[Any]:
        return iter(list(self._metadata))
