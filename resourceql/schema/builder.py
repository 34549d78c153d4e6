"""Builds the GraphQL types of resources.

Every type goes through the :class:`~resourceql.schema.container.TypesContainer`
so a generated name is constructed once and shared afterwards. Field lists are
thunks: they are resolved the first time graphql-core needs them, which lets
types reference each other recursively.
"""
from __future__ import annotations

import importlib
import logging
from functools import lru_cache
from typing import Any, Callable, Dict, List, Mapping, Optional

from graphql import (
    GraphQLBoolean,
    GraphQLField,
    GraphQLID,
    GraphQLInputObjectType,
    GraphQLInt,
    GraphQLInterfaceType,
    GraphQLList,
    GraphQLNonNull,
    GraphQLObjectType,
    GraphQLString,
    GraphQLType,
    GraphQLWrappingType,
)

from ..core.naming import INTERFACE_POSTFIX, lcfirst, resource_type_name, short_class_name
from ..exceptions import LogicError, NotFoundError, UnexpectedValueError
from ..metadata import ITEM_QUERY, PropertyType, ResourceMetadata
from ..pagination import Pagination
from ..serializer.item_normalizer import ITEM_RESOURCE_CLASS_KEY
from .container import TypesContainer

logger = logging.getLogger(__name__)

FIELDS_BUILDER_SERVICE = 'resourceql.fields_builder'

_CACHEABLE_KINDS = (GraphQLObjectType, GraphQLNonNull, GraphQLInterfaceType)


def _memoized(provider: Callable[[], Dict[str, Any]]) -> Callable[[], Dict[str, Any]]:
    return lru_cache(maxsize=None)(provider)


def _resource_class_hint(value: Any) -> Optional[str]:
    if isinstance(value, Mapping):
        return value.get(ITEM_RESOURCE_CLASS_KEY)
    return None


class TypeBuilder:
    """Builds (or fetches from the container) the GraphQL types of resources.

    Args:
        types_container: Cache shared by every builder of the build session.
        default_field_resolver: Resolver attached to object type fields that do
            not declare one. ``None`` leaves graphql-core's default resolver.
        fields_builder_locator: Mapping holding the fields builder under
            ``FIELDS_BUILDER_SERVICE``; resolved lazily because the fields
            builder itself depends on this builder.
        pagination: Decides between cursor and page based connections.
    """

    def __init__(
        self,
        types_container: TypesContainer,
        default_field_resolver: Optional[Callable[..., Any]],
        fields_builder_locator: Mapping[str, Any],
        pagination: Pagination,
    ):
        self.types_container = types_container
        self.default_field_resolver = default_field_resolver
        self.fields_builder_locator = fields_builder_locator
        self.pagination = pagination

    @property
    def fields_builder(self):
        try:
            return self.fields_builder_locator[FIELDS_BUILDER_SERVICE]
        except KeyError:
            raise LogicError(f'Service "{FIELDS_BUILDER_SERVICE}" is not registered in the fields builder locator.') from None

    def get_resource_object_type(
        self,
        resource_class: Any,
        metadata: ResourceMetadata,
        input: bool,
        query_name: Optional[str],
        mutation_name: Optional[str],
        subscription_name: Optional[str],
        wrapped: bool = False,
        depth: int = 0,
    ) -> GraphQLType:
        short_name = resource_type_name(metadata, input, query_name, mutation_name, subscription_name, wrapped, depth)

        if self.types_container.has(short_name):
            resource_object_type = self.types_container.get(short_name)
            if not isinstance(resource_object_type, _CACHEABLE_KINDS):
                raise LogicError(
                    f'Expected GraphQL type "{short_name}" to be '
                    f'{"|".join(kind.__name__ for kind in _CACHEABLE_KINDS)}.'
                )
            return resource_object_type

        if metadata.is_interface():
            resource_object_type = self._build_resource_interface_type(
                resource_class, short_name, metadata, input, query_name, mutation_name, wrapped, depth
            )
        else:
            resource_object_type = self._build_resource_object_type(
                resource_class, short_name, metadata, input, query_name, mutation_name, subscription_name, wrapped, depth
            )
        self.types_container.set(short_name, resource_object_type)

        return resource_object_type

    def get_node_interface(self) -> GraphQLInterfaceType:
        if self.types_container.has('Node'):
            node_interface = self.types_container.get('Node')
            if not isinstance(node_interface, GraphQLInterfaceType):
                raise LogicError(f'Expected GraphQL type "Node" to be {GraphQLInterfaceType.__name__}.')
            return node_interface

        def resolve_type(value, info, abstract_type):
            # Unlike resource interfaces, an unknown payload is not an error here.
            resource_class = _resource_class_hint(value)
            if not resource_class:
                return None
            short_name = short_class_name(resource_class)
            if not self.types_container.has(short_name):
                return None
            return self.types_container.get(short_name).name

        node_interface = GraphQLInterfaceType(
            'Node',
            fields={
                'id': GraphQLField(GraphQLNonNull(GraphQLID), description='The id of this node.'),
            },
            resolve_type=resolve_type,
            description='A node, according to the Relay specification.',
        )
        self.types_container.set('Node', node_interface)

        return node_interface

    def get_resource_paginated_collection_type(
        self,
        resource_type: GraphQLType,
        resource_class: Any,
        operation_name: Optional[str],
    ) -> GraphQLType:
        short_name = resource_type.name
        connection_name = f'{short_name}Connection'

        if self.types_container.has(connection_name):
            return self.types_container.get(connection_name)

        pagination_type = self.pagination.get_graphql_pagination_type(resource_class, operation_name)

        if pagination_type == 'cursor':
            fields = self._get_cursor_based_pagination_fields(resource_type)
        else:
            fields = self._get_page_based_pagination_fields(resource_type)

        resource_paginated_collection_type = GraphQLObjectType(
            connection_name,
            fields=fields,
            description=f'Connection for {short_name}.',
        )
        self.types_container.set(connection_name, resource_paginated_collection_type)

        return resource_paginated_collection_type

    def is_collection(self, property_type: PropertyType) -> bool:
        value_type = property_type.collection_value_type
        return property_type.is_collection() and value_type is not None and value_type.class_name is not None

    def get_interface_types(self, resource_class: Any) -> List[GraphQLInterfaceType]:
        """Resource interfaces implemented by ``resource_class`` (class or dotted path)."""
        try:
            resource_class = self._load_class(resource_class)
        except (ImportError, NotFoundError) as e:
            raise UnexpectedValueError(f"Class {resource_class} can't be found.") from e

        interface_name = short_class_name(resource_class) + INTERFACE_POSTFIX
        if self.types_container.has(interface_name):
            return [self.types_container.get(interface_name)]
        return []

    @staticmethod
    def _load_class(resource_class: Any) -> type:
        if not isinstance(resource_class, str):
            return resource_class
        module_name, _, qualname = resource_class.rpartition('.')
        if not module_name:
            raise NotFoundError(f'"{resource_class}" is not a dotted class path')
        target: Any = importlib.import_module(module_name)
        for part in qualname.split('.'):
            if not hasattr(target, part):
                raise NotFoundError(f'"{part}" not found in {module_name}')
            target = getattr(target, part)
        return target

    def _get_cursor_based_pagination_fields(self, resource_type: GraphQLType) -> Dict[str, GraphQLField]:
        short_name = resource_type.name

        edge_object_type = GraphQLObjectType(
            f'{short_name}Edge',
            fields={
                'node': GraphQLField(resource_type),
                'cursor': GraphQLField(GraphQLNonNull(GraphQLString)),
            },
            description=f'Edge of {short_name}.',
        )
        self.types_container.set(f'{short_name}Edge', edge_object_type)

        page_info_object_type = GraphQLObjectType(
            f'{short_name}PageInfo',
            fields={
                'endCursor': GraphQLField(GraphQLString),
                'startCursor': GraphQLField(GraphQLString),
                'hasNextPage': GraphQLField(GraphQLNonNull(GraphQLBoolean)),
                'hasPreviousPage': GraphQLField(GraphQLNonNull(GraphQLBoolean)),
            },
            description='Information about the current page.',
        )
        self.types_container.set(f'{short_name}PageInfo', page_info_object_type)

        return {
            'edges': GraphQLField(GraphQLList(edge_object_type)),
            'pageInfo': GraphQLField(GraphQLNonNull(page_info_object_type)),
            'totalCount': GraphQLField(GraphQLNonNull(GraphQLInt)),
        }

    def _get_page_based_pagination_fields(self, resource_type: GraphQLType) -> Dict[str, GraphQLField]:
        short_name = resource_type.name

        pagination_info_object_type = GraphQLObjectType(
            f'{short_name}PaginationInfo',
            fields={
                'itemsPerPage': GraphQLField(GraphQLNonNull(GraphQLInt)),
                'lastPage': GraphQLField(GraphQLNonNull(GraphQLInt)),
                'totalCount': GraphQLField(GraphQLNonNull(GraphQLInt)),
            },
            description='Information about the pagination.',
        )
        self.types_container.set(f'{short_name}PaginationInfo', pagination_info_object_type)

        return {
            'collection': GraphQLField(GraphQLList(resource_type)),
            'paginationInfo': GraphQLField(GraphQLNonNull(pagination_info_object_type)),
        }

    def _with_default_resolver(self, fields: Dict[str, Any]) -> Dict[str, GraphQLField]:
        out = {}
        for name, field in fields.items():
            if not isinstance(field, GraphQLField):
                field = GraphQLField(field)
            if field.resolve is None and self.default_field_resolver is not None:
                field.resolve = self.default_field_resolver
            out[name] = field
        return out

    def _build_resource_object_type(
        self,
        resource_class: Any,
        short_name: str,
        metadata: ResourceMetadata,
        input: bool,
        query_name: Optional[str],
        mutation_name: Optional[str],
        subscription_name: Optional[str],
        wrapped: bool,
        depth: int,
    ) -> GraphQLType:
        io_metadata = metadata.get_graphql_attribute(
            subscription_name or mutation_name or query_name, 'input' if input else 'output', None, True
        )
        if io_metadata is not None and io_metadata.get('class') is not None:
            resource_class = io_metadata['class']

        wrap_data = not wrapped and (mutation_name is not None or subscription_name is not None) and not input and depth < 1

        def fields():
            if wrap_data:
                query_normalization_context = metadata.get_graphql_attribute(query_name or '', 'normalization_context', {}, True)
                mutation_normalization_context = metadata.get_graphql_attribute(
                    mutation_name or subscription_name or '', 'normalization_context', {}, True
                )
                # A dedicated type only when the mutation/subscription has its own
                # normalization context; otherwise reuse the query type for client caches.
                if query_normalization_context != mutation_normalization_context:
                    data_type = self.get_resource_object_type(
                        resource_class, metadata, input, query_name, mutation_name, subscription_name, True, depth
                    )
                else:
                    data_type = self.get_resource_object_type(
                        resource_class, metadata, input, query_name or ITEM_QUERY, None, None, True, depth
                    )
                wrapped_fields = {lcfirst(metadata.short_name): data_type}

                if subscription_name is not None:
                    wrapped_fields['clientSubscriptionId'] = GraphQLString
                    if metadata.get_attribute('mercure', False):
                        wrapped_fields['mercureUrl'] = GraphQLString
                    return wrapped_fields

                wrapped_fields['clientMutationId'] = GraphQLString
                return wrapped_fields

            fields_builder = self.fields_builder
            built = fields_builder.get_resource_object_type_fields(
                resource_class, metadata, input, query_name, mutation_name, subscription_name, depth, io_metadata
            )

            mutation_args = (metadata.graphql or {}).get(mutation_name or '', {}).get('args')
            if input and mutation_name is not None and mutation_args is not None:
                resolved = fields_builder.resolve_resource_args(mutation_args, mutation_name, metadata.short_name)
                resolved['clientMutationId'] = built['clientMutationId']
                return resolved

            return built

        logger.debug(f"Building GraphQL {'input' if input else 'object'} type {short_name}")

        if input:
            return GraphQLNonNull(GraphQLInputObjectType(
                short_name,
                fields=_memoized(fields),
                description=metadata.description,
            ))

        def interfaces():
            if wrap_data:
                return []
            implemented = [self.get_node_interface()]
            for parent in metadata.get_attribute('interfaces', ()):
                implemented.extend(self.get_interface_types(parent))
            return implemented

        return GraphQLObjectType(
            short_name,
            fields=_memoized(lambda: self._with_default_resolver(fields())),
            interfaces=_memoized(interfaces),
            description=metadata.description,
        )

    def _build_resource_interface_type(
        self,
        resource_class: Any,
        short_name: str,
        metadata: ResourceMetadata,
        input: bool,
        query_name: Optional[str],
        mutation_name: Optional[str],
        wrapped: bool,
        depth: int,
    ) -> GraphQLInterfaceType:
        io_metadata = metadata.get_graphql_attribute(mutation_name or query_name, 'input' if input else 'output', None, True)
        if io_metadata is not None and io_metadata.get('class') is not None:
            resource_class = io_metadata['class']

        wrap_data = not wrapped and mutation_name is not None and not input and depth < 1

        def fields():
            if wrap_data:
                return {
                    lcfirst(metadata.short_name): self.get_resource_object_type(
                        resource_class, metadata, input, query_name, None, None, True, depth
                    ),
                }
            return self.fields_builder.get_resource_object_type_fields(
                resource_class, metadata, input, query_name, None, None, depth, io_metadata
            )

        def resolve_type(value, info, abstract_type):
            resource_class_path = _resource_class_hint(value)
            if not resource_class_path:
                raise UnexpectedValueError('Resource class was not passed. Interface type can not be used.')

            type_name = short_class_name(resource_class_path)
            if not self.types_container.has(type_name):
                raise UnexpectedValueError(f'Type with name {type_name} can not be found')

            type_ = self.types_container.get(type_name)
            interfaces = getattr(type_, 'interfaces', None)
            if not interfaces:
                raise UnexpectedValueError(f'Type "{type_name}" doesn\'t implement any interface.')

            return_type = info.return_type
            if isinstance(return_type, GraphQLWrappingType):
                return_type = return_type.of_type
            for interface in interfaces:
                if interface is return_type:
                    return type_.name

            raise UnexpectedValueError(f'Type "{type_name}" must implement interface "{info.return_type}"')

        logger.debug(f"Building GraphQL interface type {short_name}")

        return GraphQLInterfaceType(
            short_name,
            fields=_memoized(fields),
            resolve_type=resolve_type,
            description=metadata.description,
        )
