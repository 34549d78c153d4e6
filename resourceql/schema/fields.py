"""Default fields builder: derives GraphQL fields from SQLAlchemy mapped classes.

Registered under ``FIELDS_BUILDER_SERVICE`` in the locator handed to
:class:`~resourceql.schema.builder.TypeBuilder`.
"""
from __future__ import annotations

import dataclasses
import logging
import typing
from typing import Any, Dict, Mapping, Optional

from graphql import (
    GraphQLArgument,
    GraphQLBoolean,
    GraphQLField,
    GraphQLFloat,
    GraphQLID,
    GraphQLInputField,
    GraphQLInt,
    GraphQLList,
    GraphQLNonNull,
    GraphQLScalarType,
    GraphQLString,
    ListTypeNode,
    NamedTypeNode,
    NonNullTypeNode,
    is_input_type,
    is_non_null_type,
    parse_type,
    specified_scalar_types,
)
from graphql.error import GraphQLSyntaxError
from graphql.utilities import value_from_ast_untyped
from sqlalchemy import Boolean, Column, Enum as SAEnum, Float, Integer, JSON, Numeric
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.types import TypeDecorator

from ..config import ResourceQLConfig
from ..core.naming import lcfirst, pluralize, ucfirst
from ..exceptions import UnexpectedValueError
from ..metadata import COLLECTION_QUERY, ITEM_QUERY, ResourceMetadata, ResourceMetadataFactory
from ..pagination import Pagination
from .resolvers import ResolverFactory

logger = logging.getLogger(__name__)

_PYTHON_SCALARS = {int: GraphQLInt, float: GraphQLFloat, bool: GraphQLBoolean, str: GraphQLString}
JSON_SPECIFIED_BY_URL = 'https://ecma-international.org/wp-content/uploads/ECMA-404_2nd_edition_december_2017.pdf'
JSON_DESCRIPTION = 'The `JSON` scalar type represents JSON values as specified by ECMA-404.'


def _identity(value: Any) -> Any:
    return value


class FieldsBuilder:
    """Builds the fields of resource types and of the root operation types."""

    def __init__(
        self,
        metadata_factory: ResourceMetadataFactory,
        type_builder: Any,
        pagination: Pagination,
        config: Optional[ResourceQLConfig] = None,
        resolvers: Optional[ResolverFactory] = None,
    ):
        self.metadata_factory = metadata_factory
        self.type_builder = type_builder
        self.pagination = pagination
        self.config = config or ResourceQLConfig()
        self.resolvers = resolvers or ResolverFactory()

    # ----- root fields -----
    def get_node_query_fields(self) -> Dict[str, GraphQLField]:
        return {
            'node': GraphQLField(
                self.type_builder.get_node_interface(),
                args={'id': GraphQLArgument(GraphQLNonNull(GraphQLID))},
                resolve=self.resolvers.node_resolver(),
            ),
        }

    def get_item_query_fields(self, resource_class: Any, metadata: ResourceMetadata, query_name: str, configuration: Mapping[str, Any]) -> Dict[str, GraphQLField]:
        short_name = metadata.short_name
        field_name = lcfirst(short_name if query_name == ITEM_QUERY else query_name + ucfirst(short_name))
        resource_type = self.type_builder.get_resource_object_type(resource_class, metadata, False, query_name, None, None)
        args = {'id': GraphQLArgument(GraphQLNonNull(GraphQLID))}
        args.update(self._to_arguments(configuration.get('args'), query_name, short_name))
        return {
            field_name: GraphQLField(
                resource_type,
                args=args,
                resolve=self.resolvers.item_resolver(resource_class, None, query_name),
                description=configuration.get('description'),
                deprecation_reason=metadata.get_graphql_attribute(query_name, 'deprecation_reason', None, True),
            ),
        }

    def get_collection_query_fields(self, resource_class: Any, metadata: ResourceMetadata, query_name: str, configuration: Mapping[str, Any]) -> Dict[str, GraphQLField]:
        short_name = metadata.short_name
        plural = pluralize(short_name)
        field_name = lcfirst(plural if query_name == COLLECTION_QUERY else query_name + ucfirst(plural))
        resource_type = self.type_builder.get_resource_object_type(resource_class, metadata, False, query_name, None, None)
        args = self._pagination_args(resource_class, query_name)
        args.update(self._to_arguments(configuration.get('args'), query_name, short_name))
        return {
            field_name: GraphQLField(
                self.type_builder.get_resource_paginated_collection_type(resource_type, resource_class, query_name),
                args=args,
                resolve=self.resolvers.collection_resolver(resource_class, None, query_name),
                description=configuration.get('description'),
                deprecation_reason=metadata.get_graphql_attribute(query_name, 'deprecation_reason', None, True),
            ),
        }

    def get_mutation_fields(self, resource_class: Any, metadata: ResourceMetadata, mutation_name: str) -> Dict[str, GraphQLField]:
        short_name = metadata.short_name
        payload_type = self.type_builder.get_resource_object_type(resource_class, metadata, False, None, mutation_name, None)
        input_type = self.type_builder.get_resource_object_type(resource_class, metadata, True, None, mutation_name, None)
        return {
            mutation_name + ucfirst(short_name): GraphQLField(
                payload_type,
                args={'input': GraphQLArgument(input_type)},
                resolve=self.resolvers.mutation_resolver(resource_class, mutation_name),
                description=f'{ucfirst(mutation_name)}s a {short_name}.',
                deprecation_reason=metadata.get_graphql_attribute(mutation_name, 'deprecation_reason', None, True),
            ),
        }

    def get_subscription_fields(self, resource_class: Any, metadata: ResourceMetadata, subscription_name: str) -> Dict[str, GraphQLField]:
        if subscription_name not in metadata.subscription_names():
            return {}
        short_name = metadata.short_name
        payload_type = self.type_builder.get_resource_object_type(resource_class, metadata, False, None, None, subscription_name)
        input_type = self.type_builder.get_resource_object_type(resource_class, metadata, True, None, None, subscription_name)
        return {
            f'{subscription_name}{ucfirst(short_name)}Subscribe': GraphQLField(
                payload_type,
                args={'input': GraphQLArgument(input_type)},
                resolve=self.resolvers.subscription_resolver(resource_class, subscription_name),
                subscribe=self.resolvers.subscription_subscriber(resource_class, subscription_name),
                description=f'Subscribes to the {subscription_name} event of a {short_name}.',
            ),
        }

    # ----- resource type fields -----
    def get_resource_object_type_fields(
        self,
        resource_class: Any,
        metadata: ResourceMetadata,
        input: bool,
        query_name: Optional[str],
        mutation_name: Optional[str],
        subscription_name: Optional[str],
        depth: int,
        io_metadata: Optional[Mapping[str, Any]],
    ) -> Dict[str, Any]:
        id_field = self._field(input, GraphQLNonNull(GraphQLID))
        client_mutation_id = self._field(input, GraphQLString)

        if io_metadata is not None and 'class' in io_metadata and io_metadata['class'] is None:
            return {'clientMutationId': client_mutation_id} if input else {}

        if subscription_name is not None and input:
            return {'id': id_field, 'clientSubscriptionId': self._field(input, GraphQLString)}

        if mutation_name == 'delete':
            fields = {'id': id_field}
            if input:
                fields['clientMutationId'] = client_mutation_id
            return fields

        fields: Dict[str, Any] = {}
        if not input or mutation_name != 'create':
            fields['id'] = id_field

        depth += 1
        mapper = sa_inspect(resource_class, raiseerr=False) if isinstance(resource_class, type) else None
        if mapper is not None:
            fields.update(self._column_fields(mapper, input, mutation_name))
            fields.update(self._relation_fields(mapper, resource_class, input, query_name, mutation_name, subscription_name, depth))
        elif dataclasses.is_dataclass(resource_class):
            fields.update(self._dataclass_fields(resource_class, input))

        if mutation_name is not None and input:
            fields['clientMutationId'] = client_mutation_id

        return fields

    def resolve_resource_args(self, args: Mapping[str, Mapping[str, Any]], operation_name: str, short_name: str) -> Dict[str, GraphQLInputField]:
        resolved = {}
        for arg_name, arg in args.items():
            if 'type' not in arg:
                raise UnexpectedValueError(
                    f'The argument "{arg_name}" of the custom operation "{operation_name}" in {short_name} needs a "type" option.'
                )
            resolved[arg_name] = GraphQLInputField(self.resolve_type(arg['type']), description=arg.get('description'))
        return resolved

    def resolve_type(self, type_string: str):
        """Convert a GraphQL type reference such as ``[ID!]!`` to a graphql-core type."""
        try:
            node = parse_type(type_string)
        except GraphQLSyntaxError as e:
            raise UnexpectedValueError(f'"{type_string}" is not a valid GraphQL type.') from e
        return self._type_from_node(node, type_string)

    def _type_from_node(self, node, type_string: str):
        if isinstance(node, NonNullTypeNode):
            inner = self._type_from_node(node.type, type_string)
            if is_non_null_type(inner):
                raise UnexpectedValueError(f'The type "{type_string}" wraps a type that is already non-null.')
            return GraphQLNonNull(inner)
        if isinstance(node, ListTypeNode):
            return GraphQLList(self._type_from_node(node.type, type_string))
        if not isinstance(node, NamedTypeNode):
            raise UnexpectedValueError(f'The type "{type_string}" was not resolved.')
        name = node.name.value
        if name in specified_scalar_types:
            return specified_scalar_types[name]
        container = self.type_builder.types_container
        if not container.has(name):
            raise UnexpectedValueError(f'The type "{type_string}" was not resolved.')
        resolved = container.get(name)
        if not is_input_type(resolved):
            raise UnexpectedValueError(f'The type "{name}" used in "{type_string}" is not an input type.')
        return resolved

    # ----- helpers -----
    @staticmethod
    def _field(input: bool, type_: Any, description: Optional[str] = None):
        if input:
            return GraphQLInputField(type_, description=description)
        return GraphQLField(type_, description=description)

    def _to_arguments(self, args: Optional[Mapping[str, Any]], operation_name: str, short_name: str) -> Dict[str, GraphQLArgument]:
        if not args:
            return {}
        return {
            name: GraphQLArgument(field.type, description=field.description)
            for name, field in self.resolve_resource_args(args, operation_name, short_name).items()
        }

    def _pagination_args(self, resource_class: Any, operation_name: str) -> Dict[str, GraphQLArgument]:
        if self.pagination.get_graphql_pagination_type(resource_class, operation_name) == 'cursor':
            return {
                'first': GraphQLArgument(GraphQLInt, description='Returns the first n elements from the list.'),
                'last': GraphQLArgument(GraphQLInt, description='Returns the last n elements from the list.'),
                'before': GraphQLArgument(GraphQLString, description='Returns the elements in the list that come before the specified cursor.'),
                'after': GraphQLArgument(GraphQLString, description='Returns the elements in the list that come after the specified cursor.'),
            }
        return {
            'page': GraphQLArgument(GraphQLInt, description='Returns the current page.'),
            'itemsPerPage': GraphQLArgument(
                GraphQLInt,
                default_value=self.pagination.get_items_per_page(resource_class, operation_name),
                description='Returns the given number of items per page.',
            ),
        }

    def _json_scalar(self) -> GraphQLScalarType:
        container = self.type_builder.types_container
        if container.has('JSON'):
            return container.get('JSON')
        # Values pass through unchanged; literals are read with value_from_ast_untyped.
        json_type = GraphQLScalarType(
            'JSON',
            serialize=_identity,
            parse_value=_identity,
            parse_literal=value_from_ast_untyped,
            description=JSON_DESCRIPTION,
            specified_by_url=JSON_SPECIFIED_BY_URL,
        )
        container.set('JSON', json_type)
        return json_type

    def _scalar_for(self, sqltype: Any):
        if isinstance(sqltype, TypeDecorator):
            return self._scalar_for(sqltype.impl)
        # Enum subclasses String, check it first; values are exposed by name.
        if isinstance(sqltype, SAEnum):
            return GraphQLString
        if isinstance(sqltype, Boolean):
            return GraphQLBoolean
        if isinstance(sqltype, Integer):
            return GraphQLInt
        if isinstance(sqltype, (Float, Numeric)):
            return GraphQLFloat
        if isinstance(sqltype, JSON):
            return self._json_scalar()
        return GraphQLString

    def _column_fields(self, mapper, input: bool, mutation_name: Optional[str]) -> Dict[str, Any]:
        fields = {}
        for prop in mapper.column_attrs:
            if prop.key == 'id':
                continue
            column = prop.columns[0]
            is_column = isinstance(column, Column)
            if input and not is_column:
                continue
            graphql_type = GraphQLID if is_column and column.primary_key else self._scalar_for(column.type)
            nullable = not is_column or column.nullable is not False
            if input:
                nullable = nullable or mutation_name == 'update' or column.default is not None or column.server_default is not None
            if not nullable:
                graphql_type = GraphQLNonNull(graphql_type)
            fields[self.config.field_name(prop.key)] = self._field(input, graphql_type, getattr(column, 'comment', None))
        return fields

    def _relation_fields(self, mapper, resource_class, input, query_name, mutation_name, subscription_name, depth) -> Dict[str, Any]:
        fields = {}
        for relationship in mapper.relationships:
            target = relationship.mapper.class_
            if target not in self.metadata_factory:
                logger.warning(f"Skipping relation {mapper.class_.__name__}.{relationship.key}: {target.__name__} is not a resource")
                continue
            field_name = self.config.field_name(relationship.key)
            if input:
                fields[field_name] = GraphQLInputField(GraphQLList(GraphQLID) if relationship.uselist else GraphQLID)
                continue

            target_metadata = self.metadata_factory.create(target)
            resource_type = self.type_builder.get_resource_object_type(
                target, target_metadata, False, query_name, mutation_name, subscription_name, False, depth
            )
            if not relationship.uselist:
                fields[field_name] = GraphQLField(resource_type, description=relationship.doc)
                continue
            fields[field_name] = GraphQLField(
                self.type_builder.get_resource_paginated_collection_type(resource_type, target, COLLECTION_QUERY),
                args=self._pagination_args(target, COLLECTION_QUERY),
                resolve=self.resolvers.collection_resolver(target, resource_class, COLLECTION_QUERY),
                description=relationship.doc,
            )
        return fields

    def _dataclass_fields(self, cls: type, input: bool) -> Dict[str, Any]:
        hints = typing.get_type_hints(cls)
        fields = {}
        for f in dataclasses.fields(cls):
            if f.name == 'id':
                continue
            graphql_type = _PYTHON_SCALARS.get(hints.get(f.name), GraphQLString)
            fields[self.config.field_name(f.name)] = self._field(input, graphql_type)
        return fields
