from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Mapping, Optional

from graphql import GraphQLField, GraphQLObjectType, GraphQLSchema

from ..config import ResourceQLConfig
from ..metadata import COLLECTION_QUERY, ITEM_QUERY, ResourceMetadataFactory
from ..pagination import Pagination
from .builder import FIELDS_BUILDER_SERVICE, TypeBuilder
from .container import TypesContainer
from .fields import FieldsBuilder
from .resolvers import ResolverFactory

logger = logging.getLogger(__name__)


class SchemaBuilder:
    """Runs one schema-build pass over every registered resource."""

    def __init__(self, metadata_factory: ResourceMetadataFactory, type_builder: TypeBuilder, fields_builder: FieldsBuilder):
        self.metadata_factory = metadata_factory
        self.type_builder = type_builder
        self.fields_builder = fields_builder

    def get_schema(self) -> GraphQLSchema:
        query_fields: Dict[str, GraphQLField] = dict(self.fields_builder.get_node_query_fields())
        mutation_fields: Dict[str, GraphQLField] = {}
        subscription_fields: Dict[str, GraphQLField] = {}

        for resource_class in self.metadata_factory:
            metadata = self.metadata_factory.create(resource_class)
            for operation_name, configuration in metadata.get_graphql().items():
                if operation_name == ITEM_QUERY:
                    query_fields.update(self.fields_builder.get_item_query_fields(resource_class, metadata, operation_name, configuration))
                    continue
                if operation_name == COLLECTION_QUERY:
                    query_fields.update(self.fields_builder.get_collection_query_fields(resource_class, metadata, operation_name, configuration))
                    continue
                if operation_name in metadata.subscription_names():
                    subscription_fields.update(self.fields_builder.get_subscription_fields(resource_class, metadata, operation_name))
                mutation_fields.update(self.fields_builder.get_mutation_fields(resource_class, metadata, operation_name))

        logger.info(
            f"Built GraphQL schema with {len(query_fields)} queries, {len(mutation_fields)} mutations "
            f"and {len(subscription_fields)} subscriptions"
        )

        return GraphQLSchema(
            query=GraphQLObjectType('Query', query_fields),
            mutation=GraphQLObjectType('Mutation', mutation_fields) if mutation_fields else None,
            subscription=GraphQLObjectType('Subscription', subscription_fields) if subscription_fields else None,
            types=self.type_builder.types_container.named_types(),
        )


def create_schema_builder(
    metadata_factory: ResourceMetadataFactory,
    config: Optional[ResourceQLConfig] = None,
    resolvers: Optional[ResolverFactory] = None,
    default_field_resolver: Optional[Callable[..., Any]] = None,
    types_container: Optional[TypesContainer] = None,
) -> SchemaBuilder:
    """Wire a fresh types container, type builder and fields builder together."""
    config = config or ResourceQLConfig()
    pagination = Pagination(config, metadata_factory)
    locator: Dict[str, Any] = {}
    type_builder = TypeBuilder(types_container or TypesContainer(), default_field_resolver, locator, pagination)
    fields_builder = FieldsBuilder(metadata_factory, type_builder, pagination, config, resolvers)
    locator[FIELDS_BUILDER_SERVICE] = fields_builder
    return SchemaBuilder(metadata_factory, type_builder, fields_builder)


def build_schema(metadata_factory: ResourceMetadataFactory, **kwargs: Any) -> GraphQLSchema:
    return create_schema_builder(metadata_factory, **kwargs).get_schema()


__all__ = ['SchemaBuilder', 'create_schema_builder', 'build_schema']
