"""ResourceQL public API and lightweight lazy exports.

Builds GraphQL types (objects, interfaces, inputs, connections) from resource
metadata and normalizes SQLAlchemy entities into GraphQL payloads. Submodules
are imported on first attribute access so that model modules can import
``resourceql.metadata`` without pulling in graphql-core.

Exposes:
- ResourceMetadata, ResourceMetadataFactory, ResourceQLConfig
- TypesContainer, TypeBuilder, FieldsBuilder, SchemaBuilder, ResolverFactory, build_schema
- ItemNormalizer, QueryShape and the query_checker module
"""
from __future__ import annotations

_LAZY_EXPORTS = {
    'ResourceMetadata': 'metadata',
    'ResourceMetadataFactory': 'metadata',
    'PropertyType': 'metadata',
    'ResourceQLConfig': 'config',
    'Pagination': 'pagination',
    'TypesContainer': 'schema.container',
    'TypeBuilder': 'schema.builder',
    'FieldsBuilder': 'schema.fields',
    'ResolverFactory': 'schema.resolvers',
    'SchemaBuilder': 'schema.factory',
    'create_schema_builder': 'schema.factory',
    'build_schema': 'schema.factory',
    'ItemNormalizer': 'serializer.item_normalizer',
    'QueryShape': 'orm.query_shape',
}


def __getattr__(name: str):  # PEP 562 lazy exports
    import importlib as _importlib
    if name == 'query_checker':
        return _importlib.import_module(__name__ + '.orm.query_checker')
    module_name = _LAZY_EXPORTS.get(name)
    if module_name is None:
        raise AttributeError(name)
    return getattr(_importlib.import_module(f'{__name__}.{module_name}'), name)


__all__ = sorted(list(_LAZY_EXPORTS) + ['query_checker'])
