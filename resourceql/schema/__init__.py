from .builder import FIELDS_BUILDER_SERVICE, TypeBuilder
from .container import TypesContainer
from .factory import SchemaBuilder, build_schema, create_schema_builder
from .fields import FieldsBuilder
from .resolvers import ResolverFactory

__all__ = [
    'FIELDS_BUILDER_SERVICE',
    'TypeBuilder',
    'TypesContainer',
    'SchemaBuilder',
    'build_schema',
    'create_schema_builder',
    'FieldsBuilder',
    'ResolverFactory',
]
