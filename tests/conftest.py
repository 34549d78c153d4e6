"""Test configuration and fixtures for ResourceQL."""

import pytest
from dotenv import load_dotenv

from resourceql.config import ResourceQLConfig
from resourceql.pagination import Pagination
from resourceql.schema import TypeBuilder, TypesContainer, create_schema_builder
from tests.models import resources

# Try to load environment variables from .env file
load_dotenv()


@pytest.fixture
def metadata_factory():
    return resources


@pytest.fixture
def config():
    return ResourceQLConfig()


@pytest.fixture
def types_container():
    return TypesContainer()


@pytest.fixture
def locator():
    """Service locator handed to the type builder; tests may register a fields builder in it."""
    return {}


@pytest.fixture
def type_builder(types_container, locator, config, metadata_factory):
    return TypeBuilder(types_container, None, locator, Pagination(config, metadata_factory))


@pytest.fixture
def schema_builder(metadata_factory, types_container):
    return create_schema_builder(metadata_factory, types_container=types_container)


@pytest.fixture
def fields_builder(schema_builder):
    return schema_builder.fields_builder


@pytest.fixture
def wired_type_builder(schema_builder):
    """Type builder whose locator already holds the default fields builder."""
    return schema_builder.type_builder
