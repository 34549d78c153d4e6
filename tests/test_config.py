import pytest
from strawberry.schema.config import StrawberryConfig

from resourceql.config import ResourceQLConfig
from resourceql.exceptions import ConfigurationError


def test_defaults():
    config = ResourceQLConfig()
    assert config.pagination_type == 'page'
    assert config.items_per_page == 30
    assert config.max_depth == 2
    assert config.field_name('created_at') == 'createdAt'


def test_field_name_without_camel_case():
    config = ResourceQLConfig(strawberry_config=StrawberryConfig(auto_camel_case=False))
    assert config.field_name('created_at') == 'created_at'


@pytest.mark.parametrize('kwargs', [{'pagination_type': 'offset'}, {'items_per_page': 0}, {'max_depth': -1}])
def test_invalid_values(kwargs):
    with pytest.raises(ConfigurationError):
        ResourceQLConfig(**kwargs)


def test_from_env():
    config = ResourceQLConfig.from_env({
        'RESOURCEQL_PAGINATION_TYPE': 'Cursor',
        'RESOURCEQL_ITEMS_PER_PAGE': '10',
        'RESOURCEQL_MAX_DEPTH': '4',
        'RESOURCEQL_AUTO_CAMEL_CASE': 'off',
    })
    assert config.pagination_type == 'cursor'
    assert config.items_per_page == 10
    assert config.max_depth == 4
    assert config.field_name('is_admin') == 'is_admin'


def test_from_env_ignores_missing_values():
    config = ResourceQLConfig.from_env({'RESOURCEQL_MAX_DEPTH': '', 'RESOURCEQL_PAGINATION_TYPE': ''})
    assert (config.pagination_type, config.items_per_page, config.max_depth) == ('page', 30, 2)


@pytest.mark.parametrize('environ', [
    {'RESOURCEQL_ITEMS_PER_PAGE': 'many'},
    {'RESOURCEQL_AUTO_CAMEL_CASE': 'maybe'},
    {'RESOURCEQL_PAGINATION_TYPE': 'offset'},
])
def test_from_env_rejects_bad_values(environ):
    with pytest.raises(ConfigurationError) as exc:
        ResourceQLConfig.from_env(environ)
    assert isinstance(exc.value, ValueError)
