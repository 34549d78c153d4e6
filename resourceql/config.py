"""Runtime configuration for ResourceQL schema generation."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Mapping, Optional

from strawberry.schema.config import StrawberryConfig

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

PAGINATION_CURSOR = 'cursor'
PAGINATION_PAGE = 'page'
PAGINATION_TYPES = (PAGINATION_CURSOR, PAGINATION_PAGE)

_TRUE_VALUES = ('1', 'true', 't', 'yes', 'y', 'on')
_FALSE_VALUES = ('0', 'false', 'f', 'no', 'n', 'off')


@dataclass
class ResourceQLConfig:
    """Settings shared by the type builder, fields builder and pagination.

    Attributes:
        pagination_type: Default GraphQL pagination style, "cursor" or "page".
        items_per_page: Default page size exposed by page-based collections.
        max_depth: How many levels of nested to-one relations the item
            normalizer expands before emitting bare identifiers.
        strawberry_config: Strawberry configuration; its ``name_converter``
            names the generated GraphQL fields.
    """

    pagination_type: str = PAGINATION_PAGE
    items_per_page: int = 30
    max_depth: int = 2
    strawberry_config: StrawberryConfig = field(default_factory=StrawberryConfig)

    def __post_init__(self):
        if self.pagination_type not in PAGINATION_TYPES:
            raise ConfigurationError(
                f"Unsupported pagination type '{self.pagination_type}', expected one of {', '.join(PAGINATION_TYPES)}"
            )
        if self.items_per_page < 1:
            raise ConfigurationError(f"items_per_page must be positive, got {self.items_per_page}")
        if self.max_depth < 0:
            raise ConfigurationError(f"max_depth must not be negative, got {self.max_depth}")

    def field_name(self, name: str) -> str:
        """Return the GraphQL name of a python attribute."""
        return self.strawberry_config.name_converter.apply_naming_config(name)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'ResourceQLConfig':
        """Build a config from ``RESOURCEQL_*`` environment variables."""
        env = os.environ if environ is None else environ
        kwargs = {}
        if env.get('RESOURCEQL_PAGINATION_TYPE'):
            kwargs['pagination_type'] = env['RESOURCEQL_PAGINATION_TYPE'].strip().lower()
        for key, attr in (('RESOURCEQL_ITEMS_PER_PAGE', 'items_per_page'), ('RESOURCEQL_MAX_DEPTH', 'max_depth')):
            raw = env.get(key)
            if not raw:
                continue
            try:
                kwargs[attr] = int(raw)
            except ValueError as e:
                raise ConfigurationError(f"{key} must be an integer, got '{raw}'") from e
        raw_camel = env.get('RESOURCEQL_AUTO_CAMEL_CASE')
        if raw_camel:
            lv = raw_camel.strip().lower()
            if lv in _TRUE_VALUES:
                kwargs['strawberry_config'] = StrawberryConfig(auto_camel_case=True)
            elif lv in _FALSE_VALUES:
                kwargs['strawberry_config'] = StrawberryConfig(auto_camel_case=False)
            else:
                raise ConfigurationError(f"RESOURCEQL_AUTO_CAMEL_CASE must be a boolean, got '{raw_camel}'")
        config = cls(**kwargs)
        logger.debug(f"Loaded configuration from environment: {config}")
        return config
