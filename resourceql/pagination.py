from __future__ import annotations

import logging
from typing import Any, Optional

from .config import PAGINATION_TYPES, ResourceQLConfig
from .exceptions import ConfigurationError
from .metadata import ResourceMetadata, ResourceMetadataFactory, resource_class_name

logger = logging.getLogger(__name__)


class Pagination:
    """Decides which GraphQL pagination style applies to a resource operation.

    Lookup order: the operation's ``pagination_type`` attribute, then the
    resource's ``pagination_type`` attribute, then the configured default.
    """

    def __init__(self, config: Optional[ResourceQLConfig] = None, metadata_factory: Optional[ResourceMetadataFactory] = None):
        self.config = config or ResourceQLConfig()
        self.metadata_factory = metadata_factory

    def _metadata_for(self, resource_class: Any) -> Optional[ResourceMetadata]:
        if self.metadata_factory is None or resource_class not in self.metadata_factory:
            return None
        return self.metadata_factory.create(resource_class)

    def get_graphql_pagination_type(self, resource_class: Any, operation_name: Optional[str]) -> str:
        pagination_type = self.config.pagination_type
        metadata = self._metadata_for(resource_class)
        if metadata is not None:
            pagination_type = metadata.get_graphql_attribute(operation_name, 'pagination_type', pagination_type, True)
        if pagination_type not in PAGINATION_TYPES:
            raise ConfigurationError(
                f"Unsupported pagination type '{pagination_type}' for {resource_class_name(resource_class)}"
            )
        return pagination_type

    def get_items_per_page(self, resource_class: Any, operation_name: Optional[str]) -> int:
        metadata = self._metadata_for(resource_class)
        if metadata is None:
            return self.config.items_per_page
        return int(metadata.get_graphql_attribute(operation_name, 'items_per_page', self.config.items_per_page, True))
