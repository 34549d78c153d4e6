from __future__ import annotations

import pickle
from typing import Any, Dict, List, Optional

from sqlalchemy import inspect as sa_inspect
from sqlalchemy.orm import RelationshipProperty

from ..exceptions import UnexpectedValueError
from ..metadata import resource_class_name
from .normalizer import ItemNormalizer as BaseItemNormalizer

FORMAT = 'graphql'
ITEM_KEY = '#item'
ITEM_RESOURCE_CLASS_KEY = '#itemResourceClass'
REVISION_ATTRIBUTE = 'revision'


class ItemNormalizer(BaseItemNormalizer):
    """GraphQL normalizer.

    Adds two reserved keys to every payload: ``#item``, a pickled copy of the
    object holding only its identifier (and revision, for audited entities),
    and ``#itemResourceClass``, read by the ``resolve_type`` callbacks of
    interfaces. To-many relations are left empty: the GraphQL field resolvers
    fetch them on demand.
    """

    def supports_normalization(self, data: Any, format: Optional[str] = None, context: Optional[dict] = None) -> bool:
        return format == FORMAT and super().supports_normalization(data, format, context)

    def normalize(self, obj: Any, format: Optional[str] = None, context: Optional[dict] = None) -> Any:
        context = context or {}
        if self.get_output_class(type(obj), context) is not None:
            return super().normalize(obj, format, context)

        data = super().normalize(obj, format, context)
        if not isinstance(data, dict):
            raise UnexpectedValueError('Expected data to be an array')

        # Pickled so the GraphQL executor never walks the entity graph itself.
        data[ITEM_KEY] = pickle.dumps(self.clone_to_empty_object(obj))
        data[ITEM_RESOURCE_CLASS_KEY] = resource_class_name(type(obj))

        return data

    def get_output_class(self, resource_class: type, context: dict) -> Optional[Any]:
        if resource_class not in self.metadata_factory:
            return None
        metadata = self.metadata_factory.create(resource_class)
        output = metadata.get_graphql_attribute(context.get('graphql_operation_name'), 'output', None, True)
        if not output:
            return None
        return output.get('class')

    def normalize_collection_of_relations(self, relationship: RelationshipProperty, obj: Any, format: Optional[str], context: dict) -> List[Any]:
        # to-many are handled directly by the GraphQL resolver
        return []

    def supports_denormalization(self, data: Any, type_: Any, format: Optional[str] = None, context: Optional[dict] = None) -> bool:
        return format == FORMAT and super().supports_denormalization(data, type_, format, context)

    def get_allowed_attributes(self, class_or_object: Any, context: dict, attributes_as_string: bool = True) -> List[str]:
        allowed = super().get_allowed_attributes(class_or_object, context, attributes_as_string)

        if context.get('api_denormalize', False) and 'id' in allowed:
            allowed = list(allowed)
            allowed[allowed.index('id')] = '_id'

        return allowed

    def denormalize(self, data: Dict[str, Any], cls: type, format: Optional[str] = None, context: Optional[dict] = None) -> Any:
        context = context or {}
        if isinstance(data, dict) and 'id' in data and '_id' in self.get_allowed_attributes(cls, context):
            data = {('_id' if key == 'id' else key): value for key, value in data.items()}
        return super().denormalize(data, cls, format, context)

    def set_attribute_value(self, obj: Any, attribute: str, value: Any, format: Optional[str] = None, context: Optional[dict] = None) -> None:
        if attribute == '_id':
            attribute = 'id'

        super().set_attribute_value(obj, attribute, value, format, context)

    def clone_to_empty_object(self, original: Any) -> Any:
        """Return a new instance of the object's class carrying only id (and revision)."""
        mapper = sa_inspect(type(original), raiseerr=False)
        if mapper is None:
            return original

        empty = mapper.class_manager.new_instance()
        for key in self.get_identifier_attributes(type(original)):
            setattr(empty, key, getattr(original, key))
        if mapper.has_property(REVISION_ATTRIBUTE):
            setattr(empty, REVISION_ATTRIBUTE, getattr(original, REVISION_ATTRIBUTE))

        return empty
