from __future__ import annotations

import base64
import dataclasses
import logging
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import inspect as sa_inspect
from sqlalchemy.orm import Mapper, RelationshipProperty

from ..config import ResourceQLConfig
from ..core.naming import map_graphql_to_python
from ..exceptions import UnexpectedValueError
from ..metadata import ResourceMetadataFactory

logger = logging.getLogger(__name__)


def _mapper_for(cls: Any) -> Optional[Mapper]:
    return sa_inspect(cls, raiseerr=False) if isinstance(cls, type) else None


class ItemNormalizer:
    """Converts SQLAlchemy mapped instances to dicts and back.

    Output keys are GraphQL field names (``config.field_name``). To-one
    relations are normalized as nested items up to ``config.max_depth``, then
    as bare identifiers; to-many relations go through
    :meth:`normalize_collection_of_relations` so subclasses can skip them.
    Objects that are not mapped (output DTOs) are normalized from their
    dataclass fields or public attributes.
    """

    def __init__(self, metadata_factory: ResourceMetadataFactory, config: Optional[ResourceQLConfig] = None):
        self.metadata_factory = metadata_factory
        self.config = config or ResourceQLConfig()

    # ----- normalization -----
    def supports_normalization(self, data: Any, format: Optional[str] = None, context: Optional[dict] = None) -> bool:
        return not isinstance(data, type) and type(data) in self.metadata_factory

    def normalize(self, obj: Any, format: Optional[str] = None, context: Optional[dict] = None) -> Any:
        context = dict(context or {})
        mapper = _mapper_for(type(obj))
        if mapper is None:
            return self._normalize_plain_object(obj)

        depth = context.get('depth', 0)
        allowed = set(self.get_allowed_attributes(type(obj), context))
        data: Dict[str, Any] = {}
        for prop in mapper.column_attrs:
            if prop.key in allowed:
                data[self.config.field_name(prop.key)] = self.normalize_value(getattr(obj, prop.key))
        for relationship in mapper.relationships:
            if relationship.key not in allowed:
                continue
            field_name = self.config.field_name(relationship.key)
            if relationship.uselist:
                data[field_name] = self.normalize_collection_of_relations(relationship, obj, format, context)
            else:
                data[field_name] = self.normalize_relation(relationship, getattr(obj, relationship.key), format, {**context, 'depth': depth + 1})
        return data

    def normalize_relation(self, relationship: RelationshipProperty, related: Any, format: Optional[str], context: dict) -> Any:
        if related is None:
            return None
        if context.get('depth', 0) > self.config.max_depth:
            return self.normalize_value(self.get_identifier(related))
        return self.normalize(related, format, context)

    def normalize_collection_of_relations(self, relationship: RelationshipProperty, obj: Any, format: Optional[str], context: dict) -> List[Any]:
        child_context = {**context, 'depth': context.get('depth', 0) + 1}
        return [self.normalize_relation(relationship, item, format, child_context) for item in getattr(obj, relationship.key) or []]

    def normalize_value(self, value: Any) -> Any:
        if isinstance(value, Enum):
            return value.name
        if isinstance(value, (datetime, date, time)):
            return value.isoformat()
        if isinstance(value, Decimal):
            return float(value)
        if isinstance(value, UUID):
            return str(value)
        if isinstance(value, (bytes, bytearray, memoryview)):
            return base64.b64encode(bytes(value)).decode('ascii')
        if isinstance(value, (list, tuple)):
            return [self.normalize_value(v) for v in value]
        return value

    def _normalize_plain_object(self, obj: Any) -> Dict[str, Any]:
        if dataclasses.is_dataclass(obj):
            values = {f.name: getattr(obj, f.name) for f in dataclasses.fields(obj)}
        else:
            values = {k: v for k, v in vars(obj).items() if not k.startswith('_')}
        return {self.config.field_name(k): self.normalize_value(v) for k, v in values.items()}

    def get_identifier(self, obj: Any) -> Any:
        mapper = _mapper_for(type(obj))
        if mapper is None:
            return getattr(obj, 'id', None)
        values = [getattr(obj, key) for key in self.get_identifier_attributes(type(obj))]
        return values[0] if len(values) == 1 else values

    @staticmethod
    def get_identifier_attributes(cls: type) -> List[str]:
        mapper = _mapper_for(cls)
        if mapper is None:
            return ['id']
        return [mapper.get_property_by_column(col).key for col in mapper.primary_key]

    # ----- denormalization -----
    def supports_denormalization(self, data: Any, type_: Any, format: Optional[str] = None, context: Optional[dict] = None) -> bool:
        return isinstance(data, dict) and type_ in self.metadata_factory

    def get_allowed_attributes(self, class_or_object: Any, context: dict, attributes_as_string: bool = True) -> List[str]:
        cls = class_or_object if isinstance(class_or_object, type) else type(class_or_object)
        mapper = _mapper_for(cls)
        if mapper is None:
            raise UnexpectedValueError(f'Class {cls.__name__} is not mapped by SQLAlchemy.')
        allowed = [prop.key for prop in mapper.column_attrs] + [rel.key for rel in mapper.relationships]
        requested = context.get('attributes')
        if requested is not None:
            allowed = [key for key in allowed if key in requested]
        return allowed

    def instantiate_object(self, cls: type, context: dict) -> Any:
        return context.get('object_to_populate') or cls()

    def denormalize(self, data: Dict[str, Any], cls: type, format: Optional[str] = None, context: Optional[dict] = None) -> Any:
        if not isinstance(data, dict):
            raise UnexpectedValueError(f'Expected data to be a dict, got {type(data).__name__}')
        context = dict(context or {})
        obj = self.instantiate_object(cls, context)
        allowed = self.get_allowed_attributes(cls, context)
        for key, value in data.items():
            attribute = map_graphql_to_python(key, allowed, name_converter=self.config.field_name)
            if attribute not in allowed:
                logger.debug(f"Ignoring attribute '{key}' not allowed on {cls.__name__}")
                continue
            self.set_attribute_value(obj, attribute, value, format, context)
        return obj

    def set_attribute_value(self, obj: Any, attribute: str, value: Any, format: Optional[str] = None, context: Optional[dict] = None) -> None:
        context = context or {}
        mapper = _mapper_for(type(obj))
        relationship = mapper.relationships.get(attribute) if mapper is not None else None
        if relationship is None:
            setattr(obj, attribute, value)
            return
        target = relationship.mapper.class_
        child_context = {k: v for k, v in context.items() if k not in ('object_to_populate', 'attributes')}
        if relationship.uselist:
            setattr(obj, attribute, [self._denormalize_relation(target, v, format, child_context) for v in value or []])
        else:
            setattr(obj, attribute, None if value is None else self._denormalize_relation(target, value, format, child_context))

    def _denormalize_relation(self, target: type, value: Any, format: Optional[str], context: dict) -> Any:
        if isinstance(value, dict):
            return self.denormalize(value, target, format, context)
        session = context.get('session')
        if session is None:
            raise UnexpectedValueError(f'Cannot resolve {target.__name__} identifier {value!r} without a session in the context.')
        related = session.get(target, value)
        if related is None:
            raise UnexpectedValueError(f'Item {target.__name__} with identifier {value!r} not found.')
        return related
