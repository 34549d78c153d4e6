from __future__ import annotations

import re
from typing import Any, Callable, Iterable, Optional

from ..metadata import COLLECTION_QUERY, ITEM_QUERY, ResourceMetadata

NameConverter = Optional[Callable[[str], str]]

__all__ = [
    'NameConverter',
    'INPUT_POSTFIX',
    'NESTED_POSTFIX',
    'PAYLOAD_POSTFIX',
    'SUBSCRIPTION_POSTFIX',
    'INTERFACE_POSTFIX',
    'ITEM_POSTFIX',
    'COLLECTION_POSTFIX',
    'DATA_POSTFIX',
    'from_camel',
    'lcfirst',
    'ucfirst',
    'short_class_name',
    'map_graphql_to_python',
    'pluralize',
    'resource_type_name',
]

INPUT_POSTFIX = 'Input'
NESTED_POSTFIX = 'Nested'
PAYLOAD_POSTFIX = 'Payload'
SUBSCRIPTION_POSTFIX = 'Subscription'
INTERFACE_POSTFIX = 'Interface'
ITEM_POSTFIX = 'Item'
COLLECTION_POSTFIX = 'Collection'
DATA_POSTFIX = 'Data'

_camel_to_snake_pattern = re.compile(r'(?<!^)(?=[A-Z])')


def from_camel(name: str) -> str:
    """Convert lower/upper camelCase to snake_case."""
    if not name:
        return name
    return _camel_to_snake_pattern.sub('_', str(name)).lower()


def ucfirst(value: str) -> str:
    return value[:1].upper() + value[1:]


def lcfirst(value: str) -> str:
    return value[:1].lower() + value[1:]


def short_class_name(resource_class: Any) -> str:
    """Short name of a class or of a dotted class path ("app.models.Book" -> "Book")."""
    if isinstance(resource_class, str):
        return resource_class.rsplit('.', 1)[-1]
    return resource_class.__name__


def pluralize(name: str) -> str:
    """Naive english plural used for collection query names ("Category" -> "Categories")."""
    if name.endswith('y') and name[-2:].lower() not in ('ay', 'ey', 'iy', 'oy', 'uy'):
        return name[:-1] + 'ies'
    if name.endswith(('s', 'x', 'ch', 'sh')):
        return name + 'es'
    return name + 's'


def map_graphql_to_python(
    name: str,
    python_names: Iterable[str],
    *,
    name_converter: NameConverter,
) -> str:
    """Map a GraphQL field name back to the python attribute it was generated from."""
    if not name:
        return name
    candidates = list(python_names)
    if name in candidates:
        return name
    snake = from_camel(name)
    if snake in candidates:
        return snake
    if callable(name_converter):
        for py_name in candidates:
            if name_converter(py_name) == name:
                return py_name
    return name


def resource_type_name(
    metadata: ResourceMetadata,
    input: bool,
    query_name: Optional[str],
    mutation_name: Optional[str],
    subscription_name: Optional[str],
    wrapped: bool = False,
    depth: int = 0,
) -> str:
    """Return the GraphQL type name of a resource for one operation.

    The name is a pure function of its arguments; the types container relies on
    that to hand back the same type for the same request.

        Book, item query                      -> Book
        Book, create mutation                 -> createBookPayload
        Book, create mutation, wrapped        -> createBookPayloadData
        Book, create mutation, input          -> createBookInput
        Book, update subscription, depth 1    -> updateBookSubscriptionNestedPayload
    """
    name = metadata.short_name

    if mutation_name is not None:
        name = mutation_name + ucfirst(name)
    if subscription_name is not None:
        name = subscription_name + ucfirst(name) + SUBSCRIPTION_POSTFIX
    if input:
        name += INPUT_POSTFIX
    elif mutation_name is not None or subscription_name is not None:
        if depth > 0:
            name += NESTED_POSTFIX
        name += PAYLOAD_POSTFIX

    if metadata.is_interface():
        name += INTERFACE_POSTFIX

    if query_name in (ITEM_QUERY, COLLECTION_QUERY) and (
        metadata.get_graphql_attribute(ITEM_QUERY, 'normalization_context', {}, True)
        != metadata.get_graphql_attribute(COLLECTION_QUERY, 'normalization_context', {}, True)
    ):
        name += ITEM_POSTFIX if query_name == ITEM_QUERY else COLLECTION_POSTFIX

    if wrapped and (mutation_name is not None or subscription_name is not None):
        name += DATA_POSTFIX

    return name
