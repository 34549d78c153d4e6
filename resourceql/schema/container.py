from __future__ import annotations

import logging
from typing import Dict

from graphql import GraphQLNamedType, GraphQLType

from ..exceptions import TypeNotFoundError

logger = logging.getLogger(__name__)


class TypesContainer:
    """Cache of the GraphQL types built during one schema-build session.

    A name is registered once and then always resolves to the same object, so
    the executor treats repeated references as one type. Population happens in
    a single-threaded build phase; reads afterwards are safe to share. Build a
    new container whenever resource metadata changes.
    """

    def __init__(self):
        self._types: Dict[str, GraphQLType] = {}

    def has(self, name: str) -> bool:
        return name in self._types

    def get(self, name: str) -> GraphQLType:
        try:
            return self._types[name]
        except KeyError:
            raise TypeNotFoundError(name) from None

    def set(self, name: str, type_: GraphQLType) -> None:
        # Callers check has() first; overwriting here is not guarded.
        logger.debug(f"Registering GraphQL type {name}")
        self._types[name] = type_

    def all(self) -> Dict[str, GraphQLType]:
        return dict(self._types)

    def named_types(self):
        """Registered types unwrapped to named types, for ``GraphQLSchema(types=...)``."""
        out = []
        for type_ in self._types.values():
            named = getattr(type_, 'of_type', type_)
            if isinstance(named, GraphQLNamedType) and named not in out:
                out.append(named)
        return out

    def __len__(self) -> int:
        return len(self._types)
