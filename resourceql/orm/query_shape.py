"""Read-only description of an ORM query, as seen by the query checker.

A :class:`QueryShape` lists root entities, joins (alias -> ``parent_alias.association``
or a joined class), ORDER BY parts, HAVING presence and the result limit, plus
the class metadata needed to follow joins. It is built by hand or extracted
from a SQLAlchemy ``Select`` with :meth:`QueryShape.from_select`.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple

from sqlalchemy import inspect as sa_inspect
from sqlalchemy.orm import RelationshipProperty
from sqlalchemy.sql import visitors
from sqlalchemy.sql.elements import ColumnClause

from ..exceptions import LogicError, NotFoundError
from ..metadata import resource_class_name

logger = logging.getLogger(__name__)

INNER_JOIN = 'INNER'
LEFT_JOIN = 'LEFT'


@dataclass(frozen=True)
class AssociationMapping:
    target_class: str
    collection: bool = False


@dataclass(frozen=True)
class ClassMetadata:
    """Identifier and association facts of one entity class."""

    name: str
    identifier: Tuple[str, ...] = ('id',)
    associations: Mapping[str, AssociationMapping] = field(default_factory=dict)
    contains_foreign_identifier: bool = False

    @property
    def is_identifier_composite(self) -> bool:
        return len(self.identifier) > 1

    def is_collection_valued_association(self, association: str) -> bool:
        mapping = self.associations.get(association)
        return mapping is not None and mapping.collection

    def get_association_target_class(self, association: str) -> str:
        try:
            return self.associations[association].target_class
        except KeyError:
            raise NotFoundError(f'Association "{association}" not found on {self.name}') from None

    def get_associations_by_target_class(self, target_class: str) -> Dict[str, AssociationMapping]:
        return {name: mapping for name, mapping in self.associations.items() if mapping.target_class == target_class}

    @classmethod
    def from_mapped_class(cls, mapped_class: Any) -> 'ClassMetadata':
        mapper = sa_inspect(mapped_class)
        return cls(
            name=resource_class_name(mapper.class_),
            identifier=tuple(mapper.get_property_by_column(col).key for col in mapper.primary_key),
            associations={
                rel.key: AssociationMapping(resource_class_name(rel.mapper.class_), bool(rel.uselist))
                for rel in mapper.relationships
            },
            contains_foreign_identifier=any(col.foreign_keys for col in mapper.primary_key),
        )


@dataclass(frozen=True)
class Join:
    """One join: ``join`` is ``"<parent alias>.<association>"`` or a joined class name."""

    alias: str
    join: str
    join_type: str = INNER_JOIN


@dataclass(frozen=True)
class QueryShape:
    root_entities: Tuple[str, ...] = ()
    root_aliases: Tuple[str, ...] = ()
    joins: Tuple[Join, ...] = ()
    order_by: Tuple[str, ...] = ()
    having: bool = False
    max_results: Optional[int] = None
    class_metadata: Mapping[str, ClassMetadata] = field(default_factory=dict)

    def get_class_metadata(self, class_name: str) -> ClassMetadata:
        try:
            return self.class_metadata[class_name]
        except KeyError:
            raise NotFoundError(f'No class metadata for "{class_name}"') from None

    def parent_and_association(self, join: Join) -> Optional[Tuple[str, str]]:
        """``(parent alias, association)`` of a join, or ``None`` for a class join.

        Class names are dotted paths too, so a join naming a class with known
        metadata is a class join.
        """
        if join.join in self.class_metadata or '.' not in join.join:
            return None
        parent_alias, association = join.join.split('.', 1)
        return parent_alias, association

    def get_all_aliases(self) -> List[str]:
        aliases = list(self.root_aliases)
        aliases.extend(join.alias for join in self.joins if join.alias not in aliases)
        return aliases

    def get_class_metadata_from_alias(self, alias: str) -> ClassMetadata:
        """Metadata of the entity an alias stands for, following join paths."""
        association_stack: List[str] = []
        current = alias
        joins = {join.alias: join for join in self.joins}
        while True:
            if current in self.root_aliases:
                class_name = self.root_entities[self.root_aliases.index(current)]
                break
            join = joins.get(current)
            if join is None:
                raise LogicError(f'Unknown alias "{current}".')
            parent = self.parent_and_association(join)
            if parent is None:
                class_name = join.join
                break
            current, association = parent
            association_stack.append(association)

        metadata = self.get_class_metadata(class_name)
        while association_stack:
            metadata = self.get_class_metadata(metadata.get_association_target_class(association_stack.pop()))
        return metadata

    def traverse_joins(self, alias: str) -> Iterator[Tuple[str, ClassMetadata, Optional[str]]]:
        """Yield ``(alias, owner metadata, association)`` from the apex entity down to ``alias``.

        The apex (a root alias or a class join) is yielded with association ``None``.
        """
        alias_map: Dict[str, Any] = dict(zip(self.root_aliases, self.root_entities))
        for join in self.joins:
            alias_map[join.alias] = self.parent_and_association(join) or join.join

        association_stack: List[Tuple[str, str]] = []
        current = alias
        while True:
            if current not in alias_map:
                raise LogicError(f'Unknown alias "{current}".')
            target = alias_map[current]
            if isinstance(target, str):
                break
            parent_alias, association = target
            association_stack.append((current, association))
            current = parent_alias

        entity_class = alias_map[current]
        yield current, self.get_class_metadata(entity_class), None
        while association_stack:
            joined_alias, association = association_stack.pop()
            metadata = self.get_class_metadata(entity_class)
            yield joined_alias, metadata, association
            entity_class = metadata.get_association_target_class(association)

    @classmethod
    def from_select(cls, select: Any) -> 'QueryShape':
        """Extract the shape of a SQLAlchemy ORM ``Select``."""
        class_metadata: Dict[str, ClassMetadata] = {}

        def remember(mapped_class: Any) -> str:
            name = resource_class_name(mapped_class)
            if name not in class_metadata:
                class_metadata[name] = ClassMetadata.from_mapped_class(mapped_class)
            return name

        root_entities: List[str] = []
        root_aliases: List[str] = []
        for description in select.column_descriptions:
            entity = description.get('entity')
            if entity is None:
                continue
            alias = _selectable_name(description.get('expr', entity))
            if alias in root_aliases:
                continue
            root_entities.append(remember(_mapper_of(entity).class_))
            root_aliases.append(alias)

        joins: List[Join] = []
        for target, onclause, _from, flags in select._setup_joins:
            join_type = LEFT_JOIN if flags.get('isouter') else INNER_JOIN
            attribute, relationship = _relationship_of(target, onclause)
            if relationship is not None:
                remember(relationship.parent.class_)
                remember(relationship.mapper.class_)
                joined = getattr(attribute, '_of_type', None) or (target if target is not attribute else relationship.entity)
                joins.append(Join(
                    alias=_selectable_name(joined),
                    join=f'{_selectable_name(attribute.parent)}.{relationship.key}',
                    join_type=join_type,
                ))
                continue
            mapper = _mapper_of(target)
            if mapper is None:
                logger.debug(f"Skipping join on non-entity target {target!r}")
                continue
            joins.append(Join(
                alias=_selectable_name(target),
                join=remember(mapper.class_),
                join_type=join_type,
            ))

        order_by = []
        for clause in select._order_by_clauses:
            for element in visitors.iterate(clause):
                if isinstance(element, ColumnClause) and element.table is not None:
                    order_by.append(f'{element.table.name}.{element.name}')

        limit_clause = select._limit_clause
        return cls(
            root_entities=tuple(root_entities),
            root_aliases=tuple(root_aliases),
            joins=tuple(joins),
            order_by=tuple(order_by),
            having=bool(select._having_criteria),
            max_results=None if limit_clause is None else getattr(limit_clause, 'value', limit_clause),
            class_metadata=class_metadata,
        )


def _relationship_of(target: Any, onclause: Any) -> Tuple[Any, Optional[RelationshipProperty]]:
    for candidate in (onclause, target):
        prop = getattr(candidate, 'property', None)
        if isinstance(prop, RelationshipProperty):
            return candidate, prop
    return None, None


def _mapper_of(obj: Any):
    annotations = getattr(obj, '_annotations', None) or {}
    if 'parententity' in annotations:
        return annotations['parententity'].mapper
    insp = sa_inspect(obj, raiseerr=False)
    return getattr(insp, 'mapper', None)


def _selectable_name(obj: Any) -> str:
    """Alias of an entity, aliased entity or table: the name its columns are qualified with."""
    annotations = getattr(obj, '_annotations', None) or {}
    if 'parententity' in annotations:
        obj = annotations['parententity']
    insp = sa_inspect(obj, raiseerr=False)
    selectable = getattr(insp, 'selectable', None)
    name = getattr(selectable, 'name', None)
    if name is None and getattr(insp, 'mapper', None) is not None:
        name = insp.mapper.local_table.name
    return str(name)
