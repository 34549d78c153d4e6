"""Structural questions about an ORM query.

The pagination layer asks these before finalizing a query: ordering by a
column of a fetch-joined to-many association, composite or foreign-key
identifiers, or a HAVING clause all make LIMIT/OFFSET pagination unreliable.
Every function is pure and never touches the query.
"""
from __future__ import annotations

import warnings

from .query_shape import LEFT_JOIN, QueryShape

__all__ = [
    'has_having_clause',
    'has_root_entity_with_foreign_key_identifier',
    'has_root_entity_with_composite_identifier',
    'has_max_results',
    'has_order_by_on_fetch_joined_to_many_association',
    'has_order_by_on_to_many_join',
    'has_left_join',
    'has_joined_to_many_association',
]


def has_having_clause(query: QueryShape) -> bool:
    """Determines whether the query uses a HAVING clause."""
    return query.having


def has_root_entity_with_foreign_key_identifier(query: QueryShape) -> bool:
    """Determines whether the query has any root entity with foreign key identifier."""
    return any(query.get_class_metadata(entity).contains_foreign_identifier for entity in query.root_entities)


def has_root_entity_with_composite_identifier(query: QueryShape) -> bool:
    """Determines whether the query has any root entity with a composite identifier."""
    return any(query.get_class_metadata(entity).is_identifier_composite for entity in query.root_entities)


def has_max_results(query: QueryShape) -> bool:
    """Determines whether the query has a limit on the maximum number of results."""
    return query.max_results is not None


def has_order_by_on_fetch_joined_to_many_association(query: QueryShape) -> bool:
    """Determines whether the query has ORDER BY on a column from a fetch joined to-many association."""
    if not query.order_by or not query.joins:
        return False

    order_by_aliases = set()
    for part in query.order_by:
        if '.' in part:
            order_by_aliases.add(part.split('.', 1)[0])

    if not order_by_aliases:
        return False

    for join in query.joins:
        if join.alias not in order_by_aliases:
            continue

        parent = query.parent_and_association(join)
        if parent is not None:
            # The parent alias may differ from the root alias of the join.
            relation_alias, association = parent
            if query.get_class_metadata_from_alias(relation_alias).is_collection_valued_association(association):
                return True
            continue

        for root_entity in query.root_entities:
            root_metadata = query.class_metadata.get(root_entity)
            if root_metadata is None:
                continue
            for association in root_metadata.get_associations_by_target_class(join.join):
                if root_metadata.is_collection_valued_association(association):
                    return True

    return False


def has_order_by_on_to_many_join(query: QueryShape) -> bool:
    """Deprecated alias of :func:`has_order_by_on_fetch_joined_to_many_association`."""
    warnings.warn(
        'has_order_by_on_to_many_join() is deprecated, use has_order_by_on_fetch_joined_to_many_association() instead.',
        DeprecationWarning,
        stacklevel=2,
    )
    return has_order_by_on_fetch_joined_to_many_association(query)


def has_left_join(query: QueryShape) -> bool:
    """Determines whether the query already has a left join."""
    return any(join.join_type == LEFT_JOIN for join in query.joins)


def has_joined_to_many_association(query: QueryShape) -> bool:
    """Determines whether the query has a joined to-many association."""
    if not query.joins:
        return False

    join_aliases = [alias for alias in query.get_all_aliases() if alias not in query.root_aliases]
    if not join_aliases:
        return False

    for join_alias in join_aliases:
        for _alias, metadata, association in query.traverse_joins(join_alias):
            if association is not None and metadata.is_collection_valued_association(association):
                return True

    return False
