from __future__ import annotations

from typing import Any, Callable, Optional

Resolver = Callable[..., Any]


def _resolve_nothing(root: Any, info: Any, **kwargs: Any) -> None:
    return None


class ResolverFactory:
    """Hands out the resolvers attached to generated root and relation fields.

    Data access lives outside ResourceQL: applications subclass this factory
    and return resolvers producing payloads normalized with
    :class:`~resourceql.serializer.item_normalizer.ItemNormalizer`. The base
    implementation resolves everything to ``None``.
    """

    def item_resolver(self, resource_class: Any, root_class: Optional[Any], operation_name: str) -> Resolver:
        return _resolve_nothing

    def collection_resolver(self, resource_class: Any, root_class: Optional[Any], operation_name: str) -> Resolver:
        return _resolve_nothing

    def mutation_resolver(self, resource_class: Any, mutation_name: str) -> Resolver:
        return _resolve_nothing

    def subscription_resolver(self, resource_class: Any, subscription_name: str) -> Resolver:
        return _resolve_nothing

    def subscription_subscriber(self, resource_class: Any, subscription_name: str) -> Optional[Resolver]:
        """Source stream of a subscription field (an async generator function), if any."""
        return None

    def node_resolver(self) -> Resolver:
        return _resolve_nothing
