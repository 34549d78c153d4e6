from . import query_checker
from .query_shape import INNER_JOIN, LEFT_JOIN, AssociationMapping, ClassMetadata, Join, QueryShape

__all__ = ['query_checker', 'INNER_JOIN', 'LEFT_JOIN', 'AssociationMapping', 'ClassMetadata', 'Join', 'QueryShape']
