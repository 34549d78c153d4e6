"""Query shapes extracted from SQLAlchemy selects; nothing here touches a database."""

from sqlalchemy import desc, select
from sqlalchemy.orm import aliased

from resourceql.orm import query_checker
from resourceql.orm.query_shape import INNER_JOIN, LEFT_JOIN, ClassMetadata, QueryShape
from tests.models import Post, PostComment, PostTag, User


def test_root_entities_and_class_metadata():
    query = QueryShape.from_select(select(User))

    assert query.root_entities == ('tests.models.User',)
    assert query.root_aliases == ('users',)
    assert query.joins == ()
    metadata = query.get_class_metadata('tests.models.User')
    assert metadata.identifier == ('id',)
    assert metadata.is_collection_valued_association('posts')
    assert metadata.get_association_target_class('posts') == 'tests.models.Post'


def test_class_metadata_of_composite_foreign_key_identifier():
    metadata = ClassMetadata.from_mapped_class(PostTag)
    assert metadata.identifier == ('post_id', 'label')
    assert metadata.is_identifier_composite
    assert metadata.contains_foreign_identifier

    query = QueryShape.from_select(select(PostTag))
    assert query_checker.has_root_entity_with_composite_identifier(query)
    assert query_checker.has_root_entity_with_foreign_key_identifier(query)
    assert not query_checker.has_root_entity_with_composite_identifier(QueryShape.from_select(select(User)))


def test_relationship_join_ordered_by_to_many_column():
    query = QueryShape.from_select(select(User).join(User.posts).order_by(Post.title))

    assert len(query.joins) == 1
    join = query.joins[0]
    assert (join.alias, join.join, join.join_type) == ('posts', 'users.posts', INNER_JOIN)
    assert query.order_by == ('posts.title',)
    assert query_checker.has_order_by_on_fetch_joined_to_many_association(query)
    assert query_checker.has_joined_to_many_association(query)


def test_relationship_join_ordered_by_to_one_column():
    query = QueryShape.from_select(select(Post).join(Post.author).order_by(desc(User.name)))

    assert query.order_by == ('users.name',)
    assert not query_checker.has_order_by_on_fetch_joined_to_many_association(query)
    assert not query_checker.has_joined_to_many_association(query)


def test_aliased_join():
    comments = aliased(PostComment, name='c')
    query = QueryShape.from_select(select(Post).join(comments, Post.comments).order_by(comments.rate))

    assert query.joins[0].alias == 'c'
    assert query.joins[0].join == 'posts.comments'
    assert query_checker.has_order_by_on_fetch_joined_to_many_association(query)


def test_outer_join():
    query = QueryShape.from_select(select(User).outerjoin(User.posts))
    assert query.joins[0].join_type == LEFT_JOIN
    assert query_checker.has_left_join(query)
    assert not query_checker.has_left_join(QueryShape.from_select(select(User).join(User.posts)))


def test_class_join_with_explicit_onclause():
    query = QueryShape.from_select(select(User).join(Post, Post.author_id == User.id).order_by(Post.title))

    assert query.joins[0].join == 'tests.models.Post'
    assert query_checker.has_order_by_on_fetch_joined_to_many_association(query)


def test_limit_and_having():
    assert query_checker.has_max_results(QueryShape.from_select(select(User).limit(10)))
    assert not query_checker.has_max_results(QueryShape.from_select(select(User)))
    assert query_checker.has_having_clause(QueryShape.from_select(select(User).group_by(User.id).having(User.id > 1)))
