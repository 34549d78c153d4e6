import logging
from dataclasses import dataclass, replace

import pytest
from graphql import GraphQLField, GraphQLInputField, GraphQLNonNull, parse_value

from resourceql.exceptions import UnexpectedValueError
from resourceql.metadata import ResourceMetadataFactory
from resourceql.schema import create_schema_builder
from tests.models import Post, PostComment, User, resources


def type_names(fields):
    return {name: str(field.type) for name, field in fields.items()}


def post_fields(fields_builder, input=False, query_name=None, mutation_name=None, subscription_name=None, io_metadata=None):
    return fields_builder.get_resource_object_type_fields(
        Post, resources.create(Post), input, query_name, mutation_name, subscription_name, 0, io_metadata
    )


def test_output_fields_of_mapped_class(fields_builder):
    fields = post_fields(fields_builder, query_name='item_query')

    assert all(isinstance(field, GraphQLField) for field in fields.values())
    assert type_names(fields) == {
        'id': 'ID!',
        'title': 'String!',
        'content': 'String',
        'status': 'String!',
        'authorId': 'Int!',
        'revision': 'Int!',
        'metadataJson': 'JSON',
        'author': 'User',
        'comments': 'PostCommentConnection',
    }
    assert fields['title'].description == 'Post title'


def test_to_many_relation_uses_target_pagination(fields_builder):
    comments = post_fields(fields_builder, query_name='item_query')['comments']
    assert set(comments.args) == {'first', 'last', 'before', 'after'}

    user_fields = fields_builder.get_resource_object_type_fields(User, resources.create(User), False, 'item_query', None, None, 0, None)
    assert set(user_fields['posts'].args) == {'page', 'itemsPerPage'}
    assert user_fields['posts'].args['itemsPerPage'].default_value == 30
    assert str(user_fields['posts'].type) == 'PostConnection'


def test_json_scalar_is_registered_once(fields_builder):
    first = post_fields(fields_builder, query_name='item_query')['metadataJson'].type
    second = post_fields(fields_builder, mutation_name='update', input=True)['metadataJson'].type

    assert first is second
    assert fields_builder.type_builder.types_container.get('JSON') is first


def test_json_scalar_passes_values_through(fields_builder):
    json_type = post_fields(fields_builder, query_name='item_query')['metadataJson'].type
    value = {'tags': ['a', 1], 'draft': True}

    assert json_type.serialize(value) == value
    assert json_type.parse_value(value) == value
    assert json_type.parse_literal(parse_value('{tags: ["a", 1], draft: true}')) == value
    assert json_type.specified_by_url.startswith('https://ecma-international.org/')


def test_create_input_fields(fields_builder):
    fields = post_fields(fields_builder, input=True, mutation_name='create')

    assert all(isinstance(field, GraphQLInputField) for field in fields.values())
    assert type_names(fields) == {
        'title': 'String!',
        'content': 'String',
        # Columns with a default may be omitted
        'status': 'String',
        'authorId': 'Int!',
        'revision': 'Int',
        'metadataJson': 'JSON',
        'author': 'ID',
        'comments': '[ID]',
        'clientMutationId': 'String',
    }


def test_update_input_fields(fields_builder):
    fields = type_names(post_fields(fields_builder, input=True, mutation_name='update'))

    assert fields['id'] == 'ID!'
    assert fields['title'] == 'String'
    assert fields['authorId'] == 'Int'
    assert fields['clientMutationId'] == 'String'


def test_update_payload_fields_are_nested(fields_builder):
    fields = post_fields(fields_builder, mutation_name='update')
    assert str(fields['author'].type) == 'updateUserNestedPayload'
    assert str(fields['comments'].type) == 'updatePostCommentNestedPayloadConnection'
    assert 'clientMutationId' not in fields


def test_delete_fields(fields_builder):
    assert type_names(post_fields(fields_builder, input=True, mutation_name='delete')) == {'id': 'ID!', 'clientMutationId': 'String'}
    assert type_names(post_fields(fields_builder, mutation_name='delete')) == {'id': 'ID!'}


def test_subscription_input_fields(fields_builder):
    fields = post_fields(fields_builder, input=True, subscription_name='update')
    assert type_names(fields) == {'id': 'ID!', 'clientSubscriptionId': 'String'}


def test_io_class_disabled(fields_builder):
    fields = post_fields(fields_builder, input=True, mutation_name='create', io_metadata={'class': None})
    assert type_names(fields) == {'clientMutationId': 'String'}
    assert post_fields(fields_builder, query_name='item_query', io_metadata={'class': None}) == {}


def test_dataclass_output_fields(fields_builder):
    @dataclass
    class PostView:
        id: int
        title: str
        words: int
        score: float
        featured: bool

    fields = fields_builder.get_resource_object_type_fields(
        PostView, resources.create(Post), False, 'item_query', None, None, 0, {'class': PostView}
    )
    assert type_names(fields) == {'id': 'ID!', 'title': 'String', 'words': 'Int', 'score': 'Float', 'featured': 'Boolean'}


def test_relations_to_unregistered_classes_are_skipped(caplog):
    factory = ResourceMetadataFactory()
    factory.register(Post, resources.create(Post))
    fields_builder = create_schema_builder(factory).fields_builder

    with caplog.at_level(logging.WARNING, logger='resourceql.schema.fields'):
        fields = fields_builder.get_resource_object_type_fields(Post, factory.create(Post), False, 'item_query', None, None, 0, None)

    assert 'author' not in fields
    assert 'comments' not in fields
    assert 'is not a resource' in caplog.text


def test_item_query_fields(fields_builder):
    fields = fields_builder.get_item_query_fields(Post, resources.create(Post), 'item_query', {'args': {'slug': {'type': 'String'}}})

    assert set(fields) == {'post'}
    assert type_names(fields['post'].args) == {'id': 'ID!', 'slug': 'String'}
    assert fields['post'].type.name == 'Post'


def test_custom_item_query_name(fields_builder):
    fields = fields_builder.get_item_query_fields(Post, resources.create(Post), 'latest', {})
    assert set(fields) == {'latestPost'}


def test_collection_query_fields(fields_builder):
    posts = fields_builder.get_collection_query_fields(Post, resources.create(Post), 'collection_query', {})
    comments = fields_builder.get_collection_query_fields(PostComment, resources.create(PostComment), 'collection_query', {})

    assert set(posts['posts'].args) == {'page', 'itemsPerPage'}
    assert posts['posts'].args['itemsPerPage'].default_value == 30
    assert posts['posts'].type.name == 'PostConnection'
    assert set(comments['postComments'].args) == {'first', 'last', 'before', 'after'}


def test_mutation_fields(fields_builder):
    fields = fields_builder.get_mutation_fields(Post, resources.create(Post), 'create')

    assert set(fields) == {'createPost'}
    assert fields['createPost'].type.name == 'createPostPayload'
    assert str(fields['createPost'].args['input'].type) == 'createPostInput!'


def test_subscription_fields(fields_builder):
    fields = fields_builder.get_subscription_fields(Post, resources.create(Post), 'update')
    assert set(fields) == {'updatePostSubscribe'}
    assert fields['updatePostSubscribe'].type.name == 'updatePostSubscriptionPayload'

    # Users are not published through Mercure
    assert fields_builder.get_subscription_fields(User, resources.create(User), 'update') == {}


def test_resolve_resource_args(fields_builder):
    args = fields_builder.resolve_resource_args({'slug': {'type': 'String!', 'description': 'URL slug'}}, 'publish', 'Post')
    assert str(args['slug'].type) == 'String!'
    assert args['slug'].description == 'URL slug'

    with pytest.raises(UnexpectedValueError, match='needs a "type" option'):
        fields_builder.resolve_resource_args({'slug': {}}, 'publish', 'Post')


def test_resolve_type(fields_builder):
    assert str(fields_builder.resolve_type('[ID!]!')) == '[ID!]!'
    assert isinstance(fields_builder.resolve_type('Int!'), GraphQLNonNull)

    input_type = fields_builder.type_builder.get_resource_object_type(Post, resources.create(Post), True, None, 'create', None)
    assert fields_builder.resolve_type('[createPostInput]').of_type is input_type


@pytest.mark.parametrize('type_string', ['Unknown', '[Unknown!]', 'not a type!!'])
def test_resolve_type_errors(fields_builder, type_string):
    with pytest.raises(UnexpectedValueError):
        fields_builder.resolve_type(type_string)


@pytest.mark.parametrize('type_string', ['Post', '[Post!]', 'createPostInput!', '[createPostInput!]'])
def test_resolve_type_rejects_output_and_doubly_non_null_types(fields_builder, type_string):
    builder = fields_builder.type_builder
    builder.get_resource_object_type(Post, resources.create(Post), False, 'item_query', None, None)
    builder.get_resource_object_type(Post, resources.create(Post), True, None, 'create', None)
    with pytest.raises(UnexpectedValueError):
        fields_builder.resolve_type(type_string)


def test_items_per_page_argument_follows_resource_attribute():
    factory = ResourceMetadataFactory()
    factory.register(Post, replace(resources.create(Post), attributes={'items_per_page': 5}))
    fields_builder = create_schema_builder(factory).fields_builder

    posts = fields_builder.get_collection_query_fields(Post, factory.create(Post), 'collection_query', {})
    assert posts['posts'].args['itemsPerPage'].default_value == 5
