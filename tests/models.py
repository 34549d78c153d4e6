"""Database models and resource metadata shared by the ResourceQL tests."""

import enum
from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, Column, DateTime, Enum as SAEnum, ForeignKey, Integer, String
from sqlalchemy.orm import DeclarativeBase, relationship

from resourceql.metadata import ResourceMetadataFactory

resources = ResourceMetadataFactory()


class Base(DeclarativeBase):
    """Base class for test models."""
    pass


@resources.resource()
class User(Base):
    """Application users"""
    __tablename__ = 'users'

    id = Column(Integer, primary_key=True, comment='User primary key')
    name = Column(String(100), nullable=False, comment='Public display name')
    email = Column(String(255), unique=True, nullable=False)
    is_admin = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc).replace(tzinfo=None))

    posts = relationship("Post", back_populates="author")
    comments = relationship("PostComment", back_populates="author")


class PostStatus(enum.Enum):
    DRAFT = "draft"
    PUBLISHED = "published"


@resources.resource(
    graphql={
        'item_query': {},
        'collection_query': {},
        'create': {},
        'update': {'normalization_context': {'groups': ['post:update']}},
        'delete': {},
    },
    attributes={'mercure': True},
)
class Post(Base):
    """Blog posts"""
    __tablename__ = 'posts'

    id = Column(Integer, primary_key=True)
    title = Column(String(200), nullable=False, comment='Post title')
    content = Column(String(5000))
    status = Column(SAEnum(PostStatus), nullable=False, default=PostStatus.DRAFT)
    author_id = Column(Integer, ForeignKey('users.id'), nullable=False)
    revision = Column(Integer, nullable=False, default=1)
    metadata_json = Column(JSON, nullable=True)

    author = relationship("User", back_populates="posts")
    comments = relationship("PostComment", back_populates="post")


@resources.resource(graphql={'item_query': {}, 'collection_query': {'pagination_type': 'cursor'}})
class PostComment(Base):
    __tablename__ = 'post_comments'

    id = Column(Integer, primary_key=True)
    content = Column(String(1000), nullable=False)
    rate = Column(Integer, nullable=False, default=0)
    post_id = Column(Integer, ForeignKey('posts.id'), nullable=False)
    author_id = Column(Integer, ForeignKey('users.id'), nullable=False)

    post = relationship("Post", back_populates="comments")
    author = relationship("User", back_populates="comments")


class PostTag(Base):
    """Not a resource: composite identifier made of a foreign key and a label."""
    __tablename__ = 'post_tags'

    post_id = Column(Integer, ForeignKey('posts.id'), primary_key=True)
    label = Column(String(50), primary_key=True)


@resources.resource(graphql={'item_query': {}}, interface=True)
class Animal(Base):
    """Any animal"""
    __tablename__ = 'animals'

    id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=False)
    kind = Column(String(20), nullable=False)

    __mapper_args__ = {'polymorphic_on': kind, 'polymorphic_identity': 'animal'}


@resources.resource(graphql={'item_query': {}, 'collection_query': {}}, attributes={'interfaces': [Animal]})
class Dog(Animal):
    """A good dog"""
    good_boy = Column(Boolean, nullable=True)

    __mapper_args__ = {'polymorphic_identity': 'dog'}
