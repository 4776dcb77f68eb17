'''Storage adapters for posts.

Both stores honour the same contract: absence is reported as ``None`` (get,
update) or ``False`` (delete), never as an exception, and input is assumed to
be validated already.
'''
import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Callable, Iterable, Iterator, Optional
from uuid import UUID, uuid4

from flask_sqlalchemy import SQLAlchemy
from sqlalchemy.exc import NoResultFound, SQLAlchemyError

from models import PostRecord, utcnow
from schemas import UUID_PATTERN, CreatePost, Post, UpdatePost

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

SAMPLE_POSTS : list[CreatePost] = [
    CreatePost(
        title='Welcome to our Blog!',
        content="This is our first blog post. We're excited to share our thoughts and ideas with you. Stay tuned for more content!",
    ),
    CreatePost(
        title='Getting Started with Flask',
        content="In this post, we'll explore how to build a small JSON API with Flask and SQLAlchemy, and a front end that talks to it over HTTP.",
    ),
]


class StorageError(RuntimeError):
    '''An unexpected failure in the backing store.'''


def parse_id(post_id: str) -> Optional[UUID]:
    if not isinstance(post_id, str) or not UUID_PATTERN.match(post_id):
        return None
    return UUID(post_id)


def _aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class PostStore(ABC):

    @abstractmethod
    def list_all(self) -> list[Post]:
        '''All posts, newest first.'''

    @abstractmethod
    def get_by_id(self, post_id: str) -> Optional[Post]:
        ...

    @abstractmethod
    def create(self, payload: CreatePost) -> Post:
        ...

    @abstractmethod
    def update(self, post_id: str, payload: UpdatePost) -> Optional[Post]:
        '''Apply the fields present in ``payload``; ``None`` when there is no such post.'''

    @abstractmethod
    def delete(self, post_id: str) -> bool:
        ...

    @abstractmethod
    def clear(self) -> None:
        ...

    def seed(self, payloads: Iterable[CreatePost] = SAMPLE_POSTS) -> list[Post]:
        '''Create ``payloads`` so that the first one ends up newest.'''
        created : list[Post] = [self.create(payload) for payload in reversed(list(payloads))]
        created.reverse()
        return created


class MemoryPostStore(PostStore):
    '''Ordered in-process list. Not synchronized: one writer at a time.'''

    def __init__(self, clock: Clock = utcnow, seed_samples: bool = False):
        self._clock : Clock = clock
        self._posts : list[Post] = []
        if seed_samples:
            self.seed()

    def _index_of(self, post_id: str) -> int:
        key : Optional[UUID] = parse_id(post_id)
        for index, post in enumerate(self._posts):
            if post.id == key:
                return index
        return -1

    def list_all(self) -> list[Post]:
        return [post.model_copy() for post in self._posts]

    def get_by_id(self, post_id: str) -> Optional[Post]:
        index : int = self._index_of(post_id)
        if index == -1:
            return None
        return self._posts[index].model_copy()

    def create(self, payload: CreatePost) -> Post:
        now : datetime = self._clock()
        post : Post = Post(id=uuid4(), title=payload.title, content=payload.content, created_at=now, updated_at=now)
        self._posts.insert(0, post)
        return post.model_copy()

    def update(self, post_id: str, payload: UpdatePost) -> Optional[Post]:
        index : int = self._index_of(post_id)
        if index == -1:
            return None
        current : Post = self._posts[index]
        changes : dict = payload.changes()
        changes['updated_at'] = max(_aware(self._clock()), current.updated_at)
        self._posts[index] = current.model_copy(update=changes)
        return self._posts[index].model_copy()

    def delete(self, post_id: str) -> bool:
        index : int = self._index_of(post_id)
        if index == -1:
            return False
        del self._posts[index]
        return True

    def clear(self) -> None:
        self._posts.clear()


class SqlPostStore(PostStore):
    '''Posts in the ``posts`` table through a Flask-SQLAlchemy session.'''

    def __init__(self, db: SQLAlchemy, clock: Clock = utcnow):
        self.db : SQLAlchemy = db
        self._clock : Clock = clock

    @contextmanager
    def _transaction(self) -> Iterator[None]:
        try:
            yield
            self.db.session.commit()
        except NoResultFound:
            self.db.session.rollback()
            raise
        except SQLAlchemyError as error:
            self.db.session.rollback()
            logger.error('Post store failure: %s', error)
            raise StorageError('storage failure') from error

    def list_all(self) -> list[Post]:
        try:
            records = self.db.session.execute(
                self.db.select(PostRecord).order_by(PostRecord.created_at.desc(), PostRecord.seq.desc())
            ).scalars()
            return [record.to_post() for record in records]
        except SQLAlchemyError as error:
            raise StorageError('storage failure') from error

    def get_by_id(self, post_id: str) -> Optional[Post]:
        key : Optional[UUID] = parse_id(post_id)
        if key is None:
            return None
        try:
            record : Optional[PostRecord] = self.db.session.get(PostRecord, str(key))
        except SQLAlchemyError as error:
            raise StorageError('storage failure') from error
        return record.to_post() if record is not None else None

    def create(self, payload: CreatePost) -> Post:
        now : datetime = self._clock()
        record : PostRecord = PostRecord(
            id=str(uuid4()),
            title=payload.title,
            content=payload.content,
            created_at=now,
            updated_at=now,
        )
        with self._transaction():
            # Insertion order breaks ties between posts created in the same instant.
            last : Optional[int] = self.db.session.execute(self.db.select(self.db.func.max(PostRecord.seq))).scalar()
            record.seq = (last or 0) + 1
            self.db.session.add(record)
        return record.to_post()

    def update(self, post_id: str, payload: UpdatePost) -> Optional[Post]:
        key : Optional[UUID] = parse_id(post_id)
        if key is None:
            return None
        try:
            with self._transaction():
                record : PostRecord = self.db.session.execute(
                    self.db.select(PostRecord).filter_by(id=str(key))
                ).scalar_one()
                for field, value in payload.changes().items():
                    setattr(record, field, value)
                record.updated_at = max(_aware(self._clock()), _aware(record.updated_at))
        except NoResultFound:
            logger.debug('Update skipped, post %s does not exist', key)
            return None
        return record.to_post()

    def delete(self, post_id: str) -> bool:
        key : Optional[UUID] = parse_id(post_id)
        if key is None:
            return False
        with self._transaction():
            result = self.db.session.execute(self.db.delete(PostRecord).where(PostRecord.id == str(key)))
        return result.rowcount > 0

    def clear(self) -> None:
        with self._transaction():
            self.db.session.execute(self.db.delete(PostRecord))


def build_store(backend: str, db: SQLAlchemy, seed_samples: bool = False) -> PostStore:
    if backend == 'memory':
        return MemoryPostStore(seed_samples=seed_samples)
    if backend == 'sql':
        return SqlPostStore(db)
    raise ValueError(f'Unknown storage backend {backend!r}')
