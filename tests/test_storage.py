"""
Contract tests run against both post stores, plus SQL-specific failure handling.
"""

from datetime import timedelta
from uuid import UUID, uuid4

import pytest
from sqlalchemy.exc import OperationalError

from models import db
from schemas import CreatePost, UpdatePost
from storage import SAMPLE_POSTS, MemoryPostStore, StorageError, build_store, parse_id


def create(store, title='Hello', content='World'):
    return store.create(CreatePost(title=title, content=content))


class TestPostStoreContract:
    """Every test here runs once per backend."""

    def test_empty_store_lists_nothing(self, store):
        assert store.list_all() == []

    def test_create_assigns_id_and_equal_timestamps(self, store):
        post = create(store)

        assert isinstance(post.id, UUID)
        assert post.title == 'Hello'
        assert post.content == 'World'
        assert post.created_at == post.updated_at

    def test_ids_are_unique(self, store):
        ids = {create(store, title=f'Post {n}').id for n in range(5)}

        assert len(ids) == 5

    def test_create_then_get_returns_same_record(self, store):
        post = create(store)

        assert store.get_by_id(str(post.id)).to_json() == post.to_json()

    def test_get_absent_post(self, store):
        assert store.get_by_id(str(uuid4())) is None
        assert store.get_by_id('not-a-uuid') is None

    def test_list_is_newest_first(self, store):
        for n in range(3):
            create(store, title=f'Post {n}')

        titles = [post.title for post in store.list_all()]

        assert titles == ['Post 2', 'Post 1', 'Post 0']

    def test_posts_created_in_the_same_instant_keep_insertion_order(self, store, clock):
        clock.step = timedelta(0)
        for n in range(3):
            create(store, title=f'Post {n}')

        posts = store.list_all()

        assert len({post.created_at for post in posts}) == 1
        assert [post.title for post in posts] == ['Post 2', 'Post 1', 'Post 0']

    def test_partial_update(self, store):
        post = create(store)

        updated = store.update(str(post.id), UpdatePost(title='Hi'))

        assert updated.title == 'Hi'
        assert updated.content == 'World'
        assert updated.id == post.id
        assert updated.created_at == post.created_at
        assert updated.updated_at > post.updated_at
        assert store.get_by_id(str(post.id)).title == 'Hi'

    def test_empty_update_still_refreshes_timestamp(self, store):
        post = create(store)

        updated = store.update(str(post.id), UpdatePost())

        assert updated.title == post.title
        assert updated.content == post.content
        assert updated.updated_at > post.updated_at

    def test_update_absent_post_creates_nothing(self, store):
        missing = str(uuid4())

        assert store.update(missing, UpdatePost(title='Hi')) is None
        assert store.get_by_id(missing) is None
        assert store.list_all() == []

    def test_delete_is_true_exactly_once(self, store):
        post = create(store)

        assert store.delete(str(post.id)) is True
        assert store.delete(str(post.id)) is False
        assert store.delete(str(post.id)) is False
        assert store.get_by_id(str(post.id)) is None

    def test_delete_absent_post(self, store):
        assert store.delete(str(uuid4())) is False
        assert store.delete('garbage') is False

    def test_seed_puts_first_sample_on_top(self, store):
        store.seed()

        titles = [post.title for post in store.list_all()]

        assert titles == [sample.title for sample in SAMPLE_POSTS]

    def test_clear(self, store):
        create(store)
        create(store)

        store.clear()

        assert store.list_all() == []


class TestMemoryPostStore:

    def test_returned_posts_are_copies(self, clock):
        store = MemoryPostStore(clock=clock)
        post = create(store)

        post.title = 'changed outside'

        assert store.get_by_id(str(post.id)).title == 'Hello'

    def test_seed_samples_on_init(self):
        store = MemoryPostStore(seed_samples=True)

        assert len(store.list_all()) == len(SAMPLE_POSTS)

    def test_clock_going_backwards_keeps_updated_at_ordered(self, clock):
        store = MemoryPostStore(clock=clock)
        post = create(store)
        clock.now = post.created_at.replace(year=2020)

        updated = store.update(str(post.id), UpdatePost(content='again'))

        assert updated.updated_at >= updated.created_at


class TestSqlPostStore:

    @pytest.fixture
    def backend(self):
        return 'sql'

    def test_commit_failure_surfaces_as_storage_error(self, store, monkeypatch):
        def broken_commit():
            raise OperationalError('INSERT INTO posts', {}, Exception('database is locked'))

        monkeypatch.setattr(db.session, 'commit', broken_commit)

        with pytest.raises(StorageError):
            create(store)

    def test_not_found_does_not_leak_orm_errors(self, store):
        assert store.update(str(uuid4()), UpdatePost(content='x')) is None


def test_build_store():
    assert isinstance(build_store('memory', db), MemoryPostStore)
    with pytest.raises(ValueError):
        build_store('redis', db)


def test_parse_id():
    value = uuid4()

    assert parse_id(str(value)) == value
    assert parse_id(str(value).upper()) == value
    assert parse_id('nope') is None


def test_parse_id_wants_the_hyphenated_form():
    value = uuid4()

    assert parse_id(value.hex) is None
    assert parse_id('{%s}' % value) is None
    assert parse_id(f'urn:uuid:{value}') is None
    assert parse_id(None) is None
