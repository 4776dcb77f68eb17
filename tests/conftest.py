"""
Shared fixtures: a controllable clock, both post stores, the API app and an
httpx-backed client wired straight into it.
"""

from datetime import datetime, timedelta, timezone

import httpx
import pytest

from app import create_app
from client import BlogApiClient
from config import TestingConfig
from models import db
from storage import MemoryPostStore, SqlPostStore


class FakeClock:
    """Advances ``step`` (one second by default) every time it is read."""

    def __init__(self, start=datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc), step=timedelta(seconds=1)):
        self.now = start
        self.step = step

    def __call__(self):
        self.now += self.step
        return self.now


def make_store(backend, clock):
    if backend == 'memory':
        return MemoryPostStore(clock=clock)
    return SqlPostStore(db, clock=clock)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture(params=['memory', 'sql'])
def backend(request):
    return request.param


@pytest.fixture
def app(backend, clock):
    """API app over the parametrized backend."""
    application = create_app(TestingConfig, store=make_store(backend, clock))
    yield application
    with application.app_context():
        db.session.remove()


@pytest.fixture
def store(app):
    """The app's store, with an app context pushed so the SQL store can use its session."""
    with app.app_context():
        yield app.extensions['post_store']


@pytest.fixture
def http(app):
    transport = httpx.WSGITransport(app=app)
    with httpx.Client(transport=transport, base_url='http://testserver') as client:
        yield client


@pytest.fixture
def api(http):
    with BlogApiClient('http://testserver', http=http) as client:
        yield client
