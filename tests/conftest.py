"""Pytest configuration and shared fixtures."""

import os
import tempfile

# Point the application at a throw-away database before pigeonpost is imported
_DB_DIR = tempfile.mkdtemp(prefix='pigeonpost-tests-')
os.environ['DATABASE_URL'] = f'sqlite:///{os.path.join(_DB_DIR, "pigeonpost.db")}'
os.environ['ADMIN_USERNAME'] = 'admin'
os.environ['ADMIN_PASSWORD'] = 'pigeons-fly-home'
os.environ.pop('ADMIN_PASSWORD_HASH', None)

from datetime import timedelta  # noqa: E402

import pytest  # noqa: E402

from pigeonpost.clock import utcnow  # noqa: E402
from pigeonpost.models import drop_db, init_db  # noqa: E402
from pigeonpost.services import (  # noqa: E402
    TrackingRepository,
    TrackingUpdateLog,
    SessionStore,
)

ADMIN_PASSWORD = os.environ['ADMIN_PASSWORD']


@pytest.fixture(autouse=True)
def database():
    """Fresh schema for every test."""
    drop_db()
    init_db()
    yield
    drop_db()


@pytest.fixture
def repository():
    return TrackingRepository()


@pytest.fixture
def updates():
    return TrackingUpdateLog()


@pytest.fixture
def store():
    return SessionStore()


@pytest.fixture
def tracking(repository):
    """A tracking due in three hours."""
    return repository.create(
        sender='Ada',
        recipient='Grace',
        message='Meet me at the loft',
        estimated_delivery=utcnow() + timedelta(hours=3),
    )


@pytest.fixture
def app():
    from pigeonpost.app import create_app
    return create_app(start_sweeper=False)


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_headers(store):
    session = store.login('admin', ADMIN_PASSWORD)
    return {'Authorization': f'Bearer {session.session_id}'}


@pytest.fixture
def admin_password():
    return ADMIN_PASSWORD
