"""
Database engine, declarative base, and transactional session scope.

SQLite is the default store; any SQLAlchemy URL (e.g. PostgreSQL) works
through DATABASE_URL.
"""

import logging
from contextlib import contextmanager
from typing import Callable, Generator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, sessionmaker, Session

from pigeonpost.config import config
from pigeonpost.errors import StorageError

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


engine_kwargs = {
    'echo': config.debug,  # Log SQL in debug mode
}

if config.database.is_sqlite:
    # Flask serves requests and the sweeper runs on its own thread
    engine_kwargs['connect_args'] = {'check_same_thread': False}

engine = create_engine(config.database.url, **engine_kwargs)


if config.database.is_sqlite:
    @event.listens_for(engine, 'connect')
    def set_sqlite_pragma(dbapi_connection, connection_record):
        """
        Configure SQLite for concurrent request handling.

        WAL mode lets the session sweeper write while requests read.
        Foreign keys must be switched on per connection for the
        tracking_updates cascade to fire.
        """
        cursor = dbapi_connection.cursor()
        cursor.execute('PRAGMA journal_mode=WAL')
        cursor.execute('PRAGMA synchronous=NORMAL')
        cursor.execute('PRAGMA foreign_keys=ON')
        cursor.close()


SessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,  # Views are built after commit
)


@contextmanager
def storage_session(
    factory: Optional[Callable[[], Session]] = None,
) -> Generator[Session, None, None]:
    """
    Transactional session scope: commit on success, roll back on error.

    Database failures surface as StorageError. Domain errors raised inside
    the block (NotFound, ValidationError, ...) roll back and propagate
    unchanged.
    """
    session = (factory or SessionLocal)()
    try:
        yield session
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f'Storage error: {e}')
        raise StorageError(str(e)) from e
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def init_db(bind=None) -> None:
    """Create any missing tables. Existing tables are left as they are."""
    # Import models so their tables register on Base.metadata
    import pigeonpost.models  # noqa: F401
    Base.metadata.create_all(bind=bind or engine)


def drop_db(bind=None) -> None:
    """Drop every table. Used by the test suite to reset state."""
    import pigeonpost.models  # noqa: F401
    Base.metadata.drop_all(bind=bind or engine)
