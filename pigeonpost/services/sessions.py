"""
Admin session store and authenticator.

Sessions are rows in admin_sessions, so they survive restarts. Lifecycle:

    login  -> row created, expires_at = now + TTL
    authenticate (before expiry) -> identity returned
    logout | expiry -> row deleted

Every operation is a single statement or a single short transaction on one
token, which lets the background sweep run alongside request handling. The
only visible race is whether an already-expired row has been swept yet, and
authenticate() checks expiry itself either way.

A store that cannot be reached rejects the token. There is no fallback that
lets a request through without a matching, unexpired row.
"""

import hmac
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

from sqlalchemy import delete, select
from sqlalchemy.orm import Session
from werkzeug.security import check_password_hash

from pigeonpost.clock import ensure_utc, isoformat, utcnow
from pigeonpost.config import config
from pigeonpost.errors import (
    InvalidCredentials,
    SessionExpired,
    StorageError,
    Unauthorized,
    ValidationError,
)
from pigeonpost.models import AdminSession, storage_session

logger = logging.getLogger(__name__)

# Give up on finding a free token after this many collisions
MAX_TOKEN_ATTEMPTS = 5


@dataclass(frozen=True)
class SessionInfo:
    """An authenticated admin session."""
    session_id: str
    username: str
    expires_at: datetime

    def to_dict(self) -> dict:
        return {
            'sessionId': self.session_id,
            'username': self.username,
            'expiresAt': isoformat(self.expires_at),
        }


class SessionStore:
    """
    Issues, validates, and revokes admin bearer tokens.

    Args:
        session_factory: SQLAlchemy session factory (SessionLocal if None)
        admin_username: the one accepted username (from config if None)
        admin_password_hash: werkzeug hash of the admin password (from config if None)
        ttl: session lifetime (config.sessions.ttl_hours if None)
        clock: returns the current aware UTC time
    """

    def __init__(
        self,
        session_factory: Optional[Callable[[], Session]] = None,
        admin_username: Optional[str] = None,
        admin_password_hash: Optional[str] = None,
        ttl: Optional[timedelta] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._session_factory = session_factory
        self._admin_username = admin_username or config.admin.username
        self._admin_password_hash = admin_password_hash or config.admin.password_hash
        self.ttl = ttl or timedelta(hours=config.sessions.ttl_hours)
        self._clock = clock or utcnow

    def _credentials_match(self, username: str, password: str) -> bool:
        # Both halves are always evaluated
        username_ok = hmac.compare_digest(
            username.encode('utf-8'),
            self._admin_username.encode('utf-8'),
        )
        password_ok = check_password_hash(self._admin_password_hash, password)
        return username_ok and password_ok

    def _new_token(self, session: Session) -> str:
        for _ in range(MAX_TOKEN_ATTEMPTS):
            token = secrets.token_urlsafe(32)
            taken = session.execute(
                select(AdminSession.id).where(AdminSession.session_id == token)
            ).first()
            if taken is None:
                return token

        raise StorageError('Could not allocate a unique session token')

    def login(self, username: Optional[str], password: Optional[str]) -> SessionInfo:
        """
        Open a session for the admin.

        Raises:
            ValidationError: username or password missing or not a string
            InvalidCredentials: pair does not match the configured admin
        """
        if not username or not password:
            raise ValidationError('Username and password required')
        if not isinstance(username, str) or not isinstance(password, str):
            raise ValidationError('Username and password must be strings')

        if not self._credentials_match(username, password):
            logger.warning(f'Failed admin login attempt for user "{username}"')
            raise InvalidCredentials()

        now = self._clock()
        expires_at = now + self.ttl

        with storage_session(self._session_factory) as session:
            token = self._new_token(session)
            # Replace any row already holding this token
            session.execute(delete(AdminSession).where(AdminSession.session_id == token))
            session.add(AdminSession(
                session_id=token,
                username=self._admin_username,
                expires_at=expires_at,
                created_at=now,
            ))

        logger.info(f'Admin "{self._admin_username}" logged in, session valid until {expires_at.isoformat()}')
        return SessionInfo(session_id=token, username=self._admin_username, expires_at=expires_at)

    def authenticate(self, token: Optional[str]) -> SessionInfo:
        """
        Resolve a bearer token to its session.

        Raises:
            Unauthorized: no token, unknown token, or store unavailable
            SessionExpired: token found but past expiry (row is deleted)
        """
        if not token:
            raise Unauthorized()

        now = self._clock()
        expired = False

        try:
            with storage_session(self._session_factory) as session:
                row = session.execute(
                    select(AdminSession).where(AdminSession.session_id == token)
                ).scalar_one_or_none()

                if row is None:
                    raise Unauthorized()

                if row.is_expired(now):
                    session.execute(delete(AdminSession).where(AdminSession.session_id == token))
                    expired = True
                else:
                    info = SessionInfo(
                        session_id=row.session_id,
                        username=row.username,
                        expires_at=ensure_utc(row.expires_at),
                    )
        except StorageError:
            logger.error('Session store unavailable, rejecting bearer token')
            raise Unauthorized()

        if expired:
            logger.info('Admin session expired and removed')
            raise SessionExpired()

        return info

    def logout(self, session_id: Optional[str]) -> bool:
        """
        Delete a session. Returns whether a row was removed.

        Unknown or missing session ids are not an error.
        """
        if not session_id:
            return False

        with storage_session(self._session_factory) as session:
            result = session.execute(
                delete(AdminSession).where(AdminSession.session_id == session_id)
            )
            removed = result.rowcount > 0

        if removed:
            logger.info('Admin logged out')
        return removed

    def sweep_expired(self) -> int:
        """Delete every expired session. Returns rows removed."""
        now = self._clock()

        with storage_session(self._session_factory) as session:
            result = session.execute(
                delete(AdminSession).where(AdminSession.expires_at <= now)
            )
            removed = result.rowcount

        if removed:
            logger.info(f'Session sweep removed {removed} expired sessions')
        return removed


# Singleton instance
session_store = SessionStore()
