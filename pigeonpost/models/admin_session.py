"""
AdminSession model - persisted bearer tokens.

Sessions survive process restarts. Expiry is checked on every
authentication; the sweeper only reclaims rows nobody asked about.
"""

from datetime import datetime

from sqlalchemy import String, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from pigeonpost.clock import ensure_utc, utcnow
from pigeonpost.models.base import Base


class AdminSession(Base):
    """A login session for the single admin account."""

    __tablename__ = 'admin_sessions'

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    session_id: Mapped[str] = mapped_column(
        String(64),
        unique=True,
        nullable=False,
        index=True,
        comment='Opaque bearer token'
    )

    username: Mapped[str] = mapped_column(String(50), nullable=False)

    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True,  # Sweep query
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
    )

    def __repr__(self) -> str:
        return f'<AdminSession {self.username} until {self.expires_at}>'

    def is_expired(self, now: datetime) -> bool:
        return ensure_utc(self.expires_at) <= now
