"""
Tracking model - one row per message entrusted to the pigeon post.

The persisted `status` is a cache of the lifecycle stage: the repository
recomputes it from the clock on every read and writes it back when it has
moved on. Admin-entered statuses that are not lifecycle stages live in
`status_label`.
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import String, Text, DateTime, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pigeonpost.clock import ensure_utc, utcnow
from pigeonpost.config import config
from pigeonpost.models.base import Base
from pigeonpost.tracking.status import TrackingStatus


class Tracking(Base):
    """
    A tracked delivery.

    `tracking_number` is generated once at creation and never changes.
    Update events hang off this row and are removed with it.
    """

    __tablename__ = 'trackings'

    id: Mapped[int] = mapped_column(
        primary_key=True,
        autoincrement=True,
        comment='Surrogate key'
    )

    tracking_number: Mapped[str] = mapped_column(
        String(32),
        unique=True,
        nullable=False,
        index=True,
        comment='Public tracking number (prefix + base36 time + suffix)'
    )

    # Parties
    sender: Mapped[str] = mapped_column(String(200), nullable=False)
    recipient: Mapped[str] = mapped_column(String(200), nullable=False)

    sender_address: Mapped[str] = mapped_column(
        String(300),
        nullable=False,
        default=config.tracking.default_sender_address,
    )

    recipient_address: Mapped[str] = mapped_column(
        String(300),
        nullable=False,
        default=config.tracking.default_recipient_address,
    )

    # Payload, only shown to the public once delivered
    message: Mapped[str] = mapped_column(Text, nullable=False)

    # Lifecycle
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=TrackingStatus.PROCESSING.value,
        comment='Lifecycle stage (TrackingStatus value)'
    )

    status_label: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        comment='Free-text status entered by an admin (e.g. delayed)'
    )

    pigeon_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    estimated_delivery: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
    )

    # Never written automatically
    actual_delivery: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        index=True,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
    )

    updates: Mapped[List['TrackingUpdate']] = relationship(
        back_populates='tracking',
        cascade='all, delete-orphan',
        passive_deletes=True,
        order_by='TrackingUpdate.timestamp',
    )

    __table_args__ = (
        Index('ix_trackings_status', 'status'),
    )

    def __repr__(self) -> str:
        return f'<Tracking {self.tracking_number} {self.status}>'

    @property
    def lifecycle_status(self) -> TrackingStatus:
        """Persisted stage as an enum member (unknown values read as processing)."""
        try:
            return TrackingStatus(self.status)
        except ValueError:
            return TrackingStatus.PROCESSING

    @property
    def estimated_delivery_utc(self) -> datetime:
        return ensure_utc(self.estimated_delivery)

    @property
    def created_at_utc(self) -> datetime:
        return ensure_utc(self.created_at)

    def touch(self) -> None:
        """Refresh updated_at explicitly (onupdate only fires on column changes)."""
        self.updated_at = utcnow()
