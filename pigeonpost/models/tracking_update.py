"""
TrackingUpdate model - append-only status history.

Rows are inserted by the update log and never edited; they disappear only
when the owning tracking is deleted (ON DELETE CASCADE).
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import String, Text, DateTime, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pigeonpost.clock import utcnow
from pigeonpost.models.base import Base


class TrackingUpdate(Base):
    """
    One status event for a tracking.

    `status` holds a TrackingStatus value when the entered status is a
    lifecycle stage and is NULL for free-text statuses; `label` always keeps
    the text as entered.
    """

    __tablename__ = 'tracking_updates'

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    tracking_id: Mapped[int] = mapped_column(
        ForeignKey('trackings.id', ondelete='CASCADE'),
        nullable=False,
    )

    # Denormalized for lookups by public number
    tracking_number: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        index=True,
    )

    status: Mapped[Optional[str]] = mapped_column(
        String(20),
        nullable=True,
        comment='Lifecycle stage, NULL for free-text statuses'
    )

    label: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        comment='Status text as entered'
    )

    location: Mapped[str] = mapped_column(String(300), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    emoji: Mapped[str] = mapped_column(String(16), nullable=False, default='📦')
    pigeon_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )

    created_by: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        default='system',
        comment='system or admin'
    )

    tracking: Mapped['Tracking'] = relationship(back_populates='updates')

    __table_args__ = (
        Index('ix_tracking_updates_tracking_time', 'tracking_id', 'timestamp'),
    )

    def __repr__(self) -> str:
        return f'<TrackingUpdate {self.tracking_number} {self.label} by {self.created_by}>'
