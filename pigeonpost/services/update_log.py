"""
Tracking update log - append-only status history per tracking.

Appending an event also brings the parent tracking's status in line with
it. Both writes happen in the same transaction, so a failure leaves neither
behind.
"""

import logging
from datetime import datetime
from typing import Callable, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from pigeonpost.clock import ensure_utc, utcnow
from pigeonpost.config import config
from pigeonpost.errors import NotFound, ValidationError
from pigeonpost.models import Tracking, TrackingUpdate, storage_session
from pigeonpost.services.views import UpdateEventView
from pigeonpost.tracking import TrackingStatus

logger = logging.getLogger(__name__)

CREATED_BY_VALUES = ('system', 'admin')


def find_tracking(session: Session, tracking_number: str) -> Tracking:
    """Load a tracking by number or raise NotFound."""
    tracking = session.execute(
        select(Tracking).where(Tracking.tracking_number == tracking_number)
    ).scalar_one_or_none()

    if tracking is None:
        raise NotFound('Tracking number not found')
    return tracking


def apply_status(tracking: Tracking, status: str) -> Optional[TrackingStatus]:
    """
    Set a tracking's status from admin input.

    Lifecycle stages replace `status` and clear the label; anything else is
    kept as a free-text label next to the unchanged stage. Returns the
    parsed stage, or None for free text.
    """
    lifecycle = TrackingStatus.parse(status)
    if lifecycle is not None:
        tracking.status = lifecycle.value
        tracking.status_label = None
    else:
        tracking.status_label = status
    tracking.touch()
    return lifecycle


def _clean(value) -> str:
    return value.strip() if isinstance(value, str) else ''


class TrackingUpdateLog:
    """
    Records and lists update events.

    The session factory defaults to the application's SessionLocal; tests
    may pass their own.
    """

    def __init__(self, session_factory: Optional[Callable[[], Session]] = None):
        self._session_factory = session_factory

    def append_update(
        self,
        tracking_number: str,
        status: str,
        location: str,
        description: str,
        emoji: Optional[str] = None,
        pigeon_name: Optional[str] = None,
        created_by: str = 'admin',
        timestamp: Optional[datetime] = None,
    ) -> UpdateEventView:
        """
        Append an event to a tracking's log and sync the tracking's status.

        Raises:
            ValidationError: status, location, or description is empty
            NotFound: no tracking has this number
        """
        status, location, description = _clean(status), _clean(location), _clean(description)

        missing = [
            name for name, value in
            (('status', status), ('location', location), ('description', description))
            if not value
        ]
        if missing:
            raise ValidationError(f'Missing required fields: {", ".join(missing)}')

        with storage_session(self._session_factory) as session:
            tracking = find_tracking(session, tracking_number)
            update = self.record(
                session,
                tracking,
                status=status,
                location=location,
                description=description,
                emoji=emoji,
                pigeon_name=pigeon_name,
                created_by=created_by,
                timestamp=timestamp,
            )
            session.flush()
            view = UpdateEventView.from_model(update)

        logger.info(f'Update "{status}" appended to {tracking_number} by {created_by}')
        return view

    def record(
        self,
        session: Session,
        tracking: Tracking,
        status: str,
        location: str,
        description: str,
        emoji: Optional[str] = None,
        pigeon_name: Optional[str] = None,
        created_by: str = 'admin',
        timestamp: Optional[datetime] = None,
        sync_parent: bool = True,
    ) -> TrackingUpdate:
        """
        Add an event inside an open session.

        Used by append_update() and by repository operations that need the event
        in their own transaction. Inputs are assumed validated.
        """
        if created_by not in CREATED_BY_VALUES:
            raise ValidationError(f'createdBy must be one of {", ".join(CREATED_BY_VALUES)}')

        lifecycle = TrackingStatus.parse(status)
        pigeon_name = _clean(pigeon_name) or None

        update = TrackingUpdate(
            tracking=tracking,
            tracking_number=tracking.tracking_number,
            status=lifecycle.value if lifecycle else None,
            label=status,
            location=location,
            description=description,
            emoji=_clean(emoji) or config.tracking.default_emoji,
            pigeon_name=pigeon_name,
            timestamp=ensure_utc(timestamp) if timestamp else utcnow(),
            created_by=created_by,
        )
        session.add(update)

        if sync_parent:
            apply_status(tracking, status)
            if pigeon_name:
                tracking.pigeon_name = pigeon_name

        return update

    def list_updates(self, tracking_number: str) -> List[UpdateEventView]:
        """
        Events for a tracking, oldest first.

        An existing tracking without events yields an empty list.
        """
        with storage_session(self._session_factory) as session:
            tracking = find_tracking(session, tracking_number)
            return [UpdateEventView.from_model(u) for u in self.events_for(session, tracking)]

    @staticmethod
    def events_for(session: Session, tracking: Tracking) -> List[TrackingUpdate]:
        return list(session.execute(
            select(TrackingUpdate)
            .where(TrackingUpdate.tracking_id == tracking.id)
            .order_by(TrackingUpdate.timestamp.asc(), TrackingUpdate.id.asc())
        ).scalars())


# Singleton instance
update_log = TrackingUpdateLog()
