"""
Tracking repository - CRUD over trackings with live status.

Every read recomputes the lifecycle stage from the clock:

1. Load: fetch the stored tracking
2. Derive: stage from time remaining, never behind the stored stage
3. Build: timeline + update log into a TrackingView
4. Persist: write the stage back if it moved on

Step 4 runs after the view is built. If it fails the caller still gets the
fresh view and the failure only shows up in the log.
"""

import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import Session

from pigeonpost.clock import parse_timestamp, utcnow
from pigeonpost.config import config
from pigeonpost.errors import StorageError, ValidationError
from pigeonpost.models import Tracking, TrackingUpdate, storage_session
from pigeonpost.services.update_log import (
    TrackingUpdateLog,
    apply_status,
    find_tracking,
    update_log as default_update_log,
)
from pigeonpost.services.views import TrackingView, UpdateEventView
from pigeonpost.tracking import (
    TrackingStatus,
    derive_status,
    generate_timeline,
    generate_tracking_number,
    resolve_status,
)

logger = logging.getLogger(__name__)

# Give up on finding a free tracking number after this many collisions
MAX_NUMBER_ATTEMPTS = 10

# Wire keys for status_counts()
STATUS_COUNT_KEYS = {
    TrackingStatus.PROCESSING: 'processing',
    TrackingStatus.ASSIGNED: 'assigned',
    TrackingStatus.IN_TRANSIT: 'inTransit',
    TrackingStatus.APPROACHING: 'approaching',
    TrackingStatus.DELIVERED: 'delivered',
}


def _require(text: Dict[str, Any], **fields: Any) -> None:
    """
    Raise ValidationError naming every empty field.

    Everything in `text` must also be a string; `fields` only has to be
    present.
    """
    present = {**text, **fields}
    missing = [
        name for name, value in present.items()
        if value is None or (isinstance(value, str) and not value.strip())
    ]
    if missing:
        raise ValidationError(f'Missing required fields: {", ".join(missing)}')

    not_text = [name for name, value in text.items() if not isinstance(value, str)]
    if not_text:
        raise ValidationError(f'Expected text for: {", ".join(not_text)}')


def _optional_text(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    return value.strip() or None


class TrackingRepository:
    """
    Owns creation, reads, edits, and deletion of trackings.

    Args:
        session_factory: SQLAlchemy session factory (SessionLocal if None)
        update_log: log used for the initial and status-change events
        clock: returns the current aware UTC time
    """

    def __init__(
        self,
        session_factory: Optional[Callable[[], Session]] = None,
        update_log: Optional[TrackingUpdateLog] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._session_factory = session_factory
        self._update_log = update_log or (
            TrackingUpdateLog(session_factory) if session_factory else default_update_log
        )
        self._clock = clock or utcnow

    # -------------------------------------------------------------------------
    # Status helpers
    # -------------------------------------------------------------------------

    def _effective_status(self, tracking: Tracking, now: datetime) -> TrackingStatus:
        derived = derive_status(now, tracking.estimated_delivery_utc)
        return resolve_status(TrackingStatus.parse(tracking.status), derived)

    def _build_view(
        self,
        tracking: Tracking,
        status: TrackingStatus,
        now: datetime,
        updates: Optional[List[UpdateEventView]] = None,
    ) -> TrackingView:
        timeline = generate_timeline(
            now,
            tracking.created_at_utc,
            tracking.estimated_delivery_utc,
            status,
        )
        return TrackingView.build(tracking, status, timeline, updates)

    def _persist_statuses(self, changes: Dict[str, Tuple[str, TrackingStatus]]) -> None:
        """
        Write recomputed stages back. Failures are logged, not raised.

        `changes` maps tracking number to (stage the read saw, new stage).
        A row whose stage has changed since that read is left alone.
        """
        if not changes:
            return

        advanced = []
        try:
            with storage_session(self._session_factory) as session:
                for tracking_number, (seen, status) in changes.items():
                    result = session.execute(
                        update(Tracking)
                        .where(Tracking.tracking_number == tracking_number)
                        .where(Tracking.status == seen)
                        .values(status=status.value, updated_at=utcnow())
                    )
                    if result.rowcount:
                        advanced.append((tracking_number, status))
                    else:
                        logger.debug(f'{tracking_number} changed since read, status not written back')
        except StorageError as e:
            logger.error(f'Failed to persist recomputed status for {list(changes)}: {e}')
            return

        for tracking_number, status in advanced:
            logger.debug(f'{tracking_number} status advanced to {status.value}')

    def _unique_tracking_number(self, session: Session) -> str:
        for _ in range(MAX_NUMBER_ATTEMPTS):
            candidate = generate_tracking_number()
            taken = session.execute(
                select(Tracking.id).where(Tracking.tracking_number == candidate)
            ).first()
            if taken is None:
                return candidate
            logger.warning(f'Tracking number collision on {candidate}, regenerating')

        raise StorageError('Could not allocate a unique tracking number')

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def get(self, tracking_number: str) -> TrackingView:
        """
        Fetch one tracking with live status, timeline, and update log.

        Raises NotFound for unknown numbers.
        """
        now = self._clock()

        with storage_session(self._session_factory) as session:
            tracking = find_tracking(session, tracking_number)
            status = self._effective_status(tracking, now)
            updates = [
                UpdateEventView.from_model(u)
                for u in self._update_log.events_for(session, tracking)
            ]
            view = self._build_view(tracking, status, now, updates)
            seen = tracking.status

        if status.value != seen:
            self._persist_statuses({tracking_number: (seen, status)})

        return view

    def list_all(self) -> List[TrackingView]:
        """All trackings, newest first, with live status and timeline."""
        now = self._clock()
        views = []
        changes = {}

        with storage_session(self._session_factory) as session:
            trackings = session.execute(
                select(Tracking).order_by(Tracking.created_at.desc(), Tracking.id.desc())
            ).scalars()

            for tracking in trackings:
                status = self._effective_status(tracking, now)
                views.append(self._build_view(tracking, status, now))
                if status.value != tracking.status:
                    changes[tracking.tracking_number] = (tracking.status, status)

        self._persist_statuses(changes)
        return views

    def status_counts(self) -> Dict[str, int]:
        """Stored trackings per lifecycle stage, plus a total."""
        with storage_session(self._session_factory) as session:
            rows = session.execute(
                select(Tracking.status, func.count(Tracking.id)).group_by(Tracking.status)
            ).all()

        by_status = {status: count for status, count in rows}
        counts = {'total': sum(by_status.values())}
        for status, key in STATUS_COUNT_KEYS.items():
            counts[key] = by_status.get(status.value, 0)
        return counts

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def create(
        self,
        sender: str,
        recipient: str,
        message: str,
        estimated_delivery: Any,
        sender_address: Optional[str] = None,
        recipient_address: Optional[str] = None,
        pigeon_name: Optional[str] = None,
    ) -> TrackingView:
        """
        Create a tracking and its initial system event.

        `estimated_delivery` may be an aware datetime or an ISO-8601 string.
        Raises ValidationError when a required field is missing.
        """
        _require(
            {'sender': sender, 'recipient': recipient, 'message': message},
            estimatedDelivery=estimated_delivery,
        )
        estimated = parse_timestamp(estimated_delivery, 'estimatedDelivery')
        now = self._clock()
        status = derive_status(now, estimated)

        with storage_session(self._session_factory) as session:
            tracking = Tracking(
                tracking_number=self._unique_tracking_number(session),
                sender=sender.strip(),
                recipient=recipient.strip(),
                sender_address=_optional_text(sender_address) or config.tracking.default_sender_address,
                recipient_address=_optional_text(recipient_address) or config.tracking.default_recipient_address,
                message=message,
                status=status.value,
                pigeon_name=_optional_text(pigeon_name),
                estimated_delivery=estimated,
                created_at=now,
                updated_at=now,
            )
            session.add(tracking)

            self._update_log.record(
                session,
                tracking,
                status=TrackingStatus.PROCESSING.value,
                location=tracking.sender_address,
                description='Message received and queued for dispatch',
                emoji='📝',
                created_by='system',
                timestamp=now,
                sync_parent=False,
            )
            session.flush()

            updates = [
                UpdateEventView.from_model(u)
                for u in self._update_log.events_for(session, tracking)
            ]
            view = self._build_view(tracking, status, now, updates)

        logger.info(
            f'Created tracking {view.tracking_number} '
            f'({view.sender} -> {view.recipient}, due {view.estimated_delivery.isoformat()})'
        )
        return view

    def update(
        self,
        tracking_number: str,
        sender: str,
        recipient: str,
        message: str,
        estimated_delivery: Any,
        status: Optional[str] = None,
        sender_address: Optional[str] = None,
        recipient_address: Optional[str] = None,
        pigeon_name: Optional[str] = None,
    ) -> TrackingView:
        """
        Replace a tracking's editable fields.

        With `status` the stored stage (or free-text label) is set from it;
        without, the stage is re-derived from the new delivery time and any
        free-text label is dropped.
        """
        _require(
            {'sender': sender, 'recipient': recipient, 'message': message},
            estimatedDelivery=estimated_delivery,
        )
        if status is not None and not isinstance(status, str):
            raise ValidationError('Expected text for: status')
        estimated = parse_timestamp(estimated_delivery, 'estimatedDelivery')
        now = self._clock()

        with storage_session(self._session_factory) as session:
            tracking = find_tracking(session, tracking_number)

            tracking.sender = sender.strip()
            tracking.recipient = recipient.strip()
            tracking.message = message
            tracking.estimated_delivery = estimated

            if _optional_text(sender_address):
                tracking.sender_address = sender_address.strip()
            if _optional_text(recipient_address):
                tracking.recipient_address = recipient_address.strip()
            if _optional_text(pigeon_name):
                tracking.pigeon_name = pigeon_name.strip()

            tracking.status = derive_status(now, estimated).value
            if _optional_text(status):
                apply_status(tracking, status.strip())
            else:
                tracking.status_label = None
            tracking.touch()

            status_now = self._effective_status(tracking, now)
            tracking.status = status_now.value
            session.flush()

            updates = [
                UpdateEventView.from_model(u)
                for u in self._update_log.events_for(session, tracking)
            ]
            view = self._build_view(tracking, status_now, now, updates)

        logger.info(f'Updated tracking {tracking_number}')
        return view

    def set_status(
        self,
        tracking_number: str,
        status: str,
        location: Optional[str] = None,
        description: Optional[str] = None,
        emoji: Optional[str] = None,
        pigeon_name: Optional[str] = None,
    ) -> TrackingView:
        """
        Set a tracking's status directly.

        When both location and description are given an admin update event
        is recorded as well, in the same transaction.
        """
        _require({'status': status})
        status = status.strip()
        location = _optional_text(location)
        description = _optional_text(description)
        now = self._clock()

        with storage_session(self._session_factory) as session:
            tracking = find_tracking(session, tracking_number)

            if location and description:
                self._update_log.record(
                    session,
                    tracking,
                    status=status,
                    location=location,
                    description=description,
                    emoji=emoji,
                    pigeon_name=pigeon_name,
                    created_by='admin',
                )
            else:
                apply_status(tracking, status)
                if _optional_text(pigeon_name):
                    tracking.pigeon_name = pigeon_name.strip()

            session.flush()
            effective = self._effective_status(tracking, now)
            updates = [
                UpdateEventView.from_model(u)
                for u in self._update_log.events_for(session, tracking)
            ]
            view = self._build_view(tracking, effective, now, updates)

        logger.info(f'Status of {tracking_number} set to "{status}"')
        return view

    def delete(self, tracking_number: str) -> None:
        """Delete a tracking and, by cascade, its update log."""
        with storage_session(self._session_factory) as session:
            tracking = find_tracking(session, tracking_number)
            session.delete(tracking)

        logger.info(f'Deleted tracking {tracking_number}')

    def refresh_all_statuses(self) -> int:
        """Recompute and store the stage of every tracking. Returns rows changed."""
        now = self._clock()
        changed = 0

        with storage_session(self._session_factory) as session:
            for tracking in session.execute(select(Tracking)).scalars():
                status = self._effective_status(tracking, now)
                if status.value != tracking.status:
                    tracking.status = status.value
                    tracking.touch()
                    changed += 1

        logger.info(f'Status refresh complete: {changed} trackings changed')
        return changed

    def clear_all(self) -> int:
        """Delete every tracking and update event. Returns trackings deleted."""
        with storage_session(self._session_factory) as session:
            session.execute(delete(TrackingUpdate))
            result = session.execute(delete(Tracking))
            deleted = result.rowcount

        logger.warning(f'Cleared all tracking data ({deleted} trackings)')
        return deleted


# Singleton instance
tracking_repository = TrackingRepository()
