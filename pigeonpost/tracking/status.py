"""
Status derivation - lifecycle stage from time remaining until delivery.

The stage is a pure function of the clock and the estimated delivery
time. Thresholds on the time remaining (first match wins):

    remaining <= 0          delivered
    remaining <= 30 min     approaching
    remaining <= 2 h        in-transit
    remaining <= 4 h        assigned
    otherwise               processing
"""

from datetime import datetime, timedelta
from enum import Enum
from typing import Optional, Union


class TrackingStatus(str, Enum):
    """Lifecycle stages, declared in the order a delivery passes through them."""
    PROCESSING = 'processing'
    ASSIGNED = 'assigned'
    IN_TRANSIT = 'in-transit'
    APPROACHING = 'approaching'
    DELIVERED = 'delivered'

    @property
    def rank(self) -> int:
        return _ORDER.index(self)

    @classmethod
    def parse(cls, value: Union[str, 'TrackingStatus', None]) -> Optional['TrackingStatus']:
        """Return the member for `value`, or None for free-text statuses."""
        if isinstance(value, cls):
            return value
        if not value:
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


_ORDER = list(TrackingStatus)

APPROACHING_WINDOW = timedelta(minutes=30)
IN_TRANSIT_WINDOW = timedelta(hours=2)
ASSIGNED_WINDOW = timedelta(hours=4)


def derive_status(now: datetime, estimated_delivery: datetime) -> TrackingStatus:
    """
    Derive the lifecycle stage at `now`.

    Both datetimes must be comparable (both aware or both naive).
    """
    remaining = estimated_delivery - now

    if remaining <= timedelta(0):
        return TrackingStatus.DELIVERED
    elif remaining <= APPROACHING_WINDOW:
        return TrackingStatus.APPROACHING
    elif remaining <= IN_TRANSIT_WINDOW:
        return TrackingStatus.IN_TRANSIT
    elif remaining <= ASSIGNED_WINDOW:
        return TrackingStatus.ASSIGNED
    else:
        return TrackingStatus.PROCESSING


def resolve_status(
    persisted: Optional[TrackingStatus],
    derived: TrackingStatus,
) -> TrackingStatus:
    """
    Effective stage of a record: the later of the stored and derived stages.

    The clock can move a delivery forward, but never behind a stage an
    admin has already recorded.
    """
    if persisted is None or derived.rank >= persisted.rank:
        return derived
    return persisted
