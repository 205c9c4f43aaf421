"""
Timeline generation - the five display milestones of a delivery.

Two regimes:

Past due (estimated delivery <= now):
    every milestone is completed, spaced one hour apart and ending at the
    estimated delivery time. This is a display fallback, not real history.

Future:
    milestone i is scheduled at now + remaining * offset[i]. Completion
    comes from the current status, not from the clock, so the flags stay
    stable between two calls as long as the status does. Statuses outside
    the lifecycle fall back to comparing the scheduled time with now.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Union

from pigeonpost.clock import isoformat
from pigeonpost.tracking.status import TrackingStatus

STAGES = (
    ('Message Received', 0.0),
    ('Pigeon Assigned', 0.2),
    ('In Flight', 0.4),
    ('Approaching Destination', 0.8),
    ('Delivered', 1.0),
)

# Number of leading stages completed at each lifecycle status
_COMPLETED_STAGES = {
    TrackingStatus.PROCESSING: 1,
    TrackingStatus.ASSIGNED: 2,
    TrackingStatus.IN_TRANSIT: 3,
    TrackingStatus.APPROACHING: 4,
    TrackingStatus.DELIVERED: 5,
}


@dataclass(frozen=True)
class TimelineEntry:
    """One milestone on the display timeline."""
    stage: str
    time: datetime
    completed: bool

    def to_dict(self) -> dict:
        return {
            'stage': self.stage,
            'time': isoformat(self.time),
            'completed': self.completed,
        }


def generate_timeline(
    now: datetime,
    created_at: datetime,
    estimated_delivery: datetime,
    current_status: Union[TrackingStatus, str, None],
) -> List[TimelineEntry]:
    """
    Build the five-entry timeline for a delivery.

    `created_at` is accepted for symmetry with the stored record; neither
    regime places milestones relative to it.
    """
    remaining = estimated_delivery - now

    if remaining <= timedelta(0):
        last = len(STAGES) - 1
        return [
            TimelineEntry(
                stage=name,
                time=estimated_delivery - timedelta(hours=last - i),
                completed=True,
            )
            for i, (name, _) in enumerate(STAGES)
        ]

    status = TrackingStatus.parse(current_status)
    done = _COMPLETED_STAGES.get(status) if status else None

    entries = []
    for i, (name, offset) in enumerate(STAGES):
        stage_time = now + remaining * offset
        if done is not None:
            completed = i < done
        else:
            completed = stage_time <= now
        entries.append(TimelineEntry(stage=name, time=stage_time, completed=completed))

    return entries
