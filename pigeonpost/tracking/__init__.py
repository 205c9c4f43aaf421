"""
Tracking domain logic for Pigeon Post.

Pure functions with no I/O:
- Status derivation from the time remaining until delivery
- Display timeline generation
- Tracking number generation
"""

from pigeonpost.tracking.status import TrackingStatus, derive_status, resolve_status
from pigeonpost.tracking.timeline import TimelineEntry, generate_timeline, STAGES
from pigeonpost.tracking.numbers import generate_tracking_number

__all__ = [
    'TrackingStatus',
    'derive_status',
    'resolve_status',
    'TimelineEntry',
    'generate_timeline',
    'STAGES',
    'generate_tracking_number',
]
