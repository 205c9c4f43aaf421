"""
Response views for the API layer.

Storage rows never go on the wire directly. Each view is assembled from an
owned model plus whatever the domain computed for it (effective status,
timeline), and serialises itself to the camelCase shape the frontend
consumes.
"""

from dataclasses import dataclass, replace
from datetime import datetime
from typing import List, Optional

from pigeonpost.clock import ensure_utc, isoformat
from pigeonpost.models import Tracking, TrackingUpdate
from pigeonpost.tracking import TimelineEntry, TrackingStatus


@dataclass(frozen=True)
class UpdateEventView:
    """A single entry of a tracking's update log."""
    id: int
    tracking_number: str
    label: str
    status: Optional[TrackingStatus]
    location: str
    description: str
    emoji: str
    pigeon_name: Optional[str]
    timestamp: datetime
    created_by: str

    @classmethod
    def from_model(cls, update: TrackingUpdate) -> 'UpdateEventView':
        return cls(
            id=update.id,
            tracking_number=update.tracking_number,
            label=update.label,
            status=TrackingStatus.parse(update.status),
            location=update.location,
            description=update.description,
            emoji=update.emoji,
            pigeon_name=update.pigeon_name,
            timestamp=ensure_utc(update.timestamp),
            created_by=update.created_by,
        )

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'trackingNumber': self.tracking_number,
            'status': self.label,
            'lifecycleStatus': self.status.value if self.status else None,
            'location': self.location,
            'description': self.description,
            'emoji': self.emoji,
            'pigeonName': self.pigeon_name,
            'timestamp': isoformat(self.timestamp),
            'createdBy': self.created_by,
        }


@dataclass(frozen=True)
class TrackingView:
    """
    A tracking as seen by API clients.

    `status` is the effective lifecycle stage at the time the view was
    built, which may be ahead of what is stored.
    """
    tracking_number: str
    sender: str
    recipient: str
    sender_address: str
    recipient_address: str
    message: Optional[str]
    status: TrackingStatus
    status_label: Optional[str]
    pigeon_name: Optional[str]
    estimated_delivery: datetime
    actual_delivery: Optional[datetime]
    created_at: datetime
    updated_at: datetime
    timeline: List[TimelineEntry]
    updates: Optional[List[UpdateEventView]] = None

    @classmethod
    def build(
        cls,
        tracking: Tracking,
        status: TrackingStatus,
        timeline: List[TimelineEntry],
        updates: Optional[List[UpdateEventView]] = None,
    ) -> 'TrackingView':
        return cls(
            tracking_number=tracking.tracking_number,
            sender=tracking.sender,
            recipient=tracking.recipient,
            sender_address=tracking.sender_address,
            recipient_address=tracking.recipient_address,
            message=tracking.message,
            status=status,
            status_label=tracking.status_label,
            pigeon_name=tracking.pigeon_name,
            estimated_delivery=tracking.estimated_delivery_utc,
            actual_delivery=ensure_utc(tracking.actual_delivery),
            created_at=tracking.created_at_utc,
            updated_at=ensure_utc(tracking.updated_at),
            timeline=timeline,
            updates=updates,
        )

    @property
    def is_delivered(self) -> bool:
        return self.status is TrackingStatus.DELIVERED

    def redacted(self) -> 'TrackingView':
        """Copy for public viewers: the message stays sealed until delivery."""
        if self.is_delivered:
            return self
        return replace(self, message=None)

    def to_dict(self) -> dict:
        result = {
            'trackingNumber': self.tracking_number,
            'sender': self.sender,
            'recipient': self.recipient,
            'senderAddress': self.sender_address,
            'recipientAddress': self.recipient_address,
            'message': self.message,
            'status': self.status.value,
            'statusLabel': self.status_label,
            'pigeonName': self.pigeon_name,
            'estimatedDelivery': isoformat(self.estimated_delivery),
            'actualDelivery': isoformat(self.actual_delivery),
            'createdAt': isoformat(self.created_at),
            'updatedAt': isoformat(self.updated_at),
            'timeline': [entry.to_dict() for entry in self.timeline],
        }
        if self.updates is not None:
            result['updates'] = [u.to_dict() for u in self.updates]
        return result
