"""
Database models for Pigeon Post.

Three tables:
1. trackings         - one row per delivery
2. tracking_updates  - append-only status history (cascade-deleted)
3. admin_sessions    - persisted admin bearer tokens
"""

from pigeonpost.models.base import Base, engine, SessionLocal, init_db, drop_db, storage_session
from pigeonpost.models.tracking import Tracking
from pigeonpost.models.tracking_update import TrackingUpdate
from pigeonpost.models.admin_session import AdminSession

__all__ = [
    'Base',
    'engine',
    'SessionLocal',
    'init_db',
    'drop_db',
    'storage_session',
    'Tracking',
    'TrackingUpdate',
    'AdminSession',
]
