"""
Application services.

Stateful operations over the database, each exposed as a class plus a
module-level singleton bound to the application's session factory.
"""

from pigeonpost.services.views import TrackingView, UpdateEventView
from pigeonpost.services.update_log import TrackingUpdateLog, update_log
from pigeonpost.services.tracking_repository import TrackingRepository, tracking_repository
from pigeonpost.services.sessions import SessionInfo, SessionStore, session_store

__all__ = [
    'TrackingView',
    'UpdateEventView',
    'TrackingUpdateLog',
    'update_log',
    'TrackingRepository',
    'tracking_repository',
    'SessionInfo',
    'SessionStore',
    'session_store',
]
