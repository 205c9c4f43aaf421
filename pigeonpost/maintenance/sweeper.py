"""
Session sweeper - periodic removal of expired admin sessions.

Runs SessionStore.sweep_expired() on a daemon thread. Authentication
checks expiry on its own, so the sweep only reclaims rows for tokens
nobody presents again.
"""

import logging
import threading
import time
from typing import Optional

from pigeonpost.config import config
from pigeonpost.services.sessions import SessionStore, session_store

logger = logging.getLogger(__name__)


class SessionSweeper:
    """
    Background maintenance loop for the admin session table.

    A failed sweep is logged and counted; the loop keeps going.
    """

    def __init__(
        self,
        store: Optional[SessionStore] = None,
        interval: Optional[float] = None,
    ):
        self.store = store or session_store
        self.interval = interval or config.sessions.sweep_interval_seconds

        # State tracking
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._last_sweep_time: float = 0
        self._sweep_count: int = 0
        self._removed_count: int = 0
        self._error_count: int = 0

    def run_once(self) -> int:
        """
        Execute one sweep.

        Returns count of sessions removed, or -1 on error.
        """
        try:
            removed = self.store.sweep_expired()
        except Exception as e:
            self._error_count += 1
            logger.error(f'Session sweep failed: {e}')
            return -1

        self._last_sweep_time = time.time()
        self._sweep_count += 1
        self._removed_count += removed
        return removed

    def run_continuous(self) -> None:
        """
        Sweep on a fixed interval until stop() is called.

        This method blocks - use start_background() for non-blocking.
        """
        self._stop_event.clear()
        logger.info(f'Starting session sweeper (interval={self.interval}s)')

        while not self._stop_event.is_set():
            self.run_once()
            self._stop_event.wait(self.interval)

        logger.info('Session sweeper stopped')

    def start_background(self) -> None:
        """Start sweeping in a background thread."""
        if self._thread and self._thread.is_alive():
            logger.warning('Session sweeper already running')
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self.run_continuous,
            name='session-sweeper',
            daemon=True,
        )
        self._thread.start()

    def stop(self) -> None:
        """Stop the background thread."""
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=5)

    @property
    def running(self) -> bool:
        return bool(self._thread and self._thread.is_alive() and not self._stop_event.is_set())

    @property
    def stats(self) -> dict:
        """Get sweeper statistics."""
        return {
            'sweep_count': self._sweep_count,
            'removed_count': self._removed_count,
            'error_count': self._error_count,
            'last_sweep_time': self._last_sweep_time,
            'running': self.running,
        }
