"""
Idle Session Tracking

Explicit session state for the presentation layer: a signed-in session
ends after a period of inactivity, or when the app is hidden if the user
asked for that. The ledger itself never looks at sessions.

Time comes from a monotonic clock so wall-clock changes can't extend or
cut short a session.
"""

import time
from typing import Callable, Optional

import structlog

from shopledger.config import SessionSettings, get_settings

logger = structlog.get_logger(__name__)


class IdleSession:
    """
    Tracks activity of one signed-in user and ends the session once.

    Usage:
        session = IdleSession(on_teardown=sign_out)
        session.touch()        # on every user interaction
        session.check()        # periodically, e.g. on each rerun
    """

    def __init__(
        self,
        on_teardown: Callable[[], None],
        settings: Optional[SessionSettings] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._settings = settings or get_settings().session
        self._on_teardown = on_teardown
        self._clock = clock
        self._last_activity = clock()
        self._ended = False

    @property
    def is_active(self) -> bool:
        return not self._ended

    @property
    def idle_seconds(self) -> float:
        return self._clock() - self._last_activity

    def touch(self) -> None:
        """Record user activity."""
        if not self._ended:
            self._last_activity = self._clock()

    def is_expired(self) -> bool:
        """True once the idle timeout has elapsed (never, when disabled)."""
        timeout_minutes = self._settings.idle_timeout_minutes
        if timeout_minutes <= 0:
            return False
        return self.idle_seconds >= timeout_minutes * 60

    def check(self) -> bool:
        """
        End the session if it has been idle too long.

        Returns True if the session is still active.
        """
        if not self._ended and self.is_expired():
            self.end(reason="idle_timeout")
        return self.is_active

    def on_visibility_change(self, hidden: bool) -> None:
        """React to the app being hidden or shown."""
        if hidden and self._settings.logout_on_visibility_change:
            self.end(reason="visibility_change")
        elif not hidden:
            self.check()

    def end(self, reason: str = "logout") -> None:
        """Tear the session down; later calls do nothing."""
        if self._ended:
            return
        self._ended = True
        logger.info("session_ended", reason=reason, idle_seconds=round(self.idle_seconds, 1))
        self._on_teardown()
