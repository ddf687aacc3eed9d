"""
In-memory registry of page sessions (one per browser tab).

Every per-session value (page URL, last count, last scan time,
pending scan, generation) lives on a ``SessionState`` owned by
the ``SessionStore``; nothing else keeps per-session maps.
Nothing here is persisted: counts are recomputed lazily after a
restart.
"""

from __future__ import annotations

import asyncio
import dataclasses
import itertools

from sellermatch.models.scan import SessionPhase, SessionView
from sellermatch.utils import logger
from sellermatch.utils.errors import SessionInvalid

log = logger.create_logger("Sessions")


@dataclasses.dataclass
class SessionState:
    """Mutable state for one page session.

    ``generation`` changes whenever the page moves on (navigation
    start) so results of scans begun before that can be told
    apart and dropped.
    """

    session_id: str
    generation: int
    url: str | None = None
    match_count: int | None = None
    last_scan_at: float | None = None
    pending_scan: asyncio.Task[None] | None = None
    scanning: bool = False

    @property
    def phase(self) -> SessionPhase:
        if self.scanning:
            return "scanning"
        if self.pending_scan is not None and not self.pending_scan.done():
            return "pending"
        return "idle"

    def cancel_pending(self) -> bool:
        """Cancel a scheduled scan that has not started yet."""
        task, self.pending_scan = self.pending_scan, None
        if task is None or task.done():
            return False
        task.cancel()
        return True


class SessionStore:
    """Owns every ``SessionState``, keyed by session id."""

    def __init__(self) -> None:
        self._sessions: dict[str, SessionState] = {}
        self._generations = itertools.count(1)
        self.active_session_id: str | None = None

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    # ── Lookup ──────────────────────────────────────────────────

    def ensure(self, session_id: str) -> SessionState:
        """Return the session, creating it on first use."""
        state = self._sessions.get(session_id)
        if state is None:
            state = SessionState(session_id=session_id, generation=next(self._generations))
            self._sessions[session_id] = state
            log.debug("Session created", {"sessionId": session_id})
        return state

    def lookup(self, session_id: str) -> SessionState | None:
        return self._sessions.get(session_id)

    def require(self, session_id: str) -> SessionState:
        state = self._sessions.get(session_id)
        if state is None:
            raise SessionInvalid(session_id)
        return state

    # ── Counts ──────────────────────────────────────────────────

    def set(self, session_id: str, count: int | None) -> bool:
        """Record a count; ``None`` records that no count is available.

        Only existing sessions are updated, so a late count for a
        removed session never brings it back.

        Returns:
            True when the count was recorded.
        """
        state = self._sessions.get(session_id)
        if state is None:
            log.debug("Count for unknown session ignored", {"sessionId": session_id})
            return False
        state.match_count = None if count is None else max(0, int(count))
        return True

    def get(self, session_id: str) -> int:
        state = self._sessions.get(session_id)
        if state is None or state.match_count is None:
            return 0
        return state.match_count

    def clear_all_counts(self) -> None:
        for state in self._sessions.values():
            state.match_count = None

    # ── Activity ────────────────────────────────────────────────

    def set_active(self, session_id: str) -> None:
        self.active_session_id = session_id

    def is_active(self, session_id: str) -> bool:
        return self.active_session_id == session_id

    # ── Lifecycle ───────────────────────────────────────────────

    def cancel_pending(self, session_id: str) -> bool:
        state = self._sessions.get(session_id)
        return state.cancel_pending() if state is not None else False

    def cancel_all_pending(self) -> int:
        return sum(state.cancel_pending() for state in self._sessions.values())

    def reset(self, session_id: str) -> SessionState:
        """Forget the current page: drop the count and any pending scan.

        The last scan time is kept so the cooldown keeps bounding
        how often this session is scanned.
        """
        state = self.ensure(session_id)
        state.cancel_pending()
        state.match_count = None
        state.generation = next(self._generations)
        return state

    def clear(self, session_id: str) -> None:
        """Remove the session entirely (count, last scan time, pending scan)."""
        state = self._sessions.pop(session_id, None)
        if state is not None:
            state.cancel_pending()
            log.debug("Session cleared", {"sessionId": session_id})
        if self.active_session_id == session_id:
            self.active_session_id = None

    def view(self, session_id: str) -> SessionView:
        state = self.require(session_id)
        return SessionView(
            session_id=state.session_id,
            url=state.url,
            count=self.get(session_id),
            phase=state.phase,
            active=self.is_active(session_id),
            last_scan_at=state.last_scan_at,
        )
