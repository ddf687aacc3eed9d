"""
Per-session scan scheduling with cooldown and optional delay.

Each session moves ``idle → pending → scanning → idle``:

- A trigger cancels any pending scan of that session and
  schedules a new one (last trigger wins) after the configured
  delay, or on the next loop iteration for immediate scans.
- Entering ``scanning`` is gated by a cooldown: a session whose
  previous scan started less than ``cooldown_ms`` ago is skipped
  silently, however many triggers arrive.
- Cancellation only prevents a pending scan from starting; a
  running scan completes, but its result is dropped when the
  session was reset or removed in the meantime.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

from sellermatch.scan.sessions import SessionStore
from sellermatch.services.settings_manager import SettingsManager
from sellermatch.utils import clock, logger
from sellermatch.utils.errors import get_error_message

log = logger.create_logger("ScanScheduler")

SCAN_COOLDOWN_MS = 60 * 1000

ScanRunner = Callable[[str], Awaitable["int | None"]]
ResultCallback = Callable[[str], None]


class ScanScheduler:
    """Decides when each session is scanned and records the result."""

    def __init__(
        self,
        sessions: SessionStore,
        runner: ScanRunner,
        settings: SettingsManager,
        *,
        on_result: ResultCallback | None = None,
        cooldown_ms: float = SCAN_COOLDOWN_MS,
        clock_ms: clock.Clock = clock.monotonic_ms,
    ) -> None:
        self._sessions = sessions
        self._runner = runner
        self._settings = settings
        self._on_result = on_result
        self._cooldown_ms = cooldown_ms
        self._clock_ms = clock_ms
        self._tasks: set[asyncio.Task[None]] = set()

    def schedule(self, session_id: str) -> bool:
        """Schedule a scan of *session_id*, replacing any pending one.

        Returns:
            True when a scan was scheduled.
        """
        self._sessions.cancel_pending(session_id)

        settings = self._settings.current
        if not settings.badge_enabled:
            return False
        if settings.scan_mode == "content":
            # Counts come from the external content-side scanner.
            return False

        state = self._sessions.ensure(session_id)
        delay = settings.effective_scan_delay
        task = asyncio.create_task(self._run_after(session_id, delay), name=f"scan-{session_id}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        state.pending_scan = task
        log.debug("Scan scheduled", {"sessionId": session_id, "delaySeconds": delay})
        return True

    def cancel(self, session_id: str) -> bool:
        return self._sessions.cancel_pending(session_id)

    async def _run_after(self, session_id: str, delay: float) -> None:
        if delay > 0:
            await asyncio.sleep(delay)

        state = self._sessions.lookup(session_id)
        if state is None:
            return
        if state.pending_scan is asyncio.current_task():
            state.pending_scan = None
        await self.scan_now(session_id)

    async def scan_now(self, session_id: str) -> int | None:
        """Run the scan pipeline once, subject to the cooldown.

        Returns:
            The count written to the session, or ``None`` when the
            scan was skipped, failed, or its result was discarded.
        """
        if not self._settings.current.badge_enabled:
            return None

        state = self._sessions.lookup(session_id)
        if state is None:
            return None

        now = self._clock_ms()
        if state.last_scan_at is not None and now - state.last_scan_at < self._cooldown_ms:
            log.debug(
                "Scan skipped (cooldown)",
                {"sessionId": session_id, "sinceLastMs": int(now - state.last_scan_at)},
            )
            return None

        state.last_scan_at = now
        state.scanning = True
        generation = state.generation
        try:
            count = await self._runner(session_id)
        except Exception as exc:
            log.error("Scan failed", {"sessionId": session_id, "error": get_error_message(exc)})
            count = None
        finally:
            state.scanning = False

        current = self._sessions.lookup(session_id)
        if current is None or current.generation != generation:
            log.debug("Discarding result of superseded scan", {"sessionId": session_id})
            return None
        if not self._settings.current.badge_enabled:
            log.debug("Discarding scan result, badge disabled", {"sessionId": session_id})
            return None

        self._sessions.set(session_id, count)
        if self._on_result is not None:
            self._on_result(session_id)
        return count

    async def shutdown(self) -> None:
        """Cancel pending scans and wait for running ones to settle."""
        self._sessions.cancel_all_pending()
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
