"""
Routing of page-lifecycle events and client requests.

``SellerMatchService`` is the single entry point the host talks
to.  Lifecycle events (activation, navigation state changes,
removal) drive the scan scheduler; requests read and refresh the
registry, update settings, and accept counts computed elsewhere.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Any

from sellermatch.models import messages, registry
from sellermatch.models.settings import Settings
from sellermatch.registry.cache import RegistryCache
from sellermatch.scan.scheduler import ScanScheduler
from sellermatch.scan.sessions import SessionStore
from sellermatch.services.badge import BadgePresenter
from sellermatch.services.settings_manager import SettingsManager
from sellermatch.utils import logger

log = logger.create_logger("Coordinator")


def sanitize_count(value: Any) -> int:
    """Turn an untrusted count into a non-negative integer (bad input → 0)."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    if not math.isfinite(value):
        return 0
    return max(0, int(value))


class SellerMatchService:
    """Wires sessions, scheduler, registry and badge together."""

    def __init__(
        self,
        *,
        settings: SettingsManager,
        sessions: SessionStore,
        registry_cache: RegistryCache,
        scheduler: ScanScheduler,
        badge: BadgePresenter,
    ) -> None:
        self.settings = settings
        self.sessions = sessions
        self.registry = registry_cache
        self.scheduler = scheduler
        self.badge = badge
        self.settings.add_listener(self._on_settings_changed)

    # ==================================================================
    # Lifecycle of the service itself
    # ==================================================================

    async def start(self) -> None:
        await self.settings.load()
        self.settings.watch()
        if not self.settings.current.badge_enabled:
            self.badge.clear()

    async def shutdown(self) -> None:
        self.settings.close()
        await self.scheduler.shutdown()
        await self.registry.shutdown()

    # ==================================================================
    # Page lifecycle events
    # ==================================================================

    def on_activated(self, session_id: str, url: str | None = None) -> None:
        """A session became the active (visible) one."""
        state = self.sessions.ensure(session_id)
        if url:
            state.url = url
        self.sessions.set_active(session_id)

        if not self.settings.current.badge_enabled:
            self.badge.clear()
            return
        self.badge.refresh_for(session_id)
        self.scheduler.schedule(session_id)

    def on_updated(self, session_id: str, *, status: str | None = None, url: str | None = None) -> None:
        """Navigation state changed for a session."""
        if not self.settings.current.badge_enabled:
            self.badge.clear()
            if url:
                self.sessions.ensure(session_id).url = url
            return

        if status == "loading" or url:
            state = self.sessions.reset(session_id)
            if url:
                state.url = url
            self.badge.refresh_for(session_id)

        if status == "complete" and self.sessions.is_active(session_id):
            self.scheduler.schedule(session_id)

    def on_removed(self, session_id: str) -> None:
        """The session's page was closed."""
        self.sessions.clear(session_id)

    # ==================================================================
    # Requests
    # ==================================================================

    async def get_registry_cache(self) -> registry.RegistrySnapshot:
        """Cached registry right now; stale data also triggers a background refresh."""
        return await self.registry.snapshot_for_client()

    async def refresh_registry(self, force: bool = True) -> messages.RefreshResult:
        sellers = await self.registry.refresh(force=force)
        if sellers is None:
            return messages.RefreshResult(ok=False)
        return messages.RefreshResult(ok=True, sellers=sellers)

    async def settings_updated(self, patch: Mapping[str, Any]) -> messages.Ack:
        """Apply a partial settings update and persist the merged result."""
        _, updated = await self.settings.apply_patch(patch)
        if "registryUrl" in patch or "registry_url" in patch:
            log.info("Registry URL set, refreshing", {"registryUrl": updated.registry_url})
            self.registry.refresh_in_background()
        return messages.Ack(ok=True)

    def report_external_scan_count(self, session_id: str, count: Any) -> messages.Ack:
        """Accept a count computed outside the scan pipeline.

        Raises:
            SessionInvalid: The session is unknown or was removed.
        """
        self.sessions.require(session_id)
        value = sanitize_count(count)
        self.sessions.set(session_id, value)
        self.badge.refresh_for(session_id)
        log.debug("External scan count", {"sessionId": session_id, "count": value})
        return messages.Ack(ok=True)

    def set_badge(self, count: Any) -> messages.Ack:
        """Set the badge directly, bypassing session state."""
        if not self.settings.current.badge_enabled:
            self.badge.clear()
            return messages.Ack(ok=True, ignored=True)
        self.badge.show_count(sanitize_count(count))
        return messages.Ack(ok=True)

    # ==================================================================
    # Settings changes
    # ==================================================================

    def _on_settings_changed(self, previous: Settings, updated: Settings) -> None:
        if updated.badge_enabled:
            return
        if previous.badge_enabled:
            cancelled = self.sessions.cancel_all_pending()
            self.sessions.clear_all_counts()
            log.info("Badge disabled, session counts cleared", {"cancelledScans": cancelled})
        self.badge.clear()
