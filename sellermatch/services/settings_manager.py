"""Ownership of the process-wide settings snapshot.

Components receive the manager at construction time and read
``manager.current`` whenever they need a value.  A reload swaps
the snapshot by reference, so a reader always sees one complete
``Settings`` object, either the old one or the new one.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

from sellermatch.models.settings import Settings
from sellermatch.store import ports
from sellermatch.utils import logger
from sellermatch.utils.errors import get_error_message

log = logger.create_logger("Settings")

SettingsListener = Callable[[Settings, Settings], None]


class SettingsManager:
    """Loads, hot-reloads and persists the scan settings."""

    def __init__(
        self,
        store: ports.KeyValueStore,
        *,
        key: str = ports.SETTINGS_KEY,
        initial: Settings | None = None,
    ) -> None:
        self._store = store
        self._key = key
        self._current = initial or Settings()
        self._listeners: list[SettingsListener] = []
        self._unsubscribe: Callable[[], None] | None = None

    @property
    def current(self) -> Settings:
        return self._current

    def add_listener(self, listener: SettingsListener) -> None:
        """Call *listener(previous, updated)* after every effective change."""
        self._listeners.append(listener)

    def _replace(self, updated: Settings, source: str) -> Settings:
        previous = self._current
        self._current = updated
        if updated == previous:
            return previous

        log.info(
            "Settings updated",
            {
                "source": source,
                "registryUrl": updated.registry_url,
                "cacheTtlMinutes": updated.cache_ttl_minutes,
                "badgeEnabled": updated.badge_enabled,
                "scanMode": updated.scan_mode,
                "scanTiming": updated.scan_timing,
                "scanDelay": updated.scan_delay,
            },
        )
        for listener in list(self._listeners):
            try:
                listener(previous, updated)
            except Exception as exc:
                log.warn("Settings listener failed", {"error": get_error_message(exc)})
        return previous

    async def load(self) -> Settings:
        """Read the stored record; missing or invalid fields take defaults."""
        try:
            stored = await self._store.get([self._key])
        except Exception as exc:
            log.warn("Failed to read settings, using current values", {"error": get_error_message(exc)})
            return self._current
        self._replace(Settings.from_stored(stored.get(self._key)), "load")
        return self._current

    def watch(self) -> None:
        """Reload whenever the settings key changes in the store."""
        if self._unsubscribe is None:
            self._unsubscribe = self._store.subscribe(self._on_store_change)

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _on_store_change(self, changes: dict[str, Any]) -> None:
        if self._key in changes:
            self._replace(Settings.from_stored(changes[self._key]), "store")

    async def apply_patch(self, patch: Mapping[str, Any]) -> tuple[Settings, Settings]:
        """Merge a partial update, make it current and persist the full record.

        Returns:
            ``(previous, updated)`` snapshots.
        """
        updated = self._current.merged(patch)
        previous = self._replace(updated, "update")
        await self._store.set({self._key: updated.to_stored()})
        return previous, updated
