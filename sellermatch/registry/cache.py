"""Locally cached copy of the seller registry with TTL expiry.

The registry (a sellers.json document) is stored under one store
key as ``{sellers, fetchedAt}``.  Reads never fail: a missing or
unreadable record is an empty registry with ``fetchedAt = 0``.

**Refresh is never destructive.**  A network failure, a body that
is not JSON, or a store write error leaves the previously stored
snapshot untouched and makes ``refresh`` return ``None``.

Concurrent refreshes are not de-duplicated; the store write is
last-write-wins on identically shaped data.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

import pydantic

from sellermatch.models import registry
from sellermatch.registry import fetch
from sellermatch.store import ports
from sellermatch.utils import clock, logger
from sellermatch.utils.errors import NetworkError, ParseError, get_error_message

if TYPE_CHECKING:
    from sellermatch.services.settings_manager import SettingsManager

log = logger.create_logger("RegistryCache")

Fetcher = Callable[..., Awaitable[str]]


def is_stale(snapshot: registry.RegistrySnapshot, ttl_ms: int, now_ms: int) -> bool:
    """True when the snapshot is empty or older than *ttl_ms*."""
    return snapshot.is_empty or now_ms - snapshot.fetched_at > ttl_ms


def parse_registry(body: str) -> tuple[list[registry.SellerRecord], int]:
    """Parse a sellers.json body.

    Returns:
        The valid seller records and the number of skipped entries.

    Raises:
        ParseError: If the body is not a JSON object.
    """
    try:
        data = json.loads(body)
    except (json.JSONDecodeError, ValueError) as exc:
        raise ParseError(f"Registry body is not JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ParseError(f"Registry body is a JSON {type(data).__name__}, expected an object")
    return registry.parse_seller_list(data.get("sellers"))


class RegistryCache:
    """Loads, validates freshness of, and refreshes the seller registry."""

    def __init__(
        self,
        store: ports.KeyValueStore,
        settings: SettingsManager,
        *,
        fetcher: Fetcher = fetch.fetch_with_retry,
        timeout_ms: int = fetch.FETCH_TIMEOUT_MS,
        max_retries: int = fetch.FETCH_RETRIES,
        clock_ms: Callable[[], int] = clock.now_ms,
        key: str = ports.REGISTRY_CACHE_KEY,
    ) -> None:
        self._store = store
        self._settings = settings
        self._fetcher = fetcher
        self._timeout_ms = timeout_ms
        self._max_retries = max_retries
        self._clock_ms = clock_ms
        self._key = key
        self._background: set[asyncio.Task[object]] = set()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_cached(self) -> registry.RegistrySnapshot:
        """Return the stored snapshot, or an empty one if there is none."""
        try:
            stored = await self._store.get([self._key])
        except Exception as exc:
            log.warn("Failed to read registry cache", {"error": get_error_message(exc)})
            return registry.RegistrySnapshot()

        raw = stored.get(self._key)
        if not isinstance(raw, dict):
            return registry.RegistrySnapshot()

        sellers, skipped = registry.parse_seller_list(raw.get("sellers"))
        fetched_at = raw.get("fetchedAt", 0)
        try:
            snapshot = registry.RegistrySnapshot(sellers=sellers, fetched_at=fetched_at)
        except pydantic.ValidationError:
            log.warn("Registry cache timestamp is invalid, treating as never fetched")
            snapshot = registry.RegistrySnapshot(sellers=sellers)
        if skipped:
            log.debug("Skipped malformed cached sellers", {"skipped": skipped})
        return snapshot

    def is_stale(self, snapshot: registry.RegistrySnapshot) -> bool:
        return is_stale(snapshot, self._settings.current.cache_ttl_ms, self._clock_ms())

    # ------------------------------------------------------------------
    # Refresh
    # ------------------------------------------------------------------

    async def refresh(self, force: bool = False) -> list[registry.SellerRecord] | None:
        """Download the registry and store it.

        Args:
            force: Always download.  Without it a fresh cached
                snapshot is returned without touching the network.

        Returns:
            The stored seller records, or ``None`` on any failure.
        """
        previous = await self.get_cached()
        if not force and not self.is_stale(previous):
            return previous.sellers

        url = self._settings.current.registry_url
        if not url:
            log.warn("No registry URL configured")
            return None

        log.start_timer("registry-refresh")
        try:
            body = await self._fetcher(url, timeout_ms=self._timeout_ms, max_retries=self._max_retries)
            sellers, skipped = parse_registry(body)
        except (NetworkError, ParseError) as exc:
            log.end_timer("registry-refresh", "Registry refresh failed")
            log.warn(
                "Keeping previous registry cache",
                {"url": url, "error": get_error_message(exc), "cachedSellers": len(previous.sellers)},
            )
            return None

        snapshot = registry.RegistrySnapshot(
            sellers=sellers,
            fetched_at=max(self._clock_ms(), previous.fetched_at),
        )
        try:
            await self._store.set({self._key: snapshot.to_stored()})
        except Exception as exc:
            log.end_timer("registry-refresh", "Registry refresh failed")
            log.warn("Failed to store registry cache", {"error": get_error_message(exc)})
            return None

        log.end_timer("registry-refresh", "Registry refreshed")
        log.success(
            "Registry cache stored",
            {"url": url, "sellers": len(sellers), "skipped": skipped, "forced": force},
        )
        return sellers

    async def ensure_fresh(self) -> registry.RegistrySnapshot:
        """Return the cached snapshot, refreshing it first when stale.

        Falls back to the stale (possibly empty) snapshot when the
        refresh fails.
        """
        cached = await self.get_cached()
        if not self.is_stale(cached):
            return cached

        sellers = await self.refresh(force=True)
        if sellers is None:
            return cached
        return await self.get_cached()

    def refresh_in_background(self) -> asyncio.Task[object]:
        """Start a forced refresh without waiting for it."""
        task: asyncio.Task[object] = asyncio.create_task(self.refresh(force=True), name="registry-refresh")
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    async def snapshot_for_client(self) -> registry.RegistrySnapshot:
        """Return the cached snapshot immediately.

        A stale snapshot additionally starts a background refresh;
        the caller still receives what is cached right now.
        """
        cached = await self.get_cached()
        if self.is_stale(cached):
            log.debug("Registry cache stale, refreshing in background", {"fetchedAt": cached.fetched_at})
            self.refresh_in_background()
        return cached

    async def shutdown(self) -> None:
        """Cancel background refreshes that are still running."""
        tasks = list(self._background)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
