"""Tests for SellerMatchService: lifecycle events and requests.

The service is wired with real components and a fake extractor
so scans run end to end against an in-memory store.
"""

from __future__ import annotations

import asyncio
import math

import pytest

from sellermatch.models.settings import Settings
from sellermatch.registry.cache import RegistryCache
from sellermatch.scan.pipeline import ScanPipeline
from sellermatch.scan.scheduler import ScanScheduler
from sellermatch.scan.sessions import SessionStore
from sellermatch.services.badge import BadgePresenter, InMemoryBadgeDisplay
from sellermatch.services.coordinator import SellerMatchService, sanitize_count
from sellermatch.services.settings_manager import SettingsManager
from sellermatch.store import ports
from sellermatch.store.memory import MemoryStore
from sellermatch.utils.errors import NetworkError, SessionInvalid
from tests._fakes import FakeClock, FakeExtractor, FakeFetcher, sellers_body

URL = "https://news.example.com/story"


class Harness:
    """A fully wired service plus handles on its parts."""

    def __init__(self, *, settings: Settings | None = None, page_ids: tuple[str, ...] = ("111", "222", "999")) -> None:
        self.store = MemoryStore()
        self.clock = FakeClock()
        self.display = InMemoryBadgeDisplay()
        self.fetcher = FakeFetcher(body=sellers_body("111", "222", "333"))
        self.extractor = FakeExtractor(page_ids)

        self.settings = SettingsManager(self.store, initial=settings)
        self.sessions = SessionStore()
        self.registry = RegistryCache(self.store, self.settings, fetcher=self.fetcher, clock_ms=self.clock)
        self.badge = BadgePresenter(self.display, self.sessions, self.settings)
        pipeline = ScanPipeline(self.extractor, self.registry, self.sessions)
        self.scheduler = ScanScheduler(
            self.sessions, pipeline.run, self.settings, on_result=self.badge.refresh_for, clock_ms=self.clock
        )
        self.service = SellerMatchService(
            settings=self.settings,
            sessions=self.sessions,
            registry_cache=self.registry,
            scheduler=self.scheduler,
            badge=self.badge,
        )

    async def settle(self, session_id: str) -> None:
        """Wait for the session's pending scan, if any."""
        state = self.sessions.lookup(session_id)
        if state is not None and state.pending_scan is not None:
            await asyncio.gather(state.pending_scan, return_exceptions=True)


class TestSanitizeCount:
    """Tests for sanitize_count()."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [(3, 3), (2.9, 2), (-4, 0), ("7", 0), (None, 0), (True, 0), (math.nan, 0), (math.inf, 0)],
    )
    def test_values(self, raw: object, expected: int) -> None:
        assert sanitize_count(raw) == expected


class TestLifecycleEvents:
    """Tests for activation, navigation and removal events."""

    @pytest.mark.asyncio
    async def test_activation_scans_and_shows_count(self) -> None:
        h = Harness()
        h.service.on_activated("tab-1", URL)
        await h.settle("tab-1")

        assert h.sessions.get("tab-1") == 2
        assert h.display.text == "2"
        assert h.extractor.calls == ["tab-1"]

    @pytest.mark.asyncio
    async def test_navigation_resets_then_load_complete_scans(self) -> None:
        h = Harness()
        h.service.on_activated("tab-1", URL)
        await h.settle("tab-1")
        h.clock.advance(60_000)

        h.service.on_updated("tab-1", status="loading", url="https://news.example.com/next")
        assert h.sessions.get("tab-1") == 0
        assert h.display.text == ""

        h.service.on_updated("tab-1", status="complete")
        await h.settle("tab-1")
        assert h.display.text == "2"
        assert h.sessions.lookup("tab-1").url == "https://news.example.com/next"  # type: ignore[union-attr]

    @pytest.mark.asyncio
    async def test_complete_in_background_session_does_not_scan(self) -> None:
        h = Harness()
        h.service.on_activated("tab-1", URL)
        await h.settle("tab-1")

        h.service.on_updated("tab-2", status="loading", url=URL)
        h.service.on_updated("tab-2", status="complete")
        await h.settle("tab-2")

        assert h.extractor.calls == ["tab-1"]
        assert h.display.text == "2"

    @pytest.mark.asyncio
    async def test_background_reset_leaves_badge_alone(self) -> None:
        h = Harness()
        h.service.on_activated("tab-1", URL)
        await h.settle("tab-1")
        h.service.on_updated("tab-2", status="loading", url=URL)
        assert h.display.text == "2"

    @pytest.mark.asyncio
    async def test_repeated_activation_respects_cooldown(self) -> None:
        h = Harness()
        h.service.on_activated("tab-1", URL)
        await h.settle("tab-1")
        h.service.on_activated("tab-1")
        await h.settle("tab-1")
        assert h.extractor.calls == ["tab-1"]
        assert h.display.text == "2"

    @pytest.mark.asyncio
    async def test_removal_clears_session(self) -> None:
        h = Harness()
        h.service.on_activated("tab-1", URL)
        await h.settle("tab-1")
        h.service.on_removed("tab-1")
        assert "tab-1" not in h.sessions
        assert h.sessions.active_session_id is None

    @pytest.mark.asyncio
    async def test_non_http_page_clears_badge(self) -> None:
        h = Harness()
        h.service.on_activated("tab-1", URL)
        await h.settle("tab-1")
        h.service.on_activated("tab-2", "chrome://newtab")
        await h.settle("tab-2")
        assert h.display.text == ""
        assert h.extractor.calls == ["tab-1"]

    @pytest.mark.asyncio
    async def test_disabled_badge_ignores_events(self) -> None:
        h = Harness(settings=Settings(badge_enabled=False))
        h.service.on_activated("tab-1", URL)
        h.service.on_updated("tab-1", status="complete")
        await h.settle("tab-1")
        assert h.extractor.calls == []
        assert h.display.text == ""

    @pytest.mark.asyncio
    async def test_content_mode_waits_for_reported_counts(self) -> None:
        h = Harness(settings=Settings(scan_mode="content"))
        h.service.on_activated("tab-1", URL)
        await h.settle("tab-1")
        assert h.extractor.calls == []

        h.service.report_external_scan_count("tab-1", 5)
        assert h.display.text == "5"


class TestRequests:
    """Tests for client requests."""

    @pytest.mark.asyncio
    async def test_refresh_registry(self) -> None:
        h = Harness()
        result = await h.service.refresh_registry()
        assert result.ok is True
        assert [s.seller_id for s in result.sellers or []] == ["111", "222", "333"]

    @pytest.mark.asyncio
    async def test_refresh_registry_failure(self) -> None:
        h = Harness()
        h.fetcher.error = NetworkError("down")
        result = await h.service.refresh_registry()
        assert result.ok is False
        assert result.sellers is None

    @pytest.mark.asyncio
    async def test_get_registry_cache_is_immediate(self) -> None:
        h = Harness()
        snap = await h.service.get_registry_cache()
        assert snap.is_empty
        await h.registry.shutdown()

    @pytest.mark.asyncio
    async def test_settings_updated_persists(self) -> None:
        h = Harness()
        ack = await h.service.settings_updated({"cacheTtlMinutes": 15})
        assert ack.ok is True
        stored = (await h.store.get([ports.SETTINGS_KEY]))[ports.SETTINGS_KEY]
        assert stored["cacheTtlMinutes"] == 15

    @pytest.mark.asyncio
    async def test_registry_url_change_refreshes(self) -> None:
        h = Harness()
        await h.service.settings_updated({"registryUrl": "https://other.example/sellers.json"})
        await asyncio.gather(*list(h.registry._background))
        assert h.fetcher.calls == ["https://other.example/sellers.json"]

    @pytest.mark.asyncio
    async def test_external_count_sanitised(self) -> None:
        h = Harness()
        h.sessions.ensure("tab-1")
        h.sessions.set_active("tab-1")
        h.service.report_external_scan_count("tab-1", -3)
        assert h.sessions.get("tab-1") == 0
        h.service.report_external_scan_count("tab-1", "lots")
        assert h.sessions.get("tab-1") == 0

    @pytest.mark.asyncio
    async def test_count_after_removal_is_rejected(self) -> None:
        h = Harness()
        h.service.on_activated("tab-1", URL)
        await h.settle("tab-1")
        h.service.on_removed("tab-1")

        with pytest.raises(SessionInvalid):
            h.service.report_external_scan_count("tab-1", 4)

        assert "tab-1" not in h.sessions
        assert len(h.sessions) == 0

    def test_count_for_unknown_session_is_rejected(self) -> None:
        h = Harness()
        with pytest.raises(SessionInvalid):
            h.service.report_external_scan_count("never-seen", 4)
        assert "never-seen" not in h.sessions

    def test_set_badge(self) -> None:
        h = Harness()
        ack = h.service.set_badge(9)
        assert ack.ok is True
        assert ack.ignored is None
        assert h.display.text == "9"

    def test_set_badge_ignored_when_disabled(self) -> None:
        h = Harness(settings=Settings(badge_enabled=False))
        ack = h.service.set_badge(9)
        assert ack.ignored is True
        assert h.display.text == ""


class TestSettingsChanges:
    """Tests for reactions to settings changes."""

    @pytest.mark.asyncio
    async def test_disabling_clears_counts_and_pending_scans(self) -> None:
        h = Harness(settings=Settings(scan_timing="delayed", scan_delay=5))
        h.sessions.ensure("tab-2")
        h.sessions.set("tab-2", 4)
        h.service.on_activated("tab-1", URL)
        assert h.sessions.ensure("tab-1").phase == "pending"

        await h.service.settings_updated({"badgeEnabled": False})

        assert h.sessions.ensure("tab-1").phase == "idle"
        assert h.sessions.get("tab-2") == 0
        assert h.display.text == ""

    @pytest.mark.asyncio
    async def test_store_change_disables_badge(self) -> None:
        h = Harness()
        await h.service.start()
        h.service.set_badge(3)

        await h.store.set({ports.SETTINGS_KEY: {"badgeEnabled": False}})

        assert h.settings.current.badge_enabled is False
        assert h.display.text == ""
        await h.service.shutdown()

    @pytest.mark.asyncio
    async def test_start_loads_stored_settings(self) -> None:
        h = Harness()
        await h.store.set({ports.SETTINGS_KEY: {"scanMode": "content"}})
        await h.service.start()
        assert h.settings.current.scan_mode == "content"
        await h.service.shutdown()
