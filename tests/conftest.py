"""Shared fixtures for the test suite."""

from __future__ import annotations

import pytest

from sellermatch.models.settings import Settings
from sellermatch.registry.cache import RegistryCache
from sellermatch.scan.sessions import SessionStore
from sellermatch.services.badge import BadgePresenter, InMemoryBadgeDisplay
from sellermatch.services.settings_manager import SettingsManager
from sellermatch.store.memory import MemoryStore
from tests._fakes import FakeClock, FakeFetcher, sellers_body


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture()
def settings(store: MemoryStore) -> SettingsManager:
    return SettingsManager(store)


@pytest.fixture()
def disabled_settings(store: MemoryStore) -> SettingsManager:
    return SettingsManager(store, initial=Settings(badge_enabled=False))


@pytest.fixture()
def sessions() -> SessionStore:
    return SessionStore()


@pytest.fixture()
def display() -> InMemoryBadgeDisplay:
    return InMemoryBadgeDisplay()


@pytest.fixture()
def badge(display: InMemoryBadgeDisplay, sessions: SessionStore, settings: SettingsManager) -> BadgePresenter:
    return BadgePresenter(display, sessions, settings)


@pytest.fixture()
def fetcher() -> FakeFetcher:
    return FakeFetcher(body=sellers_body("111", "222", "333"))


@pytest.fixture()
def registry_cache(
    store: MemoryStore,
    settings: SettingsManager,
    fetcher: FakeFetcher,
    clock: FakeClock,
) -> RegistryCache:
    return RegistryCache(store, settings, fetcher=fetcher, clock_ms=clock)
