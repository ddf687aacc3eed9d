"""Tests for the Settings model: defaults and lenient sanitisation."""

from __future__ import annotations

import math

import pydantic
import pytest

from sellermatch.models.settings import DEFAULT_REGISTRY_URL, Settings


class TestDefaults:
    """Tests for default values and derived properties."""

    def test_defaults(self) -> None:
        s = Settings()
        assert s.registry_url == "https://adwmg.com/sellers.json"
        assert s.cache_ttl_minutes == 60
        assert s.badge_enabled is True
        assert s.scan_mode == "background"
        assert s.scan_timing == "immediate"
        assert s.scan_delay == 10

    def test_cache_ttl_ms(self) -> None:
        assert Settings(cache_ttl_minutes=2).cache_ttl_ms == 120_000

    def test_effective_delay_zero_when_immediate(self) -> None:
        assert Settings(scan_delay=30).effective_scan_delay == 0.0

    def test_effective_delay_when_delayed(self) -> None:
        assert Settings(scan_timing="delayed", scan_delay=30).effective_scan_delay == 30.0

    def test_frozen(self) -> None:
        s = Settings()
        with pytest.raises(pydantic.ValidationError):
            s.badge_enabled = False  # type: ignore[misc]


class TestMerged:
    """Tests for Settings.merged() field-by-field sanitisation."""

    def test_empty_patch_returns_same_snapshot(self) -> None:
        s = Settings()
        assert s.merged({}) is s
        assert s.merged(None) is s

    def test_camel_and_snake_keys(self) -> None:
        s = Settings().merged({"cacheTtlMinutes": 5, "badge_enabled": False})
        assert s.cache_ttl_minutes == 5
        assert s.badge_enabled is False

    def test_blank_url_becomes_default(self) -> None:
        s = Settings(registry_url="https://other.example/sellers.json").merged({"registryUrl": "   "})
        assert s.registry_url == DEFAULT_REGISTRY_URL

    def test_url_is_trimmed(self) -> None:
        s = Settings().merged({"registryUrl": "  https://x.example/sellers.json "})
        assert s.registry_url == "https://x.example/sellers.json"

    def test_non_string_url_ignored(self) -> None:
        s = Settings().merged({"registryUrl": 42})
        assert s.registry_url == DEFAULT_REGISTRY_URL

    @pytest.mark.parametrize(("raw", "expected"), [(0, 1), (-5, 1), (2.6, 3), (90, 90)])
    def test_ttl_clamped(self, raw: float, expected: int) -> None:
        assert Settings().merged({"cacheTtlMinutes": raw}).cache_ttl_minutes == expected

    @pytest.mark.parametrize("raw", ["15", None, True, math.nan, math.inf])
    def test_ttl_non_numeric_ignored(self, raw: object) -> None:
        assert Settings(cache_ttl_minutes=7).merged({"cacheTtlMinutes": raw}).cache_ttl_minutes == 7

    def test_non_bool_badge_flag_ignored(self) -> None:
        assert Settings().merged({"badgeEnabled": "false"}).badge_enabled is True
        assert Settings().merged({"badgeEnabled": 0}).badge_enabled is True

    def test_scan_mode_content_only_when_exact(self) -> None:
        assert Settings().merged({"scanMode": "content"}).scan_mode == "content"
        assert Settings(scan_mode="content").merged({"scanMode": "Content"}).scan_mode == "background"

    def test_scan_timing_delayed_only_when_exact(self) -> None:
        assert Settings().merged({"scanTiming": "delayed"}).scan_timing == "delayed"
        assert Settings(scan_timing="delayed").merged({"scanTiming": "later"}).scan_timing == "immediate"

    def test_delay_clamped_and_validated(self) -> None:
        assert Settings().merged({"scanDelay": -3}).scan_delay == 0.0
        assert Settings().merged({"scanDelay": 2.5}).scan_delay == 2.5
        assert Settings().merged({"scanDelay": "5"}).scan_delay == 10
        assert Settings().merged({"scanDelay": False}).scan_delay == 10

    def test_unknown_keys_ignored(self) -> None:
        assert Settings().merged({"theme": "dark"}) == Settings()


class TestStoredForm:
    """Tests for from_stored / to_stored."""

    def test_to_stored_uses_camel_case(self) -> None:
        stored = Settings().to_stored()
        assert set(stored) == {
            "registryUrl",
            "cacheTtlMinutes",
            "badgeEnabled",
            "scanMode",
            "scanTiming",
            "scanDelay",
        }

    def test_round_trip(self) -> None:
        s = Settings(cache_ttl_minutes=5, scan_mode="content", scan_timing="delayed", scan_delay=3)
        assert Settings.from_stored(s.to_stored()) == s

    @pytest.mark.parametrize("raw", [None, "settings", 12, ["a"]])
    def test_non_mapping_gives_defaults(self, raw: object) -> None:
        assert Settings.from_stored(raw) == Settings()

    def test_partial_record_defaults_the_rest(self) -> None:
        s = Settings.from_stored({"badgeEnabled": False})
        assert s.badge_enabled is False
        assert s.cache_ttl_minutes == 60
