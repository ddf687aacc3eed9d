"""
Process configuration for the SellerMatch server.

Centralises environment variable names and defaults for the
HTTP listener, persistence, page extraction and registry fetching.
User-facing settings (registry URL, TTL, badge and scan options)
are not configured here; they live in the store and are owned by
``SettingsManager``.

Uses ``pydantic_settings.BaseSettings`` for automatic environment
variable binding, type coercion, and validation.
"""

from __future__ import annotations

from typing import Literal

import pydantic
import pydantic_settings

from sellermatch.extraction import ads_txt
from sellermatch.registry import fetch
from sellermatch.scan import scheduler

ExtractorKind = Literal["http", "browser"]


class ServerConfig(pydantic_settings.BaseSettings):
    """Configuration loaded from environment variables.

    Attributes:
        host: Interface uvicorn binds to.
        port: Port uvicorn listens on.
        store_path: JSON file backing the store; in-memory when unset.
        extractor: Which page extractor scans use.
        seller_domain: Marker that selects relevant ads.txt lines.
        fetch_timeout_ms: Per-attempt timeout for network fetches.
        fetch_retries: Extra attempts after a failed registry fetch.
        scan_cooldown_ms: Minimum interval between scans of one session.
        environment: ``production`` turns off uvicorn auto-reload.
    """

    host: str = pydantic.Field(default="0.0.0.0", validation_alias="SELLERMATCH_HOST")
    port: int = pydantic.Field(default=3001, validation_alias="SELLERMATCH_PORT")
    store_path: str | None = pydantic.Field(
        default=None, validation_alias="SELLERMATCH_STORE_PATH"
    )
    extractor: ExtractorKind = pydantic.Field(
        default="http", validation_alias="SELLERMATCH_EXTRACTOR"
    )
    seller_domain: str = pydantic.Field(
        default=ads_txt.DEFAULT_SELLER_DOMAIN,
        validation_alias="SELLERMATCH_SELLER_DOMAIN",
    )
    fetch_timeout_ms: int = pydantic.Field(
        default=fetch.FETCH_TIMEOUT_MS,
        ge=1,
        validation_alias="SELLERMATCH_FETCH_TIMEOUT_MS",
    )
    fetch_retries: int = pydantic.Field(
        default=fetch.FETCH_RETRIES,
        ge=0,
        validation_alias="SELLERMATCH_FETCH_RETRIES",
    )
    scan_cooldown_ms: int = pydantic.Field(
        default=scheduler.SCAN_COOLDOWN_MS,
        ge=0,
        validation_alias="SELLERMATCH_SCAN_COOLDOWN_MS",
    )
    environment: str = pydantic.Field(default="development", validation_alias="ENVIRONMENT")

    @property
    def is_production(self) -> bool:
        return self.environment == "production"
