"""
Server entry point — FastAPI app setup and route configuration.
Wires the store, registry cache, scan pipeline and badge into one
``SellerMatchService`` and exposes its events and requests over HTTP.
"""

from __future__ import annotations

import contextlib
import dataclasses
from collections.abc import AsyncGenerator
from typing import Any

import dotenv
import fastapi
import uvicorn
from fastapi.middleware import cors
from starlette import responses

from sellermatch import config as config_mod
from sellermatch.browser.extractor import BrowserPageExtractor
from sellermatch.extraction.http_extractor import HttpPageExtractor
from sellermatch.extraction.ports import PageExtractor
from sellermatch.models import messages, registry, scan
from sellermatch.registry import fetch
from sellermatch.registry.cache import Fetcher, RegistryCache
from sellermatch.scan.pipeline import ScanPipeline
from sellermatch.scan.scheduler import ScanScheduler
from sellermatch.scan.sessions import SessionStore
from sellermatch.services.badge import BadgePresenter, InMemoryBadgeDisplay
from sellermatch.services.coordinator import SellerMatchService
from sellermatch.services.settings_manager import SettingsManager
from sellermatch.store import ports
from sellermatch.store.json_file import JsonFileStore
from sellermatch.store.memory import MemoryStore
from sellermatch.utils import logger
from sellermatch.utils.errors import SessionInvalid, get_error_message

dotenv.load_dotenv()

log = logger.create_logger("Server")


@dataclasses.dataclass
class Runtime:
    """Everything the HTTP layer needs, built once per process."""

    config: config_mod.ServerConfig
    service: SellerMatchService
    display: InMemoryBadgeDisplay
    extractor: PageExtractor

    async def close(self) -> None:
        await self.service.shutdown()
        close = getattr(self.extractor, "close", None)
        if close is not None:
            await close()


def _build_store(config: config_mod.ServerConfig) -> ports.KeyValueStore:
    if config.store_path:
        log.info("Using JSON file store", {"path": config.store_path})
        return JsonFileStore(config.store_path)
    log.info("Using in-memory store")
    return MemoryStore()


def _build_extractor(config: config_mod.ServerConfig, sessions: SessionStore) -> PageExtractor:
    if config.extractor == "browser":
        return BrowserPageExtractor(
            sessions,
            seller_domain=config.seller_domain,
            timeout_ms=config.fetch_timeout_ms,
        )
    return HttpPageExtractor(
        sessions,
        seller_domain=config.seller_domain,
        timeout_ms=config.fetch_timeout_ms,
    )


def build_runtime(
    config: config_mod.ServerConfig | None = None,
    *,
    store: ports.KeyValueStore | None = None,
    extractor: PageExtractor | None = None,
    display: InMemoryBadgeDisplay | None = None,
    fetcher: Fetcher | None = None,
) -> Runtime:
    """Assemble the service graph.

    Args:
        config: Process configuration; read from the environment when omitted.
        store: Overrides the store chosen by ``config``.
        extractor: Overrides the extractor chosen by ``config``.
        display: Badge display to drive.
        fetcher: Registry downloader; defaults to ``fetch_with_retry``.

    Returns:
        The assembled ``Runtime``.
    """
    config = config or config_mod.ServerConfig()
    store = store if store is not None else _build_store(config)
    display = display if display is not None else InMemoryBadgeDisplay()

    settings = SettingsManager(store)
    sessions = SessionStore()
    registry_cache = RegistryCache(
        store,
        settings,
        fetcher=fetcher or fetch.fetch_with_retry,
        timeout_ms=config.fetch_timeout_ms,
        max_retries=config.fetch_retries,
    )
    extractor = extractor if extractor is not None else _build_extractor(config, sessions)
    pipeline = ScanPipeline(extractor, registry_cache, sessions)
    badge = BadgePresenter(display, sessions, settings)
    scheduler = ScanScheduler(
        sessions,
        pipeline.run,
        settings,
        on_result=badge.refresh_for,
        cooldown_ms=config.scan_cooldown_ms,
    )
    service = SellerMatchService(
        settings=settings,
        sessions=sessions,
        registry_cache=registry_cache,
        scheduler=scheduler,
        badge=badge,
    )
    return Runtime(config=config, service=service, display=display, extractor=extractor)


def create_app(runtime: Runtime | None = None) -> fastapi.FastAPI:
    """Create the FastAPI app around *runtime* (built from the environment if omitted)."""
    rt = runtime or build_runtime()
    service = rt.service

    @contextlib.asynccontextmanager
    async def lifespan(_app: fastapi.FastAPI) -> AsyncGenerator[None]:
        await service.start()
        log.section("SellerMatch Server Started")
        log.info("Environment", {"env": rt.config.environment, "extractor": rt.config.extractor})
        yield
        await rt.close()
        log.info("Server stopped")

    app = fastapi.FastAPI(title="SellerMatch Server", lifespan=lifespan)
    app.state.runtime = rt

    # ============================================================================
    # Middleware
    # ============================================================================

    app.add_middleware(
        cors.CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ============================================================================
    # Error handling
    # ============================================================================

    @app.exception_handler(SessionInvalid)
    async def session_invalid_handler(_request: fastapi.Request, exc: SessionInvalid) -> responses.JSONResponse:
        return responses.JSONResponse(status_code=404, content={"ok": False, "error": get_error_message(exc)})

    @app.exception_handler(Exception)
    async def unexpected_error_handler(_request: fastapi.Request, exc: Exception) -> responses.JSONResponse:
        log.error("Request failed", {"error": get_error_message(exc)})
        return responses.JSONResponse(status_code=500, content={"ok": False, "error": get_error_message(exc)})

    # ============================================================================
    # Registry
    # ============================================================================

    @app.get("/api/registry", response_model=registry.RegistrySnapshot)
    async def get_registry() -> registry.RegistrySnapshot:
        return await service.get_registry_cache()

    @app.post(
        "/api/registry/refresh",
        response_model=messages.RefreshResult,
        response_model_exclude_none=True,
    )
    async def refresh_registry(
        body: messages.RefreshRequest | None = None,
    ) -> messages.RefreshResult:
        force = body.force if body is not None else True
        return await service.refresh_registry(force=force)

    # ============================================================================
    # Settings
    # ============================================================================

    @app.get("/api/settings")
    async def get_settings() -> dict[str, Any]:
        return service.settings.current.model_dump(by_alias=True)

    @app.patch("/api/settings", response_model=messages.Ack, response_model_exclude_none=True)
    async def patch_settings(patch: dict[str, Any] = fastapi.Body(...)) -> messages.Ack:
        return await service.settings_updated(patch)

    # ============================================================================
    # Session lifecycle
    # ============================================================================

    @app.post(
        "/api/sessions/{session_id}/activated",
        response_model=messages.Ack,
        response_model_exclude_none=True,
    )
    async def session_activated(
        session_id: str,
        body: messages.LifecycleEvent | None = None,
    ) -> messages.Ack:
        service.on_activated(session_id, url=body.url if body is not None else None)
        return messages.Ack(ok=True)

    @app.post(
        "/api/sessions/{session_id}/updated",
        response_model=messages.Ack,
        response_model_exclude_none=True,
    )
    async def session_updated(session_id: str, body: messages.LifecycleEvent) -> messages.Ack:
        service.on_updated(session_id, status=body.status, url=body.url)
        return messages.Ack(ok=True)

    @app.delete("/api/sessions/{session_id}", response_model=messages.Ack, response_model_exclude_none=True)
    async def session_removed(session_id: str) -> messages.Ack:
        service.on_removed(session_id)
        return messages.Ack(ok=True)

    @app.post(
        "/api/sessions/{session_id}/count",
        response_model=messages.Ack,
        response_model_exclude_none=True,
    )
    async def report_count(session_id: str, body: messages.CountReport) -> messages.Ack:
        return service.report_external_scan_count(session_id, body.count)

    @app.get("/api/sessions/{session_id}", response_model=scan.SessionView)
    async def get_session(session_id: str) -> scan.SessionView:
        return service.sessions.view(session_id)

    # ============================================================================
    # Badge
    # ============================================================================

    @app.get("/api/badge", response_model=messages.BadgeView)
    async def get_badge() -> messages.BadgeView:
        color = rt.display.color if rt.display.text else None
        return messages.BadgeView(text=rt.display.text, color=color)

    @app.post("/api/badge", response_model=messages.Ack, response_model_exclude_none=True)
    async def set_badge(body: messages.CountReport) -> messages.Ack:
        return service.set_badge(body.count)

    return app


# ============================================================================
# Start Server
# ============================================================================


def main() -> None:
    """Entry point for running the server."""
    server_config = config_mod.ServerConfig()
    log.success(f"Server listening on {server_config.host}:{server_config.port}")

    # The import string lets uvicorn rebuild the app in its reloader process.
    uvicorn.run(
        "sellermatch.main:create_app",
        factory=True,
        host=server_config.host,
        port=server_config.port,
        reload=not server_config.is_production,
    )


if __name__ == "__main__":
    main()
