"""
In-page extraction with Playwright.

Opens the session's URL in a fresh browser context and runs the
extraction routine inside the page, so ads.txt files are fetched
same-origin by the page itself, the way a browser extension's
injected script would.  The browser is launched lazily and shared
by all sessions; every scan gets its own context, which is always
closed afterwards.
"""

from __future__ import annotations

from typing import Any

from playwright import async_api

from sellermatch.extraction import ads_txt
from sellermatch.models.scan import ExtractionResult
from sellermatch.registry import fetch
from sellermatch.scan.sessions import SessionStore
from sellermatch.utils import logger
from sellermatch.utils import url as url_mod
from sellermatch.utils.errors import ExtractionError, SessionInvalid, get_error_message

log = logger.create_logger("BrowserExtractor")


class BrowserPageExtractor:
    """``PageExtractor`` backed by a headless Chromium page."""

    def __init__(
        self,
        sessions: SessionStore,
        *,
        seller_domain: str = ads_txt.DEFAULT_SELLER_DOMAIN,
        timeout_ms: int = fetch.FETCH_TIMEOUT_MS,
        headless: bool = True,
    ) -> None:
        self._sessions = sessions
        self._seller_domain = seller_domain
        self._timeout_ms = timeout_ms
        self._headless = headless
        self._playwright: async_api.Playwright | None = None
        self._browser: async_api.Browser | None = None

    async def _ensure_browser(self) -> async_api.Browser:
        if self._browser is not None and self._browser.is_connected():
            return self._browser

        log.info("Launching browser", {"headless": self._headless})
        if self._playwright is None:
            self._playwright = await async_api.async_playwright().start()
        self._browser = await self._playwright.chromium.launch(headless=self._headless)
        return self._browser

    async def extract(self, session_id: str) -> ExtractionResult:
        state = self._sessions.lookup(session_id)
        if state is None or not state.url:
            raise SessionInvalid(session_id)
        if not url_mod.is_http_url(state.url):
            raise ExtractionError(f"Not an http(s) page: {state.url}")

        try:
            browser = await self._ensure_browser()
            context = await browser.new_context()
        except async_api.Error as exc:
            raise ExtractionError(f"Browser unavailable: {get_error_message(exc)}") from exc

        try:
            page = await context.new_page()
            await page.goto(state.url, wait_until="domcontentloaded", timeout=self._timeout_ms)
            payload: Any = await page.evaluate(
                ads_txt.EXTRACT_SELLER_IDS_JS,
                {
                    "timeoutMs": self._timeout_ms,
                    "sellerDomain": self._seller_domain,
                    "files": list(ads_txt.ADS_TXT_FILES),
                },
            )
        except async_api.Error as exc:
            raise ExtractionError(f"Page script failed: {get_error_message(exc)}") from exc
        finally:
            try:
                await context.close()
            except async_api.Error as exc:
                log.debug("Context close error (non-fatal)", {"error": str(exc)})

        result = ExtractionResult.from_payload(payload)
        log.debug("Extracted seller ids", {"sessionId": session_id, "ok": result.ok, "ids": len(result.ids)})
        return result

    async def close(self) -> None:
        """Close the browser and stop Playwright."""
        if self._browser is not None:
            try:
                await self._browser.close()
            except async_api.Error as exc:
                log.debug("Browser close error (non-fatal)", {"error": str(exc)})
            self._browser = None

        if self._playwright is not None:
            try:
                await self._playwright.stop()
            except async_api.Error as exc:
                log.debug("Playwright stop error (non-fatal)", {"error": str(exc)})
            self._playwright = None
