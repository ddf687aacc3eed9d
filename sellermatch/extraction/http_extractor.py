"""
Page extraction by fetching ads.txt files directly from the page origin.
"""

from __future__ import annotations

import asyncio

import aiohttp

from sellermatch.extraction import ads_txt
from sellermatch.models.scan import ExtractionResult
from sellermatch.registry import fetch
from sellermatch.scan.sessions import SessionStore
from sellermatch.utils import logger
from sellermatch.utils import url as url_mod
from sellermatch.utils.errors import ExtractionError, NetworkError, SessionInvalid, get_error_message

log = logger.create_logger("HttpExtractor")


class HttpPageExtractor:
    """Reads ``ads.txt`` and ``app-ads.txt`` for a session's page URL.

    Both files are requested concurrently with a single attempt
    each, bounded by the fetch timeout.  A file that is missing
    or fails to load simply contributes no ids.
    """

    def __init__(
        self,
        sessions: SessionStore,
        *,
        seller_domain: str = ads_txt.DEFAULT_SELLER_DOMAIN,
        timeout_ms: int = fetch.FETCH_TIMEOUT_MS,
        http_session: aiohttp.ClientSession | None = None,
    ) -> None:
        self._sessions = sessions
        self._seller_domain = seller_domain
        self._timeout_ms = timeout_ms
        self._http_session = http_session

    async def extract(self, session_id: str) -> ExtractionResult:
        state = self._sessions.lookup(session_id)
        if state is None or not state.url:
            raise SessionInvalid(session_id)

        origin = url_mod.get_origin(state.url)
        if origin is None:
            raise ExtractionError(f"Not an http(s) page: {state.url}")

        urls = [f"{origin}/{name}" for name in ads_txt.ADS_TXT_FILES]
        if self._http_session is not None:
            texts = await self._fetch_all(urls, self._http_session)
        else:
            async with aiohttp.ClientSession() as http_session:
                texts = await self._fetch_all(urls, http_session)

        ids: set[str] = set()
        for text in texts:
            ids |= ads_txt.extract_seller_ids(text, self._seller_domain)

        log.debug(
            "Extracted seller ids",
            {"sessionId": session_id, "origin": origin, "filesRead": sum(t is not None for t in texts), "ids": len(ids)},
        )
        return ExtractionResult(ok=True, ids=frozenset(ids))

    async def _fetch_all(self, urls: list[str], http_session: aiohttp.ClientSession) -> list[str | None]:
        return list(await asyncio.gather(*(self._fetch_text(u, http_session) for u in urls)))

    async def _fetch_text(self, url: str, http_session: aiohttp.ClientSession) -> str | None:
        try:
            return await fetch.fetch_with_retry(
                url,
                timeout_ms=self._timeout_ms,
                max_retries=0,
                http_session=http_session,
            )
        except NetworkError as exc:
            log.debug("ads file unavailable", {"url": url, "error": get_error_message(exc)})
            return None
