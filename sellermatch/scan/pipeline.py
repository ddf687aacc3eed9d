"""
One end-to-end scan: extract page ids, load the registry, count matches.
"""

from __future__ import annotations

from sellermatch.extraction.ports import PageExtractor
from sellermatch.registry.cache import RegistryCache
from sellermatch.scan import matcher
from sellermatch.scan.sessions import SessionStore
from sellermatch.utils import logger
from sellermatch.utils import url as url_mod
from sellermatch.utils.errors import ExtractionError, SessionInvalid, get_error_message

log = logger.create_logger("ScanPipeline")


class ScanPipeline:
    """Composes extraction, the registry cache and the matcher."""

    def __init__(
        self,
        extractor: PageExtractor,
        registry: RegistryCache,
        sessions: SessionStore,
    ) -> None:
        self._extractor = extractor
        self._registry = registry
        self._sessions = sessions

    async def run(self, session_id: str) -> int | None:
        """Scan the session's page.

        Returns:
            The match count, or ``None`` when no count is available
            (not an http(s) page, session gone, extraction failed).
        """
        state = self._sessions.lookup(session_id)
        if state is None or not url_mod.is_http_url(state.url):
            log.debug("Skipping scan of non-http page", {"sessionId": session_id})
            return None

        domain = url_mod.extract_domain(state.url or "")
        log.start_timer(f"scan-{session_id}")
        try:
            result = await self._extractor.extract(session_id)
        except (ExtractionError, SessionInvalid) as exc:
            log.end_timer(f"scan-{session_id}", "Scan aborted")
            log.warn(
                "Extraction failed",
                {"sessionId": session_id, "domain": domain, "error": get_error_message(exc)},
            )
            return None

        if not result.ok:
            log.end_timer(f"scan-{session_id}", "Scan aborted")
            log.warn("Page extraction reported failure", {"sessionId": session_id, "domain": domain})
            return None

        snapshot = await self._registry.ensure_fresh()
        count = matcher.match(result.ids, snapshot.sellers)

        log.end_timer(f"scan-{session_id}", "Scan complete")
        log.info(
            "Seller ids matched",
            {
                "sessionId": session_id,
                "domain": domain,
                "pageIds": len(result.ids),
                "registrySellers": len(snapshot.sellers),
                "matches": count,
            },
        )
        return count
