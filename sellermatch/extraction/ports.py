"""Page extractor capability.

How ids are read from a page is up to the host: an HTTP fetch
from this process, a script injected into a live browser page,
or anything else.  The scan pipeline only relies on this shape.
"""

from __future__ import annotations

from typing import Protocol

from sellermatch.models.scan import ExtractionResult


class PageExtractor(Protocol):
    async def extract(self, session_id: str) -> ExtractionResult:
        """Return the seller ids declared by the session's page.

        Raises:
            SessionInvalid: The session has no page to read.
            ExtractionError: Reading the page failed.
        """
        ...
