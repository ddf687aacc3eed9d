"""Clock helpers.

Wall-clock milliseconds are persisted (``fetchedAt``); monotonic
milliseconds are only used for in-process intervals such as the
scan cooldown.
"""

from __future__ import annotations

import time
from typing import Callable

Clock = Callable[[], float]


def now_ms() -> int:
    """Milliseconds since the Unix epoch."""
    return int(time.time() * 1000)


def monotonic_ms() -> float:
    """Monotonic milliseconds, unaffected by wall-clock changes."""
    return time.monotonic() * 1000
