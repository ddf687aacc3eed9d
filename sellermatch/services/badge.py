"""Badge presentation.

The badge itself belongs to the host (a toolbar icon, a status
line ...).  This module decides what it shows: the match count of
the active session when above zero, otherwise nothing.
"""

from __future__ import annotations

from typing import Protocol

from sellermatch.scan.sessions import SessionStore
from sellermatch.services.settings_manager import SettingsManager

BADGE_BG_COLOR = "#21aeb3"


class BadgeDisplay(Protocol):
    def set_badge_text(self, text: str) -> None: ...

    def set_badge_color(self, color: str) -> None: ...


class InMemoryBadgeDisplay:
    """Keeps the last text and colour so they can be queried."""

    def __init__(self) -> None:
        self.text = ""
        self.color: str | None = None

    def set_badge_text(self, text: str) -> None:
        self.text = text

    def set_badge_color(self, color: str) -> None:
        self.color = color


def format_badge_text(count: int) -> str:
    return str(count) if count > 0 else ""


class BadgePresenter:
    """Pushes counts to a ``BadgeDisplay`` according to the settings."""

    def __init__(
        self,
        display: BadgeDisplay,
        sessions: SessionStore,
        settings: SettingsManager,
    ) -> None:
        self._display = display
        self._sessions = sessions
        self._settings = settings

    def show_count(self, count: int) -> None:
        if not self._settings.current.badge_enabled:
            self.clear()
            return
        text = format_badge_text(count)
        self._display.set_badge_text(text)
        if text:
            self._display.set_badge_color(BADGE_BG_COLOR)

    def refresh_for(self, session_id: str) -> bool:
        """Show *session_id*'s count if it is the active session."""
        if not self._sessions.is_active(session_id):
            return False
        self.show_count(self._sessions.get(session_id))
        return True

    def clear(self) -> None:
        self._display.set_badge_text("")
