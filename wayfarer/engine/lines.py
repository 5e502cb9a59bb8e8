"""
Narrative line construction.

Every handler in the router returns a list of LogLine objects. The colour key
and shake strength are presentation hints only; the rendering layer decides
what to do with them.
"""

from __future__ import annotations

from dataclasses import dataclass

# Colour keys understood by the reference renderers
COLOR_SYSTEM = "system"
COLOR_CHAT = "chat"
COLOR_ERROR = "error"
COLOR_WARNING = "warning"
COLOR_COMBAT = "combat"
COLOR_DIAGNOSTIC = "diagnostic"


@dataclass(frozen=True)
class LogLine:
    """A single narrative line plus optional presentation hints."""

    text: str
    color_key: str | None = None
    shake: float | None = None

    def __str__(self) -> str:
        return self.text


def line(text: str, color_key: str | None = None, shake: float | None = None) -> LogLine:
    return LogLine(text=text, color_key=color_key, shake=shake)


def system_line(text: str) -> LogLine:
    return LogLine(text=text, color_key=COLOR_SYSTEM)


def error_line(text: str) -> LogLine:
    return LogLine(text=text, color_key=COLOR_ERROR)


def diagnostic_line(text: str) -> LogLine:
    return LogLine(text=text, color_key=COLOR_DIAGNOSTIC)
