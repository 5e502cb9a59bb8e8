"""
Text helpers shared by the router and the command layer.

Provides:
- wrap_text(): greedy word wrap (78 columns by default)
- format_content_rating(): content-rating code -> display string
- heading_to_compass() / parse_compass(): degree <-> compass conversions
"""

from __future__ import annotations

import textwrap

WRAP_WIDTH = 78

CONTENT_RATINGS = {
    "T": "Teen (13+)",
    "M": "Mature (17+)",
    "AO": "Adults Only (18+)",
}

COMPASS_POINTS = ("N", "NE", "E", "SE", "S", "SW", "W", "NW")

COMPASS_HEADINGS = {
    "N": 0, "NORTH": 0,
    "NE": 45, "NORTHEAST": 45,
    "E": 90, "EAST": 90,
    "SE": 135, "SOUTHEAST": 135,
    "S": 180, "SOUTH": 180,
    "SW": 225, "SOUTHWEST": 225,
    "W": 270, "WEST": 270,
    "NW": 315, "NORTHWEST": 315,
}


def wrap_text(text: str, width: int = WRAP_WIDTH) -> list[str]:
    """
    Word-wrap text, keeping explicit paragraph breaks.

    Words longer than the width are left whole on their own line.
    """
    lines: list[str] = []
    for paragraph in text.splitlines():
        if not paragraph.strip():
            continue
        lines.extend(
            textwrap.wrap(
                paragraph,
                width=width,
                break_long_words=False,
                break_on_hyphens=False,
            )
        )
    return lines


def format_content_rating(code: str) -> str:
    code = code.strip()
    label = CONTENT_RATINGS.get(code.upper())
    if label is None:
        return f"{code} [Unknown]"
    return f"{label} [{code.upper()}]"


def normalize_heading(degrees: float) -> float:
    return degrees % 360


def heading_to_compass(degrees: float) -> str:
    index = int(round(normalize_heading(degrees) / 45.0)) % len(COMPASS_POINTS)
    return COMPASS_POINTS[index]


def parse_compass(token: str) -> int | None:
    """Map "ne", "north-east", "North_East" etc. to degrees, or None."""
    key = token.strip().upper().replace("-", "").replace("_", "").replace(" ", "")
    return COMPASS_HEADINGS.get(key)
