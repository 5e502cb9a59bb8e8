"""
Text movement commands.

Accepted forms: "walk", "run north", "jog.ne", "walk 270", "stop".
The speed word comes first, then "." or a space, then either an integer
heading in degrees or a compass token (N, NE, north-east, north_east, ...).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from ..engine.systems.text import COMPASS_POINTS, parse_compass
from ..protocol import now_ms

MOVEMENT_SPEEDS = ("walk", "jog", "run", "stop")


class MovementParseStatus(Enum):
    NOT_MOVEMENT = "not_movement"
    PARSED = "parsed"
    INVALID = "invalid"


@dataclass(frozen=True)
class MovementCommand:
    speed: str
    heading: Optional[int] = None
    compass: Optional[str] = None

    def to_payload(self, timestamp: Optional[int] = None) -> Dict[str, Any]:
        """Payload for the outbound "move" message."""
        ts = timestamp if timestamp is not None else now_ms()
        if self.compass is not None:
            return {"method": "compass", "speed": self.speed, "compass": self.compass, "timestamp": ts}
        if self.heading is not None:
            return {"method": "heading", "speed": self.speed, "heading": self.heading, "timestamp": ts}
        return {"method": "heading", "speed": self.speed, "timestamp": ts}


@dataclass(frozen=True)
class MovementParse:
    status: MovementParseStatus
    command: Optional[MovementCommand] = None
    error: Optional[str] = None


NOT_MOVEMENT = MovementParse(MovementParseStatus.NOT_MOVEMENT)


def parse_heading(token: str) -> Optional[int]:
    """Integer degrees normalized to 0..359; 360 maps to 0."""
    try:
        value = int(token.strip())
    except ValueError:
        return None
    return value % 360


def parse_compass_token(token: str) -> Optional[str]:
    degrees = parse_compass(token)
    if degrees is None:
        return None
    return COMPASS_POINTS[degrees // 45]


def parse_movement_command(text: str) -> MovementParse:
    if not text or not text.strip():
        return NOT_MOVEMENT

    trimmed = text.strip()
    separator = trimmed.find(".")
    if separator < 0:
        separator = trimmed.find(" ")

    if separator >= 0:
        speed_token = trimmed[:separator]
        direction_token = trimmed[separator + 1:].strip()
    else:
        speed_token, direction_token = trimmed, ""

    speed = speed_token.lower()
    if speed not in MOVEMENT_SPEEDS:
        return NOT_MOVEMENT

    if speed == "stop" or not direction_token:
        return MovementParse(MovementParseStatus.PARSED, MovementCommand(speed))

    heading = parse_heading(direction_token)
    if heading is not None:
        return MovementParse(MovementParseStatus.PARSED, MovementCommand(speed, heading=heading))

    compass = parse_compass_token(direction_token)
    if compass is not None:
        return MovementParse(MovementParseStatus.PARSED, MovementCommand(speed, compass=compass))

    return MovementParse(
        MovementParseStatus.INVALID,
        error=f"Invalid movement direction: {direction_token}",
    )
