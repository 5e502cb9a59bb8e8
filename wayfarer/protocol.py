"""
Envelope codec for the wire protocol.

Inbound frames are UTF-8 JSON objects:
    {"type": str, "payload": object | str | null, "timestamp"?: int, "sequence"?: int}

parse_frame() never raises. Anything it cannot make sense of returns None and
the caller falls back to showing the raw text.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IncomingMessage:
    """One parsed server frame. Built once per frame, never mutated."""

    kind: str
    payload: Any = None
    timestamp: int | None = None
    sequence: int | None = None

    def raw_payload_text(self) -> str:
        """Compact JSON rendering of the payload for diagnostic lines."""
        try:
            return json.dumps(self.payload, separators=(",", ":"), ensure_ascii=False)
        except (TypeError, ValueError):
            return repr(self.payload)


def _as_int64(value: Any) -> int | None:
    # bool is an int subclass; a JSON true is not a timestamp
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def parse_frame(raw: str | bytes) -> IncomingMessage | None:
    """
    Parse a raw text frame into an IncomingMessage.

    Returns None when the frame is not valid JSON, is not an object, or has
    no string "type". Unknown types are legal and are returned as-is.
    """
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError:
            logger.debug("Dropping frame that is not valid UTF-8")
            return None

    try:
        root = json.loads(raw)
    except (ValueError, TypeError, RecursionError):
        logger.debug("Frame is not JSON: %.200s", raw)
        return None

    if not isinstance(root, dict):
        return None

    kind = root.get("type")
    if not isinstance(kind, str):
        return None

    return IncomingMessage(
        kind=kind,
        payload=root.get("payload"),
        timestamp=_as_int64(root.get("timestamp")),
        sequence=_as_int64(root.get("sequence")),
    )


# ---------- Outbound ----------


def now_ms() -> int:
    return int(time.time() * 1000)


def build_envelope(kind: str, payload: Any, timestamp: int | None = None) -> dict[str, Any]:
    """Wrap an outbound payload in the standard envelope."""
    return {
        "type": kind,
        "payload": payload,
        "timestamp": timestamp if timestamp is not None else now_ms(),
    }
