"""
ClientSession - ties the engine, the router and the command layer together.

A session is transport-agnostic: feed it raw frames with handle_frame() and
user input with handle_input(), and send whatever outbound envelopes the
returned CommandResult carries.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from .commands.client import ClientCommands
from .commands.movement import MovementParseStatus, parse_movement_command
from .commands.router import CommandResult
from .config import ClientConfig
from .engine.lines import LogLine, diagnostic_line, error_line, line
from .engine.systems.router import MessageRouter
from .engine.world import ClientState
from .protocol import parse_frame

logger = logging.getLogger(__name__)

CLIENT_TYPE = "text"


class ClientSession:
    """
    One client's view of one connection.

    Usage:
        session = ClientSession(load_config("wayfarer.yaml"))
        for log_line in session.handle_frame(raw_text):
            print(log_line)
        result = session.handle_input("/target warden")
    """

    def __init__(self, config: Optional[ClientConfig] = None) -> None:
        self.config = config or ClientConfig()
        self.state = ClientState()
        self.router = MessageRouter(
            self.state,
            combat_config=self.config.combat,
            chat_verbs=self.config.chat_verbs,
        )
        self.commands = ClientCommands(self)

    # ---------- Inbound ----------

    def handle_frame(self, raw: Union[str, bytes]) -> List[LogLine]:
        """
        Process one raw server frame.

        Frames that cannot be parsed are shown verbatim as a single "< raw" line.
        """
        message = parse_frame(raw)
        if message is None:
            text = raw.decode("utf-8", errors="replace") if isinstance(raw, (bytes, bytearray)) else raw
            logger.debug("Unparseable frame: %.200s", text)
            return [diagnostic_line(f"< {text}")]

        lines = self.router.handle(
            message,
            include_diagnostics=self.config.include_diagnostics,
            show_dev_notices=self.config.show_dev_notices,
        )
        if self.config.show_timestamps and message.timestamp is not None:
            stamp = _format_timestamp(message.timestamp)
            if stamp is not None:
                lines = [replace(log_line, text=f"[{stamp}] {log_line.text}") for log_line in lines]
        return lines

    # ---------- Outbound ----------

    def handle_input(self, text: str) -> CommandResult:
        """
        Turn one line of user input into lines and outbound messages.

        "/..." is a client command, "walk north" and friends are movement,
        anything else is sent to the server as a text command.
        """
        text = text.strip()
        if not text:
            return CommandResult()

        if text.startswith("/"):
            return self.commands.router.dispatch(text)

        parsed = parse_movement_command(text)
        if parsed.status is MovementParseStatus.INVALID:
            return CommandResult(lines=[error_line(parsed.error or "Invalid movement command.")])

        result = CommandResult(lines=[line(f"> {text}")])
        if parsed.status is MovementParseStatus.PARSED and parsed.command is not None:
            return result.send("move", parsed.command.to_payload())
        return result.send(self.config.default_command_type, {"text": text})

    def handshake_message(self) -> Dict[str, Any]:
        return {
            "protocolVersion": self.config.protocol_version,
            "clientType": CLIENT_TYPE,
            "clientVersion": self.config.client_version,
            "capabilities": {
                "graphics": False,
                "audio": False,
                "input": ["keyboard"],
                "maxUpdateRate": self.config.max_update_rate,
            },
        }

    # ---------- Status ----------

    def summary_lines(self) -> List[LogLine]:
        state = self.state
        nearby = len(state.proximity.get_entities_for_navigation())
        return [
            line(state.describe_target()),
            line(state.describe_movement()),
            line(f"Nearby: {nearby} | Known entities: {len(state.entities)}"),
        ]


def _format_timestamp(timestamp_ms: int) -> Optional[str]:
    """HH:MM:SS local time, or None when the value is outside the platform's range."""
    try:
        return datetime.fromtimestamp(timestamp_ms / 1000).strftime("%H:%M:%S")
    except (ValueError, OverflowError, OSError):
        logger.debug("Timestamp %s out of range; showing line without it", timestamp_ms)
        return None
