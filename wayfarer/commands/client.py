"""
Built-in client commands

Commands:
- /help - list client commands
- /target [token] - target an entity by id or name, or list known entities
- /clear-target - drop the current target
- /auth guest [name] | token <token> | creds <username> <password>
- /select <characterId> - pick a character after auth
- /create <name> - create a character
- /ping - send a ping
- /raw <json> - send a hand-written message
- /handshake - resend the handshake
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

from ..engine.lines import error_line
from ..protocol import build_envelope, now_ms
from .router import CommandResult, CommandRouter

if TYPE_CHECKING:
    from ..session import ClientSession

DEFAULT_GUEST_NAME = "Wanderer"


class ClientCommands:
    """Handlers for the built-in slash commands of one session."""

    def __init__(self, session: "ClientSession"):
        self.session = session
        self.router = CommandRouter()
        self._register()

    def _register(self) -> None:
        register = self.router.register_handler
        register("help", self.handle_help, category="client", description="Show client commands")
        register(
            "target", self.handle_target, category="target",
            description="Target an entity, or list known entities", usage="[id|name]",
        )
        register(
            "clear-target", self.handle_clear_target, aliases=["untarget"], category="target",
            description="Clear the current target",
        )
        register(
            "auth", self.handle_auth, category="session",
            description="Authenticate", usage="guest [name] | token <token> | creds <username> <password>",
        )
        register("select", self.handle_select, category="session", description="Select a character", usage="<characterId>")
        register("create", self.handle_create, category="session", description="Create a character", usage="<name>")
        register("handshake", self.handle_handshake, category="session", description="Resend the handshake")
        register("ping", self.handle_ping, category="client", description="Ping the server")
        register("raw", self.handle_raw, category="client", description="Send a raw JSON message", usage="<json>")

    # ---------- Client ----------

    def handle_help(self, args: str) -> CommandResult:
        return CommandResult(lines=self.router.help_lines())

    def handle_ping(self, args: str) -> CommandResult:
        return CommandResult().send("ping", {"timestamp": now_ms()})

    def handle_raw(self, args: str) -> CommandResult:
        if not args:
            return CommandResult().say("Usage: /raw <json>")
        try:
            message = json.loads(args)
        except json.JSONDecodeError:
            return CommandResult(lines=[error_line("Raw JSON parse failed.")])

        if not isinstance(message, dict) or not isinstance(message.get("type"), str):
            return CommandResult(lines=[error_line('Raw message must be an object with a "type".')])

        envelope = build_envelope(message["type"], message.get("payload"), message.get("timestamp"))
        return CommandResult(outbound=[envelope])

    # ---------- Target ----------

    def handle_target(self, args: str) -> CommandResult:
        entities = self.session.state.entities
        result = CommandResult()

        if not args:
            known = entities.entities()
            if not known:
                return result.say("No known entities to target.")
            result.say("Known entities:")
            for entity in known:
                result.say(f"- {entity.display_name} ({entity.id})")
            return result

        token = args.split()[0]
        found = entities.resolve(token)
        if found is not None:
            entities.set_target(found.id, found.name)
        else:
            entities.set_target_token(token)
        return result.say(entities.describe_target())

    def handle_clear_target(self, args: str) -> CommandResult:
        entities = self.session.state.entities
        entities.clear_target()
        return CommandResult().say(entities.describe_target())

    # ---------- Session ----------

    def handle_auth(self, args: str) -> CommandResult:
        parts = args.split()
        result = CommandResult()
        if not parts:
            return result.say("Usage: /auth <guest|token|creds> [args]")

        method = parts[0].lower()
        if method == "guest":
            name = parts[1] if len(parts) > 1 else DEFAULT_GUEST_NAME
            return result.send("auth", {"method": "guest", "guestName": name})
        if method == "token":
            if len(parts) < 2:
                return result.say("Usage: /auth token <token>")
            return result.send("auth", {"method": "token", "token": parts[1]})
        if method == "creds":
            if len(parts) < 3:
                return result.say("Usage: /auth creds <username> <password>")
            return result.send("auth", {"method": "credentials", "username": parts[1], "password": parts[2]})
        return result.say("Auth methods: guest, token, creds")

    def handle_select(self, args: str) -> CommandResult:
        if not args:
            return CommandResult().say("Usage: /select <characterId>")
        return CommandResult().send("character_select", {"characterId": args.split()[0]})

    def handle_create(self, args: str) -> CommandResult:
        if not args:
            return CommandResult().say("Usage: /create <name>")
        return CommandResult().send("character_create", {"name": args.split()[0]})

    def handle_handshake(self, args: str) -> CommandResult:
        return CommandResult().send("handshake", self.session.handshake_message())
