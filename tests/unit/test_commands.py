"""
Unit tests for client-side input handling.

Tests the movement parser, CommandRouter registration/dispatch/help and the
built-in slash commands.
"""

import pytest

from tests.fixtures.messages import message, texts
from wayfarer.commands.movement import (
    MovementCommand,
    MovementParseStatus,
    parse_heading,
    parse_movement_command,
)
from wayfarer.commands.router import CommandResult, CommandRouter
from wayfarer.engine.lines import COLOR_ERROR
from wayfarer.engine.world import EntityInfo

# =============================================================================
# Test Movement Parser
# =============================================================================


@pytest.mark.unit
class TestMovementParser:
    """Tests for parse_movement_command()."""

    @pytest.mark.parametrize(
        "text, expected",
        [
            ("walk", MovementCommand("walk")),
            ("stop", MovementCommand("stop")),
            ("stop north", MovementCommand("stop")),
            ("run north", MovementCommand("run", compass="N")),
            ("Jog.NE", MovementCommand("jog", compass="NE")),
            ("walk south-west", MovementCommand("walk", compass="SW")),
            ("walk 270", MovementCommand("walk", heading=270)),
            ("run 360", MovementCommand("run", heading=0)),
            ("run -90", MovementCommand("run", heading=270)),
        ],
    )
    def test_parsed(self, text, expected):
        parsed = parse_movement_command(text)
        assert parsed.status is MovementParseStatus.PARSED
        assert parsed.command == expected

    @pytest.mark.parametrize("text", ["", "   ", "look", "say hello", "walking north"])
    def test_not_movement(self, text):
        assert parse_movement_command(text).status is MovementParseStatus.NOT_MOVEMENT

    def test_invalid_direction(self):
        parsed = parse_movement_command("walk sideways")
        assert parsed.status is MovementParseStatus.INVALID
        assert parsed.error == "Invalid movement direction: sideways"
        assert parsed.command is None

    def test_parse_heading(self):
        assert parse_heading("45") == 45
        assert parse_heading("720") == 0
        assert parse_heading("ne") is None

    def test_payloads(self):
        assert MovementCommand("run", compass="NE").to_payload(timestamp=5) == {
            "method": "compass", "speed": "run", "compass": "NE", "timestamp": 5,
        }
        assert MovementCommand("walk", heading=90).to_payload(timestamp=5) == {
            "method": "heading", "speed": "walk", "heading": 90, "timestamp": 5,
        }
        assert MovementCommand("stop").to_payload(timestamp=5) == {"method": "heading", "speed": "stop", "timestamp": 5}


# =============================================================================
# Test CommandRouter
# =============================================================================


@pytest.fixture
def command_router():
    router = CommandRouter()

    @router.register(names=["echo", "say"], aliases=["e"], category="chat", description="Echo text", usage="<text>")
    def handle_echo(args):
        return CommandResult().say(f"echo: {args}")

    @router.register(names=["fail"], category="debug")
    def handle_fail(args):
        raise RuntimeError("boom")

    return router


@pytest.mark.unit
class TestCommandRouter:
    """Tests for registration and dispatch."""

    def test_dispatch_with_and_without_slash(self, command_router):
        assert texts(command_router.dispatch("/echo hi there").lines) == ["echo: hi there"]
        assert texts(command_router.dispatch("echo hi").lines) == ["echo: hi"]

    def test_names_and_aliases_case_insensitive(self, command_router):
        assert texts(command_router.dispatch("/SAY x").lines) == ["echo: x"]
        assert texts(command_router.dispatch("/e y").lines) == ["echo: y"]

    def test_unknown_command(self, command_router):
        assert texts(command_router.dispatch("/dance").lines) == ["Unknown command: dance"]

    def test_empty_command(self, command_router):
        result = command_router.dispatch("/")
        assert result.lines == [] and result.outbound == []

    def test_handler_exception_is_reported(self, command_router):
        lines = command_router.dispatch("/fail").lines
        assert texts(lines) == ["Something went wrong executing that command."]
        assert lines[0].color_key == COLOR_ERROR

    def test_help_lines(self, command_router):
        assert texts(command_router.help_lines()) == [
            "Client commands:",
            "Chat:",
            "  /echo <text> (aliases: /e) - Echo text",
            "Debug:",
            "  /fail",
        ]

    def test_help_single_category(self, command_router):
        assert texts(command_router.help_lines("debug")) == ["Client commands:", "Debug:", "  /fail"]


# =============================================================================
# Test Built-in Commands
# =============================================================================


@pytest.mark.unit
class TestClientCommands:
    """Tests for the slash commands a session registers."""

    @pytest.mark.parametrize(
        "command, payload",
        [
            ("/auth guest", {"method": "guest", "guestName": "Wanderer"}),
            ("/auth guest Aria", {"method": "guest", "guestName": "Aria"}),
            ("/auth token abc123", {"method": "token", "token": "abc123"}),
            ("/auth creds aria hunter2", {"method": "credentials", "username": "aria", "password": "hunter2"}),
        ],
    )
    def test_auth_variants(self, session, command, payload):
        result = session.handle_input(command)
        assert len(result.outbound) == 1
        assert result.outbound[0]["type"] == "auth"
        assert result.outbound[0]["payload"] == payload

    @pytest.mark.parametrize("command", ["/auth", "/auth token", "/auth creds aria", "/auth magic"])
    def test_auth_usage(self, session, command):
        result = session.handle_input(command)
        assert result.outbound == []
        assert len(result.lines) == 1

    def test_select_and_create(self, session):
        select = session.handle_input("/select char-7").outbound[0]
        assert (select["type"], select["payload"]) == ("character_select", {"characterId": "char-7"})

        create = session.handle_input("/create Brom").outbound[0]
        assert (create["type"], create["payload"]) == ("character_create", {"name": "Brom"})

        assert session.handle_input("/select").outbound == []

    def test_ping_and_handshake(self, session):
        ping = session.handle_input("/ping").outbound[0]
        assert ping["type"] == "ping"
        assert isinstance(ping["payload"]["timestamp"], int)

        handshake = session.handle_input("/handshake").outbound[0]
        assert handshake["type"] == "handshake"
        assert handshake["payload"]["clientType"] == "text"

    def test_raw(self, session):
        result = session.handle_input('/raw {"type": "look", "payload": {"at": "gate"}}')
        assert result.outbound[0]["type"] == "look"
        assert result.outbound[0]["payload"] == {"at": "gate"}

    @pytest.mark.parametrize("command", ["/raw {oops", "/raw [1, 2]", '/raw {"payload": {}}'])
    def test_raw_rejects_bad_input(self, session, command):
        result = session.handle_input(command)
        assert result.outbound == []
        assert result.lines[0].color_key == COLOR_ERROR

    def test_target_lists_known_entities(self, session):
        assert texts(session.handle_input("/target").lines) == ["No known entities to target."]

        session.state.entities.upsert(EntityInfo(id="npc-1", name="Warden"))
        assert texts(session.handle_input("/target").lines) == ["Known entities:", "- Warden (npc-1)"]

    def test_target_by_name_and_id(self, session):
        session.state.entities.upsert(EntityInfo(id="npc-1", name="Warden"))

        assert texts(session.handle_input("/target warden").lines) == ["Target: npc-1"]
        assert session.state.entities.target_name == "Warden"

        session.handle_input("/target NPC-1")
        assert session.state.entities.target_id == "npc-1"

    def test_unresolved_target_kept_as_token(self, session):
        assert texts(session.handle_input("/target ghost").lines) == ["Target: ghost"]
        assert session.state.entities.target_id is None

    def test_clear_target_and_alias(self, session):
        session.handle_input("/target ghost")
        assert texts(session.handle_input("/clear-target").lines) == ["Target: none"]

        session.handle_input("/target ghost")
        assert texts(session.handle_input("/untarget").lines) == ["Target: none"]

    def test_target_cleared_when_entity_leaves(self, session):
        session.router.handle(message("world_entry", {"entities": [{"id": "npc-1", "name": "Warden"}]}))
        session.handle_input("/target Warden")
        session.router.handle(message("state_update", {"entities": {"removed": ["npc-1"]}}))
        assert session.state.describe_target() == "Target: none"

    def test_help_lists_builtins(self, session):
        lines = texts(session.handle_input("/help").lines)
        assert lines[0] == "Client commands:"
        assert any(text.startswith("  /clear-target (aliases: /untarget)") for text in lines)
        assert any(text.startswith("  /auth guest [name]") for text in lines)


# =============================================================================
# Test Free-text Input
# =============================================================================


@pytest.mark.unit
class TestFreeTextInput:
    """Tests for ClientSession.handle_input() outside slash commands."""

    def test_movement_sends_move(self, session):
        result = session.handle_input("run ne")
        assert texts(result.lines) == ["> run ne"]
        envelope = result.outbound[0]
        assert envelope["type"] == "move"
        assert envelope["payload"]["method"] == "compass"
        assert envelope["payload"]["compass"] == "NE"

    def test_invalid_movement_is_not_sent(self, session):
        result = session.handle_input("walk sideways")
        assert result.outbound == []
        assert texts(result.lines) == ["Invalid movement direction: sideways"]

    def test_plain_text_uses_default_command_type(self, session):
        result = session.handle_input("  look at gate ")
        assert texts(result.lines) == ["> look at gate"]
        assert result.outbound[0]["type"] == "command"
        assert result.outbound[0]["payload"] == {"text": "look at gate"}

    def test_blank_input(self, session):
        result = session.handle_input("   ")
        assert result.lines == [] and result.outbound == []
