"""
Unit tests for MessageRouter.

Tests dispatch, the no-payload diagnostic, diagnostics gating and the
line formats of every recognised message kind.
"""

import pytest

from tests.fixtures.messages import WORLD_ENTRY, message, texts
from wayfarer.engine.lines import COLOR_CHAT, COLOR_DIAGNOSTIC, COLOR_ERROR
from wayfarer.engine.systems.router import MessageRouter
from wayfarer.engine.world import EntityInfo

# =============================================================================
# Test Dispatch
# =============================================================================


@pytest.mark.unit
class TestDispatch:
    """Tests for routing and the default handler."""

    @pytest.mark.parametrize("payload", [None, "", {}])
    def test_empty_payload_yields_single_diagnostic(self, router, state, payload):
        """Test that empty payloads never mutate state, whatever the kind."""
        lines = router.handle(message("world_entry", payload))

        assert texts(lines) == ["< world_entry (no payload)"]
        assert lines[0].color_key == COLOR_DIAGNOSTIC
        assert state.player_name is None

    @pytest.mark.parametrize("payload, raw", [("garbage", '"garbage"'), ([], "[]"), (42, "42")])
    def test_non_object_payload_is_diagnostic_only(self, entered_router, state, payload, raw):
        """Test that a known kind with a non-object payload mutates nothing."""
        state.entities.set_target("npc-1", "Warden")

        lines = entered_router.handle(message("world_entry", payload))

        assert texts(lines) == [f"< world_entry {raw}"]
        assert lines[0].color_key == COLOR_DIAGNOSTIC
        assert len(state.entities) == 2
        assert state.zone.name == "Ashen Gate"
        assert state.describe_target() == "Target: npc-1"

    def test_unknown_kind_silent_by_default(self, router):
        assert router.handle(message("weather_report", {"rain": True})) == []

    def test_unknown_kind_shown_with_diagnostics(self, router):
        lines = router.handle(message("weather_report", {"rain": True}), include_diagnostics=True)
        assert texts(lines) == ['< weather_report {"rain":true}']

    def test_handler_failure_becomes_diagnostic(self, router, monkeypatch):
        """Test that a failing handler never raises out of handle()."""
        def boom(msg, options):
            raise RuntimeError("boom")

        monkeypatch.setitem(router.handlers, "chat", boom)
        lines = router.handle(message("chat", {"message": "hi"}))
        assert texts(lines) == ['< chat {"message":"hi"}']

    def test_dispatch_table_covers_known_kinds(self, router):
        expected = {
            "handshake_ack", "auth_success", "auth_error", "world_entry", "state_update", "event",
            "error", "communication", "chat", "command_response", "proximity_roster", "proximity_roster_delta",
        }
        assert expected <= set(router.handlers)


# =============================================================================
# Test Session Messages
# =============================================================================


@pytest.mark.unit
class TestSessionMessages:
    """Tests for handshake, auth and error messages."""

    def test_handshake_ack(self, router, state):
        lines = router.handle(message("handshake_ack", {
            "compatible": True, "serverVersion": "2.1.0", "protocolVersion": "1.0.0", "requiresAuth": True,
        }))
        assert texts(lines) == ["Handshake: ok (server 2.1.0, protocol 1.0.0, auth required)"]
        assert state.session.server_version == "2.1.0"
        assert state.session.requires_auth is True

    def test_handshake_incompatible(self, router):
        lines = router.handle(message("handshake_ack", {"compatible": False}))
        assert texts(lines) == ["Handshake: incompatible (server unknown, protocol unknown, auth optional)"]

    def test_auth_success_lists_characters(self, router, state):
        lines = router.handle(message("auth_success", {
            "accountId": "acc-7",
            "characters": [{"id": "c1", "name": "Aria", "level": 3, "location": "Ashen Gate"}, {"id": "c2"}],
            "canCreateCharacter": True,
        }))
        assert texts(lines) == [
            "Auth: success (account acc-7)",
            "Character: Aria (id c1, lvl 3, Ashen Gate)",
            "Character: Unknown (id c2, lvl 0, Unknown)",
        ]
        assert state.session.account_id == "acc-7"
        assert state.session.can_create_character is True
        assert [c.id for c in state.session.characters] == ["c1", "c2"]

    def test_auth_error(self, router):
        lines = router.handle(message("auth_error", {"reason": "bad_token", "message": "Token expired"}))
        assert texts(lines) == ["Auth: error (bad_token) Token expired"]
        assert lines[0].color_key == COLOR_ERROR

    def test_error(self, router):
        lines = router.handle(message("error", {"code": "RATE_LIMIT", "message": "Slow down"}))
        assert texts(lines) == ["Error: RATE_LIMIT Slow down"]
        assert lines[0].color_key == COLOR_ERROR


# =============================================================================
# Test World Entry
# =============================================================================


@pytest.mark.unit
class TestWorldEntry:
    """Tests for world_entry handling."""

    def test_world_entry_lines(self, router):
        lines = texts(router.handle(message("world_entry", WORLD_ENTRY)))
        assert lines == [
            "Entering world as Aria",
            "Ashen Gate",
            "A crumbling gatehouse.",
            "Content Rating: Teen (13+) [T]",
            "Exits: [north] [east]",
            "You see:",
            "- Warden (npc): A stern guard.",
            "- Crow (creature)",
        ]

    def test_world_entry_updates_state(self, router, state):
        router.handle(message("world_entry", WORLD_ENTRY))

        assert state.player_id == "player-1"
        assert state.position.x == 1 and state.position.z == 2
        assert state.health.current == 80
        assert state.movement.heading == 90
        assert state.movement.speed == "walk"
        assert state.movement.available_directions == ["north", "east"]
        assert state.zone.exits == ["north", "east"]
        assert state.zone.content_rating == "T"
        assert len(state.entities) == 2

    def test_world_entry_resets_directory(self, router, state):
        state.entities.upsert(EntityInfo(id="ghost", name="Ghost"))
        router.handle(message("world_entry", WORLD_ENTRY))
        assert "ghost" not in state.entities

    def test_long_description_wrapped(self, router):
        description = " ".join(["stone"] * 40)
        lines = texts(router.handle(message("world_entry", {"zone": {"name": "Hall", "description": description}})))
        wrapped = [text for text in lines if text.startswith("stone")]
        assert len(wrapped) > 1
        assert all(len(text) <= 78 for text in wrapped)

    def test_unknown_rating(self, router):
        lines = texts(router.handle(message("world_entry", {"zone": {"contentRating": "R18"}})))
        assert "Content Rating: R18 [Unknown]" in lines

    def test_zone_only_entry_keeps_directory_and_target(self, entered_router, state):
        """Test that the directory is only reset when an entities list is sent."""
        state.entities.set_target("npc-1", "Warden")

        lines = texts(entered_router.handle(message("world_entry", {"zone": {"name": "Elsewhere"}})))

        assert lines == ["Entering world as Aria", "Elsewhere"]
        assert len(state.entities) == 2
        assert state.describe_target() == "Target: npc-1"
        assert state.zone.name == "Elsewhere"

    def test_empty_entities_list_resets(self, entered_router, state):
        entered_router.handle(message("world_entry", {"entities": []}))
        assert len(state.entities) == 0
        assert state.zone.name == "Ashen Gate"

    def test_empty_exits_list_emits_no_line(self, router, state):
        lines = texts(router.handle(message("world_entry", {"zone": {"name": "Cell"}, "exits": []})))
        assert not any(text.startswith("Exits:") for text in lines)
        assert state.zone.exits == []

    def test_self_not_listed(self, router):
        payload = dict(WORLD_ENTRY, entities=[{"id": "player-1", "name": "Aria", "type": "player"}])
        lines = texts(router.handle(message("world_entry", payload)))
        assert "You see:" not in lines


# =============================================================================
# Test State Update
# =============================================================================


@pytest.mark.unit
class TestStateUpdate:
    """Tests for incremental state_update handling."""

    def test_entity_changes(self, entered_router, state):
        lines = texts(entered_router.handle(message("state_update", {"entities": {
            "added": [{"id": "npc-3", "name": "Peddler", "type": "npc"}],
            "updated": [{"id": "npc-2", "position": {"x": 5, "y": 0, "z": 5}}],
            "removed": ["npc-1"],
        }})))

        assert lines == ["Arrives: Peddler (npc)", "Moves: Crow", "Leaves: Warden"]
        assert "npc-1" not in state.entities
        assert state.entities.get("npc-2").name == "Crow"
        assert state.entities.get("npc-2").kind == "creature"

    def test_does_not_reset_directory(self, entered_router, state):
        entered_router.handle(message("state_update", {"entities": {"added": [{"id": "npc-3"}]}}))
        assert len(state.entities) == 3

    def test_removing_unknown_entity_is_silent(self, entered_router):
        assert entered_router.handle(message("state_update", {"entities": {"removed": ["nobody"]}})) == []

    def test_zone_time_and_weather(self, entered_router, state):
        lines = texts(entered_router.handle(message("state_update", {"zone": {"timeOfDay": "dusk", "weather": "rain"}})))
        assert lines == ["Zone: dusk (rain)"]

        lines = texts(entered_router.handle(message("state_update", {"zone": {"weather": "clear"}})))
        assert lines == ["Zone: dusk (clear)"]
        assert state.zone.name == "Ashen Gate"

    def test_combat_patch_and_transition_lines(self, entered_router, state):
        lines = texts(entered_router.handle(message("state_update", {"combat": {"inCombat": True, "autoAttackTarget": "npc-1"}})))
        assert lines == ["You enter combat."]
        assert state.combat.auto_attack_target_id == "npc-1"

        lines = texts(entered_router.handle(message("state_update", {"combat": {"atb": {"current": 5, "max": 10}}})))
        assert lines == []
        assert state.combat.in_combat is True

        lines = texts(entered_router.handle(message("state_update", {"combat": {"inCombat": False}})))
        assert lines == ["Combat ends."]

    def test_text_movement_top_level_and_nested(self, entered_router, state):
        entered_router.handle(message("state_update", {"textMovement": {"currentHeading": 180}}))
        assert state.movement.heading == 180
        assert state.movement.speed == "walk"

        entered_router.handle(message("state_update", {"character": {"textMovement": {"currentSpeed": "run"}}}))
        assert state.movement.speed == "run"
        assert state.movement.available_directions == ["north", "east"]

    def test_character_vitals(self, entered_router, state):
        entered_router.handle(message("state_update", {"character": {"health": {"current": 10}, "mana": {"current": 3, "max": 9}}}))
        assert state.health.current == 10
        assert state.health.max == 100
        assert state.mana.fraction == pytest.approx(1 / 3)

    def test_allies_update_party(self, entered_router, state):
        entered_router.handle(message("state_update", {"allies": [{"entityId": "p2", "name": "Brom", "staminaPct": 40}]}))
        assert state.party.get("p2").stamina_pct == 40


# =============================================================================
# Test Events
# =============================================================================


@pytest.mark.unit
class TestEvents:
    """Tests for event dispatch by eventType prefix."""

    def test_narrative(self, router):
        assert texts(router.handle(message("event", {"narrative": "A bell tolls."}))) == ["A bell tolls."]

    def test_event_type_only(self, router):
        assert texts(router.handle(message("event", {"eventType": "door_opened"}))) == ["Event: door_opened"]

    def test_raw_fallback(self, router):
        assert texts(router.handle(message("event", {"misc": 1}))) == ['Event: {"misc":1}']

    def test_dev_notices_gated(self, router):
        payload = {"eventType": "dev_tick", "message": "tick 42"}
        assert router.handle(message("event", payload)) == []
        assert texts(router.handle(message("event", payload), show_dev_notices=True)) == ["[dev] tick 42"]

    def test_party_join_and_leave(self, router, state):
        lines = texts(router.handle(message("event", {"eventType": "party_joined", "memberId": "p2", "memberName": "Brom"})))
        assert lines == ["Brom joins the party."]
        assert "p2" in state.party

        lines = texts(router.handle(message("event", {"eventType": "party_left", "memberId": "p2", "memberName": "Brom"})))
        assert lines == ["Brom leaves the party."]
        assert "p2" not in state.party

    def test_party_invite_and_leader(self, router, state):
        assert texts(router.handle(message("event", {"eventType": "party_invite", "inviterName": "Brom"}))) == [
            "Brom invites you to join a party."
        ]
        router.handle(message("event", {"eventType": "party_joined", "memberId": "p2", "memberName": "Brom"}))
        assert texts(router.handle(message("event", {"eventType": "party_leader_changed", "leaderId": "p2"}))) == [
            "Brom is now the party leader."
        ]
        assert state.party.leader_id == "p2"

    def test_party_disbanded(self, router, state):
        router.handle(message("event", {"eventType": "party_joined", "memberId": "p2"}))
        assert texts(router.handle(message("event", {"eventType": "party_disbanded"}))) == ["The party has been disbanded."]
        assert len(state.party) == 0

    def test_party_members_list_replaces_roster(self, router, state):
        router.handle(message("event", {
            "eventType": "party_update",
            "narrative": "Party updated.",
            "members": [{"entityId": "p1", "name": "Aria", "isLeader": True}, {"id": "p3", "name": "Cade"}],
        }))
        assert [m.id for m in state.party.members()] == ["p1", "p3"]
        assert state.party.leader_id == "p1"


# =============================================================================
# Test Chat
# =============================================================================


@pytest.mark.unit
class TestChat:
    """Tests for communication/chat rendering."""

    @pytest.mark.parametrize(
        "payload, expected",
        [
            ({"channel": "say", "sender": "Aria", "message": "Hello there"}, "Aria says, Hello there"),
            ({"channel": "shout", "sender": "Brom", "message": "Run!"}, "Brom shouts, Run!"),
            ({"channel": "whisper", "senderName": "Cade", "content": "psst"}, "Cade whispers, psst"),
            ({"channel": "yell", "sender": "Dag", "message": "Oi"}, "Dag yells, Oi"),
            ({"channel": "emote", "sender": "Aria", "message": "waves."}, "Aria waves."),
            ({"channel": "tell", "sender": "Brom", "message": "meet me"}, "Brom tells you, meet me"),
            ({"channel": "guild", "sender": "Brom", "message": "raid at 8"}, "[guild] Brom: raid at 8"),
            ({"type": "say", "message": "boo"}, "Someone says, boo"),
        ],
    )
    def test_channel_formats(self, router, payload, expected):
        lines = router.handle(message("chat", payload))
        assert texts(lines) == [expected]
        assert lines[0].color_key == COLOR_CHAT

    def test_communication_kind_same_as_chat(self, router):
        lines = router.handle(message("communication", {"channel": "say", "sender": "Aria", "message": "Hi"}))
        assert texts(lines) == ["Aria says, Hi"]

    def test_local_sender(self, entered_router):
        lines = entered_router.handle(message("chat", {"channel": "say", "sender": "Aria", "senderId": "player-1", "message": "Hi"}))
        assert texts(lines) == ["You say, Hi"]

        lines = entered_router.handle(message("chat", {"channel": "guild", "sender": "aria", "message": "Hi"}))
        assert texts(lines) == ["[guild] You: Hi"]

    def test_custom_verb_table(self, state):
        router = MessageRouter(state, chat_verbs={"say": "says", "mutter": "mutters"})
        lines = router.handle(message("chat", {"channel": "mutter", "sender": "Brom", "message": "hm"}))
        assert texts(lines) == ["Brom mutters, hm"]

        lines = router.handle(message("chat", {"channel": "shout", "sender": "Brom", "message": "HEY"}))
        assert texts(lines) == ["[shout] Brom: HEY"]


# =============================================================================
# Test Command Responses
# =============================================================================


@pytest.mark.unit
class TestCommandResponse:
    """Tests for command_response rendering."""

    def test_success_message(self, router):
        assert texts(router.handle(message("command_response", {"success": True, "message": "You sit."}))) == ["You sit."]

    def test_failure(self, router):
        lines = router.handle(message("command_response", {"success": False, "command": "dance", "message": "Not here."}))
        assert texts(lines) == ["Command failed: dance Not here."]
        assert lines[0].color_key == COLOR_ERROR

    def test_party_members(self, router, state):
        lines = texts(router.handle(message("command_response", {
            "success": True,
            "command": "party",
            "data": {"members": [{"entityId": "p2", "name": "Brom"}, {"entityId": "p1", "name": "Aria", "isLeader": True}]},
        })))
        assert lines == ["Party members:", "- Aria (leader)", "- Brom"]
        assert state.party.leader_id == "p1"


# =============================================================================
# Test Proximity Messages
# =============================================================================


@pytest.mark.unit
class TestProximityMessages:
    """Tests for proximity_roster / proximity_roster_delta."""

    ROSTER = {
        "dangerState": True,
        "channels": {
            "say": {"entities": [{"id": "npc-1", "name": "Warden", "type": "npc", "range": 4}], "sample": ["Warden"]},
            "see": {"entities": [{"id": "npc-2", "name": "Crow"}, {"id": "npc-1"}], "count": 7},
        },
    }

    def test_roster_is_silent_and_applied(self, router, state):
        assert router.handle(message("proximity_roster", self.ROSTER)) == []

        roster = state.proximity
        assert roster.danger_state is True
        assert roster.channel("say").sample == ["Warden"]
        assert roster.channel("say").count == 1
        assert roster.channel("see").count == 7
        assert [e.id for e in roster.get_entities_for_navigation()] == ["npc-1", "npc-2"]

    def test_roster_diagnostics(self, router):
        lines = texts(router.handle(message("proximity_roster", self.ROSTER), include_diagnostics=True))
        assert lines == ["< proximity_roster say=1, see=7 (danger)"]

    def test_roster_snapshot_without_sample_keeps_it(self, router, state):
        router.handle(message("proximity_roster", self.ROSTER))
        router.handle(message("proximity_roster", {"channels": {"say": {"entities": []}}}))
        assert state.proximity.channel("say").sample == ["Warden"]
        assert state.proximity.danger_state is True

    def test_delta_applied(self, router, state):
        router.handle(message("proximity_roster", self.ROSTER))
        lines = router.handle(message("proximity_roster_delta", {
            "dangerState": False,
            "channels": {"say": {"removed": ["npc-1"], "sample": None, "lastSpeaker": "Brom"}},
        }))

        assert lines == []
        channel = state.proximity.channel("say")
        assert channel.entities == {}
        assert channel.sample is None
        assert channel.last_speaker == "Brom"
        assert state.proximity.danger_state is False
