"""
MessageRouter: dispatches parsed server messages to handlers.

Provides:
- A dispatch table keyed by message kind, built once at construction
- One handler per kind; each mutates ClientState and returns narrative lines
- The "no payload" diagnostic and the diagnostics-gated default handler

Handlers never raise for missing fields: payloads are validated into typed
models with defaults first (see payloads.parse_payload).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional

from ...protocol import IncomingMessage
from ..lines import (
    COLOR_CHAT,
    COLOR_WARNING,
    LogLine,
    diagnostic_line,
    error_line,
    line,
    system_line,
)
from ..payloads import (
    AuthErrorPayload,
    AuthSuccessPayload,
    CharacterPayload,
    ChatPayload,
    CommandResponsePayload,
    ErrorPayload,
    EventPayload,
    HandshakeAckPayload,
    PartyMemberPayload,
    ProximityDeltaPayload,
    ProximityRosterPayload,
    StateUpdatePayload,
    TextMovementPayload,
    WorldEntryPayload,
    ZonePayload,
    parse_payload,
)
from ..world import CharacterSummary, ClientState, EntityInfo, Vector3, ZoneInfo
from .combat import CombatDisplayConfig, CombatFormatter
from .movement import Gauge
from .party import PartyMember
from .proximity import ProximityEntity
from .text import format_content_rating, wrap_text

logger = logging.getLogger(__name__)

DEFAULT_CHAT_VERBS: Dict[str, str] = {
    "say": "says",
    "shout": "shouts",
    "whisper": "whispers",
    "yell": "yells",
}


@dataclass(frozen=True)
class RouteOptions:
    include_diagnostics: bool = False
    show_dev_notices: bool = False


MessageHandler = Callable[[IncomingMessage, RouteOptions], List[LogLine]]


def is_empty_payload(payload: Any) -> bool:
    return payload is None or payload == "" or payload == {}


class MessageRouter:
    """
    Routes inbound messages by kind.

    Usage:
        router = MessageRouter(state, combat_config=CombatDisplayConfig(style="tagged"))
        for log_line in router.handle(message):
            print(log_line)
    """

    def __init__(
        self,
        state: ClientState,
        combat_config: Optional[CombatDisplayConfig] = None,
        chat_verbs: Optional[Mapping[str, str]] = None,
    ) -> None:
        self.state = state
        self.combat_formatter = CombatFormatter(state, combat_config)
        self.chat_verbs = dict(DEFAULT_CHAT_VERBS if chat_verbs is None else chat_verbs)
        self.handlers: Dict[str, MessageHandler] = {
            "handshake_ack": self._handle_handshake_ack,
            "auth_success": self._handle_auth_success,
            "auth_error": self._handle_auth_error,
            "world_entry": self._handle_world_entry,
            "state_update": self._handle_state_update,
            "event": self._handle_event,
            "error": self._handle_error,
            "communication": self._handle_chat,
            "chat": self._handle_chat,
            "command_response": self._handle_command_response,
            "proximity_roster": self._handle_proximity_roster,
            "proximity_roster_delta": self._handle_proximity_delta,
        }

    def handle(
        self,
        message: IncomingMessage,
        include_diagnostics: bool = False,
        show_dev_notices: bool = False,
    ) -> List[LogLine]:
        """
        Route one message and return its narrative lines.

        Args:
            message: Parsed inbound message
            include_diagnostics: Show unknown kinds and proximity summaries
            show_dev_notices: Show dev_* events

        Returns:
            Lines in display order (possibly empty)
        """
        if is_empty_payload(message.payload):
            return [diagnostic_line(f"< {message.kind} (no payload)")]

        handler = self.handlers.get(message.kind)
        if handler is None:
            logger.debug("No handler for message kind %s", message.kind)
            if include_diagnostics:
                return [diagnostic_line(f"< {message.kind} {message.raw_payload_text()}")]
            return []

        if not isinstance(message.payload, dict):
            logger.debug("Ignoring non-object %s payload", message.kind)
            return [diagnostic_line(f"< {message.kind} {message.raw_payload_text()}")]

        logger.debug("Routing %s", message.kind)
        options = RouteOptions(include_diagnostics, show_dev_notices)
        try:
            return handler(message, options)
        except Exception:
            logger.exception("Handler for %s failed", message.kind)
            return [diagnostic_line(f"< {message.kind} {message.raw_payload_text()}")]

    # ---------- Session ----------

    def _handle_handshake_ack(self, message: IncomingMessage, options: RouteOptions) -> List[LogLine]:
        payload = parse_payload(HandshakeAckPayload, message.payload)
        session = self.state.session
        session.compatible = payload.compatible
        session.server_version = payload.server_version
        session.protocol_version = payload.protocol_version
        session.requires_auth = payload.requires_auth

        status = "ok" if payload.compatible else "incompatible"
        auth = "required" if payload.requires_auth else "optional"
        text = (
            f"Handshake: {status} (server {payload.server_version or 'unknown'}, "
            f"protocol {payload.protocol_version or 'unknown'}, auth {auth})"
        )
        if payload.compatible:
            return [system_line(text)]
        return [line(text, COLOR_WARNING)]

    def _handle_auth_success(self, message: IncomingMessage, options: RouteOptions) -> List[LogLine]:
        payload = parse_payload(AuthSuccessPayload, message.payload)
        session = self.state.session
        session.account_id = payload.account_id
        session.characters = [CharacterSummary.from_payload(c) for c in payload.characters]
        session.can_create_character = payload.can_create_character

        lines = [system_line(f"Auth: success (account {payload.account_id or 'unknown'})")]
        for character in session.characters:
            lines.append(system_line(
                f"Character: {character.name} (id {character.id}, "
                f"lvl {character.level}, {character.location})"
            ))
        return lines

    def _handle_auth_error(self, message: IncomingMessage, options: RouteOptions) -> List[LogLine]:
        payload = parse_payload(AuthErrorPayload, message.payload)
        text = f"Auth: error ({payload.reason or 'unknown'})"
        if payload.message:
            text += f" {payload.message}"
        return [error_line(text)]

    def _handle_error(self, message: IncomingMessage, options: RouteOptions) -> List[LogLine]:
        payload = parse_payload(ErrorPayload, message.payload)
        text = f"Error: {payload.code or 'unknown'}"
        if payload.message:
            text += f" {payload.message}"
        return [error_line(text)]

    # ---------- World ----------

    def _handle_world_entry(self, message: IncomingMessage, options: RouteOptions) -> List[LogLine]:
        payload = parse_payload(WorldEntryPayload, message.payload)
        state = self.state
        lines: List[LogLine] = []

        if payload.character is not None:
            self._apply_character(payload.character)
        lines.append(system_line(f"Entering world as {state.player_name or 'Unknown'}"))

        if payload.zone is not None:
            lines.extend(self._enter_zone(payload.zone))

        if payload.exits is not None:
            state.zone.exits = [e.direction for e in payload.exits if e.direction]
            if state.zone.exits:
                lines.append(system_line(_format_exits(state.zone.exits)))

        if payload.entities is None:
            return lines
        state.entities.reset([EntityInfo.from_payload(e) for e in payload.entities])

        visible = [e for e in state.entities.entities() if not state.is_self(e.id)]
        if visible:
            lines.append(system_line("You see:"))
            for entity in visible:
                text = f"- {entity.display_name} ({entity.kind or 'entity'})"
                if entity.description:
                    text += f": {entity.description}"
                lines.append(line(text))
        return lines

    def _enter_zone(self, zone: ZonePayload) -> List[LogLine]:
        self.state.zone = ZoneInfo(
            id=zone.id,
            name=zone.name,
            description=zone.description,
            content_rating=zone.content_rating,
            time_of_day=zone.time_of_day,
            weather=zone.weather,
        )
        lines: List[LogLine] = []
        if zone.name:
            lines.append(system_line(zone.name))
        if zone.description:
            lines.extend(line(text) for text in wrap_text(zone.description))
        if zone.content_rating:
            lines.append(system_line(f"Content Rating: {format_content_rating(zone.content_rating)}"))
        return lines

    def _handle_state_update(self, message: IncomingMessage, options: RouteOptions) -> List[LogLine]:
        payload = parse_payload(StateUpdatePayload, message.payload)
        state = self.state
        lines: List[LogLine] = []

        changes = payload.entities
        if changes is not None:
            for added in changes.added:
                stored = state.entities.upsert(EntityInfo.from_payload(added))
                if stored is not None and not state.is_self(stored.id):
                    lines.append(line(f"Arrives: {stored.display_name} ({stored.kind or 'entity'})"))
            for updated in changes.updated:
                stored = state.entities.upsert(EntityInfo.from_payload(updated))
                if stored is not None and not state.is_self(stored.id):
                    lines.append(line(f"Moves: {stored.display_name}"))
            for removed_id in changes.removed:
                name = state.entities.name_for(removed_id) or removed_id
                if state.entities.remove(removed_id) is not None:
                    lines.append(line(f"Leaves: {name}"))

        if payload.zone is not None:
            lines.extend(self._apply_zone_patch(payload.zone))

        if payload.character is not None:
            self._apply_character(payload.character)

        if payload.allies:
            state.party.apply_ally_status(payload.allies)

        if payload.combat is not None and state.combat.apply(payload.combat):
            lines.append(system_line("You enter combat." if state.combat.in_combat else "Combat ends."))

        # character.textMovement was applied with the character block
        if payload.text_movement is not None:
            self._apply_movement(payload.text_movement)

        return lines

    def _apply_zone_patch(self, zone: ZonePayload) -> List[LogLine]:
        current = self.state.zone
        lines: List[LogLine] = []

        if zone.id is not None:
            current.id = zone.id
        if zone.name and zone.name != current.name:
            current.name = zone.name
            lines.append(system_line(f"You are now in {zone.name}."))
        if zone.description is not None:
            current.description = zone.description

        if zone.time_of_day is not None or zone.weather is not None:
            if zone.time_of_day is not None:
                current.time_of_day = zone.time_of_day
            if zone.weather is not None:
                current.weather = zone.weather
            lines.append(system_line(
                f"Zone: {current.time_of_day or 'unknown'} ({current.weather or 'unknown'})"
            ))

        if zone.content_rating:
            current.content_rating = zone.content_rating
            lines.append(system_line(f"Content Rating: {format_content_rating(zone.content_rating)}"))
        return lines

    def _apply_character(self, character: CharacterPayload) -> None:
        state = self.state
        if character.id:
            state.player_id = character.id
        if character.name:
            state.player_name = character.name
        if character.position is not None:
            state.position = Vector3.from_payload(character.position)
        if character.health is not None:
            state.health = Gauge.from_payload(character.health, state.health)
        if character.stamina is not None:
            state.stamina = Gauge.from_payload(character.stamina, state.stamina)
        if character.mana is not None:
            state.mana = Gauge.from_payload(character.mana, state.mana)
        if character.text_movement is not None:
            self._apply_movement(character.text_movement)

    def _apply_movement(self, movement: TextMovementPayload) -> None:
        self.state.movement.update(
            heading=movement.current_heading,
            speed=movement.current_speed,
            available_directions=movement.available_directions,
        )

    # ---------- Events ----------

    def _handle_event(self, message: IncomingMessage, options: RouteOptions) -> List[LogLine]:
        payload = parse_payload(EventPayload, message.payload)
        event_type = (payload.event_type or "").strip()
        prefix = event_type.lower()

        if prefix.startswith("party_"):
            return self._handle_party_event(payload)
        if prefix.startswith("combat_"):
            return self.combat_formatter.format(payload)
        if prefix.startswith("dev_"):
            if not options.show_dev_notices:
                return []
            return [diagnostic_line(f"[dev] {payload.narrative or payload.message or event_type}")]
        if payload.narrative:
            return [line(payload.narrative)]
        if event_type:
            return [system_line(f"Event: {event_type}")]
        return [system_line(f"Event: {message.raw_payload_text()}")]

    def _handle_party_event(self, event: EventPayload) -> List[LogLine]:
        party = self.state.party
        event_type = (event.event_type or "").strip().lower()
        member_name = event.member_name or self.state.entities.name_for(event.member_id) or event.member_id or "Someone"
        text: Optional[str] = None

        if event_type == "party_invite":
            inviter = event.inviter_name or self.state.entities.name_for(event.inviter_id) or "Someone"
            text = f"{inviter} invites you to join a party."
        elif event_type in ("party_joined", "party_member_joined"):
            if event.member_id:
                party.upsert(PartyMember(id=event.member_id, name=event.member_name or ""))
            text = f"{member_name} joins the party."
        elif event_type in ("party_left", "party_member_left", "party_kicked"):
            if event.member_id and self.state.is_self(event.member_id):
                party.clear()
            elif event.member_id:
                party.remove(event.member_id)
            text = f"{member_name} leaves the party."
        elif event_type in ("party_leader_changed", "party_leader"):
            party.set_leader(event.leader_id)
            leader = self.state.entities.name_for(event.leader_id) or _member_name(party, event.leader_id)
            text = f"{leader} is now the party leader."
        elif event_type == "party_disbanded":
            party.clear()
            text = "The party has been disbanded."

        if event.members is not None:
            party.replace(_party_members(event.members))

        if event.narrative:
            text = event.narrative
        if text is None:
            text = event.message or f"Party: {event.event_type}"
        return [system_line(text)]

    # ---------- Chat / commands ----------

    def _handle_chat(self, message: IncomingMessage, options: RouteOptions) -> List[LogLine]:
        payload = parse_payload(ChatPayload, message.payload)
        channel = payload.resolved_channel
        sender = payload.resolved_sender
        text = payload.resolved_message
        from_self = self._is_local_sender(payload)

        verb = self.chat_verbs.get(channel)
        if verb is not None:
            if from_self:
                return [line(f"You {channel}, {text}", COLOR_CHAT)]
            return [line(f"{sender} {verb}, {text}", COLOR_CHAT)]
        if channel == "emote":
            return [line(f"{sender} {text}", COLOR_CHAT)]
        if channel == "tell" and not from_self:
            return [line(f"{sender} tells you, {text}", COLOR_CHAT)]
        return [line(f"[{channel}] {'You' if from_self else sender}: {text}", COLOR_CHAT)]

    def _is_local_sender(self, payload: ChatPayload) -> bool:
        if payload.sender_id:
            return self.state.is_self(payload.sender_id)
        name = self.state.player_name
        sender = payload.sender or payload.sender_name
        return bool(name and sender and sender.lower() == name.lower())

    def _handle_command_response(self, message: IncomingMessage, options: RouteOptions) -> List[LogLine]:
        payload = parse_payload(CommandResponsePayload, message.payload)
        lines: List[LogLine] = []

        if payload.success is False:
            parts = ["Command failed:"]
            if payload.command:
                parts.append(payload.command)
            if payload.message:
                parts.append(payload.message)
            lines.append(error_line(" ".join(parts)))
        elif payload.message:
            lines.append(system_line(payload.message))

        if payload.data is not None and payload.data.members is not None:
            party = self.state.party
            party.replace(_party_members(payload.data.members))
            members = party.members()
            if not members:
                lines.append(system_line("Party members: none"))
            else:
                lines.append(system_line("Party members:"))
                for member in members:
                    suffix = " (leader)" if member.is_leader else ""
                    lines.append(system_line(f"- {member.display_name}{suffix}"))
        return lines

    # ---------- Proximity ----------

    def _handle_proximity_roster(self, message: IncomingMessage, options: RouteOptions) -> List[LogLine]:
        payload = parse_payload(ProximityRosterPayload, message.payload)
        roster = self.state.proximity
        roster.update_danger_state(payload.danger_state)

        for name, channel in payload.channels.items():
            roster.replace_channel(
                name,
                [ProximityEntity.from_payload(e) for e in channel.entities if e.id],
                count=channel.count,
                sample=channel.sample,
                sample_provided=channel.provided("sample"),
                last_speaker=channel.last_speaker,
                last_speaker_provided=channel.provided("last_speaker"),
            )

        if not options.include_diagnostics:
            return []
        return [diagnostic_line(f"< proximity_roster {self._roster_summary(payload.channels)}")]

    def _handle_proximity_delta(self, message: IncomingMessage, options: RouteOptions) -> List[LogLine]:
        payload = parse_payload(ProximityDeltaPayload, message.payload)
        roster = self.state.proximity
        roster.update_danger_state(payload.danger_state)

        for name, delta in payload.channels.items():
            roster.apply_delta(name, delta)

        if not options.include_diagnostics:
            return []
        return [diagnostic_line(f"< proximity_roster_delta {self._roster_summary(payload.channels)}")]

    def _roster_summary(self, channel_names: Mapping[str, Any]) -> str:
        roster = self.state.proximity
        parts = []
        for name in channel_names:
            channel = roster.channel(name)
            if channel is not None:
                parts.append(f"{channel.name}={channel.count}")
        summary = ", ".join(parts) or "no channels"
        if roster.danger_state:
            summary += " (danger)"
        return summary


def _format_exits(exits: List[str]) -> str:
    return "Exits: " + " ".join(f"[{direction}]" for direction in exits)


def _party_members(members: List[PartyMemberPayload]) -> List[PartyMember]:
    return [PartyMember.from_payload(m) for m in members if m.member_id]


def _member_name(party, member_id: Optional[str]) -> str:
    if member_id:
        member = party.get(member_id)
        if member is not None:
            return member.display_name
    return member_id or "Someone"
