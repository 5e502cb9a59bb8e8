"""
Typed payload models for every inbound message kind.

Wire names are camelCase and map onto snake_case attributes. Every field is
optional: a server that leaves something out gets the default, never an
exception. Key presence is kept in ``model_fields_set`` so handlers can tell
"absent" from "explicit null" (see Payload.provided).

parse_payload() is the only entry point handlers use. It prunes the parts of
a payload that fail validation instead of rejecting the whole message.
"""

from __future__ import annotations

import copy
import logging
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)

# Validation/prune rounds before giving up and using an empty model
MAX_REPAIR_PASSES = 5


class Payload(BaseModel):
    """Base for all wire models: camelCase aliases, extra keys ignored."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        coerce_numbers_to_str=True,
    )

    def provided(self, name: str) -> bool:
        """True if the key was present on the wire, even with a null value."""
        return name in self.model_fields_set


P = TypeVar("P", bound=Payload)


# ---------- Shared building blocks ----------


class GaugePayload(Payload):
    current: float | None = None
    max: float | None = None


class PositionPayload(Payload):
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0


class FloatTextPayload(Payload):
    """Floating combat text. Servers send either a bare string or an object."""

    text: str | None = None
    color: str | None = None
    shake: float | None = None

    @model_validator(mode="before")
    @classmethod
    def _accept_bare_string(cls, value: Any) -> Any:
        if isinstance(value, str):
            return {"text": value}
        return value

    def has_hints(self) -> bool:
        return bool(self.color) or self.shake is not None


class EntityPayload(Payload):
    id: str = ""
    name: str = ""
    kind: str = Field(default="", alias="type")
    position: PositionPayload | None = None
    description: str | None = None
    bearing: float | None = None
    elevation: float | None = None
    range: float | None = None


class TextMovementPayload(Payload):
    current_heading: float | None = None
    current_speed: str | None = None
    available_directions: list[str] | None = None


class CharacterPayload(Payload):
    id: str | None = None
    name: str | None = None
    level: int | None = None
    location: str | None = None
    position: PositionPayload | None = None
    health: GaugePayload | None = None
    stamina: GaugePayload | None = None
    mana: GaugePayload | None = None
    text_movement: TextMovementPayload | None = None


class ZonePayload(Payload):
    id: str | None = None
    name: str | None = None
    description: str | None = None
    content_rating: str | None = None
    time_of_day: str | None = None
    weather: str | None = None


class ExitPayload(Payload):
    direction: str | None = None
    name: str | None = None


class PartyMemberPayload(Payload):
    id: str | None = None
    entity_id: str | None = None
    name: str | None = None
    is_leader: bool | None = None
    atb: GaugePayload | None = None
    stamina_pct: float | None = None
    mana_pct: float | None = None

    @property
    def member_id(self) -> str:
        return self.entity_id or self.id or ""


# ---------- Session ----------


class HandshakeAckPayload(Payload):
    compatible: bool = False
    server_version: str | None = None
    protocol_version: str | None = None
    requires_auth: bool = False


class CharacterSummaryPayload(Payload):
    id: str = ""
    name: str = "Unknown"
    level: int = 0
    location: str = "Unknown"


class AuthSuccessPayload(Payload):
    account_id: str | None = None
    characters: list[CharacterSummaryPayload] = Field(default_factory=list)
    can_create_character: bool = False


class AuthErrorPayload(Payload):
    reason: str | None = None
    message: str | None = None


class ErrorPayload(Payload):
    code: str | None = None
    message: str | None = None


# ---------- World ----------


class WorldEntryPayload(Payload):
    character: CharacterPayload | None = None
    zone: ZonePayload | None = None
    exits: list[ExitPayload] | None = None
    entities: list[EntityPayload] | None = None


class EntityChangesPayload(Payload):
    added: list[EntityPayload] = Field(default_factory=list)
    updated: list[EntityPayload] = Field(default_factory=list)
    removed: list[str] = Field(default_factory=list)


class AllyPayload(Payload):
    entity_id: str = ""
    name: str | None = None
    atb: GaugePayload | None = None
    stamina_pct: float | None = None
    mana_pct: float | None = None


class CombatPayload(Payload):
    """Combat status block. Only provided keys change the local state."""

    atb: GaugePayload | None = None
    auto_attack: GaugePayload | None = None
    in_combat: bool | None = None
    auto_attack_target: str | None = None


class StateUpdatePayload(Payload):
    entities: EntityChangesPayload | None = None
    zone: ZonePayload | None = None
    character: CharacterPayload | None = None
    allies: list[AllyPayload] | None = None
    combat: CombatPayload | None = None
    text_movement: TextMovementPayload | None = None


# ---------- Events / chat / commands ----------


class EventPayload(Payload):
    narrative: str | None = None
    event_type: str | None = None
    message: str | None = None

    attacker_id: str | None = None
    attacker_name: str | None = None
    target_id: str | None = None
    target_name: str | None = None
    ability_name: str | None = None
    ability_id: str | None = None
    outcome: str | None = None
    amount: float | None = None
    hit: bool | None = None

    critical: bool | None = None
    glancing: bool | None = None
    deflected: bool | None = None
    penetrating: bool | None = None

    float_text: FloatTextPayload | None = None
    float_text_target: FloatTextPayload | None = None

    # party_* events
    member_id: str | None = None
    member_name: str | None = None
    inviter_id: str | None = None
    inviter_name: str | None = None
    leader_id: str | None = None
    members: list[PartyMemberPayload] | None = None


class ChatPayload(Payload):
    channel: str | None = None
    channel_type: str | None = Field(default=None, alias="type")
    sender: str | None = None
    sender_name: str | None = None
    sender_id: str | None = None
    message: str | None = None
    content: str | None = None

    @property
    def resolved_channel(self) -> str:
        return (self.channel or self.channel_type or "say").strip().lower()

    @property
    def resolved_sender(self) -> str:
        return self.sender or self.sender_name or "Someone"

    @property
    def resolved_message(self) -> str:
        return self.message if self.message is not None else (self.content or "")


class CommandResponseData(Payload):
    members: list[PartyMemberPayload] | None = None


class CommandResponsePayload(Payload):
    success: bool | None = None
    command: str | None = None
    message: str | None = None
    data: CommandResponseData | None = None


# ---------- Proximity ----------


class ProximityEntityPayload(Payload):
    id: str = ""
    name: str | None = None
    kind: str | None = Field(default=None, alias="type")
    bearing: float | None = None
    elevation: float | None = None
    range: float | None = None


class ProximityChannelPayload(Payload):
    entities: list[ProximityEntityPayload] = Field(default_factory=list)
    count: int | None = None
    sample: list[str] | None = None
    last_speaker: str | None = None


class ProximityRosterPayload(Payload):
    danger_state: bool | None = None
    channels: dict[str, ProximityChannelPayload] = Field(default_factory=dict)


class ProximityChannelDeltaPayload(Payload):
    added: list[ProximityEntityPayload] = Field(default_factory=list)
    removed: list[str] = Field(default_factory=list)
    updated: list[ProximityEntityPayload] = Field(default_factory=list)
    count: int | None = None
    sample: list[str] | None = None
    last_speaker: str | None = None


class ProximityDeltaPayload(Payload):
    danger_state: bool | None = None
    channels: dict[str, ProximityChannelDeltaPayload] = Field(default_factory=dict)


# ---------- Tolerant parsing ----------


def _loc_sort_key(loc: tuple[Any, ...]) -> tuple[tuple[int, Any], ...]:
    return tuple((0, part) if isinstance(part, int) else (1, str(part)) for part in loc)


def _prune(data: Any, loc: tuple[Any, ...]) -> bool:
    """Delete the deepest element of ``data`` that ``loc`` resolves to."""
    parent: Any = None
    key: Any = None
    node = data
    for part in loc:
        if isinstance(node, dict) and isinstance(part, str) and part in node:
            parent, key, node = node, part, node[part]
        elif isinstance(node, list) and isinstance(part, int) and 0 <= part < len(node):
            parent, key, node = node, part, node[part]
        else:
            break

    if parent is None:
        return False
    del parent[key]
    return True


def parse_payload(model: type[P], raw: Any) -> P:
    """
    Validate ``raw`` against ``model`` without ever raising.

    Args:
        model: The payload model for the message kind
        raw: The decoded JSON payload (any type)

    Returns:
        A model instance. Invalid leaves are dropped; a non-object payload or
        one that cannot be repaired yields the all-defaults model.
    """
    if not isinstance(raw, dict):
        return model()

    try:
        return model.model_validate(raw)
    except ValidationError as exc:
        errors = exc.errors()

    data = copy.deepcopy(raw)
    for _ in range(MAX_REPAIR_PASSES):
        locs = sorted({tuple(err["loc"]) for err in errors}, key=_loc_sort_key, reverse=True)
        logger.warning("Dropping invalid %s fields: %s", model.__name__, locs)
        pruned = False
        for loc in locs:
            pruned = _prune(data, loc) or pruned
        if not pruned:
            break
        try:
            return model.model_validate(data)
        except ValidationError as exc:
            errors = exc.errors()

    logger.warning("Could not repair %s payload; using defaults", model.__name__)
    return model()
