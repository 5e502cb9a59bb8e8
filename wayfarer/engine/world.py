# wayfarer/engine/world.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Iterable

from .payloads import CharacterSummaryPayload, EntityPayload, PositionPayload
from .systems.movement import CombatStatus, Gauge, MovementState
from .systems.party import PartyRoster
from .systems.proximity import ProximityRosterCache

logger = logging.getLogger(__name__)

# Simple type aliases for clarity
EntityId = str
Direction = str  # "north", "up", "gate", ...


@dataclass(frozen=True)
class Vector3:
    """World-space position. Y is up; the ground plane is X/Z."""

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    @classmethod
    def from_payload(cls, payload: PositionPayload) -> "Vector3":
        return cls(payload.x, payload.y, payload.z)


@dataclass
class EntityInfo:
    id: EntityId
    name: str = ""
    kind: str = ""
    position: Vector3 | None = None
    description: str | None = None
    bearing: float | None = None
    elevation: float | None = None
    range: float | None = None

    @classmethod
    def from_payload(cls, payload: EntityPayload) -> "EntityInfo":
        return cls(
            id=payload.id,
            name=payload.name,
            kind=payload.kind,
            position=Vector3.from_payload(payload.position) if payload.position else None,
            description=payload.description,
            bearing=payload.bearing,
            elevation=payload.elevation,
            range=payload.range,
        )

    @property
    def display_name(self) -> str:
        return self.name or self.id


def _blank(value: str | None) -> bool:
    return value is None or not value.strip()


class EntityDirectory:
    """
    Canonical table of known entities.

    Ids and names are matched case-insensitively. When two entities register
    the same display name, the most recent registration owns the name.

    Usage:
        directory = EntityDirectory()
        directory.reset(entities)
        found = directory.resolve("warden")
    """

    def __init__(self) -> None:
        self._by_id: dict[str, EntityInfo] = {}
        self._id_by_name: dict[str, EntityId] = {}
        self.target_id: EntityId | None = None
        self.target_name: str | None = None

    def __len__(self) -> int:
        return len(self._by_id)

    def __contains__(self, entity_id: object) -> bool:
        return isinstance(entity_id, str) and entity_id.lower() in self._by_id

    # ---------- Queries ----------

    def get(self, entity_id: str) -> EntityInfo | None:
        entity = self._by_id.get(entity_id.lower())
        return replace(entity) if entity is not None else None

    def entities(self) -> list[EntityInfo]:
        """Point-in-time copy of every known entity."""
        return [replace(entity) for entity in self._by_id.values()]

    def name_for(self, entity_id: str | None) -> str | None:
        if not entity_id:
            return None
        entity = self._by_id.get(entity_id.lower())
        if entity is None or _blank(entity.name):
            return None
        return entity.name

    def resolve(self, token: str) -> EntityInfo | None:
        """
        Resolve a target token to an entity.

        Exact id match first, then the case-insensitive name index.

        Returns:
            A copy of the entity, or None if nothing matches
        """
        key = token.strip().lower()
        if not key:
            return None

        entity = self._by_id.get(key)
        if entity is None:
            entity_id = self._id_by_name.get(key)
            if entity_id is not None:
                entity = self._by_id.get(entity_id.lower())
        return replace(entity) if entity is not None else None

    # ---------- Mutation ----------

    def reset(self, entities: Iterable[EntityInfo]) -> None:
        self._by_id.clear()
        self._id_by_name.clear()
        for entity in entities:
            self.upsert(entity)

        if self.target_id is not None and self.target_id.lower() not in self._by_id:
            self.clear_target()

    def upsert(self, entity: EntityInfo) -> EntityInfo | None:
        """
        Insert or merge an entity record.

        Blank or absent fields on the incoming record keep the stored value.

        Returns:
            The stored record, or None if the record has no id
        """
        if _blank(entity.id):
            logger.debug("Ignoring entity without id: %r", entity)
            return None

        key = entity.id.lower()
        existing = self._by_id.get(key)
        merged = replace(entity)
        if existing is not None:
            if _blank(merged.name):
                merged.name = existing.name
            if _blank(merged.kind):
                merged.kind = existing.kind
            if _blank(merged.description):
                merged.description = existing.description
            if merged.position is None:
                merged.position = existing.position
            if merged.bearing is None:
                merged.bearing = existing.bearing
            if merged.elevation is None:
                merged.elevation = existing.elevation
            if merged.range is None:
                merged.range = existing.range

            # Renamed: drop the stale name if it still points here
            if not _blank(existing.name) and existing.name.lower() != merged.name.lower():
                self._drop_name(existing.name, key)

        self._by_id[key] = merged
        if not _blank(merged.name):
            self._id_by_name[merged.name.lower()] = merged.id
        return merged

    def remove(self, entity_id: str) -> EntityInfo | None:
        """Remove an entity. Clears the target if it was the target."""
        key = entity_id.lower()
        removed = self._by_id.pop(key, None)
        if removed is not None and not _blank(removed.name):
            self._drop_name(removed.name, key)

        if self.target_id is not None and self.target_id.lower() == key:
            self.clear_target()
        return removed

    def _drop_name(self, name: str, key: str) -> None:
        owner = self._id_by_name.get(name.lower())
        if owner is not None and owner.lower() == key:
            del self._id_by_name[name.lower()]

    # ---------- Target ----------

    @property
    def target_token(self) -> str | None:
        return self.target_id or self.target_name

    def set_target(self, target_id: EntityId, target_name: str) -> None:
        self.target_id = target_id
        self.target_name = target_name

    def set_target_token(self, token: str) -> None:
        """Target a raw token the directory could not resolve."""
        self.target_id = None
        self.target_name = token

    def clear_target(self) -> None:
        self.target_id = None
        self.target_name = None

    def describe_target(self) -> str:
        return f"Target: {self.target_token or 'none'}"


# =============================================================================
# Player, zone and session records
# =============================================================================


@dataclass
class CharacterSummary:
    id: str
    name: str = "Unknown"
    level: int = 0
    location: str = "Unknown"

    @classmethod
    def from_payload(cls, payload: CharacterSummaryPayload) -> "CharacterSummary":
        return cls(id=payload.id, name=payload.name, level=payload.level, location=payload.location)


@dataclass
class ZoneInfo:
    id: str | None = None
    name: str | None = None
    description: str | None = None
    content_rating: str | None = None
    time_of_day: str | None = None
    weather: str | None = None
    exits: list[Direction] = field(default_factory=list)


@dataclass
class SessionInfo:
    account_id: str | None = None
    characters: list[CharacterSummary] = field(default_factory=list)
    can_create_character: bool = False
    server_version: str | None = None
    protocol_version: str | None = None
    compatible: bool | None = None
    requires_auth: bool | None = None


class ClientState:
    """
    Everything the client knows about the world.

    Provides:
    - entities: EntityDirectory
    - proximity: ProximityRosterCache
    - movement / combat: MovementState / CombatStatus
    - party: PartyRoster
    - player, zone and session records
    """

    def __init__(self) -> None:
        self.entities = EntityDirectory()
        self.proximity = ProximityRosterCache()
        self.movement = MovementState()
        self.combat = CombatStatus()
        self.party = PartyRoster()

        self.player_id: EntityId | None = None
        self.player_name: str | None = None
        self.position: Vector3 | None = None
        self.health = Gauge()
        self.stamina = Gauge()
        self.mana = Gauge()

        self.zone = ZoneInfo()
        self.session = SessionInfo()

    def is_self(self, entity_id: str | None) -> bool:
        return bool(entity_id) and bool(self.player_id) and entity_id.lower() == self.player_id.lower()

    def describe_movement(self) -> str:
        return self.movement.describe()

    def describe_target(self) -> str:
        return self.entities.describe_target()
