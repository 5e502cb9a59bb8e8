"""
ProximityRosterCache - per-channel cache of nearby entities.

Channels ("say", "shout", "see", ...) are created lazily. The server either
sends a full snapshot of a channel (replace_channel) or a delta
(apply_delta). Channel metadata uses tri-state semantics: a key that is
absent leaves the cached value alone, an explicit null clears it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Iterable

from ..payloads import ProximityChannelDeltaPayload, ProximityEntityPayload

logger = logging.getLogger(__name__)

# Navigation favours conversational range over passive sight
NAVIGATION_CHANNEL_ORDER = ("say", "shout", "see")


@dataclass
class ProximityEntity:
    id: str
    name: str = ""
    kind: str = "entity"
    bearing: float = 0.0
    elevation: float = 0.0
    range: float = 0.0

    @classmethod
    def from_payload(cls, payload: ProximityEntityPayload) -> "ProximityEntity":
        return cls(
            id=payload.id,
            name=payload.name or "",
            kind=payload.kind or "entity",
            bearing=payload.bearing if payload.bearing is not None else 0.0,
            elevation=payload.elevation if payload.elevation is not None else 0.0,
            range=payload.range if payload.range is not None else 0.0,
        )

    def merge(self, update: ProximityEntityPayload) -> None:
        """Apply only the fields the update actually carries."""
        if update.name and update.name.strip():
            self.name = update.name
        if update.kind and update.kind.strip():
            self.kind = update.kind
        if update.bearing is not None:
            self.bearing = update.bearing
        if update.elevation is not None:
            self.elevation = update.elevation
        if update.range is not None:
            self.range = update.range


@dataclass
class ProximityChannel:
    name: str
    count: int = 0
    sample: list[str] | None = None
    last_speaker: str | None = None
    # lower-cased id -> entity
    entities: dict[str, ProximityEntity] = field(default_factory=dict)

    def entity_list(self) -> list[ProximityEntity]:
        return [replace(entity) for entity in self.entities.values()]


class ProximityRosterCache:
    """
    Aggregate of all proximity channels plus the roster-wide danger flag.

    Usage:
        roster = ProximityRosterCache()
        roster.apply_delta("say", delta)
        targets = roster.get_entities_for_navigation()
    """

    def __init__(self) -> None:
        self._channels: dict[str, ProximityChannel] = {}
        self.danger_state: bool | None = None

    # ---------- Queries ----------

    def channel(self, name: str) -> ProximityChannel | None:
        return self._channels.get(name.lower())

    def channel_names(self) -> list[str]:
        return [channel.name for channel in self._channels.values()]

    def get_entities_for_navigation(self) -> list[ProximityEntity]:
        """
        Entities from say, shout and see (in that order), de-duplicated by id.

        The first (highest priority) occurrence of an id wins.
        """
        seen: set[str] = set()
        result: list[ProximityEntity] = []
        for channel_name in NAVIGATION_CHANNEL_ORDER:
            channel = self._channels.get(channel_name)
            if channel is None:
                continue
            for key, entity in channel.entities.items():
                if key in seen:
                    continue
                seen.add(key)
                result.append(replace(entity))
        return result

    def has_entities(self) -> bool:
        return any(channel.entities for channel in self._channels.values())

    # ---------- Mutation ----------

    def replace_channel(
        self,
        name: str,
        entities: Iterable[ProximityEntity],
        count: int | None = None,
        sample: list[str] | None = None,
        sample_provided: bool = False,
        last_speaker: str | None = None,
        last_speaker_provided: bool = False,
    ) -> ProximityChannel:
        """
        Replace a channel's entity set from a full snapshot.

        Args:
            name: Channel name (case-insensitive)
            entities: The complete entity set for the channel
            count: Server-side population count; defaults to len(entities)
            sample: Sample of names, applied only if sample_provided
            sample_provided: Whether the snapshot carried a "sample" key
            last_speaker: Last speaker, applied only if last_speaker_provided
            last_speaker_provided: Whether the snapshot carried "lastSpeaker"

        Returns:
            The updated channel
        """
        channel = self._get_or_create(name)
        channel.entities = {}
        for entity in entities:
            if entity.id:
                channel.entities[entity.id.lower()] = entity

        channel.count = count if count is not None else len(channel.entities)
        if sample_provided:
            channel.sample = list(sample) if sample is not None else None
        if last_speaker_provided:
            channel.last_speaker = last_speaker
        return channel

    def apply_delta(self, name: str, delta: ProximityChannelDeltaPayload) -> ProximityChannel:
        """
        Merge an incremental update into a channel.

        Order: added, removed, updated; then count, sample and lastSpeaker
        when their keys are present.
        """
        channel = self._get_or_create(name)

        for added in delta.added:
            if not added.id:
                continue
            channel.entities[added.id.lower()] = ProximityEntity.from_payload(added)

        for removed_id in delta.removed:
            channel.entities.pop(removed_id.lower(), None)

        for update in delta.updated:
            if not update.id:
                continue
            existing = channel.entities.get(update.id.lower())
            if existing is not None:
                existing.merge(update)
            else:
                channel.entities[update.id.lower()] = ProximityEntity.from_payload(update)

        if delta.count is not None:
            channel.count = delta.count
        if delta.provided("sample"):
            channel.sample = list(delta.sample) if delta.sample is not None else None
        if delta.provided("last_speaker"):
            channel.last_speaker = delta.last_speaker

        return channel

    def update_danger_state(self, value: bool | None) -> None:
        if value is not None:
            self.danger_state = value

    def _get_or_create(self, name: str) -> ProximityChannel:
        key = name.lower()
        channel = self._channels.get(key)
        if channel is None:
            logger.debug("Creating proximity channel %s", key)
            channel = ProximityChannel(name=key)
            self._channels[key] = channel
        return channel
