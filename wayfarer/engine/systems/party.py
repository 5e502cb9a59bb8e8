"""
PartyRoster - local view of the player's party.

Members are keyed case-insensitively by entity id. The roster is replaced
wholesale by party listings (command_response data.members, party_update
events) and patched by ally status blocks in state updates.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Iterable

from ..payloads import AllyPayload, PartyMemberPayload
from .movement import Gauge

logger = logging.getLogger(__name__)


@dataclass
class PartyMember:
    id: str
    name: str = ""
    atb: Gauge | None = None
    stamina_pct: float | None = None
    mana_pct: float | None = None
    is_leader: bool = False

    @property
    def display_name(self) -> str:
        return self.name or self.id

    @classmethod
    def from_payload(cls, payload: PartyMemberPayload) -> "PartyMember":
        return cls(
            id=payload.member_id,
            name=payload.name or "",
            atb=Gauge.from_payload(payload.atb) if payload.atb is not None else None,
            stamina_pct=payload.stamina_pct,
            mana_pct=payload.mana_pct,
            is_leader=bool(payload.is_leader),
        )


class PartyRoster:
    def __init__(self) -> None:
        self._members: dict[str, PartyMember] = {}
        self.leader_id: str | None = None

    def __len__(self) -> int:
        return len(self._members)

    def __contains__(self, member_id: str) -> bool:
        return member_id.lower() in self._members

    def get(self, member_id: str) -> PartyMember | None:
        member = self._members.get(member_id.lower())
        return replace(member) if member is not None else None

    def members(self) -> list[PartyMember]:
        """Snapshot copy of the members, leader first."""
        ordered = sorted(self._members.values(), key=lambda m: not m.is_leader)
        return [replace(member) for member in ordered]

    def replace(self, members: Iterable[PartyMember]) -> None:
        self._members = {}
        self.leader_id = None
        for member in members:
            self.upsert(member)

    def upsert(self, member: PartyMember) -> None:
        if not member.id:
            return
        key = member.id.lower()
        existing = self._members.get(key)
        if existing is not None:
            member = PartyMember(
                id=member.id,
                name=member.name or existing.name,
                atb=member.atb if member.atb is not None else existing.atb,
                stamina_pct=member.stamina_pct if member.stamina_pct is not None else existing.stamina_pct,
                mana_pct=member.mana_pct if member.mana_pct is not None else existing.mana_pct,
                is_leader=member.is_leader,
            )
        self._members[key] = member
        if member.is_leader:
            self.set_leader(member.id)

    def set_leader(self, member_id: str | None) -> None:
        self.leader_id = member_id or None
        wanted = member_id.lower() if member_id else None
        for key, member in self._members.items():
            member.is_leader = key == wanted

    def remove(self, member_id: str) -> PartyMember | None:
        removed = self._members.pop(member_id.lower(), None)
        if removed is not None and self.leader_id and self.leader_id.lower() == member_id.lower():
            self.leader_id = None
        return removed

    def clear(self) -> None:
        self._members.clear()
        self.leader_id = None

    def apply_ally_status(self, allies: Iterable[AllyPayload]) -> None:
        """Refresh gauges of known members; unknown allies are added."""
        for ally in allies:
            if not ally.entity_id:
                continue
            key = ally.entity_id.lower()
            member = self._members.get(key)
            if member is None:
                logger.debug("Adding ally %s from status block", ally.entity_id)
                member = PartyMember(id=ally.entity_id)
                self._members[key] = member
            if ally.name:
                member.name = ally.name
            if ally.atb is not None:
                member.atb = Gauge.from_payload(ally.atb, member.atb)
            if ally.stamina_pct is not None:
                member.stamina_pct = ally.stamina_pct
            if ally.mana_pct is not None:
                member.mana_pct = ally.mana_pct
