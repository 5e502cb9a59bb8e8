"""
Combat outcome formatting.

Provides:
- derive_outcome_flags(): critical / glancing / deflected / penetrating
- CombatDisplayConfig: display style and effect-line toggles
- CombatFormatter: combat_* event -> narrative lines with colour/shake hints

Styles:
- compact: "You hit the Warden for 12 damage. [crit | pen]"
- tagged:  "[CRIT][PEN] You hit the Warden for 12 damage."
- split:   tagged main line plus indented attacker/target effect lines
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING

from ..lines import COLOR_COMBAT, LogLine
from ..payloads import EventPayload, FloatTextPayload

if TYPE_CHECKING:
    from ..world import ClientState

logger = logging.getLogger(__name__)

STYLE_COMPACT = "compact"
STYLE_TAGGED = "tagged"
STYLE_SPLIT = "split"
COMBAT_STYLES = (STYLE_COMPACT, STYLE_TAGGED, STYLE_SPLIT)

EFFECT_INDENT = "    "

_OUTCOME_STRINGS = {
    "crit": "critical",
    "glance": "glancing",
    "glancing": "glancing",
    "deflected": "deflected",
    "penetrating": "penetrating",
}


@dataclass(frozen=True)
class OutcomeFlags:
    critical: bool = False
    glancing: bool = False
    deflected: bool = False
    penetrating: bool = False

    def any(self) -> bool:
        return self.critical or self.glancing or self.deflected or self.penetrating


def derive_outcome_flags(event: EventPayload) -> OutcomeFlags:
    """
    Derive the four outcome flags from a combat event.

    Any explicit boolean that is true wins and the outcome string is ignored.
    Only when none are true does a single outcome string apply.
    """
    explicit = OutcomeFlags(
        critical=event.critical is True,
        glancing=event.glancing is True,
        deflected=event.deflected is True,
        penetrating=event.penetrating is True,
    )
    if explicit.any():
        return explicit

    flag = _OUTCOME_STRINGS.get((event.outcome or "").strip().lower())
    if flag is None:
        return OutcomeFlags()
    return OutcomeFlags(**{flag: True})


def is_miss(event: EventPayload) -> bool:
    return (
        (event.event_type or "").strip().lower() == "combat_miss"
        or (event.outcome or "").strip().lower() == "miss"
        or event.hit is False
    )


def outcome_tags(event: EventPayload) -> list[tuple[str, str]]:
    """(TAG, word) pairs in display order: MISS, CRIT, PEN, DEFLECT, GLANCE."""
    flags = derive_outcome_flags(event)
    tags = []
    if is_miss(event):
        tags.append(("MISS", "miss"))
    if flags.critical:
        tags.append(("CRIT", "crit"))
    if flags.penetrating:
        tags.append(("PEN", "pen"))
    if flags.deflected:
        tags.append(("DEFLECT", "deflect"))
    if flags.glancing:
        tags.append(("GLANCE", "glance"))
    return tags


@dataclass
class CombatDisplayConfig:
    style: str = STYLE_COMPACT
    show_effects: bool = True
    show_impact_effects: bool = True


def _format_amount(amount: float) -> str:
    if float(amount).is_integer():
        return str(int(amount))
    return f"{amount:g}"


class CombatFormatter:
    """
    Turns combat_* events into narrative lines.

    Names are resolved through the client state so the local player reads
    as "You" and known entities use their directory name.
    """

    def __init__(self, state: "ClientState", config: CombatDisplayConfig | None = None) -> None:
        self.state = state
        self.config = replace(config) if config is not None else CombatDisplayConfig()
        if self.config.style not in COMBAT_STYLES:
            logger.warning("Unknown combat style %r, using compact", self.config.style)
            self.config.style = STYLE_COMPACT

    def format(self, event: EventPayload) -> list[LogLine]:
        sentence = event.narrative or self.sentence(event)
        tags = outcome_tags(event)
        style = self.config.style

        if style == STYLE_COMPACT:
            text = sentence
            if tags:
                text += " [" + " | ".join(word for _, word in tags) + "]"
        else:
            prefix = "".join(f"[{tag}]" for tag, _ in tags)
            text = f"{prefix} {sentence}" if prefix else sentence

        color, shake = self.presentation_hints(event)
        lines = [LogLine(text=text, color_key=color or COLOR_COMBAT, shake=shake)]

        if style == STYLE_SPLIT:
            lines.extend(self._effect_lines(event))
        return lines

    # ---------- Sentences ----------

    def sentence(self, event: EventPayload) -> str:
        event_type = (event.event_type or "").strip().lower()
        attacker_is_self = self.state.is_self(event.attacker_id)
        subject = self.subject_name(event.attacker_id, event.attacker_name)
        ability = event.ability_name or event.ability_id

        if event_type in ("combat_hit", "combat_damage"):
            verb = "hit" if attacker_is_self else "hits"
            text = f"{subject} {verb} {self.object_name(event.target_id, event.target_name)}"
            if ability:
                text += f" with {ability}"
            if event.amount is not None:
                text += f" for {_format_amount(event.amount)} damage"
            return text + "."

        if event_type == "combat_miss":
            verb = "miss" if attacker_is_self else "misses"
            text = f"{subject} {verb} {self.object_name(event.target_id, event.target_name)}"
            if ability:
                text += f" with {ability}"
            return text + "."

        if event_type in ("combat_ability", "combat_action"):
            verb = "use" if attacker_is_self else "uses"
            text = f"{subject} {verb} {ability or 'an ability'}"
            if event.target_id or event.target_name:
                text += f" on {self.object_name(event.target_id, event.target_name)}"
            return text + "."

        if event_type == "combat_death":
            if self.state.is_self(event.target_id):
                return "You die."
            return f"{self.subject_name(event.target_id, event.target_name)} dies."

        if event_type == "combat_start":
            return "Combat begins."
        if event_type == "combat_end":
            return "Combat ends."

        return f"Combat: {event.event_type}"

    def subject_name(self, entity_id: str | None, fallback: str | None) -> str:
        if self.state.is_self(entity_id):
            return "You"
        return self._name(entity_id, fallback) or "Someone"

    def object_name(self, entity_id: str | None, fallback: str | None) -> str:
        if self.state.is_self(entity_id):
            return "you"
        return self._name(entity_id, fallback) or "something"

    def _name(self, entity_id: str | None, fallback: str | None) -> str | None:
        return self.state.entities.name_for(entity_id) or fallback or entity_id or None

    # ---------- Presentation ----------

    def presentation_hints(self, event: EventPayload) -> tuple[str | None, float | None]:
        """
        Pick the colour/shake hints for the main line.

        Target side first when the local player is the target or for deaths,
        attacker side first otherwise; a side without hints is skipped.
        """
        attacker_side = event.float_text
        target_side = event.float_text_target

        if (event.event_type or "").strip().lower() == "combat_death" or self.state.is_self(event.target_id):
            order = (target_side, attacker_side)
        else:
            order = (attacker_side, target_side)

        for side in order:
            if side is not None and side.has_hints():
                return side.color, side.shake
        return None, None

    def _effect_lines(self, event: EventPayload) -> list[LogLine]:
        lines = []
        if self.config.show_effects:
            lines.extend(self._effect_line(event.float_text))
        if self.config.show_impact_effects:
            lines.extend(self._effect_line(event.float_text_target))
        return lines

    @staticmethod
    def _effect_line(side: FloatTextPayload | None) -> list[LogLine]:
        if side is None or not side.text or not side.text.strip():
            return []
        return [LogLine(text=EFFECT_INDENT + side.text.strip(), color_key=side.color or COLOR_COMBAT, shake=side.shake)]
