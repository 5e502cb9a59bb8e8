"""
Movement and combat status mirrors.

MovementState tracks heading, speed and the directions the server says are
available. CombatStatus tracks the turn gauge (ATB), auto-attack progress,
the in-combat flag and the auto-attack target. Both are patched from partial
updates and never fall back to defaults for fields a payload leaves out.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from ..payloads import CombatPayload, GaugePayload
from .text import heading_to_compass


@dataclass
class Gauge:
    current: float = 0.0
    max: float = 0.0

    @property
    def fraction(self) -> float:
        if self.max <= 0:
            return 0.0
        return self.current / self.max

    @classmethod
    def from_payload(cls, payload: GaugePayload, previous: "Gauge | None" = None) -> "Gauge":
        base = previous or cls()
        return cls(
            current=payload.current if payload.current is not None else base.current,
            max=payload.max if payload.max is not None else base.max,
        )


@dataclass
class MovementState:
    heading: float | None = None
    speed: str | None = None
    available_directions: list[str] = field(default_factory=list)

    def update(
        self,
        heading: float | None = None,
        speed: str | None = None,
        available_directions: Iterable[str] | None = None,
    ) -> None:
        """
        Patch movement state.

        Args:
            heading: New heading in degrees; None leaves the heading alone
            speed: New speed label; blank leaves the speed alone
            available_directions: Replaces the list wholesale when given
        """
        if heading is not None:
            self.heading = heading
        if speed is not None and speed.strip():
            self.speed = speed
        if available_directions is not None:
            self.available_directions = list(available_directions)

    @property
    def heading_compass(self) -> str | None:
        if self.heading is None:
            return None
        return heading_to_compass(self.heading)

    def describe(self) -> str:
        speed = self.speed.lower() if self.speed and self.speed.strip() else "idle"
        facing = self.heading_compass or "unknown"
        if self.available_directions:
            available = "[" + "] [".join(self.available_directions) + "]"
        else:
            available = "none"
        return f"Movement: {speed} | Facing: {facing} | Available: {available}"


@dataclass
class CombatStatus:
    atb: Gauge = field(default_factory=Gauge)
    auto_attack: Gauge = field(default_factory=Gauge)
    in_combat: bool = False
    auto_attack_target_id: str | None = None

    def apply(self, patch: CombatPayload) -> bool:
        """
        Apply the provided fields of a combat block.

        Returns:
            True if the in-combat flag changed
        """
        if patch.provided("atb") and patch.atb is not None:
            self.atb = Gauge.from_payload(patch.atb, self.atb)

        if patch.provided("auto_attack") and patch.auto_attack is not None:
            self.auto_attack = Gauge.from_payload(patch.auto_attack, self.auto_attack)

        changed = False
        if patch.provided("in_combat") and patch.in_combat is not None:
            changed = patch.in_combat != self.in_combat
            self.in_combat = patch.in_combat

        if patch.provided("auto_attack_target"):
            self.auto_attack_target_id = patch.auto_attack_target or None

        return changed
