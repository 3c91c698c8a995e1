from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

TargetKind = Literal["player", "unit"]


@dataclass(frozen=True)
class AttackTarget:
    kind: TargetKind
    unit_id: str | None = None

    @staticmethod
    def player_target() -> "AttackTarget":
        return AttackTarget(kind="player", unit_id=None)

    @staticmethod
    def unit_target(unit_id: str) -> "AttackTarget":
        return AttackTarget(kind="unit", unit_id=unit_id)


@dataclass(frozen=True)
class AdvancePhaseAction:
    player: int


@dataclass(frozen=True)
class PlayCardAction:
    player: int
    hand_card_id: str
    attach_to_unit_id: str | None = None
    target_unit_id: str | None = None


@dataclass(frozen=True)
class DeclareAttackAction:
    player: int
    attacker_id: str
    target: AttackTarget


@dataclass(frozen=True)
class DeclareBlockAction:
    player: int
    blocker_id: str | None


@dataclass(frozen=True)
class PassPriorityAction:
    player: int


@dataclass(frozen=True)
class DiscardForHandLimitAction:
    player: int
    hand_card_id: str


Action = (
    AdvancePhaseAction
    | PlayCardAction
    | DeclareAttackAction
    | DeclareBlockAction
    | PassPriorityAction
    | DiscardForHandLimitAction
)
