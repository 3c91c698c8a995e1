from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

CardType = Literal["Unit", "Pilot", "Command", "Base", "Resource"]
Color = Literal["Blue", "Green", "Red", "White", "Purple", "Colorless"]

TokenType = Literal["ex-base", "ex-resource"]


@dataclass(frozen=True)
class CardDefinition:
    """Immutable printed card data, supplied by the content layer."""

    id: str
    name: str
    color: Color
    cost: int
    type: CardType
    set: str = ""
    text: str = ""
    ap: int | None = None
    hp: int | None = None
    level: int | None = None
    traits: tuple[str, ...] = ()
    link_condition: str | None = None
    # Pilot bonuses while paired with a unit
    ap_modifier: int | None = None
    hp_modifier: int | None = None
    # Legacy single-stat cards
    power: int | None = None


def card_ap(card: CardDefinition) -> int:
    if card.ap is not None:
        return card.ap
    return card.power if card.power is not None else 0


def card_hp(card: CardDefinition) -> int:
    if card.hp is not None:
        return card.hp
    return card.power if card.power is not None else 0


def card_level(card: CardDefinition) -> int:
    return card.level if card.level is not None else card.cost


@dataclass(frozen=True)
class DrawEffect:
    player: int
    amount: int
    kind: Literal["draw"] = "draw"


@dataclass(frozen=True)
class DamageUnitEffect:
    target_unit_id: str
    amount: int
    kind: Literal["damage-unit"] = "damage-unit"


@dataclass(frozen=True)
class DamageBaseEffect:
    player: int
    amount: int
    kind: Literal["damage-base"] = "damage-base"


@dataclass(frozen=True)
class DestroyUnitEffect:
    target_unit_id: str
    kind: Literal["destroy-unit"] = "destroy-unit"


@dataclass(frozen=True)
class CreateTempResourceEffect:
    player: int
    amount: int
    kind: Literal["create-temp-resource"] = "create-temp-resource"


@dataclass(frozen=True)
class LogEffect:
    message: str
    kind: Literal["log"] = "log"


Effect = (
    DrawEffect
    | DamageUnitEffect
    | DamageBaseEffect
    | DestroyUnitEffect
    | CreateTempResourceEffect
    | LogEffect
)


@dataclass(frozen=True)
class CardDatabase:
    """Immutable card database used by the engine."""

    cards: dict[str, CardDefinition]

    def get(self, card_id: str) -> CardDefinition:
        return self.cards[card_id]


EX_BASE = CardDefinition(
    id="EX-BASE",
    name="EX Base",
    color="Colorless",
    cost=0,
    type="Base",
    set="Token",
    ap=0,
    hp=3,
    text="Starting base token.",
)

EX_RESOURCE = CardDefinition(
    id="EX-RESOURCE",
    name="EX Resource",
    color="Colorless",
    cost=0,
    type="Resource",
    set="Token",
    text="Removed from game when used to pay cost.",
)
