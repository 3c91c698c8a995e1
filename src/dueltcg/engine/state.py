from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

from .actions import Action, AttackTarget
from .types import CardDefinition, Effect, TokenType

Phase = Literal["start", "draw", "resource", "main", "battle", "end"]
PriorityWindow = Literal["main", "battle", "end"]
BattleStep = Literal["block", "action", "damage"]
Zone = Literal[
    "main_deck",
    "resource_deck",
    "hand",
    "resource_area",
    "battle_area",
    "shields",
    "base",
    "trash",
    "removed",
]

LIST_ZONES: tuple[Zone, ...] = (
    "main_deck",
    "resource_deck",
    "hand",
    "resource_area",
    "battle_area",
    "shields",
    "trash",
    "removed",
)


@dataclass
class CardInstance:
    instance_id: str
    owner: int
    definition: CardDefinition
    rested: bool = False
    damage: int = 0
    entered_turn: int = 0
    attached_pilot_id: str | None = None
    attached_unit_id: str | None = None
    is_linked: bool = False
    face_down: bool = False
    token_type: TokenType | None = None

    @property
    def name(self) -> str:
        return self.definition.name


@dataclass
class PlayerState:
    name: str
    main_deck: list[str] = field(default_factory=list)
    resource_deck: list[str] = field(default_factory=list)
    hand: list[str] = field(default_factory=list)
    resource_area: list[str] = field(default_factory=list)
    battle_area: list[str] = field(default_factory=list)
    shields: list[str] = field(default_factory=list)
    base: str | None = None
    trash: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    defeated: bool = False

    def zone_list(self, zone: Zone) -> list[str]:
        if zone == "base":
            raise ValueError("base is a single reference, not a list zone")
        return getattr(self, zone)

    def zone_of(self, card_id: str) -> Zone | None:
        if self.base == card_id:
            return "base"
        for zone in LIST_ZONES:
            if card_id in self.zone_list(zone):
                return zone
        return None


@dataclass
class PriorityState:
    window: PriorityWindow
    current_player: int
    consecutive_passes: int = 0


@dataclass
class BattleState:
    attacker_id: str
    defender: int
    target: AttackTarget
    blocker_id: str | None = None
    step: BattleStep = "block"


@dataclass
class StackItem:
    id: str
    controller: int
    source_card_id: str
    source_instance_id: str
    description: str
    effects: tuple[Effect, ...]


@dataclass
class GameState:
    cards: dict[str, CardInstance]
    players: list[PlayerState]
    active_player: int = 0
    turn: int = 1
    phase: Phase = "start"
    battle: BattleState | None = None
    priority: PriorityState | None = None
    stack: list[StackItem] = field(default_factory=list)
    pending_hand_discards: int = 0
    game_over: bool = False
    winner: int | None = None
    log: list[str] = field(default_factory=list)
    action_log: list[Action] = field(default_factory=list)

    def opponent(self, player: int) -> int:
        return 1 - player

    def zone_of(self, card_id: str) -> Zone | None:
        card = self.cards.get(card_id)
        if card is None:
            return None
        return self.players[card.owner].zone_of(card_id)

    def in_battle_area(self, player: int, card_id: str) -> bool:
        return card_id in self.players[player].battle_area

    def move_card(self, card_id: str, to_zone: Zone | None) -> None:
        """Move a card between its owner's zones.

        The card is removed from whichever zone holds it and then inserted
        into ``to_zone``. ``None`` takes it out of every zone list, which is
        where an attached pilot lives while it sits beneath its unit.
        """
        card = self.cards[card_id]
        ps = self.players[card.owner]
        current = ps.zone_of(card_id)
        if current == "base":
            ps.base = None
        elif current is not None:
            ps.zone_list(current).remove(card_id)

        if to_zone is None:
            return
        if to_zone == "base":
            if ps.base is not None:
                raise ValueError(f"{ps.name} already has a base in play")
            ps.base = card_id
            return
        ps.zone_list(to_zone).append(card_id)
