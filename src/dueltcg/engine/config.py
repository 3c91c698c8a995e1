from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class MatchConfig:
    starting_hand: int = 5
    shield_count: int = 6
    max_hand_size: int = 10
    max_battle_area: int = 6
    max_resource_area: int = 15
    main_deck_size: int = 50
    resource_deck_size: int = 10
    max_copies_per_card: int = 4
    max_colors: int = 2
    ex_base_ap: int = 0
    ex_base_hp: int = 3
