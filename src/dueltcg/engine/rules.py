"""Legality checks and derived stats.

Every ``check_*`` function inspects the state and returns an error message,
or ``None`` when the move is legal. None of them mutate the state, so the
engine can validate a move completely before committing any change.
"""

from __future__ import annotations

from collections.abc import Mapping

from .actions import AttackTarget
from .config import MatchConfig
from .effects import CardScript, target_requirement, valid_unit_targets
from .state import GameState
from .types import CardDefinition, card_ap, card_hp, card_level


def effective_ap(state: GameState, card_id: str) -> int:
    card = state.cards.get(card_id)
    if card is None:
        return 0
    ap = card_ap(card.definition)
    if card.attached_pilot_id:
        pilot = state.cards.get(card.attached_pilot_id)
        if pilot is not None:
            mod = pilot.definition.ap_modifier
            ap += mod if mod is not None else card_ap(pilot.definition)
    return max(0, ap)


def effective_hp(state: GameState, card_id: str) -> int:
    card = state.cards.get(card_id)
    if card is None:
        return 0
    hp = card_hp(card.definition)
    if card.attached_pilot_id:
        pilot = state.cards.get(card.attached_pilot_id)
        if pilot is not None:
            mod = pilot.definition.hp_modifier
            hp += mod if mod is not None else card_hp(pilot.definition)
    return max(0, hp)


def active_resource_count(state: GameState, player: int) -> int:
    return sum(1 for rid in state.players[player].resource_area if not state.cards[rid].rested)


def check_level_and_cost(state: GameState, player: int, definition: CardDefinition) -> str | None:
    total = len(state.players[player].resource_area)
    level = card_level(definition)
    if total < level:
        return f"Need level {level} (resources {total})."
    active = active_resource_count(state, player)
    if active < definition.cost:
        return f"Need {definition.cost} active resources (have {active})."
    return None


def check_cost_only(state: GameState, player: int, definition: CardDefinition) -> str | None:
    active = active_resource_count(state, player)
    if active < definition.cost:
        return f"Need {definition.cost} active resources (have {active})."
    return None


def pay_cost(state: GameState, player: int, cost: int) -> None:
    """Rest ``cost`` active resources.

    EX Resources are spent first and leave the game instead of resting.
    """
    if cost <= 0:
        return
    ps = state.players[player]
    remaining = cost
    # stable sort keeps area order within each group
    order = sorted(ps.resource_area, key=lambda rid: state.cards[rid].token_type != "ex-resource")
    for rid in order:
        if remaining <= 0:
            break
        resource = state.cards[rid]
        if resource.rested:
            continue
        if resource.token_type == "ex-resource":
            state.move_card(rid, "removed")
            state.log.append(f"{ps.name} uses and removes {resource.name}.")
        else:
            resource.rested = True
        remaining -= 1


def command_window_open(state: GameState) -> bool:
    pr = state.priority
    if pr is None:
        return False
    if pr.window == "main":
        return state.phase == "main"
    if pr.window == "battle":
        return state.phase == "battle" and state.battle is not None and state.battle.step == "action"
    return state.phase == "end"


def link_satisfied(unit: CardDefinition, pilot: CardDefinition) -> bool:
    if not unit.link_condition:
        return False
    key = unit.link_condition.lower()
    pilot_text = " ".join([pilot.name, *pilot.traits]).lower()
    return key in pilot_text


def check_play(
    state: GameState,
    player: int,
    hand_card_id: str,
    registry: Mapping[str, CardScript],
    config: MatchConfig,
    attach_to_unit_id: str | None = None,
    target_unit_id: str | None = None,
) -> str | None:
    pr = state.priority
    if pr is None or pr.current_player != player:
        return "Player does not currently have priority."

    ps = state.players[player]
    if hand_card_id not in ps.hand:
        return "Card is not in hand."
    card = state.cards.get(hand_card_id)
    if card is None:
        return "Card instance not found."
    definition = card.definition

    if definition.type == "Command":
        if not command_window_open(state):
            return "Commands can only be played in an action window."
        req = target_requirement(definition, registry)
        if req.required:
            if target_unit_id is None:
                return f"{definition.name} requires a target unit."
            if target_unit_id not in valid_unit_targets(state, player, req.scope):
                return f"{definition.name} requires a target unit in play."
        # Commands skip the level gate
        return check_cost_only(state, player, definition)

    if state.phase != "main" or pr.window != "main":
        return "Units, Pilots, and Bases may only be played in the main action window."
    if player != state.active_player:
        return "Only the active player can play permanent cards in main phase."

    if definition.type == "Unit":
        if len(ps.battle_area) >= config.max_battle_area:
            return f"Battle area is full (max {config.max_battle_area})."
    elif definition.type == "Pilot":
        if attach_to_unit_id is None:
            return "Pilot play requires attach_to_unit_id."
        err = check_attach(state, player, attach_to_unit_id)
        if err:
            return err
    elif definition.type == "Resource":
        if len(ps.resource_area) >= config.max_resource_area:
            return f"Resource area is full (max {config.max_resource_area})."

    return check_level_and_cost(state, player, definition)


def check_attach(state: GameState, player: int, unit_id: str) -> str | None:
    unit = state.cards.get(unit_id)
    if unit is None:
        return "Pilot or target unit not found."
    if unit.definition.type != "Unit":
        return "Pilot may only attach to a Unit."
    if not state.in_battle_area(player, unit_id):
        return "Target unit is not controlled by player."
    if unit.attached_pilot_id:
        return "Target unit already has a paired pilot."
    return None


def can_attack(state: GameState, card_id: str) -> bool:
    card = state.cards.get(card_id)
    if card is None or card.definition.type != "Unit":
        return False
    if not state.in_battle_area(card.owner, card_id):
        return False
    if card.rested:
        return False
    return card.entered_turn != state.turn or card.is_linked


def check_attack(state: GameState, player: int, attacker_id: str, target: AttackTarget) -> str | None:
    pr = state.priority
    if state.phase != "main" or pr is None or pr.window != "main":
        return "Attacks may only be declared in main phase action window."
    if player != state.active_player or pr.current_player != player:
        return "Only the active player with priority may declare an attack."

    attacker = state.cards.get(attacker_id)
    if attacker is None or attacker.owner != player:
        return "Attacking unit was not found."
    if attacker.definition.type != "Unit":
        return "Only Units can attack."
    if not state.in_battle_area(player, attacker_id):
        return "Attacking unit is not in battle area."
    if attacker.rested:
        return "Attacking unit must be active."
    if attacker.entered_turn == state.turn and not attacker.is_linked:
        return "Unit cannot attack on the turn it entered unless linked."

    if target.kind == "unit":
        defender = state.opponent(player)
        if target.unit_id is None or not state.in_battle_area(defender, target.unit_id):
            return "Target unit was not found."
        if not state.cards[target.unit_id].rested:
            return "Only rested enemy units can be attacked directly."
    return None


def check_block(state: GameState, player: int, blocker_id: str | None) -> str | None:
    battle = state.battle
    if state.phase != "battle" or battle is None or battle.step != "block":
        return "Not currently in block step."
    if player != battle.defender:
        return "Only defending player may declare a block."
    if blocker_id is None:
        return None
    blocker = state.cards.get(blocker_id)
    if blocker is None or blocker.definition.type != "Unit":
        return "Blocker must be a unit."
    if not state.in_battle_area(player, blocker_id):
        return "Blocker is not in battle area."
    if blocker.rested:
        return "Blocker must be active."
    return None
