from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from .actions import (
    Action,
    AdvancePhaseAction,
    AttackTarget,
    DeclareAttackAction,
    DeclareBlockAction,
    DiscardForHandLimitAction,
    PassPriorityAction,
    PlayCardAction,
)
from .effects import infer_effects, target_requirement, valid_unit_targets
from .rules import (
    check_attack,
    check_block,
    check_play,
    effective_ap,
    effective_hp,
    link_satisfied,
)
from .state import GameState
from .types import (
    CardDefinition,
    CreateTempResourceEffect,
    DamageBaseEffect,
    DamageUnitEffect,
    DestroyUnitEffect,
    DrawEffect,
    card_ap,
    card_hp,
)

if TYPE_CHECKING:
    from .match import Engine


@dataclass(frozen=True)
class Recommendation:
    action: Action
    score: float
    reason: str


def player_to_act(state: GameState) -> int | None:
    """Whose decision the game is waiting on, or None once it is over."""
    if state.game_over:
        return None
    if state.phase in ("start", "draw", "resource"):
        return state.active_player
    if state.pending_hand_discards > 0:
        return state.active_player
    if state.battle is not None and state.battle.step == "block":
        return state.battle.defender
    if state.priority is not None:
        return state.priority.current_player
    return state.active_player


# -- enumeration -------------------------------------------------------------


def _legal_plays(engine: Engine, player: int) -> list[Action]:
    state = engine.state
    out: list[Action] = []
    for cid in state.players[player].hand:
        definition = state.cards[cid].definition

        if definition.type == "Pilot":
            for uid in state.players[player].battle_area:
                err = check_play(state, player, cid, engine.effects, engine.config, attach_to_unit_id=uid)
                if err is None:
                    out.append(PlayCardAction(player=player, hand_card_id=cid, attach_to_unit_id=uid))
            continue

        if definition.type == "Command":
            req = target_requirement(definition, engine.effects)
            if req.required:
                for uid in valid_unit_targets(state, player, req.scope):
                    err = check_play(state, player, cid, engine.effects, engine.config, target_unit_id=uid)
                    if err is None:
                        out.append(PlayCardAction(player=player, hand_card_id=cid, target_unit_id=uid))
                continue

        if check_play(state, player, cid, engine.effects, engine.config) is None:
            out.append(PlayCardAction(player=player, hand_card_id=cid))
    return out


def _legal_attacks(state: GameState, player: int) -> list[Action]:
    out: list[Action] = []
    enemy = state.opponent(player)
    targets = [AttackTarget.player_target()]
    targets.extend(
        AttackTarget.unit_target(uid)
        for uid in state.players[enemy].battle_area
        if state.cards[uid].rested
    )
    for uid in state.players[player].battle_area:
        for target in targets:
            if check_attack(state, player, uid, target) is None:
                out.append(DeclareAttackAction(player=player, attacker_id=uid, target=target))
    return out


def get_legal_actions(engine: Engine, player: int) -> list[Action]:
    """Every action the engine would accept from ``player`` right now."""
    state = engine.state
    if state.game_over:
        return []

    if state.phase in ("start", "draw", "resource"):
        if player == state.active_player:
            return [AdvancePhaseAction(player=player)]
        return []

    if state.pending_hand_discards > 0:
        if player != state.active_player:
            return []
        return [
            DiscardForHandLimitAction(player=player, hand_card_id=cid)
            for cid in state.players[player].hand
        ]

    battle = state.battle
    if battle is not None and battle.step == "block":
        if player != battle.defender:
            return []
        blocks: list[Action] = [DeclareBlockAction(player=player, blocker_id=None)]
        blocks.extend(
            DeclareBlockAction(player=player, blocker_id=uid)
            for uid in state.players[player].battle_area
            if check_block(state, player, uid) is None
        )
        return blocks

    pr = state.priority
    if pr is None or pr.current_player != player:
        return []
    actions: list[Action] = [PassPriorityAction(player=player)]
    actions.extend(_legal_plays(engine, player))
    actions.extend(_legal_attacks(state, player))
    return actions


# -- scoring -----------------------------------------------------------------


def _card_value(engine: Engine, definition: CardDefinition) -> float:
    if definition.type == "Unit":
        return float(card_ap(definition) * 2 + card_hp(definition))
    if definition.type == "Pilot":
        ap = definition.ap_modifier if definition.ap_modifier is not None else card_ap(definition)
        hp = definition.hp_modifier if definition.hp_modifier is not None else card_hp(definition)
        return float(ap * 2 + hp)
    if definition.type == "Base":
        return float(card_hp(definition))
    if definition.type == "Resource":
        return 1.0

    if definition.id in engine.effects:
        return 3.0
    v = 0.0
    for eff in infer_effects(definition, 0, None):
        if isinstance(eff, DrawEffect):
            v += eff.amount * 1.4
        elif isinstance(eff, DamageUnitEffect):
            v += eff.amount * 2.0
        elif isinstance(eff, DestroyUnitEffect):
            v += 6.0
        elif isinstance(eff, CreateTempResourceEffect):
            v += eff.amount * 1.5
        elif isinstance(eff, DamageBaseEffect):
            v += eff.amount * 1.0
    return v


def _remaining_hp(state: GameState, card_id: str) -> int:
    return effective_hp(state, card_id) - state.cards[card_id].damage


def _score_play(engine: Engine, action: PlayCardAction) -> tuple[float, str]:
    state = engine.state
    card = state.cards[action.hand_card_id]
    definition = card.definition
    value = _card_value(engine, definition)

    if definition.type == "Unit":
        return 5.0 + value, f"Deploy {card.name} to develop the board."
    if definition.type == "Pilot":
        assert action.attach_to_unit_id is not None
        unit = state.cards[action.attach_to_unit_id]
        bonus = 3.0 if link_satisfied(unit.definition, definition) else 0.0
        return 4.0 + value + bonus, f"Pair {card.name} with {unit.name}."
    if definition.type == "Base":
        ps = state.players[action.player]
        if ps.base is None:
            return 6.0 + value, f"Deploy base {card.name} to protect the shields."
        return 1.0, f"Replace the current base with {card.name}."
    if definition.type == "Resource":
        return 2.0, f"Add {card.name} to resources."

    if action.target_unit_id is not None:
        target = state.cards[action.target_unit_id]
        if target.owner == action.player:
            return -20.0, f"{card.name} would hit a friendly unit."
        hp_left = _remaining_hp(state, action.target_unit_id)
        kills = any(
            isinstance(e, DestroyUnitEffect) or (isinstance(e, DamageUnitEffect) and e.amount >= hp_left)
            for e in infer_effects(definition, action.player, action.target_unit_id)
        )
        if kills:
            return 6.0 + value + _card_value(engine, target.definition), f"{card.name} removes {target.name}."
        return 2.0 + value, f"{card.name} damages {target.name}."
    return 3.0 + value, f"Play {card.name} for value."


def _score_attack(engine: Engine, action: DeclareAttackAction) -> tuple[float, str]:
    state = engine.state
    attacker = state.cards[action.attacker_id]
    ap = effective_ap(state, action.attacker_id)
    defender = state.players[state.opponent(action.player)]

    if action.target.kind == "player":
        if defender.base is None and not defender.shields:
            return 1000.0, f"Lethal: {defender.name} has no base or shields left."
        if defender.base is not None:
            return 6.0 + ap, f"{attacker.name} pressures {defender.name}'s base."
        return 7.0 + ap, f"{attacker.name} breaks one of {defender.name}'s shields."

    assert action.target.unit_id is not None
    target = state.cards[action.target.unit_id]
    kills = ap >= _remaining_hp(state, target.instance_id)
    survives = effective_ap(state, target.instance_id) < _remaining_hp(state, attacker.instance_id)
    if kills and survives:
        return 12.0 + _card_value(engine, target.definition), (
            f"Profitable trade: {attacker.name} destroys {target.name} and survives."
        )
    if kills:
        return 4.0, f"{attacker.name} trades with {target.name}."
    return -5.0, f"{attacker.name} cannot destroy {target.name}."


def _score_block(engine: Engine, action: DeclareBlockAction) -> tuple[float, str]:
    state = engine.state
    battle = state.battle
    assert battle is not None
    if action.blocker_id is None:
        return 0.5, "Take the hit without blocking."

    blocker = state.cards[action.blocker_id]
    if battle.target.kind == "player":
        return -1.0, f"{blocker.name} cannot intercept an attack on the player."
    attacker_ap = effective_ap(state, battle.attacker_id)
    blocker_ap = effective_ap(state, action.blocker_id)
    kills = blocker_ap >= _remaining_hp(state, battle.attacker_id)
    survives = attacker_ap < _remaining_hp(state, action.blocker_id)
    if kills and survives:
        return 10.0, f"{blocker.name} blocks, destroys the attacker and survives."
    if survives:
        return 3.0, f"{blocker.name} absorbs the attack safely."
    return -2.0, f"{blocker.name} would be destroyed blocking."


def _score(engine: Engine, action: Action) -> tuple[float, str]:
    state = engine.state
    if isinstance(action, AdvancePhaseAction):
        return 1.0, f"Advance from the {state.phase} phase."
    if isinstance(action, PassPriorityAction):
        return 0.0, "No better option; pass priority."
    if isinstance(action, DiscardForHandLimitAction):
        card = state.cards[action.hand_card_id]
        return -_card_value(engine, card.definition), f"Discard {card.name}, the least valuable card."
    if isinstance(action, DeclareBlockAction):
        return _score_block(engine, action)
    if isinstance(action, PlayCardAction):
        return _score_play(engine, action)
    if isinstance(action, DeclareAttackAction):
        return _score_attack(engine, action)
    raise TypeError(f"Unhandled action: {action!r}")


def recommend_action(engine: Engine, player: int) -> Recommendation | None:
    """Return the best-scored legal action, or None if the player has none.

    Greedy one-ply heuristics only; ties keep enumeration order.
    """
    best: Recommendation | None = None
    for action in get_legal_actions(engine, player):
        score, reason = _score(engine, action)
        if best is None or score > best.score:
            best = Recommendation(action=action, score=score, reason=reason)
    return best


def auto_play(engine: Engine, max_steps: int = 5000) -> int:
    """Drive both seats with the advisor until the game ends or ``max_steps``.

    Returns the number of actions applied.
    """
    steps = 0
    while steps < max_steps:
        player = player_to_act(engine.state)
        if player is None:
            break
        rec = recommend_action(engine, player)
        if rec is None:
            break
        result = engine.step(rec.action)
        if not result.ok:
            raise RuntimeError(f"Advisor chose an illegal action {rec.action!r}: {result.error}")
        steps += 1
    return steps
