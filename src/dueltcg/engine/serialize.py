from __future__ import annotations

from collections.abc import Mapping

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
from .state import CardInstance, GameState, PlayerState


def _target_to_dict(t: AttackTarget) -> dict[str, object]:
    return {"kind": t.kind, "unit_id": t.unit_id}


def action_to_dict(a: Action) -> dict[str, object]:
    if isinstance(a, AdvancePhaseAction):
        return {"type": "advance_phase", "player": a.player}
    if isinstance(a, PlayCardAction):
        return {
            "type": "play_card",
            "player": a.player,
            "hand_card_id": a.hand_card_id,
            "attach_to_unit_id": a.attach_to_unit_id,
            "target_unit_id": a.target_unit_id,
        }
    if isinstance(a, DeclareAttackAction):
        return {
            "type": "declare_attack",
            "player": a.player,
            "attacker_id": a.attacker_id,
            "target": _target_to_dict(a.target),
        }
    if isinstance(a, DeclareBlockAction):
        return {"type": "declare_block", "player": a.player, "blocker_id": a.blocker_id}
    if isinstance(a, PassPriorityAction):
        return {"type": "pass_priority", "player": a.player}
    if isinstance(a, DiscardForHandLimitAction):
        return {"type": "discard_for_hand_limit", "player": a.player, "hand_card_id": a.hand_card_id}
    raise TypeError(f"Unhandled action: {a!r}")


def action_from_dict(d: Mapping[str, object]) -> Action:
    """Inverse of :func:`action_to_dict`, for replaying a recorded log."""
    kind = d.get("type")
    player = int(d["player"])  # type: ignore[arg-type]
    if kind == "advance_phase":
        return AdvancePhaseAction(player=player)
    if kind == "play_card":
        return PlayCardAction(
            player=player,
            hand_card_id=str(d["hand_card_id"]),
            attach_to_unit_id=d.get("attach_to_unit_id"),  # type: ignore[arg-type]
            target_unit_id=d.get("target_unit_id"),  # type: ignore[arg-type]
        )
    if kind == "declare_attack":
        raw = d["target"]
        if not isinstance(raw, Mapping):
            raise ValueError(f"Attack target must be an object, got {raw!r}")
        target = AttackTarget(kind=raw["kind"], unit_id=raw.get("unit_id"))
        return DeclareAttackAction(player=player, attacker_id=str(d["attacker_id"]), target=target)
    if kind == "declare_block":
        return DeclareBlockAction(player=player, blocker_id=d.get("blocker_id"))  # type: ignore[arg-type]
    if kind == "pass_priority":
        return PassPriorityAction(player=player)
    if kind == "discard_for_hand_limit":
        return DiscardForHandLimitAction(player=player, hand_card_id=str(d["hand_card_id"]))
    raise ValueError(f"Unknown action type: {kind!r}")


def _card_to_dict(c: CardInstance) -> dict[str, object]:
    return {
        "card_id": c.definition.id,
        "rested": c.rested,
        "damage": c.damage,
        "entered_turn": c.entered_turn,
        "attached_pilot_id": c.attached_pilot_id,
        "attached_unit_id": c.attached_unit_id,
        "is_linked": c.is_linked,
        "face_down": c.face_down,
        "token_type": c.token_type,
    }


def _player_to_dict(p: PlayerState) -> dict[str, object]:
    return {
        "name": p.name,
        "main_deck": list(p.main_deck),
        "resource_deck": list(p.resource_deck),
        "hand": list(p.hand),
        "resource_area": list(p.resource_area),
        "battle_area": list(p.battle_area),
        "shields": list(p.shields),
        "base": p.base,
        "trash": list(p.trash),
        "removed": list(p.removed),
        "defeated": p.defeated,
    }


def snapshot(state: GameState) -> dict[str, object]:
    """Return a JSON-serializable canonical snapshot of the current game state."""
    battle = state.battle
    priority = state.priority
    return {
        "turn": state.turn,
        "phase": state.phase,
        "active_player": state.active_player,
        "game_over": state.game_over,
        "winner": state.winner,
        "pending_hand_discards": state.pending_hand_discards,
        "priority": None
        if priority is None
        else {
            "window": priority.window,
            "current_player": priority.current_player,
            "consecutive_passes": priority.consecutive_passes,
        },
        "battle": None
        if battle is None
        else {
            "attacker_id": battle.attacker_id,
            "defender": battle.defender,
            "target": _target_to_dict(battle.target),
            "blocker_id": battle.blocker_id,
            "step": battle.step,
        },
        "stack": [
            {"id": item.id, "controller": item.controller, "source_card_id": item.source_card_id}
            for item in state.stack
        ],
        "cards": {cid: _card_to_dict(c) for cid, c in sorted(state.cards.items())},
        "players": [_player_to_dict(p) for p in state.players],
        "action_log": [action_to_dict(a) for a in state.action_log],
    }
