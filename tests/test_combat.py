from __future__ import annotations

from dueltcg.engine.actions import AttackTarget
from dueltcg.engine.match import GAME_OVER_ERROR
from dueltcg.engine.rules import effective_ap, effective_hp
from factories import (
    advance_to_main,
    build_engine,
    deck_with,
    deploy,
    hand_card,
    make_card,
    pass_both,
    strip_defenses,
)

PLAYER = AttackTarget.player_target()


def _unit(card_id: str, ap: int, hp: int, **kw: object):
    kw.setdefault("name", card_id.title())
    return make_card(card_id, ap=ap, hp=hp, **kw)


def test_attack_on_rested_unit_trades_damage_simultaneously() -> None:
    engine = build_engine(deck_with([_unit("ATK", 3, 3)]), deck_with([_unit("DEF", 2, 2)]))
    advance_to_main(engine)
    atk = deploy(engine, 0, "ATK")
    dfn = deploy(engine, 1, "DEF", rested=True)
    state = engine.state

    assert engine.declare_attack(0, atk, AttackTarget.unit_target(dfn)).ok
    assert state.phase == "battle"
    assert state.battle is not None and state.battle.step == "block"
    assert state.priority is None
    assert state.cards[atk].rested

    assert engine.declare_block(0, None).error == "Only defending player may declare a block."
    assert engine.declare_block(1, None).ok
    assert state.battle.step == "action"
    assert state.priority is not None
    assert (state.priority.window, state.priority.current_player) == ("battle", 1)

    pass_both(engine)
    assert dfn in state.players[1].trash
    assert atk in state.players[0].battle_area
    assert state.cards[atk].damage == 2
    assert state.battle is None
    assert state.phase == "main"
    assert state.priority is not None
    assert (state.priority.window, state.priority.current_player) == ("main", 0)


def test_equal_units_destroy_each_other() -> None:
    engine = build_engine(deck_with([_unit("ATK", 3, 3)]), deck_with([_unit("DEF", 3, 3)]))
    advance_to_main(engine)
    atk = deploy(engine, 0, "ATK")
    dfn = deploy(engine, 1, "DEF", rested=True)

    assert engine.declare_attack(0, atk, AttackTarget.unit_target(dfn)).ok
    assert engine.declare_block(1, None).ok
    pass_both(engine)
    assert atk in engine.state.players[0].trash
    assert dfn in engine.state.players[1].trash


def test_base_absorbs_then_shields_break_one_at_a_time() -> None:
    units = [_unit("ATK", 3, 3), _unit("ATK", 3, 3)]
    engine = build_engine(deck_with(units), deck_with([]))
    advance_to_main(engine)
    first = deploy(engine, 0, "ATK")
    second = deploy(engine, 0, "ATK")
    bob = engine.state.players[1]
    base = bob.base

    assert engine.declare_attack(0, first, PLAYER).ok
    assert engine.declare_block(1, None).ok
    pass_both(engine)
    assert bob.base is None
    assert base in bob.trash
    assert len(bob.shields) == 6

    assert engine.declare_attack(0, second, PLAYER).ok
    assert engine.declare_block(1, None).ok
    shield = bob.shields[0]
    pass_both(engine)
    assert len(bob.shields) == 5
    assert shield in bob.trash
    assert engine.state.cards[shield].face_down is False
    assert any("loses a shield, revealing" in line for line in engine.state.log)


def test_weak_attack_only_damages_base() -> None:
    engine = build_engine(deck_with([_unit("POKE", 1, 1)]), deck_with([]))
    advance_to_main(engine)
    uid = deploy(engine, 0, "POKE")
    bob = engine.state.players[1]

    assert engine.declare_attack(0, uid, PLAYER).ok
    assert engine.declare_block(1, None).ok
    pass_both(engine)
    assert bob.base is not None
    assert engine.state.cards[bob.base].damage == 1
    assert len(bob.shields) == 6


def test_attack_with_no_base_or_shields_is_lethal() -> None:
    engine = build_engine(deck_with([_unit("ATK", 1, 1)]), deck_with([]))
    advance_to_main(engine)
    uid = deploy(engine, 0, "ATK")
    strip_defenses(engine, 1)

    assert engine.declare_attack(0, uid, PLAYER).ok
    assert engine.declare_block(1, None).ok
    pass_both(engine)

    state = engine.state
    assert state.game_over
    assert state.winner == 0
    assert state.players[1].defeated
    assert state.priority is None

    res = engine.pass_priority(0)
    assert not res.ok
    assert res.error == GAME_OVER_ERROR


def test_block_does_not_redirect_player_attack() -> None:
    engine = build_engine(deck_with([_unit("ATK", 2, 3)]), deck_with([_unit("WALL", 1, 5)]))
    advance_to_main(engine)
    atk = deploy(engine, 0, "ATK")
    wall = deploy(engine, 1, "WALL")
    bob = engine.state.players[1]

    assert engine.declare_attack(0, atk, PLAYER).ok
    assert engine.declare_block(1, wall).ok
    assert engine.state.cards[wall].rested
    pass_both(engine)

    assert bob.base is not None and engine.state.cards[bob.base].damage == 2
    assert engine.state.cards[wall].damage == 0
    assert engine.state.cards[atk].damage == 0
    assert len(bob.shields) == 6


def test_blocked_player_attack_is_still_lethal() -> None:
    engine = build_engine(deck_with([_unit("ATK", 1, 1)]), deck_with([_unit("WALL", 1, 5)]))
    advance_to_main(engine)
    atk = deploy(engine, 0, "ATK")
    wall = deploy(engine, 1, "WALL")
    strip_defenses(engine, 1)

    assert engine.declare_attack(0, atk, PLAYER).ok
    assert engine.declare_block(1, wall).ok
    pass_both(engine)

    state = engine.state
    assert state.game_over
    assert state.winner == 0
    assert atk in state.players[0].battle_area


def test_blocker_supersedes_unit_target() -> None:
    engine = build_engine(
        deck_with([_unit("ATK", 3, 3)]),
        deck_with([_unit("DEF", 2, 2), _unit("WALL", 1, 5)]),
    )
    advance_to_main(engine)
    atk = deploy(engine, 0, "ATK")
    dfn = deploy(engine, 1, "DEF", rested=True)
    wall = deploy(engine, 1, "WALL")

    assert engine.declare_attack(0, atk, AttackTarget.unit_target(dfn)).ok
    assert engine.declare_block(1, wall).ok
    pass_both(engine)

    state = engine.state
    assert state.cards[wall].damage == 3
    assert state.cards[atk].damage == 1
    assert state.cards[dfn].damage == 0
    assert dfn in state.players[1].battle_area


def test_blocker_must_be_active() -> None:
    engine = build_engine(deck_with([_unit("ATK", 3, 3)]), deck_with([_unit("WALL", 1, 5)]))
    advance_to_main(engine)
    atk = deploy(engine, 0, "ATK")
    wall = deploy(engine, 1, "WALL", rested=True)

    assert engine.declare_attack(0, atk, PLAYER).ok
    assert engine.declare_block(1, wall).error == "Blocker must be active."


def test_attack_restrictions() -> None:
    engine = build_engine(
        deck_with([_unit("NEW", 2, 2), _unit("OLD", 2, 2)]),
        deck_with([_unit("UP", 1, 1)]),
    )
    advance_to_main(engine)
    old = deploy(engine, 0, "OLD")
    up = deploy(engine, 1, "UP")
    new = hand_card(engine, 0, "NEW")
    assert engine.play_card(0, new).ok
    assert engine.pass_priority(1).ok

    res = engine.declare_attack(0, new, PLAYER)
    assert res.error == "Unit cannot attack on the turn it entered unless linked."
    res = engine.declare_attack(0, old, AttackTarget.unit_target(up))
    assert res.error == "Only rested enemy units can be attacked directly."
    res = engine.declare_attack(1, up, PLAYER)
    assert res.error == "Only the active player with priority may declare an attack."


def test_attacker_destroyed_before_damage_deals_nothing() -> None:
    wipe = make_card("WIPE", type="Command", name="Annihilate", text="Destroy target enemy unit.")
    engine = build_engine(deck_with([_unit("ATK", 3, 3)]), deck_with([wipe]))
    advance_to_main(engine)
    atk = deploy(engine, 0, "ATK")
    bob = engine.state.players[1]

    assert engine.declare_attack(0, atk, PLAYER).ok
    assert engine.declare_block(1, None).ok
    assert engine.play_card(1, hand_card(engine, 1, "WIPE"), target_unit_id=atk).ok
    pass_both(engine)
    assert atk in engine.state.players[0].trash
    assert engine.state.phase == "battle"

    pass_both(engine)
    assert "Attacker is no longer on the battlefield. Battle ends." in engine.state.log
    assert bob.base is not None and engine.state.cards[bob.base].damage == 0
    assert engine.state.phase == "main"


def test_linked_pilot_lets_new_unit_attack() -> None:
    unit = _unit("FRAME", 1, 1, link_condition="Ace")
    pilot = make_card("RHEA", type="Pilot", name="Rhea", traits=("Ace",), ap_modifier=2, hp_modifier=1)
    engine = build_engine(deck_with([unit, pilot]), deck_with([]))
    advance_to_main(engine)
    state = engine.state

    uid = hand_card(engine, 0, "FRAME")
    pid = hand_card(engine, 0, "RHEA")
    assert engine.play_card(0, uid).ok
    assert engine.pass_priority(1).ok
    res = engine.play_card(0, pid, attach_to_unit_id=uid)
    assert res.ok
    assert any("links with" in e for e in res.events)

    assert state.cards[uid].attached_pilot_id == pid
    assert state.cards[pid].attached_unit_id == uid
    assert state.cards[uid].is_linked
    assert state.zone_of(pid) is None
    assert effective_ap(state, uid) == 3
    assert effective_hp(state, uid) == 2

    assert engine.pass_priority(1).ok
    assert engine.declare_attack(0, uid, PLAYER).ok


def test_unlinked_pilot_adds_stats_but_not_haste() -> None:
    unit = _unit("FRAME", 1, 1, link_condition="Ace")
    pilot = make_card("KAI", type="Pilot", name="Kai", traits=("Berserker",), ap=1, hp=2)
    engine = build_engine(deck_with([unit, pilot]), deck_with([]))
    advance_to_main(engine)
    state = engine.state

    uid = hand_card(engine, 0, "FRAME")
    assert engine.play_card(0, uid).ok
    assert engine.pass_priority(1).ok
    assert engine.play_card(0, hand_card(engine, 0, "KAI"), attach_to_unit_id=uid).ok
    assert not state.cards[uid].is_linked
    # no modifiers set, so the pilot's own stats apply
    assert effective_ap(state, uid) == 2
    assert effective_hp(state, uid) == 3

    assert engine.pass_priority(1).ok
    res = engine.declare_attack(0, uid, PLAYER)
    assert res.error == "Unit cannot attack on the turn it entered unless linked."


def test_second_pilot_cannot_pair_with_same_unit() -> None:
    unit = _unit("FRAME", 1, 1)
    pilots = [make_card("P1", type="Pilot", name="One"), make_card("P2", type="Pilot", name="Two")]
    engine = build_engine(deck_with([unit, *pilots]), deck_with([]))
    advance_to_main(engine)
    uid = deploy(engine, 0, "FRAME")
    assert engine.play_card(0, hand_card(engine, 0, "P1"), attach_to_unit_id=uid).ok
    assert engine.pass_priority(1).ok
    res = engine.play_card(0, hand_card(engine, 0, "P2"), attach_to_unit_id=uid)
    assert res.error == "Target unit already has a paired pilot."


def test_destroyed_unit_takes_its_pilot_along() -> None:
    unit = _unit("FRAME", 1, 1)
    pilot = make_card("RHEA", type="Pilot", name="Rhea", ap_modifier=2, hp_modifier=1)
    engine = build_engine(deck_with([unit, pilot]), deck_with([_unit("TANK", 5, 5)]))
    advance_to_main(engine)
    uid = deploy(engine, 0, "FRAME")
    tank = deploy(engine, 1, "TANK", rested=True)
    pid = hand_card(engine, 0, "RHEA")
    assert engine.play_card(0, pid, attach_to_unit_id=uid).ok
    assert engine.pass_priority(1).ok

    assert engine.declare_attack(0, uid, AttackTarget.unit_target(tank)).ok
    assert engine.declare_block(1, None).ok
    pass_both(engine)

    alice = engine.state.players[0]
    assert uid in alice.trash
    assert pid in alice.trash
    assert engine.state.cards[uid].attached_pilot_id is None
    assert engine.state.cards[pid].attached_unit_id is None
    assert engine.state.cards[tank].damage == 3
