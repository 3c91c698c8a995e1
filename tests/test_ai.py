from __future__ import annotations

import copy

from dueltcg.engine.actions import (
    AdvancePhaseAction,
    AttackTarget,
    DeclareAttackAction,
    DeclareBlockAction,
    PassPriorityAction,
    PlayCardAction,
)
from dueltcg.engine.ai import auto_play, player_to_act, recommend_action
from dueltcg.engine.match import Engine, PlayerSetup
from dueltcg.engine.scripts import default_scripts
from factories import (
    advance_to_main,
    build_engine,
    deck_with,
    deploy,
    hand_card,
    make_card,
    strip_defenses,
)


def test_legal_actions_skip_unaffordable_and_untargetable_cards() -> None:
    big = make_card("BIG", cost=5, level=5, name="Titan")
    scorch = make_card("SCORCH", type="Command", name="Scorch", text="Deal 2 damage to target unit.")
    cheap = make_card("CHEAP", name="Sentry")
    engine = build_engine(deck_with([big, scorch, cheap]), deck_with([]))
    advance_to_main(engine)

    legal = engine.get_legal_actions(0)
    assert legal == [
        PassPriorityAction(player=0),
        PlayCardAction(player=0, hand_card_id=hand_card(engine, 0, "CHEAP")),
    ]
    assert engine.get_legal_actions(1) == []


def test_targeted_commands_enumerate_each_target() -> None:
    scorch = make_card("SCORCH", type="Command", name="Scorch", text="Deal 2 damage to target enemy unit.")
    engine = build_engine(deck_with([scorch]), deck_with([make_card("A", name="A"), make_card("B", name="B")]))
    advance_to_main(engine)
    a = deploy(engine, 1, "A")
    b = deploy(engine, 1, "B")

    plays = [x for x in engine.get_legal_actions(0) if isinstance(x, PlayCardAction)]
    assert sorted(p.target_unit_id for p in plays) == sorted([a, b])


def test_pilot_plays_enumerate_each_unit() -> None:
    pilot = make_card("PIL", type="Pilot", name="Rookie", ap_modifier=1)
    units = [make_card("U1", name="One"), make_card("U2", name="Two")]
    engine = build_engine(deck_with([pilot, *units]), deck_with([]))
    advance_to_main(engine)
    u1 = deploy(engine, 0, "U1")
    u2 = deploy(engine, 0, "U2")

    plays = [x for x in engine.get_legal_actions(0) if isinstance(x, PlayCardAction)]
    assert {p.attach_to_unit_id for p in plays} == {u1, u2}


def test_phase_actions_and_player_to_act() -> None:
    engine = build_engine(deck_with([]), deck_with([]))
    assert player_to_act(engine.state) == 0
    assert engine.get_legal_actions(0) == [AdvancePhaseAction(player=0)]
    assert engine.get_legal_actions(1) == []

    advance_to_main(engine)
    assert engine.pass_priority(0).ok
    assert player_to_act(engine.state) == 1


def test_recommends_attack_when_hand_is_empty() -> None:
    engine = build_engine(deck_with([make_card("ATK", name="Striker", ap=2, hp=2)]), deck_with([]))
    advance_to_main(engine)
    uid = deploy(engine, 0, "ATK")
    alice = engine.state.players[0]
    for cid in list(alice.hand):
        engine.state.move_card(cid, "trash")

    rec = engine.recommend_action(0)
    assert rec is not None
    assert rec.action == DeclareAttackAction(player=0, attacker_id=uid, target=AttackTarget.player_target())
    assert rec.reason


def test_recommends_lethal_attack() -> None:
    engine = build_engine(deck_with([make_card("ATK", name="Striker")]), deck_with([]))
    advance_to_main(engine)
    deploy(engine, 0, "ATK")
    strip_defenses(engine, 1)

    rec = recommend_action(engine, 0)
    assert rec is not None
    assert isinstance(rec.action, DeclareAttackAction)
    assert rec.reason.startswith("Lethal")


def test_defender_blocks_to_protect_rested_unit() -> None:
    engine = build_engine(
        deck_with([make_card("ATK", name="Striker")]),
        deck_with([make_card("DEF", name="Scout"), make_card("WALL", name="Wall", ap=2, hp=5)]),
    )
    advance_to_main(engine)
    atk = deploy(engine, 0, "ATK")
    dfn = deploy(engine, 1, "DEF", rested=True)
    wall = deploy(engine, 1, "WALL")

    assert engine.declare_attack(0, atk, AttackTarget.unit_target(dfn)).ok
    assert player_to_act(engine.state) == 1
    rec = recommend_action(engine, 1)
    assert rec is not None
    assert rec.action == DeclareBlockAction(player=1, blocker_id=wall)


def test_defender_does_not_block_player_attack() -> None:
    engine = build_engine(deck_with([make_card("ATK", name="Striker")]), deck_with([make_card("WALL", name="Wall")]))
    advance_to_main(engine)
    atk = deploy(engine, 0, "ATK")
    deploy(engine, 1, "WALL")
    strip_defenses(engine, 1)

    assert engine.declare_attack(0, atk, AttackTarget.player_target()).ok
    rec = recommend_action(engine, 1)
    assert rec is not None
    assert rec.action == DeclareBlockAction(player=1, blocker_id=None)


def test_recommendation_is_none_without_legal_actions() -> None:
    engine = build_engine(deck_with([]), deck_with([]))
    assert recommend_action(engine, 1) is None


def test_every_enumerated_action_is_accepted(starter_setups: list[PlayerSetup]) -> None:
    engine = Engine(starter_setups, seed=11, effect_registry=default_scripts())
    for _ in range(150):
        player = player_to_act(engine.state)
        if player is None:
            break
        for action in engine.get_legal_actions(player):
            trial = copy.deepcopy(engine)
            res = trial.step(action)
            assert res.ok, (action, res.error)
        rec = engine.recommend_action(player)
        assert rec is not None
        assert engine.step(rec.action).ok


def test_self_play_reaches_a_result(starter_setups: list[PlayerSetup]) -> None:
    engine = Engine(starter_setups, seed=7, effect_registry=default_scripts())
    steps = auto_play(engine, max_steps=5000)
    assert engine.state.game_over
    assert engine.state.winner in (0, 1)
    assert 0 < steps < 5000
