from __future__ import annotations

from collections.abc import Sequence

from dueltcg.engine.match import Engine, PlayerSetup
from dueltcg.engine.types import CardDefinition


def identity_rng() -> float:
    # j == i at every Fisher-Yates step, so decks keep their listed order
    return 0.999999


def make_card(card_id: str, type: str = "Unit", cost: int = 0, **kw: object) -> CardDefinition:
    if type == "Unit":
        kw.setdefault("ap", 1)
        kw.setdefault("hp", 1)
    kw.setdefault("name", card_id)
    kw.setdefault("color", "Blue")
    return CardDefinition(id=card_id, cost=cost, type=type, **kw)  # type: ignore[arg-type]


def filler(prefix: str, n: int, color: str = "Blue") -> list[CardDefinition]:
    """``n`` vanilla 1/1 units, four copies per id."""
    return [make_card(f"{prefix}-{i // 4:02d}", cost=9, level=9, color=color) for i in range(n)]


def resources(n: int = 10) -> list[CardDefinition]:
    return [
        make_card(f"RES-{i // 4:02d}", type="Resource", color="Colorless", name="Energy")
        for i in range(n)
    ]


def build_engine(
    main_a: Sequence[CardDefinition],
    main_b: Sequence[CardDefinition],
    res_a: Sequence[CardDefinition] | None = None,
    res_b: Sequence[CardDefinition] | None = None,
    **kwargs: object,
) -> Engine:
    """Two-player engine whose decks keep their listed order.

    Hand is ``main[0:5]``, shields ``main[5:11]``, the first draw ``main[11]``.
    """
    kwargs.setdefault("validate_decks", False)
    kwargs.setdefault("rng", identity_rng)
    if res_a is None:
        res_a = resources()
    if res_b is None:
        res_b = resources()
    players = [
        PlayerSetup(name="Alice", main_deck=list(main_a), resource_deck=list(res_a)),
        PlayerSetup(name="Bob", main_deck=list(main_b), resource_deck=list(res_b)),
    ]
    return Engine(players, **kwargs)  # type: ignore[arg-type]


def deck_with(front: Sequence[CardDefinition], prefix: str = "F", size: int = 30) -> list[CardDefinition]:
    return [*front, *filler(prefix, size - len(front))]


def advance_to_main(engine: Engine) -> None:
    while engine.state.phase in ("start", "draw", "resource"):
        res = engine.advance_to_next_phase()
        assert res.ok, res.error


def finish_turn(engine: Engine) -> None:
    turn = engine.state.turn
    advance_to_main(engine)
    while engine.state.turn == turn and not engine.state.game_over:
        pr = engine.state.priority
        assert pr is not None
        res = engine.pass_priority(pr.current_player)
        assert res.ok, res.error


def pass_both(engine: Engine) -> None:
    pr = engine.state.priority
    assert pr is not None
    first = pr.current_player
    assert engine.pass_priority(first).ok
    assert engine.pass_priority(1 - first).ok


def hand_card(engine: Engine, player: int, card_id: str) -> str:
    for cid in engine.state.players[player].hand:
        if engine.state.cards[cid].definition.id == card_id:
            return cid
    raise AssertionError(f"{card_id} not in hand of player {player}")


def deploy(engine: Engine, player: int, card_id: str, *, rested: bool = False) -> str:
    """Put a hand card straight into play as if it arrived on an earlier turn."""
    cid = hand_card(engine, player, card_id)
    engine.state.move_card(cid, "battle_area")
    card = engine.state.cards[cid]
    card.entered_turn = 0
    card.rested = rested
    return cid


def add_resources(engine: Engine, player: int, n: int) -> None:
    ps = engine.state.players[player]
    for _ in range(n):
        engine.state.move_card(ps.resource_deck[0], "resource_area")


def strip_defenses(engine: Engine, player: int) -> None:
    ps = engine.state.players[player]
    if ps.base is not None:
        engine.state.move_card(ps.base, "trash")
    for sid in list(ps.shields):
        engine.state.move_card(sid, "trash")
