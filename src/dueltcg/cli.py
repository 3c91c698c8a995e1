from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from dueltcg.engine.ai import auto_play
from dueltcg.engine.deck import DeckValidationError, validate_constructed_deck
from dueltcg.engine.match import Engine
from dueltcg.engine.scripts import default_scripts
from dueltcg.paths import get_paths
from dueltcg.services.content import ContentError, ContentService
from dueltcg.services.telemetry import TelemetryService

logger = logging.getLogger(__name__)


def _content() -> ContentService:
    paths = get_paths()
    return ContentService(paths.data_dir, paths.schema_dir)


def _cmd_simulate(args: argparse.Namespace) -> int:
    content = _content()
    db = content.load_cards_db()
    decklists = content.load_decklists()
    setups = [
        content.build_player_setup(args.deck_a, "Player A", db, decklists),
        content.build_player_setup(args.deck_b, "Player B", db, decklists),
    ]

    engine = Engine(setups, effect_registry=default_scripts(), seed=args.seed)
    steps = auto_play(engine, max_steps=args.max_steps)
    state = engine.state

    if args.show_log:
        for line in state.log:
            print(line)
        print()

    if state.game_over and state.winner is not None:
        print(f"Winner: {state.players[state.winner].name}")
    else:
        print(f"No winner after {steps} actions (step limit reached).")
    print(f"Turns: {state.turn}  Actions: {steps}  Seed: {args.seed}")
    for ps in state.players:
        print(
            f"  {ps.name}: deck={len(ps.main_deck)} hand={len(ps.hand)} "
            f"shields={len(ps.shields)} units={len(ps.battle_area)} base={'yes' if ps.base else 'no'}"
        )

    if args.telemetry:
        TelemetryService(Path(args.telemetry)).log_match_finished(
            state, seed=args.seed, decks=(args.deck_a, args.deck_b), steps=steps
        )
        logger.info("Telemetry appended to %s", args.telemetry)
    return 0


def _cmd_validate_deck(args: argparse.Namespace) -> int:
    content = _content()
    db = content.load_cards_db()
    setup = content.build_player_setup(args.deck_id, args.deck_id, db)
    report = validate_constructed_deck(setup.main_deck, setup.resource_deck)
    print(f"{args.deck_id}: main={len(setup.main_deck)} resource={len(setup.resource_deck)}")
    for warning in report.warnings:
        print(f"warning: {warning}")
    if report.is_valid:
        print("Deck is valid.")
        return 0
    for err in report.errors:
        print(f"- {err}")
    return 1


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="dueltcg", description="Headless DuelTCG rules engine")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command")

    p_sim = sub.add_parser("simulate", help="Play the advisor against itself")
    p_sim.add_argument("--seed", type=int, default=7)
    p_sim.add_argument("--deck-a", default="starter_blue")
    p_sim.add_argument("--deck-b", default="starter_red")
    p_sim.add_argument("--max-steps", type=int, default=5000)
    p_sim.add_argument("--telemetry", default=None, help="Append a JSONL record to this path")
    p_sim.add_argument("--show-log", action="store_true", help="Print the full game log")

    p_val = sub.add_parser("validate-deck", help="Check a bundled decklist")
    p_val.add_argument("deck_id")

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        return 1

    try:
        if args.command == "simulate":
            return _cmd_simulate(args)
        return _cmd_validate_deck(args)
    except ContentError as e:
        print(f"Content error: {e}", file=sys.stderr)
        return 2
    except DeckValidationError as e:
        print(str(e), file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
