from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Mapping

from dueltcg.engine.state import GameState


@dataclass
class TelemetryService:
    """Append-only JSONL sink for match records."""

    path: Path

    def log(self, event_type: str, payload: Mapping[str, object]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        rec = {
            "ts": datetime.now(tz=timezone.utc).isoformat(),
            "type": event_type,
            "payload": dict(payload),
        }
        with self.path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(rec, ensure_ascii=False) + "\n")

    def log_match_finished(self, state: GameState, *, seed: int | None, decks: tuple[str, str], steps: int) -> None:
        winner = state.winner
        self.log(
            "match_finished",
            {
                "seed": seed,
                "decks": list(decks),
                "players": [p.name for p in state.players],
                "game_over": state.game_over,
                "winner": None if winner is None else state.players[winner].name,
                "turn": state.turn,
                "steps": steps,
            },
        )

    def read_all(self) -> list[dict[str, object]]:
        if not self.path.exists():
            return []
        out: list[dict[str, object]] = []
        with self.path.open("r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if line:
                    out.append(json.loads(line))
        return out
