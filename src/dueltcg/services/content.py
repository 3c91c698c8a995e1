from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

from jsonschema import Draft202012Validator

from dueltcg.engine.match import PlayerSetup
from dueltcg.engine.types import CardDatabase, CardDefinition

logger = logging.getLogger(__name__)


class ContentError(RuntimeError):
    pass


def _load_json(path: Path) -> object:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise ContentError(f"Missing content file: {path}") from e
    except json.JSONDecodeError as e:
        raise ContentError(f"Invalid JSON in {path}: {e}") from e


def validate_json(instance: object, schema: object, *, context: str) -> None:
    validator = Draft202012Validator(schema)
    errors = sorted(validator.iter_errors(instance), key=lambda e: [str(p) for p in e.absolute_path])
    if errors:
        lines = [f"Schema validation failed for {context}:"]
        for err in errors[:10]:
            loc = "/".join(str(p) for p in err.absolute_path)
            lines.append(f"- {loc}: {err.message}")
        raise ContentError("\n".join(lines))


def _require_str(obj: Mapping[str, object], key: str) -> str:
    v = obj.get(key)
    if not isinstance(v, str):
        raise ContentError(f"Expected string for {key}")
    return v


def _require_int(obj: Mapping[str, object], key: str) -> int:
    v = obj.get(key)
    if not isinstance(v, int):
        raise ContentError(f"Expected int for {key}")
    return v


def _optional_int(obj: Mapping[str, object], key: str) -> int | None:
    v = obj.get(key)
    if v is None:
        return None
    if not isinstance(v, int):
        raise ContentError(f"Expected int for {key}")
    return v


def _optional_str(obj: Mapping[str, object], key: str) -> str | None:
    v = obj.get(key)
    if v is None:
        return None
    if not isinstance(v, str):
        raise ContentError(f"Expected string for {key}")
    return v


def _parse_card(item: Mapping[str, object]) -> CardDefinition:
    traits_raw = item.get("traits", [])
    traits = tuple(t for t in traits_raw if isinstance(t, str)) if isinstance(traits_raw, list) else ()
    return CardDefinition(
        id=_require_str(item, "id"),
        name=_require_str(item, "name"),
        color=_require_str(item, "color"),  # type: ignore[arg-type]
        cost=_require_int(item, "cost"),
        type=_require_str(item, "type"),  # type: ignore[arg-type]
        set=_optional_str(item, "set") or "",
        text=_optional_str(item, "text") or "",
        ap=_optional_int(item, "ap"),
        hp=_optional_int(item, "hp"),
        level=_optional_int(item, "level"),
        traits=traits,
        link_condition=_optional_str(item, "link_condition"),
        ap_modifier=_optional_int(item, "ap_modifier"),
        hp_modifier=_optional_int(item, "hp_modifier"),
    )


@dataclass(frozen=True)
class DeckEntry:
    card_id: str
    count: int


@dataclass(frozen=True)
class Decklist:
    id: str
    name: str
    main: tuple[DeckEntry, ...]
    resource: tuple[DeckEntry, ...]


def _parse_entries(raw: object, *, context: str) -> tuple[DeckEntry, ...]:
    if not isinstance(raw, list):
        raise ContentError(f"{context} must be a list")
    entries: list[DeckEntry] = []
    for e in raw:
        if not isinstance(e, dict):
            continue
        entries.append(DeckEntry(card_id=_require_str(e, "card_id"), count=_require_int(e, "count")))
    return tuple(entries)


def expand_entries(entries: tuple[DeckEntry, ...], db: CardDatabase, *, context: str) -> list[CardDefinition]:
    out: list[CardDefinition] = []
    for entry in entries:
        if entry.card_id not in db.cards:
            raise ContentError(f"{context}: unknown card id {entry.card_id}")
        out.extend([db.get(entry.card_id)] * entry.count)
    return out


class ContentService:
    def __init__(self, data_dir: Path, schema_dir: Path) -> None:
        self._data_dir = data_dir
        self._schema_dir = schema_dir

    def load_cards_db(self) -> CardDatabase:
        cards_path = self._data_dir / "cards.json"
        raw = _load_json(cards_path)
        schema = _load_json(self._schema_dir / "cards.schema.json")
        validate_json(raw, schema, context=str(cards_path))

        if not isinstance(raw, dict):
            raise ContentError("cards.json must be an object")
        raw_cards = raw.get("cards")
        if not isinstance(raw_cards, list):
            raise ContentError("cards.json.cards must be a list")

        cards: dict[str, CardDefinition] = {}
        for item in raw_cards:
            if not isinstance(item, dict):
                continue
            card = _parse_card(item)
            if card.id in cards:
                raise ContentError(f"Duplicate card id in {cards_path}: {card.id}")
            if card.type == "Pilot" and card.ap_modifier is None and card.ap is None:
                logger.warning("Pilot %s has neither ap_modifier nor ap; it adds nothing", card.id)
            cards[card.id] = card
        return CardDatabase(cards=cards)

    def load_decklists(self) -> dict[str, Decklist]:
        path = self._data_dir / "decks.json"
        raw = _load_json(path)
        schema = _load_json(self._schema_dir / "decks.schema.json")
        validate_json(raw, schema, context=str(path))

        if not isinstance(raw, dict):
            raise ContentError("decks.json must be an object")
        raw_decks = raw.get("decks")
        if not isinstance(raw_decks, list):
            raise ContentError("decks.json.decks must be a list")

        out: dict[str, Decklist] = {}
        for d in raw_decks:
            if not isinstance(d, dict):
                continue
            deck_id = _require_str(d, "id")
            out[deck_id] = Decklist(
                id=deck_id,
                name=_require_str(d, "name"),
                main=_parse_entries(d.get("main"), context=f"{deck_id}.main"),
                resource=_parse_entries(d.get("resource"), context=f"{deck_id}.resource"),
            )
        return out

    def build_player_setup(
        self,
        deck_id: str,
        player_name: str,
        db: CardDatabase,
        decklists: Mapping[str, Decklist] | None = None,
    ) -> PlayerSetup:
        lists = decklists if decklists is not None else self.load_decklists()
        deck = lists.get(deck_id)
        if deck is None:
            raise ContentError(f"Unknown deck id: {deck_id}")
        return PlayerSetup(
            name=player_name,
            main_deck=expand_entries(deck.main, db, context=f"{deck_id}.main"),
            resource_deck=expand_entries(deck.resource, db, context=f"{deck_id}.resource"),
        )

    def validate_all(self) -> None:
        # Load is validation (schema + parse + id resolution)
        db = self.load_cards_db()
        decklists = self.load_decklists()
        for deck_id in decklists:
            self.build_player_setup(deck_id, deck_id, db, decklists)
