from __future__ import annotations

from collections import Counter
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from .config import MatchConfig
from .types import CardDefinition


class DeckValidationError(ValueError):
    """Raised when a match is constructed from decks that break the rules."""

    def __init__(self, errors_by_player: Mapping[str, Sequence[str]]) -> None:
        self.errors_by_player = {name: list(errs) for name, errs in errors_by_player.items()}
        parts = [
            f"Invalid deck for {name}: {' '.join(errs)}"
            for name, errs in self.errors_by_player.items()
        ]
        super().__init__(" ".join(parts))


@dataclass(frozen=True)
class DeckMetrics:
    main_deck_cards: int
    resource_deck_cards: int
    type_counts: Mapping[str, int]
    cost_curve: Mapping[int, int]
    color_counts: Mapping[str, int]
    card_copies: Mapping[str, int]

    @property
    def average_cost(self) -> float:
        if not self.main_deck_cards:
            return 0.0
        return sum(cost * n for cost, n in self.cost_curve.items()) / self.main_deck_cards


@dataclass(frozen=True)
class DeckValidation:
    is_valid: bool
    errors: tuple[str, ...]
    warnings: tuple[str, ...]
    metrics: DeckMetrics


def _deck_metrics(main_deck: Sequence[CardDefinition], resource_deck: Sequence[CardDefinition]) -> DeckMetrics:
    all_cards = [*main_deck, *resource_deck]
    type_counts = {"Unit": 0, "Pilot": 0, "Command": 0, "Base": 0, "Resource": 0}
    type_counts.update(Counter(card.type for card in all_cards))
    # resource cards stay out of the curve and the colour split
    playable = [card for card in all_cards if card.type != "Resource"]
    return DeckMetrics(
        main_deck_cards=len(main_deck),
        resource_deck_cards=len(resource_deck),
        type_counts=type_counts,
        cost_curve=dict(sorted(Counter(card.cost for card in playable).items())),
        color_counts=dict(Counter(card.color for card in playable)),
        card_copies=dict(Counter(card.id for card in all_cards)),
    )


def _deck_warnings(metrics: DeckMetrics) -> list[str]:
    if not metrics.main_deck_cards:
        return []
    warnings: list[str] = []
    units = metrics.type_counts["Unit"]
    if units < 15:
        warnings.append(f"Consider adding more Unit cards (currently {units}, recommend 15 minimum, 25-28 optimal).")
    elif units < 25:
        warnings.append(f"Unit count is low ({units}). Optimal range is 25-28 Unit cards.")

    pilots = metrics.type_counts["Pilot"]
    if pilots < 6:
        warnings.append(f"Consider adding more Pilot cards (currently {pilots}, recommend 6-8 for consistent attachments).")
    elif pilots > 8:
        warnings.append(f"High Pilot count ({pilots}). Consider reducing to 6-8 to avoid dead draws.")

    if metrics.average_cost > 4.5:
        warnings.append(
            f"Average card cost is high ({metrics.average_cost:.1f}). Consider adding lower-cost cards."
        )
    return warnings


def validate_constructed_deck(
    main_deck: Sequence[CardDefinition],
    resource_deck: Sequence[CardDefinition],
    config: MatchConfig | None = None,
) -> DeckValidation:
    """Check a main/resource deck pair against the construction rules.

    Every rule is evaluated; the result lists all violations, not just the first.
    Warnings are deck-building advice and never make a deck invalid.
    """
    cfg = config or MatchConfig()
    metrics = _deck_metrics(main_deck, resource_deck)
    errors: list[str] = []

    if len(main_deck) != cfg.main_deck_size:
        errors.append(
            f"Main deck must contain exactly {cfg.main_deck_size} cards (found {len(main_deck)})."
        )
    if len(resource_deck) != cfg.resource_deck_size:
        errors.append(
            f"Resource deck must contain exactly {cfg.resource_deck_size} cards "
            f"(found {len(resource_deck)})."
        )

    for card_id, qty in metrics.card_copies.items():
        if qty > cfg.max_copies_per_card:
            errors.append(f"Card {card_id} exceeds max copies ({qty}/{cfg.max_copies_per_card}).")

    colors = {card.color for card in [*main_deck, *resource_deck] if card.color != "Colorless"}
    if len(colors) > cfg.max_colors:
        errors.append(
            f"Deck may use at most {cfg.max_colors} non-Colorless colors "
            f"(found: {', '.join(sorted(colors))})."
        )

    return DeckValidation(
        is_valid=not errors,
        errors=tuple(errors),
        warnings=tuple(_deck_warnings(metrics)),
        metrics=metrics,
    )
