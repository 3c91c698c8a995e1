"""Command effect lookup.

Two tiers share one entry point, :func:`build_command_effects`:

1. an explicit :class:`CardScript` registered for the card id;
2. a small ordered list of text matchers run over the card's printed text.

A script always shadows whatever the text would have produced. Text that no
matcher recognises resolves as a single log-only effect.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal

from .state import CardInstance, GameState
from .types import (
    CardDefinition,
    DamageUnitEffect,
    DestroyUnitEffect,
    DrawEffect,
    Effect,
    LogEffect,
)

if TYPE_CHECKING:
    from .match import Engine

logger = logging.getLogger(__name__)

TargetScope = Literal["any", "enemy"]


@dataclass(frozen=True)
class ScriptContext:
    engine: Engine
    controller: int
    opponent: int
    source: CardInstance
    target_unit_id: str | None = None

    @property
    def state(self) -> GameState:
        return self.engine.state


ScriptFn = Callable[[ScriptContext], Sequence[Effect]]


@dataclass(frozen=True)
class CardScript:
    on_play: ScriptFn
    requires_target: bool = False
    target_scope: TargetScope = "any"


CardEffectRegistry = dict[str, CardScript]


_NUMBER_WORDS = {"a": 1, "an": 1, "one": 1, "two": 2, "three": 3, "four": 4, "five": 5}
_N = r"(\d+|an?|one|two|three|four|five)"


def _parse_amount(raw: str) -> int:
    raw = raw.lower()
    if raw.isdigit():
        return int(raw)
    return _NUMBER_WORDS[raw]


@dataclass(frozen=True)
class TextMatcher:
    name: str
    pattern: re.Pattern[str]
    requires_target: bool
    build: Callable[[re.Match[str], int, str | None], Effect]

    def target_scope(self, match: re.Match[str]) -> TargetScope:
        return "enemy" if "enemy" in match.group(0).lower() else "any"


TEXT_MATCHERS: tuple[TextMatcher, ...] = (
    TextMatcher(
        name="draw",
        pattern=re.compile(rf"\bdraw\s+{_N}\s+cards?\b", re.IGNORECASE),
        requires_target=False,
        build=lambda m, controller, _target: DrawEffect(player=controller, amount=_parse_amount(m.group(1))),
    ),
    TextMatcher(
        name="damage-unit",
        pattern=re.compile(
            rf"\bdeal\s+{_N}\s+damage\s+to\s+(?:an?\s+)?target\s+(?:enemy\s+)?units?\b",
            re.IGNORECASE,
        ),
        requires_target=True,
        build=lambda m, _controller, target: DamageUnitEffect(
            target_unit_id=target or "", amount=_parse_amount(m.group(1))
        ),
    ),
    TextMatcher(
        name="destroy-unit",
        pattern=re.compile(r"\bdestroy\s+(?:an?\s+)?target\s+(?:enemy\s+)?units?\b", re.IGNORECASE),
        requires_target=True,
        build=lambda _m, _controller, target: DestroyUnitEffect(target_unit_id=target or ""),
    ),
)


@dataclass(frozen=True)
class TargetRequirement:
    required: bool
    scope: TargetScope = "any"


NO_TARGET = TargetRequirement(required=False)


def _text_matches(text: str) -> list[tuple[TextMatcher, re.Match[str]]]:
    found: list[tuple[TextMatcher, re.Match[str]]] = []
    for matcher in TEXT_MATCHERS:
        for m in matcher.pattern.finditer(text):
            found.append((matcher, m))
    found.sort(key=lambda pair: pair[1].start())
    return found


def target_requirement(
    definition: CardDefinition, registry: Mapping[str, CardScript]
) -> TargetRequirement:
    script = registry.get(definition.id)
    if script is not None:
        if script.requires_target:
            return TargetRequirement(required=True, scope=script.target_scope)
        return NO_TARGET

    scope: TargetScope | None = None
    for matcher, m in _text_matches(definition.text):
        if not matcher.requires_target:
            continue
        # "enemy" on any clause narrows the whole card
        if scope is None or matcher.target_scope(m) == "enemy":
            scope = matcher.target_scope(m)
    if scope is None:
        return NO_TARGET
    return TargetRequirement(required=True, scope=scope)


def valid_unit_targets(state: GameState, controller: int, scope: TargetScope) -> list[str]:
    """Units a targeted command may choose, enemy units first."""
    enemy = state.opponent(controller)
    out = list(state.players[enemy].battle_area)
    if scope == "any":
        out.extend(state.players[controller].battle_area)
    return [uid for uid in out if state.cards[uid].definition.type == "Unit"]


def infer_effects(definition: CardDefinition, controller: int, target_unit_id: str | None) -> list[Effect]:
    effects: list[Effect] = []
    for matcher, m in _text_matches(definition.text):
        logger.debug("%s: %s clause %r", definition.id, matcher.name, m.group(0))
        effects.append(matcher.build(m, controller, target_unit_id))
    if not effects:
        logger.debug("No text pattern matched for %s: %r", definition.id, definition.text)
        effects.append(LogEffect(message=f"{definition.name} resolves with no recognised effect."))
    return effects


def build_command_effects(ctx: ScriptContext, registry: Mapping[str, CardScript]) -> list[Effect]:
    script = registry.get(ctx.source.definition.id)
    if script is not None:
        effects = list(script.on_play(ctx))
        if not effects:
            effects.append(LogEffect(message=f"{ctx.source.name} resolves with no effect."))
        return effects
    return infer_effects(ctx.source.definition, ctx.controller, ctx.target_unit_id)
