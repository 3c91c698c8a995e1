"""Scripted commands for the bundled card pool.

Text inference only understands draw, unit damage and unit destruction, so
cards that need anything else are registered here by card id.
"""

from __future__ import annotations

from collections.abc import Sequence

from .effects import CardEffectRegistry, CardScript, ScriptContext, ScriptFn
from .types import CreateTempResourceEffect, DamageBaseEffect, DrawEffect, Effect


def temp_resources(amount: int) -> ScriptFn:
    def on_play(ctx: ScriptContext) -> Sequence[Effect]:
        return [CreateTempResourceEffect(player=ctx.controller, amount=amount)]

    return on_play


def damage_enemy_base(amount: int) -> ScriptFn:
    def on_play(ctx: ScriptContext) -> Sequence[Effect]:
        return [DamageBaseEffect(player=ctx.opponent, amount=amount)]

    return on_play


def temp_resources_and_draw(amount: int, draw: int) -> ScriptFn:
    def on_play(ctx: ScriptContext) -> Sequence[Effect]:
        return [
            CreateTempResourceEffect(player=ctx.controller, amount=amount),
            DrawEffect(player=ctx.controller, amount=draw),
        ]

    return on_play


def default_scripts() -> CardEffectRegistry:
    return {
        # Supply Drop
        "ST01-014": CardScript(on_play=temp_resources(1)),
        # Emergency Requisition
        "ST01-015": CardScript(on_play=temp_resources_and_draw(1, 1)),
        # Orbital Barrage
        "ST02-014": CardScript(on_play=damage_enemy_base(2)),
    }
