"""Deterministic, headless rules engine for DuelTCG.

This package does no I/O; card content is supplied by the caller.
"""

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
from .ai import Recommendation, auto_play, get_legal_actions, player_to_act, recommend_action
from .config import MatchConfig
from .deck import DeckValidation, DeckValidationError, validate_constructed_deck
from .effects import CardEffectRegistry, CardScript, ScriptContext
from .match import Engine, PlayerSetup, StepResult, replay
from .rng import create_seeded_rng
from .scripts import default_scripts
from .state import GameState
from .types import CardDatabase, CardDefinition, CardType, Color

__all__ = [
    "Action",
    "AdvancePhaseAction",
    "AttackTarget",
    "CardDatabase",
    "CardDefinition",
    "CardEffectRegistry",
    "CardScript",
    "CardType",
    "Color",
    "DeckValidation",
    "DeckValidationError",
    "DeclareAttackAction",
    "DeclareBlockAction",
    "DiscardForHandLimitAction",
    "Engine",
    "GameState",
    "MatchConfig",
    "PassPriorityAction",
    "PlayCardAction",
    "PlayerSetup",
    "Recommendation",
    "ScriptContext",
    "StepResult",
    "auto_play",
    "create_seeded_rng",
    "default_scripts",
    "get_legal_actions",
    "player_to_act",
    "recommend_action",
    "replay",
    "validate_constructed_deck",
]
