from __future__ import annotations

import copy
import dataclasses
import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field

from . import ai
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
from .config import MatchConfig
from .deck import DeckValidationError, validate_constructed_deck
from .effects import CardEffectRegistry, CardScript, ScriptContext, ScriptFn, build_command_effects
from .rng import RandomFn, resolve_rng, shuffle
from .rules import (
    check_attack,
    check_block,
    check_play,
    effective_ap,
    effective_hp,
    link_satisfied,
    pay_cost,
)
from .state import BattleState, CardInstance, GameState, PlayerState, PriorityState, PriorityWindow, StackItem
from .types import (
    EX_BASE,
    EX_RESOURCE,
    CardDefinition,
    CreateTempResourceEffect,
    DamageBaseEffect,
    DamageUnitEffect,
    DestroyUnitEffect,
    DrawEffect,
    Effect,
    LogEffect,
    TokenType,
)

logger = logging.getLogger(__name__)

GAME_OVER_ERROR = "Game is already over."


@dataclass(frozen=True)
class PlayerSetup:
    name: str
    main_deck: Sequence[CardDefinition]
    resource_deck: Sequence[CardDefinition]


@dataclass
class StepResult:
    ok: bool
    events: list[str] = field(default_factory=list)
    error: str | None = None


class Engine:
    """Two-player duel engine.

    All mutation goes through :meth:`step` (the named methods build an action
    descriptor and call it). A rejected action leaves the state untouched.
    """

    def __init__(
        self,
        players: Sequence[PlayerSetup],
        starting_player: int = 0,
        validate_decks: bool = True,
        effect_registry: Mapping[str, CardScript] | None = None,
        rng: RandomFn | None = None,
        seed: int | None = None,
        config: MatchConfig | None = None,
    ) -> None:
        if len(players) != 2:
            raise ValueError("Exactly two players are required.")
        if starting_player not in (0, 1):
            raise ValueError("starting_player must be 0 or 1.")

        self.config = config or MatchConfig()
        if validate_decks:
            problems: dict[str, list[str]] = {}
            for setup in players:
                check = validate_constructed_deck(setup.main_deck, setup.resource_deck, self.config)
                if not check.is_valid:
                    problems[setup.name] = list(check.errors)
            if problems:
                raise DeckValidationError(problems)

        self.rng = resolve_rng(rng, seed)
        self.effects: CardEffectRegistry = dict(effect_registry or {})
        self._next_instance = 1
        self._next_stack_id = 1

        cards: dict[str, CardInstance] = {}
        self.state = GameState(cards=cards, players=[], active_player=starting_player)

        for index, setup in enumerate(players):
            self.state.players.append(self._build_player(setup, index))

        second = self.state.opponent(starting_player)
        bonus = self._create_instance(EX_RESOURCE, second, "ex-resource")
        self.state.move_card(bonus, "resource_area")

        self.state.log.append(
            f"Game initialized. {self.state.players[starting_player].name} takes the first turn."
        )

    # -- setup ---------------------------------------------------------------

    def _create_instance(
        self, definition: CardDefinition, owner: int, token_type: TokenType | None = None
    ) -> str:
        instance_id = f"ci-{self._next_instance:05d}"
        self._next_instance += 1
        self.state.cards[instance_id] = CardInstance(
            instance_id=instance_id,
            owner=owner,
            definition=definition,
            entered_turn=self.state.turn if token_type is not None else 0,
            token_type=token_type,
        )
        return instance_id

    def _build_player(self, setup: PlayerSetup, index: int) -> PlayerState:
        cfg = self.config
        main_ids = shuffle([self._create_instance(d, index) for d in setup.main_deck], self.rng)
        resource_ids = shuffle([self._create_instance(d, index) for d in setup.resource_deck], self.rng)

        hand = main_ids[: cfg.starting_hand]
        shields = main_ids[cfg.starting_hand : cfg.starting_hand + cfg.shield_count]
        deck = main_ids[cfg.starting_hand + cfg.shield_count :]
        for sid in shields:
            self.state.cards[sid].face_down = True
        for cid in [*deck, *resource_ids]:
            self.state.cards[cid].face_down = True

        base_def = dataclasses.replace(EX_BASE, ap=cfg.ex_base_ap, hp=cfg.ex_base_hp)
        base = self._create_instance(base_def, index, "ex-base")

        return PlayerState(
            name=setup.name,
            main_deck=deck,
            resource_deck=resource_ids,
            hand=hand,
            shields=shields,
            base=base,
        )

    # -- public API ----------------------------------------------------------

    def register_script(self, card_id: str, script: CardScript | ScriptFn) -> None:
        if not isinstance(script, CardScript):
            script = CardScript(on_play=script)
        self.effects[card_id] = script

    def snapshot(self) -> GameState:
        return copy.deepcopy(self.state)

    def advance_to_next_phase(self) -> StepResult:
        return self.step(AdvancePhaseAction(player=self.state.active_player))

    def play_card(
        self,
        player: int,
        hand_card_id: str,
        attach_to_unit_id: str | None = None,
        target_unit_id: str | None = None,
    ) -> StepResult:
        return self.step(
            PlayCardAction(
                player=player,
                hand_card_id=hand_card_id,
                attach_to_unit_id=attach_to_unit_id,
                target_unit_id=target_unit_id,
            )
        )

    def declare_attack(self, player: int, attacker_id: str, target: AttackTarget) -> StepResult:
        return self.step(DeclareAttackAction(player=player, attacker_id=attacker_id, target=target))

    def declare_block(self, player: int, blocker_id: str | None) -> StepResult:
        return self.step(DeclareBlockAction(player=player, blocker_id=blocker_id))

    def pass_priority(self, player: int) -> StepResult:
        return self.step(PassPriorityAction(player=player))

    def discard_for_hand_limit(self, player: int, hand_card_id: str) -> StepResult:
        return self.step(DiscardForHandLimitAction(player=player, hand_card_id=hand_card_id))

    def get_legal_actions(self, player: int) -> list[Action]:
        return ai.get_legal_actions(self, player)

    def recommend_action(self, player: int) -> ai.Recommendation | None:
        return ai.recommend_action(self, player)

    def step(self, action: Action) -> StepResult:
        """Apply a single action.

        Deterministic for a given (seed, decks, action sequence).
        """
        state = self.state
        if state.game_over:
            return StepResult(ok=False, error=GAME_OVER_ERROR)

        mark = len(state.log)

        if isinstance(action, AdvancePhaseAction):
            error = self._advance_phase(action.player)
        elif isinstance(action, PlayCardAction):
            error = self._play_card(action)
        elif isinstance(action, DeclareAttackAction):
            error = self._declare_attack(action)
        elif isinstance(action, DeclareBlockAction):
            error = self._declare_block(action)
        elif isinstance(action, PassPriorityAction):
            error = self._pass_priority(action.player)
        elif isinstance(action, DiscardForHandLimitAction):
            error = self._discard_for_hand_limit(action)
        else:
            error = "Unknown action."

        if error is not None:
            logger.debug("Rejected %s: %s", type(action).__name__, error)
            return StepResult(ok=False, error=error)

        state.action_log.append(action)
        if not state.game_over:
            self._run_state_based_actions()
        return StepResult(ok=True, events=state.log[mark:])

    # -- phases --------------------------------------------------------------

    def _advance_phase(self, player: int) -> str | None:
        state = self.state
        if state.phase in ("start", "draw", "resource") and player != state.active_player:
            return "Only the active player may advance the phase."
        if state.phase == "start":
            self._start_step()
            state.phase = "draw"
            state.log.append(f"Turn {state.turn}: Draw phase.")
            return None
        if state.phase == "draw":
            self._draw_cards(state.active_player, 1)
            if state.game_over:
                return None
            state.phase = "resource"
            state.log.append(f"Turn {state.turn}: Resource phase.")
            return None
        if state.phase == "resource":
            self._place_resource_for_turn(state.active_player)
            state.phase = "main"
            self._open_priority("main", state.active_player)
            state.log.append(f"Turn {state.turn}: Main phase started.")
            return None
        return "Use action windows and priority passing to leave this phase."

    def _start_step(self) -> None:
        state = self.state
        active = state.players[state.active_player]
        for cid in [*active.resource_area, *active.battle_area]:
            state.cards[cid].rested = False
        if active.base is not None:
            state.cards[active.base].rested = False
        state.log.append(f"Turn {state.turn}: Start step ready ({active.name}).")

    def _draw_cards(self, player: int, amount: int) -> None:
        state = self.state
        ps = state.players[player]
        for _ in range(amount):
            if not ps.main_deck:
                self._defeat(player, f"{ps.name} cannot draw and loses by deck-out.")
                return
            top = ps.main_deck[0]
            state.cards[top].face_down = False
            state.move_card(top, "hand")
        state.log.append(f"{ps.name} draws {amount} card(s) ({len(ps.main_deck)} left in deck).")

    def _place_resource_for_turn(self, player: int) -> None:
        state = self.state
        ps = state.players[player]
        if len(ps.resource_area) >= self.config.max_resource_area:
            state.log.append(f"{ps.name} cannot place a resource (resource area full).")
            return
        if not ps.resource_deck:
            state.log.append(f"{ps.name} has no resource cards left to place.")
            return
        top = ps.resource_deck[0]
        card = state.cards[top]
        card.rested = False
        card.face_down = False
        card.entered_turn = state.turn
        state.move_card(top, "resource_area")
        state.log.append(f"{ps.name} places {card.name} as resource.")

    def _try_finish_turn_from_end_window(self) -> None:
        state = self.state
        active = state.players[state.active_player]
        excess = len(active.hand) - self.config.max_hand_size
        if excess > 0:
            state.pending_hand_discards = excess
            state.log.append(f"{active.name} must discard {excess} card(s) for hand limit.")
            return
        self._finish_turn()

    def _finish_turn(self) -> None:
        state = self.state
        state.pending_hand_discards = 0
        state.priority = None
        state.battle = None
        state.phase = "start"
        state.active_player = state.opponent(state.active_player)
        state.turn += 1
        state.log.append(f"Turn {state.turn}: {state.players[state.active_player].name}'s turn begins.")
        logger.debug("Turn %d begins for player %d", state.turn, state.active_player)

    def _discard_for_hand_limit(self, action: DiscardForHandLimitAction) -> str | None:
        state = self.state
        if state.phase != "end" or state.pending_hand_discards <= 0:
            return "No hand-limit discard is currently required."
        if action.player != state.active_player:
            return "Only the active player discards for hand limit."
        active = state.players[action.player]
        if action.hand_card_id not in active.hand:
            return "Card is not in hand."

        state.move_card(action.hand_card_id, "trash")
        state.pending_hand_discards -= 1
        state.log.append(
            f"{active.name} discards {state.cards[action.hand_card_id].name} for hand limit "
            f"({state.pending_hand_discards} remaining)."
        )
        if state.pending_hand_discards == 0:
            self._finish_turn()
        return None

    # -- priority & stack ----------------------------------------------------

    def _open_priority(self, window: PriorityWindow, first_player: int) -> None:
        self.state.priority = PriorityState(window=window, current_player=first_player)

    def _post_action_priority_shift(self, acting_player: int) -> None:
        pr = self.state.priority
        if pr is None:
            return
        pr.current_player = self.state.opponent(acting_player)
        pr.consecutive_passes = 0

    def _pass_priority(self, player: int) -> str | None:
        state = self.state
        pr = state.priority
        if pr is None:
            return "No active priority window."
        if pr.current_player != player:
            return "Player does not currently have priority."

        pr.consecutive_passes += 1
        pr.current_player = state.opponent(player)
        state.log.append(f"{state.players[player].name} passes priority.")
        if pr.consecutive_passes < 2:
            return None

        if state.stack:
            self._resolve_top_of_stack()
            if state.game_over:
                state.priority = None
                return None
            pr.consecutive_passes = 0
            pr.current_player = state.active_player
            return None

        window = pr.window
        state.priority = None
        if window == "main":
            state.phase = "end"
            state.log.append("Main phase ended. End phase action window starts.")
            self._open_priority("end", state.opponent(state.active_player))
        elif window == "battle":
            if state.battle is None:
                raise RuntimeError("battle window open without an active battle")
            state.battle.step = "damage"
            self._resolve_battle_damage()
        else:
            self._try_finish_turn_from_end_window()
        return None

    def _queue_command_effect(self, source: CardInstance, controller: int, target_unit_id: str | None) -> None:
        state = self.state
        ctx = ScriptContext(
            engine=self,
            controller=controller,
            opponent=state.opponent(controller),
            source=source,
            target_unit_id=target_unit_id,
        )
        effects = build_command_effects(ctx, self.effects)
        item = StackItem(
            id=f"stack-{self._next_stack_id:04d}",
            controller=controller,
            source_card_id=source.definition.id,
            source_instance_id=source.instance_id,
            description=f"{source.name} effect",
            effects=tuple(effects),
        )
        self._next_stack_id += 1
        state.stack.append(item)
        state.log.append(f"Effect queued: {item.description}.")

    def _resolve_top_of_stack(self) -> None:
        state = self.state
        if not state.stack:
            return
        item = state.stack.pop()
        state.log.append(f"Resolving stack item: {item.description}.")
        for effect in item.effects:
            self._resolve_effect(effect)
            if state.game_over:
                return
            self._run_state_based_actions()

    def _resolve_effect(self, effect: Effect) -> None:
        state = self.state
        if isinstance(effect, DrawEffect):
            self._draw_cards(effect.player, effect.amount)
        elif isinstance(effect, DamageUnitEffect):
            target = state.cards.get(effect.target_unit_id)
            if target is None or not state.in_battle_area(target.owner, target.instance_id):
                state.log.append("Effect damage has no legal target and fizzles.")
                return
            target.damage += effect.amount
            state.log.append(f"{target.name} takes {effect.amount} effect damage.")
        elif isinstance(effect, DamageBaseEffect):
            ps = state.players[effect.player]
            if ps.base is None:
                state.log.append(f"{ps.name} has no base to damage.")
                return
            state.cards[ps.base].damage += effect.amount
            state.log.append(f"{ps.name}'s base takes {effect.amount} effect damage.")
        elif isinstance(effect, DestroyUnitEffect):
            target = state.cards.get(effect.target_unit_id)
            if target is None or not state.in_battle_area(target.owner, target.instance_id):
                state.log.append("Destroy effect has no legal target and fizzles.")
                return
            self._destroy_unit(target.owner, target.instance_id, "destroyed by effect")
        elif isinstance(effect, CreateTempResourceEffect):
            ps = state.players[effect.player]
            created = 0
            for _ in range(effect.amount):
                if len(ps.resource_area) >= self.config.max_resource_area:
                    break
                rid = self._create_instance(EX_RESOURCE, effect.player, "ex-resource")
                state.move_card(rid, "resource_area")
                created += 1
            state.log.append(f"{ps.name} gains {created} temporary resource(s).")
        elif isinstance(effect, LogEffect):
            state.log.append(effect.message)
        else:
            raise TypeError(f"Unhandled effect: {effect!r}")

    # -- playing cards -------------------------------------------------------

    def _play_card(self, action: PlayCardAction) -> str | None:
        state = self.state
        player = action.player
        error = check_play(
            state,
            player,
            action.hand_card_id,
            self.effects,
            self.config,
            attach_to_unit_id=action.attach_to_unit_id,
            target_unit_id=action.target_unit_id,
        )
        if error is not None:
            return error

        ps = state.players[player]
        card = state.cards[action.hand_card_id]
        ctype = card.definition.type
        pay_cost(state, player, card.definition.cost)
        card.face_down = False

        if ctype == "Unit":
            card.entered_turn = state.turn
            card.rested = False
            card.damage = 0
            state.move_card(card.instance_id, "battle_area")
            state.log.append(f"{ps.name} deployed {card.name}.")
        elif ctype == "Pilot":
            assert action.attach_to_unit_id is not None
            self._attach_pilot(card, action.attach_to_unit_id)
        elif ctype == "Base":
            if ps.base is not None:
                old = state.cards[ps.base]
                state.move_card(old.instance_id, "trash")
                state.log.append(f"{ps.name}'s {old.name} is replaced.")
            card.damage = 0
            card.rested = False
            card.entered_turn = state.turn
            state.move_card(card.instance_id, "base")
            state.log.append(f"{ps.name} deployed base {card.name}.")
        elif ctype == "Command":
            state.move_card(card.instance_id, "trash")
            state.log.append(f"{ps.name} played command {card.name}.")
            self._queue_command_effect(card, player, action.target_unit_id)
        else:
            card.rested = False
            card.entered_turn = state.turn
            state.move_card(card.instance_id, "resource_area")
            state.log.append(f"{ps.name} moved {card.name} to resources.")

        self._post_action_priority_shift(player)
        return None

    def _attach_pilot(self, pilot: CardInstance, unit_id: str) -> None:
        state = self.state
        unit = state.cards[unit_id]
        state.move_card(pilot.instance_id, None)
        unit.attached_pilot_id = pilot.instance_id
        pilot.attached_unit_id = unit_id
        pilot.entered_turn = state.turn
        name = state.players[pilot.owner].name
        state.log.append(f"{name} paired {pilot.name} with {unit.name}.")
        if link_satisfied(unit.definition, pilot.definition):
            unit.is_linked = True
            state.log.append(f"{pilot.name} links with {unit.name}; it may attack this turn.")

    # -- combat --------------------------------------------------------------

    def _declare_attack(self, action: DeclareAttackAction) -> str | None:
        state = self.state
        error = check_attack(state, action.player, action.attacker_id, action.target)
        if error is not None:
            return error

        attacker = state.cards[action.attacker_id]
        defender = state.opponent(action.player)
        attacker.rested = True
        state.phase = "battle"
        state.priority = None
        state.battle = BattleState(
            attacker_id=action.attacker_id,
            defender=defender,
            target=action.target,
        )
        if action.target.kind == "player":
            target_name = state.players[defender].name
        else:
            assert action.target.unit_id is not None
            target_name = state.cards[action.target.unit_id].name
        state.log.append(
            f"{attacker.name} attacks {target_name}. {state.players[defender].name} may declare a block."
        )
        return None

    def _declare_block(self, action: DeclareBlockAction) -> str | None:
        state = self.state
        error = check_block(state, action.player, action.blocker_id)
        if error is not None:
            return error

        battle = state.battle
        assert battle is not None
        name = state.players[action.player].name
        if action.blocker_id is not None:
            blocker = state.cards[action.blocker_id]
            blocker.rested = True
            battle.blocker_id = action.blocker_id
            state.log.append(f"{name} blocks with {blocker.name}.")
        else:
            state.log.append(f"{name} does not block.")

        battle.step = "action"
        self._open_priority("battle", action.player)
        return None

    def _defending_unit_id(self, battle: BattleState) -> str | None:
        # a blocker only stands in for a unit target; player attacks always connect
        if battle.target.kind != "unit":
            return None
        if battle.blocker_id is not None:
            return battle.blocker_id
        return battle.target.unit_id

    def _resolve_battle_damage(self) -> None:
        state = self.state
        battle = state.battle
        if battle is None:
            return

        attacker = state.cards.get(battle.attacker_id)
        if attacker is None or not state.in_battle_area(state.active_player, battle.attacker_id):
            state.log.append("Attacker is no longer on the battlefield. Battle ends.")
            self._end_battle()
            return

        attacker_ap = effective_ap(state, attacker.instance_id)
        defender = state.players[battle.defender]
        defending_unit_id = self._defending_unit_id(battle)

        if defending_unit_id is None:
            if defender.base is not None:
                base = state.cards[defender.base]
                base.damage += attacker_ap
                state.log.append(f"{attacker.name} deals {attacker_ap} damage to {defender.name}'s base.")
            elif defender.shields:
                shield_id = defender.shields[0]
                shield = state.cards[shield_id]
                shield.face_down = False
                state.move_card(shield_id, "trash")
                state.log.append(
                    f"{defender.name} loses a shield, revealing {shield.name} "
                    f"({len(defender.shields)} remaining)."
                )
            else:
                self._defeat(
                    battle.defender,
                    f"{defender.name} takes battle damage with no base or shields and loses.",
                )
        else:
            unit = state.cards.get(defending_unit_id)
            if unit is not None and state.in_battle_area(battle.defender, defending_unit_id):
                unit_ap = effective_ap(state, defending_unit_id)
                unit.damage += attacker_ap
                attacker.damage += unit_ap
                state.log.append(
                    f"{attacker.name} ({attacker_ap} AP) and {unit.name} ({unit_ap} AP) "
                    "deal simultaneous damage."
                )
            else:
                state.log.append("Defending unit is no longer on the battlefield.")

        if state.game_over:
            return
        self._run_state_based_actions()
        self._end_battle()

    def _end_battle(self) -> None:
        state = self.state
        state.battle = None
        state.phase = "main"
        self._open_priority("main", state.active_player)
        state.log.append("Battle ended. Main action window resumes.")

    # -- state-based actions -------------------------------------------------

    def _run_state_based_actions(self) -> None:
        state = self.state
        doomed_bases: list[tuple[int, str]] = []
        doomed_units: list[tuple[int, str]] = []
        for index, ps in enumerate(state.players):
            if ps.base is not None and state.cards[ps.base].damage >= effective_hp(state, ps.base):
                doomed_bases.append((index, ps.base))
            for uid in ps.battle_area:
                if state.cards[uid].damage >= effective_hp(state, uid):
                    doomed_units.append((index, uid))

        for index, base_id in doomed_bases:
            ps = state.players[index]
            state.move_card(base_id, "trash")
            state.log.append(f"{ps.name}'s {state.cards[base_id].name} is destroyed.")
        for index, uid in doomed_units:
            self._destroy_unit(index, uid, "destroyed by damage")

    def _destroy_unit(self, player: int, unit_id: str, reason: str) -> None:
        state = self.state
        if not state.in_battle_area(player, unit_id):
            return
        unit = state.cards[unit_id]
        if unit.attached_pilot_id is not None:
            pilot = state.cards[unit.attached_pilot_id]
            pilot.attached_unit_id = None
            unit.attached_pilot_id = None
            state.move_card(pilot.instance_id, "trash")
        unit.is_linked = False
        state.move_card(unit_id, "trash")
        state.log.append(f"{unit.name} is {reason}.")

    def _defeat(self, loser: int, message: str) -> None:
        state = self.state
        state.players[loser].defeated = True
        state.game_over = True
        state.winner = state.opponent(loser)
        state.priority = None
        state.battle = None
        state.log.append(message)
        logger.debug("Game over on turn %d: player %d wins", state.turn, state.winner)


def replay(players: Sequence[PlayerSetup], actions: Iterable[Action], **engine_kwargs: object) -> Engine:
    engine = Engine(players, **engine_kwargs)  # type: ignore[arg-type]
    for a in actions:
        engine.step(a)
        if engine.state.game_over:
            break
    return engine
