"""
Game Orchestrator - The single entry point for state changes.

All player actions, event acknowledgements, selection timeouts and forced
round ends go through here. Each call:
1. Clones the incoming state
2. Validates and dispatches on the clone
3. Re-runs the effect simulator
4. Returns an ActionResult holding the new state and the events it produced

Failures never touch the caller's state: the result carries a copy of it
with one ERROR_OCCURRED event appended. A corrupted play sequence marks the
game as corrupted and every later action is refused.
"""

from __future__ import annotations
from typing import Any, Callable, Iterable
import logging
import time

from ..catalog import Catalog, default_catalog
from .action import Action, ActionResult, ActionType
from .action_generator import ActionGenerator
from .battle import BattleResolver
from .card_action import CardAction
from .effect_registry import EffectRegistry
from .effect_simulator import EffectSimulator
from .errors import ErrorType, GameRuleError, SequenceCorruptedError
from .events import EventType
from .play_sequence import PlayAction
from .selection import SelectionManager
from .settings import EngineSettings
from .setup import GameSetup
from .state import GameState, Phase, PlacedCard, LEADER_ZONE, ZONE_ORDER
from .turns import TurnManager

logger = logging.getLogger(__name__)

PLAYABLE_PHASES = (Phase.MAIN_PHASE, Phase.SP_PHASE)


class GameOrchestrator:
    """
    Wires the engine components around one shared catalog.

    Usage:
        orchestrator = GameOrchestrator(catalog)
        result = orchestrator.apply_action(state, "playerId_1", Action.play_card(0, 2))
        if result.success:
            state = result.new_state
    """

    def __init__(self, catalog: Catalog | None = None, settings: EngineSettings | None = None):
        self.catalog = catalog or default_catalog()
        self.settings = settings or EngineSettings()
        self.registry = EffectRegistry(self.catalog)
        self.simulator = EffectSimulator(self.catalog, self.registry)
        self.selections = SelectionManager(self.catalog, self.registry)
        self.card_action = CardAction(self.catalog, self.registry, self.selections)
        self.generator = ActionGenerator(self.card_action)
        self.battle = BattleResolver(self.catalog, self.settings, self.simulator, self.card_action)
        self.turns = TurnManager(self.generator, self.battle)
        self.setup = GameSetup(self.catalog, self.settings, self.simulator)

    # =========================================================================
    # Player actions
    # =========================================================================

    def apply_action(self, state: GameState, player_id: str, action: Action) -> ActionResult:
        """Validate and apply one player action."""
        return self._run(state, player_id, lambda working: self._dispatch(working, player_id, action))

    def _dispatch(self, state: GameState, player_id: str, action: Action) -> list[str]:
        if state.corrupted:
            raise GameRuleError(ErrorType.SEQUENCE_CORRUPTED, "Game state is corrupted; no further actions accepted")
        if player_id not in state.players:
            raise GameRuleError(ErrorType.PLAYER_NOT_IN_GAME, f"Player {player_id} is not in this game")

        if state.pending_player_action:
            if action.action_type == ActionType.SELECT_CARD:
                return self._handle_select(state, player_id, action)
            if state.pending_player_action.get("player_id") == player_id:
                raise GameRuleError(
                    ErrorType.CARD_SELECTION_PENDING,
                    "Complete the pending card selection first",
                )
            raise GameRuleError(ErrorType.WAITING_FOR_PLAYER, "Waiting for the other player to select a card")

        if state.is_over:
            raise GameRuleError(ErrorType.GAME_ENDED, "The game has ended")
        if action.action_type == ActionType.SELECT_CARD:
            self.selections.validate(state, player_id, action.payload.selection_id, action.payload.selected_card_ids)

        handler = self._get_handler(action.action_type)
        if handler is None:
            raise GameRuleError(ErrorType.INVALID_ACTION_TYPE, f"Unknown action type: {action.action_type}")
        if state.current_player != player_id:
            raise GameRuleError(ErrorType.NOT_YOUR_TURN, f"It is not {player_id}'s turn")
        if state.phase not in PLAYABLE_PHASES:
            raise GameRuleError(
                ErrorType.INVALID_PHASE,
                f"Actions are not accepted during {state.phase.value}",
            )
        return handler(state, player_id, action)

    def _get_handler(self, action_type: ActionType | str) -> Callable[..., list[str]] | None:
        handlers = {
            ActionType.PLAY_CARD: self._handle_placement,
            ActionType.PLAY_CARD_BACK: self._handle_placement,
            ActionType.PASS: self._handle_pass,
        }
        return handlers.get(action_type)

    def _handle_placement(self, state: GameState, player_id: str, action: Action) -> list[str]:
        field_idx = action.payload.field_idx
        card_idx = action.payload.card_idx
        card = self.card_action.validate(state, player_id, field_idx, card_idx, action.face_down)

        self.card_action.commit(state, player_id, field_idx, card_idx, action.face_down)
        self.turns.record_placement(state, player_id, card.id, field_idx)
        self.simulator.apply(state)
        self.turns.continue_flow(state, player_id)
        self.simulator.apply(state)

        shown = "a face-down card" if action.face_down else card.id
        return [f"{player_id} played {shown} to {ZONE_ORDER[field_idx]}"]

    def _handle_select(self, state: GameState, player_id: str, action: Action) -> list[str]:
        selection = self.selections.resolve(
            state, player_id,
            action.payload.selection_id,
            action.payload.selected_card_ids,
            on_play=self.card_action.run_on_play,
        )
        self.simulator.apply(state)
        self.turns.continue_flow(state, player_id)
        self.simulator.apply(state)
        return [f"{player_id} resolved selection {selection.selection_id}"]

    def _handle_pass(self, state: GameState, player_id: str, action: Action) -> list[str]:
        phase = state.phase
        self.turns.pass_turn(state, player_id)
        self.simulator.apply(state)
        return [f"{player_id} passed during {phase.value}"]

    # =========================================================================
    # Other entry points
    # =========================================================================

    def acknowledge_events(
        self,
        state: GameState,
        player_id: str,
        event_ids: Iterable[str] = (),
        event_types: Iterable[str] = (),
    ) -> ActionResult:
        """
        Mark events processed. Acknowledging DRAW_PHASE_COMPLETE during the
        draw phase moves the game on to MAIN_PHASE.
        """
        event_ids = list(event_ids)
        event_types = list(event_types)

        def acknowledge(working: GameState) -> list[str]:
            if player_id not in working.players:
                raise GameRuleError(ErrorType.PLAYER_NOT_IN_GAME, f"Player {player_id} is not in this game")
            draw_ids = {e.id for e in working.events.of_type(EventType.DRAW_PHASE_COMPLETE)}
            marked = working.events.mark_many(event_ids) + working.events.mark_types(event_types)
            acknowledged_draw = bool(draw_ids & set(event_ids)) or EventType.DRAW_PHASE_COMPLETE.value in event_types
            changes = [f"{player_id} acknowledged {marked} events"]
            if acknowledged_draw and self.turns.acknowledge_draw(working):
                self.simulator.apply(working)
                changes.append(f"{working.current_player} entered {working.phase.value}")
            return changes

        return self._run(state, player_id, acknowledge)

    def force_next_round(self, state: GameState) -> ActionResult:
        """Resolve the current round immediately."""

        def next_round(working: GameState) -> list[str]:
            if working.is_over:
                raise GameRuleError(ErrorType.GAME_ENDED, "The game has ended")
            for selection in list(working.pending_card_selections.values()):
                self.selections.cancel(working, selection, "round ended")
            self.turns.run_battle(working)
            return [f"round resolved for {working.game_id}"]

        return self._run(state, None, next_round)

    def expire_selections(self, state: GameState, now: float | None = None) -> ActionResult | None:
        """Cancel selections older than the timeout. None when nothing expired."""
        expired = self.selections.expired(state, self.settings.selection_timeout_seconds, now)
        if not expired:
            return None

        def expire(working: GameState) -> list[str]:
            changes = []
            for selection in self.selections.expired(working, self.settings.selection_timeout_seconds, now):
                self._error_event(
                    working, selection.player_id,
                    ErrorType.CARD_SELECTION_TIMEOUT, f"Card selection {selection.selection_id} timed out",
                )
                self.selections.cancel(working, selection, "timeout")
                self.simulator.apply(working)
                self.turns.continue_flow(working, selection.player_id)
                changes.append(f"selection {selection.selection_id} expired")
            self.simulator.apply(working)
            return changes

        return self._run(state, None, expire)

    def start_game(self, state: GameState) -> GameState:
        """Called once both players are ready."""
        self.turns.start_game(state)
        self.simulator.apply(state)
        return state

    def reconcile(self, state: GameState) -> GameState:
        """
        Make an injected state consistent: every player gets a leader on the
        field and a PLAY_LEADER record, then derived effects are recomputed.
        """
        state.play_sequence.ensure_valid()
        if state.first_player not in state.players:
            state.first_player = state.player_ids[0] if state.player_ids else None
        for player_id in state.ordered_players():
            leader_id = state.leader_id(player_id)
            if leader_id is None:
                logger.warning("Injected player %s has no leader", player_id)
                continue
            if not state.zone(player_id, LEADER_ZONE):
                state.zones[player_id][LEADER_ZONE] = [
                    PlacedCard(card_id=leader_id, owner=player_id, zone=LEADER_ZONE)
                ]
            if not state.play_sequence.has_leader_play(player_id):
                state.play_sequence.append(
                    player_id, leader_id, PlayAction.PLAY_LEADER, LEADER_ZONE,
                    data={"leaderIndex": state.players[player_id].deck.current_leader_idx, "isInjected": True},
                    turn_number=state.current_turn,
                    phase=state.phase.value,
                )
        self.simulator.apply(state)
        return state

    def legal_placements(self, state: GameState, player_id: str) -> list[Action]:
        if state.pending_player_action or state.current_player != player_id:
            return []
        return self.generator.legal_placements(state, player_id)

    # =========================================================================
    # Result envelope
    # =========================================================================

    def _run(
        self,
        state: GameState,
        player_id: str | None,
        mutate: Callable[[GameState], list[str]],
    ) -> ActionResult:
        working = state.clone()
        before = working.events.counter
        try:
            changes = mutate(working)
        except SequenceCorruptedError as e:
            failed = state.clone()
            failed.corrupted = True
            logger.error("Game %s corrupted: %s", state.game_id, e.problems)
            self._error_event(failed, player_id, e.error_type, e.message)
            return ActionResult.failure(e.message, e.error_type.value, state=failed)
        except GameRuleError as e:
            failed = state.clone()
            logger.warning("Game %s rejected action from %s: %s", state.game_id, player_id, e.message)
            self._error_event(failed, player_id, e.error_type, e.message)
            return ActionResult.failure(e.message, e.error_type.value, state=failed)

        working.touch()
        events = [e.to_dict() for e in working.events.since(before)]
        result = ActionResult.success_with_state(working, changes, events)
        result.pending_choice = working.pending_selection()
        return result

    def _error_event(self, state: GameState, player_id: str | None, error_type: ErrorType, message: str):
        state.events.append(EventType.ERROR_OCCURRED, {
            "errorType": error_type.value,
            "message": message,
            "playerId": player_id,
            "timestamp": int(time.time() * 1000),
        })


def apply_action(
    state: GameState,
    player_id: str,
    action: Action | dict[str, Any],
    catalog: Catalog | None = None,
) -> ActionResult:
    """
    Convenience function to apply a single action.

    For repeated calls, build one GameOrchestrator and reuse it.
    """
    if isinstance(action, dict):
        action = Action.from_dict(action)
    return GameOrchestrator(catalog).apply_action(state, player_id, action)
