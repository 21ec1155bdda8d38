"""
Turn Manager - Turn numbering, phase flow and auto-skip.

Turns advance in half steps: whole numbers belong to the first player,
halves to the other. Each new turn is a DRAW_PHASE that waits for the
client to acknowledge DRAW_PHASE_COMPLETE before MAIN_PHASE begins.

Phase flow:
    MAIN_PHASE --(all main zones filled / two passes / both stuck)--> SP_PHASE
    SP_PHASE   --(every sp zone filled or passed)-------------------> BATTLE
    BATTLE     --(no winner yet)------------------------------------> next round, new turn
"""

from __future__ import annotations
from dataclasses import dataclass
import logging

from .action_generator import ActionGenerator, MAIN_ZONES
from .battle import BattleResolver
from .errors import ErrorType, GameRuleError
from .events import EventType
from .state import GameState, Phase

logger = logging.getLogger(__name__)


@dataclass
class TurnManager:
    generator: ActionGenerator
    battle: BattleResolver

    def owner_of_turn(self, state: GameState, turn: float) -> str | None:
        if float(turn).is_integer():
            return state.first_player
        return state.opponent_of(state.first_player)

    def start_game(self, state: GameState):
        """Both players are ready: the first player opens in MAIN_PHASE."""
        state.current_turn = 0.0
        state.current_player = state.first_player
        state.phase = Phase.MAIN_PHASE
        state.events.append(EventType.GAME_PHASE_START, {
            "phase": Phase.MAIN_PHASE.value,
            "currentPlayer": state.current_player,
            "currentTurn": state.current_turn,
        })

    def start_new_turn(self, state: GameState):
        """Advance half a turn and run the draw."""
        state.current_turn += 0.5
        state.current_player = self.owner_of_turn(state, state.current_turn)
        state.phase = Phase.DRAW_PHASE

        player = state.players[state.current_player]
        drawn = player.deck.draw(1)
        state.events.append(EventType.TURN_SWITCH, {
            "playerId": state.current_player,
            "turn": state.current_turn,
        })
        state.events.append(EventType.DRAW_PHASE_COMPLETE, {
            "playerId": state.current_player,
            "cardCount": len(drawn),
            "newHandSize": len(player.hand),
            "requiresAcknowledgment": True,
        })
        logger.debug("Turn %.1f of %s: %s drew %d", state.current_turn, state.game_id, state.current_player, len(drawn))

    def acknowledge_draw(self, state: GameState) -> bool:
        """DRAW_PHASE -> MAIN_PHASE, then auto-skip a player who cannot play."""
        if state.phase != Phase.DRAW_PHASE:
            return False
        state.phase = Phase.MAIN_PHASE
        state.events.append(EventType.PHASE_CHANGE, {
            "from": Phase.DRAW_PHASE.value,
            "to": Phase.MAIN_PHASE.value,
            "playerId": state.current_player,
        })

        current = state.current_player
        if self.generator.must_skip(state, current):
            state.events.append(EventType.TURN_SKIPPED, {"playerId": current, "turn": state.current_turn})
            logger.info("%s has no legal main-phase play; turn skipped", current)
            if self.generator.must_skip(state, state.opponent_of(current)):
                self.advance_to_sp_or_battle(state)
            else:
                self.start_new_turn(state)
        return True

    # =========================================================================
    # Post-action flow
    # =========================================================================

    def record_placement(self, state: GameState, player_id: str, card_id: str, field_idx: int):
        if state.phase != Phase.MAIN_PHASE:
            return
        state.players[player_id].turn_actions.append({
            "type": "placement",
            "field_idx": field_idx,
            "card_id": card_id,
            "turn": state.current_turn,
        })
        state.consecutive_passes = 0

    def continue_flow(self, state: GameState, player_id: str):
        """
        Decide what happens after a placement or a resolved selection.

        Does nothing while a selection is still open.
        """
        if state.pending_player_action or state.is_over:
            return
        if state.phase == Phase.MAIN_PHASE:
            if self.main_complete(state):
                state.events.append(EventType.ALL_MAIN_ZONES_FILLED, {"turn": state.current_turn})
                self.advance_to_sp_or_battle(state)
            elif state.players[player_id].acted_on_turn(state.current_turn):
                self.start_new_turn(state)
        elif state.phase == Phase.SP_PHASE:
            self._after_sp_move(state, player_id)

    def pass_turn(self, state: GameState, player_id: str):
        if state.phase == Phase.MAIN_PHASE:
            state.consecutive_passes += 1
            if state.consecutive_passes >= 2:
                self.advance_to_sp_or_battle(state)
            else:
                self.start_new_turn(state)
            return

        player = state.players[player_id]
        if player.field_effects.special_states.get("forcedSpPlay") and player.hand:
            raise GameRuleError(
                ErrorType.FIELD_EFFECT_RESTRICTION,
                "A field effect forces you to play a card into the SP zone",
            )
        player.sp_passed = True
        self._after_sp_move(state, player_id)

    # =========================================================================
    # Phase completion
    # =========================================================================

    def main_complete(self, state: GameState) -> bool:
        return all(state.zone(pid, zone) for pid in state.player_ids for zone in MAIN_ZONES)

    def needs_sp(self, state: GameState, player_id: str) -> bool:
        player = state.players[player_id]
        return not state.zone(player_id, "sp") and bool(player.hand) and not player.sp_passed

    def sp_complete(self, state: GameState) -> bool:
        return not any(self.needs_sp(state, pid) for pid in state.player_ids)

    def advance_to_sp_or_battle(self, state: GameState):
        """Leave MAIN_PHASE: SP phase for whoever still needs it, else battle."""
        state.consecutive_passes = 0
        needing = [pid for pid in state.ordered_players() if self.needs_sp(state, pid)]
        if not needing:
            self.run_battle(state)
            return
        state.phase = Phase.SP_PHASE
        state.current_player = needing[0]
        state.events.append(EventType.PHASE_CHANGE, {
            "from": Phase.MAIN_PHASE.value,
            "to": Phase.SP_PHASE.value,
            "playerId": state.current_player,
        })
        state.events.append(EventType.TURN_SWITCH, {"playerId": state.current_player, "turn": state.current_turn})

    def _after_sp_move(self, state: GameState, player_id: str):
        if self.sp_complete(state):
            state.events.append(EventType.ALL_SP_ZONES_FILLED, {"round": state.round_number})
            self.run_battle(state)
            return
        other = state.opponent_of(player_id)
        if other is not None and self.needs_sp(state, other):
            state.current_player = other
            state.events.append(EventType.TURN_SWITCH, {"playerId": other, "turn": state.current_turn})

    def run_battle(self, state: GameState):
        """Resolve the round, then start the next turn unless the game ended."""
        self.battle.resolve(state)
        if not state.is_over:
            self.start_new_turn(state)
