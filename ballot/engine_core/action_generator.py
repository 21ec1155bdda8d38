"""
Action Generator - Enumerates legal placements from a game state.

The action generator is used by:
1. TurnManager, to decide whether a player must skip the turn
2. The API, to show clients which moves are available
3. Tests, to cross-check CardAction validation

Design: Generates Action objects, not just (zone, card) pairs, by running
every candidate through CardAction.validate.
"""

from __future__ import annotations
from dataclasses import dataclass

from .action import Action
from .card_action import CardAction
from .errors import GameRuleError
from .state import GameState, Phase, ZONE_ORDER

# Zones that count towards main-phase completion
MAIN_ZONES = ("top", "left", "right", "help")


@dataclass
class ActionGenerator:
    """Generates legal placement actions for one player."""
    card_action: CardAction

    def legal_placements(self, state: GameState, player_id: str) -> list[Action]:
        """
        Every PlayCard / PlayCardBack that would pass validation right now.

        Turn ownership and the selection gate are not considered here.
        """
        if state.phase not in (Phase.MAIN_PHASE, Phase.SP_PHASE):
            return []
        player = state.get_player(player_id)
        if player is None:
            return []

        actions = []
        for card_idx in range(len(player.hand)):
            for field_idx in range(len(ZONE_ORDER)):
                for face_down in (False, True):
                    if self._is_legal(state, player_id, field_idx, card_idx, face_down):
                        factory = Action.play_card_back if face_down else Action.play_card
                        actions.append(factory(field_idx, card_idx))
        return actions

    def must_skip(self, state: GameState, player_id: str) -> bool:
        """
        True when the player has nothing useful to do this main phase.

        A player must skip with an empty hand, or when no card can legally
        go into any still-empty main zone.
        """
        player = state.get_player(player_id)
        if player is None or not player.hand:
            return True
        empty = [ZONE_ORDER.index(z) for z in MAIN_ZONES if not state.zone(player_id, z)]
        for field_idx in empty:
            for card_idx in range(len(player.hand)):
                for face_down in (False, True):
                    if self._is_legal(state, player_id, field_idx, card_idx, face_down):
                        return False
        return True

    def _is_legal(self, state: GameState, player_id: str, field_idx: int, card_idx: int, face_down: bool) -> bool:
        try:
            self.card_action.validate(state, player_id, field_idx, card_idx, face_down)
        except GameRuleError:
            return False
        return True
