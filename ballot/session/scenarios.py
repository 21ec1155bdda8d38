"""
Test Scenarios - Canned game states for clients and tests.

simple_test:
    playerId_1 leads with s-1 (特朗普), playerId_2 with s-2 (拜登).
    Both hold five cards, the game is in MAIN_PHASE and playerId_1 acts.
"""

from __future__ import annotations
from typing import Callable

from ..catalog import DecksCollection, load_decks
from ..engine_core.play_sequence import PlayAction
from ..engine_core.state import (
    LEADER_ZONE,
    GameState,
    PlacedCard,
    Phase,
    PlayerDeck,
    PlayerState,
    RoomStatus,
    empty_zones,
)

SIMPLE_TEST = "simple_test"

PLAYER_1 = "playerId_1"
PLAYER_2 = "playerId_2"

SIMPLE_TEST_HANDS = {
    PLAYER_1: ["c-1", "h-1", "h-3", "c-3", "c-4"],
    PLAYER_2: ["c-17", "h-2", "c-25", "h-7", "sp-3"],
}


def build_simple_test(game_id: str = SIMPLE_TEST, decks: DecksCollection | None = None) -> GameState:
    """Both leaders in play, five-card hands, playerId_1 to act in MAIN_PHASE."""
    decks = decks or load_decks()
    state = GameState(
        game_id=game_id,
        phase=Phase.MAIN_PHASE,
        room_status=RoomStatus.IN_PROGRESS,
        current_turn=0.0,
        current_player=PLAYER_1,
        first_player=PLAYER_1,
        player_order=[PLAYER_1, PLAYER_2],
        random_seed=1,
    )

    for player_id in (PLAYER_1, PLAYER_2):
        deck = decks.active_deck(player_id)
        hand = list(SIMPLE_TEST_HANDS[player_id])
        main_deck = [c for c in deck.cards if c not in hand]
        state.players[player_id] = PlayerState(
            player_id=player_id,
            deck=PlayerDeck(leaders=list(deck.leader), main_deck=main_deck, hand=hand),
            ready=True,
        )
        state.zones[player_id] = empty_zones()
        leader_id = deck.leader[0]
        state.zones[player_id][LEADER_ZONE] = [PlacedCard(card_id=leader_id, owner=player_id, zone=LEADER_ZONE)]
        state.play_sequence.append(
            player_id, leader_id, PlayAction.PLAY_LEADER, LEADER_ZONE,
            data={"leaderIndex": 0, "isInitialPlacement": True},
            phase=Phase.MAIN_PHASE.value,
        )
    return state


SCENARIOS: dict[str, Callable[..., GameState]] = {
    SIMPLE_TEST: build_simple_test,
}


def build_scenario(scenario_id: str, game_id: str | None = None, decks: DecksCollection | None = None) -> GameState | None:
    builder = SCENARIOS.get(scenario_id)
    if builder is None:
        return None
    return builder(game_id or scenario_id, decks=decks)
