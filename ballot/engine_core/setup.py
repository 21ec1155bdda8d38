"""
Game Setup - Seating players, dealing hands and the redraw step.

A game starts in START_REDRAW once both players have joined:
- main decks are shuffled with the game's seeded RNG
- each player receives initial_hand_size cards
- each current leader is placed and recorded as PLAY_LEADER
- the player whose leader has the higher initialPoint goes first
"""

from __future__ import annotations
from dataclasses import dataclass
import logging
import random

from ..catalog import Catalog, Deck, validate_deck
from .effect_simulator import EffectSimulator
from .errors import ErrorType, GameRuleError
from .events import EventType
from .play_sequence import PlayAction
from .settings import EngineSettings
from .state import (
    LEADER_ZONE,
    GameState,
    PlacedCard,
    Phase,
    PlayerDeck,
    PlayerState,
    RoomStatus,
    empty_zones,
)

logger = logging.getLogger(__name__)


@dataclass
class GameSetup:
    catalog: Catalog
    settings: EngineSettings
    simulator: EffectSimulator

    def new_game(self, game_id: str, seed: int | None = None) -> GameState:
        state = GameState(game_id=game_id, random_seed=seed if seed is not None else random.randrange(2**31))
        state.events.ttl_ms = self.settings.event_ttl_ms
        return state

    def seat_player(self, state: GameState, player_id: str, deck: Deck):
        """Add a player with a copy of their deck."""
        problems = validate_deck(deck, self.catalog)
        if not problems.valid:
            raise GameRuleError(
                ErrorType.INVALID_DECK,
                f"Deck {deck.id} is invalid: {'; '.join(problems.errors)}",
                details={"errors": list(problems.errors)},
            )
        state.players[player_id] = PlayerState(
            player_id=player_id,
            deck=PlayerDeck(leaders=list(deck.leader), main_deck=list(deck.cards)),
        )
        state.player_order.append(player_id)
        state.zones[player_id] = empty_zones()

    def deal(self, state: GameState):
        """Shuffle, deal, place leaders and pick the first player."""
        for player_id in state.player_ids:
            deck = state.players[player_id].deck
            state.next_rng().shuffle(deck.main_deck)
            deck.draw(self.settings.initial_hand_size)
            leader_id = deck.current_leader_id
            state.zones[player_id][LEADER_ZONE] = [
                PlacedCard(card_id=leader_id, owner=player_id, zone=LEADER_ZONE)
            ]

        state.first_player = self.decide_first_player(state)
        for player_id in state.ordered_players():
            state.play_sequence.append(
                player_id, state.leader_id(player_id), PlayAction.PLAY_LEADER, LEADER_ZONE,
                data={"leaderIndex": 0, "isInitialPlacement": True},
                phase=Phase.START_REDRAW.value,
            )
        self.simulator.apply(state)

        state.phase = Phase.START_REDRAW
        state.room_status = RoomStatus.BOTH_JOINED
        state.events.append(EventType.GAME_STARTED, {
            "players": list(state.player_ids),
            "firstPlayer": state.first_player,
            "leaderRevealed": {pid: state.leader_id(pid) for pid in state.player_ids},
        })
        for player_id in state.player_ids:
            state.events.append(EventType.INITIAL_HAND_DEALT, {
                "playerId": player_id,
                "handSize": len(state.players[player_id].hand),
            })
        logger.info("Game %s dealt; %s goes first", state.game_id, state.first_player)

    def decide_first_player(self, state: GameState) -> str:
        """Higher leader initialPoint goes first; ties use the seeded RNG."""
        ids = state.player_ids
        points = {}
        for player_id in ids:
            leader = self.catalog.current_leader(state.players[player_id].deck)
            points[player_id] = leader.initial_point if leader else 0
        best = max(points.values())
        leaders = [pid for pid in ids if points[pid] == best]
        if len(leaders) == 1:
            return leaders[0]
        return state.next_rng().choice(leaders)

    def mark_ready(self, state: GameState, player_id: str, redraw: bool = False) -> bool:
        """
        Confirm the opening hand, optionally redrawing it once.

        Returns True when both players are ready.
        """
        player = state.players[player_id]
        if player.ready:
            raise GameRuleError(ErrorType.INVALID_PHASE, f"{player_id} is already ready")
        if state.phase != Phase.START_REDRAW:
            raise GameRuleError(ErrorType.INVALID_PHASE, "Players can only get ready before the game starts")

        state.room_status = RoomStatus.READY_PHASE
        if redraw:
            deck = player.deck
            hand_size = len(deck.hand)
            deck.main_deck.extend(deck.hand)
            deck.hand.clear()
            state.next_rng().shuffle(deck.main_deck)
            deck.draw(hand_size)
            player.redraw = True
            state.events.append(EventType.HAND_REDRAWN, {"playerId": player_id, "handSize": len(deck.hand)})

        player.ready = True
        state.events.append(EventType.PLAYER_READY, {"playerId": player_id, "redraw": redraw})
        return all(p.ready for p in state.players.values())
