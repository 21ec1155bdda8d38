"""
Room Manager - Creates rooms and serializes access to each game.

LIFECYCLE:
1. create_room: first player opens a room with their active deck
2. join_room: second player joins; decks are shuffled and hands dealt
3. start_ready: each player keeps or redraws their opening hand
4. dispatch / acknowledge_events: the game runs until GAME_END
5. end_room or cleanup_stale_rooms removes it from the store

CONCURRENCY:
- One lock per game id; every call that changes a game holds it for the
  whole load -> compute -> save cycle
- Different games never wait on each other
- Reads load a fresh copy from the store, so they see the last saved state
"""

from __future__ import annotations
from contextlib import contextmanager
from typing import Any, Iterable, Iterator
import logging
import threading
import time
import uuid

from ..catalog import DecksCollection, PlayerDecks, load_decks
from ..engine_core.action import Action, ActionResult
from ..engine_core.errors import ErrorType, GameRuleError
from ..engine_core.events import EventType
from ..engine_core.orchestrator import GameOrchestrator
from ..engine_core.state import GameState, RoomStatus
from .scenarios import build_scenario
from .store import GameStore, InMemoryGameStore

logger = logging.getLogger(__name__)


class RoomManager:
    """
    Owns the store, the orchestrator and the per-game locks.

    Usage:
        rooms = RoomManager()
        state = rooms.create_room("playerId_1")
        rooms.join_room(state.game_id, "playerId_2")
        rooms.start_ready(state.game_id, "playerId_1")
        rooms.start_ready(state.game_id, "playerId_2")
        result = rooms.dispatch(state.game_id, "playerId_1", Action.play_card(0, 0))
    """

    def __init__(
        self,
        orchestrator: GameOrchestrator | None = None,
        store: GameStore | None = None,
        decks: DecksCollection | None = None,
    ):
        self.orchestrator = orchestrator or GameOrchestrator()
        self.store = store or InMemoryGameStore()
        self.decks = decks or load_decks()
        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    @contextmanager
    def _locked(self, game_id: str, create: bool = False) -> Iterator[None]:
        """Hold the game's lock. Locks are only created for stored games unless create is set."""
        with self._locks_guard:
            lock = self._locks.get(game_id)
            if lock is None:
                if not create and not self._exists(game_id):
                    raise GameRuleError(ErrorType.GAME_NOT_FOUND, f"Game not found: {game_id}")
                lock = self._locks[game_id] = threading.Lock()
        with lock:
            logger.debug("Lock acquired for game %s", game_id)
            yield

    def _exists(self, game_id: str) -> bool:
        return game_id in self.store.list_ids()

    def _load(self, game_id: str) -> GameState:
        state = self.store.load(game_id)
        if state is None:
            raise GameRuleError(ErrorType.GAME_NOT_FOUND, f"Game not found: {game_id}")
        return state

    # =========================================================================
    # Room lifecycle
    # =========================================================================

    def create_room(self, player_id: str, seed: int | None = None) -> GameState:
        deck = self._active_deck(player_id)
        game_id = str(uuid.uuid4())
        with self._locked(game_id, create=True):
            state = self.orchestrator.setup.new_game(game_id, seed)
            self.orchestrator.setup.seat_player(state, player_id, deck)
            state.room_status = RoomStatus.WAITING_FOR_PLAYERS
            state.events.append(EventType.ROOM_CREATED, {"gameId": game_id, "playerId": player_id})
            self.store.save(state)
        logger.info("Room %s created by %s", game_id, player_id)
        return state

    def join_room(self, game_id: str, player_id: str) -> GameState:
        deck = self._active_deck(player_id)
        with self._locked(game_id):
            state = self._load(game_id)
            if state.room_status != RoomStatus.WAITING_FOR_PLAYERS:
                raise GameRuleError(ErrorType.ROOM_NOT_AVAILABLE, f"Room {game_id} is not accepting players")
            if player_id in state.players:
                raise GameRuleError(ErrorType.ROOM_NOT_AVAILABLE, f"{player_id} is already in room {game_id}")
            self.orchestrator.setup.seat_player(state, player_id, deck)
            state.events.append(EventType.PLAYER_JOINED, {"gameId": game_id, "playerId": player_id})
            self.orchestrator.setup.deal(state)
            state.touch()
            self.store.save(state)
        logger.info("%s joined room %s", player_id, game_id)
        return state

    def start_ready(self, game_id: str, player_id: str, redraw: bool = False) -> GameState:
        with self._locked(game_id):
            state = self._load(game_id)
            if player_id not in state.players:
                raise GameRuleError(ErrorType.PLAYER_NOT_IN_GAME, f"Player {player_id} is not in this game")
            if state.room_status not in (RoomStatus.BOTH_JOINED, RoomStatus.READY_PHASE):
                raise GameRuleError(ErrorType.ROOM_NOT_AVAILABLE, f"Room {game_id} is not in the ready phase")
            if self.orchestrator.setup.mark_ready(state, player_id, redraw):
                state.room_status = RoomStatus.IN_PROGRESS
                self.orchestrator.start_game(state)
                logger.info("Game %s started; %s goes first", game_id, state.first_player)
            state.touch()
            self.store.save(state)
        return state

    def end_room(self, game_id: str) -> bool:
        if not self._exists(game_id):
            return False
        with self._locked(game_id, create=True):
            removed = self.store.delete(game_id)
        with self._locks_guard:
            self._locks.pop(game_id, None)
        if removed:
            logger.info("Room %s ended", game_id)
        return removed

    def list_rooms(self) -> list[dict[str, Any]]:
        rooms = []
        for game_id in self.store.list_ids():
            state = self.store.load(game_id)
            if state is None:
                continue
            rooms.append({
                "game_id": game_id,
                "room_status": state.room_status.value,
                "phase": state.phase.value,
                "players": list(state.player_ids),
                "round_number": state.round_number,
                "updated_at": state.updated_at,
            })
        return rooms

    def cleanup_stale_rooms(self, max_age_seconds: int = 3600) -> list[str]:
        """Remove finished or abandoned games not touched for max_age_seconds."""
        now = time.time()
        removed = []
        for game_id in self.store.list_ids():
            state = self.store.load(game_id)
            if state is not None and now - state.updated_at > max_age_seconds:
                self.end_room(game_id)
                removed.append(game_id)
        return removed

    # =========================================================================
    # Gameplay
    # =========================================================================

    def dispatch(self, game_id: str, player_id: str, action: Action | dict[str, Any]) -> ActionResult:
        """Apply a player action and persist the outcome (including error events)."""
        if isinstance(action, dict):
            action = Action.from_dict(action)
        with self._locked(game_id):
            state = self._load(game_id)
            result = self.orchestrator.apply_action(state, player_id, action)
            self._save_result(result)
        return result

    def acknowledge_events(
        self,
        game_id: str,
        player_id: str,
        event_ids: Iterable[str] = (),
        event_types: Iterable[str] = (),
    ) -> ActionResult:
        with self._locked(game_id):
            state = self._load(game_id)
            result = self.orchestrator.acknowledge_events(state, player_id, event_ids, event_types)
            self._save_result(result)
        return result

    def next_round(self, game_id: str) -> ActionResult:
        with self._locked(game_id):
            state = self._load(game_id)
            result = self.orchestrator.force_next_round(state)
            self._save_result(result)
        return result

    def expire_selections(self, now: float | None = None) -> list[str]:
        """Cancel timed-out selections across every game; returns affected game ids."""
        affected = []
        for game_id in self.store.list_ids():
            with self._locked(game_id, create=True):
                state = self.store.load(game_id)
                if state is None:
                    continue
                result = self.orchestrator.expire_selections(state, now)
                if result is not None:
                    self._save_result(result)
                    affected.append(game_id)
        return affected

    def get_state(self, game_id: str) -> GameState:
        return self._load(game_id)

    def legal_placements(self, game_id: str, player_id: str) -> list[Action]:
        state = self._load(game_id)
        if player_id not in state.players:
            raise GameRuleError(ErrorType.PLAYER_NOT_IN_GAME, f"Player {player_id} is not in this game")
        return self.orchestrator.legal_placements(state, player_id)

    def player_decks(self, player_id: str) -> PlayerDecks:
        player_decks = self.decks.get(player_id)
        if player_decks is None:
            raise GameRuleError(ErrorType.DECK_NOT_FOUND, f"No decks found for {player_id}")
        return player_decks

    # =========================================================================
    # Test injection
    # =========================================================================

    def inject_state(self, state_data: dict[str, Any], game_id: str | None = None) -> GameState:
        """Store a client-supplied state after reconciling derived data."""
        game_id = game_id or state_data.get("game_id") or str(uuid.uuid4())
        try:
            state = GameState.from_dict({**state_data, "game_id": game_id})
        except (KeyError, ValueError, TypeError, AttributeError) as e:
            raise GameRuleError(
                ErrorType.INVALID_GAME_STATE,
                f"Invalid game state: {e}",
                {"game_id": game_id},
            ) from e
        with self._locked(game_id, create=True):
            state = self.orchestrator.reconcile(state)
            state.touch()
            self.store.save(state)
        logger.info("State injected for game %s", game_id)
        return state

    def load_scenario(self, scenario_id: str, game_id: str | None = None) -> GameState:
        state = build_scenario(scenario_id, game_id, decks=self.decks)
        if state is None:
            raise GameRuleError(ErrorType.GAME_NOT_FOUND, f"Unknown test scenario: {scenario_id}")
        with self._locked(state.game_id, create=True):
            state = self.orchestrator.reconcile(state)
            self.store.save(state)
        return state

    def _active_deck(self, player_id: str):
        deck = self.decks.active_deck(player_id)
        if deck is None:
            raise GameRuleError(ErrorType.DECK_NOT_FOUND, f"No active deck for {player_id}")
        return deck

    def _save_result(self, result: ActionResult):
        if result.new_state is not None:
            self.store.save(result.new_state)
