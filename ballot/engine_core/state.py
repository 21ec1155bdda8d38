"""
Game State - The complete, serializable state of one game.

Design principles:
- Serializable: to_dict()/from_dict() round-trip the whole game as JSON
- Cards are referenced by ID only; definitions live in the catalog
- Derived field effects are owned by the simulator and never hand-edited
- Mutation happens on a clone; failed actions discard the clone
"""

from __future__ import annotations
from copy import deepcopy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any
import random
import time

from .events import EventStream
from .play_sequence import PlaySequence


class Phase(Enum):
    """Turn phases."""
    START_REDRAW = "START_REDRAW"
    DRAW_PHASE = "DRAW_PHASE"
    MAIN_PHASE = "MAIN_PHASE"
    SP_PHASE = "SP_PHASE"
    BATTLE_PHASE = "BATTLE_PHASE"
    GAME_END = "GAME_END"


class RoomStatus(Enum):
    """Room lifecycle."""
    WAITING_FOR_PLAYERS = "WAITING_FOR_PLAYERS"
    BOTH_JOINED = "BOTH_JOINED"
    READY_PHASE = "READY_PHASE"
    IN_PROGRESS = "IN_PROGRESS"
    GAME_END = "GAME_END"


# Placement zones in field_idx order
ZONE_ORDER = ("top", "left", "right", "help", "sp")
CHARACTER_ZONES = ("top", "left", "right")
UTILITY_ZONES = ("help", "sp")
LEADER_ZONE = "leader"
ALL_ZONES = ZONE_ORDER + (LEADER_ZONE,)

# Restriction keys used in fieldEffects.zoneRestrictions
ALL_FACTIONS = "ALL"
RESTRICTION_KEYS = {zone: zone.upper() for zone in ZONE_ORDER}


def default_zone_restrictions() -> dict[str, list[str]]:
    return {key: [ALL_FACTIONS] for key in RESTRICTION_KEYS.values()}


def empty_zones() -> dict[str, list[PlacedCard]]:
    return {zone: [] for zone in ALL_ZONES}


@dataclass
class PlacedCard:
    """
    A card on the field.

    value_on_field is 0 for face-down cards, otherwise the base power.
    """
    card_id: str
    owner: str
    zone: str
    is_face_down: bool = False
    value_on_field: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "card_id": self.card_id,
            "owner": self.owner,
            "zone": self.zone,
            "is_face_down": self.is_face_down,
            "value_on_field": self.value_on_field,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PlacedCard:
        return cls(
            card_id=data["card_id"],
            owner=data["owner"],
            zone=data["zone"],
            is_face_down=bool(data.get("is_face_down", False)),
            value_on_field=int(data.get("value_on_field", 0)),
        )


@dataclass
class PlayerDeck:
    """A player's leaders, draw pile and hand. Index 0 of main_deck is the top."""
    leaders: list[str] = field(default_factory=list)
    current_leader_idx: int = 0
    main_deck: list[str] = field(default_factory=list)
    hand: list[str] = field(default_factory=list)

    @property
    def current_leader_id(self) -> str | None:
        if 0 <= self.current_leader_idx < len(self.leaders):
            return self.leaders[self.current_leader_idx]
        return None

    @property
    def on_last_leader(self) -> bool:
        return self.current_leader_idx >= len(self.leaders) - 1

    def draw(self, count: int = 1) -> list[str]:
        """Move up to `count` cards from the top of the deck to the hand."""
        drawn = self.main_deck[:count]
        del self.main_deck[:len(drawn)]
        self.hand.extend(drawn)
        return drawn

    def to_dict(self) -> dict[str, Any]:
        return {
            "leaders": list(self.leaders),
            "current_leader_idx": self.current_leader_idx,
            "main_deck": list(self.main_deck),
            "hand": list(self.hand),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PlayerDeck:
        return cls(
            leaders=list(data.get("leaders", [])),
            current_leader_idx=int(data.get("current_leader_idx", 0)),
            main_deck=list(data.get("main_deck", [])),
            hand=list(data.get("hand", [])),
        )


@dataclass
class ActiveEffect:
    """An effect in force, as recorded by the simulator."""
    effect_type: str
    source_card: str
    source_player: str
    priority: int
    value: Any = None
    target_player: str | None = None
    target_cards: list[str] = field(default_factory=list)
    zones: list[str] = field(default_factory=list)
    rule_id: str | None = None
    unremovable: bool = False
    enabled: bool = True
    disabled_by: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "effect_type": self.effect_type,
            "source_card": self.source_card,
            "source_player": self.source_player,
            "priority": self.priority,
            "value": deepcopy(self.value),
            "target_player": self.target_player,
            "target_cards": list(self.target_cards),
            "zones": list(self.zones),
            "rule_id": self.rule_id,
            "unremovable": self.unremovable,
            "enabled": self.enabled,
            "disabled_by": self.disabled_by,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ActiveEffect:
        return cls(
            effect_type=data["effect_type"],
            source_card=data["source_card"],
            source_player=data["source_player"],
            priority=int(data.get("priority", 50)),
            value=data.get("value"),
            target_player=data.get("target_player"),
            target_cards=list(data.get("target_cards", [])),
            zones=list(data.get("zones", [])),
            rule_id=data.get("rule_id"),
            unremovable=bool(data.get("unremovable", False)),
            enabled=bool(data.get("enabled", True)),
            disabled_by=data.get("disabled_by"),
        )


@dataclass
class FieldEffects:
    """Per-player derived state. Computed by the simulator only."""
    zone_restrictions: dict[str, list[str]] = field(default_factory=default_zone_restrictions)
    active_effects: list[ActiveEffect] = field(default_factory=list)
    calculated_powers: dict[str, int] = field(default_factory=dict)
    disabled_cards: list[dict[str, str]] = field(default_factory=list)
    victory_point_modifiers: int = 0
    special_states: dict[str, Any] = field(default_factory=dict)

    def allowed_tags(self, zone: str) -> list[str]:
        return self.zone_restrictions.get(RESTRICTION_KEYS.get(zone, zone.upper()), [ALL_FACTIONS])

    def to_dict(self) -> dict[str, Any]:
        return {
            "zone_restrictions": {k: list(v) for k, v in self.zone_restrictions.items()},
            "active_effects": [e.to_dict() for e in self.active_effects],
            "calculated_powers": dict(self.calculated_powers),
            "disabled_cards": [dict(d) for d in self.disabled_cards],
            "victory_point_modifiers": self.victory_point_modifiers,
            "special_states": deepcopy(self.special_states),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> FieldEffects:
        if not data:
            return cls()
        restrictions = default_zone_restrictions()
        restrictions.update({k: list(v) for k, v in data.get("zone_restrictions", {}).items()})
        return cls(
            zone_restrictions=restrictions,
            active_effects=[ActiveEffect.from_dict(e) for e in data.get("active_effects", [])],
            calculated_powers={k: int(v) for k, v in data.get("calculated_powers", {}).items()},
            disabled_cards=[dict(d) for d in data.get("disabled_cards", [])],
            victory_point_modifiers=int(data.get("victory_point_modifiers", 0)),
            special_states=deepcopy(data.get("special_states", {})),
        )


@dataclass
class PlayerState:
    player_id: str
    deck: PlayerDeck = field(default_factory=PlayerDeck)
    field_effects: FieldEffects = field(default_factory=FieldEffects)
    turn_actions: list[dict[str, Any]] = field(default_factory=list)
    redraw: bool = False
    ready: bool = False
    sp_passed: bool = False
    player_point: int = 0
    victory_points: int = 0

    @property
    def hand(self) -> list[str]:
        return self.deck.hand

    def acted_on_turn(self, turn: float) -> bool:
        return any(a.get("turn") == turn for a in self.turn_actions)

    def to_dict(self) -> dict[str, Any]:
        return {
            "player_id": self.player_id,
            "deck": self.deck.to_dict(),
            "field_effects": self.field_effects.to_dict(),
            "turn_actions": deepcopy(self.turn_actions),
            "redraw": self.redraw,
            "ready": self.ready,
            "sp_passed": self.sp_passed,
            "player_point": self.player_point,
            "victory_points": self.victory_points,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PlayerState:
        return cls(
            player_id=data["player_id"],
            deck=PlayerDeck.from_dict(data.get("deck", {})),
            field_effects=FieldEffects.from_dict(data.get("field_effects")),
            turn_actions=deepcopy(data.get("turn_actions", [])),
            redraw=bool(data.get("redraw", False)),
            ready=bool(data.get("ready", False)),
            sp_passed=bool(data.get("sp_passed", False)),
            player_point=int(data.get("player_point", 0)),
            victory_points=int(data.get("victory_points", 0)),
        )


@dataclass
class GameState:
    """
    Complete game state at a point in time.

    players holds per-player deck and derived data; zones holds the field,
    keyed by player then zone name.
    """
    game_id: str
    phase: Phase = Phase.START_REDRAW
    room_status: RoomStatus = RoomStatus.WAITING_FOR_PLAYERS

    # Turn tracking
    current_turn: float = 0.0
    current_player: str | None = None
    first_player: str | None = None
    player_order: list[str] = field(default_factory=list)
    round_number: int = 1
    consecutive_passes: int = 0

    players: dict[str, PlayerState] = field(default_factory=dict)
    zones: dict[str, dict[str, list[PlacedCard]]] = field(default_factory=dict)

    play_sequence: PlaySequence = field(default_factory=PlaySequence)
    events: EventStream = field(default_factory=EventStream)

    # Selection gate
    pending_player_action: dict[str, Any] | None = None
    pending_card_selections: dict[str, Any] = field(default_factory=dict)  # id -> PendingSelection

    # Battle
    sp_stage: str = "none"  # none | before_combo | after_combo
    battle_results: dict[str, Any] = field(default_factory=dict)
    winner: str | None = None
    neutralization_history: list[dict[str, Any]] = field(default_factory=list)

    # Determinism
    random_seed: int = 0
    rng_counter: int = 0

    corrupted: bool = False
    created_at: float = field(default_factory=time.time)
    updated_at: float = field(default_factory=time.time)
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def player_ids(self) -> list[str]:
        return list(self.player_order) or list(self.players)

    @property
    def is_over(self) -> bool:
        return self.phase == Phase.GAME_END

    def get_player(self, player_id: str) -> PlayerState | None:
        return self.players.get(player_id)

    def opponent_of(self, player_id: str) -> str | None:
        for pid in self.player_ids:
            if pid != player_id:
                return pid
        return None

    def ordered_players(self) -> list[str]:
        """Player IDs with the first player first."""
        ids = self.player_ids
        if self.first_player in ids:
            ids.remove(self.first_player)
            ids.insert(0, self.first_player)
        return ids

    def zone(self, player_id: str, zone: str) -> list[PlacedCard]:
        """Cards in a zone. Missing players or zones read as empty without being created."""
        return self.zones.get(player_id, {}).get(zone, [])

    def place(self, placed: PlacedCard):
        """Put a card on the field in its owner's zone."""
        self.zones.setdefault(placed.owner, empty_zones()).setdefault(placed.zone, []).append(placed)

    def placed_cards(self, player_id: str, zones: tuple[str, ...] | None = None) -> list[PlacedCard]:
        cards: list[PlacedCard] = []
        for zone in zones or ALL_ZONES:
            cards.extend(self.zone(player_id, zone))
        return cards

    def face_up_characters(self, player_id: str) -> list[PlacedCard]:
        return [c for c in self.placed_cards(player_id, CHARACTER_ZONES) if not c.is_face_down]

    def find_placed(self, player_id: str, card_id: str, zone: str | None = None) -> PlacedCard | None:
        zones = (zone,) if zone else None
        for card in self.placed_cards(player_id, zones):
            if card.card_id == card_id:
                return card
        return None

    def leader_id(self, player_id: str) -> str | None:
        leader_zone = self.zone(player_id, LEADER_ZONE)
        if leader_zone:
            return leader_zone[-1].card_id
        player = self.players.get(player_id)
        return player.deck.current_leader_id if player else None

    def next_rng(self) -> random.Random:
        """A fresh RNG derived from the game seed; each call advances the stream."""
        self.rng_counter += 1
        return random.Random(self.random_seed * 1_000_003 + self.rng_counter)

    def pending_selection(self):
        if not self.pending_player_action:
            return None
        return self.pending_card_selections.get(self.pending_player_action.get("selection_id"))

    def clone(self) -> GameState:
        return deepcopy(self)

    def touch(self):
        self.updated_at = time.time()

    def to_dict(self) -> dict[str, Any]:
        return {
            "game_id": self.game_id,
            "phase": self.phase.value,
            "room_status": self.room_status.value,
            "current_turn": self.current_turn,
            "current_player": self.current_player,
            "first_player": self.first_player,
            "player_order": list(self.player_order),
            "round_number": self.round_number,
            "consecutive_passes": self.consecutive_passes,
            "players": {pid: p.to_dict() for pid, p in self.players.items()},
            "zones": {
                pid: {zone: [c.to_dict() for c in cards] for zone, cards in zones.items()}
                for pid, zones in self.zones.items()
            },
            "play_sequence": self.play_sequence.to_list(),
            "events": self.events.to_dict(),
            "pending_player_action": deepcopy(self.pending_player_action),
            "pending_card_selections": {
                sid: selection.to_dict() for sid, selection in self.pending_card_selections.items()
            },
            "sp_stage": self.sp_stage,
            "battle_results": deepcopy(self.battle_results),
            "winner": self.winner,
            "neutralization_history": deepcopy(self.neutralization_history),
            "random_seed": self.random_seed,
            "rng_counter": self.rng_counter,
            "corrupted": self.corrupted,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "metadata": deepcopy(self.metadata),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GameState:
        from .selection import PendingSelection

        players = {pid: PlayerState.from_dict({"player_id": pid, **p}) for pid, p in data.get("players", {}).items()}
        zones: dict[str, dict[str, list[PlacedCard]]] = {}
        for pid, player_zones in data.get("zones", {}).items():
            zones[pid] = empty_zones()
            for zone, cards in player_zones.items():
                zones[pid][zone] = [
                    PlacedCard.from_dict({"owner": pid, "zone": zone, **c}) for c in cards
                ]
        for pid in players:
            zones.setdefault(pid, empty_zones())

        return cls(
            game_id=data["game_id"],
            phase=Phase(data.get("phase", Phase.START_REDRAW.value)),
            room_status=RoomStatus(data.get("room_status", RoomStatus.IN_PROGRESS.value)),
            current_turn=float(data.get("current_turn", 0.0)),
            current_player=data.get("current_player"),
            first_player=data.get("first_player"),
            player_order=list(data.get("player_order", players.keys())),
            round_number=int(data.get("round_number", 1)),
            consecutive_passes=int(data.get("consecutive_passes", 0)),
            players=players,
            zones=zones,
            play_sequence=PlaySequence.from_list(data.get("play_sequence")),
            events=EventStream.from_dict(data.get("events")),
            pending_player_action=deepcopy(data.get("pending_player_action")),
            pending_card_selections={
                sid: PendingSelection.from_dict(s)
                for sid, s in data.get("pending_card_selections", {}).items()
            },
            sp_stage=data.get("sp_stage", "none"),
            battle_results=deepcopy(data.get("battle_results", {})),
            winner=data.get("winner"),
            neutralization_history=deepcopy(data.get("neutralization_history", [])),
            random_seed=int(data.get("random_seed", 0)),
            rng_counter=int(data.get("rng_counter", 0)),
            corrupted=bool(data.get("corrupted", False)),
            created_at=float(data.get("created_at", time.time())),
            updated_at=float(data.get("updated_at", time.time())),
            metadata=deepcopy(data.get("metadata", {})),
        )
