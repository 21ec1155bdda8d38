"""
Event Stream - Per-game event buffer for external observers.

Events form a log of everything that happens during a game. Clients poll the
stream, render what they need, then acknowledge events so they can expire.

Rules:
- ids are `event_{timestamp_ms}_{n}` with n increasing per game
- timestamps never decrease within a stream
- an event is dropped only when it has expired AND been acknowledged
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable
import logging
import time

logger = logging.getLogger(__name__)

DEFAULT_TTL_MS = 3000


class EventType(str, Enum):
    # Room lifecycle
    ROOM_CREATED = "ROOM_CREATED"
    PLAYER_JOINED = "PLAYER_JOINED"
    GAME_STARTED = "GAME_STARTED"
    INITIAL_HAND_DEALT = "INITIAL_HAND_DEALT"
    PLAYER_READY = "PLAYER_READY"
    HAND_REDRAWN = "HAND_REDRAWN"
    GAME_PHASE_START = "GAME_PHASE_START"

    # Turn flow
    DRAW_PHASE_COMPLETE = "DRAW_PHASE_COMPLETE"
    PHASE_CHANGE = "PHASE_CHANGE"
    TURN_SWITCH = "TURN_SWITCH"
    TURN_SKIPPED = "TURN_SKIPPED"

    # Placement
    CARD_PLAYED = "CARD_PLAYED"
    ZONE_FILLED = "ZONE_FILLED"
    CARD_EFFECT_TRIGGERED = "CARD_EFFECT_TRIGGERED"
    CARD_DISCARDED = "CARD_DISCARDED"
    ALL_MAIN_ZONES_FILLED = "ALL_MAIN_ZONES_FILLED"
    ALL_SP_ZONES_FILLED = "ALL_SP_ZONES_FILLED"

    # Selection
    CARD_SELECTION_REQUIRED = "CARD_SELECTION_REQUIRED"
    CARD_SELECTION_COMPLETED = "CARD_SELECTION_COMPLETED"
    CARD_SELECTION_CANCELLED = "CARD_SELECTION_CANCELLED"
    CARD_MOVED_TO_HAND = "CARD_MOVED_TO_HAND"
    CARD_MOVED_TO_SP_ZONE = "CARD_MOVED_TO_SP_ZONE"
    CARD_MOVED_TO_HELP_ZONE = "CARD_MOVED_TO_HELP_ZONE"

    # Battle
    SP_CARDS_REVEALED = "SP_CARDS_REVEALED"
    SP_EFFECTS_EXECUTED = "SP_EFFECTS_EXECUTED"
    BATTLE_CALCULATED = "BATTLE_CALCULATED"
    VICTORY_POINTS_AWARDED = "VICTORY_POINTS_AWARDED"
    NEXT_ROUND_START = "NEXT_ROUND_START"
    GAME_ENDED = "GAME_ENDED"

    ERROR_OCCURRED = "ERROR_OCCURRED"


@dataclass
class GameEvent:
    id: str
    type: str
    data: dict[str, Any]
    timestamp: int  # milliseconds
    expires_at: int
    frontend_processed: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "data": dict(self.data),
            "timestamp": self.timestamp,
            "expires_at": self.expires_at,
            "frontend_processed": self.frontend_processed,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GameEvent:
        return cls(
            id=data["id"],
            type=data["type"],
            data=dict(data.get("data", {})),
            timestamp=int(data.get("timestamp", 0)),
            expires_at=int(data.get("expires_at", 0)),
            frontend_processed=bool(data.get("frontend_processed", False)),
        )


@dataclass
class EventStream:
    """
    Append-only event buffer with expiry and acknowledgement.

    Usage:
        stream = EventStream()
        event = stream.append(EventType.CARD_PLAYED, {"playerId": "playerId_1"})
        stream.mark(event.id)
    """
    events: list[GameEvent] = field(default_factory=list)
    counter: int = 0
    ttl_ms: int = DEFAULT_TTL_MS

    def __len__(self) -> int:
        return len(self.events)

    def append(
        self,
        event_type: EventType | str,
        data: dict[str, Any] | None = None,
        now: int | None = None,
    ) -> GameEvent:
        now = _now_ms() if now is None else now
        if self.events:
            now = max(now, self.events[-1].timestamp)
        self.counter += 1
        type_value = event_type.value if isinstance(event_type, EventType) else str(event_type)
        event = GameEvent(
            id=f"event_{now}_{self.counter}",
            type=type_value,
            data=dict(data or {}),
            timestamp=now,
            expires_at=now + self.ttl_ms,
        )
        self.events.append(event)
        logger.debug("Event %s appended (%s)", event.id, type_value)
        self.clean_expired(now)
        return event

    def mark(self, event_id: str) -> bool:
        """Acknowledge one event. Returns False for unknown IDs."""
        for event in self.events:
            if event.id == event_id:
                event.frontend_processed = True
                return True
        return False

    def mark_many(self, event_ids: Iterable[str]) -> int:
        return sum(1 for event_id in event_ids if self.mark(event_id))

    def mark_types(self, event_types: Iterable[str]) -> int:
        wanted = {t.value if isinstance(t, EventType) else t for t in event_types}
        count = 0
        for event in self.events:
            if event.type in wanted and not event.frontend_processed:
                event.frontend_processed = True
                count += 1
        return count

    def clean_expired(self, now: int | None = None) -> int:
        """Drop events that are both expired and acknowledged."""
        now = _now_ms() if now is None else now
        before = len(self.events)
        self.events = [
            e for e in self.events
            if not (e.expires_at <= now and e.frontend_processed)
        ]
        return before - len(self.events)

    def unprocessed(self) -> list[GameEvent]:
        return [e for e in self.events if not e.frontend_processed]

    def of_type(self, event_type: EventType | str) -> list[GameEvent]:
        type_value = event_type.value if isinstance(event_type, EventType) else event_type
        return [e for e in self.events if e.type == type_value]

    def latest(self, event_type: EventType | str) -> GameEvent | None:
        matching = self.of_type(event_type)
        return matching[-1] if matching else None

    def since(self, count: int) -> list[GameEvent]:
        """Events appended after the stream held `count` events in total."""
        return [e for e in self.events if int(e.id.rsplit("_", 1)[1]) > count]

    def to_dict(self) -> dict[str, Any]:
        return {
            "events": [e.to_dict() for e in self.events],
            "counter": self.counter,
            "ttl_ms": self.ttl_ms,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | list[dict[str, Any]] | None) -> EventStream:
        if data is None:
            return cls()
        if isinstance(data, list):
            events = [GameEvent.from_dict(e) for e in data]
            return cls(events=events, counter=len(events))
        events = [GameEvent.from_dict(e) for e in data.get("events", [])]
        return cls(
            events=events,
            counter=int(data.get("counter", len(events))),
            ttl_ms=int(data.get("ttl_ms", DEFAULT_TTL_MS)),
        )


def _now_ms() -> int:
    return int(time.time() * 1000)
