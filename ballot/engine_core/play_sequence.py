"""
Play Sequence - Ordered log of every leader summon and card play.

The sequence is the input to the effect simulator: derived field effects are
always recomputed by replaying it from the start.

Invariants:
- sequence IDs run 1..n with no gaps or duplicates
- removals (round transitions) renumber the survivors from 1
- records are never edited in place once appended
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Iterator
import time

from .errors import SequenceCorruptedError


class PlayAction(Enum):
    """Kinds of play records."""
    PLAY_LEADER = "PLAY_LEADER"
    PLAY_CARD = "PLAY_CARD"

    # Synthetic records materialised by resolved effects
    APPLY_SET_POWER = "APPLY_SET_POWER"
    APPLY_NEUTRALIZATION = "APPLY_NEUTRALIZATION"
    APPLY_POWER_MODIFIER = "APPLY_POWER_MODIFIER"
    APPLY_PLAY_RESTRICTION = "APPLY_PLAY_RESTRICTION"
    APPLY_FORCE_SP_PLAY = "APPLY_FORCE_SP_PLAY"

    @property
    def is_synthetic(self) -> bool:
        return self.value.startswith("APPLY_")


REQUIRED_FIELDS = ("sequence_id", "player_id", "card_id", "action", "zone")


@dataclass
class PlayRecord:
    sequence_id: int
    player_id: str
    card_id: str
    action: PlayAction
    zone: str
    data: dict[str, Any] = field(default_factory=dict)
    timestamp: float = 0.0
    turn_number: float = 0.0
    phase: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "sequence_id": self.sequence_id,
            "player_id": self.player_id,
            "card_id": self.card_id,
            "action": self.action.value,
            "zone": self.zone,
            "data": dict(self.data),
            "timestamp": self.timestamp,
            "turn_number": self.turn_number,
            "phase": self.phase,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PlayRecord:
        return cls(
            sequence_id=int(data["sequence_id"]),
            player_id=data["player_id"],
            card_id=data["card_id"],
            action=PlayAction(data["action"]),
            zone=data.get("zone", ""),
            data=dict(data.get("data", {})),
            timestamp=float(data.get("timestamp", 0.0)),
            turn_number=float(data.get("turn_number", 0.0)),
            phase=data.get("phase", ""),
        )


@dataclass
class PlaySequence:
    """
    Append-only play log.

    Usage:
        sequence = PlaySequence()
        sequence.append("playerId_1", "s-1", PlayAction.PLAY_LEADER, "leader")
        sequence.append("playerId_1", "c-1", PlayAction.PLAY_CARD, "top")
        sequence.validate()  # -> []
    """
    records: list[PlayRecord] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self) -> Iterator[PlayRecord]:
        return iter(self.all())

    @property
    def next_id(self) -> int:
        return max((r.sequence_id for r in self.records), default=0) + 1

    def append(
        self,
        player_id: str,
        card_id: str,
        action: PlayAction,
        zone: str,
        data: dict[str, Any] | None = None,
        turn_number: float = 0.0,
        phase: str = "",
        timestamp: float | None = None,
    ) -> PlayRecord:
        record = PlayRecord(
            sequence_id=self.next_id,
            player_id=player_id,
            card_id=card_id,
            action=action,
            zone=zone,
            data=dict(data or {}),
            timestamp=time.time() if timestamp is None else timestamp,
            turn_number=turn_number,
            phase=phase,
        )
        self.records.append(record)
        return record

    def all(self) -> list[PlayRecord]:
        """Every record, ascending by sequence ID."""
        return sorted(self.records, key=lambda r: r.sequence_id)

    def by_player(self, player_id: str) -> list[PlayRecord]:
        return [r for r in self.all() if r.player_id == player_id]

    def by_phase(self, phase: str) -> list[PlayRecord]:
        return [r for r in self.all() if r.phase == phase]

    def by_turn(self, turn_number: float) -> list[PlayRecord]:
        return [r for r in self.all() if r.turn_number == turn_number]

    def by_action(self, action: PlayAction) -> list[PlayRecord]:
        return [r for r in self.all() if r.action == action]

    def last_by_player(self, player_id: str) -> PlayRecord | None:
        records = self.by_player(player_id)
        return records[-1] if records else None

    def current_leader_play(self, player_id: str) -> PlayRecord | None:
        """The most recent PLAY_LEADER record of a player."""
        leaders = [r for r in self.by_player(player_id) if r.action == PlayAction.PLAY_LEADER]
        return leaders[-1] if leaders else None

    def has_leader_play(self, player_id: str) -> bool:
        return self.current_leader_play(player_id) is not None

    def clear(self, keep_leaders: bool = True):
        """Drop every non-leader record (or everything) and renumber."""
        if keep_leaders:
            self.retain(lambda r: r.action == PlayAction.PLAY_LEADER)
        else:
            self.records = []

    def retain(self, predicate: Callable[[PlayRecord], bool]):
        """Keep records matching predicate, renumbered from 1 in order."""
        kept = [r for r in self.all() if predicate(r)]
        for new_id, record in enumerate(kept, start=1):
            record.sequence_id = new_id
        self.records = kept

    def validate(self) -> list[str]:
        """
        Check the sequence invariants.

        Returns a list of problems; empty means valid.
        """
        problems: list[str] = []
        seen: set[int] = set()
        for record in self.records:
            for name in REQUIRED_FIELDS:
                value = getattr(record, name, None)
                if value is None or value == "":
                    problems.append(f"Record {record.sequence_id} missing {name}")
            if record.sequence_id in seen:
                problems.append(f"Duplicate sequence ID {record.sequence_id}")
            seen.add(record.sequence_id)

        expected = 1
        for sequence_id in sorted(seen):
            if sequence_id != expected:
                problems.append(f"Sequence gap: expected {expected}, found {sequence_id}")
                break
            expected += 1
        return problems

    def ensure_valid(self):
        """Raise SequenceCorruptedError if the invariants do not hold."""
        problems = self.validate()
        if problems:
            raise SequenceCorruptedError(problems)

    def statistics(self) -> dict[str, Any]:
        by_player: dict[str, int] = {}
        by_phase: dict[str, int] = {}
        by_turn: dict[str, int] = {}
        for record in self.records:
            by_player[record.player_id] = by_player.get(record.player_id, 0) + 1
            by_phase[record.phase] = by_phase.get(record.phase, 0) + 1
            turn_key = str(record.turn_number)
            by_turn[turn_key] = by_turn.get(turn_key, 0) + 1
        return {
            "totalPlays": len(self.records),
            "leaderPlays": sum(1 for r in self.records if r.action == PlayAction.PLAY_LEADER),
            "cardPlays": sum(1 for r in self.records if r.action == PlayAction.PLAY_CARD),
            "byPlayer": by_player,
            "byPhase": by_phase,
            "byTurn": by_turn,
        }

    def to_list(self) -> list[dict[str, Any]]:
        return [r.to_dict() for r in self.all()]

    @classmethod
    def from_list(cls, data: list[dict[str, Any]] | None) -> PlaySequence:
        return cls(records=[PlayRecord.from_dict(r) for r in data or []])
