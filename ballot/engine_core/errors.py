"""
Engine Errors - Typed rule violations.

Rule violations are raised as GameRuleError inside the engine and converted
once, at the orchestrator boundary, into a failed ActionResult plus an
ERROR_OCCURRED event.
"""

from __future__ import annotations
from enum import Enum
from typing import Any


class ErrorType(str, Enum):
    """Every error code the engine can report."""
    # Placement
    INVALID_POSITION = "INVALID_POSITION"
    INVALID_CARD_INDEX = "INVALID_CARD_INDEX"
    CARD_NOT_FOUND = "CARD_NOT_FOUND"
    PHASE_RESTRICTION_ERROR = "PHASE_RESTRICTION_ERROR"
    SP_PHASE_RESTRICTION = "SP_PHASE_RESTRICTION"
    CARD_TYPE_ZONE_ERROR = "CARD_TYPE_ZONE_ERROR"
    ZONE_OCCUPIED_ERROR = "ZONE_OCCUPIED_ERROR"
    ZONE_COMPATIBILITY_ERROR = "ZONE_COMPATIBILITY_ERROR"
    FIELD_EFFECT_RESTRICTION = "FIELD_EFFECT_RESTRICTION"

    # Selection
    INVALID_SELECTION_DATA = "INVALID_SELECTION_DATA"
    INVALID_SELECTION_ID = "INVALID_SELECTION_ID"
    INVALID_SELECTION_COUNT = "INVALID_SELECTION_COUNT"
    INVALID_CARD_SELECTION = "INVALID_CARD_SELECTION"
    UNAUTHORIZED_SELECTION = "UNAUTHORIZED_SELECTION"
    CARD_SELECTION_TIMEOUT = "CARD_SELECTION_TIMEOUT"

    # Gate
    CARD_SELECTION_PENDING = "CARD_SELECTION_PENDING"
    WAITING_FOR_PLAYER = "WAITING_FOR_PLAYER"

    # Structural
    INVALID_ACTION_TYPE = "INVALID_ACTION_TYPE"
    NOT_YOUR_TURN = "NOT_YOUR_TURN"
    INVALID_PHASE = "INVALID_PHASE"
    GAME_NOT_FOUND = "GAME_NOT_FOUND"
    GAME_ENDED = "GAME_ENDED"
    ROOM_NOT_AVAILABLE = "ROOM_NOT_AVAILABLE"
    PLAYER_NOT_IN_GAME = "PLAYER_NOT_IN_GAME"
    DECK_NOT_FOUND = "DECK_NOT_FOUND"
    INVALID_DECK = "INVALID_DECK"
    INVALID_GAME_STATE = "INVALID_GAME_STATE"

    # Simulator
    SEQUENCE_CORRUPTED = "SEQUENCE_CORRUPTED"


class GameRuleError(Exception):
    """A rule violation with a machine-readable error type."""

    def __init__(self, error_type: ErrorType, message: str, details: dict[str, Any] | None = None):
        self.error_type = error_type
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __repr__(self) -> str:
        return f"GameRuleError({self.error_type.value}: {self.message})"


class SequenceCorruptedError(GameRuleError):
    """The play sequence has gaps or duplicate IDs. Fatal for the game."""

    def __init__(self, problems: list[str]):
        self.problems = problems
        super().__init__(
            ErrorType.SEQUENCE_CORRUPTED,
            f"Play sequence corrupted: {'; '.join(problems)}",
            details={"problems": problems},
        )
