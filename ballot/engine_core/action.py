"""
Action System - Player actions and results.

Actions represent the four things a player can send:
1. PlayCard / PlayCardBack - place a hand card face-up or face-down
2. SelectCard - answer an open card selection
3. Pass - give up the rest of the turn (or the SP zone)

All state changes flow through the orchestrator, which returns an
ActionResult.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ActionType(Enum):
    """Types of actions in the system."""
    PLAY_CARD = "PlayCard"
    PLAY_CARD_BACK = "PlayCardBack"
    SELECT_CARD = "SelectCard"
    PASS = "Pass"

    @property
    def is_placement(self) -> bool:
        return self in (ActionType.PLAY_CARD, ActionType.PLAY_CARD_BACK)


@dataclass
class ActionPayload:
    """
    Parameters of an action.

    Placement actions use field_idx/card_idx; SelectCard uses
    selection_id/selected_card_ids.
    """
    field_idx: int | None = None
    card_idx: int | None = None
    selection_id: str | None = None
    selected_card_ids: list[str] | None = None


@dataclass
class Action:
    """
    A complete action sent by a player.

    action_type is kept as the raw string when it does not name a known
    action, so the orchestrator can report INVALID_ACTION_TYPE.
    """
    action_type: ActionType | str
    payload: ActionPayload = field(default_factory=ActionPayload)
    timestamp: float | None = None

    @property
    def is_placement(self) -> bool:
        return isinstance(self.action_type, ActionType) and self.action_type.is_placement

    @property
    def face_down(self) -> bool:
        return self.action_type == ActionType.PLAY_CARD_BACK

    @classmethod
    def play_card(cls, field_idx: int, card_idx: int) -> Action:
        """Factory for a face-up placement."""
        return cls(
            action_type=ActionType.PLAY_CARD,
            payload=ActionPayload(field_idx=field_idx, card_idx=card_idx),
        )

    @classmethod
    def play_card_back(cls, field_idx: int, card_idx: int) -> Action:
        """Factory for a face-down placement."""
        return cls(
            action_type=ActionType.PLAY_CARD_BACK,
            payload=ActionPayload(field_idx=field_idx, card_idx=card_idx),
        )

    @classmethod
    def select_card(cls, selection_id: str, selected_card_ids: list[str]) -> Action:
        """Factory for a selection response."""
        return cls(
            action_type=ActionType.SELECT_CARD,
            payload=ActionPayload(selection_id=selection_id, selected_card_ids=list(selected_card_ids)),
        )

    @classmethod
    def pass_turn(cls) -> Action:
        return cls(action_type=ActionType.PASS)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Action:
        """Parse the inbound action envelope."""
        raw_type = data.get("type", "")
        try:
            action_type: ActionType | str = ActionType(raw_type)
        except ValueError:
            action_type = str(raw_type)
        selected = data.get("selectedCardIds", data.get("selected_card_ids"))
        return cls(
            action_type=action_type,
            payload=ActionPayload(
                field_idx=data.get("field_idx"),
                card_idx=data.get("card_idx"),
                selection_id=data.get("selectionId", data.get("selection_id")),
                selected_card_ids=list(selected) if isinstance(selected, (list, tuple)) else selected,
            ),
        )

    def to_dict(self) -> dict[str, Any]:
        type_value = self.action_type.value if isinstance(self.action_type, ActionType) else self.action_type
        data: dict[str, Any] = {"type": type_value}
        if self.payload.field_idx is not None:
            data["field_idx"] = self.payload.field_idx
        if self.payload.card_idx is not None:
            data["card_idx"] = self.payload.card_idx
        if self.payload.selection_id is not None:
            data["selectionId"] = self.payload.selection_id
        if self.payload.selected_card_ids is not None:
            data["selectedCardIds"] = list(self.payload.selected_card_ids)
        return data


@dataclass
class ActionResult:
    """
    Result of applying an action.

    Contains:
    - Whether the action succeeded
    - The state to persist (new state on success; the unchanged state plus
      an ERROR_OCCURRED event on failure)
    - Error message and code (if failed)
    - Events appended while handling the action
    """
    success: bool
    new_state: Any | None = None  # GameState
    error: str | None = None
    error_code: str | None = None

    # For clients
    state_changes: list[str] = field(default_factory=list)  # Human-readable changes
    events: list[dict[str, Any]] = field(default_factory=list)

    # Set when the action opened a card selection
    pending_choice: Any | None = None

    @classmethod
    def failure(cls, error: str, error_code: str | None = None, state: Any | None = None) -> ActionResult:
        """Create a failure result."""
        return cls(success=False, new_state=state, error=error, error_code=error_code)

    @classmethod
    def success_with_state(
        cls,
        state: Any,
        changes: list[str] | None = None,
        events: list[dict[str, Any]] | None = None,
    ) -> ActionResult:
        """Create a success result with new state."""
        return cls(
            success=True,
            new_state=state,
            state_changes=changes or [],
            events=events or [],
        )
