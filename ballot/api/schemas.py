"""
Pydantic Schemas for API - Request/response models for OpenAPI.

These models define the contract between game clients and the engine.
Game states travel as the engine's own to_dict() blobs, filtered per viewer.

Error Codes (error_code field of ErrorResponse):
- GAME_NOT_FOUND (404): no game with that id
- GAME_ENDED, ROOM_NOT_AVAILABLE (409): the game cannot take this request
- every other engine error code (400): the action broke a rule
"""

from typing import Optional, Any
from pydantic import BaseModel, Field


# =============================================================================
# Request Models
# =============================================================================

class CreateRoomRequest(BaseModel):
    """Open a new room with the player's active deck."""
    player_id: str = Field(..., description="Player creating the room")
    seed: Optional[int] = Field(None, description="Fixed RNG seed (tests and replays)")


class JoinRoomRequest(BaseModel):
    player_id: str = Field(..., description="Player joining the room")


class ReadyRequest(BaseModel):
    """Confirm the opening hand."""
    player_id: str
    redraw: bool = Field(False, description="Shuffle the hand back and draw a new one")


class ActionRequest(BaseModel):
    """
    A player action.

    type is PlayCard, PlayCardBack, SelectCard or Pass.
    """
    player_id: str
    type: str = Field(..., description="PlayCard | PlayCardBack | SelectCard | Pass")
    field_idx: Optional[int] = Field(None, description="0..4 = top, left, right, help, sp")
    card_idx: Optional[int] = Field(None, description="Index into the player's hand")
    selection_id: Optional[str] = Field(None, alias="selectionId")
    selected_card_ids: Optional[list[str]] = Field(None, alias="selectedCardIds")

    model_config = {"populate_by_name": True}

    def to_action_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "field_idx": self.field_idx,
            "card_idx": self.card_idx,
            "selectionId": self.selection_id,
            "selectedCardIds": self.selected_card_ids,
        }


class SelectionRequest(BaseModel):
    """Answer an open card selection."""
    player_id: str
    selection_id: str = Field(..., alias="selectionId")
    selected_card_ids: list[str] = Field(..., alias="selectedCardIds")

    model_config = {"populate_by_name": True}


class AcknowledgeRequest(BaseModel):
    """Mark events as processed by the client."""
    player_id: str
    event_ids: list[str] = Field(default_factory=list)
    event_types: list[str] = Field(default_factory=list)


class InjectStateRequest(BaseModel):
    """Store an arbitrary game state (test environments only)."""
    game_state: dict[str, Any]
    game_id: Optional[str] = None


# =============================================================================
# Response Models
# =============================================================================

class RoomResponse(BaseModel):
    """Room summary after a lifecycle call."""
    game_id: str
    room_status: str
    phase: str
    players: list[str] = Field(default_factory=list)
    first_player: Optional[str] = None
    current_player: Optional[str] = None


class RoomListResponse(BaseModel):
    rooms: list[dict[str, Any]] = Field(default_factory=list)
    count: int = 0


class EndRoomResponse(BaseModel):
    success: bool
    game_id: str


class GameStateResponse(BaseModel):
    """A game state as seen by one player (or in full when no player is given)."""
    game_id: str
    player_id: Optional[str] = None
    game_state: dict[str, Any]
    unprocessed_events: list[dict[str, Any]] = Field(default_factory=list)


class ActionResponse(BaseModel):
    """Outcome of a successful action."""
    success: bool = True
    game_id: str
    game_state: dict[str, Any]
    events: list[dict[str, Any]] = Field(default_factory=list)
    state_changes: list[str] = Field(default_factory=list)
    pending_selection: Optional[dict[str, Any]] = None


class LegalPlacementsResponse(BaseModel):
    game_id: str
    player_id: str
    actions: list[dict[str, Any]] = Field(default_factory=list)
    count: int = 0


class PlayerDecksResponse(BaseModel):
    player_id: str
    active_deck: str
    decks: dict[str, Any] = Field(default_factory=dict)


class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str = Field(..., description="Human-readable error message")
    error_code: str = Field(..., description="Machine-readable error code")
    details: Optional[dict[str, Any]] = Field(None, description="Additional error context")
    api_version: str = Field("v1", description="API version")


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    service: str
    version: str
