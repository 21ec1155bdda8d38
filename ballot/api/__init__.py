"""
API Module - Game client interface.

Exposes the engine via REST API. A client:
1. Creates or joins a room
2. Confirms the opening hand
3. Submits actions and card selections
4. Acknowledges events once shown

State views mask the opponent's hand and face-down cards.
"""

from .schemas import (
    # Requests
    CreateRoomRequest,
    JoinRoomRequest,
    ReadyRequest,
    ActionRequest,
    SelectionRequest,
    AcknowledgeRequest,
    InjectStateRequest,
    # Responses
    RoomResponse,
    RoomListResponse,
    EndRoomResponse,
    GameStateResponse,
    ActionResponse,
    LegalPlacementsResponse,
    PlayerDecksResponse,
    ErrorResponse,
    HealthResponse,
)
from .service import APIService, ServiceError, player_view
from .app import create_app

__all__ = [
    # Requests
    "CreateRoomRequest",
    "JoinRoomRequest",
    "ReadyRequest",
    "ActionRequest",
    "SelectionRequest",
    "AcknowledgeRequest",
    "InjectStateRequest",
    # Responses
    "RoomResponse",
    "RoomListResponse",
    "EndRoomResponse",
    "GameStateResponse",
    "ActionResponse",
    "LegalPlacementsResponse",
    "PlayerDecksResponse",
    "ErrorResponse",
    "HealthResponse",
    # Service
    "APIService",
    "ServiceError",
    "player_view",
    "create_app",
]
