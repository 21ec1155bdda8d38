"""
FastAPI Application - REST API for game clients.

Endpoints:
    POST   /api/v1/rooms                              Create a room
    GET    /api/v1/rooms                              List rooms
    GET    /api/v1/rooms/{id}                         Get game state (per viewer)
    DELETE /api/v1/rooms/{id}                         End a room
    POST   /api/v1/rooms/{id}/join                    Join as second player
    POST   /api/v1/rooms/{id}/ready                   Keep or redraw opening hand
    POST   /api/v1/rooms/{id}/actions                 PlayCard / PlayCardBack / SelectCard / Pass
    POST   /api/v1/rooms/{id}/selections              Answer a card selection
    POST   /api/v1/rooms/{id}/events/ack              Acknowledge events
    GET    /api/v1/rooms/{id}/legal-placements        Legal placements for a player
    POST   /api/v1/rooms/{id}/next-round              Force battle resolution
    GET    /api/v1/players/{id}/decks                 A player's decks
    POST   /api/v1/test/inject                        Store an arbitrary state
    POST   /api/v1/test/scenarios/{scenario_id}       Load a canned state

The two /test routes are not registered when BALLOT_ENV=production.
All responses are JSON with explicit Pydantic schemas.
"""

from typing import Annotated, Optional, Union
import logging
import os

from .. import __version__ as API_VERSION

# Environment configuration
BALLOT_ENV = os.getenv("BALLOT_ENV", "development")
BALLOT_STATE_DIR = os.getenv("BALLOT_STATE_DIR", None)
BALLOT_DATA_DIR = os.getenv("BALLOT_DATA_DIR", None)
ALLOWED_ORIGINS = os.getenv("ALLOWED_ORIGINS", "*").split(",")
BALLOT_LOG_LEVEL = os.getenv("BALLOT_LOG_LEVEL", "INFO")


logger = logging.getLogger(__name__)


def build_service():
    """APIService wired from the environment configuration."""
    from ..catalog import load_catalog
    from ..engine_core.orchestrator import GameOrchestrator
    from ..engine_core.settings import EngineSettings
    from ..session import RoomManager, InMemoryGameStore, JsonFileGameStore
    from .service import APIService

    catalog = load_catalog(BALLOT_DATA_DIR) if BALLOT_DATA_DIR else None
    orchestrator = GameOrchestrator(catalog, EngineSettings.from_env())
    store = JsonFileGameStore(BALLOT_STATE_DIR) if BALLOT_STATE_DIR else InMemoryGameStore()
    logger.info("Ballot service (%s) using %s", BALLOT_ENV, type(store).__name__)
    return APIService(
        rooms=RoomManager(orchestrator=orchestrator, store=store),
        allow_test_routes=BALLOT_ENV != "production",
    )


def create_app(service=None):
    """
    Create the FastAPI application.

    Args:
        service: Optional APIService instance (built from the environment if not provided)

    Returns:
        FastAPI application instance
    """
    try:
        from fastapi import FastAPI, Query
        from fastapi.middleware.cors import CORSMiddleware
        from fastapi.responses import JSONResponse
    except ImportError:
        raise ImportError(
            "FastAPI not installed. Install with: pip install fastapi uvicorn"
        )

    from .schemas import (
        AcknowledgeRequest,
        ActionRequest,
        ActionResponse,
        CreateRoomRequest,
        EndRoomResponse,
        ErrorResponse,
        GameStateResponse,
        HealthResponse,
        InjectStateRequest,
        JoinRoomRequest,
        LegalPlacementsResponse,
        PlayerDecksResponse,
        ReadyRequest,
        RoomListResponse,
        RoomResponse,
        SelectionRequest,
    )
    from .service import ServiceError

    api_service = service or build_service()

    app = FastAPI(
        title="Ballot Engine API",
        description="""
Rules engine for a two-player political card game.

## Flow
1. **Create** a room, then the second player **joins** (hands are dealt)
2. Both players confirm their hands via **ready**
3. Players submit **actions** until a player reaches the victory threshold
4. Clients **acknowledge** events once animated

## Error Codes
| Code | Status | Meaning |
|------|--------|---------|
| GAME_NOT_FOUND | 404 | No game with that id |
| GAME_ENDED | 409 | The game is over |
| ROOM_NOT_AVAILABLE | 409 | Room is full or not in that stage |
| (any other) | 400 | The action broke a rule |
        """,
        version=API_VERSION,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # =========================================================================
    # Error helpers
    # =========================================================================

    def make_error_response(
        error_code: str,
        message: str,
        status_code: int = 400,
        details: Optional[dict] = None,
    ) -> JSONResponse:
        """Create a standardized error response."""
        return JSONResponse(
            status_code=status_code,
            content=ErrorResponse(
                error=message,
                error_code=error_code,
                details=details,
            ).model_dump(),
        )

    def respond(response):
        if isinstance(response, ServiceError):
            return make_error_response(
                response.error_code,
                response.error,
                status_code=response.status_code,
                details=response.details,
            )
        return response

    error_responses = {
        400: {"model": ErrorResponse, "description": "Rule violation"},
        404: {"model": ErrorResponse, "description": "Game not found"},
        409: {"model": ErrorResponse, "description": "Game ended or room unavailable"},
    }

    # =========================================================================
    # Room Endpoints
    # =========================================================================

    @app.post(
        "/api/v1/rooms",
        response_model=RoomResponse,
        responses=error_responses,
        tags=["Rooms"],
        summary="Create a room",
    )
    async def create_room(request: CreateRoomRequest) -> Union[RoomResponse, JSONResponse]:
        """Open a room with the player's active deck and wait for an opponent."""
        return respond(api_service.create_room(request))

    @app.get(
        "/api/v1/rooms",
        response_model=RoomListResponse,
        tags=["Rooms"],
        summary="List rooms",
    )
    async def list_rooms() -> RoomListResponse:
        """List every stored game with its status."""
        return api_service.list_rooms()

    @app.get(
        "/api/v1/rooms/{game_id}",
        response_model=GameStateResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Rooms"],
        summary="Get game state",
    )
    async def get_room(
        game_id: str,
        player_id: Annotated[Optional[str], Query(description="Viewer; hides the opponent's hand")] = None,
    ) -> Union[GameStateResponse, JSONResponse]:
        """Get the game state as seen by one player."""
        return respond(api_service.get_game_state(game_id, player_id))

    @app.delete(
        "/api/v1/rooms/{game_id}",
        response_model=EndRoomResponse,
        tags=["Rooms"],
        summary="End a room",
    )
    async def end_room(game_id: str) -> EndRoomResponse:
        """Remove the game from the store."""
        return api_service.end_room(game_id)

    @app.post(
        "/api/v1/rooms/{game_id}/join",
        response_model=RoomResponse,
        responses=error_responses,
        tags=["Rooms"],
        summary="Join a room",
    )
    async def join_room(game_id: str, request: JoinRoomRequest) -> Union[RoomResponse, JSONResponse]:
        """Take the second seat; decks are shuffled and opening hands dealt."""
        return respond(api_service.join_room(game_id, request))

    @app.post(
        "/api/v1/rooms/{game_id}/ready",
        response_model=RoomResponse,
        responses=error_responses,
        tags=["Rooms"],
        summary="Confirm opening hand",
    )
    async def ready(game_id: str, request: ReadyRequest) -> Union[RoomResponse, JSONResponse]:
        """Keep (or redraw) the opening hand. The game starts once both players are ready."""
        return respond(api_service.ready(game_id, request))

    # =========================================================================
    # Gameplay Endpoints
    # =========================================================================

    @app.post(
        "/api/v1/rooms/{game_id}/actions",
        response_model=ActionResponse,
        responses=error_responses,
        tags=["Gameplay"],
        summary="Submit a player action",
    )
    async def submit_action(game_id: str, request: ActionRequest) -> Union[ActionResponse, JSONResponse]:
        """
        Apply PlayCard, PlayCardBack, SelectCard or Pass.

        A rejected action still stores an ERROR_OCCURRED event on the game.
        """
        return respond(api_service.submit_action(game_id, request))

    @app.post(
        "/api/v1/rooms/{game_id}/selections",
        response_model=ActionResponse,
        responses=error_responses,
        tags=["Gameplay"],
        summary="Answer a card selection",
    )
    async def submit_selection(game_id: str, request: SelectionRequest) -> Union[ActionResponse, JSONResponse]:
        return respond(api_service.submit_selection(game_id, request))

    @app.post(
        "/api/v1/rooms/{game_id}/events/ack",
        response_model=ActionResponse,
        responses=error_responses,
        tags=["Gameplay"],
        summary="Acknowledge events",
    )
    async def acknowledge_events(game_id: str, request: AcknowledgeRequest) -> Union[ActionResponse, JSONResponse]:
        """Mark events processed; acknowledging DRAW_PHASE_COMPLETE opens the main phase."""
        return respond(api_service.acknowledge_events(game_id, request))

    @app.get(
        "/api/v1/rooms/{game_id}/legal-placements",
        response_model=LegalPlacementsResponse,
        responses=error_responses,
        tags=["Gameplay"],
        summary="List legal placements",
    )
    async def legal_placements(
        game_id: str,
        player_id: Annotated[str, Query(description="Player to enumerate placements for")],
    ) -> Union[LegalPlacementsResponse, JSONResponse]:
        return respond(api_service.legal_placements(game_id, player_id))

    @app.post(
        "/api/v1/rooms/{game_id}/next-round",
        response_model=ActionResponse,
        responses=error_responses,
        tags=["Gameplay"],
        summary="Force battle resolution",
    )
    async def next_round(game_id: str) -> Union[ActionResponse, JSONResponse]:
        """Resolve the current battle immediately (admin and test use)."""
        return respond(api_service.next_round(game_id))

    @app.get(
        "/api/v1/players/{player_id}/decks",
        response_model=PlayerDecksResponse,
        responses=error_responses,
        tags=["Decks"],
        summary="Get a player's decks",
    )
    async def player_decks(player_id: str) -> Union[PlayerDecksResponse, JSONResponse]:
        return respond(api_service.player_decks(player_id))

    # =========================================================================
    # Test Endpoints
    # =========================================================================

    if api_service.allow_test_routes:

        @app.post(
            "/api/v1/test/inject",
            response_model=GameStateResponse,
            responses=error_responses,
            tags=["Test"],
            summary="Inject a game state",
        )
        async def inject_state(request: InjectStateRequest) -> Union[GameStateResponse, JSONResponse]:
            """Store a client-supplied state; missing leader plays are added."""
            return respond(api_service.inject_state(request))

        @app.post(
            "/api/v1/test/scenarios/{scenario_id}",
            response_model=GameStateResponse,
            responses=error_responses,
            tags=["Test"],
            summary="Load a test scenario",
        )
        async def load_scenario(
            scenario_id: str,
            game_id: Annotated[Optional[str], Query(description="Game id to store under")] = None,
        ) -> Union[GameStateResponse, JSONResponse]:
            return respond(api_service.load_scenario(scenario_id, game_id))

    # =========================================================================
    # Health Check
    # =========================================================================

    @app.get(
        "/health",
        response_model=HealthResponse,
        tags=["System"],
        summary="Health check",
    )
    async def health_check() -> HealthResponse:
        """Health check endpoint for load balancers."""
        return HealthResponse(
            status="healthy",
            service="ballot-engine",
            version=API_VERSION,
        )

    @app.get("/", tags=["System"])
    async def root():
        """Root endpoint with API info."""
        return {
            "name": "Ballot Engine API",
            "version": API_VERSION,
            "docs": "/api/docs",
            "health": "/health",
        }

    return app


# For running directly: uvicorn ballot.api.app:app
app = None
try:
    app = create_app()
except ImportError:
    # FastAPI not installed
    pass
