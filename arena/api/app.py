"""
FastAPI Application - REST API for practice matches against a bot.

Endpoints:
    GET    /api/v1/roster                  Champion pool and abilities
    POST   /api/v1/matches                 Create a match (lobby + draft)
    GET    /api/v1/matches                 List matches
    GET    /api/v1/matches/{id}            Get match state
    DELETE /api/v1/matches/{id}            Leave and end a match
    POST   /api/v1/matches/{id}/moves      Play one round
    GET    /api/v1/matches/{id}/events     Battle log
    WS     /api/v1/matches/{id}/ws         WebSocket for real-time updates

Each round runs the full commit/reveal protocol between the player's
session and the bot's session over an in-memory network.

All responses are JSON with explicit Pydantic schemas.
"""

from typing import Optional
import json
import logging

from fastapi import FastAPI, Request, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .. import __version__
from ..config import ArenaConfig
from ..errors import ArenaError, OpponentTimeout, TransportSendFailed, WrongPhaseError
from .schemas import (
    CreateMatchRequest,
    EndMatchResponse,
    ErrorCode,
    ErrorResponse,
    EventsResponse,
    HealthResponse,
    MatchListResponse,
    MatchResponse,
    MoveRequest,
    MoveResponse,
    RosterResponse,
)
from .service import APIService, MatchNotFound

logger = logging.getLogger(__name__)


def _status_for(error: ArenaError) -> int:
    if isinstance(error, MatchNotFound):
        return 404
    if isinstance(error, WrongPhaseError):
        return 409
    if isinstance(error, TransportSendFailed):
        return 503
    if isinstance(error, OpponentTimeout):
        return 504
    return 400


def create_app(service: Optional[APIService] = None, config: Optional[ArenaConfig] = None):
    """
    Create the FastAPI application.

    Args:
        service: Optional APIService instance (creates new if not provided)
        config: Optional config (read from the environment if not provided)

    Returns:
        FastAPI application instance
    """
    config = config or (service.config if service else ArenaConfig.from_env())
    api_service = service or APIService(config=config)

    app = FastAPI(
        title="Champion Arena API",
        description="""
Commit-reveal champion battles against a bot.

## Round Flow

1. `POST /matches/{id}/moves` commits your move
2. The bot commits; both sides reveal and verify each other
3. The round resolves deterministically on both sides
4. The response carries the round's events and the new state

## Error Codes

| Code | Description |
|------|-------------|
| `INVALID_MOVE` | Champion or ability cannot act |
| `NOT_MY_TURN_OR_WRONG_PHASE` | Operation not legal right now |
| `TRANSPORT_SEND_FAILED` | Send failed; retry |
| `VERIFICATION_FAILED` | A reveal did not match its commitment |
| `OPPONENT_TIMEOUT` | Opponent did not act in time |
| `INVALID_PICK` | Team is not 3 distinct known champions |
| `MATCH_NOT_FOUND` | Match does not exist |
        """,
        version=__version__,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # WebSocket connections
    ws_connections: dict[str, list[WebSocket]] = {}

    # =========================================================================
    # Error helpers
    # =========================================================================

    def make_error_response(error: ArenaError) -> JSONResponse:
        """Create a standardized error response."""
        try:
            code = ErrorCode(error.error_code)
        except ValueError:
            code = ErrorCode.ARENA_ERROR
        return JSONResponse(
            status_code=_status_for(error),
            content=ErrorResponse(
                error=error.message,
                error_code=code,
                retryable=error.retryable,
                details=error.details or None,
            ).model_dump(mode="json"),
        )

    @app.exception_handler(ArenaError)
    async def arena_error_handler(request: Request, exc: ArenaError) -> JSONResponse:
        logger.info("%s %s failed: %s (%s)", request.method, request.url.path, exc.message, exc.error_code)
        return make_error_response(exc)

    async def broadcast_to_match(match_id: str, message: dict):
        """Broadcast a message to all WebSocket connections for a match."""
        if match_id in ws_connections:
            dead_connections = []
            for ws in ws_connections[match_id]:
                try:
                    await ws.send_json(message)
                except (WebSocketDisconnect, RuntimeError):
                    dead_connections.append(ws)
            for ws in dead_connections:
                ws_connections[match_id].remove(ws)

    # =========================================================================
    # Roster
    # =========================================================================

    @app.get(
        "/api/v1/roster",
        response_model=RosterResponse,
        tags=["Roster"],
        summary="List the champion pool",
    )
    async def get_roster() -> RosterResponse:
        """Every champion with its stats, element and encoded moves."""
        return api_service.get_roster()

    # =========================================================================
    # Match Endpoints
    # =========================================================================

    @app.post(
        "/api/v1/matches",
        response_model=MatchResponse,
        responses={400: {"model": ErrorResponse}},
        tags=["Matches"],
        summary="Create a practice match",
    )
    async def create_match(request: CreateMatchRequest) -> MatchResponse:
        """
        Create a match against a bot.

        Runs the lobby handshake and the snake draft, then returns the
        match in the choosing phase of round 1.
        """
        return await api_service.create_match(request)

    @app.get(
        "/api/v1/matches",
        response_model=MatchListResponse,
        tags=["Matches"],
        summary="List matches",
    )
    async def list_matches() -> MatchListResponse:
        return api_service.list_matches()

    @app.get(
        "/api/v1/matches/{match_id}",
        response_model=MatchResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Matches"],
        summary="Get match state",
    )
    async def get_match(match_id: str) -> MatchResponse:
        return api_service.get_match(match_id)

    @app.delete(
        "/api/v1/matches/{match_id}",
        response_model=EndMatchResponse,
        tags=["Matches"],
        summary="Leave and end a match",
    )
    async def end_match(match_id: str) -> EndMatchResponse:
        """Send a leave signal to the bot and release the match."""
        response = await api_service.end_match(match_id)
        if response.success:
            await broadcast_to_match(match_id, {"type": "match_ended", "payload": {"match_id": match_id}})
        return response

    @app.post(
        "/api/v1/matches/{match_id}/moves",
        response_model=MoveResponse,
        responses={
            400: {"model": ErrorResponse},
            404: {"model": ErrorResponse},
            409: {"model": ErrorResponse},
        },
        tags=["Matches"],
        summary="Play one round",
    )
    async def submit_move(match_id: str, request: MoveRequest) -> MoveResponse:
        """Commit a move, let the bot commit, reveal, verify and resolve."""
        response = await api_service.submit_move(match_id, request)
        await broadcast_to_match(match_id, {
            "type": "round_resolved",
            "payload": response.model_dump(mode="json"),
        })
        if response.match.result is not None:
            await broadcast_to_match(match_id, {
                "type": "game_over",
                "payload": response.match.result.model_dump(mode="json"),
            })
        return response

    @app.get(
        "/api/v1/matches/{match_id}/events",
        response_model=EventsResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Matches"],
        summary="Get the battle log",
    )
    async def get_events(match_id: str) -> EventsResponse:
        return api_service.get_events(match_id)

    # =========================================================================
    # WebSocket Endpoint
    # =========================================================================

    @app.websocket("/api/v1/matches/{match_id}/ws")
    async def websocket_endpoint(websocket: WebSocket, match_id: str):
        """
        WebSocket for real-time updates.

        Messages from server:
        - state_update: Current match state (sent on connect)
        - round_resolved: A round finished; payload is the MoveResponse
        - game_over: Match decided
        - match_ended: Match was closed
        - error: Error occurred

        Messages from client:
        - ping: Keep-alive
        """
        await websocket.accept()
        ws_connections.setdefault(match_id, []).append(websocket)

        try:
            try:
                state = api_service.get_match(match_id)
                await websocket.send_json({
                    "type": "state_update",
                    "payload": state.model_dump(mode="json"),
                })
            except MatchNotFound as e:
                await websocket.send_json({"type": "error", "payload": e.to_dict()})

            while True:
                data = await websocket.receive_text()
                try:
                    message = json.loads(data)
                except json.JSONDecodeError:
                    await websocket.send_json({
                        "type": "error",
                        "payload": {"message": "Invalid JSON"},
                    })
                    continue
                if isinstance(message, dict) and message.get("type") == "ping":
                    await websocket.send_json({"type": "pong"})

        except WebSocketDisconnect:
            logger.debug("WebSocket for match %s disconnected", match_id)
        finally:
            if websocket in ws_connections.get(match_id, []):
                ws_connections[match_id].remove(websocket)

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
        return api_service.health()

    @app.get("/", tags=["System"])
    async def root():
        """Root endpoint with API info."""
        return {
            "name": "Champion Arena API",
            "version": __version__,
            "docs": "/api/docs",
            "health": "/health",
        }

    return app


# For running directly: uvicorn arena.api.app:app
app = create_app()
