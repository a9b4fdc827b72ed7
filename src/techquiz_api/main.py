import logging
from contextlib import contextmanager
from typing import Any, Dict

from fastapi import Depends, FastAPI, HTTPException, Path, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from techquiz_api.config import settings
from techquiz_api.db import (
    ALL_PLAYERS,
    DEFAULT_PLAYER,
    DatabaseTimeoutError,
    QuizDatabase,
    QuizDatabaseError,
    TechnologyNotFoundError,
    get_database,
)
from techquiz_api.logging_config import setup_logging
from techquiz_api.schemas import GuessRequest, GuessResult, TechnologyCount

logger = logging.getLogger(__name__)

openapi_tags = [
    {"name": "Technologies", "description": "Technology catalog size and logo images."},
    {"name": "Game", "description": "Guess submission and player scores."},
]

app = FastAPI(
    title="Tech Logo Quiz API",
    description=(
        "Backend API for the guess-the-technology-logo game. "
        "Every endpoint is a thin wrapper over a MySQL stored procedure."
    ),
    version="1.0.0",
    openapi_tags=openapi_tags,
)

# CORS: a single frontend origin by default. Override via CORS_ALLOW_ORIGINS env (comma separated).
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _not_found(entity: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{entity} not found")


def _server_error() -> HTTPException:
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Server error")


def _gateway_timeout() -> HTTPException:
    return HTTPException(status_code=status.HTTP_504_GATEWAY_TIMEOUT, detail="Database timeout")


@contextmanager
def _database_errors(operation: str):
    """Map gateway errors to HTTP errors; details stay in the server log."""
    try:
        yield
    except TechnologyNotFoundError as exc:
        logger.info("%s: %s", operation, exc)
        raise _not_found("Technology")
    except DatabaseTimeoutError:
        logger.exception("%s timed out", operation)
        raise _gateway_timeout()
    except QuizDatabaseError:
        logger.exception("%s failed", operation)
        raise _server_error()


def _describe_validation_errors(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if any(e.get("type") == "missing" and tuple(e.get("loc", ()))[:1] == ("body",) for e in errors):
        return "Missing required parameters: techIndex and guessedName"
    parts = []
    for e in errors:
        field = ".".join(str(p) for p in e.get("loc", ())[1:]) or "request"
        parts.append(f"{field}: {e.get('msg')}")
    return "Missing required or wrong parameters: " + "; ".join(parts)


@app.exception_handler(RequestValidationError)
async def _validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    detail = _describe_validation_errors(exc)
    logger.info("Rejected %s %s: %s", request.method, request.url.path, detail)
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": detail})


@app.on_event("startup")
def _startup() -> None:
    setup_logging(settings.log_level)
    try:
        database = get_database()
    except RuntimeError:
        logger.exception("Database configuration is incomplete")
        return
    database.check_connection()


# =========================
# Technologies
# =========================

@app.get(
    "/api/technologies/count",
    response_model=TechnologyCount,
    tags=["Technologies"],
    summary="Number of technologies",
)
def get_technology_count(database: QuizDatabase = Depends(get_database)) -> Dict[str, int]:
    """Return the size of the technology catalog."""
    with _database_errors("GetTechnologiesLength"):
        return {"tech_length": database.get_technologies_length()}


@app.get(
    "/api/technologies/image/{number}",
    response_model=str,
    tags=["Technologies"],
    summary="Technology image",
)
def get_technology_image(
    number: int = Path(..., ge=0, description="Technology index"),
    database: QuizDatabase = Depends(get_database),
) -> str:
    """Return the image reference for the technology at `number`."""
    with _database_errors("GetTechnologyImage"):
        return database.get_technology_image(number)


# =========================
# Game
# =========================

@app.post("/api/guess", response_model=GuessResult, tags=["Game"], summary="Submit a guess")
def submit_guess(payload: GuessRequest, database: QuizDatabase = Depends(get_database)) -> Dict[str, Any]:
    """Check a guess for a technology and update the player's score."""
    player_name = payload.player_name or DEFAULT_PLAYER
    logger.info(
        "Guess: techIndex=%s, guessedName=%s, playerName=%s",
        payload.tech_index,
        payload.guessed_name,
        player_name,
    )
    with _database_errors("CheckGuessAndUpdateScore"):
        return database.check_guess_and_update_score(payload.tech_index, payload.guessed_name, player_name)


def _scores_for(database: QuizDatabase, player_name: str) -> Any:
    logger.info("Scores requested for player %s", player_name)
    with _database_errors("getScores"):
        return database.get_scores(player_name)


@app.get("/api/getScores", tags=["Game"], summary="Scores for all players")
def get_all_scores(database: QuizDatabase = Depends(get_database)) -> Any:
    """Return the scores of every player."""
    return _scores_for(database, ALL_PLAYERS)


@app.get("/api/getScores/{player_name}", tags=["Game"], summary="Scores for one player")
def get_player_scores(player_name: str, database: QuizDatabase = Depends(get_database)) -> Any:
    """Return the scores of `player_name` ("all" returns every player)."""
    return _scores_for(database, player_name)
