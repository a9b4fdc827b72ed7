"""
MySQL access for the quiz service.

Every public method opens its own connection, calls one stored procedure,
reads the procedure's OUT parameters back with a `SELECT @var` on the same
connection and closes the connection before returning. Callers never see the
two-statement protocol.
"""
import json
import logging
from contextlib import contextmanager
from typing import Any, Callable, Dict, Optional, Sequence, Type

import pymysql
import pymysql.cursors

from techquiz_api.config import DatabaseConfig

logger = logging.getLogger(__name__)

ALL_PLAYERS = "all"
DEFAULT_PLAYER = "guest"


class QuizDatabaseError(Exception):
    """Base error for anything that went wrong talking to the database."""


class DatabaseTimeoutError(QuizDatabaseError):
    """The database did not answer within the configured timeout."""


class TechnologyNotFoundError(QuizDatabaseError):
    def __init__(self, index: int):
        super().__init__(f"Technology {index} not found")
        self.index = index


class OutputDecodeError(QuizDatabaseError):
    """An OUT parameter came back as bytes that are not valid UTF-8."""


class ScoreDecodeError(OutputDecodeError):
    """getScores returned something that is not valid UTF-8 JSON."""


def _wrap_driver_error(exc: pymysql.MySQLError) -> QuizDatabaseError:
    # pymysql reports socket timeouts as OperationalError ("... (timed out)").
    if isinstance(exc, pymysql.err.OperationalError) and "timed out" in str(exc).lower():
        return DatabaseTimeoutError(str(exc))
    return QuizDatabaseError(str(exc))


def _as_text(value: Any, name: str, error: Type[OutputDecodeError] = OutputDecodeError) -> Any:
    if isinstance(value, (bytes, bytearray)):
        try:
            return value.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise error(f"@{name} is not valid UTF-8") from exc
    return value


class QuizDatabase:
    """Gateway over the quiz stored procedures."""

    def __init__(self, config: DatabaseConfig, connect: Callable[..., Any] = pymysql.connect):
        self._config = config
        self._connect = connect

    def _open(self):
        cfg = self._config
        return self._connect(
            host=cfg.host,
            port=cfg.port,
            user=cfg.user,
            password=cfg.password,
            database=cfg.database,
            connect_timeout=cfg.timeout_seconds,
            read_timeout=cfg.timeout_seconds,
            write_timeout=cfg.timeout_seconds,
            autocommit=True,
            charset="utf8mb4",
            cursorclass=pymysql.cursors.DictCursor,
        )

    @contextmanager
    def _get_conn(self):
        try:
            conn = self._open()
        except pymysql.MySQLError as exc:
            raise _wrap_driver_error(exc) from exc
        try:
            yield conn
        finally:
            # A timed-out connection is already force-closed by the driver.
            if conn.open:
                conn.close()

    def _call_procedure(self, call_sql: str, params: Sequence[Any], select_sql: str) -> Dict[str, Any]:
        with self._get_conn() as conn:
            try:
                with conn.cursor() as cur:
                    cur.execute(call_sql, params)
                    cur.execute(select_sql)
                    row = cur.fetchone()
            except pymysql.MySQLError as exc:
                raise _wrap_driver_error(exc) from exc
        if row is None:
            raise QuizDatabaseError(f"No output row for: {select_sql}")
        return dict(row)

    # PUBLIC_INTERFACE
    def check_connection(self) -> bool:
        """Open and close one connection, logging the outcome."""
        try:
            with self._get_conn():
                pass
        except QuizDatabaseError:
            logger.exception("Database connection failed")
            return False
        logger.info("Database connected successfully")
        return True

    # PUBLIC_INTERFACE
    def get_technologies_length(self) -> int:
        """Number of technologies in the catalog."""
        row = self._call_procedure(
            "CALL GetTechnologiesLength(@tech_length)",
            [],
            "SELECT @tech_length AS tech_length",
        )
        if row["tech_length"] is None:
            raise QuizDatabaseError("GetTechnologiesLength returned NULL")
        return int(row["tech_length"])

    # PUBLIC_INTERFACE
    def get_technology_image(self, index: int) -> str:
        """Image reference for the technology at `index`."""
        row = self._call_procedure(
            "CALL GetTechnologyImage(%s, @tech_image)",
            [index],
            "SELECT @tech_image AS tech_image",
        )
        image = _as_text(row["tech_image"], "tech_image")
        if image is None:
            raise TechnologyNotFoundError(index)
        return image

    # PUBLIC_INTERFACE
    def check_guess_and_update_score(
        self, tech_index: int, guessed_name: str, player_name: Optional[str] = DEFAULT_PLAYER
    ) -> Dict[str, Any]:
        """
        Check a guess and let the procedure update the player's score.

        Returns {"is_correct": bool, "tech_name": str}. A NULL tech_name means
        the index matched no technology.
        """
        player = player_name or DEFAULT_PLAYER
        row = self._call_procedure(
            "CALL CheckGuessAndUpdateScore(%s, %s, %s, @is_correct, @tech_name)",
            [tech_index, guessed_name, player],
            "SELECT @is_correct AS is_correct, @tech_name AS tech_name",
        )
        tech_name = _as_text(row["tech_name"], "tech_name")
        if tech_name is None:
            raise TechnologyNotFoundError(tech_index)
        is_correct = row["is_correct"]
        return {
            "is_correct": bool(int(is_correct)) if is_correct is not None else False,
            "tech_name": tech_name,
        }

    # PUBLIC_INTERFACE
    def get_scores(self, player_name: Optional[str] = ALL_PLAYERS) -> Any:
        """Decoded scores for one player, or for everyone when given "all"."""
        player = player_name or ALL_PLAYERS
        row = self._call_procedure(
            "CALL getScores(%s, @player_scores)",
            [player],
            "SELECT @player_scores AS player_scores",
        )
        raw = _as_text(row["player_scores"], "player_scores", ScoreDecodeError)
        if raw is None:
            return []
        try:
            return json.loads(raw)
        except ValueError as exc:
            raise ScoreDecodeError(f"Invalid scores JSON for player '{player}'") from exc


_GATEWAY: Optional[QuizDatabase] = None


# PUBLIC_INTERFACE
def get_database() -> QuizDatabase:
    """FastAPI dependency returning the process-wide gateway, built on first use."""
    global _GATEWAY
    if _GATEWAY is None:
        _GATEWAY = QuizDatabase(DatabaseConfig.from_env())
    return _GATEWAY
