from typing import Any, Dict, List, Optional, Tuple

import pytest
from fastapi.testclient import TestClient

from techquiz_api.config import DatabaseConfig
from techquiz_api.db import (
    ALL_PLAYERS,
    DEFAULT_PLAYER,
    QuizDatabase,
    TechnologyNotFoundError,
    get_database,
)
from techquiz_api.main import app


class FakeQuizDatabase:
    """In-memory stand-in for the stored procedures."""

    def __init__(self, technologies: Dict[int, Tuple[str, str]]):
        self.technologies = technologies
        self.scores: Dict[str, int] = {}
        self.guesses: List[Tuple[int, str, str]] = []
        self.score_requests: List[str] = []
        self.fail_with: Optional[Exception] = None
        self.connection_checks = 0

    def _maybe_fail(self) -> None:
        if self.fail_with is not None:
            raise self.fail_with

    def check_connection(self) -> bool:
        self.connection_checks += 1
        return True

    def get_technologies_length(self) -> int:
        self._maybe_fail()
        return len(self.technologies)

    def get_technology_image(self, index: int) -> str:
        self._maybe_fail()
        if index not in self.technologies:
            raise TechnologyNotFoundError(index)
        return self.technologies[index][1]

    def check_guess_and_update_score(self, tech_index: int, guessed_name: str, player_name: str = DEFAULT_PLAYER) -> Dict[str, Any]:
        self._maybe_fail()
        if tech_index not in self.technologies:
            raise TechnologyNotFoundError(tech_index)
        self.guesses.append((tech_index, guessed_name, player_name))
        name = self.technologies[tech_index][0]
        is_correct = guessed_name.lower() == name.lower()
        self.scores.setdefault(player_name, 0)
        if is_correct:
            self.scores[player_name] += 1
        return {"is_correct": is_correct, "tech_name": name}

    def get_scores(self, player_name: str = ALL_PLAYERS) -> Any:
        self._maybe_fail()
        self.score_requests.append(player_name)
        if player_name == ALL_PLAYERS:
            return [{"player_name": p, "score": s} for p, s in sorted(self.scores.items())]
        if player_name not in self.scores:
            return []
        return [{"player_name": player_name, "score": self.scores[player_name]}]


@pytest.fixture
def fake_db() -> FakeQuizDatabase:
    return FakeQuizDatabase(
        {
            0: ("Python", "python.png"),
            1: ("Docker", "docker.png"),
            2: ("Kubernetes", "kubernetes.png"),
            3: ("React", "react.png"),
        }
    )


@pytest.fixture
def client(fake_db: FakeQuizDatabase):
    app.dependency_overrides[get_database] = lambda: fake_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def db_config() -> DatabaseConfig:
    return DatabaseConfig(user="quiz", password="secret", database="techquiz", timeout_seconds=5)


class FakeCursor:
    def __init__(self, conn: "FakeConnection"):
        self._conn = conn
        self._row: Optional[Dict[str, Any]] = None

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def execute(self, query, params=None):
        self._conn.statements.append((query, list(params) if params is not None else None))
        if self._conn.error is not None:
            raise self._conn.error
        self._row = self._conn.output if query.startswith("SELECT") else None

    def fetchone(self):
        return self._row


class FakeConnection:
    def __init__(self, output: Optional[Dict[str, Any]] = None, error: Optional[Exception] = None):
        self.output = output
        self.error = error
        self.statements: List[Any] = []
        self.open = True
        self.close_calls = 0

    def cursor(self):
        return FakeCursor(self)

    def close(self):
        self.close_calls += 1
        self.open = False


class FakeConnector:
    def __init__(self, conn: FakeConnection):
        self.conn = conn
        self.kwargs: Dict[str, Any] = {}

    def __call__(self, **kwargs):
        self.kwargs = kwargs
        return self.conn


@pytest.fixture
def make_database(db_config):
    """Factory for a QuizDatabase wired to a recording fake connection."""

    def _make(output=None, error=None):
        conn = FakeConnection(output=output, error=error)
        connector = FakeConnector(conn)
        return QuizDatabase(db_config, connect=connector), conn, connector

    return _make
