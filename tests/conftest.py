"""Pytest configuration and fixtures."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from workspace_constraints.logic.engine import (
    Answer,
    AnswerCallback,
    EngineSession,
    EngineThread,
    ErrorCallback,
    LogicEngine,
    SuccessCallback,
)
from workspace_constraints.logic.registry import clear_engines, register_engine
from workspace_constraints.logic.terms import TermLike


class ScriptedThread(EngineThread):
    """Thread answering queries from a fixed script instead of resolving them."""

    def __init__(self, engine: "ScriptedEngine"):
        self.engine = engine
        self._pending: list[Answer] | None = None

    def consult(self, source: str, *, on_success: SuccessCallback, on_error: ErrorCallback) -> None:
        index = len(self.engine.consulted)
        self.engine.consulted.append(source)
        if index in self.engine.consult_errors:
            on_error(self.engine.consult_errors[index])
            return
        on_success()

    def query(self, source: str, *, on_success: SuccessCallback, on_error: ErrorCallback) -> None:
        self.engine.queries.append(source)
        if source in self.engine.query_errors:
            on_error(self.engine.query_errors[source])
            return
        self._pending = list(self.engine.answers.get(source, []))
        on_success()

    def answer(self, callback: AnswerCallback) -> None:
        self.engine.pulls += 1
        if not self._pending:
            callback(None)
            return
        callback(self._pending.pop(0))


class ScriptedSession(EngineSession):
    def __init__(self, engine: "ScriptedEngine"):
        self.engine = engine
        self.main = ScriptedThread(engine)

    def create_thread(self) -> ScriptedThread:
        return ScriptedThread(self.engine)

    def close(self) -> None:
        self.engine.closed += 1


class ScriptedEngine(LogicEngine):
    """
    Engine double with canned answers keyed by exact query text.

    Records consulted sources, issued queries and closed sessions for
    assertions.
    """

    name = "scripted"

    def __init__(
        self,
        answers: dict[str, list[Answer]] | None = None,
        *,
        consult_errors: dict[int, TermLike] | None = None,
        query_errors: dict[str, TermLike] | None = None,
    ):
        self.answers = answers or {}
        self.consult_errors = consult_errors or {}
        self.query_errors = query_errors or {}
        self.consulted: list[str] = []
        self.queries: list[str] = []
        self.setup_calls = 0
        self.sessions = 0
        self.closed = 0
        self.pulls = 0

    def setup(self) -> None:
        self.setup_calls += 1

    def create_session(self) -> ScriptedSession:
        self.sessions += 1
        return ScriptedSession(self)


@pytest.fixture
def scripted_engine() -> ScriptedEngine:
    """Scripted engine, also registered in the registry as 'scripted'."""
    engine = ScriptedEngine()
    register_engine("scripted", lambda: engine)
    yield engine
    clear_engines()


def write_manifest(path: Path, data: dict[str, Any]) -> None:
    path.mkdir(parents=True, exist_ok=True)
    (path / "package.json").write_text(json.dumps(data, indent=2), encoding="utf-8")


@pytest.fixture
def project_path(tmp_path: Path) -> Path:
    """A three-workspace project on disk."""
    root = tmp_path / "project"
    write_manifest(
        root,
        {
            "name": "monorepo",
            "private": True,
            "workspaces": ["packages/*"],
            "devDependencies": {"typescript": "^5.0.0"},
        },
    )
    write_manifest(
        root / "packages" / "app",
        {
            "name": "@acme/app",
            "version": "1.2.0",
            "license": "MIT",
            "dependencies": {"@acme/lib": "workspace:^", "lodash": "^4.17.21"},
            "publishConfig": {"access": "public"},
        },
    )
    write_manifest(
        root / "packages" / "lib",
        {
            "name": "@acme/lib",
            "version": "0.3.1",
            "peerDependencies": {"react": "*"},
        },
    )
    return root
