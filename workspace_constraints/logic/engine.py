"""
Engine protocol for logic-programming backends.

A backend exposes the three primitives the session layer needs:
consult program text, issue a query, and pull one answer at a time.
All three report through callbacks; `session.Thread` turns them into
awaitables.

Key contracts:
- `setup()` is the only place a backend may keep process-wide state
- a session's knowledge base is only mutated by `consult()`
- `answer(callback)` calls `callback(None)` once no answers remain
- `close()` on a session frees whatever the runtime holds for it
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable

from .terms import TermLike

SUPPORT_LIBRARY = ":- use_module(library(lists)).\n"


@dataclass(frozen=True)
class Answer:
    """One solution of a query, or the exception thrown while solving it."""

    links: dict[str, TermLike] = field(default_factory=dict)
    thrown: TermLike | None = None

    @property
    def is_throw(self) -> bool:
        return self.thrown is not None


SuccessCallback = Callable[[], None]
ErrorCallback = Callable[[TermLike], None]
AnswerCallback = Callable[["Answer | None"], None]


class EngineThread(ABC):
    """Resolution context: runs one query at a time."""

    @abstractmethod
    def consult(self, source: str, *, on_success: SuccessCallback, on_error: ErrorCallback) -> None:
        """Add program text to the knowledge base."""
        ...

    @abstractmethod
    def query(self, source: str, *, on_success: SuccessCallback, on_error: ErrorCallback) -> None:
        """
        Start a new query on this thread.

        Any previous query on the thread is abandoned.
        """
        ...

    @abstractmethod
    def answer(self, callback: AnswerCallback) -> None:
        """Compute the next answer of the current query."""
        ...


class EngineSession(ABC):
    """One knowledge base plus its main thread."""

    main: EngineThread

    @abstractmethod
    def create_thread(self) -> EngineThread:
        ...

    @abstractmethod
    def close(self) -> None:
        """
        Release the knowledge base and every open query of its threads.

        Must be idempotent; the session is unusable afterwards.
        """
        ...


class LogicEngine(ABC):
    """Factory for sessions of a specific backend."""

    name: str = "abstract"
    support_library: str = SUPPORT_LIBRARY

    @abstractmethod
    def setup(self) -> None:
        """
        Register backend support code with the runtime.

        Must be idempotent; called before every session is created.
        """
        ...

    @abstractmethod
    def create_session(self) -> EngineSession:
        ...
