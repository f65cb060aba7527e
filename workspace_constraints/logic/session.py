"""Sessions and threads over a logic engine backend.

`Thread.make_query` exposes the backend's callback protocol as an async
generator: every "next answer" request is one awaited future, and nothing
is computed before the consumer asks for it.
"""

from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator

from .engine import Answer, EngineThread, LogicEngine
from .errors import translate_error
from .registry import get_engine
from .terms import TermLike

logger = logging.getLogger(__name__)


def _settle(future: asyncio.Future) -> tuple:
    def on_success() -> None:
        if not future.done():
            future.set_result(None)

    def on_error(term: TermLike) -> None:
        if not future.done():
            future.set_exception(translate_error(term))

    return on_success, on_error


class Thread:
    """Resolution context; runs one query at a time."""

    def __init__(self, thread: EngineThread):
        self._thread = thread

    async def _fetch_next_answer(self) -> Answer | None:
        future: asyncio.Future = asyncio.get_running_loop().create_future()

        def on_answer(answer: Answer | None) -> None:
            if not future.done():
                future.set_result(answer)

        self._thread.answer(on_answer)
        return await future

    async def consult(self, source: str) -> None:
        future: asyncio.Future = asyncio.get_running_loop().create_future()
        on_success, on_error = _settle(future)
        logger.debug("Consulting %d characters", len(source))
        self._thread.consult(source, on_success=on_success, on_error=on_error)
        await future

    async def start_query(self, source: str) -> None:
        future: asyncio.Future = asyncio.get_running_loop().create_future()
        on_success, on_error = _settle(future)
        logger.debug("Query: %s", source)
        self._thread.query(source, on_success=on_success, on_error=on_error)
        await future

    async def make_query(self, query: str) -> AsyncIterator[dict[str, TermLike]]:
        """Yield the bindings of each answer to `query`.

        Raises the translated `LogicError` as soon as the engine reports an
        exception; answers produced before it have already been yielded.
        At most one sequence may be in flight per thread.
        """
        await self.start_query(query)

        count = 0
        while True:
            answer = await self._fetch_next_answer()

            if answer is None:
                break

            if answer.is_throw:
                raise translate_error(answer.thrown)

            count += 1
            yield answer.links

        logger.debug("Query produced %d answer(s)", count)


class Session:
    """One knowledge base, initialized once and read-only afterwards."""

    def __init__(self, engine: LogicEngine | None = None):
        self.engine = engine or get_engine()
        self.engine.setup()
        self._session = self.engine.create_session()
        self.main = Thread(self._session.main)
        self.closed = False

    async def init(self, linkage: str, source: str) -> None:
        """Load linkage code, the support library, then the program.

        Each step completes before the next one starts; the first failure
        closes the session and aborts initialization with the translated
        error.
        """
        try:
            await self.main.consult(linkage)
            await self.main.consult(self.engine.support_library)
            await self.main.consult(source)
        except Exception:
            self.close()
            raise

    def create_thread(self) -> Thread:
        if self.closed:
            raise RuntimeError("Session is closed")
        return Thread(self._session.create_thread())

    def close(self) -> None:
        """Release the knowledge base; safe to call more than once."""
        if self.closed:
            return
        self.closed = True
        self._session.close()
        logger.debug("Session closed")
