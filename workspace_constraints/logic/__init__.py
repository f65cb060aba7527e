"""
Bridge between host code and a logic-programming engine.

Sessions load program text into a backend, threads run queries as async
generators, and engine exception terms are translated into `LogicError`.
"""

from __future__ import annotations

from .engine import Answer, EngineSession, EngineThread, LogicEngine
from .errors import (
    InvalidRuleError,
    LogicError,
    LogicExistenceError,
    LogicInstantiationError,
    LogicSyntaxError,
    LogicUnknownError,
    translate_error,
)
from .marshal import parse_link, parse_link_to_json
from .registry import get_engine, list_engines, register_engine
from .session import Session, Thread
from .terms import NIL, NULL, Num, Str, Term, TermLike, Var, escape

__all__ = [
    # Engine protocol
    "Answer",
    "EngineSession",
    "EngineThread",
    "LogicEngine",
    # Errors
    "InvalidRuleError",
    "LogicError",
    "LogicExistenceError",
    "LogicInstantiationError",
    "LogicSyntaxError",
    "LogicUnknownError",
    "translate_error",
    # Marshalling
    "parse_link",
    "parse_link_to_json",
    # Registry
    "get_engine",
    "list_engines",
    "register_engine",
    # Sessions
    "Session",
    "Thread",
    # Terms
    "NIL",
    "NULL",
    "Num",
    "Str",
    "Term",
    "TermLike",
    "Var",
    "escape",
]
