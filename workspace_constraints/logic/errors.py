"""Translation of engine exception terms into Python exceptions.

Engines report failures as terms such as
`error(syntax_error(operator_expected), [line(3), column(5)])`. The
translator walks the term recursively, dispatching on functor/arity, and
produces one of the `LogicError` subclasses below.
"""

from __future__ import annotations

from typing import Any, Callable

from .terms import Num, Str, Term, TermLike, to_text


class LogicError(Exception):
    """Base class for errors reported by the logic engine."""

    kind = "unknown"

    def __init__(self, message: str, *, line: int | None = None, column: int | None = None):
        super().__init__(message)
        self.message = message
        self.line = line
        self.column = column
        self.found: Any = None

    def __str__(self) -> str:
        return self.message


class LogicSyntaxError(LogicError):
    kind = "syntax"


class LogicExistenceError(LogicError):
    kind = "existence"


class LogicInstantiationError(LogicError):
    kind = "instantiation"


class LogicUnknownError(LogicError):
    kind = "unknown"


class InvalidRuleError(LogicError):
    """A rule produced an answer with a missing mandatory value."""

    kind = "invalid_rule"


class UnsupportedTermError(Exception):
    """Raised internally when a term has no interpretation."""


INSTANTIATION_MESSAGE = (
    "Instantiation error: an argument is variable when an instantiated argument was expected"
)

_POSITION_KEYS = ("line", "column", "found")


def _merge(error: LogicError, partials: Any) -> None:
    if isinstance(partials, dict):
        partials = [partials]
    if not isinstance(partials, list):
        return
    for partial in partials:
        if not isinstance(partial, dict):
            continue
        for key in _POSITION_KEYS:
            if key in partial:
                setattr(error, key, partial[key])


def _expect_error(value: Any, term: TermLike) -> LogicError:
    if not isinstance(value, LogicError):
        raise UnsupportedTermError(f"expected an error description in {to_text(term)}")
    return value


def _unwrap(term: Term) -> Any:
    return interpret(term.args[0])


def _error_with_context(term: Term) -> Any:
    formal, context = term.args
    if isinstance(formal, Term) and formal.indicator == "syntax_error/1":
        error = _expect_error(interpret(formal), formal)
        _merge(error, interpret(context))
        return error

    error = _expect_error(interpret(formal), formal)
    error.message += f" (in {interpret(context)})"
    return error


def _syntax_error(term: Term) -> Any:
    return LogicSyntaxError(f"Syntax error: {interpret(term.args[0])}")


def _existence_error(term: Term) -> Any:
    kind, name = (interpret(arg) for arg in term.args)
    return LogicExistenceError(f"Existence error: {kind} {name} not found")


def _instantiation_error(term: Term) -> Any:
    return LogicInstantiationError(INSTANTIATION_MESSAGE)


def _partial(key: str) -> Callable[[Term], Any]:
    def handler(term: Term) -> Any:
        return {key: interpret(term.args[0])}

    return handler


def _cons(term: Term) -> Any:
    tail = interpret(term.args[1])
    head = [interpret(term.args[0])]
    if isinstance(tail, list):
        return head + tail
    # `[]` interprets to its name
    if tail == "[]":
        return head
    return head + [tail]


def _indicator(term: Term) -> Any:
    name, arity = (interpret(arg) for arg in term.args)
    return f"{name}/{arity}"


_HANDLERS: dict[str, Callable[[Term], Any]] = {
    "throw/1": _unwrap,
    "error/1": _unwrap,
    "error/2": _error_with_context,
    "syntax_error/1": _syntax_error,
    "existence_error/2": _existence_error,
    "instantiation_error/0": _instantiation_error,
    "line/1": _partial("line"),
    "column/1": _partial("column"),
    "found/1": _partial("found"),
    "./2": _cons,
    "//2": _indicator,
}


def interpret(term: TermLike) -> Any:
    """Interpret one node of an exception term.

    Returns a `LogicError`, a partial position dict, a list, a string or a
    number depending on the node. Raises `UnsupportedTermError` for shapes
    without an interpretation (unbound variables, foreign objects).
    """
    if isinstance(term, Num):
        return term.value
    if isinstance(term, Str):
        return term.value
    if isinstance(term, Term):
        handler = _HANDLERS.get(term.indicator)
        if handler is None:
            return term.id
        return handler(term)
    raise UnsupportedTermError(f"couldn't pretty print because of unsupported node {to_text(term)}")


def translate_error(term: TermLike) -> LogicError:
    """Translate an exception term into a `LogicError` (never raises)."""
    try:
        error = _expect_error(interpret(term), term)
    except UnsupportedTermError as exc:
        return LogicUnknownError(f"Unknown error: {to_text(term)} (note: {exc})")

    if error.line is not None and error.column is not None:
        error.message += f" at line {error.line}, column {error.column}"

    return error
