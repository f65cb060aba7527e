"""Term model shared by every engine backend.

Backends translate their native terms into these four shapes before any
answer crosses into the session layer, so the rest of the package never
sees engine-specific objects.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Iterable, Union


@dataclass(frozen=True)
class Num:
    """Integer or floating point number."""

    value: int | float


@dataclass(frozen=True)
class Str:
    """Engine string object (distinct from an atom)."""

    value: str


@dataclass(frozen=True)
class Var:
    """Unbound variable, identified by the engine's printed name."""

    name: str


@dataclass(frozen=True)
class Term:
    """Atom (no arguments) or compound term."""

    id: str
    args: tuple["TermLike", ...] = ()

    @property
    def arity(self) -> int:
        return len(self.args)

    @property
    def indicator(self) -> str:
        return f"{self.id}/{self.arity}"

    @property
    def is_atom(self) -> bool:
        return not self.args


TermLike = Union[Term, Num, Str, Var]

NIL = Term("[]")
NULL = Term("null")

_PLAIN_NAME_RE = re.compile(r"^[a-z][a-zA-Z0-9_]*$")

_ESCAPES = {
    "\\": "\\\\",
    "'": "\\'",
    "\n": "\\n",
    "\t": "\\t",
    "\r": "\\r",
}


def escape(value: str | None) -> str:
    """Render a host string as a quoted atom; None becomes the empty list."""
    if value is None:
        return "[]"

    out: list[str] = []
    for ch in value:
        if ch in _ESCAPES:
            out.append(_ESCAPES[ch])
        elif ord(ch) < 0x20 or ord(ch) == 0x7F:
            out.append(f"\\x{ord(ch):x}\\")
        else:
            out.append(ch)
    return "'" + "".join(out) + "'"


def atom(name: str) -> Term:
    return Term(name)


def make_list(items: Iterable[TermLike]) -> Term:
    """Build a `./2` chain terminated by `[]`."""
    result = NIL
    for item in reversed(list(items)):
        result = Term(".", (item, result))
    return result


def list_items(term: TermLike) -> list[TermLike] | None:
    """Items of a proper list, or None when `term` is not one."""
    items: list[TermLike] = []
    while isinstance(term, Term):
        if term == NIL:
            return items
        if term.indicator != "./2":
            return None
        items.append(term.args[0])
        term = term.args[1]
    return None


def from_python(value: Any) -> TermLike:
    """Convert a host value into a term (None is the empty list)."""
    if isinstance(value, (Term, Num, Str, Var)):
        return value
    if value is None:
        return NIL
    if isinstance(value, bool):
        return Term("true" if value else "false")
    if isinstance(value, (int, float)):
        return Num(value)
    if isinstance(value, str):
        return Term(value)
    if isinstance(value, (list, tuple)):
        return make_list(from_python(v) for v in value)
    raise TypeError(f"Cannot convert {type(value).__name__} to a term")


def _functor_text(name: str) -> str:
    return name if _PLAIN_NAME_RE.match(name) else escape(name)


def to_text(term: TermLike) -> str:
    """Render a term in the engine's concrete syntax."""
    if isinstance(term, Num):
        return repr(term.value)
    if isinstance(term, Str):
        return '"' + term.value.replace("\\", "\\\\").replace('"', '\\"') + '"'
    if isinstance(term, Var):
        return term.name

    if term == NIL:
        return "[]"
    if term.is_atom:
        return escape(term.id)

    items = list_items(term)
    if items is not None:
        return "[" + ", ".join(to_text(item) for item in items) + "]"

    args = ", ".join(to_text(arg) for arg in term.args)
    return f"{_functor_text(term.id)}({args})"


def materialize(term: TermLike) -> Any:
    """Convert a term into its natural host value."""
    if isinstance(term, Num):
        return term.value
    if isinstance(term, Str):
        return term.value
    if isinstance(term, Var):
        return term.name

    if term == NIL:
        return []
    if term.is_atom:
        return term.id

    items = list_items(term)
    if items is not None:
        return [materialize(item) for item in items]

    return to_text(term)
