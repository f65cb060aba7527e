"""Clause builders for generated program text.

All generated text goes through `to_text`, so quoting is decided in a
single place (`terms.escape`).
"""

from __future__ import annotations

from typing import Any

from .terms import Term, escape, from_python, to_text

__all__ = ["clause_text", "escape", "fact", "never"]


def clause_text(head: Term) -> str:
    return f"{to_text(head)}.\n"


def fact(name: str, *args: Any) -> str:
    """Ground fact `name(args...).` with host values converted to terms."""
    return clause_text(Term(name, tuple(from_python(arg) for arg in args)))


def never(name: str, arity: int) -> str:
    """Always-false clause guaranteeing `name/arity` is defined."""
    if arity == 0:
        return f"{name} :- false.\n"
    placeholders = ", ".join("_" for _ in range(arity))
    return f"{name}({placeholders}) :- false.\n"
