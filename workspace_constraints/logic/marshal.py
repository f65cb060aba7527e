"""Conversion of bound answer terms into host values."""

from __future__ import annotations

import json

from .terms import NULL, TermLike, materialize, to_text


def parse_link(link: TermLike) -> str | None:
    """Bound value as a string; the `null` atom maps to None."""
    if link == NULL:
        return None

    value = materialize(link)
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)):
        return str(value)
    return to_text(link)


def _dump(value: object) -> str:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def _reject_constant(name: str) -> object:
    raise ValueError(f"{name} is not valid JSON")


def parse_link_to_json(link: TermLike) -> str | None:
    """Bound value as canonical JSON text; the `null` atom maps to None.

    Text that already holds a JSON document is re-serialized compactly;
    any other text is encoded as a JSON string literal.
    """
    if link == NULL:
        return None

    value = materialize(link)
    if not isinstance(value, str):
        return _dump(value)

    try:
        return _dump(json.loads(value, parse_constant=_reject_constant))
    except ValueError:
        return _dump(value)
