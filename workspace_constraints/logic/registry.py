"""
Engine registry for backend name → LogicEngine lookup.

Backends register a factory under a name. Configuration selects one by
name; the SWI-Prolog backend is registered by default and imported lazily
so that `janus_swi` is only required when it is actually used.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable

if TYPE_CHECKING:
    from .engine import LogicEngine

DEFAULT_ENGINE = "swi"

# Global registry: backend name → engine factory
_ENGINES: dict[str, Callable[[], "LogicEngine"]] = {}


def _swi_engine() -> "LogicEngine":
    from .swi import SwiEngine

    return SwiEngine()


def register_engine(name: str, factory: Callable[[], "LogicEngine"]) -> None:
    """
    Register an engine factory by name.

    Args:
        name: Backend name (e.g., "swi")
        factory: Zero-argument callable returning an engine
    """
    _ENGINES[name] = factory


def get_engine(name: str | None = None) -> "LogicEngine":
    """
    Instantiate a registered engine.

    Args:
        name: Backend name; defaults to DEFAULT_ENGINE

    Raises:
        KeyError: if no backend is registered under that name
    """
    key = name or DEFAULT_ENGINE
    factory = _ENGINES.get(key)
    if factory is None:
        raise KeyError(f"Unknown logic engine: {key!r} (available: {', '.join(list_engines()) or 'none'})")
    return factory()


def list_engines() -> list[str]:
    """List all registered backend names."""
    return sorted(_ENGINES.keys())


def clear_engines() -> None:
    """Reset the registry to its defaults (for testing)."""
    _ENGINES.clear()
    _ENGINES[DEFAULT_ENGINE] = _swi_engine


_ENGINES[DEFAULT_ENGINE] = _swi_engine
