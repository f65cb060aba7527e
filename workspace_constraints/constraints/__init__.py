"""Declarative workspace constraints (rules in logic, conclusions as data)."""

from .engine import Constraints, build_query_text
from .schema import ConstraintsResult, EnforcedDependency, EnforcedField

__all__ = [
    "Constraints",
    "ConstraintsResult",
    "EnforcedDependency",
    "EnforcedField",
    "build_query_text",
]
