from __future__ import annotations

from dataclasses import dataclass, field

from ..project.models import DependencyType, Ident, Workspace


@dataclass(frozen=True)
class EnforcedDependency:
    workspace: Workspace
    dependency_ident: Ident
    dependency_range: str | None  # None: the dependency must be absent
    dependency_type: DependencyType


@dataclass(frozen=True)
class EnforcedField:
    workspace: Workspace
    field_path: str
    field_value: str | None  # JSON text; None: the field must be absent


@dataclass(frozen=True)
class ConstraintsResult:
    enforced_dependencies: list[EnforcedDependency] = field(default_factory=list)
    enforced_fields: list[EnforcedField] = field(default_factory=list)
