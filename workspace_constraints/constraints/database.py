"""Program text generated from the project model.

Three pieces are produced, all regenerated on every call:

- the project linkage (`workspace_field/3`), consulted first
- the project database (workspaces and their dependencies)
- the declarations appended after the user's rules
"""

from __future__ import annotations

import json
from typing import Any, Iterator

from ..logic.syntax import fact, never
from ..logic.terms import NULL, Num, Term, TermLike
from ..project.models import DEPENDENCY_TYPES, Project, stringify_ident

# Predicates the project database always defines, with their arity
DATABASE_PREDICATES: tuple[tuple[str, int], ...] = (
    ("workspace", 1),
    ("workspace_ident", 2),
    ("workspace_version", 2),
    ("workspace_has_dependency", 4),
)

# Hooks the rule source may define: (cwd, ident, range, type) / (cwd, path, value)
HOOK_PREDICATES: tuple[tuple[str, int], ...] = (
    ("gen_enforced_dependency", 4),
    ("gen_enforced_field", 3),
)


def build_project_database(project: Project) -> str:
    database = ""

    for dependency_type in DEPENDENCY_TYPES:
        database += fact("dependency_type", dependency_type.value)

    for workspace in project.workspaces:
        cwd = workspace.relative_cwd

        database += fact("workspace", cwd)
        database += fact("workspace_ident", cwd, stringify_ident(workspace.ident))
        database += fact("workspace_version", cwd, workspace.version)

        for dependency_type in DEPENDENCY_TYPES:
            for descriptor in workspace.manifest.get_dependencies(dependency_type):
                database += fact(
                    "workspace_has_dependency",
                    cwd,
                    stringify_ident(descriptor.ident),
                    descriptor.range,
                    dependency_type.value,
                )

    # Never-matching clauses keep these predicates defined in projects
    # without workspaces or without dependencies
    for name, arity in DATABASE_PREDICATES:
        database += never(name, arity)

    return database


def build_declarations() -> str:
    declarations = ""
    for name, arity in HOOK_PREDICATES:
        declarations += never(name, arity)
    return declarations


def _field_value(value: Any) -> TermLike:
    if value is None:
        return NULL
    if isinstance(value, bool):
        return Term("true" if value else "false")
    if isinstance(value, (int, float)):
        return Num(value)
    if isinstance(value, str):
        return Term(value)
    return Term(json.dumps(value, separators=(",", ":"), ensure_ascii=False))


def _walk_fields(data: dict[str, Any], prefix: str = "") -> Iterator[tuple[str, Any]]:
    for key, value in data.items():
        path = f"{prefix}.{key}" if prefix else str(key)
        yield path, value
        if isinstance(value, dict):
            yield from _walk_fields(value, path)


def link_project(project: Project) -> str:
    """Setup code exposing raw manifest fields as `workspace_field/3`."""
    linkage = ""
    for workspace in project.workspaces:
        for path, value in _walk_fields(workspace.manifest.raw):
            linkage += fact("workspace_field", workspace.relative_cwd, path, _field_value(value))

    linkage += never("workspace_field", 3)
    return linkage
