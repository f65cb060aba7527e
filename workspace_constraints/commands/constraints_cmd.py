"""Constraints command implementations (source, query, enforced)."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

from rich.console import Console
from rich.table import Table
from rich.text import Text

from ..constraints import Constraints, ConstraintsResult
from ..logic.errors import LogicError
from ..logic.registry import get_engine
from ..project.loader import load_project
from ..project.models import Project, stringify_ident


def _load(project_cwd: Path, engine_name: str | None) -> Constraints:
    project = load_project(project_cwd)
    engine = get_engine(engine_name or project.configuration.logic_engine)
    return Constraints(project, engine=engine)


def run_source(project_cwd: Path, *, full: bool = False) -> int:
    """Print the rule source, or the fully assembled program with --full.

    Returns:
        Exit code (always 0)
    """
    project = load_project(project_cwd)
    constraints = Constraints(project)
    print(constraints.full_source if full else constraints.source, end="")
    return 0


async def _collect_query(constraints: Constraints, query: str) -> list[dict[str, str | None]]:
    return [row async for row in constraints.query(query)]


def run_query(project_cwd: Path, query: str, *, engine_name: str | None = None, output_json: bool = False) -> int:
    """Run an ad hoc query against the project.

    Returns:
        Exit code (0 = success, 1 = logic error)
    """
    console = Console(stderr=True)
    constraints = _load(project_cwd, engine_name)

    try:
        rows = asyncio.run(_collect_query(constraints, query))
    except LogicError as e:
        console.print(str(e), style="bold red")
        return 1

    if output_json:
        for row in rows:
            print(json.dumps(row))
        return 0

    if not rows:
        console.print("No answers", style="dim")
        return 0

    columns: list[str] = []
    for row in rows:
        for name in row:
            if name not in columns:
                columns.append(name)

    table = Table(show_header=True, header_style="bold")
    for name in columns:
        table.add_column(name)
    for row in rows:
        table.add_row(*[_cell(row.get(name)) for name in columns])

    Console().print(table)
    return 0


def _cell(value: str | None) -> Text:
    return Text("null", style="dim") if value is None else Text(value)


def _result_to_dict(result: ConstraintsResult) -> dict:
    return {
        "enforcedDependencies": [
            {
                "workspace": d.workspace.relative_cwd,
                "dependencyIdent": stringify_ident(d.dependency_ident),
                "dependencyRange": d.dependency_range,
                "dependencyType": d.dependency_type.value,
            }
            for d in result.enforced_dependencies
        ],
        "enforcedFields": [
            {
                "workspace": f.workspace.relative_cwd,
                "fieldPath": f.field_path,
                "fieldValue": f.field_value,
            }
            for f in result.enforced_fields
        ],
    }


def _print_enforced(console: Console, project: Project, result: ConstraintsResult) -> None:
    dependencies = Table(title="Enforced dependencies", show_header=True, header_style="bold")
    dependencies.add_column("Workspace")
    dependencies.add_column("Dependency")
    dependencies.add_column("Range")
    dependencies.add_column("Type")
    for d in result.enforced_dependencies:
        dependencies.add_row(
            stringify_ident(d.workspace.ident),
            stringify_ident(d.dependency_ident),
            _cell(d.dependency_range),
            d.dependency_type.value,
        )

    fields = Table(title="Enforced fields", show_header=True, header_style="bold")
    fields.add_column("Workspace")
    fields.add_column("Field")
    fields.add_column("Value")
    for f in result.enforced_fields:
        fields.add_row(stringify_ident(f.workspace.ident), Text(f.field_path), _cell(f.field_value))

    console.print(dependencies)
    console.print(fields)
    console.print(
        f"{len(project.workspaces)} workspace(s), "
        f"{len(result.enforced_dependencies)} enforced dependency(ies), "
        f"{len(result.enforced_fields)} enforced field(s)",
        style="dim",
    )


def run_enforced(project_cwd: Path, *, engine_name: str | None = None, output_json: bool = False) -> int:
    """List the dependencies and fields derived by the rules.

    Returns:
        Exit code (0 = success, 1 = logic error)
    """
    console = Console(stderr=True)
    constraints = _load(project_cwd, engine_name)

    try:
        result = asyncio.run(constraints.process())
    except LogicError as e:
        console.print(str(e), style="bold red")
        return 1

    if output_json:
        print(json.dumps(_result_to_dict(result), indent=2))
    else:
        _print_enforced(Console(), constraints.project, result)
    return 0
