from __future__ import annotations

from pathlib import Path

from workspace_constraints.config import Configuration
from workspace_constraints.constraints.database import (
    build_declarations,
    build_project_database,
    link_project,
)
from workspace_constraints.project.loader import load_project, parse_manifest
from workspace_constraints.project.models import Project, Workspace, parse_ident


def _empty_project(tmp_path: Path) -> Project:
    return Project(
        cwd=tmp_path,
        configuration=Configuration(project_cwd=tmp_path, constraints_path=tmp_path / "constraints.pro"),
        workspaces=[],
    )


def test_empty_project_database_still_defines_predicates(tmp_path: Path) -> None:
    database = build_project_database(_empty_project(tmp_path))

    assert database == (
        "dependency_type('dependencies').\n"
        "dependency_type('devDependencies').\n"
        "dependency_type('peerDependencies').\n"
        "workspace(_) :- false.\n"
        "workspace_ident(_, _) :- false.\n"
        "workspace_version(_, _) :- false.\n"
        "workspace_has_dependency(_, _, _, _) :- false.\n"
    )


def test_project_database_facts(project_path: Path) -> None:
    database = build_project_database(load_project(project_path))
    lines = database.splitlines()

    assert "workspace('.')." in lines
    assert "workspace_ident('.', 'monorepo')." in lines
    assert "workspace_version('.', [])." in lines
    assert "workspace_has_dependency('.', 'typescript', '^5.0.0', 'devDependencies')." in lines
    assert "workspace_ident('packages/app', '@acme/app')." in lines
    assert "workspace_version('packages/app', '1.2.0')." in lines
    assert "workspace_has_dependency('packages/app', '@acme/lib', 'workspace:^', 'dependencies')." in lines
    assert "workspace_has_dependency('packages/lib', 'react', '*', 'peerDependencies')." in lines

    # Facts come before the never-matching fallbacks
    assert lines.index("workspace('packages/lib').") < lines.index("workspace(_) :- false.")


def test_project_database_is_deterministic(project_path: Path) -> None:
    project = load_project(project_path)
    assert build_project_database(project) == build_project_database(project)


def test_null_range_renders_as_empty_list(tmp_path: Path) -> None:
    manifest = parse_manifest({"name": "solo", "dependencies": {"left-pad": None}})
    project = Project(
        cwd=tmp_path,
        configuration=Configuration(project_cwd=tmp_path, constraints_path=tmp_path / "constraints.pro"),
        workspaces=[Workspace(relative_cwd=".", manifest=manifest, ident=parse_ident("solo"))],
    )

    database = build_project_database(project)

    assert "workspace_has_dependency('.', 'left-pad', [], 'dependencies').\n" in database


def test_quotes_in_values_are_escaped(tmp_path: Path) -> None:
    manifest = parse_manifest({"name": "solo", "version": "1.0.0-it's"})
    project = Project(
        cwd=tmp_path,
        configuration=Configuration(project_cwd=tmp_path, constraints_path=tmp_path / "constraints.pro"),
        workspaces=[Workspace(relative_cwd=".", manifest=manifest, ident=parse_ident("solo"))],
    )

    assert "workspace_version('.', '1.0.0-it\\'s').\n" in build_project_database(project)


def test_declarations() -> None:
    assert build_declarations() == (
        "gen_enforced_dependency(_, _, _, _) :- false.\n"
        "gen_enforced_field(_, _, _) :- false.\n"
    )


def test_link_project_exposes_manifest_fields(project_path: Path) -> None:
    linkage = link_project(load_project(project_path)).splitlines()

    assert "workspace_field('packages/app', 'license', 'MIT')." in linkage
    assert "workspace_field('packages/app', 'publishConfig', '{\"access\":\"public\"}')." in linkage
    assert "workspace_field('packages/app', 'publishConfig.access', 'public')." in linkage
    assert "workspace_field('.', 'private', 'true')." in linkage
    assert linkage[-1] == "workspace_field(_, _, _) :- false."
