"""Project loading from `package.json` manifests."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from ..config import Configuration, load_configuration
from .models import DEPENDENCY_TYPES, Descriptor, Ident, Manifest, Project, Workspace, parse_ident

MANIFEST_FILENAME = "package.json"


def _read_manifest_data(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in {path}: {e}") from e
    if not isinstance(data, dict):
        raise ValueError(f"{path} must contain a JSON object")
    return data


def parse_manifest(data: dict[str, Any]) -> Manifest:
    """Build a Manifest from raw manifest data."""
    raw_name = data.get("name")
    name = parse_ident(raw_name) if isinstance(raw_name, str) else None

    raw_version = data.get("version")
    version = raw_version if isinstance(raw_version, str) else None

    dependencies: dict = {}
    for dependency_type in DEPENDENCY_TYPES:
        entries = data.get(dependency_type.value) or {}
        if not isinstance(entries, dict):
            raise ValueError(f"{dependency_type.value} must be an object")

        descriptors = []
        for raw_ident, raw_range in entries.items():
            if raw_range is not None and not isinstance(raw_range, str):
                raise ValueError(f"Invalid range for {raw_ident} in {dependency_type.value}")
            descriptors.append(Descriptor(ident=parse_ident(raw_ident), range=raw_range))
        dependencies[dependency_type] = tuple(descriptors)

    return Manifest(name=name, version=version, dependencies=dependencies, raw=data)


def _anonymous_ident(relative_cwd: str) -> Ident:
    if relative_cwd == ".":
        return Ident(scope=None, name="root-workspace")
    return Ident(scope=None, name=f"{Path(relative_cwd).name}-workspace")


def load_workspace(path: Path, project_cwd: Path) -> Workspace:
    """Load a single workspace directory."""
    manifest = parse_manifest(_read_manifest_data(path / MANIFEST_FILENAME))

    relative = path.resolve().relative_to(project_cwd.resolve()).as_posix()
    relative_cwd = relative if relative not in ("", ".") else "."

    return Workspace(
        relative_cwd=relative_cwd,
        manifest=manifest,
        ident=manifest.name or _anonymous_ident(relative_cwd),
    )


def _workspace_patterns(data: dict[str, Any]) -> list[str]:
    raw = data.get("workspaces") or []
    if isinstance(raw, dict):
        raw = raw.get("packages") or []
    if not isinstance(raw, list):
        raise ValueError("workspaces must be a list of glob patterns")
    return [p for p in raw if isinstance(p, str) and p.strip()]


def load_project(cwd: Path, configuration: Configuration | None = None) -> Project:
    """
    Load the root workspace and every workspace matched by its globs.

    Workspaces are ordered by relative path, root first.
    """
    cwd = cwd.resolve()
    root_manifest = cwd / MANIFEST_FILENAME
    if not root_manifest.exists():
        raise ValueError(f"No {MANIFEST_FILENAME} found in {cwd}")

    root = load_workspace(cwd, cwd)
    workspaces: dict[str, Workspace] = {root.relative_cwd: root}

    for pattern in _workspace_patterns(root.manifest.raw):
        for candidate in sorted(cwd.glob(pattern)):
            if not candidate.is_dir() or not (candidate / MANIFEST_FILENAME).exists():
                continue
            workspace = load_workspace(candidate, cwd)
            workspaces.setdefault(workspace.relative_cwd, workspace)

    ordered = sorted(workspaces.values(), key=lambda ws: (ws.relative_cwd != ".", ws.relative_cwd))

    return Project(
        cwd=cwd,
        configuration=configuration or load_configuration(cwd),
        workspaces=ordered,
    )
