"""Data models for a multi-package project."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from ..config import Configuration


class DependencyType(str, Enum):
    DEPENDENCIES = "dependencies"
    DEV_DEPENDENCIES = "devDependencies"
    PEER_DEPENDENCIES = "peerDependencies"


DEPENDENCY_TYPES: tuple[DependencyType, ...] = (
    DependencyType.DEPENDENCIES,
    DependencyType.DEV_DEPENDENCIES,
    DependencyType.PEER_DEPENDENCIES,
)

_IDENT_RE = re.compile(r"^(?:@([^/@\s]+)/)?([^/@\s]+)$")


@dataclass(frozen=True)
class Ident:
    """Package name, optionally scoped (`@scope/name`)."""

    scope: str | None
    name: str

    def __str__(self) -> str:
        return stringify_ident(self)


def parse_ident(text: str) -> Ident:
    """Parse `name` or `@scope/name`; raises ValueError otherwise."""
    match = _IDENT_RE.match(text)
    if match is None:
        raise ValueError(f"Invalid ident ({text!r})")
    scope, name = match.groups()
    return Ident(scope=scope, name=name)


def stringify_ident(ident: Ident) -> str:
    if ident.scope:
        return f"@{ident.scope}/{ident.name}"
    return ident.name


@dataclass(frozen=True)
class Descriptor:
    """A dependency entry: ident plus requested range."""

    ident: Ident
    range: str | None


@dataclass(frozen=True)
class Manifest:
    """Parsed package manifest."""

    name: Ident | None
    version: str | None
    dependencies: dict[DependencyType, tuple[Descriptor, ...]] = field(default_factory=dict)
    raw: dict[str, Any] = field(default_factory=dict)

    def get_dependencies(self, dependency_type: DependencyType) -> tuple[Descriptor, ...]:
        return self.dependencies.get(dependency_type, ())


@dataclass(frozen=True)
class Workspace:
    """One package of the project, keyed by its path relative to the root."""

    relative_cwd: str  # "." for the root workspace
    manifest: Manifest
    ident: Ident

    @property
    def version(self) -> str | None:
        return self.manifest.version


@dataclass
class Project:
    """Read-only snapshot of a project and its workspaces."""

    cwd: Path
    configuration: Configuration
    workspaces: list[Workspace] = field(default_factory=list)

    # Lookup table built after loading
    _by_cwd: dict[str, Workspace] = field(default_factory=dict)

    def __post_init__(self):
        self._by_cwd = {ws.relative_cwd: ws for ws in self.workspaces}

    def get_workspace_by_cwd(self, relative_cwd: str) -> Workspace:
        """Look up a workspace by relative path; raises KeyError if unknown."""
        workspace = self._by_cwd.get(relative_cwd)
        if workspace is None:
            raise KeyError(f"Workspace not found ({relative_cwd})")
        return workspace
