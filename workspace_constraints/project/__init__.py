"""Project model: workspaces, manifests and dependency descriptors."""

from .loader import load_project
from .models import (
    DEPENDENCY_TYPES,
    DependencyType,
    Descriptor,
    Ident,
    Manifest,
    Project,
    Workspace,
    parse_ident,
    stringify_ident,
)

__all__ = [
    "DEPENDENCY_TYPES",
    "DependencyType",
    "Descriptor",
    "Ident",
    "Manifest",
    "Project",
    "Workspace",
    "load_project",
    "parse_ident",
    "stringify_ident",
]
