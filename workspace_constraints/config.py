"""Project configuration (`.constraintsrc.yml`)."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

CONFIG_FILENAME = ".constraintsrc.yml"
DEFAULT_CONSTRAINTS_PATH = "constraints.pro"
DEFAULT_LOGIC_ENGINE = "swi"


@dataclass(frozen=True)
class Configuration:
    project_cwd: Path
    constraints_path: Path
    logic_engine: str = DEFAULT_LOGIC_ENGINE

    @classmethod
    def from_dict(cls, project_cwd: Path, data: dict[str, Any]) -> "Configuration":
        raw_path = data.get("constraintsPath", DEFAULT_CONSTRAINTS_PATH)
        if not isinstance(raw_path, str) or not raw_path.strip():
            raise ValueError("constraintsPath must be a non-empty string")

        engine = data.get("logicEngine", DEFAULT_LOGIC_ENGINE)
        if not isinstance(engine, str) or not engine.strip():
            raise ValueError("logicEngine must be a non-empty string")

        return cls(
            project_cwd=project_cwd,
            constraints_path=(project_cwd / raw_path.strip()).resolve(),
            logic_engine=engine.strip(),
        )


def load_configuration(project_cwd: Path) -> Configuration:
    """
    Load the project configuration, if present.

    Missing files yield the defaults; relative paths resolve against
    the project root.
    """
    config_path = project_cwd / CONFIG_FILENAME
    data: Any = {}
    if config_path.exists():
        data = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
        if not isinstance(data, dict):
            raise ValueError(f"{CONFIG_FILENAME} must contain a mapping")

    return Configuration.from_dict(project_cwd, data)
