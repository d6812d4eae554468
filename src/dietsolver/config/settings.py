"""Application settings and configuration management."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml


def _default_config_dir() -> Path:
    """Return the default configuration directory."""
    return Path.home() / ".dietsolver"


def _default_config_path() -> Path:
    return _default_config_dir() / "config.yaml"


@dataclass
class SolverConfig:
    """LP solver configuration."""

    backend: str = "highs"  # "highs" or "gurobi"
    presolve: bool = True
    model_name: str = "diet"

    def session_options(self) -> dict[str, Any]:
        """Keyword arguments for ``create_session`` on the chosen back-end."""
        if self.backend == "gurobi":
            return {"params": {} if self.presolve else {"Presolve": 0}}
        return {"presolve": self.presolve}


@dataclass
class DataConfig:
    """Problem data configuration."""

    problem_path: Optional[Path] = None  # None -> built-in dataset


@dataclass
class Settings:
    """Main application settings."""

    solver: SolverConfig = field(default_factory=SolverConfig)
    data: DataConfig = field(default_factory=DataConfig)

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> "Settings":
        """Load settings from YAML file or return defaults.

        Args:
            config_path: Path to config.yaml. If None, uses ~/.dietsolver/config.yaml

        Returns:
            Settings instance
        """
        if config_path is None:
            config_path = _default_config_path()

        if not config_path.exists():
            return cls()

        with open(config_path) as f:
            data = yaml.safe_load(f) or {}

        settings = cls()

        # Parse solver config
        if "solver" in data:
            solver_data = data["solver"] or {}
            if "backend" in solver_data:
                settings.solver.backend = str(solver_data["backend"])
            if "presolve" in solver_data:
                settings.solver.presolve = bool(solver_data["presolve"])
            if "model_name" in solver_data:
                settings.solver.model_name = str(solver_data["model_name"])

        # Parse data config
        if "data" in data:
            data_section = data["data"] or {}
            if data_section.get("problem_path"):
                settings.data.problem_path = Path(
                    data_section["problem_path"]
                ).expanduser()

        return settings

    def save(self, config_path: Optional[Path] = None) -> None:
        """Save current settings to YAML file.

        Args:
            config_path: Path to save config.yaml. If None, uses ~/.dietsolver/config.yaml
        """
        if config_path is None:
            config_path = _default_config_path()

        config_path.parent.mkdir(parents=True, exist_ok=True)

        data = {
            "solver": {
                "backend": self.solver.backend,
                "presolve": self.solver.presolve,
                "model_name": self.solver.model_name,
            },
            "data": {
                "problem_path": (
                    str(self.data.problem_path) if self.data.problem_path else None
                ),
            },
        }

        with open(config_path, "w") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)


# Global settings instance (lazy loaded)
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance, loading from disk if needed."""
    global _settings
    if _settings is None:
        _settings = Settings.load()
    return _settings


def reload_settings(config_path: Optional[Path] = None) -> Settings:
    """Force reload settings from disk."""
    global _settings
    _settings = Settings.load(config_path)
    return _settings
