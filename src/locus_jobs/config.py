"""YAML configuration for the local job runner."""

from __future__ import annotations

import copy
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .policy.autonomy import AUTONOMY_LEVELS, AutonomyLevel, build_autonomy_rules
from .schema import AutonomyRule, JobConfig, JobType

DEFAULT_CONFIG_NAME = "locus-jobs.yaml"

DEFAULT_CONFIG_TEMPLATE: Dict[str, Any] = {
    "project": {
        "repo_root": ".",
        "workspace_id": "local",
    },
    "jobs": [{"type": job_type.value, "enabled": True, "options": {}} for job_type in JobType],
    "autonomy": {
        "level": "balanced",
    },
    "paths": {
        "db_path": ".locus/jobs.sqlite",
    },
}


class ConfigError(ValueError):
    """Raised when the configuration file cannot be read or validated."""


class _Section(BaseModel):
    model_config = ConfigDict(extra="forbid")


class ProjectSettings(_Section):
    repo_root: Path = Path(".")
    workspace_id: str = "local"


class AutonomySettings(_Section):
    level: AutonomyLevel = "balanced"
    rules: Optional[List[AutonomyRule]] = None

    @field_validator("level", mode="before")
    @classmethod
    def _lower_level(cls, value: Any) -> Any:
        return value.lower() if isinstance(value, str) else value

    def resolve_rules(self) -> List[AutonomyRule]:
        """Explicit ``rules`` win over the preset ``level``."""
        if self.rules is not None:
            return list(self.rules)
        return build_autonomy_rules(self.level)


class PathSettings(_Section):
    db_path: Path = Path(".locus/jobs.sqlite")


class LocusJobsConfig(_Section):
    project: ProjectSettings = Field(default_factory=ProjectSettings)
    jobs: List[JobConfig] = Field(
        default_factory=lambda: [JobConfig(type=job_type) for job_type in JobType]
    )
    autonomy: AutonomySettings = Field(default_factory=AutonomySettings)
    paths: PathSettings = Field(default_factory=PathSettings)
    config_path: Optional[Path] = Field(default=None, exclude=True)

    @property
    def repo_root(self) -> Path:
        return self.project.repo_root

    def job(self, job_type: JobType) -> Optional[JobConfig]:
        for job in self.jobs:
            if job.type == job_type:
                return job
        return None

    def job_or_default(self, job_type: JobType) -> JobConfig:
        return self.job(job_type) or JobConfig(type=job_type)

    def autonomy_rules(self) -> List[AutonomyRule]:
        return self.autonomy.resolve_rules()


def default_config_data() -> Dict[str, Any]:
    """Return a deep copy of the default configuration template."""
    return copy.deepcopy(DEFAULT_CONFIG_TEMPLATE)


def _read_mapping(config_path: Path) -> Dict[str, Any]:
    try:
        with config_path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
    except yaml.YAMLError as error:
        raise ConfigError(f"Failed to parse config {config_path}: {error}") from error
    except OSError as error:
        raise ConfigError(f"Unable to read config {config_path}: {error}") from error
    if not isinstance(data, dict):
        raise ConfigError("Configuration must be a mapping at the top level.")
    return data


def _write_mapping(config_path: Path, data: Dict[str, Any]) -> None:
    """Persist configuration data to disk with stable formatting."""
    config_path.parent.mkdir(parents=True, exist_ok=True)
    with config_path.open("w", encoding="utf-8") as handle:
        yaml.safe_dump(data, handle, sort_keys=False)


def _resolve(path: Path, base: Path) -> Path:
    return path if path.is_absolute() else (base / path).resolve()


def load_config(config_path: Path | str | None = None) -> LocusJobsConfig:
    """Load and validate the configuration.

    A missing file yields the defaults: every job enabled with ``balanced``
    autonomy.  Relative ``repo_root`` and ``db_path`` values are resolved
    against the directory holding the configuration file.
    """

    path = Path(config_path) if config_path is not None else Path(DEFAULT_CONFIG_NAME)
    data = _read_mapping(path) if path.exists() else {}

    try:
        config = LocusJobsConfig.model_validate(data)
    except ValidationError as error:
        raise ConfigError(f"Invalid configuration in {path}: {error}") from error

    base = path.resolve().parent
    repo_root = _resolve(config.project.repo_root, base)
    return config.model_copy(
        update={
            "project": config.project.model_copy(update={"repo_root": repo_root}),
            "paths": config.paths.model_copy(update={"db_path": _resolve(config.paths.db_path, base)}),
            "config_path": path.resolve(),
        }
    )


def set_job_enabled(config_path: Path | str, job_type: JobType, enabled: bool) -> LocusJobsConfig:
    """Flip ``enabled`` for ``job_type`` in the YAML file, creating it when absent."""

    path = Path(config_path)
    data = _read_mapping(path) if path.exists() else default_config_data()
    jobs = data.get("jobs")
    if jobs is None:
        jobs = [{"type": item.value, "enabled": True, "options": {}} for item in JobType]
    if not isinstance(jobs, list):
        raise ConfigError("'jobs' must be a list of job entries.")

    for entry in jobs:
        if isinstance(entry, dict) and str(entry.get("type", "")).upper() == job_type.value:
            entry["enabled"] = enabled
            break
    else:
        jobs.append({"type": job_type.value, "enabled": enabled, "options": {}})
    data["jobs"] = jobs

    _write_mapping(path, data)
    return load_config(path)


__all__ = [
    "AUTONOMY_LEVELS",
    "AutonomySettings",
    "ConfigError",
    "DEFAULT_CONFIG_NAME",
    "LocusJobsConfig",
    "PathSettings",
    "ProjectSettings",
    "default_config_data",
    "load_config",
    "set_job_enabled",
]
