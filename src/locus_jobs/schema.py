"""Typed records exchanged with the job persistence layer and configuration."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


def utc_now() -> datetime:
    """Return a timezone-aware UTC timestamp."""
    return datetime.now(timezone.utc)


class RecordModel(BaseModel):
    """Base Pydantic model with strict field handling."""

    model_config = ConfigDict(extra="forbid", frozen=False)


class JobType(str, Enum):
    """Identifier of a registered analyzer."""

    LINT_SCAN = "LINT_SCAN"
    DEPENDENCY_CHECK = "DEPENDENCY_CHECK"
    TODO_CLEANUP = "TODO_CLEANUP"
    FLAKY_TEST_DETECTION = "FLAKY_TEST_DETECTION"


class JobStatus(str, Enum):
    """Lifecycle states for a persisted job run."""

    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class ChangeCategory(str, Enum):
    """Kinds of change the autonomy policy is consulted about."""

    FIX = "FIX"
    REFACTOR = "REFACTOR"
    STYLE = "STYLE"
    DEPENDENCY = "DEPENDENCY"
    TEST_FIX = "TEST_FIX"
    FEATURE = "FEATURE"
    ARCHITECTURE = "ARCHITECTURE"
    DATABASE = "DATABASE"
    AUTH = "AUTH"
    API = "API"


class RiskLevel(str, Enum):
    """Risk attached to an autonomy rule."""

    LOW = "LOW"
    HIGH = "HIGH"


class SuggestionType(str, Enum):
    """Tag attached to every surfaced suggestion."""

    CODE_FIX = "CODE_FIX"
    DEPENDENCY_UPDATE = "DEPENDENCY_UPDATE"
    TEST_FIX = "TEST_FIX"
    SECURITY = "SECURITY"


class AutonomyRule(RecordModel):
    """Policy entry deciding whether a change category may be auto-executed."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    category: ChangeCategory
    risk_level: RiskLevel = RiskLevel.HIGH
    auto_execute: bool = False


class JobConfig(RecordModel):
    """Per-job configuration supplied by the workspace."""

    type: JobType
    enabled: bool = True
    options: Dict[str, Any] = Field(default_factory=dict)


class JobRun(RecordModel):
    """Persisted record of one job execution."""

    id: str
    workspace_id: str
    job_type: JobType
    status: JobStatus = JobStatus.RUNNING
    started_at: datetime = Field(default_factory=utc_now)
    completed_at: Optional[datetime] = None
    result: Optional[Dict[str, Any]] = None
    error: Optional[str] = None


class SuggestionRecord(RecordModel):
    """Persisted suggestion produced by a job run."""

    id: str
    workspace_id: str
    job_run_id: str
    type: SuggestionType
    title: str
    description: str = ""
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=utc_now)


__all__ = [
    "AutonomyRule",
    "ChangeCategory",
    "JobConfig",
    "JobRun",
    "JobStatus",
    "JobType",
    "RecordModel",
    "RiskLevel",
    "SuggestionRecord",
    "SuggestionType",
    "utc_now",
]
