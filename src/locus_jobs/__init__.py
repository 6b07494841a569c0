"""Job execution and autonomous remediation engine for code-health analyzers."""

from .jobs import (
    DependencyScanJob,
    JobContext,
    JobEvent,
    JobRegistry,
    JobResult,
    JobRunner,
    JobSuggestion,
    LintScanJob,
    FlakyTestScanJob,
    TodoScanJob,
    create_default_registry,
)
from .schema import AutonomyRule, ChangeCategory, JobConfig, JobStatus, JobType, SuggestionType

__all__ = [
    "AutonomyRule",
    "ChangeCategory",
    "DependencyScanJob",
    "JobConfig",
    "JobContext",
    "JobEvent",
    "JobRegistry",
    "JobResult",
    "JobRunner",
    "JobStatus",
    "JobSuggestion",
    "JobType",
    "LintScanJob",
    "SuggestionType",
    "FlakyTestScanJob",
    "TodoScanJob",
    "create_default_registry",
]
