"""Analyzer implementations, their shared contracts, and the runner."""

from .base import Job, JobContext, JobResult, JobSuggestion, should_auto_execute
from .dependencies import DependencyScanJob
from .flaky_tests import FlakyTestScanJob, classify_tests
from .lint import LintScanJob
from .registry import JobNotRegisteredError, JobRegistry, create_default_registry
from .runner import JobEvent, JobRunner
from .todo import TodoScanJob

__all__ = [
    "DependencyScanJob",
    "FlakyTestScanJob",
    "Job",
    "JobContext",
    "JobEvent",
    "JobNotRegisteredError",
    "JobRegistry",
    "JobResult",
    "JobRunner",
    "JobSuggestion",
    "LintScanJob",
    "TodoScanJob",
    "classify_tests",
    "create_default_registry",
    "should_auto_execute",
]
