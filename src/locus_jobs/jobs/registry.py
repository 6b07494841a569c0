"""Lookup table mapping job types to analyzer instances."""

from __future__ import annotations

from typing import Dict, Iterable, List

from ..schema import JobType
from .base import Job


class JobNotRegisteredError(KeyError):
    """Raised when no analyzer is registered for a job type."""


class JobRegistry:
    """Dispatch table mapping :class:`JobType` members to analyzers."""

    def __init__(self, jobs: Iterable[Job] = ()) -> None:
        self._jobs: Dict[JobType, Job] = {}
        for job in jobs:
            self.register(job)

    def register(self, job: Job) -> None:
        """Register ``job`` under its type, replacing any previous entry."""
        self._jobs[self.normalize_type(job.type)] = job

    def get(self, job_type: JobType | str) -> Job | None:
        return self._jobs.get(self.normalize_type(job_type))

    def has(self, job_type: JobType | str) -> bool:
        try:
            return self.normalize_type(job_type) in self._jobs
        except KeyError:
            return False

    def get_all(self) -> List[Job]:
        return list(self._jobs.values())

    def require(self, job_type: JobType | str) -> Job:
        """Return the analyzer for ``job_type`` or raise :class:`JobNotRegisteredError`."""
        job = self.get(job_type)
        if job is None:
            raise JobNotRegisteredError(f"No job handler registered for type: {job_type}")
        return job

    def __len__(self) -> int:
        return len(self._jobs)

    def __contains__(self, job_type: object) -> bool:
        return isinstance(job_type, (JobType, str)) and self.has(job_type)

    @staticmethod
    def normalize_type(job_type: JobType | str) -> JobType:
        """Resolve ``job_type`` into a concrete ``JobType`` enum member."""
        if isinstance(job_type, JobType):
            return job_type
        try:
            return JobType(str(job_type).upper())
        except ValueError as error:
            valid = ", ".join(item.value for item in JobType)
            raise JobNotRegisteredError(
                f"Unknown job type '{job_type}'. Expected one of: {valid}"
            ) from error


def create_default_registry() -> JobRegistry:
    """Registry holding the four built-in analyzers."""

    from .dependencies import DependencyScanJob
    from .flaky_tests import FlakyTestScanJob
    from .lint import LintScanJob
    from .todo import TodoScanJob

    return JobRegistry(
        [LintScanJob(), DependencyScanJob(), TodoScanJob(), FlakyTestScanJob()]
    )


__all__ = ["JobNotRegisteredError", "JobRegistry", "create_default_registry"]
