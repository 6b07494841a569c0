"""Lifecycle orchestration for analyzer runs.

The runner owns persistence and events: it records a RUNNING job run, invokes
the analyzer, then records either the serialized result plus one suggestion
row per finding, or the failure.  Batches run strictly one job at a time.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Sequence

import logging

from ..schema import AutonomyRule, JobConfig, JobStatus, JobType, utc_now
from .base import JobClient, JobContext, JobResult
from .registry import JobRegistry

LOGGER = logging.getLogger(__name__)


class JobEvent(str, Enum):
    JOB_STARTED = "JOB_STARTED"
    JOB_COMPLETED = "JOB_COMPLETED"
    JOB_FAILED = "JOB_FAILED"


@dataclass(frozen=True, slots=True)
class JobStartedPayload:
    job_type: JobType
    job_run_id: str


@dataclass(frozen=True, slots=True)
class JobCompletedPayload:
    job_type: JobType
    job_run_id: str
    result: JobResult


@dataclass(frozen=True, slots=True)
class JobFailedPayload:
    job_type: JobType
    job_run_id: str
    error: str


def _run_id(record: Any) -> str:
    if isinstance(record, Mapping):
        return str(record["id"])
    return str(getattr(record, "id"))


class JobRunner:
    """Run registered analyzers against one project on behalf of a workspace."""

    def __init__(
        self,
        registry: JobRegistry,
        client: JobClient,
        project_path: Path | str,
        workspace_id: str,
    ) -> None:
        self.registry = registry
        self.client = client
        self.project_path = Path(project_path)
        self.workspace_id = workspace_id

    def run_job(
        self,
        job_type: JobType | str,
        config: JobConfig,
        autonomy_rules: Sequence[AutonomyRule],
    ) -> JobResult:
        """Run a single analyzer and persist its outcome.

        Raises
        ------
        JobNotRegisteredError
            When ``job_type`` has no registered analyzer.  Nothing is persisted.
        Exception
            Any exception raised by the analyzer, after the run was marked FAILED.
        """

        job = self.registry.require(job_type)
        job_type = job.type

        record = self.client.jobs.create(
            self.workspace_id,
            {
                "job_type": job_type,
                "status": JobStatus.RUNNING,
                "started_at": utc_now().isoformat(),
            },
        )
        job_run_id = _run_id(record)
        self.client.emitter.emit(JobEvent.JOB_STARTED.value, JobStartedPayload(job_type, job_run_id))
        LOGGER.info("Started %s (run %s)", job.name, job_run_id)

        context = JobContext(
            workspace_id=self.workspace_id,
            project_path=self.project_path,
            config=config,
            autonomy_rules=tuple(autonomy_rules),
            client=self.client,
        )

        try:
            result = job.run(context)

            self.client.jobs.update(
                self.workspace_id,
                job_run_id,
                {
                    "status": JobStatus.COMPLETED,
                    "completed_at": utc_now().isoformat(),
                    "result": result.to_dict(),
                },
            )
            for suggestion in result.suggestions:
                self.client.suggestions.create(
                    self.workspace_id,
                    {
                        "type": suggestion.type,
                        "title": suggestion.title,
                        "description": suggestion.description,
                        "job_run_id": job_run_id,
                        "metadata": dict(suggestion.metadata),
                    },
                )
        except Exception as error:
            message = str(error) or error.__class__.__name__
            LOGGER.error("%s failed (run %s): %s", job.name, job_run_id, message)
            try:
                self.client.jobs.update(
                    self.workspace_id,
                    job_run_id,
                    {
                        "status": JobStatus.FAILED,
                        "completed_at": utc_now().isoformat(),
                        "error": message,
                    },
                )
            except Exception:  # noqa: BLE001 - the analyzer error is re-raised below
                LOGGER.warning("Unable to record failure for run %s", job_run_id, exc_info=True)
            self.client.emitter.emit(
                JobEvent.JOB_FAILED.value, JobFailedPayload(job_type, job_run_id, message)
            )
            raise

        self.client.emitter.emit(
            JobEvent.JOB_COMPLETED.value, JobCompletedPayload(job_type, job_run_id, result)
        )
        LOGGER.info("Completed %s (run %s): %s", job.name, job_run_id, result.summary)
        return result

    def run_all_enabled(
        self,
        configs: Iterable[JobConfig],
        autonomy_rules: Sequence[AutonomyRule],
    ) -> Dict[JobType, JobResult]:
        """Run every enabled, registered job in order; failures do not stop the batch."""

        results: Dict[JobType, JobResult] = {}
        for config in configs:
            if not config.enabled or not self.registry.has(config.type):
                continue
            try:
                results[config.type] = self.run_job(config.type, config, autonomy_rules)
            except Exception:  # noqa: BLE001 - already persisted and emitted by run_job
                LOGGER.warning("Job %s failed; continuing with the batch", config.type.value)
        return results


__all__ = [
    "JobCompletedPayload",
    "JobEvent",
    "JobFailedPayload",
    "JobRunner",
    "JobStartedPayload",
]
