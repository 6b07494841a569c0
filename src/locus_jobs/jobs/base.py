"""Runtime contracts shared by every analyzer.

Analyzers are plain classes satisfying the :class:`Job` protocol; nothing
inherits from a common base.  They receive a :class:`JobContext` and always
return a :class:`JobResult`, recording recoverable problems in
``JobResult.errors`` instead of raising.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Protocol, Sequence, Tuple

from ..policy.autonomy import should_auto_execute
from ..schema import AutonomyRule, JobConfig, JobType, SuggestionType


class JobRunsClient(Protocol):
    """Persistence calls the runner makes for job-run records."""

    def create(self, workspace_id: str, data: Mapping[str, Any]) -> Any: ...

    def update(self, workspace_id: str, job_run_id: str, data: Mapping[str, Any]) -> Any: ...


class SuggestionsClient(Protocol):
    def create(self, workspace_id: str, data: Mapping[str, Any]) -> Any: ...


class EventSink(Protocol):
    def emit(self, event: str, payload: Any = None) -> Any: ...


class JobClient(Protocol):
    """Opaque persistence/event collaborator handed to the runner."""

    jobs: JobRunsClient
    suggestions: SuggestionsClient
    emitter: EventSink


@dataclass(frozen=True, slots=True)
class JobSuggestion:
    """One finding surfaced to the user instead of (or besides) a fix."""

    type: SuggestionType
    title: str
    description: str
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class JobResult:
    """Outcome of a single analyzer run."""

    summary: str
    suggestions: Tuple[JobSuggestion, ...] = ()
    files_changed: int = 0
    pr_url: Optional[str] = None
    errors: Optional[Tuple[str, ...]] = None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the fields persisted on the job-run record."""
        return {
            "summary": self.summary,
            "files_changed": self.files_changed,
            "pr_url": self.pr_url,
            "errors": list(self.errors) if self.errors else None,
        }


@dataclass(slots=True)
class JobContext:
    """Per-invocation inputs for an analyzer."""

    workspace_id: str
    project_path: Path
    config: JobConfig
    autonomy_rules: Tuple[AutonomyRule, ...] = ()
    client: Any = None

    def __post_init__(self) -> None:
        self.project_path = Path(self.project_path)
        self.autonomy_rules = tuple(self.autonomy_rules)


class Job(Protocol):
    """Structural interface implemented by every analyzer."""

    type: JobType
    name: str

    def run(self, context: JobContext) -> JobResult: ...


def job_option(context: JobContext, *keys: str, default: Any = None) -> Any:
    """Return the first option present under any of ``keys``."""

    options = context.config.options or {}
    for key in keys:
        if key in options and options[key] is not None:
            return options[key]
    return default


def timeout_option(context: JobContext, default: float) -> float:
    value = job_option(context, "timeout", default=default)
    try:
        seconds = float(value)
    except (TypeError, ValueError):
        return default
    return seconds if seconds > 0 else default


def failure_result(summary: str, message: str, suggestions: Sequence[JobSuggestion] = ()) -> JobResult:
    """Result for a step that could not execute: no changes, one error entry."""
    return JobResult(summary=summary, suggestions=tuple(suggestions), errors=(message,))


__all__ = [
    "EventSink",
    "Job",
    "JobClient",
    "JobContext",
    "JobResult",
    "JobRunsClient",
    "JobSuggestion",
    "SuggestionsClient",
    "failure_result",
    "job_option",
    "should_auto_execute",
    "timeout_option",
]
