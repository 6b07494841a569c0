"""TODO/FIXME/HACK/XXX marker scan. Report-only: markers need human judgment."""

from __future__ import annotations

from collections import Counter
from pathlib import Path
from typing import List, Sequence, Tuple

import logging

from ..parsers.grep_output import MARKER_TYPES, TodoItem, parse_grep_output
from ..schema import JobType, SuggestionType
from ..tools.process import DEFAULT_TIMEOUT, CommandExecutor, ExecutionError, run_command
from .base import JobContext, JobResult, JobSuggestion, failure_result, job_option, timeout_option

LOGGER = logging.getLogger(__name__)

SOURCE_GLOBS: Tuple[str, ...] = ("*.ts", "*.tsx", "*.js", "*.jsx", "*.py")
EXCLUDED_DIRS: Tuple[str, ...] = ("node_modules", ".git", "dist", "build", ".locus")
MARKER_PATTERN = "(TODO|FIXME|HACK|XXX):?"


def grep_command(project_path: Path) -> List[str]:
    command = ["grep", "-rn"]
    command.extend(f"--include={pattern}" for pattern in SOURCE_GLOBS)
    command.extend(f"--exclude-dir={name}" for name in EXCLUDED_DIRS)
    command.extend(["-E", MARKER_PATTERN, str(project_path)])
    return command


def _count_label(count: int, marker: str) -> str:
    return f"{count} {marker}" if count == 1 else f"{count} {marker}s"


def summarize_markers(items: Sequence[TodoItem], previous_count: object = None) -> str:
    """Build ``Found 2 TODOs, 1 FIXME across 2 file(s)`` plus an optional delta."""

    counts = Counter(item.type for item in items)
    parts = [_count_label(counts[marker], marker) for marker in MARKER_TYPES if counts[marker]]
    files = len({item.file for item in items})
    summary = f"Found {', '.join(parts)} across {files} file(s)"

    if isinstance(previous_count, int) and not isinstance(previous_count, bool):
        delta = previous_count - len(items)
        if delta > 0:
            summary += f" ({delta} resolved since last run)"
        elif delta < 0:
            summary += f" ({-delta} new since last run)"
    return summary


def build_marker_suggestions(items: Sequence[TodoItem]) -> List[JobSuggestion]:
    return [
        JobSuggestion(
            type=SuggestionType.CODE_FIX,
            title=f"{item.type} in {item.file}:{item.line}",
            description=f"{item.type} comment found: {item.text}",
            metadata={"file": item.file, "line": item.line, "todo_type": item.type, "text": item.text},
        )
        for item in items
    ]


class TodoScanJob:
    """Search source files for stale markers and surface one suggestion each."""

    type = JobType.TODO_CLEANUP
    name = "TODO Cleanup"

    def __init__(self, *, executor: CommandExecutor = run_command) -> None:
        self._executor = executor

    def run(self, context: JobContext) -> JobResult:
        project_path = context.project_path
        try:
            output = self._executor(
                grep_command(project_path),
                cwd=project_path,
                timeout=timeout_option(context, DEFAULT_TIMEOUT),
            )
        except ExecutionError as error:
            return failure_result(f"TODO scan failed: {error}", str(error))

        # grep exits 1 when nothing matched and 2 on unreadable paths.
        if output.exit_code > 1:
            LOGGER.warning("grep reported problems: %s", output.stderr.strip())

        items = parse_grep_output(output.stdout, project_path)
        if not items:
            return JobResult(summary="TODO scan passed, no TODO/FIXME/HACK/XXX comments found")

        previous = job_option(context, "previous_todo_count", "previousTodoCount")
        return JobResult(
            summary=summarize_markers(items, previous),
            suggestions=tuple(build_marker_suggestions(items)),
        )


__all__ = ["TodoScanJob", "build_marker_suggestions", "grep_command", "summarize_markers"]
