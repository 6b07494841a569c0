from __future__ import annotations

import textwrap
from pathlib import Path

import pytest
from typer.testing import CliRunner

from locus_jobs import cli
from locus_jobs.cli import app, parse_job_type
from locus_jobs.jobs import JobRegistry, JobResult, JobSuggestion
from locus_jobs.schema import JobType, SuggestionType


class CannedJob:
    def __init__(self, job_type: JobType, result: JobResult | None = None, error: Exception | None = None) -> None:
        self.type = job_type
        self.name = job_type.value
        self._result = result
        self._error = error

    def run(self, context):
        if self._error is not None:
            raise self._error
        return self._result


TODO_RESULT = JobResult(
    summary="Found 1 TODO across 1 file(s)",
    suggestions=(
        JobSuggestion(type=SuggestionType.CODE_FIX, title="TODO in src/app.ts:3", description="TODO comment found: x"),
    ),
)
LINT_RESULT = JobResult(
    summary="Auto-fixed 3 error(s) across 2 file(s), PR created (biome)",
    files_changed=2,
    pr_url="https://github.com/acme/app/pull/7",
)


@pytest.fixture()
def config_path(tmp_path: Path) -> Path:
    path = tmp_path / "locus-jobs.yaml"
    path.write_text(
        textwrap.dedent(
            """
            project:
              repo_root: .
              workspace_id: ws-cli
            jobs:
              - type: LINT_SCAN
              - type: TODO_CLEANUP
              - type: DEPENDENCY_CHECK
                enabled: false
            autonomy:
              level: balanced
            paths:
              db_path: .locus/jobs.sqlite
            """
        ).strip()
        + "\n",
        encoding="utf-8",
    )
    return path


def _use_jobs(monkeypatch, *jobs) -> None:
    monkeypatch.setattr(cli, "create_default_registry", lambda: JobRegistry(jobs))


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("lint", JobType.LINT_SCAN),
        ("deps", JobType.DEPENDENCY_CHECK),
        ("Tests", JobType.FLAKY_TEST_DETECTION),
        ("todo_cleanup", JobType.TODO_CLEANUP),
    ],
)
def test_parse_job_type_aliases(value: str, expected: JobType) -> None:
    assert parse_job_type(value) is expected


def test_run_single_job_prints_and_persists(config_path: Path, monkeypatch) -> None:
    _use_jobs(monkeypatch, CannedJob(JobType.TODO_CLEANUP, TODO_RESULT))
    runner = CliRunner()

    result = runner.invoke(app, ["run", "todo", "--config", str(config_path)], catch_exceptions=False)
    assert result.exit_code == 0, result.output
    assert "[TODO_CLEANUP] Found 1 TODO across 1 file(s)" in result.output
    assert "  - TODO in src/app.ts:3" in result.output

    history = runner.invoke(app, ["history", "--config", str(config_path)], catch_exceptions=False)
    assert history.exit_code == 0, history.output
    assert "TODO_CLEANUP COMPLETED" in history.output

    listed = runner.invoke(app, ["suggestions", "--config", str(config_path)], catch_exceptions=False)
    assert "[CODE_FIX] TODO in src/app.ts:3" in listed.output


def test_run_all_enabled_reports_failures(config_path: Path, monkeypatch) -> None:
    _use_jobs(
        monkeypatch,
        CannedJob(JobType.LINT_SCAN, LINT_RESULT),
        CannedJob(JobType.TODO_CLEANUP, error=RuntimeError("grep crashed")),
        CannedJob(JobType.DEPENDENCY_CHECK, JobResult(summary="should not run")),
    )

    result = CliRunner().invoke(app, ["run", "--config", str(config_path)])

    assert result.exit_code == 1
    assert "[LINT_SCAN] Auto-fixed 3 error(s)" in result.output
    assert "  Files changed: 2" in result.output
    assert "  PR: https://github.com/acme/app/pull/7" in result.output
    assert "should not run" not in result.output
    assert "Job failed: grep crashed" in result.output


def test_run_single_failure_exits_non_zero(config_path: Path, monkeypatch) -> None:
    _use_jobs(monkeypatch, CannedJob(JobType.LINT_SCAN, error=RuntimeError("biome crashed")))

    result = CliRunner().invoke(app, ["run", "lint", "--config", str(config_path)])

    assert result.exit_code == 1
    assert "Job failed: biome crashed" in result.output


def test_run_unknown_job_is_usage_error(config_path: Path, monkeypatch) -> None:
    _use_jobs(monkeypatch)

    result = CliRunner().invoke(app, ["run", "bogus", "--config", str(config_path)])

    assert result.exit_code == 2
    assert "Unknown job 'bogus'" in result.output


def test_enable_disable_and_list(config_path: Path) -> None:
    runner = CliRunner()

    disabled = runner.invoke(app, ["disable", "lint", "--config", str(config_path)], catch_exceptions=False)
    assert disabled.exit_code == 0, disabled.output
    assert "LINT_SCAN disabled." in disabled.output

    enabled = runner.invoke(app, ["enable", "dependency", "-c", str(config_path)], catch_exceptions=False)
    assert "DEPENDENCY_CHECK enabled." in enabled.output

    listed = runner.invoke(app, ["list", "-c", str(config_path)], catch_exceptions=False)
    assert listed.output.splitlines() == [
        "LINT_SCAN: disabled",
        "DEPENDENCY_CHECK: enabled",
        "TODO_CLEANUP: enabled",
        "FLAKY_TEST_DETECTION: disabled",
    ]


def test_invalid_config_reports_error(tmp_path: Path) -> None:
    path = tmp_path / "locus-jobs.yaml"
    path.write_text("autonomy:\n  level: reckless\n", encoding="utf-8")

    result = CliRunner().invoke(app, ["list", "--config", str(path)])

    assert result.exit_code == 1
    assert "Failed to load config" in result.output


def test_empty_history(config_path: Path) -> None:
    result = CliRunner().invoke(app, ["history", "-c", str(config_path)], catch_exceptions=False)
    assert result.output.strip() == "No job runs recorded."
