"""Command line entry point for running code-health jobs locally."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer

from .config import DEFAULT_CONFIG_NAME, ConfigError, LocusJobsConfig, load_config, set_job_enabled
from .jobs import JobResult, JobRunner, create_default_registry
from .jobs.runner import JobEvent
from .schema import JobType
from .store import JobStore

APP_HELP = "Run lint, TODO, flaky-test and dependency jobs against a project."

JOB_ALIASES: Dict[str, JobType] = {
    "lint": JobType.LINT_SCAN,
    "dependency": JobType.DEPENDENCY_CHECK,
    "dependencies": JobType.DEPENDENCY_CHECK,
    "deps": JobType.DEPENDENCY_CHECK,
    "todo": JobType.TODO_CLEANUP,
    "test": JobType.FLAKY_TEST_DETECTION,
    "tests": JobType.FLAKY_TEST_DETECTION,
    "flaky": JobType.FLAKY_TEST_DETECTION,
}

app = typer.Typer(help=APP_HELP, no_args_is_help=True)


def _config_option() -> Any:
    return typer.Option(
        DEFAULT_CONFIG_NAME,
        "--config",
        "-c",
        help="Path to the jobs configuration file.",
    )


def parse_job_type(value: str) -> JobType:
    """Resolve a CLI alias (``lint``) or enum value (``LINT_SCAN``)."""
    key = value.strip()
    if key.lower() in JOB_ALIASES:
        return JOB_ALIASES[key.lower()]
    try:
        return JobType(key.upper())
    except ValueError as error:
        valid = ", ".join([*JOB_ALIASES, *(item.value for item in JobType)])
        raise typer.BadParameter(f"Unknown job '{value}'. Expected one of: {valid}") from error


def _load(config: str) -> LocusJobsConfig:
    try:
        return load_config(Path(config))
    except ConfigError as error:
        typer.echo(f"Failed to load config: {error}", err=True)
        raise typer.Exit(code=1) from error


def _echo_result(job_type: JobType, result: JobResult) -> None:
    typer.echo(f"[{job_type.value}] {result.summary}")
    for suggestion in result.suggestions:
        typer.echo(f"  - {suggestion.title}")
    if result.files_changed:
        typer.echo(f"  Files changed: {result.files_changed}")
    if result.pr_url:
        typer.echo(f"  PR: {result.pr_url}")
    for error in result.errors or ():
        typer.echo(f"  ! {error}")


@app.callback()
def _root(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@app.command()
def run(
    job: Optional[str] = typer.Argument(
        None,
        help="Job to run (lint, dependency, todo, test or a job type). Runs all enabled jobs when omitted.",
    ),
    config: str = _config_option(),
) -> None:
    """Run one job, or every enabled job in configuration order."""
    settings = _load(config)
    rules = settings.autonomy_rules()

    with JobStore.from_config(settings) as store:
        failures: List[str] = []
        store.emitter.on(JobEvent.JOB_FAILED.value, lambda payload: failures.append(payload.error))
        runner = JobRunner(
            create_default_registry(),
            store,
            settings.repo_root,
            settings.project.workspace_id,
        )

        if job is None:
            results = runner.run_all_enabled(settings.jobs, rules)
            if not results and not failures:
                typer.echo("No enabled jobs to run.")
            for job_type, result in results.items():
                _echo_result(job_type, result)
            for message in failures:
                typer.echo(f"Job failed: {message}", err=True)
            if failures:
                raise typer.Exit(code=1)
            return

        job_type = parse_job_type(job)
        try:
            result = runner.run_job(job_type, settings.job_or_default(job_type), rules)
        except Exception as error:  # noqa: BLE001 - reported to the user
            typer.echo(f"Job failed: {error}", err=True)
            raise typer.Exit(code=1) from error
        _echo_result(job_type, result)


@app.command(name="list")
def list_jobs(config: str = _config_option()) -> None:
    """List job types and whether they are enabled."""
    settings = _load(config)
    for job_type in JobType:
        entry = settings.job(job_type)
        state = "enabled" if entry is not None and entry.enabled else "disabled"
        typer.echo(f"{job_type.value}: {state}")


def _toggle(job: str, config: str, enabled: bool) -> None:
    job_type = parse_job_type(job)
    try:
        set_job_enabled(Path(config), job_type, enabled)
    except ConfigError as error:
        typer.echo(f"Failed to update config: {error}", err=True)
        raise typer.Exit(code=1) from error
    typer.echo(f"{job_type.value} {'enabled' if enabled else 'disabled'}.")


@app.command()
def enable(
    job: str = typer.Argument(..., help="Job alias or type to enable."),
    config: str = _config_option(),
) -> None:
    """Enable a job in the configuration file."""
    _toggle(job, config, True)


@app.command()
def disable(
    job: str = typer.Argument(..., help="Job alias or type to disable."),
    config: str = _config_option(),
) -> None:
    """Disable a job in the configuration file."""
    _toggle(job, config, False)


@app.command()
def history(
    limit: int = typer.Option(20, "--limit", "-n", help="Number of runs to show."),
    config: str = _config_option(),
) -> None:
    """Show recent job runs."""
    settings = _load(config)
    with JobStore.from_config(settings) as store:
        runs = store.jobs.list(settings.project.workspace_id, limit=limit)
    if not runs:
        typer.echo("No job runs recorded.")
        return
    for record in runs:
        detail = record.error or (record.result or {}).get("summary", "")
        typer.echo(
            f"{record.id} {record.job_type.value} {record.status.value} "
            f"{record.started_at.isoformat()} {detail}".rstrip()
        )


@app.command()
def suggestions(
    run_id: Optional[str] = typer.Option(None, "--run-id", help="Only show suggestions from this run."),
    config: str = _config_option(),
) -> None:
    """List persisted suggestions."""
    settings = _load(config)
    with JobStore.from_config(settings) as store:
        records = store.suggestions.list(settings.project.workspace_id, job_run_id=run_id)
    if not records:
        typer.echo("No suggestions recorded.")
        return
    for record in records:
        typer.echo(f"[{record.type.value}] {record.title} (run {record.job_run_id})")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
