from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from locus_jobs.config import load_config
from locus_jobs.schema import JobStatus, JobType, SuggestionType
from locus_jobs.store import JobStore


@pytest.fixture()
def store(tmp_path: Path):
    with JobStore(tmp_path / "state" / "jobs.sqlite") as job_store:
        yield job_store


def test_create_and_complete_run(store: JobStore) -> None:
    run = store.jobs.create("ws", {"job_type": JobType.LINT_SCAN, "status": JobStatus.RUNNING})
    assert run.status is JobStatus.RUNNING

    updated = store.jobs.update(
        "ws",
        run.id,
        {
            "status": JobStatus.COMPLETED,
            "completed_at": datetime(2026, 1, 2, tzinfo=timezone.utc).isoformat(),
            "result": {"summary": "ok", "files_changed": 2, "pr_url": None, "errors": None},
        },
    )
    assert updated.status is JobStatus.COMPLETED

    fetched = store.jobs.get(run.id)
    assert fetched is not None
    assert fetched.result == {"summary": "ok", "files_changed": 2, "pr_url": None, "errors": None}
    assert fetched.completed_at == datetime(2026, 1, 2, tzinfo=timezone.utc)
    assert fetched.error is None


def test_update_unknown_run_raises(store: JobStore) -> None:
    with pytest.raises(KeyError):
        store.jobs.update("ws", "missing", {"status": JobStatus.FAILED})


def test_update_checks_workspace(store: JobStore) -> None:
    run = store.jobs.create("ws-a", {"job_type": JobType.TODO_CLEANUP})
    with pytest.raises(KeyError):
        store.jobs.update("ws-b", run.id, {"status": JobStatus.FAILED, "error": "nope"})


def test_list_newest_first_with_filters(store: JobStore) -> None:
    base = datetime(2026, 3, 1, tzinfo=timezone.utc)
    for offset, job_type in enumerate([JobType.LINT_SCAN, JobType.TODO_CLEANUP, JobType.LINT_SCAN]):
        store.jobs.create(
            "ws",
            {"id": f"run-{offset}", "job_type": job_type, "started_at": (base + timedelta(minutes=offset)).isoformat()},
        )
    store.jobs.create("other", {"job_type": JobType.LINT_SCAN})

    assert [run.id for run in store.jobs.list("ws")] == ["run-2", "run-1", "run-0"]
    assert [run.id for run in store.jobs.list("ws", job_type=JobType.LINT_SCAN)] == ["run-2", "run-0"]
    assert [run.id for run in store.jobs.list("ws", limit=1)] == ["run-2"]


def test_suggestions_roundtrip_metadata(store: JobStore) -> None:
    run = store.jobs.create("ws", {"job_type": JobType.DEPENDENCY_CHECK})
    store.suggestions.create(
        "ws",
        {
            "type": SuggestionType.SECURITY,
            "title": "1 known vulnerability(ies) in dependencies",
            "description": "**high**",
            "job_run_id": run.id,
            "metadata": {"severities": {"high": 1}, "risk": SuggestionType.SECURITY},
        },
    )

    (record,) = store.suggestions.list("ws", job_run_id=run.id)
    assert record.type is SuggestionType.SECURITY
    assert record.metadata == {"severities": {"high": 1}, "risk": "SECURITY"}
    assert store.suggestions.list("ws", type=SuggestionType.CODE_FIX) == []


def test_closed_store_rejects_access(tmp_path: Path) -> None:
    job_store = JobStore(tmp_path / "jobs.sqlite")
    job_store.close()
    with pytest.raises(RuntimeError, match="closed"):
        job_store.jobs.list()


def test_from_config_uses_resolved_db_path(tmp_path: Path) -> None:
    config_path = tmp_path / "locus-jobs.yaml"
    config_path.write_text("paths:\n  db_path: data/runs.sqlite\n", encoding="utf-8")

    with JobStore.from_config(load_config(config_path)) as job_store:
        assert job_store.db_path == (tmp_path / "data" / "runs.sqlite").resolve()
    assert (tmp_path / "data" / "runs.sqlite").exists()
