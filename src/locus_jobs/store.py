"""SQLite-backed local persistence for job runs and suggestions.

:class:`JobStore` exposes the same narrow surface the runner expects from a
remote API client: ``store.jobs``, ``store.suggestions`` and ``store.emitter``.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Iterator, List, Mapping, Optional

from .events import EventEmitter
from .schema import JobRun, JobStatus, JobType, SuggestionRecord, SuggestionType, utc_now

DEFAULT_DB_PATH = Path(".locus/jobs.sqlite")
LOGGER = logging.getLogger(__name__)


def _as_iso(timestamp: datetime | str | None) -> Optional[str]:
    """Serialise a timestamp to a timezone-aware ISO 8601 string."""
    if timestamp is None:
        return None
    if isinstance(timestamp, str):
        timestamp = datetime.fromisoformat(timestamp)
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    return timestamp.astimezone(timezone.utc).isoformat()


def _from_iso(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def _plain(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    return value


def _dump_json(data: Any, *, default: Any) -> str:
    """Convert JSON-like payloads into a persisted string."""
    return json.dumps(default if data is None else data, default=_plain)


def _load_json(value: Optional[str], *, default: Any) -> Any:
    if not value:
        return default
    data = json.loads(value)
    return default if data is None else data


class _Repository:
    def __init__(self, store: "JobStore") -> None:
        self._store = store

    @property
    def _conn(self) -> sqlite3.Connection:
        return self._store.connection


class JobRunRepository(_Repository):
    """``jobs.create`` / ``jobs.update`` plus read helpers for the CLI."""

    def create(self, workspace_id: str, data: Mapping[str, Any]) -> JobRun:
        record = JobRun(
            id=str(data.get("id") or uuid.uuid4()),
            workspace_id=workspace_id,
            job_type=data["job_type"],
            status=data.get("status") or JobStatus.RUNNING,
            started_at=data.get("started_at") or utc_now(),
        )
        with self._store.transaction():
            self._conn.execute(
                """
                INSERT INTO job_runs (id, workspace_id, job_type, status, started_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    record.id,
                    record.workspace_id,
                    record.job_type.value,
                    record.status.value,
                    _as_iso(record.started_at),
                ),
            )
        return record

    def update(self, workspace_id: str, job_run_id: str, data: Mapping[str, Any]) -> JobRun:
        current = self.get(job_run_id)
        if current is None or current.workspace_id != workspace_id:
            raise KeyError(f"Unknown job run '{job_run_id}' for workspace '{workspace_id}'")

        updates = {key: data[key] for key in ("status", "completed_at", "result", "error") if key in data}
        record = JobRun.model_validate({**current.model_dump(), **updates})
        with self._store.transaction():
            self._conn.execute(
                """
                UPDATE job_runs
                SET status = ?, completed_at = ?, result = ?, error = ?
                WHERE id = ?
                """,
                (
                    record.status.value,
                    _as_iso(record.completed_at),
                    _dump_json(record.result, default=None) if record.result is not None else None,
                    record.error,
                    record.id,
                ),
            )
        return record

    def get(self, job_run_id: str) -> Optional[JobRun]:
        row = self._conn.execute("SELECT * FROM job_runs WHERE id = ?", (job_run_id,)).fetchone()
        return self._row_to_run(row) if row else None

    def list(
        self,
        workspace_id: Optional[str] = None,
        *,
        job_type: Optional[JobType] = None,
        limit: Optional[int] = None,
    ) -> List[JobRun]:
        query = "SELECT * FROM job_runs"
        clauses = []
        params: List[Any] = []
        if workspace_id:
            clauses.append("workspace_id = ?")
            params.append(workspace_id)
        if job_type:
            clauses.append("job_type = ?")
            params.append(JobType(job_type).value)
        if clauses:
            query += " WHERE " + " AND ".join(clauses)
        query += " ORDER BY started_at DESC, rowid DESC"
        if limit:
            query += " LIMIT ?"
            params.append(int(limit))
        return [self._row_to_run(row) for row in self._conn.execute(query, params).fetchall()]

    @staticmethod
    def _row_to_run(row: sqlite3.Row) -> JobRun:
        return JobRun(
            id=row["id"],
            workspace_id=row["workspace_id"],
            job_type=row["job_type"],
            status=row["status"],
            started_at=_from_iso(row["started_at"]),
            completed_at=_from_iso(row["completed_at"]),
            result=_load_json(row["result"], default=None),
            error=row["error"],
        )


class SuggestionRepository(_Repository):
    def create(self, workspace_id: str, data: Mapping[str, Any]) -> SuggestionRecord:
        record = SuggestionRecord(
            id=str(data.get("id") or uuid.uuid4()),
            workspace_id=workspace_id,
            job_run_id=str(data["job_run_id"]),
            type=data["type"],
            title=data["title"],
            description=data.get("description") or "",
            metadata=dict(data.get("metadata") or {}),
        )
        with self._store.transaction():
            self._conn.execute(
                """
                INSERT INTO suggestions (
                    id, workspace_id, job_run_id, type, title, description, metadata, created_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    record.id,
                    record.workspace_id,
                    record.job_run_id,
                    record.type.value,
                    record.title,
                    record.description,
                    _dump_json(record.metadata, default={}),
                    _as_iso(record.created_at),
                ),
            )
        return record

    def list(
        self,
        workspace_id: Optional[str] = None,
        *,
        job_run_id: Optional[str] = None,
        type: Optional[SuggestionType] = None,
    ) -> List[SuggestionRecord]:
        query = "SELECT * FROM suggestions"
        clauses = []
        params: List[Any] = []
        if workspace_id:
            clauses.append("workspace_id = ?")
            params.append(workspace_id)
        if job_run_id:
            clauses.append("job_run_id = ?")
            params.append(job_run_id)
        if type:
            clauses.append("type = ?")
            params.append(SuggestionType(type).value)
        if clauses:
            query += " WHERE " + " AND ".join(clauses)
        query += " ORDER BY created_at ASC, rowid ASC"
        return [
            SuggestionRecord(
                id=row["id"],
                workspace_id=row["workspace_id"],
                job_run_id=row["job_run_id"],
                type=row["type"],
                title=row["title"],
                description=row["description"],
                metadata=_load_json(row["metadata"], default={}),
                created_at=_from_iso(row["created_at"]),
            )
            for row in self._conn.execute(query, params).fetchall()
        ]


class JobStore:
    """SQLite persistence for job runs and suggestions."""

    def __init__(self, db_path: Path | str = DEFAULT_DB_PATH, *, emitter: EventEmitter | None = None) -> None:
        self.db_path = Path(db_path)
        if str(db_path) != ":memory:":
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn: Optional[sqlite3.Connection] = self._open_connection()
        self._bootstrap()
        self.emitter = emitter or EventEmitter()
        self.jobs = JobRunRepository(self)
        self.suggestions = SuggestionRepository(self)

    @classmethod
    def from_config(cls, config: Any) -> "JobStore":
        """Open the store at ``config.paths.db_path``."""
        return cls(Path(config.paths.db_path))

    @property
    def connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise RuntimeError("JobStore is closed")
        return self._conn

    def close(self) -> None:
        if self._conn is not None:
            try:
                self._conn.close()
            finally:
                self._conn = None

    def __enter__(self) -> "JobStore":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def _open_connection(self) -> sqlite3.Connection:
        connection = sqlite3.connect(str(self.db_path))
        connection.row_factory = sqlite3.Row
        connection.execute("PRAGMA foreign_keys = ON")
        return connection

    def _bootstrap(self) -> None:
        self.connection.executescript(
            """
            CREATE TABLE IF NOT EXISTS job_runs (
                id TEXT PRIMARY KEY,
                workspace_id TEXT NOT NULL,
                job_type TEXT NOT NULL,
                status TEXT NOT NULL,
                started_at TEXT NOT NULL,
                completed_at TEXT,
                result TEXT,
                error TEXT
            );
            CREATE INDEX IF NOT EXISTS idx_job_runs_workspace
                ON job_runs(workspace_id, started_at);

            CREATE TABLE IF NOT EXISTS suggestions (
                id TEXT PRIMARY KEY,
                workspace_id TEXT NOT NULL,
                job_run_id TEXT NOT NULL,
                type TEXT NOT NULL,
                title TEXT NOT NULL,
                description TEXT NOT NULL,
                metadata TEXT NOT NULL,
                created_at TEXT NOT NULL,
                FOREIGN KEY(job_run_id) REFERENCES job_runs(id) ON DELETE CASCADE
            );
            CREATE INDEX IF NOT EXISTS idx_suggestions_run
                ON suggestions(job_run_id);
            """
        )
        self.connection.commit()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        try:
            yield self.connection
            self.connection.commit()
        except Exception:
            self.connection.rollback()
            raise


__all__ = ["DEFAULT_DB_PATH", "JobRunRepository", "JobStore", "SuggestionRepository"]
