"""
SQLite job record store for ClipScribe.
Thread-safe via check_same_thread=False + explicit locking, so the async
pipeline can call it from worker threads.

Status transitions are one-way: only a `processing` job can be moved to a
terminal state, and terminal jobs are never written again.
"""

import sqlite3
import threading
import uuid
import logging
from datetime import datetime, timezone
from pathlib import Path

from clipscribe.core.constants import DB_PATH, JobStatus, DEFAULT_LANGUAGE
from clipscribe.core.error_codes import StoreError
from clipscribe.core.models_sqlite import Job

logger = logging.getLogger(__name__)

_SCHEMA_VERSION = 1

_CREATE_TABLES = """
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY
);

CREATE TABLE IF NOT EXISTS jobs (
    id TEXT PRIMARY KEY,
    source_url TEXT,
    source_type TEXT NOT NULL,
    original_filename TEXT,
    transcription_text TEXT,
    duration_seconds INTEGER,
    language TEXT NOT NULL DEFAULT 'en',
    status TEXT NOT NULL DEFAULT 'processing',
    error_message TEXT,
    created_at TEXT NOT NULL,
    completed_at TEXT
);

CREATE INDEX IF NOT EXISTS idx_jobs_created_at ON jobs(created_at DESC);
CREATE INDEX IF NOT EXISTS idx_jobs_status ON jobs(status);
"""

# Columns a caller may change after creation
_UPDATABLE_COLUMNS = {
    'transcription_text', 'duration_seconds', 'status',
    'error_message', 'completed_at',
}


class Database:
    """SQLite database wrapper for ClipScribe."""

    def __init__(self, db_path: Path | None = None):
        self.db_path = db_path or DB_PATH
        self._lock = threading.Lock()
        try:
            self._ensure_dirs()
            self.conn = sqlite3.connect(
                str(self.db_path),
                check_same_thread=False,
            )
            self.conn.row_factory = sqlite3.Row
            self.conn.execute("PRAGMA journal_mode=WAL")
            self._migrate()
        except (sqlite3.Error, OSError) as e:
            raise StoreError(f"Failed to open job store at {self.db_path}: {e}")

    def _ensure_dirs(self):
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def _migrate(self):
        cur = self.conn.cursor()
        cur.executescript(_CREATE_TABLES)
        # Set schema version
        cur.execute(
            "INSERT OR REPLACE INTO schema_version (version) VALUES (?)",
            (_SCHEMA_VERSION,),
        )
        self.conn.commit()

    def close(self):
        if self.conn:
            self.conn.close()

    # ── Helpers ───────────────────────────────────────────────────────

    @staticmethod
    def _now() -> str:
        return datetime.now(timezone.utc).isoformat()

    @staticmethod
    def _row_to_job(row: sqlite3.Row) -> Job:
        return Job(**dict(row))

    def _execute(self, sql: str, params=()) -> sqlite3.Cursor:
        with self._lock:
            try:
                cur = self.conn.execute(sql, params)
                self.conn.commit()
                return cur
            except sqlite3.Error as e:
                self.conn.rollback()
                raise StoreError(f"Job store error: {e}")

    def _query(self, sql: str, params=()) -> list[sqlite3.Row]:
        with self._lock:
            try:
                return self.conn.execute(sql, params).fetchall()
            except sqlite3.Error as e:
                raise StoreError(f"Job store error: {e}")

    # ── Job CRUD ──────────────────────────────────────────────────────

    def create_job(self, source_type: str, source_url: str | None = None,
                   original_filename: str | None = None) -> Job:
        """Insert a new job in `processing`. The store assigns the id."""
        if (source_url is None) == (original_filename is None):
            raise ValueError("Exactly one of source_url / original_filename is required")

        job = Job(
            id=str(uuid.uuid4()),
            source_type=source_type,
            source_url=source_url,
            original_filename=original_filename,
            language=DEFAULT_LANGUAGE,
            status=JobStatus.PROCESSING,
            created_at=self._now(),
        )
        self._execute(
            """INSERT INTO jobs
               (id, source_url, source_type, original_filename,
                language, status, created_at)
               VALUES (?, ?, ?, ?, ?, ?, ?)""",
            (job.id, job.source_url, job.source_type, job.original_filename,
             job.language, job.status, job.created_at),
        )
        return job

    def get_job(self, job_id: str) -> Job | None:
        rows = self._query("SELECT * FROM jobs WHERE id = ?", (job_id,))
        return self._row_to_job(rows[0]) if rows else None

    def get_recent_jobs(self, limit: int = 100) -> list[Job]:
        rows = self._query(
            "SELECT * FROM jobs ORDER BY created_at DESC, rowid DESC LIMIT ?", (limit,)
        )
        return [self._row_to_job(r) for r in rows]

    def update_job(self, job_id: str, **kwargs):
        """
        Apply a partial update to a job that is still `processing`.
        Raises StoreError if the job does not exist or is already terminal.
        """
        unknown = set(kwargs) - _UPDATABLE_COLUMNS
        if unknown:
            raise ValueError(f"Cannot update columns: {', '.join(sorted(unknown))}")
        if not kwargs:
            return

        sets = ', '.join(f"{k} = ?" for k in kwargs)
        vals = list(kwargs.values()) + [job_id, JobStatus.PROCESSING]
        cur = self._execute(
            f"UPDATE jobs SET {sets} WHERE id = ? AND status = ?", vals
        )
        if cur.rowcount == 0:
            raise StoreError(f"Job {job_id} not found or already in a terminal state")

    def mark_completed(self, job_id: str, transcription_text: str,
                       duration_seconds: int | None = None):
        self.update_job(
            job_id,
            status=JobStatus.COMPLETED,
            transcription_text=transcription_text,
            duration_seconds=duration_seconds,
            completed_at=self._now(),
        )

    def mark_failed(self, job_id: str, error_message: str):
        self.update_job(
            job_id,
            status=JobStatus.FAILED,
            error_message=error_message,
        )
