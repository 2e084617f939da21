"""
SQLite implementation of the workflow repositories.

The three repositories share one Database so that a job row, its users
and its history live in the same file. History rows are protected by
triggers that abort any UPDATE or DELETE.
"""

from __future__ import annotations

from contextlib import contextmanager
import logging
import os
import sqlite3
import threading
from typing import Any, Dict, List, Optional

import simplejson as json

from jobflow.domain import Actor, Job, JobStatus, Role, StatusHistoryEntry
from jobflow.utils import dateTimeFromDb, dateTimeToDb

from .interface import HistoryRepository, JobRepository, RepositoryError, UserRepository

LOG = logging.getLogger(__name__)

# Schema version for this implementation
SCHEMA_VERSION = "1"

_TIME_COLUMNS = {"created_at", "started_at", "completed_at", "status_changed_at"}
_UPDATABLE_COLUMNS = {
    "status",
    "started_at",
    "completed_at",
    "actual_duration",
    "status_changed_at",
    "status_changed_by",
}


class Database(object):
    """
    One SQLite connection shared by the repositories.

    Statements are serialized through a lock so the connection can be
    used from several threads.
    """

    def __init__(self, db_path: str):
        """
        Initialize database.

        Args:
            db_path: Path to SQLite database file, or ":memory:"
        """
        self.db_path = db_path
        self._ensure_db_dir()
        self._conn: Optional[sqlite3.Connection] = None
        self._lock = threading.RLock()
        with self.cursor() as cursor:
            self._init_schema(cursor)

    def _ensure_db_dir(self):
        """Create database directory if it doesn't exist."""
        if self.db_path == ":memory:":
            return
        db_dir = os.path.dirname(self.db_path)
        if db_dir:
            os.makedirs(db_dir, exist_ok=True)

    def _get_conn(self) -> sqlite3.Connection:
        """Get database connection, creating if needed."""
        if self._conn is None:
            self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
        return self._conn

    @contextmanager
    def cursor(self):
        """
        Yield a cursor inside a transaction.

        Commits on success, rolls back and raises RepositoryError on any
        sqlite3 error.
        """
        with self._lock:
            try:
                conn = self._get_conn()
                cursor = conn.cursor()
                try:
                    yield cursor
                    conn.commit()
                except BaseException:
                    conn.rollback()
                    raise
            except sqlite3.Error as e:
                raise RepositoryError(f"{self.db_path}: {e}") from e

    def _init_schema(self, cursor):
        """Create database schema if it doesn't exist."""
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS jobs (
                id INTEGER PRIMARY KEY,
                title TEXT,
                status TEXT NOT NULL,
                assigned_to INTEGER,
                estimated_duration INTEGER,
                actual_duration INTEGER,
                created_at TEXT NOT NULL,
                started_at TEXT,
                completed_at TEXT,
                status_changed_at TEXT,
                status_changed_by INTEGER
            )
        """)
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS users (
                id INTEGER PRIMARY KEY,
                name TEXT,
                role TEXT
            )
        """)
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS job_status_history (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                job_id INTEGER NOT NULL,
                from_status TEXT,
                to_status TEXT NOT NULL,
                changed_by INTEGER,
                changed_at TEXT NOT NULL,
                duration_in_status INTEGER,
                comment TEXT,
                is_automated INTEGER DEFAULT 0,
                metadata_json TEXT DEFAULT '{}'
            )
        """)

        # Indices for fast queries
        cursor.execute(
            "CREATE INDEX IF NOT EXISTS idx_jobs_status "
            "ON jobs(status)")
        cursor.execute(
            "CREATE INDEX IF NOT EXISTS idx_job_status_history_job_id "
            "ON job_status_history(job_id, changed_at)")
        cursor.execute(
            "CREATE INDEX IF NOT EXISTS idx_job_status_history_status "
            "ON job_status_history(to_status, changed_at)")

        # History is append-only
        cursor.execute("""
            CREATE TRIGGER IF NOT EXISTS job_status_history_no_update
            BEFORE UPDATE ON job_status_history
            BEGIN
                SELECT RAISE(ABORT, 'job_status_history is append-only');
            END
        """)
        cursor.execute("""
            CREATE TRIGGER IF NOT EXISTS job_status_history_no_delete
            BEFORE DELETE ON job_status_history
            BEGIN
                SELECT RAISE(ABORT, 'job_status_history is append-only');
            END
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS metadata (
                key TEXT PRIMARY KEY,
                value TEXT
            )
        """)
        cursor.execute(
            "INSERT OR IGNORE INTO metadata (key, value) VALUES (?, ?)",
            ("schema_version", SCHEMA_VERSION))

    def schema_version(self) -> str:
        with self.cursor() as cursor:
            cursor.execute("SELECT value FROM metadata WHERE key = 'schema_version'")
            row = cursor.fetchone()
            return row[0] if row else SCHEMA_VERSION

    def close(self) -> None:
        """Close database connection."""
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None


def _dbValue(column: str, value: Any) -> Any:
    if value is None:
        return None
    if column in _TIME_COLUMNS:
        return dateTimeToDb(value)
    if isinstance(value, (JobStatus, Role)):
        return value.value
    return value


class SqliteJobRepository(JobRepository):
    """SQLite-backed job rows."""

    def __init__(self, db: Database):
        self.db = db

    def _job_to_row(self, job: Job) -> tuple:
        """Convert Job to database row tuple."""
        return (
            job.id,
            job.title,
            job.status.value,
            job.assigned_to,
            job.estimated_duration,
            job.actual_duration,
            dateTimeToDb(job.created_at),
            dateTimeToDb(job.started_at),
            dateTimeToDb(job.completed_at),
            dateTimeToDb(job.status_changed_at),
            job.status_changed_by,
        )

    def _row_to_job(self, row: sqlite3.Row) -> Job:
        """Convert database row to Job object."""
        return Job(
            id=row["id"],
            title=row["title"] or "",
            status=JobStatus(row["status"]),
            assigned_to=row["assigned_to"],
            estimated_duration=row["estimated_duration"],
            actual_duration=row["actual_duration"],
            created_at=dateTimeFromDb(row["created_at"]),
            started_at=dateTimeFromDb(row["started_at"]),
            completed_at=dateTimeFromDb(row["completed_at"]),
            status_changed_at=dateTimeFromDb(row["status_changed_at"]),
            status_changed_by=row["status_changed_by"],
        )

    def save(self, job: Job) -> None:
        """Save or update a job."""
        with self.db.cursor() as cursor:
            cursor.execute("""
                INSERT OR REPLACE INTO jobs (
                    id, title, status, assigned_to, estimated_duration,
                    actual_duration, created_at, started_at, completed_at,
                    status_changed_at, status_changed_by
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, self._job_to_row(job))

    def get(self, job_id: int) -> Optional[Job]:
        """Get a job by id."""
        with self.db.cursor() as cursor:
            cursor.execute("SELECT * FROM jobs WHERE id = ?", (job_id,))
            row = cursor.fetchone()

        if row is None:
            return None

        return self._row_to_job(row)

    def update_status(
        self,
        job_id: int,
        expected_status: JobStatus,
        changes: Dict[str, Any],
    ) -> bool:
        """Conditional update: only applies while status == expected_status."""
        unknown = set(changes) - _UPDATABLE_COLUMNS
        if unknown:
            raise ValueError(f"Cannot update job columns: {sorted(unknown)}")
        if not changes:
            return self.get(job_id) is not None

        columns = sorted(changes)
        assignments = ", ".join(f"{column} = ?" for column in columns)
        params = [_dbValue(column, changes[column]) for column in columns]
        params.extend([job_id, expected_status.value])

        with self.db.cursor() as cursor:
            cursor.execute(
                f"UPDATE jobs SET {assignments} WHERE id = ? AND status = ?",
                params)
            updated = cursor.rowcount == 1

        if not updated:
            LOG.debug("Conditional update of job %s from %s matched no row",
                      job_id, expected_status.value)
        return updated

    def update_assignee(self, job_id: int, assigned_to: Optional[int]) -> bool:
        with self.db.cursor() as cursor:
            cursor.execute(
                "UPDATE jobs SET assigned_to = ? WHERE id = ?",
                (assigned_to, job_id))
            return cursor.rowcount == 1

    def delete(self, job_id: int) -> bool:
        with self.db.cursor() as cursor:
            cursor.execute("DELETE FROM jobs WHERE id = ?", (job_id,))
            return cursor.rowcount == 1

    def count(self, status: Optional[JobStatus] = None) -> int:
        """Count jobs."""
        with self.db.cursor() as cursor:
            if status is None:
                cursor.execute("SELECT COUNT(*) FROM jobs")
            else:
                cursor.execute(
                    "SELECT COUNT(*) FROM jobs WHERE status = ?",
                    (status.value,))
            row = cursor.fetchone()
        return row[0] if row else 0

    def close(self) -> None:
        self.db.close()


class SqliteUserRepository(UserRepository):
    def __init__(self, db: Database):
        self.db = db

    def save(self, actor: Actor) -> None:
        with self.db.cursor() as cursor:
            cursor.execute(
                "INSERT OR REPLACE INTO users (id, name, role) VALUES (?, ?, ?)",
                (actor.id, actor.name, actor.role.value if actor.role else None))

    def get(self, user_id: int) -> Optional[Actor]:
        with self.db.cursor() as cursor:
            cursor.execute("SELECT * FROM users WHERE id = ?", (user_id,))
            row = cursor.fetchone()

        if row is None:
            return None

        role = None
        if row["role"]:
            try:
                role = Role.parse(row["role"])
            except ValueError:
                LOG.warning("User %s has unknown role %r", user_id, row["role"])
        return Actor(id=row["id"], role=role, name=row["name"])


class SqliteHistoryRepository(HistoryRepository):
    """Append-only job_status_history table."""

    def __init__(self, db: Database):
        self.db = db

    @staticmethod
    def _row_to_entry(row: sqlite3.Row) -> StatusHistoryEntry:
        return StatusHistoryEntry(
            id=row["id"],
            job_id=row["job_id"],
            from_status=JobStatus(row["from_status"]) if row["from_status"] else None,
            to_status=JobStatus(row["to_status"]),
            changed_by=row["changed_by"],
            changed_at=dateTimeFromDb(row["changed_at"]),
            duration_in_status=row["duration_in_status"],
            comment=row["comment"],
            is_automated=bool(row["is_automated"]),
            metadata=json.loads(row["metadata_json"]) if row["metadata_json"] else {},
        )

    def append(self, entry: StatusHistoryEntry) -> StatusHistoryEntry:
        with self.db.cursor() as cursor:
            cursor.execute("""
                INSERT INTO job_status_history (
                    job_id, from_status, to_status, changed_by, changed_at,
                    duration_in_status, comment, is_automated, metadata_json
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                entry.job_id,
                entry.from_status.value if entry.from_status else None,
                entry.to_status.value,
                entry.changed_by,
                dateTimeToDb(entry.changed_at),
                entry.duration_in_status,
                entry.comment,
                int(entry.is_automated),
                json.dumps(entry.metadata or {}),
            ))
            row_id = cursor.lastrowid

        return StatusHistoryEntry(
            id=row_id,
            job_id=entry.job_id,
            from_status=entry.from_status,
            to_status=entry.to_status,
            changed_by=entry.changed_by,
            changed_at=entry.changed_at,
            comment=entry.comment,
            duration_in_status=entry.duration_in_status,
            is_automated=entry.is_automated,
            metadata=entry.metadata,
        )

    def list_by_job(self, job_id: int) -> List[StatusHistoryEntry]:
        with self.db.cursor() as cursor:
            cursor.execute(
                "SELECT * FROM job_status_history WHERE job_id = ? "
                "ORDER BY changed_at, id",
                (job_id,))
            rows = cursor.fetchall()
        return [self._row_to_entry(row) for row in rows]
