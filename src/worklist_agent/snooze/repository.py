"""SQLite-backed store for snoozed tasks.

Snoozes must survive restarts, so they live in a small local database.
Expiry is evaluated when reading: a record whose ``wake_at`` has passed is
simply no longer active. Deleting expired rows is housekeeping only.
"""

from __future__ import annotations

import sqlite3
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path

import structlog

from worklist_agent.exceptions import InvalidDurationError
from worklist_agent.models import SnoozedRecord, TaskKey, TaskSource
from worklist_agent.utils import ensure_utc, now_utc

logger = structlog.get_logger()


_SCHEMA_VERSION = 1

# Seconds a writer waits on a locked database before giving up.
_BUSY_TIMEOUT = 10.0


def _to_db(dt: datetime) -> str:
    # Fixed-width UTC text so lexical order in SQL equals time order.
    return ensure_utc(dt).isoformat(timespec="microseconds")


def _from_db(value: str) -> datetime:
    return ensure_utc(datetime.fromisoformat(value))


class SnoozeStore:
    """Repository for snoozed task records keyed by (source, task_id)."""

    def __init__(self, db_path: Path, clock: Callable[[], datetime] | None = None) -> None:
        """Create a store.

        Args:
            db_path: Path to the SQLite database file.
            clock: Returns the current time; defaults to UTC wall clock.
        """

        self._db_path = db_path
        self._clock = clock or now_utc

    def initialize(self) -> None:
        """Create or verify the snooze schema."""

        self._db_path.parent.mkdir(parents=True, exist_ok=True)

        with self._connect() as conn:
            conn.execute("PRAGMA journal_mode=WAL;")

            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS _schema_meta (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                );
                """
            )

            current_version = self._get_schema_version(conn)
            if current_version is None:
                self._create_schema_v1(conn)
                self._set_schema_version(conn, _SCHEMA_VERSION)
                conn.commit()
                logger.info("snooze_schema_created", version=_SCHEMA_VERSION)
                return

            if current_version != _SCHEMA_VERSION:
                raise RuntimeError(
                    f"Unsupported schema version {current_version}; expected {_SCHEMA_VERSION}"
                )

    def upsert_snooze(
        self,
        source: TaskSource,
        task_id: str,
        wake_at: datetime,
        now: datetime | None = None,
    ) -> SnoozedRecord:
        """Snooze a task until ``wake_at``, replacing any earlier record.

        Raises:
            InvalidDurationError: If ``wake_at`` is not strictly in the future.
        """

        now = ensure_utc(now or self._clock())
        wake_at = ensure_utc(wake_at)
        if wake_at <= now:
            raise InvalidDurationError(
                f"wake time {wake_at.isoformat()} is not after {now.isoformat()}"
            )

        record = SnoozedRecord(source=source, task_id=task_id, wake_at=wake_at, created_at=now)

        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO snoozed_tasks (source, task_id, wake_at, created_at)
                VALUES (:source, :task_id, :wake_at, :created_at)
                ON CONFLICT(source, task_id) DO UPDATE SET
                    wake_at=excluded.wake_at,
                    created_at=excluded.created_at
                """,
                {
                    "source": record.source.value,
                    "task_id": record.task_id,
                    "wake_at": _to_db(record.wake_at),
                    "created_at": _to_db(record.created_at),
                },
            )
            conn.commit()

        logger.info(
            "snooze_upserted",
            source=source.value,
            task_id=task_id,
            wake_at=record.wake_at.isoformat(),
        )
        return record

    def active_snooze_keys(self, now: datetime | None = None) -> set[TaskKey]:
        """Return the keys of every snooze with ``wake_at`` after ``now``."""

        return {record.key for record in self.list_active(now)}

    def list_active(self, now: datetime | None = None) -> list[SnoozedRecord]:
        """Return active snoozes, soonest wake time first."""

        now = ensure_utc(now or self._clock())
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT source, task_id, wake_at, created_at
                FROM snoozed_tasks
                WHERE wake_at > ?
                ORDER BY wake_at ASC, source ASC, task_id ASC;
                """,
                (_to_db(now),),
            ).fetchall()

        records: list[SnoozedRecord] = []
        for row in rows:
            record = self._row_to_record(row)
            if record is not None:
                records.append(record)
        return records

    def get_snooze(self, source: TaskSource, task_id: str) -> SnoozedRecord | None:
        """Return the stored record for a task, active or expired."""

        with self._connect() as conn:
            row = conn.execute(
                """
                SELECT source, task_id, wake_at, created_at
                FROM snoozed_tasks
                WHERE source = ? AND task_id = ?;
                """,
                (source.value, task_id),
            ).fetchone()
        return None if row is None else self._row_to_record(row)

    def remove_snooze(self, source: TaskSource, task_id: str) -> bool:
        """Delete a task's snooze. Returns whether a record existed."""

        with self._connect() as conn:
            cursor = conn.execute(
                "DELETE FROM snoozed_tasks WHERE source = ? AND task_id = ?;",
                (source.value, task_id),
            )
            conn.commit()
            removed = cursor.rowcount > 0

        logger.info("snooze_removed", source=source.value, task_id=task_id, removed=removed)
        return removed

    def cleanup_expired(self, before: datetime | None = None) -> int:
        """Delete records whose ``wake_at`` is at or before ``before``."""

        before = ensure_utc(before or self._clock())
        with self._connect() as conn:
            cursor = conn.execute(
                "DELETE FROM snoozed_tasks WHERE wake_at <= ?;",
                (_to_db(before),),
            )
            conn.commit()
            deleted = cursor.rowcount

        logger.info("snooze_cleanup_complete", before=before.isoformat(), deleted=deleted)
        return deleted

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self._db_path, timeout=_BUSY_TIMEOUT)
        try:
            conn.row_factory = sqlite3.Row
            yield conn
        finally:
            conn.close()

    def _get_schema_version(self, conn: sqlite3.Connection) -> int | None:
        row = conn.execute(
            "SELECT value FROM _schema_meta WHERE key = 'schema_version'"
        ).fetchone()
        if row is None:
            return None
        return int(row[0])

    def _set_schema_version(self, conn: sqlite3.Connection, version: int) -> None:
        conn.execute(
            "INSERT OR REPLACE INTO _schema_meta(key, value) VALUES('schema_version', ?) ",
            (str(version),),
        )

    def _create_schema_v1(self, conn: sqlite3.Connection) -> None:
        conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS snoozed_tasks (
                source TEXT NOT NULL,
                task_id TEXT NOT NULL,
                wake_at TEXT NOT NULL,
                created_at TEXT NOT NULL,
                PRIMARY KEY (source, task_id)
            );

            CREATE INDEX IF NOT EXISTS idx_snoozed_tasks_wake_at
                ON snoozed_tasks(wake_at);
            """
        )

    def _row_to_record(self, row: sqlite3.Row) -> SnoozedRecord | None:
        try:
            source = TaskSource(row["source"])
        except ValueError:
            # Written by a build that knew about a source this one does not.
            logger.warning("snooze_unknown_source", source=row["source"], task_id=row["task_id"])
            return None

        return SnoozedRecord(
            source=source,
            task_id=row["task_id"],
            wake_at=_from_db(row["wake_at"]),
            created_at=_from_db(row["created_at"]),
        )
