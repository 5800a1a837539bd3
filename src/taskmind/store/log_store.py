# src/taskmind/store/log_store.py

from __future__ import annotations

import logging
import sqlite3
import time

from ..core.errors import PersistenceError, RecordUpdateError
from .base import SQLiteStore
from .models import LogRecord, NewTask, Task, TaskPriority, TaskStatus

logger = logging.getLogger(__name__)


class LogStore(SQLiteStore):
    """
    SQLite store for conversational logs and the tasks derived from them.

    The classifier relies on two guarantees from this class:
    - list_unclassified() is FIFO (created_at, then id)
    - mark_classified() is a single conditional UPDATE, so a log flips to
      classified exactly once and all its classification fields change together
    """

    def __init__(self, db_path) -> None:
        super().__init__(db_path)
        try:
            pending = self.count_logs(classified=False)
        except Exception:
            pending = -1
        logger.info("LogStore ready db=%s pending=%s", self._db_path, pending)

    # ---- row mapping ----

    @staticmethod
    def _row_to_log(row: sqlite3.Row) -> LogRecord:
        return LogRecord(
            id=int(row["id"]),
            user_input=str(row["user_input"] or ""),
            ai_response=row["ai_response"],
            is_classified=bool(row["is_classified"]),
            is_task=bool(row["is_task"]),
            task_id=int(row["task_id"]) if row["task_id"] is not None else None,
            conversation_context=row["conversation_context"],
            selected_task_id=int(row["selected_task_id"]) if row["selected_task_id"] is not None else None,
            created_at=float(row["created_at"] or 0.0),
            classified_at=float(row["classified_at"]) if row["classified_at"] is not None else None,
        )

    def _row_to_task(self, row: sqlite3.Row) -> Task:
        return Task(
            id=int(row["id"]),
            title=str(row["title"] or ""),
            description=str(row["description"] or ""),
            priority=TaskPriority.parse(row["priority"]),
            tags=self._str_to_list(row["tags"]),
            assigned_to=row["assigned_to"],
            due_date=float(row["due_date"]) if row["due_date"] is not None else None,
            status=TaskStatus.from_db(row["status"]),
            source_log_id=int(row["source_log_id"]) if row["source_log_id"] is not None else None,
            created_at=float(row["created_at"] or 0.0),
            updated_at=float(row["updated_at"] or 0.0),
        )

    # ---- logs ----

    def count_logs(self, *, classified: bool | None = None) -> int:
        with self._connection() as conn:
            if classified is None:
                cur = conn.execute("SELECT COUNT(*) FROM logs")
            else:
                cur = conn.execute(
                    "SELECT COUNT(*) FROM logs WHERE is_classified = ?",
                    (1 if classified else 0,),
                )
            (n,) = cur.fetchone()
            return int(n)

    def add_log(
        self,
        *,
        user_input: str,
        ai_response: str | None = None,
        conversation_context: str | None = None,
        selected_task_id: int | None = None,
        created_at: float | None = None,
    ) -> int:
        """Intake path: store a new, unclassified log and return its id."""
        if not user_input or not user_input.strip():
            raise ValueError("user_input is required")

        now = time.time() if created_at is None else float(created_at)

        with self._connection() as conn:
            cur = conn.execute(
                """
                INSERT INTO logs(
                    user_input, ai_response, is_classified, is_task, task_id,
                    conversation_context, selected_task_id, created_at
                )
                VALUES (?, ?, 0, 0, NULL, ?, ?, ?)
                """,
                (user_input, ai_response, conversation_context, selected_task_id, now),
            )
            conn.commit()
            rowid = cur.lastrowid
            if rowid is None:
                raise PersistenceError("SQLite did not return lastrowid for logs insert")
            log_id = int(rowid)

        logger.debug("Log added id=%s multi_turn=%s", log_id, conversation_context is not None)
        return log_id

    def get_log(self, log_id: int) -> LogRecord | None:
        with self._connection() as conn:
            row = conn.execute("SELECT * FROM logs WHERE id = ?", (int(log_id),)).fetchone()
            return self._row_to_log(row) if row else None

    def list_logs(self, limit: int = 50) -> list[LogRecord]:
        """Newest first (what a log viewer wants)."""
        with self._connection() as conn:
            rows = conn.execute(
                "SELECT * FROM logs ORDER BY created_at DESC, id DESC LIMIT ?",
                (int(limit),),
            ).fetchall()
            return [self._row_to_log(r) for r in rows]

    def list_unclassified(self, limit: int | None = None) -> list[LogRecord]:
        """Pending logs, oldest first."""
        sql = "SELECT * FROM logs WHERE is_classified = 0 ORDER BY created_at ASC, id ASC"
        params: tuple[int, ...] = ()
        if limit is not None:
            sql += " LIMIT ?"
            params = (int(limit),)

        with self._connection() as conn:
            rows = conn.execute(sql, params).fetchall()
            return [self._row_to_log(r) for r in rows]

    def mark_classified(
        self,
        log_id: int,
        *,
        is_task: bool,
        task_id: int | None,
        ai_response: str | None = None,
    ) -> LogRecord | None:
        """
        Move a pending log into its terminal state.

        Atomically transitions:
          is_classified = 0  ->  is_classified = 1, is_task, task_id, classified_at

        ai_response is only written when the stored one is empty.
        Returns the updated log, or None if the log does not exist or was
        already classified. Raises RecordUpdateError if the write fails.
        """
        now = time.time()
        try:
            with self._connection() as conn:
                cur = conn.execute(
                    """
                    UPDATE logs
                    SET is_classified = 1,
                        is_task = ?,
                        task_id = ?,
                        classified_at = ?,
                        ai_response = CASE
                            WHEN ai_response IS NULL OR TRIM(ai_response) = ''
                                THEN COALESCE(?, ai_response)
                            ELSE ai_response
                        END
                    WHERE id = ?
                      AND is_classified = 0
                    """,
                    (1 if is_task else 0, task_id, now, ai_response, int(log_id)),
                )
                conn.commit()
                if cur.rowcount != 1:
                    return None
                row = conn.execute("SELECT * FROM logs WHERE id = ?", (int(log_id),)).fetchone()
        except PersistenceError as e:
            raise RecordUpdateError(f"mark_classified failed log_id={log_id}: {e}", int(log_id)) from e

        return self._row_to_log(row) if row else None

    # ---- tasks ----

    def count_tasks(self) -> int:
        with self._connection() as conn:
            (n,) = conn.execute("SELECT COUNT(*) FROM tasks").fetchone()
            return int(n)

    def create_task(self, new_task: NewTask) -> Task:
        if not new_task.title or not new_task.title.strip():
            raise ValueError("title is required")
        if not new_task.description or not new_task.description.strip():
            raise ValueError("description is required")

        now = time.time()
        with self._connection() as conn:
            cur = conn.execute(
                """
                INSERT INTO tasks(
                    title, description, priority, tags, assigned_to,
                    due_date, status, source_log_id, created_at, updated_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    new_task.title.strip(),
                    new_task.description.strip(),
                    new_task.priority.value,
                    self._list_to_str(new_task.tags),
                    new_task.assigned_to,
                    new_task.due_date,
                    new_task.status.value,
                    new_task.source_log_id,
                    now,
                    now,
                ),
            )
            conn.commit()
            rowid = cur.lastrowid
            if rowid is None:
                raise PersistenceError("SQLite did not return lastrowid for tasks insert")
            row = conn.execute("SELECT * FROM tasks WHERE id = ?", (int(rowid),)).fetchone()

        task = self._row_to_task(row)
        logger.debug(
            "Task added id=%s priority=%s assigned_to=%s",
            task.id,
            task.priority.value,
            task.assigned_to,
        )
        return task

    def get_task(self, task_id: int) -> Task | None:
        with self._connection() as conn:
            row = conn.execute("SELECT * FROM tasks WHERE id = ?", (int(task_id),)).fetchone()
            return self._row_to_task(row) if row else None

    def list_tasks(self, limit: int = 50) -> list[Task]:
        with self._connection() as conn:
            rows = conn.execute(
                "SELECT * FROM tasks ORDER BY created_at DESC, id DESC LIMIT ?",
                (int(limit),),
            ).fetchall()
            return [self._row_to_task(r) for r in rows]

    def delete_task(self, task_id: int) -> Task | None:
        """
        Delete a task and release its assignee's workload slot (-1, floored at 0).

        Both writes share one transaction. Logs pointing at the task keep their
        task_id (weak reference).
        """
        with self._connection() as conn:
            row = conn.execute("SELECT * FROM tasks WHERE id = ?", (int(task_id),)).fetchone()
            if row is None:
                return None
            task = self._row_to_task(row)

            conn.execute("DELETE FROM tasks WHERE id = ?", (int(task_id),))
            if task.assigned_to:
                conn.execute(
                    """
                    UPDATE team_members
                    SET current_workload = MAX(0, current_workload - 1)
                    WHERE name = ?
                    """,
                    (task.assigned_to,),
                )
            conn.commit()

        logger.info("Task %s deleted (assigned_to=%s)", task.id, task.assigned_to)
        return task
