# src/taskmind/store/base.py

from __future__ import annotations

import contextlib
import json
import logging
import sqlite3
from collections.abc import Iterator
from pathlib import Path
from typing import Any

from ..core.errors import PersistenceError

logger = logging.getLogger(__name__)


class SQLiteStore:
    """
    Shared SQLite plumbing for the log/task store and the team store.

    The schema is intentionally simple and migration-safe:
    - create tables if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed

    Thread-safety:
    - each call opens its own SQLite connection
    """

    def __init__(self, db_path: str | Path = "taskmind.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()

    @property
    def db_path(self) -> Path:
        return self._db_path

    def close(self) -> None:
        """Compatibility hook for shutdown (no persistent connections to close)."""
        return

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        self._configure_conn(conn)
        return conn

    @staticmethod
    def _configure_conn(conn: sqlite3.Connection) -> None:
        with contextlib.suppress(Exception):
            conn.execute("PRAGMA journal_mode=WAL")

    @contextlib.contextmanager
    def _connection(self) -> Iterator[sqlite3.Connection]:
        """Short-lived connection; sqlite3 errors surface as PersistenceError."""
        try:
            conn = self._get_conn()
        except sqlite3.Error as e:
            raise PersistenceError(f"cannot open {self._db_path}: {e}") from e
        try:
            yield conn
        except sqlite3.Error as e:
            with contextlib.suppress(Exception):
                conn.rollback()
            raise PersistenceError(str(e)) from e
        finally:
            conn.close()

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            cur = conn.cursor()

            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS logs (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_input TEXT NOT NULL,
                    ai_response TEXT,
                    is_classified INTEGER NOT NULL DEFAULT 0,
                    is_task INTEGER NOT NULL DEFAULT 0,
                    task_id INTEGER,
                    conversation_context TEXT,
                    selected_task_id INTEGER,
                    created_at REAL NOT NULL,
                    classified_at REAL
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS tasks (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    title TEXT NOT NULL,
                    description TEXT NOT NULL,
                    priority TEXT NOT NULL DEFAULT 'medium',
                    tags TEXT NOT NULL DEFAULT '[]',
                    assigned_to TEXT,
                    due_date REAL,
                    status TEXT NOT NULL DEFAULT 'pending',
                    source_log_id INTEGER,
                    created_at REAL NOT NULL,
                    updated_at REAL NOT NULL
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS team_members (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL UNIQUE,
                    skills TEXT NOT NULL DEFAULT '[]',
                    availability TEXT NOT NULL DEFAULT 'available',
                    current_workload INTEGER NOT NULL DEFAULT 0
                )
                """
            )

            # Migrations (safe): add missing columns to older databases.
            def add_cols(table: str, wanted: dict[str, str]) -> None:
                cur.execute(f"PRAGMA table_info({table})")
                cols = {row["name"] for row in cur.fetchall()}
                for name, decl in wanted.items():
                    if name in cols:
                        continue
                    cur.execute(f"ALTER TABLE {table} ADD COLUMN {name} {decl}")
                    logger.info("Store migration: added column %s.%s", table, name)

            add_cols(
                "logs",
                {
                    "conversation_context": "TEXT",
                    "selected_task_id": "INTEGER",
                    "classified_at": "REAL",
                },
            )
            add_cols("tasks", {"source_log_id": "INTEGER"})
            add_cols("team_members", {"availability": "TEXT NOT NULL DEFAULT 'available'"})

            cur.execute("CREATE INDEX IF NOT EXISTS idx_logs_pending ON logs(is_classified, created_at)")
            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_assignee ON tasks(assigned_to)")

            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def _list_to_str(items: list[str] | tuple[str, ...] | None) -> str:
        if not items:
            return "[]"
        try:
            return json.dumps(list(items), ensure_ascii=False)
        except Exception:
            logger.exception("Failed to JSON-encode list; storing [].")
            return "[]"

    @staticmethod
    def _str_to_list(s: str | None) -> list[str]:
        if not s:
            return []
        try:
            val: Any = json.loads(s)
        except Exception:
            return []
        if not isinstance(val, list):
            return []
        return [str(x) for x in val]
