# src/taskmind/store/team_store.py

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Iterable

from .base import SQLiteStore
from .models import Availability, TeamMember

logger = logging.getLogger(__name__)

DEFAULT_TEAM: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("John Doe", ("frontend", "react", "javascript", "ui/ux")),
    ("Jane Smith", ("backend", "nodejs", "database", "api")),
    ("Mike Johnson", ("devops", "docker", "kubernetes", "deployment")),
    ("Sarah Williams", ("fullstack", "testing", "debugging", "code-review")),
)


class TeamStore(SQLiteStore):
    """
    Team roster + workload ledger.

    current_workload is only ever changed through increment_workload(), which is
    a single UPDATE with a delta (never read-modify-write from a cached roster).
    """

    def _row_to_member(self, row: sqlite3.Row) -> TeamMember:
        return TeamMember(
            id=int(row["id"]),
            name=str(row["name"]),
            skills=self._str_to_list(row["skills"]),
            availability=Availability.from_db(row["availability"]),
            current_workload=int(row["current_workload"] or 0),
        )

    def add_team_member(
        self,
        *,
        name: str,
        skills: Iterable[str] = (),
        availability: Availability = Availability.AVAILABLE,
    ) -> int:
        name = (name or "").strip()
        if not name:
            raise ValueError("name is required")

        with self._connection() as conn:
            cur = conn.execute(
                "INSERT INTO team_members(name, skills, availability, current_workload) VALUES (?, ?, ?, 0)",
                (name, self._list_to_str([s for s in skills if s]), availability.value),
            )
            conn.commit()
            member_id = int(cur.lastrowid or 0)

        logger.info("Team member added id=%s name=%s", member_id, name)
        return member_id

    def get_team_member(self, name: str) -> TeamMember | None:
        with self._connection() as conn:
            row = conn.execute("SELECT * FROM team_members WHERE name = ?", (name,)).fetchone()
            return self._row_to_member(row) if row else None

    def list_team_members(self) -> list[TeamMember]:
        with self._connection() as conn:
            rows = conn.execute("SELECT * FROM team_members ORDER BY id ASC").fetchall()
            return [self._row_to_member(r) for r in rows]

    def increment_workload(self, name: str, delta: int) -> bool:
        """
        Atomically apply `delta` to a member's workload (floored at 0).

        Returns False if no member with that name exists.
        """
        with self._connection() as conn:
            cur = conn.execute(
                """
                UPDATE team_members
                SET current_workload = MAX(0, current_workload + ?)
                WHERE name = ?
                """,
                (int(delta), name),
            )
            conn.commit()
            return cur.rowcount == 1

    def seed_default_team(self) -> list[TeamMember]:
        """Replace the roster with the default four-person team."""
        with self._connection() as conn:
            conn.execute("DELETE FROM team_members")
            conn.executemany(
                "INSERT INTO team_members(name, skills, availability, current_workload) VALUES (?, ?, 'available', 0)",
                [(name, self._list_to_str(skills)) for name, skills in DEFAULT_TEAM],
            )
            conn.commit()

        members = self.list_team_members()
        logger.info("Seeded default team: %d members", len(members))
        return members
