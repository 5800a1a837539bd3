# tests/fakes.py

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any

from taskmind.core.errors import PersistenceError, RecordUpdateError
from taskmind.core.ports import ChatMessage, DrainReport, MultiTurnVerdict, SingleTurn, SingleTurnVerdict
from taskmind.store.log_store import LogStore
from taskmind.store.models import LogRecord, TeamMember
from taskmind.store.team_store import TeamStore

NO_TASK = SingleTurnVerdict(is_task=False, confidence=0.95, reasoning="small talk")


class FakeOracle:
    """
    Scripted classifier oracle.

    - single: user_input -> verdict (or exception instance to raise)
    - multi: last user message -> verdict (or exception instance)
    - gate: when set, every call waits on it before answering
    - calls: (mode, key) in the order the engine asked
    """

    def __init__(
        self,
        single: dict[str, Any] | None = None,
        multi: dict[str, Any] | None = None,
        *,
        default_single: SingleTurnVerdict = NO_TASK,
    ) -> None:
        self.single = dict(single or {})
        self.multi = dict(multi or {})
        self.default_single = default_single
        self.calls: list[tuple[str, str]] = []
        self.rosters: list[list[TeamMember]] = []
        self.gate: asyncio.Event | None = None

    async def _answer(self, result: Any) -> Any:
        if self.gate is not None:
            await self.gate.wait()
        if isinstance(result, BaseException):
            raise result
        return result

    async def classify_single_turn(self, turn: SingleTurn, roster: list[TeamMember]) -> SingleTurnVerdict:
        self.calls.append(("single", turn.user_input))
        self.rosters.append(roster)
        return await self._answer(self.single.get(turn.user_input, self.default_single))

    async def classify_multi_turn(self, history: list[ChatMessage], roster: list[TeamMember]) -> MultiTurnVerdict:
        last_user = next((m["content"] for m in reversed(history) if m["role"] == "user"), "")
        self.calls.append(("multi", last_user))
        self.rosters.append(roster)
        result = self.multi.get(
            last_user,
            MultiTurnVerdict(should_create_task=False, response="ok"),
        )
        return await self._answer(result)


class CountingTeam:
    """TeamStore wrapper that counts roster reads and can fail on demand."""

    def __init__(
        self,
        inner: TeamStore,
        *,
        fail_roster: bool = False,
        fail_increment: bool = False,
    ) -> None:
        self.inner = inner
        self.fail_roster = fail_roster
        self.fail_increment = fail_increment
        self.roster_reads = 0
        self.increments: list[tuple[str, int]] = []

    def list_team_members(self) -> list[TeamMember]:
        self.roster_reads += 1
        if self.fail_roster:
            raise PersistenceError("roster unavailable")
        return self.inner.list_team_members()

    def increment_workload(self, name: str, delta: int) -> bool:
        self.increments.append((name, delta))
        if self.fail_increment:
            raise PersistenceError("ledger unavailable")
        return self.inner.increment_workload(name, delta)


class FlakyLogStore(LogStore):
    """LogStore whose mark_classified fails for the first `failures` calls."""

    def __init__(self, db_path, *, failures: int = 1) -> None:
        super().__init__(db_path)
        self.failures_left = failures

    def mark_classified(self, log_id: int, **kwargs: Any) -> LogRecord | None:
        if self.failures_left > 0:
            self.failures_left -= 1
            raise RecordUpdateError("disk I/O error", log_id)
        return super().mark_classified(log_id, **kwargs)


class LockedReadLogStore(LogStore):
    """LogStore whose get_log fails for the first `failures` calls."""

    def __init__(self, db_path, *, failures: int = 1) -> None:
        super().__init__(db_path)
        self.failures_left = failures

    def get_log(self, log_id: int) -> LogRecord | None:
        if self.failures_left > 0:
            self.failures_left -= 1
            raise PersistenceError("database is locked")
        return super().get_log(log_id)


@dataclass
class FakeEngine:
    """Drainer for scheduler tests: optional gate, optional scripted failures."""

    gate: asyncio.Event | None = None
    fail_first: int = 0
    started: int = 0
    finished: int = 0
    active: int = 0
    max_active: int = 0
    errors: list[str] = field(default_factory=list)

    async def drain(self) -> DrainReport:
        self.started += 1
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.gate is not None:
                await self.gate.wait()
            if self.fail_first > 0:
                self.fail_first -= 1
                self.errors.append("boom")
                raise RuntimeError("boom")
            self.finished += 1
            return DrainReport()
        finally:
            self.active -= 1
