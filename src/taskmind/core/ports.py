# src/taskmind/core/ports.py

"""
Ports (interfaces) used by the classification engine.

The engine depends on Protocols instead of concrete implementations.
This keeps storage/LLM providers swappable and makes testing easier.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Awaitable, Protocol

from ..store.models import LogRecord, NewTask, Task, TeamMember

ChatMessage = dict[str, str]
# OpenAI-style chat messages: {"role": "...", "content": "..."}.


@dataclass(slots=True, frozen=True)
class TaskData:
    """Raw task fields as proposed by the oracle (not normalized yet)."""

    title: str
    description: str
    priority: str | None = None
    tags: tuple[str, ...] | None = None
    assigned_to: str | None = None
    due_date: str | None = None


@dataclass(slots=True, frozen=True)
class SingleTurn:
    user_input: str
    ai_response: str | None


@dataclass(slots=True, frozen=True)
class SingleTurnVerdict:
    is_task: bool
    confidence: float
    reasoning: str
    task_data: TaskData | None = None


@dataclass(slots=True, frozen=True)
class MultiTurnVerdict:
    should_create_task: bool
    response: str
    needs_more_info: bool = False
    task_data: TaskData | None = None


class LogRepo(Protocol):
    def list_unclassified(self, limit: int | None = None) -> list[LogRecord]: ...
    def get_log(self, log_id: int) -> LogRecord | None: ...
    def mark_classified(
            self,
            log_id: int,
            *,
            is_task: bool,
            task_id: int | None,
            ai_response: str | None = None,
    ) -> LogRecord | None: ...
    def create_task(self, new_task: NewTask) -> Task: ...


class TeamRepo(Protocol):
    """Roster snapshot + workload ledger."""
    def list_team_members(self) -> list[TeamMember]: ...
    def increment_workload(self, name: str, delta: int) -> bool: ...


class ClassifierOracle(Protocol):
    """
    External classifier. Both calls may be slow and may raise
    TransientOracleError / MalformedOracleResponse.
    """

    def classify_single_turn(
            self,
            turn: SingleTurn,
            roster: list[TeamMember],
    ) -> Awaitable[SingleTurnVerdict]: ...

    def classify_multi_turn(
            self,
            history: list[ChatMessage],
            roster: list[TeamMember],
    ) -> Awaitable[MultiTurnVerdict]: ...


@dataclass(slots=True)
class DrainReport:
    """What one drain did (returned by the engine, logged by the loop)."""

    processed: int = 0
    tasks_created: int = 0
    failed: int = 0
    deferred: int = 0
    log_ids: list[int] = field(default_factory=list)
