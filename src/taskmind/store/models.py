# src/taskmind/store/models.py

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum


class TaskStatus(StrEnum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"

    @classmethod
    def from_db(cls, raw: str | None) -> TaskStatus:
        if not raw:
            return cls.PENDING
        try:
            return cls(raw)
        except Exception:
            return cls.PENDING


class TaskPriority(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @classmethod
    def parse(cls, raw: object) -> TaskPriority:
        """Lenient parse: anything unknown (or missing) means MEDIUM."""
        s = str(raw or "").strip().lower()
        try:
            return cls(s)
        except Exception:
            return cls.MEDIUM


class Availability(StrEnum):
    AVAILABLE = "available"
    BUSY = "busy"
    UNAVAILABLE = "unavailable"

    @classmethod
    def from_db(cls, raw: str | None) -> Availability:
        try:
            return cls(raw or "available")
        except Exception:
            return cls.AVAILABLE


@dataclass(slots=True)
class LogRecord:
    """
    A logged conversational turn.

    is_classified flips false -> true exactly once; after that the row is terminal.
    task_id is a weak reference (deleting the task does not touch the log).
    """

    id: int
    user_input: str
    ai_response: str | None
    is_classified: bool
    is_task: bool
    task_id: int | None
    conversation_context: str | None
    selected_task_id: int | None
    created_at: float
    classified_at: float | None = None


@dataclass(slots=True)
class Task:
    id: int
    title: str
    description: str
    priority: TaskPriority
    tags: list[str]
    assigned_to: str | None
    due_date: float | None
    status: TaskStatus
    source_log_id: int | None
    created_at: float
    updated_at: float


@dataclass(slots=True, frozen=True)
class NewTask:
    """Normalized task fields ready to be inserted."""

    title: str
    description: str
    priority: TaskPriority = TaskPriority.MEDIUM
    tags: tuple[str, ...] = ()
    assigned_to: str | None = None
    due_date: float | None = None
    status: TaskStatus = TaskStatus.PENDING
    source_log_id: int | None = None


@dataclass(slots=True)
class TeamMember:
    id: int
    name: str
    skills: list[str] = field(default_factory=list)
    availability: Availability = Availability.AVAILABLE
    current_workload: int = 0
