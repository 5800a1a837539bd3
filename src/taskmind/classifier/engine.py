# src/taskmind/classifier/engine.py

from __future__ import annotations

"""
Classification engine.

One drain() call:
- fetches every unclassified log (oldest first),
- snapshots the team roster once,
- asks the oracle about each log in turn,
- creates a task + bumps the assignee's workload on a positive verdict,
- flips the log to its terminal classified state.

Failure policy per log:
- oracle / task-creation failure -> mark classified without a task (never retried)
- failure to re-read the log or write the classified flag -> leave pending
  (retried by the next drain)
"""

import asyncio
import logging
from collections.abc import Awaitable
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TypeVar

from ..core.errors import PersistenceError, RecordUpdateError, TransientOracleError
from ..core.ports import ClassifierOracle, DrainReport, LogRepo, TaskData, TeamRepo
from ..store.models import LogRecord, NewTask, TaskPriority, TaskStatus, TeamMember
from .history import MultiTurnDispatch, resolve_dispatch

logger = logging.getLogger(__name__)

# Single-turn verdicts below this confidence never create a task.
CONFIDENCE_THRESHOLD = 0.7

T = TypeVar("T")


@dataclass(slots=True, frozen=True)
class Classification:
    """Oracle verdict reduced to what the engine acts on."""

    is_task: bool
    task_data: TaskData | None
    response_text: str | None
    mode: str


def parse_due_date(raw: str | None) -> float | None:
    """ISO-like date/datetime -> epoch seconds. Naive values are taken as UTC."""
    s = (raw or "").strip()
    if not s or s.lower() in {"null", "none"}:
        return None
    try:
        dt = datetime.fromisoformat(s.replace("Z", "+00:00"))
    except ValueError:
        logger.debug("Unparseable due date %r; leaving it empty", s)
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.timestamp()


def normalize_task_data(data: TaskData, *, source_log_id: int | None = None) -> NewTask:
    tags: list[str] = []
    for t in data.tags or ():
        tag = str(t).strip()
        if tag and tag not in tags:
            tags.append(tag)

    assigned_to = (data.assigned_to or "").strip() or None

    return NewTask(
        title=(data.title or "").strip(),
        description=(data.description or "").strip(),
        priority=TaskPriority.parse(data.priority),
        tags=tuple(tags),
        assigned_to=assigned_to,
        due_date=parse_due_date(data.due_date),
        status=TaskStatus.PENDING,
        source_log_id=source_log_id,
    )


class ClassificationEngine:
    def __init__(
        self,
        logs: LogRepo,
        team: TeamRepo,
        oracle: ClassifierOracle,
        *,
        oracle_timeout_seconds: float | None = 30.0,
        max_history_messages: int = 20,
        max_message_chars: int = 2000,
    ) -> None:
        self._logs = logs
        self._team = team
        self._oracle = oracle
        self._oracle_timeout = oracle_timeout_seconds if oracle_timeout_seconds and oracle_timeout_seconds > 0 else None
        self._max_history_messages = int(max_history_messages)
        self._max_message_chars = int(max_message_chars)

    async def drain(self) -> DrainReport:
        """
        Process the current backlog once and return.

        Errors from list_unclassified() / list_team_members() propagate: nothing
        has been touched yet, so every log stays pending for the next tick.
        """
        report = DrainReport()

        records = self._logs.list_unclassified()
        if not records:
            return report

        # Roster snapshot for the whole batch; changes made meanwhile are seen next drain.
        roster = self._team.list_team_members()

        logger.info("Processing %d unclassified log(s) (roster=%d)", len(records), len(roster))

        for record in records:
            report.log_ids.append(record.id)
            try:
                created = await self.classify_record(record, roster)
            except RecordUpdateError:
                logger.exception("Log %s could not be read or marked classified; it stays pending", record.id)
                report.deferred += 1
                continue
            except Exception:
                logger.exception("Error processing log %s; marking classified without a task", record.id)
                report.failed += 1
                if self._mark_failed(record):
                    report.processed += 1
                else:
                    report.deferred += 1
                continue

            report.processed += 1
            if created:
                report.tasks_created += 1

        logger.info(
            "Finished processing %d log(s): tasks_created=%d failed=%d deferred=%d",
            len(records),
            report.tasks_created,
            report.failed,
            report.deferred,
        )
        return report

    async def classify_record(self, record: LogRecord, roster: list[TeamMember]) -> bool:
        """
        Classify one log and materialize its task. Returns True if a task was created.

        The log is re-read first so a stale or repeated call never classifies
        (or increments workload for) the same log twice.
        """
        try:
            current = self._logs.get_log(record.id)
        except PersistenceError as e:
            # Nothing was decided yet: the log must stay pending.
            raise RecordUpdateError(f"re-read failed log_id={record.id}: {e}", record.id) from e
        if current is None:
            logger.warning("Log %s disappeared before classification", record.id)
            return False
        if current.is_classified:
            logger.debug("Log %s already classified; skipping", record.id)
            return False

        classification = await self._consult_oracle(current, roster)

        is_task = False
        task_id: int | None = None

        if classification.is_task and classification.task_data is not None:
            new_task = normalize_task_data(classification.task_data, source_log_id=current.id)
            task = self._logs.create_task(new_task)
            is_task = True
            task_id = task.id
            logger.info('Created task %s from log %s: "%s"', task.id, current.id, task.title)

            if task.assigned_to:
                self._bump_workload(task.assigned_to, log_id=current.id)
        elif classification.is_task:
            logger.info("Log %s: positive verdict without task data; no task created", current.id)

        updated = self._logs.mark_classified(
            current.id,
            is_task=is_task,
            task_id=task_id,
            ai_response=classification.response_text,
        )
        if updated is None:
            logger.warning("Log %s was classified by someone else meanwhile", current.id)

        return is_task

    async def _consult_oracle(self, record: LogRecord, roster: list[TeamMember]) -> Classification:
        dispatch = resolve_dispatch(
            record,
            max_messages=self._max_history_messages,
            max_chars=self._max_message_chars,
        )

        if isinstance(dispatch, MultiTurnDispatch):
            mverdict = await self._bounded(
                self._oracle.classify_multi_turn(list(dispatch.history), roster),
                log_id=record.id,
            )
            logger.info(
                "Log %s classification (multi-turn): should_create_task=%s needs_more_info=%s",
                record.id,
                mverdict.should_create_task,
                mverdict.needs_more_info,
            )
            return Classification(
                is_task=bool(mverdict.should_create_task),
                task_data=mverdict.task_data,
                response_text=(mverdict.response or "").strip() or None,
                mode="multi_turn",
            )

        sverdict = await self._bounded(
            self._oracle.classify_single_turn(dispatch.turn, roster),
            log_id=record.id,
        )
        logger.info(
            "Log %s classification: is_task=%s confidence=%.2f reasoning=%r",
            record.id,
            sverdict.is_task,
            sverdict.confidence,
            sverdict.reasoning[:200],
        )
        return Classification(
            is_task=bool(sverdict.is_task) and sverdict.confidence >= CONFIDENCE_THRESHOLD,
            task_data=sverdict.task_data,
            response_text=(sverdict.reasoning or "").strip() or None,
            mode="single_turn",
        )

    async def _bounded(self, call: Awaitable[T], *, log_id: int) -> T:
        if self._oracle_timeout is None:
            return await call
        try:
            return await asyncio.wait_for(call, timeout=self._oracle_timeout)
        except asyncio.TimeoutError as e:
            raise TransientOracleError(
                f"oracle call timed out after {self._oracle_timeout:.1f}s (log_id={log_id})"
            ) from e

    def _bump_workload(self, name: str, *, log_id: int) -> None:
        # A lost increment is not rolled back or reconciled: the task stays.
        try:
            found = self._team.increment_workload(name, 1)
        except Exception:
            logger.exception("Workload increment failed for %s (log %s)", name, log_id)
            return
        if not found:
            logger.warning("Assignee %r is not on the team; workload unchanged (log %s)", name, log_id)

    def _mark_failed(self, record: LogRecord) -> bool:
        try:
            self._logs.mark_classified(record.id, is_task=False, task_id=None)
            return True
        except Exception:
            logger.exception("Could not mark failed log %s; it stays pending", record.id)
            return False
