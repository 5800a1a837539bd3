# src/taskmind/llm/offline.py

from __future__ import annotations

import re

from ..core.ports import ChatMessage, MultiTurnVerdict, SingleTurn, SingleTurnVerdict, TaskData
from ..store.models import TeamMember

_TASK_PATTERNS = (
    re.compile(r"\b(create|add|new|make)\s+(a\s+)?task\b", re.IGNORECASE),
    re.compile(r"\b(todo|to-do)\b", re.IGNORECASE),
    re.compile(r"\bremind me to\b", re.IGNORECASE),
)
_URGENT = re.compile(r"\b(urgent|asap|critical|immediately)\b", re.IGNORECASE)
_TASK_PREFIX = re.compile(
    r"^\s*(please\s+)?((create|add|make)\s+(a\s+)?(new\s+)?task\s+(to\s+)?|new\s+task:?\s*|todo:?\s*|remind me to\s+)",
    re.IGNORECASE,
)


def _looks_like_task(text: str) -> bool:
    return any(p.search(text or "") for p in _TASK_PATTERNS)


def _task_from_text(text: str) -> TaskData:
    body = _TASK_PREFIX.sub("", text.strip()).strip() or text.strip()
    title = body[:1].upper() + body[1:]
    if len(title) > 100:
        title = title[:99] + "…"
    return TaskData(
        title=title,
        description=text.strip(),
        priority="high" if _URGENT.search(text) else None,
    )


class OfflineClassifier:
    """
    Offline deterministic classifier used for demos when no external API is configured.

    Behavior:
    - explicit task phrasing ("create a task to ...", "todo: ...") -> task, confidence 0.9
    - anything else -> not a task, confidence 0.9
    - never assigns anyone
    """

    async def classify_single_turn(self, turn: SingleTurn, roster: list[TeamMember]) -> SingleTurnVerdict:
        if _looks_like_task(turn.user_input):
            return SingleTurnVerdict(
                is_task=True,
                confidence=0.9,
                reasoning="Offline mode: explicit task request.",
                task_data=_task_from_text(turn.user_input),
            )
        return SingleTurnVerdict(
            is_task=False,
            confidence=0.9,
            reasoning="Offline mode: no task request detected.",
        )

    async def classify_multi_turn(self, history: list[ChatMessage], roster: list[TeamMember]) -> MultiTurnVerdict:
        last_user = ""
        for m in reversed(history):
            if m.get("role") == "user":
                last_user = m.get("content", "")
                break

        if _looks_like_task(last_user):
            task = _task_from_text(last_user)
            return MultiTurnVerdict(
                should_create_task=True,
                response=f'Offline demo mode: created task "{task.title}".',
                task_data=task,
            )
        return MultiTurnVerdict(
            should_create_task=False,
            response="Offline demo mode: no external LLM is configured.",
        )
