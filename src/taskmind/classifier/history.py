# src/taskmind/classifier/history.py

"""
Conversation-history reconstruction.

A log may carry `conversation_context`: a JSON list of {"role", "content"} turns.
When it parses into at least one usable turn the log is classified in
multi-turn mode; otherwise (missing, not JSON, not a list, legacy markers like
"multi-turn") it falls back to single-turn mode on user_input/ai_response.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Union

from ..core.ports import ChatMessage, SingleTurn
from ..store.models import LogRecord

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class SingleTurnDispatch:
    turn: SingleTurn


@dataclass(slots=True, frozen=True)
class MultiTurnDispatch:
    history: tuple[ChatMessage, ...]


Dispatch = Union[SingleTurnDispatch, MultiTurnDispatch]


def _normalize_role(raw: Any) -> str:
    # Anything that is not the user is the assistant side of the conversation.
    return "user" if str(raw or "").strip().lower() == "user" else "assistant"


def parse_conversation_context(
    raw: str | None,
    *,
    max_messages: int = 20,
    max_chars: int = 2000,
) -> list[ChatMessage] | None:
    """
    Parse a stored conversation into chat messages (oldest -> newest).

    Entries that are not objects or have empty content are dropped.
    Only the last `max_messages` turns are kept; long contents are truncated.
    Returns None when nothing usable remains.
    """
    if raw is None:
        return None
    s = raw.strip()
    if not s:
        return None

    try:
        data = json.loads(s)
    except (TypeError, ValueError):
        logger.debug("conversation_context is not JSON; using single-turn mode")
        return None

    if not isinstance(data, list):
        return None

    out: list[ChatMessage] = []
    for item in data:
        if not isinstance(item, dict):
            continue
        content = item.get("content")
        if not isinstance(content, str) or not content.strip():
            continue
        if max_chars > 0 and len(content) > max_chars:
            content = content[:max_chars] + "…"
        out.append({"role": _normalize_role(item.get("role")), "content": content})

    if not out:
        return None

    if max_messages > 0:
        out = out[-max_messages:]
    return out


def resolve_dispatch(
    record: LogRecord,
    *,
    max_messages: int = 20,
    max_chars: int = 2000,
) -> Dispatch:
    history = parse_conversation_context(
        record.conversation_context,
        max_messages=max_messages,
        max_chars=max_chars,
    )
    if history is not None:
        return MultiTurnDispatch(history=tuple(history))
    return SingleTurnDispatch(turn=SingleTurn(user_input=record.user_input, ai_response=record.ai_response))
