# tests/test_history.py

from __future__ import annotations

import json

from taskmind.classifier.history import (
    MultiTurnDispatch,
    SingleTurnDispatch,
    parse_conversation_context,
    resolve_dispatch,
)
from taskmind.store.models import LogRecord


def _log(context: str | None) -> LogRecord:
    return LogRecord(
        id=1,
        user_input="create a task to fix login bug",
        ai_response="Sure",
        is_classified=False,
        is_task=False,
        task_id=None,
        conversation_context=context,
        selected_task_id=None,
        created_at=0.0,
    )


def test_parse_valid_history_normalizes_roles() -> None:
    raw = json.dumps(
        [
            {"role": "user", "content": "hi"},
            {"role": "ai", "content": "hello"},
            {"role": "USER", "content": "add a task"},
        ]
    )
    assert parse_conversation_context(raw) == [
        {"role": "user", "content": "hi"},
        {"role": "assistant", "content": "hello"},
        {"role": "user", "content": "add a task"},
    ]


def test_parse_rejects_non_history_values() -> None:
    assert parse_conversation_context(None) is None
    assert parse_conversation_context("") is None
    assert parse_conversation_context("multi-turn") is None
    assert parse_conversation_context('{"role": "user"}') is None
    assert parse_conversation_context("[]") is None
    assert parse_conversation_context('[1, "x", {"role": "user", "content": "  "}]') is None


def test_parse_trims_to_latest_turns_and_truncates() -> None:
    raw = json.dumps([{"role": "user", "content": f"m{i}"} for i in range(5)] + [{"role": "user", "content": "x" * 50}])
    out = parse_conversation_context(raw, max_messages=3, max_chars=10)
    assert out is not None
    assert [m["content"] for m in out[:2]] == ["m3", "m4"]
    assert out[2]["content"] == "x" * 10 + "…"


def test_resolve_dispatch_picks_mode() -> None:
    single = resolve_dispatch(_log(None))
    assert isinstance(single, SingleTurnDispatch)
    assert single.turn.user_input == "create a task to fix login bug"
    assert single.turn.ai_response == "Sure"

    multi = resolve_dispatch(_log(json.dumps([{"role": "user", "content": "create a task to fix login bug"}])))
    assert isinstance(multi, MultiTurnDispatch)
    assert multi.history == ({"role": "user", "content": "create a task to fix login bug"},)

    assert isinstance(resolve_dispatch(_log("not json")), SingleTurnDispatch)
