# tests/test_cli.py

from __future__ import annotations

import json

import pytest

from taskmind.cli import main as cli_main
from taskmind.cli.bootstrap import build_classifier_loop, create_initial_state
from taskmind.llm.offline import OfflineClassifier


@pytest.fixture()
def patched_cli(monkeypatch, settings):
    monkeypatch.setattr(cli_main, "get_settings", lambda: settings)
    monkeypatch.setattr(cli_main, "setup_logging", lambda **_: None)
    return settings


def test_bootstrap_falls_back_to_offline_without_api_key(settings) -> None:
    settings.offline = False
    state = create_initial_state(settings=settings)

    assert state.offline is True
    assert isinstance(state.oracle, OfflineClassifier)
    assert settings.db_path.exists()


@pytest.mark.asyncio
async def test_offline_pipeline_end_to_end(settings) -> None:
    state = create_initial_state(settings=settings)
    state.team.seed_default_team()
    chat_id = state.logs.add_log(user_input="good morning", ai_response="Morning!")
    task_id = state.logs.add_log(
        user_input="create a task to fix login bug",
        conversation_context=json.dumps([{"role": "user", "content": "create a task to fix login bug"}]),
    )

    loop = build_classifier_loop(state)
    assert loop.trigger() is True
    await loop.wait_idle()

    chat = state.logs.get_log(chat_id)
    assert chat is not None and chat.is_classified and not chat.is_task
    assert chat.ai_response == "Morning!"

    log = state.logs.get_log(task_id)
    assert log is not None and log.is_task and log.task_id is not None
    task = state.logs.get_task(log.task_id)
    assert task is not None and task.title == "Fix login bug"


def test_cli_add_log_seed_team_and_status(patched_cli, capsys) -> None:
    assert cli_main.main(["seed-team"]) == 0
    assert cli_main.main(["add-log", "hello", "--response", "hi"]) == 0
    assert cli_main.main(["add-log", "x", "--context", "{not json"]) == 2
    assert cli_main.main(["status"]) == 0

    out = capsys.readouterr().out
    assert "Jane Smith" in out
    assert "queued for classification" in out
    assert "logs: pending=1 classified=0" in out
