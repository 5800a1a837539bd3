# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from taskmind.store.log_store import LogStore
from taskmind.store.team_store import TeamStore


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with bootstrap and the engine.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="taskmind-test",
        log_level="DEBUG",
        openai_api_key=None,
        openai_base_url="https://api.openai.com/v1",
        llm_models=["gpt-4o-mini"],
        offline=True,
        classifier_interval_seconds=0.01,
        oracle_timeout_seconds=1.0,
        max_history_messages=20,
        max_message_chars=2000,
        data_dir=tmp_path / "data",
        db_path=tmp_path / "data" / "taskmind.sqlite3",
    )


@pytest.fixture()
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "taskmind.sqlite3"


@pytest.fixture()
def logs(db_path: Path) -> LogStore:
    # Real SQLite: the conditional UPDATE is part of what we test.
    return LogStore(db_path)


@pytest.fixture()
def team(db_path: Path) -> TeamStore:
    return TeamStore(db_path)
