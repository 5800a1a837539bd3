# src/taskmind/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires concrete implementations into AppState (stores + classifier oracle),
- builds the classifier loop the host process owns.
"""

from __future__ import annotations

import logging

from ..classifier.engine import ClassificationEngine
from ..classifier.scheduler import ClassifierLoop
from ..config import get_settings
from ..core.errors import OracleConfigError
from ..core.ports import ClassifierOracle
from ..core.state import AppState
from ..llm.client import OpenAIClassifier
from ..llm.offline import OfflineClassifier
from ..store.log_store import LogStore
from ..store.team_store import TeamStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.db_path.parent.mkdir(parents=True, exist_ok=True)


def create_initial_state(*, settings=None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    oracle: ClassifierOracle
    offline = bool(getattr(settings, "offline", False))
    if offline:
        oracle = OfflineClassifier()
    else:
        try:
            oracle = OpenAIClassifier(settings)
        except OracleConfigError as e:
            # Fallback for demos / local runs without external services.
            logger.warning("%s Falling back to the offline classifier.", e)
            oracle = OfflineClassifier()
            offline = True

    return AppState(
        settings=settings,
        logs=LogStore(settings.db_path),
        team=TeamStore(settings.db_path),
        oracle=oracle,
        offline=offline,
    )


def build_classifier_loop(state: AppState) -> ClassifierLoop:
    s = state.settings
    engine = ClassificationEngine(
        state.logs,
        state.team,
        state.oracle,
        oracle_timeout_seconds=float(getattr(s, "oracle_timeout_seconds", 30.0)),
        max_history_messages=int(getattr(s, "max_history_messages", 20)),
        max_message_chars=int(getattr(s, "max_message_chars", 2000)),
    )
    return ClassifierLoop(engine, interval_seconds=float(getattr(s, "classifier_interval_seconds", 5.0)))
