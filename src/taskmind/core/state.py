# src/taskmind/core/state.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..store.log_store import LogStore
from ..store.team_store import TeamStore
from .ports import ClassifierOracle


@dataclass
class AppState:
    # Store Settings on the state for easy access in other modules later.
    settings: Any

    logs: LogStore
    team: TeamStore
    oracle: ClassifierOracle
    offline: bool = False
