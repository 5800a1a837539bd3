# src/taskmind/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app.
- No secrets required at import time (the classifier falls back to offline mode).
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

ENV_PREFIX = "TASKMIND"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _load_dotenv_if_available() -> None:
    """Load .env locally if python-dotenv is installed. Safe no-op otherwise."""
    try:
        from dotenv import load_dotenv  # type: ignore
    except Exception:
        return
    load_dotenv(override=False)


_load_dotenv_if_available()


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _first_env(*names: str, default: str | None = None) -> str | None:
    for n in names:
        v = os.getenv(n)
        if v is not None and v.strip() != "":
            return v
    return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_list(name: str, default: List[str]) -> List[str]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return list(default)
    parts = [p.strip() for p in raw.replace(",", " ").split() if p.strip()]
    return parts


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- LLM / OpenAI-compatible endpoint ----
    openai_api_key: Optional[str]
    openai_base_url: str
    llm_models: List[str]
    offline: bool

    # ---- Classifier loop ----
    classifier_interval_seconds: float
    oracle_timeout_seconds: float
    max_history_messages: int
    max_message_chars: int

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    db_path: Path

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "taskmind") or "taskmind"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        openai_api_key = _first_env(_k("OPENAI_API_KEY"), "OPENAI_API_KEY", default=None)
        openai_base_url = _env(_k("OPENAI_BASE_URL"), "https://api.openai.com/v1")
        llm_models = _env_list(_k("LLM_MODELS"), ["gpt-4o-mini"])
        offline = _env_bool(_k("OFFLINE"), False)

        classifier_interval_seconds = _env_float(_k("CLASSIFIER_INTERVAL_SECONDS"), 5.0)
        oracle_timeout_seconds = _env_float(_k("ORACLE_TIMEOUT_SECONDS"), 30.0)
        max_history_messages = _env_int(_k("MAX_HISTORY_MESSAGES"), 20)
        max_message_chars = _env_int(_k("MAX_MESSAGE_CHARS"), 2000)

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/taskmind"))
        db_path = _env_path(_k("DB_PATH"), data_dir / "taskmind.sqlite3")

        return Settings(
            app_name=app_name,
            log_level=log_level,
            openai_api_key=openai_api_key,
            openai_base_url=openai_base_url,
            llm_models=llm_models,
            offline=offline,
            classifier_interval_seconds=classifier_interval_seconds,
            oracle_timeout_seconds=oracle_timeout_seconds,
            max_history_messages=max_history_messages,
            max_message_chars=max_message_chars,
            data_dir=data_dir,
            db_path=db_path,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
