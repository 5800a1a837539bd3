# src/taskmind/llm/client.py

from __future__ import annotations

import json
import logging
import time
from typing import Any

import httpx
import openai
from openai import AsyncOpenAI

from ..core.errors import MalformedOracleResponse, OracleConfigError, TransientOracleError
from ..core.ports import ChatMessage, MultiTurnVerdict, SingleTurn, SingleTurnVerdict, TaskData
from ..store.models import TeamMember
from .prompts import (
    ASSIGNMENT_SYSTEM_PROMPT,
    ASSIGNMENT_USER_TEMPLATE,
    MULTI_TURN_SYSTEM_PROMPT,
    SINGLE_TURN_SYSTEM_PROMPT,
    SINGLE_TURN_USER_TEMPLATE,
    format_roster,
)

logger = logging.getLogger(__name__)

_BAD_MODEL_COOLDOWN_SECONDS = 3600.0


def _is_auth_error(exc: Exception) -> bool:
    if isinstance(exc, (openai.AuthenticationError, openai.PermissionDeniedError)):
        return True
    return exc.__class__.__name__ in {"UnauthorizedError"}


def _is_rate_limit_error(exc: Exception) -> bool:
    if isinstance(exc, openai.RateLimitError):
        return True
    return exc.__class__.__name__ in {"TooManyRequestsError"}


def _is_connection_error(exc: Exception) -> bool:
    if isinstance(exc, (openai.APIConnectionError, httpx.TimeoutException)):
        return True
    return exc.__class__.__name__ in {"Timeout", "ConnectTimeout", "ReadTimeout", "WriteTimeout"}


def _is_not_found_error(exc: Exception) -> bool:
    return isinstance(exc, openai.NotFoundError)


def _extract_json_object(raw: str) -> str:
    raw = raw.strip()
    if raw.startswith("{") and raw.endswith("}"):
        return raw
    first = raw.find("{")
    last = raw.rfind("}")
    if first != -1 and last != -1 and last > first:
        return raw[first : last + 1]
    return raw


def _load_object(raw: str) -> dict[str, Any]:
    try:
        data = json.loads(_extract_json_object(raw or ""))
    except ValueError as e:
        raise MalformedOracleResponse("oracle reply is not JSON", raw=raw) from e
    if not isinstance(data, dict):
        raise MalformedOracleResponse("oracle reply is not a JSON object", raw=raw)
    return data


def _require_bool(data: dict[str, Any], key: str, raw: str) -> bool:
    val = data.get(key)
    if not isinstance(val, bool):
        raise MalformedOracleResponse(f"{key!r} missing or not a boolean", raw=raw)
    return val


def _parse_task_data(val: Any, raw: str, *, required: bool = True) -> TaskData | None:
    """
    Parse the taskData object.

    Negative verdicts often come back with `{}` or a partial object; with
    required=False anything unusable is read as "no task data".
    """
    if val is None:
        return None
    if not required:
        try:
            return _parse_task_data(val, raw)
        except MalformedOracleResponse:
            logger.debug("Ignoring unusable taskData on a negative verdict")
            return None
    if not isinstance(val, dict):
        raise MalformedOracleResponse("'taskData' is not an object", raw=raw)

    title = val.get("title")
    if not isinstance(title, str) or not title.strip():
        raise MalformedOracleResponse("'taskData.title' missing", raw=raw)
    description = val.get("description")
    if not isinstance(description, str) or not description.strip():
        description = title

    tags_raw = val.get("tags")
    tags: tuple[str, ...] | None = None
    if isinstance(tags_raw, list):
        tags = tuple(str(t) for t in tags_raw if t is not None)
    elif isinstance(tags_raw, str) and tags_raw.strip():
        tags = tuple(p.strip() for p in tags_raw.split(",") if p.strip())

    def opt_str(key: str) -> str | None:
        v = val.get(key)
        if not isinstance(v, str):
            return None
        return v.strip() or None

    return TaskData(
        title=title.strip(),
        description=description.strip(),
        priority=opt_str("priority"),
        tags=tags,
        assigned_to=opt_str("assignedTo"),
        due_date=opt_str("dueDate"),
    )


def parse_single_turn_payload(raw: str) -> SingleTurnVerdict:
    """
    {"isTask": bool, "confidence": 0..1, "reasoning": str, "taskData": {...}|null}

    confidence accepts numbers or numeric strings and is clamped into [0, 1].
    """
    data = _load_object(raw)
    is_task = _require_bool(data, "isTask", raw)

    conf_raw = data.get("confidence")
    if isinstance(conf_raw, bool) or conf_raw is None:
        raise MalformedOracleResponse("'confidence' missing or not a number", raw=raw)
    try:
        confidence = float(conf_raw)
    except (TypeError, ValueError) as e:
        raise MalformedOracleResponse("'confidence' missing or not a number", raw=raw) from e
    if confidence != confidence:  # NaN
        raise MalformedOracleResponse("'confidence' is NaN", raw=raw)
    confidence = max(0.0, min(1.0, confidence))

    reasoning = data.get("reasoning")
    return SingleTurnVerdict(
        is_task=is_task,
        confidence=confidence,
        reasoning=reasoning if isinstance(reasoning, str) else "",
        task_data=_parse_task_data(data.get("taskData"), raw, required=is_task),
    )


def parse_multi_turn_payload(raw: str) -> MultiTurnVerdict:
    """{"shouldCreateTask": bool, "response": str, "taskData": {...}|null, "needsMoreInfo": bool}"""
    data = _load_object(raw)
    should_create = _require_bool(data, "shouldCreateTask", raw)

    response = data.get("response")
    needs_more = data.get("needsMoreInfo")
    return MultiTurnVerdict(
        should_create_task=should_create,
        response=response if isinstance(response, str) else "",
        needs_more_info=needs_more if isinstance(needs_more, bool) else False,
        task_data=_parse_task_data(data.get("taskData"), raw, required=should_create),
    )


class OpenAIClassifier:
    """
    Classifier oracle backed by an OpenAI-compatible chat completions API.

    Behavior:
    - Tries models in the order from settings (TASKMIND_LLM_MODELS).
    - 404 (model not available) -> park the model for an hour, try next.
    - Rate limit / network issues -> try next.
    - Auth issues -> fail fast.
    Every failure surfaces as TransientOracleError or MalformedOracleResponse.
    """

    def __init__(self, settings: Any, *, client: AsyncOpenAI | None = None) -> None:
        models = [m.strip() for m in (getattr(settings, "llm_models", None) or []) if m and m.strip()]
        if not models:
            raise OracleConfigError("LLM model list is empty. Set TASKMIND_LLM_MODELS in your .env.")
        self._models = models
        self._bad_models: dict[str, float] = {}  # model -> retry_at (monotonic)

        if client is None:
            api_key = getattr(settings, "openai_api_key", None)
            if not api_key or not str(api_key).strip():
                raise OracleConfigError("LLM API key is not set. Set TASKMIND_OPENAI_API_KEY in your .env.")

            read_s = float(getattr(settings, "oracle_timeout_seconds", 30.0) or 30.0)
            client = AsyncOpenAI(
                api_key=str(api_key),
                base_url=str(getattr(settings, "openai_base_url", "") or "") or None,
                timeout=httpx.Timeout(connect=5.0, read=read_s, write=10.0, pool=5.0),
                # We disable automatic retries; the engine decides what a failure means.
                max_retries=0,
            )
        self._client = client

    async def _complete_json(self, messages: list[ChatMessage], *, temperature: float) -> str:
        last_error: Exception | None = None
        now = time.monotonic()

        for model in self._models:
            retry_at = self._bad_models.get(model)
            if retry_at is not None and retry_at > now:
                continue

            t0 = time.monotonic()
            try:
                completion = await self._client.chat.completions.create(
                    model=model,
                    messages=messages,
                    temperature=temperature,
                    response_format={"type": "json_object"},
                )
            except Exception as e:
                last_error = e

                if _is_auth_error(e):
                    raise TransientOracleError(
                        "LLM authentication failed. Check your API key (TASKMIND_OPENAI_API_KEY)."
                    ) from e

                if _is_not_found_error(e):
                    self._bad_models[model] = time.monotonic() + _BAD_MODEL_COOLDOWN_SECONDS
                    logger.info("LLM: model not available (404): %s", model)
                    continue

                if _is_rate_limit_error(e):
                    logger.info("LLM: rate-limited on model=%s, trying next", model)
                    continue

                if _is_connection_error(e):
                    logger.info("LLM: network/timeout error on model=%s, trying next", model)
                    continue

                logger.info("LLM: error on model=%s (%s), trying next", model, e.__class__.__name__)
                continue

            try:
                content = completion.choices[0].message.content
            except (AttributeError, IndexError):
                content = None

            if content and content.strip():
                logger.debug("LLM: reply from model=%s (%.2fs)", model, time.monotonic() - t0)
                return content

            last_error = MalformedOracleResponse(f"Model returned no content: {model}")

        if isinstance(last_error, MalformedOracleResponse):
            raise last_error
        if last_error is not None:
            if _is_rate_limit_error(last_error):
                raise TransientOracleError("LLM is rate-limited. Try again later.") from last_error
            if _is_connection_error(last_error):
                raise TransientOracleError("LLM network/timeout error.") from last_error
            raise TransientOracleError("All LLM models failed.") from last_error
        raise TransientOracleError("All LLM models failed.")

    async def classify_single_turn(self, turn: SingleTurn, roster: list[TeamMember]) -> SingleTurnVerdict:
        prompt = SINGLE_TURN_USER_TEMPLATE.format(
            user_input=turn.user_input,
            ai_response=turn.ai_response or "",
            roster=format_roster(roster),
        )
        raw = await self._complete_json(
            [
                {"role": "system", "content": SINGLE_TURN_SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            temperature=0.3,
        )
        return parse_single_turn_payload(raw)

    async def classify_multi_turn(self, history: list[ChatMessage], roster: list[TeamMember]) -> MultiTurnVerdict:
        messages: list[ChatMessage] = [{"role": "system", "content": MULTI_TURN_SYSTEM_PROMPT}]
        for m in history:
            role = "user" if m.get("role") == "user" else "assistant"
            messages.append({"role": role, "content": str(m.get("content", ""))})

        raw = await self._complete_json(messages, temperature=0.7)
        verdict = parse_multi_turn_payload(raw)

        if not (verdict.should_create_task and verdict.task_data is not None):
            return verdict
        if verdict.task_data.assigned_to or not roster:
            return verdict

        assignee = await self._pick_assignee(verdict.task_data, roster)
        if assignee is None:
            return verdict

        td = verdict.task_data
        return MultiTurnVerdict(
            should_create_task=verdict.should_create_task,
            response=verdict.response,
            needs_more_info=verdict.needs_more_info,
            task_data=TaskData(
                title=td.title,
                description=td.description,
                priority=td.priority,
                tags=td.tags,
                assigned_to=assignee,
                due_date=td.due_date,
            ),
        )

    async def _pick_assignee(self, task_data: TaskData, roster: list[TeamMember]) -> str | None:
        """Second call: choose an assignee. Failures leave the task unassigned."""
        task_json = json.dumps(
            {
                "title": task_data.title,
                "description": task_data.description,
                "priority": task_data.priority,
                "tags": list(task_data.tags or ()),
            },
            ensure_ascii=False,
        )
        prompt = ASSIGNMENT_USER_TEMPLATE.format(task_json=task_json, roster=format_roster(roster))

        try:
            raw = await self._complete_json(
                [
                    {"role": "system", "content": ASSIGNMENT_SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                temperature=0.3,
            )
            data = _load_object(raw)
        except (TransientOracleError, MalformedOracleResponse):
            logger.warning("Assignment call failed; task stays unassigned", exc_info=True)
            return None

        name = data.get("assignedTo")
        if not isinstance(name, str) or not name.strip():
            return None
        name = name.strip()
        if name not in {m.name for m in roster}:
            logger.info("Assignment picked unknown member %r; ignoring", name)
            return None
        return name
