# src/taskmind/cli/main.py

"""
CLI entrypoint.

Subcommands:
- run (default): background log classifier until SIGINT/SIGTERM
- add-log: store a conversational log for classification
- seed-team: replace the roster with the default team
- status: counts of logs/tasks and the roster with workloads
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import signal
import sys

from ..cli.bootstrap import build_classifier_loop, create_initial_state
from ..config import get_settings
from ..core.state import AppState
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


async def _run_worker(state: AppState) -> None:
    loop_handle = build_classifier_loop(state)
    stop_main = asyncio.Event()

    def _handle_signal(signum: int) -> None:
        logger.info("Signal %s received, shutting down...", signum)
        stop_main.set()

    ev_loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            ev_loop.add_signal_handler(sig, _handle_signal, sig)
        except (NotImplementedError, RuntimeError):
            # Some platforms (Windows) do not support loop signal handlers.
            pass

    loop_handle.start()
    try:
        await stop_main.wait()
    finally:
        loop_handle.stop()
        await loop_handle.wait_idle()


def _cmd_run(state: AppState, _args: argparse.Namespace) -> int:
    if state.offline:
        logger.warning("Running with the offline classifier (no external LLM configured).")
    try:
        asyncio.run(_run_worker(state))
    except KeyboardInterrupt:
        logger.info("Interrupted.")
    return 0


def _cmd_add_log(state: AppState, args: argparse.Namespace) -> int:
    context = args.context
    if context is not None:
        try:
            json.loads(context)
        except ValueError:
            print("--context must be a JSON list of {role, content} objects", file=sys.stderr)
            return 2
    log_id = state.logs.add_log(user_input=args.text, ai_response=args.response, conversation_context=context)
    print(f"log {log_id} queued for classification")
    return 0


def _cmd_seed_team(state: AppState, _args: argparse.Namespace) -> int:
    for m in state.team.seed_default_team():
        print(f"- {m.name}: {', '.join(m.skills)}")
    return 0


def _cmd_status(state: AppState, _args: argparse.Namespace) -> int:
    pending = state.logs.count_logs(classified=False)
    classified = state.logs.count_logs(classified=True)
    print(f"logs: pending={pending} classified={classified}")
    print(f"tasks: {state.logs.count_tasks()}")
    for m in state.team.list_team_members():
        print(f"- {m.name} ({m.availability.value}) workload={m.current_workload}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="taskmind", description="Conversational log classifier")
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("run", help="run the background classifier (default)")

    p_add = sub.add_parser("add-log", help="store a log for classification")
    p_add.add_argument("text", help="what the user said")
    p_add.add_argument("--response", default=None, help="assistant reply logged with it")
    p_add.add_argument("--context", default=None, help="JSON conversation history")

    sub.add_parser("seed-team", help="replace the roster with the default team")
    sub.add_parser("status", help="show queue, task and workload counts")
    return parser


_COMMANDS = {
    "run": _cmd_run,
    "add-log": _cmd_add_log,
    "seed-team": _cmd_seed_team,
    "status": _cmd_status,
}


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    command = args.command or "run"

    settings = get_settings()

    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)
    if command != "run":
        console_level = max(console_level, logging.WARNING)

    setup_logging(log_dir=settings.data_dir, console_level=console_level)

    logger.info("Starting %s (%s)...", settings.app_name, command)

    # IMPORTANT: reuse same settings object
    state = create_initial_state(settings=settings)
    try:
        return _COMMANDS[command](state, args)
    finally:
        state.logs.close()
        state.team.close()
        if command == "run":
            logger.info("Bye.")


if __name__ == "__main__":
    sys.exit(main())
