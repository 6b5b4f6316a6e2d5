"""
agent-traversal CLI: record, inspect and replay traversal sessions.

Usage:
    agent-traversal record --root ./workspace "ls -la" "cat README.md"
    agent-traversal sessions list
    agent-traversal sessions show <id>
    agent-traversal sessions delete <id>
    agent-traversal replay <id> --speed 2
    agent-traversal version
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
import time
from typing import List, Optional

from pydantic import ValidationError

from agent_traversal.config import TraversalConfig, load_config
from agent_traversal.errors import TraversalError
from agent_traversal.executor import LocalExecutor
from agent_traversal.instrumented import InstrumentedTools
from agent_traversal.playback.controller import SPEEDS, PlaybackController
from agent_traversal.playback.scheduler import VirtualScheduler
from agent_traversal.recorder.models import TraversalEntry
from agent_traversal.storage import SessionStore

VERSION = "0.1.0"

logger = logging.getLogger(__name__)


def _format_entry(index: int, entry: TraversalEntry) -> str:
    line = f"[{index:>3}] {entry.operation.value:<8} {entry.target}"
    if entry.exit_code not in (None, 0):
        line += f"  (exit {entry.exit_code})"
    return line


def _cmd_record(parsed: argparse.Namespace, config: TraversalConfig) -> int:
    executor = LocalExecutor(parsed.root, timeout=config.command_timeout_seconds)
    with InstrumentedTools(executor, executor.root_path, config=config) as tools:
        for command in parsed.commands:
            result = tools.run(command)
            entry = tools.session.entries[-1]
            print(_format_entry(len(tools.session.entries) - 1, entry))
            if parsed.verbose and result.stdout:
                print(result.stdout.rstrip())
        session = tools.end_session()
    if parsed.save:
        path = SessionStore(config.sessions_dir).save(session)
        print(f"Session saved: {session.id} ({path})")
    else:
        print(json.dumps(session.to_dict(), indent=2))
    return 0


def _cmd_sessions(parsed: argparse.Namespace, config: TraversalConfig, parser: argparse.ArgumentParser) -> int:
    store = SessionStore(config.sessions_dir)
    if parsed.sessions_command == "list":
        summaries = store.list_sessions()
        if not summaries:
            print("No sessions recorded.")
            return 0
        for s in summaries:
            status = "ended" if s.ended_at is not None else "running"
            print(f"{s.id}  {s.entry_count:>4} entries  {status:<7}  {s.root_path}")
        return 0
    if parsed.sessions_command == "show":
        session = store.load(parsed.session_id)
        if session is None:
            print(f"Session not found: {parsed.session_id}", file=sys.stderr)
            return 1
        print(json.dumps(session.to_dict(), indent=2))
        return 0
    if parsed.sessions_command == "delete":
        if not store.delete(parsed.session_id):
            print(f"Session not found: {parsed.session_id}", file=sys.stderr)
            return 1
        print(f"Deleted {parsed.session_id}")
        return 0
    parser.print_help()
    return 1


def _cmd_replay(parsed: argparse.Namespace, config: TraversalConfig) -> int:
    session = SessionStore(config.sessions_dir).load(parsed.session_id)
    if session is None:
        print(f"Session not found: {parsed.session_id}", file=sys.stderr)
        return 1
    if not session.entries:
        print("Session has no entries.")
        return 0

    scheduler = VirtualScheduler()
    controller = PlaybackController(session, speed=parsed.speed, scheduler=scheduler)
    last_printed = -1

    def _show(ctrl: PlaybackController) -> None:
        nonlocal last_printed
        entry = ctrl.current_entry
        if entry is not None and ctrl.current_index != last_printed:
            last_printed = ctrl.current_index
            print(_format_entry(ctrl.current_index, entry))

    controller.add_listener(_show)
    _show(controller)
    controller.play()
    while True:
        delay = scheduler.next_delay()
        if delay is None:
            break
        if not parsed.instant:
            time.sleep(delay)
        scheduler.advance(delay)
    return 0


def cli(args: Optional[List[str]] = None) -> int:
    """Main CLI entry point. Returns exit code."""
    parser = argparse.ArgumentParser(
        prog="agent-traversal",
        description="Record and replay agent filesystem traversal sessions",
    )
    parser.add_argument("--config", help="Path to a YAML configuration file")
    parser.add_argument("--sessions-dir", help="Override the session storage directory")
    parser.add_argument("--log-level", default="WARNING", help="Logging level (default: WARNING)")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("version", help="Show version")

    record_parser = subparsers.add_parser("record", help="Run commands in a directory and record them")
    record_parser.add_argument("--root", required=True, help="Sandbox root directory")
    record_parser.add_argument(
        "--no-save", dest="save", action="store_false",
        help="Print the session document instead of saving it",
    )
    record_parser.add_argument("-v", "--verbose", action="store_true", help="Echo command output")
    record_parser.add_argument("commands", nargs="+", help="Shell commands to run in order")

    sessions_parser = subparsers.add_parser("sessions", help="Stored session management")
    sessions_sub = sessions_parser.add_subparsers(dest="sessions_command")
    sessions_sub.add_parser("list", help="List stored sessions, newest first")
    show_parser = sessions_sub.add_parser("show", help="Print a session document")
    show_parser.add_argument("session_id")
    delete_parser = sessions_sub.add_parser("delete", help="Delete a stored session")
    delete_parser.add_argument("session_id")

    replay_parser = subparsers.add_parser("replay", help="Replay a stored session")
    replay_parser.add_argument("session_id")
    replay_parser.add_argument("--speed", type=float, default=None, choices=SPEEDS)
    replay_parser.add_argument("--instant", action="store_true", help="Do not wait between entries")

    parsed = parser.parse_args(args)
    logging.basicConfig(level=parsed.log_level.upper(), format="%(levelname)s %(name)s: %(message)s")

    if parsed.command is None:
        parser.print_help()
        return 1

    if parsed.command == "version":
        print(f"agent-traversal {VERSION}")
        return 0

    try:
        config = load_config(parsed.config)
    except ValidationError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 1

    try:
        if parsed.sessions_dir:
            config.sessions_dir = parsed.sessions_dir
        if parsed.command == "record":
            return _cmd_record(parsed, config)
        if parsed.command == "sessions":
            return _cmd_sessions(parsed, config, sessions_parser)
        if parsed.command == "replay":
            if parsed.speed is None:
                parsed.speed = config.default_speed
            return _cmd_replay(parsed, config)
    except TraversalError as e:
        logger.debug("Command failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1

    parser.print_help()
    return 1


def main() -> None:
    sys.exit(cli())
