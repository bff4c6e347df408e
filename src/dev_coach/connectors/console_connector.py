# src/dev_coach/connectors/console_connector.py

from __future__ import annotations

import logging
import sys
from datetime import datetime

from ..cli.commands import registry as command_registry
from ..core.state import AppState

logger = logging.getLogger(__name__)


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _rewrite_prev_line(line: str) -> None:
    """
    Replace the last terminal line with `line`.
    Best-effort: if not a TTY, just print a new line.
    """
    if sys.stdout.isatty():
        sys.stdout.write("\033[1A\033[2K\r")
        sys.stdout.write(line + "\n")
        sys.stdout.flush()
    else:
        print(line)


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}", flush=True)


def handle_line(state: AppState, line: str) -> str | None:
    """
    One REPL turn: slash commands go to the registry, anything else to the coach.
    Returns the text to print, or None for an empty line.
    """
    line = line.strip()
    if not line:
        return None

    try:
        with state.lock:
            cmd_response = command_registry.handle(state, line, emit=_print_ts)
    except Exception:
        logger.exception("Command handler crashed.")
        return "Internal error while handling a command."

    if cmd_response is not None:
        return cmd_response

    app_name = str(getattr(state.settings, "app_name", "dev-coach"))
    reply, err = state.session.chat_with_ai(line)
    if err is not None:
        return f"[AI] {err}"
    if not reply:
        return "[AI] No output (model produced no content)."
    return f"<<< {app_name}: {reply}"


def run_console_loop(state: AppState) -> None:
    logger.info("Console connector started.")
    _print_ts("[CONSOLE] Type your messages. Use /help for commands. Use /exit to quit.\n")

    # Check-ins fire on the background loop; print them as they arrive.
    state.session.set_emitter(lambda text: print(f"\n[{_ts_local()}] {text}\n", flush=True))

    try:
        while True:
            try:
                user_input = input(">>> You: ").strip()
                _rewrite_prev_line(f"[{_ts_local()}] >>> You: {user_input}")
            except EOFError:
                logger.info("Console EOF received, exiting.")
                break
            except KeyboardInterrupt:
                logger.info("Console KeyboardInterrupt, exiting.")
                print()
                break

            if user_input.lower() in ("/exit", "/quit"):
                logger.info("Console exit command received.")
                break

            out = handle_line(state, user_input)
            if out is not None:
                _print_ts(out)
    finally:
        state.session.set_emitter(None)

    logger.info("Console connector finished.")
