# src/dev_coach/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, starts the check-in scheduler loop in a
background thread, then runs the console REPL in the main thread.
"""

from __future__ import annotations

import contextlib
import logging
import signal

from ..cli.bootstrap import create_initial_state, save_history, start_background, stop_background
from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..core.state import AppState
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


def _shutdown(state: AppState) -> None:
    """Stop the background loop, then persist history. No exceptions should escape."""
    try:
        stop_background(state)
    except Exception:
        logger.exception("Failed to stop the coach loop.")

    try:
        save_history(state)
    except Exception:
        logger.exception("Failed to save chat history.")

    # Stores use short-lived sqlite connections per call; close() is a no-op hook.
    for store in (state.config, state.tasks, state.checkins):
        store.close()


def main() -> None:
    settings = get_settings()

    # choose console log level from settings.log_level
    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)
    setup_logging(log_dir=settings.data_dir, console_level=console_level)

    logger.info("Starting %s...", settings.app_name)

    # IMPORTANT: reuse same settings object
    state = create_initial_state(settings=settings)

    def _handle_signal(signum, _frame) -> None:
        # input() is blocking; surface SIGTERM as Ctrl+C so the REPL unwinds.
        logger.info("Signal %s received, shutting down...", signum)
        raise KeyboardInterrupt

    with contextlib.suppress(ValueError, OSError, AttributeError):
        # Some platforms may not support SIGTERM, etc.
        signal.signal(signal.SIGTERM, _handle_signal)

    try:
        start_background(state)
        run_console_loop(state)
    except KeyboardInterrupt:
        logger.info("Interrupted.")
    except RuntimeError:
        logger.exception("Coach failed to start.")
        raise SystemExit(1) from None
    finally:
        _shutdown(state)
        logger.info("Bye.")


if __name__ == "__main__":
    main()
