# src/dev_coach/core/state.py

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from ..checkins.checkin_store import CheckinStore
from ..config_store import ConfigStore
from ..tasks.task_store import TaskStore
from .ports import ChatClient, Notifier
from .session import CoachSession
from .timezone import TimeBoundary

if TYPE_CHECKING:
    from .runtime import CoachRuntime


@dataclass
class AppState:
    """
    Everything the command layer needs, wired once in cli/bootstrap.py.

    `runtime` is None until the background scheduler loop has been started.
    """

    settings: Any
    boundary: TimeBoundary
    config: ConfigStore
    tasks: TaskStore
    checkins: CheckinStore
    chat_client: ChatClient
    notifier: Notifier
    session: CoachSession

    save_history: bool = True
    runtime: CoachRuntime | None = None
    lock: threading.RLock = field(default_factory=threading.RLock)
