# tests/test_notifier.py

from __future__ import annotations

import subprocess
from collections.abc import Sequence

from dev_coach.notifier import DesktopNotifier, build_command, detect_platform


class RecordingRunner:
    def __init__(self, returncode: int = 0, exc: Exception | None = None) -> None:
        self.returncode = returncode
        self.exc = exc
        self.commands: list[list[str]] = []

    def __call__(self, cmd: Sequence[str]) -> subprocess.CompletedProcess:
        self.commands.append(list(cmd))
        if self.exc is not None:
            raise self.exc
        return subprocess.CompletedProcess(list(cmd), self.returncode, stdout="", stderr="boom")


def _found(name: str) -> str | None:
    return f"/usr/bin/{name}"


def _missing(name: str) -> str | None:
    return None


def test_detect_platform() -> None:
    assert detect_platform("linux") == "linux"
    assert detect_platform("darwin") == "macos"
    assert detect_platform("win32") == "windows"
    assert detect_platform("sunos5") == "unknown"


def test_build_command_per_platform() -> None:
    assert build_command("linux", "T", "B") == ["notify-send", "T", "B"]
    assert build_command("macos", "T", "B")[:5] == ["terminal-notifier", "-title", "T", "-message", "B"]
    ps = build_command("windows", "T", "it's late")
    assert ps[0] == "powershell"
    assert "'it''s late'" in ps[-1]
    assert build_command("unknown", "T", "B") is None


def test_linux_notification_runs_notify_send() -> None:
    runner = RecordingRunner()
    n = DesktopNotifier(platform="linux", runner=runner, which=_found)
    assert n.notify("dev-coach check-in", "How is it going?") == (True, None)
    assert runner.commands == [["notify-send", "dev-coach check-in", "How is it going?"]]


def test_failing_command_falls_back_to_log(caplog) -> None:
    n = DesktopNotifier(platform="linux", runner=RecordingRunner(returncode=1), which=_found)
    with caplog.at_level("INFO", logger="dev_coach.notifier"):
        assert n.notify("T", "B") == (True, "logged")
    assert "NOTIFICATION: T - B" in caplog.text


def test_runner_exception_falls_back_to_log() -> None:
    n = DesktopNotifier(platform="linux", runner=RecordingRunner(exc=OSError("no display")), which=_found)
    assert n.notify("T", "B") == (True, "logged")


def test_missing_binary_or_unknown_platform_logs() -> None:
    runner = RecordingRunner()
    assert DesktopNotifier(platform="linux", runner=runner, which=_missing).notify("T", "B") == (True, "logged")
    assert DesktopNotifier(platform="sunos5", runner=runner, which=_found).notify("T", "B") == (True, "logged")
    assert runner.commands == []


def test_disabled_notifier_does_nothing() -> None:
    runner = RecordingRunner()
    n = DesktopNotifier(enabled=False, platform="linux", runner=runner, which=_found)
    assert n.notify("T", "B") == (False, "notifications disabled")
    assert runner.commands == []
