# src/dev_coach/notifier.py

"""
Desktop notifications.

- Linux: notify-send
- macOS: terminal-notifier
- Windows: PowerShell balloon tip
- Anything else, or a failing command: log line (always available fallback)
"""

from __future__ import annotations

import logging
import shutil
import subprocess
import sys
from collections.abc import Callable, Sequence

logger = logging.getLogger(__name__)

NOTIFY_TIMEOUT_SECONDS = 10.0

Runner = Callable[[Sequence[str]], subprocess.CompletedProcess]


def detect_platform(platform: str | None = None) -> str:
    p = platform or sys.platform
    if p.startswith("linux"):
        return "linux"
    if p == "darwin":
        return "macos"
    if p.startswith("win"):
        return "windows"
    return "unknown"


def _ps_quote(s: str) -> str:
    return "'" + s.replace("'", "''") + "'"


def build_command(platform: str, title: str, body: str) -> list[str] | None:
    if platform == "linux":
        return ["notify-send", title, body]
    if platform == "macos":
        return ["terminal-notifier", "-title", title, "-message", body, "-sound", "default"]
    if platform == "windows":
        script = (
            "Add-Type -AssemblyName System.Windows.Forms; "
            "$n = New-Object System.Windows.Forms.NotifyIcon; "
            "$n.Icon = [System.Drawing.SystemIcons]::Information; "
            f"$n.BalloonTipTitle = {_ps_quote(title)}; "
            f"$n.BalloonTipText = {_ps_quote(body)}; "
            "$n.Visible = $true; $n.ShowBalloonTip(5000); Start-Sleep -Seconds 1; $n.Dispose()"
        )
        return ["powershell", "-NoProfile", "-Command", script]
    return None


def _run(cmd: Sequence[str]) -> subprocess.CompletedProcess:
    return subprocess.run(list(cmd), timeout=NOTIFY_TIMEOUT_SECONDS, capture_output=True, text=True)


class DesktopNotifier:
    """
    Best-effort notifier: notify() never raises.

    Returns (True, None) when a desktop notification was shown, (True, "logged")
    when it fell back to the log, (False, reason) when disabled.
    """

    def __init__(
        self,
        *,
        enabled: bool = True,
        platform: str | None = None,
        runner: Runner | None = None,
        which: Callable[[str], str | None] = shutil.which,
    ) -> None:
        self.enabled = enabled
        self.platform = detect_platform(platform)
        self._runner = runner or _run
        self._which = which

    def notify(self, title: str, body: str) -> tuple[bool, str | None]:
        if not self.enabled:
            return False, "notifications disabled"

        cmd = build_command(self.platform, title, body)
        if cmd is None or self._which(cmd[0]) is None:
            return self._fallback(title, body)

        try:
            proc = self._runner(cmd)
        except (OSError, subprocess.SubprocessError) as e:
            logger.warning("%s notification failed: %s", self.platform, e)
            return self._fallback(title, body)

        if proc.returncode != 0:
            logger.warning(
                "%s notification failed (exit=%s): %s",
                self.platform,
                proc.returncode,
                (proc.stderr or "").strip(),
            )
            return self._fallback(title, body)

        logger.debug("%s notification sent: %s", self.platform, title)
        return True, None

    @staticmethod
    def _fallback(title: str, body: str) -> tuple[bool, str | None]:
        logger.info("NOTIFICATION: %s - %s", title, body)
        return True, "logged"
