from __future__ import annotations

import logging
import shlex
import subprocess
import sys
from typing import List, Optional

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "Simpler Timer"

# Detached children started by this process, held until they exit.
_children: List[subprocess.Popen] = []


class SpawnError(RuntimeError):
    pass


def _applescript_string(value: str) -> str:
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'


def build_notify_command(
    message: str,
    title: str = DEFAULT_TITLE,
    template: Optional[str] = None,
    platform: Optional[str] = None,
) -> str:
    if template:
        try:
            return template.format(title=shlex.quote(title), message=shlex.quote(message))
        except (KeyError, IndexError, ValueError) as exc:
            raise SpawnError(f"Bad notify command template {template!r}: {exc}") from exc
    platform = platform or sys.platform
    if platform.startswith("linux"):
        return f"notify-send {shlex.quote(title)} {shlex.quote(message)}"
    if platform == "darwin":
        script = f"display notification {_applescript_string(message)} with title {_applescript_string(title)}"
        return f"osascript -e {shlex.quote(script)}"
    raise SpawnError(f"No notification command available for platform {platform!r}")


def reap_children() -> int:
    """Forget children that have exited. Returns how many are still running."""
    _children[:] = [child for child in _children if child.poll() is None]
    return len(_children)


def build_shell_command(delay_seconds: int, notify_command: str) -> str:
    return f"sleep {int(delay_seconds)} && {notify_command}"


def spawn(
    delay_seconds: int,
    message: str,
    title: str = DEFAULT_TITLE,
    template: Optional[str] = None,
) -> int:
    """Start a detached ``sleep && notify`` shell and return its process group id."""

    command = build_shell_command(delay_seconds, build_notify_command(message, title=title, template=template))
    try:
        child = subprocess.Popen(
            command,
            shell=True,
            start_new_session=True,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )
    except OSError as exc:
        raise SpawnError(f"Failed to start timer process: {exc}") from exc
    if not child.pid:
        raise SpawnError("Timer process did not report a pid")
    reap_children()
    _children.append(child)
    # start_new_session makes the child a group leader: pgid == pid.
    logger.debug("Spawned timer process %s: %s", child.pid, command)
    return child.pid


class Spawner:
    """Binds the configured notification title/command to :func:`spawn`."""

    def __init__(self, title: str = DEFAULT_TITLE, template: Optional[str] = None):
        self.title = title
        self.template = template

    def __call__(self, delay_seconds: int, message: str) -> int:
        return spawn(delay_seconds, message, title=self.title, template=self.template)
