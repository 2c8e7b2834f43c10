from __future__ import annotations

import logging
import os
import signal

logger = logging.getLogger(__name__)


def is_alive(pid: int) -> bool:
    if pid <= 0:
        return False
    try:
        os.kill(pid, 0)
    except PermissionError:
        # Exists, owned by someone else.
        return True
    except OSError:
        return False
    return True


def terminate_group(pid: int) -> bool:
    """Send SIGTERM to the process group led by ``pid``.

    Returns False when the group is already gone. Never raises.
    """
    if pid <= 0:
        logger.warning("Refusing to signal process group %s", pid)
        return False
    try:
        os.killpg(pid, signal.SIGTERM)
    except OSError as exc:
        logger.info("Process %s not found or already terminated (%s)", pid, exc)
        return False
    logger.info("Sent SIGTERM to process group %s", pid)
    return True


class ProcessOracle:
    def is_alive(self, pid: int) -> bool:
        return is_alive(pid)

    def terminate(self, pid: int) -> bool:
        return terminate_group(pid)
