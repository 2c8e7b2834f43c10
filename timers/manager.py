from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, List, Optional

from time_utils import now_ms

from .parser import FORMAT_HINT, ParseError, parse_timer_input
from .processes import ProcessOracle
from .spawner import SpawnError, spawn
from .storage import Timer, TimerStore

logger = logging.getLogger(__name__)

# A still-running process this far past its due time is treated as finished.
GRACE_MS = 5000


class TimerManager:
    def __init__(
        self,
        storage_path,
        spawn_fn: Callable[[int, str], int] = spawn,
        oracle: Optional[ProcessOracle] = None,
        clock: Callable[[], int] = now_ms,
        grace_ms: int = GRACE_MS,
    ):
        self.store = TimerStore(Path(storage_path))
        self.spawn_fn = spawn_fn
        self.oracle = oracle or ProcessOracle()
        self.clock = clock
        self.grace_ms = max(0, grace_ms)

    @property
    def storage_path(self) -> Path:
        return self.store.path

    def create(self, raw_input: str) -> Timer:
        command = parse_timer_input(raw_input)
        if command is None:
            raise ParseError(raw_input, FORMAT_HINT)

        pid = self.spawn_fn(command.duration_seconds, command.label)
        if not pid:
            raise SpawnError("Timer process did not report a pid")

        timer = Timer.new(
            pid=pid,
            created_at=self.clock(),
            duration=command.duration_seconds,
            original_input=command.raw_text,
            content=command.label,
        )
        try:
            self.store.add(timer)
        except Exception:
            # No running timer process without a record.
            logger.error("Failed to save timer %s, stopping process group %s", timer.id, pid, exc_info=True)
            self.oracle.terminate(pid)
            raise
        logger.info(
            "Timer %s set for %ss (pid=%s, label=%s)", timer.id, timer.duration, timer.pid, timer.content
        )
        return timer

    def reconcile(self) -> List[Timer]:
        timers = self.store.load()
        now = self.clock()
        active = [t for t in timers if self._is_active(t, now)]
        if len(active) != len(timers):
            self.store.save(active)
            logger.info("Pruned %s expired timer(s), %s active", len(timers) - len(active), len(active))
        return active

    def list_timers(self) -> List[Timer]:
        return self.reconcile()

    def get(self, timer_id: str) -> Optional[Timer]:
        for timer in self.reconcile():
            if timer.id == timer_id:
                return timer
        return None

    def cancel(self, timer_id: str) -> Optional[Timer]:
        timers = self.store.load()
        target = next((t for t in timers if t.id == timer_id), None)
        if target is not None:
            try:
                self.oracle.terminate(target.pid)
            except Exception:
                logger.warning("Terminating process group %s failed", target.pid, exc_info=True)
            logger.info("Cancelled timer %s (%s)", target.id, target.content)
        else:
            logger.info("Timer %s not found, nothing to cancel", timer_id)
        self.store.save([t for t in timers if t.id != timer_id])
        return target

    def _is_active(self, timer: Timer, now: int) -> bool:
        if not self.oracle.is_alive(timer.pid):
            logger.debug("Timer %s process %s is gone", timer.id, timer.pid)
            return False
        if now > timer.due_time + self.grace_ms:
            logger.debug("Timer %s is past due (due=%s, now=%s)", timer.id, timer.due_time, now)
            return False
        return True
