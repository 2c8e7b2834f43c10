from __future__ import annotations

import json
import logging
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import List

logger = logging.getLogger(__name__)

TIMERS_FILENAME = "simple_timers.json"


@dataclass
class Timer:
    id: str
    pid: int
    created_at: int
    duration: int
    original_input: str
    content: str
    due_time: int

    @classmethod
    def new(cls, pid: int, created_at: int, duration: int, original_input: str, content: str) -> "Timer":
        return cls(
            id=str(uuid.uuid4()),
            pid=pid,
            created_at=created_at,
            duration=duration,
            original_input=original_input,
            content=content,
            due_time=created_at + duration * 1000,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "pid": self.pid,
            "createdAt": self.created_at,
            "duration": self.duration,
            "originalInput": self.original_input,
            "content": self.content,
            "dueTime": self.due_time,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Timer":
        missing = [key for key in ("id", "pid", "createdAt", "duration") if data.get(key) is None]
        if missing:
            raise ValueError(f"Timer payload missing fields: {', '.join(missing)}")
        created_at = int(data["createdAt"])
        duration = int(data["duration"])
        return cls(
            id=str(data["id"]),
            pid=int(data["pid"]),
            created_at=created_at,
            duration=duration,
            original_input=str(data.get("originalInput") or ""),
            content=str(data.get("content") or ""),
            due_time=created_at + duration * 1000,
        )


def load_timers(path: Path) -> List[Timer]:
    if not path.exists():
        return []
    try:
        with path.open("r", encoding="utf-8") as f:
            payload = json.load(f)
    except (OSError, ValueError) as exc:
        logger.warning("Failed to read timers from %s: %s", path, exc)
        return []
    if not isinstance(payload, list):
        logger.warning("Timer file %s does not hold a JSON array, ignoring it", path)
        return []
    timers: List[Timer] = []
    for item in payload:
        try:
            timers.append(Timer.from_dict(item))
        except (AttributeError, TypeError, ValueError) as exc:
            logger.warning("Skipping timer item due to parse error: %s", exc)
    return timers


def save_timers(path: Path, timers: List[Timer]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    serializable = [t.to_dict() for t in timers]
    with path.open("w", encoding="utf-8") as f:
        json.dump(serializable, f, ensure_ascii=False, indent=2)


def add_timer(path: Path, timer: Timer) -> None:
    timers = load_timers(path)
    timers.append(timer)
    save_timers(path, timers)


def remove_timer(path: Path, timer_id: str) -> None:
    timers = [t for t in load_timers(path) if t.id != timer_id]
    save_timers(path, timers)


class TimerStore:
    """File-backed timer list. Every call re-reads the file; nothing is cached."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def load(self) -> List[Timer]:
        return load_timers(self.path)

    def save(self, timers: List[Timer]) -> None:
        save_timers(self.path, timers)

    def add(self, timer: Timer) -> None:
        add_timer(self.path, timer)

    def remove(self, timer_id: str) -> None:
        remove_timer(self.path, timer_id)
