from __future__ import annotations

import logging
import time
from datetime import datetime, tzinfo
from typing import Optional
from zoneinfo import ZoneInfo

logger = logging.getLogger(__name__)


def now_ms() -> int:
    return int(time.time() * 1000)


def resolve_timezone(name: Optional[str]) -> Optional[tzinfo]:
    if not name:
        return datetime.now().astimezone().tzinfo
    try:
        return ZoneInfo(name)
    except Exception as exc:  # pragma: no cover - environment-dependent
        logger.warning("Failed to load timezone %s via zoneinfo (%s), using local time", name, exc)
    return datetime.now().astimezone().tzinfo


def remaining_seconds(due_time_ms: int, now: Optional[int] = None) -> int:
    now = now_ms() if now is None else now
    return max(0, (due_time_ms - now) // 1000)


def format_remaining(seconds: int) -> str:
    hours, rest = divmod(max(0, int(seconds)), 3600)
    minutes, secs = divmod(rest, 60)
    parts = []
    if hours > 0:
        parts.append(f"{hours}h")
    if minutes > 0:
        parts.append(f"{minutes}m")
    parts.append(f"{secs}s")
    return " ".join(parts)


def format_clock(epoch_ms: int, tz: Optional[tzinfo] = None) -> str:
    moment = datetime.fromtimestamp(epoch_ms / 1000, tz or datetime.now().astimezone().tzinfo)
    return moment.strftime("%H:%M:%S")
