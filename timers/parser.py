from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

DEFAULT_LABEL = "Timer Done"
FORMAT_HINT = "Format: {time} [content] (e.g. 45m Take a break)"

UNIT_SECONDS = {
    "s": 1,
    "m": 60,
    "h": 3600,
}

_INPUT_RE = re.compile(r"^((?:\d+[smh])+)(?:\s+(.*))?$", re.IGNORECASE | re.DOTALL)
_GROUP_RE = re.compile(r"(\d+)([smh])", re.IGNORECASE)


class ParseError(ValueError):
    def __init__(self, text: str, hint: str = FORMAT_HINT):
        super().__init__(f"Invalid timer input {text!r}. {hint}")
        self.text = text
        self.hint = hint


@dataclass
class TimerCommand:
    duration_seconds: int
    original_time_part: str
    label: str
    raw_text: str = ""


def parse_timer_input(text: str) -> Optional[TimerCommand]:
    """Parse "<digits><unit>... [label]" into a timer command.

    Units are s, m and h in any case, written back to back ("1h10m30s").
    Repeated units add up. The label must be separated from the time run by
    whitespace; a missing or blank label becomes "Timer Done". Returns None
    when the input does not start with a time run.
    """

    cleaned = (text or "").strip()
    match = _INPUT_RE.match(cleaned)
    if not match:
        return None

    time_part = match.group(1).strip()
    total = 0
    for value, unit in _GROUP_RE.findall(time_part):
        total += int(value) * UNIT_SECONDS[unit.lower()]

    label = (match.group(2) or "").strip() or DEFAULT_LABEL
    return TimerCommand(
        duration_seconds=total,
        original_time_part=time_part,
        label=label,
        raw_text=cleaned,
    )
