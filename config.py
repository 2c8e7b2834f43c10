import logging
import logging.handlers
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from timers.manager import GRACE_MS
from timers.spawner import DEFAULT_TITLE
from timers.storage import TIMERS_FILENAME


def _get_env_bool(name: str, default: bool = False) -> bool:
    val = os.getenv(name)
    if val is None:
        return default
    return val.strip() in {"1", "true", "True", "yes", "YES", "y"}


def _get_env_int(name: str, default: int) -> int:
    val = os.getenv(name)
    if val is None or val == "":
        return default
    try:
        return int(val)
    except ValueError as exc:
        raise ValueError(f"Environment variable {name} must be an integer") from exc


def _default_state_dir() -> Path:
    xdg_state = os.getenv("XDG_STATE_HOME")
    base = Path(xdg_state) if xdg_state else Path.home() / ".local" / "state"
    return base / "simpler-timer"


@dataclass
class Config:
    state_dir: Path
    logs_dir: Path
    log_level: str
    debug: bool
    notify_title: str
    notify_command: Optional[str]
    grace_ms: int
    timezone_name: Optional[str]

    @property
    def timers_path(self) -> Path:
        return self.state_dir / TIMERS_FILENAME


def load_config(env_path: Optional[Path] = None) -> Config:
    if env_path is None:
        env_path = Path(".env")
    if env_path.exists():
        load_dotenv(env_path)

    state_dir_env = os.getenv("SIMPLER_TIMER_STATE_DIR")
    state_dir = Path(state_dir_env).expanduser() if state_dir_env else _default_state_dir()
    logs_dir_env = os.getenv("LOG_DIR")
    logs_dir = Path(logs_dir_env).expanduser() if logs_dir_env else state_dir / "logs"

    debug = _get_env_bool("DEBUG", False)
    log_level = "DEBUG" if debug else os.getenv("LOG_LEVEL", "INFO").upper()
    notify_title = os.getenv("TIMER_NOTIFY_TITLE") or DEFAULT_TITLE
    notify_command = os.getenv("TIMER_NOTIFY_COMMAND") or None
    grace_ms = _get_env_int("TIMER_GRACE_MS", GRACE_MS)
    if grace_ms < 0:
        raise ValueError("Environment variable TIMER_GRACE_MS must not be negative")
    timezone_name = os.getenv("TIMER_TIMEZONE") or None

    return Config(
        state_dir=state_dir,
        logs_dir=logs_dir,
        log_level=log_level,
        debug=debug,
        notify_title=notify_title,
        notify_command=notify_command,
        grace_ms=grace_ms,
        timezone_name=timezone_name,
    )


def setup_logging(log_level: str = "INFO", logs_dir: Optional[Path] = None, console: bool = True) -> None:
    logs_dir = logs_dir or Path("logs")
    logs_dir.mkdir(parents=True, exist_ok=True)

    log_path = logs_dir / "simpler_timer.log"
    formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")

    file_handler = logging.handlers.RotatingFileHandler(
        log_path, maxBytes=1_000_000, backupCount=3, encoding="utf-8"
    )
    file_handler.setFormatter(formatter)
    handlers: list = [file_handler]

    if console:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        handlers=handlers,
    )
