"""Timer subsystem: parsing, storage, process tracking."""

from .manager import GRACE_MS, TimerManager
from .parser import DEFAULT_LABEL, ParseError, TimerCommand, parse_timer_input
from .processes import ProcessOracle
from .spawner import SpawnError, Spawner, spawn
from .storage import Timer, TimerStore, load_timers, save_timers
