import argparse
import logging
import sys
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from config import Config, load_config, setup_logging
from time_utils import format_clock, format_remaining, now_ms, remaining_seconds, resolve_timezone
from timers import ParseError, SpawnError, Spawner, Timer, TimerManager

logger = logging.getLogger("simpler_timer")

ID_PREFIX_LEN = 8


def toast_success(title: str, message: str) -> None:
    print(f"✓ {title}: {message}")


def toast_failure(title: str, message: str) -> None:
    print(f"✗ {title}: {message}", file=sys.stderr)


def build_manager(config: Config) -> TimerManager:
    return TimerManager(
        config.timers_path,
        spawn_fn=Spawner(title=config.notify_title, template=config.notify_command),
        grace_ms=config.grace_ms,
    )


def render_timers(timers: Sequence[Timer], tz=None, now: Optional[int] = None) -> List[str]:
    if not timers:
        return ["No active timers", "Use 'simpler-timer set <time> [content]' to create one"]
    now = now_ms() if now is None else now
    lines = []
    for index, timer in enumerate(timers, start=1):
        left = format_remaining(remaining_seconds(timer.due_time, now))
        lines.append(
            f"{index:>2}. [{timer.id[:ID_PREFIX_LEN]}] {timer.content}"
            f"  Ends in {left}  ({format_clock(timer.due_time, tz)})"
        )
    return lines


def resolve_timer_id(manager: TimerManager, token: str) -> str:
    """Expand a unique id prefix to the full id. Unknown tokens pass through unchanged."""
    if not token.strip():
        return token
    matches = [t.id for t in manager.store.load() if t.id.startswith(token)]
    if len(matches) > 1:
        raise ValueError(f"Timer id prefix {token!r} is ambiguous ({len(matches)} matches)")
    return matches[0] if matches else token


def cmd_set(manager: TimerManager, text: str) -> int:
    try:
        timer = manager.create(text)
    except ParseError as exc:
        toast_failure("Invalid format", exc.hint)
        return 1
    except SpawnError as exc:
        logger.error("Failed to set timer: %s", exc)
        toast_failure("Failed to set timer", str(exc))
        return 1
    time_part = timer.original_input.split(None, 1)[0]
    toast_success("Timer set", f"Notifying in {time_part}: {timer.content}")
    return 0


def cmd_list(manager: TimerManager, tz=None) -> int:
    for line in render_timers(manager.list_timers(), tz):
        print(line)
    return 0


def cmd_cancel(manager: TimerManager, token: str) -> int:
    try:
        timer_id = resolve_timer_id(manager, token)
    except ValueError as exc:
        toast_failure("Cancel failed", str(exc))
        return 1
    cancelled = manager.cancel(timer_id)
    if cancelled is None:
        toast_success("Nothing to cancel", f"No active timer {token}")
    else:
        toast_success("Timer cancelled", cancelled.content)
    return 0


def cmd_manage(manager: TimerManager, tz=None, input_fn: Callable[[str], str] = input) -> int:
    timers = manager.list_timers()
    while True:
        print()
        for line in render_timers(timers, tz):
            print(line)
        try:
            choice = input_fn("[number] cancel, [r] refresh, [q] quit > ").strip().lower()
        except (EOFError, KeyboardInterrupt):
            print()
            return 0
        if choice in ("q", "quit", "exit"):
            return 0
        if choice in ("", "r", "refresh"):
            timers = manager.list_timers()
            continue
        if choice.isdigit() and 1 <= int(choice) <= len(timers):
            target = timers[int(choice) - 1]
            manager.cancel(target.id)
            toast_success("Timer cancelled", target.content)
            timers = manager.list_timers()
            continue
        print(f"Unknown choice: {choice}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="simpler-timer", description="Set, list and cancel desktop timers")
    parser.add_argument("--env", type=Path, default=None, help="Path to a .env file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Also log to the console")
    sub = parser.add_subparsers(dest="command", required=True)

    set_parser = sub.add_parser("set", help="Set a timer, e.g. '45m Take a break'")
    set_parser.add_argument("input", nargs="+", help="{time} [content]")

    sub.add_parser("list", help="List active timers")

    cancel_parser = sub.add_parser("cancel", help="Cancel a timer by id or id prefix")
    cancel_parser.add_argument("id")

    sub.add_parser("manage", help="Interactively list, refresh and cancel timers")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        config = load_config(args.env)
    except ValueError as exc:
        toast_failure("Configuration error", str(exc))
        return 2
    setup_logging(config.log_level, config.logs_dir, console=args.verbose or config.debug)
    logger.debug("Using timer store %s", config.timers_path)

    manager = build_manager(config)
    tz = resolve_timezone(config.timezone_name)

    if args.command == "set":
        return cmd_set(manager, " ".join(args.input))
    if args.command == "list":
        return cmd_list(manager, tz)
    if args.command == "cancel":
        return cmd_cancel(manager, args.id)
    if args.command == "manage":
        return cmd_manage(manager, tz)
    return 2


if __name__ == "__main__":
    sys.exit(main())
