import json

import pytest

from timers.manager import GRACE_MS, TimerManager
from timers.parser import ParseError
from timers.spawner import SpawnError
from timers.storage import TIMERS_FILENAME, Timer, load_timers, save_timers

NOW = 1_700_000_000_000


class FakeOracle:
    def __init__(self, alive=None, terminate_error=None):
        self.alive = set(alive or [])
        self.terminate_error = terminate_error
        self.terminated = []

    def is_alive(self, pid):
        return pid in self.alive

    def terminate(self, pid):
        self.terminated.append(pid)
        if self.terminate_error:
            raise self.terminate_error
        self.alive.discard(pid)
        return True


class FakeSpawner:
    def __init__(self, pid=4321, error=None):
        self.pid = pid
        self.error = error
        self.calls = []

    def __call__(self, delay_seconds, message):
        self.calls.append((delay_seconds, message))
        if self.error:
            raise self.error
        return self.pid


@pytest.fixture
def path(tmp_path):
    return tmp_path / "support" / TIMERS_FILENAME


def _timer(timer_id, pid, due_time=NOW + 60_000):
    return Timer(
        id=timer_id,
        pid=pid,
        created_at=due_time - 60_000,
        duration=60,
        original_input="1m",
        content=f"Timer {timer_id}",
        due_time=due_time,
    )


def _manager(path, oracle=None, spawn_fn=None, now=NOW):
    return TimerManager(
        path,
        spawn_fn=spawn_fn or FakeSpawner(),
        oracle=oracle or FakeOracle(),
        clock=lambda: now,
    )


def test_create_spawns_and_persists(path):
    spawn_fn = FakeSpawner(pid=777)
    oracle = FakeOracle(alive=[777])
    manager = _manager(path, oracle=oracle, spawn_fn=spawn_fn)

    timer = manager.create("1h10m30s Deep Work")

    assert spawn_fn.calls == [(4230, "Deep Work")]
    assert timer.pid == 777
    assert timer.created_at == NOW
    assert timer.duration == 4230
    assert timer.due_time == NOW + 4230 * 1000
    assert timer.content == "Deep Work"
    assert timer.original_input == "1h10m30s Deep Work"
    assert load_timers(path) == [timer]


def test_create_rejects_bad_input_without_spawning(path):
    spawn_fn = FakeSpawner()
    manager = _manager(path, spawn_fn=spawn_fn)
    with pytest.raises(ParseError):
        manager.create("meeting 10m")
    assert spawn_fn.calls == []
    assert not path.exists()


def test_create_does_not_persist_when_spawn_fails(path):
    manager = _manager(path, spawn_fn=FakeSpawner(error=SpawnError("boom")))
    with pytest.raises(SpawnError):
        manager.create("5m Tea")
    assert load_timers(path) == []


def test_create_does_not_persist_without_pid(path):
    manager = _manager(path, spawn_fn=FakeSpawner(pid=None))
    with pytest.raises(SpawnError):
        manager.create("5m Tea")
    assert not path.exists()


def test_create_assigns_unique_ids(path):
    manager = _manager(path)
    first = manager.create("5m")
    second = manager.create("5m")
    assert first.id != second.id
    assert [t.id for t in load_timers(path)] == [first.id, second.id]


def test_reconcile_drops_dead_processes_and_rewrites(path):
    alive = _timer("1", 123)
    dead = _timer("2", 456)
    save_timers(path, [alive, dead])
    manager = _manager(path, oracle=FakeOracle(alive=[123]))

    assert manager.reconcile() == [alive]
    stored = json.loads(path.read_text(encoding="utf-8"))
    assert [item["id"] for item in stored] == ["1"]


def test_reconcile_drops_timers_past_grace_window(path):
    overdue = _timer("1", 123, due_time=NOW - GRACE_MS - 1)
    save_timers(path, [overdue])
    manager = _manager(path, oracle=FakeOracle(alive=[123]))
    assert manager.reconcile() == []
    assert load_timers(path) == []


def test_reconcile_keeps_timers_inside_grace_window(path):
    just_due = _timer("1", 123, due_time=NOW - GRACE_MS)
    save_timers(path, [just_due])
    manager = _manager(path, oracle=FakeOracle(alive=[123]))
    assert manager.reconcile() == [just_due]


def test_reconcile_skips_write_when_nothing_changed(path):
    save_timers(path, [_timer("1", 123)])
    path.write_text(path.read_text(encoding="utf-8") + "\n", encoding="utf-8")
    marker = path.read_text(encoding="utf-8")
    manager = _manager(path, oracle=FakeOracle(alive=[123]))

    manager.reconcile()

    assert path.read_text(encoding="utf-8") == marker


def test_reconcile_on_missing_file_does_not_create_it(path):
    assert _manager(path).reconcile() == []
    assert not path.exists()


def test_list_timers_reconciles(path):
    save_timers(path, [_timer("1", 123), _timer("2", 456)])
    manager = _manager(path, oracle=FakeOracle(alive=[456]))
    assert [t.id for t in manager.list_timers()] == ["2"]
    assert [t.id for t in load_timers(path)] == ["2"]


def test_cancel_terminates_and_removes(path):
    save_timers(path, [_timer("1", 123), _timer("2", 456)])
    oracle = FakeOracle(alive=[123, 456])
    manager = _manager(path, oracle=oracle)

    cancelled = manager.cancel("1")

    assert cancelled.id == "1"
    assert oracle.terminated == [123]
    assert [t.id for t in load_timers(path)] == ["2"]


def test_cancel_removes_even_when_terminate_raises(path):
    save_timers(path, [_timer("1", 123)])
    oracle = FakeOracle(alive=[123], terminate_error=ProcessLookupError(123))
    manager = _manager(path, oracle=oracle)

    assert manager.cancel("1").id == "1"
    assert load_timers(path) == []


def test_cancel_unknown_id_is_a_noop_that_still_saves(path):
    save_timers(path, [_timer("1", 123)])
    path.write_text(json.dumps([_timer("1", 123).to_dict()]), encoding="utf-8")
    oracle = FakeOracle(alive=[123])
    manager = _manager(path, oracle=oracle)

    assert manager.cancel("nope") is None
    assert oracle.terminated == []
    assert [t.id for t in load_timers(path)] == ["1"]
    assert path.read_text(encoding="utf-8").startswith("[\n  {")


def test_get_returns_active_timer(path):
    save_timers(path, [_timer("1", 123), _timer("2", 456)])
    manager = _manager(path, oracle=FakeOracle(alive=[123]))
    assert manager.get("1").id == "1"
    assert manager.get("2") is None


def test_negative_grace_is_clamped(path):
    manager = TimerManager(path, spawn_fn=FakeSpawner(), oracle=FakeOracle(), grace_ms=-10)
    assert manager.grace_ms == 0


def test_create_stops_process_when_save_fails(path, monkeypatch):
    oracle = FakeOracle(alive=[777])
    manager = _manager(path, oracle=oracle, spawn_fn=FakeSpawner(pid=777))

    def failing_add(timer):
        raise PermissionError("read-only state dir")

    monkeypatch.setattr(manager.store, "add", failing_add)
    with pytest.raises(PermissionError):
        manager.create("5m Tea")
    assert oracle.terminated == [777]
    assert not path.exists()
