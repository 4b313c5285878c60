import random
import threading
import time

import pytest

from quill import launcher
from quill.errors import BuildError, Error, ErrorKind
from quill.launcher import BuildMode, launch, max_concurrency


def test_max_concurrency_scales_with_cpus(monkeypatch):
    monkeypatch.setattr(launcher.os, "cpu_count", lambda: 4)
    assert max_concurrency() == 40
    monkeypatch.setattr(launcher.os, "cpu_count", lambda: None)
    assert max_concurrency() == 10


def test_sequential_runs_in_order():
    seen = []

    def task(unit):
        seen.append(unit)
        return unit * 2

    assert launch(BuildMode.SEQUENTIAL, [3, 1, 2], task) == [6, 2, 4]
    assert seen == [3, 1, 2]


def test_parallel_preserves_input_order():
    units = list(range(30))

    def task(unit):
        time.sleep(random.uniform(0, 0.01))
        return unit * unit

    assert launch(BuildMode.PARALLEL, units, task) == [u * u for u in units]


def test_parallel_runs_units_concurrently():
    barrier = threading.Barrier(3, timeout=5)

    def task(unit):
        # Deadlocks (and times out) unless all three run at once.
        barrier.wait()
        return unit

    assert launch(BuildMode.PARALLEL, ["a", "b", "c"], task) == ["a", "b", "c"]


@pytest.mark.parametrize("mode", list(BuildMode))
def test_failures_are_captured_per_unit(mode):
    def task(unit):
        if unit == "returned":
            return Error(ErrorKind.POST_ERROR, "invalid_header")
        if unit == "io":
            raise FileNotFoundError(2, "No such file or directory", "missing.md")
        if unit == "boom":
            raise ValueError("boom")
        return unit

    outcomes = launch(mode, ["ok", "returned", "io", "boom", "fine"], task)
    assert outcomes[0] == "ok"
    assert outcomes[1].kind is ErrorKind.POST_ERROR
    assert outcomes[2].kind is ErrorKind.FILE_ERROR
    assert str(outcomes[2].path) == "missing.md"
    assert outcomes[3].kind is ErrorKind.UNEXPECTED_ERROR
    assert "boom" in outcomes[3].message
    assert outcomes[4] == "fine"


def test_sequential_fatal_error_stops_scheduling():
    ran = []

    def task(unit):
        ran.append(unit)
        if unit == 2:
            raise BuildError(Error(ErrorKind.FILE_ERROR, "Permission denied"))
        return unit

    with pytest.raises(BuildError) as info:
        launch(BuildMode.SEQUENTIAL, [1, 2, 3, 4], task)
    assert info.value.error.message == "Permission denied"
    assert ran == [1, 2]


def test_parallel_fatal_error_cancels_queued_units(monkeypatch):
    monkeypatch.setattr(launcher, "max_concurrency", lambda: 1)
    ran = []

    def task(unit):
        ran.append(unit)
        if unit == 0:
            raise BuildError(Error(ErrorKind.FILE_ERROR, "Permission denied"))
        time.sleep(0.05)
        return unit

    with pytest.raises(BuildError):
        launch(BuildMode.PARALLEL, list(range(10)), task)
    assert ran[0] == 0
    assert len(ran) < 10


def test_sequential_fatal_error_carries_finished_outcomes():
    def task(unit):
        if unit == "bad":
            return Error(ErrorKind.POST_ERROR, "invalid_header")
        if unit == "fatal":
            raise BuildError(Error(ErrorKind.FILE_ERROR, "Permission denied"))
        return unit

    with pytest.raises(BuildError) as info:
        launch(BuildMode.SEQUENTIAL, ["ok", "bad", "fatal", "never"], task)
    outcomes = info.value.outcomes
    assert outcomes[0] == "ok"
    assert outcomes[1].message == "invalid_header"
    assert len(outcomes) == 2


def test_parallel_fatal_error_carries_finished_outcomes():
    finished = threading.Event()

    def task(unit):
        if unit == "bad":
            finished.set()
            return Error(ErrorKind.TEMPLATE_ERROR, "UndefinedError: 'nope' is undefined")
        if unit == "fatal":
            finished.wait(timeout=5)
            raise BuildError(Error(ErrorKind.FILE_ERROR, "Permission denied"))
        return unit

    with pytest.raises(BuildError) as info:
        launch(BuildMode.PARALLEL, ["bad", "fatal"], task)
    assert info.value.error.message == "Permission denied"
    assert [o.kind for o in info.value.outcomes] == [ErrorKind.TEMPLATE_ERROR]


def test_empty_unit_list():
    assert launch(BuildMode.PARALLEL, [], lambda unit: unit) == []
