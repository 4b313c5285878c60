"""Task launching for Quill builds.

Each pass of a build runs one independent task per unit of work (a post, a
page, a listing). ``launch`` runs them one after another or on a bounded
thread pool, and always returns one outcome per unit in input order.

A task reports an item failure by returning an ``Error``. Exceptions that
escape a task are turned into ``Error`` outcomes as well, except
``BuildError``: it is fatal, stops scheduling of further units and is
re-raised once the units already running have finished, carrying their
outcomes.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Sequence
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from enum import Enum
from typing import Any, TypeVar

from .errors import BuildError, Error, ErrorKind

logger = logging.getLogger(__name__)

U = TypeVar("U")

# Tasks spend most of their time waiting on file I/O.
CONCURRENCY_FACTOR = 10


class BuildMode(str, Enum):
    SEQUENTIAL = "sequential"
    PARALLEL = "parallel"


def max_concurrency() -> int:
    """Return the worker limit for parallel mode."""
    return (os.cpu_count() or 1) * CONCURRENCY_FACTOR


def _unit_label(unit: Any) -> Any:
    return getattr(unit, "source", None) or getattr(unit, "dest", None) or unit


def run_unit(task: Callable[[U], Any], unit: U) -> Any:
    """Run one task and capture its failure as an outcome.

    Args:
        task: Per-unit task function.
        unit: The unit of work.

    Returns:
        The task's return value, or an ``Error`` for an escaped exception.

    Raises:
        BuildError: If the task raised a fatal error.
    """
    try:
        return task(unit)
    except BuildError:
        raise
    except OSError as exc:
        return Error.from_os_error(exc)
    except Exception as exc:
        logger.debug("Task for %s raised", _unit_label(unit), exc_info=True)
        return Error(
            ErrorKind.UNEXPECTED_ERROR,
            f"{type(exc).__name__}: {exc}",
            None,
        )


def launch(mode: BuildMode, units: Sequence[U], task: Callable[[U], Any]) -> list[Any]:
    """Run ``task`` for every unit.

    Args:
        mode: Sequential or parallel execution.
        units: Independent units of work.
        task: Function run once per unit.

    Returns:
        One outcome per unit, in the order of ``units``.

    Raises:
        BuildError: If any task raised a fatal error. Its ``outcomes`` hold
            the outcomes of the units that finished, in input order.
    """
    if mode is BuildMode.SEQUENTIAL or len(units) <= 1:
        outcomes = []
        for unit in units:
            try:
                outcomes.append(run_unit(task, unit))
            except BuildError as exc:
                exc.outcomes = outcomes
                raise
        return outcomes

    workers = min(max_concurrency(), len(units))
    fatal = None
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="quill") as executor:
        futures = [executor.submit(run_unit, task, unit) for unit in units]
        done, pending = wait(futures, return_when=FIRST_EXCEPTION)
        fatal = next(
            (f.exception() for f in futures if f in done and f.exception() is not None),
            None,
        )
        if fatal is not None:
            for future in pending:
                future.cancel()
    # Units already running have finished once the executor has shut down.
    if fatal is not None:
        fatal.outcomes = [
            f.result() for f in futures if not f.cancelled() and f.exception() is None
        ]
        raise fatal
    return [future.result() for future in futures]
