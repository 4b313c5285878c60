"""Error model for Quill.

Every stage of the build reports problems with the same ``Error`` value.
Per-item problems are returned as ``Error`` instances so that sibling items
keep building; fatal problems are raised wrapped in ``BuildError`` and stop
the build.

Key classes:
- ErrorKind: Distinguished error categories.
- Error: Immutable error value with kind, message, path and line.
- BuildError: Exception carrying a fatal ``Error``.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any


class ErrorKind(str, Enum):
    """Categories of build errors."""

    FILE_ERROR = "file_error"
    POST_ERROR = "post_error"
    TEMPLATE_ERROR = "template_error"
    PROJECT_VALIDATOR = "project_validator"
    UNEXPECTED_ERROR = "unexpected_error"


@dataclass(frozen=True)
class Error:
    """A single build failure.

    Attributes:
        kind: Category of the failure.
        message: Human-readable reason (e.g. ``invalid_header``).
        path: File the failure refers to, if any.
        line: Line number in ``path``; 0 when unknown.
        children: Nested failures, used by aggregate errors.
    """

    kind: ErrorKind
    message: str
    path: Path | None = None
    line: int = 0
    children: tuple[Error, ...] = ()

    @classmethod
    def from_os_error(cls, exc: OSError, path: Path | str | None = None) -> Error:
        """Map an ``OSError`` to a ``file_error``.

        Args:
            exc: The raised I/O error.
            path: Path to report; defaults to the error's own filename.

        Returns:
            Error of kind ``file_error``.
        """
        target = path if path is not None else exc.filename
        reason = exc.strerror or str(exc)
        return cls(
            ErrorKind.FILE_ERROR,
            reason,
            Path(target) if target is not None else None,
        )

    def __str__(self) -> str:
        location = ""
        if self.path is not None:
            location = f"{self.path}:{self.line}: " if self.line else f"{self.path}: "
        return f"{self.kind.value}: {location}{self.message}"

    def lines(self, indent: str = "  ") -> Iterator[str]:
        """Yield this error and its children, one line each."""
        yield str(self)
        for child in self.children:
            for line in child.lines(indent):
                yield f"{indent}{line}"


class BuildError(Exception):
    """Fatal build failure.

    Attributes:
        error: The ``Error`` describing the failure.
        outcomes: Outcomes of the units that finished before the failure,
            filled in by ``launch``.
    """

    def __init__(self, error: Error, outcomes: Iterable[Any] = ()):
        self.error = error
        self.outcomes = list(outcomes)
        super().__init__(str(error))


def collect_failures(outcomes: Iterable[Any]) -> list[Error]:
    """Return the ``Error`` values from a list of task outcomes."""
    return [outcome for outcome in outcomes if isinstance(outcome, Error)]
