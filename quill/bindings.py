"""Build-scoped global bindings for Quill.

``GlobalBindings`` holds the data every page may reference: site metadata,
compiled templates, the post and page lists and the tag index. It is created
empty at the start of a build, written while templates are prepared and
during Pass 1, frozen at the barrier and cleared when the build ends.

Pass 1 tasks write concurrently, so every mutation goes through one lock.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from types import MappingProxyType
from typing import Any


class BindingsFrozenError(RuntimeError):
    """Raised when writing to bindings after the Pass 1 barrier."""


class GlobalBindings:
    """Shared key/value store with a write phase and a read phase."""

    def __init__(self):
        self._data: dict[str, Any] = {}
        self._lock = threading.Lock()
        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    def _check_writable(self, key: str) -> None:
        if self._frozen:
            raise BindingsFrozenError(f"cannot write '{key}': bindings are frozen")

    def put(self, key: str, value: Any) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""
        with self._lock:
            self._check_writable(key)
            self._data[key] = value

    def append(self, key: str, value: Any) -> None:
        """Append ``value`` to the list stored under ``key``.

        Args:
            key: Accumulator key (e.g. ``posts``).
            value: Item to append.
        """
        with self._lock:
            self._check_writable(key)
            self._data.setdefault(key, []).append(value)

    def add_to_index(self, key: str, name: str, value: Any) -> None:
        """Append ``value`` to the ``name`` bucket of the index under ``key``.

        Args:
            key: Index key (e.g. ``tags``).
            name: Bucket name inside the index (e.g. a tag name).
            value: Item to append to the bucket.
        """
        with self._lock:
            self._check_writable(key)
            self._data.setdefault(key, {}).setdefault(name, []).append(value)

    def update(self, key: str, func: Callable[[Any], Any], default: Any = None) -> None:
        """Replace the value under ``key`` with ``func(value)`` atomically."""
        with self._lock:
            self._check_writable(key)
            self._data[key] = func(self._data.get(key, default))

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def freeze(self) -> None:
        """Close the write phase; later writes raise ``BindingsFrozenError``."""
        with self._lock:
            self._frozen = True

    def snapshot(self) -> MappingProxyType:
        """Return a read-only view of the current bindings."""
        with self._lock:
            return MappingProxyType(dict(self._data))

    def clear(self) -> None:
        """Tear the store down at the end of a build."""
        with self._lock:
            self._data.clear()
            self._frozen = False

    def __repr__(self) -> str:  # pragma: no cover - for debugging
        state = "frozen" if self._frozen else "open"
        return f"GlobalBindings({sorted(self._data)}, {state})"
