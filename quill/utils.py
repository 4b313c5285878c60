"""Filesystem helpers for Quill builds.

Key functions:
    check_writable: Ensure the output directory can be created or written.
    clean_dir: Empty a directory while keeping dotfiles.
    copy_tree: Copy a directory into the output, merging with existing files.
    write_text: Write a file, creating parent directories.
"""

from __future__ import annotations

import os
import shutil
from pathlib import Path

from .errors import BuildError, Error, ErrorKind


def check_writable(dest: Path) -> None:
    """Ensure ``dest`` (or its parent, if it does not exist yet) is writable.

    Args:
        dest: Output directory.

    Raises:
        BuildError: With a ``file_error`` if the directory cannot be written.
    """
    target = dest if dest.exists() else dest.parent
    if not target.exists():
        raise BuildError(Error(ErrorKind.FILE_ERROR, "No such file or directory", target))
    if not target.is_dir():
        raise BuildError(Error(ErrorKind.FILE_ERROR, "Not a directory", target))
    if not os.access(target, os.W_OK | os.X_OK):
        raise BuildError(Error(ErrorKind.FILE_ERROR, "Permission denied", dest))


def clean_dir(path: Path) -> None:
    """Ensure a directory exists and remove everything in it but dotfiles.

    Entries starting with "." (such as a ``.git`` directory) are kept.

    Args:
        path: Directory to clean or create.

    Raises:
        BuildError: If the directory cannot be created or cleaned.
    """
    try:
        path.mkdir(parents=True, exist_ok=True)
        for item in path.iterdir():
            if item.name.startswith("."):
                continue
            if item.is_dir() and not item.is_symlink():
                shutil.rmtree(item)
            else:
                item.unlink()
    except OSError as exc:
        raise BuildError(Error.from_os_error(exc, path)) from exc


def copy_tree(src: Path, dest: Path) -> None:
    """Copy the directory ``src`` to ``dest``.

    Raises:
        OSError: If ``src`` is missing or a file cannot be copied.
    """
    if not src.is_dir():
        raise FileNotFoundError(2, "No such file or directory", str(src))
    shutil.copytree(src, dest, dirs_exist_ok=True)


def write_text(path: Path, text: str) -> None:
    """Write ``text`` to ``path``.

    Raises:
        BuildError: With a ``file_error``; a file that cannot be written means
            the output directory is unusable.
    """
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            f.write(text)
    except OSError as exc:
        raise BuildError(Error.from_os_error(exc, path)) from exc
