"""Command-line interface for Quill.

This module defines the CLI commands using Click framework.

Commands:
- init: Scaffold a new Quill project.
- build: Build the site into the output directory.
- version: Show version information.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

import click

from . import __version__
from .launcher import BuildMode

# Path to the project skeleton copied by `quill init`
_SKELETON_DIR = Path(__file__).parent / "skeleton"


@click.group()
@click.version_option(version=__version__, prog_name="quill")
def cli():
    """Quill static site generator."""


@cli.command()
@click.argument("directory", default=".", type=click.Path(file_okay=False, path_type=Path))
def init(directory: Path):
    """Scaffold a new Quill project."""
    target = directory.resolve()
    if target.exists() and any(target.iterdir()):
        raise click.ClickException(
            f"Refusing to initialize into non-empty directory: {target}"
        )
    _scaffold(target)
    click.echo(f"New Quill project created at {target}")


@cli.command()
@click.argument(
    "directory", default=".", type=click.Path(exists=True, file_okay=False, path_type=Path)
)
@click.option("-p", "--parallel", is_flag=True, help="Build posts and pages in parallel")
@click.option(
    "-o",
    "--output",
    type=click.Path(file_okay=False, path_type=Path),
    help="Output directory (default: <directory>/site)",
)
@click.option("-v", "--verbose", is_flag=True, help="Show debug output")
def build(directory: Path, parallel: bool, output: Path | None, verbose: bool):
    """Build the site into the output directory."""
    _setup_logging(verbose)
    from .build import build_site

    mode = BuildMode.PARALLEL if parallel else BuildMode.SEQUENTIAL
    click.echo(f"Building {directory} ({mode.value})...")
    result = build_site(directory, output, mode)
    if not result.ok:
        count = len(result.errors)
        click.echo(
            click.style(f"Build failed with {count} error(s):", fg="red", bold=True),
            err=True,
        )
        for error in result.errors:
            for line in error.lines():
                click.echo(click.style(f"  {line}", fg="yellow"), err=True)
        raise SystemExit(1)
    click.echo(
        f"Built {len(result.posts)} posts and {len(result.pages)} pages into {result.output_dir}"
    )


@cli.command()
def version():
    """Show version information."""
    click.echo(f"Quill {__version__}")


class _ClickHandler(logging.Handler):
    """Logging handler that writes through ``click.echo``."""

    colors = {logging.WARNING: "yellow", logging.ERROR: "red", logging.CRITICAL: "red"}

    def emit(self, record: logging.LogRecord) -> None:
        try:
            message = self.format(record)
            fg = self.colors.get(record.levelno)
            click.echo(click.style(message, fg=fg) if fg else message, err=True)
        except Exception:
            self.handleError(record)


def _setup_logging(verbose: bool) -> None:
    handler = _ClickHandler()
    handler.setFormatter(logging.Formatter("%(message)s"))
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        handlers=[handler],
        force=True,
    )


def main():
    """Entry point for the CLI application."""
    cli()


def _scaffold(root: Path) -> None:
    """Create the directory structure and files for a new Quill project.

    Args:
        root: Root directory for the new project.
    """
    for src_path in _SKELETON_DIR.rglob("*"):
        if src_path.is_dir():
            continue
        rel_path = src_path.relative_to(_SKELETON_DIR)
        dest_path = root / rel_path
        dest_path.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(src_path, dest_path)
    (root / "media").mkdir(parents=True, exist_ok=True)
