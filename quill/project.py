"""Project definition loading for Quill.

A Quill project is described by ``quill.yaml`` in the project root::

    site_name: My Site
    site_description: Notes and essays
    author: Jane Doe
    author_email: jane@example.com
    base_url: /

Key functions:
- load_project: Read, validate and return the project definition.
- validate_project: Collect every problem in a parsed definition.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

import yaml

from .errors import BuildError, Error, ErrorKind

PROJECT_FILE = "quill.yaml"

REQUIRED_KEYS = ("site_name", "site_description", "author", "author_email", "base_url")

DEFAULT_PROJECT = {
    "server_root": "",
    "preview_length": 200,
    "date_format": "%Y-%m-%d",
    "list_title_all": "All Posts",
    "list_title_tag": "Posts Tagged ~ {tag}",
}


@dataclass(frozen=True)
class Project:
    """Validated project settings.

    Attributes:
        site_name: Name of the website.
        site_description: Short description of the website.
        author: Name of the site author.
        author_email: Email address of the site author.
        base_url: URL prefix of every generated page; ends with "/".
        server_root: Root URL of the server hosting the site.
        preview_length: Maximum length of post previews; 0 disables them.
        date_format: ``strftime`` format for post dates.
        list_title_all: Heading of the list of all posts.
        list_title_tag: Heading of a tag listing; ``{tag}`` is replaced.
    """

    site_name: str
    site_description: str
    author: str
    author_email: str
    base_url: str
    server_root: str = DEFAULT_PROJECT["server_root"]
    preview_length: int = DEFAULT_PROJECT["preview_length"]
    date_format: str = DEFAULT_PROJECT["date_format"]
    list_title_all: str = DEFAULT_PROJECT["list_title_all"]
    list_title_tag: str = DEFAULT_PROJECT["list_title_tag"]

    def site_bindings(self) -> dict[str, str]:
        """Return the ``site`` mapping exposed to templates."""
        return {
            "name": self.site_name,
            "description": self.site_description,
            "author": self.author,
            "author_email": self.author_email,
            "server_root": self.server_root,
            "base_url": self.base_url,
        }

    def tag_list_title(self, tag: str) -> str:
        return self.list_title_tag.replace("{tag}", tag)


def _field_types() -> dict[str, type]:
    types = {name: str for name in REQUIRED_KEYS}
    types.update({key: type(value) for key, value in DEFAULT_PROJECT.items()})
    return types


def validate_project(data: Any) -> list[str]:
    """Validate a parsed project definition.

    Args:
        data: Result of parsing ``quill.yaml``.

    Returns:
        List of problems found; empty when the definition is valid.
    """
    if not isinstance(data, dict):
        return ["the project definition must be a mapping"]
    problems: list[str] = []
    types = _field_types()
    for key in REQUIRED_KEYS:
        if key not in data:
            problems.append(f"missing required key '{key}'")
    for key, value in data.items():
        expected = types.get(key)
        if expected is None:
            problems.append(f"unknown key '{key}'")
        elif expected is int and (isinstance(value, bool) or not isinstance(value, int)):
            problems.append(f"'{key}' must be an integer")
        elif expected is str and not isinstance(value, str):
            problems.append(f"'{key}' must be a string")
    preview_length = data.get("preview_length")
    if isinstance(preview_length, int) and preview_length < 0:
        problems.append("'preview_length' must not be negative")
    base_url = data.get("base_url")
    if isinstance(base_url, str) and not base_url.endswith("/"):
        problems.append("'base_url' must end with '/'")
    return problems


def load_project(src: Path) -> Project:
    """Load the project definition from a source directory.

    Args:
        src: Project source directory.

    Returns:
        The validated ``Project``.

    Raises:
        BuildError: If the file cannot be read, parsed or validated. All
            validation problems are reported together.
    """
    path = src / PROJECT_FILE
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as exc:
        raise BuildError(Error.from_os_error(exc, path)) from exc
    except yaml.YAMLError as exc:
        mark = getattr(exc, "problem_mark", None)
        line = mark.line + 1 if mark is not None else 0
        problem = getattr(exc, "problem", None) or str(exc)
        child = Error(ErrorKind.PROJECT_VALIDATOR, problem, path, line)
        raise BuildError(
            Error(ErrorKind.PROJECT_VALIDATOR, "invalid project definition", path, children=(child,))
        ) from exc

    problems = validate_project(data)
    if problems:
        children = tuple(Error(ErrorKind.PROJECT_VALIDATOR, p, path) for p in problems)
        raise BuildError(
            Error(
                ErrorKind.PROJECT_VALIDATOR,
                f"{len(problems)} problem(s) in project definition",
                path,
                children=children,
            )
        )
    known = {f.name for f in fields(Project)}
    return Project(**{k: v for k, v in data.items() if k in known})
