"""Template compilation and rendering for Quill.

Templates are Jinja2 files in ``templates/`` (``base``, ``post``, ``page`` and
``list``, each as ``<name>.html.jinja``). Shared fragments live in
``includes/`` and are pulled in with ``{% include "nav.html.jinja" %}``.

Every template is compiled once per build by ``TemplateEngine.compile_all``.
A compile failure is fatal because every page depends on the templates.
Rendering is a pure function of the compiled templates and the bindings:
a content template renders the item, and its output is placed into the
``base`` layout as ``contents``. A render failure only affects that item.

Key class:
- TemplateEngine: Jinja2 environment and template compilation.

Key function:
- render: Two-level render of an item into the layout.
"""

from __future__ import annotations

import traceback
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from jinja2 import (
    Environment,
    FileSystemLoader,
    StrictUndefined,
    Template,
    TemplateError,
    TemplateNotFound,
    TemplateSyntaxError,
    select_autoescape,
)
from markupsafe import Markup

from .errors import BuildError, Error, ErrorKind

__all__ = ["LAYOUT", "REQUIRED_TEMPLATES", "TemplateEngine", "render"]

TEMPLATES_DIR = "templates"
INCLUDES_DIR = "includes"
TEMPLATE_SUFFIX = ".html.jinja"
LAYOUT = "base"
REQUIRED_TEMPLATES = (LAYOUT, "post", "page", "list")


class TemplateEngine:
    """Jinja2 environment for a project.

    Attributes:
        src: Project source directory.
        templates_dir: Directory with the named templates.
        includes_dir: Directory with include fragments.
        env: Jinja2 environment.
    """

    def __init__(self, src: Path):
        """Initialize the template engine.

        Args:
            src: Project source directory.
        """
        self.src = src
        self.templates_dir = src / TEMPLATES_DIR
        self.includes_dir = src / INCLUDES_DIR
        self.env = Environment(
            loader=FileSystemLoader([self.templates_dir, self.includes_dir]),
            autoescape=select_autoescape(["html", "xml", "jinja"]),
            undefined=StrictUndefined,
            enable_async=False,
        )

    def _compile(self, filename: str, origin: Path) -> Template:
        try:
            return self.env.get_template(filename)
        except TemplateSyntaxError as exc:
            path = Path(exc.filename) if exc.filename else origin
            raise BuildError(
                Error(ErrorKind.TEMPLATE_ERROR, exc.message or "syntax error", path, exc.lineno or 0)
            ) from exc
        except TemplateNotFound as exc:
            raise BuildError(
                Error(ErrorKind.TEMPLATE_ERROR, f"template not found: {exc.name}", origin)
            ) from exc

    def include_files(self) -> list[Path]:
        if not self.includes_dir.is_dir():
            return []
        return sorted(self.includes_dir.glob(f"*{TEMPLATE_SUFFIX}"))

    def compile_all(self) -> dict[str, Template]:
        """Compile every include and required template.

        Returns:
            Mapping of template name (e.g. "post") to compiled template.

        Raises:
            BuildError: On the first template with a syntax error or that
                does not exist.
        """
        for path in self.include_files():
            self._compile(path.name, path)
        templates = {}
        for name in REQUIRED_TEMPLATES:
            filename = f"{name}{TEMPLATE_SUFFIX}"
            templates[name] = self._compile(filename, self.templates_dir / filename)
        return templates


def _template_lineno(exc: BaseException, filename: str | None) -> int:
    """Find the template line an exception was raised from.

    Jinja2 rewrites tracebacks so template frames carry the template path and
    line; the innermost such frame wins.
    """
    if not filename:
        return 0
    lineno = 0
    for frame in traceback.extract_tb(exc.__traceback__):
        if frame.filename == filename and frame.lineno:
            lineno = frame.lineno
    return lineno


def _render_one(template: Template, context: Mapping[str, Any]) -> str | Error:
    try:
        return template.render(context)
    except TemplateError as exc:
        return Error(
            ErrorKind.TEMPLATE_ERROR,
            f"{type(exc).__name__}: {exc.message or exc}",
            Path(template.filename) if template.filename else None,
            _template_lineno(exc, template.filename),
        )
    except (TypeError, AttributeError, ValueError, KeyError) as exc:
        return Error(
            ErrorKind.TEMPLATE_ERROR,
            f"{type(exc).__name__}: {exc}",
            Path(template.filename) if template.filename else None,
            _template_lineno(exc, template.filename),
        )


def render(
    templates: Mapping[str, Template],
    name: str,
    context: Mapping[str, Any],
    page_context: Mapping[str, Any],
    global_context: Mapping[str, Any] | None = None,
) -> str | Error:
    """Render an item through its content template and the layout.

    Args:
        templates: Compiled templates by name.
        name: Content template name (e.g. "post").
        context: Item bindings for the content template.
        page_context: Page bindings for the layout (e.g. ``page_title``).
        global_context: Site-wide bindings visible to both templates.

    Returns:
        Final page HTML, or a ``template_error`` for this item.
    """
    base = dict(global_context or {})
    inner = _render_one(templates[name], {**base, **context})
    if isinstance(inner, Error):
        return inner
    return _render_one(templates[LAYOUT], {**base, **page_context, "contents": Markup(inner)})
