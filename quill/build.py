"""Site building for Quill.

This module drives a build in two passes separated by a barrier:

1. Pass 1 loads every post and page, extracts its metadata and registers it
   in the build's ``GlobalBindings`` (post list, page list, tag index).
2. The barrier sorts the shared indices and freezes the bindings.
3. Pass 2 renders every item and every listing through the templates, using
   the complete, frozen bindings, and writes the output files.

Both passes run through ``launch`` in the same mode (sequential or parallel).
Item failures are collected and reported together; fatal failures stop the
build and are reported as its single cause.

Key classes:
- BuildState: States of the build state machine.
- BuildResult: Outcome of a build.
- Builder: Runs one build.

Key function:
- build_site: Load a project and build it.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from markupsafe import Markup

from .bindings import GlobalBindings
from .content import (
    POSTS_DIR,
    ContentItem,
    FileContentLoader,
    ListPage,
    PageInfo,
    PostInfo,
    load_page,
    load_post,
)
from .errors import BuildError, Error, ErrorKind, collect_failures
from .launcher import BuildMode, launch
from .project import Project, load_project
from .renderers import MarkdownRenderer, default_markdown_renderer
from .templates import TemplateEngine, render
from .utils import check_writable, clean_dir, copy_tree, write_text

logger = logging.getLogger(__name__)

TAGS_DIR = "tags"
ASSET_DIRS = ("assets", "media")
DEFAULT_OUTPUT_DIR = "site"
GLOBAL_KEYS = ("site", "posts", "pages", "tags")
# A post's own ``tags`` shadows the global index in the post template.
TAG_INDEX_KEY = "tag_index"


class BuildState(str, Enum):
    IDLE = "idle"
    PASS1_RUNNING = "pass1_running"
    PASS1_COMPLETE = "pass1_complete"
    PASS2_RUNNING = "pass2_running"
    DONE = "done"
    FAILED = "failed"


@dataclass
class BuildResult:
    """Result of a site build.

    Attributes:
        state: Final state of the build (DONE or FAILED).
        output_dir: Directory the site was built into.
        failures: Item failures from both passes.
        fatal: The error that stopped the build, if any.
        pass1: One outcome per Pass 1 unit (posts, then pages).
        pass2: One outcome per Pass 2 unit (items, then listings).
        posts: Metadata of every loaded post, newest first.
        pages: Metadata of every loaded page.
    """

    state: BuildState
    output_dir: Path
    failures: list[Error] = field(default_factory=list)
    fatal: Error | None = None
    pass1: list[Any] = field(default_factory=list)
    pass2: list[Any] = field(default_factory=list)
    posts: list[PostInfo] = field(default_factory=list)
    pages: list[PageInfo] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.state is BuildState.DONE and not self.failures

    @property
    def errors(self) -> list[Error]:
        """Every failure of the build, fatal cause last."""
        return self.failures + ([self.fatal] if self.fatal is not None else [])

    @property
    def rendered(self) -> list[ContentItem | ListPage]:
        return [o for o in self.pass2 if isinstance(o, (ContentItem, ListPage))]


def sort_posts(posts: Iterable[PostInfo]) -> list[PostInfo]:
    """Sort posts newest first; posts with the same date sort by file name."""
    by_name = sorted(posts, key=lambda p: p.file.name)
    return sorted(by_name, key=lambda p: p.raw_date, reverse=True)


def _sort_pages(pages: Iterable[PageInfo]) -> list[PageInfo]:
    return sorted(pages, key=lambda p: p.file.name)


def _sort_tags(index: Mapping[str, list[PostInfo]]) -> dict[str, list[PostInfo]]:
    return {name: sort_posts(index[name]) for name in sorted(index)}


def global_context(snapshot: Mapping[str, Any]) -> dict[str, Any]:
    """Return the site-wide bindings visible to every template."""
    context = {key: snapshot[key] for key in GLOBAL_KEYS}
    context[TAG_INDEX_KEY] = snapshot["tags"]
    return context


def item_context(item: ContentItem) -> tuple[dict[str, Any], dict[str, Any]]:
    """Return the content-template and layout bindings of an item."""
    info = item.info
    page_context = {"page_title": info.title}
    if isinstance(info, PostInfo):
        return {
            "title": info.title,
            "date": info.date,
            "raw_date": info.raw_date,
            "tags": info.tags,
            "contents": Markup(info.html),
            "url": info.url,
            "preview": info.preview,
        }, page_context
    return {
        "title": info.title,
        "contents": Markup(info.html),
        "url": info.url,
    }, page_context


class Builder:
    """Runs one build of a project.

    Attributes:
        project: Project settings.
        src: Project source directory.
        dest: Output directory.
        mode: Sequential or parallel execution, used for both passes.
        bindings: Shared bindings for this build.
        history: Every state the build has been in, in order.
    """

    def __init__(
        self,
        project: Project,
        src: Path,
        dest: Path,
        mode: BuildMode = BuildMode.SEQUENTIAL,
        bindings: GlobalBindings | None = None,
        renderer: MarkdownRenderer | None = None,
    ):
        self.project = project
        self.src = src
        self.dest = dest
        self.mode = mode
        self.bindings = bindings if bindings is not None else GlobalBindings()
        self.renderer = renderer or default_markdown_renderer
        self.history: list[BuildState] = [BuildState.IDLE]

    @property
    def state(self) -> BuildState:
        return self.history[-1]

    def _transition(self, state: BuildState) -> None:
        logger.debug("Build state: %s -> %s", self.state.value, state.value)
        self.history.append(state)

    def run(self) -> BuildResult:
        """Run the build.

        Returns:
            BuildResult; never raises for build failures.
        """
        result = BuildResult(state=self.state, output_dir=self.dest)
        try:
            self._prepare()
            self._transition(BuildState.PASS1_RUNNING)
            items = self._pass1(result)
            self._barrier()
            self._transition(BuildState.PASS2_RUNNING)
            self._pass2(items, result)
            self._copy_assets()
            self._transition(BuildState.DONE)
        except BuildError as exc:
            self._transition(BuildState.FAILED)
            result.fatal = exc.error
        finally:
            result.state = self.state
            result.posts = list(self.bindings.get("posts", []))
            result.pages = list(self.bindings.get("pages", []))
            self.bindings.clear()
        return result

    def _prepare(self) -> None:
        src, dest = self.src.resolve(), self.dest.resolve()
        if dest == src or dest in src.parents:
            raise BuildError(
                Error(ErrorKind.FILE_ERROR, "output directory must not contain the project", self.dest)
            )
        check_writable(self.dest)
        clean_dir(self.dest)
        self.bindings.put("site", self.project.site_bindings())
        self.bindings.put("templates", TemplateEngine(self.src).compile_all())
        self.bindings.put("posts", [])
        self.bindings.put("pages", [])
        self.bindings.put("tags", {})

    def _launch(
        self,
        units: list[Any],
        task: Callable[[Any], Any],
        result: BuildResult,
        outcomes: list[Any],
    ) -> None:
        """Launch one batch and record its outcomes and item failures.

        Outcomes of units that finished before a fatal error are recorded
        too, so their failures are reported alongside the fatal cause.
        """
        try:
            batch = launch(self.mode, units, task)
        except BuildError as exc:
            outcomes.extend(exc.outcomes)
            result.failures.extend(collect_failures(exc.outcomes))
            raise
        outcomes.extend(batch)
        result.failures.extend(collect_failures(batch))

    # Pass 1

    def _post_task(self, path: Path) -> ContentItem | Error:
        item = load_post(path, self.project, self.src, self.dest, self.renderer)
        if isinstance(item, Error):
            return item
        self.bindings.append("posts", item.info)
        for tag in item.info.tags:
            self.bindings.add_to_index("tags", tag.name, item.info)
        return item

    def _page_task(self, path: Path) -> ContentItem | Error:
        item = load_page(path, self.project, self.dest, self.renderer)
        if isinstance(item, Error):
            return item
        self.bindings.append("pages", item.info)
        return item

    def _pass1(self, result: BuildResult) -> list[ContentItem]:
        loader = FileContentLoader(self.src)
        post_files = loader.post_files()
        page_files = loader.page_files()
        logger.info("Loading %d posts and %d pages...", len(post_files), len(page_files))
        self._launch(post_files, self._post_task, result, result.pass1)
        self._launch(page_files, self._page_task, result, result.pass1)
        return [o for o in result.pass1 if isinstance(o, ContentItem)]

    def _barrier(self) -> None:
        self.bindings.update("posts", sort_posts, [])
        self.bindings.update("pages", _sort_pages, [])
        self.bindings.update("tags", _sort_tags, {})
        self.bindings.freeze()
        self._transition(BuildState.PASS1_COMPLETE)

    # Pass 2

    def _render_task(self, item: ContentItem) -> ContentItem | Error:
        snapshot = self.bindings.snapshot()
        context, page_context = item_context(item)
        html = render(
            snapshot["templates"],
            item.kind,
            context,
            page_context,
            global_context(snapshot),
        )
        if isinstance(html, Error):
            return html
        item.rendered = html
        write_text(item.dest, html)
        logger.info("  GEN  %s -> %s", item.source, item.dest)
        return item

    def _list_task(self, page: ListPage) -> ListPage | Error:
        snapshot = self.bindings.snapshot()
        html = render(
            snapshot["templates"],
            "list",
            {"header": page.title, "posts": page.posts},
            {"page_title": page.title},
            global_context(snapshot),
        )
        if isinstance(html, Error):
            return html
        page.rendered = html
        write_text(page.dest, html)
        logger.info("  GEN  %s", page.dest)
        return page

    def list_pages(self) -> list[ListPage]:
        """Return the post listing and one listing per tag."""
        posts = self.bindings.get("posts", [])
        pages = [ListPage(self.project.list_title_all, posts, self.dest / POSTS_DIR / "index.html")]
        for name, tagged in self.bindings.get("tags", {}).items():
            pages.append(
                ListPage(
                    self.project.tag_list_title(name),
                    tagged,
                    self.dest / TAGS_DIR / name / "index.html",
                )
            )
        return pages

    def _pass2(self, items: list[ContentItem], result: BuildResult) -> None:
        self._launch(items, self._render_task, result, result.pass2)
        self._launch(self.list_pages(), self._list_task, result, result.pass2)

    def _copy_assets(self) -> None:
        for name in ASSET_DIRS:
            source = self.src / name
            try:
                copy_tree(source, self.dest / name)
            except OSError as exc:
                logger.warning("Cannot copy %s: %s. Skipping.", source, exc.strerror or exc)


def build_site(
    src: Path,
    dest: Path | None = None,
    mode: BuildMode = BuildMode.SEQUENTIAL,
) -> BuildResult:
    """Build the project in ``src``.

    Args:
        src: Project source directory.
        dest: Output directory; defaults to ``<src>/site``.
        mode: Sequential or parallel build.

    Returns:
        BuildResult describing the build.
    """
    src = Path(src)
    dest = Path(dest) if dest is not None else src / DEFAULT_OUTPUT_DIR
    try:
        project = load_project(src)
    except BuildError as exc:
        return BuildResult(state=BuildState.FAILED, output_dir=dest, fatal=exc.error)
    return Builder(project, src, dest, mode).run()
