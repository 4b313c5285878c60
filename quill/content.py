"""Content loading for Quill.

This module discovers posts and pages in a project and turns each source
file into a ``ContentItem`` during Pass 1: the file is read, its metadata is
extracted, its body is rendered to HTML and its output path is derived.

Key classes:
- PostInfo / PageInfo: Immutable metadata shared with templates.
- ContentItem: One source file and its build state.
- ListPage: A generated listing (all posts, posts of one tag).
- FileContentLoader: Finds post and page sources.

Key functions:
- load_post: Pass 1 loader for a post.
- load_page: Pass 1 loader for a page.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from .errors import BuildError, Error, ErrorKind
from .extractors import Tag, extract_metadata, extract_page_title, post_stem
from .html_utils import make_preview
from .project import Project
from .renderers import MarkdownRenderer, default_markdown_renderer

POSTS_DIR = "posts"
PAGES_DIR = "pages"
PAGE_SUFFIXES = (".md", ".html")


@dataclass(frozen=True)
class PostInfo:
    """Metadata of a post, visible to every template.

    Attributes:
        file: Path to the source file.
        title: Post title.
        tags: Sorted tags of the post.
        raw_date: Timestamp from the filename.
        date: ``raw_date`` formatted with the project date format.
        url: Absolute URL of the rendered post.
        preview: Plain-text preview of the body.
        html: Rendered Markdown body.
    """

    file: Path
    title: str
    tags: list[Tag]
    raw_date: datetime
    date: str
    url: str
    preview: str
    html: str


@dataclass(frozen=True)
class PageInfo:
    file: Path
    title: str
    url: str
    html: str


@dataclass
class ContentItem:
    """A source file on its way to becoming an output page.

    An item is created in Pass 1 and owned by one build task at a time.
    ``rendered`` is filled in by its Pass 2 task.

    Attributes:
        kind: "post" or "page"; also the name of its content template.
        source: Path to the source file.
        dest: Path of the output HTML file.
        info: Metadata shared with templates.
        rendered: Final page HTML, once rendered.
    """

    kind: str
    source: Path
    dest: Path
    info: PostInfo | PageInfo
    rendered: str | None = None


@dataclass
class ListPage:
    """A generated page listing posts.

    Attributes:
        title: Heading of the listing.
        posts: Posts to list, newest first.
        dest: Path of the output HTML file.
    """

    title: str
    posts: list[PostInfo] = field(default_factory=list)
    dest: Path | None = None
    rendered: str | None = None


class FileContentLoader:
    """Finds post and page source files in a project.

    Attributes:
        src: Project source directory.
    """

    def __init__(self, src: Path):
        self.src = src

    def _list(self, dirname: str, suffixes: tuple[str, ...]) -> list[Path]:
        directory = self.src / dirname
        try:
            entries = sorted(directory.iterdir())
        except OSError as exc:
            raise BuildError(Error.from_os_error(exc, directory)) from exc
        return [p for p in entries if p.is_file() and p.suffix in suffixes]

    def post_files(self) -> list[Path]:
        """Return every ``posts/*.md`` file, sorted by name.

        Raises:
            BuildError: If the posts directory cannot be listed.
        """
        return self._list(POSTS_DIR, (".md",))

    def page_files(self) -> list[Path]:
        """Return every ``pages/*.md`` and ``pages/*.html`` file, sorted by name.

        Raises:
            BuildError: If the pages directory cannot be listed, or if two
                pages (e.g. ``index.md`` and ``index.html``) would be written
                to the same output file.
        """
        files = self._list(PAGES_DIR, PAGE_SUFFIXES)
        seen: dict[str, Path] = {}
        for path in files:
            if path.stem in seen:
                raise BuildError(
                    Error(
                        ErrorKind.FILE_ERROR,
                        f"duplicate output page {path.stem}.html (also from {seen[path.stem].name})",
                        path,
                    )
                )
            seen[path.stem] = path
        return files


def post_destination(path: Path, src: Path, dest: Path) -> Path:
    """Map a post source path to its output path.

    The source root is replaced by the destination root and the ``.md``
    extension by ``.html``.
    """
    rel = path.relative_to(src)
    return dest / rel.parent / f"{post_stem(rel)}.html"


def page_destination(path: Path, dest: Path) -> Path:
    return dest / f"{path.stem}.html"


def _read(path: Path) -> str | Error:
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        return Error.from_os_error(exc, path)
    except UnicodeDecodeError as exc:
        return Error(ErrorKind.FILE_ERROR, f"invalid UTF-8: {exc.reason}", path)


def load_post(
    path: Path,
    project: Project,
    src: Path,
    dest: Path,
    renderer: MarkdownRenderer | None = None,
) -> ContentItem | Error:
    """Load one post for Pass 1.

    Args:
        path: Path to the post source file.
        project: Project settings.
        src: Project source directory.
        dest: Output directory.
        renderer: Markdown renderer; defaults to the shared instance.

    Returns:
        ContentItem of kind "post", or the ``Error`` that prevented loading.
    """
    renderer = renderer or default_markdown_renderer
    content = _read(path)
    if isinstance(content, Error):
        return content
    metadata = extract_metadata(content, path, project.base_url)
    if isinstance(metadata, Error):
        return metadata
    html = renderer.render(metadata.body)
    target = post_destination(path, src, dest)
    info = PostInfo(
        file=path,
        title=metadata.title,
        tags=metadata.tags,
        raw_date=metadata.raw_date,
        date=metadata.raw_date.strftime(project.date_format),
        url=f"{project.base_url}{POSTS_DIR}/{target.name}",
        preview=make_preview(html, project.preview_length),
        html=html,
    )
    return ContentItem(kind="post", source=path, dest=target, info=info)


def load_page(
    path: Path,
    project: Project,
    dest: Path,
    renderer: MarkdownRenderer | None = None,
) -> ContentItem | Error:
    """Load one page for Pass 1.

    Markdown pages are rendered to HTML; HTML pages are used as-is.

    Args:
        path: Path to the page source file.
        project: Project settings.
        dest: Output directory.
        renderer: Markdown renderer; defaults to the shared instance.

    Returns:
        ContentItem of kind "page", or the ``Error`` that prevented loading.
    """
    renderer = renderer or default_markdown_renderer
    content = _read(path)
    if isinstance(content, Error):
        return content
    header = extract_page_title(content, path)
    if isinstance(header, Error):
        return header
    title, body = header
    html = renderer.render(body) if path.suffix == ".md" else body
    target = page_destination(path, dest)
    info = PageInfo(
        file=path,
        title=title,
        url=f"{project.base_url}{target.name}",
        html=html,
    )
    return ContentItem(kind="page", source=path, dest=target, info=info)
