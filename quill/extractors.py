"""Post metadata extraction for Quill.

A post is a Markdown file named ``YYYY-MM-DD-HHMM-slug.md`` whose first two
lines form a header::

    # Post Title
    # tag-a, tag-b

The date comes from the filename and the title and tags from the header.
Everything from the third line on is the body handed to the Markdown renderer.

Extraction never raises for malformed input: problems are returned as
``Error`` values of kind ``post_error`` so that one bad post does not stop
its siblings.

Key functions:
- extract_date: Parse the timestamp encoded in a post filename.
- extract_header: Parse the title/tag header of a post.
- extract_metadata: Both of the above for one post.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from .errors import Error, ErrorKind

FILENAME_RE = re.compile(r"^[0-9]{4}-[0-9]{2}-[0-9]{2}-[0-9]{4}-[0-9a-z\-]+$")
TAG_SPLIT_RE = re.compile(r", *")

INVALID_FILENAME = "invalid_filename"
INVALID_HEADER = "invalid_header"


@dataclass(frozen=True, order=True)
class Tag:
    """A post tag.

    Tags compare, hash and sort by name only.

    Attributes:
        name: Tag name as written in the header.
        list_url: URL of the page listing every post with this tag.
    """

    name: str
    list_url: str = field(compare=False)

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class PostHeader:
    title: str
    tags: list[Tag]
    body: str


@dataclass(frozen=True)
class PostMetadata:
    """Metadata extracted from one post.

    Attributes:
        title: Post title from the first header line.
        tags: Sorted tags from the second header line.
        raw_date: Timestamp from the filename.
        body: Markdown source after the header.
    """

    title: str
    tags: list[Tag]
    raw_date: datetime
    body: str


def post_stem(path: Path) -> str:
    """Return the filename of ``path`` without a trailing ``.md``."""
    name = path.name
    return name[:-3] if name.endswith(".md") else name


def tag_url(base_url: str, name: str) -> str:
    return f"{base_url}tags/{name}"


def extract_date(path: Path) -> datetime | Error:
    """Extract the date and time encoded in a post filename.

    Hours above 23 are clamped to 23 and minutes above 59 to 59.

    Args:
        path: Path to the post source file.

    Returns:
        The encoded timestamp, or an ``invalid_filename`` error.

    Examples:
        >>> extract_date(Path("2023-01-01-2575-x.md"))
        datetime.datetime(2023, 1, 1, 23, 59)
    """
    stem = post_stem(path)
    if not FILENAME_RE.match(stem):
        return Error(ErrorKind.POST_ERROR, INVALID_FILENAME, path)
    year, month, day, hhmm = (int(part) for part in stem.split("-")[:4])
    hour = min(hhmm // 100, 23)
    minute = min(hhmm % 100, 59)
    try:
        return datetime(year, month, day, hour, minute)
    except ValueError:
        return Error(ErrorKind.POST_ERROR, INVALID_FILENAME, path)


def parse_tags(raw: str, base_url: str) -> list[Tag]:
    """Parse a comma-separated tag list into sorted ``Tag`` values.

    Args:
        raw: Tag list text following the leading ``#``.
        base_url: Site base URL used to build tag list URLs.

    Returns:
        Tags sorted by name, with blank and repeated entries dropped.
    """
    names = {name.strip() for name in TAG_SPLIT_RE.split(raw)}
    names.discard("")
    return [Tag(name, tag_url(base_url, name)) for name in sorted(names)]


def is_valid_tag_name(name: str) -> bool:
    """Return whether ``name`` can name a single tag listing directory."""
    return not (set(name) & set("/\\")) and name not in (".", "..")


def extract_header(content: str, path: Path, base_url: str) -> PostHeader | Error:
    """Extract the title and tags from the first two lines of a post.

    Tag names become output directory names, so a name containing a path
    separator or equal to ``.`` or ``..`` makes the header invalid.

    Args:
        content: Raw post source.
        path: Path to the post source file (for error reporting).
        base_url: Site base URL used to build tag list URLs.

    Returns:
        ``PostHeader`` with title, tags and remaining body, or an
        ``invalid_header`` error.
    """
    lines = content.split("\n")
    if len(lines) < 2:
        return Error(ErrorKind.POST_ERROR, INVALID_HEADER, path)
    first, second, rest = lines[0], lines[1], lines[2:]
    if not first.startswith("# ") or not second.startswith("#"):
        return Error(ErrorKind.POST_ERROR, INVALID_HEADER, path)
    tags = parse_tags(second[1:], base_url)
    if not all(is_valid_tag_name(tag.name) for tag in tags):
        return Error(ErrorKind.POST_ERROR, INVALID_HEADER, path)
    return PostHeader(title=first[2:].strip(), tags=tags, body="\n".join(rest))


def extract_metadata(content: str, path: Path, base_url: str) -> PostMetadata | Error:
    """Extract all metadata of a post from its path and source.

    The filename is checked first, so a post with both a bad name and a bad
    header reports ``invalid_filename``.
    """
    raw_date = extract_date(path)
    if isinstance(raw_date, Error):
        return raw_date
    header = extract_header(content, path, base_url)
    if isinstance(header, Error):
        return header
    return PostMetadata(
        title=header.title, tags=header.tags, raw_date=raw_date, body=header.body
    )


def extract_page_title(content: str, path: Path) -> tuple[str, str] | Error:
    """Split a page into its ``# title`` line and body.

    Args:
        content: Raw page source.
        path: Path to the page source file (for error reporting).

    Returns:
        Tuple of (title, body), or an ``invalid_header`` error.
    """
    first, _, body = content.partition("\n")
    if not first.startswith("# "):
        return Error(ErrorKind.POST_ERROR, INVALID_HEADER, path)
    return first[2:].strip(), body
