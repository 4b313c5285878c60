"""Quill static site generator.

Quill builds a static website from a project directory of Markdown posts and
pages, Jinja2 templates and static assets.

A build runs in two passes: the first loads every post and page and collects
the site-wide data (post list, tag index), the second renders every page with
that complete data. Both passes can run sequentially or on a thread pool.

The main entry point is the CLI module, which provides commands for
scaffolding new projects and building sites.
"""

__all__ = ["__version__"]
__version__ = "0.1.0"
