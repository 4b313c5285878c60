from pathlib import Path

import pytest

from quill.errors import BuildError, Error, ErrorKind
from quill.templates import TemplateEngine, render

BASE = "<title>{{ page_title }}</title><h1>{{ site.name }}</h1>{{ contents }}"
POST = "<article>{{ title }}|{% for tag in tags %}{{ tag }};{% endfor %}{{ contents }}</article>"


def create_templates(src: Path, **overrides: str) -> Path:
    (src / "templates").mkdir(parents=True)
    (src / "includes").mkdir()
    files = {
        "base": BASE,
        "post": POST,
        "page": "{{ title }}{{ contents }}",
        "list": "{% include 'item.html.jinja' %}",
    }
    files.update(overrides)
    for name, text in files.items():
        (src / "templates" / f"{name}.html.jinja").write_text(text, encoding="utf-8")
    (src / "includes" / "item.html.jinja").write_text(
        "{% for post in posts %}<li>{{ post }}</li>{% endfor %}", encoding="utf-8"
    )
    return src


def test_compile_all_returns_required_templates(tmp_path):
    src = create_templates(tmp_path)
    templates = TemplateEngine(src).compile_all()
    assert set(templates) == {"base", "post", "page", "list"}


def test_render_composes_item_into_layout(tmp_path):
    src = create_templates(tmp_path)
    templates = TemplateEngine(src).compile_all()
    from markupsafe import Markup

    html = render(
        templates,
        "post",
        {"title": "Hello <World>", "tags": ["a", "b"], "contents": Markup("<p>Body</p>")},
        {"page_title": "Hello"},
        {"site": {"name": "Site"}},
    )
    assert html == (
        "<title>Hello</title><h1>Site</h1>"
        "<article>Hello &lt;World&gt;|a;b;<p>Body</p></article>"
    )


def test_render_list_uses_includes(tmp_path):
    src = create_templates(tmp_path)
    templates = TemplateEngine(src).compile_all()
    html = render(templates, "list", {"posts": ["x", "y"]}, {"page_title": "All"}, {"site": {"name": "S"}})
    assert "<li>x</li><li>y</li>" in html


def test_render_is_repeatable(tmp_path):
    src = create_templates(tmp_path)
    templates = TemplateEngine(src).compile_all()
    args = (templates, "page", {"title": "T", "contents": "c"}, {"page_title": "T"}, {"site": {"name": "S"}})
    assert render(*args) == render(*args)


def test_missing_template_is_fatal(tmp_path):
    src = create_templates(tmp_path)
    (src / "templates" / "list.html.jinja").unlink()
    with pytest.raises(BuildError) as info:
        TemplateEngine(src).compile_all()
    error = info.value.error
    assert error.kind is ErrorKind.TEMPLATE_ERROR
    assert error.path == src / "templates" / "list.html.jinja"


def test_syntax_error_reports_file_and_line(tmp_path):
    src = create_templates(tmp_path, post="<p>\n{% if %}\n</p>")
    with pytest.raises(BuildError) as info:
        TemplateEngine(src).compile_all()
    error = info.value.error
    assert error.kind is ErrorKind.TEMPLATE_ERROR
    assert error.path.name == "post.html.jinja"
    assert error.line == 2


def test_syntax_error_in_include_is_fatal(tmp_path):
    src = create_templates(tmp_path)
    (src / "includes" / "broken.html.jinja").write_text("{% for %}", encoding="utf-8")
    with pytest.raises(BuildError) as info:
        TemplateEngine(src).compile_all()
    assert info.value.error.path.name == "broken.html.jinja"


def test_undefined_binding_is_an_item_error(tmp_path):
    src = create_templates(tmp_path, page="ok\n{{ missing_value }}")
    templates = TemplateEngine(src).compile_all()
    result = render(templates, "page", {"title": "T", "contents": ""}, {"page_title": "T"}, {"site": {}})
    assert isinstance(result, Error)
    assert result.kind is ErrorKind.TEMPLATE_ERROR
    assert "missing_value" in result.message
    assert result.path.name == "page.html.jinja"
    assert result.line == 2
