from quill.html_utils import escape_html, extract_paragraph_text, make_preview

HTML = (
    "<h1>Title</h1>\n"
    "<p>Hello <em>world</em>, this is Quill.</p>\n"
    "<ul><li><p>nested paragraph</p></li></ul>\n"
    "<blockquote><p>quoted</p></blockquote>\n"
    "<p>Second paragraph.</p>\n"
)


def test_extract_paragraph_text_keeps_top_level_paragraphs():
    assert extract_paragraph_text(HTML) == [
        "Hello world, this is Quill.",
        "Second paragraph.",
    ]
    assert extract_paragraph_text("") == []
    assert extract_paragraph_text("just text") == []


def test_make_preview_joins_and_truncates():
    assert make_preview(HTML, 200) == "Hello world, this is Quill. Second paragraph."
    assert make_preview(HTML, 8) == "Hello wo"


def test_make_preview_zero_length_is_empty():
    assert make_preview(HTML, 0) == ""
    assert make_preview("", 50) == ""


def test_make_preview_never_exceeds_length():
    for n in range(0, 60):
        assert len(make_preview(HTML, n)) <= n


def test_escape_html():
    assert escape_html('<a href="x">&</a>') == "&lt;a href=&quot;x&quot;&gt;&amp;&lt;/a&gt;"
