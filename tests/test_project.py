from pathlib import Path

import pytest

from quill.errors import BuildError, ErrorKind
from quill.project import load_project, validate_project

VALID = """\
site_name: Test Site
site_description: Testing
author: Tester
author_email: tester@example.com
base_url: https://example.com/
"""


def write_project(tmp_path: Path, text: str) -> Path:
    (tmp_path / "quill.yaml").write_text(text, encoding="utf-8")
    return tmp_path


def test_load_project_applies_defaults(tmp_path):
    project = load_project(write_project(tmp_path, VALID))
    assert project.site_name == "Test Site"
    assert project.base_url == "https://example.com/"
    assert project.preview_length == 200
    assert project.server_root == ""
    assert project.date_format == "%Y-%m-%d"
    assert project.site_bindings() == {
        "name": "Test Site",
        "description": "Testing",
        "author": "Tester",
        "author_email": "tester@example.com",
        "server_root": "",
        "base_url": "https://example.com/",
    }


def test_load_project_reads_optional_keys(tmp_path):
    project = load_project(
        write_project(tmp_path, VALID + "preview_length: 0\nlist_title_tag: 'Tag: {tag}'\n")
    )
    assert project.preview_length == 0
    assert project.tag_list_title("python") == "Tag: python"


def test_missing_project_file_is_a_file_error(tmp_path):
    with pytest.raises(BuildError) as info:
        load_project(tmp_path)
    error = info.value.error
    assert error.kind is ErrorKind.FILE_ERROR
    assert error.path == tmp_path / "quill.yaml"


def test_validation_reports_every_problem(tmp_path):
    text = "site_name: 3\nbase_url: https://example.com\npreview_length: -1\ncolour: blue\n"
    with pytest.raises(BuildError) as info:
        load_project(write_project(tmp_path, text))
    error = info.value.error
    assert error.kind is ErrorKind.PROJECT_VALIDATOR
    messages = [child.message for child in error.children]
    assert "missing required key 'site_description'" in messages
    assert "missing required key 'author'" in messages
    assert "missing required key 'author_email'" in messages
    assert "'site_name' must be a string" in messages
    assert "'base_url' must end with '/'" in messages
    assert "'preview_length' must not be negative" in messages
    assert "unknown key 'colour'" in messages
    assert len(list(error.lines())) == 1 + len(messages)


def test_yaml_syntax_error_reports_line(tmp_path):
    with pytest.raises(BuildError) as info:
        load_project(write_project(tmp_path, "site_name: ok\nbad: [unclosed\n"))
    error = info.value.error
    assert error.kind is ErrorKind.PROJECT_VALIDATOR
    assert error.children[0].line > 0


def test_validate_project_rejects_non_mapping():
    assert validate_project(["a"]) == ["the project definition must be a mapping"]
    assert validate_project(None) == ["the project definition must be a mapping"]
    assert "'preview_length' must be an integer" in validate_project({"preview_length": True})
