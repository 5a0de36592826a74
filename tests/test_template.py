"""
Tests for template expansion and the ask/env/ext functions.
"""

import os
from pathlib import Path

import pytest

from shapes.core.errors import (
    ExpressionError,
    MissingEnvironmentVariableError,
    TemplateError,
    UnterminatedTagError,
)
from shapes.core.template import (
    TemplateContext,
    expand_template,
    dsl_ext,
    expand_template_string,
    is_template,
    remove_template_extension,
)


class FakePrompt:
    """Records questions and answers from a fixed mapping."""

    def __init__(self, answers: dict[str, str] | None = None) -> None:
        self.answers = answers or {}
        self.asked: list[tuple[str, str | None]] = []

    def __call__(self, name: str, default: str | None) -> str:
        self.asked.append((name, default))
        return self.answers.get(name, "")


def make_context(env=None, answers=None) -> tuple[TemplateContext, FakePrompt]:
    prompt = FakePrompt(answers)
    return TemplateContext.create(env=env or {}, prompt=prompt), prompt


def expand(path: Path, context: TemplateContext) -> str:
    return expand_template_string(context, path)


class TestNames:
    """Tests for is_template() and remove_template_extension()."""

    def test_is_template(self):
        assert is_template("README.md.template")
        assert is_template(Path("a/b.template"))
        assert not is_template("README.md")

    def test_remove_template_extension(self):
        assert remove_template_extension("README.md.template") == "README.md"
        assert remove_template_extension(".template") == ""
        assert remove_template_extension("README.md") == "README.md"


class TestExpansion:
    """Tests for tag scanning and expansion."""

    def test_text_without_tags_is_unchanged(self, tmp_path):
        content = "line one\r\nline two\n\ttabs & <angles> %\n"
        src = tmp_path / "plain.txt.template"
        src.write_bytes(content.encode("utf-8"))
        dst = tmp_path / "plain.txt"

        expand_template(src, dst, make_context()[0])

        assert dst.read_bytes() == content.encode("utf-8")

    def test_non_template_returned_verbatim(self, tmp_path):
        src = tmp_path / "notes.txt"
        src.write_text('<% env("NOPE") %>')
        assert expand(src, make_context()[0]) == '<% env("NOPE") %>'

    def test_tags_replaced(self, tmp_path):
        src = tmp_path / "a.template"
        src.write_text('Hi <% env("USER", "world") %>, <%"x" + 1%>!')
        assert expand(src, make_context(env={"USER": "ana"})[0]) == "Hi ana, x1!"

    def test_null_result_is_empty(self, tmp_path):
        src = tmp_path / "a.template"
        src.write_text("[<% null %>]")
        assert expand(src, make_context()[0]) == "[]"

    def test_unterminated_tag(self, tmp_path):
        src = tmp_path / "broken.template"
        src.write_text('first\nsecond <% env("X"\n')

        with pytest.raises(UnterminatedTagError) as info:
            expand(src, make_context()[0])

        message = str(info.value)
        assert "Expected a closing tag %>" in message
        assert f"{os.path.realpath(src)}:2" in message

    def test_unknown_function_reports_location(self, tmp_path):
        src = tmp_path / "bad.template"
        src.write_text('<% require("fs") %>')

        with pytest.raises(ExpressionError) as info:
            expand(src, make_context()[0])

        assert info.value.location == f"{os.path.realpath(src)}:1"
        assert "Unknown function 'require'" in str(info.value)


class TestEnv:
    """Tests for env()."""

    def test_present(self, tmp_path):
        src = tmp_path / "a.template"
        src.write_text('<% env("HOME") %>')
        assert expand(src, make_context(env={"HOME": "/home/x"})[0]) == "/home/x"

    def test_missing_with_fallback(self, tmp_path):
        src = tmp_path / "a.template"
        src.write_text('<% env("USER", "nobody") %>')
        assert expand(src, make_context()[0]) == "nobody"

    def test_missing_without_fallback(self, tmp_path):
        src = tmp_path / "a.template"
        src.write_text('<% env("SHAPES_SURELY_UNSET") %>')

        with pytest.raises(MissingEnvironmentVariableError, match="SHAPES_SURELY_UNSET"):
            expand(src, make_context()[0])

    def test_snapshot_taken_at_create(self, tmp_path, monkeypatch):
        monkeypatch.setenv("SHAPES_SNAPSHOT", "before")
        context = TemplateContext.create(prompt=FakePrompt())
        monkeypatch.setenv("SHAPES_SNAPSHOT", "after")

        src = tmp_path / "a.template"
        src.write_text('<% env("SHAPES_SNAPSHOT") %>')
        assert expand(src, context) == "before"


class TestAsk:
    """Tests for ask() and the prompt memo."""

    def test_answer_used(self, tmp_path):
        src = tmp_path / "a.template"
        src.write_text('<% ask("name") %>')
        context, prompt = make_context(answers={"name": "demo"})

        assert expand(src, context) == "demo"
        assert prompt.asked == [("name", None)]

    def test_empty_answer_falls_back(self, tmp_path):
        src = tmp_path / "a.template"
        src.write_text('<% ask("name", "default-name") %>')
        context, prompt = make_context()

        assert expand(src, context) == "default-name"
        assert prompt.asked == [("name", "default-name")]

    def test_asked_once_per_run(self, tmp_path):
        src = tmp_path / "a.template"
        src.write_text('<% ask("name") %>/<% ask("name", "ignored") %>')
        context, prompt = make_context(answers={"name": "demo"})

        assert expand(src, context) == "demo/demo"
        assert len(prompt.asked) == 1

    def test_memo_shared_across_files(self, tmp_path):
        first = tmp_path / "first.template"
        second = tmp_path / "second.template"
        first.write_text('<% ask("author") %>')
        second.write_text('by <% ask("author") %>')
        context, prompt = make_context(answers={"author": "Ana"})

        expand_template(first, tmp_path / "first", context)
        expand_template(second, tmp_path / "second", context)

        assert (tmp_path / "second").read_text() == "by Ana"
        assert prompt.asked == [("author", None)]


class TestExt:
    """Tests for ext()."""

    def test_includes_relative_to_current_file(self, tmp_path):
        shared = tmp_path / "shared"
        shared.mkdir()
        (shared / "part.txt.template").write_text('part by <% ask("author") %>')
        (shared / "raw.txt").write_text("<% untouched %>")

        main = tmp_path / "main" / "README.template"
        main.parent.mkdir()
        main.write_text(
            '<% ask("author") %>: <% ext("../shared/part.txt.template") %> '
            '<% ext("../shared/raw.txt") %>'
        )
        context, prompt = make_context(answers={"author": "Ana"})

        assert expand(main, context) == "Ana: part by Ana <% untouched %>"
        assert len(prompt.asked) == 1

    def test_nested_includes_resolve_from_included_file(self, tmp_path):
        (tmp_path / "a" / "b").mkdir(parents=True)
        (tmp_path / "a" / "b" / "leaf.template").write_text("leaf")
        (tmp_path / "a" / "mid.template").write_text('mid+<% ext("b/leaf.template") %>')
        top = tmp_path / "top.template"
        top.write_text('top+<% ext("a/mid.template") %>')

        assert expand(top, make_context()[0]) == "top+mid+leaf"

    def test_symlinked_template_resolves_from_target(self, tmp_path):
        real = tmp_path / "real"
        real.mkdir()
        (real / "sibling.txt").write_text("sibling")
        (real / "main.template").write_text('<% ext("sibling.txt") %>')

        elsewhere = tmp_path / "elsewhere"
        elsewhere.mkdir()
        link = elsewhere / "main.template"
        link.symlink_to(real / "main.template")

        assert expand(link, make_context()[0]) == "sibling"

    def test_missing_include(self, tmp_path):
        src = tmp_path / "a.template"
        src.write_text('<% ext("nope.txt") %>')

        with pytest.raises(FileNotFoundError):
            expand(src, make_context()[0])

    def test_outside_a_template_file(self):
        with pytest.raises(ExpressionError, match="only be used inside a template"):
            dsl_ext(TemplateContext.create(env={}), "part.txt")

    def test_self_inclusion_is_reported(self, tmp_path):
        src = tmp_path / "loop.template"
        src.write_text('<% ext("loop.template") %>')

        with pytest.raises(ExpressionError, match="nested too deeply") as info:
            expand(src, make_context()[0])

        assert info.value.location is not None


class TestUndecodable:
    """Files that are not UTF-8 text, and expressions too deep to parse."""

    def test_binary_template(self, tmp_path):
        src = tmp_path / "image.png.template"
        src.write_bytes(b"\x89PNG\r\n\xff\xfe<% null %>")

        with pytest.raises(TemplateError, match="not valid UTF-8"):
            expand(src, make_context()[0])

    def test_binary_include_reports_including_tag(self, tmp_path):
        (tmp_path / "blob.bin").write_bytes(b"\xff\xfe\x00\x01")
        src = tmp_path / "main.template"
        src.write_text('head\n<% ext("blob.bin") %>')

        with pytest.raises(TemplateError, match="not valid UTF-8") as info:
            expand(src, make_context()[0])

        assert info.value.location == f"{os.path.realpath(src)}:2"

    def test_deeply_nested_expression(self, tmp_path):
        src = tmp_path / "deep.template"
        src.write_text("<% " + "(" * 5000 + '"x"' + ")" * 5000 + " %>")

        with pytest.raises(ExpressionError, match="nested too deeply") as info:
            expand(src, make_context()[0])

        assert info.value.location == f"{os.path.realpath(src)}:1"
