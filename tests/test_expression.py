"""
Tests for the template expression language.
"""

import pytest

from shapes.core.errors import ExpressionError, ExpressionSyntaxError
from shapes.core.expression import evaluate, parse, to_text, tokenize


def upper(value):
    return str(value).upper()


FUNCTIONS = {"upper": upper, "nothing": lambda: None}


class TestLiterals:
    """Tests for literal values."""

    def test_strings(self):
        assert evaluate('"double"', {}) == "double"
        assert evaluate("'single'", {}) == "single"
        assert evaluate(r'"esc\"aped\n"', {}) == 'esc"aped\n'

    def test_numbers_and_keywords(self):
        assert evaluate("42", {}) == 42
        assert evaluate("1.5", {}) == 1.5
        assert evaluate("true", {}) is True
        assert evaluate("false", {}) is False
        assert evaluate("null", {}) is None

    def test_surrounding_whitespace(self):
        assert evaluate('  "x"  ', {}) == "x"


class TestOperators:
    """Tests for operators and their precedence."""

    def test_concatenation(self):
        assert evaluate('"a" + "b" + 1', {}) == "ab1"

    def test_numeric_addition(self):
        assert evaluate("1 + 2", {}) == 3

    def test_equality(self):
        assert evaluate('"a" == "a"', {}) is True
        assert evaluate('"1" == 1', {}) is False
        assert evaluate("1 === 1.0", {}) is True
        assert evaluate('"a" != "b"', {}) is True

    def test_boolean_operators_return_operands(self):
        assert evaluate('"" || "fallback"', {}) == "fallback"
        assert evaluate('"x" && "y"', {}) == "y"
        assert evaluate("!0", {}) is True

    def test_conditional(self):
        assert evaluate('true ? "yes" : "no"', {}) == "yes"
        assert evaluate('"" ? "yes" : "no"', {}) == "no"

    def test_nested_conditional_is_right_associative(self):
        assert evaluate('false ? "a" : true ? "b" : "c"', {}) == "b"

    def test_parentheses(self):
        assert evaluate('("a" + "b") == "ab"', {}) is True

    def test_precedence(self):
        assert evaluate('"a" == "a" && "b" == "c" || "z"', {}) == "z"


class TestCalls:
    """Tests for calls to injected functions."""

    def test_call(self):
        assert evaluate('upper("abc")', FUNCTIONS) == "ABC"

    def test_call_in_expression(self):
        assert evaluate('"<" + upper("x") + ">"', FUNCTIONS) == "<X>"

    def test_no_arguments(self):
        assert evaluate("nothing()", FUNCTIONS) is None

    def test_unknown_function(self):
        with pytest.raises(ExpressionError, match="Unknown function 'open'"):
            evaluate('open("/etc/passwd")', FUNCTIONS)

    def test_bare_name_is_rejected(self):
        with pytest.raises(ExpressionSyntaxError, match="only function calls"):
            evaluate("process", FUNCTIONS)

    def test_short_circuit_skips_calls(self):
        calls = []

        def record(name):
            calls.append(name)
            return name

        functions = {"record": record}
        assert evaluate('true ? record("a") : record("b")', functions) == "a"
        assert evaluate('record("c") || record("d")', functions) == "c"
        assert evaluate('"" && record("e")', functions) == ""
        assert calls == ["a", "c"]


class TestTemplateStrings:
    """Tests for backtick strings with ``${}`` interpolation."""

    def test_interpolation(self):
        assert evaluate('`Hello ${upper("x")}!`', FUNCTIONS) == "Hello X!"

    def test_interpolation_with_braces_in_strings(self):
        assert evaluate('`[${"}" + "{"}]`', {}) == "[}{]"

    def test_nested_template(self):
        assert evaluate('`a${`b${"c"}`}`', {}) == "abc"

    def test_values_are_rendered_as_text(self):
        assert evaluate("`${null}|${true}|${2.0}`", {}) == "|true|2"


class TestSyntaxErrors:
    """Tests for malformed expressions."""

    @pytest.mark.parametrize(
        "source",
        ["", "   ", '"open', "`open", "1 +", '("a"', '"a" "b"', "a(,)", "true ? 1", "x = 1", "1.2.3"],
    )
    def test_invalid(self, source):
        with pytest.raises(ExpressionSyntaxError):
            parse(source)

    def test_tokens(self):
        kinds = [t.kind for t in tokenize('ask("x", 1) + `y`')]
        assert kinds == ["name", "op", "string", "op", "number", "op", "op", "template", "end"]


class TestToText:
    """Tests for to_text()."""

    def test_conversions(self):
        assert to_text(None) == ""
        assert to_text(True) == "true"
        assert to_text(3.0) == "3"
        assert to_text(3.5) == "3.5"
        assert to_text("s") == "s"
