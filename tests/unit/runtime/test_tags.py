import pytest

from gherkin_conductor.core.exceptions import ConfigurationError, TagExpressionError
from gherkin_conductor.runtime.tags import MATCH_ALL, compile_tag_expression, normalize_tag


class TestTagExpression:
    """Test tag filter compilation and evaluation"""

    def test_empty_expression_matches_everything(self):
        """Test that empty or missing filters run everything"""
        for source in (None, "", "   "):
            expression = compile_tag_expression(source)
            assert expression is MATCH_ALL
            assert not expression.is_active
            assert expression([])
            assert expression(["@anything"])

    def test_single_tag(self):
        expression = compile_tag_expression("@smoke")
        assert expression.is_active
        assert expression(["@smoke", "@fast"])
        assert not expression(["@slow"])

    def test_tags_without_at_sign_are_normalized(self):
        """Test that tag sets coming from behave (no "@") still match"""
        expression = compile_tag_expression("@smoke")
        assert expression(["smoke"])
        assert normalize_tag("smoke") == "@smoke"
        assert normalize_tag("@smoke") == "@smoke"

    def test_precedence_not_and_or(self):
        """Test that not binds tighter than and, and and tighter than or"""
        expression = compile_tag_expression("@a or @b and not @c")
        assert expression(["@a", "@c"])
        assert expression(["@b"])
        assert not expression(["@b", "@c"])
        assert not expression([])

    def test_parentheses(self):
        expression = compile_tag_expression("(@a or @b) and not @wip")
        assert expression(["@a"])
        assert expression(["@b"])
        assert not expression(["@a", "@wip"])
        assert not expression(["@c"])

    def test_not_only_expression(self):
        expression = compile_tag_expression("not @wip")
        assert expression([])
        assert not expression(["@wip"])

    def test_string_form(self):
        """Test the normalized rendering of an expression"""
        assert str(compile_tag_expression("@a  and   @b")) == "@a and @b"
        assert str(compile_tag_expression("(@a or @b) and @c")) == "(@a or @b) and @c"

    @pytest.mark.parametrize("source", [
        "@a and",
        "and @a",
        "(@a or @b",
        "@a @b",
        "smoke",
        "@a or )",
    ])
    def test_malformed_expressions(self, source):
        """Test that malformed filters raise configuration errors"""
        with pytest.raises(TagExpressionError) as excinfo:
            compile_tag_expression(source)
        assert excinfo.value.expression == source.strip()
        assert isinstance(excinfo.value, ConfigurationError)

    def test_expression_is_reusable(self):
        """Test that a compiled expression holds no evaluation state"""
        expression = compile_tag_expression("@a and not @b")
        results = [expression(tags) for tags in (["@a"], ["@a", "@b"], ["@a"])]
        assert results == [True, False, True]
