import re

import pytest

from gherkin_conductor.core.exceptions import StepDefinitionError, StepRegistrationError
from gherkin_conductor.steps.definitions import (
    StepCache,
    StepCollector,
    StepKeyword,
    keyword_search_order,
)
from gherkin_conductor.steps.expressions import ParameterTypeRegistry


class TestStepKeyword:
    """Test keyword parsing and bucket search order"""

    @pytest.mark.parametrize("raw, expected", [
        ("Given", StepKeyword.GIVEN),
        (" when ", StepKeyword.WHEN),
        ("THEN", StepKeyword.THEN),
        ("And", StepKeyword.AND),
        ("But", StepKeyword.BUT),
        ("*", StepKeyword.AND),
    ])
    def test_parse(self, raw, expected):
        assert StepKeyword.parse(raw) == expected

    def test_parse_unknown(self):
        with pytest.raises(StepDefinitionError):
            StepKeyword.parse("Suppose")

    def test_concrete_keywords_search_only_their_bucket(self):
        assert keyword_search_order(StepKeyword.WHEN, "when") == [StepKeyword.WHEN]

    def test_conjunction_prefers_preceding_group(self):
        """Test that And/But look at And/But first, then the preceding keyword's group"""
        assert keyword_search_order(StepKeyword.AND, "then") == [
            StepKeyword.AND,
            StepKeyword.BUT,
            StepKeyword.THEN,
            StepKeyword.GIVEN,
            StepKeyword.WHEN,
        ]


class TestStepCache:
    """Test step definition caches"""

    @pytest.fixture
    def cache(self):
        return StepCache(ParameterTypeRegistry(), "test")

    def test_add_compiles_expressions(self, cache):
        definition = cache.add("given", "I have {int} items", lambda context, count: None)

        assert definition.keyword == StepKeyword.GIVEN
        assert definition.expression.values("I have 3 items") == [3]
        assert not definition.is_regex

    def test_add_regex(self, cache):
        definition = cache.add("when", re.compile(r"I click (\w+)"), lambda context, name: None)

        assert definition.is_regex
        assert definition.expression is None
        assert definition.source == r"I click (\w+)"

    def test_duplicate_is_rejected(self, cache):
        cache.add("given", "a user", lambda context: None)

        with pytest.raises(StepRegistrationError, match="already defined"):
            cache.add("given", "a user", lambda context: None)

    def test_same_text_under_other_keyword_is_allowed(self, cache):
        cache.add("given", "a user", lambda context: None)
        cache.add("then", "a user", lambda context: None)

        assert len(cache) == 2

    def test_invalid_pattern(self, cache):
        with pytest.raises(StepDefinitionError):
            cache.add("given", 42, lambda context: None)

    def test_non_callable_action(self, cache):
        with pytest.raises(StepDefinitionError):
            cache.add("given", "a user", "not callable")

    def test_candidates_follow_search_order(self, cache):
        given = cache.add("given", "x", lambda context: None)
        conjunction = cache.add("and", "x", lambda context: None)
        then = cache.add("then", "x", lambda context: None)

        assert cache.candidates(StepKeyword.GIVEN, "given") == [given]
        assert cache.candidates(StepKeyword.AND, "then") == [conjunction, then, given]

    def test_clear(self, cache):
        cache.add("given", "a user", lambda context: None)
        cache.clear()

        assert len(cache) == 0
        cache.add("given", "a user", lambda context: None)


class TestStepCollector:
    """Test the registration surface handed to step callbacks"""

    @pytest.fixture
    def collector(self):
        return StepCollector(StepCache(ParameterTypeRegistry()))

    def test_direct_call(self, collector):
        def action(context):
            pass

        assert collector.given("a user", action) is action
        assert collector.cache.definitions()[0].action is action

    def test_decorator(self, collector):
        @collector.then("it works")
        def check(context):
            pass

        definition = collector.cache.definitions()[0]
        assert definition.keyword == StepKeyword.THEN
        assert definition.action is check

    def test_step_registers_every_concrete_keyword(self, collector):
        collector.step("anything", lambda context: None)

        keywords = [definition.keyword for definition in collector.cache.definitions()]
        assert keywords == [StepKeyword.GIVEN, StepKeyword.WHEN, StepKeyword.THEN]

    def test_and_but(self, collector):
        collector.and_("more", lambda context: None)
        collector.but("less", lambda context: None)

        keywords = [definition.keyword for definition in collector.cache.definitions()]
        assert keywords == [StepKeyword.AND, StepKeyword.BUT]
