import pytest

from gherkin_conductor.core.exceptions import (
    ExecutionError,
    GherkinTestValidationError,
    TagExpressionError,
    UnknownTitleError,
)
from gherkin_conductor.executor.category import ActiveRule, Category, Feature, PassiveRule, TopLevelRun
from gherkin_conductor.runners import InlineRunner
from gherkin_conductor.runtime import LifecycleEvent
from gherkin_conductor.steps import before, given, then, when

SHOP = """
    @shop
    Feature: Shop
      Background: Open shop
        Given a shop

      Scenario: Buying
        When I buy "apple"
        Then I own "apple"

      @wip
      Scenario: Returning
        When I return "apple"

      Rule: Discounts
        Background: Discount day
          Given a discount of 10

        Scenario: Discounted purchase
          When I buy "pear"
          Then I pay 90

      @wip
      Rule: Refunds
        Scenario: Refund
          When I ask for a refund
"""


def statuses(results):
    return [(result.full_title, result.status.value) for result in results]


def shop_background(steps):
    steps.given("a shop", lambda context: context.world.update(items=[]))


def shared_steps(steps):
    @steps.when("I buy {string}")
    def buy(context, item):
        context.world["items"].append(item)


def discount_rule(rule):
    rule.register_background(
        lambda steps: steps.given("a discount of {int}", lambda context, pct: context.world.update(discount=pct))
    )

    @rule.register_scenario("Discounted purchase")
    def purchase(steps):
        @steps.then("I pay {int}")
        def pay(context, amount):
            assert context.world["items"] == ["pear"]
            assert 100 - context.world.discount == amount


class TestFeature:
    """Test the Feature category and Active Rules"""

    @pytest.fixture
    def document(self, parse):
        return parse(SHOP)

    @pytest.fixture
    def feature(self, document, event_bus):
        feature = Feature(document, event_bus=event_bus, tag_filter="not @wip")
        feature.register_background(shop_background)
        feature.register_steps(shared_steps)

        @feature.register_scenario("Buying")
        def buying(steps):
            @steps.then("I own {string}")
            def own(context, item):
                assert item in context.world["items"]

        feature.register_rule("Discounts", discount_rule)
        return feature

    def test_runs_registered_units(self, feature):
        runner = InlineRunner()

        feature.execute(runner)
        results = runner.run()

        assert statuses(results) == [
            ("Feature: Shop > Scenario: Buying", "passed"),
            ("Feature: Shop > Scenario: Returning", "skipped"),
            ("Feature: Shop > Rule: Discounts > Scenario: Discounted purchase", "passed"),
            ("Feature: Shop > Rule: Refunds > Scenario: Refund", "skipped"),
        ]

    def test_group_events(self, feature, recorder):
        """Test that excluded rules emit nothing and included ones bracket their scenarios"""
        runner = InlineRunner()

        feature.execute(runner)
        runner.run()

        assert recorder.of(
            LifecycleEvent.FEATURE_STARTED,
            LifecycleEvent.FEATURE_ENDED,
            LifecycleEvent.RULE_STARTED,
            LifecycleEvent.RULE_ENDED,
            LifecycleEvent.SCENARIO_STARTED,
        ) == [
            (LifecycleEvent.FEATURE_STARTED, "Shop"),
            (LifecycleEvent.SCENARIO_STARTED, "Buying"),
            (LifecycleEvent.RULE_STARTED, "Discounts"),
            (LifecycleEvent.SCENARIO_STARTED, "Discounted purchase"),
            (LifecycleEvent.RULE_ENDED, "Discounts"),
            (LifecycleEvent.FEATURE_ENDED, "Shop"),
        ]

    def test_rule_backgrounds_follow_feature_background(self, feature, recorder):
        runner = InlineRunner()

        feature.execute(runner)
        runner.run()

        backgrounds = recorder.of(LifecycleEvent.BACKGROUND_STARTED)
        assert backgrounds == [
            (LifecycleEvent.BACKGROUND_STARTED, "Open shop"),
            (LifecycleEvent.BACKGROUND_STARTED, "Open shop"),
            (LifecycleEvent.BACKGROUND_STARTED, "Discount day"),
        ]

    def test_execute_twice_raises(self, feature):
        feature.execute(InlineRunner())

        with pytest.raises(ExecutionError, match="already been executed"):
            feature.execute(InlineRunner())

    def test_unknown_scenario_title_lists_available(self, document):
        feature = Feature(document, tag_filter="")

        with pytest.raises(UnknownTitleError) as excinfo:
            feature.register_scenario("Selling", lambda steps: None)

        assert excinfo.value.available == ["Buying", "Returning"]
        assert '"Buying", "Returning"' in str(excinfo.value)

    def test_unknown_rule_and_outline_titles(self, document):
        feature = Feature(document, tag_filter="")

        with pytest.raises(UnknownTitleError, match='"Discounts", "Refunds"'):
            feature.register_rule("Loyalty", lambda rule: None)
        with pytest.raises(UnknownTitleError, match="Available scenario outline titles: none"):
            feature.register_scenario_outline("Pricing", lambda steps: None)

    def test_scenario_registered_twice(self, document):
        feature = Feature(document, tag_filter="")
        feature.register_scenario("Buying", lambda steps: None)

        with pytest.raises(GherkinTestValidationError, match="already registered"):
            feature.register_scenario("Buying", lambda steps: None)

    def test_rules_cannot_nest(self, document):
        feature = Feature(document, tag_filter="")

        with pytest.raises(GherkinTestValidationError, match="cannot be nested"):
            feature.register_rule("Discounts", lambda rule: rule.register_rule("Refunds"))

    def test_register_rule_passes_an_active_rule(self, document):
        feature = Feature(document, tag_filter="")
        seen = []

        feature.register_rule("Discounts", seen.append)

        assert isinstance(seen[0], ActiveRule)
        assert seen[0].parent is feature

    def test_background_required(self, document):
        feature = Feature(document, tag_filter="")

        def refunds(rule):
            rule.register_background(lambda steps: None)

        with pytest.raises(GherkinTestValidationError, match="has no Background"):
            feature.register_rule("Refunds", refunds)

    def test_unregistered_units_use_global_steps(self, document):
        """Test that scenarios nobody registered still reach the runner"""
        given("a shop", lambda context: None)
        when("I return {string}", lambda context, item: None)
        feature = Feature(document, tag_filter="@wip")
        runner = InlineRunner()

        feature.execute(runner)
        results = runner.run()

        assert statuses(results) == [
            ("Feature: Shop > Scenario: Buying", "skipped"),
            ("Feature: Shop > Scenario: Returning", "passed"),
            ("Feature: Shop > Rule: Discounts > Scenario: Discounted purchase", "skipped"),
            ("Feature: Shop > Rule: Refunds > Scenario: Refund", "failed"),
        ]
        assert isinstance(feature.rule(document.find_rule("Discounts")), PassiveRule)

    def test_explicit_skip(self, document):
        feature = Feature(document, tag_filter="")
        feature.register_scenario("Buying", lambda steps: None, skip=True)
        feature.register_rule("Discounts", lambda rule: None, skip=True)
        runner = InlineRunner()

        feature.execute(runner)
        results = runner.run()

        assert results[0].skipped
        assert results[2].skipped

    def test_skipped_feature(self, document):
        runner = InlineRunner()

        Feature(document, tag_filter="@missing").execute(runner)
        results = runner.run()

        assert all(result.skipped for result in results)
        assert len(results) == 4

    def test_tag_filter_from_environment(self, document, monkeypatch):
        monkeypatch.setenv("CUCUMBER_FILTER_TAGS", "@wip and not @shop")

        feature = Feature(document)

        assert str(feature.tag_filter) == "@wip and not @shop"

    def test_malformed_tag_filter_fails_before_running(self, document, monkeypatch):
        monkeypatch.setenv("CUCUMBER_FILTER_TAGS", "@wip and")

        with pytest.raises(TagExpressionError):
            Feature(document)

    def test_setup_and_teardown_hooks(self, parse):
        document = parse("""
            Feature: Hooks
              Scenario: One
                Given a step
        """)
        calls = []
        given("a step", lambda context: calls.append("step"))
        before(lambda context: calls.append("global before"))

        feature = Feature(document, tag_filter="")
        feature.setup(lambda: calls.append("setup"))
        feature.teardown(lambda: calls.append("teardown"))
        feature.before(lambda context: calls.append("before"))
        feature.after(lambda context: calls.append("after"))
        runner = InlineRunner()

        feature.execute(runner)
        runner.run()

        assert calls == ["setup", "global before", "before", "step", "after", "teardown"]

    def test_background_step_wins_over_scenario_step_with_same_text(self, parse):
        """Test a Background definition resolves before a same-text Scenario definition"""
        document = parse("""
            Feature: Doors
              Background: Entrance
                Given the door opens

              Scenario: Walking in
                Given the door opens
        """)
        calls = []
        feature = Feature(document, tag_filter="")
        feature.register_background(lambda steps: steps.given("the door opens", lambda context: calls.append("bg")))
        feature.register_scenario(
            "Walking in",
            lambda steps: steps.given("the door opens", lambda context: calls.append("scenario")),
        )
        runner = InlineRunner()

        feature.execute(runner)
        results = runner.run()

        assert statuses(results) == [("Feature: Doors > Scenario: Walking in", "passed")]
        assert calls == ["bg", "bg"]

    def test_category_is_abstract(self, document):
        with pytest.raises(TypeError):
            Category(document, event_bus=None, registry=None, container=None, tag_filter=None)


class TestTopLevelRun:
    """Test running every unit with shared step callbacks"""

    def test_callbacks_apply_to_every_unit(self, parse, recorder, event_bus):
        document = parse(SHOP)
        seen = []

        def steps(collector):
            collector.step("a shop", lambda context: context.world.update(items=[]))
            collector.step("a discount of {int}", lambda context, pct: None)
            collector.step("I buy {string}", lambda context, item: context.world["items"].append(item))
            collector.step("I own {string}", lambda context, item: seen.append(item))
            collector.step("I pay {int}", lambda context, amount: seen.append(amount))

        run = TopLevelRun(document, steps, event_bus=event_bus, tag_filter="not @wip")
        runner = InlineRunner()

        run.execute(runner)
        results = runner.run()

        assert [result.status.value for result in results] == ["passed", "skipped", "passed", "skipped"]
        assert seen == ["apple", 90]
        assert isinstance(run.rule(document.find_rule("Discounts")), PassiveRule)

    def test_steps_do_not_leak_between_units(self, parse):
        document = parse("""
            Feature: Isolation
              Scenario: First
                Given a counter

              Scenario: Second
                Given a counter
        """)
        counts = []

        def steps(collector):
            @collector.given("a counter")
            def counter(context):
                context.world["count"] = context.world.get("count", 0) + 1
                counts.append(context.world["count"])

        runner = InlineRunner()
        TopLevelRun(document, steps, tag_filter="").execute(runner)
        runner.run()

        assert counts == [1, 1]
