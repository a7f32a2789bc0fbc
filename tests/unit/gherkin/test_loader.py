import pytest

from gherkin_conductor.core.exceptions import FeatureLoadError
from gherkin_conductor.gherkin import load_feature, load_features, parse_feature_text
from gherkin_conductor.gherkin.model import Rule, Scenario, ScenarioOutline


class TestFeatureLoader:
    """Test conversion of behave's parse tree into the read-only model"""

    def test_feature_with_background_and_scenario(self, parse):
        feature = parse("""
            @cart
            Feature: Cart
              Background: Empty cart
                Given an empty cart

              @smoke
              Scenario: Adding an item
                When I add "apple"
                Then the cart holds 1 item
        """)

        assert feature.title == "Cart"
        assert feature.tags == ("@cart",)
        assert feature.filename == "test.feature"
        assert feature.background.title == "Empty cart"
        assert [step.text for step in feature.background.steps] == ["an empty cart"]

        scenario = feature.find_scenario("Adding an item")
        assert isinstance(scenario, Scenario)
        assert scenario.tags == ("@smoke",)
        assert [(step.keyword, step.text, step.step_type) for step in scenario.steps] == [
            ("When", 'I add "apple"', "when"),
            ("Then", "the cart holds 1 item", "then"),
        ]

    def test_conjunction_inherits_step_type(self, parse):
        feature = parse("""
            Feature: Steps
              Scenario: Conjunctions
                Given a user
                And a cart
                Then it works
                But nothing breaks
        """)

        steps = feature.find_scenario("Conjunctions").steps
        assert [(step.keyword, step.step_type) for step in steps] == [
            ("Given", "given"),
            ("And", "given"),
            ("Then", "then"),
            ("But", "then"),
        ]

    def test_scenario_outline_rows(self, parse):
        feature = parse("""
            Feature: Outlines
              @pricing
              Scenario Outline: Pricing
                Given a price of <price>
                Then the total is <total>

                @fast
                Examples:
                  | price | total |
                  | 10    | 10    |
                  | 20    | 20    |
        """)

        outline = feature.find_outline("Pricing")
        assert isinstance(outline, ScenarioOutline)
        assert outline.tags == ("@pricing",)
        assert len(outline.examples) == 1
        assert outline.examples[0].as_dicts() == [
            {"price": "10", "total": "10"},
            {"price": "20", "total": "20"},
        ]

        rows = outline.scenarios
        assert len(rows) == 2
        assert [step.text for step in rows[1].steps] == ["a price of 20", "the total is 20"]
        assert rows[0].example_values == {"price": "10", "total": "10"}
        assert rows[0].display_title == "Scenario: Pricing <price: 10, total: 10>"
        assert "@fast" in rows[0].tags

    def test_step_arguments(self, parse):
        feature = parse('''
            Feature: Arguments
              Scenario: Table and docstring
                Given these users:
                  | name  | role  |
                  | alice | admin |
                When I send:
                  """
                  hello
                  """
        ''')

        table_step, doc_step = feature.find_scenario("Table and docstring").steps
        assert table_step.table.headings == ("name", "role")
        assert table_step.table.column("name") == ["alice"]
        assert table_step.argument is table_step.table
        assert str(doc_step.docstring) == "hello"
        assert doc_step.argument is doc_step.docstring

    def test_rules(self, parse):
        feature = parse("""
            Feature: Rules
              Background:
                Given a shop

              Rule: Discounts
                Background:
                  Given a discount

                Scenario: Large cart
                  Then a discount applies

              Rule: No background
                Scenario: Small cart
                  Then no discount applies
        """)

        assert feature.rule_titles() == ["Discounts", "No background"]
        discounts = feature.find_rule("Discounts")
        assert isinstance(discounts, Rule)
        assert [step.text for step in discounts.background.steps] == ["a discount"]
        assert discounts.scenario_titles() == ["Large cart"]
        assert feature.find_rule("No background").background is None
        assert feature.scenario_titles() == []

    def test_invalid_gherkin(self):
        with pytest.raises(FeatureLoadError):
            parse_feature_text("Scenario: without a feature\n  Given nothing\n")

    def test_missing_file(self, tmp_path):
        with pytest.raises(FeatureLoadError, match="not found"):
            load_feature(tmp_path / "missing.feature")

    def test_load_features_from_directory(self, tmp_path):
        (tmp_path / "b.feature").write_text("Feature: B\n  Scenario: b\n    Given b\n")
        nested = tmp_path / "nested"
        nested.mkdir()
        (nested / "a.feature").write_text("Feature: A\n  Scenario: a\n    Given a\n")

        features = load_features(tmp_path)

        assert sorted(feature.title for feature in features) == ["A", "B"]
