from typing import Optional
import logging

logger = logging.getLogger(__name__)


class LoggingSubscriber:
    """Logs the run as nested, indented groups::

        Feature: Cart
          Scenario: Adding an item
            Given an empty cart
    """

    def __init__(self, log: Optional[logging.Logger] = None, indent: str = "  "):
        self.log = log or logger
        self.indent = indent
        self.depth = 0

    def _line(self, text: str, level: int = logging.INFO) -> None:
        self.log.log(level, f"{self.indent * self.depth}{text}")

    def _open(self, text: str) -> None:
        self._line(text)
        self.depth += 1

    def _close(self) -> None:
        self.depth = max(self.depth - 1, 0)

    def on_feature_started(self, feature) -> None:
        self._open(feature.display_title)

    def on_feature_ended(self, feature) -> None:
        self._close()

    def on_rule_started(self, rule) -> None:
        self._open(rule.display_title)

    def on_rule_ended(self, rule) -> None:
        self._close()

    def on_scenario_outline_started(self, outline) -> None:
        self._open(outline.display_title)

    def on_scenario_outline_ended(self, outline) -> None:
        self._close()

    def on_scenario_started(self, scenario) -> None:
        self._open(scenario.display_title)

    def on_scenario_ended(self, scenario, error=None) -> None:
        self._close()
        if error is not None:
            self._line(f"✗ {scenario.display_title}: {error}", logging.ERROR)

    def on_step_ended(self, step, error=None) -> None:
        if error is None:
            self._line(f"✓ {step.keyword} {step.text}")
        else:
            self._line(f"✗ {step.keyword} {step.text}", logging.ERROR)

    def on_hook_ended(self, hook, error=None) -> None:
        if error is not None:
            self._line(f"✗ {hook}: {error}", logging.ERROR)
