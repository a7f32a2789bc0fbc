"""
Collect the cart feature as pytest tests. Copy into a test module
(``test_cart.py``) to have pytest pick it up.
"""

from pathlib import Path

from gherkin_conductor import TopLevelRun, global_registry
from gherkin_conductor.runners import PytestRunner

HERE = Path(__file__).parent

global_registry.load_module(str(HERE / "steps" / "cart_steps.py"))

TopLevelRun(HERE / "features" / "cart.feature", tag_filter="not @wip").execute(PytestRunner(globals()))
