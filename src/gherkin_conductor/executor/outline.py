from typing import Any, Callable, List, Optional, Sequence
import logging

from ..gherkin.model import Background, ScenarioOutline
from ..runtime.container import Container
from ..runtime.events import EventBus, LifecycleEvent
from ..runtime.hooks import HookRegistry
from ..runtime.tags import MATCH_ALL, TagExpression
from ..steps.definitions import StepCache, StepCollector
from ..steps.resolvers import StepMatcher
from .scenario import ScenarioExecutor

logger = logging.getLogger(__name__)


class ScenarioOutlineExecutor:
    """Expands a Scenario Outline into one ScenarioExecutor per Examples row"""

    def __init__(self, matcher: StepMatcher, container: Container,
                 category_caches: Sequence[StepCache] = (), hooks: Sequence[HookRegistry] = ()):
        self.matcher = matcher
        self.container = container
        self.category_caches = list(category_caches)
        self.hooks = list(hooks)
        self.title = ""
        self.outline: Optional[ScenarioOutline] = None
        self.event_bus: Optional[EventBus] = None
        self.rows: List[ScenarioExecutor] = []

    def construct(self, title: str, outline: ScenarioOutline,
                  inherited_backgrounds: Sequence[StepCache] = (),
                  ast_backgrounds: Sequence[Background] = (),
                  event_bus: Optional[EventBus] = None,
                  inherited_tags: Sequence[str] = ()) -> "ScenarioOutlineExecutor":
        """Build one executor, with its own DI scope, per expanded row"""
        self.title = title
        self.outline = outline
        self.event_bus = event_bus or EventBus()
        self.rows = []
        for scenario in outline.scenarios:
            row = ScenarioExecutor(self.event_bus, self.matcher, self.container,
                                   self.category_caches, self.hooks)
            # row tags already carry the outline and Examples tags
            row.configure(title, scenario, inherited_backgrounds, ast_backgrounds,
                          tags=[*inherited_tags, *outline.tags, *scenario.tags])
            self.rows.append(row)
        logger.debug(f"Expanded {outline.display_title} into {len(self.rows)} rows")
        return self

    @property
    def display_title(self) -> str:
        return self.outline.display_title

    def load_defined_steps(self, *callbacks: Callable[[StepCollector], Any]) -> None:
        for row in self.rows:
            row.load_defined_steps(*callbacks)

    def included_rows(self, tag_filter: TagExpression = MATCH_ALL) -> List[ScenarioExecutor]:
        return [row for row in self.rows if tag_filter(row.tags)]

    def execute(self, runner, skipped: bool = False, tag_filter: TagExpression = MATCH_ALL) -> None:
        """Register a group for the outline and one test per row"""
        decisions = [skipped or not tag_filter(row.tags) for row in self.rows]

        def started():
            self.event_bus.emit(LifecycleEvent.SCENARIO_OUTLINE_STARTED, self.outline)

        def ended():
            self.event_bus.emit(LifecycleEvent.SCENARIO_OUTLINE_ENDED, self.outline)

        def body():
            runner.before_all(started)
            runner.after_all(ended)
            for row, row_skipped in zip(self.rows, decisions):
                row.execute(runner, row_skipped)

        runner.describe(self.display_title, body, skip=skipped or (bool(decisions) and all(decisions)))
