"""
Category composer.

A Category maps one AST container (a Feature or a Rule) onto executors and
hands them to a host runner::

    feature = Feature("features/cart.feature")

    @feature.register_background
    def background(steps):
        steps.given("an empty cart", lambda context: context.world.update(cart=[]))

    @feature.register_scenario("Adding an item")
    def adding(steps):
        @steps.when("I add {string}")
        def add(context, item):
            context.world.cart.append(item)

        @steps.then("the cart holds {int} item(s)")
        def holds(context, count):
            assert len(context.world.cart) == count

    feature.execute(InlineRunner())

Scenarios, Outlines and Rules that are never registered are still assembled,
so every AST unit reaches the runner.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union
import logging

from ..core.config import ConfigManager
from ..core.exceptions import ExecutionError, GherkinTestValidationError, UnknownTitleError
from ..gherkin import model
from ..gherkin.loader import load_feature
from ..runtime.container import Container
from ..runtime.events import EventBus, LifecycleEvent
from ..runtime.hooks import HookKind, HookRegistry, ordered_hooks
from ..runtime.tags import TagExpression, compile_tag_expression
from ..steps.definitions import StepCache, StepCollector
from ..steps.registry import GlobalStepRegistry, global_registry
from ..steps.resolvers import StepMatcher
from .outline import ScenarioOutlineExecutor
from .scenario import ScenarioExecutor, run_hook

logger = logging.getLogger(__name__)

StepsCallback = Callable[[StepCollector], Any]
Unit = Union[ScenarioExecutor, ScenarioOutlineExecutor]


class Category(ABC):
    """Shared assembly and execution of a Feature or a Rule"""

    kind = "category"

    def __init__(self, node: Union[model.Feature, model.Rule], *, event_bus: EventBus,
                 registry: GlobalStepRegistry, container: Container, tag_filter: TagExpression,
                 parent: Optional["Category"] = None, skip: bool = False):
        self.node = node
        self.event_bus = event_bus
        self.registry = registry
        self.container = container
        self.tag_filter = tag_filter
        self.parent = parent
        self.skip = skip
        self.matcher = parent.matcher if parent else StepMatcher(registry.steps, registry.class_steps)
        self.cache = StepCache(registry.parameter_types, node.title)
        self.background_cache = StepCache(registry.parameter_types, f"{node.title} background")
        self.hooks = HookRegistry()
        self._units: Dict[int, Unit] = {}
        self._skips: Dict[int, bool] = {}
        self._rules: Dict[int, "Category"] = {}

    @property
    def display_title(self) -> str:
        return self.node.display_title

    # Inheritance chains, outermost first

    @property
    def inherited_tags(self) -> List[str]:
        outer = self.parent.inherited_tags if self.parent else []
        return [*outer, *self.node.tags]

    @property
    def background_caches(self) -> List[StepCache]:
        outer = self.parent.background_caches if self.parent else []
        return [*outer, self.background_cache]

    @property
    def ast_backgrounds(self) -> List[model.Background]:
        outer = self.parent.ast_backgrounds if self.parent else []
        if self.node.background is None:
            return outer
        return [*outer, self.node.background]

    @property
    def step_caches(self) -> List[StepCache]:
        """Own cache first, then the enclosing categories' caches"""
        outer = self.parent.step_caches if self.parent else []
        return [self.cache, *outer]

    @property
    def hook_registries(self) -> List[HookRegistry]:
        outer = self.parent.hook_registries if self.parent else [self.registry.hooks]
        return [*outer, self.hooks]

    # Assembly

    def build_scenario(self, scenario: model.Scenario) -> ScenarioExecutor:
        executor = ScenarioExecutor(self.event_bus, self.matcher, self.container,
                                    self.step_caches, self.hook_registries)
        return executor.configure(
            scenario.title,
            scenario,
            self.background_caches,
            self.ast_backgrounds,
            tags=[*self.inherited_tags, *scenario.tags],
        )

    def build_outline(self, outline: model.ScenarioOutline) -> ScenarioOutlineExecutor:
        executor = ScenarioOutlineExecutor(self.matcher, self.container, self.step_caches, self.hook_registries)
        return executor.construct(
            outline.title,
            outline,
            self.background_caches,
            self.ast_backgrounds,
            self.event_bus,
            inherited_tags=self.inherited_tags,
        )

    def adopt(self, node: Union[model.Scenario, model.ScenarioOutline], unit: Unit, skip: bool = False) -> Unit:
        if id(node) in self._units:
            raise GherkinTestValidationError(f'"{node.title}" is already registered in {self.display_title}')
        self._units[id(node)] = unit
        self._skips[id(node)] = skip
        return unit

    def unit(self, node: Union[model.Scenario, model.ScenarioOutline]) -> Unit:
        """The executor of an AST child, assembling a default one if none was registered"""
        if id(node) not in self._units:
            if isinstance(node, model.ScenarioOutline):
                self.adopt(node, self.build_outline(node))
            else:
                self.adopt(node, self.build_scenario(node))
        return self._units[id(node)]

    def rule(self, node: model.Rule) -> "Category":
        if id(node) not in self._rules:
            self._rules[id(node)] = PassiveRule(node, parent=self)
        return self._rules[id(node)]

    # Skip decisions

    def includes(self, node) -> bool:
        """Whether a child would run under the current tag filter"""
        if isinstance(node, model.Rule):
            rule = self.rule(node)
            return not rule.skip and rule.includes_any()
        if self._skips.get(id(node)):
            return False
        unit = self.unit(node)
        if isinstance(unit, ScenarioOutlineExecutor):
            return bool(unit.included_rows(self.tag_filter))
        return self.tag_filter(unit.tags)

    def includes_any(self) -> bool:
        return any(self.includes(child) for child in self.node.children)

    def is_skipped(self, parent_skipped: bool = False) -> bool:
        if parent_skipped or self.skip:
            return True
        return self.tag_filter.is_active and not self.includes_any()

    # Execution

    def execute_children(self, runner, skipped: bool) -> None:
        for child in self.node.children:
            if isinstance(child, model.Rule):
                self.rule(child).execute_group(runner, skipped)
                continue

            unit = self.unit(child)
            explicit = skipped or self._skips.get(id(child), False)
            if isinstance(unit, ScenarioOutlineExecutor):
                unit.execute(runner, explicit, self.tag_filter)
            else:
                unit.execute(runner, explicit or not self.tag_filter(unit.tags))

    def execute_group(self, runner, parent_skipped: bool = False) -> None:
        """Register a describe() group for this category and everything below it"""
        skipped = self.is_skipped(parent_skipped)
        started_event, ended_event = self.lifecycle_events

        async def started():
            self.event_bus.emit(started_event, self.node)
            for hook in self.setup_hooks(HookKind.SETUP):
                await run_hook(self.event_bus, hook)

        async def ended():
            try:
                for hook in self.setup_hooks(HookKind.TEARDOWN):
                    await run_hook(self.event_bus, hook)
            finally:
                self.event_bus.emit(ended_event, self.node)

        def body():
            runner.before_all(started)
            runner.after_all(ended)
            self.execute_children(runner, skipped)

        logger.debug(f"Registering {self.display_title}{' (skipped)' if skipped else ''}")
        runner.describe(self.display_title, body, skip=skipped)

    @property
    @abstractmethod
    def lifecycle_events(self) -> Tuple[LifecycleEvent, LifecycleEvent]:
        """Events emitted around this category's children"""
        pass

    def setup_hooks(self, kind: HookKind):
        return ordered_hooks(kind, [self.hooks])


class RegistrationMixin:
    """User-facing registration surface of Features and Active Rules"""

    def _registration(self, target: Callable[[StepsCallback], None], callback: Optional[StepsCallback]):
        if callback is not None:
            target(callback)
            return callback

        def decorator(func):
            target(func)
            return func

        return decorator

    def register_background(self, callback: Optional[StepsCallback] = None):
        """Register step definitions used by this category's Background"""
        if self.node.background is None:
            raise GherkinTestValidationError(f"{self.display_title} has no Background")
        return self._registration(lambda func: func(StepCollector(self.background_cache)), callback)

    def register_steps(self, callback: Optional[StepsCallback] = None):
        """Register step definitions visible to every unit of this category"""
        return self._registration(lambda func: func(StepCollector(self.cache)), callback)

    def register_scenario(self, title: str, callback: Optional[StepsCallback] = None, skip: bool = False):
        """Register a Scenario by title; returns a decorator when ``callback`` is omitted"""
        node = self.node.find_scenario(title)
        if node is None:
            raise UnknownTitleError("scenario", title, self.display_title, self.node.scenario_titles())
        unit = self.adopt(node, self.build_scenario(node), skip)
        return self._registration(unit.load_defined_steps, callback)

    def register_scenario_outline(self, title: str, callback: Optional[StepsCallback] = None,
                                  skip: bool = False):
        node = self.node.find_outline(title)
        if node is None:
            raise UnknownTitleError("scenario outline", title, self.display_title, self.node.outline_titles())
        unit = self.adopt(node, self.build_outline(node), skip)
        return self._registration(unit.load_defined_steps, callback)

    def before(self, action: Optional[Callable] = None, tags: Optional[str] = None):
        return self.hooks.before(action, tags)

    def after(self, action: Optional[Callable] = None, tags: Optional[str] = None):
        return self.hooks.after(action, tags)

    def setup(self, action: Optional[Callable] = None):
        return self.hooks.setup(action)

    def teardown(self, action: Optional[Callable] = None):
        return self.hooks.teardown(action)


class Feature(RegistrationMixin, Category):
    """
    Top-level category bound to one parsed feature.

    Args:
        document: A parsed Feature, or the path of a .feature file
        event_bus: Bus the run reports to; a private one by default
        registry: Global step registry; ``global_registry`` by default
        container: Root DI container; a fresh one by default
        tag_filter: Tag expression (string or compiled); read from
            ``config`` (or the ``CUCUMBER_FILTER_TAGS`` environment) when omitted
        config: ConfigManager supplying the tag filter
        skip: Register every unit as skipped
    """

    kind = "feature"

    def __init__(self, document: Union[model.Feature, str, Path], *,
                 event_bus: Optional[EventBus] = None,
                 registry: Optional[GlobalStepRegistry] = None,
                 container: Optional[Container] = None,
                 tag_filter: Optional[Union[str, TagExpression]] = None,
                 config: Optional[ConfigManager] = None,
                 skip: bool = False):
        if not isinstance(document, model.Feature):
            document = load_feature(document)

        if tag_filter is None:
            tag_filter = (config or ConfigManager()).tag_filter()
        elif not isinstance(tag_filter, TagExpression):
            tag_filter = compile_tag_expression(tag_filter)

        super().__init__(
            document,
            event_bus=event_bus or EventBus(),
            registry=registry or global_registry,
            container=container or Container(),
            tag_filter=tag_filter,
            skip=skip,
        )
        self._executed = False

    @property
    def document(self) -> model.Feature:
        return self.node

    @property
    def lifecycle_events(self):
        return LifecycleEvent.FEATURE_STARTED, LifecycleEvent.FEATURE_ENDED

    def setup_hooks(self, kind: HookKind):
        # global setup/teardown hooks wrap every feature
        return ordered_hooks(kind, [self.registry.hooks, self.hooks])

    def register_rule(self, title: str, callback: Optional[Callable[["ActiveRule"], Any]] = None,
                      skip: bool = False):
        """Describe a Rule through a callback that receives an ActiveRule"""
        node = self.node.find_rule(title)
        if node is None:
            raise UnknownTitleError("rule", title, self.display_title, self.node.rule_titles())
        if id(node) in self._rules:
            raise GherkinTestValidationError(f'Rule "{title}" is already registered in {self.display_title}')
        rule = ActiveRule(node, parent=self, skip=skip)
        self._rules[id(node)] = rule
        return self._registration(lambda func: func(rule), callback)

    def execute(self, runner) -> None:
        """Hand every unit of the feature to the host runner"""
        if self._executed:
            raise ExecutionError(f"{self.display_title} has already been executed")
        self._executed = True
        self.execute_group(runner)


class _RuleCategory(Category):
    kind = "rule"

    def __init__(self, node: model.Rule, parent: Category, skip: bool = False):
        super().__init__(
            node,
            event_bus=parent.event_bus,
            registry=parent.registry,
            container=parent.container,
            tag_filter=parent.tag_filter,
            parent=parent,
            skip=skip,
        )

    @property
    def lifecycle_events(self):
        return LifecycleEvent.RULE_STARTED, LifecycleEvent.RULE_ENDED

    def is_skipped(self, parent_skipped: bool = False) -> bool:
        # a Rule is skipped only when none of its children is included
        return parent_skipped or self.skip or not self.includes_any()


class ActiveRule(RegistrationMixin, _RuleCategory):
    """A Rule described by the user, with the same surface as a Feature"""

    def register_rule(self, *args, **kwargs):
        raise GherkinTestValidationError(f"Rules cannot be nested: {self.display_title}")


class PassiveRule(_RuleCategory):
    """A Rule whose Scenarios and Outlines are supplied by a TopLevelRun"""


class TopLevelRun(Feature):
    """
    Assembles every Scenario, Outline and Rule of a feature and applies the
    same step callbacks to all of them::

        TopLevelRun("features/cart.feature", cart_steps).execute(runner)
    """

    def __init__(self, document: Union[model.Feature, str, Path], *callbacks: StepsCallback, **kwargs):
        super().__init__(document, **kwargs)
        self.callbacks = callbacks
        for child in self.node.children:
            if isinstance(child, model.Rule):
                rule = PassiveRule(child, parent=self)
                self._rules[id(child)] = rule
                self._assemble(rule, child.children)
            else:
                self._assemble(self, [child])

    def _assemble(self, category: Category, children: Sequence) -> None:
        for child in children:
            if isinstance(child, model.ScenarioOutline):
                unit = category.build_outline(child)
            else:
                unit = category.build_scenario(child)
            unit.load_defined_steps(*self.callbacks)
            category.adopt(child, unit)
