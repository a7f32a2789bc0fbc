import inspect
from typing import Any, Callable, List, Optional, Sequence, Tuple
import logging

from ..core.exceptions import ExecutionError
from ..gherkin.model import Background, Scenario, Step
from ..runtime.container import Container
from ..runtime.context import StepContext
from ..runtime.events import EventBus, LifecycleEvent
from ..runtime.hooks import Hook, HookKind, HookRegistry, ordered_hooks
from ..steps.definitions import StepCache, StepCollector
from ..steps.resolvers import StepMatcher

logger = logging.getLogger(__name__)


async def run_hook(event_bus: EventBus, hook: Hook, *args) -> None:
    """Run one hook bracketed by HOOK_STARTED/HOOK_ENDED"""
    event_bus.emit(LifecycleEvent.HOOK_STARTED, hook)
    error = None
    try:
        result = hook.action(*args)
        if inspect.isawaitable(result):
            await result
    except Exception as e:
        error = e
        e.add_note(f"In {hook}")
        raise
    finally:
        event_bus.emit(LifecycleEvent.HOOK_ENDED, hook, error=error)


class ScenarioExecutor:
    """
    Owns one Scenario or one Scenario Outline row.

    The executor keeps the unit's own step cache and DI scope and hands the
    host runner a thunk that runs Background steps, then the Scenario's own
    steps, strictly in order.
    """

    def __init__(self, event_bus: EventBus, matcher: StepMatcher, container: Container,
                 category_caches: Sequence[StepCache] = (), hooks: Sequence[HookRegistry] = ()):
        self.event_bus = event_bus
        self.matcher = matcher
        self.scope = container.create_scope()
        self.category_caches = list(category_caches)
        self.hooks = list(hooks)
        self.cache = StepCache(matcher.global_cache.parameter_types)
        self.title = ""
        self.scenario: Optional[Scenario] = None
        self.inherited_backgrounds: List[StepCache] = []
        self.ast_backgrounds: List[Background] = []
        self.tags: frozenset = frozenset()
        self._executed = False

    def configure(self, title: str, scenario: Scenario,
                  inherited_backgrounds: Sequence[StepCache] = (),
                  ast_backgrounds: Sequence[Background] = (),
                  tags: Optional[Sequence[str]] = None) -> "ScenarioExecutor":
        """
        Bind the executor to its AST scenario.

        Args:
            title: Scenario title
            scenario: The AST scenario (or expanded outline row)
            inherited_backgrounds: Background step caches, outermost first
            ast_backgrounds: Background AST nodes whose steps run first
            tags: Effective tags; defaults to the scenario's own tags
        """
        self.title = title
        self.scenario = scenario
        self.inherited_backgrounds = list(inherited_backgrounds)
        self.ast_backgrounds = [background for background in ast_backgrounds if background is not None]
        self.tags = frozenset(scenario.tags if tags is None else tags)
        self.cache.name = title
        return self

    @property
    def display_title(self) -> str:
        return self.scenario.display_title

    @property
    def executed(self) -> bool:
        return self._executed

    @property
    def local_caches(self) -> List[StepCache]:
        """Caches searched before the global registry, in priority order"""
        return [*self.inherited_backgrounds, self.cache, *self.category_caches]

    def load_defined_steps(self, *callbacks: Callable[[StepCollector], Any]) -> None:
        collector = StepCollector(self.cache)
        for callback in callbacks:
            callback(collector)

    def planned_steps(self) -> List[Tuple[Optional[Background], Step]]:
        """Every step in execution order, paired with its Background if any"""
        planned = [(background, step) for background in self.ast_backgrounds for step in background.steps]
        planned.extend((None, step) for step in self.scenario.steps)
        return planned

    def execute(self, runner, skipped: bool = False) -> None:
        """Register this unit with the host runner"""
        runner.it(self.display_title, self.run, skip=skipped)

    async def run(self) -> None:
        if self.scenario is None:
            raise ExecutionError("Executor has not been configured")
        if self._executed:
            raise ExecutionError(f'"{self.display_title}" has already been executed')
        self._executed = True

        context = StepContext(
            scope=self.scope,
            scenario=self.display_title,
            tags=self.tags,
            example=self.scenario.example_values,
        )
        logger.debug(f"Running {self.display_title}")
        try:
            self.scope.register_instance(StepContext, context)
            self.event_bus.emit(LifecycleEvent.SCENARIO_STARTED, self.scenario)
        except Exception:
            # the scenario never started: no After hooks, no SCENARIO_ENDED
            self.scope.dispose()
            raise

        error = None
        try:
            for hook in ordered_hooks(HookKind.BEFORE, self.hooks, self.tags):
                await run_hook(self.event_bus, hook, context)

            for background in self.ast_backgrounds:
                await self._run_background(background, context)

            for step in self.scenario.steps:
                await self._run_step(step, context)
        except Exception as e:
            error = e
            raise
        finally:
            try:
                for hook in ordered_hooks(HookKind.AFTER, self.hooks, self.tags):
                    await run_hook(self.event_bus, hook, context)
            except Exception as e:
                error = error or e
                raise
            finally:
                try:
                    self.event_bus.emit(LifecycleEvent.SCENARIO_ENDED, self.scenario, error=error)
                finally:
                    self.scope.dispose()

    async def _run_background(self, background: Background, context: StepContext) -> None:
        self.event_bus.emit(LifecycleEvent.BACKGROUND_STARTED, background)
        error = None
        try:
            for step in background.steps:
                await self._run_step(step, context)
        except Exception as e:
            error = e
            raise
        finally:
            self.event_bus.emit(LifecycleEvent.BACKGROUND_ENDED, background, error=error)

    async def _run_step(self, step: Step, context: StepContext) -> None:
        context.current_step = step
        self.event_bus.emit(LifecycleEvent.STEP_STARTED, step)
        error = None
        try:
            match = self.matcher.resolve(step, self.local_caches)
            result = match.definition.invoke(context, match.args, step.argument)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            error = e
            e.add_note(f"Step: [{step.keyword} {step.text}] in {self.display_title}")
            raise
        finally:
            self.event_bus.emit(LifecycleEvent.STEP_ENDED, step, error=error)
            context.current_step = None
