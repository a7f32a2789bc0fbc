from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, List, Optional, Union
import logging

from .tags import MATCH_ALL, TagExpression, compile_tag_expression

logger = logging.getLogger(__name__)


class HookKind(Enum):
    BEFORE = "before"  # before each scenario
    AFTER = "after"  # after each scenario, reverse order
    SETUP = "setup"  # once before a feature or rule
    TEARDOWN = "teardown"  # once after a feature or rule, reverse order

    @property
    def reversed(self) -> bool:
        return self in (HookKind.AFTER, HookKind.TEARDOWN)


@dataclass(frozen=True)
class Hook:
    kind: HookKind
    action: Callable
    tag_filter: TagExpression = MATCH_ALL
    name: str = ""

    def applies_to(self, tags: Iterable[str]) -> bool:
        return self.tag_filter(tags)

    def __str__(self) -> str:
        suffix = f" ({self.tag_filter})" if self.tag_filter.is_active else ""
        return f"{self.kind.value.capitalize()} hook {self.name}{suffix}"


class HookRegistry:
    """
    Hooks of one scope (global or one Feature/Rule).

    Before/After hooks receive the StepContext of the scenario; Setup and
    Teardown hooks take no arguments. Every registration method also works
    as a decorator::

        @hooks.before(tags="@db")
        def connect(context):
            ...
    """

    def __init__(self):
        self._hooks: List[Hook] = []

    def add(self, kind: HookKind, action: Callable, tags: Optional[Union[str, TagExpression]] = None) -> Hook:
        if not callable(action):
            raise TypeError(f"{kind.value} hook must be callable")
        tag_filter = tags if isinstance(tags, TagExpression) else compile_tag_expression(tags)
        hook = Hook(kind, action, tag_filter, getattr(action, "__name__", repr(action)))
        self._hooks.append(hook)
        logger.debug(f"Registered {hook}")
        return hook

    def _register(self, kind: HookKind, action: Optional[Callable], tags):
        def decorator(func):
            self.add(kind, func, tags)
            return func

        if action is None:
            return decorator
        return decorator(action)

    def before(self, action: Optional[Callable] = None, tags: Optional[str] = None):
        return self._register(HookKind.BEFORE, action, tags)

    def after(self, action: Optional[Callable] = None, tags: Optional[str] = None):
        return self._register(HookKind.AFTER, action, tags)

    def setup(self, action: Optional[Callable] = None):
        return self._register(HookKind.SETUP, action, None)

    def teardown(self, action: Optional[Callable] = None):
        return self._register(HookKind.TEARDOWN, action, None)

    def select(self, kind: HookKind, tags: Optional[Iterable[str]] = None) -> List[Hook]:
        """Hooks of one kind in execution order, filtered on the unit's tags"""
        tags = frozenset(tags or ())
        hooks = [hook for hook in self._hooks if hook.kind == kind and hook.applies_to(tags)]
        if kind.reversed:
            hooks.reverse()
        return hooks

    def clear(self) -> None:
        self._hooks.clear()

    def __len__(self) -> int:
        return len(self._hooks)


def ordered_hooks(kind: HookKind, registries: List[HookRegistry], tags: Optional[Iterable[str]] = None) -> List[Hook]:
    """Combine hooks of nested scopes, outermost first.

    Before/Setup run outermost first; After/Teardown run innermost first,
    each registry in reverse registration order.
    """
    if kind.reversed:
        registries = list(reversed(registries))
    return [hook for registry in registries for hook in registry.select(kind, tags)]
