from .tags import TagExpression, MATCH_ALL, compile_tag_expression, normalize_tag
from .events import EventBus, LifecycleEvent
from .container import Container, Lifecycle, World, Store
from .context import StepContext
from .hooks import Hook, HookKind, HookRegistry, ordered_hooks

__all__ = [
    "TagExpression",
    "MATCH_ALL",
    "compile_tag_expression",
    "normalize_tag",
    "EventBus",
    "LifecycleEvent",
    "Container",
    "Lifecycle",
    "World",
    "Store",
    "StepContext",
    "Hook",
    "HookKind",
    "HookRegistry",
    "ordered_hooks",
]
