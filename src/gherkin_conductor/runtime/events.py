from enum import Enum
from typing import Any, Callable, Dict, List
import logging

logger = logging.getLogger(__name__)


class LifecycleEvent(Enum):
    """Events emitted while features run"""
    FEATURE_STARTED = "feature_started"
    FEATURE_ENDED = "feature_ended"
    RULE_STARTED = "rule_started"
    RULE_ENDED = "rule_ended"
    SCENARIO_OUTLINE_STARTED = "scenario_outline_started"
    SCENARIO_OUTLINE_ENDED = "scenario_outline_ended"
    SCENARIO_STARTED = "scenario_started"
    SCENARIO_ENDED = "scenario_ended"
    BACKGROUND_STARTED = "background_started"
    BACKGROUND_ENDED = "background_ended"
    STEP_STARTED = "step_started"
    STEP_ENDED = "step_ended"
    HOOK_STARTED = "hook_started"
    HOOK_ENDED = "hook_ended"


class EventBus:
    """
    Ordered, append-only subscriber lists per lifecycle event.

    Subscribers are called synchronously in subscription order. Errors are
    not swallowed: a raising subscriber aborts the rest of that emit.
    """

    def __init__(self):
        self._subscribers: Dict[LifecycleEvent, List[Callable[..., Any]]] = {
            event: [] for event in LifecycleEvent
        }
        self._frozen = False

    def subscribe(self, event: LifecycleEvent, callback: Callable[..., Any]) -> None:
        """Append a callback for one event"""
        if self._frozen:
            raise RuntimeError("Cannot subscribe to a frozen event bus")
        self._subscribers[LifecycleEvent(event)].append(callback)

    def subscribe_all(self, subscriber: Any) -> int:
        """Subscribe every ``on_<event>`` method of an object.

        Returns:
            Number of events the subscriber was attached to
        """
        attached = 0
        for event in LifecycleEvent:
            handler = getattr(subscriber, f"on_{event.value}", None)
            if callable(handler):
                self.subscribe(event, handler)
                attached += 1
        logger.debug(f"Attached {type(subscriber).__name__} to {attached} events")
        return attached

    def emit(self, event: LifecycleEvent, *args, **kwargs) -> None:
        for callback in self._subscribers[event]:
            callback(*args, **kwargs)

    def subscribers(self, event: LifecycleEvent) -> List[Callable[..., Any]]:
        return list(self._subscribers[event])

    def freeze(self) -> None:
        """Forbid further subscriptions once setup is complete"""
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen
