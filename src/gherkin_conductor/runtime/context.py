from typing import Any, Dict, Optional
from dataclasses import dataclass, field
import logging

from .container import Container, Store, World

logger = logging.getLogger(__name__)


@dataclass
class StepContext:
    """
    Runtime context handed to free-function steps as their first argument.
    Wraps the scenario's DI scope and the step currently running.
    """
    scope: Container
    scenario: str = ""
    tags: frozenset = frozenset()
    example: Dict[str, str] = field(default_factory=dict)
    current_step: Optional[Any] = None

    @property
    def world(self) -> World:
        return self.scope.resolve(World)

    @property
    def store(self) -> Store:
        return self.scope.resolve(Store)

    def resolve(self, token: Any) -> Any:
        """Resolve a dependency from this scenario's scope"""
        return self.scope.resolve(token)
