import inspect
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Pattern, Tuple, Union
import logging

from ..core.exceptions import StepDefinitionError, StepRegistrationError
from .expressions import CucumberExpression, ParameterTypeRegistry

logger = logging.getLogger(__name__)


class StepKeyword(Enum):
    """Keyword buckets a step definition can be registered under"""
    GIVEN = "given"
    WHEN = "when"
    THEN = "then"
    AND = "and"
    BUT = "but"

    @classmethod
    def parse(cls, keyword: Union[str, "StepKeyword"]) -> "StepKeyword":
        if isinstance(keyword, cls):
            return keyword
        normalized = str(keyword).strip().lower()
        if normalized == "*":
            return cls.AND
        try:
            return cls(normalized)
        except ValueError:
            raise StepDefinitionError(f"Unknown step keyword: {keyword!r}") from None

    @property
    def is_conjunction(self) -> bool:
        return self in (StepKeyword.AND, StepKeyword.BUT)

    @property
    def label(self) -> str:
        return self.value.capitalize()


CONCRETE_KEYWORDS = (StepKeyword.GIVEN, StepKeyword.WHEN, StepKeyword.THEN)


def keyword_search_order(keyword: StepKeyword, step_type: Optional[str] = None) -> List[StepKeyword]:
    """
    Buckets searched for a Gherkin step, in priority order.

    Given/When/Then search only their own bucket. And/But first search
    And/But definitions, then the group of the preceding concrete step,
    then the remaining groups.
    """
    if not keyword.is_conjunction:
        return [keyword]
    order = [StepKeyword.AND, StepKeyword.BUT]
    for concrete in CONCRETE_KEYWORDS:
        if step_type and concrete.value == step_type.lower():
            order.append(concrete)
    order.extend(k for k in CONCRETE_KEYWORDS if k not in order)
    return order


class StepScope(Enum):
    LOCAL = "local"
    GLOBAL = "global"


class BindingKind(Enum):
    FUNCTION = "function"
    CLASS = "class"


@dataclass(frozen=True)
class StepDefinition:
    """Represents a step definition with its pattern and action"""
    keyword: StepKeyword
    pattern: Union[str, Pattern]
    action: Callable
    scope: StepScope = StepScope.LOCAL
    binding: BindingKind = BindingKind.FUNCTION
    owner: Optional[type] = None
    expression: Optional[CucumberExpression] = None
    description: str = ""

    @property
    def is_regex(self) -> bool:
        return isinstance(self.pattern, re.Pattern)

    @property
    def source(self) -> str:
        return self.pattern.pattern if self.is_regex else self.pattern

    def describe(self) -> str:
        return f"{self.keyword.label} {self.source}"

    def invoke(self, context: Any, args: Tuple[Any, ...], argument: Any = None) -> Any:
        """Call the action; the caller awaits the result when it is awaitable.

        Free functions receive the step context first. Class-bound steps are
        called on the instance resolved from the scenario's DI scope.
        """
        call_args = list(args)
        if argument is not None:
            call_args.append(argument)

        if self.binding == BindingKind.CLASS:
            instance = context.resolve(self.owner)
            return self.action(instance, *call_args)
        return self.action(context, *call_args)

    @property
    def is_async(self) -> bool:
        return inspect.iscoroutinefunction(self.action)


@dataclass(frozen=True)
class StepMatch:
    """A resolved step: the definition plus the arguments extracted from the text"""
    definition: StepDefinition
    args: Tuple[Any, ...]
    tier: str


class StepCache:
    """Step definitions of one scope, bucketed by keyword"""

    def __init__(self, parameter_types: ParameterTypeRegistry, name: str = ""):
        self.parameter_types = parameter_types
        self.name = name
        self._buckets: Dict[StepKeyword, List[StepDefinition]] = {k: [] for k in StepKeyword}
        self._ordered: List[StepDefinition] = []
        self._keys = set()

    def add(self, keyword: Union[str, StepKeyword], pattern: Union[str, Pattern], action: Callable,
            scope: StepScope = StepScope.LOCAL, binding: BindingKind = BindingKind.FUNCTION,
            owner: Optional[type] = None, description: str = "") -> StepDefinition:
        """Add a step definition.

        Raises:
            StepRegistrationError: the same keyword and pattern is already defined here
            StepDefinitionError: the pattern is neither text nor a compiled regex
        """
        keyword = StepKeyword.parse(keyword)
        if not callable(action):
            raise StepDefinitionError(f"Step action for '{pattern}' is not callable")

        expression = None
        if isinstance(pattern, str):
            expression = CucumberExpression(pattern, self.parameter_types)
        elif not isinstance(pattern, re.Pattern):
            raise StepDefinitionError(
                f"Step pattern must be a string or compiled regex, got {type(pattern).__name__}"
            )

        key = (keyword, isinstance(pattern, re.Pattern), getattr(pattern, "pattern", pattern))
        if key in self._keys:
            raise StepRegistrationError(f"Step [{keyword.label} {key[2]}] already defined")
        self._keys.add(key)

        definition = StepDefinition(
            keyword=keyword,
            pattern=pattern,
            action=action,
            scope=scope,
            binding=binding,
            owner=owner,
            expression=expression,
            description=description,
        )
        self._buckets[keyword].append(definition)
        self._ordered.append(definition)
        logger.debug(f"Registered {scope.value} step: {definition.describe()}")
        return definition

    def candidates(self, keyword: StepKeyword, step_type: Optional[str] = None) -> List[StepDefinition]:
        """Definitions that may match a step, in search order"""
        return [
            definition
            for bucket in keyword_search_order(keyword, step_type)
            for definition in self._buckets[bucket]
        ]

    def definitions(self) -> List[StepDefinition]:
        """All definitions in registration order"""
        return list(self._ordered)

    def clear(self) -> None:
        for bucket in self._buckets.values():
            bucket.clear()
        self._ordered.clear()
        self._keys.clear()

    def __len__(self) -> int:
        return len(self._ordered)

    def __repr__(self) -> str:
        return f"<StepCache {self.name or 'anonymous'}: {len(self)} definitions>"


class StepCollector:
    """
    Registration surface handed to user callbacks.

    Every method works as a direct call or as a decorator::

        steps.given("a user named {word}", create_user)

        @steps.then("the user is logged in")
        def check(context):
            ...
    """

    def __init__(self, cache: StepCache, scope: StepScope = StepScope.LOCAL):
        self.cache = cache
        self.scope = scope

    def _register(self, keywords: Tuple[StepKeyword, ...], pattern, action, description: str):
        def decorator(func):
            for keyword in keywords:
                self.cache.add(keyword, pattern, func, scope=self.scope, description=description)
            return func

        if action is None:
            return decorator
        return decorator(action)

    def given(self, pattern: Union[str, Pattern], action: Optional[Callable] = None, description: str = ""):
        return self._register((StepKeyword.GIVEN,), pattern, action, description)

    def when(self, pattern: Union[str, Pattern], action: Optional[Callable] = None, description: str = ""):
        return self._register((StepKeyword.WHEN,), pattern, action, description)

    def then(self, pattern: Union[str, Pattern], action: Optional[Callable] = None, description: str = ""):
        return self._register((StepKeyword.THEN,), pattern, action, description)

    def and_(self, pattern: Union[str, Pattern], action: Optional[Callable] = None, description: str = ""):
        return self._register((StepKeyword.AND,), pattern, action, description)

    def but(self, pattern: Union[str, Pattern], action: Optional[Callable] = None, description: str = ""):
        return self._register((StepKeyword.BUT,), pattern, action, description)

    def step(self, pattern: Union[str, Pattern], action: Optional[Callable] = None, description: str = ""):
        """Register for Given, When and Then at once"""
        return self._register(CONCRETE_KEYWORDS, pattern, action, description)
