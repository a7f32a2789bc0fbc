"""
Step resolution.

Resolvers are pure strategies over a candidate list. The StepMatcher chains
them across the local caches of a unit, the global registry and the
class-bound definitions; the first match wins and nothing backtracks.
"""

from abc import ABC, abstractmethod
from typing import List, Optional, Sequence
import logging

from ..core.exceptions import StepDefinitionError, StepNotFoundError
from ..gherkin.model import Step
from .definitions import StepCache, StepDefinition, StepKeyword, StepMatch

logger = logging.getLogger(__name__)


class Resolver(ABC):
    """Finds the first candidate that matches a step text"""

    tier: str = ""

    @abstractmethod
    def resolve(self, candidates: Sequence[StepDefinition], text: str) -> Optional[StepMatch]:
        pass


class LiteralResolver(Resolver):
    tier = "literal"

    def resolve(self, candidates: Sequence[StepDefinition], text: str) -> Optional[StepMatch]:
        for definition in candidates:
            if not definition.is_regex and definition.pattern == text:
                return StepMatch(definition, (), self.tier)
        return None


class RegexResolver(Resolver):
    tier = "regex"

    def resolve(self, candidates: Sequence[StepDefinition], text: str) -> Optional[StepMatch]:
        for definition in candidates:
            if not definition.is_regex:
                continue
            match = definition.pattern.search(text)
            if match:
                return StepMatch(definition, match.groups(), self.tier)
        return None


class ExpressionResolver(Resolver):
    tier = "expression"

    def resolve(self, candidates: Sequence[StepDefinition], text: str) -> Optional[StepMatch]:
        for definition in candidates:
            if definition.expression is None:
                continue
            args = definition.expression.values(text)
            if args is not None:
                return StepMatch(definition, tuple(args), self.tier)
        return None


class TieredResolver(Resolver):
    """Literal, then regex, then expression over one candidate set"""

    def __init__(self, resolvers: Optional[List[Resolver]] = None, tier: str = "tiered"):
        self.resolvers = resolvers or [LiteralResolver(), RegexResolver(), ExpressionResolver()]
        self.tier = tier

    def resolve(self, candidates: Sequence[StepDefinition], text: str) -> Optional[StepMatch]:
        for resolver in self.resolvers:
            match = resolver.resolve(candidates, text)
            if match is not None:
                return StepMatch(match.definition, match.args, f"{self.tier}/{resolver.tier}")
        return None


class StepMatcher:
    """
    Multi-tier step resolution:

    1. literal over the unit's local caches
    2. regex over local caches
    3. cucumber expression over local caches
    4. literal/regex/expression over the global step registry
    5. literal/regex/expression over class-bound definitions
    """

    def __init__(self, global_cache: StepCache, class_cache: StepCache):
        self.global_cache = global_cache
        self.class_cache = class_cache
        self.local_resolvers: List[Resolver] = [LiteralResolver(), RegexResolver(), ExpressionResolver()]
        self.global_resolver = TieredResolver(tier="global")
        self.class_resolver = TieredResolver(tier="class")

    def resolve(self, step: Step, local_caches: Sequence[StepCache] = ()) -> StepMatch:
        """
        Resolve a Gherkin step to a definition.

        Args:
            step: The step to resolve
            local_caches: Caches in priority order (inherited backgrounds
                first, then the unit, rule and feature caches)

        Raises:
            StepNotFoundError: when no tier matches
        """
        match = self.find(step, local_caches)
        if match is None:
            logger.warning(f"No step definition found for: {step.keyword} {step.text}")
            raise StepNotFoundError(step.keyword, step.text)
        logger.debug(f"Resolved [{step.keyword} {step.text}] via {match.tier}: {match.definition.describe()}")
        return match

    def find(self, step: Step, local_caches: Sequence[StepCache] = ()) -> Optional[StepMatch]:
        """Like resolve, but returns None instead of raising"""
        keyword = _keyword_of(step)

        local = [
            definition
            for cache in local_caches
            for definition in cache.candidates(keyword, step.step_type)
        ]
        for resolver in self.local_resolvers:
            match = resolver.resolve(local, step.text)
            if match is not None:
                return StepMatch(match.definition, match.args, f"local/{resolver.tier}")

        match = self.global_resolver.resolve(self.global_cache.candidates(keyword, step.step_type), step.text)
        if match is not None:
            return match

        return self.class_resolver.resolve(self.class_cache.candidates(keyword, step.step_type), step.text)


def _keyword_of(step: Step) -> StepKeyword:
    try:
        return StepKeyword.parse(step.keyword)
    except StepDefinitionError:
        # localized keyword; fall back to the concrete group
        return StepKeyword.parse(step.step_type or "and")

