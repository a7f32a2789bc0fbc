import importlib
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from ..gherkin.model import Step
from ..steps.definitions import StepCache, StepDefinition, StepKeyword
from ..steps.resolvers import StepMatcher

logger = logging.getLogger(__name__)


@dataclass
class CandidateCheck:
    source: str
    definition: StepDefinition
    matched: bool
    args: tuple = ()


class StepDebugger:
    """Debug utilities for step resolution"""

    @staticmethod
    def validate_environment(features_root: Optional[Path] = None) -> List[str]:
        """Report missing runtime dependencies and a missing features directory"""
        issues = []
        for module, package in (("behave", "behave"), ("cucumber_expressions", "cucumber-expressions"),
                                ("yaml", "pyyaml"), ("jinja2", "jinja2"), ("click", "click")):
            try:
                importlib.import_module(module)
            except ImportError:
                issues.append(f"{package} not installed: pip install {package}")

        if features_root is not None and not Path(features_root).exists():
            issues.append(f"Missing features directory: {features_root}")
        return issues

    @staticmethod
    def parse_step_line(line: str, step_type: Optional[str] = None) -> Step:
        """Split ``"Given some text"`` into a Step"""
        parts = line.strip().split(maxsplit=1)
        keyword = parts[0] if parts else ""
        text = parts[1] if len(parts) > 1 else ""
        if step_type is None:
            parsed = StepKeyword.parse(keyword)
            step_type = parsed.value if not parsed.is_conjunction else "given"
        return Step(keyword=keyword.capitalize(), text=text, step_type=step_type)

    @staticmethod
    def check_candidates(step: Step, matcher: StepMatcher,
                         local_caches: Sequence[StepCache] = ()) -> List[CandidateCheck]:
        """Evaluate every candidate definition against the step, tier sources in order"""
        keyword = StepKeyword.parse(step.keyword)
        sources = [(cache.name or "local", cache) for cache in local_caches]
        sources.append(("global", matcher.global_cache))
        sources.append(("class", matcher.class_cache))

        checks = []
        for source, cache in sources:
            for definition in cache.candidates(keyword, step.step_type):
                if definition.is_regex:
                    match = definition.pattern.search(step.text)
                    args = match.groups() if match else None
                elif definition.pattern == step.text:
                    args = ()
                else:
                    args = definition.expression.values(step.text)
                checks.append(CandidateCheck(source, definition, args is not None, tuple(args or ())))
        return checks

    @staticmethod
    def explain_step(line: str, matcher: StepMatcher, local_caches: Sequence[StepCache] = ()) -> Dict[str, Any]:
        """Explain which definition a step line resolves to, and why"""
        step = StepDebugger.parse_step_line(line)
        match = matcher.find(step, local_caches)
        explanation = {
            'keyword': step.keyword,
            'text': step.text,
            'matched': match is not None,
            'tier': match.tier if match else None,
            'definition': match.definition.describe() if match else None,
            'args': list(match.args) if match else [],
            'candidates': StepDebugger.check_candidates(step, matcher, local_caches),
        }
        logger.debug(f"Explained [{line}]: {explanation['tier'] or 'no match'}")
        return explanation

    @staticmethod
    def format_explanation(explanation: Dict[str, Any]) -> List[str]:
        lines = [f"Step: {explanation['keyword']} {explanation['text']}"]
        if explanation['matched']:
            lines.append(f"  Resolved via {explanation['tier']}: {explanation['definition']}")
            if explanation['args']:
                lines.append(f"  Arguments: {explanation['args']!r}")
        else:
            lines.append("  No step definition matches")

        lines.append("  Candidates:")
        for check in explanation['candidates']:
            mark = "✓" if check.matched else "✗"
            lines.append(f"    {mark} [{check.source}] {check.definition.describe()}")

        if not explanation['matched']:
            lines.append("  Suggestions:")
            lines.append("  - Check the keyword (Given/When/Then) the step is registered under")
            lines.append("  - Quote {string} parameters in the step text")
        return lines
