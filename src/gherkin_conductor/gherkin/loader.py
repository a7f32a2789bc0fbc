import logging
from pathlib import Path
from typing import List, Optional, Union

try:
    from behave.parser import parse_feature, ParserError
    from behave import model as behave_model
except ImportError:
    raise ImportError("Behave is not installed. Run: pip install behave")

from ..core.exceptions import FeatureLoadError
from ..runtime.tags import normalize_tag
from .model import Background, DocString, Feature, Rule, Scenario, ScenarioOutline, Step, Table

logger = logging.getLogger(__name__)


def parse_feature_text(text: str, filename: Optional[str] = None) -> Feature:
    """
    Parse Gherkin source with behave's parser and convert the result.

    Args:
        text: Gherkin source of exactly one feature
        filename: Used in error messages and kept on the Feature

    Returns:
        Read-only Feature document
    """
    try:
        parsed = parse_feature(text, filename=filename)
    except ParserError as e:
        raise FeatureLoadError(f"Cannot parse {filename or 'feature text'}: {e}") from e

    if parsed is None:
        raise FeatureLoadError(f"No feature found in {filename or 'feature text'}")

    return _convert_feature(parsed, filename)


def load_feature(path: Union[str, Path]) -> Feature:
    """Read and parse a single .feature file"""
    path = Path(path)
    if not path.exists():
        raise FeatureLoadError(f"Feature file not found: {path}")

    with open(path, 'r', encoding='utf-8') as f:
        content = f.read()

    logger.debug(f"Parsing feature file: {path}")
    return parse_feature_text(content, filename=str(path))


def load_features(path: Union[str, Path]) -> List[Feature]:
    """Load one feature file, or every *.feature file below a directory"""
    path = Path(path)
    if path.is_dir():
        files = sorted(path.glob('**/*.feature'))
        logger.info(f"Found {len(files)} feature files in {path}")
        return [load_feature(file) for file in files]
    return [load_feature(path)]


def _convert_feature(feature, filename: Optional[str]) -> Feature:
    run_items = getattr(feature, "run_items", None) or feature.scenarios
    children = []
    for item in run_items:
        if isinstance(item, getattr(behave_model, "Rule", ())):
            children.append(_convert_rule(item))
        else:
            children.append(_convert_scenario_or_outline(item))

    return Feature(
        title=feature.name,
        tags=_tags(feature.tags),
        background=_convert_background(feature.background),
        children=tuple(children),
        filename=filename,
    )


def _convert_rule(rule) -> Rule:
    return Rule(
        title=rule.name,
        tags=_tags(rule.tags),
        background=_convert_background(rule.background),
        children=tuple(_convert_scenario_or_outline(item) for item in rule.scenarios),
    )


def _convert_scenario_or_outline(item):
    if isinstance(item, behave_model.ScenarioOutline):
        return _convert_outline(item)
    return Scenario(title=item.name, tags=_tags(item.tags), steps=_steps(item.steps))


def _convert_outline(outline) -> ScenarioOutline:
    examples = tuple(_table(example.table) for example in outline.examples if example.table)
    scenarios = []
    for scenario in outline.scenarios:
        row = getattr(scenario, "_row", None)
        example = tuple(zip(row.headings, row.cells)) if row is not None else None
        scenarios.append(Scenario(
            title=outline.name,
            tags=_tags(scenario.tags),
            steps=_steps(scenario.steps),
            example=example,
        ))

    return ScenarioOutline(
        title=outline.name,
        tags=_tags(outline.tags),
        steps=_steps(outline.steps),
        examples=examples,
        scenarios=tuple(scenarios),
    )


def _convert_background(background) -> Optional[Background]:
    # behave gives a Rule an empty default Background to carry inheritance
    if background is None or not (background.steps or background.name):
        return None
    return Background(title=background.name or "", steps=_steps(background.steps))


def _steps(steps) -> tuple:
    return tuple(_convert_step(step) for step in steps)


def _convert_step(step) -> Step:
    docstring = None
    if step.text is not None:
        docstring = DocString(str(step.text), getattr(step.text, "content_type", "") or "")
    return Step(
        keyword=step.keyword.strip(),
        text=step.name,
        step_type=step.step_type,
        table=_table(step.table) if step.table is not None else None,
        docstring=docstring,
    )


def _table(table) -> Table:
    return Table(
        headings=tuple(table.headings),
        rows=tuple(tuple(row.cells) for row in table.rows),
    )


def _tags(tags) -> tuple:
    # behave drops the leading "@"
    return tuple(normalize_tag(tag) for tag in tags or ())
