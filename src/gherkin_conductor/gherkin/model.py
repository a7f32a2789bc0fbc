"""
Read-only Gherkin document model consumed by the engine.

These objects are produced once per feature file (see ``loader``) and are
never mutated afterwards.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, Union


@dataclass(frozen=True)
class Table:
    headings: Tuple[str, ...]
    rows: Tuple[Tuple[str, ...], ...] = ()

    def as_dicts(self) -> List[Dict[str, str]]:
        """One mapping per row, keyed by heading"""
        return [dict(zip(self.headings, row)) for row in self.rows]

    def column(self, heading: str) -> List[str]:
        index = self.headings.index(heading)
        return [row[index] for row in self.rows]

    def __len__(self) -> int:
        return len(self.rows)


@dataclass(frozen=True)
class DocString:
    content: str
    content_type: str = ""

    def __str__(self) -> str:
        return self.content


@dataclass(frozen=True)
class Step:
    keyword: str
    text: str
    step_type: str = ""
    table: Optional[Table] = None
    docstring: Optional[DocString] = None

    @property
    def argument(self) -> Optional[Union[Table, DocString]]:
        """The attached table or docstring, if any"""
        return self.table if self.table is not None else self.docstring

    def __str__(self) -> str:
        return f"{self.keyword} {self.text}"


@dataclass(frozen=True)
class Background:
    title: str = ""
    steps: Tuple[Step, ...] = ()


@dataclass(frozen=True)
class Scenario:
    title: str
    tags: Tuple[str, ...] = ()
    steps: Tuple[Step, ...] = ()
    example: Optional[Tuple[Tuple[str, str], ...]] = None

    @property
    def example_values(self) -> Dict[str, str]:
        return dict(self.example or ())

    @property
    def display_title(self) -> str:
        title = f"Scenario: {self.title.strip()}"
        if self.example:
            values = ", ".join(f"{key}: {value}" for key, value in self.example)
            title = f"{title} <{values}>"
        return title


@dataclass(frozen=True)
class ScenarioOutline:
    title: str
    tags: Tuple[str, ...] = ()
    steps: Tuple[Step, ...] = ()
    examples: Tuple[Table, ...] = ()
    scenarios: Tuple[Scenario, ...] = ()

    @property
    def display_title(self) -> str:
        return f"Scenario Outline: {self.title.strip()}"


@dataclass(frozen=True)
class Rule:
    title: str
    tags: Tuple[str, ...] = ()
    background: Optional[Background] = None
    children: Tuple[Union[Scenario, ScenarioOutline], ...] = ()

    @property
    def display_title(self) -> str:
        return f"Rule: {self.title.strip()}"

    def find_scenario(self, title: str) -> Optional[Scenario]:
        return _find(self.children, Scenario, title)

    def find_outline(self, title: str) -> Optional[ScenarioOutline]:
        return _find(self.children, ScenarioOutline, title)

    def scenario_titles(self) -> List[str]:
        return [child.title for child in self.children if isinstance(child, Scenario)]

    def outline_titles(self) -> List[str]:
        return [child.title for child in self.children if isinstance(child, ScenarioOutline)]


@dataclass(frozen=True)
class Feature:
    title: str
    tags: Tuple[str, ...] = ()
    background: Optional[Background] = None
    children: Tuple[Union[Scenario, ScenarioOutline, Rule], ...] = ()
    filename: Optional[str] = field(default=None, compare=False)

    @property
    def display_title(self) -> str:
        return f"Feature: {self.title.strip()}"

    @property
    def rules(self) -> List[Rule]:
        return [child for child in self.children if isinstance(child, Rule)]

    def find_scenario(self, title: str) -> Optional[Scenario]:
        return _find(self.children, Scenario, title)

    def find_outline(self, title: str) -> Optional[ScenarioOutline]:
        return _find(self.children, ScenarioOutline, title)

    def find_rule(self, title: str) -> Optional[Rule]:
        return _find(self.children, Rule, title)

    def scenario_titles(self) -> List[str]:
        return [child.title for child in self.children if isinstance(child, Scenario)]

    def outline_titles(self) -> List[str]:
        return [child.title for child in self.children if isinstance(child, ScenarioOutline)]

    def rule_titles(self) -> List[str]:
        return [child.title for child in self.rules]


def _find(children, kind, title):
    for child in children:
        if isinstance(child, kind) and child.title == title:
            return child
    return None
