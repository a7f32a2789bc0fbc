from .model import Feature, Rule, Scenario, ScenarioOutline, Background, Step, Table, DocString
from .loader import parse_feature_text, load_feature, load_features

__all__ = [
    "Feature",
    "Rule",
    "Scenario",
    "ScenarioOutline",
    "Background",
    "Step",
    "Table",
    "DocString",
    "parse_feature_text",
    "load_feature",
    "load_features",
]
