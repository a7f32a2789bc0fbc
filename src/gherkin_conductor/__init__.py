"""
Gherkin Conductor - BDD orchestration engine on top of behave's Gherkin parser
"""

__version__ = "0.1.0"
__author__ = "Gherkin Conductor Contributors"

from .core import ConfigManager, UnitResult, UnitStatus
from .gherkin import load_feature, load_features, parse_feature_text
from .runtime import Container, EventBus, LifecycleEvent, StepContext, World, Store, compile_tag_expression
from .steps import (
    bind,
    define_parameter_type,
    given,
    when,
    then,
    step,
    before,
    after,
    global_registry,
    register_class,
)
from .executor import Feature, ActiveRule, PassiveRule, TopLevelRun, LoggingSubscriber, ReportCollector
from .runners import InlineRunner, HostRunner

__all__ = [
    "__version__",
    "ConfigManager",
    "UnitResult",
    "UnitStatus",
    "load_feature",
    "load_features",
    "parse_feature_text",
    "Container",
    "EventBus",
    "LifecycleEvent",
    "StepContext",
    "World",
    "Store",
    "compile_tag_expression",
    "bind",
    "define_parameter_type",
    "given",
    "when",
    "then",
    "step",
    "before",
    "after",
    "global_registry",
    "register_class",
    "Feature",
    "ActiveRule",
    "PassiveRule",
    "TopLevelRun",
    "LoggingSubscriber",
    "ReportCollector",
    "InlineRunner",
    "HostRunner",
]
