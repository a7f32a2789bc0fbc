from .expressions import ParameterType, ParameterTypeRegistry, CucumberExpression, parameter_type
from .definitions import (
    StepKeyword,
    StepScope,
    BindingKind,
    StepDefinition,
    StepMatch,
    StepCache,
    StepCollector,
)
from .resolvers import LiteralResolver, RegexResolver, ExpressionResolver, TieredResolver, StepMatcher
from .registry import (
    GlobalStepRegistry,
    StepBinding,
    bind,
    global_registry,
    given,
    when,
    then,
    step,
    before,
    after,
    register_class,
    define_parameter_type,
)

__all__ = [
    "ParameterType",
    "parameter_type",
    "ParameterTypeRegistry",
    "CucumberExpression",
    "StepKeyword",
    "StepScope",
    "BindingKind",
    "StepDefinition",
    "StepMatch",
    "StepCache",
    "StepCollector",
    "LiteralResolver",
    "RegexResolver",
    "ExpressionResolver",
    "TieredResolver",
    "StepMatcher",
    "GlobalStepRegistry",
    "StepBinding",
    "bind",
    "global_registry",
    "given",
    "when",
    "then",
    "step",
    "before",
    "after",
    "register_class",
    "define_parameter_type",
]
