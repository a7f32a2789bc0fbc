from .exceptions import (
    ConductorError,
    ConfigurationError,
    TagExpressionError,
    FeatureLoadError,
    GherkinTestValidationError,
    UnknownTitleError,
    StepNotFoundError,
    StepDefinitionError,
    StepRegistrationError,
    UndefinedParameterTypeError,
    ExecutionError,
    ScopeDisposedError,
)
from .base import UnitStatus, UnitResult, summarize
from .config import ConfigManager

__all__ = [
    # Results
    "UnitStatus",
    "UnitResult",
    "summarize",

    # Configuration
    "ConfigManager",

    # Exceptions
    "ConductorError",
    "ConfigurationError",
    "TagExpressionError",
    "FeatureLoadError",
    "GherkinTestValidationError",
    "UnknownTitleError",
    "StepNotFoundError",
    "StepDefinitionError",
    "StepRegistrationError",
    "UndefinedParameterTypeError",
    "ExecutionError",
    "ScopeDisposedError",
]
