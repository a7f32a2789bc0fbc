from typing import Iterable, Optional


class ConductorError(Exception):
    """Base exception for Gherkin Conductor"""
    pass


class ConfigurationError(ConductorError):
    """Configuration-related errors"""
    pass


class TagExpressionError(ConfigurationError):
    """Malformed tag filter expression"""

    def __init__(self, expression: str, reason: str):
        self.expression = expression
        self.reason = reason
        super().__init__(f"Invalid tag expression '{expression}': {reason}")


class FeatureLoadError(ConductorError):
    """A feature file could not be read or parsed"""
    pass


class GherkinTestValidationError(ConductorError):
    """A registration or step does not agree with the parsed feature"""
    pass


class UnknownTitleError(GherkinTestValidationError):
    """Referenced Scenario, Outline or Rule title is not in the feature"""

    def __init__(self, kind: str, title: str, owner: str, available: Iterable[str]):
        self.kind = kind
        self.title = title
        self.owner = owner
        self.available = list(available)
        listed = ", ".join(f'"{name}"' for name in self.available) or "none"
        super().__init__(
            f'No {kind} titled "{title}" in {owner}. Available {kind} titles: {listed}'
        )


class StepNotFoundError(GherkinTestValidationError):
    """No step definition matches a Gherkin step"""

    def __init__(self, keyword: str, text: str):
        self.keyword = keyword
        self.text = text
        super().__init__(f"No step definition matches [{keyword} {text}]")


class StepDefinitionError(ConductorError):
    """Invalid step definition"""
    pass


class StepRegistrationError(StepDefinitionError):
    """Step registered twice or into a sealed registry"""
    pass


class UndefinedParameterTypeError(StepDefinitionError):
    """Cucumber expression references an unknown parameter type"""

    def __init__(self, name: str, expression: Optional[str] = None):
        self.name = name
        self.expression = expression
        where = f" in expression '{expression}'" if expression else ""
        super().__init__(f"Undefined parameter type {{{name}}}{where}")


class ExecutionError(ConductorError):
    """Error during scenario execution"""
    pass


class ScopeDisposedError(ExecutionError):
    """Resolution attempted on a disposed DI scope"""
    pass
