"""
Cucumber Expressions, backed by the ``cucumber-expressions`` package that
behave already depends on::

    I have {int} cucumber(s) in my belly/stomach
    the user {string} logs in

This module only adapts the library to the engine: parameter types live in
a resettable registry and expression errors surface as StepDefinitionError.
"""

from typing import Any, Callable, List, Optional
import logging

from cucumber_expressions.errors import CucumberExpressionError
from cucumber_expressions.expression import CucumberExpression as _LibraryExpression
from cucumber_expressions.parameter_type import ParameterType
from cucumber_expressions.parameter_type_registry import ParameterTypeRegistry as _LibraryRegistry

from ..core.exceptions import StepDefinitionError, UndefinedParameterTypeError

logger = logging.getLogger(__name__)


def parameter_type(name: str, regexp: str, transformer: Optional[Callable[[str], Any]] = None,
                   type: type = str) -> ParameterType:
    """Build a ParameterType; ``transformer`` defaults to ``type``"""
    try:
        return ParameterType(name, regexp, type, transformer)
    except CucumberExpressionError as e:
        raise StepDefinitionError(str(e)) from e


class ParameterTypeRegistry(_LibraryRegistry):
    """Built-in parameter types plus the ones step modules define"""

    def define(self, parameter_type: ParameterType) -> ParameterType:
        """Register a custom parameter type.

        Raises:
            StepDefinitionError: when the name is already taken
        """
        if parameter_type.name in self.parameter_type_by_name:
            raise StepDefinitionError(f"Parameter type {{{parameter_type.name}}} is already defined")
        try:
            self.define_parameter_type(parameter_type)
        except CucumberExpressionError as e:
            raise StepDefinitionError(str(e)) from e
        logger.debug(f"Defined parameter type {{{parameter_type.name}}}")
        return parameter_type

    def reset(self) -> None:
        """Forget custom types, keeping the built-in ones"""
        super().__init__()

    def lookup(self, name: str) -> Optional[ParameterType]:
        return self.lookup_by_type_name(name)

    def __contains__(self, name: str) -> bool:
        return name in self.parameter_type_by_name

    def names(self) -> List[str]:
        return [name for name in self.parameter_type_by_name if name]


class CucumberExpression(_LibraryExpression):
    """Compiled Cucumber Expression, matched against the whole step text.

    ``match(text)`` returns the library's Argument list (read ``.value``
    for the transformed value) or None.
    """

    def __init__(self, source: str, registry: ParameterTypeRegistry):
        try:
            super().__init__(source, registry)
        except CucumberExpressionError as e:
            raise StepDefinitionError(f"Invalid expression '{source}':\n{e}") from e

    def rewrite_parameter(self, node):
        if self.parameter_type_registry.lookup_by_type_name(node.text) is None:
            raise UndefinedParameterTypeError(node.text, self.expression)
        return super().rewrite_parameter(node)

    def values(self, text: str) -> Optional[List[Any]]:
        """Transformed arguments, or None when the text does not match"""
        arguments = self.match(text)
        if arguments is None:
            return None
        return [argument.value for argument in arguments]

    def __repr__(self) -> str:
        return f"CucumberExpression({self.source!r})"
