"""
Process-wide step registry.

Step modules register into ``global_registry`` at import time through the
module-level decorators::

    from gherkin_conductor import given, then

    @given("a cart with {int} item(s)")
    def cart(context, count):
        context.world.cart = ["item"] * count

Classes can contribute steps whose action runs on an instance resolved from
the scenario's DI scope::

    class CartSteps:
        def __init__(self, world: World):
            self.world = world

        @classmethod
        def step_bindings(cls):
            return [bind.then("the cart is empty", "assert_empty")]

        def assert_empty(self):
            assert not self.world.get("cart")

    register_class(CartSteps)
"""

import importlib
import importlib.util
import inspect
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Pattern, Union
import logging

from ..core.exceptions import ConductorError, StepDefinitionError, StepRegistrationError
from ..runtime.hooks import HookRegistry
from .definitions import (
    BindingKind,
    StepCache,
    StepCollector,
    StepDefinition,
    StepKeyword,
    StepScope,
)
from .expressions import ParameterType, ParameterTypeRegistry, parameter_type

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StepBinding:
    """Declares that a method of a step class implements a step"""
    keyword: StepKeyword
    pattern: Union[str, Pattern]
    method: str
    description: str = ""


class _BindingFactory:
    """Builds StepBinding descriptors: ``bind.given("text", "method_name")``"""

    def given(self, pattern, method: str, description: str = "") -> StepBinding:
        return StepBinding(StepKeyword.GIVEN, pattern, method, description)

    def when(self, pattern, method: str, description: str = "") -> StepBinding:
        return StepBinding(StepKeyword.WHEN, pattern, method, description)

    def then(self, pattern, method: str, description: str = "") -> StepBinding:
        return StepBinding(StepKeyword.THEN, pattern, method, description)

    def and_(self, pattern, method: str, description: str = "") -> StepBinding:
        return StepBinding(StepKeyword.AND, pattern, method, description)

    def but(self, pattern, method: str, description: str = "") -> StepBinding:
        return StepBinding(StepKeyword.BUT, pattern, method, description)


bind = _BindingFactory()


class _SealableCollector(StepCollector):
    def __init__(self, registry: "GlobalStepRegistry"):
        super().__init__(registry.steps, StepScope.GLOBAL)
        self.registry = registry

    def _register(self, keywords, pattern, action, description):
        self.registry.ensure_open()
        return super()._register(keywords, pattern, action, description)


class GlobalStepRegistry:
    """Registry for global and class-bound step definitions and global hooks"""

    def __init__(self):
        self.parameter_types = ParameterTypeRegistry()
        self.steps = StepCache(self.parameter_types, "global")
        self.class_steps = StepCache(self.parameter_types, "class-bound")
        self.hooks = HookRegistry()
        self.classes: List[type] = []
        self._collector = _SealableCollector(self)
        self._sealed = False

    @property
    def sealed(self) -> bool:
        return self._sealed

    def ensure_open(self) -> None:
        if self._sealed:
            raise StepRegistrationError("The global step registry is sealed; register steps before running")

    def seal(self) -> None:
        """Freeze registration once all step modules are imported"""
        self._sealed = True
        logger.debug(f"Sealed global registry: {len(self.steps)} global, {len(self.class_steps)} class-bound steps")

    def reset(self) -> None:
        """Drop every registration and reopen the registry"""
        self.steps.clear()
        self.class_steps.clear()
        self.hooks.clear()
        self.parameter_types.reset()
        self.classes.clear()
        self._sealed = False

    # Decorator surface

    def given(self, pattern, action: Optional[Callable] = None, description: str = ""):
        return self._collector.given(pattern, action, description)

    def when(self, pattern, action: Optional[Callable] = None, description: str = ""):
        return self._collector.when(pattern, action, description)

    def then(self, pattern, action: Optional[Callable] = None, description: str = ""):
        return self._collector.then(pattern, action, description)

    def and_(self, pattern, action: Optional[Callable] = None, description: str = ""):
        return self._collector.and_(pattern, action, description)

    def but(self, pattern, action: Optional[Callable] = None, description: str = ""):
        return self._collector.but(pattern, action, description)

    def step(self, pattern, action: Optional[Callable] = None, description: str = ""):
        return self._collector.step(pattern, action, description)

    def define_parameter_type(self, name: str, regexp: str,
                              transformer: Optional[Callable] = None) -> ParameterType:
        """Add a custom ``{name}`` placeholder for cucumber expressions"""
        self.ensure_open()
        return self.parameter_types.define(parameter_type(name, regexp, transformer))

    def register_class(self, cls: type) -> type:
        """Register the steps a class declares through ``step_bindings()``.

        Returns the class, so this also works as a class decorator.
        """
        self.ensure_open()
        declare = getattr(cls, "step_bindings", None)
        if declare is None:
            raise StepDefinitionError(f"{cls.__name__} does not define step_bindings()")

        for binding in declare():
            method = getattr(cls, binding.method, None)
            if method is None or not callable(method):
                raise StepDefinitionError(f"{cls.__name__} has no step method '{binding.method}'")
            self.class_steps.add(
                binding.keyword,
                binding.pattern,
                method,
                scope=StepScope.GLOBAL,
                binding=BindingKind.CLASS,
                owner=cls,
                description=binding.description,
            )
        self.classes.append(cls)
        logger.info(f"Registered step class {cls.__name__}")
        return cls

    def definitions(self) -> List[StepDefinition]:
        """Global definitions followed by class-bound ones"""
        return self.steps.definitions() + self.class_steps.definitions()

    def list_definitions(self) -> List[Dict[str, Any]]:
        """List all registered step definitions"""
        listed = []
        for definition in self.definitions():
            listed.append({
                'keyword': definition.keyword.value,
                'pattern': definition.source,
                'kind': 'regex' if definition.is_regex else 'expression',
                'binding': definition.binding.value,
                'description': definition.description,
                'function': getattr(definition.action, '__qualname__', repr(definition.action)),
                'async': definition.is_async,
            })
        return listed

    def load_module(self, target: str):
        """Import a step module by dotted name or file path so its decorators run"""
        path = Path(target)
        if path.suffix == ".py" or path.exists():
            if not path.exists():
                raise StepDefinitionError(f"Step module not found: {target}")
            module_name = f"gherkin_conductor_steps_{path.stem}"
            spec = importlib.util.spec_from_file_location(module_name, path)
            module = importlib.util.module_from_spec(spec)
            sys.modules[module_name] = module
            try:
                spec.loader.exec_module(module)
            except ConductorError:
                sys.modules.pop(module_name, None)
                raise
            except Exception as e:
                sys.modules.pop(module_name, None)
                raise StepDefinitionError(f"Cannot load step module {target}: {e}") from e
        else:
            try:
                module = importlib.import_module(target)
            except ConductorError:
                raise
            except Exception as e:
                raise StepDefinitionError(f"Cannot load step module {target}: {e}") from e

        self.register_module_classes(module)
        logger.info(f"Loaded step module {target}")
        return module

    def register_module_classes(self, module) -> int:
        """Register every class defined in a module that declares step_bindings()"""
        registered = 0
        for _, obj in inspect.getmembers(module, inspect.isclass):
            if obj.__module__ != module.__name__ or obj in self.classes:
                continue
            if hasattr(obj, "step_bindings"):
                self.register_class(obj)
                registered += 1
        return registered


global_registry = GlobalStepRegistry()


def given(pattern, action: Optional[Callable] = None, description: str = ""):
    """Register a global Given step"""
    return global_registry.given(pattern, action, description)


def when(pattern, action: Optional[Callable] = None, description: str = ""):
    """Register a global When step"""
    return global_registry.when(pattern, action, description)


def then(pattern, action: Optional[Callable] = None, description: str = ""):
    """Register a global Then step"""
    return global_registry.then(pattern, action, description)


def step(pattern, action: Optional[Callable] = None, description: str = ""):
    """Register a global step for any keyword"""
    return global_registry.step(pattern, action, description)


def register_class(cls: type) -> type:
    return global_registry.register_class(cls)


def define_parameter_type(name: str, regexp: str, transformer: Optional[Callable] = None) -> ParameterType:
    return global_registry.define_parameter_type(name, regexp, transformer)


def before(action: Optional[Callable] = None, tags: Optional[str] = None):
    """Register a global hook that runs before every matching scenario"""
    global_registry.ensure_open()
    return global_registry.hooks.before(action, tags)


def after(action: Optional[Callable] = None, tags: Optional[str] = None):
    """Register a global hook that runs after every matching scenario"""
    global_registry.ensure_open()
    return global_registry.hooks.after(action, tags)
