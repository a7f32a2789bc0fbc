"""
Narrow dependency-injection surface used to isolate scenarios.

The engine only needs ``register``, ``resolve`` and child scopes: every
Scenario and every Scenario Outline row gets its own child scope, so
``World``/``Store`` instances and any other scoped object never leak between
units. The executor owns the scope and disposes it when the unit finishes.
"""

import inspect
import logging
import typing
from collections.abc import Iterator, MutableMapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from ..core.exceptions import ExecutionError, ScopeDisposedError

logger = logging.getLogger(__name__)


class Lifecycle(Enum):
    SINGLETON = "singleton"  # one instance in the root container
    SCOPED = "scoped"  # one instance per child scope
    TRANSIENT = "transient"  # a new instance per resolve


@dataclass(frozen=True)
class Registration:
    factory: Callable[..., Any]
    lifecycle: Lifecycle


class World(MutableMapping):
    """Free-form scratch data of one scenario, readable as keys or attributes.

    Names the mapping itself uses (``items``, ``get``, ``update``, ...) and
    private names can only be stored with ``world[name] = value``.
    """

    def __init__(self, *args, **kwargs):
        object.__setattr__(self, "_values", {})
        self.update(*args, **kwargs)

    def __getitem__(self, key: str) -> Any:
        return self._values[key]

    def __setitem__(self, key: str, value: Any) -> None:
        self._values[key] = value

    def __delitem__(self, key: str) -> None:
        del self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        try:
            return self._values[name]
        except KeyError:
            raise AttributeError(f"World has no value '{name}'") from None

    def __setattr__(self, name: str, value: Any) -> None:
        self._check_attribute(name)
        self._values[name] = value

    def __delattr__(self, name: str) -> None:
        self._check_attribute(name)
        try:
            del self._values[name]
        except KeyError:
            raise AttributeError(f"World has no value '{name}'") from None

    def _check_attribute(self, name: str) -> None:
        if name.startswith("_") or hasattr(type(self), name):
            raise AttributeError(f"'{name}' is reserved on World, use world['{name}'] instead")

    def __repr__(self) -> str:
        return f"World({self._values!r})"


class Store:
    """Typed cache of one scenario.

    Keys may be strings or types; when the key is a type the stored value
    must be an instance of it.
    """

    def __init__(self):
        self._items: Dict[Any, Any] = {}

    def put(self, key: Any, value: Any) -> Any:
        if isinstance(key, type) and not isinstance(value, key):
            raise TypeError(f"Store key {key.__name__} cannot hold {type(value).__name__}")
        self._items[key] = value
        return value

    def get(self, key: Any, expected_type: Optional[type] = None, default: Any = None) -> Any:
        if key not in self._items:
            return default
        return self._check(key, self._items[key], expected_type)

    def require(self, key: Any, expected_type: Optional[type] = None) -> Any:
        if key not in self._items:
            raise KeyError(f"Nothing stored under {_key_name(key)}")
        return self._check(key, self._items[key], expected_type)

    def _check(self, key: Any, value: Any, expected_type: Optional[type]) -> Any:
        expected_type = expected_type or (key if isinstance(key, type) else None)
        if expected_type is not None and not isinstance(value, expected_type):
            raise TypeError(
                f"Value under {_key_name(key)} is {type(value).__name__}, "
                f"expected {expected_type.__name__}"
            )
        return value

    def __contains__(self, key: Any) -> bool:
        return key in self._items

    def __len__(self) -> int:
        return len(self._items)

    def keys(self):
        return self._items.keys()

    def clear(self) -> None:
        self._items.clear()


def _key_name(key: Any) -> str:
    return key.__name__ if isinstance(key, type) else repr(key)


class Container:
    """Root container or child scope"""

    def __init__(self, parent: Optional["Container"] = None):
        self._parent = parent
        self._registrations: Dict[Any, Registration] = {}
        self._instances: Dict[Any, Any] = {}
        self._created: List[Any] = []
        self._resolving: List[Any] = []
        self._disposed = False
        if parent is None:
            self.register(World, World, Lifecycle.SCOPED)
            self.register(Store, Store, Lifecycle.SCOPED)

    @property
    def root(self) -> "Container":
        container = self
        while container._parent is not None:
            container = container._parent
        return container

    @property
    def disposed(self) -> bool:
        return self._disposed

    def register(self, token: Any, factory: Optional[Callable[..., Any]] = None,
                 lifecycle: Lifecycle = Lifecycle.SCOPED) -> None:
        """Register how to build ``token``.

        Args:
            token: Usually a class; any hashable works
            factory: A class (auto-wired from its annotations) or a callable
                taking the resolving container. Defaults to ``token`` itself.
            lifecycle: Caching policy
        """
        if factory is None:
            if not inspect.isclass(token):
                raise ValueError(f"A factory is required for token {token!r}")
            factory = token
        self._registrations[token] = Registration(factory, Lifecycle(lifecycle))

    def register_instance(self, token: Any, instance: Any) -> None:
        """Bind an existing object to ``token`` in this container"""
        self._registrations[token] = Registration(lambda _: instance, Lifecycle.SCOPED)
        self._instances[token] = instance

    def create_scope(self) -> "Container":
        self._check_alive()
        return Container(parent=self)

    def resolve(self, token: Any) -> Any:
        self._check_alive()
        registration = self._lookup(token)
        if registration is None:
            if not inspect.isclass(token):
                raise ExecutionError(f"Nothing registered for {token!r}")
            registration = Registration(token, Lifecycle.SCOPED)

        if registration.lifecycle == Lifecycle.TRANSIENT:
            return self._build(token, registration)

        owner = self.root if registration.lifecycle == Lifecycle.SINGLETON else self
        if token not in owner._instances:
            instance = owner._build(token, registration)
            owner._instances[token] = instance
            owner._created.append(instance)
        return owner._instances[token]

    def _lookup(self, token: Any) -> Optional[Registration]:
        container = self
        while container is not None:
            if token in container._registrations:
                return container._registrations[token]
            container = container._parent
        return None

    def _build(self, token: Any, registration: Registration) -> Any:
        if token in self._resolving:
            chain = " -> ".join(_key_name(item) for item in [*self._resolving, token])
            raise ExecutionError(f"Circular dependency: {chain}")
        self._resolving.append(token)
        try:
            factory = registration.factory
            if inspect.isclass(factory):
                return self._construct(factory)
            return factory(self)
        finally:
            self._resolving.pop()

    def _construct(self, cls: type) -> Any:
        if cls.__init__ is object.__init__:
            return cls()
        hints = typing.get_type_hints(cls.__init__)
        kwargs = {}
        for name, parameter in inspect.signature(cls.__init__).parameters.items():
            if name == "self" or parameter.kind in (parameter.VAR_POSITIONAL, parameter.VAR_KEYWORD):
                continue
            annotation = hints.get(name)
            if annotation is not None and inspect.isclass(annotation):
                kwargs[name] = self.resolve(annotation)
            elif parameter.default is parameter.empty:
                raise ExecutionError(
                    f"Cannot resolve parameter '{name}' of {cls.__name__}: no class annotation"
                )
        return cls(**kwargs)

    def _check_alive(self) -> None:
        if self._disposed:
            raise ScopeDisposedError("This scope has already been disposed")

    def dispose(self) -> None:
        """Close scoped instances (newest first) and retire the scope"""
        if self._disposed:
            return
        self._disposed = True
        first_error = None
        for instance in reversed(self._created):
            close = getattr(instance, "close", None) or getattr(instance, "dispose", None)
            if not callable(close):
                continue
            try:
                close()
            except Exception as e:
                logger.error(f"Failed to dispose {type(instance).__name__}: {e}")
                first_error = first_error or e
        self._instances.clear()
        self._created.clear()
        if first_error is not None:
            raise first_error

    def __enter__(self) -> "Container":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.dispose()
