"""
Materialize engine units as pytest tests.

Call from a test module, passing its namespace::

    # tests/test_checkout.py
    from gherkin_conductor import TopLevelRun
    from gherkin_conductor.runners import PytestRunner

    TopLevelRun("features/checkout.feature").execute(PytestRunner(globals()))

Each group becomes a nested ``Test*`` class and each unit a ``test_*`` method.
"""

import re
from typing import Any, Callable, Dict, List
import logging

import pytest

from ..core.exceptions import ExecutionError
from .base import HostRunner, Thunk, call_maybe_async

logger = logging.getLogger(__name__)


def _words(title: str) -> List[str]:
    return re.findall(r"[A-Za-z0-9]+", title)


class PytestRunner(HostRunner):
    def __init__(self, namespace: Dict[str, Any]):
        self.namespace = namespace
        self._classes: List[type] = []

    def describe(self, title: str, body: Callable[[], None], skip: bool = False) -> None:
        befores: List[Thunk] = []
        afters: List[Thunk] = []

        def setup_class(cls):
            for fn in befores:
                call_maybe_async(fn)

        def teardown_class(cls):
            for fn in afters:
                call_maybe_async(fn)

        name = "Test" + "".join(word.capitalize() for word in _words(title))
        group = type(name, (), {
            "__doc__": title,
            "setup_class": classmethod(setup_class),
            "teardown_class": classmethod(teardown_class),
            "_befores": befores,
            "_afters": afters,
        })

        self._classes.append(group)
        try:
            body()
        finally:
            self._classes.pop()

        if skip:
            group = pytest.mark.skip(reason=f"Excluded: {title}")(group)
        self._attach(name, group)

    def it(self, title: str, thunk: Thunk, skip: bool = False) -> None:
        def test(*_):
            call_maybe_async(thunk)

        name = "test_" + "_".join(word.lower() for word in _words(title))
        test.__name__ = name
        test.__doc__ = title
        if skip:
            test = pytest.mark.skip(reason=f"Excluded: {title}")(test)
        self._attach(name, test)

    def before_all(self, fn: Thunk) -> None:
        self._current_group("before_all")._befores.append(fn)

    def after_all(self, fn: Thunk) -> None:
        self._current_group("after_all")._afters.append(fn)

    def _current_group(self, caller: str) -> type:
        if not self._classes:
            raise ExecutionError(f"{caller}() must be called inside describe()")
        return self._classes[-1]

    def _attach(self, name: str, obj: Any) -> None:
        target = self._classes[-1].__dict__ if self._classes else self.namespace
        unique = name
        counter = 2
        while unique in target:
            unique = f"{name}_{counter}"
            counter += 1

        if self._classes:
            setattr(self._classes[-1], unique, obj)
        else:
            self.namespace[unique] = obj
        logger.debug(f"Collected {unique}")
