import asyncio
import inspect
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, List, Optional, Union
import logging

from ..core.base import UnitResult, UnitStatus

logger = logging.getLogger(__name__)

Thunk = Callable[[], Union[None, Awaitable[None]]]


def call_maybe_async(fn: Callable[[], Any]) -> Any:
    """Call ``fn`` and drive the result to completion when it is awaitable"""
    result = fn()
    if inspect.isawaitable(result):
        return asyncio.run(_settle(result))
    return result


async def _settle(awaitable: Awaitable) -> Any:
    return await awaitable


class HostRunner(ABC):
    """
    The test framework the engine registers its units with.

    ``describe`` groups units, ``it`` registers one unit of work, and
    ``before_all``/``after_all`` attach functions to the group currently
    being described. Thunks and group functions may be coroutine functions.
    """

    @abstractmethod
    def describe(self, title: str, body: Callable[[], None], skip: bool = False) -> None:
        pass

    @abstractmethod
    def it(self, title: str, thunk: Thunk, skip: bool = False) -> None:
        pass

    @abstractmethod
    def before_all(self, fn: Thunk) -> None:
        pass

    @abstractmethod
    def after_all(self, fn: Thunk) -> None:
        pass


@dataclass
class _Test:
    title: str
    thunk: Thunk
    skip: bool = False


@dataclass
class _Group:
    title: str
    skip: bool = False
    children: List[Union["_Group", _Test]] = field(default_factory=list)
    before: List[Thunk] = field(default_factory=list)
    after: List[Thunk] = field(default_factory=list)


class InlineRunner(HostRunner):
    """
    Minimal in-process host runner.

    Registration only builds a tree; ``run()`` walks it in registration
    order and returns one UnitResult per test.
    """

    def __init__(self):
        self.root = _Group("")
        self._current = self.root
        self.results: List[UnitResult] = []

    def describe(self, title: str, body: Callable[[], None], skip: bool = False) -> None:
        group = _Group(title, skip)
        self._current.children.append(group)
        parent = self._current
        self._current = group
        try:
            body()
        finally:
            self._current = parent

    def it(self, title: str, thunk: Thunk, skip: bool = False) -> None:
        self._current.children.append(_Test(title, thunk, skip))

    def before_all(self, fn: Thunk) -> None:
        self._current.before.append(fn)

    def after_all(self, fn: Thunk) -> None:
        self._current.after.append(fn)

    def run(self) -> List[UnitResult]:
        """Execute every registered unit"""
        self.results = []
        self._run_group(self.root, [], self.results)
        return self.results

    def _run_group(self, group: _Group, path: List[str], results: List[UnitResult]) -> None:
        if group.title:
            path = [*path, group.title]

        if group.skip:
            for child in group.children:
                self._skip_all(child, path, results)
            return

        setup_error: Optional[BaseException] = None
        try:
            for fn in group.before:
                call_maybe_async(fn)
        except Exception as e:
            logger.error(f'"before all" hook failed in {" > ".join(path)}: {e}')
            setup_error = e

        try:
            for child in group.children:
                if setup_error is not None:
                    self._fail_all(child, path, setup_error, results)
                elif isinstance(child, _Group):
                    self._run_group(child, path, results)
                else:
                    results.append(self._run_test(child, path))
        finally:
            for fn in group.after:
                try:
                    call_maybe_async(fn)
                except Exception as e:
                    logger.error(f'"after all" hook failed in {" > ".join(path)}: {e}')
                    results.append(UnitResult('"after all" hook', UnitStatus.FAILED, path, error=e))

    def _run_test(self, test: _Test, path: List[str]) -> UnitResult:
        if test.skip:
            logger.debug(f"Skipped: {test.title}")
            return UnitResult(test.title, UnitStatus.SKIPPED, path)

        started = time.perf_counter()
        try:
            call_maybe_async(test.thunk)
        except Exception as e:
            logger.debug(f"Failed: {test.title}: {e}")
            return UnitResult(test.title, UnitStatus.FAILED, path, error=e,
                              duration=time.perf_counter() - started)
        return UnitResult(test.title, UnitStatus.PASSED, path, duration=time.perf_counter() - started)

    def _skip_all(self, node: Union[_Group, _Test], path: List[str], results: List[UnitResult]) -> None:
        if isinstance(node, _Test):
            results.append(UnitResult(node.title, UnitStatus.SKIPPED, path))
            return
        for child in node.children:
            self._skip_all(child, [*path, node.title], results)

    def _fail_all(self, node: Union[_Group, _Test], path: List[str], error: BaseException,
                  results: List[UnitResult]) -> None:
        if isinstance(node, _Test):
            results.append(UnitResult(node.title, UnitStatus.FAILED, path, error=error))
            return
        for child in node.children:
            self._fail_all(child, [*path, node.title], error, results)
