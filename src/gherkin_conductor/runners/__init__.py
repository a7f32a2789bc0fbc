from .base import HostRunner, InlineRunner, call_maybe_async
from .pytest_runner import PytestRunner

__all__ = [
    "HostRunner",
    "InlineRunner",
    "PytestRunner",
    "call_maybe_async",
]
