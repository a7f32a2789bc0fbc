"""
Tag filter compiler.

A filter such as ``@smoke and not (@slow or @wip)`` is parsed once into a
small expression tree and then evaluated against the tag set of every
Scenario, Scenario Outline and Rule.

Grammar (``not`` binds tighter than ``and``, which binds tighter than ``or``)::

    expression := term ("or" term)*
    term       := factor ("and" factor)*
    factor     := "not" factor | "(" expression ")" | TAG
"""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from ..core.exceptions import TagExpressionError

_TOKEN = re.compile(r"\s*(\(|\)|[^\s()]+)")
_KEYWORDS = {"and", "or", "not"}


def normalize_tag(tag: str) -> str:
    tag = str(tag).strip()
    return tag if tag.startswith("@") else f"@{tag}"


class TagNode(ABC):
    """Node of a compiled tag expression"""

    @abstractmethod
    def evaluate(self, tags: frozenset) -> bool:
        pass


@dataclass(frozen=True)
class TagAtom(TagNode):
    name: str

    def evaluate(self, tags: frozenset) -> bool:
        return self.name in tags

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class Not(TagNode):
    operand: TagNode

    def evaluate(self, tags: frozenset) -> bool:
        return not self.operand.evaluate(tags)

    def __str__(self) -> str:
        operand = str(self.operand)
        if isinstance(self.operand, (And, Or)):
            operand = f"({operand})"
        return f"not {operand}"


@dataclass(frozen=True)
class And(TagNode):
    left: TagNode
    right: TagNode

    def evaluate(self, tags: frozenset) -> bool:
        return self.left.evaluate(tags) and self.right.evaluate(tags)

    def __str__(self) -> str:
        return f"{_wrap(self.left)} and {_wrap(self.right)}"


@dataclass(frozen=True)
class Or(TagNode):
    left: TagNode
    right: TagNode

    def evaluate(self, tags: frozenset) -> bool:
        return self.left.evaluate(tags) or self.right.evaluate(tags)

    def __str__(self) -> str:
        return f"{self.left} or {self.right}"


@dataclass(frozen=True)
class _Everything(TagNode):

    def evaluate(self, tags: frozenset) -> bool:
        return True

    def __str__(self) -> str:
        return ""


def _wrap(node: TagNode) -> str:
    text = str(node)
    if isinstance(node, Or):
        return f"({text})"
    return text


@dataclass(frozen=True)
class TagExpression:
    """Immutable predicate over a tag set"""
    source: str
    root: TagNode

    @property
    def is_active(self) -> bool:
        """False when the filter is empty and everything runs"""
        return not isinstance(self.root, _Everything)

    def __call__(self, tags: Iterable[str]) -> bool:
        return self.root.evaluate(frozenset(normalize_tag(tag) for tag in tags))

    def matches(self, tags: Iterable[str]) -> bool:
        return self(tags)

    def __str__(self) -> str:
        return str(self.root)


MATCH_ALL = TagExpression("", _Everything())


class _Parser:

    def __init__(self, source: str):
        self.source = source
        self.tokens = self._tokenize(source)
        self.position = 0

    def _tokenize(self, source: str) -> List[Tuple[str, int]]:
        tokens = []
        position = 0
        while position < len(source):
            match = _TOKEN.match(source, position)
            if not match:
                break
            tokens.append((match.group(1), match.start(1)))
            position = match.end()
        return tokens

    def _peek(self) -> Optional[str]:
        if self.position < len(self.tokens):
            return self.tokens[self.position][0]
        return None

    def _advance(self) -> str:
        token = self.tokens[self.position][0]
        self.position += 1
        return token

    def _fail(self, reason: str) -> TagExpressionError:
        return TagExpressionError(self.source, reason)

    def parse(self) -> TagNode:
        node = self._expression()
        if self._peek() is not None:
            token, offset = self.tokens[self.position]
            raise self._fail(f"unexpected '{token}' at position {offset}")
        return node

    def _expression(self) -> TagNode:
        node = self._term()
        while self._peek() == "or":
            self._advance()
            node = Or(node, self._term())
        return node

    def _term(self) -> TagNode:
        node = self._factor()
        while self._peek() == "and":
            self._advance()
            node = And(node, self._factor())
        return node

    def _factor(self) -> TagNode:
        token = self._peek()
        if token is None:
            raise self._fail("unexpected end of expression")
        if token == "not":
            self._advance()
            return Not(self._factor())
        if token == "(":
            self._advance()
            node = self._expression()
            if self._peek() != ")":
                raise self._fail("missing closing ')'")
            self._advance()
            return node
        if token == ")" or token in _KEYWORDS:
            raise self._fail(f"expected a tag but found '{token}'")
        if not token.startswith("@") or len(token) == 1:
            raise self._fail(f"tags must start with '@', got '{token}'")
        self._advance()
        return TagAtom(token)


def compile_tag_expression(source: Optional[str]) -> TagExpression:
    """Compile a filter string into a predicate over tag sets.

    An empty or missing filter means "run everything".

    Raises:
        TagExpressionError: when the expression cannot be parsed
    """
    if source is None or not source.strip():
        return MATCH_ALL
    source = source.strip()
    return TagExpression(source, _Parser(source).parse())
