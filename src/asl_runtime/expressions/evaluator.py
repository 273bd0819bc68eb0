"""
Expression evaluation: paths, context paths, literals and intrinsic calls
"""
import json
import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, List, Optional, Tuple, Union

from ..exceptions import ExecutionError, InvalidPathError, TemplateParseError
from .intrinsics import intrinsics
from .paths import get_path


@dataclass(frozen=True)
class PathNode:
    expression: str


@dataclass(frozen=True)
class LiteralNode:
    value: Any
    raw: Optional[str] = None


@dataclass(frozen=True)
class CallNode:
    name: str
    args: Tuple["Node", ...] = ()


Node = Union[PathNode, LiteralNode, CallNode]

_NUMBER = re.compile(r"-?\d+(\.\d+)?([eE][+-]?\d+)?")
_NAME = re.compile(r"[A-Za-z_]\w*(\.[A-Za-z_]\w*)*")
_KEYWORDS = {"true": True, "false": False, "null": None}


class ExpressionParser:
    """
    Recursive descent parser for the expression grammar.

    An expression is a path (``$...`` or ``$$...``), a single-quoted string
    literal, a number/``true``/``false``/``null`` literal, or a call
    ``Namespace.Function(arg, ...)`` whose arguments are expressions.
    """

    def __init__(self, text: str):
        self.text = text
        self.i = 0

    def parse(self) -> Node:
        self._skip_whitespace()
        node = self._parse_term()
        self._skip_whitespace()
        if not self._eof:
            raise InvalidPathError(
                f"Unexpected character {self.text[self.i]!r} at index {self.i} in {self.text!r}"
            )
        return node

    @property
    def _eof(self) -> bool:
        return self.i >= len(self.text)

    def _skip_whitespace(self):
        while not self._eof and self.text[self.i].isspace():
            self.i += 1

    def _parse_term(self) -> Node:
        if self._eof:
            raise InvalidPathError(f"Unexpected end of expression {self.text!r}")
        char = self.text[self.i]
        if char == "$":
            return PathNode(self._read_path())
        if char == "'":
            return self._read_string()
        if char == "-" or char.isdigit():
            return self._read_number()

        match = _NAME.match(self.text, self.i)
        if not match:
            raise InvalidPathError(
                f"Unexpected character {char!r} at index {self.i} in {self.text!r}"
            )
        name = match.group(0)
        self.i = match.end()
        self._skip_whitespace()
        if not self._eof and self.text[self.i] == "(":
            self.i += 1
            return CallNode(name, tuple(self._parse_arguments()))
        if name in _KEYWORDS:
            return LiteralNode(_KEYWORDS[name])
        raise InvalidPathError(f"Expression {self.text!r} is not a path or function call")

    def _parse_arguments(self) -> List[Node]:
        args: List[Node] = []
        self._skip_whitespace()
        if not self._eof and self.text[self.i] == ")":
            self.i += 1
            return args
        while True:
            self._skip_whitespace()
            args.append(self._parse_term())
            self._skip_whitespace()
            if self._eof:
                raise InvalidPathError(f"Unterminated function call in {self.text!r}")
            char = self.text[self.i]
            self.i += 1
            if char == ")":
                return args
            if char != ",":
                raise InvalidPathError(
                    f"Unexpected character {char!r} at index {self.i - 1} in {self.text!r}"
                )

    def _read_path(self) -> str:
        start = self.i
        quote = None
        depth = 0
        while not self._eof:
            char = self.text[self.i]
            if quote:
                if char == "\\":
                    self.i += 1
                elif char == quote:
                    quote = None
            elif char in "'\"" and depth:
                quote = char
            elif char == "[":
                depth += 1
            elif char == "]":
                depth -= 1
            elif depth == 0 and (char in ",)" or char.isspace()):
                break
            self.i += 1
        return self.text[start:self.i]

    def _read_string(self) -> LiteralNode:
        start = self.i
        self.i += 1
        chars = []
        while not self._eof:
            char = self.text[self.i]
            if char == "\\" and self.i + 1 < len(self.text):
                chars.append(self.text[self.i + 1])
                self.i += 2
                continue
            if char == "'":
                self.i += 1
                return LiteralNode("".join(chars), raw=self.text[start:self.i])
            chars.append(char)
            self.i += 1
        raise TemplateParseError("unterminated string literal", self.i, self.text)

    def _read_number(self) -> LiteralNode:
        match = _NUMBER.match(self.text, self.i)
        if not match:
            raise InvalidPathError(f"Invalid number at index {self.i} in {self.text!r}")
        self.i = match.end()
        return LiteralNode(json.loads(match.group(0)))


@lru_cache(maxsize=512)
def parse_expression(expression: str) -> Node:
    return ExpressionParser(expression).parse()


def _quote(value: str) -> str:
    return "'" + value.replace("\\", "\\\\").replace("'", "\\'") + "'"


def evaluate(node: Node, input: Any, context: Any = None, default: Any = None) -> Any:
    if isinstance(node, PathNode):
        if node.expression.startswith("$$"):
            document = context.to_dict() if context is not None else {}
            return get_path(document, node.expression[1:], default)
        return get_path(input, node.expression, default)

    if isinstance(node, LiteralNode):
        return node.value

    # unknown names fail before any argument is evaluated
    intrinsics.get(node.name)
    if node.name == "States.Format":
        if not node.args:
            raise ExecutionError("States.IntrinsicFailure", "States.Format requires a template")
        template = _format_template(node.args[0], input, context)
        args = [evaluate(arg, input, context) for arg in node.args[1:]]
        return intrinsics.call(node.name, [template] + args)

    args = [evaluate(arg, input, context) for arg in node.args]
    return intrinsics.call(node.name, args)


def _format_template(node: Node, input: Any, context: Any) -> str:
    if isinstance(node, LiteralNode) and node.raw is not None:
        return node.raw
    value = evaluate(node, input, context)
    if not isinstance(value, str):
        raise ExecutionError(
            "States.IntrinsicFailure",
            f"States.Format template must be a string, got {type(value).__name__}",
        )
    return _quote(value)


def select(expression: Any, input: Any, context: Any = None, default: Any = None) -> Any:
    """
    Evaluate ``expression`` against ``input``, resolving ``$$`` against ``context``.

    ``default`` is returned when a top-level path does not resolve.
    """
    if not isinstance(expression, str):
        raise InvalidPathError(
            "JSON Path should be a string! Value: " + json.dumps(expression, default=str)
        )
    return evaluate(parse_expression(expression), input, context, default)
