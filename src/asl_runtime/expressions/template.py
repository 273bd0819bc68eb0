"""
Template parser for States.Format
"""
import json
from dataclasses import dataclass
from typing import Any, List, Sequence, Union

from ..exceptions import ExecutionError, TemplateParseError


@dataclass(frozen=True)
class StringLiteral:
    literal: str


@dataclass(frozen=True)
class Placeholder:
    index: int


TemplateToken = Union[StringLiteral, Placeholder]


class StringTemplateParser:
    """
    Parses a single-quoted template into literal runs and ``{}`` placeholders.

    A backslash adds the following character literally, so ``\\'`` is a quote
    and ``\\{`` a brace. An unescaped ``{`` must be immediately closed by ``}``.
    """

    def __init__(self, expression: str):
        self.expression = expression
        self._i = 0
        self._placeholders = 0

    def parse(self) -> List[TemplateToken]:
        tokens: List[TemplateToken] = []
        if self._char() != "'":
            self._raise(f'unexpected character "{self._char()}", expecting \'')
        self._i += 1
        while not self._eof:
            char = self._char()
            if char == "{":
                tokens.append(self._parse_placeholder())
            elif char == "'":
                self._i += 1
                if not self._eof:
                    self._raise(f'unexpected character "{self._char()}", expecting end of string')
                return tokens
            else:
                tokens.append(StringLiteral(self._consume_string()))
        self._raise("unexpected end of string")

    def _parse_placeholder(self) -> Placeholder:
        self._consume()
        if self._char() != "}":
            self._raise(f'unexpected characters "{self._char()}", expecting }}')
        self._consume()
        placeholder = Placeholder(self._placeholders)
        self._placeholders += 1
        return placeholder

    def _consume_string(self) -> str:
        chars = []
        while self._char() not in ("{", "'"):
            if self._char() == "\\":
                self._consume()
            chars.append(self._consume())
        return "".join(chars)

    @property
    def _eof(self) -> bool:
        return self._i >= len(self.expression)

    def _char(self) -> str:
        if self._eof:
            self._raise("unexpected end of string")
        return self.expression[self._i]

    def _consume(self) -> str:
        char = self._char()
        self._i += 1
        return char

    def _raise(self, message: str):
        raise TemplateParseError(message, self._i, self.expression)


def format_value(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    if isinstance(value, (dict, list)):
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    return str(value)


def render_template(template: str, args: Sequence[Any]) -> str:
    tokens = StringTemplateParser(template.strip()).parse()
    placeholders = sum(1 for token in tokens if isinstance(token, Placeholder))
    if placeholders != len(args):
        raise ExecutionError(
            "States.IntrinsicFailure",
            f"States.Format template has {placeholders} placeholders but received {len(args)} arguments",
        )
    parts = []
    for token in tokens:
        if isinstance(token, Placeholder):
            parts.append(format_value(args[token.index]))
        else:
            parts.append(token.literal)
    return "".join(parts)
