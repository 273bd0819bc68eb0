"""
Choice rule evaluation
"""
import logging
import operator
import re
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Any, Callable, Dict, Optional, Pattern, Sequence

from ..expressions import MISSING, select
from ..models.definition import ChoiceRule
from ..models.execution import ExecutionContext

logger = logging.getLogger(__name__)

_TIMESTAMP = re.compile(
    r"^(\d{4})-(\d{2})-(\d{2})T(\d{2}):(\d{2}):(\d{2})(\.\d+)?(Z|[+-]\d{2}:\d{2})?$",
    re.IGNORECASE,
)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an RFC 3339 timestamp, reading one without an offset as UTC; returns None for anything else"""
    if not isinstance(value, str):
        return None
    match = _TIMESTAMP.match(value)
    if not match:
        return None
    year, month, day, hour, minute, second = (int(g) for g in match.groups()[:6])
    fraction, offset = match.group(7), match.group(8)
    microsecond = int((fraction[1:] + "000000")[:6]) if fraction else 0
    if offset is None or offset.upper() == "Z":
        tz = timezone.utc
    else:
        sign = 1 if offset[0] == "+" else -1
        tz = timezone(sign * timedelta(hours=int(offset[1:3]), minutes=int(offset[4:6])))
    try:
        return datetime(year, month, day, hour, minute, second, microsecond, tzinfo=tz)
    except ValueError:
        return None


def _as_string(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


def _as_number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return value


def _as_boolean(value: Any) -> Optional[bool]:
    return value if isinstance(value, bool) else None


_COMPARATORS: Dict[str, Callable[[Any, Any], bool]] = {
    "Equals": operator.eq,
    "LessThan": operator.lt,
    "GreaterThan": operator.gt,
    "LessThanEquals": operator.le,
    "GreaterThanEquals": operator.ge,
}

_FAMILIES: Dict[str, Callable[[Any], Any]] = {
    "String": _as_string,
    "Numeric": _as_number,
    "Timestamp": parse_timestamp,
}

_TYPE_TESTS: Dict[str, Callable[[Any], bool]] = {
    "IsNull": lambda v: v is None,
    "IsPresent": lambda v: v is not MISSING,
    "IsNumeric": lambda v: _as_number(v) is not None,
    "IsString": lambda v: isinstance(v, str),
    "IsBoolean": lambda v: isinstance(v, bool),
    "IsTimestamp": lambda v: parse_timestamp(v) is not None,
}


def _build_comparisons() -> Dict[str, tuple]:
    comparisons = {}
    for family, coerce in _FAMILIES.items():
        for suffix, compare in _COMPARATORS.items():
            comparisons[family + suffix] = (coerce, compare, False)
            comparisons[family + suffix + "Path"] = (coerce, compare, True)
    comparisons["BooleanEquals"] = (_as_boolean, operator.eq, False)
    comparisons["BooleanEqualsPath"] = (_as_boolean, operator.eq, True)
    return comparisons


COMPARISONS = _build_comparisons()

BOOLEAN_OPERATORS = ("And", "Or", "Not")

OPERATORS = BOOLEAN_OPERATORS + tuple(COMPARISONS) + ("StringMatches",) + tuple(_TYPE_TESTS)


@lru_cache(maxsize=256)
def compile_mask(mask: str) -> Pattern:
    """
    Compile a StringMatches mask to an anchored pattern.

    ``*`` matches any run of characters; a backslash makes the following
    character (including ``*`` and ``\\``) literal.
    """
    parts = []
    i = 0
    while i < len(mask):
        char = mask[i]
        if char == "\\" and i + 1 < len(mask):
            parts.append(re.escape(mask[i + 1]))
            i += 2
            continue
        parts.append(".*" if char == "*" else re.escape(char))
        i += 1
    return re.compile("".join(parts), re.DOTALL)


def string_matches(value: Any, mask: Any) -> bool:
    if not isinstance(value, str) or not isinstance(mask, str):
        return False
    return compile_mask(mask).fullmatch(value) is not None


class ChoiceEvaluator:
    """Evaluates Choice rules against a state input"""

    def __init__(self, context: Optional[ExecutionContext] = None):
        self.context = context

    def evaluate(self, rules: Sequence[ChoiceRule], input: Any) -> Optional[str]:
        """Return the ``next`` of the first matching rule, or None"""
        for rule in rules:
            if self.matches(rule, input):
                logger.debug("Choice rule %s matched, next is %s", rule.operator, rule.next)
                return rule.next
        return None

    def matches(self, rule: ChoiceRule, input: Any) -> bool:
        op = rule.operator
        if op == "And":
            return all(self.matches(nested, input) for nested in rule.rules)
        if op == "Or":
            return any(self.matches(nested, input) for nested in rule.rules)
        if op == "Not":
            return bool(rule.rules) and not self.matches(rule.rules[0], input)
        if op is None:
            return False

        variable = self._variable(rule, input)
        if op in _TYPE_TESTS:
            result = _TYPE_TESTS[op](variable)
            return result if rule.operand else not result
        if op == "StringMatches":
            return string_matches(variable, rule.operand)
        if op in COMPARISONS:
            return self._compare(op, variable, rule.operand, input)
        logger.warning("Unsupported choice operator %s", op)
        return False

    def _variable(self, rule: ChoiceRule, input: Any) -> Any:
        if rule.variable is None:
            return MISSING
        return select(rule.variable, input, self.context, MISSING)

    def _compare(self, op: str, variable: Any, operand: Any, input: Any) -> bool:
        coerce, compare, is_path = COMPARISONS[op]
        if is_path:
            operand = select(operand, input, self.context, MISSING)
        left, right = coerce(variable), coerce(operand)
        if left is None or right is None:
            return False
        return compare(left, right)
