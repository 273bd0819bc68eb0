"""
JSONPath selection and assignment.

Paths are full JSONPath as understood by ``jsonpath-ng`` (with its filter
extensions): members, quoted members, indexes (negative included), slices,
wildcards, recursive descent and filters.

A definite path (only members and single indexes) selects one value. Any other
path selects the list of every match, possibly empty.
"""
from functools import lru_cache
from typing import Any

from jsonpath_ng.exceptions import JSONPathError
from jsonpath_ng.ext import parse
from jsonpath_ng.jsonpath import Child, Fields, Index, JSONPath, Root, This

from ..exceptions import ExecutionError, InvalidPathError


class _Missing:
    """Marker for a path that does not resolve to any value"""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING = _Missing()


@lru_cache(maxsize=512)
def compile_path(expression: str) -> JSONPath:
    """Parse a path, raising InvalidPathError for anything that is not JSONPath rooted at ``$``"""
    if not expression.startswith("$"):
        raise InvalidPathError(f"Path must start with '$': {expression!r}")
    try:
        return parse(expression)
    except JSONPathError as e:
        raise InvalidPathError(f"Invalid path {expression!r}: {e}") from e


def is_definite(path: JSONPath) -> bool:
    if isinstance(path, Child):
        return is_definite(path.left) and is_definite(path.right)
    if isinstance(path, (Root, This, Index)):
        return True
    if isinstance(path, Fields):
        return len(path.fields) == 1 and path.fields[0] != "*"
    return False


def get_path(document: Any, expression: str, default: Any = None) -> Any:
    path = compile_path(expression)
    try:
        matches = path.find(document)
    except (KeyError, TypeError):
        # an index applied to a mapping
        matches = []
    if not is_definite(path):
        return [match.value for match in matches]
    if not matches:
        return default
    return matches[0].value


def set_path(document: Any, expression: str, value: Any) -> Any:
    """
    Write ``value`` at ``expression`` inside ``document`` (mutated in place).

    Missing intermediate members are created as mappings. Returns the
    resulting document, which is ``value`` itself for the root path.
    """
    if expression.startswith("$$"):
        raise InvalidPathError(f"Context paths cannot be written to: {expression!r}")
    path = compile_path(expression)
    if isinstance(path, Root):
        return value

    try:
        path.update_or_create(document, value)
        written = path.find(document)
    except (KeyError, IndexError, TypeError, AttributeError) as e:
        raise _match_failure(expression) from e
    if not written:
        raise _match_failure(expression)
    return document


def _match_failure(expression: str) -> ExecutionError:
    return ExecutionError(
        "States.ResultPathMatchFailure",
        f"Unable to apply ResultPath {expression!r} to the state input",
    )
