"""
Intrinsic functions available inside path expressions
"""
import base64
import binascii
import hashlib
import json
import logging
import re
from typing import Any, Callable, Dict, List
from uuid import uuid4

from ..exceptions import ExecutionError, InvalidIntrinsicFunctionError
from .template import render_template


logger = logging.getLogger(__name__)


class IntrinsicRegistry:
    """Name to implementation table for intrinsic functions"""

    def __init__(self):
        self.functions: Dict[str, Callable[..., Any]] = {}

    def register(self, name: str) -> Callable:
        def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
            self.functions[name] = func
            return func
        return decorator

    def get(self, name: str) -> Callable[..., Any]:
        func = self.functions.get(name)
        if func is None:
            raise InvalidIntrinsicFunctionError(name)
        return func

    def call(self, name: str, args: List[Any]) -> Any:
        func = self.get(name)
        logger.debug("Calling intrinsic %s with %d arguments", name, len(args))
        try:
            return func(*args)
        except TypeError as e:
            raise ExecutionError("States.IntrinsicFailure", f"{name}: {e}") from e

    def __contains__(self, name: str) -> bool:
        return name in self.functions


intrinsics = IntrinsicRegistry()


def _fail(name: str, message: str) -> ExecutionError:
    return ExecutionError("States.IntrinsicFailure", f"{name}: {message}")


def _is_integer(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _require_list(name: str, value: Any) -> list:
    if not isinstance(value, list):
        raise _fail(name, f"expected an array, got {type(value).__name__}")
    return value


def _require_str(name: str, value: Any) -> str:
    if not isinstance(value, str):
        raise _fail(name, f"expected a string, got {type(value).__name__}")
    return value


@intrinsics.register("States.Format")
def states_format(template: str, *args: Any) -> str:
    return render_template(template, args)


@intrinsics.register("States.StringToJson")
def string_to_json(value: Any) -> Any:
    _require_str("States.StringToJson", value)
    try:
        return json.loads(value)
    except json.JSONDecodeError as e:
        raise _fail("States.StringToJson", str(e)) from e


@intrinsics.register("States.JsonToString")
def json_to_string(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


@intrinsics.register("States.Array")
def array(*args: Any) -> list:
    return list(args)


@intrinsics.register("States.ArrayContains")
def array_contains(values: Any, looking_for: Any) -> bool:
    return looking_for in _require_list("States.ArrayContains", values)


@intrinsics.register("States.ArrayLength")
def array_length(values: Any) -> int:
    return len(_require_list("States.ArrayLength", values))


@intrinsics.register("States.ArrayGetItem")
def array_get_item(values: Any, index: Any) -> Any:
    values = _require_list("States.ArrayGetItem", values)
    if not _is_integer(index) or not 0 <= index < len(values):
        raise _fail("States.ArrayGetItem", f"index {index!r} is out of range")
    return values[index]


@intrinsics.register("States.ArrayUnique")
def array_unique(values: Any) -> list:
    unique: list = []
    for value in _require_list("States.ArrayUnique", values):
        if value not in unique:
            unique.append(value)
    return unique


@intrinsics.register("States.ArrayPartition")
def array_partition(values: Any, size: Any) -> list:
    values = _require_list("States.ArrayPartition", values)
    if not _is_integer(size) or size <= 0:
        raise _fail("States.ArrayPartition", "chunk size must be a positive integer")
    return [values[i:i + size] for i in range(0, len(values), size)]


@intrinsics.register("States.ArrayRange")
def array_range(start: Any, end: Any, step: Any) -> list:
    if not all(_is_integer(v) for v in (start, end, step)) or step == 0:
        raise _fail("States.ArrayRange", "start, end and a non-zero step must be integers")
    stop = end + 1 if step > 0 else end - 1
    result = list(range(start, stop, step))
    if len(result) > 1000:
        raise _fail("States.ArrayRange", "range is limited to 1000 items")
    return result


@intrinsics.register("States.MathAdd")
def math_add(left: Any, right: Any) -> Any:
    for value in (left, right):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise _fail("States.MathAdd", f"expected a number, got {value!r}")
    return left + right


@intrinsics.register("States.StringSplit")
def string_split(value: Any, delimiters: Any) -> List[str]:
    _require_str("States.StringSplit", value)
    _require_str("States.StringSplit", delimiters)
    if not delimiters:
        return [value]
    pattern = "[" + re.escape(delimiters) + "]"
    return [part for part in re.split(pattern, value) if part]


@intrinsics.register("States.Base64Encode")
def base64_encode(value: Any) -> str:
    _require_str("States.Base64Encode", value)
    return base64.b64encode(value.encode("utf-8")).decode("ascii")


@intrinsics.register("States.Base64Decode")
def base64_decode(value: Any) -> str:
    _require_str("States.Base64Decode", value)
    try:
        return base64.b64decode(value, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError) as e:
        raise _fail("States.Base64Decode", str(e)) from e


_HASH_ALGORITHMS = {
    "MD5": "md5",
    "SHA-1": "sha1",
    "SHA-256": "sha256",
    "SHA-384": "sha384",
    "SHA-512": "sha512",
}


@intrinsics.register("States.Hash")
def states_hash(value: Any, algorithm: Any) -> str:
    if algorithm not in _HASH_ALGORITHMS:
        raise _fail("States.Hash", f"unsupported algorithm {algorithm!r}")
    data = value if isinstance(value, str) else json_to_string(value)
    return hashlib.new(_HASH_ALGORITHMS[algorithm], data.encode("utf-8")).hexdigest()


def _merge(left: dict, right: dict, deep: bool) -> dict:
    merged = dict(left)
    for key, value in right.items():
        if deep and isinstance(merged.get(key), dict) and isinstance(value, dict):
            merged[key] = _merge(merged[key], value, deep)
        else:
            merged[key] = value
    return merged


@intrinsics.register("States.JsonMerge")
def json_merge(left: Any, right: Any, deep: Any = False) -> dict:
    if not isinstance(left, dict) or not isinstance(right, dict):
        raise _fail("States.JsonMerge", "both arguments must be objects")
    return _merge(left, right, bool(deep))


@intrinsics.register("States.UUID")
def states_uuid() -> str:
    return str(uuid4())
