"""Coercion rules used by generated mapping functions.

Every rule takes the raw value and a label (the dotted/indexed path of the
field) and either returns the value in the exact shape the protobuf message
expects or raises CoercionError naming the path and the expected kind.
``*_or_default`` variants return the default when the value is absent.
"""

from __future__ import annotations

import base64
import binascii
import math
import re
from datetime import datetime, timedelta, timezone
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Optional, TypeVar, Union

from google.protobuf.message import Message

from protoc_eip712.codec import message_to_record
from protoc_eip712.errors import CoercionError

T = TypeVar("T")
Rule = Callable[[Any, str], T]

INT32_MIN = -(2 ** 31)
INT32_MAX = 2 ** 31 - 1
UINT32_MAX = 2 ** 32 - 1
INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1
UINT64_MAX = 2 ** 64 - 1
# Largest integer a float holds exactly.
MAX_SAFE_INTEGER = 2 ** 53 - 1
MAX_DURATION_NANOS = 999_999_999

_BASE64 = re.compile(r"^(?:[A-Za-z0-9+/]{4})*(?:[A-Za-z0-9+/]{2}==|[A-Za-z0-9+/]{3}=)?$")
_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_EMPTY_RECORD: Mapping[str, Any] = MappingProxyType({})


def _fail(value: Any, label: str, expected: str) -> CoercionError:
    if value is None:
        return CoercionError(label, expected, f"is required; expected {expected}")
    return CoercionError(label, expected)


def _is_record(value: Any) -> bool:
    return isinstance(value, (Mapping, Message))


def as_record(value: Any) -> Mapping[str, Any]:
    """View a mapping or protobuf message as a record; anything else is empty."""
    if isinstance(value, Message):
        return message_to_record(value)
    if isinstance(value, Mapping):
        return value
    return _EMPTY_RECORD


def get_field(record: Mapping[str, Any], camel: str, snake: str) -> Any:
    """Read a field by its camelCase name, falling back to the declared name."""
    value = record.get(camel)
    if value is not None:
        return value
    return record.get(snake)


# -- scalars --

def require_string(value: Any, label: str) -> str:
    if isinstance(value, str):
        return value
    raise _fail(value, label, "a string")


def require_bytes(value: Any, label: str) -> bytes:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if isinstance(value, str):
        if not _BASE64.match(value):
            raise CoercionError(label, "bytes or a valid base64 string")
        try:
            return base64.b64decode(value, validate=True)
        except binascii.Error as e:
            raise CoercionError(label, "bytes or a valid base64 string") from e
    raise _fail(value, label, "bytes or a base64 string")


def require_bool(value: Any, label: str) -> bool:
    if isinstance(value, bool):
        return value
    raise _fail(value, label, "a boolean")


def _number(value: Any, label: str, expected: str) -> Union[int, float]:
    if isinstance(value, bool):
        raise CoercionError(label, expected)
    if isinstance(value, int):
        return value
    if isinstance(value, float) and math.isfinite(value):
        return value
    if isinstance(value, str) and value.strip():
        text = value.strip()
        try:
            return int(text)
        except ValueError:
            pass
        try:
            parsed = float(text)
        except ValueError:
            raise CoercionError(label, expected) from None
        if math.isfinite(parsed):
            return parsed
    raise _fail(value, label, expected)


def require_number_like(value: Any, label: str) -> float:
    number = _number(value, label, "a number")
    try:
        return float(number)
    except OverflowError:
        raise CoercionError(label, "a number", "is too large for a double") from None


def _integer_in_range(value: Any, label: str, expected: str, low: int, high: int) -> int:
    number = _number(value, label, expected)
    if isinstance(number, float) and not number.is_integer():
        raise CoercionError(label, expected)
    number = int(number)
    if number < low or number > high:
        raise CoercionError(label, expected)
    return number


def require_int32_like(value: Any, label: str) -> int:
    return _integer_in_range(value, label, "an int32", INT32_MIN, INT32_MAX)


def require_uint32_like(value: Any, label: str) -> int:
    return _integer_in_range(value, label, "a uint32", 0, UINT32_MAX)


def _big_int(value: Any, label: str, expected: str, low: int, high: int) -> int:
    if isinstance(value, bool):
        raise CoercionError(label, expected)
    if isinstance(value, int):
        number = value
    elif isinstance(value, float) and math.isfinite(value):
        if not value.is_integer():
            raise CoercionError(label, expected, "must be an integer")
        if abs(value) > MAX_SAFE_INTEGER:
            raise CoercionError(
                label, expected, "exceeds safe integer range; use int or a decimal string"
            )
        number = int(value)
    elif isinstance(value, str) and value.strip():
        try:
            number = int(value.strip())
        except ValueError:
            raise CoercionError(label, expected) from None
    else:
        raise _fail(value, label, expected)
    if number < low or number > high:
        raise CoercionError(label, expected, f"is out of range for {expected}")
    return number


def require_int64_like(value: Any, label: str) -> int:
    return _big_int(value, label, "an int64", INT64_MIN, INT64_MAX)


def require_uint64_like(value: Any, label: str) -> int:
    return _big_int(value, label, "a uint64", 0, UINT64_MAX)


# -- well-known types --

def _split_microseconds(total: int) -> Dict[str, int]:
    sign = -1 if total < 0 else 1
    seconds, micros = divmod(abs(total), 1_000_000)
    return {"seconds": sign * seconds, "nanos": sign * micros * 1000}


def require_duration(value: Any, label: str) -> Dict[str, int]:
    if isinstance(value, timedelta):
        return _split_microseconds(value // timedelta(microseconds=1))
    if not _is_record(value):
        raise _fail(value, label, "a protobuf Duration object")

    record = as_record(value)
    raw_seconds = record.get("seconds")
    raw_nanos = record.get("nanos")
    if raw_seconds is None and raw_nanos is None:
        raise CoercionError(label, "a protobuf Duration object", "must include seconds or nanos")

    seconds = require_int64_like(0 if raw_seconds is None else raw_seconds, f"{label}.seconds")
    nanos = require_int32_like(0 if raw_nanos is None else raw_nanos, f"{label}.nanos")
    if nanos < -MAX_DURATION_NANOS or nanos > MAX_DURATION_NANOS:
        raise CoercionError(
            f"{label}.nanos", "an int32", "must be between -999999999 and 999999999"
        )
    if seconds > 0 and nanos < 0:
        raise CoercionError(f"{label}.nanos", "an int32", "must be >= 0 when seconds is positive")
    if seconds < 0 and nanos > 0:
        raise CoercionError(f"{label}.nanos", "an int32", "must be <= 0 when seconds is negative")
    return {"seconds": seconds, "nanos": nanos}


def require_timestamp(value: Any, label: str) -> Dict[str, int]:
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        total = (value - _EPOCH) // timedelta(microseconds=1)
        seconds, micros = divmod(total, 1_000_000)
        return {"seconds": seconds, "nanos": micros * 1000}
    if not _is_record(value):
        raise _fail(value, label, "a protobuf Timestamp object")

    record = as_record(value)
    raw_seconds = record.get("seconds")
    raw_nanos = record.get("nanos")
    seconds = require_int64_like(0 if raw_seconds is None else raw_seconds, f"{label}.seconds")
    nanos = require_int32_like(0 if raw_nanos is None else raw_nanos, f"{label}.nanos")
    return {"seconds": seconds, "nanos": nanos}


# -- defaults --

def require_string_or_default(value: Any, label: str, default: str = "") -> str:
    if value is None:
        return default
    return require_string(value, label)


def require_bytes_or_default(value: Any, label: str, default: bytes = b"") -> bytes:
    if value is None:
        return default
    return require_bytes(value, label)


def require_bool_or_default(value: Any, label: str, default: bool = False) -> bool:
    if value is None:
        return default
    return require_bool(value, label)


def require_number_or_default(value: Any, label: str, default: float = 0.0) -> float:
    if value is None:
        return default
    return require_number_like(value, label)


def require_int32_or_default(value: Any, label: str, default: int = 0) -> int:
    if value is None:
        return default
    return require_int32_like(value, label)


def require_uint32_or_default(value: Any, label: str, default: int = 0) -> int:
    if value is None:
        return default
    return require_uint32_like(value, label)


def require_int64_or_default(value: Any, label: str, default: int = 0) -> int:
    if value is None:
        return default
    return require_int64_like(value, label)


def require_uint64_or_default(value: Any, label: str, default: int = 0) -> int:
    if value is None:
        return default
    return require_uint64_like(value, label)


def require_duration_or_default(
    value: Any, label: str, default: Optional[Dict[str, int]] = None
) -> Dict[str, int]:
    if value is None:
        return dict(default) if default is not None else {"seconds": 0, "nanos": 0}
    return require_duration(value, label)


def require_timestamp_or_default(
    value: Any, label: str, default: Optional[Dict[str, int]] = None
) -> Dict[str, int]:
    if value is None:
        return dict(default) if default is not None else {"seconds": 0, "nanos": 0}
    return require_timestamp(value, label)


# -- arrays --

def require_array(value: Any, label: str, rule: Rule[T]) -> List[T]:
    """Apply *rule* to every element, labelling each one as ``label[i]``."""
    if not isinstance(value, (list, tuple)):
        raise _fail(value, label, "an array")
    return [rule(item, f"{label}[{index}]") for index, item in enumerate(value)]


def require_array_or_default(
    value: Any, label: str, rule: Rule[T], default: Optional[List[T]] = None
) -> List[T]:
    if value is None:
        return list(default) if default is not None else []
    return require_array(value, label, rule)


def require_record_array(value: Any, label: str) -> List[Mapping[str, Any]]:
    if not isinstance(value, (list, tuple)):
        raise _fail(value, label, "an array of objects")
    records: List[Mapping[str, Any]] = []
    for index, item in enumerate(value):
        if not _is_record(item):
            raise CoercionError(f"{label}[{index}]", "an object")
        records.append(as_record(item))
    return records


def require_record_array_or_default(value: Any, label: str) -> List[Mapping[str, Any]]:
    if value is None:
        return []
    return require_record_array(value, label)


def map_optional_record(
    value: Any, label: str, mapper: Callable[[Mapping[str, Any], str], T]
) -> Optional[T]:
    """Map a nested record, or return None so the field stays unset."""
    if value is None:
        return None
    return mapper(as_record(value), label)
