"""
Standard Function Library

Declares every operator and function available to filter expressions as typed
overloads. The checker resolves calls against these signatures at compile
time; the interpreter invokes the resolved implementation at run time.

Operators use the conventional internal names (``_+_``, ``_<_``, ``-_``), so
they resolve through the same registry as named functions.
"""

import math
import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Any, Callable, Iterable, List, Optional, Sequence, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from feedcel.cel.types import (
    BOOL, DOUBLE, DURATION, DYN, INT, STRING, TIMESTAMP, CelType, list_of,
)

INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1


class EvalFault(Exception):
    """Runtime fault raised while evaluating an expression."""


class NoSuchFieldFault(EvalFault):
    """An expression selected a field the value does not have."""


@dataclass(frozen=True)
class Overload:
    """
    One typed signature of a function.

    Attributes:
        overload_id: Unique identifier, e.g. ``string_contains_string``
        params: Parameter types; for member overloads the receiver comes first
        result: Result type
        impl: Python implementation taking the argument values positionally
        member: Whether the overload is invoked as ``receiver.name(...)``
        literal_check: Optional compile-time validation of literal arguments
    """
    overload_id: str
    params: Tuple[CelType, ...]
    result: CelType
    impl: Callable[..., Any]
    member: bool = False
    literal_check: Optional[Callable[..., None]] = None

    def matches(self, arg_types: Sequence[CelType]) -> bool:
        if len(arg_types) != len(self.params):
            return False
        return all(p.is_assignable_from(a) for p, a in zip(self.params, arg_types))


@dataclass(frozen=True)
class FunctionDecl:
    """A named function and its overloads."""
    name: str
    overloads: Tuple[Overload, ...]

    def resolve(self, arg_types: Sequence[CelType], member: bool) -> Optional[Overload]:
        for candidate in self.overloads:
            if candidate.member == member and candidate.matches(arg_types):
                return candidate
        return None


def function(name: str, *overloads: Overload) -> FunctionDecl:
    return FunctionDecl(name, tuple(overloads))


def overload(overload_id: str, params: Iterable[CelType], result: CelType,
             impl: Callable[..., Any], member: bool = False,
             literal_check: Optional[Callable[..., None]] = None) -> Overload:
    return Overload(overload_id, tuple(params), result, impl, member, literal_check)


# Value helpers

def checked_int(value: int) -> int:
    if not INT64_MIN <= value <= INT64_MAX:
        raise EvalFault("integer overflow")
    return value


def _int_div(a: int, b: int) -> int:
    if b == 0:
        raise EvalFault("division by zero")
    quotient = abs(a) // abs(b)
    return checked_int(quotient if (a >= 0) == (b >= 0) else -quotient)


def _int_mod(a: int, b: int) -> int:
    if b == 0:
        raise EvalFault("modulus by zero")
    return a - b * _int_div(a, b)


def _double_div(a: float, b: float) -> float:
    if b == 0:
        if a == 0 or math.isnan(a):
            return math.nan
        return math.copysign(math.inf, a) * math.copysign(1.0, b)
    return a / b


_DURATION_UNITS = {
    "ns": 1e-9, "us": 1e-6, "µs": 1e-6, "ms": 1e-3, "s": 1.0, "m": 60.0, "h": 3600.0,
}
_DURATION_PART = re.compile(r"([0-9]+(?:\.[0-9]*)?|\.[0-9]+)(ns|us|µs|ms|s|m|h)")


def parse_duration(text: str) -> timedelta:
    """Parse a duration such as ``"1h30m"``, ``"2.5s"`` or ``"-30m"``."""
    remaining = text
    sign = 1
    if remaining[:1] in ("+", "-"):
        sign = -1 if remaining[0] == "-" else 1
        remaining = remaining[1:]
    if remaining == "0":
        return timedelta(0)
    if not remaining:
        raise ValueError(f"invalid duration {text!r}")

    seconds = 0.0
    pos = 0
    while pos < len(remaining):
        match = _DURATION_PART.match(remaining, pos)
        if not match:
            raise ValueError(f"invalid duration {text!r}")
        seconds += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()
    try:
        return timedelta(seconds=sign * seconds)
    except OverflowError:
        raise ValueError(f"duration {text!r} out of range")


def parse_timestamp(text: str) -> datetime:
    """Parse an RFC 3339 timestamp into an aware UTC datetime."""
    value = datetime.fromisoformat(text.replace("Z", "+00:00").replace("z", "+00:00"))
    if value.tzinfo is None:
        raise ValueError(f"timestamp {text!r} has no timezone offset")
    try:
        return value.astimezone(timezone.utc)
    except OverflowError:
        raise ValueError(f"timestamp {text!r} out of range")


def format_timestamp(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def format_duration(value: timedelta) -> str:
    seconds = value.total_seconds()
    if seconds == int(seconds):
        return f"{int(seconds)}s"
    return f"{seconds:.9f}".rstrip("0") + "s"


@lru_cache(maxsize=256)
def _regex(pattern: str) -> re.Pattern:
    return re.compile(pattern)


def _matches(text: str, pattern: str) -> bool:
    try:
        return _regex(pattern).search(text) is not None
    except re.error as e:
        raise EvalFault(f"invalid regular expression {pattern!r}: {e}")


def _split(text: str, separator: str, limit: int = -1) -> List[str]:
    if limit == 0:
        return []
    if separator == "":
        parts = list(text)
        if limit > 0 and len(parts) > limit:
            parts = parts[:limit - 1] + ["".join(parts[limit - 1:])]
        return parts
    return text.split(separator, limit - 1 if limit > 0 else -1)


def _replace(text: str, old: str, new: str, limit: int = -1) -> str:
    return text.replace(old, new, limit if limit >= 0 else -1)


def _index_of(text: str, sub: str, start: int = 0) -> int:
    if not 0 <= start <= len(text):
        raise EvalFault(f"index out of range: {start}")
    return text.find(sub, start)


def _last_index_of(text: str, sub: str) -> int:
    return text.rfind(sub)


def _zone(name: str):
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        raise EvalFault(f"unknown time zone {name!r}")


def _timestamp_part(getter: Callable[[datetime], int]):
    def utc(ts: datetime) -> int:
        return getter(ts.astimezone(timezone.utc))

    def zoned(ts: datetime, tz: str) -> int:
        return getter(ts.astimezone(_zone(tz)))

    return utc, zoned


def _to_int(value: Any) -> int:
    if isinstance(value, str):
        try:
            return checked_int(int(value, 10))
        except ValueError:
            raise EvalFault(f"cannot convert {value!r} to int")
    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            raise EvalFault("cannot convert non-finite double to int")
        return checked_int(int(value))
    if isinstance(value, datetime):
        return int(value.timestamp())
    return checked_int(int(value))


def _to_double(value: Any) -> float:
    try:
        return float(value)
    except ValueError:
        raise EvalFault(f"cannot convert {value!r} to double")


def _to_string(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, datetime):
        return format_timestamp(value)
    if isinstance(value, timedelta):
        return format_duration(value)
    return str(value)


def _short(t: CelType) -> str:
    return str(t).split(".")[-1].lower().replace("(", "_").replace(")", "")


# Literal checks receive None for arguments that are not literals

def _check_duration_literal(text: Optional[str]) -> None:
    if isinstance(text, str):
        parse_duration(text)


def _check_timestamp_literal(text: Optional[str]) -> None:
    if isinstance(text, str):
        parse_timestamp(text)


def _check_regex_literal(_text: Any, pattern: Optional[str]) -> None:
    if isinstance(pattern, str):
        re.compile(pattern)


def _check_zone_literal(_ts: Any, name: Optional[str]) -> None:
    if isinstance(name, str):
        ZoneInfo(name)


def _operators() -> List[FunctionDecl]:
    numeric_pairs = [(INT, INT), (DOUBLE, DOUBLE), (INT, DOUBLE), (DOUBLE, INT)]
    ordered = [(STRING, STRING), (TIMESTAMP, TIMESTAMP), (DURATION, DURATION), (BOOL, BOOL)]

    def relation(name: str, symbol: str, compare: Callable[[Any, Any], bool]) -> FunctionDecl:
        return function(name, *[
            overload(f"{symbol}_{_short(a)}_{_short(b)}", (a, b), BOOL, compare)
            for a, b in numeric_pairs + ordered
        ])

    return [
        function("_+_",
                 overload("add_int64", (INT, INT), INT, lambda a, b: checked_int(a + b)),
                 overload("add_double", (DOUBLE, DOUBLE), DOUBLE, lambda a, b: a + b),
                 overload("add_string", (STRING, STRING), STRING, lambda a, b: a + b),
                 overload("add_list", (list_of(DYN), list_of(DYN)), list_of(DYN), lambda a, b: list(a) + list(b)),
                 overload("add_timestamp_duration", (TIMESTAMP, DURATION), TIMESTAMP, lambda a, b: a + b),
                 overload("add_duration_timestamp", (DURATION, TIMESTAMP), TIMESTAMP, lambda a, b: a + b),
                 overload("add_duration_duration", (DURATION, DURATION), DURATION, lambda a, b: a + b)),
        function("_-_",
                 overload("subtract_int64", (INT, INT), INT, lambda a, b: checked_int(a - b)),
                 overload("subtract_double", (DOUBLE, DOUBLE), DOUBLE, lambda a, b: a - b),
                 overload("subtract_timestamp_timestamp", (TIMESTAMP, TIMESTAMP), DURATION, lambda a, b: a - b),
                 overload("subtract_timestamp_duration", (TIMESTAMP, DURATION), TIMESTAMP, lambda a, b: a - b),
                 overload("subtract_duration_duration", (DURATION, DURATION), DURATION, lambda a, b: a - b)),
        function("_*_",
                 overload("multiply_int64", (INT, INT), INT, lambda a, b: checked_int(a * b)),
                 overload("multiply_double", (DOUBLE, DOUBLE), DOUBLE, lambda a, b: a * b)),
        function("_/_",
                 overload("divide_int64", (INT, INT), INT, _int_div),
                 overload("divide_double", (DOUBLE, DOUBLE), DOUBLE, _double_div)),
        function("_%_",
                 overload("modulo_int64", (INT, INT), INT, _int_mod)),
        function("-_",
                 overload("negate_int64", (INT,), INT, lambda a: checked_int(-a)),
                 overload("negate_double", (DOUBLE,), DOUBLE, lambda a: -a),
                 overload("negate_duration", (DURATION,), DURATION, lambda a: -a)),
        relation("_<_", "less", lambda a, b: a < b),
        relation("_<=_", "less_equals", lambda a, b: a <= b),
        relation("_>_", "greater", lambda a, b: a > b),
        relation("_>=_", "greater_equals", lambda a, b: a >= b),
    ]


def _strings() -> List[FunctionDecl]:
    def member(name: str, params, result, impl, literal_check=None) -> Overload:
        receiver, rest = _short(params[0]), "_".join(_short(p) for p in params[1:])
        overload_id = f"{receiver}_{name}_{rest}" if rest else f"{receiver}_{name}"
        return overload(overload_id, params, result, impl, member=True, literal_check=literal_check)

    return [
        function("size",
                 overload("size_string", (STRING,), INT, len),
                 overload("size_list", (list_of(DYN),), INT, len),
                 member("size", (STRING,), INT, len),
                 member("size", (list_of(DYN),), INT, len)),
        function("contains", member("contains", (STRING, STRING), BOOL, lambda s, sub: sub in s)),
        function("startsWith", member("startsWith", (STRING, STRING), BOOL, lambda s, p: s.startswith(p))),
        function("endsWith", member("endsWith", (STRING, STRING), BOOL, lambda s, p: s.endswith(p))),
        function("matches",
                 overload("matches_string", (STRING, STRING), BOOL, _matches, literal_check=_check_regex_literal),
                 member("matches", (STRING, STRING), BOOL, _matches, literal_check=_check_regex_literal)),
        function("lowerAscii", member("lowerAscii", (STRING,), STRING,
                                      lambda s: "".join(c.lower() if c.isascii() else c for c in s))),
        function("upperAscii", member("upperAscii", (STRING,), STRING,
                                      lambda s: "".join(c.upper() if c.isascii() else c for c in s))),
        function("trim", member("trim", (STRING,), STRING, str.strip)),
        function("split",
                 member("split", (STRING, STRING), list_of(STRING), _split),
                 member("split", (STRING, STRING, INT), list_of(STRING), _split)),
        function("replace",
                 member("replace", (STRING, STRING, STRING), STRING, _replace),
                 member("replace", (STRING, STRING, STRING, INT), STRING, _replace)),
        function("indexOf",
                 member("indexOf", (STRING, STRING), INT, _index_of),
                 member("indexOf", (STRING, STRING, INT), INT, _index_of)),
        function("lastIndexOf", member("lastIndexOf", (STRING, STRING), INT, _last_index_of)),
        function("join",
                 member("join", (list_of(STRING),), STRING, lambda items: "".join(items)),
                 member("join", (list_of(STRING), STRING), STRING, lambda items, sep: sep.join(items))),
    ]


def _time() -> List[FunctionDecl]:
    accessors = {
        "getFullYear": lambda d: d.year,
        "getMonth": lambda d: d.month - 1,
        "getDate": lambda d: d.day,
        "getDayOfMonth": lambda d: d.day - 1,
        "getDayOfYear": lambda d: d.timetuple().tm_yday - 1,
        "getDayOfWeek": lambda d: (d.weekday() + 1) % 7,
    }
    timestamp_only = []
    for name, getter in accessors.items():
        utc, zoned = _timestamp_part(getter)
        timestamp_only.append(function(
            name,
            overload(f"timestamp_to_{name}", (TIMESTAMP,), INT, utc, member=True),
            overload(f"timestamp_to_{name}_with_tz", (TIMESTAMP, STRING), INT, zoned, member=True,
                     literal_check=_check_zone_literal),
        ))

    shared = {
        "getHours": (lambda d: d.hour, lambda td: int(td.total_seconds() / 3600)),
        "getMinutes": (lambda d: d.minute, lambda td: int(td.total_seconds() / 60)),
        "getSeconds": (lambda d: d.second, lambda td: int(td.total_seconds())),
        "getMilliseconds": (lambda d: d.microsecond // 1000, lambda td: int(td.total_seconds() * 1000)),
    }
    both = []
    for name, (ts_getter, duration_getter) in shared.items():
        utc, zoned = _timestamp_part(ts_getter)
        both.append(function(
            name,
            overload(f"timestamp_to_{name}", (TIMESTAMP,), INT, utc, member=True),
            overload(f"timestamp_to_{name}_with_tz", (TIMESTAMP, STRING), INT, zoned, member=True,
                     literal_check=_check_zone_literal),
            overload(f"duration_to_{name}", (DURATION,), INT, duration_getter, member=True),
        ))

    def parsing(parse):
        def impl(text: str):
            try:
                return parse(text)
            except (ValueError, OverflowError) as e:
                raise EvalFault(str(e))
        return impl

    return timestamp_only + both + [
        function("duration",
                 overload("string_to_duration", (STRING,), DURATION, parsing(parse_duration),
                          literal_check=_check_duration_literal),
                 overload("duration_to_duration", (DURATION,), DURATION, lambda d: d)),
        function("timestamp",
                 overload("string_to_timestamp", (STRING,), TIMESTAMP, parsing(parse_timestamp),
                          literal_check=_check_timestamp_literal),
                 overload("timestamp_to_timestamp", (TIMESTAMP,), TIMESTAMP, lambda t: t)),
    ]


def _conversions() -> List[FunctionDecl]:
    return [
        function("string", *[
            overload(f"{_short(t)}_to_string", (t,), STRING, _to_string)
            for t in (STRING, INT, DOUBLE, BOOL, TIMESTAMP, DURATION)
        ]),
        function("int", *[
            overload(f"{_short(t)}_to_int64", (t,), INT, _to_int)
            for t in (INT, DOUBLE, STRING, TIMESTAMP)
        ]),
        function("double", *[
            overload(f"{_short(t)}_to_double", (t,), DOUBLE, _to_double)
            for t in (DOUBLE, INT, STRING)
        ]),
    ]


def standard_library() -> List[FunctionDecl]:
    """All functions declared in the default filtering environment."""
    return _operators() + _strings() + _time() + _conversions()
