"""General-purpose time and number helpers shared by the capture pipeline."""

from __future__ import annotations

import re
from decimal import ROUND_DOWN, Decimal, InvalidOperation
from typing import Union

_PLAIN_NUMBER_RE = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)$")
_PERCENT_RE = re.compile(r"^(\d+\.?\d*|\.\d+)%$")
_INTERVAL_TOKEN_RE = re.compile(r"(\d+\.?\d*|\.\d+)([hms]?)")
_UNIT_SECONDS = {"h": 3600.0, "m": 60.0, "s": 1.0, "": 1.0}

IntervalValue = Union[str, int, float]


def is_percentage(value: object) -> bool:
    """Return True for strings such as ``"5%"`` or ``"5.5%"``."""

    return isinstance(value, str) and _PERCENT_RE.match(value.strip()) is not None


def parse_interval(value: IntervalValue) -> float:
    """
    Convert an interval literal into seconds.

    Accepts plain numbers (``90``, ``"12.5"``) and unit strings combining
    ``h``, ``m`` and ``s`` (``"1h30m"``, ``"2m5.5s"``, ``"1m30"``). Units may
    repeat and appear in any order, so ``"1m1m"`` equals two minutes.

    Raises:
        ValueError: If ``value`` is not a recognised interval.
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid interval: {value!r}")
    if isinstance(value, (int, float)):
        return float(value)
    text = str(value).strip().lower()
    if not text:
        raise ValueError("Invalid interval: empty value")
    if _PLAIN_NUMBER_RE.match(text):
        return float(text)
    if ".." in text:
        raise ValueError(f"Invalid interval: {value!r}")

    total = 0.0
    position = 0
    for match in _INTERVAL_TOKEN_RE.finditer(text):
        if match.start() != position:
            raise ValueError(f"Invalid interval: {value!r}")
        total += float(match.group(1)) * _UNIT_SECONDS[match.group(2)]
        position = match.end()
    if position != len(text):
        raise ValueError(f"Invalid interval: {value!r}")
    return total


def percent_of(reference: float, percentage: str) -> float:
    """Return ``percentage`` (e.g. ``"5.5%"``) of ``reference``."""

    return reference * float(percentage.strip().rstrip("%")) / 100.0


def resolve_offset(value: IntervalValue, reference: float) -> float:
    """Resolve an interval literal or a percentage of ``reference`` into seconds."""

    if is_percentage(value):
        return percent_of(reference, str(value))
    return parse_interval(value)


def truncate_decimals(value: float, decimals: int) -> float:
    """Keep ``decimals`` digits, always rounding toward zero."""

    try:
        quantum = Decimal(1).scaleb(-decimals)
        return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_DOWN))
    except InvalidOperation as exc:
        raise ValueError(f"Cannot truncate {value!r}") from exc


def to_precision(seconds: float, has_ms: bool) -> float:
    """Apply a decoder's timestamp precision: whole seconds or milliseconds."""

    if has_ms:
        return truncate_decimals(seconds, 3)
    return float(int(seconds))


def pretty_stamp(seconds: float, has_ms: bool = True) -> str:
    """Format ``seconds`` as ``[h:]mm:ss[.cc]`` for log and console output."""

    whole = int(seconds)
    fraction = seconds - whole
    hours, remainder = divmod(whole, 3600)
    minutes, secs = divmod(remainder, 60)
    text = f"{minutes:02d}:{secs:02d}"
    if hours:
        text = f"{hours}:{text}"
    if has_ms:
        centis = int(fraction * 100 + 0.5)
        if centis >= 100:
            centis = 99
        text = f"{text}.{centis:02d}"
    return text


def round_up_to_multiple(value: int, divisor: int) -> int:
    """Round ``value`` up to the closest multiple of ``divisor``."""

    if divisor <= 0:
        return value
    remainder = value % divisor
    if remainder:
        value += divisor - remainder
    return value
