"""Decorator resolution, unit conversions and parallelism arithmetic.

Every conversion that can meet malformed input returns ``None`` ("no data")
instead of raising, so a bad field never aborts a run.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from datetime import datetime, timedelta
from decimal import ROUND_HALF_EVEN, Decimal, InvalidOperation

from dateutil import parser as date_parser

from gc_inspect.errors import StartDateError

# Values beyond a signed 64-bit integer are treated as overflow
MAX_VALUE = 2**63 - 1

_ONE = Decimal(1)

# ============================================================
# NUMERIC CONVERSIONS
# ============================================================


def to_decimal(text: str | None) -> Decimal | None:
    """Parse a number that may use ',' as the decimal separator."""
    if text is None:
        return None
    try:
        value = Decimal(text.strip().replace(",", "."))
    except InvalidOperation:
        return None
    if not value.is_finite():
        return None
    return value


def _round(value: Decimal) -> int | None:
    rounded = int(value.quantize(_ONE, rounding=ROUND_HALF_EVEN))
    if abs(rounded) > MAX_VALUE:
        return None
    return rounded


def to_int(text: str | None) -> int | None:
    value = to_decimal(text)
    return None if value is None else _round(value)


def seconds_to_millis(text: str | None) -> int | None:
    value = to_decimal(text)
    return None if value is None else _round(value * 1000)


def seconds_to_micros(text: str | None) -> int | None:
    value = to_decimal(text)
    return None if value is None else _round(value * 1_000_000)


def seconds_to_centis(text: str | None) -> int | None:
    """Convert a CPU time in seconds (``16.40``) to centiseconds (``1640``)."""
    value = to_decimal(text)
    return None if value is None else _round(value * 100)


def millis_to_micros(text: str | None) -> int | None:
    value = to_decimal(text)
    return None if value is None else _round(value * 1000)


def nanos_to_micros(text: str | None) -> int | None:
    value = to_decimal(text)
    return None if value is None else _round(value / 1000)


def nanos_to_millis(text: str | None) -> int | None:
    value = to_decimal(text)
    return None if value is None else _round(value / 1_000_000)


def micros_to_millis(micros: int) -> int:
    return int(Decimal(micros).scaleb(-3).quantize(_ONE, rounding=ROUND_HALF_EVEN))


_SIZE_TOKEN = re.compile(r"(?P<value>\d+(?:[.,]\d+)?)(?P<unit>[BbKkMmGg])")

_UNIT_FACTORS: dict[str, Decimal] = {
    "B": Decimal(1) / Decimal(1024),
    "K": Decimal(1),
    "M": Decimal(1024),
    "G": Decimal(1024 * 1024),
}


def parse_size_to_kb(size_text: str | None, unit: str | None = None) -> int | None:
    """Parse a JVM size like '1024K', '1.5M', '0.0B' (or value plus unit) into KB.

    Returns None for malformed or overflowing input.
    """
    if size_text is None:
        return None
    if unit is None:
        match = _SIZE_TOKEN.fullmatch(size_text.strip())
        if not match:
            return None
        size_text, unit = match.group("value"), match.group("unit")
    factor = _UNIT_FACTORS.get(unit.upper())
    value = to_decimal(size_text)
    if factor is None or value is None:
        return None
    return _round(value * factor)


def calc_parallelism(user: int | None, sys: int | None, real: int | None) -> int | None:
    """Percent of CPU time to wall time, rounded up; undefined when real is 0.

    user=1640, sys=9, real=213 (centiseconds) gives 775.
    """
    if user is None or sys is None or real is None or real <= 0:
        return None
    return -(-100 * (user + sys) // real)


def is_inverted_parallelism(user: int | None, sys: int | None, real: int | None) -> bool:
    """Wall time exceeds CPU time: the parallel workers were starved."""
    if user is None or sys is None or real is None or real <= 0:
        return False
    return real > user + sys


def calc_throughput(pause_micros: int, elapsed_micros: int) -> int | None:
    """Percent of elapsed time not spent paused; None when elapsed is unknown."""
    if elapsed_micros <= 0:
        return None
    value = 100 - Decimal(pause_micros) * 100 / Decimal(elapsed_micros)
    return max(_round(value) or 0, 0)


def calc_percent(part: int, whole: int) -> int | None:
    """``part`` as a half-even rounded percentage of ``whole``."""
    if whole <= 0:
        return None
    return _round(Decimal(part) * 100 / Decimal(whole))


def calc_ratio(numerator: int, denominator: int) -> int | None:
    if denominator <= 0:
        return None
    return _round(Decimal(numerator) / Decimal(denominator))


def format_throughput(throughput: int | None, event_count: int) -> str:
    """Render a throughput, marking a 100 that hides logged pauses with '~'."""
    if throughput is None:
        return "n/a"
    if throughput == 100 and event_count > 0:
        return "~100%"
    return f"{throughput}%"


_SIZE_UNITS = ("K", "M", "G", "T")


def format_kb(kilobytes: int | None) -> str:
    """Render kilobytes in the largest unit the value reaches."""
    if kilobytes is None:
        return "n/a"
    value = float(kilobytes)
    unit = 0
    while value >= 1024 and unit < len(_SIZE_UNITS) - 1:
        value /= 1024
        unit += 1
    if unit == 0:
        return f"{kilobytes}K"
    return f"{value:.1f}{_SIZE_UNITS[unit]}"


# ============================================================
# DATESTAMPS
# ============================================================


def parse_datestamp(datestamp: str) -> datetime | None:
    """Parse a GC log datestamp such as 2021-03-13T03:37:40.051+0530."""
    datestamp_str = datestamp.strip().replace(",", ".")
    datestamp_str = datestamp_str.replace("Z", "+00:00")
    if re.search(r"[+-]\d{4}$", datestamp_str):
        datestamp_str = f"{datestamp_str[:-2]}:{datestamp_str[-2:]}"
    try:
        return datetime.fromisoformat(datestamp_str)
    except ValueError:
        return None


def parse_start_date(text: str) -> datetime:
    """Parse a caller supplied JVM start date (e.g. '2021-03-13 03:24:00,123')."""
    try:
        return date_parser.parse(text)
    except (ValueError, OverflowError) as e:
        raise StartDateError(f"Unrecognized JVM start date: {text}") from e


def datestamp_to_millis(datestamp: str, jvm_start: datetime) -> int | None:
    """Milliseconds between the JVM start and a datestamp."""
    moment = parse_datestamp(datestamp)
    if moment is None:
        return None
    start = jvm_start
    if (moment.tzinfo is None) != (start.tzinfo is None):
        moment = moment.replace(tzinfo=None)
        start = start.replace(tzinfo=None)
    return int(round((moment - start) / timedelta(milliseconds=1)))


# ============================================================
# DECORATOR RESOLUTION
# ============================================================


def resolve_timestamp(
    groups: Mapping[str, str | None], jvm_start: datetime | None = None
) -> int | None:
    """Resolve decorator groups to milliseconds since JVM start.

    Uptime millis wins over uptime seconds, which wins over uptime nanos and
    finally the datestamp. A datestamp resolves only when the JVM start date is
    known; otherwise the timestamp stays unresolved (None).
    """
    if (millis := groups.get("uptimemillis")) is not None:
        return to_int(millis)
    if (seconds := groups.get("uptime")) is not None:
        return seconds_to_millis(seconds)
    if (nanos := groups.get("uptimenanos")) is not None:
        return nanos_to_millis(nanos)
    if (datestamp := groups.get("datestamp")) is not None and jvm_start is not None:
        return datestamp_to_millis(datestamp, jvm_start)
    return None


def start_from_end(end_timestamp: int | None, duration_micros: int | None) -> int | None:
    """Start of an event that is logged with its end timestamp."""
    if end_timestamp is None:
        return None
    if duration_micros is None:
        return end_timestamp
    return end_timestamp - micros_to_millis(duration_micros)
