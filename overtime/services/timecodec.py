"""Parsing and formatting of clock times, date keys and durations.

Everything here is lenient: malformed input degrades to 0 (or is echoed back
for date keys) instead of raising, so a formatting glitch never interrupts a
running shift.
"""
import math
import re
from datetime import date, datetime, timedelta

_INT_PREFIX = re.compile(r"^\s*([+-]?\d+)")

_WEEKDAYS = {
    "de": ("Mo", "Di", "Mi", "Do", "Fr", "Sa", "So"),
    "en": ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"),
}


def _parse_int_prefix(value: str) -> int | None:
    """Parse the leading integer of a string, None if there is none or it is too long"""
    match = _INT_PREFIX.match(value)
    if not match:
        return None
    try:
        return int(match.group(1))
    except ValueError:
        return None


def coerce_number(value, default: float = 0) -> float:
    """Convert a loosely typed value to a finite number, falling back to default"""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        number = value
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            return default
        try:
            number = float(stripped)
        except ValueError:
            return default
    else:
        return default
    if isinstance(number, float) and not math.isfinite(number):
        return default
    return number


def parse_time_to_minutes(time_string) -> int:
    """Convert "HH:MM" to minutes since midnight. Malformed input yields 0."""
    if not time_string or not isinstance(time_string, str):
        return 0
    parts = time_string.split(":")
    hours = _parse_int_prefix(parts[0]) or 0
    minutes = (_parse_int_prefix(parts[1]) if len(parts) > 1 else None) or 0
    return hours * 60 + minutes


def format_time_of_day(hours, minutes) -> str:
    """Format an hour/minute pair as HH:MM"""
    h = math.floor(coerce_number(hours))
    m = math.floor(coerce_number(minutes))
    return f"{h:02d}:{m:02d}"


def format_date_key(value: date) -> str:
    """Format a date (or datetime) as YYYY-MM-DD"""
    return f"{value.year}-{value.month:02d}-{value.day:02d}"


def parse_date_key(date_key) -> datetime | None:
    """
    Parse YYYY-MM-DD into a local datetime at noon.

    Noon keeps whole-day arithmetic clear of midnight rollover. Returns None
    when a component is missing, zero or not a valid calendar date.
    """
    if not isinstance(date_key, str):
        return None
    parts = (date_key.split("-") + ["", ""])[:3]
    year, month, day = (_parse_int_prefix(part) for part in parts)
    if not year or not month or not day:
        return None
    try:
        return datetime(year, month, day, 12, 0, 0, 0)
    except ValueError:
        return None


def add_days_to_date_key(date_key, days) -> str:
    """Shift a date key by whole days. Invalid keys are returned unchanged."""
    parsed = parse_date_key(date_key)
    if parsed is None:
        return date_key
    try:
        shifted = parsed + timedelta(days=int(coerce_number(days)))
    except OverflowError:
        return date_key
    return format_date_key(shifted)


def format_date_for_display(date_key, locale: str = "de-DE") -> str:
    """Render a date key as short weekday plus DD.MM, e.g. "Mo., 19.10." """
    parsed = parse_date_key(date_key)
    if parsed is None:
        return date_key

    language = "en"
    if isinstance(locale, str) and locale:
        language = re.split(r"[-_]", locale)[0].lower()
    weekdays = _WEEKDAYS.get(language, _WEEKDAYS["en"])
    weekday = weekdays[parsed.weekday()]

    if language == "de":
        return f"{weekday}., {parsed.day:02d}.{parsed.month:02d}."
    return f"{weekday}, {parsed.day:02d}.{parsed.month:02d}."


def format_minutes_hhmm(total_minutes) -> str:
    """Format minutes as HH:MM. Negative input clamps to 00:00, hours do not wrap."""
    minutes = max(0, math.floor(coerce_number(total_minutes)))
    hours, rest = divmod(minutes, 60)
    return f"{hours:02d}:{rest:02d}"


def format_balance(total_minutes) -> str:
    """Format a signed balance as +H:MM / -H:MM, zero as 0:00"""
    if isinstance(total_minutes, bool) or not isinstance(total_minutes, (int, float)):
        return "0:00"
    if isinstance(total_minutes, float) and not math.isfinite(total_minutes):
        return "0:00"
    if total_minutes == 0:
        return "0:00"
    sign = "-" if total_minutes < 0 else "+"
    hours, minutes = divmod(int(abs(total_minutes)), 60)
    return f"{sign}{hours}:{minutes:02d}"


def format_pause_duration(total_ms) -> str:
    """Format a pause duration in milliseconds as M:SS"""
    ms = max(0, math.floor(coerce_number(total_ms)))
    minutes, rest = divmod(ms, 60000)
    return f"{minutes}:{rest // 1000:02d}"


def timestamp_to_datetime(timestamp_ms: int) -> datetime:
    """Local wall-clock datetime for an epoch-millisecond timestamp"""
    return datetime.fromtimestamp(timestamp_ms / 1000)


def timestamp_to_time_of_day(timestamp_ms: int) -> str:
    """Format an epoch-millisecond timestamp as local HH:MM"""
    return timestamp_to_datetime(timestamp_ms).strftime("%H:%M")


def timestamp_to_date_key(timestamp_ms: int) -> str:
    """Local date key of an epoch-millisecond timestamp"""
    return format_date_key(timestamp_to_datetime(timestamp_ms))


def timestamp_for_time_today(time_string: str, now_ms: int) -> int:
    """
    Epoch milliseconds of today (relative to now_ms) at the given HH:MM.

    Seconds are zeroed; out-of-range hours roll over into the next day. A time
    too large for the calendar falls back to midnight.
    """
    midnight = timestamp_to_datetime(now_ms).replace(
        hour=0, minute=0, second=0, microsecond=0
    )
    parts = (time_string or "").split(":")
    hours = _parse_int_prefix(parts[0]) or 0
    minutes = (_parse_int_prefix(parts[1]) if len(parts) > 1 else None) or 0
    try:
        moment = midnight + timedelta(hours=hours, minutes=minutes)
    except OverflowError:
        moment = midnight
    return int(moment.timestamp() * 1000)


def date_key_time_to_timestamp(date_key, time_string) -> int | None:
    """Epoch milliseconds of a date key at a given HH:MM, None for invalid keys"""
    parsed = parse_date_key(date_key)
    if parsed is None:
        return None
    midnight = parsed.replace(hour=0)
    try:
        moment = midnight + timedelta(minutes=parse_time_to_minutes(time_string))
    except OverflowError:
        return None
    return int(moment.timestamp() * 1000)
