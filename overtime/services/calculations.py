import math
from dataclasses import dataclass

from overtime.config import (
    TARGET_MINUTES,
    BREAK_THRESHOLD_MINUTES,
    MANDATORY_BREAK_MINUTES,
)
from overtime.services.timecodec import (
    coerce_number,
    date_key_time_to_timestamp,
    parse_time_to_minutes,
)

MINUTES_PER_DAY = 24 * 60
MS_PER_MINUTE = 60 * 1000


@dataclass(frozen=True)
class WorkBalanceResult:
    gross_worked_minutes: int
    mandatory_break_minutes: int
    manual_break_minutes: int
    effective_worked_minutes: int
    balance_minutes: int
    daily_target_minutes: int
    expected_end_timestamp: int | None


def _non_negative_minutes(value) -> int:
    """Coerce a loosely typed minute value to a non-negative integer"""
    return max(0, math.floor(coerce_number(value)))


def minutes_between(start_timestamp, end_timestamp) -> int:
    """Whole minutes elapsed between two epoch-ms timestamps, never negative"""
    start = coerce_number(start_timestamp)
    end = coerce_number(end_timestamp)
    diff_ms = max(0, end - start)
    return math.floor(diff_ms / MS_PER_MINUTE)


def calculate_gross_minutes(start_time: str, end_time: str) -> int:
    """
    Clock-to-clock duration of a shift in minutes.

    An end before the start means the shift ends on the next day; a shift never
    spans more than 24 hours.
    """
    gross = parse_time_to_minutes(end_time) - parse_time_to_minutes(start_time)
    if gross < 0:
        gross += MINUTES_PER_DAY
    return gross


def is_overnight_shift(start_time: str, end_time: str) -> bool:
    """True when the shift ends on the following calendar day"""
    return parse_time_to_minutes(end_time) < parse_time_to_minutes(start_time)


def calculate_mandatory_break(gross_worked_minutes) -> int:
    """Return the fixed mandatory break once gross time exceeds the threshold"""
    if coerce_number(gross_worked_minutes) > BREAK_THRESHOLD_MINUTES:
        return MANDATORY_BREAK_MINUTES
    return 0


def calculate_break_minutes(gross_worked_minutes, extra_pause_minutes=0) -> int:
    """Total break of a shift: mandatory break plus pauses taken on top"""
    return calculate_mandatory_break(gross_worked_minutes) + _non_negative_minutes(
        extra_pause_minutes
    )


def calculate_worked_minutes(start_time: str, end_time: str, break_minutes=0) -> int:
    """Net worked minutes of a closed shift, floored at zero"""
    gross = calculate_gross_minutes(start_time, end_time)
    return max(0, gross - _non_negative_minutes(break_minutes))


def calculate_difference(worked_minutes, daily_target_minutes=TARGET_MINUTES) -> int:
    """Overtime (positive) or deficit (negative) of a day"""
    return _non_negative_minutes(worked_minutes) - _non_negative_minutes(
        daily_target_minutes
    )


def calculate_progress_percent(effective_worked_minutes, daily_target_minutes) -> float:
    """Share of the daily target reached, capped at 100"""
    target = _non_negative_minutes(daily_target_minutes)
    if target == 0:
        return 100.0
    return min(100.0, _non_negative_minutes(effective_worked_minutes) / target * 100)


def _balance_from_gross(
    gross_worked_minutes: int,
    daily_target_minutes,
    manual_break_minutes,
    start_timestamp: int | None,
) -> WorkBalanceResult:
    mandatory_break = calculate_mandatory_break(gross_worked_minutes)
    manual_break = _non_negative_minutes(manual_break_minutes)
    target = _non_negative_minutes(daily_target_minutes)

    effective = max(0, gross_worked_minutes - mandatory_break - manual_break)
    expected_end = None
    if start_timestamp is not None:
        expected_end = start_timestamp + (target + mandatory_break + manual_break) * MS_PER_MINUTE

    return WorkBalanceResult(
        gross_worked_minutes=gross_worked_minutes,
        mandatory_break_minutes=mandatory_break,
        manual_break_minutes=manual_break,
        effective_worked_minutes=effective,
        balance_minutes=effective - target,
        daily_target_minutes=target,
        expected_end_timestamp=expected_end,
    )


def calculate_live_work_balance(
    work_start,
    now,
    daily_target_minutes=TARGET_MINUTES,
    manual_break_minutes=0,
) -> WorkBalanceResult:
    """
    Balance of a running shift from its start timestamp up to now.

    manual_break_minutes is the pause time accumulated so far. The expected end
    assumes breaks already taken stay fixed for the rest of the shift:
    expected_end = work_start + target + mandatory break + manual break.
    """
    start = math.floor(coerce_number(work_start))
    gross = minutes_between(start, now)
    return _balance_from_gross(gross, daily_target_minutes, manual_break_minutes, start)


def calculate_shift_balance(
    start_time: str,
    end_time: str,
    daily_target_minutes=TARGET_MINUTES,
    manual_break_minutes=0,
    date_key: str | None = None,
) -> WorkBalanceResult:
    """
    Balance of a closed shift given as two HH:MM clock times.

    With a valid date_key the expected end is anchored to that day's start
    time, otherwise it is left as None.
    """
    gross = calculate_gross_minutes(start_time, end_time)
    start_timestamp = None
    if date_key is not None:
        start_timestamp = date_key_time_to_timestamp(date_key, start_time)
    return _balance_from_gross(gross, daily_target_minutes, manual_break_minutes, start_timestamp)
