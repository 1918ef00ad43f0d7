import unittest
from datetime import date, datetime, timedelta

from overtime.services.timecodec import (
    add_days_to_date_key,
    date_key_time_to_timestamp,
    format_balance,
    format_date_for_display,
    format_date_key,
    format_minutes_hhmm,
    format_pause_duration,
    format_time_of_day,
    parse_date_key,
    parse_time_to_minutes,
    timestamp_for_time_today,
    timestamp_to_date_key,
    timestamp_to_time_of_day,
)


def local_ms(*args) -> int:
    return int(datetime(*args).timestamp() * 1000)


class ParseTimeTestCase(unittest.TestCase):
    def test_valid_times(self) -> None:
        self.assertEqual(parse_time_to_minutes("00:00"), 0)
        self.assertEqual(parse_time_to_minutes("08:30"), 510)
        self.assertEqual(parse_time_to_minutes("23:59"), 1439)
        self.assertEqual(parse_time_to_minutes("7:5"), 425)

    def test_malformed_input_yields_zero(self) -> None:
        for value in ("", None, 830, "abc", ":", "xx:yy", [], "  "):
            with self.subTest(value=value):
                self.assertEqual(parse_time_to_minutes(value), 0)

    def test_missing_or_broken_part_defaults_to_zero(self) -> None:
        self.assertEqual(parse_time_to_minutes("8"), 480)
        self.assertEqual(parse_time_to_minutes("08:xx"), 480)
        self.assertEqual(parse_time_to_minutes("xx:15"), 15)
        self.assertEqual(parse_time_to_minutes("09:15:59"), 555)

    def test_overlong_digit_runs_yield_zero(self) -> None:
        self.assertEqual(parse_time_to_minutes("9" * 5000 + ":00"), 0)
        self.assertEqual(parse_time_to_minutes("08:" + "9" * 5000), 480)


class DateKeyTestCase(unittest.TestCase):
    def test_format_pads_month_and_day(self) -> None:
        self.assertEqual(format_date_key(date(2026, 1, 5)), "2026-01-05")
        self.assertEqual(format_date_key(datetime(2026, 11, 25, 23, 59)), "2026-11-25")

    def test_parse_returns_local_noon(self) -> None:
        self.assertEqual(parse_date_key("2026-03-07"), datetime(2026, 3, 7, 12, 0, 0))

    def test_parse_rejects_zero_or_missing_components(self) -> None:
        for key in ("2026-00-07", "2026-03-00", "0-01-01", "2026-03", "garbage", "", None, 20260307):
            with self.subTest(key=key):
                self.assertIsNone(parse_date_key(key))

    def test_parse_rejects_impossible_dates(self) -> None:
        self.assertIsNone(parse_date_key("2026-02-31"))
        self.assertIsNone(parse_date_key("2026-13-01"))

    def test_round_trip_through_a_leap_year(self) -> None:
        day = date(2024, 1, 1)
        while day.year == 2024:
            self.assertEqual(parse_date_key(format_date_key(day)).date(), day)
            day += timedelta(days=1)

    def test_add_days_crosses_month_and_year(self) -> None:
        self.assertEqual(add_days_to_date_key("2026-02-28", 1), "2026-03-01")
        self.assertEqual(add_days_to_date_key("2024-02-28", 1), "2024-02-29")
        self.assertEqual(add_days_to_date_key("2025-12-31", 1), "2026-01-01")
        self.assertEqual(add_days_to_date_key("2026-01-01", -1), "2025-12-31")
        self.assertEqual(add_days_to_date_key("2026-03-01", 30), "2026-03-31")

    def test_add_days_truncates_and_coerces(self) -> None:
        self.assertEqual(add_days_to_date_key("2026-01-10", 1.9), "2026-01-11")
        self.assertEqual(add_days_to_date_key("2026-01-10", -1.9), "2026-01-09")
        self.assertEqual(add_days_to_date_key("2026-01-10", "2"), "2026-01-12")
        self.assertEqual(add_days_to_date_key("2026-01-10", "soon"), "2026-01-10")

    def test_add_days_returns_invalid_key_unchanged(self) -> None:
        self.assertEqual(add_days_to_date_key("not-a-date", 1), "not-a-date")


class DisplayFormattingTestCase(unittest.TestCase):
    def test_date_for_display(self) -> None:
        # 2026-10-19 is a Monday
        self.assertEqual(format_date_for_display("2026-10-19"), "Mo., 19.10.")
        self.assertEqual(format_date_for_display("2026-10-25", "de-DE"), "So., 25.10.")
        self.assertEqual(format_date_for_display("2026-10-19", "en-US"), "Mon, 19.10.")
        self.assertEqual(format_date_for_display("2026-10-19", "fr-FR"), "Mon, 19.10.")

    def test_date_for_display_echoes_invalid_key(self) -> None:
        self.assertEqual(format_date_for_display("not-a-date"), "not-a-date")

    def test_minutes_hhmm(self) -> None:
        self.assertEqual(format_minutes_hhmm(0), "00:00")
        self.assertEqual(format_minutes_hhmm(9), "00:09")
        self.assertEqual(format_minutes_hhmm(135), "02:15")
        self.assertEqual(format_minutes_hhmm(1500), "25:00")
        self.assertEqual(format_minutes_hhmm(59.9), "00:59")
        self.assertEqual(format_minutes_hhmm(-5), "00:00")
        self.assertEqual(format_minutes_hhmm("abc"), "00:00")

    def test_balance(self) -> None:
        self.assertEqual(format_balance(0), "0:00")
        self.assertEqual(format_balance(65), "+1:05")
        self.assertEqual(format_balance(-7), "-0:07")
        self.assertEqual(format_balance(-600), "-10:00")
        self.assertEqual(format_balance(None), "0:00")

    def test_pause_duration(self) -> None:
        self.assertEqual(format_pause_duration(0), "0:00")
        self.assertEqual(format_pause_duration(305_000), "5:05")
        self.assertEqual(format_pause_duration(3_600_000), "60:00")

    def test_time_of_day(self) -> None:
        self.assertEqual(format_time_of_day(8, 5), "08:05")
        self.assertEqual(format_time_of_day(None, "x"), "00:00")


class TimestampTestCase(unittest.TestCase):
    def test_time_today_keeps_date_and_zeroes_seconds(self) -> None:
        now = local_ms(2026, 2, 18, 14, 23, 45)
        self.assertEqual(timestamp_for_time_today("08:00", now), local_ms(2026, 2, 18, 8, 0))
        self.assertEqual(timestamp_for_time_today("", now), local_ms(2026, 2, 18, 0, 0))

    def test_timestamp_rendering(self) -> None:
        ts = local_ms(2026, 2, 18, 7, 4, 59)
        self.assertEqual(timestamp_to_time_of_day(ts), "07:04")
        self.assertEqual(timestamp_to_date_key(ts), "2026-02-18")

    def test_date_key_time_to_timestamp(self) -> None:
        self.assertEqual(
            date_key_time_to_timestamp("2026-02-18", "15:00"), local_ms(2026, 2, 18, 15, 0)
        )
        self.assertIsNone(date_key_time_to_timestamp("bad", "15:00"))

    def test_times_beyond_the_calendar_do_not_raise(self) -> None:
        now = local_ms(2026, 2, 18, 14, 23, 45)
        huge = "9" * 20 + ":00"
        self.assertEqual(timestamp_for_time_today(huge, now), local_ms(2026, 2, 18, 0, 0))
        self.assertIsNone(date_key_time_to_timestamp("2026-02-18", huge))
        self.assertIsNone(parse_date_key("9" * 5000 + "-01-01"))
        self.assertEqual(add_days_to_date_key("9" * 5000 + "-01-01", 1), "9" * 5000 + "-01-01")


if __name__ == "__main__":
    unittest.main()
