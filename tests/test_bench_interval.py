"""Tests for loadcmp.bench.interval."""

from __future__ import annotations

import unittest

from loadcmp.bench.interval import (
    Interval,
    IntervalKind,
    format_duration,
    parse_duration,
)


class TestParseDuration(unittest.TestCase):
    """Tests for parse_duration()."""

    def test_single_units(self) -> None:
        """Every supported unit parses."""
        self.assertEqual(parse_duration("30s"), 30.0)
        self.assertEqual(parse_duration("2m"), 120.0)
        self.assertEqual(parse_duration("2h"), 7200.0)
        self.assertEqual(parse_duration("1d"), 86400.0)
        self.assertAlmostEqual(parse_duration("250ms"), 0.25)
        self.assertAlmostEqual(parse_duration("100us"), 1e-4)
        self.assertAlmostEqual(parse_duration("100µs"), 1e-4)
        self.assertAlmostEqual(parse_duration("5ns"), 5e-9)

    def test_compound(self) -> None:
        """Parts add up, with or without spaces."""
        self.assertEqual(parse_duration("1m30s"), 90.0)
        self.assertEqual(parse_duration("1h 30m"), 5400.0)

    def test_fractional(self) -> None:
        """Fractional amounts parse."""
        self.assertEqual(parse_duration("1.5s"), 1.5)

    def test_invalid(self) -> None:
        """Malformed durations return None."""
        for text in ("", "   ", "abc", "10", "10x", "s10", "1m garbage", "-5s"):
            with self.subTest(text=text):
                self.assertIsNone(parse_duration(text))


class TestFormatDuration(unittest.TestCase):
    """Tests for format_duration()."""

    def test_forms(self) -> None:
        """Each magnitude picks its compact unit."""
        self.assertEqual(format_duration(0), "0s")
        self.assertEqual(format_duration(0.25), "250ms")
        self.assertEqual(format_duration(0.0001), "100us")
        self.assertEqual(format_duration(1.5), "1.5s")
        self.assertEqual(format_duration(90), "1m30s")
        self.assertEqual(format_duration(7200), "2h")

    def test_sub_microsecond(self) -> None:
        """Values under a microsecond keep nanosecond precision."""
        self.assertEqual(format_duration(4e-7), "400ns")
        self.assertEqual(format_duration(1.5e-6), "1500ns")
        self.assertEqual(str(Interval.of_time(4e-7)), "400ns")
        self.assertAlmostEqual(Interval.parse(str(Interval.of_time(4e-7))).seconds, 4e-7)

    def test_parse_accepts_formatted(self) -> None:
        """Formatted durations parse back to the same value."""
        for seconds in (0, 0.25, 1.5, 90, 7200, 3661, 4e-7, 2.5e-5):
            with self.subTest(seconds=seconds):
                self.assertAlmostEqual(parse_duration(format_duration(seconds)), seconds)


class TestInterval(unittest.TestCase):
    """Tests for Interval."""

    def test_parse_count(self) -> None:
        """A plain integer is a count."""
        interval = Interval.parse("5000")
        self.assertIs(interval.kind, IntervalKind.COUNT)
        self.assertEqual(interval.count, 5000)

    def test_parse_time(self) -> None:
        """A duration is a time interval."""
        interval = Interval.parse(" 10m ")
        self.assertIs(interval.kind, IntervalKind.TIME)
        self.assertEqual(interval.seconds, 600.0)

    def test_parse_unbounded(self) -> None:
        """"unbounded" is case-insensitive."""
        self.assertTrue(Interval.parse("unbounded").is_unbounded)
        self.assertTrue(Interval.parse("Unbounded").is_unbounded)

    def test_parse_invalid(self) -> None:
        """Anything else raises ValueError."""
        for text in ("", "forever", "-3", "1.5", "²"):
            with self.subTest(text=text):
                with self.assertRaises(ValueError):
                    Interval.parse(text)

    def test_negative_constructors(self) -> None:
        """Constructors refuse negative or infinite bounds."""
        with self.assertRaises(ValueError):
            Interval.of_count(-1)
        with self.assertRaises(ValueError):
            Interval.of_time(-0.5)
        with self.assertRaises(ValueError):
            Interval.of_time(float("inf"))

    def test_exhausted(self) -> None:
        """Only the interval's own bound is checked."""
        self.assertFalse(Interval.of_count(10).exhausted(1000.0, 9))
        self.assertTrue(Interval.of_count(10).exhausted(0.0, 10))
        self.assertFalse(Interval.of_time(5).exhausted(4.9, 10**6))
        self.assertTrue(Interval.of_time(5).exhausted(5.0, 0))
        self.assertFalse(Interval.unbounded().exhausted(1e9, 10**9))

    def test_str(self) -> None:
        """str() gives the parseable form."""
        self.assertEqual(str(Interval.of_count(42)), "42")
        self.assertEqual(str(Interval.of_time(90)), "1m30s")
        self.assertEqual(str(Interval.unbounded()), "unbounded")

    def test_dict_roundtrip(self) -> None:
        """to_dict() and from_dict() agree."""
        for interval in (Interval.of_count(7), Interval.of_time(2.5), Interval.unbounded()):
            with self.subTest(interval=str(interval)):
                self.assertEqual(Interval.from_dict(interval.to_dict()), interval)

    def test_from_dict_unknown_kind(self) -> None:
        """An unknown kind raises ValueError."""
        with self.assertRaises(ValueError):
            Interval.from_dict({"kind": "sometimes"})


if __name__ == "__main__":
    unittest.main()
