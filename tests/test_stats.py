"""Unit tests for probe.stats -- bucketing, rates, and the plateau rule."""

import unittest

from probe.constants import BYTES_PER_MB
from probe.sampler import Measurement
from probe.stats import (
    PlateauDetector,
    bucket_rate,
    bucket_rates,
    format_rate,
    format_size,
    format_with_thousands,
    group_by_second,
    is_plateau,
    max_bucket_rate,
    peak_rate,
)

from helpers import TEST_CHUNK, steady_log


def m(ms, total):
    return Measurement(elapsed_ms=ms, cumulative_bytes=total)


class TestGroupBySecond(unittest.TestCase):
    def test_empty(self):
        self.assertEqual(group_by_second([]), [])

    def test_splits_on_whole_seconds(self):
        log = [m(0, 1), m(999, 2), m(1000, 3), m(2500, 4), m(2999, 5)]
        buckets = group_by_second(log)
        self.assertEqual([len(b) for b in buckets], [2, 1, 2])
        self.assertEqual(buckets[1][0].elapsed_ms, 1000)

    def test_skipped_second_is_not_a_bucket(self):
        log = [m(100, 1), m(200, 2), m(3100, 3), m(3200, 4)]
        self.assertEqual(len(group_by_second(log)), 2)


class TestBucketRate(unittest.TestCase):
    def test_fixed_span(self):
        bucket = [m(0, 0), m(500, BYTES_PER_MB)]
        self.assertAlmostEqual(bucket_rate(bucket, 1000), 1.0)

    def test_actual_span(self):
        bucket = [m(0, 0), m(500, BYTES_PER_MB)]
        self.assertAlmostEqual(bucket_rate(bucket), 2.0)

    def test_single_sample(self):
        self.assertEqual(bucket_rate([m(100, 10)]), 0.0)
        self.assertEqual(bucket_rate([m(100, 10)], 1000), 0.0)

    def test_zero_actual_span(self):
        self.assertEqual(bucket_rate([m(100, 10), m(100, 20)]), 0.0)

    def test_fixed_span_avoids_boundary_inflation(self):
        # Two samples 10 ms apart near a boundary: 100 MB/s raw, 1 MB/s fixed.
        bucket = [m(990, 0), m(1000 - 1, BYTES_PER_MB)]
        self.assertGreater(bucket_rate(bucket), 100.0)
        self.assertAlmostEqual(bucket_rate(bucket, 1000), 1.0)


class TestBucketRates(unittest.TestCase):
    def test_single_sample_bucket_is_none(self):
        log = [m(100, 0), m(900, BYTES_PER_MB), m(1500, 2 * BYTES_PER_MB)]
        self.assertEqual(bucket_rates(log), [1.0, None])

    def test_steady_stream(self):
        rates = bucket_rates(steady_log(128, 5))
        # First bucket lacks the read at t=0; every other bucket spans 127 reads.
        self.assertAlmostEqual(rates[0], 126 * TEST_CHUNK / BYTES_PER_MB)
        for r in rates[1:]:
            self.assertAlmostEqual(r, 127 * TEST_CHUNK / BYTES_PER_MB)


class TestPeakRate(unittest.TestCase):
    def test_empty(self):
        self.assertEqual(peak_rate([]), 0.0)

    def test_all_none(self):
        self.assertEqual(peak_rate([None, None]), 0.0)

    def test_ignores_none(self):
        self.assertEqual(peak_rate([1.0, None, 3.0, 2.0]), 3.0)

    def test_max_bucket_rate_empty(self):
        self.assertEqual(max_bucket_rate([]), 0.0)

    def test_max_bucket_rate(self):
        log = [m(0, 0), m(900, BYTES_PER_MB), m(1000, BYTES_PER_MB), m(1900, 4 * BYTES_PER_MB)]
        self.assertAlmostEqual(max_bucket_rate(log), 3.0)


class TestIsPlateau(unittest.TestCase):
    def test_too_few_buckets(self):
        self.assertFalse(is_plateau([5.0, 1.0, 1.0]))

    def test_rising(self):
        self.assertFalse(is_plateau([1.0, 2.0, 3.0, 4.0, 5.0]))

    def test_equal_is_not_plateau(self):
        self.assertFalse(is_plateau([4.0, 4.0, 4.0, 4.0]))

    def test_regression(self):
        self.assertTrue(is_plateau([1.0, 8.0, 4.0, 4.0, 4.0]))

    def test_one_recent_match_keeps_going(self):
        self.assertFalse(is_plateau([1.0, 8.0, 4.0, 8.0, 4.0]))

    def test_none_counts_as_nothing(self):
        self.assertTrue(is_plateau([2.0, None, None, None]))
        self.assertFalse(is_plateau([None, None, None, None]))

    def test_custom_window(self):
        self.assertTrue(is_plateau([5.0, 4.0], window=1))


class TestPlateauDetector(unittest.TestCase):
    def test_never_before_warmup(self):
        detector = PlateauDetector()
        log = [m(0, 0), m(500, 100 * BYTES_PER_MB), m(1000, 100 * BYTES_PER_MB)]
        log += [m(ms, 100 * BYTES_PER_MB) for ms in range(2000, 9001, 1000)]
        self.assertFalse(detector.should_stop(log, 9999))
        self.assertEqual(detector.checks, 0)

    def test_stops_on_first_boundary_after_warmup(self):
        detector = PlateauDetector()
        log = [m(0, 0), m(900, 50 * BYTES_PER_MB)]
        log += [m(ms, 50 * BYTES_PER_MB) for ms in range(1000, 9001, 500)]
        self.assertTrue(detector.should_stop(log, 10_000))
        self.assertEqual(detector.checks, 1)

    def test_only_once_per_second(self):
        detector = PlateauDetector()
        log = steady_log(128, 25)
        for i, item in enumerate(log):
            detector.should_stop(log[:i], item.elapsed_ms)
        # Seconds 10 through 24 are each entered exactly once.
        self.assertEqual(detector.checks, 15)

    def test_no_check_within_same_second(self):
        detector = PlateauDetector()
        log = steady_log(128, 12)
        self.assertFalse(detector.should_stop(log, log[-1].elapsed_ms))
        self.assertEqual(detector.checks, 0)

    def test_steady_stream_never_stops(self):
        detector = PlateauDetector()
        log = steady_log(128, 25)
        stops = [detector.should_stop(log[:i], item.elapsed_ms) for i, item in enumerate(log)]
        self.assertFalse(any(stops))


class TestFormatting(unittest.TestCase):
    def test_rate(self):
        self.assertEqual(format_rate(12.5), "12.5 MB/s (100 mbit)")

    def test_size_mb(self):
        self.assertEqual(format_size(3 * BYTES_PER_MB // 2), "1.50 MB")

    def test_size_gb(self):
        self.assertEqual(format_size(2048 * BYTES_PER_MB), "2.00 GB")

    def test_thousands(self):
        self.assertEqual(format_with_thousands(1234567), "1,234,567")
        self.assertEqual(format_with_thousands(0), "0")


if __name__ == "__main__":
    unittest.main()
