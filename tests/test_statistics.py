import math
import unittest

import numpy as np
import pandas as pd

from freightsim.core.errors import EmptyDatasetError, InvalidParameterError
from freightsim.core.statistics import (
    build_percentile_table,
    calculate_confidence_interval,
    calculate_mode,
    calculate_percentile_rank,
    calculate_statistics,
    detect_outliers,
    generate_histogram,
    percentile,
    rolling_statistics,
    z_score_for,
)


class DescriptiveStatisticsTests(unittest.TestCase):
    def setUp(self) -> None:
        self.data = [2.0, 4.0, 4.0, 4.0, 5.0, 5.0, 7.0, 9.0]

    def test_summary_moments(self) -> None:
        summary = calculate_statistics(self.data)
        self.assertEqual(summary.count, 8)
        self.assertAlmostEqual(summary.mean, 5.0)
        self.assertAlmostEqual(summary.variance, 32.0 / 7.0)
        self.assertAlmostEqual(summary.std_dev, math.sqrt(32.0 / 7.0))
        self.assertEqual(summary.mode, 4.0)
        self.assertEqual(summary.min, 2.0)
        self.assertEqual(summary.max, 9.0)
        self.assertEqual(summary.range, 7.0)
        self.assertAlmostEqual(summary.median, 4.5)

    def test_skewness_uses_adjusted_estimator(self) -> None:
        data = np.array([1.0, 2.0, 3.0, 4.0, 10.0])
        n = data.size
        z = (data - data.mean()) / data.std(ddof=1)
        expected = n / ((n - 1) * (n - 2)) * float(np.sum(z**3))
        summary = calculate_statistics(data)
        self.assertAlmostEqual(summary.skewness, expected)
        self.assertAlmostEqual(summary.kurtosis, float(pd.Series(data).kurt()))

    def test_symmetric_data_has_zero_skew(self) -> None:
        self.assertAlmostEqual(calculate_statistics([1, 2, 3, 4, 5]).skewness, 0.0)

    def test_single_value(self) -> None:
        summary = calculate_statistics([5.0])
        self.assertEqual(summary.variance, 0.0)
        self.assertEqual(summary.std_dev, 0.0)
        self.assertEqual(summary.skewness, 0.0)
        self.assertEqual(summary.kurtosis, 0.0)
        self.assertIsNone(summary.mode)
        self.assertEqual(summary.p5, 5.0)
        self.assertEqual(summary.p95, 5.0)

    def test_constant_data_has_zero_shape(self) -> None:
        summary = calculate_statistics([3.0] * 10)
        self.assertEqual(summary.skewness, 0.0)
        self.assertEqual(summary.kurtosis, 0.0)
        self.assertEqual(summary.mode, 3.0)

    def test_percentiles_are_ordered(self) -> None:
        rng = np.random.default_rng(0)
        summary = calculate_statistics(rng.normal(100.0, 15.0, 5_000))
        values = list(summary.percentiles().values())
        self.assertEqual(values, sorted(values))

    def test_empty_input_raises(self) -> None:
        for func in (calculate_statistics, generate_histogram, calculate_mode, detect_outliers):
            with self.subTest(func=func.__name__):
                with self.assertRaises(EmptyDatasetError):
                    func([])
        with self.assertRaises(EmptyDatasetError):
            calculate_confidence_interval([])
        with self.assertRaises(EmptyDatasetError):
            calculate_percentile_rank(1.0, [])
        with self.assertRaises(EmptyDatasetError):
            percentile([], 50)


class PercentileTests(unittest.TestCase):
    def test_median_odd_and_even(self) -> None:
        self.assertEqual(percentile([1.0, 2.0, 3.0, 4.0, 5.0], 50), 3.0)
        self.assertEqual(percentile([1.0, 2.0, 3.0, 4.0], 50), 2.5)

    def test_interpolation_and_bounds(self) -> None:
        data = [10.0, 20.0, 30.0]
        self.assertEqual(percentile(data, 0), 10.0)
        self.assertEqual(percentile(data, 100), 30.0)
        self.assertAlmostEqual(percentile(data, 25), 15.0)

    def test_out_of_range_rejected(self) -> None:
        with self.assertRaises(InvalidParameterError):
            percentile([1.0, 2.0], 101)
        with self.assertRaises(InvalidParameterError):
            percentile([1.0, 2.0], -1)

    def test_percentile_rank(self) -> None:
        data = [1.0, 2.0, 3.0, 4.0]
        self.assertEqual(calculate_percentile_rank(3.0, data), 50.0)
        self.assertEqual(calculate_percentile_rank(0.5, data), 0.0)
        self.assertEqual(calculate_percentile_rank(10.0, data), 100.0)

    def test_percentile_table(self) -> None:
        table = build_percentile_table([1.0, 2.0, 3.0, 4.0, 5.0], percentiles=[0, 50, 100], column="rate")
        self.assertEqual(list(table.columns), ["percentile", "rate"])
        self.assertEqual(table["rate"].tolist(), [1.0, 3.0, 5.0])


class ModeTests(unittest.TestCase):
    def test_ties_go_to_first_encountered(self) -> None:
        self.assertEqual(calculate_mode([3.0, 3.0, 1.0, 1.0, 2.0]), 3.0)

    def test_no_repeats_returns_none(self) -> None:
        self.assertIsNone(calculate_mode([1.0, 2.0, 3.0]))


class HistogramTests(unittest.TestCase):
    def test_equal_width_bins(self) -> None:
        histogram = generate_histogram([float(v) for v in range(10)], bins=5)
        self.assertEqual(len(histogram), 5)
        self.assertEqual([b.count for b in histogram], [2, 2, 2, 2, 2])
        self.assertAlmostEqual(sum(b.frequency for b in histogram), 1.0)
        self.assertAlmostEqual(histogram[0].bin_start, 0.0)
        self.assertAlmostEqual(histogram[-1].bin_end, 9.0)
        self.assertAlmostEqual(histogram[0].density, 0.2 / 1.8)

    def test_maximum_lands_in_last_bin(self) -> None:
        histogram = generate_histogram([0.0, 1.0, 2.0, 3.0], bins=3)
        self.assertEqual(histogram[-1].count, 2)

    def test_constant_data_uses_unit_width(self) -> None:
        histogram = generate_histogram([5.0, 5.0, 5.0], bins=3)
        self.assertEqual(histogram[0].count, 3)
        self.assertEqual(histogram[0].bin_start, 5.0)
        self.assertEqual(histogram[0].bin_end, 6.0)
        self.assertEqual(sum(b.count for b in histogram), 3)

    def test_default_bin_count(self) -> None:
        self.assertEqual(len(generate_histogram(np.arange(100.0))), 30)

    def test_invalid_bins(self) -> None:
        with self.assertRaises(InvalidParameterError):
            generate_histogram([1.0, 2.0], bins=0)


class ConfidenceIntervalTests(unittest.TestCase):
    def test_ninety_five_percent_interval(self) -> None:
        data = [float(v) for v in range(1, 11)]
        interval = calculate_confidence_interval(data)
        margin = 1.96 * float(np.std(data, ddof=1)) / math.sqrt(10)
        self.assertAlmostEqual(interval.lower, 5.5 - margin)
        self.assertAlmostEqual(interval.upper, 5.5 + margin)
        self.assertAlmostEqual(interval.margin, margin)
        self.assertEqual(interval.z_score, 1.96)

    def test_percentage_levels_are_accepted(self) -> None:
        data = [1.0, 2.0, 3.0, 4.0]
        self.assertEqual(
            calculate_confidence_interval(data, 95).margin,
            calculate_confidence_interval(data, 0.95).margin,
        )

    def test_z_lookup_and_fallback(self) -> None:
        self.assertEqual(z_score_for(0.90), 1.645)
        self.assertEqual(z_score_for(99), 2.576)
        self.assertAlmostEqual(z_score_for(0.85), 1.4395, places=3)
        with self.assertRaises(InvalidParameterError):
            z_score_for(0)


class OutlierAndRollingTests(unittest.TestCase):
    def test_iqr_outliers(self) -> None:
        data = [10, 12, 12, 13, 12, 11, 14, 13, 15, 10, 10, 100]
        report = detect_outliers(data)
        self.assertEqual(report.outliers, [100.0])
        self.assertAlmostEqual(report.lower_bound, 7.0)
        self.assertAlmostEqual(report.upper_bound, 17.0)
        self.assertEqual(report.method, "IQR")

    def test_rolling_windows(self) -> None:
        windows = rolling_statistics([1.0, 2.0, 3.0, 4.0, 5.0], 3)
        self.assertEqual([w.mean for w in windows], [2.0, 3.0, 4.0])
        self.assertEqual(rolling_statistics([1.0, 2.0], 3), [])
        with self.assertRaises(InvalidParameterError):
            rolling_statistics([1.0, 2.0], 0)


if __name__ == "__main__":
    unittest.main()
