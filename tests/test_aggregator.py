"""
Unit tests for the aggregator.

Inputs are built the way the orderer hands them over: ordered categoricals
whose categories define the axis.
"""

import math
import unittest

import pandas as pd

from dashboardr.models import AggregationMode, FiveNumberSummary
from dashboardr.pipeline.aggregator import aggregate, complete, five_number_summary, sort_by_value


def _cat(values, levels):
    return pd.Categorical(values, categories=levels, ordered=True)


class TestCountAndPercent(unittest.TestCase):
    """Test suite for COUNT and PERCENT aggregation."""

    def setUp(self):
        """Set up test fixtures."""
        self.df = pd.DataFrame({
            'x': _cat(['a', 'a', 'b', 'c'], ['a', 'b', 'c']),
            'g': _cat(['m', 'f', 'm', 'm'], ['m', 'f']),
            'w': [1.0, 2.0, 0.5, 1.5],
        })

    def test_counts_in_category_order(self):
        """Test plain row counts."""
        result = aggregate(self.df, 'x', AggregationMode.COUNT)
        self.assertEqual(result.categories, ('a', 'b', 'c'))
        self.assertEqual(result.series(), [2.0, 1.0, 1.0])
        self.assertEqual(result.value_label, "Count")

    def test_unobserved_level_completed_with_zero(self):
        """Test that a category with no rows still appears with zero."""
        df = pd.DataFrame({'x': _cat(['a', 'a'], ['a', 'b'])})
        result = aggregate(df, 'x', 'count')
        self.assertEqual(result.values, {'a': 2.0, 'b': 0.0})

    def test_grouped_completion(self):
        """Test that every (category, group) pair is present."""
        result = aggregate(self.df, 'x', AggregationMode.COUNT, group_var='g')
        self.assertEqual(len(result.values), 6)
        self.assertEqual(result.value('b', 'f'), 0.0)
        self.assertEqual(result.value('a', 'f'), 1.0)

    def test_weighted_count_rounded(self):
        """Test that weighted counts are rounded half to even."""
        result = aggregate(self.df, 'x', AggregationMode.COUNT, weight_var='w')
        # b = 0.5 rounds to 0, c = 1.5 rounds to 2
        self.assertEqual(result.series(), [3.0, 0.0, 2.0])
        self.assertEqual(result.counts['b'], 0.5)

    def test_percent_sums_to_hundred(self):
        """Test that ungrouped percentages add up to 100."""
        result = aggregate(self.df, 'x', AggregationMode.PERCENT)
        self.assertAlmostEqual(result.total(), 100.0, delta=0.2)
        self.assertEqual(result.value('a'), 50.0)

    def test_grouped_percent_within_category(self):
        """Test that grouped percentages are shares of the category."""
        result = aggregate(self.df, 'x', AggregationMode.PERCENT, group_var='g')
        for cat in result.categories:
            total = sum(result.value(cat, g) for g in result.groups)
            self.assertAlmostEqual(total, 100.0, delta=0.2)
        self.assertEqual(result.value('a', 'm'), 50.0)

    def test_empty_table(self):
        """Test that no rows give zero counts for every level."""
        df = pd.DataFrame({'x': _cat([], ['a', 'b'])})
        result = aggregate(df, 'x', AggregationMode.PERCENT)
        self.assertEqual(result.values, {'a': 0.0, 'b': 0.0})


class TestMeasures(unittest.TestCase):
    """Test suite for SUM and MEAN aggregation."""

    def setUp(self):
        """Set up test fixtures."""
        self.df = pd.DataFrame({
            'x': _cat(['a', 'a', 'b'], ['a', 'b', 'c']),
            'v': [1.0, 2.0, 10.0],
            'w': [3.0, 1.0, 1.0],
        })

    def test_value_column_required(self):
        """Test that SUM without a value column fails."""
        with self.assertRaises(ValueError):
            aggregate(self.df, 'x', AggregationMode.SUM)

    def test_sum(self):
        """Test summed values with zero for empty categories."""
        result = aggregate(self.df, 'x', AggregationMode.SUM, value_var='v')
        self.assertEqual(result.series(), [3.0, 10.0, 0.0])

    def test_mean_unobserved_is_nan(self):
        """Test that a category without rows has no mean."""
        result = aggregate(self.df, 'x', AggregationMode.MEAN, value_var='v')
        self.assertEqual(result.value('a'), 1.5)
        self.assertTrue(math.isnan(result.value('c')))
        self.assertEqual(result.value_label, "Mean v")

    def test_weighted_mean(self):
        """Test the weighted mean of a value column."""
        result = aggregate(self.df, 'x', AggregationMode.MEAN, value_var='v', weight_var='w')
        self.assertEqual(result.value('a'), 1.25)

    def test_sort_by_value(self):
        """Test reordering categories by value with NaN last."""
        result = aggregate(self.df, 'x', AggregationMode.MEAN, value_var='v')
        self.assertEqual(sort_by_value(result).categories, ('b', 'a', 'c'))
        self.assertEqual(sort_by_value(result, descending=False).categories, ('a', 'b', 'c'))

    def test_complete_helper(self):
        """Test completion of a sparse mapping."""
        self.assertEqual(complete({'a': 1}, ['a', 'b']), {'a': 1, 'b': 0.0})


class TestFiveNumberSummary(unittest.TestCase):
    """Test suite for box plot statistics."""

    def test_outlier_beyond_fence(self):
        """Test the weighted summary of a sample with one outlier."""
        summary = five_number_summary([1, 2, 3, 4, 100], weights=[1, 1, 1, 1, 1])
        self.assertEqual(summary.q1, 2.0)
        self.assertEqual(summary.median, 3.0)
        self.assertEqual(summary.q3, 4.0)
        self.assertEqual(summary.high, 4.0)
        self.assertEqual(summary.low, 1.0)
        self.assertEqual(summary.outliers, (100.0,))
        self.assertEqual(summary.n, 5)

    def test_unweighted_quartiles(self):
        """Test linear-interpolated quartiles without weights."""
        summary = five_number_summary([1, 2, 3, 4])
        self.assertEqual(summary.median, 2.5)
        self.assertEqual(summary.q1, 1.75)
        self.assertEqual(summary.outliers, ())

    def test_empty_input(self):
        """Test that no observations give an empty summary."""
        summary = five_number_summary([float('nan')])
        self.assertTrue(summary.is_empty)
        self.assertTrue(math.isnan(summary.median))

    def test_zero_weight_rows_ignored(self):
        """Test that rows with zero weight do not count."""
        summary = five_number_summary([1, 2, 3, 1000], weights=[1, 1, 1, 0])
        self.assertEqual(summary.n, 3)
        self.assertEqual(summary.outliers, ())

    def test_boxplot_aggregation(self):
        """Test BOXPLOT mode per category."""
        df = pd.DataFrame({
            'x': _cat(['a', 'a', 'a', 'b'], ['a', 'b', 'c']),
            'v': [1.0, 2.0, 3.0, 5.0],
        })
        result = aggregate(df, 'x', AggregationMode.BOXPLOT, value_var='v')
        self.assertEqual(result.summaries['a'].median, 2.0)
        self.assertIsInstance(result.summaries['c'], FiveNumberSummary)
        self.assertTrue(result.summaries['c'].is_empty)
        self.assertEqual(result.values['a'], 3.0)

    def test_boxplot_rejects_groups(self):
        """Test that box plots cannot be grouped."""
        df = pd.DataFrame({'x': _cat(['a'], ['a']), 'g': _cat(['m'], ['m']), 'v': [1.0]})
        with self.assertRaises(ValueError):
            aggregate(df, 'x', AggregationMode.BOXPLOT, group_var='g', value_var='v')


if __name__ == '__main__':
    unittest.main()
