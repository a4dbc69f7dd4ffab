"""
Unit tests for category ordering.
"""

import unittest

import pandas as pd

from dashboardr.core.errors import InvalidOrderError
from dashboardr.pipeline.orderer import (
    default_order,
    order_categories,
    to_category_series,
    validate_order,
)


class TestOrderCategories(unittest.TestCase):
    """Test suite for applying explicit orders."""

    def test_desired_first_then_residual(self):
        """Test that unlisted labels follow in first-seen order."""
        result = order_categories(['b', 'c', 'a', 'd'], desired=['a', 'b'])
        self.assertEqual(result, ['a', 'b', 'c', 'd'])

    def test_no_category_dropped(self):
        """Test that ordering is a permutation of the observed labels."""
        observed = ['z', 'y', 'x']
        result = order_categories(observed, desired=['x'])
        self.assertEqual(sorted(result), sorted(observed))

    def test_absent_labels_ignored_with_warning(self):
        """Test that ordered labels not present in data are skipped."""
        with self.assertLogs('dashboardr.pipeline.orderer', level='WARNING'):
            result = order_categories(['a', 'b'], desired=['c', 'b'])
        self.assertEqual(result, ['b', 'a'])

    def test_idempotent(self):
        """Test that ordering an ordered sequence again changes nothing."""
        once = order_categories(['c', 'a', 'b', 'd'], desired=['b', 'a'])
        twice = order_categories(once, desired=['b', 'a'])
        self.assertEqual(once, twice)

    def test_missing_label_last(self):
        """Test that the missing category goes to the end."""
        result = order_categories(['(Missing)', 'a', 'b'], desired=['b'], missing_label='(Missing)')
        self.assertEqual(result, ['b', 'a', '(Missing)'])

    def test_missing_label_placed_explicitly(self):
        """Test that an explicitly ordered missing label keeps its place."""
        result = order_categories(['a', '(Missing)'], desired=['(Missing)', 'a'], missing_label='(Missing)')
        self.assertEqual(result, ['(Missing)', 'a'])


class TestValidateOrder(unittest.TestCase):
    """Test suite for order argument checks."""

    def test_string_rejected(self):
        """Test that a bare string is not a list of labels."""
        with self.assertRaises(InvalidOrderError):
            validate_order('abc')

    def test_duplicates_rejected(self):
        """Test that duplicate labels are rejected."""
        with self.assertRaises(InvalidOrderError):
            validate_order(['a', 'b', 'a'])

    def test_numbers_become_keys(self):
        """Test that numeric order entries compare as labels."""
        self.assertEqual(validate_order([2, 1.0]), ['2', '1'])
        self.assertIsNone(validate_order(None))


class TestDefaultOrder(unittest.TestCase):
    """Test suite for natural ordering without an explicit order."""

    def test_numeric_labels_sort_numerically(self):
        """Test that '10' sorts after '9'."""
        self.assertEqual(default_order(pd.Series(['10', '9', '1'])), ['1', '9', '10'])

    def test_text_sorts_alphabetically(self):
        """Test that text labels sort alphabetically."""
        self.assertEqual(default_order(pd.Series(['Medium', 'High', 'Low'])), ['High', 'Low', 'Medium'])

    def test_categorical_keeps_levels(self):
        """Test that categorical level order wins over sorting."""
        series = pd.Series(pd.Categorical(['b', 'a'], categories=['b', 'a']))
        self.assertEqual(default_order(series), ['b', 'a'])

    def test_missing_last(self):
        """Test that the missing label goes last in natural order."""
        series = pd.Series(['(Missing)', 'b', 'a'])
        self.assertEqual(default_order(series, missing_label='(Missing)'), ['a', 'b', '(Missing)'])


class TestCategorySeries(unittest.TestCase):
    """Test suite for building ordered categorical columns."""

    def test_numeric_codes_become_labels(self):
        """Test that numeric values are keyed as strings in numeric order."""
        result = to_category_series(pd.Series([2.0, 1.0, 10.0]), numeric=True)
        self.assertEqual(list(result.cat.categories), ['1', '2', '10'])
        self.assertEqual(result.tolist(), ['2', '1', '10'])

    def test_explicit_order(self):
        """Test that an explicit order defines the levels."""
        result = to_category_series(pd.Series(['Low', 'High', 'Medium']), ['Low', 'Medium', 'High'])
        self.assertEqual(list(result.cat.categories), ['Low', 'Medium', 'High'])
        self.assertTrue(result.cat.ordered)

    def test_missing_values_stay_missing(self):
        """Test that NA rows remain NA in the categorical."""
        result = to_category_series(pd.Series(['a', None]))
        self.assertTrue(pd.isna(result.iloc[1]))


if __name__ == '__main__':
    unittest.main()
