"""
Unit tests for bin specifications and the binner.
"""

import unittest

import numpy as np
import pandas as pd

from dashboardr.core.errors import InvalidBinSpecError, TypeMismatchError
from dashboardr.models import BinSpec
from dashboardr.pipeline.binner import apply_bins, default_labels


class TestBinSpec(unittest.TestCase):
    """Test suite for BinSpec construction rules."""

    def test_breaks_must_increase(self):
        """Test that non-increasing breakpoints are rejected."""
        with self.assertRaises(InvalidBinSpecError):
            BinSpec(breaks=(0, 10, 10))
        with self.assertRaises(InvalidBinSpecError):
            BinSpec(breaks=(10, 0))

    def test_label_count_must_match(self):
        """Test that labels must number len(breaks) - 1."""
        with self.assertRaises(InvalidBinSpecError):
            BinSpec(breaks=(0, 10, 20), labels=('a',))

    def test_labels_unique(self):
        """Test that duplicate labels are rejected."""
        with self.assertRaises(InvalidBinSpecError):
            BinSpec(breaks=(0, 10, 20), labels=('a', 'a'))

    def test_bins_positive_integer(self):
        """Test that a bin count must be a positive integer."""
        with self.assertRaises(InvalidBinSpecError):
            BinSpec(bins=0)
        with self.assertRaises(InvalidBinSpecError):
            BinSpec(bins=2.5)

    def test_from_options_unused(self):
        """Test that no options give no spec."""
        self.assertIsNone(BinSpec.from_options())

    def test_from_options_labels_without_breaks(self):
        """Test that labels alone are an error."""
        with self.assertRaises(InvalidBinSpecError):
            BinSpec.from_options(labels=['a'])

    def test_breaks_win_over_bins(self):
        """Test that explicit breakpoints take precedence."""
        spec = BinSpec.from_options(breaks=[0, 5], bins=3)
        self.assertEqual(spec.breaks, (0.0, 5.0))
        self.assertIsNone(spec.bins)


class TestApplyBins(unittest.TestCase):
    """Test suite for cutting numeric columns into intervals."""

    def test_left_closed_intervals(self):
        """Test that a value on an inner breakpoint opens the next bin."""
        spec = BinSpec(breaks=(0, 10, 20, 30))
        result = apply_bins(pd.Series([0, 9.9, 10, 25]), spec)
        self.assertEqual(list(result.astype(str)), ['[0,10)', '[0,10)', '[10,20)', '[20,30]'])

    def test_maximum_in_last_bin(self):
        """Test that the maximum breakpoint lands in the last bin."""
        spec = BinSpec(breaks=(0, 10, 20))
        result = apply_bins(pd.Series([10, 20]), spec)
        self.assertEqual(list(result.astype(str)), ['[10,20]', '[10,20]'])

    def test_out_of_range_becomes_missing(self):
        """Test that values outside the breakpoints become NA."""
        spec = BinSpec(breaks=(0, 10))
        result = apply_bins(pd.Series([-1, 5, 11, np.nan]), spec)
        self.assertEqual(result.isna().tolist(), [True, False, True, True])

    def test_categories_follow_breaks(self):
        """Test that the categorical levels are the bins in order."""
        spec = BinSpec(breaks=(0, 18, 65, 120), labels=('Child', 'Adult', 'Senior'))
        result = apply_bins(pd.Series([70, 10, 30]), spec)
        self.assertEqual(list(result.cat.categories), ['Child', 'Adult', 'Senior'])
        self.assertTrue(result.cat.ordered)
        self.assertEqual(result.tolist(), ['Senior', 'Child', 'Adult'])

    def test_automatic_bins_cover_range(self):
        """Test that equal-width bins keep every observed value."""
        result = apply_bins(pd.Series([1, 2, 3, 4, 5, 6]), BinSpec(bins=3))
        self.assertEqual(len(result.cat.categories), 3)
        self.assertFalse(result.isna().any())

    def test_non_numeric_column_rejected(self):
        """Test that text cannot be binned."""
        with self.assertRaises(TypeMismatchError):
            apply_bins(pd.Series(['a', 'b']), BinSpec(breaks=(0, 1)))

    def test_no_spec_is_passthrough(self):
        """Test that None leaves the column as it is."""
        series = pd.Series([1, 2])
        self.assertIs(apply_bins(series, None), series)

    def test_default_labels(self):
        """Test the interval notation of default labels."""
        self.assertEqual(default_labels([0, 2.5, 5]), ['[0,2.5)', '[2.5,5]'])


if __name__ == '__main__':
    unittest.main()
