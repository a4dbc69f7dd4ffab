"""
Integration tests for the chart data pipeline (stages 1-6).
"""

import unittest

import pandas as pd

from dashboardr import AggregationMode, BinSpec, ChartIdCounter, ChartType, build_config
from dashboardr.core.errors import MissingColumnError, TypeMismatchError, UnsupportedBackendError
from tests.fixtures.sample_data import create_labelled_codes, create_sample_survey_data

SEX_LABELS = {'1': 'Male', '2': 'Female'}


class TestBuildConfig(unittest.TestCase):
    """Test suite for building chart configurations."""

    def setUp(self):
        """Set up test fixtures."""
        self.df = create_sample_survey_data()

    def test_input_not_modified(self):
        """Test that the caller's table is left untouched."""
        before = self.df.copy()
        build_config(self.df, 'sex', value_maps={'sex': SEX_LABELS}, include_missing=True,
                     bin_spec=None, order=['Male'])
        pd.testing.assert_frame_equal(self.df, before)

    def test_recode_then_missing_last(self):
        """Test recoded labels with the missing category at the end."""
        config = build_config(self.df, 'sex', value_maps={'sex': SEX_LABELS}, include_missing=True)
        result = config.result
        self.assertEqual(result.categories, ('Female', 'Male', '(Missing)'))
        self.assertEqual(result.series(), [5.0, 4.0, 1.0])

    def test_explicit_order_uses_labels(self):
        """Test that orders refer to recoded labels."""
        config = build_config(self.df, 'sex', value_maps={'sex': SEX_LABELS}, order=['Male', 'Female'])
        self.assertEqual(config.result.categories, ('Male', 'Female'))

    def test_weighted_counts(self):
        """Test weighted counts rounded to whole respondents."""
        config = build_config(self.df, 'education', weight_var='weight')
        self.assertEqual(config.result.values, {'High': 2.0, 'Low': 4.0, 'Medium': 4.0})

    def test_binned_category_keeps_empty_bins(self):
        """Test that bins without observations still appear."""
        spec = BinSpec(breaks=(0, 20, 40, 60, 80, 100))
        config = build_config(self.df, 'age', bin_spec=spec)
        self.assertEqual(len(config.result.categories), 5)
        self.assertEqual(config.result.value('[80,100]'), 0.0)

    def test_binning_labelled_codes(self):
        """Test that labelled categorical codes are binned by their numeric value."""
        df = create_labelled_codes().to_frame()
        config = build_config(df, 'q1', bin_spec=BinSpec(breaks=(0, 2, 4)))
        self.assertEqual(config.result.categories, ('[0,2)', '[2,4]'))
        self.assertEqual(config.result.series(), [2.0, 3.0])

    def test_binning_numeric_strings(self):
        """Test that ages stored as text are binned like numbers."""
        df = pd.DataFrame({'age': ['18', '25', '34', '45']})
        config = build_config(df, 'age', bin_spec=BinSpec(breaks=(0, 30, 60)))
        self.assertEqual(config.result.series(), [2.0, 2.0])

    def test_binning_text_column(self):
        """Test that a genuinely textual column still cannot be binned."""
        with self.assertRaises(TypeMismatchError):
            build_config(self.df, 'education', bin_spec=BinSpec(breaks=(0, 1, 2)))

    def test_mean_needs_y_var(self):
        """Test that MEAN aggregation requires a measure column."""
        with self.assertRaises(ValueError):
            build_config(self.df, 'education', aggregation_mode=AggregationMode.MEAN)

    def test_mean_of_text_column(self):
        """Test that a text measure is a type mismatch."""
        with self.assertRaises(TypeMismatchError):
            build_config(self.df, 'sex', y_var='education', aggregation_mode='mean')

    def test_group_must_differ(self):
        """Test that a chart cannot be grouped by its own category."""
        with self.assertRaises(ValueError):
            build_config(self.df, 'sex', group_var='sex')

    def test_missing_group_column(self):
        """Test that an absent optional column is still reported."""
        with self.assertRaises(MissingColumnError):
            build_config(self.df, 'sex', group_var='gender')

    def test_backend_checked_first(self):
        """Test that an unsupported backend fails before any data work."""
        with self.assertRaises(UnsupportedBackendError):
            build_config(self.df, 'sex', chart_type=ChartType.GAUGE, backend='seaborn')

    def test_chart_id_and_backend(self):
        """Test the config carries the canonical backend and an id."""
        config = build_config(self.df, 'sex', backend='MPL', id_counter=ChartIdCounter('p'))
        self.assertEqual(config.backend, 'matplotlib')
        self.assertEqual(config.chart_id, 'p-chart-1')
        self.assertEqual(config.x_label, 'sex')
        self.assertEqual(config.y_label, 'Count')

    def test_series_reference(self):
        """Test that a column can be passed as a Series."""
        config = build_config(self.df, self.df['education'])
        self.assertEqual(config.category_var, 'education')


if __name__ == '__main__':
    unittest.main()
