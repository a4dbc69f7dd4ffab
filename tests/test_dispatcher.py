"""
Unit tests for backend resolution, the renderer registry and chart ids.
"""

import unittest

from dashboardr.core.config import BACKEND_CAPABILITIES
from dashboardr.core.errors import UnsupportedBackendError
from dashboardr.models import ChartType
from dashboardr.pipeline.dispatcher import (
    RENDERERS,
    ChartIdCounter,
    assert_backend_supported,
    get_renderer,
    normalize_backend,
    supported_backends,
)


class TestBackendResolution(unittest.TestCase):
    """Test suite for backend names and capabilities."""

    def test_unknown_backend_lists_valid(self):
        """Test that the error names every valid backend."""
        with self.assertRaises(UnsupportedBackendError) as context:
            normalize_backend('nonexistent')
        message = str(context.exception)
        for name in ('plotly', 'matplotlib', 'seaborn'):
            self.assertIn(name, message)
        self.assertEqual(context.exception.valid, ('plotly', 'matplotlib', 'seaborn'))

    def test_typo_suggestion(self):
        """Test that a close misspelling gets a suggestion."""
        with self.assertRaises(UnsupportedBackendError) as context:
            normalize_backend('plotyl')
        self.assertIn("Did you mean 'plotly'", str(context.exception))

    def test_aliases_and_case(self):
        """Test aliases and case-insensitive names."""
        self.assertEqual(normalize_backend('mpl'), 'matplotlib')
        self.assertEqual(normalize_backend('sns'), 'seaborn')
        self.assertEqual(normalize_backend(' Plotly '), 'plotly')

    def test_non_string_backend(self):
        """Test that a non-string backend is rejected."""
        with self.assertRaises(UnsupportedBackendError):
            normalize_backend(None)

    def test_chart_type_not_available(self):
        """Test that a treemap cannot be drawn with matplotlib."""
        with self.assertRaises(UnsupportedBackendError) as context:
            assert_backend_supported(ChartType.TREEMAP, 'matplotlib')
        self.assertIn("Supported backends: plotly", str(context.exception))

    def test_supported_backends(self):
        """Test the capability lookup by enum or string."""
        self.assertEqual(supported_backends('gauge'), ('plotly',))
        self.assertIn('seaborn', supported_backends(ChartType.SCATTER))


class TestRegistry(unittest.TestCase):
    """Test suite for the renderer registry."""

    def test_registry_matches_capabilities(self):
        """Test that every declared pair has exactly one renderer."""
        declared = {
            (ChartType(chart), backend)
            for chart, backends in BACKEND_CAPABILITIES.items()
            for backend in backends
        }
        self.assertEqual(set(RENDERERS), declared)

    def test_get_renderer(self):
        """Test renderer lookup through an alias."""
        renderer = get_renderer('bar', 'sns')
        self.assertIs(renderer, RENDERERS[(ChartType.BAR, 'seaborn')])


class TestChartIdCounter(unittest.TestCase):
    """Test suite for sequential chart ids."""

    def test_sequence_with_prefix(self):
        """Test prefixed ids count up from one."""
        ids = ChartIdCounter('page1')
        self.assertEqual([ids.next_id(), ids.next_id()], ['page1-chart-1', 'page1-chart-2'])
        self.assertEqual(ids.issued, 2)

    def test_counters_are_independent(self):
        """Test that two counters never share state."""
        first, second = ChartIdCounter(), ChartIdCounter()
        first.next_id()
        self.assertEqual(second.next_id(), 'chart-1')

    def test_reset(self):
        """Test that reset starts the sequence over."""
        ids = ChartIdCounter(start=5)
        ids.next_id()
        ids.reset()
        self.assertEqual(ids.next_id(), 'chart-5')


if __name__ == '__main__':
    unittest.main()
