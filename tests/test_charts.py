"""
Tests for the chart functions on every backend.

Figures are checked for type and for the aggregated values that reach the
traces; matplotlib runs headless.
"""

import unittest
from io import BytesIO

import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt
from matplotlib.figure import Figure
import plotly.graph_objects as go

from dashboardr import (
    ChartIdCounter,
    UnsupportedBackendError,
    viz_bar,
    viz_boxplot,
    viz_dumbbell,
    viz_funnel,
    viz_gauge,
    viz_heatmap,
    viz_histogram,
    viz_lollipop,
    viz_map,
    viz_pie,
    viz_scatter,
    viz_stackedbar,
    viz_timeline,
    viz_treemap,
)
from tests.fixtures.sample_data import (
    create_funnel_data,
    create_panel_data,
    create_region_data,
    create_sample_survey_data,
)

SEX_LABELS = {'1': 'Male', '2': 'Female'}


class TestBasicCharts(unittest.TestCase):
    """Test suite for histogram, bar, stacked bar, box plot and scatter."""

    def setUp(self):
        """Set up test fixtures."""
        self.df = create_sample_survey_data()

    def tearDown(self):
        """Close matplotlib figures."""
        plt.close('all')

    def test_histogram_binned(self):
        """Test a binned age histogram in break order."""
        fig = viz_histogram(self.df, 'age', bin_breaks=[0, 30, 60, 90], bin_labels=['Young', 'Middle', 'Old'])
        self.assertIsInstance(fig, go.Figure)
        self.assertEqual(list(fig.data[0].x), ['Young', 'Middle', 'Old'])
        self.assertEqual(list(fig.data[0].y), [4.0, 4.0, 2.0])

    def test_histogram_precounted(self):
        """Test that y_var rows are summed per category."""
        fig = viz_histogram(create_funnel_data(), 'stage', y_var='users', x_order=['Visited', 'Paid'])
        self.assertEqual(list(fig.data[0].x)[:2], ['Visited', 'Paid'])
        self.assertEqual(list(fig.data[0].y)[:2], [1000.0, 100.0])

    def test_histogram_backends(self):
        """Test the static backends return matplotlib figures."""
        for backend in ('matplotlib', 'seaborn'):
            fig = viz_histogram(self.df, 'trust', backend=backend)
            self.assertIsInstance(fig, Figure)

    def test_bar_grouped_percent(self):
        """Test grouped percentages with recoded groups."""
        fig = viz_bar(self.df, 'education', group_var='sex', bar_type='percent',
                      group_map_values=SEX_LABELS, x_order=['Low', 'Medium', 'High'])
        self.assertEqual([trace.name for trace in fig.data], ['Female', 'Male'])
        female = dict(zip(fig.data[0].x, fig.data[0].y))
        self.assertEqual(female['High'], 66.7)
        self.assertEqual(female['Low'], 100.0)

    def test_bar_sorted_by_value(self):
        """Test that sort_by_value reorders categories, ties in level order."""
        fig = viz_bar(self.df, 'trust', sort_by_value=True)
        self.assertEqual(list(fig.data[0].x), ['3', '2', '4', '5', '1'])

    def test_bar_unknown_type(self):
        """Test the suggestion for a misspelled bar_type."""
        with self.assertRaises(ValueError) as context:
            viz_bar(self.df, 'education', bar_type='precent')
        self.assertIn("Did you mean 'percent'", str(context.exception))

    def test_bar_missing_column(self):
        """Test that a typo in x_var is reported with a suggestion."""
        with self.assertRaises(KeyError):
            viz_bar(self.df, 'educaton')

    def test_bar_static_backends(self):
        """Test grouped bars on matplotlib and seaborn."""
        for backend in ('mpl', 'sns'):
            fig = viz_bar(self.df, 'education', group_var='sex', group_map_values=SEX_LABELS, backend=backend)
            self.assertIsInstance(fig, Figure)

    def test_stackedbar_crosstab(self):
        """Test crosstab mode with missing values shown."""
        fig = viz_stackedbar(self.df, x_var='education', stack_var='sex', stack_map_values=SEX_LABELS,
                             include_missing=True, missing_label_stack='No answer')
        self.assertEqual([trace.name for trace in fig.data], ['Female', 'Male', 'No answer'])
        self.assertEqual(fig.layout.barmode, 'stack')

    def test_stackedbar_items(self):
        """Test multi-variable mode over a question battery."""
        fig = viz_stackedbar(self.df, x_vars=['trust_gov', 'trust_media'],
                             x_var_labels=['Government', 'Media'],
                             response_levels=['Agree', 'Neutral', 'Disagree'],
                             stacked_type='percent')
        self.assertEqual([trace.name for trace in fig.data], ['Agree', 'Neutral', 'Disagree'])
        self.assertEqual(list(fig.data[0].x), ['Government', 'Media'])
        self.assertEqual(list(fig.data[0].y), [50.0, 30.0])

    def test_stackedbar_needs_one_mode(self):
        """Test that crosstab and multi-variable modes exclude each other."""
        with self.assertRaises(ValueError):
            viz_stackedbar(self.df, x_var='education', x_vars=['trust_gov'])

    def test_stackedbar_matplotlib(self):
        """Test the matplotlib stacked bar."""
        fig = viz_stackedbar(self.df, x_var='education', stack_var='trust_gov', backend='matplotlib')
        self.assertIsInstance(fig, Figure)

    def test_boxplot(self):
        """Test one box per category."""
        fig = viz_boxplot(self.df, 'income', x_var='education')
        boxes = [trace for trace in fig.data if isinstance(trace, go.Box)]
        self.assertEqual([box.name for box in boxes], ['High', 'Low', 'Medium'])

    def test_boxplot_without_category(self):
        """Test a single box on both backends."""
        self.assertIsInstance(viz_boxplot(self.df, 'age'), go.Figure)
        self.assertIsInstance(viz_boxplot(self.df, 'age', horizontal=True, backend='matplotlib'), Figure)

    def test_scatter_color_and_trend(self):
        """Test color groups and the linear trend line."""
        fig = viz_scatter(self.df, 'age', 'income', color_var='sex', color_map_values=SEX_LABELS,
                          show_trend=True)
        names = [trace.name for trace in fig.data]
        self.assertIn('Male', names)
        self.assertIn('Trend (lm)', names)

    def test_scatter_jitter_reproducible(self):
        """Test that the same seed gives the same jitter."""
        first = viz_scatter(self.df, 'trust', 'age', jitter=True, seed=42)
        second = viz_scatter(self.df, 'trust', 'age', jitter=True, seed=42)
        self.assertEqual(list(first.data[0].x), list(second.data[0].x))

    def test_scatter_static_backends(self):
        """Test scatter on matplotlib and seaborn with size mapping."""
        for backend in ('matplotlib', 'seaborn'):
            fig = viz_scatter(self.df, 'age', 'income', size_var='weight', show_trend=True,
                              trend_method='loess', backend=backend)
            self.assertIsInstance(fig, Figure)

    def test_scatter_bad_trend_method(self):
        """Test that unknown trend methods are rejected."""
        with self.assertRaises(ValueError):
            viz_scatter(self.df, 'age', 'income', trend_method='spline')


class TestAdvancedCharts(unittest.TestCase):
    """Test suite for lollipop, dumbbell, funnel, treemap, map and gauge."""

    def setUp(self):
        """Set up test fixtures."""
        self.df = create_sample_survey_data()
        self.regions = create_region_data()

    def tearDown(self):
        """Close matplotlib figures."""
        plt.close('all')

    def test_lollipop_mean(self):
        """Test mean lollipops sorted by value."""
        fig = viz_lollipop(self.df, 'education', value_var='trust', sort_by_value=True, sort_desc=False)
        dots = fig.data[1]
        self.assertEqual(list(dots.y), ['Medium', 'Low', 'High'])
        self.assertEqual(list(dots.x), [2.67, 3.33, 4.0])
        self.assertIsInstance(viz_lollipop(self.df, 'education', backend='matplotlib'), Figure)

    def test_dumbbell(self):
        """Test two endpoint series per category."""
        fig = viz_dumbbell(self.df, 'education', 'trust', 'age', low_label='Trust', high_label='Age')
        self.assertEqual([trace.name for trace in fig.data[1:]], ['Trust', 'Age'])
        self.assertIsInstance(viz_dumbbell(self.df, 'education', 'trust', 'age', backend='matplotlib'), Figure)

    def test_dumbbell_labels_differ(self):
        """Test that identical endpoint labels are rejected."""
        with self.assertRaises(ValueError):
            viz_dumbbell(self.df, 'education', 'trust', 'age', low_label='A', high_label='A')

    def test_funnel_keeps_data_order(self):
        """Test that stages are not sorted alphabetically."""
        fig = viz_funnel(create_funnel_data(), 'stage', 'users')
        self.assertEqual(list(fig.data[0].y), ['Visited', 'Signed up', 'Activated', 'Paid'])
        self.assertEqual(list(fig.data[0].x), [1000.0, 400.0, 250.0, 100.0])
        self.assertIsInstance(viz_funnel(create_funnel_data(), 'stage', 'users', backend='matplotlib'), Figure)

    def test_treemap(self):
        """Test group totals and children."""
        fig = viz_treemap(self.regions, 'region', 'value', subgroup_var='country')
        totals = dict(zip(fig.data[0].ids, fig.data[0].values))
        self.assertEqual(totals['Europe'], 50.0)
        self.assertEqual(totals['Europe/Germany'], 25.0)
        self.assertEqual(totals['Americas'], 40.0)

    def test_treemap_plotly_only(self):
        """Test that static backends cannot draw a treemap."""
        with self.assertRaises(UnsupportedBackendError):
            viz_treemap(self.regions, 'region', 'value', backend='matplotlib')

    def test_map_iso3(self):
        """Test a world choropleth joined on ISO-3 codes."""
        fig = viz_map(self.regions, 'value')
        self.assertEqual(fig.data[0].locationmode, 'ISO-3')
        values = dict(zip(fig.data[0].locations, fig.data[0].z))
        self.assertEqual(values['DEU'], 25.0)

    def test_map_two_letter_codes(self):
        """Test that two-letter country codes cannot be joined."""
        regions = self.regions.assign(iso2=['DE', 'FR', 'NL', 'DE', 'US'])
        with self.assertRaises(UnsupportedBackendError):
            viz_map(regions, 'value', join_var='iso2')

    def test_gauge_value(self):
        """Test a gauge with bands and a target."""
        fig = viz_gauge(value=72, bands=[{'from': 0, 'to': 50, 'color': '#E15759'}], target=80)
        self.assertEqual(fig.data[0].value, 72.0)
        self.assertEqual(fig.data[0].gauge.threshold.value, 80)

    def test_gauge_mean_of_column(self):
        """Test a gauge showing the rounded mean of a column."""
        fig = viz_gauge(self.df, value_var='trust', max_value=5)
        self.assertEqual(fig.data[0].value, 3.2)

    def test_gauge_needs_a_value(self):
        """Test that a gauge needs either a value or a column."""
        with self.assertRaises(ValueError):
            viz_gauge()

    def test_chart_ids(self):
        """Test that charts draw ids from the caller's counter."""
        ids = ChartIdCounter('overview')
        viz_gauge(value=1, id_counter=ids)
        viz_bar(self.df, 'education', id_counter=ids)
        self.assertEqual(ids.issued, 2)


class TestCompositionCharts(unittest.TestCase):
    """Test suite for pie, heatmap and timeline."""

    def setUp(self):
        """Set up test fixtures."""
        self.df = create_sample_survey_data()
        self.panel = create_panel_data()

    def tearDown(self):
        """Close matplotlib figures."""
        plt.close('all')

    def test_pie_counts(self):
        """Test one slice per recoded category, missing answers dropped."""
        fig = viz_pie(self.df, 'sex', x_map_values=SEX_LABELS)
        self.assertEqual(list(fig.data[0].labels), ['Female', 'Male'])
        self.assertEqual(list(fig.data[0].values), [5.0, 4.0])
        self.assertEqual(fig.data[0].hole, 0)

    def test_pie_sum_sorted(self):
        """Test pre-aggregated slices sorted by size."""
        fig = viz_pie(create_funnel_data(), 'stage', y_var='users', sort_by_value=True)
        self.assertEqual(list(fig.data[0].labels), ['Visited', 'Signed up', 'Activated', 'Paid'])

    def test_donut_center_text(self):
        """Test the donut hole and its center text."""
        fig = viz_pie(self.df, 'education', inner_size="50%", center_text="9 answers")
        self.assertEqual(fig.data[0].hole, 0.5)
        self.assertEqual(fig.layout.annotations[0].text, '<b>9 answers</b>')
        self.assertIsInstance(viz_pie(self.df, 'education', inner_size=0.4, backend='matplotlib'), Figure)

    def test_pie_bad_inner_size(self):
        """Test that a hole of 100% or more is rejected."""
        with self.assertRaises(ValueError):
            viz_pie(self.df, 'education', inner_size="120%")

    def test_pie_not_on_seaborn(self):
        """Test that seaborn cannot draw a pie."""
        with self.assertRaises(UnsupportedBackendError):
            viz_pie(self.df, 'education', backend='seaborn')

    def test_heatmap_means_and_empty_cells(self):
        """Test cell means, with unobserved combinations left empty."""
        fig = viz_heatmap(self.df, 'education', 'sex', 'trust', y_map_values=SEX_LABELS)
        heat = fig.data[0]
        self.assertEqual(list(heat.x), ['High', 'Low', 'Medium'])
        self.assertEqual(list(heat.y), ['Female', 'Male'])
        self.assertEqual(list(heat.z[0]), [4.5, 2.5, 3.0])
        self.assertIsNone(heat.z[1][1])
        self.assertEqual(heat.text[1][1], '')
        self.assertEqual(heat.text[0][0], '4.5')

    def test_heatmap_order_by_mean(self):
        """Test ordering columns by the mean of their cells."""
        fig = viz_heatmap(self.df, 'education', 'sex', 'trust', y_map_values=SEX_LABELS, x_order_by='desc')
        self.assertEqual(list(fig.data[0].x), ['High', 'Medium', 'Low'])

    def test_heatmap_bad_order_by(self):
        """Test that only asc/desc are accepted."""
        with self.assertRaises(ValueError):
            viz_heatmap(self.df, 'education', 'sex', 'trust', x_order_by='up')

    def test_heatmap_static_backends(self):
        """Test the heatmap on matplotlib and seaborn."""
        for backend in ('matplotlib', 'seaborn'):
            fig = viz_heatmap(self.df, 'education', 'sex', 'trust', y_map_values=SEX_LABELS, backend=backend)
            self.assertIsInstance(fig, Figure)

    def test_timeline_shares(self):
        """Test response shares per year adding up to 100."""
        fig = viz_timeline(self.panel, 'year', 'answer', y_levels=['Yes', 'No'])
        self.assertEqual([trace.name for trace in fig.data], ['Yes', 'No'])
        self.assertEqual(list(fig.data[0].x), ['2020', '2021', '2022'])
        self.assertEqual(list(fig.data[0].y), [75.0, 33.3, 100.0])
        self.assertEqual(list(fig.data[1].y), [25.0, 66.7, 0.0])
        self.assertEqual(fig.data[0].stackgroup, 'responses')

    def test_timeline_periods(self):
        """Test left-closed time periods, with an empty period left blank."""
        fig = viz_timeline(self.panel, 'year', 'answer', time_breaks=[2018, 2020, 2022, 2023],
                           time_bin_labels=['Before', 'Early', 'Late'], y_levels=['Yes', 'No'])
        self.assertEqual(list(fig.data[0].x), ['Before', 'Early', 'Late'])
        self.assertIsNone(fig.data[0].y[0])
        self.assertEqual(list(fig.data[0].y[1:]), [57.1, 100.0])
        self.assertEqual(fig.layout.xaxis.title.text, 'Time Period')

    def test_timeline_groups_with_filter(self):
        """Test one line per group for the filtered response."""
        fig = viz_timeline(self.panel, 'year', 'answer', group_var='country', y_filter='Yes',
                           chart_type='line')
        self.assertEqual([trace.name for trace in fig.data], ['A', 'B'])
        self.assertEqual(list(fig.data[0].y), [50.0, 0.0, 100.0])
        self.assertEqual(list(fig.data[1].y), [100.0, 100.0, 100.0])
        self.assertIsNone(fig.data[0].stackgroup)

    def test_timeline_unknown_filter(self):
        """Test that a filter matching no response is rejected."""
        with self.assertRaises(ValueError):
            viz_timeline(self.panel, 'year', 'answer', y_filter='Maybe')

    def test_timeline_matplotlib(self):
        """Test stacked and line timelines on matplotlib."""
        for chart_type in ('stacked_area', 'line'):
            fig = viz_timeline(self.panel, 'year', 'answer', chart_type=chart_type, backend='matplotlib')
            self.assertIsInstance(fig, Figure)


class TestFigureLifecycle(unittest.TestCase):
    """Test suite for static figures and pyplot's figure registry."""

    def setUp(self):
        """Set up test fixtures."""
        plt.close('all')
        self.df = create_sample_survey_data()

    def test_repeated_renders_leave_no_open_figures(self):
        """Test that static charts are not kept alive by pyplot."""
        for _ in range(10):
            viz_bar(self.df, 'education', backend='matplotlib')
            viz_bar(self.df, 'education', backend='seaborn')
            viz_heatmap(self.df, 'education', 'sex', 'trust', backend='seaborn')
        self.assertEqual(plt.get_fignums(), [])

    def test_detached_figure_saves(self):
        """Test that a returned figure can still be written to disk."""
        fig = viz_histogram(self.df, 'trust', backend='matplotlib')
        buffer = BytesIO()
        fig.savefig(buffer, format='png')
        self.assertGreater(len(buffer.getvalue()), 0)


if __name__ == '__main__':
    unittest.main()
