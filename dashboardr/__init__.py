"""
dashboardr - dashboard charts from survey-style tables.

This package turns a pandas DataFrame into dashboard charts through one
shared chart data pipeline:
- Input validation with "did you mean" column suggestions
- Value recoding of survey codes to labels
- Binning of numeric variables into ordered intervals
- Explicit missing-value policy (drop, or show as a category)
- Stable category ordering
- Weighted counts, percentages, means and box plot statistics
- Pie, heatmap and timeline charts of survey responses
- Dispatch to plotly, matplotlib or seaborn renderers
- Incremental build manifest for dashboard pages
"""

__version__ = "0.1.0"
__author__ = "dashboardr developers"

# Core imports
from .core.config import *
from .core.errors import (
    DashboardrError,
    MissingColumnError,
    TypeMismatchError,
    InvalidMapError,
    InvalidBinSpecError,
    InvalidOrderError,
    UnsupportedBackendError,
)

# Data models
from .models import (
    ChartType,
    AggregationMode,
    BinSpec,
    FiveNumberSummary,
    AggregationResult,
    DisplayOptions,
    ChartConfig,
)

# Pipeline
from .pipeline import (
    ChartIdCounter,
    aggregate,
    build_config,
    dispatch,
    five_number_summary,
    normalize_backend,
    render_chart,
)

# Chart functions
from .visualization import (
    viz_histogram,
    viz_bar,
    viz_stackedbar,
    viz_boxplot,
    viz_scatter,
    viz_lollipop,
    viz_dumbbell,
    viz_funnel,
    viz_treemap,
    viz_map,
    viz_gauge,
    viz_pie,
    viz_heatmap,
    viz_timeline,
)

# Incremental builds
from .incremental import (
    compute_hash,
    load_manifest,
    save_manifest,
    needs_rebuild,
    plan_build,
    record_page,
)

__all__ = [
    # Errors
    'DashboardrError',
    'MissingColumnError',
    'TypeMismatchError',
    'InvalidMapError',
    'InvalidBinSpecError',
    'InvalidOrderError',
    'UnsupportedBackendError',

    # Models
    'ChartType',
    'AggregationMode',
    'BinSpec',
    'FiveNumberSummary',
    'AggregationResult',
    'DisplayOptions',
    'ChartConfig',

    # Pipeline
    'ChartIdCounter',
    'aggregate',
    'build_config',
    'dispatch',
    'five_number_summary',
    'normalize_backend',
    'render_chart',

    # Charts
    'viz_histogram',
    'viz_bar',
    'viz_stackedbar',
    'viz_boxplot',
    'viz_scatter',
    'viz_lollipop',
    'viz_dumbbell',
    'viz_funnel',
    'viz_treemap',
    'viz_map',
    'viz_gauge',
    'viz_pie',
    'viz_heatmap',
    'viz_timeline',

    # Incremental
    'compute_hash',
    'load_manifest',
    'save_manifest',
    'needs_rebuild',
    'record_page',
    'plan_build',
]
