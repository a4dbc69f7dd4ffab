"""
Central Configuration Module for dashboardr.

=== PURPOSE ===
Single source of truth for every default, palette, precision and backend
table used by the chart data pipeline.  Pipeline stages and renderers import
from here rather than defining their own magic values, so a dashboard author
can re-tune behaviour (default backend, decimals, labels) in one place.

=== DATA FLOW ===
  1. DEFAULT_MISSING_LABEL feeds the NA policy resolver and the orderer.
  2. PERCENT_DECIMALS / MEAN_DECIMALS / WEIGHTED_COUNT_DECIMALS drive the
     rounding rules of the aggregator.
  3. BACKENDS, BACKEND_ALIASES and BACKEND_CAPABILITIES are read by the
     dispatcher to validate and route every chart call.
  4. DEFAULT_PALETTE and the *_COLOR constants are the fallback styling for
     every renderer when the caller passes no palette.
  5. MANIFEST_FILENAME names the incremental-build manifest on disk.

Environment overrides (for CI and containerised builds):
  DASHBOARDR_BACKEND   - default backend when a chart call passes none
  DASHBOARDR_MANIFEST  - file name of the incremental-build manifest
"""

import os
import logging

logger = logging.getLogger(__name__)

# ==========================================
# MISSING VALUES
# ==========================================
# Label used for the explicit "missing" category when include_missing=True.
DEFAULT_MISSING_LABEL = "(Missing)"

# ==========================================
# AGGREGATION PRECISION
# ==========================================
# Percentages are shown with one decimal place (e.g. 33.3).
PERCENT_DECIMALS = 1

# Means (lollipop mean mode, dumbbell endpoints) keep two decimals.
MEAN_DECIMALS = 2

# Gauge values computed from a column mean keep one decimal.
GAUGE_DECIMALS = 1

# Weighted counts are rounded to whole respondents for display.
WEIGHTED_COUNT_DECIMALS = 0

# Tukey fence multiplier for box plot outliers.
IQR_MULTIPLIER = 1.5

# Quartile probabilities for the five-number summary.
QUARTILES = (0.25, 0.5, 0.75)

# ==========================================
# BACKENDS
# ==========================================
# Canonical backend identifiers.  Order matters: it is the order shown in
# error messages.
BACKENDS = ("plotly", "matplotlib", "seaborn")

# Accepted shorthands, resolved case-insensitively by the dispatcher.
BACKEND_ALIASES = {
    "mpl": "matplotlib",
    "pyplot": "matplotlib",
    "sns": "seaborn",
    "plotly.graph_objects": "plotly",
}

# Default backend for every chart function.
DEFAULT_BACKEND = os.environ.get("DASHBOARDR_BACKEND", "plotly")

# Which backend implements which chart type.  The dispatcher cross-checks
# its renderer registry against this table at import time.
BACKEND_CAPABILITIES = {
    "histogram": ("plotly", "matplotlib", "seaborn"),
    "bar": ("plotly", "matplotlib", "seaborn"),
    "stackedbar": ("plotly", "matplotlib"),
    "boxplot": ("plotly", "matplotlib"),
    "scatter": ("plotly", "matplotlib", "seaborn"),
    "lollipop": ("plotly", "matplotlib"),
    "dumbbell": ("plotly", "matplotlib"),
    "funnel": ("plotly", "matplotlib"),
    "treemap": ("plotly",),
    "map": ("plotly",),
    "gauge": ("plotly",),
    "pie": ("plotly", "matplotlib"),
    "heatmap": ("plotly", "matplotlib", "seaborn"),
    "timeline": ("plotly", "matplotlib"),
}

# ==========================================
# COLORS
# ==========================================
# Default categorical palette (Tableau 10), applied in category order.
DEFAULT_PALETTE = [
    '#4E79A7',  # Blue
    '#F28E2B',  # Orange
    '#E15759',  # Red
    '#76B7B2',  # Teal
    '#59A14F',  # Green
    '#EDC948',  # Yellow
    '#B07AA1',  # Purple
    '#FF9DA7',  # Pink
    '#9C755F',  # Brown
    '#BAB0AC',  # Grey
]

PRIMARY_COLOR = '#4E79A7'

# Dumbbell endpoint colors.
LOW_COLOR = '#E15759'
HIGH_COLOR = '#4E79A7'
CONNECTOR_COLOR = '#999999'

# Map fill gradient (light -> dark) and the color for regions without data.
MAP_COLOR_SCALE = ['#f7fbff', '#08306b']
MAP_NA_COLOR = '#E0E0E0'

# Gauge track and target line.
GAUGE_BACKGROUND_COLOR = '#e6e6e6'
GAUGE_TARGET_COLOR = '#333333'

# Heatmap fill gradient (low -> high).  Cells without data stay transparent
# unless a na_color is given.
HEATMAP_COLOR_SCALE = ['#FFFFFF', '#7CB5EC']

# ==========================================
# FIGURE DEFAULTS
# ==========================================
# matplotlib/seaborn figure size in inches and resolution.
FIGURE_SIZE = (8, 5)
FIGURE_DPI = 100

# Default plotly heights (px) for chart types that need a fixed canvas.
FUNNEL_HEIGHT = 400
TREEMAP_HEIGHT = 500
MAP_HEIGHT = 500
GAUGE_HEIGHT = 300
PIE_HEIGHT = 400
HEATMAP_HEIGHT = 500

# ==========================================
# INCREMENTAL BUILDS
# ==========================================
# File written into the dashboard output directory that records the content
# hash of every page from the previous build.
MANIFEST_FILENAME = os.environ.get("DASHBOARDR_MANIFEST", ".dashboardr_manifest.json")

# Digest size in bytes for page hashes (64-bit, change detection only).
HASH_DIGEST_SIZE = 8
