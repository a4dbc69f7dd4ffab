"""
Data models for the chart data pipeline.

This module defines the **schema layer** of dashboardr.  The pipeline itself
operates on ``pandas.DataFrame`` columns, but every value that crosses a stage
boundary is one of the typed, immutable dataclasses below.

Dataclass hierarchy
-------------------
::

    BinSpec
        How to discretise a numeric column: explicit breakpoints (+ labels)
        or an automatic bin count.

    FiveNumberSummary
        Box plot statistics for one category: whisker low, Q1, median, Q3,
        whisker high, plus the outlier points beyond the Tukey fences.

    AggregationResult
        The aggregator's output: ordered categories (and groups), one measure
        per category / (category, group) pair, completed with zeros.

    DisplayOptions (+ one subclass per chart type)
        Closed, named styling parameters handed to the renderer.

    ChartConfig
        Backend-agnostic bundle of all of the above, built once per chart
        call and consumed once by exactly one renderer.

Enumerations
------------
``ChartType`` closes the set of chart kinds the dispatcher can route and
``AggregationMode`` the measures the aggregator can compute.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from ..core.config import (
    CONNECTOR_COLOR,
    FUNNEL_HEIGHT,
    GAUGE_BACKGROUND_COLOR,
    GAUGE_HEIGHT,
    GAUGE_TARGET_COLOR,
    HEATMAP_COLOR_SCALE,
    HEATMAP_HEIGHT,
    HIGH_COLOR,
    LOW_COLOR,
    MAP_COLOR_SCALE,
    MAP_HEIGHT,
    MAP_NA_COLOR,
    PIE_HEIGHT,
    PRIMARY_COLOR,
    TREEMAP_HEIGHT,
)
from ..core.errors import InvalidBinSpecError


# ============================================================================
# ENUMERATIONS
# ============================================================================

class ChartType(Enum):
    """Chart kinds known to the dispatcher."""
    HISTOGRAM = "histogram"
    BAR = "bar"
    STACKEDBAR = "stackedbar"
    BOXPLOT = "boxplot"
    SCATTER = "scatter"
    LOLLIPOP = "lollipop"
    DUMBBELL = "dumbbell"
    FUNNEL = "funnel"
    TREEMAP = "treemap"
    MAP = "map"
    GAUGE = "gauge"
    PIE = "pie"
    HEATMAP = "heatmap"
    TIMELINE = "timeline"


class AggregationMode(Enum):
    """
    Measures computed by the aggregator.

    COUNT counts rows, or sums a weight column when one is given.  PERCENT is
    the same quantity as a share of the (category) total.  SUM and MEAN
    summarise a value column, BOXPLOT computes a five-number summary.
    """
    COUNT = "count"
    PERCENT = "percent"
    SUM = "sum"
    MEAN = "mean"
    BOXPLOT = "boxplot"


# ============================================================================
# BINNING
# ============================================================================

@dataclass(frozen=True)
class BinSpec:
    """Discretisation of a numeric column.

    Exactly one of ``breaks`` or ``bins`` is set.  With ``breaks`` the values
    are cut into ``len(breaks) - 1`` intervals; ``labels`` optionally
    replaces the default interval notation.  With ``bins`` equal-width
    breakpoints are computed from the observed range at binning time.
    """
    breaks: Optional[Tuple[float, ...]] = None
    labels: Optional[Tuple[str, ...]] = None
    bins: Optional[int] = None

    def __post_init__(self):
        if self.labels is not None and len(set(self.labels)) != len(self.labels):
            raise InvalidBinSpecError(f"`labels` must be unique, got {list(self.labels)}")
        if self.breaks is None and self.bins is None:
            raise InvalidBinSpecError("Either `breaks` or `bins` must be provided")
        if self.breaks is not None and self.bins is not None:
            raise InvalidBinSpecError("Provide `breaks` or `bins`, not both")

        if self.bins is not None:
            if isinstance(self.bins, bool) or not isinstance(self.bins, (int, np.integer)) or self.bins < 1:
                raise InvalidBinSpecError(f"`bins` must be a positive integer, got {self.bins!r}")
            if self.labels is not None and len(self.labels) != self.bins:
                raise InvalidBinSpecError(
                    f"Length of `labels` ({len(self.labels)}) must equal `bins` ({self.bins})"
                )
            return

        try:
            breaks = tuple(float(b) for b in self.breaks)
        except (TypeError, ValueError):
            raise InvalidBinSpecError("`breaks` must be a sequence of numbers") from None
        if len(breaks) < 2:
            raise InvalidBinSpecError("`breaks` must contain at least two values")
        if any(math.isnan(b) for b in breaks):
            raise InvalidBinSpecError("`breaks` must not contain NaN")
        if any(b2 <= b1 for b1, b2 in zip(breaks, breaks[1:])):
            raise InvalidBinSpecError(f"`breaks` must be strictly increasing, got {list(breaks)}")
        if self.labels is not None and len(self.labels) != len(breaks) - 1:
            raise InvalidBinSpecError(
                f"Length of `labels` ({len(self.labels)}) must be len(breaks) - 1 ({len(breaks) - 1})"
            )
        object.__setattr__(self, 'breaks', breaks)

    @classmethod
    def from_options(cls, breaks=None, labels=None, bins=None) -> Optional['BinSpec']:
        """Build a spec from chart-function keyword arguments (None if unused)."""
        if breaks is None and bins is None:
            if labels is not None:
                raise InvalidBinSpecError("`labels` were given without `breaks` or `bins`")
            return None
        if breaks is not None:
            # explicit breakpoints win over a bin count
            bins = None
        if labels is not None:
            labels = tuple(str(lbl) for lbl in labels)
        return cls(
            breaks=tuple(breaks) if breaks is not None else None,
            labels=labels,
            bins=bins,
        )


# ============================================================================
# AGGREGATION RESULTS
# ============================================================================

@dataclass(frozen=True)
class FiveNumberSummary:
    """Box plot statistics for one category.

    ``low``/``high`` are the whisker ends: the most extreme values inside the
    Tukey fences, not the fences themselves.
    """
    low: float
    q1: float
    median: float
    q3: float
    high: float
    outliers: Tuple[float, ...] = ()
    n: int = 0

    @classmethod
    def empty(cls) -> 'FiveNumberSummary':
        nan = float('nan')
        return cls(low=nan, q1=nan, median=nan, q3=nan, high=nan, outliers=(), n=0)

    @property
    def is_empty(self) -> bool:
        return self.n == 0

    @property
    def iqr(self) -> float:
        return self.q3 - self.q1

    def as_list(self) -> List[float]:
        """``[low, q1, median, q3, high]`` in the order box renderers expect."""
        return [self.low, self.q1, self.median, self.q3, self.high]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'low': self.low, 'q1': self.q1, 'median': self.median,
            'q3': self.q3, 'high': self.high,
            'outliers': list(self.outliers), 'n': self.n,
        }


@dataclass(frozen=True)
class AggregationResult:
    """Aggregated measure per category, or per (category, group) pair.

    Attributes:
        mode: The aggregation that produced the values.
        categories: Ordered category labels (the chart's categorical axis).
        groups: Ordered group labels for grouped/stacked charts, else None.
        values: ``{category: value}`` or ``{(category, group): value}``;
            holds an entry for every category (x group).
        summaries: ``{category: FiveNumberSummary}`` for BOXPLOT mode.
        counts: Unrounded counts behind PERCENT values, keyed like ``values``.
        value_label: Human label of the measure ("Count", "Percentage", ...).
    """
    mode: 'AggregationMode'
    categories: Tuple[str, ...]
    groups: Optional[Tuple[str, ...]] = None
    values: Mapping[Any, float] = field(default_factory=dict)
    summaries: Mapping[str, FiveNumberSummary] = field(default_factory=dict)
    counts: Mapping[Any, float] = field(default_factory=dict)
    value_label: str = "Count"

    @property
    def is_grouped(self) -> bool:
        return self.groups is not None

    def value(self, category: str, group: Optional[str] = None) -> float:
        key = (category, group) if self.is_grouped else category
        return self.values[key]

    def series(self, group: Optional[str] = None) -> List[float]:
        """Values for every category, in category order (one group if grouped)."""
        if self.is_grouped:
            if group is None:
                raise ValueError("`group` is required for a grouped result")
            return [self.values[(cat, group)] for cat in self.categories]
        return [self.values[cat] for cat in self.categories]

    def total(self) -> float:
        return float(sum(self.values.values()))

    def to_frame(self) -> pd.DataFrame:
        """Long-format frame: ``category`` [, ``group``], ``value``."""
        if self.mode is AggregationMode.BOXPLOT:
            rows = [dict(category=cat, **self.summaries[cat].to_dict()) for cat in self.categories]
            return pd.DataFrame(rows)
        if self.is_grouped:
            rows = [
                {'category': cat, 'group': grp, 'value': self.values[(cat, grp)]}
                for cat in self.categories for grp in self.groups
            ]
        else:
            rows = [{'category': cat, 'value': self.values[cat]} for cat in self.categories]
        frame = pd.DataFrame(rows)
        frame['category'] = pd.Categorical(frame['category'], categories=list(self.categories), ordered=True)
        if self.is_grouped:
            frame['group'] = pd.Categorical(frame['group'], categories=list(self.groups), ordered=True)
        return frame


# ============================================================================
# DISPLAY OPTIONS
# ============================================================================

Palette = Union[Sequence[str], Mapping[str, str], str, None]


@dataclass(frozen=True)
class DisplayOptions:
    """Styling shared by every chart type.

    ``palette`` is a list of colors (applied in category/group order), a
    ``{label: color}`` mapping, or a single color string.
    """
    title: Optional[str] = None
    subtitle: Optional[str] = None
    x_label: Optional[str] = None
    y_label: Optional[str] = None
    palette: Palette = None
    tooltip_prefix: str = ""
    tooltip_suffix: str = ""
    x_tooltip_suffix: str = ""
    legend_title: Optional[str] = None
    legend_position: Optional[str] = None   # "right", "bottom", "top", "none"
    height: Optional[int] = None

    @property
    def show_legend(self) -> bool:
        return self.legend_position != "none"


@dataclass(frozen=True)
class BarOptions(DisplayOptions):
    """Histogram, bar and stacked bar charts."""
    horizontal: bool = False
    data_labels: bool = True


@dataclass(frozen=True)
class BoxplotOptions(DisplayOptions):
    horizontal: bool = False
    show_outliers: bool = True


@dataclass(frozen=True)
class ScatterOptions(DisplayOptions):
    point_size: float = 4
    alpha: float = 0.7
    show_trend: bool = False
    trend_method: str = "lm"


@dataclass(frozen=True)
class LollipopOptions(DisplayOptions):
    horizontal: bool = True
    data_labels: bool = True
    dot_size: float = 8
    stem_width: float = 2


@dataclass(frozen=True)
class DumbbellOptions(DisplayOptions):
    horizontal: bool = True
    data_labels: bool = False
    low_label: str = "Low"
    high_label: str = "High"
    low_color: str = LOW_COLOR
    high_color: str = HIGH_COLOR
    connector_color: str = CONNECTOR_COLOR
    connector_width: float = 2
    dot_size: float = 6


@dataclass(frozen=True)
class FunnelOptions(DisplayOptions):
    show_conversion: bool = True
    reversed: bool = False
    data_labels: bool = True
    height: Optional[int] = FUNNEL_HEIGHT


@dataclass(frozen=True)
class TreemapOptions(DisplayOptions):
    show_labels: bool = True
    height: Optional[int] = TREEMAP_HEIGHT


@dataclass(frozen=True)
class MapOptions(DisplayOptions):
    map_type: str = "world"
    location_mode: str = "ISO-3"
    color_scale: Tuple[str, ...] = tuple(MAP_COLOR_SCALE)
    na_color: str = MAP_NA_COLOR
    height: Optional[int] = MAP_HEIGHT


@dataclass(frozen=True)
class GaugeBand:
    start: float
    end: float
    color: str


@dataclass(frozen=True)
class GaugeOptions(DisplayOptions):
    min_value: float = 0
    max_value: float = 100
    bands: Tuple[GaugeBand, ...] = ()
    target: Optional[float] = None
    color: str = PRIMARY_COLOR
    background_color: str = GAUGE_BACKGROUND_COLOR
    target_color: str = GAUGE_TARGET_COLOR
    height: Optional[int] = GAUGE_HEIGHT


@dataclass(frozen=True)
class PieOptions(DisplayOptions):
    """Pie and donut charts; ``inner_size`` is the hole as a fraction of the radius."""
    inner_size: float = 0.0
    data_labels: bool = True
    show_in_legend: bool = True
    center_text: Optional[str] = None
    height: Optional[int] = PIE_HEIGHT

    @property
    def is_donut(self) -> bool:
        return self.inner_size > 0


@dataclass(frozen=True)
class HeatmapOptions(DisplayOptions):
    color_scale: Tuple[str, ...] = tuple(HEATMAP_COLOR_SCALE)
    color_min: Optional[float] = None
    color_max: Optional[float] = None
    na_color: Optional[str] = None
    data_labels: bool = True
    label_decimals: int = 1
    y_tooltip_suffix: str = ""
    height: Optional[int] = HEATMAP_HEIGHT


@dataclass(frozen=True)
class TimelineOptions(DisplayOptions):
    """Response shares over time, as lines or as a stacked area."""
    chart_type: str = "stacked_area"
    show_markers: bool = True
    line_width: float = 2

    @property
    def stacked(self) -> bool:
        return self.chart_type == "stacked_area"


# ============================================================================
# CHART CONFIGURATION
# ============================================================================

@dataclass(frozen=True)
class ChartConfig:
    """Everything a renderer needs, independent of the backend.

    Attributes:
        chart_type: Which chart the renderer must draw.
        backend: Canonical backend name the dispatcher routes to.
        display: Chart-type specific display options.
        result: Aggregated measures (categorical charts).
        points: Row-level payload for charts that plot individual rows
            (scatter: ``x``, ``y`` and optional ``color``/``size``/``trend``).
        category_var: Source column of the categorical axis.
        value_var: Source column of the measure, if any.
        chart_id: Identifier drawn from the caller's ChartIdCounter.
    """
    chart_type: ChartType
    backend: str
    display: DisplayOptions = field(default_factory=DisplayOptions)
    result: Optional[AggregationResult] = None
    points: Optional[pd.DataFrame] = None
    category_var: Optional[str] = None
    value_var: Optional[str] = None
    chart_id: Optional[str] = None

    @property
    def x_label(self) -> str:
        if self.display.x_label is not None:
            return self.display.x_label
        return self.category_var or ""

    @property
    def y_label(self) -> str:
        if self.display.y_label is not None:
            return self.display.y_label
        if self.result is not None:
            return self.result.value_label
        return self.value_var or ""
