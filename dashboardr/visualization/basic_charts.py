"""
Core chart functions: histogram, bar, stacked bar, box plot and scatter.

Every function validates its arguments, runs the shared chart data pipeline
and returns the chart object of the selected backend
(``plotly.graph_objects.Figure`` by default, ``matplotlib.figure.Figure``
for ``backend="matplotlib"`` / ``"seaborn"``).

Example::

    >>> fig = viz_bar(survey, x_var="education", group_var="sex",
    ...               bar_type="percent", group_map_values={"1": "Male", "2": "Female"})
"""

import logging
from typing import Mapping, Optional, Sequence

import numpy as np
import pandas as pd
from scipy import stats
from statsmodels.nonparametric.smoothers_lowess import lowess

from ..core.config import DEFAULT_BACKEND, DEFAULT_MISSING_LABEL
from ..core.utils import as_column_ref, as_column_refs
from ..models.data_models import (
    AggregationMode,
    BarOptions,
    BinSpec,
    BoxplotOptions,
    ChartConfig,
    ChartType,
    ScatterOptions,
)
from ..pipeline.aggregator import aggregate
from ..pipeline.dispatcher import ChartIdCounter, assert_backend_supported
from ..pipeline.na_policy import validate_na_params
from ..pipeline.orchestrator import build_config, prepare_categories, working_copy
from ..pipeline.validator import coerce_numeric, require_columns, require_numeric, validate_table
from .common import MODE_LABELS, apply_sort, choose_mode, collect_value_maps, finish

logger = logging.getLogger(__name__)

TREND_METHODS = ("lm", "loess")

# Placeholder category when a box plot has no grouping column.
_ALL = "__all__"


# =============================================================================
# HISTOGRAM
# =============================================================================

def viz_histogram(data: pd.DataFrame,
                  x_var,
                  y_var=None,
                  title: Optional[str] = None,
                  subtitle: Optional[str] = None,
                  x_label: Optional[str] = None,
                  y_label: Optional[str] = None,
                  histogram_type: str = "count",
                  tooltip_prefix: str = "",
                  tooltip_suffix: str = "",
                  x_tooltip_suffix: str = "",
                  bins: Optional[int] = None,
                  bin_breaks: Optional[Sequence[float]] = None,
                  bin_labels: Optional[Sequence[str]] = None,
                  include_missing: bool = False,
                  missing_label: str = DEFAULT_MISSING_LABEL,
                  color_palette=None,
                  x_map_values: Optional[Mapping] = None,
                  x_order: Optional[Sequence] = None,
                  weight_var=None,
                  horizontal: bool = False,
                  data_labels: bool = True,
                  backend: str = DEFAULT_BACKEND,
                  id_counter: Optional[ChartIdCounter] = None):
    """
    Distribution of one variable as counts or percentages per category/bin.

    Args:
        x_var: Column to count.  Numeric columns can be cut with ``bins``
            (equal width) or ``bin_breaks`` (+ ``bin_labels``).
        y_var: Pre-counted frequencies per row; rows are summed per category.
        histogram_type: "count" or "percent".
        weight_var: Survey weights; counts become weighted sums.

    Returns:
        Chart object of the selected backend.
    """
    mode = choose_mode(histogram_type, 'histogram_type', ("count", "percent"))
    x_var = as_column_ref(x_var, 'x_var')
    y_var = as_column_ref(y_var, 'y_var')
    if y_var is not None and weight_var is not None:
        raise ValueError("`weight_var` cannot be combined with pre-counted `y_var`")

    config = build_config(
        data, x_var,
        weight_var=y_var if y_var is not None else weight_var,
        value_maps=collect_value_maps((x_var, x_map_values)),
        bin_spec=BinSpec.from_options(bin_breaks, bin_labels, bins),
        include_missing=include_missing,
        missing_label=missing_label,
        order=x_order,
        aggregation_mode=mode,
        backend=backend,
        display=BarOptions(
            title=title, subtitle=subtitle, x_label=x_label, y_label=y_label,
            palette=color_palette, tooltip_prefix=tooltip_prefix, tooltip_suffix=tooltip_suffix,
            x_tooltip_suffix=x_tooltip_suffix, horizontal=horizontal, data_labels=data_labels,
        ),
        chart_type=ChartType.HISTOGRAM,
        id_counter=id_counter,
        value_label=MODE_LABELS[mode],
    )
    return finish(config)


# =============================================================================
# BAR
# =============================================================================

def viz_bar(data: pd.DataFrame,
            x_var,
            group_var=None,
            title: Optional[str] = None,
            subtitle: Optional[str] = None,
            x_label: Optional[str] = None,
            y_label: Optional[str] = None,
            horizontal: bool = False,
            bar_type: str = "count",
            value_var=None,
            color_palette=None,
            group_order: Optional[Sequence] = None,
            x_order: Optional[Sequence] = None,
            sort_by_value: bool = False,
            sort_desc: bool = True,
            x_breaks: Optional[Sequence[float]] = None,
            x_bin_labels: Optional[Sequence[str]] = None,
            x_map_values: Optional[Mapping] = None,
            group_map_values: Optional[Mapping] = None,
            include_missing: bool = False,
            missing_label: str = DEFAULT_MISSING_LABEL,
            weight_var=None,
            tooltip_prefix: str = "",
            tooltip_suffix: str = "",
            x_tooltip_suffix: str = "",
            legend_title: Optional[str] = None,
            legend_position: Optional[str] = None,
            data_labels: bool = True,
            backend: str = DEFAULT_BACKEND,
            id_counter: Optional[ChartIdCounter] = None):
    """
    Bar chart of counts, percentages or means per category, optionally grouped.

    ``bar_type="percent"`` with a ``group_var`` gives the share of each group
    within its category.  ``bar_type="mean"`` needs ``value_var``.
    ``sort_by_value`` reorders the categories by their measure and takes
    precedence over ``x_order``.
    """
    mode = choose_mode(bar_type, 'bar_type', ("count", "percent", "mean"))
    x_var = as_column_ref(x_var, 'x_var')
    group_var = as_column_ref(group_var, 'group_var')
    value_var = as_column_ref(value_var, 'value_var')
    if mode is AggregationMode.MEAN and value_var is None:
        raise ValueError("`value_var` is required when bar_type='mean'")
    if sort_by_value and x_order is not None:
        logger.warning("Both `sort_by_value` and `x_order` given; sorting by value")

    config = build_config(
        data, x_var,
        y_var=value_var if mode is AggregationMode.MEAN else None,
        group_var=group_var,
        weight_var=weight_var,
        value_maps=collect_value_maps((x_var, x_map_values), (group_var, group_map_values)),
        bin_spec=BinSpec.from_options(x_breaks, x_bin_labels),
        include_missing=include_missing,
        missing_label=missing_label,
        order=x_order,
        group_order=group_order,
        aggregation_mode=mode,
        backend=backend,
        display=BarOptions(
            title=title, subtitle=subtitle, x_label=x_label, y_label=y_label,
            palette=color_palette, tooltip_prefix=tooltip_prefix, tooltip_suffix=tooltip_suffix,
            x_tooltip_suffix=x_tooltip_suffix, legend_title=legend_title,
            legend_position=legend_position, horizontal=horizontal, data_labels=data_labels,
        ),
        chart_type=ChartType.BAR,
        id_counter=id_counter,
        value_label=MODE_LABELS.get(mode),
    )
    return finish(apply_sort(config, sort_by_value, sort_desc))


# =============================================================================
# STACKED BAR
# =============================================================================

_VARIABLE = ".variable"
_RESPONSE = ".response"


def viz_stackedbar(data: pd.DataFrame,
                   x_var=None,
                   y_var=None,
                   stack_var=None,
                   x_vars: Optional[Sequence] = None,
                   x_var_labels: Optional[Sequence[str]] = None,
                   response_levels: Optional[Sequence[str]] = None,
                   title: Optional[str] = None,
                   subtitle: Optional[str] = None,
                   x_label: Optional[str] = None,
                   y_label: Optional[str] = None,
                   stack_label: Optional[str] = None,
                   stacked_type: str = "counts",
                   tooltip_prefix: str = "",
                   tooltip_suffix: str = "",
                   x_tooltip_suffix: str = "",
                   color_palette=None,
                   stack_order: Optional[Sequence] = None,
                   x_order: Optional[Sequence] = None,
                   include_missing: bool = False,
                   missing_label_x: str = DEFAULT_MISSING_LABEL,
                   missing_label_stack: str = DEFAULT_MISSING_LABEL,
                   x_breaks: Optional[Sequence[float]] = None,
                   x_bin_labels: Optional[Sequence[str]] = None,
                   x_map_values: Optional[Mapping] = None,
                   stack_breaks: Optional[Sequence[float]] = None,
                   stack_bin_labels: Optional[Sequence[str]] = None,
                   stack_map_values: Optional[Mapping] = None,
                   horizontal: bool = False,
                   weight_var=None,
                   legend_position: Optional[str] = None,
                   data_labels: bool = True,
                   backend: str = DEFAULT_BACKEND,
                   id_counter: Optional[ChartIdCounter] = None):
    """
    Stacked bar chart in one of two modes.

    Crosstab mode (``x_var`` + ``stack_var``): one bar per x category,
    stacked by ``stack_var``.  ``stacked_type="normal"`` stacks the sum of
    ``y_var`` instead of counts.

    Multi-variable mode (``x_vars``): one bar per column, stacked by the
    responses found in those columns (e.g. a battery of Likert items sharing
    one scale).  ``x_var_labels`` renames the bars, ``response_levels`` fixes
    the stack order.

    Returns:
        Chart object of the selected backend.
    """
    validate_table(data)
    if (x_vars is None) == (x_var is None):
        raise ValueError("Provide either `x_var` + `stack_var` (crosstab) or `x_vars` (multi-variable)")
    mode = choose_mode(stacked_type, 'stacked_type', ("counts", "percent", "normal"))
    backend = assert_backend_supported(ChartType.STACKEDBAR, backend)
    label_x = validate_na_params(include_missing, missing_label_x, 'missing_label_x')
    label_stack = validate_na_params(include_missing, missing_label_stack, 'missing_label_stack')

    weight_var = as_column_ref(weight_var, 'weight_var')
    if x_vars is not None:
        if mode is AggregationMode.SUM:
            raise ValueError("stacked_type='normal' is not available with `x_vars`")
        df, category_var, stack_col = _pivot_items(data, as_column_refs(x_vars, 'x_vars'), x_var_labels,
                                                   weight_var)
        maps = collect_value_maps((stack_col, stack_map_values))
        bin_specs = {stack_col: BinSpec.from_options(stack_breaks, stack_bin_labels)}
        orders = {stack_col: response_levels if response_levels is not None else stack_order}
        measure_var = None
    else:
        x_var = as_column_ref(x_var, 'x_var')
        stack_col = as_column_ref(stack_var, 'stack_var')
        y_var = as_column_ref(y_var, 'y_var')
        if mode is AggregationMode.SUM and y_var is None:
            raise ValueError("`y_var` is required when stacked_type='normal'")
        require_columns(data, {'x_var': x_var, 'stack_var': stack_col},
                        {'y_var': y_var, 'weight_var': weight_var})
        measure_var = y_var if mode is AggregationMode.SUM else None
        df = working_copy(data, [x_var, stack_col, measure_var, weight_var])
        require_numeric(df, [measure_var, weight_var])
        category_var = x_var
        maps = collect_value_maps((x_var, x_map_values), (stack_col, stack_map_values))
        bin_specs = {
            x_var: BinSpec.from_options(x_breaks, x_bin_labels),
            stack_col: BinSpec.from_options(stack_breaks, stack_bin_labels),
        }
        orders = {x_var: x_order, stack_col: stack_order}

    missing_labels = {category_var: label_x, stack_col: label_stack}

    df = prepare_categories(
        df, [category_var, stack_col],
        value_maps=maps,
        bin_specs=bin_specs,
        include_missing=include_missing,
        missing_label=missing_labels,
        orders=orders,
    )
    result = aggregate(df, category_var, mode, group_var=stack_col, value_var=measure_var,
                       weight_var=weight_var, value_label=MODE_LABELS.get(mode, measure_var))

    config = ChartConfig(
        chart_type=ChartType.STACKEDBAR,
        backend=backend,
        display=BarOptions(
            title=title, subtitle=subtitle, x_label=x_label, y_label=y_label,
            palette=color_palette, tooltip_prefix=tooltip_prefix, tooltip_suffix=tooltip_suffix,
            x_tooltip_suffix=x_tooltip_suffix, legend_title=stack_label,
            legend_position=legend_position, horizontal=horizontal, data_labels=data_labels,
        ),
        result=result,
        category_var=category_var if x_vars is None else "",
        value_var=measure_var,
        chart_id=id_counter.next_id() if id_counter is not None else None,
    )
    return finish(config)


def _pivot_items(data: pd.DataFrame, x_vars, x_var_labels, weight_var):
    """Long format for multi-variable mode: one row per (row, item)."""
    require_columns(data, {f'x_vars[{i}]': col for i, col in enumerate(x_vars)}, {'weight_var': weight_var})
    if x_var_labels is not None and len(x_var_labels) != len(x_vars):
        raise ValueError("`x_var_labels` must be the same length as `x_vars`")
    labels = [str(lbl) for lbl in x_var_labels] if x_var_labels is not None else list(x_vars)

    id_vars = [weight_var] if weight_var is not None else []
    wide = working_copy(data, list(x_vars) + id_vars)
    require_numeric(wide, [weight_var])
    long = wide.melt(id_vars=id_vars, value_vars=list(x_vars), var_name=_VARIABLE, value_name=_RESPONSE)
    long[_VARIABLE] = pd.Categorical(
        long[_VARIABLE].map(dict(zip(x_vars, labels))), categories=labels, ordered=True,
    )
    return long, _VARIABLE, _RESPONSE


# =============================================================================
# BOX PLOT
# =============================================================================

def viz_boxplot(data: pd.DataFrame,
                y_var,
                x_var=None,
                title: Optional[str] = None,
                subtitle: Optional[str] = None,
                x_label: Optional[str] = None,
                y_label: Optional[str] = None,
                color_palette=None,
                show_outliers: bool = True,
                horizontal: bool = False,
                weight_var=None,
                x_order: Optional[Sequence] = None,
                x_map_values: Optional[Mapping] = None,
                include_missing: bool = False,
                missing_label: str = DEFAULT_MISSING_LABEL,
                tooltip_prefix: str = "",
                tooltip_suffix: str = "",
                legend_position: Optional[str] = None,
                backend: str = DEFAULT_BACKEND,
                id_counter: Optional[ChartIdCounter] = None):
    """
    Box plot of a numeric variable, optionally split by a category.

    Quartiles honour ``weight_var``; labelled survey codes in ``y_var`` are
    unwrapped to numbers first.
    """
    validate_table(data)
    y_var = as_column_ref(y_var, 'y_var')
    x_var = as_column_ref(x_var, 'x_var')
    require_columns(data, {'y_var': y_var}, {'x_var': x_var, 'weight_var': weight_var})

    if x_var is None:
        data = working_copy(data, [y_var, as_column_ref(weight_var, 'weight_var')])
        data[_ALL] = y_label if y_label is not None else y_var
        category = _ALL
    else:
        category = x_var

    config = build_config(
        data, category,
        y_var=y_var,
        weight_var=weight_var,
        value_maps=collect_value_maps((x_var, x_map_values)),
        include_missing=include_missing,
        missing_label=missing_label,
        order=x_order,
        aggregation_mode=AggregationMode.BOXPLOT,
        backend=backend,
        display=BoxplotOptions(
            title=title, subtitle=subtitle,
            x_label=x_label if x_var is not None or x_label is not None else "",
            y_label=y_label, palette=color_palette, tooltip_prefix=tooltip_prefix,
            tooltip_suffix=tooltip_suffix, legend_position=legend_position,
            horizontal=horizontal, show_outliers=show_outliers,
        ),
        chart_type=ChartType.BOXPLOT,
        id_counter=id_counter,
    )
    return finish(config)


# =============================================================================
# SCATTER
# =============================================================================

def fit_trend(x: pd.Series, y: pd.Series, method: str = "lm") -> Optional[np.ndarray]:
    """Fitted trend values at ``x`` (None when there is too little data)."""
    if x.nunique() < 2:
        logger.warning("Trend line skipped: fewer than two distinct x values")
        return None
    if method == "lm":
        fit = stats.linregress(x.to_numpy(dtype=float), y.to_numpy(dtype=float))
        return fit.intercept + fit.slope * x.to_numpy(dtype=float)
    return lowess(y.to_numpy(dtype=float), x.to_numpy(dtype=float), frac=2 / 3, return_sorted=False)


def viz_scatter(data: pd.DataFrame,
                x_var,
                y_var,
                color_var=None,
                size_var=None,
                title: Optional[str] = None,
                subtitle: Optional[str] = None,
                x_label: Optional[str] = None,
                y_label: Optional[str] = None,
                color_palette=None,
                point_size: float = 4,
                show_trend: bool = False,
                trend_method: str = "lm",
                alpha: float = 0.7,
                include_missing: bool = False,
                missing_label: str = DEFAULT_MISSING_LABEL,
                color_map_values: Optional[Mapping] = None,
                color_order: Optional[Sequence] = None,
                jitter: bool = False,
                jitter_amount: float = 0.2,
                seed: Optional[int] = None,
                tooltip_prefix: str = "",
                tooltip_suffix: str = "",
                x_tooltip_suffix: str = "",
                legend_title: Optional[str] = None,
                legend_position: Optional[str] = None,
                backend: str = DEFAULT_BACKEND,
                id_counter: Optional[ChartIdCounter] = None):
    """
    Scatter plot of two numeric variables.

    Rows missing ``x_var`` or ``y_var`` are always dropped; the NA policy
    applies to ``color_var``.  ``jitter`` adds uniform noise of
    ``+/- jitter_amount`` to both axes (``seed`` makes it reproducible).
    ``show_trend`` overlays a linear ("lm") or LOWESS ("loess") fit.
    """
    validate_table(data)
    if trend_method not in TREND_METHODS:
        raise ValueError(f"`trend_method` must be one of {list(TREND_METHODS)}, got {trend_method!r}")
    backend = assert_backend_supported(ChartType.SCATTER, backend)
    label = validate_na_params(include_missing, missing_label)
    x_var = as_column_ref(x_var, 'x_var')
    y_var = as_column_ref(y_var, 'y_var')
    color_var = as_column_ref(color_var, 'color_var')
    size_var = as_column_ref(size_var, 'size_var')
    require_columns(data, {'x_var': x_var, 'y_var': y_var}, {'color_var': color_var, 'size_var': size_var})

    df = working_copy(data, [x_var, y_var, color_var, size_var])
    points = pd.DataFrame({
        'x': coerce_numeric(df[x_var], x_var),
        'y': coerce_numeric(df[y_var], y_var),
    }, index=df.index)
    if size_var is not None:
        points['size'] = coerce_numeric(df[size_var], size_var)
    if color_var is not None:
        points['color'] = df[color_var]

    dropped = int(points[['x', 'y']].isna().any(axis=1).sum())
    if dropped:
        logger.info(f"Scatter: dropped {dropped} row(s) with missing '{x_var}' or '{y_var}'")
    points = points.dropna(subset=['x', 'y']).copy()

    if color_var is not None:
        points = prepare_categories(
            points, ['color'],
            value_maps=collect_value_maps(('color', color_map_values)),
            include_missing=include_missing,
            missing_label=label,
            orders={'color': color_order},
        )

    if jitter:
        rng = np.random.default_rng(seed)
        points['x'] = points['x'] + rng.uniform(-jitter_amount, jitter_amount, len(points))
        points['y'] = points['y'] + rng.uniform(-jitter_amount, jitter_amount, len(points))

    if show_trend:
        trend = fit_trend(points['x'], points['y'], trend_method)
        if trend is not None:
            points['trend'] = trend

    config = ChartConfig(
        chart_type=ChartType.SCATTER,
        backend=backend,
        display=ScatterOptions(
            title=title, subtitle=subtitle, x_label=x_label, y_label=y_label,
            palette=color_palette, tooltip_prefix=tooltip_prefix, tooltip_suffix=tooltip_suffix,
            x_tooltip_suffix=x_tooltip_suffix, legend_title=legend_title or color_var,
            legend_position=legend_position, point_size=point_size, alpha=alpha,
            show_trend=show_trend, trend_method=trend_method,
        ),
        points=points.reset_index(drop=True),
        category_var=x_var,
        value_var=y_var,
        chart_id=id_counter.next_id() if id_counter is not None else None,
    )
    return finish(config)
