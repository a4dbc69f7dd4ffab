"""
Composition Charts Module - pie, heatmap and timeline.

Charts that show how a whole splits into parts: the share of each category
(pie), a measure over a grid of two categorical variables (heatmap), and the
distribution of survey responses at each point in time (timeline).

Backends:
    pie, timeline    plotly, matplotlib
    heatmap          plotly, matplotlib, seaborn
"""

import logging
from dataclasses import replace
from typing import Mapping, Optional, Sequence

import numpy as np
import pandas as pd

from ..core.config import (
    DEFAULT_BACKEND,
    DEFAULT_MISSING_LABEL,
    HEATMAP_COLOR_SCALE,
    HEATMAP_HEIGHT,
    PIE_HEIGHT,
)
from ..core.utils import as_column_ref, value_to_key
from ..models.data_models import (
    AggregationMode,
    AggregationResult,
    BinSpec,
    ChartConfig,
    ChartType,
    HeatmapOptions,
    PieOptions,
    TimelineOptions,
)
from ..pipeline.aggregator import aggregate
from ..pipeline.dispatcher import ChartIdCounter, assert_backend_supported
from ..pipeline.na_policy import validate_na_params
from ..pipeline.orchestrator import build_config, prepare_categories, working_copy
from ..pipeline.validator import require_columns, require_numeric, validate_table
from .common import MODE_LABELS, apply_sort, collect_value_maps, finish

logger = logging.getLogger(__name__)

TIMELINE_TYPES = ("stacked_area", "line")
ORDER_BY = ("asc", "desc")


# =============================================================================
# PIE
# =============================================================================

def parse_inner_size(inner_size) -> float:
    """Donut hole as a fraction of the radius.

    Accepts a fraction (``0.5``) or a percentage string (``"50%"``).
    """
    if isinstance(inner_size, str):
        text = inner_size.strip()
        try:
            value = float(text[:-1]) / 100 if text.endswith('%') else float(text)
        except ValueError:
            raise ValueError(f"`inner_size` must look like '50%' or 0.5, got {inner_size!r}") from None
    elif isinstance(inner_size, bool) or not isinstance(inner_size, (int, float, np.number)):
        raise TypeError(f"`inner_size` must be a number or a percentage string, got {type(inner_size).__name__}")
    else:
        value = float(inner_size)
    if not 0 <= value < 1:
        raise ValueError(f"`inner_size` must be in [0%, 100%), got {inner_size!r}")
    return value


def viz_pie(data: pd.DataFrame,
            x_var,
            y_var=None,
            title: Optional[str] = None,
            subtitle: Optional[str] = None,
            inner_size="0%",
            color_palette=None,
            x_order: Optional[Sequence] = None,
            sort_by_value: bool = False,
            x_map_values: Optional[Mapping] = None,
            data_labels: bool = True,
            show_in_legend: bool = True,
            weight_var=None,
            include_missing: bool = False,
            missing_label: str = DEFAULT_MISSING_LABEL,
            tooltip_prefix: str = "",
            tooltip_suffix: str = "",
            center_text: Optional[str] = None,
            legend_title: Optional[str] = None,
            legend_position: Optional[str] = None,
            height: int = PIE_HEIGHT,
            backend: str = DEFAULT_BACKEND,
            id_counter: Optional[ChartIdCounter] = None):
    """
    Pie or donut chart of the share of each category.

    Slices are row counts per category (weighted with ``weight_var``), or
    the sum of ``y_var`` for pre-aggregated data.  A non-zero
    ``inner_size`` turns the pie into a donut; ``center_text`` is then
    written into the hole.

    Returns:
        Chart object of the selected backend.
    """
    x_var = as_column_ref(x_var, 'x_var')
    y_var = as_column_ref(y_var, 'y_var')
    hole = parse_inner_size(inner_size)
    if y_var is not None and weight_var is not None:
        raise ValueError("`weight_var` cannot be combined with pre-aggregated `y_var`")
    if center_text is not None and hole == 0:
        logger.warning("`center_text` is only shown on donut charts (inner_size > 0)")
    mode = AggregationMode.SUM if y_var is not None else AggregationMode.COUNT

    config = build_config(
        data, x_var,
        y_var=y_var,
        weight_var=weight_var,
        value_maps=collect_value_maps((x_var, x_map_values)),
        include_missing=include_missing,
        missing_label=missing_label,
        order=x_order,
        aggregation_mode=mode,
        backend=backend,
        display=PieOptions(
            title=title, subtitle=subtitle, palette=color_palette,
            tooltip_prefix=tooltip_prefix, tooltip_suffix=tooltip_suffix,
            legend_title=legend_title, legend_position=legend_position,
            inner_size=hole, data_labels=data_labels, show_in_legend=show_in_legend,
            center_text=center_text, height=height,
        ),
        chart_type=ChartType.PIE,
        id_counter=id_counter,
        value_label=MODE_LABELS.get(mode, y_var),
    )
    return finish(apply_sort(config, sort_by_value))


# =============================================================================
# HEATMAP
# =============================================================================

def _order_by_mean(labels, cell, direction: Optional[str]):
    """Reorder ``labels`` by the mean of their non-empty cells."""
    if direction is None:
        return tuple(labels)
    means = {}
    for label in labels:
        cells = np.asarray([v for v in cell(label) if not np.isnan(v)], dtype=float)
        means[label] = float(cells.mean()) if len(cells) else float('nan')
    descending = direction == "desc"
    # rows and columns without data go last
    return tuple(sorted(labels, key=lambda lbl: (np.isnan(means[lbl]),
                                                 -means[lbl] if descending else means[lbl])))


def viz_heatmap(data: pd.DataFrame,
                x_var,
                y_var,
                value_var,
                title: Optional[str] = None,
                subtitle: Optional[str] = None,
                x_label: Optional[str] = None,
                y_label: Optional[str] = None,
                value_label: Optional[str] = None,
                x_order: Optional[Sequence] = None,
                y_order: Optional[Sequence] = None,
                x_order_by: Optional[str] = None,
                y_order_by: Optional[str] = None,
                color_palette: Sequence[str] = tuple(HEATMAP_COLOR_SCALE),
                color_min: Optional[float] = None,
                color_max: Optional[float] = None,
                na_color: Optional[str] = None,
                data_labels: bool = True,
                label_decimals: int = 1,
                x_map_values: Optional[Mapping] = None,
                y_map_values: Optional[Mapping] = None,
                include_missing: bool = False,
                missing_label_x: str = DEFAULT_MISSING_LABEL,
                missing_label_y: str = DEFAULT_MISSING_LABEL,
                weight_var=None,
                tooltip_prefix: str = "",
                tooltip_suffix: str = "",
                x_tooltip_suffix: str = "",
                y_tooltip_suffix: str = "",
                legend_position: Optional[str] = None,
                height: int = HEATMAP_HEIGHT,
                backend: str = DEFAULT_BACKEND,
                id_counter: Optional[ChartIdCounter] = None):
    """
    Heatmap of the (weighted) mean of ``value_var`` for each x/y combination.

    Every combination of the x and y categories gets a cell; combinations
    without observations stay empty rather than showing zero.  Pre-aggregated
    tables with one row per cell work unchanged (the mean of one value is
    the value).

    Args:
        x_order_by, y_order_by: "asc" or "desc" to order an axis by the mean
            of its cells; takes precedence over ``x_order``/``y_order``.
        color_palette: Low-to-high color gradient.
        color_min, color_max: Fix the ends of the color scale.
        label_decimals: Decimals of the cell labels.

    Returns:
        Chart object of the selected backend.
    """
    validate_table(data)
    backend = assert_backend_supported(ChartType.HEATMAP, backend)
    for name, direction in (('x_order_by', x_order_by), ('y_order_by', y_order_by)):
        if direction is not None and direction not in ORDER_BY:
            raise ValueError(f"`{name}` must be one of {list(ORDER_BY)}, got {direction!r}")
    if isinstance(label_decimals, bool) or not isinstance(label_decimals, (int, np.integer)) or label_decimals < 0:
        raise ValueError(f"`label_decimals` must be a non-negative integer, got {label_decimals!r}")
    if color_min is not None and color_max is not None and color_min >= color_max:
        raise ValueError(f"`color_min` ({color_min}) must be smaller than `color_max` ({color_max})")
    label_x = validate_na_params(include_missing, missing_label_x, 'missing_label_x')
    label_y = validate_na_params(include_missing, missing_label_y, 'missing_label_y')

    x_var = as_column_ref(x_var, 'x_var')
    y_var = as_column_ref(y_var, 'y_var')
    value_var = as_column_ref(value_var, 'value_var')
    weight_var = as_column_ref(weight_var, 'weight_var')
    require_columns(data, {'x_var': x_var, 'y_var': y_var, 'value_var': value_var},
                    {'weight_var': weight_var})
    if x_var == y_var:
        raise ValueError("'y_var' must differ from 'x_var'")

    df = working_copy(data, [x_var, y_var, value_var, weight_var])
    require_numeric(df, [value_var, weight_var])
    df = prepare_categories(
        df, [x_var, y_var],
        value_maps=collect_value_maps((x_var, x_map_values), (y_var, y_map_values)),
        include_missing=include_missing,
        missing_label={x_var: label_x, y_var: label_y},
        orders={x_var: x_order, y_var: y_order},
    )
    result = aggregate(df, x_var, AggregationMode.MEAN, group_var=y_var, value_var=value_var,
                       weight_var=weight_var, value_label=value_label or value_var)

    columns = _order_by_mean(result.categories, lambda x: [result.values[(x, y)] for y in result.groups],
                             x_order_by)
    rows = _order_by_mean(result.groups, lambda y: [result.values[(x, y)] for x in result.categories],
                          y_order_by)
    result = replace(result, categories=columns, groups=rows)

    empty = sum(1 for v in result.values.values() if np.isnan(v))
    if empty:
        logger.info(f"Heatmap '{x_var}' x '{y_var}': {empty} cell(s) without data")

    if isinstance(color_palette, str):
        color_palette = (color_palette,)

    config = ChartConfig(
        chart_type=ChartType.HEATMAP,
        backend=backend,
        display=HeatmapOptions(
            title=title, subtitle=subtitle, x_label=x_label,
            y_label=y_label if y_label is not None else y_var,
            tooltip_prefix=tooltip_prefix, tooltip_suffix=tooltip_suffix,
            x_tooltip_suffix=x_tooltip_suffix, y_tooltip_suffix=y_tooltip_suffix,
            legend_title=result.value_label, legend_position=legend_position,
            color_scale=tuple(color_palette), color_min=color_min, color_max=color_max,
            na_color=na_color, data_labels=data_labels, label_decimals=int(label_decimals),
            height=height,
        ),
        result=result,
        category_var=x_var,
        value_var=value_var,
        chart_id=id_counter.next_id() if id_counter is not None else None,
    )
    return finish(config)


# =============================================================================
# TIMELINE
# =============================================================================

def _filter_responses(responses, y_filter):
    if y_filter is None:
        return list(responses)
    if isinstance(y_filter, (str, bytes)) or not isinstance(y_filter, (list, tuple, set, pd.Index)):
        y_filter = [y_filter]
    wanted = [value_to_key(v) for v in y_filter]
    absent = [w for w in wanted if w not in responses]
    if absent:
        logger.warning(f"`y_filter` values not found among the responses (ignored): {absent}")
    kept = [r for r in responses if r in wanted]
    if not kept:
        raise ValueError(f"`y_filter` matches none of the responses {list(responses)}")
    return kept


def _shares_over_time(df, time_var, y_var, weight_var) -> AggregationResult:
    """Percentage of each response within each time point.

    Time points without any response get NaN instead of 0%.
    """
    result = aggregate(df, time_var, AggregationMode.PERCENT, group_var=y_var, weight_var=weight_var)
    values = dict(result.values)
    for time in result.categories:
        if not sum(result.counts[(time, y)] for y in result.groups):
            for y in result.groups:
                values[(time, y)] = float('nan')
    return replace(result, values=values)


def viz_timeline(data: pd.DataFrame,
                 time_var,
                 y_var,
                 group_var=None,
                 chart_type: str = "stacked_area",
                 title: Optional[str] = None,
                 subtitle: Optional[str] = None,
                 x_label: Optional[str] = None,
                 y_label: Optional[str] = None,
                 y_levels: Optional[Sequence] = None,
                 y_breaks: Optional[Sequence[float]] = None,
                 y_bin_labels: Optional[Sequence[str]] = None,
                 y_map_values: Optional[Mapping] = None,
                 y_filter=None,
                 group_map_values: Optional[Mapping] = None,
                 group_order: Optional[Sequence] = None,
                 time_breaks: Optional[Sequence[float]] = None,
                 time_bin_labels: Optional[Sequence[str]] = None,
                 weight_var=None,
                 include_missing: bool = False,
                 missing_label_y: str = DEFAULT_MISSING_LABEL,
                 missing_label_group: str = DEFAULT_MISSING_LABEL,
                 color_palette=None,
                 show_markers: bool = True,
                 tooltip_prefix: str = "",
                 tooltip_suffix: str = "",
                 legend_title: Optional[str] = None,
                 legend_position: Optional[str] = None,
                 backend: str = DEFAULT_BACKEND,
                 id_counter: Optional[ChartIdCounter] = None):
    """
    How the responses to one question are distributed at each point in time.

    For every time point the (weighted) share of each response of ``y_var``
    is computed; the shares of one time point add up to 100.  Rows without
    a time value are always dropped.  ``time_breaks`` groups the time column
    into periods, ``y_breaks`` bins a numeric response scale.

    ``y_filter`` keeps only some responses on the chart; shares are still
    computed over all responses.  With ``group_var`` the shares are computed
    within each group, and the series are named after the group (and the
    response, when more than one response is shown).

    Args:
        chart_type: "stacked_area" or "line".
        y_levels: Order of the responses (recoded labels).

    Returns:
        Chart object of the selected backend.
    """
    validate_table(data)
    if chart_type not in TIMELINE_TYPES:
        raise ValueError(f"`chart_type` must be one of {list(TIMELINE_TYPES)}, got {chart_type!r}")
    backend = assert_backend_supported(ChartType.TIMELINE, backend)
    label_y = validate_na_params(include_missing, missing_label_y, 'missing_label_y')
    label_group = validate_na_params(include_missing, missing_label_group, 'missing_label_group')

    time_var = as_column_ref(time_var, 'time_var')
    y_var = as_column_ref(y_var, 'y_var')
    group_var = as_column_ref(group_var, 'group_var')
    weight_var = as_column_ref(weight_var, 'weight_var')
    require_columns(data, {'time_var': time_var, 'y_var': y_var},
                    {'group_var': group_var, 'weight_var': weight_var})
    named = [c for c in (time_var, y_var, group_var) if c is not None]
    if len(set(named)) != len(named):
        raise ValueError("`time_var`, `y_var` and `group_var` must be different columns")
    if group_var is not None and chart_type == "stacked_area":
        logger.warning("Stacking the response shares of several groups; consider chart_type='line'")

    df = working_copy(data, [time_var, y_var, group_var, weight_var])
    require_numeric(df, [weight_var])
    df = prepare_categories(
        df, [time_var],
        bin_specs={time_var: BinSpec.from_options(time_breaks, time_bin_labels)},
    )
    df = prepare_categories(
        df, [y_var, group_var],
        value_maps=collect_value_maps((y_var, y_map_values), (group_var, group_map_values)),
        bin_specs={y_var: BinSpec.from_options(y_breaks, y_bin_labels)},
        include_missing=include_missing,
        missing_label={y_var: label_y, group_var: label_group},
        orders={y_var: y_levels, group_var: group_order},
    )

    if group_var is None:
        panels = [(None, _shares_over_time(df, time_var, y_var, weight_var))]
    else:
        panels = [
            (grp, _shares_over_time(df[df[group_var] == grp], time_var, y_var, weight_var))
            for grp in df[group_var].cat.categories
        ]

    times = panels[0][1].categories
    responses = _filter_responses(panels[0][1].groups, y_filter)
    values, counts, series = {}, {}, []
    for grp, shares in panels:
        for response in responses:
            if grp is None:
                name = response
            else:
                name = grp if len(responses) == 1 else f"{grp}: {response}"
            series.append(name)
            for time in times:
                values[(time, name)] = shares.values[(time, response)]
                counts[(time, name)] = shares.counts[(time, response)]

    result = AggregationResult(
        mode=AggregationMode.PERCENT,
        categories=times,
        groups=tuple(series),
        values=values,
        counts=counts,
        value_label="Percentage",
    )
    logger.info(f"Timeline '{y_var}' over '{time_var}': {len(times)} time points, {len(series)} series")

    if x_label is None and time_breaks is not None:
        x_label = "Time Period"

    config = ChartConfig(
        chart_type=ChartType.TIMELINE,
        backend=backend,
        display=TimelineOptions(
            title=title, subtitle=subtitle, x_label=x_label, y_label=y_label,
            palette=color_palette, tooltip_prefix=tooltip_prefix, tooltip_suffix=tooltip_suffix,
            legend_title=legend_title, legend_position=legend_position,
            chart_type=chart_type, show_markers=show_markers,
        ),
        result=result,
        category_var=time_var,
        value_var=y_var,
        chart_id=id_counter.next_id() if id_counter is not None else None,
    )
    return finish(config)
