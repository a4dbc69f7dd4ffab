"""
Advanced Charts Module - lollipop, dumbbell, funnel, treemap, map and gauge.

These charts complement basic_charts.py.  They reuse the same pipeline
stages, but several of them need more than one measure per category
(dumbbell), keep the stages in data order (funnel) or summarise a whole
column into one number (gauge).

Backends:
    lollipop, dumbbell, funnel   plotly, matplotlib
    treemap, map, gauge          plotly
"""

import logging
import re
from typing import Mapping, Optional, Sequence

import numpy as np
import pandas as pd

from ..core.config import (
    CONNECTOR_COLOR,
    DEFAULT_BACKEND,
    DEFAULT_MISSING_LABEL,
    FUNNEL_HEIGHT,
    GAUGE_BACKGROUND_COLOR,
    GAUGE_DECIMALS,
    GAUGE_HEIGHT,
    GAUGE_TARGET_COLOR,
    HIGH_COLOR,
    LOW_COLOR,
    MAP_COLOR_SCALE,
    MAP_HEIGHT,
    MAP_NA_COLOR,
    PRIMARY_COLOR,
    TREEMAP_HEIGHT,
)
from ..core.errors import UnsupportedBackendError
from ..core.utils import as_column_ref, value_to_key
from ..models.data_models import (
    AggregationMode,
    AggregationResult,
    ChartConfig,
    ChartType,
    DumbbellOptions,
    FunnelOptions,
    GaugeBand,
    GaugeOptions,
    LollipopOptions,
    MapOptions,
    TreemapOptions,
)
from ..pipeline.aggregator import aggregate
from ..pipeline.dispatcher import ChartIdCounter, assert_backend_supported
from ..pipeline.na_policy import validate_na_params
from ..pipeline.orchestrator import build_config, prepare_categories, working_copy
from ..pipeline.validator import coerce_numeric, require_columns, require_numeric, validate_table
from .common import MODE_LABELS, apply_sort, choose_mode, collect_value_maps, finish

logger = logging.getLogger(__name__)


def _next_id(id_counter: Optional[ChartIdCounter]) -> Optional[str]:
    return id_counter.next_id() if id_counter is not None else None


# =============================================================================
# LOLLIPOP
# =============================================================================

def viz_lollipop(data: pd.DataFrame,
                 x_var,
                 y_var=None,
                 group_var=None,
                 value_var=None,
                 title: Optional[str] = None,
                 subtitle: Optional[str] = None,
                 x_label: Optional[str] = None,
                 y_label: Optional[str] = None,
                 horizontal: bool = True,
                 bar_type: str = "count",
                 color_palette=None,
                 x_order: Optional[Sequence] = None,
                 group_order: Optional[Sequence] = None,
                 sort_by_value: bool = False,
                 sort_desc: bool = True,
                 x_map_values: Optional[Mapping] = None,
                 include_missing: bool = False,
                 missing_label: str = DEFAULT_MISSING_LABEL,
                 weight_var=None,
                 dot_size: float = 8,
                 stem_width: float = 2,
                 data_labels: bool = True,
                 tooltip_prefix: str = "",
                 tooltip_suffix: str = "",
                 legend_title: Optional[str] = None,
                 legend_position: Optional[str] = None,
                 backend: str = DEFAULT_BACKEND,
                 id_counter: Optional[ChartIdCounter] = None):
    """
    Lollipop chart: a dot on a thin stem per category.

    Measures, in order of precedence:
      - ``y_var``: pre-aggregated values, summed per category
      - ``value_var``: mean per category (``bar_type`` becomes "mean")
      - otherwise counts or percentages (``bar_type``)
    """
    y_var = as_column_ref(y_var, 'y_var')
    value_var = as_column_ref(value_var, 'value_var')
    x_var = as_column_ref(x_var, 'x_var')
    group_var = as_column_ref(group_var, 'group_var')

    if y_var is not None:
        mode, measure = AggregationMode.SUM, y_var
    elif value_var is not None:
        mode, measure = AggregationMode.MEAN, value_var
    else:
        mode = choose_mode(bar_type, 'bar_type', ("count", "percent", "mean"))
        if mode is AggregationMode.MEAN:
            raise ValueError("`value_var` is required when bar_type='mean'")
        measure = None

    config = build_config(
        data, x_var,
        y_var=measure,
        group_var=group_var,
        weight_var=weight_var if y_var is None else None,
        value_maps=collect_value_maps((x_var, x_map_values)),
        include_missing=include_missing,
        missing_label=missing_label,
        order=x_order,
        group_order=group_order,
        aggregation_mode=mode,
        backend=backend,
        display=LollipopOptions(
            title=title, subtitle=subtitle, x_label=x_label, y_label=y_label,
            palette=color_palette, tooltip_prefix=tooltip_prefix, tooltip_suffix=tooltip_suffix,
            legend_title=legend_title, legend_position=legend_position,
            horizontal=horizontal, data_labels=data_labels, dot_size=dot_size, stem_width=stem_width,
        ),
        chart_type=ChartType.LOLLIPOP,
        id_counter=id_counter,
        value_label=MODE_LABELS.get(mode, y_var if mode is AggregationMode.SUM else None),
    )
    return finish(apply_sort(config, sort_by_value, sort_desc))


# =============================================================================
# DUMBBELL
# =============================================================================

def viz_dumbbell(data: pd.DataFrame,
                 x_var,
                 low_var,
                 high_var,
                 title: Optional[str] = None,
                 subtitle: Optional[str] = None,
                 x_label: Optional[str] = None,
                 y_label: Optional[str] = None,
                 horizontal: bool = True,
                 low_label: str = "Low",
                 high_label: str = "High",
                 low_color: str = LOW_COLOR,
                 high_color: str = HIGH_COLOR,
                 connector_color: str = CONNECTOR_COLOR,
                 connector_width: float = 2,
                 dot_size: float = 6,
                 x_order: Optional[Sequence] = None,
                 sort_by_gap: bool = False,
                 sort_desc: bool = True,
                 x_map_values: Optional[Mapping] = None,
                 include_missing: bool = False,
                 missing_label: str = DEFAULT_MISSING_LABEL,
                 data_labels: bool = False,
                 tooltip_prefix: str = "",
                 tooltip_suffix: str = "",
                 legend_position: Optional[str] = None,
                 backend: str = DEFAULT_BACKEND,
                 id_counter: Optional[ChartIdCounter] = None):
    """
    Dumbbell chart comparing two numeric measures per category.

    Each category shows the mean of ``low_var`` and of ``high_var`` joined
    by a connector.  ``sort_by_gap`` orders categories by ``|high - low|``.
    """
    validate_table(data)
    if low_label == high_label:
        raise ValueError("`low_label` and `high_label` must differ")
    backend = assert_backend_supported(ChartType.DUMBBELL, backend)
    label = validate_na_params(include_missing, missing_label)
    x_var = as_column_ref(x_var, 'x_var')
    low_var = as_column_ref(low_var, 'low_var')
    high_var = as_column_ref(high_var, 'high_var')
    require_columns(data, {'x_var': x_var, 'low_var': low_var, 'high_var': high_var})

    df = working_copy(data, [x_var, low_var, high_var])
    require_numeric(df, [low_var, high_var])
    df = prepare_categories(
        df, [x_var],
        value_maps=collect_value_maps((x_var, x_map_values)),
        include_missing=include_missing,
        missing_label=label,
        orders={x_var: x_order},
    )
    lows = aggregate(df, x_var, AggregationMode.MEAN, value_var=low_var)
    highs = aggregate(df, x_var, AggregationMode.MEAN, value_var=high_var)

    categories = list(lows.categories)
    if sort_by_gap:
        gaps = {cat: abs(highs.values[cat] - lows.values[cat]) for cat in categories}
        categories.sort(key=lambda c: (np.isnan(gaps[c]), -gaps[c] if sort_desc else gaps[c]))

    values = {}
    for cat in categories:
        values[(cat, low_label)] = lows.values[cat]
        values[(cat, high_label)] = highs.values[cat]
    result = AggregationResult(
        mode=AggregationMode.MEAN,
        categories=tuple(categories),
        groups=(low_label, high_label),
        values=values,
        value_label="Value",
    )

    config = ChartConfig(
        chart_type=ChartType.DUMBBELL,
        backend=backend,
        display=DumbbellOptions(
            title=title, subtitle=subtitle, x_label=x_label, y_label=y_label,
            tooltip_prefix=tooltip_prefix, tooltip_suffix=tooltip_suffix,
            legend_position=legend_position, horizontal=horizontal, data_labels=data_labels,
            low_label=low_label, high_label=high_label, low_color=low_color, high_color=high_color,
            connector_color=connector_color, connector_width=connector_width, dot_size=dot_size,
        ),
        result=result,
        category_var=x_var,
        chart_id=_next_id(id_counter),
    )
    return finish(config)


# =============================================================================
# FUNNEL
# =============================================================================

def viz_funnel(data: pd.DataFrame,
               x_var,
               y_var,
               title: Optional[str] = None,
               subtitle: Optional[str] = None,
               color_palette=None,
               x_order: Optional[Sequence] = None,
               x_map_values: Optional[Mapping] = None,
               show_conversion: bool = True,
               data_labels: bool = True,
               reversed: bool = False,
               tooltip_prefix: str = "",
               tooltip_suffix: str = "",
               height: int = FUNNEL_HEIGHT,
               backend: str = DEFAULT_BACKEND,
               id_counter: Optional[ChartIdCounter] = None):
    """
    Funnel of a numeric value per stage.

    Stages keep the order of their first appearance in ``data`` unless
    ``x_order`` is given; values of repeated stages are summed.
    ``show_conversion`` labels each stage with its share of the first stage.
    """
    validate_table(data)
    x_var = as_column_ref(x_var, 'x_var')
    y_var = as_column_ref(y_var, 'y_var')
    require_columns(data, {'x_var': x_var, 'y_var': y_var})

    if x_order is None:
        mapping = {str(k): str(v) for k, v in (x_map_values or {}).items()}
        x_order = list(dict.fromkeys(
            mapping.get(value_to_key(v), value_to_key(v)) for v in data[x_var].dropna()
        ))

    config = build_config(
        data, x_var,
        y_var=y_var,
        value_maps=collect_value_maps((x_var, x_map_values)),
        order=x_order,
        aggregation_mode=AggregationMode.SUM,
        backend=backend,
        display=FunnelOptions(
            title=title, subtitle=subtitle, palette=color_palette,
            tooltip_prefix=tooltip_prefix, tooltip_suffix=tooltip_suffix,
            show_conversion=show_conversion, reversed=reversed, data_labels=data_labels,
            height=height,
        ),
        chart_type=ChartType.FUNNEL,
        id_counter=id_counter,
    )
    return finish(config)


# =============================================================================
# TREEMAP
# =============================================================================

def viz_treemap(data: pd.DataFrame,
                group_var,
                value_var,
                subgroup_var=None,
                title: Optional[str] = None,
                subtitle: Optional[str] = None,
                color_palette=None,
                group_order: Optional[Sequence] = None,
                group_map_values: Optional[Mapping] = None,
                subgroup_map_values: Optional[Mapping] = None,
                include_missing: bool = False,
                missing_label: str = DEFAULT_MISSING_LABEL,
                show_labels: bool = True,
                tooltip_prefix: str = "",
                tooltip_suffix: str = "",
                height: int = TREEMAP_HEIGHT,
                backend: str = DEFAULT_BACKEND,
                id_counter: Optional[ChartIdCounter] = None):
    """
    Treemap of a summed value by group and optional subgroup.

    Combinations with a zero total are left out of the drawing.
    """
    group_var = as_column_ref(group_var, 'group_var')
    subgroup_var = as_column_ref(subgroup_var, 'subgroup_var')

    config = build_config(
        data, group_var,
        y_var=value_var,
        group_var=subgroup_var,
        value_maps=collect_value_maps((group_var, group_map_values), (subgroup_var, subgroup_map_values)),
        include_missing=include_missing,
        missing_label=missing_label,
        order=group_order,
        aggregation_mode=AggregationMode.SUM,
        backend=backend,
        display=TreemapOptions(
            title=title, subtitle=subtitle, palette=color_palette,
            tooltip_prefix=tooltip_prefix, tooltip_suffix=tooltip_suffix,
            show_labels=show_labels, height=height,
        ),
        chart_type=ChartType.TREEMAP,
        id_counter=id_counter,
    )
    return finish(config)


# =============================================================================
# MAP
# =============================================================================

MAP_TYPES = ("world", "usa")

_ISO3 = re.compile(r"^[A-Z]{3}$")
_ISO2 = re.compile(r"^[A-Z]{2}$")


def detect_location_mode(keys: pd.Series, map_type: str = "world") -> str:
    """Plotly location mode for the join keys of a choropleth.

    US maps join on two-letter state codes.  World maps join on ISO-3 codes
    when every key looks like one, otherwise on country names; two-letter
    country codes cannot be joined.
    """
    values = [str(v).strip() for v in keys.dropna()]
    if map_type == "usa":
        return "USA-states"
    if values and all(_ISO3.match(v) for v in values):
        return "ISO-3"
    if values and all(_ISO2.match(v) for v in values):
        raise UnsupportedBackendError(
            "Two-letter country codes cannot be joined by plotly choropleths; "
            "use ISO-3 codes (e.g. 'DEU') or country names",
            backend="plotly", valid=("ISO-3", "country names"),
        )
    return "country names"


def viz_map(data: pd.DataFrame,
            value_var,
            join_var="iso3c",
            map_type: str = "world",
            title: Optional[str] = None,
            subtitle: Optional[str] = None,
            legend_title: Optional[str] = None,
            color_palette: Sequence[str] = tuple(MAP_COLOR_SCALE),
            na_color: str = MAP_NA_COLOR,
            tooltip_prefix: str = "",
            tooltip_suffix: str = "",
            height: int = MAP_HEIGHT,
            backend: str = DEFAULT_BACKEND,
            id_counter: Optional[ChartIdCounter] = None):
    """
    Choropleth map of a numeric value per region.

    ``join_var`` holds ISO-3 country codes, country names or (``map_type=
    "usa"``) two-letter state codes; values of repeated regions are summed.
    ``color_palette`` is the low-to-high color gradient.
    """
    validate_table(data)
    if map_type not in MAP_TYPES:
        raise ValueError(f"`map_type` must be one of {list(MAP_TYPES)}, got {map_type!r}")
    join_var = as_column_ref(join_var, 'join_var')
    value_var = as_column_ref(value_var, 'value_var')
    require_columns(data, {'join_var': join_var, 'value_var': value_var})
    assert_backend_supported(ChartType.MAP, backend)
    location_mode = detect_location_mode(data[join_var], map_type)
    logger.info(f"Map '{join_var}': joining on {location_mode}")

    if isinstance(color_palette, str):
        color_palette = (color_palette,)

    config = build_config(
        data, join_var,
        y_var=value_var,
        aggregation_mode=AggregationMode.SUM,
        backend=backend,
        display=MapOptions(
            title=title, subtitle=subtitle, legend_title=legend_title,
            tooltip_prefix=tooltip_prefix, tooltip_suffix=tooltip_suffix,
            map_type=map_type, location_mode=location_mode,
            color_scale=tuple(color_palette), na_color=na_color, height=height,
        ),
        chart_type=ChartType.MAP,
        id_counter=id_counter,
    )
    return finish(config)


# =============================================================================
# GAUGE
# =============================================================================

def _as_band(band) -> GaugeBand:
    if isinstance(band, GaugeBand):
        return band
    if isinstance(band, Mapping):
        try:
            return GaugeBand(start=float(band['from']), end=float(band['to']), color=str(band['color']))
        except KeyError as exc:
            raise ValueError(f"Gauge band is missing {exc}; expected keys 'from', 'to', 'color'") from None
    raise TypeError(f"Gauge bands must be dicts or GaugeBand, got {type(band).__name__}")


def viz_gauge(data: Optional[pd.DataFrame] = None,
              value: Optional[float] = None,
              value_var=None,
              min_value: float = 0,
              max_value: float = 100,
              title: Optional[str] = None,
              subtitle: Optional[str] = None,
              bands: Optional[Sequence] = None,
              color: str = PRIMARY_COLOR,
              background_color: str = GAUGE_BACKGROUND_COLOR,
              target: Optional[float] = None,
              target_color: str = GAUGE_TARGET_COLOR,
              tooltip_prefix: str = "",
              tooltip_suffix: str = "",
              height: int = GAUGE_HEIGHT,
              backend: str = DEFAULT_BACKEND,
              id_counter: Optional[ChartIdCounter] = None):
    """
    Gauge showing one number against a ``[min_value, max_value]`` scale.

    The number is either ``value`` or the mean of ``value_var`` in ``data``
    (rounded to one decimal).  ``bands`` colors ranges of the scale, given
    as ``{"from": 0, "to": 50, "color": "#E15759"}`` dicts.
    """
    if min_value >= max_value:
        raise ValueError(f"`min_value` ({min_value}) must be smaller than `max_value` ({max_value})")
    backend = assert_backend_supported(ChartType.GAUGE, backend)

    if value is not None:
        if value_var is not None:
            raise ValueError("Provide either `value` or `data` + `value_var`, not both")
        if isinstance(value, bool) or not isinstance(value, (int, float, np.number)):
            raise TypeError(f"`value` must be a number, got {type(value).__name__}")
        value = float(value)
        label = "Value"
    else:
        if data is None or value_var is None:
            raise ValueError("Provide either `value` or `data` + `value_var`")
        validate_table(data)
        value_var = as_column_ref(value_var, 'value_var')
        require_columns(data, {'value_var': value_var})
        values = coerce_numeric(data[value_var], value_var)
        value = float(np.round(values.mean(), GAUGE_DECIMALS))
        label = value_var

    if not np.isnan(value) and not min_value <= value <= max_value:
        logger.warning(f"Gauge value {value} lies outside [{min_value}, {max_value}]")

    result = AggregationResult(
        mode=AggregationMode.MEAN,
        categories=(label,),
        values={label: value},
        value_label=label,
    )
    config = ChartConfig(
        chart_type=ChartType.GAUGE,
        backend=backend,
        display=GaugeOptions(
            title=title, subtitle=subtitle,
            tooltip_prefix=tooltip_prefix, tooltip_suffix=tooltip_suffix,
            min_value=min_value, max_value=max_value,
            bands=tuple(_as_band(b) for b in (bands or ())),
            target=target, color=color, background_color=background_color,
            target_color=target_color, height=height,
        ),
        result=result,
        value_var=value_var,
        chart_id=_next_id(id_counter),
    )
    return finish(config)
