"""
Pipeline orchestrator - runs the seven stages for one chart call.

=== DATA FLOW ===
  1. Validator   - table type, column references, numeric measures
  2. Recoder     - value maps per categorical column
  3. Binner      - optional BinSpec on the category column
  4. NA policy   - drop or label missing categories
  5. Orderer     - explicit or natural category order
  6. Aggregator  - COUNT / PERCENT / SUM / MEAN / BOXPLOT, completed
  7. Dispatcher  - exactly one renderer for (chart type, backend)

The caller's DataFrame is never modified: the stages work on a copy of the
referenced columns only.  Each stage raises on bad input; nothing is
retried and no partial ChartConfig is returned.
"""

import logging
from typing import Dict, Mapping, Optional, Sequence

import pandas as pd

from ..core.config import DEFAULT_BACKEND, DEFAULT_MISSING_LABEL
from ..core.utils import as_column_ref
from ..models.data_models import AggregationMode, BinSpec, ChartConfig, ChartType, DisplayOptions
from .aggregator import aggregate
from .binner import apply_bins
from .dispatcher import ChartIdCounter, assert_backend_supported, dispatch
from .na_policy import resolve_missing, validate_na_params
from .orderer import to_category_series, validate_order
from .recoder import recode, validate_value_map
from .validator import coerce_numeric, is_numeric_column, require_columns, require_numeric, validate_table

logger = logging.getLogger(__name__)


def working_copy(data: pd.DataFrame, columns: Sequence[Optional[str]]) -> pd.DataFrame:
    """Copy of the referenced columns (each once, original order kept)."""
    wanted = list(dict.fromkeys(c for c in columns if c is not None))
    return data.loc[:, wanted].copy()


def _warn_raw_codes_in_order(column: str, order: Sequence[str], value_map: Mapping) -> None:
    labels = set(value_map.values())
    raw = [o for o in order if o in value_map and o not in labels]
    if raw:
        logger.warning(f"Order for '{column}' uses raw codes {raw}; orders apply to the recoded "
                       f"labels ({[value_map[o] for o in raw]})")


def prepare_categories(df: pd.DataFrame, columns: Sequence[Optional[str]],
                       value_maps: Optional[Mapping[str, Mapping]] = None,
                       bin_specs: Optional[Mapping[str, Optional[BinSpec]]] = None,
                       include_missing: bool = False,
                       missing_label=DEFAULT_MISSING_LABEL,
                       orders: Optional[Mapping[str, Optional[Sequence]]] = None) -> pd.DataFrame:
    """Stages 2-5 for the categorical ``columns`` of a working copy.

    ``missing_label`` may be one label or a ``{column: label}`` dict.
    Returns the (possibly row-filtered) working copy with every column in
    ``columns`` turned into an ordered Categorical.
    """
    columns = [c for c in columns if c is not None]
    value_maps = value_maps or {}
    bin_specs = bin_specs or {}
    orders = orders or {}

    numeric = {}
    for column in columns:
        value_map = value_maps.get(column)
        spec = bin_specs.get(column)
        numeric[column] = is_numeric_column(df[column]) and value_map is None
        if value_map is not None:
            df[column] = recode(df[column], value_map, param_name=f"map_values for '{column}'")
        if spec is not None:
            if value_map is None:
                df[column] = coerce_numeric(df[column], column)
            df[column] = apply_bins(df[column], spec, name=column)

    df = resolve_missing(df, columns, include_missing, missing_label)

    for column in columns:
        label = missing_label.get(column, DEFAULT_MISSING_LABEL) if isinstance(missing_label, dict) else missing_label
        order = validate_order(orders.get(column), param_name=f"order for '{column}'")
        if order is not None and value_maps.get(column) is not None:
            _warn_raw_codes_in_order(column, order, validate_value_map(value_maps[column]))
        df[column] = to_category_series(
            df[column], order,
            missing_label=label if include_missing else None,
            numeric=numeric[column],
        )
    return df


def build_config(data, x_var, y_var=None, group_var=None, weight_var=None,
                 value_maps: Optional[Dict[str, Mapping]] = None,
                 bin_spec: Optional[BinSpec] = None,
                 include_missing: bool = False,
                 missing_label: Optional[str] = DEFAULT_MISSING_LABEL,
                 order: Optional[Sequence] = None,
                 group_order: Optional[Sequence] = None,
                 aggregation_mode=AggregationMode.COUNT,
                 backend: str = DEFAULT_BACKEND,
                 display: Optional[DisplayOptions] = None,
                 chart_type=ChartType.BAR,
                 id_counter: Optional[ChartIdCounter] = None,
                 value_label: Optional[str] = None) -> ChartConfig:
    """Run stages 1-6 and bundle the result into a ChartConfig."""
    validate_table(data)
    chart_type = ChartType(chart_type)
    mode = AggregationMode(aggregation_mode)
    backend = assert_backend_supported(chart_type, backend)
    label = validate_na_params(include_missing, missing_label)

    x_var = as_column_ref(x_var, 'x_var')
    y_var = as_column_ref(y_var, 'y_var')
    group_var = as_column_ref(group_var, 'group_var')
    weight_var = as_column_ref(weight_var, 'weight_var')
    require_columns(data, {'x_var': x_var},
                    {'y_var': y_var, 'group_var': group_var, 'weight_var': weight_var})
    if mode in (AggregationMode.SUM, AggregationMode.MEAN, AggregationMode.BOXPLOT) and y_var is None:
        raise ValueError(f"'y_var' parameter is required for {mode.value} aggregation")
    if group_var is not None and group_var == x_var:
        raise ValueError("'group_var' must differ from 'x_var'")

    df = working_copy(data, [x_var, group_var, y_var, weight_var])
    measure_var = y_var if mode in (AggregationMode.SUM, AggregationMode.MEAN, AggregationMode.BOXPLOT) else None
    require_numeric(df, [measure_var, weight_var])

    df = prepare_categories(
        df, [x_var, group_var],
        value_maps=value_maps,
        bin_specs={x_var: bin_spec},
        include_missing=include_missing,
        missing_label=label,
        orders={x_var: order, group_var: group_order},
    )
    result = aggregate(df, x_var, mode, group_var=group_var, value_var=y_var,
                       weight_var=weight_var, value_label=value_label)

    return ChartConfig(
        chart_type=chart_type,
        backend=backend,
        display=display if display is not None else DisplayOptions(),
        result=result,
        category_var=x_var,
        value_var=y_var,
        chart_id=id_counter.next_id() if id_counter is not None else None,
    )


def render_chart(data, x_var, y_var=None, group_var=None, weight_var=None,
                 value_maps=None, bin_spec=None, include_missing=False,
                 missing_label=DEFAULT_MISSING_LABEL, order=None,
                 aggregation_mode=AggregationMode.COUNT, backend=DEFAULT_BACKEND,
                 display=None, chart_type=ChartType.BAR, id_counter=None,
                 group_order=None, value_label=None):
    """Generic chart entry point: full pipeline plus dispatch.

    Every ``viz_*`` function is a typed wrapper over this call (or over its
    stages, for charts that plot individual rows).

    Returns:
        ``plotly.graph_objects.Figure`` or ``matplotlib.figure.Figure``.
    """
    config = build_config(
        data, x_var, y_var=y_var, group_var=group_var, weight_var=weight_var,
        value_maps=value_maps, bin_spec=bin_spec, include_missing=include_missing,
        missing_label=missing_label, order=order, group_order=group_order,
        aggregation_mode=aggregation_mode, backend=backend, display=display,
        chart_type=chart_type, id_counter=id_counter, value_label=value_label,
    )
    return dispatch(config)
