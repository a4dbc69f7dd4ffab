"""
Helpers shared by the chart functions.
"""

import logging
from dataclasses import replace
from typing import Dict, Optional, Sequence

from ..core.utils import suggest_alternative
from ..models.data_models import AggregationMode, ChartConfig
from ..pipeline.aggregator import sort_by_value
from ..pipeline.dispatcher import dispatch

logger = logging.getLogger(__name__)

# User-facing measure names accepted by the chart functions.
MODE_NAMES: Dict[str, AggregationMode] = {
    'count': AggregationMode.COUNT,
    'counts': AggregationMode.COUNT,
    'percent': AggregationMode.PERCENT,
    'mean': AggregationMode.MEAN,
    'normal': AggregationMode.SUM,
    'sum': AggregationMode.SUM,
}

MODE_LABELS = {
    AggregationMode.COUNT: "Count",
    AggregationMode.PERCENT: "Percentage",
}


def choose_mode(value: str, param_name: str, allowed: Sequence[str]) -> AggregationMode:
    """Map a measure name such as ``"percent"`` to its AggregationMode."""
    key = value.lower() if isinstance(value, str) else value
    if key not in allowed:
        msg = f"`{param_name}` must be one of {list(allowed)}, got {value!r}"
        suggestion = suggest_alternative(value, list(allowed))
        if suggestion:
            msg += f". Did you mean '{suggestion}'?"
        raise ValueError(msg)
    return MODE_NAMES[key]


def apply_sort(config: ChartConfig, sort_values: bool, descending: bool = True) -> ChartConfig:
    """Reorder the categories of ``config`` by value when requested."""
    if not sort_values:
        return config
    return replace(config, result=sort_by_value(config.result, descending=descending))


def finish(config: ChartConfig):
    """Dispatch and return the rendered chart."""
    logger.info(f"Rendering {config.chart_type.value} chart with {config.backend}"
                + (f" ({config.chart_id})" if config.chart_id else ""))
    return dispatch(config)


def collect_value_maps(*pairs) -> Optional[Dict[str, dict]]:
    """``{column: value_map}`` from ``(column, value_map)`` pairs that have a map."""
    out = {column: value_map for column, value_map in pairs if column is not None and value_map is not None}
    return out or None
