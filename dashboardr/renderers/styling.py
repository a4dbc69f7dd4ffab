"""
Styling helpers shared by every rendering backend.
"""

from itertools import cycle, islice
from typing import List, Mapping, Optional, Sequence

import numpy as np

from ..core.config import DEFAULT_PALETTE, MEAN_DECIMALS, PERCENT_DECIMALS, PRIMARY_COLOR
from ..models.data_models import AggregationMode, ChartConfig, DisplayOptions


def resolve_colors(palette, labels: Sequence[str]) -> List[str]:
    """One color per label.

    ``palette`` may be None (default palette), a single color, a list of
    colors (cycled in label order) or a ``{label: color}`` mapping; labels
    absent from a mapping take the default palette color at their position.
    """
    n = len(labels)
    defaults = list(islice(cycle(DEFAULT_PALETTE), n))
    if palette is None:
        return defaults
    if isinstance(palette, str):
        return [palette] * n
    if isinstance(palette, Mapping):
        return [palette.get(lbl, defaults[i]) for i, lbl in enumerate(labels)]
    palette = list(palette)
    if not palette:
        return defaults
    return list(islice(cycle(palette), n))


def single_color(palette) -> str:
    """Color for single-series charts."""
    if palette is None:
        return PRIMARY_COLOR
    if isinstance(palette, str):
        return palette
    if isinstance(palette, Mapping):
        return next(iter(palette.values()), PRIMARY_COLOR)
    palette = list(palette)
    return palette[0] if palette else PRIMARY_COLOR


def format_value(value: float, mode: Optional[AggregationMode] = None) -> str:
    """Data label text for one measure."""
    if value is None or (isinstance(value, float) and np.isnan(value)):
        return ""
    if mode is AggregationMode.PERCENT:
        return f"{value:.{PERCENT_DECIMALS}f}%"
    if float(value).is_integer():
        return f"{value:,.0f}"
    return f"{value:,.{MEAN_DECIMALS}f}"


def tooltip_value(display: DisplayOptions, text: str) -> str:
    return f"{display.tooltip_prefix}{text}{display.tooltip_suffix}"


def axis_labels(config: ChartConfig, horizontal: bool = False):
    """``(x_label, y_label)`` with the axes swapped for horizontal charts."""
    if horizontal:
        return config.y_label, config.x_label
    return config.x_label, config.y_label


def format_cell(value, decimals: int) -> str:
    """Heatmap cell label; empty for cells without data."""
    if value is None or np.isnan(value):
        return ""
    return f"{value:.{decimals}f}"
