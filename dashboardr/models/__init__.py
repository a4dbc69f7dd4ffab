"""
Data models for the chart data pipeline.
"""

from .data_models import (
    ChartType,
    AggregationMode,
    BinSpec,
    FiveNumberSummary,
    AggregationResult,
    DisplayOptions,
    BarOptions,
    BoxplotOptions,
    ScatterOptions,
    LollipopOptions,
    DumbbellOptions,
    FunnelOptions,
    TreemapOptions,
    MapOptions,
    GaugeBand,
    GaugeOptions,
    PieOptions,
    HeatmapOptions,
    TimelineOptions,
    ChartConfig,
)

__all__ = [
    'ChartType',
    'AggregationMode',
    'BinSpec',
    'FiveNumberSummary',
    'AggregationResult',
    'DisplayOptions',
    'BarOptions',
    'BoxplotOptions',
    'ScatterOptions',
    'LollipopOptions',
    'DumbbellOptions',
    'FunnelOptions',
    'TreemapOptions',
    'MapOptions',
    'GaugeBand',
    'GaugeOptions',
    'PieOptions',
    'HeatmapOptions',
    'TimelineOptions',
    'ChartConfig',
]
