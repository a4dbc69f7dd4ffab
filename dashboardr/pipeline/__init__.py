"""
Chart data pipeline: validate -> recode -> bin -> NA policy -> order ->
aggregate -> dispatch.
"""

from .validator import coerce_numeric, is_numeric_column, require_columns, validate_table
from .recoder import recode, validate_value_map
from .binner import apply_bins, auto_breaks, default_labels
from .na_policy import resolve_missing, validate_na_params
from .orderer import default_order, order_categories, to_category_series, validate_order
from .aggregator import aggregate, complete, five_number_summary, sort_by_value
from .dispatcher import (
    RENDERERS,
    ChartIdCounter,
    assert_backend_supported,
    dispatch,
    normalize_backend,
)
from .orchestrator import build_config, prepare_categories, render_chart

__all__ = [
    # Validator
    'validate_table',
    'require_columns',
    'coerce_numeric',
    'is_numeric_column',
    # Recoder
    'validate_value_map',
    'recode',
    # Binner
    'auto_breaks',
    'default_labels',
    'apply_bins',
    # NA policy
    'validate_na_params',
    'resolve_missing',
    # Orderer
    'order_categories',
    'default_order',
    'to_category_series',
    'validate_order',
    # Aggregator
    'aggregate',
    'complete',
    'five_number_summary',
    'sort_by_value',
    # Dispatcher
    'RENDERERS',
    'ChartIdCounter',
    'normalize_backend',
    'assert_backend_supported',
    'dispatch',
    # Orchestration
    'prepare_categories',
    'build_config',
    'render_chart',
]
