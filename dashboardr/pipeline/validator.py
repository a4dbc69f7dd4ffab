"""
Input Validator - first stage of the chart data pipeline.

Checks that the input is a DataFrame, that every referenced column exists,
and that columns used as numeric measures really are numeric.  Survey data
imported from SPSS/Stata usually arrives as labelled categoricals whose
categories are the numeric codes; ``coerce_numeric`` unwraps those codes
before the measure is used.

All checks are read-only: the caller's table is never touched.
"""

import logging
from typing import Iterable, Optional

import numpy as np
import pandas as pd
from pandas.api import types as ptypes

from ..core.errors import MissingColumnError, TypeMismatchError
from ..core.utils import suggest_alternative, validate_columns

logger = logging.getLogger(__name__)


def validate_table(data) -> None:
    """Raise ``TypeError`` unless ``data`` is a DataFrame."""
    if not isinstance(data, pd.DataFrame):
        raise TypeError(f"`data` must be a pandas DataFrame, got {type(data).__name__}")


def require_columns(df: pd.DataFrame, required: dict, optional: Optional[dict] = None) -> None:
    """Check column references.

    Args:
        df: Input table.
        required: ``{param_name: column}``; a ``None`` column is itself an
            error (the parameter is mandatory).
        optional: ``{param_name: column}``; ``None`` columns are skipped.

    Raises:
        ValueError: A required parameter was not supplied.
        MissingColumnError: A referenced column is absent.
    """
    for param_name, column in required.items():
        if column is None:
            raise ValueError(f"'{param_name}' parameter is required")
    checks = dict(required)
    checks.update({k: v for k, v in (optional or {}).items() if v is not None})

    for param_name, column in checks.items():
        if validate_columns(df, [column]):
            suggestion = suggest_alternative(column, [str(c) for c in df.columns])
            raise MissingColumnError(column, param_name=param_name, suggestion=suggestion)


def is_numeric_column(series: pd.Series) -> bool:
    """True for real numeric data (booleans and categoricals excluded)."""
    return ptypes.is_numeric_dtype(series) and not ptypes.is_bool_dtype(series)


def _unwrap_labelled(series: pd.Series) -> pd.Series:
    """Replace a labelled categorical by its underlying category values."""
    if isinstance(series.dtype, pd.CategoricalDtype):
        return series.astype(object).where(series.notna(), np.nan)
    return series


def coerce_numeric(series: pd.Series, name: Optional[str] = None) -> pd.Series:
    """Return ``series`` as float, unwrapping labelled/string codes.

    Raises:
        TypeMismatchError: Coercion produced only missing values for the
            non-missing inputs (the column is genuinely non-numeric).
    """
    name = name if name is not None else series.name
    if is_numeric_column(series):
        return series.astype(float)
    if ptypes.is_bool_dtype(series):
        raise TypeMismatchError(f"Column '{name}' is boolean; a numeric column is required")

    raw = _unwrap_labelled(series)
    coerced = pd.to_numeric(raw, errors='coerce')
    present = raw.notna()
    if present.any() and coerced[present].isna().all():
        raise TypeMismatchError(f"Column '{name}' must be numeric (no values could be converted)")
    lost = int((present & coerced.isna()).sum())
    if lost:
        logger.warning(f"Column '{name}': {lost} non-numeric value(s) treated as missing")
    return coerced.astype(float)


def require_numeric(df: pd.DataFrame, columns: Iterable[Optional[str]]) -> pd.DataFrame:
    """Coerce each named column of a working copy to float in place."""
    for column in columns:
        if column is None:
            continue
        df[column] = coerce_numeric(df[column], name=column)
    return df
