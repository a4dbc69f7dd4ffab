"""
NA Policy Resolver - drops missing values or surfaces them as a category.

Runs strictly after binning (out-of-range values are already missing by
then) and before ordering and aggregation.
"""

import logging
from typing import Optional, Sequence

import pandas as pd

from ..core.config import DEFAULT_MISSING_LABEL

logger = logging.getLogger(__name__)


def validate_na_params(include_missing, missing_label, param_name: str = "missing_label") -> str:
    """Validate the NA options and return the label to use."""
    if not isinstance(include_missing, bool):
        raise TypeError(f"`include_missing` must be True or False, got {include_missing!r}")
    if missing_label is None:
        return DEFAULT_MISSING_LABEL
    if not isinstance(missing_label, str):
        raise TypeError(f"`{param_name}` must be a single string")
    if missing_label == "":
        logger.warning(f"`{param_name}` is an empty string - using '{DEFAULT_MISSING_LABEL}' instead")
        return DEFAULT_MISSING_LABEL
    return missing_label


def fill_missing(series: pd.Series, missing_label: str) -> pd.Series:
    """Replace missing values by ``missing_label`` (keeps categorical order)."""
    if not series.isna().any():
        return series
    if isinstance(series.dtype, pd.CategoricalDtype):
        if missing_label not in series.cat.categories:
            series = series.cat.add_categories([missing_label])
        return series.fillna(missing_label)
    filled = series.astype(object).where(series.notna(), missing_label)
    return filled


def resolve_missing(df: pd.DataFrame, columns: Sequence[Optional[str]], include_missing: bool = False,
                    missing_label=DEFAULT_MISSING_LABEL) -> pd.DataFrame:
    """Apply the NA policy to ``columns`` of a working copy.

    With ``include_missing=False`` every row missing any of the columns is
    dropped.  Otherwise missing values become ``missing_label`` and take part
    in ordering and aggregation like any other category.

    ``missing_label`` may be a single label or a ``{column: label}`` dict.
    """
    columns = [c for c in columns if c is not None]
    if not columns:
        return df

    if not include_missing:
        mask = df[columns].isna().any(axis=1)
        dropped = int(mask.sum())
        if dropped:
            logger.info(f"Dropped {dropped} row(s) with missing values in {columns}")
        return df.loc[~mask].copy()

    for column in columns:
        label = missing_label.get(column, DEFAULT_MISSING_LABEL) if isinstance(missing_label, dict) else missing_label
        n_missing = int(df[column].isna().sum())
        if n_missing:
            logger.info(f"Column '{column}': {n_missing} missing value(s) shown as '{label}'")
        df[column] = fill_missing(df[column], label)
    return df

