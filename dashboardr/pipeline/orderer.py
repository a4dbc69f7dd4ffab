"""
Orderer - decides the final order of categories on an axis.

With an explicit order the result is::

    [labels of `desired` that are observed, in desired order]
    + [observed labels not in `desired`, in first-seen order]

so no category is ever dropped, and ordering an already ordered series
again changes nothing.  The explicit "missing" category, when present and
not placed explicitly, always goes last.

Without an explicit order, categoricals (including binned columns) keep
their own level order, numbers and numeric-looking strings sort
numerically, and everything else sorts alphabetically.
"""

import logging
import re
from typing import Iterable, List, Optional, Sequence

import pandas as pd

from ..core.errors import InvalidOrderError
from ..core.utils import value_to_key

logger = logging.getLogger(__name__)

_NUMERIC_LABEL = re.compile(r"^-?[0-9]+(\.[0-9]+)?$")


def _unique(values: Iterable) -> List:
    return list(dict.fromkeys(values))


def validate_order(order, param_name: str = "order") -> Optional[List[str]]:
    """Check an explicit order: a list of distinct labels."""
    if order is None:
        return None
    if isinstance(order, (str, bytes)) or not isinstance(order, (list, tuple, pd.Index)):
        raise InvalidOrderError(f"`{param_name}` must be a list of category labels, got {type(order).__name__}")
    labels = [value_to_key(v) for v in order]
    duplicates = sorted({lbl for lbl in labels if labels.count(lbl) > 1})
    if duplicates:
        raise InvalidOrderError(f"`{param_name}` contains duplicate labels: {duplicates}")
    return labels


def order_categories(observed: Sequence[str], desired: Optional[Sequence[str]] = None,
                     missing_label: Optional[str] = None) -> List[str]:
    """Apply an explicit ``desired`` order to the ``observed`` labels."""
    seen = _unique(observed)
    if desired is None:
        head, residual = [], seen
    else:
        seen_set = set(seen)
        desired = _unique(desired)
        absent = [d for d in desired if d not in seen_set]
        if absent:
            logger.warning(f"Order labels not found in data (ignored): {absent}")
        desired_set = set(desired)
        head = [d for d in desired if d in seen_set]
        residual = [s for s in seen if s not in desired_set]

    if missing_label is not None and missing_label in residual:
        residual = [s for s in residual if s != missing_label] + [missing_label]
    return head + residual


def _sort_labels(labels: List[str], numeric: bool) -> List[str]:
    if not labels:
        return labels
    if numeric or all(_NUMERIC_LABEL.match(lbl) for lbl in labels):
        try:
            return sorted(labels, key=float)
        except ValueError:
            pass
    return sorted(labels)


def default_order(series: pd.Series, missing_label: Optional[str] = None, numeric: bool = False) -> List[str]:
    """Natural order of the labels of ``series`` (no explicit order given)."""
    if isinstance(series.dtype, pd.CategoricalDtype):
        levels = [str(c) for c in series.cat.categories]
    else:
        levels = _sort_labels([lbl for lbl in _unique(series.dropna()) if lbl != missing_label], numeric)
        if missing_label is not None and (series == missing_label).any():
            levels.append(missing_label)
        return levels

    if missing_label is not None and missing_label in levels:
        levels = [lvl for lvl in levels if lvl != missing_label] + [missing_label]
    return levels


def observed_labels(series: pd.Series) -> List[str]:
    """Labels in observation order (level order for categoricals)."""
    if isinstance(series.dtype, pd.CategoricalDtype):
        present = set(series.dropna().astype(str))
        return [str(c) for c in series.cat.categories if str(c) in present]
    return _unique(series.dropna())


def as_labels(series: pd.Series) -> pd.Series:
    """String labels for a category column (categorical order preserved)."""
    if isinstance(series.dtype, pd.CategoricalDtype):
        return series.cat.rename_categories([str(c) for c in series.cat.categories])
    return series.map(value_to_key, na_action='ignore')


def to_category_series(series: pd.Series, desired: Optional[Sequence[str]] = None,
                       missing_label: Optional[str] = None, numeric: bool = False) -> pd.Series:
    """Turn a label column into an ordered Categorical (the CategorySeries)."""
    labels = as_labels(series)
    if desired is not None:
        levels = order_categories(observed_labels(labels), desired, missing_label)
    else:
        levels = default_order(labels, missing_label, numeric=numeric)
    values = labels.astype(object).where(labels.notna(), None)
    return pd.Series(
        pd.Categorical(values, categories=levels, ordered=True),
        index=series.index, name=series.name,
    )
