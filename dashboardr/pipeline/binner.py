"""
Binner - discretises a numeric column into ordered interval categories.

Intervals are half-open ``[a, b)``.  The minimum breakpoint is always
included, and the last interval is closed on the right (``[a, b]``) so that
a value equal to the maximum breakpoint lands in the last bin instead of
being dropped.  Values outside ``[breaks[0], breaks[-1]]`` become missing and
are handed to the NA policy like any other missing value.

Example::

    >>> apply_bins(pd.Series([0, 10, 19, 20]), BinSpec(breaks=(0, 10, 20))).tolist()
    ['[0,10)', '[10,20]', '[10,20]', '[10,20]']
"""

import logging
from typing import List, Optional, Sequence

import numpy as np
import pandas as pd

from ..core.errors import TypeMismatchError
from ..core.utils import format_break
from ..models.data_models import BinSpec
from .validator import is_numeric_column

logger = logging.getLogger(__name__)


def auto_breaks(values: pd.Series, bins: int) -> List[float]:
    """``bins + 1`` equal-width breakpoints spanning the observed range."""
    finite = np.asarray(values.dropna(), dtype=float)
    finite = finite[np.isfinite(finite)]
    return [float(b) for b in np.histogram_bin_edges(finite, bins=bins)]


def default_labels(breaks: Sequence[float]) -> List[str]:
    """Interval notation labels; the last interval is right-closed."""
    labels = []
    last = len(breaks) - 2
    for i, (lo, hi) in enumerate(zip(breaks, breaks[1:])):
        closing = "]" if i == last else ")"
        labels.append(f"[{format_break(lo)},{format_break(hi)}{closing}")
    return labels


def resolve_breaks(series: pd.Series, spec: BinSpec) -> List[float]:
    if spec.breaks is not None:
        return list(spec.breaks)
    return auto_breaks(series, spec.bins)


def apply_bins(series: pd.Series, spec: Optional[BinSpec], name: Optional[str] = None) -> pd.Series:
    """Cut ``series`` into an ordered categorical using ``spec``.

    Returns ``series`` unchanged when ``spec`` is None.

    Raises:
        TypeMismatchError: The column is not numeric.
    """
    if spec is None:
        return series
    name = name if name is not None else series.name
    if not is_numeric_column(series):
        raise TypeMismatchError(
            f"Column '{name}' is not numeric and cannot be binned "
            f"(recode or convert it before passing breaks/bins)"
        )

    breaks = resolve_breaks(series, spec)
    labels = list(spec.labels) if spec.labels is not None else default_labels(breaks)
    n_bins = len(breaks) - 1

    values = series.to_numpy(dtype=float, na_value=np.nan)
    missing = np.isnan(values)
    codes = np.searchsorted(np.asarray(breaks), values, side='right') - 1
    codes[values == breaks[-1]] = n_bins - 1
    codes[(codes < 0) | (codes >= n_bins) | missing] = -1

    out_of_range = int(((codes == -1) & ~missing).sum())
    if out_of_range:
        logger.info(f"Binning '{name}': {out_of_range} value(s) outside "
                    f"[{format_break(breaks[0])}, {format_break(breaks[-1])}] set to missing")

    binned = pd.Categorical.from_codes(codes, categories=labels, ordered=True)
    return pd.Series(binned, index=series.index, name=series.name)
