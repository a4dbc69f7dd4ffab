"""
Aggregator - turns ordered category columns into chart-ready measures.

=== PURPOSE ===
Computes one measure per category (or per category x group pair) and
completes the result so that every combination is present, including
combinations never observed in the data.

=== MODES ===
  COUNT    rows per key; with a weight column the weight sum, rounded to
           WEIGHTED_COUNT_DECIMALS with numpy's round-half-even.
  PERCENT  COUNT as a share of the total (ungrouped) or of the category
           total (grouped), x100, rounded to PERCENT_DECIMALS.
  SUM      sum of a value column (pre-aggregated data).
  MEAN     (weighted) mean of a value column, rounded to MEAN_DECIMALS.
           Unobserved keys stay NaN - a mean of nothing is not zero.
  BOXPLOT  FiveNumberSummary per category (weighted quartiles supported).

Inputs are expected to come out of the orderer: the category and group
columns are ordered Categoricals whose categories define the axis order.
"""

import logging
from dataclasses import replace
from typing import Dict, List, Optional, Sequence

import numpy as np
import pandas as pd

from ..core.config import (
    IQR_MULTIPLIER,
    MEAN_DECIMALS,
    PERCENT_DECIMALS,
    QUARTILES,
    WEIGHTED_COUNT_DECIMALS,
)
from ..models.data_models import AggregationMode, AggregationResult, FiveNumberSummary

logger = logging.getLogger(__name__)


# ============================================================================
# FIVE-NUMBER SUMMARY
# ============================================================================

def weighted_quantiles(values: np.ndarray, weights: np.ndarray, probs: Sequence[float]) -> List[float]:
    """First sorted value whose cumulative weight share reaches each probability."""
    order = np.argsort(values, kind='mergesort')
    values = values[order]
    cum = np.cumsum(weights[order])
    cum = cum / cum[-1]
    idx = np.searchsorted(cum, np.asarray(probs) - 1e-12, side='left')
    idx = np.clip(idx, 0, len(values) - 1)
    return [float(values[i]) for i in idx]


def five_number_summary(values, weights=None) -> FiveNumberSummary:
    """Tukey box plot statistics for one group of observations.

    Quartiles are linear-interpolated without weights.  With weights each
    quartile is the first sorted value whose cumulative weight share reaches
    0.25 / 0.5 / 0.75.  Whiskers end at the most extreme values inside the
    1.5 x IQR fences; everything beyond is an outlier.

    Example::

        >>> s = five_number_summary([1, 2, 3, 4, 100], weights=[1, 1, 1, 1, 1])
        >>> s.as_list(), s.outliers
        ([1.0, 2.0, 3.0, 4.0, 4.0], (100.0,))
    """
    values = np.asarray(values, dtype=float)
    if weights is not None:
        weights = np.asarray(weights, dtype=float)
        keep = ~np.isnan(values) & ~np.isnan(weights) & (weights > 0)
        values, weights = values[keep], weights[keep]
    else:
        values = values[~np.isnan(values)]

    if values.size == 0:
        return FiveNumberSummary.empty()

    if weights is None:
        q1, median, q3 = (float(q) for q in np.quantile(values, QUARTILES))
    else:
        q1, median, q3 = weighted_quantiles(values, weights, QUARTILES)

    iqr = q3 - q1
    lower_fence = q1 - IQR_MULTIPLIER * iqr
    upper_fence = q3 + IQR_MULTIPLIER * iqr
    inside = values[(values >= lower_fence) & (values <= upper_fence)]
    outliers = np.sort(values[(values < lower_fence) | (values > upper_fence)])

    return FiveNumberSummary(
        low=float(inside.min()) if inside.size else q1,
        q1=q1,
        median=median,
        q3=q3,
        high=float(inside.max()) if inside.size else q3,
        outliers=tuple(float(v) for v in outliers),
        n=int(values.size),
    )


# ============================================================================
# COMPLETION
# ============================================================================

def complete(measures: Dict, categories: Sequence[str], groups: Optional[Sequence[str]] = None,
             fill=0.0) -> Dict:
    """Add ``fill`` for every category (x group) absent from ``measures``."""
    if groups is None:
        return {cat: measures.get(cat, fill) for cat in categories}
    return {(cat, grp): measures.get((cat, grp), fill) for cat in categories for grp in groups}


def _levels(series: pd.Series) -> List[str]:
    if isinstance(series.dtype, pd.CategoricalDtype):
        return [str(c) for c in series.cat.categories]
    return list(dict.fromkeys(str(v) for v in series.dropna()))


def _group_measure(df: pd.DataFrame, keys: List[str], how: str,
                   value_var: Optional[str] = None, weight_var: Optional[str] = None) -> Dict:
    grouped = df.groupby(keys, observed=True, sort=False)
    if how == 'count':
        if weight_var is None:
            measure = grouped.size().astype(float)
        else:
            measure = grouped[weight_var].sum()
    elif how == 'sum':
        measure = grouped[value_var].sum()
    elif how == 'mean':
        if weight_var is None:
            measure = grouped[value_var].mean()
        else:
            valid = df[value_var].notna() & df[weight_var].notna()
            parts = df[keys].copy()
            parts['_vw'] = (df[value_var] * df[weight_var]).where(valid)
            parts['_w'] = df[weight_var].where(valid)
            sums = parts.groupby(keys, observed=True, sort=False)[['_vw', '_w']].sum()
            measure = (sums['_vw'] / sums['_w'].replace(0, np.nan))
    else:
        raise ValueError(f"Unknown measure '{how}'")

    out = {}
    for key, value in measure.items():
        key = tuple(str(k) for k in key) if isinstance(key, tuple) else str(key)
        if len(keys) == 1 and isinstance(key, tuple):
            key = key[0]
        out[key] = float(value)
    return out


# ============================================================================
# AGGREGATION
# ============================================================================

def aggregate(df: pd.DataFrame, category_var: str, mode=AggregationMode.COUNT,
              group_var: Optional[str] = None, value_var: Optional[str] = None,
              weight_var: Optional[str] = None, value_label: Optional[str] = None) -> AggregationResult:
    """Aggregate ``df`` by ``category_var`` (and ``group_var``).

    Args:
        df: Working table with ordered categorical key columns.
        category_var: Column holding the chart's categories.
        mode: AggregationMode (or its string value).
        group_var: Optional second key for grouped/stacked charts.
        value_var: Measure column for SUM, MEAN and BOXPLOT.
        weight_var: Survey weight column for COUNT, PERCENT, MEAN and BOXPLOT.
        value_label: Axis label for the measure; derived from the mode if None.

    Returns:
        AggregationResult with an entry for every category (x group).
    """
    mode = AggregationMode(mode)
    if mode in (AggregationMode.SUM, AggregationMode.MEAN, AggregationMode.BOXPLOT) and value_var is None:
        raise ValueError(f"A value column is required for {mode.value} aggregation")
    if mode is AggregationMode.BOXPLOT and group_var is not None:
        raise ValueError("Box plot aggregation does not support a group column")

    categories = tuple(_levels(df[category_var]))
    groups = tuple(_levels(df[group_var])) if group_var is not None else None
    keys = [category_var] + ([group_var] if group_var is not None else [])

    if mode is AggregationMode.BOXPLOT:
        return _aggregate_boxplot(df, category_var, categories, value_var, weight_var, value_label)

    counts = {}
    if mode in (AggregationMode.COUNT, AggregationMode.PERCENT):
        counts = complete(_group_measure(df, keys, 'count', weight_var=weight_var), categories, groups)
        if mode is AggregationMode.COUNT:
            values = counts
            if weight_var is not None:
                values = {k: float(np.round(v, WEIGHTED_COUNT_DECIMALS)) for k, v in counts.items()}
            label = "Count"
        else:
            values = _percentages(counts, categories, groups)
            label = "Percentage"
    elif mode is AggregationMode.SUM:
        values = complete(_group_measure(df, keys, 'sum', value_var=value_var), categories, groups)
        label = value_var
    else:
        means = _group_measure(df, keys, 'mean', value_var=value_var, weight_var=weight_var)
        means = {k: float(np.round(v, MEAN_DECIMALS)) for k, v in means.items()}
        values = complete(means, categories, groups, fill=float('nan'))
        label = f"Mean {value_var}"

    logger.info(f"Aggregated '{category_var}'"
                + (f" x '{group_var}'" if group_var else "")
                + f" ({mode.value}): {len(categories)} categories")

    return AggregationResult(
        mode=mode,
        categories=categories,
        groups=groups,
        values=values,
        counts=counts,
        value_label=value_label if value_label is not None else label,
    )


def _percentages(counts: Dict, categories: Sequence[str], groups: Optional[Sequence[str]]) -> Dict:
    if groups is None:
        total = sum(counts.values())
        return {
            cat: float(np.round(100.0 * counts[cat] / total, PERCENT_DECIMALS)) if total else 0.0
            for cat in categories
        }
    out = {}
    for cat in categories:
        cat_total = sum(counts[(cat, grp)] for grp in groups)
        for grp in groups:
            share = 100.0 * counts[(cat, grp)] / cat_total if cat_total else 0.0
            out[(cat, grp)] = float(np.round(share, PERCENT_DECIMALS))
    return out


def _aggregate_boxplot(df, category_var, categories, value_var, weight_var, value_label):
    summaries = {}
    for cat in categories:
        rows = df[df[category_var].astype(str) == cat]
        weights = rows[weight_var] if weight_var is not None else None
        summaries[cat] = five_number_summary(rows[value_var], weights)
    empty = [cat for cat, s in summaries.items() if s.is_empty]
    if empty:
        logger.info(f"Box plot: no observations for {empty}")
    return AggregationResult(
        mode=AggregationMode.BOXPLOT,
        categories=tuple(categories),
        values={cat: float(s.n) for cat, s in summaries.items()},
        summaries=summaries,
        value_label=value_label if value_label is not None else value_var,
    )


def sort_by_value(result: AggregationResult, descending: bool = True) -> AggregationResult:
    """Reorder categories by their value (by category total when grouped)."""
    if result.is_grouped:
        totals = {cat: sum(result.values[(cat, g)] for g in result.groups) for cat in result.categories}
    else:
        totals = {cat: result.values[cat] for cat in result.categories}
    # NaN sorts last in either direction
    ordered = sorted(
        result.categories,
        key=lambda c: (np.isnan(totals[c]), -totals[c] if descending else totals[c]),
    )
    return replace(result, categories=tuple(ordered))
