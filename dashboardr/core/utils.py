"""
Utility functions for column references, suggestions and label formatting.
"""

import difflib
import logging
from typing import List, Optional, Sequence

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)


def as_column_ref(ref, param_name="column"):
    """Collapse a column reference to its string name.

    Accepts a column name or a ``pd.Series`` taken from the table (its
    ``.name`` is used).  ``None`` passes through for optional parameters.
    """
    if ref is None:
        return None
    if isinstance(ref, pd.Series):
        if ref.name is None:
            raise TypeError(f"`{param_name}` was given an unnamed Series")
        return str(ref.name)
    if isinstance(ref, str):
        return ref
    raise TypeError(f"`{param_name}` must be a column name, got {type(ref).__name__}")


def as_column_refs(refs, param_name="columns") -> Optional[List[str]]:
    """List version of :func:`as_column_ref`."""
    if refs is None:
        return None
    if isinstance(refs, (str, pd.Series)):
        return [as_column_ref(refs, param_name)]
    return [as_column_ref(r, param_name) for r in refs]


def suggest_alternative(value, valid_options: Sequence[str]) -> Optional[str]:
    """Closest valid option for a likely typo, or None."""
    if value is None or not valid_options:
        return None
    lookup = {str(opt).lower(): opt for opt in valid_options}
    matches = difflib.get_close_matches(str(value).lower(), list(lookup), n=1, cutoff=0.6)
    return lookup[matches[0]] if matches else None


def validate_columns(df, required_cols):
    """Return the required columns that are missing from the dataframe."""
    missing = [c for c in required_cols if c is not None and c not in df.columns]
    if missing:
        logger.debug(f"Missing columns: {missing}")
    return missing


def value_to_key(value):
    """String form of a raw value, as used for value-map lookups.

    Integral floats print without the trailing ``.0`` so numeric survey codes
    read back as ``1.0`` still match a ``"1"`` key.
    """
    if isinstance(value, (float, np.floating)) and float(value).is_integer():
        return str(int(value))
    return str(value)


def format_break(value) -> str:
    """Compact label for a bin breakpoint (``10``, ``2.5``, ``Inf``)."""
    value = float(value)
    if np.isinf(value):
        return "Inf" if value > 0 else "-Inf"
    return f"{value:g}"
