"""
Value Recoder - replaces raw codes by display labels.

Typical use is survey data where answers are stored as numeric codes::

    recode(df['sex'], {"1": "Male", "2": "Female"})

Values with no matching key pass through unchanged (as their string form);
missing values stay missing.  Recoding runs before binning.
"""

import logging
from numbers import Number
from typing import Dict, Mapping, Optional

import pandas as pd

from ..core.errors import InvalidMapError
from ..core.utils import value_to_key

logger = logging.getLogger(__name__)


def validate_value_map(value_map, param_name: str = "map_values") -> Dict[str, str]:
    """Check that ``value_map`` is a flat ``{str: label}`` dictionary."""
    if not isinstance(value_map, Mapping):
        raise InvalidMapError(
            f"`{param_name}` must be a dictionary (e.g. {{'1': 'Male', '2': 'Female'}}), "
            f"got {type(value_map).__name__}"
        )
    for key, label in value_map.items():
        if not isinstance(key, str):
            raise InvalidMapError(f"`{param_name}` keys must be strings, got {key!r}")
        if not isinstance(label, (str, Number)) or isinstance(label, bool):
            raise InvalidMapError(
                f"`{param_name}` must be flat: value for '{key}' is {type(label).__name__}"
            )
    return {key: str(label) for key, label in value_map.items()}


def recode(series: pd.Series, value_map: Optional[Mapping], param_name: str = "map_values") -> pd.Series:
    """Return a new series with mapped values replaced by their labels."""
    if value_map is None:
        return series
    mapping = validate_value_map(value_map, param_name)

    def _lookup(value):
        key = value_to_key(value)
        return mapping.get(key, key)

    present = series.notna()
    recoded = pd.Series(
        [_lookup(v) if ok else None for v, ok in zip(series, present)],
        index=series.index, dtype=object, name=series.name,
    )

    unmatched = set(mapping) - {value_to_key(v) for v in series[present].unique()}
    if unmatched:
        logger.debug(f"{param_name}: keys never matched: {sorted(unmatched)}")
    return recoded
