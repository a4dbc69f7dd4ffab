"""
Core module for dashboardr.

Contains configuration, the error taxonomy and base utilities.
"""

from dashboardr.core.config import *
from dashboardr.core.errors import (
    DashboardrError,
    MissingColumnError,
    TypeMismatchError,
    InvalidMapError,
    InvalidBinSpecError,
    InvalidOrderError,
    UnsupportedBackendError,
)
from dashboardr.core.utils import (
    as_column_ref,
    as_column_refs,
    suggest_alternative,
    validate_columns,
)

__all__ = [
    # Errors
    'DashboardrError',
    'MissingColumnError',
    'TypeMismatchError',
    'InvalidMapError',
    'InvalidBinSpecError',
    'InvalidOrderError',
    'UnsupportedBackendError',
    # Utils
    'as_column_ref',
    'as_column_refs',
    'suggest_alternative',
    'validate_columns',
]
