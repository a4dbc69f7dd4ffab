"""
Error taxonomy for the chart data pipeline.

Every stage raises synchronously when one of its preconditions fails; nothing
is retried and no stage recovers on its own.  The classes also derive from
the closest builtin exception so callers that already catch ``ValueError`` or
``KeyError`` keep working.
"""

from typing import Optional, Sequence


class DashboardrError(Exception):
    """Base class for all errors raised by dashboardr."""


class MissingColumnError(DashboardrError, KeyError):
    """A referenced column does not exist in the input table."""

    def __init__(self, column: str, param_name: Optional[str] = None,
                 suggestion: Optional[str] = None):
        self.column = column
        self.param_name = param_name
        self.suggestion = suggestion
        msg = f"Column '{column}' not found in data"
        if param_name:
            msg += f" (`{param_name}`)"
        if suggestion:
            msg += f". Did you mean '{suggestion}'?"
        super().__init__(msg)

    def __str__(self):
        # KeyError would otherwise repr() the message
        return self.args[0]


class TypeMismatchError(DashboardrError, TypeError):
    """A column has the wrong type for the requested operation."""


class InvalidMapError(DashboardrError, ValueError):
    """A value map is not a flat dictionary of string keys."""


class InvalidBinSpecError(DashboardrError, ValueError):
    """Breakpoints, labels or bin count are inconsistent."""


class InvalidOrderError(DashboardrError, ValueError):
    """An explicit category order is malformed."""


class UnsupportedBackendError(DashboardrError, ValueError):
    """The backend is unknown or cannot render the requested chart type."""

    def __init__(self, message: str, backend: Optional[str] = None,
                 valid: Sequence[str] = ()):
        self.backend = backend
        self.valid = tuple(valid)
        super().__init__(message)
