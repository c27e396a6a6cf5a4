"""Activity-specific exception types.

StorageError wraps any database failure raised by the activity store.
DateRangeError is the validation error of the dashboard query path; the API
layer maps it to a 400 response.
"""

from typing import Any, Optional


class ActivityError(Exception):
    """Base exception for all activity errors."""

    pass


class StorageError(ActivityError):
    """The activity table could not be read or written."""

    def __init__(self, message: str, operation: str = ""):
        self.operation = operation
        super().__init__(message)


class DateRangeError(ActivityError, ValueError):
    """A requested date range is malformed or reversed."""

    def __init__(self, message: str, value: Optional[Any] = None):
        self.value = value
        super().__init__(message)
