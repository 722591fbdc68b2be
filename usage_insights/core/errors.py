"""
Error taxonomy for ingestion and validation.

Every failure here is a deterministic problem with user-supplied data.
Nothing is retried; the first error aborts the operation that raised it.
"""

from typing import Optional


class UsageInsightsError(Exception):
    """Base class for all usage-insights failures."""


class FormatError(UsageInsightsError):
    """Raised when the CSV text does not match the expected column layout."""
    def __init__(self, message: str, line: Optional[int] = None, column: Optional[int] = None):
        super().__init__(message)
        self.line = line
        self.column = column


class FieldParseError(UsageInsightsError):
    """Raised when a single field cannot be converted to its typed value."""
    def __init__(self, field: str, line: int, value: str, reason: str):
        super().__init__(f"Invalid {field} at line {line}: {reason} (got '{value}')")
        self.field = field
        self.line = line
        self.value = value


class ConsistencyError(UsageInsightsError):
    """Raised when a row's token breakdown does not add up to its stated total."""
    def __init__(self, line: int, computed: int, stated: int):
        super().__init__(
            f"Token calculation mismatch at line {line}. Sum of individual tokens "
            f"({computed}) doesn't match Total Tokens ({stated})"
        )
        self.line = line
        self.computed = computed
        self.stated = stated


TokenMismatchError = ConsistencyError


class EmptyDataError(UsageInsightsError):
    """Raised when a valid header is followed by no data rows."""


class RecordValidationError(UsageInsightsError):
    """Raised by the record validation pass, pointing at the first bad record."""
    def __init__(self, index: int, reason: str):
        super().__init__(f"{reason} at index {index}")
        self.index = index
        self.reason = reason


class UploadError(UsageInsightsError):
    """Raised when an uploaded file is rejected before parsing."""
