"""
Exporter error taxonomy.

Every error here is terminal at the process boundary: the runner turns it into
a diagnostic on stderr and a non-zero exit status.
"""

from typing import Optional


class ExporterError(Exception):
    """Base class for all exporter failures."""


class ValidationError(ExporterError):
    """Configuration rejected before any network activity."""


class ConfigurationError(ValidationError):
    """A required setting is missing or malformed."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(message)
        self.field = field


class UnsupportedColumnError(ValidationError):
    """A requested column is outside the exportable column set."""

    def __init__(self, column: str, supported: list[str]) -> None:
        super().__init__(
            f"'DD_COLUMNS' contains unsupported column '{column}'. "
            f"Supported columns: {', '.join(supported)}"
        )
        self.column = column
        self.field = "DD_COLUMNS"


class RemoteRequestError(ExporterError):
    """The Logs Search API request failed (network, HTTP status or payload)."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code
