"""
Pydantic Schemas - Data Validation Models

Defines the schemas shared by the exporter:
- Logs Search API responses (events, pagination metadata)
- The exportable column set
- The immutable export configuration built by the validator

Usage:
    from utils.schemas import LogsListResponse

    page = LogsListResponse.model_validate(orjson.loads(response.content))
    for event in page.data:
        print(event.attributes.message)
"""

from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class Column(str, Enum):
    """Exportable columns, bound to the LogRecord attribute they read."""

    DATE = "Date"
    HOST = "Host"
    SERVICE = "Service"
    MESSAGE = "Message"
    STATUS = "Status"

    @property
    def attribute(self) -> str:
        return _COLUMN_ATTRIBUTES[self]


_COLUMN_ATTRIBUTES = {
    Column.DATE: "timestamp",
    Column.HOST: "host",
    Column.SERVICE: "service",
    Column.MESSAGE: "message",
    Column.STATUS: "status",
}

DEFAULT_COLUMNS: tuple[Column, ...] = (Column.DATE, Column.MESSAGE)


class LogRecord(BaseModel):
    """Attributes of a single log event.

    Every field may be missing upstream; absent values stay None and are
    rendered as empty cells by the projector.
    """

    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    timestamp: Optional[datetime] = Field(default=None, description="Event time")
    host: Optional[str] = Field(default=None, description="Originating host")
    service: Optional[str] = Field(default=None, description="Service name")
    status: Optional[str] = Field(default=None, description="Log status/level")
    message: Optional[str] = Field(default=None, description="Log message")

    @field_validator("timestamp")
    @classmethod
    def ensure_timezone(cls, v: Optional[datetime]) -> Optional[datetime]:
        """Treat naive timestamps as UTC."""
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    def value_of(self, column: Column) -> Optional[str]:
        """Return the textual value for a column, or None when absent."""
        value = getattr(self, column.attribute)
        if value is None:
            return None
        if isinstance(value, datetime):
            return format_timestamp(value)
        return str(value)


class LogEvent(BaseModel):
    """One entry of the `data` array returned by the Logs Search API."""

    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    type: Optional[str] = None
    attributes: LogRecord = Field(default_factory=LogRecord)

    @field_validator("attributes", mode="before")
    @classmethod
    def default_attributes(cls, v: Any) -> Any:
        return {} if v is None else v


class PageMeta(BaseModel):
    model_config = ConfigDict(extra="ignore")

    after: Optional[str] = None


class ResponseMeta(BaseModel):
    model_config = ConfigDict(extra="ignore")

    page: Optional[PageMeta] = None


class LogsListResponse(BaseModel):
    """A page of search results plus the continuation cursor."""

    model_config = ConfigDict(extra="ignore")

    data: list[LogEvent] = Field(default_factory=list)
    meta: Optional[ResponseMeta] = None

    @field_validator("data", mode="before")
    @classmethod
    def default_data(cls, v: Any) -> Any:
        return [] if v is None else v

    @property
    def records(self) -> list[LogRecord]:
        return [event.attributes for event in self.data]

    @property
    def next_cursor(self) -> Optional[str]:
        """Cursor for the next page; None once the result set is exhausted."""
        if self.meta is None or self.meta.page is None:
            return None
        return self.meta.page.after or None


class QuerySpec(BaseModel):
    """What to search for: indexes, filter query, time window, page size."""

    model_config = ConfigDict(frozen=True)

    indexes: tuple[str, ...] = ("*",)
    query: str = "*"
    from_: str
    to: str
    page_size: int = Field(default=5000, ge=1, le=5000)

    @model_validator(mode="after")
    def check_window(self) -> "QuerySpec":
        if parse_timestamp(self.from_) > parse_timestamp(self.to):
            raise ValueError("'from' must not be later than 'to'")
        return self


class ExportConfig(BaseModel):
    """Fully validated, immutable configuration for one export run."""

    model_config = ConfigDict(frozen=True)

    site: str = "datadoghq.com"
    api_key: str = Field(repr=False)
    app_key: str = Field(repr=False)
    spec: QuerySpec
    output: Path
    sleep_ms: float = Field(default=1000, ge=0)
    columns: tuple[Column, ...] = DEFAULT_COLUMNS
    timeout: float = Field(default=30, gt=0)

    def redacted(self) -> dict[str, Any]:
        """Effective parameters safe to log."""
        return {
            "site": self.site,
            "indexes": list(self.spec.indexes),
            "query": self.spec.query,
            "from": self.spec.from_,
            "to": self.spec.to,
            "page_size": self.spec.page_size,
            "output": str(self.output),
            "sleep_ms": self.sleep_ms,
            "columns": [column.value for column in self.columns],
        }


def format_timestamp(value: datetime) -> str:
    """UTC ISO-8601 with millisecond precision, e.g. 2023-02-06T03:24:00.000Z."""
    utc = value.astimezone(timezone.utc)
    return utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp carrying an offset or a Z designator.

    Fractions are clamped to microseconds so arbitrary precision is accepted;
    the API emits nanosecond fractions, so this is used instead of pydantic parsing.

    Raises:
        ValueError: If the value is not a valid timestamp
    """
    text = value.strip().upper()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"

    date_part, sep, rest = text.partition("T")
    if not sep:
        raise ValueError(f"not an ISO-8601 timestamp: {value!r}")

    offset_at = max(rest.rfind("+"), rest.rfind("-"))
    if offset_at <= 0:
        raise ValueError(f"timestamp has no timezone offset: {value!r}")
    clock, offset = rest[:offset_at], rest[offset_at:]
    if "." in clock:
        whole, fraction = clock.split(".", 1)
        clock = f"{whole}.{(fraction + '000000')[:6]}"

    parsed = datetime.fromisoformat(f"{date_part}T{clock}{offset}")
    if parsed.tzinfo is None:
        raise ValueError(f"timestamp has no timezone offset: {value!r}")
    return parsed
