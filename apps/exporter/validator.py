"""
Input Validator

Turns the raw environment surface (utils.config.Settings) into an immutable
ExportConfig, applying defaults and failing fast on the first bad setting.

Rules, in order:
1. Credentials are required; query, indexes and the time window default to
   "*", "*" and the last ten minutes.
2. DD_SITE must be a bare host name; the output path must end in ".csv"
   (default: exported.csv).
3. DD_FROM / DD_TO must be ISO-8601 with a numeric offset or Z, from <= to.
4. DD_SLEEP must be a non-negative number of milliseconds.
5. DD_COLUMNS tokens must name known columns (case-insensitive).
"""

import logging
import math
import re
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional

import httpx
import pydantic

from apps.exporter.client import base_url
from apps.exporter.errors import ConfigurationError, UnsupportedColumnError
from utils.config import Settings
from utils.schemas import DEFAULT_COLUMNS, Column, ExportConfig, QuerySpec, parse_timestamp

logger = logging.getLogger(__name__)

TIME_FORMAT = re.compile(
    r"^\d{4}-\d\d-\d\dT\d\d:\d\d:\d\d(\.\d+)?([+-]\d\d:\d\d|Z)$",
    re.IGNORECASE,
)

DEFAULT_SITE = "datadoghq.com"
SITE_FORMAT = re.compile(
    r"^[a-z0-9](?:[a-z0-9-]*[a-z0-9])?(?:\.[a-z0-9](?:[a-z0-9-]*[a-z0-9])?)+$",
    re.IGNORECASE,
)
DEFAULT_QUERY = "*"
DEFAULT_INDEX = "*"
DEFAULT_OUTPUT = "exported.csv"
DEFAULT_SLEEP_MS = 1000.0
DEFAULT_PAGE_SIZE = 5000
MAX_PAGE_SIZE = 5000
DEFAULT_TIMEOUT = 30.0
DEFAULT_WINDOW = timedelta(minutes=10)

USAGE_WIN32 = """
Usage:
set DD_SITE=datadoghq.com # or DD_SITE=datadoghq.eu
set DD_API_KEY=api-key
set DD_APP_KEY=app-key
set DD_INDEX=main
set DD_FROM=2023-02-06T03:24:00Z
set DD_TO=2023-02-06T03:25:00Z
set DD_OUTPUT=exported.csv
set DD_QUERY=service:*
set DD_SLEEP=1000
set DD_COLUMNS=Date,Host,Service,Status,Message

python -m apps.exporter
"""

USAGE = """
Usage:
export DD_SITE='datadoghq.com' # or DD_SITE='datadoghq.eu'
export DD_API_KEY=''
export DD_APP_KEY=''
export DD_INDEX='main'
export DD_FROM='2023-02-06T03:24:00Z'
export DD_TO='2023-02-06T03:25:00Z'
export DD_OUTPUT='exported.csv'
export DD_QUERY='service:*'
export DD_SLEEP='1000'
export DD_COLUMNS='Date,Host,Service,Status,Message'

python -m apps.exporter
"""


def usage_text(platform: str) -> str:
    """Usage block in the shell syntax of the given sys.platform value."""
    return USAGE_WIN32 if platform == "win32" else USAGE


def capitalize(value: str) -> str:
    """Upper-case the first character and lower-case the rest."""
    return value[:1].upper() + value[1:].lower()


def _present(value: Optional[str]) -> Optional[str]:
    """Treat unset, empty and whitespace-only settings alike."""
    if value is None or not value.strip():
        return None
    return value.strip()


def parse_columns(raw: Optional[str]) -> tuple[Column, ...]:
    """Split a comma-separated column list, keeping order and duplicates.

    Raises:
        UnsupportedColumnError: If a token is not a known column
    """
    if _present(raw) is None:
        return DEFAULT_COLUMNS

    supported = {column.value: column for column in Column}
    columns = []
    for token in raw.split(","):
        name = capitalize(token.strip())
        if name not in supported:
            raise UnsupportedColumnError(token.strip(), list(supported))
        columns.append(supported[name])
    return tuple(columns)


def parse_indexes(raw: Optional[str]) -> tuple[str, ...]:
    """Split a comma-separated index list; "*" searches every live index."""
    raw = _present(raw) or DEFAULT_INDEX
    indexes = tuple(part.strip() for part in raw.split(",") if part.strip())
    if not indexes:
        raise ConfigurationError("DD_INDEX", f"'DD_INDEX' has no index names. DD_INDEX={raw}")
    return indexes


def _check_timestamp(field: str, value: str) -> str:
    if not TIME_FORMAT.match(value):
        raise ConfigurationError(
            field, f"'{field}' must be ISO 8601 format with timezone information. {field}={value}"
        )
    try:
        parse_timestamp(value)
    except ValueError as e:
        raise ConfigurationError(field, f"'{field}' is not a valid timestamp: {e}") from e
    return value


def _parse_number(field: str, raw: Optional[str], default: float) -> float:
    if _present(raw) is None:
        return default
    try:
        number = float(raw.strip())
    except ValueError:
        number = math.nan
    if not math.isfinite(number) or number < 0:
        raise ConfigurationError(
            field, f"'{field}' must be a number greater than or equal to 0. {field}={raw}"
        )
    return number


def _parse_page_size(raw: Optional[str]) -> int:
    if _present(raw) is None:
        return DEFAULT_PAGE_SIZE
    try:
        size = int(raw.strip())
    except ValueError:
        size = 0
    if not 1 <= size <= MAX_PAGE_SIZE:
        raise ConfigurationError(
            "DD_PAGE_SIZE",
            f"'DD_PAGE_SIZE' must be an integer between 1 and {MAX_PAGE_SIZE}. DD_PAGE_SIZE={raw}",
        )
    return size


def parse_site(raw: Optional[str]) -> str:
    """Validate DD_SITE as a bare hostname such as datadoghq.eu.

    Raises:
        ConfigurationError: If the value carries a scheme, port or path
    """
    site = _present(raw) or DEFAULT_SITE
    if not SITE_FORMAT.match(site):
        raise ConfigurationError(
            "DD_SITE", f"'DD_SITE' must be a bare host name like 'datadoghq.eu'. DD_SITE={site}"
        )
    try:
        httpx.URL(base_url(site))
    except httpx.InvalidURL as e:
        raise ConfigurationError("DD_SITE", f"'DD_SITE' is not a valid host: {e}") from e
    return site


def validate_settings(settings: Settings, now: Optional[datetime] = None) -> ExportConfig:
    """Validate raw settings and build the export configuration.

    Args:
        settings: Raw environment-derived settings
        now: Reference time for the default window (defaults to current UTC time)

    Returns:
        Immutable, fully-defaulted ExportConfig

    Raises:
        ConfigurationError: If a setting is missing or malformed
        UnsupportedColumnError: If DD_COLUMNS names an unknown column
    """
    api_key = _present(settings.DD_API_KEY)
    app_key = _present(settings.DD_APP_KEY)
    if api_key is None or app_key is None:
        missing = "DD_API_KEY" if api_key is None else "DD_APP_KEY"
        raise ConfigurationError(missing, "required parameters: 'DD_API_KEY', 'DD_APP_KEY'")

    site = parse_site(settings.DD_SITE)

    output = _present(settings.DD_OUTPUT) or DEFAULT_OUTPUT
    if not output.endswith(".csv"):
        raise ConfigurationError("DD_OUTPUT", f"'DD_OUTPUT' must have extension 'csv'. DD_OUTPUT={output}")

    now = now or datetime.now(timezone.utc)
    time_from = _check_timestamp(
        "DD_FROM",
        _present(settings.DD_FROM) or (now - DEFAULT_WINDOW).isoformat(timespec="seconds"),
    )
    time_to = _check_timestamp("DD_TO", _present(settings.DD_TO) or now.isoformat(timespec="seconds"))

    sleep_ms = _parse_number("DD_SLEEP", settings.DD_SLEEP, DEFAULT_SLEEP_MS)
    columns = parse_columns(settings.DD_COLUMNS)
    page_size = _parse_page_size(settings.DD_PAGE_SIZE)

    timeout = _parse_number("DD_TIMEOUT", settings.DD_TIMEOUT, DEFAULT_TIMEOUT)
    if timeout == 0:
        raise ConfigurationError("DD_TIMEOUT", "'DD_TIMEOUT' must be greater than 0")

    try:
        spec = QuerySpec(
            indexes=parse_indexes(settings.DD_INDEX),
            query=_present(settings.DD_QUERY) or DEFAULT_QUERY,
            from_=time_from,
            to=time_to,
            page_size=page_size,
        )
    except pydantic.ValidationError as e:
        raise ConfigurationError(
            "DD_FROM", f"'DD_FROM' must not be later than 'DD_TO'. DD_FROM={time_from}, DD_TO={time_to}"
        ) from e

    config = ExportConfig(
        site=site,
        api_key=api_key,
        app_key=app_key,
        spec=spec,
        output=Path(output).resolve(),
        sleep_ms=sleep_ms,
        columns=columns,
        timeout=timeout,
    )
    logger.debug("Configuration validated", extra={"params": config.redacted()})
    return config
