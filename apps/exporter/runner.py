"""
Export Runner - Process Entry Point

Validates the environment, streams every matching log into the output file
and reports the total.

Exit codes:
- 0: export complete, "downloaded N logs" printed to stdout
- 1: invalid configuration (usage printed to stderr) or failed request

Usage:
    DD_API_KEY=... DD_APP_KEY=... DD_QUERY='service:web' python -m apps.exporter
"""

import asyncio
import logging
import sys
from typing import Any, Awaitable, Callable, Optional

import httpx
import orjson

from apps.exporter.client import LogsApiClient
from apps.exporter.columns import ColumnProjector
from apps.exporter.errors import RemoteRequestError, ValidationError
from apps.exporter.paginator import PaginationEngine
from apps.exporter.sink import ExportSession, RecordSink
from apps.exporter.validator import usage_text, validate_settings
from utils.config import Settings, get_settings
from utils.logging import setup_logging
from utils.schemas import ExportConfig

logger = logging.getLogger(__name__)


class ExportRunner:
    """
    One export run.

    Handles:
    - Sink and client lifetimes (both released on every exit path)
    - Driving the pagination engine
    """

    def __init__(
        self,
        config: ExportConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.config = config
        self.session = ExportSession()
        self._transport = transport
        self._sleep = sleep

    async def start(self) -> ExportSession:
        """
        Run the export to completion.

        Raises:
            RemoteRequestError: If any page request fails
            OSError: If the output file cannot be written
        """
        config = self.config
        projector = ColumnProjector(config.columns)

        # client first: a failure building it must not truncate the output
        async with LogsApiClient(
            config.site,
            config.api_key,
            config.app_key,
            timeout=config.timeout,
            transport=self._transport,
        ) as client:
            with RecordSink(config.output, projector, self.session) as sink:
                engine = PaginationEngine(client, config.spec, config.sleep_ms, sleep=self._sleep)
                await engine.run(sink)

        return self.session


async def main(
    settings: Optional[Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> int:
    """Main entry point; returns the process exit status."""
    if settings is None:
        settings = get_settings()
    setup_logging(settings.LOG_LEVEL, settings.LOG_FORMAT)

    try:
        config = validate_settings(settings)
    except ValidationError as e:
        print(str(e), file=sys.stderr)
        print(usage_text(sys.platform), file=sys.stderr)
        return 1

    logger.info("Export parameters: %s", orjson.dumps(config.redacted()).decode("utf-8"))

    runner = ExportRunner(config, transport=transport, sleep=sleep)
    try:
        session = await runner.start()
    except RemoteRequestError as e:
        logger.error(
            "Export aborted after %d records: %s",
            runner.session.total,
            e,
            extra={"output": str(config.output), "status_code": e.status_code},
        )
        return 1
    except OSError as e:
        logger.error("Cannot write output %s: %s", config.output, e)
        return 1

    print(f"downloaded {session.total} logs")
    return 0


def run() -> None:
    """Console script entry point."""
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
