"""
Pagination Engine

Follows the Logs Search cursor from the first page to the last, one request in
flight at a time, handing each page to the sink as it arrives.

Rate limiting is proactive: after every request the engine sleeps for the
configured delay before doing anything else, regardless of response headers.
There is no retry; the first failed request ends the run.

State machine:
    Start -> Requesting -> Emitting -> (cursor?) -> Requesting | Done
    Requesting -> Failed
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, Protocol

from apps.exporter.errors import RemoteRequestError
from apps.exporter.sink import ExportSession, RecordSink
from utils.schemas import LogsListResponse, QuerySpec

logger = logging.getLogger(__name__)

SORT_TIMESTAMP_ASC = "timestamp"


class LogsSearcher(Protocol):
    async def list_logs(self, body: dict[str, Any]) -> LogsListResponse: ...


class PaginationEngine:
    """Drives repeated search requests until the cursor runs out."""

    def __init__(
        self,
        client: LogsSearcher,
        spec: QuerySpec,
        delay_ms: float = 1000,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        """
        Initialize the engine.

        Args:
            client: Object exposing `await list_logs(body)`
            spec: Validated query specification
            delay_ms: Pause after each request, in milliseconds
            sleep: Coroutine used to pause (injectable for tests)
        """
        self.client = client
        self.spec = spec
        self.delay_ms = delay_ms
        self._sleep = sleep

    def build_request(self, cursor: Optional[str] = None) -> dict[str, Any]:
        """Search body for one page; the cursor is passed through untouched."""
        page: dict[str, Any] = {"limit": self.spec.page_size}
        if cursor:
            page["cursor"] = cursor

        return {
            "filter": {
                "indexes": list(self.spec.indexes),
                "from": self.spec.from_,
                "to": self.spec.to,
                "query": self.spec.query,
            },
            "page": page,
            "sort": SORT_TIMESTAMP_ASC,
        }

    async def run(self, sink: RecordSink) -> ExportSession:
        """Fetch every page and stream it into the sink.

        Args:
            sink: Open record sink; its session accumulates the totals

        Returns:
            The sink's session, with the final page and record counts

        Raises:
            RemoteRequestError: On the first failed request
        """
        session = sink.session

        while True:
            session.pages += 1
            logger.info("Requesting page %d", session.pages)

            try:
                result = await self.client.list_logs(self.build_request(session.cursor))
            except RemoteRequestError as e:
                logger.error(
                    "Request for page %d failed: %s",
                    session.pages,
                    e,
                    extra={"page": session.pages, "status_code": e.status_code},
                )
                raise

            # avoid 429 Too Many Requests
            await self._sleep(self.delay_ms / 1000)

            written = sink.write(result.records)
            session.cursor = result.next_cursor
            logger.debug(
                "Page %d written: records=%d, total=%d",
                session.pages,
                written,
                session.total,
            )

            if session.cursor is None:
                break

        logger.info("Export finished: pages=%d, records=%d", session.pages, session.total)
        return session
