"""Tests for the pagination engine."""

import asyncio
import time

import pytest

from apps.exporter.client import LogsApiClient
from apps.exporter.columns import ColumnProjector
from apps.exporter.errors import RemoteRequestError
from apps.exporter.paginator import PaginationEngine
from apps.exporter.sink import ExportSession, RecordSink
from tests.conftest import FakeLogsApi, log_event, page
from utils.schemas import QuerySpec

SPEC = QuerySpec(
    indexes=("main", "audit"),
    query="service:web",
    from_="2023-02-06T03:24:00Z",
    to="2023-02-06T03:25:00Z",
    page_size=3,
)


@pytest.fixture
def sink(tmp_path):
    with RecordSink(tmp_path / "exported.csv", ColumnProjector(), ExportSession()) as s:
        yield s


def client_for(api):
    return LogsApiClient("datadoghq.com", "k1", "k2", transport=api.transport)


class TestBuildRequest:
    def test_first_request_has_no_cursor(self):
        engine = PaginationEngine(None, SPEC)
        assert engine.build_request() == {
            "filter": {
                "indexes": ["main", "audit"],
                "from": "2023-02-06T03:24:00Z",
                "to": "2023-02-06T03:25:00Z",
                "query": "service:web",
            },
            "page": {"limit": 3},
            "sort": "timestamp",
        }

    def test_cursor_threaded_verbatim(self):
        engine = PaginationEngine(None, SPEC)
        assert engine.build_request("eyJhZnRlciI6IjEifQ==")["page"]["cursor"] == "eyJhZnRlciI6IjEifQ=="


@pytest.mark.asyncio
async def test_empty_result_issues_one_request(sink, recording_sleep):
    api = FakeLogsApi([page([])])
    async with client_for(api) as client:
        session = await PaginationEngine(client, SPEC, 0, sleep=recording_sleep).run(sink)

    assert len(api.requests) == 1
    assert session.pages == 1
    assert session.total == 0


@pytest.mark.asyncio
async def test_follows_cursor_until_absent(sink, recording_sleep):
    api = FakeLogsApi(
        [
            page([log_event("a"), log_event("b"), log_event("c")], after="c2"),
            page([log_event("d"), log_event("e"), log_event("f")], after="c3"),
            page([log_event("g")]),
        ]
    )
    async with client_for(api) as client:
        session = await PaginationEngine(client, SPEC, 500, sleep=recording_sleep).run(sink)

    assert [b["page"].get("cursor") for b in api.bodies] == [None, "c2", "c3"]
    assert session.pages == 3
    assert session.total == 7
    assert session.cursor is None


@pytest.mark.asyncio
async def test_empty_page_with_cursor_is_not_terminal(sink, recording_sleep):
    api = FakeLogsApi([page([], after="c2"), page([log_event("late")])])
    async with client_for(api) as client:
        session = await PaginationEngine(client, SPEC, 0, sleep=recording_sleep).run(sink)

    assert len(api.requests) == 2
    assert session.total == 1


@pytest.mark.asyncio
async def test_delay_applied_after_every_request(sink, recording_sleep):
    api = FakeLogsApi([page([log_event()], after="c2"), page([log_event()], after="c3"), page([])])
    async with client_for(api) as client:
        await PaginationEngine(client, SPEC, 1500, sleep=recording_sleep).run(sink)

    assert recording_sleep.calls == [1.5, 1.5, 1.5]


@pytest.mark.asyncio
async def test_observed_interval_not_below_delay(sink):
    stamps = []

    class TimedClient:
        def __init__(self, inner):
            self.inner = inner

        async def list_logs(self, body):
            stamps.append(time.monotonic())
            return await self.inner.list_logs(body)

    api = FakeLogsApi([page([log_event()], after="c2"), page([log_event()])])
    async with client_for(api) as client:
        await PaginationEngine(TimedClient(client), SPEC, 50, sleep=asyncio.sleep).run(sink)

    assert len(stamps) == 2
    # small tolerance for clock granularity
    assert stamps[1] - stamps[0] >= 0.045


@pytest.mark.asyncio
async def test_failure_stops_without_retry(sink, recording_sleep):
    api = FakeLogsApi([page([log_event("a")], after="c2")])
    async with client_for(api) as client:
        with pytest.raises(RemoteRequestError):
            # second request has no scripted page and gets a 500
            await PaginationEngine(client, SPEC, 0, sleep=recording_sleep).run(sink)

    assert len(api.requests) == 2
    assert sink.session.total == 1
    assert sink.session.pages == 2


@pytest.mark.asyncio
async def test_row_count_matches_total(tmp_path, recording_sleep):
    per_page = [3, 0, 5, 1]
    pages = [
        page([log_event(f"p{i}-{j}") for j in range(k)], after=f"c{i + 1}")
        for i, k in enumerate(per_page)
    ]
    pages.append(page([]))
    api = FakeLogsApi(pages)
    path = tmp_path / "exported.csv"

    with RecordSink(path, ColumnProjector(), ExportSession()) as sink:
        async with client_for(api) as client:
            session = await PaginationEngine(client, SPEC, 0, sleep=recording_sleep).run(sink)

    lines = path.read_text(encoding="utf-8").split("\n")
    assert session.total == sum(per_page)
    assert len(lines) - 1 == session.total
    assert lines[1] == '"2023-02-06T03:24:00.000Z","p0-0"'
