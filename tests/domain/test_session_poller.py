"""Tests for SessionPoller."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field

import pytest

from fare_check.domain.models import SessionSnapshot
from fare_check.domain.services.session_poller import Resolution, SessionPoller
from fare_check.errors import UpstreamError


@pytest.mark.asyncio
async def test_completed_on_third_attempt_stops_polling(scripted_api, snapshot_factory) -> None:
    script = [
        snapshot_factory(attempt=1),
        snapshot_factory(attempt=2),
        snapshot_factory("COMPLETED", results=2, attempt=3),
        snapshot_factory("COMPLETED", results=5, attempt=4),
    ]
    api = scripted_api(script=script)
    poller = SessionPoller(api, poll_interval=0)

    outcome = await poller.submit_and_poll({"trip": {}})

    assert outcome.resolution is Resolution.COMPLETE
    assert outcome.snapshot is script[2]
    assert outcome.fetches == 3
    assert api.fetches == 3


@pytest.mark.asyncio
async def test_partial_results_use_whole_budget(scripted_api, snapshot_factory) -> None:
    script = [snapshot_factory(attempt=1)] + [
        snapshot_factory(results=1, attempt=attempt) for attempt in range(2, 12)
    ]
    api = scripted_api(script=script)
    poller = SessionPoller(api, poll_interval=0)

    outcome = await poller.submit_and_poll({"trip": {}})

    assert outcome.resolution is Resolution.PARTIAL
    assert outcome.snapshot is script[9]
    assert outcome.snapshot.rawData["attempt"] == 10
    assert outcome.fetches == 10
    assert api.fetches == 10


@pytest.mark.asyncio
async def test_no_results_triggers_one_terminal_fetch(scripted_api, snapshot_factory) -> None:
    script = [snapshot_factory(attempt=attempt) for attempt in range(1, 13)]
    api = scripted_api(script=script)
    poller = SessionPoller(api, poll_interval=0)

    outcome = await poller.submit_and_poll({"trip": {}})

    assert outcome.resolution is Resolution.EMPTY
    assert outcome.snapshot is script[10]
    assert outcome.fetches == 11
    assert api.fetches == 11


@pytest.mark.asyncio
async def test_terminal_fetch_result_is_classified(scripted_api, snapshot_factory) -> None:
    script = [snapshot_factory() for _ in range(10)] + [snapshot_factory("COMPLETED", results=3)]
    poller = SessionPoller(scripted_api(script=script), poll_interval=0)

    outcome = await poller.submit_and_poll({"trip": {}})

    assert outcome.resolution is Resolution.COMPLETE
    assert outcome.snapshot.total_results == 3


@pytest.mark.asyncio
async def test_failed_attempts_are_skipped(scripted_api, snapshot_factory) -> None:
    script = [
        UpstreamError("boom", status_code=502),
        UpstreamError("boom", status_code=502),
        snapshot_factory("COMPLETED", results=1),
    ]
    api = scripted_api(script=script)
    poller = SessionPoller(api, poll_interval=0)

    outcome = await poller.submit_and_poll({"trip": {}})

    assert outcome.resolution is Resolution.COMPLETE
    assert outcome.fetches == 3


@pytest.mark.asyncio
async def test_terminal_fetch_failure_propagates(scripted_api, snapshot_factory) -> None:
    api = scripted_api(script=[UpstreamError("down", status_code=503)])
    poller = SessionPoller(api, poll_interval=0)

    with pytest.raises(UpstreamError) as exc_info:
        await poller.submit_and_poll({"trip": {}})

    assert exc_info.value.status_code == 503
    assert api.fetches == 11


@pytest.mark.asyncio
async def test_polls_the_submitted_session(scripted_api, snapshot_factory) -> None:
    api = scripted_api(script=[snapshot_factory("COMPLETED")], request_id="abc-123")
    poller = SessionPoller(api, poll_interval=0)

    await poller.submit_and_poll({"trip": {"legs": []}})

    assert api.submitted == [{"trip": {"legs": []}}]
    assert api.fetched_ids == ["abc-123"]


@pytest.mark.asyncio
async def test_submission_without_request_id_fails(scripted_api, snapshot_factory) -> None:
    api = scripted_api(script=[snapshot_factory()], request_id="")
    poller = SessionPoller(api, poll_interval=0)

    with pytest.raises(UpstreamError, match="No request_id"):
        await poller.submit_and_poll({"trip": {}})

    assert api.fetches == 0


@pytest.mark.asyncio
async def test_cancel_before_first_attempt_returns_placeholder(
    scripted_api, snapshot_factory
) -> None:
    api = scripted_api(script=[snapshot_factory("COMPLETED", results=1)])
    poller = SessionPoller(api, poll_interval=0)
    cancel = asyncio.Event()
    cancel.set()

    outcome = await poller.submit_and_poll({"trip": {}}, cancel=cancel)

    assert outcome.resolution is Resolution.CANCELLED
    assert outcome.fetches == 0
    assert outcome.snapshot.request_id == "req-1"
    assert outcome.snapshot.results == []
    assert api.fetches == 0


@dataclass
class CancellingApi:
    """Sets the cancel event while answering the given attempt."""

    cancel: asyncio.Event
    cancel_on: int
    make_snapshot: Callable[..., SessionSnapshot]
    fetches: int = 0
    seen: list[SessionSnapshot] = field(default_factory=list)

    async def submit_session(self, trip):
        return {"request_id": "req-1", "status": "IN_PROGRESS", "message": ""}

    async def get_session(self, request_id: str) -> SessionSnapshot:
        self.fetches += 1
        if self.fetches == self.cancel_on:
            self.cancel.set()
        snapshot = self.make_snapshot(results=1, attempt=self.fetches)
        self.seen.append(snapshot)
        return snapshot


@pytest.mark.asyncio
async def test_cancel_mid_poll_returns_last_known_snapshot(snapshot_factory) -> None:
    cancel = asyncio.Event()
    api = CancellingApi(cancel=cancel, cancel_on=2, make_snapshot=snapshot_factory)
    poller = SessionPoller(api, poll_interval=0)

    outcome = await poller.submit_and_poll({"trip": {}}, cancel=cancel)

    assert outcome.resolution is Resolution.CANCELLED
    assert outcome.snapshot is api.seen[-1]
    assert outcome.fetches == 2
    assert api.fetches == 2


@pytest.mark.asyncio
async def test_cancel_interrupts_poll_interval(scripted_api, snapshot_factory) -> None:
    api = scripted_api(script=[snapshot_factory()])
    poller = SessionPoller(api, poll_interval=30)
    cancel = asyncio.Event()

    task = asyncio.create_task(poller.submit_and_poll({"trip": {}}, cancel=cancel))
    await asyncio.sleep(0)
    cancel.set()
    outcome = await asyncio.wait_for(task, timeout=1)

    assert outcome.resolution is Resolution.CANCELLED
    assert api.fetches == 0


def test_effectively_successful_trusts_results_over_reported_status(snapshot_factory) -> None:
    # Intentional: a non-empty result list counts as success even when the
    # upstream status says otherwise.
    assert snapshot_factory("IN_PROGRESS", results=1).effectively_successful is True
    assert snapshot_factory("FAILED", results=2).effectively_successful is True
    assert snapshot_factory("COMPLETED").effectively_successful is True
    assert snapshot_factory("IN_PROGRESS").effectively_successful is False
