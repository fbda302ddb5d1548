"""Tests for the status polling client."""

import asyncio

import pytest

from schedule_agent.models.session import SessionStatus, StatusReport
from schedule_agent.polling import (
    REASON_CANCELLED,
    REASON_COMPLETED,
    REASON_FAILED,
    REASON_STOPPED,
    REASON_TIMEOUT,
    PollingClient,
    estimate_progress,
    looks_unfinished,
)

FAST = {"interval_s": 0.001, "timeout_s": 5.0}


def _report(status, total=0, payload=None, error=None):
    return StatusReport(
        session_id="s1", status=status, total_processed=total, payload=payload, error_detail=error,
    )


class ScriptedStatus:
    """Returns the scripted reports in order, repeating the last one."""

    def __init__(self, *reports):
        self.reports = list(reports)
        self.calls = 0

    async def __call__(self, session_id):
        self.calls += 1
        item = self.reports[min(self.calls, len(self.reports)) - 1]
        if isinstance(item, Exception):
            raise item
        return item


class Recorder:
    def __init__(self):
        self.progress = []
        self.completed = []
        self.errors = []

    def on_progress(self, value, report):
        self.progress.append(value)

    def on_complete(self, outcome):
        self.completed.append(outcome)

    def on_error(self, outcome):
        self.errors.append(outcome)

    def handlers(self):
        return {"on_progress": self.on_progress, "on_complete": self.on_complete, "on_error": self.on_error}


class TestEstimateProgress:
    def test_fixed_points(self):
        assert estimate_progress(SessionStatus.PENDING) == 5
        for status in (SessionStatus.COMPLETED, SessionStatus.FAILED, SessionStatus.CANCELLED):
            assert estimate_progress(status) == 100

    def test_by_work_done(self):
        assert estimate_progress(SessionStatus.PROCESSING, total_processed=0, estimated_total=10) == 10
        assert estimate_progress(SessionStatus.PROCESSING, total_processed=5, estimated_total=10) == 52
        assert estimate_progress(SessionStatus.PROCESSING, total_processed=50, estimated_total=10) == 95

    def test_by_elapsed_time_is_capped(self):
        values = [estimate_progress("processing", elapsed_s=t) for t in (0, 10, 60, 600, 10_000)]
        assert values == sorted(values)
        assert values[0] == 10
        assert all(v <= 95 for v in values)


class TestLooksUnfinished:
    def test_declared_parts_missing(self):
        assert looks_unfinished("Part 1 of 3\n[]")
        assert not looks_unfinished("Part 1 of 2\n[]\nPart 2 of 2\n[]")

    def test_unclosed_structure(self):
        assert looks_unfinished('[{"sessionName": "A"')
        assert not looks_unfinished('[{"sessionName": "A"}]')

    def test_completion_keyword_wins(self):
        assert not looks_unfinished('Final part:\n[{"sessionName": "A"')

    def test_structured_payload_is_final(self):
        assert not looks_unfinished({"schedule": []})
        assert not looks_unfinished(None)


@pytest.mark.asyncio
async def test_completes_once_with_monotonic_progress():
    fetch = ScriptedStatus(
        _report(SessionStatus.PENDING),
        _report(SessionStatus.PROCESSING, total=2),
        _report(SessionStatus.PROCESSING, total=1),
        _report(SessionStatus.COMPLETED, total=4, payload={"totalSessions": 4}),
    )
    recorder = Recorder()
    outcome = await PollingClient(fetch, **FAST).poll("s1", estimated_total=4, **recorder.handlers())
    assert outcome.reason == REASON_COMPLETED
    assert outcome.succeeded
    assert len(recorder.completed) == 1
    assert recorder.errors == []
    assert recorder.progress == sorted(recorder.progress)
    assert recorder.progress[-1] == 100
    assert outcome.report.payload == {"totalSessions": 4}


@pytest.mark.asyncio
async def test_failed_chain_reports_error_once():
    fetch = ScriptedStatus(_report(SessionStatus.PROCESSING), _report(SessionStatus.FAILED, error="chain limit"))
    recorder = Recorder()
    outcome = await PollingClient(fetch, **FAST).poll("s1", **recorder.handlers())
    assert outcome.reason == REASON_FAILED
    assert recorder.completed == []
    assert len(recorder.errors) == 1
    assert recorder.errors[0].report.error_detail == "chain limit"
    assert fetch.calls == 2


@pytest.mark.asyncio
async def test_cancelled_chain():
    fetch = ScriptedStatus(_report(SessionStatus.CANCELLED))
    outcome = await PollingClient(fetch, **FAST).poll("s1")
    assert outcome.reason == REASON_CANCELLED
    assert not outcome.succeeded


@pytest.mark.asyncio
async def test_timeout():
    fetch = ScriptedStatus(_report(SessionStatus.PROCESSING))
    recorder = Recorder()
    client = PollingClient(fetch, interval_s=0.01, timeout_s=0.05)
    outcome = await client.poll("s1", **recorder.handlers())
    assert outcome.reason == REASON_TIMEOUT
    assert len(recorder.errors) == 1
    assert recorder.completed == []


@pytest.mark.asyncio
async def test_failed_reads_are_retried():
    fetch = ScriptedStatus(RuntimeError("network down"), _report(SessionStatus.COMPLETED, payload="[]"))
    outcome = await PollingClient(fetch, **FAST).poll("s1")
    assert outcome.reason == REASON_COMPLETED
    assert fetch.calls == 2


@pytest.mark.asyncio
async def test_waits_for_remaining_parts():
    part_one = 'Part 1 of 2\n[{"sessionName": "A", "location": "X"}]'
    both = part_one + '\nPart 2 of 2\n[{"sessionName": "B", "location": "Y"}]'
    fetch = ScriptedStatus(
        _report(SessionStatus.COMPLETED, payload=part_one),
        _report(SessionStatus.COMPLETED, payload=both),
    )
    outcome = await PollingClient(fetch, **FAST).poll("s1")
    assert outcome.reason == REASON_COMPLETED
    assert outcome.report.payload == both
    assert fetch.calls == 2


@pytest.mark.asyncio
async def test_stable_payload_ends_the_wait():
    fetch = ScriptedStatus(_report(SessionStatus.COMPLETED, payload="Part 1 of 2\n[1]"))
    outcome = await PollingClient(fetch, stable_polls=2, **FAST).poll("s1")
    assert outcome.reason == REASON_COMPLETED
    assert fetch.calls == 3


@pytest.mark.asyncio
async def test_multipart_budget_ends_the_wait():
    fetch = ScriptedStatus(_report(SessionStatus.COMPLETED, payload="Part 1 of 2\n[1]"))
    outcome = await PollingClient(fetch, multipart_wait_s=0, stable_polls=10, **FAST).poll("s1")
    assert outcome.reason == REASON_COMPLETED
    assert fetch.calls == 2


@pytest.mark.asyncio
async def test_cancelled_handle_stops_quietly():
    fetch = ScriptedStatus(_report(SessionStatus.PROCESSING))
    recorder = Recorder()
    handle = PollingClient(fetch, interval_s=0.01, timeout_s=5.0).start("s1", **recorder.handlers())
    await asyncio.sleep(0.03)
    handle.cancel()
    outcome = await handle.result()
    assert outcome.reason == REASON_STOPPED
    assert handle.done
    assert recorder.completed == [] and recorder.errors == []


@pytest.mark.asyncio
async def test_handler_errors_do_not_stop_polling():
    fetch = ScriptedStatus(_report(SessionStatus.PROCESSING), _report(SessionStatus.COMPLETED, payload="[]"))
    completed = []

    def broken_progress(value, report):
        raise ValueError("render failed")

    async def on_complete(outcome):
        completed.append(outcome)

    outcome = await PollingClient(fetch, **FAST).poll("s1", on_progress=broken_progress, on_complete=on_complete)
    assert outcome.reason == REASON_COMPLETED
    assert len(completed) == 1
