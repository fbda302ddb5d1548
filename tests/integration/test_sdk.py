"""
Integration tests for schedule-agent — run against a real scheduling platform.

Requires environment variables:
  SCHEDULE_AGENT_BASE_URL      — platform base URL
  SCHEDULE_AGENT_ACCESS_TOKEN  — valid access token
  SCHEDULE_AGENT_EVENT_ID      — (optional) event to schedule

Run: SCHEDULE_AGENT_INTEGRATION=1 pytest tests/integration/ -v
"""

import os

import pytest

from schedule_agent import AsyncScheduleAgent
from schedule_agent.config import load_settings

SKIP = not os.environ.get("SCHEDULE_AGENT_INTEGRATION")
EVENT_ID = os.environ.get("SCHEDULE_AGENT_EVENT_ID")

pytestmark = [pytest.mark.integration, pytest.mark.skipif(SKIP, reason="SCHEDULE_AGENT_INTEGRATION not set")]


def make_client() -> AsyncScheduleAgent:
    return AsyncScheduleAgent(load_settings())


class TestEvents:
    @pytest.mark.asyncio
    async def test_list_events(self):
        client = make_client()
        try:
            events = await client.list_events()
        finally:
            await client.close()
        assert isinstance(events, list)
        for event in events:
            assert event.id
            assert event.label.startswith(event.name)


class TestChain:
    @pytest.mark.asyncio
    async def test_chain_reaches_terminal_state(self):
        client = make_client()
        try:
            started = await client.start_chain(
                "Propose a schedule for the unscheduled sessions.", batch_size=5, event_id=EVENT_ID,
            )
            assert started["initialStatus"] == "pending"
            outcome = await client.wait(started["sessionId"])
            assert outcome.reason in ("completed", "failed")
            report = outcome.report
            assert report.status.is_terminal
            if outcome.succeeded:
                assert report.payload["totalSessions"] == len(report.payload["schedule"])
                await client.reject_proposal(started["sessionId"])
            else:
                assert report.error_detail
        finally:
            await client.close()
