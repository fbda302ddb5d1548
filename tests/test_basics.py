"""Basic unit tests for the schedule-agent package."""

import pytest

from schedule_agent import (
    AsyncScheduleAgent,
    ScheduleAgent,
    ScheduleAgentError,
    AgentError,
    ResourceLimitError,
    ChainLimitError,
    SessionError,
    SessionStatus,
    __version__,
)
from schedule_agent.collaborators import ScheduleRepository
from schedule_agent.errors import describe_resource_limit, is_resource_limit


def test_version():
    assert __version__ == "0.1.0"


def test_public_exports():
    assert ScheduleAgent is not None
    assert AsyncScheduleAgent is not None


def test_error_hierarchy():
    assert issubclass(AgentError, ScheduleAgentError)
    assert issubclass(ResourceLimitError, AgentError)
    assert issubclass(ChainLimitError, ScheduleAgentError)
    assert issubclass(SessionError, ScheduleAgentError)


def test_error_attributes():
    err = ScheduleAgentError(code="test_code", message="something broke")
    assert err.code == "test_code"
    assert str(err) == "something broke"
    assert err.details is None

    err_with_details = SessionError("bad session", details={"id": "123"})
    assert err_with_details.code == "session_error"
    assert err_with_details.details == {"id": "123"}
    assert ResourceLimitError("heap").code == "resource_limit"
    assert ChainLimitError("stop").code == "chain_limit"


def test_resource_limit_detection():
    assert is_resource_limit("System.LimitException: Apex heap size too large: 6291456")
    assert is_resource_limit(RuntimeError("Apex CPU time limit exceeded"))
    assert is_resource_limit(ResourceLimitError("anything"))
    assert not is_resource_limit("Invalid session id")
    assert not is_resource_limit(None)


def test_describe_resource_limit_suggests_smaller_batch():
    message = describe_resource_limit(10, total_processed=20)
    assert "smaller batch" in message
    assert "e.g. 5" in message
    assert "20 processed" in message
    assert "e.g. 1" in describe_resource_limit(1)


def test_status_constants():
    assert SessionStatus.PENDING == "pending"
    assert SessionStatus.COMPLETED.is_terminal
    assert SessionStatus.CANCELLED.is_terminal
    assert not SessionStatus.PROCESSING.is_terminal


def test_schedule_repository_requires_review_methods():
    class CountOnly(ScheduleRepository):
        async def count_remaining(self, event_id=None):
            return 0

        async def save_drafts(self, session_id, slots):
            return len(slots)

        async def list_drafts(self, session_id):
            return []

    with pytest.raises(TypeError):
        CountOnly()
