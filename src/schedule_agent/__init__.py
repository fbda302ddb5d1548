"""
schedule-agent — coordinate an AI agent that builds conference schedules.

Recovers session schedules from truncated, wrapped or multi-part agent
output and chains scheduling work across bounded executions.
"""

from schedule_agent.client import ScheduleAgent, AsyncScheduleAgent
from schedule_agent.config import Settings, load_settings
from schedule_agent.coordinator import BatchCoordinator
from schedule_agent.polling import PollingClient, estimate_progress
from schedule_agent.parsing import recover_schedule, unwrap_envelope, combine_fragments, recover_partial, scan
from schedule_agent.errors import (
    ScheduleAgentError,
    AgentError,
    ResourceLimitError,
    ChainLimitError,
    SessionError,
)
from schedule_agent.models import ScheduleProposal, SessionSlot, AsyncSession, SessionStatus, StatusReport

__version__ = "0.1.0"
__all__ = [
    "ScheduleAgent",
    "AsyncScheduleAgent",
    "Settings",
    "load_settings",
    "BatchCoordinator",
    "PollingClient",
    "estimate_progress",
    "recover_schedule",
    "unwrap_envelope",
    "combine_fragments",
    "recover_partial",
    "scan",
    "ScheduleAgentError",
    "AgentError",
    "ResourceLimitError",
    "ChainLimitError",
    "SessionError",
    "ScheduleProposal",
    "SessionSlot",
    "AsyncSession",
    "SessionStatus",
    "StatusReport",
]
