from schedule_agent.models.batch import AgentReply, BatchProgress, ChainLink
from schedule_agent.models.event import ConferenceEvent
from schedule_agent.models.schedule import ScheduleProposal, SessionSlot, TimeRange
from schedule_agent.models.session import AsyncSession, SessionStatus, StatusReport

__all__ = [
    "AgentReply",
    "BatchProgress",
    "ChainLink",
    "ConferenceEvent",
    "ScheduleProposal",
    "SessionSlot",
    "TimeRange",
    "AsyncSession",
    "SessionStatus",
    "StatusReport",
]
