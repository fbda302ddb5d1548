"""
External collaborators of the coordinator — interfaces only.

Implementations live in ``schedule_agent.memory`` (in-process) and
``schedule_agent.platform`` (REST).
"""

from abc import ABC, abstractmethod
from typing import Optional

from schedule_agent.models.batch import AgentReply, ChainLink
from schedule_agent.models.schedule import SessionSlot
from schedule_agent.models.session import AsyncSession


class AgentClient(ABC):
    """Black-box agent callout."""

    @abstractmethod
    async def invoke(self, message: str, conversation_id: Optional[str] = None,
                     context: Optional[dict] = None) -> AgentReply:
        """Send one request; raise on callout failure."""


class ScheduleRepository(ABC):
    """Where unscheduled sessions are counted and draft slots are stored."""

    @abstractmethod
    async def count_remaining(self, event_id: Optional[str] = None) -> int:
        """Sessions still waiting for a slot."""

    @abstractmethod
    async def save_drafts(self, session_id: str, slots: list[SessionSlot]) -> int:
        """Persist slots as drafts; returns how many were stored."""

    @abstractmethod
    async def list_drafts(self, session_id: str) -> list[SessionSlot]:
        """Drafts stored for a chain, in insertion order."""

    @abstractmethod
    async def accept_drafts(self, session_id: str) -> int:
        """Promote a chain's drafts to the published schedule."""

    @abstractmethod
    async def discard_drafts(self, session_id: str) -> int:
        """Drop a chain's drafts."""


class SessionStore(ABC):
    """Persistence of AsyncSession snapshots."""

    @abstractmethod
    async def get(self, session_id: str) -> Optional[AsyncSession]:
        ...

    @abstractmethod
    async def save(self, session: AsyncSession) -> None:
        ...


class JobQueue(ABC):
    """Run a chain link later, at most once, under its own budget."""

    @abstractmethod
    def enqueue(self, link: ChainLink) -> str:
        """Schedule ``link``; returns a job id."""
