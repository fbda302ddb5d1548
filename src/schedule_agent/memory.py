"""
In-process collaborators — session store, draft repository and an asyncio
job queue. Used by the CLI and tests; a deployment swaps in its own.
"""

import asyncio
import logging
import uuid
from typing import Any, Awaitable, Callable, Optional

from schedule_agent.collaborators import JobQueue, ScheduleRepository, SessionStore
from schedule_agent.models.batch import ChainLink
from schedule_agent.models.schedule import SessionSlot
from schedule_agent.models.session import AsyncSession

logger = logging.getLogger(__name__)

LinkRunner = Callable[[ChainLink], Awaitable[Any]]


class MemorySessionStore(SessionStore):
    def __init__(self) -> None:
        self._sessions: dict[str, AsyncSession] = {}

    async def get(self, session_id: str) -> Optional[AsyncSession]:
        return self._sessions.get(session_id)

    async def save(self, session: AsyncSession) -> None:
        self._sessions[session.id] = session

    def __len__(self) -> int:
        return len(self._sessions)


class MemoryScheduleRepository(ScheduleRepository):
    """Counts down a fixed pool of unscheduled sessions as drafts arrive."""

    def __init__(self, unscheduled: int = 0) -> None:
        self._unscheduled = unscheduled
        self._drafts: dict[str, list[SessionSlot]] = {}
        self.published: list[SessionSlot] = []

    async def count_remaining(self, event_id: Optional[str] = None) -> int:
        return self._unscheduled

    async def save_drafts(self, session_id: str, slots: list[SessionSlot]) -> int:
        self._drafts.setdefault(session_id, []).extend(slots)
        self._unscheduled = max(0, self._unscheduled - len(slots))
        return len(slots)

    async def list_drafts(self, session_id: str) -> list[SessionSlot]:
        return list(self._drafts.get(session_id, []))

    async def accept_drafts(self, session_id: str) -> int:
        drafts = self._drafts.pop(session_id, [])
        self.published.extend(drafts)
        return len(drafts)

    async def discard_drafts(self, session_id: str) -> int:
        drafts = self._drafts.pop(session_id, [])
        self._unscheduled += len(drafts)
        return len(drafts)


class AsyncioJobQueue(JobQueue):
    """Runs each enqueued link once, later, as its own asyncio task."""

    def __init__(self, runner: Optional[LinkRunner] = None, delay_s: float = 0.0) -> None:
        self._runner = runner
        self._delay_s = delay_s
        self._tasks: set[asyncio.Task] = set()
        self.history: list[tuple[str, ChainLink]] = []

    def bind(self, runner: LinkRunner) -> None:
        self._runner = runner

    def enqueue(self, link: ChainLink) -> str:
        if self._runner is None:
            raise RuntimeError("AsyncioJobQueue has no runner bound")
        job_id = str(uuid.uuid4())
        self.history.append((job_id, link))
        task = asyncio.get_running_loop().create_task(self._run(job_id, link))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return job_id

    async def _run(self, job_id: str, link: ChainLink) -> None:
        if self._delay_s:
            await asyncio.sleep(self._delay_s)
        try:
            await self._runner(link)  # type: ignore[misc]
        except Exception as e:
            logger.error(f"Job {job_id} for session {link.session_id} crashed: {e}")

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait until no link is queued or running."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
