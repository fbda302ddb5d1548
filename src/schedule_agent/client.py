"""
AsyncScheduleAgent / ScheduleAgent — main clients.
"""

import asyncio
from typing import Any, Optional

from schedule_agent.collaborators import AgentClient, ScheduleRepository, SessionStore
from schedule_agent.config import Settings
from schedule_agent.coordinator import BatchCoordinator
from schedule_agent.memory import AsyncioJobQueue, MemorySessionStore
from schedule_agent.models.event import ConferenceEvent
from schedule_agent.models.schedule import ScheduleProposal
from schedule_agent.models.session import AsyncSession, StatusReport
from schedule_agent.parsing.pipeline import recover_schedule
from schedule_agent.platform import EventsAPI, PlatformAgentClient, PlatformScheduleRepository
from schedule_agent.polling import PollingClient, PollHandle, PollOutcome
from schedule_agent.transport.http import HttpClient


class AsyncScheduleAgent:
    """Async client (primary).

    Agent and draft repository default to the REST platform; sessions and
    the job queue run in-process.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        http: Optional[HttpClient] = None,
        agent: Optional[AgentClient] = None,
        repository: Optional[ScheduleRepository] = None,
        store: Optional[SessionStore] = None,
    ):
        self.settings = settings or Settings()
        self.http = http or HttpClient(
            base_url=self.settings.base_url,
            token=self.settings.access_token,
            timeout=self.settings.request_timeout_s,
        )
        self.events = EventsAPI(self.http)
        self.store = store or MemorySessionStore()
        self.queue = AsyncioJobQueue()
        self.coordinator = BatchCoordinator(
            agent=agent or PlatformAgentClient(self.http),
            repository=repository or PlatformScheduleRepository(self.http),
            store=self.store,
            queue=self.queue,
            max_chain_depth=self.settings.max_chain_depth,
            preview_length=self.settings.preview_length,
        )
        self.queue.bind(self.coordinator.run_link)
        self.poller = PollingClient(
            self.coordinator.get_status,
            interval_s=self.settings.poll_interval_s,
            timeout_s=self.settings.poll_timeout_s,
            multipart_wait_s=self.settings.multipart_wait_s,
            stable_polls=self.settings.stable_polls,
        )

    def recover(self, text: str) -> ScheduleProposal:
        """Recover a schedule from raw agent text (no network)."""
        return recover_schedule(text, self.settings.preview_length)

    async def list_events(self) -> list[ConferenceEvent]:
        return await self.events.list()

    async def start_chain(
        self,
        user_message: str,
        *,
        prior_conversation_id: Optional[str] = None,
        batch_size: Optional[int] = None,
        event_id: Optional[str] = None,
    ) -> dict[str, Any]:
        return await self.coordinator.start_chain(
            user_message,
            prior_conversation_id=prior_conversation_id,
            batch_size=batch_size or self.settings.batch_size,
            event_id=event_id,
        )

    async def get_status(self, session_id: str) -> StatusReport:
        return await self.coordinator.get_status(session_id)

    async def cancel(self, session_id: str) -> AsyncSession:
        return await self.coordinator.cancel(session_id)

    def watch(self, session_id: str, **handlers: Any) -> PollHandle:
        """Start polling in the background; cancel via the returned handle."""
        return self.poller.start(session_id, **handlers)

    async def wait(self, session_id: str, **handlers: Any) -> PollOutcome:
        """Poll until the chain reaches a terminal outcome."""
        return await self.poller.poll(session_id, **handlers)

    async def accept_proposal(self, session_id: str) -> ScheduleProposal:
        return await self.coordinator.accept_proposal(session_id)

    async def reject_proposal(self, session_id: str) -> int:
        return await self.coordinator.reject_proposal(session_id)

    async def close(self) -> None:
        await self.queue.drain()
        await self.http.close()


class ScheduleAgent:
    """Sync wrapper around AsyncScheduleAgent. Runs the event loop internally.

    Chain links run as tasks on the internal loop, so they only make
    progress while a call such as wait() is running.
    """

    def __init__(self, settings: Optional[Settings] = None, **kwargs: Any):
        self._loop = asyncio.new_event_loop()
        self._async = AsyncScheduleAgent(settings, **kwargs)

    def _run(self, coro: Any) -> Any:
        return self._loop.run_until_complete(coro)

    def recover(self, text: str) -> ScheduleProposal:
        return self._async.recover(text)

    def list_events(self) -> list[ConferenceEvent]:
        return self._run(self._async.list_events())

    def start_chain(self, user_message: str, **kwargs: Any) -> dict[str, Any]:
        return self._run(self._async.start_chain(user_message, **kwargs))

    def get_status(self, session_id: str) -> StatusReport:
        return self._run(self._async.get_status(session_id))

    def cancel(self, session_id: str) -> AsyncSession:
        return self._run(self._async.cancel(session_id))

    def wait(self, session_id: str, **handlers: Any) -> PollOutcome:
        return self._run(self._async.wait(session_id, **handlers))

    def accept_proposal(self, session_id: str) -> ScheduleProposal:
        return self._run(self._async.accept_proposal(session_id))

    def reject_proposal(self, session_id: str) -> int:
        return self._run(self._async.reject_proposal(session_id))

    def close(self) -> None:
        self._run(self._async.close())
        self._loop.close()
