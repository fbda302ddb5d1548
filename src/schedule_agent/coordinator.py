"""
Batch coordinator — schedule sessions through a bounded chain of links.

Each link re-reads the remaining count, asks the agent for one batch,
stores the recovered slots as drafts and either enqueues the next link,
completes, or fails. Everything a later link needs travels in its
ChainLink; nothing is kept in memory between links.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from schedule_agent.collaborators import AgentClient, JobQueue, ScheduleRepository, SessionStore
from schedule_agent.errors import ChainLimitError, SessionError, describe_resource_limit, is_resource_limit
from schedule_agent.models.batch import DEFAULT_BATCH_SIZE, MAX_CHAIN_DEPTH, AgentReply, BatchProgress, ChainLink
from schedule_agent.models.schedule import ScheduleProposal
from schedule_agent.models.session import AsyncSession, SessionStatus, StatusReport
from schedule_agent.parsing.normalize import DEFAULT_PREVIEW_LENGTH, build_proposal
from schedule_agent.parsing.pipeline import parse_schedule_payload, recover_schedule

logger = logging.getLogger(__name__)

SLOT_FIELDS = "sessionName, speakers, location, startTime, endTime, format, focus, sessionAbstract"


class BatchCoordinator:
    def __init__(
        self,
        agent: AgentClient,
        repository: ScheduleRepository,
        store: SessionStore,
        queue: JobQueue,
        max_chain_depth: int = MAX_CHAIN_DEPTH,
        preview_length: int = DEFAULT_PREVIEW_LENGTH,
    ):
        self._agent = agent
        self._repository = repository
        self._store = store
        self._queue = queue
        self._max_chain_depth = max_chain_depth
        self._preview_length = preview_length

    @property
    def max_chain_depth(self) -> int:
        return self._max_chain_depth

    async def start_chain(
        self,
        user_message: str,
        prior_conversation_id: Optional[str] = None,
        batch_size: int = DEFAULT_BATCH_SIZE,
        event_id: Optional[str] = None,
    ) -> dict[str, Any]:
        """Create a pending session and enqueue its first link."""
        progress = BatchProgress(batch_size=batch_size)
        session = AsyncSession(
            id=str(uuid.uuid4()),
            user_message=user_message,
            event_id=event_id,
            conversation_id=prior_conversation_id,
            batch_size=batch_size,
        )
        await self._store.save(session)
        self._queue.enqueue(ChainLink(
            session_id=session.id,
            user_message=user_message,
            event_id=event_id,
            conversation_id=prior_conversation_id,
            progress=progress,
        ))
        logger.info(f"Chain {session.id} started (batch size {batch_size})")
        return {"sessionId": session.id, "initialStatus": session.status.value}

    async def get_status(self, session_id: str) -> StatusReport:
        return StatusReport.from_session(await self._load(session_id))

    async def cancel(self, session_id: str, reason: str = "Cancelled by user") -> AsyncSession:
        """Mark a chain cancelled. An in-flight link finishes; no further link is enqueued."""
        session = await self._load(session_id)
        if session.is_terminal:
            return session
        session = session.transition(SessionStatus.CANCELLED, last_error=reason)
        await self._store.save(session)
        logger.info(f"Chain {session_id} cancelled")
        return session

    async def run_link(self, link: ChainLink) -> AsyncSession:
        """Execute one link of a chain and return the resulting snapshot.

        A store failure anywhere in the link fails the chain rather than
        leaving it processing.
        """
        try:
            return await self._run_link(link)
        except Exception as e:
            logger.error(f"Chain {link.session_id} link {link.progress.chain_depth + 1} crashed: {e}")
            return await self._fail(link.session_id, e, link.progress)

    async def _run_link(self, link: ChainLink) -> AsyncSession:
        session = await self._load(link.session_id)
        if session.is_terminal:
            logger.info(f"Chain {session.id} is {session.status.value}; skipping link")
            return session

        progress = link.progress
        if progress.chain_depth >= self._max_chain_depth:
            return await self._stop_at_limit(session.id, link, progress)

        session = await self._commit(session.id, SessionStatus.PROCESSING)
        if session.is_terminal:
            return session

        try:
            remaining = await self._repository.count_remaining(link.event_id)
        except Exception as e:
            return await self._fail(session.id, e, progress)

        if remaining <= 0:
            return await self._complete(session.id, progress)

        try:
            reply = await self._agent.invoke(
                self._batch_message(link, remaining),
                conversation_id=link.conversation_id,
                context=self._batch_context(link),
            )
            conversation_id = link.conversation_id or reply.conversation_id
            proposal = self._proposal(reply)
            saved = 0
            if proposal.success and proposal.schedule:
                saved = await self._repository.save_drafts(session.id, proposal.schedule)
        except Exception as e:
            logger.error(f"Chain {session.id} link {progress.chain_depth + 1} failed: {e}")
            return await self._fail(session.id, e, progress)

        progress = progress.model_copy(update={
            "total_processed": progress.total_processed + saved,
            "chain_depth": progress.chain_depth + 1,
            "remaining_count": max(0, remaining - saved),
        })
        if not saved:
            logger.warning(f"Chain {session.id} link {progress.chain_depth} produced no sessions: {proposal.error}")
        try:
            session = await self._commit(
                session.id,
                SessionStatus.PROCESSING,
                conversation_id=conversation_id,
                total_processed=progress.total_processed,
                chain_depth=progress.chain_depth,
                remaining_count=progress.remaining_count,
                last_error=None if saved else proposal.error,
                payload=proposal.to_wire(),
            )
            if session.is_terminal:
                return session

            if progress.chain_depth >= self._max_chain_depth:
                return await self._stop_at_limit(session.id, link, progress)

            # Cancellation may have landed while the agent was working
            current = await self._load(session.id)
            if current.is_terminal:
                return current
            self._queue.enqueue(ChainLink(
                session_id=session.id,
                user_message=link.user_message,
                event_id=link.event_id,
                conversation_id=conversation_id,
                progress=progress,
            ))
        except Exception as e:
            logger.error(f"Chain {session.id} could not record link {progress.chain_depth}: {e}")
            return await self._fail(session.id, e, progress)
        logger.info(
            f"Chain {session.id} link {progress.chain_depth} stored {saved} session(s); "
            f"{progress.total_processed} total, next link enqueued"
        )
        return session

    async def accept_proposal(self, session_id: str) -> ScheduleProposal:
        """Promote a completed chain's drafts and return its proposal."""
        session = await self._load(session_id)
        if session.status != SessionStatus.COMPLETED:
            raise SessionError(f"Session {session_id} is {session.status.value}, not completed")
        accepted = await self._repository.accept_drafts(session_id)
        logger.info(f"Accepted {accepted} draft session(s) for chain {session_id}")
        return ScheduleProposal.model_validate(session.payload or {})

    async def reject_proposal(self, session_id: str) -> int:
        """Discard a chain's drafts; returns how many were dropped."""
        session = await self._load(session_id)
        if not session.is_terminal:
            raise SessionError(f"Session {session_id} is still {session.status.value}")
        return await self._repository.discard_drafts(session_id)

    async def _load(self, session_id: str) -> AsyncSession:
        session = await self._store.get(session_id)
        if session is None:
            raise SessionError(f"Session {session_id} not found", code="not_found")
        return session

    async def _commit(self, session_id: str, status: SessionStatus, **changes: Any) -> AsyncSession:
        """Apply a transition to the freshest stored snapshot.

        A snapshot that turned terminal in the meantime (cancellation) is
        returned untouched.
        """
        current = await self._load(session_id)
        if current.is_terminal:
            logger.info(f"Chain {session_id} became {current.status.value}; dropping update")
            return current
        updated = current.transition(status, **changes)
        await self._store.save(updated)
        return updated

    async def _complete(self, session_id: str, progress: BatchProgress) -> AsyncSession:
        try:
            drafts = await self._repository.list_drafts(session_id)
        except Exception as e:
            return await self._fail(session_id, e, progress)
        message = (
            f"Scheduling complete: {progress.total_processed} session(s) processed "
            f"in {progress.chain_depth} link(s)"
        )
        proposal = build_proposal(drafts, message=message)
        logger.info(f"Chain {session_id}: {message}")
        return await self._commit(
            session_id,
            SessionStatus.COMPLETED,
            total_processed=progress.total_processed,
            chain_depth=progress.chain_depth,
            remaining_count=0,
            payload=proposal.to_wire(),
        )

    async def _fail(self, session_id: str, error: Any, progress: BatchProgress) -> AsyncSession:
        reason = self._describe(error, progress)
        logger.error(f"Chain {session_id} failed after {progress.total_processed} session(s): {reason}")
        return await self._commit(
            session_id,
            SessionStatus.FAILED,
            total_processed=progress.total_processed,
            chain_depth=progress.chain_depth,
            last_error=reason,
        )

    async def _stop_at_limit(self, session_id: str, link: ChainLink, progress: BatchProgress) -> AsyncSession:
        """At the chain ceiling: complete when the repository has nothing left, else fail."""
        remaining = await self._repository.count_remaining(link.event_id)
        if remaining <= 0:
            return await self._complete(session_id, progress)
        progress = progress.model_copy(update={"remaining_count": remaining})
        return await self._fail(session_id, self._chain_limit(progress), progress)

    def _chain_limit(self, progress: BatchProgress) -> ChainLimitError:
        remaining = progress.remaining_count if progress.remaining_count is not None else "unknown"
        return ChainLimitError(
            f"Stopped: chain limit reached after {progress.chain_depth} link(s); "
            f"{progress.total_processed} session(s) processed, {remaining} remaining",
            details={"total_processed": progress.total_processed, "chain_depth": progress.chain_depth},
        )

    @staticmethod
    def _describe(error: Any, progress: BatchProgress) -> str:
        if isinstance(error, ChainLimitError):
            return str(error)
        if is_resource_limit(error):
            return f"{describe_resource_limit(progress.batch_size, progress.total_processed)} ({error})"
        return str(error) or type(error).__name__

    def _proposal(self, reply: AgentReply) -> ScheduleProposal:
        if reply.data is not None:
            return parse_schedule_payload(reply.data, self._preview_length)
        return recover_schedule(reply.text, self._preview_length)

    @staticmethod
    def _batch_message(link: ChainLink, remaining: int) -> str:
        size = link.progress.batch_size
        return (
            f"{link.user_message}\n\n"
            f"Schedule the next {min(size, remaining)} unscheduled session(s); "
            f"{remaining} still need a slot. Reply with a JSON array of sessions "
            f"using the fields: {SLOT_FIELDS}."
        )

    @staticmethod
    def _batch_context(link: ChainLink) -> dict[str, Any]:
        return {
            "eventId": link.event_id,
            "batchSize": link.progress.batch_size,
            "chainDepth": link.progress.chain_depth,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
