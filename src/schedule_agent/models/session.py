"""
Async session models — one scheduling request's lifecycle.

Snapshots are immutable: every change goes through ``transition`` which
returns a new snapshot and enforces forward-only status moves.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from pydantic import BaseModel, Field

from schedule_agent.errors import SessionError


class SessionStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({SessionStatus.COMPLETED, SessionStatus.FAILED, SessionStatus.CANCELLED})

# Forward-only ordering; every terminal status ranks the same
_RANK = {
    SessionStatus.PENDING: 0,
    SessionStatus.PROCESSING: 1,
    SessionStatus.COMPLETED: 2,
    SessionStatus.FAILED: 2,
    SessionStatus.CANCELLED: 2,
}


def _now() -> datetime:
    return datetime.now(timezone.utc)


class AsyncSession(BaseModel):
    id: str
    status: SessionStatus = SessionStatus.PENDING
    user_message: str = ""
    event_id: Optional[str] = None
    conversation_id: Optional[str] = None
    batch_size: int = 10
    total_processed: int = 0
    chain_depth: int = 0
    remaining_count: Optional[int] = None
    started_at: datetime = Field(default_factory=_now)
    completed_at: Optional[datetime] = None
    last_error: Optional[str] = None
    payload: Optional[Any] = None

    model_config = {"frozen": True}

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def transition(self, status: Optional[SessionStatus] = None, **changes: Any) -> AsyncSession:
        """Return a new snapshot with ``status`` and ``changes`` applied.

        Raises SessionError when this snapshot is terminal, when the status
        would move backwards, or when an already-captured conversation id
        would be replaced.
        """
        if self.is_terminal:
            raise SessionError(
                f"Session {self.id} is {self.status.value}; no further changes allowed",
                details={"session_id": self.id, "status": self.status.value},
            )
        target = SessionStatus(status) if status is not None else self.status
        if _RANK[target] < _RANK[self.status]:
            raise SessionError(
                f"Illegal transition {self.status.value} -> {target.value} for session {self.id}",
                details={"session_id": self.id},
            )
        new_conversation = changes.get("conversation_id")
        if self.conversation_id and new_conversation and new_conversation != self.conversation_id:
            raise SessionError(
                f"Conversation id of session {self.id} is already set",
                details={"session_id": self.id, "conversation_id": self.conversation_id},
            )
        if "total_processed" in changes and changes["total_processed"] < self.total_processed:
            raise SessionError(f"total_processed cannot decrease for session {self.id}")
        changes["status"] = target
        if target.is_terminal and "completed_at" not in changes:
            changes["completed_at"] = _now()
        return self.model_copy(update=changes)


class StatusReport(BaseModel):
    """Poll snapshot — replaced wholesale on each poll, never mutated."""
    session_id: str
    status: SessionStatus
    total_processed: int = 0
    chain_depth: int = 0
    remaining_count: Optional[int] = None
    payload: Optional[Any] = None
    error_detail: Optional[str] = None

    model_config = {"frozen": True}

    @classmethod
    def from_session(cls, session: AsyncSession) -> StatusReport:
        return cls(
            session_id=session.id,
            status=session.status,
            total_processed=session.total_processed,
            chain_depth=session.chain_depth,
            remaining_count=session.remaining_count,
            payload=session.payload if session.status == SessionStatus.COMPLETED else None,
            error_detail=session.last_error if session.status in (SessionStatus.FAILED, SessionStatus.CANCELLED) else None,
        )

    def to_wire(self) -> dict[str, Any]:
        """Coordinator-facing poll response."""
        out: dict[str, Any] = {
            "status": self.status.value,
            "totalProcessed": self.total_processed,
        }
        if self.remaining_count is not None:
            out["remainingCount"] = self.remaining_count
        if self.status == SessionStatus.COMPLETED:
            out["rawOrParsedPayload"] = self.payload
        if self.status == SessionStatus.FAILED:
            out["errorDetail"] = self.error_detail
        return out
