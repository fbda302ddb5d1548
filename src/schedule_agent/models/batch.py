"""
Batch models — chain state carried from one link to the next.
"""

from typing import Any, Optional
from pydantic import BaseModel, Field

DEFAULT_BATCH_SIZE = 10
MAX_CHAIN_DEPTH = 5


class BatchProgress(BaseModel):
    batch_size: int = Field(default=DEFAULT_BATCH_SIZE, ge=1)
    total_processed: int = Field(default=0, ge=0)
    remaining_count: Optional[int] = None
    chain_depth: int = Field(default=0, ge=0)


class ChainLink(BaseModel):
    """One execution unit. Everything that must survive across links lives here."""
    session_id: str
    user_message: str
    event_id: Optional[str] = None
    conversation_id: Optional[str] = None
    progress: BatchProgress = Field(default_factory=BatchProgress)

    model_config = {"frozen": True}


class AgentReply(BaseModel):
    """What one agent callout returned."""
    text: str = ""
    data: Optional[Any] = None
    conversation_id: Optional[str] = None
