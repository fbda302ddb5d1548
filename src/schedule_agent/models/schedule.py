"""
Schedule models — session slots and the recovered schedule proposal.

Wire names are camelCase (sessionName, startTime, ...); Python attributes are
snake_case. Dump with ``by_alias=True`` to get the wire shape back.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional
from pydantic import BaseModel, Field

DEFAULT_SPEAKER = "Speaker TBD"
DEFAULT_FORMAT = "TBD"
DEFAULT_FOCUS = "TBD"
DEFAULT_ABSTRACT = "No abstract provided"


class SessionSlot(BaseModel):
    """One candidate session placement. Build through parsing.normalize.to_slot."""
    session_name: str = Field(alias="sessionName", min_length=1)
    location: str = Field(min_length=1)
    speakers: list[str] = Field(default_factory=lambda: [DEFAULT_SPEAKER])
    start_time: Optional[datetime] = Field(default=None, alias="startTime")
    end_time: Optional[datetime] = Field(default=None, alias="endTime")
    format: str = DEFAULT_FORMAT
    focus: str = DEFAULT_FOCUS
    abstract: str = Field(default=DEFAULT_ABSTRACT, alias="sessionAbstract")

    model_config = {"populate_by_name": True, "frozen": True}


class TimeRange(BaseModel):
    earliest_start: Optional[datetime] = Field(default=None, alias="earliestStart")
    latest_end: Optional[datetime] = Field(default=None, alias="latestEnd")

    model_config = {"populate_by_name": True}


class ScheduleProposal(BaseModel):
    schedule: list[SessionSlot] = Field(default_factory=list)
    total_sessions: int = Field(default=0, alias="totalSessions")
    locations: list[str] = Field(default_factory=list)
    time_range: Optional[TimeRange] = Field(default=None, alias="timeRange")
    success: bool = True
    message: str = ""
    error: Optional[str] = None
    partial: bool = False
    partial_reason: Optional[str] = Field(default=None, alias="partialReason")
    raw_response: Optional[str] = Field(default=None, alias="rawResponse")
    fragment_count: int = Field(default=1, alias="fragmentCount")

    model_config = {"populate_by_name": True}

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)
