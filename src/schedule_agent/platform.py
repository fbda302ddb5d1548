"""
REST-backed collaborators — agent callout, draft repository and event list
served by the scheduling platform.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from schedule_agent.collaborators import AgentClient, ScheduleRepository
from schedule_agent.errors import AgentError, ResourceLimitError, ScheduleAgentError, is_resource_limit
from schedule_agent.models.batch import AgentReply
from schedule_agent.models.event import ConferenceEvent
from schedule_agent.models.schedule import SessionSlot
from schedule_agent.parsing.normalize import to_slots
from schedule_agent.transport.http import HttpClient

logger = logging.getLogger(__name__)


class PlatformAgentClient(AgentClient):
    def __init__(self, http: HttpClient):
        self._http = http

    async def invoke(self, message: str, conversation_id: Optional[str] = None,
                     context: Optional[dict] = None) -> AgentReply:
        """POST /v1/agent/invoke — one agent turn."""
        body: dict[str, Any] = {"message": message, "context": context or {}}
        if conversation_id:
            body["conversationId"] = conversation_id
        try:
            result = await self._http.post("/v1/agent/invoke", body)
        except (ScheduleAgentError, httpx.HTTPError) as e:
            if is_resource_limit(e):
                raise ResourceLimitError(str(e))
            raise AgentError(f"Agent callout failed: {e}")
        result = result or {}
        response = result.get("response")
        if isinstance(response, str):
            return AgentReply(text=response, conversation_id=result.get("conversationId"))
        return AgentReply(data=response, conversation_id=result.get("conversationId"))


class PlatformScheduleRepository(ScheduleRepository):
    def __init__(self, http: HttpClient):
        self._http = http

    async def count_remaining(self, event_id: Optional[str] = None) -> int:
        """GET /v1/schedule/remaining"""
        params = {"eventId": event_id} if event_id else None
        result = await self._http.get("/v1/schedule/remaining", params=params)
        return int((result or {}).get("count", 0))

    async def save_drafts(self, session_id: str, slots: list[SessionSlot]) -> int:
        """POST /v1/schedule/drafts"""
        result = await self._http.post("/v1/schedule/drafts", {
            "sessionId": session_id,
            "slots": [s.model_dump(mode="json", by_alias=True) for s in slots],
        })
        return int((result or {}).get("saved", len(slots)))

    async def list_drafts(self, session_id: str) -> list[SessionSlot]:
        """GET /v1/schedule/drafts/{session_id}"""
        result = await self._http.get(f"/v1/schedule/drafts/{session_id}")
        return to_slots(result or [])

    async def accept_drafts(self, session_id: str) -> int:
        """POST /v1/schedule/drafts/{session_id}/accept"""
        result = await self._http.post(f"/v1/schedule/drafts/{session_id}/accept")
        return int((result or {}).get("accepted", 0))

    async def discard_drafts(self, session_id: str) -> int:
        """DELETE /v1/schedule/drafts/{session_id}"""
        result = await self._http.delete(f"/v1/schedule/drafts/{session_id}")
        return int((result or {}).get("discarded", 0))


class EventsAPI:
    def __init__(self, http: HttpClient):
        self._http = http

    async def list(self) -> list[ConferenceEvent]:
        """GET /v1/events — conferences a schedule can be built for."""
        result = await self._http.get("/v1/events")
        return [ConferenceEvent.model_validate(e) for e in (result or [])]
