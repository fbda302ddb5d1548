"""
Normalization — raw agent dicts to SessionSlots, slot lists to proposals.

Every recovery path ends here so that the same input produces the same
schedule, locations and time range no matter how it was recovered.
"""

from __future__ import annotations

import json
import re
from datetime import datetime, timezone
from typing import Any, Iterable, Iterator, Optional

from schedule_agent.models.schedule import (
    DEFAULT_ABSTRACT,
    DEFAULT_FOCUS,
    DEFAULT_FORMAT,
    DEFAULT_SPEAKER,
    ScheduleProposal,
    SessionSlot,
    TimeRange,
)

SCHEDULE_FIELDS = ("schedule", "sessions", "proposedSchedule", "scheduleProposal", "proposal")
DEFAULT_PREVIEW_LENGTH = 500

_TRAILING_COMMA_RE = re.compile(r",\s*([}\]])")
_TZ_NO_COLON_RE = re.compile(r"([+-]\d{2})(\d{2})$")


def try_parse(text: str, repair: bool = True) -> Optional[Any]:
    """json.loads that returns None instead of raising.

    With ``repair`` a second attempt drops dangling commas before a closing
    brace or bracket.
    """
    if not text:
        return None
    try:
        return json.loads(text)
    except ValueError:
        if not repair:
            return None
    repaired = _TRAILING_COMMA_RE.sub(r"\1", text)
    if repaired == text:
        return None
    try:
        return json.loads(repaired)
    except ValueError:
        return None


def schedule_field(value: Any) -> Optional[str]:
    """Name of the schedule-bearing field of ``value``, if it has one."""
    if isinstance(value, dict):
        for field in SCHEDULE_FIELDS:
            if field in value:
                return field
    return None


def extract_items(value: Any) -> Optional[list[Any]]:
    """Find the slot list inside a parsed payload.

    Accepts a bare list, an object carrying a schedule field (possibly nested
    or holding a JSON string), or a single slot object.
    """
    if isinstance(value, list):
        return value
    if not isinstance(value, dict):
        return None
    field = schedule_field(value)
    if field is not None:
        inner = value[field]
        if isinstance(inner, str):
            inner = try_parse(inner)
        items = extract_items(inner)
        if items is not None:
            return items
    if "sessionName" in value:
        return [value]
    return None


def iter_slot_dicts(value: Any) -> Iterator[dict[str, Any]]:
    """Depth-first walk yielding every dict that carries a sessionName key."""
    if isinstance(value, dict):
        if "sessionName" in value:
            yield value
            return
        for child in value.values():
            yield from iter_slot_dicts(child)
    elif isinstance(value, list):
        for child in value:
            yield from iter_slot_dicts(child)


def reported_total(value: Any) -> int:
    if isinstance(value, dict):
        total = value.get("totalSessions")
        if isinstance(total, int) and not isinstance(total, bool):
            return total
    return 0


def parse_datetime(value: Any) -> Optional[datetime]:
    """ISO-8601 / platform datetime to an aware datetime; None when invalid.

    Naive values are taken as UTC. Numbers are epoch seconds, or epoch
    milliseconds when large.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)):
        seconds = value / 1000 if abs(value) > 1e11 else value
        try:
            return datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        text = _TZ_NO_COLON_RE.sub(r"\1:\2", text)
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def speaker_names(value: Any) -> list[str]:
    """Speaker strings or {firstName, lastName, fullName} objects to names."""
    if isinstance(value, (str, dict)):
        value = [value]
    if not isinstance(value, list):
        return [DEFAULT_SPEAKER]
    names: list[str] = []
    for speaker in value:
        if isinstance(speaker, str):
            name = speaker.strip()
        elif isinstance(speaker, dict):
            name = str(speaker.get("fullName") or "").strip()
            if not name:
                parts = [speaker.get("firstName"), speaker.get("lastName")]
                name = " ".join(str(p).strip() for p in parts if p and str(p).strip())
        else:
            name = ""
        if name:
            names.append(name)
    return names or [DEFAULT_SPEAKER]


def _text(value: Any, default: str) -> str:
    if value is None:
        return default
    text = str(value).strip()
    return text or default


def to_slot(item: Any) -> Optional[SessionSlot]:
    """Build a SessionSlot, or None when sessionName or location is missing."""
    if not isinstance(item, dict):
        return None
    name = item.get("sessionName")
    location = item.get("location")
    if not isinstance(name, str) or not name.strip():
        return None
    if not isinstance(location, str) or not location.strip():
        return None
    return SessionSlot(
        session_name=name.strip(),
        location=location.strip(),
        speakers=speaker_names(item.get("speakers")),
        start_time=parse_datetime(item.get("startTime")),
        end_time=parse_datetime(item.get("endTime")),
        format=_text(item.get("format"), DEFAULT_FORMAT),
        focus=_text(item.get("focus"), DEFAULT_FOCUS),
        abstract=_text(item.get("sessionAbstract", item.get("abstract")), DEFAULT_ABSTRACT),
    )


def to_slots(items: Iterable[Any]) -> list[SessionSlot]:
    return [slot for slot in map(to_slot, items) if slot is not None]


def distinct_locations(slots: Iterable[SessionSlot]) -> list[str]:
    seen: dict[str, None] = {}
    for slot in slots:
        seen.setdefault(slot.location, None)
    return list(seen)


def time_range(slots: Iterable[SessionSlot]) -> Optional[TimeRange]:
    slots = list(slots)
    starts = [s.start_time for s in slots if s.start_time is not None]
    ends = [s.end_time for s in slots if s.end_time is not None]
    if not starts and not ends:
        return None
    return TimeRange(
        earliest_start=min(starts) if starts else None,
        latest_end=max(ends) if ends else None,
    )


def preview(raw: Optional[str], limit: int = DEFAULT_PREVIEW_LENGTH) -> str:
    text = raw or ""
    if len(text) <= limit:
        return text
    return text[:limit] + "..."


def build_proposal(
    items: Iterable[Any],
    *,
    message: str = "",
    partial: bool = False,
    partial_reason: Optional[str] = None,
    fragment_count: int = 1,
) -> ScheduleProposal:
    """Normalize raw items into a successful proposal.

    totalSessions is always the length of the normalized schedule.
    """
    slots = [item if isinstance(item, SessionSlot) else to_slot(item) for item in items]
    slots = [s for s in slots if s is not None]
    if not message:
        message = f"Proposed {len(slots)} session(s)"
        if partial:
            message += " (partial: response was incomplete)"
    return ScheduleProposal(
        schedule=slots,
        total_sessions=len(slots),
        locations=distinct_locations(slots),
        time_range=time_range(slots),
        success=True,
        message=message,
        partial=partial,
        partial_reason=partial_reason if partial else None,
        fragment_count=fragment_count,
    )


def failed_proposal(error: str, raw: Optional[str], preview_length: int = DEFAULT_PREVIEW_LENGTH,
                    partial: bool = False) -> ScheduleProposal:
    return ScheduleProposal(
        success=False,
        message="Could not extract a schedule from the agent response",
        error=error,
        partial=partial,
        partial_reason=error if partial else None,
        raw_response=preview(raw, preview_length),
        fragment_count=0,
    )
