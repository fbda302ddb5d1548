"""
Partial record recovery — salvage complete session records from a payload
that does not parse as a whole, typically one cut off mid-array.
"""

import logging
import re
from typing import Any, Iterator

from schedule_agent.models.schedule import ScheduleProposal
from schedule_agent.parsing.normalize import (
    DEFAULT_PREVIEW_LENGTH,
    build_proposal,
    failed_proposal,
    iter_slot_dicts,
    to_slot,
    try_parse,
)
from schedule_agent.parsing.scanner import scan

logger = logging.getLogger(__name__)

# Flat {...} substrings mentioning sessionName; last resort when nested scanning found nothing
_LOOSE_RECORD_RE = re.compile(r'\{[^{}]*"sessionName"[^{}]*\}')

PARTIAL_REASON = "Agent response was truncated or malformed; only complete session records were kept"


def trim_to_structure(text: str) -> str:
    """Drop prose before the first ``{ [ "`` and after the last ``} ] "``."""
    if not text:
        return ""
    starts = [i for i in (text.find("{"), text.find("["), text.find('"')) if i != -1]
    if not starts:
        return ""
    end = max(text.rfind("}"), text.rfind("]"), text.rfind('"'))
    start = min(starts)
    if end < start:
        return ""
    return text[start:end + 1]


def _object_candidates(text: str) -> Iterator[str]:
    """Balanced object substrings, descending into an unclosed outer object.

    ``{"schedule": [{...}, {...`` never closes, so its interior is scanned
    again for the complete records it still holds.
    """
    offset = 0
    while offset < len(text):
        result = scan(text[offset:], openers="{", validate=False)
        for fragment in result.fragments:
            yield fragment.text
        if result.truncated_at is None:
            return
        offset += result.truncated_at + 1


def _records(candidates: Iterator[str]) -> list[dict[str, Any]]:
    records: list[dict[str, Any]] = []
    for candidate in candidates:
        value = try_parse(candidate)
        if value is None:
            continue
        for item in iter_slot_dicts(value):
            if to_slot(item) is not None:
                records.append(item)
    return records


def recover_records(text: str) -> list[dict[str, Any]]:
    """Complete, valid session dicts found in ``text``, in order of appearance."""
    trimmed = trim_to_structure(text)
    records = _records(_object_candidates(trimmed))
    if not records:
        records = _records(iter(_LOOSE_RECORD_RE.findall(trimmed)))
        if records:
            logger.warning(f"Recovered {len(records)} record(s) via loose sessionName scan")
    return records


def recover_partial(text: str, preview_length: int = DEFAULT_PREVIEW_LENGTH) -> ScheduleProposal:
    """Best-effort proposal from content that failed full parsing.

    Always flagged partial. Never raises: no recoverable records yields an
    empty, unsuccessful proposal with an error and a raw preview.
    """
    records = recover_records(text or "")
    if not records:
        return failed_proposal(
            "No complete session records could be recovered from the agent response",
            text,
            preview_length,
            partial=True,
        )
    logger.info(f"Recovered {len(records)} complete session record(s) from a partial response")
    return build_proposal(records, partial=True, partial_reason=PARTIAL_REASON)
