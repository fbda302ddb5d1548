"""
Recovery pipeline — raw agent text to a normalized ScheduleProposal.

Stages:
- unwrap the {type, value} envelope (or salvage a cut-off one)
- direct parse
- fragment combination (several objects/arrays, "Part N" segments)
- a single complete structure surrounded by prose
- partial record recovery
No stage raises; the result always says whether it is partial.
"""

import json
import logging
from typing import Any, Optional

from schedule_agent.models.schedule import ScheduleProposal
from schedule_agent.parsing.envelope import salvage_envelope, strip_code_fence, unwrap_envelope
from schedule_agent.parsing.fragments import combine_fragments
from schedule_agent.parsing.normalize import (
    DEFAULT_PREVIEW_LENGTH,
    build_proposal,
    extract_items,
    failed_proposal,
    preview,
    try_parse,
)
from schedule_agent.parsing.partial import recover_partial
from schedule_agent.parsing.scanner import scan

logger = logging.getLogger(__name__)

_MAX_NESTING = 3


def _is_wrapper(value: Any) -> bool:
    return isinstance(value, dict) and set(value) == {"type", "value"} and isinstance(value["value"], str)


def _from_items(items: list[Any], raw: str, preview_length: int, **kwargs: Any) -> ScheduleProposal:
    proposal = build_proposal(items, **kwargs)
    if proposal.schedule:
        return proposal
    return failed_proposal(
        f"Agent response held {len(items)} item(s) but no valid session records",
        raw,
        preview_length,
        partial=kwargs.get("partial", False),
    )


def recover_schedule(raw: Optional[str], preview_length: int = DEFAULT_PREVIEW_LENGTH,
                     _depth: int = 0) -> ScheduleProposal:
    """Recover a schedule proposal from raw agent output. Never raises."""
    if raw is None or not str(raw).strip():
        return failed_proposal("Agent returned an empty response", raw, preview_length)
    raw = str(raw)

    text = unwrap_envelope(raw)
    if text == raw:
        salvaged = salvage_envelope(raw)
        if salvaged is not None:
            logger.warning("Response envelope is malformed; recovering its payload from raw text")
            text = salvaged
    text = strip_code_fence(text)

    value = try_parse(text.strip())
    if value is not None:
        if isinstance(value, str) or _is_wrapper(value):
            if _depth < _MAX_NESTING:
                inner = value if isinstance(value, str) else value["value"]
                return recover_schedule(inner, preview_length, _depth + 1)
        else:
            items = extract_items(value)
            if items is not None:
                return _from_items(items, raw, preview_length)

    combined = combine_fragments(text)
    if combined is not None and combined.items:
        reason = "One or more response parts were truncated" if combined.truncated else None
        proposal = build_proposal(
            combined.items,
            partial=combined.truncated,
            partial_reason=reason,
            fragment_count=combined.fragment_count,
        )
        if proposal.schedule:
            proposal.message = (
                f"Combined {combined.fragment_count} response fragment(s) into "
                f"{proposal.total_sessions} session(s)"
            )
            if combined.reported_total and combined.reported_total != proposal.total_sessions:
                logger.warning(
                    f"Fragments reported {combined.reported_total} session(s); "
                    f"{proposal.total_sessions} were valid"
                )
            return proposal

    # One complete structure with prose around it holds every record
    result = scan(text)
    if not result.truncated and len(result.fragments) == 1:
        items = extract_items(result.fragments[0].value)
        if items is not None:
            proposal = build_proposal(items)
            if proposal.schedule:
                return proposal

    logger.warning("Agent response did not parse as a whole; attempting partial recovery")
    proposal = recover_partial(text, preview_length)
    if not proposal.success:
        proposal.raw_response = preview(raw, preview_length)
    return proposal


def parse_schedule_payload(data: Any, preview_length: int = DEFAULT_PREVIEW_LENGTH) -> ScheduleProposal:
    """Proposal from an already-structured agent payload (list/dict/str)."""
    if data is None or isinstance(data, str):
        return recover_schedule(data, preview_length)
    items = extract_items(data)
    if items is not None:
        return _from_items(items, json.dumps(data, default=str), preview_length)
    return recover_schedule(json.dumps(data, default=str), preview_length)
