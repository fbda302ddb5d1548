"""
Fragment combination — one payload carrying several JSON fragments.

Detection order, first match wins:
- several top-level objects: union their schedules (or keep the first object)
- several top-level arrays: concatenate them
- explicit "Part N" / "Response N" markers: parse each segment, concatenate
Anything else is not multi-fragment and is left to the caller.
"""

import logging
import re
from typing import Any, Optional

from schedule_agent.parsing.normalize import extract_items, reported_total, schedule_field, try_parse
from schedule_agent.parsing.partial import recover_records, trim_to_structure
from schedule_agent.parsing.scanner import Fragment, scan

logger = logging.getLogger(__name__)

# A marker line: "Part 2", "**Part 2 of 3:**", "Response 3 -", "## Part 1/2"
PART_MARKER_RE = re.compile(
    r"^[ \t>#*_-]*(?:part|response)[ \t]*#?[ \t]*(\d+)(?:[ \t]*(?:of|/)[ \t]*(\d+))?\b[^\n{\[]*",
    re.IGNORECASE | re.MULTILINE,
)

KIND_OBJECTS = "objects"
KIND_ARRAYS = "arrays"
KIND_PARTS = "parts"


class CombinedPayload:
    """Items merged from several fragments, in discovery order."""
    __slots__ = ("kind", "items", "fragment_count", "reported_total", "canonical", "truncated")

    def __init__(self, kind: str, items: list[Any], fragment_count: int,
                 reported_total: int = 0, canonical: Any = None, truncated: bool = False):
        self.kind = kind
        self.items = items
        self.fragment_count = fragment_count
        self.reported_total = reported_total
        self.canonical = canonical
        self.truncated = truncated

    def __repr__(self) -> str:
        return f"CombinedPayload(kind={self.kind!r}, items={len(self.items)}, fragments={self.fragment_count})"


def part_markers(text: str) -> list[tuple[int, Optional[int]]]:
    """(part number, declared total) for every marker line in ``text``."""
    return [
        (int(m.group(1)), int(m.group(2)) if m.group(2) else None)
        for m in PART_MARKER_RE.finditer(text or "")
    ]


def split_parts(text: str) -> list[str]:
    """Non-blank segments around part markers; a single segment when there are none."""
    segments = PART_MARKER_RE.split(text or "")
    # re.split interleaves the captured groups; keep every third item
    segments = segments[::3]
    return [s for s in segments if s and s.strip()]


def _combine_objects(objects: list[Fragment]) -> CombinedPayload:
    values = [f.value for f in objects]
    bearing = [v for v in values if schedule_field(v) is not None]
    if bearing:
        items: list[Any] = []
        total = 0
        for value in bearing:
            items.extend(extract_items(value) or [])
            total += reported_total(value)
        return CombinedPayload(KIND_OBJECTS, items, len(bearing), reported_total=total)
    if all(isinstance(v, dict) and "sessionName" in v for v in values):
        # Bare session objects back to back
        return CombinedPayload(KIND_OBJECTS, values, len(values))
    canonical = values[0]
    return CombinedPayload(KIND_OBJECTS, extract_items(canonical) or [], 1, canonical=canonical)


def _combine_arrays(arrays: list[Fragment]) -> CombinedPayload:
    items: list[Any] = []
    for fragment in arrays:
        items.extend(fragment.value)
    return CombinedPayload(KIND_ARRAYS, items, len(arrays))


def _segment_items(segment: str) -> tuple[list[Any], bool]:
    """Items of one part plus whether they came from a damaged segment."""
    value = try_parse(trim_to_structure(segment))
    items = extract_items(value) if value is not None else None
    if items is not None:
        return items, False
    found: list[Any] = []
    result = scan(segment)
    for fragment in result.fragments:
        found.extend(extract_items(fragment.value) or [])
    if found and not result.truncated:
        return found, False
    # Unparseable or cut off: keep whatever complete records it still holds
    return recover_records(segment), True


def _combine_parts(segments: list[str]) -> CombinedPayload:
    items: list[Any] = []
    used = 0
    truncated = False
    for index, segment in enumerate(segments, 1):
        segment_items, damaged = _segment_items(segment)
        if not segment_items:
            logger.debug(f"Skipping part segment {index}: nothing parseable")
            continue
        items.extend(segment_items)
        truncated = truncated or damaged
        used += 1
    return CombinedPayload(KIND_PARTS, items, used, truncated=truncated)


def combine_fragments(text: str) -> Optional[CombinedPayload]:
    """Merge a multi-fragment payload, or None when it holds at most one fragment."""
    if not text:
        return None
    result = scan(text)
    objects, arrays = result.objects, result.arrays
    if len(objects) >= 2:
        combined = _combine_objects(objects)
    elif len(arrays) >= 2:
        combined = _combine_arrays(arrays)
    elif part_markers(text) and len(split_parts(text)) >= 2:
        combined = _combine_parts(split_parts(text))
    else:
        return None
    combined.truncated = combined.truncated or result.truncated
    logger.info(f"Combined {combined.fragment_count} fragment(s) into {len(combined.items)} item(s) ({combined.kind})")
    return combined
