"""
Envelope unwrapping — strip the agent's ``{type, value}`` response wrapper.
"""

import json
import re
from typing import Optional

from pydantic import ValidationError

from schedule_agent.models.envelope import TextEnvelope

_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", '"': '"', "\\": "\\"}
_ESCAPE_RE = re.compile(r'\\([ntr"\\])')

# Start of a wrapper whose closing brace may never have arrived
_ENVELOPE_PREFIX_RE = re.compile(r'^\s*\{\s*"type"\s*:\s*"[^"]*"\s*,\s*"value"\s*:\s*"')
_FENCE_OPEN_RE = re.compile(r"^```[a-zA-Z0-9_-]*\s*")
_FENCE_CLOSE_RE = re.compile(r"\s*```$")


def unescape(text: str) -> str:
    """Reverse \\n, \\t, \\r, \\" and \\\\ in a single pass."""
    return _ESCAPE_RE.sub(lambda m: _ESCAPES[m.group(1)], text)


def _parses(text: str) -> bool:
    try:
        json.loads(text)
    except ValueError:
        return False
    return True


def _double_escaped(text: str) -> bool:
    r"""A value whose every quote is still escaped, e.g. ``[{\"a\": 1}]``."""
    return "\\" in text and '"' not in text.replace('\\"', "") and not _parses(text)


def parse_envelope(raw: str) -> Optional[TextEnvelope]:
    """Parse a wrapper envelope. Returns None if ``raw`` is not one."""
    stripped = (raw or "").strip()
    if not stripped.startswith("{") or '"value"' not in stripped:
        return None
    try:
        return TextEnvelope.model_validate_json(stripped)
    except ValidationError:
        return None


def unwrap_envelope(raw: str) -> str:
    """Return the inner payload of a wrapper envelope, or ``raw`` unchanged.

    ``json`` has already removed one escaping level when reading the
    envelope, so the inner value is only unescaped again when no bare quote
    is left in it (double-escaped payloads). A truncated but singly escaped
    value keeps its escapes for partial recovery.
    """
    envelope = parse_envelope(raw)
    if envelope is None:
        return raw
    inner = envelope.value
    if _double_escaped(inner):
        inner = unescape(inner)
    return inner


def salvage_envelope(raw: str) -> Optional[str]:
    """Extract the payload of a wrapper whose outer object was cut off.

    Returns None when ``raw`` does not start like a wrapper.
    """
    match = _ENVELOPE_PREFIX_RE.match(raw or "")
    if not match:
        return None
    body = raw[match.end():].rstrip()
    # A complete tail ("} or "}) would have parsed; drop whatever part of it arrived
    for tail in ('"}', '"'):
        if body.endswith(tail) and not body.endswith("\\" + tail):
            body = body[: -len(tail)]
            break
    return unescape(body)


def strip_code_fence(text: str) -> str:
    cleaned = (text or "").strip()
    if cleaned.startswith("```"):
        cleaned = _FENCE_OPEN_RE.sub("", cleaned).strip()
        cleaned = _FENCE_CLOSE_RE.sub("", cleaned).strip()
    return cleaned
