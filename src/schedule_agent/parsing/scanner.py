"""
Structural scanner — find balanced JSON object/array substrings in free text.

One left-to-right pass. Outside a candidate only opening brackets that JSON
could continue matter (prose quotes are ignored); inside a candidate string
literals and backslash escapes are tracked so brackets in strings never change depth.
"""

import json
import re
from typing import Any, Optional

_CLOSERS = {"{": "}", "[": "]"}
# What may follow an opening bracket in JSON, ignoring whitespace
_FOLLOWERS = {"{": set('"}'), "[": set('{["-0123456789tfn]')}
_SPACE_RE = re.compile(r"\s*")


class Fragment:
    __slots__ = ("kind", "start", "end", "text", "value")

    def __init__(self, kind: str, start: int, end: int, text: str, value: Any = None):
        self.kind = kind
        self.start = start
        self.end = end
        self.text = text
        self.value = value

    @property
    def is_object(self) -> bool:
        return self.kind == "{"

    @property
    def is_array(self) -> bool:
        return self.kind == "["

    def __repr__(self) -> str:
        return f"Fragment(kind={self.kind!r}, start={self.start}, end={self.end})"


class ScanResult:
    """Closed candidates in discovery order plus where an unclosed one began."""
    __slots__ = ("fragments", "truncated_at")

    def __init__(self, fragments: list[Fragment], truncated_at: Optional[int] = None):
        self.fragments = fragments
        self.truncated_at = truncated_at

    @property
    def truncated(self) -> bool:
        return self.truncated_at is not None

    @property
    def objects(self) -> list[Fragment]:
        return [f for f in self.fragments if f.is_object]

    @property
    def arrays(self) -> list[Fragment]:
        return [f for f in self.fragments if f.is_array]


def _opens_json(text: str, i: int) -> bool:
    """Whether the bracket at ``i`` is followed by something JSON allows there.

    Prose brackets such as "{ carefully" or "[see note]" never start a candidate.
    A bracket at the very end of the text still does (truncation).
    """
    j = _SPACE_RE.match(text, i + 1).end()
    return j == len(text) or text[j] in _FOLLOWERS[text[i]]


def scan(text: str, openers: str = "{[", validate: bool = True) -> ScanResult:
    """Return the maximal balanced ``{...}``/``[...]`` candidates in ``text``.

    ``openers`` selects which bracket kinds may start a candidate. With
    ``validate`` a closed candidate is kept only if it parses as JSON and its
    parsed value is stored on the fragment; without it every balanced
    candidate is returned unparsed. A candidate still open at the end of the
    text is never returned, only its start offset (``truncated_at``).
    """
    fragments: list[Fragment] = []
    kind: Optional[str] = None
    closer = ""
    start = 0
    depth = 0
    in_string = False
    escaped = False

    for i, ch in enumerate(text or ""):
        if kind is None:
            if ch in openers and ch in _CLOSERS and _opens_json(text, i):
                kind, closer, start, depth = ch, _CLOSERS[ch], i, 1
                in_string = escaped = False
            continue

        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue

        if ch == '"':
            in_string = True
        elif ch == kind:
            depth += 1
        elif ch == closer:
            depth -= 1
            if depth == 0:
                candidate = text[start:i + 1]
                if not validate:
                    fragments.append(Fragment(kind, start, i + 1, candidate))
                else:
                    try:
                        value = json.loads(candidate)
                    except ValueError:
                        pass
                    else:
                        fragments.append(Fragment(kind, start, i + 1, candidate, value))
                kind = None

    return ScanResult(fragments, truncated_at=start if kind is not None else None)
