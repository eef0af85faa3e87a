"""Recover a JSON object from the server-rendering payload of a page.

The source streams its page data as many ``self.__next_f.push([1,"..."])``
script calls, each holding an escaped slice of one logical text. The slices
are unescaped, joined in document order, and the object stored under a known
key is carved out with a brace-depth scan and parsed as JSON.
"""
from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Literal

LOGGER = logging.getLogger(__name__)

FLIGHT_CHUNK = re.compile(r'self\.__next_f\.push\(\[1,"((?:[^"\\]|\\.)*)"\]\)')

EmbeddedStatus = Literal["ok", "missing_marker", "missing_key", "invalid_json"]


@dataclass(frozen=True)
class EmbeddedResult:
    status: EmbeddedStatus
    data: dict[str, Any] | None = None
    reason: str = ""

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    @property
    def needs_fallback(self) -> bool:
        return self.status != "ok"


def unescape_chunk(chunk: str) -> str:
    # Order matters: newline, then quote, then backslash.
    return chunk.replace("\\n", "\n").replace('\\"', '"').replace("\\\\", "\\")


def collect_payload(html: str) -> str | None:
    """Join every unescaped flight chunk; None when the page has none."""
    chunks = [unescape_chunk(m.group(1)) for m in FLIGHT_CHUNK.finditer(html or "")]
    if not chunks:
        return None
    return "".join(chunks)


def _key_pattern(key: str) -> re.Pattern[str]:
    return re.compile(r'"%s"\s*:\s*(?=\{)' % re.escape(key))


def find_object_start(payload: str, key: str) -> int | None:
    """Index of the ``{`` that opens the value of the first ``key``."""
    m = _key_pattern(key).search(payload)
    return m.end() if m else None


def scan_object_end(text: str, start: int) -> int | None:
    """Return the index just past the brace closing the object at ``start``.

    A plain depth counter; braces inside JSON strings are skipped by tracking
    quote state. None if the object never closes.
    """
    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
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
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return i + 1
    return None


def extract_embedded_object(html: str, key: str) -> EmbeddedResult:
    payload = collect_payload(html)
    if payload is None:
        return EmbeddedResult("missing_marker", reason="no flight chunks")

    start = find_object_start(payload, key)
    if start is None:
        return EmbeddedResult("missing_key", reason=f"key {key!r} not in payload")

    end = scan_object_end(payload, start)
    if end is None:
        return EmbeddedResult("invalid_json", reason="unterminated object")

    try:
        data = json.loads(payload[start:end])
    except ValueError as exc:
        return EmbeddedResult("invalid_json", reason=str(exc))
    if not isinstance(data, dict):
        return EmbeddedResult("invalid_json", reason="value is not an object")
    return EmbeddedResult("ok", data=data)


def extract_embedded(html: str, key: str = "recruitment") -> dict[str, Any] | None:
    """Parsed object or None; None means "try the fallback path"."""
    result = extract_embedded_object(html, key)
    if not result.ok:
        LOGGER.debug("embedded-miss key=%s status=%s reason=%s", key, result.status, result.reason)
    return result.data
