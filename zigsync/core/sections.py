"""Split a posting description into canonical sections by heading lines.

The cursor starts at ``intro``. A line that begins with a known heading moves
the cursor; the heading itself is kept in the section it opens. Groups are
tested in declaration order, so the first group that matches a line wins.
"""
from __future__ import annotations

import re

from .models import DetailSections, SECTION_FIELDS
from .normalize import collapse_newlines

SECTION_HEADINGS: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("main_tasks", re.compile(r"^(담당업무|주요업무|업무\s*내용|직무\s*내용|하는\s*일|업무\s*소개|업무\s*설명)")),
    ("requirements", re.compile(r"^(자격요건|자격\s*조건|지원\s*자격|필수\s*요건|필수\s*조건|응모\s*자격|채용\s*조건)")),
    ("preferred_points", re.compile(r"^(우대사항|우대\s*조건|우대\s*요건|이런\s*분.*우대|이런\s*분.*환영)")),
    ("benefits", re.compile(r"^(복리후생|혜택|복지|근무\s*혜택|직원\s*혜택|사내\s*복지)")),
    ("work_conditions", re.compile(r"^(근무환경|근무\s*조건|근무\s*시간|근무\s*형태|급여|연봉|근무환경/급여|처우\s*조건)")),
    # Procedural headings (documents, hiring steps, how to apply) fold into conditions.
    ("work_conditions", re.compile(r"^(제출서류|전형절차|접수방법|마감기한|채용\s*절차|지원\s*방법|서류\s*접수)")),
)


def match_heading(line: str) -> str | None:
    """Return the section a trimmed line opens, or None for body text."""
    for section, pattern in SECTION_HEADINGS:
        if pattern.match(line):
            return section
    return None


def classify_sections(text: str | None) -> DetailSections:
    raw = collapse_newlines(text or "")
    if not raw:
        return DetailSections()

    buckets = {name: "" for name in SECTION_FIELDS}
    current = "intro"
    for line in raw.split("\n"):
        trimmed = line.strip()
        if not trimmed:
            buckets[current] += "\n"
            continue
        current = match_heading(trimmed) or current
        buckets[current] += trimmed + "\n"

    return DetailSections(
        **{name: collapse_newlines(value) for name, value in buckets.items()},
        raw_content=raw,
    )


__all__ = ["SECTION_HEADINGS", "match_heading", "classify_sections"]
