from __future__ import annotations

import re
from typing import Any, Iterable

# Closed vocabulary, tested in this order. Each level lists the substrings that map to it.
EDUCATION_LEVELS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("무관", ("무관", "학력무관", "학력 무관", "제한없음")),
    ("고졸", ("고졸", "고등학교", "고등학교 졸업")),
    ("전문대졸", ("전문대졸", "전문대", "전문학사")),
    ("학사", ("학사", "대졸", "대학 졸업", "대학교 졸업", "4년제")),
    ("석사", ("석사", "석사 학위")),
    ("박사", ("박사", "박사 학위")),
)

# Free-text search: more specific degrees before generic ones
# ("전문대졸" contains "대졸", "전문학사" contains "학사").
EDUCATION_KEYWORDS: tuple[tuple[tuple[str, ...], str], ...] = (
    (("학력무관", "학력 무관"), "무관"),
    (("박사",), "박사"),
    (("석사",), "석사"),
    (("전문대", "전문학사"), "전문대졸"),
    (("학사", "대졸", "대학교 졸업"), "학사"),
    (("고졸", "고등학교"), "고졸"),
)

EMPLOYMENT_TYPE_LABELS: dict[str, str] = {
    "FULL_TIME": "정규직",
    "PART_TIME": "파트타임",
    "CONTRACT": "계약직",
    "INTERN": "인턴",
}

BLOCK_NODE_TYPES = frozenset(
    {"paragraph", "heading", "bulletList", "orderedList", "listItem", "blockquote"}
)

_MANY_NEWLINES = re.compile(r"\n{3,}")


def collapse_newlines(text: str) -> str:
    return _MANY_NEWLINES.sub("\n\n", text).strip()


def normalize_education(value: str | None) -> str | None:
    """Map a free-form education string onto the fixed vocabulary.

    Best effort: an unrecognised value comes back trimmed rather than dropped.
    """
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    for level, variants in EDUCATION_LEVELS:
        if any(v in text for v in variants):
            return level
    return text


def education_from_text(text: str | None) -> str | None:
    if not text:
        return None
    haystack = text.lower()
    for keywords, level in EDUCATION_KEYWORDS:
        if any(k in haystack for k in keywords):
            return level
    return None


def extract_education(raw: dict[str, Any], full_text: str | None = None) -> str | None:
    """Derive the education level of a raw posting object.

    Precedence: ``educations`` list, ``education`` string, keyword search in
    the description text, else None.
    """
    educations = raw.get("educations")
    if isinstance(educations, list) and educations:
        found = normalize_education(str(educations[0]))
        if found:
            return found

    education = raw.get("education")
    if isinstance(education, str) and education.strip():
        return normalize_education(education)

    return education_from_text(full_text)


def map_employment_types(values: Iterable[Any] | str | None) -> list[str]:
    """Source enum values to Korean labels; unknown values pass through."""
    if values is None:
        return []
    if isinstance(values, str):
        values = [values]
    out: list[str] = []
    for v in values:
        if v is None or v == "":
            continue
        key = str(v)
        out.append(EMPLOYMENT_TYPE_LABELS.get(key, key))
    return out


def rich_text_to_plain(doc: Any) -> str:
    """Flatten a ProseMirror/TipTap JSON document into newline-delimited text."""
    if not doc:
        return ""
    if isinstance(doc, str):
        return doc
    if not isinstance(doc, (dict, list)):
        return str(doc)

    def walk(node: Any) -> str:
        if isinstance(node, list):
            return "".join(walk(n) for n in node)
        if not isinstance(node, dict):
            return ""
        if node.get("type") == "text":
            return node.get("text") or ""
        children = node.get("content")
        if not children:
            return ""
        joined = "".join(walk(child) for child in children)
        if node.get("type") in BLOCK_NODE_TYPES:
            return joined + "\n"
        return joined

    return collapse_newlines(walk(doc))


def as_str_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [str(v).strip() for v in value if v is not None and str(v).strip()]
    text = str(value).strip()
    return [text] if text else []


def as_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


__all__ = [
    "EDUCATION_LEVELS",
    "EMPLOYMENT_TYPE_LABELS",
    "collapse_newlines",
    "normalize_education",
    "education_from_text",
    "extract_education",
    "map_employment_types",
    "rich_text_to_plain",
    "as_str_list",
    "as_int",
]
