"""
Generated Content Models

Content bodies come back from the backend either as structured JSON (guides,
sectioned drafts) or as legacy free text. They are modelled as a tagged union
built by :func:`parse_content`, which tries a JSON parse and falls back to the
raw text.
"""

import json
from dataclasses import dataclass
from typing import Any, Union


@dataclass(frozen=True)
class StructuredContent:
    data: Any
    kind: str = "structured"


@dataclass(frozen=True)
class RawContent:
    text: Any
    kind: str = "raw"


Content = Union[StructuredContent, RawContent]


def unwrap_record(value: Any) -> Any:
    """A stored content record ``{"id": ..., "content": ...}`` carries its body under ``content``."""
    if isinstance(value, dict) and "content" in value:
        return value["content"]
    return value


def parse_content(value: Any) -> Content:
    """
    Best-effort parse of a content body.

    Objects and lists are already structured. Strings that look like JSON
    (leading ``{`` or ``[``) and parse cleanly become structured; anything
    else is passed through verbatim.
    """
    value = unwrap_record(value)
    if isinstance(value, (dict, list)):
        return StructuredContent(value)
    if not isinstance(value, str):
        return RawContent(value)

    trimmed = value.strip()
    if not trimmed or trimmed[0] not in "{[":
        return RawContent(value)
    try:
        return StructuredContent(json.loads(trimmed))
    except ValueError:
        return RawContent(value)
