"""Text extraction and cleanup for upstream Responses API payloads.

The upstream payload is classified into one of three shapes before any text
is pulled out of it:

- FlatText: a non-empty top-level ``output_text`` convenience field.
- OutputItems: an ``output`` list of items whose ``content`` parts are typed.
- NoText: neither of the above.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, List, Union

FALLBACK_TEXT = "No response generated."
TEXT_PART_TYPE = "output_text"

_FENCE_PATTERN = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```", re.IGNORECASE)


@dataclass(frozen=True)
class FlatText:
    text: str


@dataclass(frozen=True)
class OutputItems:
    parts: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class NoText:
    pass


UpstreamPayload = Union[FlatText, OutputItems, NoText]


def _text_parts(output: List[Any]) -> List[str]:
    parts: List[str] = []
    for item in output:
        if not isinstance(item, dict):
            continue
        content = item.get("content")
        if not isinstance(content, list):
            continue
        for part in content:
            if (
                isinstance(part, dict)
                and part.get("type") == TEXT_PART_TYPE
                and isinstance(part.get("text"), str)
            ):
                parts.append(part["text"])
    return parts


def classify_payload(data: Any) -> UpstreamPayload:
    """Map raw upstream JSON onto the payload shape it carries."""
    if not isinstance(data, dict):
        return NoText()
    flat = data.get("output_text")
    if isinstance(flat, str) and flat:
        return FlatText(flat)
    output = data.get("output")
    if isinstance(output, list):
        return OutputItems(_text_parts(output))
    return NoText()


def extract_text(payload: UpstreamPayload) -> str:
    """Return the model text carried by ``payload`` or the fallback string."""
    if isinstance(payload, FlatText):
        return payload.text
    if isinstance(payload, OutputItems):
        text = "".join(payload.parts)
        if text:
            return text
    return FALLBACK_TEXT


def strip_code_fences(text: str) -> str:
    """Remove ```json ... ``` or ``` ... ``` wrappers and trim the result."""
    if not text:
        return ""
    return _FENCE_PATTERN.sub(r"\1", text).strip()


def truncate(value: str, limit: int) -> str:
    return value[: max(0, limit)]
