"""Helpers for reading JSON out of free-form model replies."""

from __future__ import annotations

import json
import re
from typing import Any

from rinkmate.errors import WebSearchError

_CITE_ARTIFACT = re.compile(r" cite.*")
_CODE_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$")


def strip_citations(value: Any) -> str:
    """Drop trailing `` cite...`` artifacts that search models append."""
    if value is None:
        return ""
    return _CITE_ARTIFACT.sub("", str(value)).strip()


def load_json_payload(text: str) -> Any:
    """Parse JSON from a reply that may be fenced or wrapped in prose."""
    cleaned = _CODE_FENCE.sub("", (text or "").strip())
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError:
        pass
    starts = [i for i in (cleaned.find("["), cleaned.find("{")) if i >= 0]
    if starts:
        start = min(starts)
        end = max(cleaned.rfind("]"), cleaned.rfind("}"))
        if end > start:
            try:
                return json.loads(cleaned[start : end + 1])
            except json.JSONDecodeError:
                pass
    raise WebSearchError("Search completion returned unparseable output")
