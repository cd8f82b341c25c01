"""Citation-token resolution for classifier rationale text.

When the classifier runs with web search, its ``information`` strings may
contain reference tokens such as ``[2]`` or ``【2†source】`` that point at the
response's URL annotations (1-based, in order). This module rewrites those
tokens into Markdown links.

The reference -> URL map is an explicit value: callers pass the map from the
previous call and receive the updated map back. Tokens with no matching
annotation fall back to the incoming map and otherwise stay untouched.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, TypeAlias

CitationMap: TypeAlias = Mapping[str, str]

_TOKEN_RE = re.compile(r"【(\d+)(?:[†:][^】]*)?】|\[(\d+)\](?!\()")


@dataclass(frozen=True, slots=True)
class Annotation:
    """A source the classifier cited (Responses API ``url_citation``)."""

    url: str
    title: str | None = None


def annotations_from_response(resp: Any) -> list[Annotation]:
    """Collect ``url_citation`` annotations from an OpenAI Responses result.

    Walks ``resp.output[*].content[*].annotations`` and tolerates SDK shape
    differences (objects or plain dicts). Duplicate URLs are kept once, first
    occurrence wins.
    """

    def _get(obj: Any, name: str) -> Any:
        if isinstance(obj, Mapping):
            return obj.get(name)
        return getattr(obj, name, None)

    found: dict[str, Annotation] = {}
    for item in _get(resp, "output") or ():
        for part in _get(item, "content") or ():
            for ann in _get(part, "annotations") or ():
                if _get(ann, "type") not in (None, "url_citation"):
                    continue
                url = _get(ann, "url")
                if not isinstance(url, str) or not url.strip():
                    continue
                title = _get(ann, "title")
                url = url.strip()
                found.setdefault(
                    url, Annotation(url=url, title=title if isinstance(title, str) else None)
                )
    return list(found.values())


def resolve_text(
    text: str,
    annotations: Sequence[Annotation],
    citations: CitationMap,
) -> tuple[str, dict[str, str]]:
    """Replace reference tokens in ``text``; return ``(text, updated_map)``."""

    updated = dict(citations)

    def _sub(m: re.Match[str]) -> str:
        ref = m.group(1) or m.group(2)
        pos = int(ref)
        if 1 <= pos <= len(annotations):
            ann = annotations[pos - 1]
            updated[ref] = ann.url
            return f"[{ann.title or ref}]({ann.url})"
        url = updated.get(ref)
        if url:
            return f"[{ref}]({url})"
        return m.group(0)

    return _TOKEN_RE.sub(_sub, text), updated


def resolve_information(
    information: Mapping[str, str],
    annotations: Sequence[Annotation],
    citations: CitationMap,
) -> tuple[dict[str, str], dict[str, str]]:
    """Resolve tokens in every ``information`` value, threading the map through."""

    current = dict(citations)
    resolved: dict[str, str] = {}
    for practice, text in information.items():
        resolved[practice], current = resolve_text(text, annotations, current)
    return resolved, current
