"""Parsing and repair of the classifier's raw text output.

The classifier is asked for a JSON object ``{"transactions": [...]}`` but may
wrap it in prose or a code fence, or emit near-JSON. Decoding runs an ordered
chain of strategies, each a pure ``str -> str | None`` transformation followed
by a strict :func:`json.loads`:

1. ``direct``: the raw text as-is.
2. ``fenced``: the contents of the first fenced code block.
3. ``balanced``: the first balanced top-level ``{...}`` span.
4. ``repaired``: a textual repair pass (normalize quotes, strip trailing
   commas, quote bare keys, collapse newlines inside strings).

Every step yields a tagged :class:`ParseSuccess` or :class:`ParseFailure`;
nothing here raises on malformed input. The decoded object is then validated
entry by entry into :class:`ClassifierEntry`; entries that fail validation are
reported in :attr:`ParsedResponse.rejected` instead of failing the response.
"""

from __future__ import annotations

import json
import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    FiniteFloat,
    ValidationError,
    field_validator,
)
from pydantic.alias_generators import to_camel

from .logging_setup import get_logger

_logger = get_logger("societal_debt.parsing")


# ---------------------------------------------------------------------------
# Tagged results
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ParseSuccess:
    value: dict[str, Any]
    strategy: str


@dataclass(frozen=True, slots=True)
class ParseFailure:
    """All strategies failed; ``errors`` holds one ``"<strategy>: <reason>"`` per step."""

    errors: tuple[str, ...]

    @property
    def reason(self) -> str:
        return "; ".join(self.errors) or "empty classifier response"


# ---------------------------------------------------------------------------
# Candidate extraction
# ---------------------------------------------------------------------------

_FENCE_RE = re.compile(r"```[ \t]*(?:[A-Za-z0-9_-]+)?[ \t]*\r?\n?(.*?)```", re.S)


def extract_fenced_block(text: str) -> str | None:
    """Return the contents of the first fenced code block, if any."""

    m = _FENCE_RE.search(text)
    if m is None:
        return None
    body = m.group(1).strip()
    return body or None


def extract_balanced_object(text: str) -> str | None:
    """Return the first balanced ``{...}`` span, honoring double-quoted strings."""

    depth = 0
    start: int | None = None
    in_string = False
    escape = False
    for idx, ch in enumerate(text):
        if in_string:
            if escape:
                escape = False
            elif ch == "\\":
                escape = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"' and start is not None:
            in_string = True
        elif ch == "{":
            if start is None:
                start = idx
            depth += 1
        elif ch == "}" and start is not None:
            depth -= 1
            if depth == 0:
                return text[start : idx + 1]
    return None


# ---------------------------------------------------------------------------
# Textual repair
# ---------------------------------------------------------------------------

_SMART_QUOTES = str.maketrans({"“": '"', "”": '"', "‘": "'", "’": "'"})
_TRAILING_COMMA_RE = re.compile(r",\s*([}\]])")
_BARE_KEY_RE = re.compile(r"([{,]\s*)([A-Za-z_][A-Za-z0-9_]*)(\s*:)")
_PY_LITERALS = {"True": "true", "False": "false", "None": "null"}
_PY_LITERAL_RE = re.compile(r"\b(True|False|None)\b")
_NEWLINES_RE = re.compile(r"\r\n|\r|\n")


def _single_to_double_quotes(text: str) -> str:
    """Rewrite single-quoted strings as JSON strings; leave double-quoted ones intact."""

    out: list[str] = []
    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        if ch == '"':
            j = i + 1
            while j < n and text[j] != '"':
                j += 2 if text[j] == "\\" else 1
            out.append(text[i : j + 1])
            i = j + 1
        elif ch == "'":
            j = i + 1
            buf: list[str] = []
            while j < n and text[j] != "'":
                if text[j] == "\\" and j + 1 < n:
                    nxt = text[j + 1]
                    buf.append("'" if nxt == "'" else "\\" + nxt)
                    j += 2
                    continue
                buf.append('\\"' if text[j] == '"' else text[j])
                j += 1
            out.append('"' + "".join(buf) + '"')
            i = j + 1
        else:
            out.append(ch)
            i += 1
    return "".join(out)


def _split_strings(text: str) -> list[tuple[bool, str]]:
    """Split ``text`` into ``(is_string, segment)`` runs on double-quoted strings."""

    segments: list[tuple[bool, str]] = []
    i = 0
    n = len(text)
    last = 0
    while i < n:
        if text[i] != '"':
            i += 1
            continue
        if last < i:
            segments.append((False, text[last:i]))
        j = i + 1
        while j < n and text[j] != '"':
            j += 2 if text[j] == "\\" else 1
        segments.append((True, text[i : j + 1]))
        i = last = j + 1
    if last < n:
        segments.append((False, text[last:]))
    return segments


def _repair_code(segment: str) -> str:
    segment = _TRAILING_COMMA_RE.sub(r"\1", segment)
    segment = _BARE_KEY_RE.sub(r'\1"\2"\3', segment)
    return _PY_LITERAL_RE.sub(lambda m: _PY_LITERALS[m.group(1)], segment)


def repair_json_text(text: str) -> str | None:
    """Best-effort rewrite of near-JSON into strict JSON text.

    The candidate is the span from the first ``{`` to the last ``}`` (inside a
    code fence when one is present). Returns ``None`` when there is no object
    to repair.
    """

    source = extract_fenced_block(text) or text
    start = source.find("{")
    end = source.rfind("}")
    if start == -1 or end <= start:
        return None
    candidate = source[start : end + 1].translate(_SMART_QUOTES)
    candidate = _single_to_double_quotes(candidate)

    parts: list[str] = []
    for is_string, segment in _split_strings(candidate):
        if is_string:
            parts.append(_NEWLINES_RE.sub(" ", segment))
        else:
            parts.append(_repair_code(segment))
    return "".join(parts)


def _as_is(text: str) -> str | None:
    return text.strip() or None


STRATEGIES: tuple[tuple[str, Callable[[str], str | None]], ...] = (
    ("direct", _as_is),
    ("fenced", extract_fenced_block),
    ("balanced", extract_balanced_object),
    ("repaired", repair_json_text),
)


def _strict_decode(candidate: str, strategy: str) -> ParseSuccess | ParseFailure:
    try:
        value = json.loads(candidate)
    except json.JSONDecodeError as e:
        return ParseFailure(errors=(f"{strategy}: {e.msg} at line {e.lineno} col {e.colno}",))
    if not isinstance(value, dict):
        return ParseFailure(errors=(f"{strategy}: top level is {type(value).__name__}, not object",))
    return ParseSuccess(value=value, strategy=strategy)


def decode_json_object(raw_text: str | None) -> ParseSuccess | ParseFailure:
    """Run the strategy chain and return the first decoded JSON object."""

    if not raw_text or not raw_text.strip():
        return ParseFailure(errors=("direct: empty classifier response",))

    errors: list[str] = []
    for strategy, extract in STRATEGIES:
        candidate = extract(raw_text)
        if candidate is None:
            errors.append(f"{strategy}: no candidate")
            continue
        result = _strict_decode(candidate, strategy)
        if isinstance(result, ParseSuccess):
            return result
        errors.extend(result.errors)
    return ParseFailure(errors=tuple(errors))


# ---------------------------------------------------------------------------
# Structural validation
# ---------------------------------------------------------------------------


class ClassifierEntry(BaseModel):
    """Typed view of one classified transaction as returned by the classifier."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True, alias_generator=to_camel)

    date: str
    name: str
    amount: float = Field(allow_inf_nan=False)
    unethical_practices: list[str]
    ethical_practices: list[str]
    # A null weight means "no weight given"; the default weight applies later.
    practice_weights: dict[str, FiniteFloat | None] = {}
    practice_search_terms: dict[str, str] = {}
    practice_categories: dict[str, str] = {}
    information: dict[str, str | None] = {}

    @field_validator("practice_weights", "information")
    @classmethod
    def _drop_nulls(cls, v: dict[str, Any]) -> dict[str, Any]:
        return {k: val for k, val in v.items() if val is not None}

    @field_validator("date", "name")
    @classmethod
    def _non_blank(cls, v: str) -> str:
        s = v.strip()
        if not s:
            raise ValueError("must be a non-empty string")
        return s

    @field_validator("unethical_practices", "ethical_practices")
    @classmethod
    def _clean_practices(cls, v: list[str]) -> list[str]:
        cleaned = (p.strip() for p in v)
        return list(dict.fromkeys(p for p in cleaned if p))


@dataclass(frozen=True, slots=True)
class ParsedResponse:
    entries: tuple[ClassifierEntry, ...]
    rejected: tuple[str, ...]
    strategy: str


def _warn_on_quality(index: int, entry: ClassifierEntry) -> None:
    both = sorted(set(entry.unethical_practices) & set(entry.ethical_practices))
    if both:
        _logger.warning(
            "parse:conflicting_practice index=%d name=%r practices=%s",
            index,
            entry.name,
            both,
        )
    out_of_range = {p: w for p, w in entry.practice_weights.items() if not 0 <= w <= 100}
    if out_of_range:
        _logger.warning(
            "parse:weight_out_of_range index=%d name=%r weights=%s",
            index,
            entry.name,
            out_of_range,
        )


def _error_fields(exc: ValidationError) -> str:
    locs = (".".join(str(p) for p in err["loc"]) for err in exc.errors())
    return ",".join(loc or "entry" for loc in locs)


def validate_entries(
    body: Mapping[str, Any], *, strategy: str = "direct"
) -> ParsedResponse | ParseFailure:
    """Validate a decoded body into :class:`ClassifierEntry` items.

    A body without a ``transactions`` list is a :class:`ParseFailure`. Individual
    entries that fail validation are dropped and described in ``rejected``.
    """

    items = body.get("transactions")
    if not isinstance(items, list):
        return ParseFailure(errors=(f"{strategy}: missing or non-list 'transactions'",))

    entries: list[ClassifierEntry] = []
    rejected: list[str] = []
    for index, item in enumerate(items):
        try:
            entry = ClassifierEntry.model_validate(item)
        except ValidationError as e:
            fields = _error_fields(e)
            rejected.append(f"index {index}: invalid {fields}")
            _logger.warning("parse:entry_rejected index=%d fields=%s", index, fields)
            continue
        _warn_on_quality(index, entry)
        entries.append(entry)
    return ParsedResponse(entries=tuple(entries), rejected=tuple(rejected), strategy=strategy)


def parse_classifier_output(raw_text: str | None) -> ParsedResponse | ParseFailure:
    """Decode and validate raw classifier text."""

    decoded = decode_json_object(raw_text)
    if isinstance(decoded, ParseFailure):
        return decoded
    return validate_entries(decoded.value, strategy=decoded.strategy)
