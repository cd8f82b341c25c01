"""Classification invoker.

Public API:
    - :func:`classify`: send pending transactions to the classifier in a single
      OpenAI Responses API request and return one analyzed transaction per
      pending input.
    - :func:`build_classified_batch`: the pure half of :func:`classify`, turning
      raw classifier text (plus any URL annotations) into a
      :class:`~societal_debt.models.ClassifiedBatch`.

No retries happen here; the SDK's transport settings own that. No side effects
occur at import time (no client creation, no environment reads).
"""

from __future__ import annotations

import time
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from openai import OpenAI, OpenAIError

from . import prompting
from .citations import Annotation, annotations_from_response, resolve_information
from .config import ClassifierSettings
from .debt import apply_debt
from .errors import ClassifierTransportError
from .identity import key_from_fields, transaction_key
from .logging_setup import get_logger
from .models import ClassifiedBatch, Transaction
from .parsing import ClassifierEntry, ParseFailure, parse_classifier_output

ERROR_KEY: str = "_error"

_PARSE_FAILED_NOTE = "Classification unavailable: the classifier response could not be parsed."
_MISSING_ENTRY_NOTE = "Classification unavailable: the classifier returned no valid entry."

_logger = get_logger("societal_debt.invoker")


# ---- Internal helpers --------------------------------------------------------


def _extract_output_text(resp: Any) -> str | None:
    """Return the text output of a Responses SDK result, or ``None``.

    Prefers ``resp.output_text``; otherwise concatenates the ``text`` of every
    content part under ``resp.output``.
    """

    text = getattr(resp, "output_text", None)
    if isinstance(text, str) and text:
        return text

    chunks: list[str] = []
    for item in getattr(resp, "output", None) or ():
        for part in getattr(item, "content", None) or ():
            txt_obj = getattr(part, "text", None)
            if isinstance(txt_obj, str):
                chunks.append(txt_obj)
            else:
                # Some SDKs expose text as an object with a ``value`` string.
                maybe_val = getattr(txt_obj, "value", None)
                if isinstance(maybe_val, str):
                    chunks.append(maybe_val)
    return "".join(chunks) or None


def _create_client(settings: ClassifierSettings) -> OpenAI:
    return OpenAI(timeout=settings.timeout_sec)


def _fallback(tx: Transaction, note: str) -> Transaction:
    """Zero-impact, analyzed copy of ``tx`` carrying ``information["_error"]``."""

    cleared = tx.model_copy(
        update={
            "unethical_practices": (),
            "ethical_practices": (),
            "practice_weights": {},
            "information": {ERROR_KEY: note},
        }
    )
    return apply_debt(cleared)


def _apply_entry(
    tx: Transaction,
    entry: ClassifierEntry,
    annotations: Sequence[Annotation],
    citations: Mapping[str, str],
) -> tuple[Transaction, dict[str, str]]:
    information, updated = resolve_information(
        entry.information or tx.information, annotations, citations
    )
    classified = tx.model_copy(
        update={
            "unethical_practices": tuple(entry.unethical_practices),
            "ethical_practices": tuple(entry.ethical_practices),
            "practice_weights": dict(entry.practice_weights),
            "practice_search_terms": {
                **tx.practice_search_terms,
                **entry.practice_search_terms,
            },
            "practice_categories": {
                **tx.practice_categories,
                **entry.practice_categories,
            },
            "information": information,
        }
    )
    return apply_debt(classified), updated


# ---- Public API --------------------------------------------------------------


def build_classified_batch(
    pending: Sequence[Transaction],
    raw_text: str | None,
    *,
    annotations: Sequence[Annotation] = (),
    citations: Mapping[str, str] | None = None,
) -> ClassifiedBatch:
    """Turn raw classifier output into one analyzed transaction per ``pending`` item.

    Entries are matched to pending transactions by identity key. Entries that
    match nothing pending are discarded. Pending transactions without a valid
    entry, or every pending transaction when the response cannot be parsed,
    become zero-debt fallbacks.
    """

    known: dict[str, str] = dict(citations or {})
    parsed = parse_classifier_output(raw_text)

    if isinstance(parsed, ParseFailure):
        _logger.warning(
            "classify:parse_failed count=%d errors=%s", len(pending), parsed.reason
        )
        return ClassifiedBatch(
            transactions=tuple(_fallback(tx, _PARSE_FAILED_NOTE) for tx in pending),
            citations=known,
            used_fallback=True,
        )

    pending_keys = {transaction_key(tx) for tx in pending}
    by_key: dict[str, ClassifierEntry] = {}
    for entry in parsed.entries:
        k = key_from_fields(entry.date, entry.name, entry.amount)
        if k not in pending_keys:
            _logger.warning(
                "classify:entry_unmatched name=%r date=%s amount=%s",
                entry.name,
                entry.date,
                entry.amount,
            )
            continue
        by_key.setdefault(k, entry)

    out: list[Transaction] = []
    missing = 0
    for tx in pending:
        entry = by_key.get(transaction_key(tx))
        if entry is None:
            missing += 1
            out.append(_fallback(tx, _MISSING_ENTRY_NOTE))
            continue
        classified, known = _apply_entry(tx, entry, annotations, known)
        out.append(classified)

    if missing:
        _logger.warning(
            "classify:fallback count=%d rejected=%d", missing, len(parsed.rejected)
        )
    _logger.info(
        "classify:parsed strategy=%s classified=%d fallback=%d",
        parsed.strategy,
        len(out) - missing,
        missing,
    )
    return ClassifiedBatch(transactions=tuple(out), citations=known, used_fallback=False)


def classify(
    pending: Iterable[Transaction],
    *,
    settings: ClassifierSettings | None = None,
    citations: Mapping[str, str] | None = None,
) -> ClassifiedBatch:
    """Classify ``pending`` with one classifier request.

    Parameters
    ----------
    pending:
        Transactions not yet analyzed. Only identity fields and existing
        practice data are sent.
    settings:
        Model/timeout/web-search settings; defaults to
        :meth:`ClassifierSettings.from_env`.
    citations:
        Citation map returned by a previous call, if any.

    Raises
    ------
    ClassifierTransportError
        When the client cannot be created or the request fails. Malformed
        responses never raise; they produce fallback entries.
    """

    pending_seq = list(pending)
    if not pending_seq:
        return ClassifiedBatch(transactions=(), citations=dict(citations or {}))

    settings = settings or ClassifierSettings.from_env()
    instructions = prompting.build_system_instructions()
    user_content = prompting.build_user_content(prompting.serialize_request(pending_seq))

    request: dict[str, Any] = {
        "model": settings.model,
        "instructions": instructions,
        "input": user_content,
    }
    if settings.web_search:
        request["tools"] = [{"type": "web_search"}]
        request["tool_choice"] = "auto"

    _logger.info("classify:request count=%d model=%s", len(pending_seq), settings.model)
    t0 = time.perf_counter()
    try:
        client = _create_client(settings)
        resp = client.responses.create(**request)
    except OpenAIError as e:
        dt_ms = (time.perf_counter() - t0) * 1000.0
        _logger.error(
            "classify:transport_failed count=%d latency_ms=%.2f error=%s",
            len(pending_seq),
            dt_ms,
            e.__class__.__name__,
        )
        raise ClassifierTransportError(f"classifier request failed: {e}") from e

    dt_ms = (time.perf_counter() - t0) * 1000.0
    _logger.info("classify:response latency_ms=%.2f", dt_ms)

    return build_classified_batch(
        pending_seq,
        _extract_output_text(resp),
        annotations=annotations_from_response(resp),
        citations=citations,
    )
