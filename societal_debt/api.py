"""Caller-facing entry point for the societal-debt engine.

:func:`analyze` runs filter -> classify -> merge -> aggregate as one unit of
work. The engine keeps no state between calls. Callers must not start a
second analysis of the same user's batch while one is outstanding; serializing
those calls (an in-flight guard) is the calling layer's job. An abandoned call
can simply be discarded: nothing is persisted here and nothing needs rollback.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from .aggregation import aggregate
from .config import ClassifierSettings
from .filtering import partition_pending
from .invoker import classify
from .logging_setup import get_logger
from .models import AnalyzedBatch, Transaction
from .reconciliation import merge_classified

_logger = get_logger("societal_debt.api")


def _materialize(transactions: Iterable[Transaction | Mapping[str, Any]]) -> list[Transaction]:
    out: list[Transaction] = []
    for item in transactions:
        if isinstance(item, Transaction):
            out.append(item)
        elif isinstance(item, Mapping):
            out.append(Transaction.model_validate(item))
        else:
            raise TypeError(
                "analyze expects Transaction objects or mappings with keys like "
                f"'date', 'name', 'amount' (got {type(item).__name__})"
            )
    return out


def analyze(
    transactions: Iterable[Transaction | Mapping[str, Any]],
    *,
    settings: ClassifierSettings | None = None,
) -> AnalyzedBatch:
    """Attach societal debt to every transaction and total the batch.

    Behavior:
    - Validates every input up front (``pydantic.ValidationError`` on bad
      input, before any network call).
    - Transactions already marked ``analyzed`` are never sent to the
      classifier and come back unchanged. When nothing is pending, the
      classifier is not called at all.
    - Pending transactions are classified in one request; unparseable output
      degrades to zero-debt fallback entries instead of failing.

    Raises
    ------
    ClassifierTransportError
        When the classifier could not be reached.
    """

    batch = _materialize(transactions)
    pending, done = partition_pending(batch)
    _logger.info(
        "analyze:start total=%d pending=%d analyzed=%d", len(batch), len(pending), len(done)
    )

    if not pending:
        _logger.info("analyze:skip_classifier reason=nothing_pending")
        return aggregate(batch)

    classified = classify(pending, settings=settings)
    merged = merge_classified(batch, classified.transactions)
    result = aggregate(merged)
    _logger.info(
        "analyze:done total=%d total_debt=%.2f debt_pct=%.2f fallback=%s",
        len(result.transactions),
        result.total_societal_debt,
        result.debt_percentage,
        classified.used_fallback,
    )
    return result
