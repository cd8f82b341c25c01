"""Merge freshly classified transactions back into the original batch.

The merge is total and order-preserving over the original batch. A
transaction is replaced only when it was not yet analyzed and a classified
transaction with the same identity key exists; already-analyzed transactions
are ground truth and are returned as the very same objects.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from .debt import apply_debt
from .identity import transaction_key
from .logging_setup import get_logger
from .models import Transaction

_logger = get_logger("societal_debt.reconciliation")


def merge_classified(
    original: Sequence[Transaction], classified: Iterable[Transaction]
) -> list[Transaction]:
    by_key: dict[str, Transaction] = {}
    for tx in classified:
        by_key.setdefault(transaction_key(tx), tx)

    merged: list[Transaction] = []
    replaced = 0
    for tx in original:
        replacement = by_key.get(transaction_key(tx))
        if replacement is None:
            merged.append(tx)
        elif tx.analyzed:
            _logger.debug(
                "merge:kept_analyzed name=%r date=%s amount=%s", tx.name, tx.date, tx.amount
            )
            merged.append(tx)
        else:
            merged.append(apply_debt(replacement))
            replaced += 1

    _logger.debug("merge:done total=%d replaced=%d", len(merged), replaced)
    return merged
