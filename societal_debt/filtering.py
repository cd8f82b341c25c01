"""Split a batch into transactions that still need classification and the rest."""

from __future__ import annotations

from collections.abc import Iterable
from typing import NamedTuple

from .models import Transaction


class Partition(NamedTuple):
    pending: list[Transaction]
    """Transactions with ``analyzed == False``, in batch order."""

    done: list[Transaction]
    """Already-analyzed transactions, in batch order. Never re-classified."""


def partition_pending(batch: Iterable[Transaction]) -> Partition:
    pending: list[Transaction] = []
    done: list[Transaction] = []
    for tx in batch:
        (done if tx.analyzed else pending).append(tx)
    return Partition(pending=pending, done=done)
