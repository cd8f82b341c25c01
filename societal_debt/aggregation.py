"""Batch totals and presentation-level summaries.

:func:`aggregate` produces the externally visible
:class:`~societal_debt.models.AnalyzedBatch`. :func:`practice_totals` and
:func:`impact_score` summarize an analyzed batch for dashboards.
"""

from __future__ import annotations

import math
from collections.abc import Iterable

from .models import AnalyzedBatch, PracticeTotal, Transaction


def _debt(tx: Transaction) -> float:
    return tx.societal_debt or 0.0


def aggregate(transactions: Iterable[Transaction]) -> AnalyzedBatch:
    """Total the batch and sort it by societal debt, highest first.

    ``debt_percentage`` is ``100 * total_societal_debt / total_spend`` and
    ``0.0`` when nothing was spent. Ties keep their input order.
    """

    txs = list(transactions)
    total_debt = sum(_debt(tx) for tx in txs)
    total_spend = sum(tx.amount for tx in txs)
    pct = 100 * total_debt / total_spend if total_spend > 0 else 0.0
    return AnalyzedBatch(
        transactions=tuple(sorted(txs, key=lambda tx: -_debt(tx))),
        total_societal_debt=total_debt,
        total_spend=total_spend,
        debt_percentage=pct,
    )


def practice_totals(transactions: Iterable[Transaction]) -> list[PracticeTotal]:
    """Sum ``practice_debts`` per practice, largest absolute debt first."""

    debts: dict[str, float] = {}
    counts: dict[str, int] = {}
    for tx in transactions:
        for practice, debt in tx.practice_debts.items():
            debts[practice] = debts.get(practice, 0.0) + debt
            counts[practice] = counts.get(practice, 0) + 1
    rows = [PracticeTotal(p, debts[p], counts[p]) for p in debts]
    return sorted(rows, key=lambda r: (-abs(r.debt), r.practice))


def impact_score(transactions: Iterable[Transaction]) -> float:
    """Score a batch's ethical impact; higher is worse.

    Positive impact is the magnitude of negative practice debts, negative
    impact the sum of positive ones, and neutral impact the spend of analyzed
    transactions with no non-zero practice debt. Without any positive impact
    the score is ``neutral + 2 * negative``; otherwise it is
    ``25 * (neutral + 2 * negative) / positive`` rounded and capped at 100.

    A transaction whose ``practice_debts`` exist but are all zero (fallback
    entries, zero weights) counts as neutral, not only one with no debts at all.
    """

    positive = negative = neutral = 0.0
    for tx in transactions:
        if not tx.analyzed:
            continue
        values = [v for v in tx.practice_debts.values() if v != 0]
        if not values:
            neutral += tx.amount
            continue
        for v in values:
            if v < 0:
                positive += -v
            else:
                negative += v

    if positive == 0:
        return neutral + negative * 2
    raw = (neutral + negative * 2) / positive
    return float(min(100, math.floor(raw * 25 + 0.5)))
