"""Weighted societal-debt calculation.

For every practice ``p`` on a transaction, the contribution is
``amount * weight / 100`` where ``weight`` is ``practice_weights[p]`` or
:data:`DEFAULT_PRACTICE_WEIGHT` when absent. Unethical practices contribute
positively, ethical practices negatively. A transaction with no practices has
a societal debt of exactly ``0.0`` regardless of any stray weights.

Weights are not range-checked here; values outside ``[0, 100]`` pass through
arithmetically. A practice listed as both ethical and unethical receives both
signed contributions, summed into its single ``practice_debts`` entry.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import NamedTuple

from .models import Transaction
from .practices import fill_search_terms

DEFAULT_PRACTICE_WEIGHT: float = 100.0


class DebtBreakdown(NamedTuple):
    practice_debts: dict[str, float]
    societal_debt: float


def _weight(weights: Mapping[str, float], practice: str) -> float:
    w = weights.get(practice)
    return DEFAULT_PRACTICE_WEIGHT if w is None else w


def compute_debt(tx: Transaction) -> DebtBreakdown:
    """Return signed per-practice contributions and their net for ``tx``."""

    if not tx.unethical_practices and not tx.ethical_practices:
        return DebtBreakdown(practice_debts={}, societal_debt=0.0)

    debts: dict[str, float] = {}
    for practice in tx.unethical_practices:
        portion = tx.amount * _weight(tx.practice_weights, practice) / 100
        debts[practice] = debts.get(practice, 0.0) + portion
    for practice in tx.ethical_practices:
        portion = -(tx.amount * _weight(tx.practice_weights, practice) / 100)
        debts[practice] = debts.get(practice, 0.0) + portion

    return DebtBreakdown(practice_debts=debts, societal_debt=sum(debts.values()))


def conflicting_practices(tx: Transaction) -> list[str]:
    """Return practices listed as both ethical and unethical on ``tx``."""

    ethical = set(tx.ethical_practices)
    return [p for p in tx.unethical_practices if p in ethical]


def apply_debt(tx: Transaction) -> Transaction:
    """Return a copy of ``tx`` with derived fields filled and ``analyzed`` set.

    Derived fields are ``practice_debts``, ``societal_debt`` and default
    ``practice_search_terms`` for practices lacking one.
    """

    breakdown = compute_debt(tx)
    return tx.model_copy(
        update={
            "practice_debts": breakdown.practice_debts,
            "societal_debt": breakdown.societal_debt,
            "practice_search_terms": fill_search_terms(
                (*tx.unethical_practices, *tx.ethical_practices),
                tx.practice_search_terms,
            ),
            "analyzed": True,
        }
    )
