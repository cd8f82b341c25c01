"""Stable identity for transactions across batches.

A transaction is "the same event" as another when ``(date, name, amount)``
agree; every other field may differ. The key is a SHA-256 digest of a
canonical JSON rendering of that triple, so it is stable across processes and
safe to use as a dictionary or storage key.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal, InvalidOperation
from typing import Any

from .models import Transaction


def _canonical_amount(raw: Any) -> str:
    """Render an amount so numerically equal values share one spelling.

    ``50``, ``50.0`` and ``"50.00"`` all render as ``"50"``.
    """

    try:
        d = Decimal(str(raw))
    except (InvalidOperation, ValueError):
        return str(raw)
    if not d.is_finite():
        return str(d)
    if d == 0:
        return "0"
    return format(d.normalize(), "f")


def key_from_fields(date: Any, name: Any, amount: Any) -> str:
    """Return the identity key for a raw ``(date, name, amount)`` triple."""

    payload = [str(date).strip(), str(name).strip(), _canonical_amount(amount)]
    data = json.dumps(payload, separators=(",", ":"), ensure_ascii=False)
    return hashlib.sha256(data.encode("utf-8")).hexdigest()


def transaction_key(tx: Transaction) -> str:
    """Return the identity key of ``tx``."""

    return key_from_fields(tx.date, tx.name, tx.amount)
