"""Data models for ``societal_debt``.

Wire names are camelCase (``unethicalPractices``, ``societalDebt``...) so the
JSON produced here is interchangeable with what the banking aggregator, the
classifier and the persistent store exchange. Python attributes are
snake_case; both spellings are accepted on input.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, NamedTuple

from pydantic import BaseModel, ConfigDict, Field, FiniteFloat, field_validator
from pydantic.alias_generators import to_camel

# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------


def _dedupe(values: Iterable[str]) -> tuple[str, ...]:
    """Return ``values`` as an ordered set (first occurrence wins)."""

    return tuple(dict.fromkeys(values))


class Transaction(BaseModel):
    """A single financial event, optionally carrying its ethical analysis.

    ``practice_debts`` and ``societal_debt`` are derived by
    :mod:`societal_debt.debt`; values supplied by callers are only trusted once
    ``analyzed`` is true. Unknown keys (e.g. ``charities``) are preserved.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="allow",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    date: str = Field(pattern=r"^\d{4}-\d{2}-\d{2}$")
    name: str
    amount: float = Field(ge=0, allow_inf_nan=False)

    unethical_practices: tuple[str, ...] = ()
    ethical_practices: tuple[str, ...] = ()
    practice_weights: dict[str, FiniteFloat] = Field(default_factory=dict)
    practice_debts: dict[str, float] = Field(default_factory=dict)
    societal_debt: float | None = None
    information: dict[str, str] = Field(default_factory=dict)
    practice_categories: dict[str, str] = Field(default_factory=dict)
    practice_search_terms: dict[str, str] = Field(default_factory=dict)
    analyzed: bool = False

    @field_validator("name")
    @classmethod
    def _name_non_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("name must be a non-empty string")
        return v

    @field_validator("unethical_practices", "ethical_practices")
    @classmethod
    def _ordered_set(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        return _dedupe(v)

    def to_wire(self) -> dict[str, Any]:
        """Serialize with camelCase keys, as sent to callers and the store."""

        return self.model_dump(mode="json", by_alias=True)


class AnalyzedBatch(BaseModel):
    """Result of one engine run: every transaction plus batch totals.

    ``transactions`` are ordered by ``societal_debt`` descending (stable with
    respect to input order).
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)

    transactions: tuple[Transaction, ...] = ()
    total_societal_debt: float = 0.0
    total_spend: float = 0.0
    debt_percentage: float = 0.0

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


# ---------------------------------------------------------------------------
# Invoker output
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ClassifiedBatch:
    """Classifier results for one invocation.

    Attributes
    ----------
    transactions:
        One analyzed transaction per pending input, in input order. Entries the
        classifier could not produce are zero-debt fallbacks carrying
        ``information["_error"]``.
    citations:
        Citation reference -> URL map after this call. Pass it to the next
        :func:`~societal_debt.invoker.classify` call to keep resolving
        references seen earlier.
    used_fallback:
        ``True`` when the whole classifier response was unparseable.
    """

    transactions: tuple[Transaction, ...]
    citations: Mapping[str, str] = field(default_factory=dict)
    used_fallback: bool = False


class PracticeTotal(NamedTuple):
    """Debt attributed to one practice across a batch."""

    practice: str
    debt: float
    transactions: int
