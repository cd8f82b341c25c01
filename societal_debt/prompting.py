"""Prompt construction and request serialization for the classifier.

This module builds:
- The fixed system instructions describing the practice taxonomy guidance and
  the output contract.
- A deterministic JSON serialization of the pending transactions with a fixed
  field order, carrying only identity fields plus any existing practice data.
- The user content, with the JSON delimited by BEGIN_/END_ markers.
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from typing import Any

from .models import Transaction

REQUEST_FIELD_ORDER: tuple[str, ...] = (
    "date",
    "name",
    "amount",
    "unethicalPractices",
    "ethicalPractices",
    "practiceWeights",
    "information",
)

# Fields sent only when the transaction already carries a non-empty value.
_OPTIONAL_FIELDS: frozenset[str] = frozenset(REQUEST_FIELD_ORDER[3:])

_SYSTEM_INSTRUCTIONS = """\
You analyze consumer financial transactions and estimate their societal debt: \
the ethical impact of the money spent at each merchant.

For each transaction:
1. Assign only practices that factually apply to the merchant's actual business \
model. When unsure about a merchant, assign no practices.
   - Digital services differ from physical retailers; never give food practices \
(e.g. Factory Farming) to non-food companies or manufacturing practices to \
service companies.
   - Technology companies: data privacy, energy usage, labor practices.
   - Utilities and telecom: infrastructure impact and energy usage.
2. Give each practice a percentage weight (0-100) for how much of the \
customer's money supports it. Weights need not sum to 100. Typical ranges:
   - Unethical: Factory Farming 15-70 (food), Excessive Packaging 5-30 \
(retail/e-commerce), Labor Exploitation 10-60 (apparel), High Emissions 20-90 \
(energy, airlines), Environmental Degradation 20-60 (extraction), Animal \
Testing 20-40 (cosmetics), Water Waste 10-30 (agriculture), Data Privacy \
Issues 10-40 and High Energy Usage 5-20 (tech).
   - Ethical: Organic Farming 10-30, Fair Trade 5-25, Sustainable Materials \
5-30, Circular Economy 5-20, Privacy Protection 10-30, Clean Energy Usage 5-25, \
Ethical Investment 10-40, Community Development 5-20.
   - For merchants outside these categories prefer no practices; otherwise use \
minimal weights (5-10).
3. Never list the same practice, or directly contradicting practices, as both \
ethical and unethical. Focus on the one or two most significant practices.
4. For every practice provide: an impact description under 15 words in \
"information" (cite sources as [n] when you used web search), a charity search \
term in "practiceSearchTerms", and a category in "practiceCategories" chosen \
from: Climate Change, Poverty, Food Insecurity, Conflict, Inequality, Animal \
Welfare, Public Health, Digital Rights.
   Search terms: Factory Farming -> "animal welfare", High Emissions -> \
"climate", Environmental Degradation -> "conservation", Water Waste -> "water \
conservation", Resource Depletion -> "sustainability", Data Privacy Issues -> \
"digital rights", Labor Exploitation -> "workers rights", Excessive Packaging \
-> "environment", Animal Testing -> "animal rights".
5. Echo "date", "name" and "amount" exactly as given. Use consistent practice \
names across transactions.

Return ONLY a JSON object, no prose or markdown:
{"transactions": [{"date": "YYYY-MM-DD", "name": "...", "amount": 0.0, \
"unethicalPractices": [], "ethicalPractices": [], "practiceWeights": {}, \
"practiceSearchTerms": {}, "practiceCategories": {}, "information": {}}]}"""


def build_system_instructions() -> str:
    return _SYSTEM_INSTRUCTIONS


def _request_item(tx: Transaction) -> dict[str, Any]:
    wire = tx.to_wire()
    out: dict[str, Any] = {}
    for key in REQUEST_FIELD_ORDER:
        value = wire.get(key)
        if key in _OPTIONAL_FIELDS and not value:
            continue
        out[key] = value
    return out


def serialize_request(pending: Sequence[Transaction]) -> str:
    """Serialize ``pending`` as ``{"transactions": [...]}`` with a fixed field order."""

    return json.dumps(
        {"transactions": [_request_item(tx) for tx in pending]}, ensure_ascii=False
    )


def build_user_content(request_json: str) -> str:
    return (
        "Analyze the following transactions and return the JSON object described "
        "in your instructions, with exactly one entry per transaction.\n\n"
        f"BEGIN_TRANSACTIONS_JSON\n{request_json}\nEND_TRANSACTIONS_JSON"
    )
