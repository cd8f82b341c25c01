"""Practice metadata defaults.

Practice names are opaque identifiers to the engine. The only knowledge kept
here is the charity search term used for well-known practices when the
classifier did not supply one.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

DEFAULT_SEARCH_TERMS: Mapping[str, str] = {
    "Factory Farming": "animal welfare",
    "High Emissions": "climate",
    "Environmental Degradation": "conservation",
    "Water Waste": "water conservation",
    "Resource Depletion": "sustainability",
    "Data Privacy Issues": "digital rights",
    "Labor Exploitation": "workers rights",
    "Excessive Packaging": "environment",
    "Animal Testing": "animal rights",
    "High Energy Usage": "renewable energy",
    "Content Diversity": "media diversity",
    "Sustainable Materials": "sustainability",
    "Ethical Investment": "ethical finance",
}


def default_search_term(practice: str) -> str:
    return DEFAULT_SEARCH_TERMS.get(practice) or practice.strip().lower()


def fill_search_terms(
    practices: Iterable[str], existing: Mapping[str, str]
) -> dict[str, str]:
    """Return ``existing`` plus a default search term for each uncovered practice.

    Entries already present (including ones for practices no longer listed) are
    kept unchanged.
    """

    out = dict(existing)
    for practice in practices:
        if not out.get(practice):
            out[practice] = default_search_term(practice)
    return out
