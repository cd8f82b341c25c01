from __future__ import annotations

import json

import pytest

from societal_debt.parsing import (
    ParsedResponse,
    ParseFailure,
    ParseSuccess,
    decode_json_object,
    extract_balanced_object,
    extract_fenced_block,
    parse_classifier_output,
    repair_json_text,
)

ACME = {
    "date": "2024-01-01",
    "name": "Acme",
    "amount": 50,
    "unethicalPractices": ["High Emissions"],
    "ethicalPractices": [],
    "practiceWeights": {"High Emissions": 40},
}
BODY = json.dumps({"transactions": [ACME]})


def _parsed(raw: str) -> ParsedResponse:
    result = parse_classifier_output(raw)
    assert isinstance(result, ParsedResponse), result
    return result


# ---- Strategy chain ------------------------------------------------------------


def test_strict_json_uses_direct_strategy():
    result = _parsed(BODY)
    assert result.strategy == "direct"
    assert len(result.entries) == 1
    entry = result.entries[0]
    assert entry.name == "Acme"
    assert entry.unethical_practices == ["High Emissions"]
    assert entry.practice_weights == {"High Emissions": 40.0}


def test_fenced_block_wrapped_in_prose():
    raw = f"Here is the analysis:\n```json\n{BODY}\n```\nLet me know if you need more."
    result = _parsed(raw)
    assert result.strategy == "fenced"
    assert result.entries[0].name == "Acme"


def test_balanced_object_inside_prose_without_fence():
    raw = f"Sure! {BODY} Hope that helps {{not json}}"
    result = _parsed(raw)
    assert result.strategy == "balanced"
    assert result.entries[0].amount == 50.0


def test_repair_single_quotes_and_trailing_commas():
    raw = (
        "{'transactions': [{'date': '2024-01-01', 'name': 'Acme', 'amount': 50, "
        "'unethicalPractices': ['High Emissions'], 'ethicalPractices': [], "
        "'practiceWeights': {'High Emissions': 40,},},],}"
    )
    result = _parsed(raw)
    assert result.strategy == "repaired"
    assert result.entries[0].practice_weights == {"High Emissions": 40.0}


def test_repair_quotes_bare_keys():
    raw = (
        '{transactions: [{date: "2024-01-01", name: "Acme", amount: 50, '
        "unethicalPractices: [], ethicalPractices: []}]}"
    )
    result = _parsed(raw)
    assert result.strategy == "repaired"
    assert result.entries[0].date == "2024-01-01"


def test_repair_collapses_newlines_inside_strings():
    raw = (
        '{"transactions": [{"date": "2024-01-01", "name": "Acme", "amount": 50, '
        '"unethicalPractices": ["High Emissions"], "ethicalPractices": [], '
        '"information": {"High Emissions": "Burns\nfossil fuels"}}]}'
    )
    result = _parsed(raw)
    assert result.strategy == "repaired"
    assert result.entries[0].information == {"High Emissions": "Burns fossil fuels"}


def test_repair_keeps_apostrophes_in_double_quoted_strings():
    raw = (
        "{'transactions': [{'date': '2024-01-01', \"name\": \"McDonald's\", 'amount': 12.99, "
        "'unethicalPractices': ['Factory Farming'], 'ethicalPractices': []}]}"
    )
    result = _parsed(raw)
    assert result.entries[0].name == "McDonald's"


def test_repair_normalizes_smart_quotes():
    raw = "“transactions” aside: {“transactions”: []}"
    result = _parsed(raw)
    assert result.entries == ()


def test_unparseable_noise_is_a_parse_failure_listing_every_strategy():
    result = parse_classifier_output("I'm sorry, I cannot help with that request.")
    assert isinstance(result, ParseFailure)
    strategies = [e.split(":", 1)[0] for e in result.errors]
    assert strategies == ["direct", "fenced", "balanced", "repaired"]


@pytest.mark.parametrize("raw", [None, "", "   \n"])
def test_empty_response_is_a_parse_failure(raw):
    assert isinstance(parse_classifier_output(raw), ParseFailure)


def test_non_object_top_level_is_rejected():
    result = decode_json_object("[1, 2, 3]")
    assert isinstance(result, ParseFailure)
    assert "not object" in result.errors[0]


def test_missing_transactions_list_is_a_parse_failure():
    result = parse_classifier_output('{"results": []}')
    assert isinstance(result, ParseFailure)
    assert "transactions" in result.reason


# ---- Individual strategies ------------------------------------------------------


def test_extract_fenced_block_without_language_tag():
    assert extract_fenced_block("x\n```\n{\"a\": 1}\n```") == '{"a": 1}'
    assert extract_fenced_block("no fence here") is None


def test_extract_balanced_object_ignores_braces_in_strings():
    text = 'prefix {"a": "}{", "b": {"c": 1}} suffix }'
    assert extract_balanced_object(text) == '{"a": "}{", "b": {"c": 1}}'
    assert extract_balanced_object("{ unclosed") is None


def test_repair_json_text_without_object_returns_none():
    assert repair_json_text("nothing to see") is None


def test_decode_returns_tagged_success():
    result = decode_json_object(BODY)
    assert isinstance(result, ParseSuccess)
    assert result.value["transactions"][0]["name"] == "Acme"


# ---- Validation ----------------------------------------------------------------


def test_invalid_entries_are_rejected_individually():
    good = dict(ACME)
    missing_amount = {k: v for k, v in ACME.items() if k != "amount"}
    bad_weight = dict(ACME, name="Other", practiceWeights={"High Emissions": "lots"})
    raw = json.dumps({"transactions": [good, missing_amount, bad_weight, "junk"]})

    result = _parsed(raw)
    assert [e.name for e in result.entries] == ["Acme"]
    assert len(result.rejected) == 3
    assert "amount" in result.rejected[0]


def test_entry_practice_lists_are_trimmed_and_deduplicated():
    entry = dict(ACME, unethicalPractices=[" A ", "A", "", "B"])
    result = _parsed(json.dumps({"transactions": [entry]}))
    assert result.entries[0].unethical_practices == ["A", "B"]


def test_entry_missing_practice_lists_is_rejected():
    entry = {"date": "2024-01-01", "name": "Acme", "amount": 5}
    result = _parsed(json.dumps({"transactions": [entry]}))
    assert result.entries == ()
    assert len(result.rejected) == 1


def test_conflicting_and_out_of_range_entries_are_kept_with_warnings(caplog):
    entry = dict(
        ACME,
        unethicalPractices=["A"],
        ethicalPractices=["A"],
        practiceWeights={"A": 140},
    )
    with caplog.at_level("WARNING", logger="societal_debt"):
        result = _parsed(json.dumps({"transactions": [entry]}))
    assert len(result.entries) == 1
    messages = " ".join(r.getMessage() for r in caplog.records)
    assert "parse:conflicting_practice" in messages
    assert "parse:weight_out_of_range" in messages


def test_null_weights_and_information_are_treated_as_absent():
    entry = dict(
        ACME,
        practiceWeights={"High Emissions": None},
        information={"High Emissions": None, "Other": "ok"},
    )
    result = _parsed(json.dumps({"transactions": [entry]}))
    assert result.rejected == ()
    assert result.entries[0].practice_weights == {}
    assert result.entries[0].information == {"Other": "ok"}


@pytest.mark.parametrize(
    "fragment",
    [
        '"amount": 50, "practiceWeights": {"High Emissions": NaN}',
        '"amount": 50, "practiceWeights": {"High Emissions": Infinity}',
        '"amount": Infinity, "practiceWeights": {"High Emissions": 40}',
    ],
)
def test_non_finite_numbers_reject_only_that_entry(fragment):
    bad = (
        '{"date": "2024-01-01", "name": "Bad", ' + fragment + ', '
        '"unethicalPractices": ["High Emissions"], "ethicalPractices": []}'
    )
    raw = '{"transactions": [' + bad + ", " + json.dumps(ACME) + "]}"
    result = _parsed(raw)
    assert [e.name for e in result.entries] == ["Acme"]
    assert len(result.rejected) == 1
