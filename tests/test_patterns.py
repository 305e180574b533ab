from transaction_extractor.models import CATEGORIES
from transaction_extractor.patterns import tokens_in_range
from transaction_extractor.utils import split_lines


def _scan(pattern_extractor, text):
    return pattern_extractor.extract(split_lines(text))


def test_every_category_present_even_when_empty(pattern_extractor):
    tokens = _scan(pattern_extractor, "")
    assert set(tokens) == set(CATEGORIES)
    assert all(items == [] for items in tokens.values())


def test_date_confidence_by_format(pattern_extractor):
    tokens = _scan(pattern_extractor, "03-Sep-2025 03/09/2025 2025-09-03")
    dates = tokens["date"]
    assert [t.confidence for t in dates] == [0.9, 0.8, 0.7]
    assert {t.normalized_value for t in dates} == {"2025-09-03"}


def test_amount_patterns_do_not_overlap(pattern_extractor):
    tokens = _scan(pattern_extractor, "63,024.00 4400.00 5,000")
    amounts = tokens["amount"]
    assert [(t.normalized_value, t.confidence) for t in amounts] == [
        (63024.0, 0.9),
        (4400.0, 0.8),
        (5000.0, 0.7),
    ]


def test_bare_zero_line_is_an_amount(pattern_extractor):
    amounts = _scan(pattern_extractor, "0")["amount"]
    assert len(amounts) == 1
    assert amounts[0].normalized_value == 0.0
    assert amounts[0].confidence < 0.8


def test_year_line_is_not_an_amount(pattern_extractor):
    assert _scan(pattern_extractor, "2025")["amount"] == []


def test_transaction_type_tiers(pattern_extractor):
    types = _scan(pattern_extractor, "RAAST Deposit Balance")["transactionType"]
    assert [(t.raw_value, t.confidence) for t in types] == [
        ("RAAST", 0.9),
        ("Deposit", 0.6),
        ("Balance", 0.8),
    ]


def test_full_bank_name_suppresses_generic_words(pattern_extractor):
    banks = _scan(pattern_extractor, "MEEZAN BANK LIMITED")["bankName"]
    assert len(banks) == 1
    assert banks[0].normalized_value == "Meezan Bank"
    assert banks[0].confidence == 0.9


def test_generic_bank_word_alone(pattern_extractor):
    banks = _scan(pattern_extractor, "BANK")["bankName"]
    assert [(t.raw_value, t.confidence) for t in banks] == [("BANK", 0.5)]


def test_ocr_damaged_bank_name_is_canonicalized(pattern_extractor):
    banks = _scan(pattern_extractor, "ALLIED BANX LIMITED")["bankName"]
    assert len(banks) == 1
    assert banks[0].normalized_value == "Allied Bank"
    assert banks[0].pattern == "fuzzy_name"


def test_full_iban_account(pattern_extractor):
    accounts = _scan(pattern_extractor, "IBAN PK36MEZN0001234567890123")["accountNumber"]
    assert len(accounts) == 1
    assert accounts[0].normalized_value == "PK36MEZN0001234567890123"
    assert accounts[0].confidence == 0.9


def test_iban_ocr_repair(pattern_extractor):
    accounts = _scan(pattern_extractor, "PKS4BAHL0109182200624801")["accountNumber"]
    assert accounts[0].normalized_value == "PK54BAHL0109182200624801"
    assert accounts[0].pattern == "iban_repaired"
    assert accounts[0].confidence < 0.9


def test_truncated_iban_is_a_fragment(pattern_extractor):
    accounts = _scan(pattern_extractor, "PKS4BAHLO109")["accountNumber"]
    assert accounts[0].normalized_value == "PK54BAHL0109"
    assert accounts[0].pattern == "iban_fragment"


def test_masked_and_long_digit_accounts(pattern_extractor):
    accounts = _scan(pattern_extractor, "PK*****1234\n1234567890123456")["accountNumber"]
    assert [(t.normalized_value, t.confidence) for t in accounts] == [
        ("PK*****1234", 0.75),
        ("1234567890123456", 0.8),
    ]


def test_phone_numbers(pattern_extractor):
    phones = _scan(pattern_extractor, "03001234567\n+92 321 7654321")["phoneNumber"]
    assert [t.normalized_value for t in phones] == ["03001234567", "03217654321"]
    assert all(t.confidence == 0.9 for t in phones)


def test_references(pattern_extractor):
    refs = _scan(pattern_extractor, "FT25091XYZ Ref:12345")["reference"]
    assert [(t.raw_value, t.confidence) for t in refs] == [("FT25091XYZ", 0.9), ("Ref:12345", 0.8)]


def test_branch_token_carries_whole_line(pattern_extractor):
    branches = _scan(pattern_extractor, "LHR BR. MAIN BOULEVARD")["branch"]
    assert len(branches) == 1
    assert branches[0].normalized_value == "LHR BR. MAIN BOULEVARD"
    assert branches[0].confidence == 0.8


def test_tokens_keep_source_line(statement_tokens):
    deposit = [t for t in statement_tokens["amount"] if t.normalized_value == 63024.0][0]
    assert deposit.source_line_index == 12


def test_tokens_in_range_is_half_open(statement_tokens):
    subset = tokens_in_range(statement_tokens, 8, 15)
    lines_seen = {t.source_line_index for items in subset.values() for t in items}
    assert lines_seen
    assert min(lines_seen) >= 8
    assert max(lines_seen) < 15


def test_integer_amount_lines(pattern_extractor):
    amounts = _scan(pattern_extractor, "63024\n1263024\n182200624801")["amount"]
    assert [(t.normalized_value, t.pattern, t.confidence) for t in amounts] == [
        (63024.0, "bare_integer", 0.7),
        (1263024.0, "bare_integer", 0.7),
    ]
