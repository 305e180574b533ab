import json

from conftest import ALFALAH_TEXT, EASYPAISA_TEXT, JAZZCASH_TEXT, MEEZAN_TEXT, STATEMENT_TEXT
from transaction_extractor.config import load_keyword_tables
from transaction_extractor.parsers.detect import (
    BANK_STATEMENT,
    MOBILE_PAYMENT,
    UNKNOWN_PROVIDER,
    ProviderDetector,
    detect_document_type,
    detect_provider,
    document_type_scores,
)
from transaction_extractor.utils import split_lines


def test_brand_wins_over_transfer_scheme(tables):
    assert detect_provider(split_lines("JazzCash\nRAAST transfer"), tables) == "JazzCash"


def test_transfer_scheme_alone(tables):
    assert detect_provider(split_lines("RAAST payment\nRs. 500"), tables) == "RAAST"


def test_provider_fixtures(tables):
    detector = ProviderDetector(tables)
    assert detector.detect(split_lines(JAZZCASH_TEXT)) == "JazzCash"
    assert detector.detect(split_lines(EASYPAISA_TEXT)) == "EasyPaisa"
    assert detector.detect(split_lines(MEEZAN_TEXT)) == "Meezan Bank"
    assert detector.detect(split_lines(ALFALAH_TEXT)) == "Alfalah Bank"


def test_meezan_needs_transfer_context(tables):
    # brand name alone, no transfer wording and no PK prefix
    assert detect_provider(split_lines("Meezan Bank\nWelcome"), tables) == UNKNOWN_PROVIDER


def test_fuzzy_brand_match(tables):
    info = ProviderDetector(tables).detect_detailed(split_lines("Easypalsa\nAmount\n2500"))
    assert info.label == "EasyPaisa"
    assert info.fuzzy
    assert info.confidence == 0.75


def test_exact_match_confidence(tables):
    info = ProviderDetector(tables).detect_detailed(split_lines("JazzCash"))
    assert info.confidence == 0.95
    assert info.matched_keywords == ["jazzcash"]


def test_unknown_provider(tables):
    info = ProviderDetector(tables).detect_detailed(split_lines("Payment\nALI KHAN\nRs. 500"))
    assert info.label == UNKNOWN_PROVIDER
    assert info.confidence == 0.0


def test_empty_input(tables):
    assert detect_provider([], tables) == UNKNOWN_PROVIDER
    assert detect_provider(None, tables) == UNKNOWN_PROVIDER


def test_document_type(tables):
    assert detect_document_type(STATEMENT_TEXT, tables) == BANK_STATEMENT
    assert detect_document_type(JAZZCASH_TEXT, tables) == MOBILE_PAYMENT
    assert detect_document_type(EASYPAISA_TEXT, tables) == MOBILE_PAYMENT


def test_document_type_tie_goes_to_statement(tables):
    assert document_type_scores("", tables) == {BANK_STATEMENT: 0, MOBILE_PAYMENT: 0}
    assert detect_document_type("", tables) == BANK_STATEMENT


def test_custom_provider_table(tmp_path):
    keywords = {
        "banks": {},
        "iban_bank_codes": {},
        "generic_bank_words": [],
        "transaction_types": {},
        "branch_keywords": {},
        "header_markers": {},
        "currencies": ["PKR"],
        "providers": [{"label": "SadaPay", "keywords": ["sadapay"]}],
        "section_labels": {},
        "name_exclusions": [],
        "status_phrases": {},
        "document_types": {},
    }
    path = tmp_path / "keywords.json"
    path.write_text(json.dumps(keywords), encoding="utf-8")

    custom = load_keyword_tables(str(path))
    assert detect_provider(split_lines("SadaPay\nRs. 500"), custom) == "SadaPay"
    assert detect_provider(split_lines("JazzCash\nRs. 500"), custom) == UNKNOWN_PROVIDER
