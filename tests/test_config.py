from transaction_extractor.config import (
    AmountThresholds,
    ExtractionSettings,
    SegmentationSettings,
    get_keyword_tables,
    load_keyword_tables,
)
from transaction_extractor.reconstruction import AmountPolicy


def test_defaults():
    thresholds = AmountThresholds()
    assert (thresholds.withdrawal_ceiling, thresholds.deposit_floor, thresholds.balance_floor) == (0.0, 1000.0, 1_000_000.0)
    seg = SegmentationSettings()
    assert seg.strategy == "boundary"
    assert seg.min_separation == 5
    assert seg.cluster_radius == 10
    assert ExtractionSettings().default_currency == "PKR"


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("TXN_DEPOSIT_FLOOR", "500")
    monkeypatch.setenv("TXN_SEGMENTATION", "PROXIMITY")
    monkeypatch.setenv("TXN_DEFAULT_CURRENCY", "USD")
    settings = ExtractionSettings()
    assert settings.thresholds.deposit_floor == 500.0
    assert settings.segmentation.strategy == "proximity"
    assert settings.default_currency == "USD"
    assert AmountPolicy(settings.thresholds).categorize(750) == "deposit"


def test_bad_numeric_value_uses_default(monkeypatch):
    monkeypatch.setenv("TXN_BALANCE_FLOOR", "lots")
    assert AmountThresholds().balance_floor == 1_000_000.0


def test_radius_is_clamped():
    assert SegmentationSettings(cluster_radius=40).cluster_radius == 25
    assert SegmentationSettings(cluster_radius=3).cluster_radius == 8
    assert SegmentationSettings(cluster_radius=12).cluster_radius == 12


def test_unknown_strategy_falls_back():
    assert SegmentationSettings(strategy="columns").strategy == "boundary"


def test_keyword_tables():
    tables = load_keyword_tables()
    assert tables.canonical_bank("HBL") == "Habib Bank Limited"
    assert tables.canonical_bank("nowhere") is None
    assert tables.iban_bank_codes["MEZN"] == "Meezan Bank"
    assert "CURRENT" in tables.name_exclusions
    assert [p.label for p in tables.providers][:2] == ["JazzCash", "EasyPaisa"]
    assert get_keyword_tables(ExtractionSettings()) == tables
