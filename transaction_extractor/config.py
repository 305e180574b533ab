from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

DEFAULT_KEYWORDS_PATH = os.path.join(os.path.dirname(__file__), "data", "keywords.json")

SEGMENTATION_STRATEGIES = ("boundary", "proximity")
MIN_CLUSTER_RADIUS = 8
MAX_CLUSTER_RADIUS = 25


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"Ignoring non-numeric value for {name}: {raw!r}")
        return default


def _env_int(name: str, default: int) -> int:
    return int(_env_float(name, float(default)))


@dataclass
class AmountThresholds:
    """Magnitude bands used to categorize bare amounts.

    amount <= withdrawal_ceiling            -> withdrawal
    deposit_floor <= amount < balance_floor -> deposit
    amount >= balance_floor                 -> balance
    """
    withdrawal_ceiling: float = field(default_factory=lambda: _env_float("TXN_WITHDRAWAL_CEILING", 0.0))
    deposit_floor: float = field(default_factory=lambda: _env_float("TXN_DEPOSIT_FLOOR", 1000.0))
    balance_floor: float = field(default_factory=lambda: _env_float("TXN_BALANCE_FLOOR", 1_000_000.0))


@dataclass
class SegmentationSettings:
    strategy: str = field(default_factory=lambda: os.getenv("TXN_SEGMENTATION", "boundary"))  # boundary | proximity
    min_separation: int = field(default_factory=lambda: _env_int("TXN_MIN_SEPARATION", 5))
    cluster_radius: int = field(default_factory=lambda: _env_int("TXN_CLUSTER_RADIUS", 10))
    start_confidence: float = field(default_factory=lambda: _env_float("TXN_START_CONFIDENCE", 0.8))
    account_window_before: int = 5
    account_window_after: int = 10

    def __post_init__(self) -> None:
        self.strategy = (self.strategy or "boundary").lower()
        if self.strategy not in SEGMENTATION_STRATEGIES:
            logger.warning(f"Unknown segmentation strategy {self.strategy!r}, using 'boundary'")
            self.strategy = "boundary"
        self.cluster_radius = max(MIN_CLUSTER_RADIUS, min(MAX_CLUSTER_RADIUS, int(self.cluster_radius)))


@dataclass
class ExtractionSettings:
    thresholds: AmountThresholds = field(default_factory=AmountThresholds)
    segmentation: SegmentationSettings = field(default_factory=SegmentationSettings)
    keywords_path: Optional[str] = field(default_factory=lambda: os.getenv("TXN_KEYWORDS_FILE") or None)
    default_currency: str = field(default_factory=lambda: os.getenv("TXN_DEFAULT_CURRENCY", "PKR"))


@dataclass(frozen=True)
class ProviderRule:
    label: str
    keywords: Tuple[str, ...]
    requires_any: Tuple[str, ...] = ()


@dataclass(frozen=True)
class KeywordTables:
    """Lookup tables that drive every keyword-based decision in the engine."""
    banks: Dict[str, Tuple[str, ...]]
    iban_bank_codes: Dict[str, str]
    generic_bank_words: Tuple[str, ...]
    transaction_types: Dict[str, Tuple[str, ...]]
    branch_keywords: Dict[str, Tuple[str, ...]]
    header_markers: Dict[str, Tuple[str, ...]]
    currencies: Tuple[str, ...]
    providers: Tuple[ProviderRule, ...]
    section_labels: Dict[str, Tuple[str, ...]]
    name_exclusions: frozenset
    status_phrases: Dict[str, Tuple[str, ...]]
    document_types: Dict[str, Tuple[str, ...]]

    def canonical_bank(self, alias: str) -> Optional[str]:
        needle = (alias or "").strip().lower()
        for canonical, aliases in self.banks.items():
            if needle == canonical.lower() or needle in aliases:
                return canonical
        return None


def _tuple_map(raw: Dict[str, List[str]]) -> Dict[str, Tuple[str, ...]]:
    return {key: tuple(values) for key, values in raw.items()}


@lru_cache(maxsize=8)
def load_keyword_tables(path: Optional[str] = None) -> KeywordTables:
    """Load the keyword tables from JSON (package default when path is None)."""
    source = path or DEFAULT_KEYWORDS_PATH
    with open(source, "r", encoding="utf-8") as fh:
        raw = json.load(fh)
    logger.debug(f"Loaded keyword tables from {source}")

    providers = tuple(
        ProviderRule(
            label=entry["label"],
            keywords=tuple(k.lower() for k in entry.get("keywords", [])),
            requires_any=tuple(k.lower() for k in entry.get("requires_any", [])),
        )
        for entry in raw.get("providers", [])
    )
    return KeywordTables(
        banks={name: tuple(a.lower() for a in aliases) for name, aliases in raw.get("banks", {}).items()},
        iban_bank_codes={code.upper(): name for code, name in raw.get("iban_bank_codes", {}).items()},
        generic_bank_words=tuple(raw.get("generic_bank_words", [])),
        transaction_types=_tuple_map(raw.get("transaction_types", {})),
        branch_keywords=_tuple_map(raw.get("branch_keywords", {})),
        header_markers=_tuple_map(raw.get("header_markers", {})),
        currencies=tuple(raw.get("currencies", [])),
        providers=providers,
        section_labels=_tuple_map(raw.get("section_labels", {})),
        name_exclusions=frozenset(w.upper() for w in raw.get("name_exclusions", [])),
        status_phrases={k: tuple(p.lower() for p in v) for k, v in raw.get("status_phrases", {}).items()},
        document_types={k: tuple(p.lower() for p in v) for k, v in raw.get("document_types", {}).items()},
    )


def get_keyword_tables(settings: Optional[ExtractionSettings] = None) -> KeywordTables:
    path = settings.keywords_path if settings is not None else None
    return load_keyword_tables(path)
