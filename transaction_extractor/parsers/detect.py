"""Provider and document-type classification.

Both classifiers are keyword driven and state free: the provider detector
walks the configured provider list in priority order (brand keywords before
transfer-scheme keywords) and the document-type detector scores indicator
phrases for each document type.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from fuzzywuzzy import fuzz

from ..config import KeywordTables, load_keyword_tables
from ..models import Line
from ..utils import join_lines

logger = logging.getLogger(__name__)

UNKNOWN_PROVIDER = "Unknown"
BANK_STATEMENT = "bank_statement"
MOBILE_PAYMENT = "mobile_payment"

FUZZY_KEYWORD_MIN_LENGTH = 7
FUZZY_KEYWORD_RATIO = 88


@dataclass
class ProviderInfo:
    """Result of provider classification."""
    label: str
    confidence: float  # 0.0 to 1.0
    matched_keywords: List[str] = field(default_factory=list)
    fuzzy: bool = False


class ProviderDetector:
    """Classify the issuing service of a payment receipt."""

    def __init__(self, tables: Optional[KeywordTables] = None, debug: bool = False):
        self.tables = tables or load_keyword_tables()
        self.debug = debug

    def detect(self, lines: Sequence[Line]) -> str:
        return self.detect_detailed(lines).label

    def detect_detailed(self, lines: Sequence[Line]) -> ProviderInfo:
        text = join_lines(lines or []).lower()

        for rule in self.tables.providers:
            hits = [k for k in rule.keywords if k in text]
            if not hits:
                continue
            if rule.requires_any and not any(k in text for k in rule.requires_any):
                continue
            if self.debug:
                logger.info(f"Provider detected: {rule.label} (keywords: {hits})")
            return ProviderInfo(label=rule.label, confidence=0.95, matched_keywords=hits)

        # OCR-garbled brand names, e.g. "JazzCasb"
        words = sorted(set(text.split()))
        for rule in self.tables.providers:
            for keyword in rule.keywords:
                if " " in keyword or len(keyword) < FUZZY_KEYWORD_MIN_LENGTH:
                    continue
                for word in words:
                    if fuzz.ratio(word, keyword) >= FUZZY_KEYWORD_RATIO:
                        if self.debug:
                            logger.info(f"Provider detected (fuzzy): {rule.label} ({word!r} ~ {keyword!r})")
                        return ProviderInfo(label=rule.label, confidence=0.75, matched_keywords=[word], fuzzy=True)

        if self.debug:
            logger.info("No provider keywords found")
        return ProviderInfo(label=UNKNOWN_PROVIDER, confidence=0.0)


def detect_provider(lines: Sequence[Line], tables: Optional[KeywordTables] = None) -> str:
    return ProviderDetector(tables).detect(lines)


def document_type_scores(text: str, tables: Optional[KeywordTables] = None) -> Dict[str, int]:
    """Indicator phrases found per document type, weighted by phrase word count."""
    tables = tables or load_keyword_tables()
    lowered = (text or "").lower()
    return {
        doc_type: sum(len(phrase.split()) for phrase in phrases if phrase in lowered)
        for doc_type, phrases in tables.document_types.items()
    }


def detect_document_type(text: str, tables: Optional[KeywordTables] = None) -> str:
    """Return 'bank_statement' or 'mobile_payment'; ties go to bank_statement."""
    scores = document_type_scores(text, tables)
    statement = scores.get(BANK_STATEMENT, 0)
    payment = scores.get(MOBILE_PAYMENT, 0)
    doc_type = MOBILE_PAYMENT if payment > statement else BANK_STATEMENT
    logger.debug(f"Document type scores {scores} -> {doc_type}")
    return doc_type
