"""Structural segmentation strategies.

Bank statements are cut into transaction boundaries either by detecting
transaction-start lines (``BoundarySegmenter``) or by greedy clustering around
amount tokens (``ProximityClusterSegmenter``). Payment receipts are split into
named sections by ``SectionDetector``.
"""
import logging
from typing import Dict, List, Optional, Sequence, Set, Tuple, Type

from fuzzywuzzy import fuzz

from .config import KeywordTables, SegmentationSettings, load_keyword_tables
from .models import Boundary, Line, PatternToken, ReceiptSections
from .patterns import tokens_in_range
from .reconstruction import AmountPolicy

logger = logging.getLogger(__name__)

TokenMap = Dict[str, List[PatternToken]]

FUZZY_LABEL_MIN_LENGTH = 5
FUZZY_LABEL_RATIO = 90


def _flatten(tokens: TokenMap) -> List[PatternToken]:
    return [t for items in tokens.values() for t in items]


class SegmentationStrategy:
    """Base class for bank-statement segmenters."""

    name = "base"

    def __init__(self, policy: Optional[AmountPolicy] = None,
                 settings: Optional[SegmentationSettings] = None,
                 tables: Optional[KeywordTables] = None, debug: bool = False):
        self.policy = policy or AmountPolicy()
        self.settings = settings or SegmentationSettings()
        self.tables = tables or load_keyword_tables()
        self.debug = debug

    def segment(self, lines: Sequence[Line], tokens: TokenMap) -> List[Boundary]:
        raise NotImplementedError


class BoundarySegmenter(SegmentationStrategy):
    """Cut the line sequence at high-confidence transaction-start lines."""

    name = "boundary"

    def candidate_starts(self, tokens: TokenMap) -> List[int]:
        threshold = self.settings.start_confidence
        candidates = []
        for token in tokens.get("date", []):
            if token.confidence > threshold and not self._is_header(token, "date"):
                candidates.append(token.source_line_index)
        for token in tokens.get("transactionType", []):
            if (token.pattern == "specific" and token.confidence > threshold
                    and not self._is_header(token, "transactionType")):
                candidates.append(token.source_line_index)
        for token in tokens.get("amount", []):
            if (token.confidence > threshold
                    and self.policy.categorize(token.normalized_value) == "deposit"
                    and not self._is_header(token, "amount")):
                candidates.append(token.source_line_index)
        return sorted(set(candidates))

    def accepted_starts(self, tokens: TokenMap) -> List[int]:
        accepted: List[int] = []
        for start in self.candidate_starts(tokens):
            if not accepted or start - accepted[-1] > self.settings.min_separation:
                accepted.append(start)
        return accepted

    def segment(self, lines: Sequence[Line], tokens: TokenMap) -> List[Boundary]:
        starts = self.accepted_starts(tokens)
        boundaries = []
        for pos, start in enumerate(starts):
            end = starts[pos + 1] if pos + 1 < len(starts) else len(lines)
            members = _flatten(tokens_in_range(tokens, start, end))
            boundaries.append(Boundary(start_index=start, end_index=end, member_tokens=members))
        if self.debug:
            logger.info(f"Boundary segmentation: {len(boundaries)} boundaries at lines {starts}")
        return boundaries

    def _is_header(self, token: PatternToken, category: str) -> bool:
        text = token.line_text.lower()
        return any(marker.lower() in text for marker in self.tables.header_markers.get(category, ()))


class ProximityClusterSegmenter(SegmentationStrategy):
    """Greedy clustering around amount tokens; first-seen amount wins."""

    name = "proximity"

    def segment(self, lines: Sequence[Line], tokens: TokenMap) -> List[Boundary]:
        radius = self.settings.cluster_radius
        consumed: Set[Tuple[str, int]] = set()
        clusters = []

        for seed_pos, seed in enumerate(tokens.get("amount", [])):
            if ("amount", seed_pos) in consumed:
                continue
            consumed.add(("amount", seed_pos))
            members = [seed]
            for category, items in tokens.items():
                for pos, token in enumerate(items):
                    key = (category, pos)
                    if key in consumed:
                        continue
                    if abs(token.source_line_index - seed.source_line_index) <= radius:
                        consumed.add(key)
                        members.append(token)

            indices = [t.source_line_index for t in members]
            clusters.append(Boundary(start_index=min(indices), end_index=max(indices) + 1, member_tokens=members))

        if self.debug:
            logger.info(f"Proximity clustering (radius {radius}): {len(clusters)} clusters")
        return clusters


SEGMENTERS: Dict[str, Type[SegmentationStrategy]] = {
    BoundarySegmenter.name: BoundarySegmenter,
    ProximityClusterSegmenter.name: ProximityClusterSegmenter,
}


def get_segmenter(name: str = "boundary", **kwargs) -> SegmentationStrategy:
    """Instantiate a segmentation strategy by name ('boundary' or 'proximity')."""
    try:
        cls = SEGMENTERS[(name or "boundary").lower()]
    except KeyError:
        raise ValueError(f"Unknown segmentation strategy: {name!r}") from None
    return cls(**kwargs)


class SectionDetector:
    """Locate receipt section markers (From/To/Amount/Date/Transaction ID)."""

    FIELD_FOR_GROUP = {
        "from": "from_index",
        "to": "to_index",
        "amount": "amount_index",
        "date": "date_index",
        "transactionId": "transaction_id_index",
    }

    def __init__(self, tables: Optional[KeywordTables] = None, debug: bool = False):
        self.tables = tables or load_keyword_tables()
        self.debug = debug

    def detect(self, lines: Sequence[Line]) -> ReceiptSections:
        sections = ReceiptSections()
        for group, attr in self.FIELD_FOR_GROUP.items():
            labels = self.tables.section_labels.get(group, ())
            for line in lines:
                if any(self.matches_label(line.text, label) for label in labels):
                    setattr(sections, attr, line.index)
                    break
        if self.debug:
            logger.info(f"Receipt sections: {sections.to_dict()}")
        return sections

    @staticmethod
    def matches_label(text: str, label: str) -> bool:
        """Exact (case-insensitive, optional ':') or prefixed match; fuzzy for long labels."""
        line = text.strip().lower()
        wanted = label.strip().lower()
        bare = wanted.rstrip(":")
        if line.rstrip(":").strip() == bare:
            return True
        if not bare[-1:].isalnum():
            # labels such as "ID#" or "Rs." run straight into their value
            if line.startswith(bare):
                return True
        elif line.startswith(bare + " ") or line.startswith(bare + ":"):
            return True
        if len(bare) >= FUZZY_LABEL_MIN_LENGTH:
            return fuzz.ratio(line.rstrip(":").strip(), bare) >= FUZZY_LABEL_RATIO
        return False
