"""Position-based receipt extractor for unrecognized providers.

Names are ALL-CAPS multi-word lines outside the label vocabulary; their
from/to roles come from the section markers (see ``roles``).
"""
import logging
import re
from typing import List, Optional, Sequence

from ..config import KeywordTables, load_keyword_tables
from ..models import Line, PaymentReceiptRecord
from ..segmentation import SectionDetector
from .fields import assign_contacts
from .roles import Candidate, assign_name_roles

logger = logging.getLogger(__name__)

NAME_LINE = re.compile(r"^[A-Z][A-Z.\s]+$")


def is_excluded_name(text: str, exclusions: frozenset) -> bool:
    return any(word.strip(".:") in exclusions for word in text.upper().split())


def name_candidates(lines: Sequence[Line], exclusions: frozenset) -> List[Candidate]:
    """ALL-CAPS lines of at least two words that are not label vocabulary."""
    found: List[Candidate] = []
    for line in lines:
        text = line.text.strip()
        if len(text) <= 3 or not NAME_LINE.match(text):
            continue
        if len(text.split()) < 2 or is_excluded_name(text, exclusions):
            continue
        found.append((line.index, text))
    return found


def parse_generic_receipt(lines: Sequence[Line], record: PaymentReceiptRecord,
                          tables: Optional[KeywordTables] = None, debug: bool = False) -> PaymentReceiptRecord:
    tables = tables or load_keyword_tables()
    sections = SectionDetector(tables, debug=debug).detect(lines)
    candidates = name_candidates(lines, tables.name_exclusions)
    from_name, to_name = assign_name_roles(candidates, sections)
    record.from_name = from_name
    record.to_name = to_name

    assign_contacts(
        lines, record,
        tables.section_labels.get("from", ()),
        tables.section_labels.get("to", ()),
    )

    if debug:
        logger.info(f"GENERIC PARSER: {len(candidates)} name candidates, from={from_name!r} to={to_name!r}")
    return record
