"""Bank Alfalah (Alfa app) transfer receipt extractor.

The sender name follows the "Transaction type" label. The receiver is the
first plausible line after the sender name reappears, skipping masked
account lines and the purpose field.
"""
import logging
import re
from typing import Sequence

from ..models import Line, PaymentReceiptRecord
from ..utils import parse_amount_safe
from .fields import NUMBER, assign_contacts, line_after

logger = logging.getLogger(__name__)

FROM_LABELS = ("From", "Transaction type")
TO_LABELS = ("To",)

REF_PATTERN = re.compile(r"Ref#\s*(\d+)", re.IGNORECASE)
DATE_PATTERN = re.compile(r"\d{1,2}-[A-Za-z]{3}-\d{4}")
TIME_PATTERN = re.compile(r"\d{1,2}:\d{2}(?::\d{2})?\s*(?:AM|PM)?", re.IGNORECASE)
AMOUNT_PATTERN = re.compile(r"PKR\s*" + NUMBER, re.IGNORECASE)


def _receiver_after(lines: Sequence[Line], sender: str) -> str:
    for pos, line in enumerate(lines):
        if line.text != sender or pos == 0:
            continue
        # first occurrence is the one right after the label
        if lines[pos - 1].text.lower() == "transaction type":
            continue
        for candidate in lines[pos + 1:]:
            text = candidate.text
            if len(text) > 3 and not text.startswith("*") and "others" not in text.lower():
                return text
    return ""


def parse_alfalah(lines: Sequence[Line], record: PaymentReceiptRecord, debug: bool = False) -> PaymentReceiptRecord:
    ref_found = date_found = amount_found = False
    for line in lines:
        text = line.text
        m = REF_PATTERN.search(text)
        if m and not ref_found:
            record.transaction_id = m.group(1)
            ref_found = True
        m = DATE_PATTERN.search(text)
        if m and not date_found:
            record.date = m.group(0)
            tail = TIME_PATTERN.search(text[m.end():])
            if tail:
                record.time = tail.group(0).strip()
            date_found = True
        if not amount_found and "fee" not in text.lower():
            m = AMOUNT_PATTERN.search(text)
            if m and parse_amount_safe(m.group(1)):
                record.amount = parse_amount_safe(m.group(1))
                amount_found = True

    _, sender = line_after(lines, ("Transaction type",))
    if sender:
        record.from_name = sender
        record.to_name = _receiver_after(lines, sender) or record.to_name

    assign_contacts(lines, record, FROM_LABELS, TO_LABELS)

    if debug:
        logger.info(f"ALFALAH PARSER: from={record.from_name!r} to={record.to_name!r} ref={record.transaction_id!r}")
    return record
