"""JazzCash receipt extractor.

JazzCash receipts put the counterparty name on the line directly after a
bare "To" / "From" label and print the timestamp as "On Month DD, YYYY at HH:MM".
"""
import logging
import re
from typing import Sequence

from ..models import Line, PaymentReceiptRecord
from ..utils import parse_amount_safe
from .fields import NUMBER, assign_contacts, line_after

logger = logging.getLogger(__name__)

FROM_LABELS = ("From",)
TO_LABELS = ("To",)

TID_PATTERN = re.compile(r"TID:\s*(\d+)", re.IGNORECASE)
ON_AT_PATTERN = re.compile(r"On\s+([A-Za-z]+\s+\d{1,2},\s+\d{4})\s+at\s+(\d{1,2}:\d{2}(?:\s*[AP]M)?)", re.IGNORECASE)
AMOUNT_PATTERN = re.compile(r"Rs\.\s*" + NUMBER)


def parse_jazzcash(lines: Sequence[Line], record: PaymentReceiptRecord, debug: bool = False) -> PaymentReceiptRecord:
    amount_found = False
    for line in lines:
        text = line.text
        if "TID" in text.upper():
            m = TID_PATTERN.search(text)
            if m:
                record.transaction_id = m.group(1)
        m = ON_AT_PATTERN.search(text)
        if m:
            record.date, record.time = m.group(1), m.group(2)
        if not amount_found and "fee" not in text.lower() and "total" not in text.lower():
            m = AMOUNT_PATTERN.search(text)
            if m and parse_amount_safe(m.group(1)):
                record.amount = parse_amount_safe(m.group(1))
                amount_found = True

    _, to_name = line_after(lines, TO_LABELS)
    _, from_name = line_after(lines, FROM_LABELS)
    record.to_name = to_name or record.to_name
    record.from_name = from_name or record.from_name

    assign_contacts(lines, record, FROM_LABELS, TO_LABELS)

    if debug:
        logger.info(f"JAZZCASH PARSER: from={record.from_name!r} to={record.to_name!r} amount={record.amount}")
    return record
