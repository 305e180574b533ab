"""Meezan Bank transfer receipt extractor."""
import logging
import re
from typing import Sequence

from ..models import Line, PaymentReceiptRecord
from ..utils import parse_amount_safe
from .fields import NUMBER, assign_contacts, line_after

logger = logging.getLogger(__name__)

FROM_LABELS = ("From", "TA")
TO_LABELS = ("To", "Current Account")

AMOUNT_PATTERN = re.compile(r"PKR\s*" + NUMBER, re.IGNORECASE)
ACCOUNT_LINE = re.compile(r"^\d{14,}$")


def parse_meezan(lines: Sequence[Line], record: PaymentReceiptRecord, debug: bool = False) -> PaymentReceiptRecord:
    """Sender follows the "TA" marker; receiver is two lines below "Current Account"."""
    amount_found = False
    accounts = []
    for line in lines:
        text = line.text
        if not amount_found and "PKR" in text.upper() and "fee" not in text.lower():
            m = AMOUNT_PATTERN.search(text)
            if m and parse_amount_safe(m.group(1)):
                record.amount = parse_amount_safe(m.group(1))
                amount_found = True
        if ACCOUNT_LINE.match(text):
            accounts.append(text)

    _, from_name = line_after(lines, ("TA",))
    _, to_name = line_after(lines, ("Current Account",), offset=2)
    record.from_name = from_name or record.from_name
    record.to_name = to_name or record.to_name

    if accounts:
        record.from_account = accounts[0]
    if len(accounts) > 1:
        record.to_account = accounts[1]
    assign_contacts(lines, record, FROM_LABELS, TO_LABELS)

    if debug:
        logger.info(f"MEEZAN PARSER: from={record.from_name!r} to={record.to_name!r} accounts={accounts}")
    return record
