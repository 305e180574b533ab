"""EasyPaisa receipt extractor: "Sent by" / "Sent to" sections, ID# reference."""
import logging
import re
from typing import Sequence

from ..models import Line, PaymentReceiptRecord
from ..utils import parse_amount_safe
from .fields import BARE_NUMBER_LINE, assign_contacts, line_after

logger = logging.getLogger(__name__)

FROM_LABELS = ("Sent by",)
TO_LABELS = ("Sent to",)

ID_PATTERN = re.compile(r"ID#\s*(\d+)", re.IGNORECASE)


def parse_easypaisa(lines: Sequence[Line], record: PaymentReceiptRecord, debug: bool = False) -> PaymentReceiptRecord:
    id_found = False
    for pos, line in enumerate(lines):
        m = ID_PATTERN.search(line.text)
        if m and not id_found:
            record.transaction_id = m.group(1)
            id_found = True
        # amount sits on the line below its label
        if "amount" in line.text.lower() and "total" not in line.text.lower() and pos + 1 < len(lines):
            m = BARE_NUMBER_LINE.match(lines[pos + 1].text)
            if m and parse_amount_safe(m.group(1)):
                record.amount = parse_amount_safe(m.group(1))

    _, to_name = line_after(lines, TO_LABELS)
    _, from_name = line_after(lines, FROM_LABELS)
    record.to_name = to_name or record.to_name
    record.from_name = from_name or record.from_name

    assign_contacts(lines, record, FROM_LABELS, TO_LABELS)

    if debug:
        logger.info(f"EASYPAISA PARSER: from={record.from_name!r} to={record.to_name!r} amount={record.amount}")
    return record
