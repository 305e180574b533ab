"""Field scanners shared by every receipt extractor."""
import re
from typing import List, Optional, Sequence, Tuple

from ..config import KeywordTables
from ..models import Line, PaymentReceiptRecord
from ..patterns import MASKED_IBAN_PATTERN, LONG_DIGITS_PATTERN, MOBILE_PATTERN, INTERNATIONAL_PATTERN
from ..utils import join_lines, parse_amount_safe
from .roles import Candidate, assign_by_section

NUMBER = r"(\d{1,3}(?:,\d{3})+(?:\.\d{1,2})?|\d+(?:\.\d{1,2})?)"

AMOUNT_PATTERNS = [
    re.compile(r"(?<![A-Za-z])Rs\.?\s*" + NUMBER, re.IGNORECASE),
    re.compile(r"(?<![A-Za-z])PKR\s*" + NUMBER, re.IGNORECASE),
    re.compile(r"(?<![A-Za-z])Amount\s*[:\-]?\s*(?:Rs\.?|PKR)?\s*" + NUMBER, re.IGNORECASE),
]
BARE_NUMBER_LINE = re.compile(r"^" + NUMBER + r"$")
AMOUNT_LABEL_LINE = re.compile(r"^(?:Amount|PKR|Rs\.?)\s*:?$", re.IGNORECASE)
FEE_PATTERN = re.compile(r"Fee\s*[:\-]?\s*(?:Rs\.?|PKR)?\s*" + NUMBER, re.IGNORECASE)
TOTAL_PATTERN = re.compile(r"Total\s*(?:Amount)?\s*[:\-]?\s*(?:Rs\.?|PKR)?\s*" + NUMBER, re.IGNORECASE)

TRANSACTION_ID_PATTERNS = [
    re.compile(r"TID[:#]?\s*(\d+)", re.IGNORECASE),
    re.compile(r"(?<![A-Za-z])ID#\s*(\d+)", re.IGNORECASE),
    re.compile(r"Ref#\s*(\d+)", re.IGNORECASE),
    re.compile(r"Transaction\s*ID\s*[:#]?\s*([A-Za-z0-9]+)", re.IGNORECASE),
]

DATE_PATTERNS = [
    re.compile(r"(\d{1,2}\s+(?:January|February|March|April|May|June|July|August|September|"
               r"October|November|December)\s+\d{4})", re.IGNORECASE),
    re.compile(r"(\d{1,2}/\d{1,2}/\d{4})"),
    re.compile(r"On\s+([A-Za-z]+\s+\d{1,2},\s+\d{4})", re.IGNORECASE),
    re.compile(r"(\d{1,2}-[A-Za-z]{3}-\d{4})"),
]
TIME_PATTERNS = [
    re.compile(r"(\d{1,2}:\d{2}(?::\d{2})?\s*(?:AM|PM))", re.IGNORECASE),
    re.compile(r"(\d{1,2}:\d{2}(?::\d{2})?)"),
]


def _excluded_line(text: str) -> bool:
    lowered = text.lower()
    return "fee" in lowered or "total" in lowered


def find_amount(lines: Sequence[Line]) -> float:
    """Principal amount; Fee and Total lines are never the principal."""
    for pos, line in enumerate(lines):
        if _excluded_line(line.text):
            continue
        for regex in AMOUNT_PATTERNS:
            m = regex.search(line.text)
            if m:
                value = parse_amount_safe(m.group(1))
                if value:
                    return value
        # label on its own line, value on the next
        if AMOUNT_LABEL_LINE.match(line.text) and pos + 1 < len(lines):
            nxt = BARE_NUMBER_LINE.match(lines[pos + 1].text)
            if nxt:
                value = parse_amount_safe(nxt.group(1))
                if value:
                    return value
    return 0.0


def find_fee(text: str) -> float:
    m = FEE_PATTERN.search(text)
    return (parse_amount_safe(m.group(1)) or 0.0) if m else 0.0


def find_total(text: str, amount: float, fee: float) -> float:
    m = TOTAL_PATTERN.search(text)
    if m:
        value = parse_amount_safe(m.group(1))
        if value:
            return value
    return amount + fee


def find_transaction_id(text: str) -> str:
    for regex in TRANSACTION_ID_PATTERNS:
        m = regex.search(text)
        if m:
            return m.group(1)
    # bank transfers without an ID carry the full account number instead
    m = LONG_DIGITS_PATTERN.search(text)
    return m.group(0) if m else ""


def find_date(text: str) -> str:
    for regex in DATE_PATTERNS:
        m = regex.search(text)
        if m:
            return m.group(1)
    return ""


def find_time(text: str) -> str:
    for regex in TIME_PATTERNS:
        m = regex.search(text)
        if m:
            return m.group(1)
    return ""


def find_status(text: str, tables: KeywordTables) -> str:
    """Failure wording is checked before success wording; default is Success."""
    lowered = text.lower()
    for status in ("Failed", "Pending", "Success"):
        if any(phrase in lowered for phrase in tables.status_phrases.get(status, ())):
            return status
    return "Success"


def find_currency(text: str, tables: KeywordTables, default: str = "PKR") -> str:
    for code in tables.currencies:
        if re.search(r"(?<![A-Za-z])" + re.escape(code) + r"(?![A-Za-z])", text):
            return code
    if re.search(r"(?<![A-Za-z])Rs\.?(?![A-Za-z])", text):
        return "PKR"
    return default


def phone_candidates(lines: Sequence[Line]) -> List[Candidate]:
    found: List[Candidate] = []
    for line in lines:
        for m in MOBILE_PATTERN.finditer(line.text):
            found.append((line.index, m.group(0).replace("-", "")))
        for m in INTERNATIONAL_PATTERN.finditer(line.text):
            found.append((line.index, "0" + m.group(1) + m.group(2)))
    return found


def account_candidates(lines: Sequence[Line]) -> List[Candidate]:
    found: List[Candidate] = []
    for line in lines:
        for regex in (MASKED_IBAN_PATTERN, LONG_DIGITS_PATTERN):
            for m in regex.finditer(line.text):
                found.append((line.index, m.group(0)))
    return found


def line_after(lines: Sequence[Line], labels: Sequence[str], offset: int = 1) -> Tuple[Optional[int], str]:
    """Text of the line ``offset`` lines after the first line equal to a label."""
    wanted = {label.lower() for label in labels}
    for pos, line in enumerate(lines):
        if line.text.strip().rstrip(":").lower() in wanted and pos + offset < len(lines):
            target = lines[pos + offset]
            return target.index, target.text
    return None, ""


def assign_contacts(lines: Sequence[Line], record: PaymentReceiptRecord,
                    from_labels: Sequence[str], to_labels: Sequence[str]) -> None:
    """Fill phone and account roles that are still empty."""
    from_phone, to_phone = assign_by_section(phone_candidates(lines), lines, from_labels, to_labels)
    record.from_phone = record.from_phone or from_phone
    record.to_phone = record.to_phone or to_phone

    from_account, to_account = assign_by_section(account_candidates(lines), lines, from_labels, to_labels)
    record.from_account = record.from_account or from_account
    record.to_account = record.to_account or to_account


def extract_common_fields(lines: Sequence[Line], record: PaymentReceiptRecord,
                          tables: KeywordTables, default_currency: str = "PKR") -> PaymentReceiptRecord:
    """Provider-independent fields; provider extractors may override afterwards."""
    text = join_lines(lines)
    record.transaction_id = find_transaction_id(text)
    record.date = find_date(text)
    record.time = find_time(text)
    record.amount = find_amount(lines)
    record.fee = find_fee(text)
    record.total_amount = find_total(text, record.amount, record.fee)
    record.status = find_status(text, tables)
    record.currency = find_currency(text, tables, default_currency)
    return record
