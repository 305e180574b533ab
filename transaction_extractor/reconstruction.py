"""Field reconstruction: turns a boundary's tokens into a Transaction and the
whole document's tokens into an AccountInfo header."""
import logging
import re
from typing import Dict, List, Optional, Sequence, Tuple

from .config import AmountThresholds, KeywordTables, SegmentationSettings, load_keyword_tables
from .models import AccountInfo, Boundary, Line, PatternToken, Transaction
from .utils import parse_date_flexible

logger = logging.getLogger(__name__)

FULL_ACCOUNT_PATTERN = re.compile(r"^PK\d{2}[A-Z]{4}\d{10,}$")
NUMERIC_PART_PATTERN = re.compile(r"\d{6,}")
RECONSTRUCTED_CONFIDENCE = 0.85


class AmountPolicy:
    """Magnitude-based amount categorization with injectable thresholds."""

    def __init__(self, thresholds: Optional[AmountThresholds] = None):
        self.thresholds = thresholds or AmountThresholds()

    def categorize(self, value) -> Optional[str]:
        """Return 'withdrawal', 'deposit', 'balance' or None for an amount."""
        if value is None:
            return None
        try:
            value = float(value)
        except (TypeError, ValueError):
            return None
        t = self.thresholds
        if 0 <= value <= t.withdrawal_ceiling:
            return "withdrawal"
        if value >= t.balance_floor:
            return "balance"
        if value >= t.deposit_floor:
            return "deposit"
        return None


def rank_tokens(tokens: Sequence[PatternToken]) -> List[PatternToken]:
    # sorted() is stable, so equal confidence keeps document order
    return sorted(tokens, key=lambda t: t.confidence, reverse=True)


def reconstruct_account_number(partial: str, lines: Sequence[Line], line_index: int,
                               before: int = 5, after: int = 10,
                               raw_partial: Optional[str] = None) -> Optional[str]:
    """Join a truncated PK account with a numeric continuation from nearby lines.

    Lines in [line_index - before, line_index + after) are searched for runs
    of six or more digits; the first combination that forms a full
    ``PK`` + 2 digits + 4 letters + 10 or more digits account wins.
    Returns None when nothing validates.
    """
    if not partial:
        return None
    stem = re.sub(r"\d+$", "", partial)
    trailing = partial[len(stem):]
    lo = max(0, line_index - before)
    hi = min(len(lines), line_index + after)
    for i in range(lo, hi):
        text = lines[i].text
        if i == line_index:
            # the partial's own digits are not a continuation of itself
            text = text.replace(raw_partial or partial, " ")
        for part in NUMERIC_PART_PATTERN.findall(text):
            combos = [partial + part, stem + part, partial + part[:6], partial + part[:8]]
            if trailing and part.startswith(trailing):
                # continuation repeats the digits already on the partial
                combos.insert(0, combos.pop(1))
            for combo in combos:
                if FULL_ACCOUNT_PATTERN.match(combo):
                    return combo
    return None


def resolve_accounts(tokens: Sequence[PatternToken], lines: Sequence[Line],
                     settings: Optional[SegmentationSettings] = None,
                     debug: bool = False) -> List[str]:
    """Rank account tokens, reconstructing split PK accounts; distinct values, best first."""
    settings = settings or SegmentationSettings()
    scored: List[Tuple[float, str]] = []
    for token in tokens:
        value = str(token.normalized_value)
        confidence = token.confidence
        if token.pattern == "iban_fragment":
            full = reconstruct_account_number(
                value, lines, token.source_line_index,
                before=settings.account_window_before,
                after=settings.account_window_after,
                raw_partial=token.raw_value,
            )
            if full:
                if debug:
                    logger.info(f"Reconstructed account {token.raw_value} -> {full}")
                value, confidence = full, RECONSTRUCTED_CONFIDENCE
            elif debug:
                logger.info(f"Keeping partial account {value}")
        scored.append((confidence, value))

    ordered: List[str] = []
    for _, value in sorted(scored, key=lambda pair: pair[0], reverse=True):
        if value not in ordered:
            ordered.append(value)
    return ordered


class TransactionBuilder:
    """Select the best token per field inside one boundary."""

    def __init__(self, policy: Optional[AmountPolicy] = None,
                 settings: Optional[SegmentationSettings] = None, debug: bool = False):
        self.policy = policy or AmountPolicy()
        self.settings = settings or SegmentationSettings()
        self.debug = debug

    def build(self, boundary: Boundary, lines: Sequence[Line]) -> Optional[Transaction]:
        """Return a Transaction, or None when every amount resolves to zero."""
        txn = Transaction()

        dates = rank_tokens(boundary.tokens("date"))
        if dates:
            txn.txn_date = str(dates[0].normalized_value)
            txn.value_date = str(dates[1].normalized_value) if len(dates) > 1 else txn.txn_date

        types = boundary.tokens("transactionType")
        specific = [t for t in types if t.pattern == "specific"]
        ranked_types = rank_tokens(specific or types)
        if ranked_types:
            txn.txn_type = ranked_types[0].raw_value

        references = boundary.tokens("reference")
        ranked_refs = rank_tokens(references)
        if ranked_refs:
            txn.transaction_ref = ranked_refs[0].raw_value
        elif ranked_types:
            txn.transaction_ref = ranked_types[0].raw_value
        txn.narration = " ".join(t.raw_value for t in references)

        banks = rank_tokens(boundary.tokens("bankName"))
        if banks:
            txn.remitter_bank = str(banks[0].normalized_value)

        branches = rank_tokens(boundary.tokens("branch"))
        if branches:
            txn.branch_name = str(branches[0].normalized_value)

        accounts = resolve_accounts(boundary.tokens("accountNumber"), lines, self.settings, self.debug)
        if accounts:
            txn.source_account = accounts[0]
        if len(accounts) > 1:
            txn.destination_account = accounts[1]

        self._assign_amounts(txn, boundary.tokens("amount"))

        end = min(boundary.end_index, len(lines))
        txn.raw_line = " | ".join(line.text for line in lines[boundary.start_index:end])

        if not txn.is_meaningful():
            if self.debug:
                logger.info(f"Dropping all-zero boundary at lines {boundary.start_index}-{boundary.end_index}")
            return None
        return txn

    def _assign_amounts(self, txn: Transaction, amounts: Sequence[PatternToken]) -> None:
        buckets: Dict[str, List[float]] = {"withdrawal": [], "deposit": [], "balance": []}
        for token in amounts:
            category = self.policy.categorize(token.normalized_value)
            if category:
                buckets[category].append(float(token.normalized_value))
        txn.withdrawal = max(buckets["withdrawal"]) if buckets["withdrawal"] else 0.0
        txn.deposit = min(buckets["deposit"]) if buckets["deposit"] else 0.0
        txn.balance = min(buckets["balance"]) if buckets["balance"] else 0.0


_DATE_VALUE = r"(\d{1,2}[-/ ][A-Za-z]{3,9}[-/ ,]+\d{4}|\d{1,2}/\d{1,2}/\d{4}|\d{4}-\d{2}-\d{2})"

HEADER_LABELS: Dict[str, re.Pattern] = {
    "account_title": re.compile(r"^Account\s*Title\s*[:\-]?\s*(.*)$", re.IGNORECASE),
    "account_type": re.compile(r"^Account\s*Type\s*[:\-]?\s*(.*)$", re.IGNORECASE),
    "account_number": re.compile(
        r"^(?:Account\s*(?:No\.?|Number|#)\s*[:\-]?|IBAN\s*[:\-]?|Account\s*:)\s*([A-Z0-9*][A-Z0-9* ]*)?$",
        re.IGNORECASE),
    "currency": re.compile(r"^Currency\s*[:\-]?\s*(?:([A-Za-z]{3})(?![A-Za-z]).*)?$", re.IGNORECASE),
    "from_date": re.compile(r"From\s*Date\s*[:\-]?\s*" + _DATE_VALUE + "?", re.IGNORECASE),
    "to_date": re.compile(r"To\s*Date\s*[:\-]?\s*" + _DATE_VALUE + "?", re.IGNORECASE),
    "statement_date": re.compile(
        r"Statement\s*Date(?:\s*&\s*Time)?\s*[:\-]?\s*(.*)$", re.IGNORECASE),
}
STATEMENT_PERIOD = re.compile(
    r"(?:Statement\s*)?Period\s*[:\-]?\s*" + _DATE_VALUE + r"\s*(?:to|-)\s*" + _DATE_VALUE, re.IGNORECASE)


def _labelled_value(lines: Sequence[Line], key: str) -> str:
    """Value after a header label, or on the following line when the label stands alone."""
    regex = HEADER_LABELS[key]
    for pos, line in enumerate(lines):
        m = regex.search(line.text)
        if not m:
            continue
        value = (m.group(1) or "").strip()
        if not value and pos + 1 < len(lines):
            value = lines[pos + 1].text.strip()
            if key in ("from_date", "to_date"):
                nested = re.search(_DATE_VALUE, value)
                value = nested.group(1) if nested else ""
            elif key == "currency":
                value = value[:3] if re.match(r"^[A-Za-z]{3}\b", value) else ""
        if value:
            return value
    return ""


def _as_date(value: str) -> str:
    if not value:
        return ""
    return parse_date_flexible(value) or value


def extract_account_info(lines: Sequence[Line], tokens: Dict[str, List[PatternToken]],
                         tables: Optional[KeywordTables] = None,
                         settings: Optional[SegmentationSettings] = None,
                         default_currency: str = "PKR", debug: bool = False) -> AccountInfo:
    """Document-level header fields; labelled values win over token ranking."""
    tables = tables or load_keyword_tables()
    info = AccountInfo()

    info.account_title = _labelled_value(lines, "account_title")
    info.account_type = _labelled_value(lines, "account_type")
    info.from_date = _as_date(_labelled_value(lines, "from_date"))
    info.to_date = _as_date(_labelled_value(lines, "to_date"))
    info.statement_date = _labelled_value(lines, "statement_date")

    if not (info.from_date and info.to_date):
        for line in lines:
            period = STATEMENT_PERIOD.search(line.text)
            if period:
                info.from_date = info.from_date or _as_date(period.group(1))
                info.to_date = info.to_date or _as_date(period.group(2))
                break

    accounts = resolve_accounts(tokens.get("accountNumber", []), lines, settings, debug)
    labelled_account = re.sub(r"\s", "", _labelled_value(lines, "account_number"))
    if labelled_account and any(ch.isdigit() for ch in labelled_account):
        info.account_number = labelled_account
    elif accounts:
        info.account_number = accounts[0]

    currency = _labelled_value(lines, "currency").upper()
    if not currency:
        joined = " ".join(line.text for line in lines)
        for code in tables.currencies:
            if re.search(r"(?<![A-Za-z])" + re.escape(code) + r"(?![A-Za-z])", joined):
                currency = code
                break
    info.currency = currency or default_currency

    banks = rank_tokens(tokens.get("bankName", []))
    named = [t for t in banks if t.pattern != "generic_word"]
    if named:
        info.bank_name = str(named[0].normalized_value)
    elif info.account_number.startswith("PK") and len(info.account_number) >= 8:
        info.bank_name = tables.iban_bank_codes.get(info.account_number[4:8], "")

    branches = rank_tokens(tokens.get("branch", []))
    if branches:
        info.branch_name = str(branches[0].normalized_value)

    if not (info.from_date and info.to_date):
        iso = sorted(
            str(t.normalized_value) for t in tokens.get("date", [])
            if re.match(r"^\d{4}-\d{2}-\d{2}$", str(t.normalized_value))
        )
        if iso:
            info.from_date = info.from_date or iso[0]
            info.to_date = info.to_date or iso[-1]

    if debug:
        logger.info(f"Account info: {info.to_dict()}")
    return info
