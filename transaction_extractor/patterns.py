"""Pattern extraction layer.

Scans every OCR line with a fixed battery of regular expressions per semantic
category and emits flat, typed ``PatternToken`` lists. Confidence is a fixed
lookup on the pattern that produced the match; this layer never deduplicates
or disambiguates.
"""
import logging
import re
from typing import Dict, Iterable, List, Optional, Pattern, Tuple

from fuzzywuzzy import fuzz

from .config import KeywordTables, load_keyword_tables
from .models import CATEGORIES, Line, PatternToken
from .utils import parse_amount_safe, parse_date_flexible

logger = logging.getLogger(__name__)

PATTERN_CONFIDENCE = {
    # dates
    "dd_mmm_yyyy": 0.9,
    "dd_month_yyyy": 0.85,
    "dd_mm_yyyy": 0.8,
    "yyyy_mm_dd": 0.7,
    # amounts
    "grouped_decimal": 0.9,
    "plain_decimal": 0.8,
    "grouped_integer": 0.7,
    "bare_integer": 0.7,
    # transaction types
    "specific": 0.9,
    "balance": 0.8,
    "generic": 0.6,
    # bank names
    "full_name": 0.9,
    "alias": 0.8,
    "fuzzy_name": 0.7,
    "generic_word": 0.5,
    # accounts
    "iban": 0.9,
    "spaced_iban": 0.85,
    "iban_repaired": 0.8,
    "long_digits": 0.8,
    "masked_iban": 0.75,
    "medium_digits": 0.7,
    "iban_fragment": 0.6,
    # phones
    "mobile": 0.9,
    "international": 0.9,
    "eleven_digits": 0.7,
    # references
    "ft_code": 0.9,
    "labelled_ref": 0.8,
    # branches
    "explicit": 0.8,
    "location": 0.6,
}

DATE_PATTERNS: List[Tuple[str, Pattern]] = [
    ("dd_mmm_yyyy", re.compile(r"(?<!\d)\d{1,2}-[A-Za-z]{3}-\d{4}(?!\d)")),
    ("dd_month_yyyy", re.compile(
        r"(?<!\d)\d{1,2}\s+(?:January|February|March|April|May|June|July|August|"
        r"September|October|November|December),?\s+\d{4}(?!\d)", re.IGNORECASE)),
    ("dd_mm_yyyy", re.compile(r"(?<!\d)\d{1,2}/\d{1,2}/\d{4}(?!\d)")),
    ("yyyy_mm_dd", re.compile(r"(?<!\d)\d{4}-\d{2}-\d{2}(?!\d)")),
]

# One alternation so that a number is claimed by exactly one amount pattern.
AMOUNT_PATTERN = re.compile(
    r"(?<![\d,])(?<!\d\.)(?:"
    r"(?P<grouped_decimal>\d{1,3}(?:,\d{3})+\.\d{2})"
    r"|(?P<plain_decimal>\d+\.\d{2})"
    r"|(?P<grouped_integer>\d{1,3}(?:,\d{3})+)"
    r")(?![\d,]|\.\d)"
)
# A standalone year line ("2025") is a wrapped date, not an amount.
BARE_INTEGER_LINE = re.compile(
    r"^(?:(?:PKR|Rs\.?)\s*(\d{1,7})|(?!(?:19|20)\d{2}$)(\d{1,7}))$", re.IGNORECASE)

IBAN_PATTERN = re.compile(r"\bPK([0-9SO]{2})([A-Z]{4})([0-9OSIl]*)(?![A-Za-z0-9])")
SPACED_IBAN_PATTERN = re.compile(r"\bPK\d{2}(?:\s[A-Z0-9]{4}){3,}(?:\s[A-Z0-9]{1,4})?\b")
MASKED_IBAN_PATTERN = re.compile(r"\bPK\*+\d{4}\b")
LONG_DIGITS_PATTERN = re.compile(r"(?<![\dA-Za-z])\d{15,}(?!\d)")
MEDIUM_DIGITS_PATTERN = re.compile(r"(?<![\dA-Za-z])\d{12,14}(?!\d)")

MOBILE_PATTERN = re.compile(r"(?<![\dA-Za-z+])03\d{2}-?\d{7}(?!\d)")
INTERNATIONAL_PATTERN = re.compile(r"\+92[\s-]?(3\d{2})[\s-]?(\d{7})(?!\d)")
ELEVEN_DIGITS_PATTERN = re.compile(r"(?<![\dA-Za-z+])(?!03)\d{11}(?!\d)")

REFERENCE_PATTERNS: List[Tuple[str, Pattern]] = [
    ("ft_code", re.compile(r"\bFT\d+[A-Z0-9]*\b")),
    ("labelled_ref", re.compile(r"\b(?:Ref[:#]?\s*\d+|TID[:#]?\s*\d+)", re.IGNORECASE)),
    ("labelled_ref", re.compile(r"(?<![A-Za-z])ID#\s*\d+", re.IGNORECASE)),
]

_OCR_DIGIT_FIXES = str.maketrans({"O": "0", "S": "5", "I": "1", "l": "1"})


def _keyword_regex(words: Iterable[str]) -> Optional[Pattern]:
    ordered = sorted({w for w in words if w}, key=len, reverse=True)
    if not ordered:
        return None
    alternation = "|".join(r"\s+".join(re.escape(p) for p in w.split()) for w in ordered)
    return re.compile(r"(?<![A-Za-z0-9])(" + alternation + r")(?![A-Za-z0-9])", re.IGNORECASE)


def _overlaps(span: Tuple[int, int], taken: List[Tuple[int, int]]) -> bool:
    return any(span[0] < end and start < span[1] for start, end in taken)


def repair_iban_digits(check: str, digits: str) -> Tuple[str, str, bool]:
    """Repair OCR letter/digit confusions in the numeric parts of a PK account."""
    fixed_check = check.translate(_OCR_DIGIT_FIXES)
    fixed_digits = digits.translate(_OCR_DIGIT_FIXES)
    return fixed_check, fixed_digits, (fixed_check != check or fixed_digits != digits)


class PatternExtractor:
    """Regex battery over OCR lines, one method per token category."""

    def __init__(self, tables: Optional[KeywordTables] = None, debug: bool = False):
        self.tables = tables or load_keyword_tables()
        self.debug = debug

        self.type_patterns: List[Tuple[str, Pattern]] = []
        for tier in ("specific", "balance", "generic"):
            regex = _keyword_regex(self.tables.transaction_types.get(tier, ()))
            if regex is not None:
                self.type_patterns.append((tier, regex))

        self.alias_to_bank: Dict[str, str] = {}
        for canonical, aliases in self.tables.banks.items():
            for alias in aliases:
                self.alias_to_bank.setdefault(alias.lower(), canonical)
        self.bank_regex = _keyword_regex(self.alias_to_bank)
        self.generic_bank_regex = _keyword_regex(self.tables.generic_bank_words)
        self.full_names = sorted(a for a in self.alias_to_bank if " " in a and "bank" in a)

        self.branch_patterns: List[Tuple[str, Pattern]] = []
        explicit = self.tables.branch_keywords.get("explicit", ())
        if explicit:
            alternation = "|".join(re.escape(k) for k in sorted(explicit, key=len, reverse=True))
            self.branch_patterns.append(
                ("explicit", re.compile(r"(?<![A-Za-z])(?:" + alternation + r")", re.IGNORECASE)))
        locations = _keyword_regex(self.tables.branch_keywords.get("locations", ()))
        if locations is not None:
            self.branch_patterns.append(("location", locations))

    def extract(self, lines: List[Line]) -> Dict[str, List[PatternToken]]:
        """Return every match per category, in document order."""
        tokens: Dict[str, List[PatternToken]] = {category: [] for category in CATEGORIES}
        for line in lines or []:
            tokens["date"].extend(self._dates(line))
            tokens["amount"].extend(self._amounts(line))
            tokens["transactionType"].extend(self._transaction_types(line))
            tokens["bankName"].extend(self._bank_names(line))
            tokens["accountNumber"].extend(self._accounts(line))
            tokens["phoneNumber"].extend(self._phones(line))
            tokens["reference"].extend(self._references(line))
            tokens["branch"].extend(self._branches(line))

        if self.debug:
            counts = ", ".join(f"{k}={len(v)}" for k, v in tokens.items())
            logger.info(f"Pattern scan over {len(lines or [])} lines: {counts}")
        return tokens

    def _token(self, category: str, raw: str, normalized, line: Line, pattern: str) -> PatternToken:
        return PatternToken(
            category=category,
            raw_value=raw,
            normalized_value=normalized,
            source_line_index=line.index,
            confidence=PATTERN_CONFIDENCE[pattern],
            pattern=pattern,
            line_text=line.text,
        )

    def _dates(self, line: Line) -> List[PatternToken]:
        found = []
        taken: List[Tuple[int, int]] = []
        for name, regex in DATE_PATTERNS:
            for m in regex.finditer(line.text):
                if _overlaps(m.span(), taken):
                    continue
                taken.append(m.span())
                raw = m.group(0)
                found.append((m.start(), self._token("date", raw, parse_date_flexible(raw) or raw, line, name)))
        return [token for _, token in sorted(found, key=lambda pair: pair[0])]

    def _amounts(self, line: Line) -> List[PatternToken]:
        found = []
        for m in AMOUNT_PATTERN.finditer(line.text):
            name = m.lastgroup
            raw = m.group(0)
            value = parse_amount_safe(raw)
            if value is not None:
                found.append(self._token("amount", raw, value, line, name))
        if not found:
            bare = BARE_INTEGER_LINE.match(line.text)
            if bare:
                digits = bare.group(1) or bare.group(2)
                found.append(self._token("amount", digits, float(digits), line, "bare_integer"))
        return found

    def _transaction_types(self, line: Line) -> List[PatternToken]:
        found = []
        for tier, regex in self.type_patterns:
            for m in regex.finditer(line.text):
                found.append((m.start(), self._token("transactionType", m.group(1), m.group(1).upper(), line, tier)))
        return [token for _, token in sorted(found, key=lambda pair: pair[0])]

    def _bank_names(self, line: Line) -> List[PatternToken]:
        found = []
        taken: List[Tuple[int, int]] = []
        if self.bank_regex is not None:
            for m in self.bank_regex.finditer(line.text):
                alias = re.sub(r"\s+", " ", m.group(1).lower())
                canonical = self.alias_to_bank.get(alias, m.group(1))
                name = "full_name" if (" " in alias and "bank" in alias) else "alias"
                taken.append(m.span())
                found.append((m.start(), self._token("bankName", m.group(1), canonical, line, name)))

        if not found:
            fuzzy = self._fuzzy_bank(line)
            if fuzzy is not None:
                found.append((0, fuzzy))
                taken.append((0, len(line.text)))

        if self.generic_bank_regex is not None:
            for m in self.generic_bank_regex.finditer(line.text):
                if _overlaps(m.span(), taken):
                    continue
                found.append((m.start(), self._token("bankName", m.group(1), m.group(1).upper(), line, "generic_word")))
        return [token for _, token in sorted(found, key=lambda pair: pair[0])]

    def _fuzzy_bank(self, line: Line) -> Optional[PatternToken]:
        # OCR-damaged full names such as "MEEZAN BANX"
        words = line.text.split()
        if not 2 <= len(words) <= 5:
            return None
        candidate = line.text.lower()
        best_alias, best_score = None, 0
        for alias in self.full_names:
            score = fuzz.ratio(candidate, alias)
            if score > best_score:
                best_alias, best_score = alias, score
        if best_alias is None or best_score < 88:
            return None
        return self._token("bankName", line.text, self.alias_to_bank[best_alias], line, "fuzzy_name")

    def _accounts(self, line: Line) -> List[PatternToken]:
        found = []
        taken: List[Tuple[int, int]] = []
        text = line.text

        for m in IBAN_PATTERN.finditer(text):
            check, bank_code, digits = m.groups()
            check, digits, repaired = repair_iban_digits(check, digits)
            normalized = f"PK{check}{bank_code}{digits}"
            if len(digits) >= 10 and check.isdigit() and digits.isdigit():
                name = "iban_repaired" if repaired else "iban"
            else:
                name = "iban_fragment"
            taken.append(m.span())
            found.append((m.start(), self._token("accountNumber", m.group(0), normalized, line, name)))

        for m in SPACED_IBAN_PATTERN.finditer(text):
            if _overlaps(m.span(), taken):
                continue
            taken.append(m.span())
            found.append((m.start(), self._token("accountNumber", m.group(0), re.sub(r"\s", "", m.group(0)), line, "spaced_iban")))

        for name, regex in (("masked_iban", MASKED_IBAN_PATTERN),
                            ("long_digits", LONG_DIGITS_PATTERN),
                            ("medium_digits", MEDIUM_DIGITS_PATTERN)):
            for m in regex.finditer(text):
                if _overlaps(m.span(), taken):
                    continue
                taken.append(m.span())
                found.append((m.start(), self._token("accountNumber", m.group(0), m.group(0), line, name)))
        return [token for _, token in sorted(found, key=lambda pair: pair[0])]

    def _phones(self, line: Line) -> List[PatternToken]:
        found = []
        for m in MOBILE_PATTERN.finditer(line.text):
            found.append((m.start(), self._token("phoneNumber", m.group(0), m.group(0).replace("-", ""), line, "mobile")))
        for m in INTERNATIONAL_PATTERN.finditer(line.text):
            normalized = "0" + m.group(1) + m.group(2)
            found.append((m.start(), self._token("phoneNumber", m.group(0), normalized, line, "international")))
        for m in ELEVEN_DIGITS_PATTERN.finditer(line.text):
            found.append((m.start(), self._token("phoneNumber", m.group(0), m.group(0), line, "eleven_digits")))
        return [token for _, token in sorted(found, key=lambda pair: pair[0])]

    def _references(self, line: Line) -> List[PatternToken]:
        found = []
        taken: List[Tuple[int, int]] = []
        for name, regex in REFERENCE_PATTERNS:
            for m in regex.finditer(line.text):
                if _overlaps(m.span(), taken):
                    continue
                taken.append(m.span())
                found.append((m.start(), self._token("reference", m.group(0), m.group(0), line, name)))
        return [token for _, token in sorted(found, key=lambda pair: pair[0])]

    def _branches(self, line: Line) -> List[PatternToken]:
        # At most one branch token per line; the whole line is the branch text.
        for name, regex in self.branch_patterns:
            m = regex.search(line.text)
            if m:
                return [self._token("branch", m.group(0), line.text, line, name)]
        return []


def extract_patterns(lines: List[Line], tables: Optional[KeywordTables] = None,
                     debug: bool = False) -> Dict[str, List[PatternToken]]:
    return PatternExtractor(tables=tables, debug=debug).extract(lines)


def tokens_in_range(tokens: Dict[str, List[PatternToken]], start: int, end: int) -> Dict[str, List[PatternToken]]:
    """Filter every category to tokens whose source line lies in [start, end)."""
    return {
        category: [t for t in items if start <= t.source_line_index < end]
        for category, items in tokens.items()
    }
