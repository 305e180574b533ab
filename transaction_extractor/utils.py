import re
from datetime import datetime
from typing import List, Optional

from dateutil import parser as dateparser

from .models import Line


def split_lines(text) -> List[Line]:
    """Split raw OCR text into trimmed, non-empty, zero-indexed lines."""
    if not text:
        return []
    stripped = (raw.strip() for raw in str(text).splitlines())
    return [Line(index=i, text=s) for i, s in enumerate(s for s in stripped if s)]


def join_lines(lines: List[Line], sep: str = " ") -> str:
    return sep.join(line.text for line in lines)


def parse_amount_safe(raw_value):
    """Parse currency-like strings to float. Returns None if not parseable."""
    if raw_value is None:
        return None
    s = str(raw_value).strip()
    if not s or s.lower() in {"nan", "none", "-"}:
        return None
    cleaned = re.sub(r"(?i)^(?:pkr|rs\.?)", "", s)
    cleaned = re.sub(r"[\s,$€£]", "", cleaned)

    is_negative = False
    if cleaned.startswith("(") and cleaned.endswith(")"):
        cleaned = cleaned[1:-1]
        is_negative = True
    elif cleaned.endswith("-"):
        cleaned = cleaned[:-1]
        is_negative = True
    elif cleaned.upper().endswith("DR"):
        cleaned = cleaned[:-2]
        is_negative = True
    elif cleaned.upper().endswith("CR"):
        cleaned = cleaned[:-2]

    if cleaned.startswith("-"):
        cleaned = cleaned[1:]
        is_negative = True

    if cleaned in {"", "."}:
        return None
    try:
        value = float(cleaned)
    except ValueError:
        return None
    return -value if is_negative else value


def parse_date_flexible(raw_value) -> Optional[str]:
    """Try multiple date formats; return YYYY-MM-DD or None."""
    if raw_value is None:
        return None
    s = str(raw_value).strip()
    if not s:
        return None
    fmts = ("%Y-%m-%d", "%d-%m-%Y", "%d/%m/%Y", "%d %b, %Y", "%d-%b-%Y", "%d/%b/%Y", "%d %B %Y", "%B %d, %Y")
    for fmt in fmts:
        try:
            dt = datetime.strptime(s, fmt)
            return dt.strftime("%Y-%m-%d")
        except ValueError:
            continue
    # Day-first is the local convention for ambiguous numeric dates
    try:
        dt = dateparser.parse(s, dayfirst=True, default=datetime(2000, 1, 1))
    except (ValueError, OverflowError):
        return None
    return dt.strftime("%Y-%m-%d") if dt else None
