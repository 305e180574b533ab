"""Role-assignment policy for receipt counterparties.

Decides which candidate name, phone or account belongs to the sender
("from") and which to the receiver ("to"), given the section-marker
positions found by ``SectionDetector``.
"""
from typing import Iterable, List, Optional, Sequence, Tuple

from ..models import Line, ReceiptSections

Candidate = Tuple[int, str]


def _first_after(candidates: Sequence[Candidate], marker: int, upper: Optional[int] = None,
                 exclude: str = "") -> str:
    for index, value in candidates:
        if index <= marker:
            continue
        if upper is not None and index >= upper:
            continue
        if value != exclude:
            return value
    return ""


def _fallback(names: List[str], taken: Iterable[str]) -> str:
    taken = {t for t in taken if t}
    if len(names) > 1 and names[1] not in taken:
        return names[1]
    for name in names:
        if name not in taken:
            return name
    return ""


def assign_name_roles(candidates: Sequence[Candidate], sections: ReceiptSections) -> Tuple[str, str]:
    """Return (from_name, to_name) for candidate (line_index, name) pairs.

    With both markers, each role takes the first candidate inside its own
    interval. With one marker, that role takes the first candidate after it
    and the other role takes the second candidate overall. Without markers
    the first two candidates are used in document order.
    """
    names = [name for _, name in candidates]
    if not names:
        return "", ""

    from_marker, to_marker = sections.from_index, sections.to_index
    if from_marker is None and to_marker is None:
        return names[0], (names[1] if len(names) > 1 else "")

    from_name = to_name = ""
    if from_marker is not None:
        upper = to_marker if to_marker is not None and to_marker > from_marker else None
        from_name = _first_after(candidates, from_marker, upper)
    if to_marker is not None:
        upper = from_marker if from_marker is not None and from_marker > to_marker else None
        to_name = _first_after(candidates, to_marker, upper, exclude=from_name)

    if not from_name:
        from_name = _fallback(names, [to_name])
    if not to_name:
        to_name = _fallback(names, [from_name])
    return from_name, to_name


def section_role(lines: Sequence[Line], index: int, from_labels: Sequence[str],
                 to_labels: Sequence[str]) -> Optional[str]:
    """Scan backward from ``index`` to the nearest from/to label line."""
    for pos in range(index - 1, -1, -1):
        text = lines[pos].text
        if any(text.strip().rstrip(":").lower() == label.lower() for label in to_labels):
            return "to"
        if any(text.strip().rstrip(":").lower() == label.lower() for label in from_labels):
            return "from"
    return None


def assign_by_section(items: Sequence[Candidate], lines: Sequence[Line],
                      from_labels: Sequence[str], to_labels: Sequence[str]) -> Tuple[str, str]:
    """Assign phone/account values to roles; first-seen goes to "from" unless a label says otherwise."""
    assigned = {"from": "", "to": ""}
    for index, value in items:
        if value in assigned.values():
            continue
        role = section_role(lines, index, from_labels, to_labels)
        if role and not assigned[role]:
            assigned[role] = value
        elif not assigned["from"]:
            assigned["from"] = value
        elif not assigned["to"]:
            assigned["to"] = value
    return assigned["from"], assigned["to"]
