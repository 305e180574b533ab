"""Data model for extracted statements and receipts.

Attributes are snake_case; ``to_dict()`` emits the camelCase field names that
downstream consumers (persistence, reconciliation) expect verbatim.
"""
from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Optional, Union

CATEGORIES = (
    "date",
    "amount",
    "transactionType",
    "bankName",
    "accountNumber",
    "phoneNumber",
    "reference",
    "branch",
)


def camel_case(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


class _Serializable:
    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, _Serializable):
                value = value.to_dict()
            elif isinstance(value, list):
                value = [v.to_dict() if isinstance(v, _Serializable) else v for v in value]
            out[camel_case(f.name)] = value
        return out


@dataclass(frozen=True)
class Line(_Serializable):
    index: int
    text: str


@dataclass(frozen=True)
class PatternToken(_Serializable):
    category: str
    raw_value: str
    normalized_value: Union[float, str]
    source_line_index: int
    confidence: float
    pattern: str = ""
    line_text: str = ""


@dataclass
class Boundary(_Serializable):
    start_index: int
    end_index: int
    member_tokens: List[PatternToken] = field(default_factory=list)

    def tokens(self, category: str) -> List[PatternToken]:
        return [t for t in self.member_tokens if t.category == category]


@dataclass
class Transaction(_Serializable):
    txn_date: str = ""
    value_date: str = ""
    txn_type: str = ""
    transaction_ref: str = ""
    branch_name: str = ""
    narration: str = ""
    withdrawal: float = 0.0
    deposit: float = 0.0
    balance: float = 0.0
    remitter_bank: str = ""
    source_account: str = ""
    destination_account: str = ""
    raw_line: str = ""

    def is_meaningful(self) -> bool:
        return self.deposit > 0 or self.withdrawal > 0 or self.balance > 0


@dataclass
class AccountInfo(_Serializable):
    account_number: str = ""
    account_title: str = ""
    currency: str = ""
    account_type: str = ""
    bank_name: str = ""
    branch_name: str = ""
    from_date: str = ""
    to_date: str = ""
    statement_date: str = ""


@dataclass
class Summary(_Serializable):
    total_transactions: int = 0
    total_deposits: float = 0.0
    total_withdrawals: float = 0.0
    opening_balance: float = 0.0
    closing_balance: float = 0.0


@dataclass
class StatementResult(_Serializable):
    account_info: AccountInfo
    transactions: List[Transaction]
    summary: Summary
    raw_text: str = ""


@dataclass
class PaymentReceiptRecord(_Serializable):
    service: str = "Unknown"
    transaction_id: str = ""
    date: str = ""
    time: str = ""
    amount: float = 0.0
    fee: float = 0.0
    total_amount: float = 0.0
    from_name: str = ""
    from_phone: str = ""
    from_account: str = ""
    to_name: str = ""
    to_phone: str = ""
    to_account: str = ""
    status: str = "Success"
    currency: str = "PKR"


@dataclass
class ReceiptSections(_Serializable):
    """Line indices of receipt section markers (None when absent)."""
    from_index: Optional[int] = None
    to_index: Optional[int] = None
    amount_index: Optional[int] = None
    date_index: Optional[int] = None
    transaction_id_index: Optional[int] = None
