"""Aggregation over reconstructed transactions.

Opening and closing balance are the min and max of all positive balances,
not the first and last by date.
"""
import logging
from typing import List, Sequence

import pandas as pd

from .models import Summary, Transaction, camel_case

logger = logging.getLogger(__name__)

TRANSACTION_COLUMNS: List[str] = [
    camel_case(name) for name in Transaction.__dataclass_fields__
]


def transactions_frame(transactions: Sequence[Transaction]) -> pd.DataFrame:
    """Transactions as a DataFrame whose columns are the output field names."""
    records = [t.to_dict() for t in transactions or []]
    return pd.DataFrame.from_records(records, columns=TRANSACTION_COLUMNS)


def calculate_summary(transactions: Sequence[Transaction], debug: bool = False) -> Summary:
    df = transactions_frame(transactions)
    if df.empty:
        return Summary()

    balances = df.loc[df["balance"] > 0, "balance"]
    summary = Summary(
        total_transactions=int(len(df)),
        total_deposits=round(float(df["deposit"].sum()), 2),
        total_withdrawals=round(float(df["withdrawal"].sum()), 2),
        opening_balance=float(balances.min()) if not balances.empty else 0.0,
        closing_balance=float(balances.max()) if not balances.empty else 0.0,
    )
    if debug:
        logger.info(f"Summary: {summary.to_dict()}")
    return summary
