"""YNAB-style export of canonical transactions.

Renders a short text preview for display and a full delimited extract:
    Date,Payee,Memo,Outflow,Inflow
    2025-03-16,CRED(RAZORPAY),NBSM 96863804 CRED(RAZORPAY),4439.59,
"""

import re
from collections.abc import Sequence

import pandas as pd

from services.mapper import Transaction

YNAB_HEADERS = ("Date", "Payee", "Memo", "Outflow", "Inflow")
PREVIEW_FIELD_LENGTH = 25
DEFAULT_DATE_FORMAT = "%Y-%m-%d"

_EXPORT_UNSAFE = re.compile(r"[^\w\s.,\-]")


def _money(value) -> str:
    return f"{value:.2f}" if value > 0 else ""


def sanitize_field(value: str) -> str:
    """Drop characters that budgeting tools choke on."""
    if not value:
        return ""
    return _EXPORT_UNSAFE.sub("", value)


def transactions_to_dataframe(
    transactions: Sequence[Transaction],
    date_format: str = DEFAULT_DATE_FORMAT,
    sanitize: bool = False,
) -> pd.DataFrame:
    """One row per transaction with YNAB column names, all values as text."""
    clean = sanitize_field if sanitize else (lambda v: v or "")
    records = [
        {
            "Date": txn.date.strftime(date_format),
            "Payee": clean(txn.payee),
            "Memo": clean(txn.memo),
            "Outflow": _money(txn.outflow),
            "Inflow": _money(txn.inflow),
        }
        for txn in transactions
    ]
    return pd.DataFrame(records, columns=list(YNAB_HEADERS))


def _preview_field(value: str, sanitize: bool) -> str:
    if not value:
        return ""
    if len(value) > PREVIEW_FIELD_LENGTH:
        value = value[: PREVIEW_FIELD_LENGTH - 3] + "..."
    if sanitize:
        value = sanitize_field(value)
    return value


def render_preview(
    transactions: Sequence[Transaction],
    include_header: bool = True,
    sanitize: bool = True,
    max_rows: int = 5,
    date_format: str = DEFAULT_DATE_FORMAT,
) -> list[str]:
    """First ``max_rows`` transactions as short CSV lines."""
    df = transactions_to_dataframe(transactions, date_format=date_format).head(max_rows).copy()
    for column in ("Payee", "Memo"):
        df[column] = df[column].map(lambda v: _preview_field(v, sanitize))
    return df.to_csv(index=False, header=include_header, lineterminator="\n").splitlines()


def to_csv_text(
    transactions: Sequence[Transaction],
    include_header: bool = True,
    sanitize: bool = False,
    date_format: str = DEFAULT_DATE_FORMAT,
) -> str:
    """Full delimited extract of all transactions."""
    df = transactions_to_dataframe(transactions, date_format=date_format, sanitize=sanitize)
    return df.to_csv(index=False, header=include_header, lineterminator="\n")
