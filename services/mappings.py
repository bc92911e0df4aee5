"""Static field mapping table per statement dialect.

Each dialect declares which column holds the date, payee, memo and amounts,
how dates and numbers are written, and how free-text payees are shortened.
The registry is read-only; the transaction mapper looks entries up by
Dialect and falls back to the Unknown entry.
"""

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType

from parsers.base import Dialect

logger = logging.getLogger(__name__)


class DateFormat(str, Enum):
    DMY = "DMY"
    MDY = "MDY"
    YMD = "YMD"


class PayeeStyle(str, Enum):
    PLAIN = "plain"
    AXIS_PARTICULARS = "axis_particulars"
    ICICI_CC_DETAILS = "icici_cc_details"


@dataclass(frozen=True)
class NumberFormat:
    thousands_separator: str = ","
    decimal_separator: str = "."
    trim_interior_spaces: bool = False


@dataclass(frozen=True)
class DialectMapping:
    """Column names and formatting hints for one dialect."""

    date_field: str
    payee_field: str
    memo_field: str | None = None
    amount_field: str | None = None
    inflow_field: str | None = None
    outflow_field: str | None = None
    account_field: str | None = None
    date_format: DateFormat = DateFormat.DMY
    number_format: NumberFormat = field(default_factory=NumberFormat)
    # Single amount column: positive = spend (credit card convention)
    invert_amount: bool = False
    payee_style: PayeeStyle = PayeeStyle.PLAIN
    memo_prefix: str = ""

    @property
    def has_single_amount(self) -> bool:
        return self.amount_field is not None


# Order is the retry order of the mapper's fallback cascade.
DIALECT_MAPPINGS: Mapping[Dialect, DialectMapping] = MappingProxyType(
    {
        Dialect.ICICI_BANK: DialectMapping(
            date_field="Transaction Date",
            payee_field="Description",
            memo_field="Reference Number",
            outflow_field="Withdrawal Amount",
            inflow_field="Deposit Amount",
            date_format=DateFormat.DMY,
        ),
        Dialect.ICICI_CC: DialectMapping(
            date_field="Transaction Date",
            payee_field="Details",
            memo_field="Reference Number",
            amount_field="Amount (INR)",
            date_format=DateFormat.DMY,
            # Dr./Cr. markers already carry the sign
            invert_amount=False,
            payee_style=PayeeStyle.ICICI_CC_DETAILS,
            memo_prefix="Ref: ",
        ),
        Dialect.AXIS_BANK: DialectMapping(
            date_field="Tran Date",
            payee_field="PARTICULARS",
            memo_field="CHQNO",
            outflow_field="DR",
            inflow_field="CR",
            date_format=DateFormat.DMY,
            number_format=NumberFormat(",", ".", trim_interior_spaces=True),
            payee_style=PayeeStyle.AXIS_PARTICULARS,
        ),
        Dialect.AXIS_CC: DialectMapping(
            date_field="Transaction Date",
            payee_field="Transaction Details",
            amount_field="Amount",
            date_format=DateFormat.DMY,
            invert_amount=True,
        ),
        Dialect.HDFC_CC: DialectMapping(
            date_field="Date",
            payee_field="Particulars",
            amount_field="Amount(in Rs)",
            date_format=DateFormat.DMY,
            invert_amount=True,
        ),
        Dialect.UNKNOWN: DialectMapping(
            date_field="Date",
            payee_field="Description",
            memo_field="Remarks",
            outflow_field="Debit",
            inflow_field="Credit",
            date_format=DateFormat.DMY,
        ),
    }
)


def get_mapping(
    dialect: Dialect | None,
    mappings: Mapping[Dialect, DialectMapping] = DIALECT_MAPPINGS,
) -> DialectMapping:
    """Mapping for ``dialect``, or the Unknown fallback entry."""
    if dialect is not None and dialect in mappings:
        return mappings[dialect]
    return mappings[Dialect.UNKNOWN]


# ---------------------------------------------------------------------------
# Column resolution
# ---------------------------------------------------------------------------

COLUMN_ALIASES: Mapping[str, tuple[str, ...]] = MappingProxyType(
    {
        "tran date": ("date", "transaction date", "txn date", "trans date", "value date"),
        "particulars": ("description", "narration", "details", "remarks", "transaction details"),
        "withdrawal amt": ("debit", "debit amount", "dr", "withdrawal", "payment"),
        "deposit amt": ("credit", "credit amount", "cr", "deposit", "receipt"),
        "chq/ref no": ("reference", "ref no", "ref number", "ref.no", "cheque no", "chq no"),
    }
)


def _alias_candidates(name: str) -> tuple[str, ...]:
    for key, aliases in COLUMN_ALIASES.items():
        if name == key or name in key or name in aliases:
            return (key,) + aliases
    return ()


def _alias_matches(alias: str, header: str) -> bool:
    # "dr"/"cr" would otherwise hit "address", "description", ...
    if len(alias) <= 2:
        return header == alias
    return alias in header


def resolve_column(headers: Sequence[str], name: str | None) -> int:
    """Index of the column best matching ``name``, or -1.

    Tries, in order: exact match, case-insensitive match, substring match in
    either direction, then the alias groups.
    """
    if not name:
        return -1
    cleaned = [str(h).strip() for h in headers]

    for i, header in enumerate(cleaned):
        if header == name:
            return i

    lowered = [h.lower() for h in cleaned]
    target = name.strip().lower()
    for i, header in enumerate(lowered):
        if header == target:
            return i

    for i, header in enumerate(lowered):
        if header and (target in header or header in target):
            logger.debug("Partial column match for %r: %r", name, cleaned[i])
            return i

    for alias in _alias_candidates(target):
        for i, header in enumerate(lowered):
            if header and _alias_matches(alias, header):
                logger.debug("Alias column match for %r via %r: %r", name, alias, cleaned[i])
                return i

    return -1
