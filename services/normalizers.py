"""Pure value normalizers: dates, amounts, payees and free text.

These functions never raise on bad input; they return None (dates) or a
zero amount so the mapper can decide whether to drop the row.

Usage:
    from services.normalizers import parse_date, parse_amount
    parse_date("16-03-2025", DateFormat.DMY)   # → date(2025, 3, 16)
    parse_amount("2,500.00 Dr.")               # → Decimal("-2500.00")
"""

import logging
import re
import warnings
from datetime import date
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

import pandas as pd

from services.mappings import DateFormat, NumberFormat

logger = logging.getLogger(__name__)

YEAR_PIVOT_WINDOW = 20
PAYEE_MAX_LENGTH = 100
MEMO_MAX_LENGTH = 200
ELLIPSIS = "..."
CENTS = Decimal("0.01")
ZERO = Decimal("0")

MONTHS = {
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "may": 5, "jun": 6,
    "jul": 7, "aug": 8, "sep": 9, "oct": 10, "nov": 11, "dec": 12,
}

# DD/MM/YYYY, MM-DD-YY, ... (first two groups are day/month in some order)
NUMERIC_DATE = re.compile(r"^(\d{1,2})[/\-.](\d{1,2})[/\-.](\d{2}|\d{4})\b")
NUMERIC_SHAPE = re.compile(r"^\d+[/\-.]\d+[/\-.]\d+\b")
ISO_DATE = re.compile(r"^(\d{4})[/\-.](\d{1,2})[/\-.](\d{1,2})\b")
TEXT_MONTH_DATE = re.compile(r"(\d{1,2})\s+([A-Za-z]{3})[A-Za-z]*\s+(\d{4})")

CURRENCY_TOKENS = ("₹", "Rs.", "INR")
DEBIT_MARKER = "Dr."
CREDIT_MARKER = "Cr."

UNSAFE_TEXT = re.compile(r"[^\w\s.,\-&@()]")
MULTI_SPACE = re.compile(r"\s+")
PAYEE_STOPWORDS = {"REF", "TRN", "TO", "BY", "ON", "FOR"}
PURELY_NUMERIC = re.compile(r"^\d+$")

IMPS_PATTERNS = [
    re.compile(r"IMPS/\w+/\d+/([^/]+)", re.IGNORECASE),
    re.compile(r"IMPS-(\w+)-([^-/]+)", re.IGNORECASE),
    re.compile(r"IMPS[/\s]([^/\s]+)", re.IGNORECASE),
    re.compile(r"IMPS-[^/]+-([^/]+)", re.IGNORECASE),
]
UPI_REFERENCE = re.compile(r"UPI-\d+-(.+)", re.IGNORECASE)
UPI_PATTERNS = [
    re.compile(r"UPI[/\s]([^/\s]+)", re.IGNORECASE),
    re.compile(r"UPI-[^/]+-([^/]+)", re.IGNORECASE),
    re.compile(r"TO\s+([^/\s]+)", re.IGNORECASE),
]


# ---------------------------------------------------------------------------
# Dates
# ---------------------------------------------------------------------------


def expand_two_digit_year(
    year: int, today: date | None = None, pivot_window: int = YEAR_PIVOT_WINDOW
) -> int:
    """Expand a two-digit year around the current century.

    Values above ``(current year % 100) + pivot_window`` belong to the
    previous century.
    """
    today = today or date.today()
    century = today.year // 100
    if year > (today.year % 100) + pivot_window:
        return (century - 1) * 100 + year
    return century * 100 + year


def _build_date(year: int, month: int, day: int) -> date | None:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _generic_date(value: str, date_format: DateFormat) -> date | None:
    """Last-resort parse through pandas."""
    if PURELY_NUMERIC.match(value) or not re.search(r"\d", value):
        return None
    with warnings.catch_warnings():
        warnings.simplefilter("ignore")
        try:
            parsed = pd.to_datetime(
                value, dayfirst=date_format != DateFormat.MDY, errors="coerce"
            )
        except (ValueError, TypeError, OverflowError):
            return None
    if pd.isna(parsed):
        return None
    return parsed.date()


def parse_date(
    value,
    date_format: DateFormat = DateFormat.DMY,
    today: date | None = None,
    pivot_window: int = YEAR_PIVOT_WINDOW,
) -> date | None:
    """Parse a statement date into a calendar date.

    Handles DD/MM/YYYY, DD-MM-YYYY, MM/DD/YYYY, MM-DD-YYYY, YYYY-MM-DD,
    YYYY/MM/DD and "1 Apr 2025". Year-first strings are read as ISO no
    matter which format the dialect declares. Returns None if nothing fits.
    """
    if value is None:
        return None
    text = MULTI_SPACE.sub(" ", str(value)).strip()
    if not text:
        return None

    iso = ISO_DATE.match(text)
    if iso:
        year, month, day = (int(g) for g in iso.groups())
        parsed = _build_date(year, month, day)
        if parsed:
            return parsed

    numeric = NUMERIC_DATE.match(text)
    if numeric and date_format in (DateFormat.DMY, DateFormat.MDY):
        first, second, year_text = numeric.groups()
        if date_format == DateFormat.DMY:
            day, month = int(first), int(second)
        else:
            month, day = int(first), int(second)
        year = int(year_text)
        if len(year_text) == 2:
            year = expand_two_digit_year(year, today, pivot_window)
        parsed = _build_date(year, month, day)
        if parsed:
            return parsed
    elif date_format in (DateFormat.DMY, DateFormat.MDY) and NUMERIC_SHAPE.match(text):
        # Three- or five-digit years are truncated exports, not dates
        logger.debug("Rejected numeric date %r: year must have 2 or 4 digits", text)
        return None

    named = TEXT_MONTH_DATE.search(text)
    if named:
        day_text, month_name, year_text = named.groups()
        month = MONTHS.get(month_name.lower())
        if month:
            parsed = _build_date(int(year_text), month, int(day_text))
            if parsed:
                return parsed

    parsed = _generic_date(text, date_format)
    if parsed is None:
        logger.debug("Failed to parse date %r with format %s", text, date_format.value)
    return parsed


def looks_like_date(value: str) -> bool:
    """Cheap shape check used to tell data rows from preamble lines."""
    value = (value or "").strip()
    return bool(
        re.match(r"^\d{1,2}[-/]\d{1,2}[-/](\d{2}|\d{4})$", value)
        or re.match(r"^\d{2,4}[-/]\d{1,2}[-/]\d{1,2}$", value)
    )


# ---------------------------------------------------------------------------
# Amounts
# ---------------------------------------------------------------------------


def clean_amount(value, number_format: NumberFormat | None = None) -> str:
    """Strip currency, separators and Dr./Cr. markers from an amount.

    "Dr." forces a negative result, "Cr." a non-negative one. Blank or
    placeholder values come back as "0".
    """
    if value is None:
        return "0"
    fmt = number_format or NumberFormat()
    text = str(value)
    if fmt.trim_interior_spaces:
        text = MULTI_SPACE.sub(" ", text)
    text = text.strip()
    if not text:
        return "0"

    is_debit = DEBIT_MARKER in text
    is_credit = CREDIT_MARKER in text

    cleaned = text.replace(DEBIT_MARKER, "").replace(CREDIT_MARKER, "")
    for token in CURRENCY_TOKENS:
        cleaned = cleaned.replace(token, "")
    if fmt.thousands_separator:
        cleaned = cleaned.replace(fmt.thousands_separator, "")
    if fmt.decimal_separator != ".":
        cleaned = cleaned.replace(fmt.decimal_separator, ".")
    cleaned = re.sub(r"[^\d.\-]", "", cleaned)

    if is_debit:
        if not cleaned.startswith("-"):
            cleaned = f"-{cleaned}"
    elif is_credit:
        cleaned = cleaned.lstrip("-")

    if cleaned in ("", "-", ".", "-."):
        return "0"
    return cleaned


def round_money(value: Decimal) -> Decimal:
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def parse_amount(value, number_format: NumberFormat | None = None) -> Decimal:
    """Cleaned amount as a Decimal; anything unparseable is zero."""
    cleaned = clean_amount(value, number_format)
    try:
        return Decimal(cleaned)
    except InvalidOperation:
        logger.debug("Unparseable amount %r (cleaned %r)", value, cleaned)
        return ZERO


def split_signed_amount(amount: Decimal, invert: bool = False) -> tuple[Decimal, Decimal]:
    """Turn one signed amount into ``(inflow, outflow)``.

    With ``invert`` (credit card convention) positive means money spent;
    otherwise positive means money received.
    """
    amount = round_money(amount)
    if invert:
        if amount > 0:
            return ZERO, amount
        return -amount, ZERO
    if amount < 0:
        return ZERO, -amount
    return amount, ZERO


def keep_larger(inflow: Decimal, outflow: Decimal) -> tuple[Decimal, Decimal]:
    """Zero the smaller side when both inflow and outflow are set."""
    if inflow > 0 and outflow > 0:
        logger.warning(
            "Transaction has both inflow %s and outflow %s, keeping the larger", inflow, outflow
        )
        if inflow >= outflow:
            return inflow, ZERO
        return ZERO, outflow
    return inflow, outflow


# ---------------------------------------------------------------------------
# Free text
# ---------------------------------------------------------------------------


def sanitize_text(value, max_length: int, fallback: str = "") -> str:
    """Replace unsafe characters, collapse whitespace and truncate."""
    if value is None:
        return fallback
    text = UNSAFE_TEXT.sub(" ", str(value))
    text = MULTI_SPACE.sub(" ", text).strip()
    if not text:
        return fallback
    if len(text) > max_length:
        return text[: max_length - len(ELLIPSIS)] + ELLIPSIS
    return text


def sanitize_payee(value, max_length: int = PAYEE_MAX_LENGTH) -> str:
    return sanitize_text(value, max_length, fallback="Unknown")


def sanitize_memo(value, max_length: int = MEMO_MAX_LENGTH) -> str:
    return sanitize_text(value, max_length)


def _is_numeric(value: str) -> bool:
    return bool(PURELY_NUMERIC.match(value))


def _shorten(text: str, limit: int = 30) -> str:
    return text[:limit] + ELLIPSIS if len(text) > limit else text


def _first_pattern_match(text: str, patterns: list[re.Pattern]) -> str | None:
    for pattern in patterns:
        match = pattern.search(text)
        if match and match.group(1) and len(match.group(1)) > 1:
            captured = match.group(1).strip()
            if captured and not _is_numeric(captured):
                return captured
    return None


def extract_axis_payee(particulars) -> str:
    """Short counterparty label from an Axis Bank PARTICULARS field.

    IMPS/P2A/511110688643/SHUBHANG/ICICIBAN/...  → "SHUBHANG"
    NBSM/96863804/CRED(RAZORPAY)/                → "CRED(RAZORPAY)"
    UPI-545556998922-DREAMPLUG TECHNOLOGIES      → "DREAMPLUG TECHNOLOGIES"
    """
    text = str(particulars or "").strip()
    if not text:
        return "Unknown"

    if "IMPS" in text:
        parts = text.split("/")
        if len(parts) >= 4 and parts[3].strip():
            return parts[3].strip()
        return _first_pattern_match(text, IMPS_PATTERNS) or "IMPS Transfer"

    if "NBSM" in text:
        parts = text.split("/")
        if len(parts) >= 3 and parts[2].strip():
            return parts[2].strip()

    if "UPI" in text:
        match = UPI_REFERENCE.search(text)
        if match and match.group(1).strip():
            return match.group(1).strip()
        captured = _first_pattern_match(text, UPI_PATTERNS)
        if captured:
            return captured
        for part in text.split("/"):
            part = part.strip()
            if len(part) > 1 and not _is_numeric(part):
                return part
        return "UPI Payment"

    for part in re.split(r"[/\-\s]+", text):
        part = part.strip()
        if len(part) > 2 and not _is_numeric(part) and part.upper() not in PAYEE_STOPWORDS:
            return part

    return _shorten(text)


def extract_icici_cc_payee(details) -> str:
    """Merchant label from an ICICI credit card Details field.

    UPI-545515394479_UPI-545515394479-SAI FLOW   → "SAI FLOW"
    AMAZON PAY INDIA PRIVA, wwwamazonin, IND     → "AMAZON PAY INDIA PRIVA"
    """
    text = str(details or "").strip()
    if not text:
        return "Unknown"

    if "UPI-" in text:
        if "_" in text:
            second = text.split("_")[1]
            match = UPI_REFERENCE.search(second)
            if match and match.group(1).strip():
                return match.group(1).strip()
        match = UPI_REFERENCE.search(text)
        if match and match.group(1).strip():
            return match.group(1).strip()

    if "," in text:
        return text.split(",")[0].strip()

    return _shorten(text)
