"""Delimited statement extractors for Axis Bank, ICICI credit card and generic CSVs.

Each bank exports statements with a different amount of noise around the
transaction table. This module:
1. Detects which dialect the file came from
2. Locates the transaction block and returns a clean header + rows table
3. Maps the table into canonical transactions (convert_statement)

Usage:
    from parsers.csv_parser import import_statement
    result = import_statement("Axis 086 account statement.csv")
    # result = {"transactions": [...], "dialect": "Axis_Bank", "mapping": "Axis_Bank",
    #           "rows": 6, "skipped": 0, "events": (...)}
"""

import logging
import re
from collections.abc import Sequence
from pathlib import Path

from config.settings import Settings
from parsers.base import Dialect, RawTable, StatementExtractor
from parsers.detector import detect_dialect, header_dialect
from parsers.segmenter import detect_delimiter, split_fields, split_lines
from services.diagnostics import DiagnosticLog
from services.exceptions import (
    InvalidDataError,
    NoTransactionsError,
    StatementParseError,
    UnsupportedFormatError,
)
from services.mapper import TransactionMapper
from services.normalizers import looks_like_date

logger = logging.getLogger(__name__)

UNSUPPORTED_SUFFIXES = {".pdf", ".xls", ".xlsx"}


def _log(log: DiagnosticLog | None) -> DiagnosticLog:
    return log if log is not None else DiagnosticLog(logger)


# ---------------------------------------------------------------------------
# Dialect-specific extractors
# ---------------------------------------------------------------------------


class GenericExtractor(StatementExtractor):
    """First line is the header, every following line is a row.

    Used when no specialized extractor claims the dialect.
    """

    dialect = None

    def __init__(self, skip_rows: int = 0):
        self.skip_rows = skip_rows

    def extract(self, lines, source_name, start=0, log=None):
        log = _log(log)
        header_index = start + self.skip_rows
        if header_index >= len(lines):
            log.warning("extract", "No lines left after skipping %d rows", self.skip_rows)
            return len(lines) - start, RawTable.empty(source_name)

        delimiter = detect_delimiter(lines[header_index])
        headers = split_fields(lines[header_index], delimiter)
        rows = [split_fields(line, delimiter) for line in lines[header_index + 1:]]
        dialect = detect_dialect(source_name, "\n".join(lines), headers)

        log.record(
            "extract",
            "Generic extraction: %d columns, %d rows, delimiter %r, dialect %s",
            len(headers),
            len(rows),
            delimiter,
            dialect.value,
        )
        return len(lines) - start, RawTable.build(headers, rows, source_name, dialect)


class AxisBankExtractor(StatementExtractor):
    """Parse Axis Bank account statement exports.

    Axis format (after a customer-details preamble of variable length):
        Tran Date,CHQNO,PARTICULARS,DR,CR,BAL,SOL
        16-03-2025,-,NBSM/96863804/CRED(RAZORPAY)/,  4439.59, ,  604111.30,4875
        "Unless the constituent notifies the bank immediately ..."

    Note: Amount columns are padded with spaces; DR = outflow, CR = inflow.
    """

    dialect = Dialect.AXIS_BANK

    # Conventional header line in exports that lost their header keywords
    FALLBACK_HEADER_LINE = 17
    FOOTER_PREFIXES = ('"Unless', "Legend")
    FOOTER_PHRASES = ("REGISTERED OFFICE", "The closing balance")

    def __init__(self, recovery_window: int = 20):
        self.recovery_window = recovery_window

    def find_header(self, lines: Sequence[str], start: int = 0) -> int:
        """Index of the transaction header line, or -1."""
        for i in range(start, len(lines)):
            line = lines[i]
            if ("Tran Date" in line or "Transaction Date" in line) and (
                "PARTICULARS" in line or "Particulars" in line
            ):
                return i

        for i in range(start, len(lines)):
            line = lines[i].lower()
            if ("date" in line or "tran" in line) and (
                "particular" in line or "narration" in line
            ):
                logger.debug("Found likely Axis header with relaxed search at line %d", i)
                return i

        if len(lines) > self.FALLBACK_HEADER_LINE and start <= self.FALLBACK_HEADER_LINE:
            return self.FALLBACK_HEADER_LINE
        return -1

    def is_footer(self, line: str) -> bool:
        line = line.strip()
        if line.startswith(self.FOOTER_PREFIXES):
            return True
        if any(phrase in line for phrase in self.FOOTER_PHRASES):
            return True
        return line.startswith('"') and len(line) > 30

    @staticmethod
    def _valid_headers(headers: Sequence[str]) -> bool:
        lowered = [h.lower() for h in headers]
        return (
            len(headers) >= 3
            and any("date" in h for h in lowered)
            and any("particular" in h or "narration" in h for h in lowered)
        )

    def extract(self, lines, source_name, start=0, log=None):
        log = _log(log)
        header_index = self.find_header(lines, start)
        if header_index == -1:
            log.warning("extract", "All attempts to find Axis transaction headers failed")
            return len(lines) - start, RawTable.empty(source_name)

        delimiter = detect_delimiter(lines[header_index])
        headers = split_fields(lines[header_index], delimiter)
        if not self._valid_headers(headers):
            log.warning("extract", "Invalid headers in Axis Bank statement: %r", headers)
            return len(lines) - start, RawTable.empty(source_name)
        log.record("extract", "Found Axis header at line %d: %r", header_index, headers)

        rows: list[list[str]] = []
        last_index = header_index
        for i in range(header_index + 1, len(lines)):
            last_index = i
            line = lines[i].strip()
            if self.is_footer(line):
                log.record("extract", "Reached footer at line %d, stopping", i)
                break
            values = split_fields(line, delimiter)
            if len(values) >= 3 and looks_like_date(values[0]):
                if len(values) < len(headers):
                    values = values + [""] * (len(headers) - len(values))
                rows.append(values)
            else:
                log.record("extract", "Skipping non-transaction line %d", i)

        if not rows:
            rows = self._recover_rows(lines, header_index, delimiter, log)

        log.record("extract", "Found %d Axis transaction rows", len(rows))
        consumed = last_index + 1 - start
        return consumed, RawTable.build(headers, rows, source_name, self.dialect)

    def _recover_rows(
        self, lines: Sequence[str], header_index: int, delimiter: str, log: DiagnosticLog
    ) -> list[list[str]]:
        """Best-effort pass: any delimited line with a digit near the header."""
        log.warning("extract", "No Axis rows found, trying recovery pass")
        recovered = []
        stop = min(header_index + 1 + self.recovery_window, len(lines))
        for i in range(header_index + 1, stop):
            line = lines[i].strip()
            if delimiter not in line or line.startswith('"') or "Unless" in line:
                continue
            values = split_fields(line, delimiter)
            if len(values) >= 3 and any(re.search(r"\d", v) for v in values):
                recovered.append(values)
        return recovered


class IciciCreditCardExtractor(StatementExtractor):
    """Parse ICICI credit card statement exports.

    ICICI format (after card details and a "Transaction Details" marker):
        ,,Date,Transaction Details,,Amount (in Rs.),,Reference Number
        ,,01/04/2025,"AMAZON PAY INDIA PRIVA, wwwamazonin, IND",,2500.00 Dr.,,7402...

    Note: CURRENT and LAST statement exports place the amount and reference
    columns at different offsets.
    """

    dialect = Dialect.ICICI_CC

    SECTION_MARKER = "Transaction Details"
    LAST_STATEMENT_MARKER = "VIEW LAST STATEMENT"
    STOP_MARKERS = ("Statement Summary", "Payment Summary", "Total Due", "Closing Balance")
    DATE_SHAPE = re.compile(r"^\d{1,2}/\d{1,2}/\d{4}$")

    HEADER_NAMES = {
        "date": "Transaction Date",
        "details": "Details",
        "amount": "Amount (INR)",
        "reference": "Reference Number",
    }

    def resolve_columns(self, header_row: Sequence[str], is_last: bool) -> dict[str, int]:
        """Column positions by keyword, falling back to the usual offsets."""
        found: dict[str, int] = {}
        for i, cell in enumerate(header_row):
            cell = (cell or "").strip().lower()
            for role in ("date", "details", "amount", "reference"):
                if role in cell and role not in found:
                    found[role] = i
                    break

        return {
            "date": found.get("date", 2),
            "details": found.get("details", 3),
            "amount": found.get("amount", 6 if is_last else 5),
            "reference": found.get("reference", 9 if is_last else 7),
        }

    @staticmethod
    def _is_header_row(cells: Sequence[str]) -> bool:
        lowered = [(c or "").strip().lower() for c in cells]
        return (
            len(lowered) >= 3
            and any("date" in c for c in lowered)
            and any("amount" in c for c in lowered)
        )

    def extract(self, lines, source_name, start=0, log=None):
        log = _log(log)
        is_last = any(self.LAST_STATEMENT_MARKER in line.upper() for line in lines)
        log.record("extract", "ICICI %s statement format", "LAST" if is_last else "CURRENT")

        section_index = next(
            (i for i in range(start, len(lines)) if self.SECTION_MARKER in lines[i]), -1
        )
        if section_index == -1:
            log.warning("extract", "Could not find Transaction Details section")
            return len(lines) - start, RawTable.empty(source_name)

        # The marker is usually a line of its own; some exports put it in the header row
        header_index = section_index + 1
        if self._is_header_row(split_fields(lines[section_index], ",")):
            header_index = section_index
        if header_index >= len(lines):
            log.warning("extract", "No column headers after Transaction Details section")
            return len(lines) - start, RawTable.empty(source_name)

        columns = self.resolve_columns(split_fields(lines[header_index], ","), is_last)
        width = max(columns.values()) + 2
        names = {index: self.HEADER_NAMES[role] for role, index in columns.items()}
        headers = [names.get(i, f"empty{i}") for i in range(width)]
        log.record("extract", "ICICI column structure: %r", columns)

        rows: list[list[str]] = []
        last_index = header_index
        min_width = max(columns["date"], columns["amount"]) + 1
        for i in range(header_index + 1, len(lines)):
            last_index = i
            line = lines[i]
            if any(marker in line for marker in self.STOP_MARKERS):
                log.record("extract", "Stopping at section marker on line %d", i)
                break

            values = split_fields(line, ",")
            if len(values) < min_width:
                continue
            date_value = values[columns["date"]]
            amount_value = values[columns["amount"]]
            valid_date = bool(self.DATE_SHAPE.match(date_value))
            valid_amount = "Dr." in amount_value or "Cr." in amount_value
            if valid_date and valid_amount:
                if len(values) < width:
                    values = values + [""] * (width - len(values))
                rows.append(values)
            else:
                log.record(
                    "extract",
                    "Skipping line %d: date valid=%s, amount valid=%s",
                    i,
                    valid_date,
                    valid_amount,
                )

        log.record("extract", "Extracted %d ICICI credit card rows", len(rows))
        return last_index + 1 - start, RawTable.build(headers, rows, source_name, self.dialect)


# ---------------------------------------------------------------------------
# Extractor selection & statement parsing
# ---------------------------------------------------------------------------


def build_extractors(settings: Settings | None = None) -> dict[Dialect, StatementExtractor]:
    recovery_window = settings.axis_recovery_window if settings else 20
    return {
        Dialect.ICICI_CC: IciciCreditCardExtractor(),
        Dialect.AXIS_BANK: AxisBankExtractor(recovery_window=recovery_window),
    }


def extractor_for(
    dialect: Dialect, extractors: dict[Dialect, StatementExtractor] | None = None
) -> StatementExtractor:
    """Specialized extractor for ``dialect``, or the generic one."""
    registry = extractors if extractors is not None else build_extractors()
    return registry.get(dialect, GenericExtractor())


def sniff_header(lines: Sequence[str], limit: int = 30) -> tuple[int, Dialect]:
    """Find the first line within ``limit`` that a header rule recognizes."""
    for i, line in enumerate(lines[:limit]):
        cells = split_fields(line, detect_delimiter(line))
        dialect = header_dialect(cells)
        if dialect != Dialect.UNKNOWN:
            return i, dialect
    return -1, Dialect.UNKNOWN


def parse_statement(
    raw_text: str,
    file_name: str,
    log: DiagnosticLog | None = None,
    settings: Settings | None = None,
) -> RawTable:
    """Turn raw statement text into a RawTable.

    Raises:
        StatementParseError: If the text contains no non-empty lines.
    """
    log = _log(log)
    lines = split_lines(raw_text)
    if not lines:
        raise StatementParseError(f"{file_name}: file is empty.")

    extractors = build_extractors(settings)
    dialect = detect_dialect(file_name, raw_text)
    log.record("detect", "Dialect from filename/content for %s: %s", file_name, dialect.value)

    if dialect in extractors:
        _, table = extractors[dialect].extract(lines, file_name, log=log)
        return table

    limit = settings.header_sniff_lines if settings else 30
    header_index, header_match = sniff_header(lines, limit)
    if header_index > 0 or header_match in extractors:
        log.record(
            "detect", "Header for %s found at line %d", header_match.value, header_index
        )
        extractor = extractors.get(header_match, GenericExtractor())
        _, table = extractor.extract(lines, file_name, start=header_index, log=log)
        return table

    _, table = GenericExtractor().extract(lines, file_name, log=log)
    return table


# ---------------------------------------------------------------------------
# Import
# ---------------------------------------------------------------------------


def convert_statement(
    raw_text: str,
    file_name: str,
    mapper: TransactionMapper | None = None,
    settings: Settings | None = None,
) -> dict:
    """Parse and map raw statement text.

    Returns:
        Summary dict: {"transactions": list[Transaction], "dialect": str,
                        "mapping": str, "fallback": bool, "rows": int,
                        "skipped": int,
                        "events": tuple[DiagnosticEvent, ...]}

    Raises:
        StatementParseError: If the text is empty.
        NoTransactionsError: If no mapping produced any transaction.
    """
    mapper = mapper or TransactionMapper(settings=settings)
    log = DiagnosticLog(logger)

    table = parse_statement(raw_text, file_name, log=log, settings=settings)
    result = mapper.map_table(table, log=log)

    if not result.transactions:
        raise NoTransactionsError(
            f"No transactions extracted from {file_name}. "
            f"Detected format: {result.detected_dialect.value}, "
            f"{len(table.rows)} candidate rows."
        )

    logger.info(
        "Mapped %d transactions from %s (dialect %s, mapping %s)",
        len(result.transactions),
        file_name,
        result.detected_dialect.value,
        result.mapping_used.value,
    )
    return {
        "transactions": list(result.transactions),
        "dialect": result.detected_dialect.value,
        "mapping": result.mapping_used.value,
        "fallback": result.used_fallback,
        "rows": len(table.rows),
        "skipped": result.skipped_rows,
        "events": result.events,
    }


def import_statement(
    filepath: str,
    mapper: TransactionMapper | None = None,
    settings: Settings | None = None,
) -> dict:
    """Read a statement export from disk and convert it.

    Raises:
        UnsupportedFormatError: For PDF and Excel statements.
        InvalidDataError: If the file can't be read or yields nothing.
    """
    path = Path(filepath)
    if path.suffix.lower() in UNSUPPORTED_SUFFIXES:
        raise UnsupportedFormatError(
            f"{path.suffix} statements are not supported yet. Export as CSV instead."
        )

    try:
        raw_text = path.read_text(encoding="utf-8-sig", errors="replace")
    except OSError as e:
        raise InvalidDataError(f"Could not read statement file: {e}") from e

    return convert_statement(raw_text, path.name, mapper=mapper, settings=settings)
