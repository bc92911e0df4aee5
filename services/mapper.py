"""Transaction mapper — RawTable rows → canonical transactions.

Pipeline per table:
1. Detect the dialect (unless the extractor already set it)
2. Resolve the dialect's column mapping against the header row
3. Normalize each row (date, payee, memo, inflow/outflow)
4. If nothing came out, retry every other mapping in registry order

Bad rows are dropped and logged, never raised. The worst outcome of
mapping a table is an empty list.

Usage:
    from services.mapper import map_to_transactions
    transactions = map_to_transactions(table)
"""

import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from config.settings import Settings
from parsers.base import Dialect, RawTable
from parsers.detector import detect_dialect
from services.diagnostics import DiagnosticEvent, DiagnosticLog
from services.mappings import (
    DIALECT_MAPPINGS,
    DialectMapping,
    PayeeStyle,
    get_mapping,
    resolve_column,
)
from services.normalizers import (
    MEMO_MAX_LENGTH,
    PAYEE_MAX_LENGTH,
    YEAR_PIVOT_WINDOW,
    ZERO,
    extract_axis_payee,
    extract_icici_cc_payee,
    keep_larger,
    parse_amount,
    parse_date,
    round_money,
    sanitize_memo,
    sanitize_payee,
    split_signed_amount,
)

logger = logging.getLogger(__name__)

# Rows sampled for content-based detection
DETECTION_SAMPLE_ROWS = 10


@dataclass(frozen=True)
class Transaction:
    """Canonical, dialect-independent transaction record."""

    date: date
    payee: str
    memo: str
    outflow: Decimal
    inflow: Decimal
    account: str = ""

    @classmethod
    def create(
        cls,
        txn_date: date,
        payee: str,
        memo: str,
        inflow: Decimal,
        outflow: Decimal,
        account: str = "",
    ) -> "Transaction":
        """Build a transaction, enforcing non-negative 2dp amounts on one side."""
        inflow, outflow = keep_larger(abs(inflow), abs(outflow))
        inflow = round_money(inflow)
        outflow = round_money(outflow)
        return cls(
            date=txn_date,
            payee=payee,
            memo=memo,
            outflow=outflow,
            inflow=inflow,
            account=account,
        )

    def to_dict(self) -> dict:
        return {
            "date": self.date.isoformat(),
            "payee": self.payee,
            "memo": self.memo,
            "outflow": f"{self.outflow:.2f}",
            "inflow": f"{self.inflow:.2f}",
            "account": self.account,
        }


@dataclass(frozen=True)
class MappingResult:
    transactions: tuple[Transaction, ...]
    detected_dialect: Dialect
    mapping_used: Dialect | None
    skipped_rows: int
    events: tuple[DiagnosticEvent, ...]

    @property
    def used_fallback(self) -> bool:
        return self.mapping_used is not None and self.mapping_used != self.detected_dialect


@dataclass(frozen=True)
class _Columns:
    date: int
    payee: int
    memo: int
    amount: int
    inflow: int
    outflow: int
    account: int

    @property
    def required_width(self) -> int:
        return max(self.date, self.payee) + 1


def _cell(row: Sequence[str], index: int) -> str:
    if index < 0 or index >= len(row):
        return ""
    value = row[index]
    return "" if value is None else str(value).strip()


class TransactionMapper:
    """Maps extracted statement tables to canonical transactions."""

    def __init__(
        self,
        settings: Settings | None = None,
        mappings: Mapping[Dialect, DialectMapping] = DIALECT_MAPPINGS,
        account_name: str = "",
        sink: Callable[[DiagnosticEvent], None] | None = None,
    ):
        self._mappings = mappings
        self._account_name = account_name
        self._sink = sink
        if settings is not None:
            self._payee_max = settings.payee_max_length
            self._memo_max = settings.memo_max_length
            self._pivot_window = settings.year_pivot_window
        else:
            self._payee_max = PAYEE_MAX_LENGTH
            self._memo_max = MEMO_MAX_LENGTH
            self._pivot_window = YEAR_PIVOT_WINDOW

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def map_to_transactions(self, table: RawTable) -> list[Transaction]:
        return list(self.map_table(table).transactions)

    def map_table(self, table: RawTable, log: DiagnosticLog | None = None) -> MappingResult:
        """Run detect → resolve → map → retry for one table. Never raises."""
        log = log or DiagnosticLog(logger, self._sink)
        dialect = table.dialect or self.detect(table)
        log.record("detect", "Using dialect %s for %s", dialect.value, table.source_name)

        skipped = 0
        mapping = get_mapping(dialect, self._mappings)
        mapped = self.apply_mapping(table, mapping, log)
        if mapped is not None:
            transactions, skipped = mapped
            if transactions:
                return self._result(transactions, dialect, dialect, skipped, log)

        log.record("retry", "No transactions with %s mapping, trying alternatives", dialect.value)
        for candidate, candidate_mapping in self._mappings.items():
            if candidate == dialect:
                continue
            mapped = self.apply_mapping(table, candidate_mapping, log)
            if mapped is None:
                continue
            transactions, candidate_skipped = mapped
            if transactions:
                log.warning(
                    "retry",
                    "Extracted %d transactions using fallback %s mapping",
                    len(transactions),
                    candidate.value,
                )
                return self._result(transactions, dialect, candidate, candidate_skipped, log)

        log.warning("retry", "No mapping produced transactions for %s", table.source_name)
        return self._result([], dialect, None, skipped, log)

    def detect(self, table: RawTable) -> Dialect:
        sample = " ".join(
            " ".join(str(cell) for cell in row) for row in table.rows[:DETECTION_SAMPLE_ROWS]
        )
        return detect_dialect(table.source_name, sample, table.headers)

    def apply_mapping(
        self, table: RawTable, mapping: DialectMapping, log: DiagnosticLog
    ) -> tuple[list[Transaction], int] | None:
        """Map every row with one mapping.

        Returns ``(transactions, skipped_rows)``, or None when the date or
        payee column cannot be resolved.
        """
        columns = self._resolve(table.headers, mapping)
        if columns.date == -1 or columns.payee == -1:
            log.record(
                "resolve",
                "Required columns %r/%r not found in headers %r",
                mapping.date_field,
                mapping.payee_field,
                list(table.headers),
            )
            return None
        declares_amounts = any(
            (mapping.amount_field, mapping.inflow_field, mapping.outflow_field)
        )
        if declares_amounts and columns.amount == columns.inflow == columns.outflow == -1:
            log.record("resolve", "No amount column found in headers %r", list(table.headers))
            return None
        log.record("resolve", "Column indices for %s: %r", mapping.date_field, columns)

        transactions: list[Transaction] = []
        skipped = 0
        for row_number, row in enumerate(table.rows):
            try:
                txn = self._map_row(row, columns, mapping, log, row_number)
            except (ValueError, IndexError, ArithmeticError) as e:
                log.warning("map", "Error processing row %d: %s", row_number, e)
                txn = None
            if txn is None:
                skipped += 1
            else:
                transactions.append(txn)

        log.record("map", "Processed %d transactions, skipped %d rows", len(transactions), skipped)
        return transactions, skipped

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _resolve(self, headers: Sequence[str], mapping: DialectMapping) -> _Columns:
        return _Columns(
            date=resolve_column(headers, mapping.date_field),
            payee=resolve_column(headers, mapping.payee_field),
            memo=resolve_column(headers, mapping.memo_field),
            amount=resolve_column(headers, mapping.amount_field),
            inflow=resolve_column(headers, mapping.inflow_field),
            outflow=resolve_column(headers, mapping.outflow_field),
            account=resolve_column(headers, mapping.account_field),
        )

    def _map_row(
        self,
        row: Sequence[str],
        columns: _Columns,
        mapping: DialectMapping,
        log: DiagnosticLog,
        row_number: int,
    ) -> Transaction | None:
        if len(row) < columns.required_width:
            log.record("map", "Skipping row %d with insufficient data: %r", row_number, list(row))
            return None

        raw_date = _cell(row, columns.date)
        txn_date = parse_date(raw_date, mapping.date_format, pivot_window=self._pivot_window)
        if txn_date is None:
            log.record("map", "Skipping row %d with invalid date: %r", row_number, raw_date)
            return None

        payee, memo = self._payee_and_memo(row, columns, mapping)
        inflow, outflow = self._amounts(row, columns, mapping)
        account = _cell(row, columns.account) or self._account_name

        return Transaction.create(txn_date, payee, memo, inflow, outflow, account)

    def _payee_and_memo(
        self, row: Sequence[str], columns: _Columns, mapping: DialectMapping
    ) -> tuple[str, str]:
        raw_payee = _cell(row, columns.payee)
        raw_memo = _cell(row, columns.memo)

        if mapping.payee_style == PayeeStyle.AXIS_PARTICULARS:
            payee = extract_axis_payee(raw_payee)
            memo = raw_payee
        elif mapping.payee_style == PayeeStyle.ICICI_CC_DETAILS:
            payee = extract_icici_cc_payee(raw_payee)
            memo = f"{mapping.memo_prefix}{raw_memo}" if raw_memo else ""
        else:
            payee = raw_payee
            memo = f"{mapping.memo_prefix}{raw_memo}" if raw_memo else ""

        return sanitize_payee(payee, self._payee_max), sanitize_memo(memo, self._memo_max)

    def _amounts(
        self, row: Sequence[str], columns: _Columns, mapping: DialectMapping
    ) -> tuple[Decimal, Decimal]:
        if mapping.has_single_amount:
            amount = parse_amount(_cell(row, columns.amount), mapping.number_format)
            return split_signed_amount(amount, mapping.invert_amount)

        inflow = ZERO
        outflow = ZERO
        if columns.inflow != -1:
            inflow = abs(parse_amount(_cell(row, columns.inflow), mapping.number_format))
        if columns.outflow != -1:
            outflow = abs(parse_amount(_cell(row, columns.outflow), mapping.number_format))
        return keep_larger(round_money(inflow), round_money(outflow))

    def _result(
        self,
        transactions: list[Transaction],
        detected: Dialect,
        used: Dialect | None,
        skipped: int,
        log: DiagnosticLog,
    ) -> MappingResult:
        return MappingResult(
            transactions=tuple(transactions),
            detected_dialect=detected,
            mapping_used=used,
            skipped_rows=skipped,
            events=log.events,
        )


def map_to_transactions(table: RawTable) -> list[Transaction]:
    """Map a table with the default mapping registry. Never raises."""
    return TransactionMapper().map_to_transactions(table)
