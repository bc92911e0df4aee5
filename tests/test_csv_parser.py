"""Tests for statement extractors, parsing and file import.

Run:
    pytest tests/test_csv_parser.py -v
"""

from datetime import date
from decimal import Decimal

import pytest

from config.settings import Settings
from parsers.base import Dialect
from parsers.csv_parser import (
    AxisBankExtractor,
    GenericExtractor,
    IciciCreditCardExtractor,
    build_extractors,
    convert_statement,
    extractor_for,
    import_statement,
    parse_statement,
    sniff_header,
)
from parsers.segmenter import split_lines
from services.diagnostics import DiagnosticLog
from services.exceptions import (
    InvalidDataError,
    NoTransactionsError,
    StatementParseError,
    UnsupportedFormatError,
)
from services.mapper import TransactionMapper


# =========================================================================
# Axis Bank Extractor
# =========================================================================


class TestAxisBankExtractor:
    extractor = AxisBankExtractor()

    def test_finds_header_after_preamble(self, axis_statement):
        lines = split_lines(axis_statement)
        assert self.extractor.find_header(lines) == 7

    def test_extracts_rows_until_footer(self, axis_statement):
        lines = split_lines(axis_statement)
        consumed, table = self.extractor.extract(lines, "axis.csv")

        assert table.dialect == Dialect.AXIS_BANK
        assert table.headers == ("Tran Date", "CHQNO", "PARTICULARS", "DR", "CR", "BAL", "SOL")
        assert len(table.rows) == 6
        assert table.rows[0][3] == "4439.59"
        assert table.rows[1][4] == "4538.00"
        # Stopped on the "Unless ..." footer, which is the last line
        assert consumed == len(lines)

    def test_relaxed_header_search(self):
        lines = ["Account summary", "Txn Date,Narration,Debit,Credit", "01-04-2025,X,1,"]
        assert self.extractor.find_header(lines) == 1

    def test_fallback_header_line(self):
        lines = [f"preamble {i}" for i in range(17)] + ["A,B,C", "01-04-2025,x,1"]
        assert self.extractor.find_header(lines) == 17

    def test_no_header(self):
        lines = ["nothing", "to", "see"]
        consumed, table = self.extractor.extract(lines, "axis.csv")
        assert table.is_empty
        assert table.dialect == Dialect.UNKNOWN
        assert consumed == 3

    def test_invalid_fallback_header_gives_empty_table(self):
        lines = [f"preamble {i}" for i in range(17)] + ["A,B,C", "01-04-2025,x,1"]
        _, table = self.extractor.extract(lines, "axis.csv")
        assert table.is_empty

    def test_pads_short_rows(self):
        lines = ["Tran Date,CHQNO,PARTICULARS,DR,CR,BAL,SOL", "01-04-2025,-,NBSM/1/X/,10"]
        _, table = self.extractor.extract(lines, "axis.csv")
        assert table.rows[0] == ("01-04-2025", "-", "NBSM/1/X/", "10", "", "", "")

    def test_skips_non_transaction_lines(self):
        lines = [
            "Tran Date,CHQNO,PARTICULARS,DR,CR,BAL,SOL",
            "OPENING BALANCE,,,,,100.00,",
            "01-04-2025,-,NBSM/1/X/,10,,90.00,1",
        ]
        _, table = self.extractor.extract(lines, "axis.csv")
        assert len(table.rows) == 1

    def test_recovery_pass(self):
        lines = [
            "Tran Date,CHQNO,PARTICULARS,DR,CR,BAL,SOL",
            "Apr 1,-,NBSM/1/X/,10,,90.00,1",
        ]
        log = DiagnosticLog()
        _, table = self.extractor.extract(lines, "axis.csv", log=log)
        assert len(table.rows) == 1
        assert any("recovery" in e.message for e in log.events)

    @pytest.mark.parametrize(
        "line",
        [
            '"Unless the constituent notifies the bank immediately"',
            "Legend : ICONN-Transaction trough Internet Banking",
            "REGISTERED OFFICE - AXIS BANK LTD",
            "The closing balance as shown above",
            '"A long quoted disclaimer line of some sort"',
        ],
    )
    def test_footers(self, line):
        assert self.extractor.is_footer(line)

    def test_transaction_is_not_footer(self):
        assert not self.extractor.is_footer("16-03-2025,-,NBSM/96863804/CRED(RAZORPAY)/,4439.59")


# =========================================================================
# ICICI Credit Card Extractor
# =========================================================================


class TestIciciCreditCardExtractor:
    extractor = IciciCreditCardExtractor()

    def test_extracts_current_statement(self, icici_cc_statement):
        lines = split_lines(icici_cc_statement)
        _, table = self.extractor.extract(lines, "icici.csv")

        assert table.dialect == Dialect.ICICI_CC
        assert table.headers == (
            "empty0",
            "empty1",
            "Transaction Date",
            "Details",
            "empty4",
            "Amount (INR)",
            "empty6",
            "Reference Number",
            "empty8",
        )
        # Opening balance row has no Dr./Cr. amount
        assert len(table.rows) == 3
        assert all(len(row) == 9 for row in table.rows)
        assert table.rows[0][3] == "AMAZON PAY INDIA PRIVA, wwwamazonin, IND"
        assert table.rows[2][5] == "5,000.00 Cr."

    def test_stops_at_summary(self, icici_cc_statement):
        lines = split_lines(icici_cc_statement)
        consumed, _ = self.extractor.extract(lines, "icici.csv")
        assert lines[consumed - 1] == "Statement Summary"

    def test_last_statement_offsets(self):
        columns = self.extractor.resolve_columns(["", "", "", "", "", "", "", ""], is_last=True)
        assert columns == {"date": 2, "details": 3, "amount": 6, "reference": 9}

    def test_current_statement_offsets(self):
        columns = self.extractor.resolve_columns([], is_last=False)
        assert columns == {"date": 2, "details": 3, "amount": 5, "reference": 7}

    def test_columns_found_by_keyword(self):
        header = ["Date", "Transaction Details", "Amount (in Rs.)", "Reference Number"]
        columns = self.extractor.resolve_columns(header, is_last=False)
        assert columns == {"date": 0, "details": 1, "amount": 2, "reference": 3}

    def test_marker_line_as_header(self):
        lines = [
            "VIEW CURRENT STATEMENT",
            "Date,Transaction Details,Amount (in Rs.),Reference Number",
            "01/04/2025,SWIGGY,450.00 Dr.,123",
        ]
        _, table = self.extractor.extract(lines, "icici.csv")
        assert len(table.rows) == 1
        assert table.headers[:4] == ("Transaction Date", "Details", "Amount (INR)", "Reference Number")

    def test_no_section_marker(self):
        _, table = self.extractor.extract(["Date,Amount", "01/04/2025,1 Dr."], "icici.csv")
        assert table.is_empty

    def test_rejects_non_slash_dates(self):
        lines = [
            "Transaction Details",
            ",,Date,Transaction Details,,Amount (in Rs.),,Reference Number",
            ",,2025-04-01,SWIGGY,,450.00 Dr.,,1",
        ]
        _, table = self.extractor.extract(lines, "icici.csv")
        assert table.rows == ()


# =========================================================================
# Generic Extractor
# =========================================================================


class TestGenericExtractor:
    def test_first_line_is_header(self, generic_statement):
        lines = split_lines(generic_statement)
        consumed, table = GenericExtractor().extract(lines, "export.csv")

        assert consumed == 3
        assert table.headers == ("Txn Date", "Narration", "Withdrawal", "Deposit")
        assert table.rows == (
            ("05/04/2025", "GROCERY STORE", "1200.50", ""),
            ("06/04/2025", "REFUND", "", "300"),
        )
        assert table.dialect == Dialect.UNKNOWN

    def test_semicolons(self):
        lines = ["Date;Description;Debit;Credit", "01/04/2025;X;1,50;"]
        _, table = GenericExtractor().extract(lines, "export.csv")
        assert table.rows == (("01/04/2025", "X", "1,50", ""),)

    def test_skip_rows(self):
        lines = ["Bank export", "Date,Description", "01/04/2025,X"]
        _, table = GenericExtractor(skip_rows=1).extract(lines, "export.csv")
        assert table.headers == ("Date", "Description")

    def test_skip_past_end(self):
        _, table = GenericExtractor(skip_rows=5).extract(["a,b"], "export.csv")
        assert table.is_empty

    def test_detects_dialect_from_header(self, hdfc_cc_statement):
        _, table = GenericExtractor().extract(split_lines(hdfc_cc_statement), "cards.csv")
        assert table.dialect == Dialect.HDFC_CC


# =========================================================================
# Extractor selection
# =========================================================================


class TestExtractorSelection:
    def test_specialized_extractors(self):
        assert isinstance(extractor_for(Dialect.AXIS_BANK), AxisBankExtractor)
        assert isinstance(extractor_for(Dialect.ICICI_CC), IciciCreditCardExtractor)

    def test_generic_for_everything_else(self):
        assert isinstance(extractor_for(Dialect.HDFC_CC), GenericExtractor)
        assert isinstance(extractor_for(Dialect.UNKNOWN), GenericExtractor)

    def test_settings_reach_extractors(self):
        extractors = build_extractors(Settings(_env_file=None, axis_recovery_window=3))
        assert extractors[Dialect.AXIS_BANK].recovery_window == 3

    def test_sniff_header(self, axis_statement):
        assert sniff_header(split_lines(axis_statement)) == (7, Dialect.AXIS_BANK)

    def test_sniff_header_respects_limit(self, axis_statement):
        assert sniff_header(split_lines(axis_statement), limit=5) == (-1, Dialect.UNKNOWN)


# =========================================================================
# parse_statement
# =========================================================================


class TestParseStatement:
    def test_axis_by_filename(self, axis_statement):
        table = parse_statement(axis_statement, "Axis 086 account statement.csv")
        assert table.dialect == Dialect.AXIS_BANK
        assert len(table.rows) == 6

    def test_axis_by_header_sniffing(self, axis_statement):
        table = parse_statement(axis_statement, "download.csv")
        assert table.dialect == Dialect.AXIS_BANK
        assert len(table.rows) == 6

    def test_icici_credit_card(self, icici_cc_statement):
        table = parse_statement(icici_cc_statement, "ICICI_Credit_Card_current.csv")
        assert table.dialect == Dialect.ICICI_CC
        assert len(table.rows) == 3

    def test_generic_header_after_preamble(self):
        text = "Bank of Somewhere\nAccount 1234\nDate,Particulars,Amount(in Rs)\n01/04/2025,X,10\n"
        table = parse_statement(text, "download.csv")
        assert table.headers == ("Date", "Particulars", "Amount(in Rs)")
        assert table.dialect == Dialect.HDFC_CC

    def test_empty_text_raises(self):
        with pytest.raises(StatementParseError):
            parse_statement("\n \r\n", "empty.csv")

    def test_records_diagnostics(self, axis_statement):
        log = DiagnosticLog()
        parse_statement(axis_statement, "Axis 086 account statement.csv", log=log)
        stages = list(dict.fromkeys(e.stage for e in log.events))
        assert stages[:2] == ["detect", "extract"]


# =========================================================================
# convert_statement
# =========================================================================


class TestConvertStatement:
    def test_axis_end_to_end(self, axis_statement):
        result = convert_statement(axis_statement, "Axis 086 account statement.csv")

        assert result["dialect"] == "Axis_Bank"
        assert result["mapping"] == "Axis_Bank"
        assert result["rows"] == 6
        assert result["skipped"] == 0

        txns = result["transactions"]
        assert [t.date for t in txns] == [
            date(2025, 3, 16),
            date(2025, 3, 31),
            date(2025, 4, 6),
            date(2025, 4, 21),
            date(2025, 4, 26),
            date(2025, 5, 2),
        ]
        assert [t.payee for t in txns] == [
            "CRED(RAZORPAY)",
            "SB 923010008070086 Int.Pd 01",
            "CRED(RAZORPAY)",
            "SHUBHANG",
            "SHUBHANG",
            "DREAMPLUG TECHNOLOGIES PVT LTD (PA",
        ]
        assert txns[0].outflow == Decimal("4439.59") and txns[0].inflow == 0
        assert txns[1].inflow == Decimal("4538.00") and txns[1].outflow == 0
        assert txns[4].inflow == Decimal("367000.00")
        assert txns[5].outflow == Decimal("62995.63")

    def test_icici_credit_card_end_to_end(self, icici_cc_statement):
        result = convert_statement(icici_cc_statement, "ICICI_Credit_Card_current.csv")

        assert result["dialect"] == "ICICI_CC"
        amazon, upi, payment = result["transactions"]
        assert amazon.payee == "AMAZON PAY INDIA PRIVA"
        assert amazon.memo == "Ref 74332745091234567"
        assert amazon.outflow == Decimal("2500.00")
        assert upi.payee == "SAI FLOW"
        assert upi.outflow == Decimal("1500.00")
        assert payment.payee == "PAYMENT RECEIVED THANK YOU"
        assert payment.inflow == Decimal("5000.00")

    def test_icici_credit_card_with_cc_prefix(self, icici_cc_statement):
        result = convert_statement(icici_cc_statement, "CCStatement_ICICI.csv")

        assert result["dialect"] == "ICICI_CC"
        assert len(result["transactions"]) == 3

    def test_icici_bank(self, icici_bank_statement):
        result = convert_statement(icici_bank_statement, "icici_bank_statement.csv")

        assert result["dialect"] == "ICICI_Bank"
        salary, atm = result["transactions"]
        assert salary.payee == "SALARY CREDIT"
        assert salary.memo == "REF001"
        assert salary.inflow == Decimal("50000.00")
        assert atm.outflow == Decimal("2000.00")

    def test_hdfc_credit_card(self, hdfc_cc_statement):
        result = convert_statement(hdfc_cc_statement, "hdfc_cc_statement.csv")

        assert result["dialect"] == "HDFC_CC"
        swiggy, payment = result["transactions"]
        assert swiggy.outflow == Decimal("450.00")
        assert payment.inflow == Decimal("5000.00")

    def test_generic(self, generic_statement):
        result = convert_statement(generic_statement, "export.csv")

        assert result["dialect"] == "Unknown"
        assert result["mapping"] == "Unknown"
        assert len(result["transactions"]) == 2
        assert not result["fallback"]

    def test_reports_fallback_mapping(self):
        text = "Date,Narration,Debit,Credit\n01/04/2025,COFFEE,120,\n"
        result = convert_statement(text, "hdfc_cc.csv")

        assert result["dialect"] == "HDFC_CC"
        assert result["mapping"] == "Axis_Bank"
        assert result["fallback"]
        (txn,) = result["transactions"]
        assert txn.outflow == Decimal("120.00")

    def test_uses_given_mapper(self, generic_statement):
        mapper = TransactionMapper(account_name="Joint")
        result = convert_statement(generic_statement, "export.csv", mapper=mapper)
        assert {t.account for t in result["transactions"]} == {"Joint"}

    def test_no_transactions_raises(self):
        with pytest.raises(NoTransactionsError, match="No transactions extracted"):
            convert_statement("Posted,Narrative\nx,y\n", "export.csv")

    def test_no_transactions_is_invalid_data(self):
        with pytest.raises(InvalidDataError):
            convert_statement("Posted,Narrative\nx,y\n", "export.csv")


# =========================================================================
# import_statement
# =========================================================================


class TestImportStatement:
    def test_reads_file(self, tmp_path, axis_statement):
        path = tmp_path / "Axis 086 account statement.csv"
        path.write_text(axis_statement, encoding="utf-8")

        result = import_statement(str(path))
        assert result["dialect"] == "Axis_Bank"
        assert len(result["transactions"]) == 6

    def test_strips_byte_order_mark(self, tmp_path, hdfc_cc_statement):
        path = tmp_path / "hdfc_cc_statement.csv"
        path.write_text(hdfc_cc_statement, encoding="utf-8-sig")

        result = import_statement(str(path))
        assert len(result["transactions"]) == 2

    @pytest.mark.parametrize("name", ["statement.pdf", "statement.XLSX", "statement.xls"])
    def test_unsupported_formats(self, tmp_path, name):
        path = tmp_path / name
        path.write_bytes(b"binary")
        with pytest.raises(UnsupportedFormatError):
            import_statement(str(path))

    def test_missing_file(self, tmp_path):
        with pytest.raises(InvalidDataError, match="Could not read"):
            import_statement(str(tmp_path / "missing.csv"))

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.csv"
        path.write_text("", encoding="utf-8")
        with pytest.raises(StatementParseError):
            import_statement(str(path))
