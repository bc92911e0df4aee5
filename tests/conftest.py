"""Shared test fixtures for the statement normalizer test suite."""

import pytest

from config.settings import Settings


# ---------------------------------------------------------------------------
# Sample statement fixtures
# ---------------------------------------------------------------------------

AXIS_STATEMENT = """Name :- SAURABH VIKAS GADKARI (HUF)
Joint Holder :- -
FLAT NO B 602 WOODSVILLE PHASE 2 NEAR
Customer ID :- 948377135
IFSC Code :- UTIB0004875
MICR Code :- 411211079

Statement of Account No - 923010008070086 for the period (From : 16-03-2025 To : 04-05-2025)

Tran Date,CHQNO,PARTICULARS,DR,CR,BAL,SOL
16-03-2025,-,NBSM/96863804/CRED(RAZORPAY)/,              4439.59, ,           604111.30,4875
31-03-2025,-,SB:923010008070086:Int.Pd:01-01-2025 to 31-03-2025, ,              4538.00,           608649.30,4875
06-04-2025,-,NBSM/99489067/CRED(RAZORPAY)/,             22584.90, ,           586064.40,4875
21-04-2025,-,IMPS/P2A/511110688643/SHUBHANG/ICICIBAN/IMPSTran/9198817299869229798, ,            200000.00,           786064.40,4875
26-04-2025,-,IMPS/P2A/511619321843/SHUBHANG/ICICIBAN/IMPSTran/9198817299869229798, ,            367000.00,          1153064.40,4875
02-05-2025,-,NBSM/102638216/DREAMPLUG TECHNOLOGIES PVT LTD (PA,             62995.63, ,          1090068.77,4875

"Unless the constituent notifies the bank immediately of any discrepancy found by him/her in this statement of Account, it will be taken that he/she has found the account correct. "
"""

ICICI_CC_STATEMENT = """Accountno:,XXXX1234
Customer Name:,JOHN DOE
VIEW CURRENT STATEMENT
Credit Card Details
Transaction Details
,,Date,Transaction Details,,Amount (in Rs.),,Reference Number
,,01/04/2025,"AMAZON PAY INDIA PRIVA, wwwamazonin, IND",,2500.00 Dr.,,74332745091234567
,,03/04/2025,UPI-545515394479_UPI-545515394479-SAI FLOW,,1500.00 Dr.,,74332745091234568
,,05/04/2025,PAYMENT RECEIVED THANK YOU,,"5,000.00 Cr.",,74332745091234569
,,06/04/2025,Opening balance,,,,
Statement Summary
,,Total Due,,,7500.00,,
"""

ICICI_BANK_STATEMENT = """Transaction Date,Value Date,Description,Reference Number,Withdrawal Amount,Deposit Amount,Balance
01/04/2025,01/04/2025,SALARY CREDIT,REF001,,50000.00,150000.00
03/04/2025,03/04/2025,ATM WITHDRAWAL,REF002,"2,000.00",,148000.00
"""

HDFC_CC_STATEMENT = """Date,Particulars,Amount(in Rs)
01/04/2025,SWIGGY BANGALORE,450.00
05/04/2025,PAYMENT RECEIVED,-5000.00
"""

GENERIC_STATEMENT = """Txn Date,Narration,Withdrawal,Deposit
05/04/2025,GROCERY STORE,1200.50,
06/04/2025,REFUND,,300
"""


@pytest.fixture
def axis_statement():
    return AXIS_STATEMENT


@pytest.fixture
def icici_cc_statement():
    return ICICI_CC_STATEMENT


@pytest.fixture
def icici_bank_statement():
    return ICICI_BANK_STATEMENT


@pytest.fixture
def hdfc_cc_statement():
    return HDFC_CC_STATEMENT


@pytest.fixture
def generic_statement():
    return GENERIC_STATEMENT


@pytest.fixture
def settings(monkeypatch):
    """Settings with defaults only (no STATEMENT_* leaking in from the shell)."""
    for key in (
        "STATEMENT_PAYEE_MAX_LENGTH",
        "STATEMENT_MEMO_MAX_LENGTH",
        "STATEMENT_YEAR_PIVOT_WINDOW",
        "STATEMENT_HEADER_SNIFF_LINES",
        "STATEMENT_AXIS_RECOVERY_WINDOW",
        "STATEMENT_PREVIEW_ROWS",
        "STATEMENT_EXPORT_DATE_FORMAT",
        "STATEMENT_LOG_LEVEL",
    ):
        monkeypatch.delenv(key, raising=False)
    return Settings(_env_file=None)
