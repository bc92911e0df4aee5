"""Statement dialect detection from filename, content and header row.

Detection is an ordered list of rules; the first rule whose predicate
matches decides the dialect. Each predicate is a plain function so rules
can be tested on their own and new dialects slot in without touching the
others.

Detection is advisory: the transaction mapper retries every other mapping
when the detected one yields nothing.
"""

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from parsers.base import Dialect

logger = logging.getLogger(__name__)

# "account" contains "cc" but never marks a card statement
NON_CARD_WORDS = ("account",)

ICICI_CC_MARKERS = (
    "view current statement",
    "view last statement",
    "transaction details",
)


@dataclass(frozen=True)
class DetectionInput:
    """Lower-cased view of everything a rule may look at."""

    file_name: str
    content: str
    headers: tuple[str, ...] | None

    @classmethod
    def build(
        cls, file_name: str, content: str, headers: Sequence[str] | None = None
    ) -> "DetectionInput":
        return cls(
            file_name=(file_name or "").lower(),
            content=(content or "").lower(),
            headers=(
                tuple(str(h).strip().lower() for h in headers)
                if headers is not None
                else None
            ),
        )

    def file_has(self, *needles: str) -> bool:
        return any(n in self.file_name for n in needles)

    def file_has_card_marker(self) -> bool:
        """Filename says credit card: "credit" or "cc" anywhere outside "account"."""
        name = self.file_name
        for word in NON_CARD_WORDS:
            name = name.replace(word, " ")
        return "credit" in name or "cc" in name

    def header_has(self, *needles: str) -> bool:
        """True if any header cell contains any of the needles."""
        if not self.headers:
            return False
        return any(n in h for h in self.headers for n in needles)

    def header_is(self, *values: str) -> bool:
        if not self.headers:
            return False
        return any(h in values for h in self.headers)


@dataclass(frozen=True)
class DetectionRule:
    dialect: Dialect
    predicate: Callable[[DetectionInput], bool]
    name: str


# ---------------------------------------------------------------------------
# Rule predicates
# ---------------------------------------------------------------------------


def is_icici_credit_card(d: DetectionInput) -> bool:
    return (
        d.file_has("icici")
        and d.file_has_card_marker()
        and any(marker in d.content for marker in ICICI_CC_MARKERS)
    )


def is_axis_bank_by_name(d: DetectionInput) -> bool:
    return d.file_has("axis") and d.file_has("statement", "bank")


def is_axis_bank_by_header(d: DetectionInput) -> bool:
    return (
        d.header_has("date")
        and d.header_has("particular")
        and (d.header_has("withdrawal", "debit") or d.header_is("dr"))
        and (d.header_has("deposit", "credit") or d.header_is("cr"))
    )


def is_icici_bank(d: DetectionInput) -> bool:
    return (
        d.header_has("transaction date")
        and d.header_has("description")
        and d.header_has("withdrawal amount", "deposit amount")
    )


def is_hdfc_credit_card(d: DetectionInput) -> bool:
    by_name = d.file_has("hdfc") and d.file_has_card_marker()
    by_header = (
        d.header_has("date")
        and d.header_has("particulars")
        and d.header_has("amount(in rs)")
    )
    return by_name or by_header


def is_axis_credit_card(d: DetectionInput) -> bool:
    by_name = d.file_has("axis") and d.file_has_card_marker()
    by_header = (
        d.header_has("transaction details")
        and d.header_has("amount")
        and "axis bank" in d.content
    )
    return by_name or by_header


# Order matters: the ICICI credit card check needs content markers and must
# run before the filename-only Axis check; header rules only fire when a
# header row is supplied.
DETECTION_RULES: tuple[DetectionRule, ...] = (
    DetectionRule(Dialect.ICICI_CC, is_icici_credit_card, "icici-cc-markers"),
    DetectionRule(Dialect.AXIS_BANK, is_axis_bank_by_name, "axis-filename"),
    DetectionRule(Dialect.AXIS_BANK, is_axis_bank_by_header, "axis-header"),
    DetectionRule(Dialect.ICICI_BANK, is_icici_bank, "icici-bank-header"),
    DetectionRule(Dialect.HDFC_CC, is_hdfc_credit_card, "hdfc-cc"),
    DetectionRule(Dialect.AXIS_CC, is_axis_credit_card, "axis-cc"),
)


def detect_dialect(
    file_name: str,
    content: str,
    headers: Sequence[str] | None = None,
    rules: Sequence[DetectionRule] = DETECTION_RULES,
) -> Dialect:
    """Return the first dialect whose rule matches, or ``Dialect.UNKNOWN``."""
    data = DetectionInput.build(file_name, content, headers)
    for rule in rules:
        if rule.predicate(data):
            logger.debug("Dialect %s matched by rule %s", rule.dialect.value, rule.name)
            return rule.dialect
    logger.debug("No dialect rule matched for %s", file_name)
    return Dialect.UNKNOWN


def header_dialect(headers: Sequence[str]) -> Dialect:
    """Dialect implied by a header row alone (no filename or content)."""
    return detect_dialect("", "", headers)
