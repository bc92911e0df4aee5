"""Custom exceptions for the statement normalizer."""


class InvalidDataError(Exception):
    """Raised when statement data fails validation."""
    pass


class StatementParseError(InvalidDataError):
    """Raised when raw statement text cannot be segmented at all."""
    pass


class NoTransactionsError(InvalidDataError):
    """Raised when a statement yields no transactions under any mapping."""
    pass


class UnsupportedFormatError(InvalidDataError):
    """Raised for statement file types that have no extractor (PDF, Excel)."""
    pass
