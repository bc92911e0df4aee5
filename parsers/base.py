"""Shared types for statement extraction.

Each bank dialect has a different export layout. Extractors implement:
- extract(lines, source_name, start) → (consumed line count, RawTable)

The RawTable they return is immutable and consumed by the transaction
mapper within a single call.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from services.diagnostics import DiagnosticLog


class Dialect(str, Enum):
    """Known statement export conventions (closed set)."""

    ICICI_BANK = "ICICI_Bank"
    ICICI_CC = "ICICI_CC"
    AXIS_BANK = "Axis_Bank"
    AXIS_CC = "Axis_CC"
    HDFC_CC = "HDFC_CC"
    UNKNOWN = "Unknown"


@dataclass(frozen=True)
class RawTable:
    """Header row plus data rows extracted from one statement file."""

    headers: tuple[str, ...]
    rows: tuple[tuple[str, ...], ...]
    source_name: str
    dialect: Dialect | None = None

    @classmethod
    def build(
        cls,
        headers: Sequence[str],
        rows: Sequence[Sequence[str]],
        source_name: str,
        dialect: Dialect | None = None,
    ) -> RawTable:
        return cls(
            headers=tuple(headers),
            rows=tuple(tuple(row) for row in rows),
            source_name=source_name,
            dialect=dialect,
        )

    @classmethod
    def empty(cls, source_name: str) -> RawTable:
        """Table returned when no transaction block could be located."""
        return cls(headers=(), rows=(), source_name=source_name, dialect=Dialect.UNKNOWN)

    @property
    def is_empty(self) -> bool:
        return not self.headers and not self.rows


class StatementExtractor(ABC):
    """Base class for all dialect extractors."""

    # Dialect this extractor produces (None = decided from the header)
    dialect: Dialect | None = None

    @abstractmethod
    def extract(
        self,
        lines: Sequence[str],
        source_name: str,
        start: int = 0,
        log: DiagnosticLog | None = None,
    ) -> tuple[int, RawTable]:
        """Locate the transaction block in ``lines`` from ``start`` onwards.

        Returns the number of lines consumed and the extracted table. A
        transaction block that cannot be located yields ``RawTable.empty``
        rather than an exception.
        """
