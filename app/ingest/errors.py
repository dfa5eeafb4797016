"""Ingestion error taxonomy."""

from __future__ import annotations


class PriceIngestError(Exception):
    """Base class for every classified pipeline failure."""


class ArchiveError(PriceIngestError):
    pass


class EmptyArchive(ArchiveError):
    pass


class CorruptArchive(ArchiveError):
    pass


class NoMatchingEntry(ArchiveError):
    pass


class UnsupportedArchiveKind(ArchiveError):
    pass


class CSVStructureError(PriceIngestError):
    pass


class MalformedCSV(CSVStructureError):
    pass


class StoreError(PriceIngestError):
    pass


class TransactionStartFailed(StoreError):
    pass


class InsertFailed(StoreError):
    def __init__(self, position: int, line: int) -> None:
        super().__init__(f"Insert failed at position {position} (CSV line {line})")
        self.position = position
        self.line = line


class CommitFailed(StoreError):
    pass


class InvalidFilter(ValueError):
    pass
