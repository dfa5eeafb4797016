"""Ingestion data models."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import NamedTuple

CENTS = Decimal("0.01")


def to_money(value: object) -> Decimal:
    """Normalize a driver value (Decimal, float, int or str) to cents."""
    if value is None:
        return Decimal("0.00")
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


class IdentityKey(NamedTuple):
    name: str
    category: str
    price: Decimal
    create_date: date


@dataclass(slots=True, frozen=True)
class CandidateRecord:
    source_id: int
    name: str
    category: str
    price: Decimal
    create_date: date
    line: int

    @property
    def identity_key(self) -> IdentityKey:
        return IdentityKey(self.name, self.category, to_money(self.price), self.create_date)


@dataclass(slots=True)
class ValidationResult:
    total_count: int
    records: list[CandidateRecord]


@dataclass(slots=True)
class Classification:
    unique: list[CandidateRecord]
    duplicates_count: int


@dataclass(slots=True)
class PriceStats:
    item_count: int
    category_count: int
    price_sum: Decimal
    duplicate_count: int


@dataclass(slots=True)
class IngestionOutcome:
    total_count: int
    inserted: int
    duplicates_count: int
    stats: PriceStats
