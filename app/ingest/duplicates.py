"""Duplicate detection by identity key."""

from __future__ import annotations

import logging
from collections.abc import Callable, Collection, Iterable

from sqlalchemy import select, tuple_
from sqlalchemy.engine import Connection

from app.db.tables import prices
from app.ingest.models import CandidateRecord, Classification, IdentityKey, to_money

logger = logging.getLogger(__name__)

LOOKUP_CHUNK_SIZE = 400

PersistedLookup = Callable[[Collection[IdentityKey]], set[IdentityKey]]


def classify(records: Iterable[CandidateRecord], persisted_lookup: PersistedLookup) -> Classification:
    """Split ``records`` into rows to insert and a duplicate count.

    The first occurrence of a key inside the batch is kept unless the store
    already holds that key. Every other occurrence counts once.
    """
    records = list(records)
    persisted = persisted_lookup({record.identity_key for record in records}) if records else set()
    seen: set[IdentityKey] = set()
    unique: list[CandidateRecord] = []
    duplicates = 0
    for record in records:
        key = record.identity_key
        if key in seen or key in persisted:
            duplicates += 1
            continue
        seen.add(key)
        unique.append(record)
    logger.info("Classified %s rows: %s unique, %s duplicates", len(records), len(unique), duplicates)
    return Classification(unique=unique, duplicates_count=duplicates)


def persisted_keys(conn: Connection, keys: Collection[IdentityKey]) -> set[IdentityKey]:
    """Return the subset of ``keys`` already stored in the prices table.

    Pairs are looked up in chunks so the bound parameters per statement stay
    under SQLite's variable limit.
    """
    if not keys:
        return set()
    dates = [key.create_date for key in keys]
    pairs = sorted({(key.name, key.category) for key in keys})
    stored: set[IdentityKey] = set()
    for start in range(0, len(pairs), LOOKUP_CHUNK_SIZE):
        query = select(prices.c.name, prices.c.category, prices.c.price, prices.c.create_date).where(
            prices.c.create_date.between(min(dates), max(dates)),
            tuple_(prices.c.name, prices.c.category).in_(pairs[start:start + LOOKUP_CHUNK_SIZE]),
        )
        stored.update(
            IdentityKey(row.name, row.category, to_money(row.price), row.create_date)
            for row in conn.execute(query)
        )
    return stored & set(keys)
