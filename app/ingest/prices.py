"""Price list ingestion pipeline."""

from __future__ import annotations

import functools
import logging
import os
from typing import Any

from sqlalchemy import text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from app.db.tables import prices
from app.ingest.archive import extract_csv
from app.ingest.duplicates import classify, persisted_keys
from app.ingest.errors import CommitFailed, InsertFailed, StoreError, TransactionStartFailed
from app.ingest.models import CandidateRecord, IngestionOutcome, ValidationResult
from app.ingest.validate import validate_csv
from app.logic.stats import aggregate

logger = logging.getLogger(__name__)

TRUTHY = {"1", "true", "yes", "on"}


def honor_csv_ids_from_env() -> bool:
    return os.environ.get("PRICES_HONOR_CSV_ID", "").strip().lower() in TRUTHY


class PriceIngestor:
    """Loads validated price rows and reports statistics in one transaction."""

    def __init__(self, engine: Engine, *, honor_csv_ids: bool | None = None) -> None:
        self.engine = engine
        self.honor_csv_ids = honor_csv_ids_from_env() if honor_csv_ids is None else honor_csv_ids

    def ingest_archive(self, data: bytes, kind: str) -> IngestionOutcome:
        payload = extract_csv(data, kind)
        batch = validate_csv(payload)
        return self.ingest(batch)

    def ingest(self, batch: ValidationResult) -> IngestionOutcome:
        try:
            conn = self.engine.connect()
        except SQLAlchemyError as exc:
            raise TransactionStartFailed("Could not connect to the store") from exc
        with conn:
            try:
                trans = conn.begin()
                self._lock_table(conn)
            except SQLAlchemyError as exc:
                raise TransactionStartFailed("Could not start the ingest transaction") from exc
            try:
                classification = classify(batch.records, functools.partial(persisted_keys, conn))
                inserted = self._insert_rows(conn, classification.unique)
                stats = aggregate(conn)
            except InsertFailed:
                trans.rollback()
                raise
            except SQLAlchemyError as exc:
                trans.rollback()
                raise StoreError("Ingest query failed") from exc
            try:
                trans.commit()
            except SQLAlchemyError as exc:
                raise CommitFailed("Could not commit the ingest transaction") from exc

        logger.info(
            "Ingested batch: total=%s valid=%s inserted=%s duplicates=%s",
            batch.total_count,
            len(batch.records),
            inserted,
            classification.duplicates_count,
        )
        return IngestionOutcome(
            total_count=batch.total_count,
            inserted=inserted,
            duplicates_count=classification.duplicates_count,
            stats=stats,
        )

    def _lock_table(self, conn: Connection) -> None:
        # Serializes concurrent ingests; readers are not blocked.
        if conn.dialect.name == "postgresql":
            conn.execute(text("LOCK TABLE prices IN SHARE ROW EXCLUSIVE MODE"))

    def _insert_rows(self, conn: Connection, records: list[CandidateRecord]) -> int:
        statement = prices.insert()
        for position, record in enumerate(records, start=1):
            try:
                conn.execute(statement, self._row_params(record))
            except SQLAlchemyError as exc:
                logger.warning("Insert failed for CSV line %s: %s", record.line, exc)
                raise InsertFailed(position, record.line) from exc
        return len(records)

    def _row_params(self, record: CandidateRecord) -> dict[str, Any]:
        params: dict[str, Any] = {
            "name": record.name,
            "category": record.category,
            "price": record.price,
            "create_date": record.create_date,
        }
        if self.honor_csv_ids:
            params["id"] = record.source_id
        return params
