"""CSV export helpers."""

from __future__ import annotations

import csv
import io
import logging
import zipfile
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from app.db.tables import prices
from app.ingest.errors import InvalidFilter, StoreError
from app.ingest.models import to_money
from app.utils.dates import format_date, parse_iso_date

logger = logging.getLogger(__name__)

CSV_NAME = "data.csv"
CSV_COLUMNS = ["id", "name", "category", "price", "create_date"]


@dataclass(slots=True)
class PriceFilter:
    start: date | None = None
    end: date | None = None
    min_price: Decimal | None = None
    max_price: Decimal | None = None

    @classmethod
    def from_query(
        cls,
        start: str | None = None,
        end: str | None = None,
        min_price: str | None = None,
        max_price: str | None = None,
    ) -> PriceFilter:
        """Build a filter from raw query-string values; blanks mean no bound."""
        return cls(
            start=_optional(start, "start", parse_iso_date),
            end=_optional(end, "end", parse_iso_date),
            min_price=_optional(min_price, "min", _parse_decimal),
            max_price=_optional(max_price, "max", _parse_decimal),
        )


@dataclass(slots=True)
class ExportRow:
    id: int
    name: str
    category: str
    price: Decimal
    create_date: date


def load_rows(engine: Engine, price_filter: PriceFilter) -> list[ExportRow]:
    query = select(prices).order_by(prices.c.id)
    if price_filter.start is not None:
        query = query.where(prices.c.create_date >= price_filter.start)
    if price_filter.end is not None:
        query = query.where(prices.c.create_date <= price_filter.end)
    if price_filter.min_price is not None:
        query = query.where(prices.c.price >= price_filter.min_price)
    if price_filter.max_price is not None:
        query = query.where(prices.c.price <= price_filter.max_price)
    try:
        with engine.connect() as conn:
            return [
                ExportRow(
                    id=row.id,
                    name=row.name,
                    category=row.category,
                    price=to_money(row.price),
                    create_date=row.create_date,
                )
                for row in conn.execute(query)
            ]
    except SQLAlchemyError as exc:
        logger.exception("Failed to load prices for export")
        raise StoreError("Failed to load prices for export") from exc


def render_csv(rows: Iterable[ExportRow]) -> str:
    buffer = io.StringIO(newline="")
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_COLUMNS)
    for row in rows:
        writer.writerow([row.id, row.name, row.category, f"{row.price:.2f}", format_date(row.create_date)])
    return buffer.getvalue()


def render_zip(rows: Iterable[ExportRow]) -> bytes:
    """Package the rows as a zip archive holding a single ``data.csv``."""
    archive_bytes = io.BytesIO()
    with zipfile.ZipFile(archive_bytes, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        archive.writestr(CSV_NAME, render_csv(rows))
    return archive_bytes.getvalue()


def export_zip(engine: Engine, price_filter: PriceFilter) -> bytes:
    rows = load_rows(engine, price_filter)
    logger.info("Exporting %s price rows", len(rows))
    return render_zip(rows)


def _optional(value: str | None, field: str, parser):
    if value is None or not value.strip():
        return None
    try:
        return parser(value.strip())
    except (ValueError, InvalidOperation) as exc:
        raise InvalidFilter(f"Invalid {field} filter: {value!r}") from exc


def _parse_decimal(value: str) -> Decimal:
    parsed = Decimal(value)
    if not parsed.is_finite():
        raise ValueError(f"Not a finite number: {value!r}")
    return parsed
