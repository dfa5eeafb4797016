"""CSV row validation and normalization."""

from __future__ import annotations

import csv
import io
import logging
import re
from decimal import Decimal, InvalidOperation

from app.ingest.errors import MalformedCSV
from app.ingest.models import CandidateRecord, ValidationResult, to_money
from app.utils.dates import parse_iso_date

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = 5
INTEGER_RE = re.compile(r"[+-]?\d+")
DECIMAL_RE = re.compile(r"[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?")


def validate_csv(payload: bytes) -> ValidationResult:
    """Parse ``payload`` into candidate records.

    Malformed rows are dropped without raising; ``total_count`` still counts
    them. Only a payload that cannot be tokenized or has no data rows raises
    ``MalformedCSV``.
    """
    rows = _tokenize(payload)
    if len(rows) < 2:
        raise MalformedCSV("CSV has no data rows")

    records: list[CandidateRecord] = []
    total_count = 0
    for line, fields in rows[1:]:
        total_count += 1
        record = _parse_row(line, fields)
        if record is not None:
            records.append(record)
    logger.info("Validated %s of %s rows", len(records), total_count)
    return ValidationResult(total_count=total_count, records=records)


def _tokenize(payload: bytes) -> list[tuple[int, list[str]]]:
    try:
        text = payload.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise MalformedCSV(f"CSV is not valid UTF-8: {exc}") from exc
    reader = csv.reader(io.StringIO(text, newline=""), strict=True)
    rows: list[tuple[int, list[str]]] = []
    try:
        for fields in reader:
            if not fields:
                continue
            rows.append((reader.line_num, fields))
    except csv.Error as exc:
        raise MalformedCSV(f"CSV could not be parsed near line {reader.line_num}: {exc}") from exc
    return rows


def _parse_row(line: int, fields: list[str]) -> CandidateRecord | None:
    if len(fields) < REQUIRED_FIELDS:
        return _reject(line, "expected at least 5 fields")
    raw_id, name, category, raw_price, raw_date = (field.strip() for field in fields[:REQUIRED_FIELDS])

    if not INTEGER_RE.fullmatch(raw_id):
        return _reject(line, "id is not an integer")
    if not name or not category:
        return _reject(line, "empty name or category")
    price = _parse_price(raw_price)
    if price is None:
        return _reject(line, "price is not a positive number")
    try:
        create_date = parse_iso_date(raw_date)
    except ValueError:
        return _reject(line, "invalid create_date")

    return CandidateRecord(
        source_id=int(raw_id),
        name=name,
        category=category,
        price=price,
        create_date=create_date,
        line=line,
    )


def _parse_price(value: str) -> Decimal | None:
    if not DECIMAL_RE.fullmatch(value):
        return None
    try:
        price = to_money(Decimal(value))
    except InvalidOperation:
        return None
    if price <= 0:
        return None
    return price


def _reject(line: int, reason: str) -> None:
    logger.debug("Skipping CSV line %s: %s", line, reason)
    return None
