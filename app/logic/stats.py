"""Aggregate statistics over the prices table."""

from __future__ import annotations

import logging

from sqlalchemy import distinct, func, select
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from app.db.tables import prices
from app.ingest.errors import StoreError
from app.ingest.models import PriceStats, to_money

logger = logging.getLogger(__name__)


def aggregate(conn: Connection) -> PriceStats:
    """Compute table-wide statistics on ``conn``.

    Runs inside whatever transaction ``conn`` holds, so an ingest can read its
    own uncommitted rows.
    """
    totals = conn.execute(
        select(
            func.count(),
            func.count(distinct(prices.c.category)),
            func.coalesce(func.sum(prices.c.price), 0),
        ).select_from(prices)
    ).one()
    groups = (
        select(func.count().label("members"))
        .select_from(prices)
        .group_by(prices.c.name, prices.c.category, prices.c.price, prices.c.create_date)
        .having(func.count() > 1)
        .subquery()
    )
    duplicates = conn.execute(select(func.coalesce(func.sum(groups.c.members - 1), 0))).scalar_one()
    item_count, category_count, price_sum = totals
    return PriceStats(
        item_count=int(item_count),
        category_count=int(category_count),
        price_sum=to_money(price_sum),
        duplicate_count=int(duplicates),
    )


def read_stats(engine: Engine) -> PriceStats:
    """Read-only statistics outside of any ingest."""
    try:
        with engine.connect() as conn:
            return aggregate(conn)
    except SQLAlchemyError as exc:
        logger.exception("Failed to read price statistics")
        raise StoreError("Failed to read price statistics") from exc
