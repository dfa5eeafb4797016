"""Table definitions."""

from __future__ import annotations

from sqlalchemy import Column, Date, Integer, MetaData, Numeric, String, Table

metadata = MetaData()

prices = Table(
    "prices",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255), nullable=False),
    Column("category", String(255), nullable=False),
    Column("price", Numeric(10, 2), nullable=False),
    Column("create_date", Date, nullable=False),
)
