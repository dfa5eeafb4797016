"""Database session helpers."""

from __future__ import annotations

import os

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, URL


def database_url() -> str | URL:
    """Resolve DATABASE_URL, falling back to the POSTGRES_* variables."""
    url = os.environ.get("DATABASE_URL")
    if url:
        return url
    return URL.create(
        "postgresql+psycopg2",
        username=os.environ.get("POSTGRES_USER", "validator"),
        password=os.environ.get("POSTGRES_PASSWORD", "val1dat0r"),
        host=os.environ.get("POSTGRES_HOST", "localhost"),
        port=int(os.environ.get("POSTGRES_PORT", "5432")),
        database=os.environ.get("POSTGRES_DB", "project-sem-1"),
    )


def create_engine_from_env() -> Engine:
    """Create an engine from the environment."""
    return create_engine(database_url(), pool_pre_ping=True, future=True)
