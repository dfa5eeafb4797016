"""Load a price archive from disk into the database."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path

from dotenv import load_dotenv

from app.db.migrate import run_migrations
from app.db.session import create_engine_from_env
from app.ingest.errors import PriceIngestError
from app.ingest.prices import PriceIngestor


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("archive", type=Path)
    parser.add_argument("--type", dest="kind", choices=["zip", "tar"], default=None)
    args = parser.parse_args(argv)

    load_dotenv()
    logging.basicConfig(level=logging.INFO)
    kind = args.kind or ("tar" if ".tar" in args.archive.name else "zip")
    engine = create_engine_from_env()
    try:
        run_migrations(engine)
        outcome = PriceIngestor(engine).ingest_archive(args.archive.read_bytes(), kind)
    except PriceIngestError as exc:
        print(f"Seed failed: {exc}")
        return 1
    finally:
        engine.dispose()
    print(
        f"Seed complete: {outcome.inserted} inserted of {outcome.total_count} rows, "
        f"{outcome.duplicates_count} duplicates, {outcome.stats.item_count} items stored"
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
