"""FastAPI application for price list upload and export."""

from __future__ import annotations

import asyncio
import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import APIRouter, Depends, FastAPI, File, HTTPException, Query, Request, UploadFile
from fastapi.responses import Response
from pydantic import BaseModel
from sqlalchemy.engine import Engine
from starlette.datastructures import UploadFile as StarletteUploadFile

from app.db.migrate import run_migrations
from app.db.session import create_engine_from_env
from app.ingest.errors import ArchiveError, CSVStructureError, InvalidFilter, StoreError
from app.ingest.models import IngestionOutcome, PriceStats
from app.ingest.prices import PriceIngestor
from app.logic.export_csv import PriceFilter, export_zip
from app.logic.stats import read_stats

logger = logging.getLogger(__name__)


class UploadResponse(BaseModel):
    total_count: int
    duplicates_count: int
    total_items: int
    total_categories: int
    total_price: float
    inserted: int

    @classmethod
    def from_outcome(cls, outcome: IngestionOutcome) -> UploadResponse:
        return cls(
            total_count=outcome.total_count,
            duplicates_count=outcome.duplicates_count,
            total_items=outcome.stats.item_count,
            total_categories=outcome.stats.category_count,
            total_price=float(outcome.stats.price_sum),
            inserted=outcome.inserted,
        )


class StatsResponse(BaseModel):
    total_items: int
    total_categories: int
    total_price: float
    duplicates_count: int

    @classmethod
    def from_stats(cls, stats: PriceStats) -> StatsResponse:
        return cls(
            total_items=stats.item_count,
            total_categories=stats.category_count,
            total_price=float(stats.price_sum),
            duplicates_count=stats.duplicate_count,
        )


def configure_logging() -> None:
    logging.basicConfig(
        level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


router = APIRouter(prefix="/api/v0")


def get_engine(request: Request) -> Engine:
    engine = request.app.state.engine
    if engine is None:  # pragma: no cover - lifespan always sets it
        raise HTTPException(status_code=503, detail="Store not initialized")
    return engine


@router.post("/prices", response_model=UploadResponse)
async def upload_prices(
    archive_type: str = Query("zip", alias="type"),
    file: UploadFile | str | None = File(None),
    engine: Engine = Depends(get_engine),
) -> UploadResponse:
    # A plain text form field arrives as str.
    if not isinstance(file, StarletteUploadFile):
        raise HTTPException(status_code=400, detail="Missing file")
    try:
        data = await file.read()
    except OSError as exc:
        raise HTTPException(status_code=400, detail="Unreadable file") from exc
    finally:
        await file.close()

    ingestor = PriceIngestor(engine)
    try:
        outcome = await asyncio.get_running_loop().run_in_executor(
            None, ingestor.ingest_archive, data, archive_type
        )
    except (ArchiveError, CSVStructureError) as exc:
        logger.warning("Rejected upload (%s): %s", type(exc).__name__, exc)
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except StoreError as exc:
        logger.exception("Ingestion failed")
        raise HTTPException(status_code=500, detail="ingestion failed") from exc
    return UploadResponse.from_outcome(outcome)


@router.get("/prices")
async def download_prices(
    start: str | None = None,
    end: str | None = None,
    min_price: str | None = Query(None, alias="min"),
    max_price: str | None = Query(None, alias="max"),
    engine: Engine = Depends(get_engine),
) -> Response:
    try:
        price_filter = PriceFilter.from_query(start=start, end=end, min_price=min_price, max_price=max_price)
    except InvalidFilter as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    try:
        content = await asyncio.get_running_loop().run_in_executor(None, export_zip, engine, price_filter)
    except StoreError as exc:
        raise HTTPException(status_code=500, detail="export failed") from exc
    return Response(
        content=content,
        media_type="application/zip",
        headers={"Content-Disposition": 'attachment; filename="data.zip"'},
    )


@router.get("/prices/stats", response_model=StatsResponse)
async def price_stats(engine: Engine = Depends(get_engine)) -> StatsResponse:
    try:
        stats = await asyncio.get_running_loop().run_in_executor(None, read_stats, engine)
    except StoreError as exc:
        raise HTTPException(status_code=500, detail="stats unavailable") from exc
    return StatsResponse.from_stats(stats)


def create_app(engine: Engine | None = None) -> FastAPI:
    """Build the application; pass ``engine`` to skip environment configuration."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owns_engine = app.state.engine is None
        if owns_engine:
            load_dotenv()
            configure_logging()
            app.state.engine = create_engine_from_env()
        run_migrations(app.state.engine)
        try:
            yield
        finally:
            if owns_engine:
                app.state.engine.dispose()
                app.state.engine = None

    app = FastAPI(title="Price List API", lifespan=lifespan)
    app.state.engine = engine
    app.include_router(router)
    return app


app = create_app()


def main() -> None:  # pragma: no cover - server entry point
    import uvicorn

    load_dotenv()
    configure_logging()
    uvicorn.run(
        "app.api.main:app",
        host=os.environ.get("API_HOST", "0.0.0.0"),
        port=int(os.environ.get("API_PORT", "8080")),
    )


if __name__ == "__main__":
    main()
