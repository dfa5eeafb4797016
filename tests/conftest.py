import io
import tarfile
import zipfile
from datetime import date
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from app.api.main import create_app
from app.db.tables import metadata, prices

HEADER = "id,name,category,price,create_date\n"


def make_csv(*rows: str, header: str = HEADER) -> bytes:
    return (header + "".join(f"{row}\n" for row in rows)).encode()


def make_zip(files: dict[str, bytes]) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        for name, content in files.items():
            archive.writestr(name, content)
    return buffer.getvalue()


def make_tar(files: dict[str, bytes], *, directories: tuple[str, ...] = (), mode: str = "w") -> bytes:
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode=mode) as archive:
        for name in directories:
            info = tarfile.TarInfo(name)
            info.type = tarfile.DIRTYPE
            archive.addfile(info)
        for name, content in files.items():
            info = tarfile.TarInfo(name)
            info.size = len(content)
            archive.addfile(info, io.BytesIO(content))
    return buffer.getvalue()


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite:///:memory:",
        future=True,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def seeded_engine(engine):
    with engine.begin() as conn:
        conn.execute(prices.insert(), [
            {"name": "Lamp", "category": "home", "price": Decimal("10.00"), "create_date": date(2024, 1, 5)},
            {"name": "Mug", "category": "kitchen", "price": Decimal("20.00"), "create_date": date(2024, 1, 10)},
            {"name": "Rug", "category": "home", "price": Decimal("30.00"), "create_date": date(2024, 2, 1)},
        ])
    return engine


@pytest.fixture()
def client(engine):
    with TestClient(create_app(engine)) as client:
        yield client
