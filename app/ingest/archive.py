"""Archive extraction for uploaded price lists."""

from __future__ import annotations

import io
import logging
import tarfile
import zipfile
import zlib

from app.ingest.errors import CorruptArchive, EmptyArchive, NoMatchingEntry, UnsupportedArchiveKind

logger = logging.getLogger(__name__)

TAR_MEMBER_NAMES = frozenset({"data.csv", "test_data.csv"})
ZIP_READ_ERRORS = (zipfile.BadZipFile, zlib.error, EOFError, OSError, NotImplementedError, RuntimeError)
TAR_READ_ERRORS = (tarfile.TarError, zlib.error, EOFError, OSError)


def extract_csv(data: bytes, kind: str) -> bytes:
    """Return the CSV payload embedded in ``data``.

    ``kind`` is ``"zip"`` or ``"tar"``. A zip yields its first entry whatever
    its name; a tar yields the first regular member named ``data.csv`` or
    ``test_data.csv``.
    """
    if kind == "zip":
        return _read_zip(data)
    if kind == "tar":
        return _read_tar(data)
    raise UnsupportedArchiveKind(f"Unsupported archive type: {kind!r}")


def _read_zip(data: bytes) -> bytes:
    try:
        with zipfile.ZipFile(io.BytesIO(data)) as archive:
            entries = archive.infolist()
            if not entries:
                raise EmptyArchive("Zip archive has no entries")
            first = entries[0]
            logger.debug("Reading zip entry %s (%s bytes)", first.filename, first.file_size)
            with archive.open(first) as handle:
                return handle.read()
    except ZIP_READ_ERRORS as exc:
        raise CorruptArchive(f"Unreadable zip archive: {exc}") from exc


def _read_tar(data: bytes) -> bytes:
    try:
        with tarfile.open(fileobj=io.BytesIO(data), mode="r:*") as archive:
            for member in archive:
                if not member.isreg():
                    continue
                name = member.name.removeprefix("./")
                if name not in TAR_MEMBER_NAMES:
                    continue
                logger.debug("Reading tar member %s (%s bytes)", member.name, member.size)
                handle = archive.extractfile(member)
                if handle is None:  # pragma: no cover - regular members always have data
                    raise CorruptArchive(f"Tar member {member.name} has no data")
                with handle:
                    return handle.read()
    except TAR_READ_ERRORS as exc:
        raise CorruptArchive(f"Unreadable tar archive: {exc}") from exc
    raise NoMatchingEntry("Tar archive has no data.csv or test_data.csv")
