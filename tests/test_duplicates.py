from datetime import date
from decimal import Decimal

from app.ingest.duplicates import classify, persisted_keys
from app.ingest.models import CandidateRecord, IdentityKey


def record(source_id, name="Lamp", category="home", price="10.00", day=5):
    return CandidateRecord(
        source_id=source_id,
        name=name,
        category=category,
        price=Decimal(price),
        create_date=date(2024, 1, day),
        line=source_id + 1,
    )


def no_store(keys):
    return set()


def test_in_batch_repeats_count_after_first_occurrence():
    records = [record(1), record(2), record(3, price="10.0"), record(4, name="Mug")]
    result = classify(records, no_store)
    assert [r.source_id for r in result.unique] == [1, 4]
    assert result.duplicates_count == 2


def test_ids_do_not_affect_identity():
    assert record(1).identity_key == record(99).identity_key


def test_persisted_keys_are_duplicates():
    stored = {IdentityKey("Lamp", "home", Decimal("10.00"), date(2024, 1, 5))}
    result = classify([record(1), record(2), record(3, category="office")], lambda keys: keys & stored)
    assert [r.source_id for r in result.unique] == [3]
    assert result.duplicates_count == 2


def test_empty_batch_skips_lookup():
    calls = []
    result = classify([], lambda keys: calls.append(keys) or set())
    assert result.unique == []
    assert result.duplicates_count == 0
    assert calls == []


def test_persisted_keys_reads_store(seeded_engine):
    wanted = {
        IdentityKey("Lamp", "home", Decimal("10.00"), date(2024, 1, 5)),
        IdentityKey("Lamp", "home", Decimal("10.01"), date(2024, 1, 5)),
        IdentityKey("Mug", "kitchen", Decimal("20.00"), date(2024, 1, 10)),
        IdentityKey("Mug", "home", Decimal("20.00"), date(2024, 1, 10)),
    }
    with seeded_engine.connect() as conn:
        found = persisted_keys(conn, wanted)
    assert found == {
        IdentityKey("Lamp", "home", Decimal("10.00"), date(2024, 1, 5)),
        IdentityKey("Mug", "kitchen", Decimal("20.00"), date(2024, 1, 10)),
    }


def test_persisted_keys_chunks_large_lookups(seeded_engine, monkeypatch):
    monkeypatch.setattr("app.ingest.duplicates.LOOKUP_CHUNK_SIZE", 1)
    wanted = {
        IdentityKey("Lamp", "home", Decimal("10.00"), date(2024, 1, 5)),
        IdentityKey("Mug", "kitchen", Decimal("20.00"), date(2024, 1, 10)),
        IdentityKey("Rug", "home", Decimal("30.00"), date(2024, 2, 1)),
        IdentityKey("Chair", "office", Decimal("30.00"), date(2024, 2, 1)),
    }
    with seeded_engine.connect() as conn:
        found = persisted_keys(conn, wanted)
    assert found == wanted - {IdentityKey("Chair", "office", Decimal("30.00"), date(2024, 2, 1))}
