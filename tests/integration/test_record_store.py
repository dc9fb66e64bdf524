"""
Integration tests for the PostgreSQL record store.

Tests conditional-insert semantics against a real database.
"""

import threading

import pytest

from src.core.errors import StoreError
from src.core.models import Record, WriteOutcome
from src.warehouse.connection import DatabaseConnectionPool
from src.warehouse.schema_mgmt import RECORDS_TABLE, SchemaManager
from src.warehouse.store import PostgresRecordStore
from src.warehouse.writer import IdempotentWriter


@pytest.mark.integration
def test_schema_created(clean_db):
    """Test both pipeline tables exist"""
    manager = SchemaManager(clean_db)
    assert manager.table_exists("records")
    assert manager.table_exists("message_queue")
    assert not manager.table_exists("does_not_exist")


@pytest.mark.integration
def test_insert_and_get(clean_db):
    """Test a record round-trips with its JSON data intact"""
    store = PostgresRecordStore(clean_db)
    record = Record(
        id="r-1",
        created_at="2025-01-01T00:00:00.000Z",
        request_id="req-1",
        data={"nested": {"list": [1, 2, 3]}, "flag": True},
    )

    assert store.insert_if_absent(record) == WriteOutcome.WRITTEN
    assert store.get("r-1") == record
    assert store.count() == 1


@pytest.mark.integration
def test_conflict_keeps_first_record(clean_db):
    """Test a second insert with the same id changes nothing"""
    store = PostgresRecordStore(clean_db)
    first = Record(id="r-1", created_at="2025-01-01T00:00:00.000Z", data="first")
    store.insert_if_absent(first)

    outcome = store.insert_if_absent(Record(id="r-1", data="second"))

    assert outcome == WriteOutcome.CONFLICT
    assert store.get("r-1") == first
    assert store.count() == 1


@pytest.mark.integration
def test_raw_string_and_null_data(clean_db):
    store = PostgresRecordStore(clean_db)
    store.insert_if_absent(Record(id="raw", data="not json {"))
    store.insert_if_absent(Record(id="null", data=None))

    assert store.get("raw").data == "not json {"
    assert store.get("null").data is None


@pytest.mark.integration
def test_nul_characters_stored(clean_db):
    """Test payloads containing NUL characters are written and read back intact"""
    store = PostgresRecordStore(clean_db)

    assert store.insert_if_absent(Record(id="json-nul", data={"text": "x\u0000y"})) == WriteOutcome.WRITTEN
    assert store.insert_if_absent(Record(id="raw-nul", data="raw\x00body")) == WriteOutcome.WRITTEN

    assert store.get("json-nul").data == {"text": "x\u0000y"}
    assert store.get("raw-nul").data == "raw\x00body"


@pytest.mark.integration
def test_get_missing(clean_db):
    assert PostgresRecordStore(clean_db).get("missing") is None


@pytest.mark.integration
@pytest.mark.slow
def test_concurrent_inserts_single_winner(clean_db, test_logger, metrics):
    """Test concurrent writers of one id produce exactly one WRITTEN"""
    writer = IdempotentWriter(PostgresRecordStore(clean_db), logger=test_logger, metrics=metrics)
    results = []
    lock = threading.Lock()
    barrier = threading.Barrier(6)

    def attempt(n):
        barrier.wait()
        result = writer.write(Record(id="contended", data=n))
        with lock:
            results.append(result)

    threads = [threading.Thread(target=attempt, args=(n,)) for n in range(6)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    outcomes = [r.outcome for r in results]
    assert outcomes.count(WriteOutcome.WRITTEN) == 1
    assert outcomes.count(WriteOutcome.CONFLICT) == 5

    rows = clean_db.execute_query(f"SELECT COUNT(*) AS total FROM {RECORDS_TABLE} WHERE id = %s", ("contended",))
    assert rows[0]["total"] == 1


@pytest.mark.integration
def test_database_error_maps_to_store_error(postgres_container):
    """Test driver errors surface as StoreError"""
    pool = DatabaseConnectionPool(
        host=postgres_container.get_container_host_ip(),
        port=int(postgres_container.get_exposed_port(5432)),
        database="test_records",
        user="test_pipeline",
        password="test_password",
    )
    assert not pool.is_open
    pool.open()
    assert pool.is_open
    try:
        store = PostgresRecordStore(pool, table="missing_table")
        with pytest.raises(StoreError) as exc_info:
            store.insert_if_absent(Record(id="r-1"))
        assert exc_info.value.record_id == "r-1"
    finally:
        pool.close()
    assert not pool.is_open


@pytest.mark.integration
def test_drop_and_recreate_schema(clean_db):
    """Test ensure_schema recreates dropped tables"""
    manager = SchemaManager(clean_db)

    manager.drop_schema()
    assert not manager.table_exists(RECORDS_TABLE)

    manager.ensure_schema()
    assert manager.table_exists(RECORDS_TABLE)
