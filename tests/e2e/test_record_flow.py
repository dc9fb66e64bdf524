"""
End-to-end tests for the record pipeline on in-memory backends.

Drives the HTTP API for ingress and export and the consumer runner in
between, the way the deployed services interact.
"""

import json

import pytest
from fastapi.testclient import TestClient

from src.api import create_app
from src.core.collaborators import Collaborators
from src.core.errors import StoreError
from src.core.settings import PipelineSettings
from src.export import LocalBlobStore
from src.messaging import InMemoryMessageQueue
from src.warehouse.store import InMemoryRecordStore


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class OutageStore(InMemoryRecordStore):
    """Store that fails every insert while down is set."""

    def __init__(self):
        super().__init__()
        self.down = False

    def insert_if_absent(self, record):
        if self.down:
            raise StoreError("store unavailable", record_id=record.id)
        return super().insert_if_absent(record)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def collaborators(tmp_path, test_logger, metrics, clock) -> Collaborators:
    settings = PipelineSettings(
        store_backend="memory",
        blob_backend="local",
        blob_root=str(tmp_path),
        max_batch_size=3,
        visibility_timeout_seconds=30,
        poll_interval_seconds=0,
    )
    return Collaborators(
        settings=settings,
        logger=test_logger,
        metrics=metrics,
        store=OutageStore(),
        queue=InMemoryMessageQueue(clock=clock),
        blob_store=LocalBlobStore(tmp_path),
    )


@pytest.fixture
def client(collaborators):
    with TestClient(create_app(collaborators)) as client:
        yield client


@pytest.mark.e2e
def test_ingest_consume_export(client, collaborators, tmp_path, log_buffer):
    """Test records posted over HTTP are persisted and exportable"""
    for i in range(5):
        response = client.post(
            "/records",
            json={"id": f"order-{i}", "data": {"n": i}},
            headers={"x-correlation-id": f"corr-{i}"},
        )
        assert response.status_code == 202

    processed = collaborators.runner().run(stop_when_empty=True)

    assert processed == 2
    assert collaborators.store.count() == 5

    response = client.post("/records/order-3/export")
    assert response.status_code == 200

    document = json.loads((tmp_path / "exports" / "order-3.json").read_text())
    assert document["data"] == {"n": 3}
    assert document["requestId"] == "corr-3"

    written = log_buffer.find("Wrote record")
    assert {event["correlationId"] for event in written} == {f"corr-{i}" for i in range(5)}


@pytest.mark.e2e
def test_outage_then_redelivery(client, collaborators, clock):
    """Test messages failed during an outage are stored after redelivery"""
    client.post("/records", json={"id": "a"})
    client.post("/records", json={"id": "b"})

    collaborators.store.down = True
    outcome = collaborators.runner().run_once()

    assert outcome.failed_count == 2
    assert collaborators.queue.stats()["in_flight"] == 2

    collaborators.store.down = False
    clock.now += 31
    outcome = collaborators.runner().run_once()

    assert outcome.failed_count == 0
    assert collaborators.store.ids() == ["a", "b"]
    assert collaborators.queue.stats()["total"] == 0


@pytest.mark.e2e
def test_client_retry_is_idempotent(client, collaborators):
    """Test posting the same id twice stores the first payload only"""
    client.post("/records", json={"id": "same", "data": "first"})
    collaborators.runner().run(stop_when_empty=True)
    client.post("/records", json={"id": "same", "data": "second"})
    collaborators.runner().run(stop_when_empty=True)

    assert collaborators.store.count() == 1
    assert collaborators.store.get("same").data == "first"


@pytest.mark.e2e
def test_export_before_consume_is_not_found(client):
    client.post("/records", json={"id": "pending"})

    response = client.post("/records/pending/export")

    assert response.status_code == 404
