from datetime import datetime, timezone

import pytest
from starlette.testclient import TestClient

from divinebridge.labeler_app import create_app
from divinebridge.query_labels import LabelerEvent

LABELER_DID = "did:plc:labeler-test"


def _event(seq, uri):
    return LabelerEvent(
        seq=seq,
        src_did=LABELER_DID,
        subject_uri=uri,
        val="nudity",
        neg=False,
        origin="divine",
        created_at=datetime(2026, 3, 20, 12, 0, 0, tzinfo=timezone.utc),
    )


class FakeStore:
    def __init__(self, events=(), fail=False):
        self.events = list(events)
        self.fail = fail
        self.calls = []

    def get_events_after(self, after_seq, limit):
        self.calls.append((after_seq, limit))
        if self.fail:
            raise RuntimeError("database unavailable")
        return [e for e in self.events if e.seq > after_seq][:limit]


@pytest.fixture
def events():
    return [
        _event(1, "at://did:plc:alice/app.bsky.feed.post/a"),
        _event(2, "at://did:plc:bob/app.bsky.feed.post/b"),
    ]


@pytest.mark.parametrize("path", ["/health", "/health/ready"])
def test_health_endpoints_return_ok(path):
    client = TestClient(create_app(FakeStore(), LABELER_DID))
    assert client.get(path).status_code == 200


def test_root_page_shows_labeler_did():
    client = TestClient(create_app(FakeStore(), LABELER_DID))
    response = client.get("/")
    assert response.status_code == 200
    assert LABELER_DID in response.text
    assert "{{LABELER_DID}}" not in response.text


def test_query_labels_returns_labels_and_cursor(events):
    store = FakeStore(events)
    client = TestClient(create_app(store, LABELER_DID))
    response = client.get("/xrpc/com.atproto.label.queryLabels")
    assert response.status_code == 200
    data = response.json()
    assert [label["uri"] for label in data["labels"]] == [e.subject_uri for e in events]
    assert all(label["src"] == LABELER_DID for label in data["labels"])
    assert data["cursor"] == "2"
    assert store.calls == [(0, 50)]


def test_query_labels_passes_cursor_and_caps_limit(events):
    store = FakeStore(events)
    client = TestClient(create_app(store, LABELER_DID))
    response = client.get(
        "/xrpc/com.atproto.label.queryLabels", params={"cursor": "1", "limit": "1000"}
    )
    assert response.status_code == 200
    assert store.calls == [(1, 250)]
    assert [label["uri"] for label in response.json()["labels"]] == [events[1].subject_uri]


def test_query_labels_filters_uri_patterns(events):
    client = TestClient(create_app(FakeStore(events), LABELER_DID))
    response = client.get(
        "/xrpc/com.atproto.label.queryLabels",
        params={"uriPatterns": "at://did:plc:alice/*"},
    )
    data = response.json()
    assert [label["uri"] for label in data["labels"]] == [events[0].subject_uri]
    assert data["cursor"] == "1"


def test_query_labels_rejects_invalid_limit():
    store = FakeStore()
    client = TestClient(create_app(store, LABELER_DID))
    response = client.get("/xrpc/com.atproto.label.queryLabels", params={"limit": "many"})
    assert response.status_code == 400
    assert store.calls == []


def test_query_labels_store_failure_is_server_error():
    client = TestClient(create_app(FakeStore(fail=True), LABELER_DID))
    response = client.get("/xrpc/com.atproto.label.queryLabels")
    assert response.status_code == 500