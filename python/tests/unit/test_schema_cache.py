import json
import os
import threading
import time
from datetime import datetime, timedelta, timezone

import httpx

from linear_cli.graph.api.common import has_field, id_type
from linear_cli.graph.schema_cache import (
    SchemaCache,
    SchemaSnapshot,
    SchemaTypeInfo,
    load_snapshot_file,
    save_snapshot_file,
)
from linear_graphql.client import GraphQLClient

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def _non_null(name):
    return {"kind": "NON_NULL", "name": None, "ofType": {"kind": "SCALAR", "name": name}}


SCHEMA_DATA = {
    "__type": {
        "fields": [
            {
                "name": "issue",
                "args": [{"name": "id", "type": _non_null("ID")}],
                "type": {"kind": "OBJECT", "name": "Issue"},
            },
            {
                "name": "team",
                "args": [{"name": "id", "type": _non_null("String")}],
                "type": {"kind": "OBJECT", "name": "Team"},
            },
        ]
    },
    "issue": {"fields": [{"name": "attachments", "type": {"kind": "OBJECT", "name": "X"}}]},
    "comment": {"fields": [{"name": "bodyData", "type": {"kind": "SCALAR", "name": "String"}}]},
    "user": {"fields": [{"name": "email", "type": {"kind": "SCALAR", "name": "String"}}]},
}


class SchemaServer:
    def __init__(self, status=200):
        self.status = status
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        payload = json.loads(request.content.decode("utf-8"))
        self.requests.append(payload)
        if self.status != 200:
            return httpx.Response(self.status, text="unavailable", request=request)
        if payload.get("variables", {}).get("name") == "Comment":
            data = {
                "__type": {
                    "fields": [
                        {"name": "bodyData", "type": {"kind": "SCALAR", "name": "String"}},
                        {"name": "reactionData", "type": {"kind": "SCALAR", "name": "JSON"}},
                    ]
                }
            }
        elif payload.get("variables", {}).get("name") == "Attachment":
            data = {
                "__type": {
                    "fields": [{"name": "source", "type": {"kind": "SCALAR", "name": "JSON"}}]
                }
            }
        elif payload.get("variables", {}).get("name"):
            data = {"__type": None}
        else:
            data = SCHEMA_DATA
        return httpx.Response(200, json={"data": data}, request=request)


def _cache(server, path=None, now=NOW):
    http_client = httpx.Client(transport=httpx.MockTransport(server))
    client = GraphQLClient("https://api.linear.app", http_client=http_client)
    return SchemaCache(client, path, now=lambda: now)


def _write_snapshot(path, fetched_at):
    snapshot = SchemaSnapshot(
        fetched_at=fetched_at,
        query=SchemaTypeInfo.from_dict(SCHEMA_DATA["__type"]),
        issue=SchemaTypeInfo.from_dict(SCHEMA_DATA["issue"]),
    )
    save_snapshot_file(path, snapshot)


def test_missing_file_fetches_and_persists(tmp_path):
    path = tmp_path / "linear" / "schema.json"
    server = SchemaServer()
    cache = _cache(server, path)

    snapshot = cache.snapshot()

    assert snapshot is not None
    assert len(server.requests) == 1
    assert path.exists()
    assert oct(os.stat(path).st_mode & 0o777) == oct(0o600)
    persisted = load_snapshot_file(path)
    assert persisted.fetched_at == NOW
    assert persisted.query.get("issue") is not None


def test_fresh_snapshot_is_not_refetched(tmp_path):
    path = tmp_path / "schema.json"
    _write_snapshot(path, NOW - timedelta(hours=1))
    server = SchemaServer()
    cache = _cache(server, path)

    assert cache.arg_base_type("issue", "id") == "ID"
    assert server.requests == []


def test_stale_snapshot_survives_failing_refetch(tmp_path):
    path = tmp_path / "schema.json"
    stale_at = NOW - timedelta(hours=48)
    _write_snapshot(path, stale_at)
    server = SchemaServer(status=500)
    cache = _cache(server, path)

    snapshot = cache.snapshot()

    assert len(server.requests) == 1
    assert snapshot is not None
    assert snapshot.fetched_at == stale_at
    assert cache.arg_base_type("issue", "id") == "ID"
    assert load_snapshot_file(path).fetched_at == stale_at


def test_stale_snapshot_is_replaced_after_successful_refetch(tmp_path):
    path = tmp_path / "schema.json"
    _write_snapshot(path, NOW - timedelta(hours=25))
    server = SchemaServer()
    cache = _cache(server, path)

    assert cache.snapshot().fetched_at == NOW
    assert load_snapshot_file(path).fetched_at == NOW


def test_unavailable_schema_uses_defaults_and_is_memoized():
    server = SchemaServer(status=500)
    cache = _cache(server)

    assert cache.snapshot() is None
    assert cache.available is False
    assert cache.arg_base_type("issue", "id") is None
    assert cache.has_field("Query", "cycles", default=True) is True
    assert cache.has_field("Issue", "descriptionData", default=False) is False
    assert id_type(cache, "issue") == "String"
    assert len(server.requests) == 1

    cache.invalidate()
    cache.snapshot()
    assert len(server.requests) == 2


def test_field_present_in_builtin_bucket_needs_no_type_fetch():
    server = SchemaServer()
    cache = _cache(server)

    assert cache.has_field("Comment", "bodyData") is True
    assert cache.has_field("user", "email") is True
    assert len(server.requests) == 1


def test_field_missing_from_builtin_bucket_introspects_type_once(tmp_path):
    path = tmp_path / "schema.json"
    server = SchemaServer()
    cache = _cache(server, path)

    assert cache.has_field("Comment", "reactionData") is True
    assert cache.has_field("Comment", "editedData") is False
    assert cache.get_field("Comment", "reactionData").type.name == "JSON"

    type_calls = [r["variables"] for r in server.requests if r.get("variables")]
    assert type_calls == [{"name": "Comment"}]
    assert load_snapshot_file(path).get_field("Comment", "reactionData") is not None


def test_builtin_type_missing_from_server_is_remembered():
    server = SchemaServer()
    cache = _cache(server)

    assert cache.has_field("Issue", "descriptionData", default=True) is False
    assert cache.has_field("Issue", "descriptionData", default=True) is False
    assert [r.get("variables") for r in server.requests] == [None, {"name": "Issue"}]


def test_concurrent_type_loads_introspect_once():
    gate = threading.Event()
    server = SchemaServer()

    def handler(request: httpx.Request) -> httpx.Response:
        if b"$name" in request.content:
            gate.wait(timeout=5)
        return server(request)

    cache = _cache(handler)
    assert cache.snapshot() is not None

    results = []
    workers = [
        threading.Thread(target=lambda: results.append(cache.load_type("Attachment")))
        for _ in range(3)
    ]
    for worker in workers:
        worker.start()
    time.sleep(0.2)
    gate.set()
    for worker in workers:
        worker.join(timeout=5)

    assert len(results) == 3
    assert all(info is not None and info.get("source") for info in results)
    assert [r.get("variables") for r in server.requests] == [None, {"name": "Attachment"}]


def test_unknown_type_is_introspected_once_and_persisted(tmp_path):
    path = tmp_path / "schema.json"
    server = SchemaServer()
    cache = _cache(server, path)

    assert cache.has_field("Attachment", "source") is True
    assert cache.has_field("Attachment", "metadata") is False
    assert [r.get("variables") for r in server.requests] == [None, {"name": "Attachment"}]
    assert "Attachment" in load_snapshot_file(path).types


def test_missing_type_is_remembered():
    server = SchemaServer()
    cache = _cache(server)

    assert cache.has_field("Nope", "field", default=True) is False
    assert cache.has_field("Nope", "field", default=True) is False
    assert len(server.requests) == 2


def test_arg_base_type_unwraps_non_null():
    cache = _cache(SchemaServer())

    assert cache.arg_base_type("issue", "id") == "ID"
    assert cache.arg_base_type("team", "ID") == "String"
    assert cache.arg_base_type("cycles", "id") is None
    assert id_type(cache, "issue") == "ID"


def test_common_helpers_without_schema():
    assert id_type(None, "issue") == "String"
    assert has_field(None, "Query", "cycles", default=True) is True
    assert has_field(None, "Attachment", "source", default=False) is False


def test_corrupt_snapshot_counts_as_missing(tmp_path):
    path = tmp_path / "schema.json"
    path.write_text("{not json", encoding="utf-8")
    assert load_snapshot_file(path) is None

    server = SchemaServer()
    cache = _cache(server, path)
    assert cache.snapshot() is not None
    assert len(server.requests) == 1
