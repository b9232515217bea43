import json
import logging
from datetime import datetime, timezone

import httpx
import pytest

from linear_cli.graph.api.cycles import get_cycle, list_cycles
from linear_cli.graph.schema_cache import SchemaCache, SchemaSnapshot, SchemaTypeInfo
from linear_graphql.auth import ApiKeyAuth
from linear_graphql.client import GraphQLClient
from linear_graphql.errors import GraphQLOperationError, NotFoundError

UNKNOWN_CYCLES = {"errors": [{"message": 'Cannot query field "cycles" on type "Query".'}]}


def _cycle(cycle_id, active, number=1):
    return {
        "id": cycle_id,
        "name": f"Cycle {number}",
        "number": number,
        "startsAt": "2024-01-01T00:00:00Z",
        "endsAt": "2024-01-14T00:00:00Z",
        "isActive": active,
    }


def _client(handler):
    http_client = httpx.Client(transport=httpx.MockTransport(handler), timeout=5.0)
    return GraphQLClient(
        "https://api.linear.app", auth=ApiKeyAuth("lin_api_test"), http_client=http_client
    )


class CyclesServer:
    def __init__(self, top_level, team_nodes, has_next_page=False):
        self.top_level = top_level
        self.team_nodes = team_nodes
        self.has_next_page = has_next_page
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        payload = json.loads(request.content.decode("utf-8"))
        self.requests.append(payload)
        op = payload.get("operationName")
        if op is None:
            body = {"data": {"__type": {"fields": [{"name": "team"}]}}}
            return httpx.Response(200, json=body, request=request)
        if op == "CyclesPage":
            return httpx.Response(200, json=self.top_level, request=request)
        if op == "TeamCyclesPage":
            body = {
                "data": {
                    "team": {
                        "cycles": {
                            "nodes": self.team_nodes,
                            "pageInfo": {"hasNextPage": self.has_next_page, "endCursor": "c"},
                        }
                    }
                }
            }
            return httpx.Response(200, json=body, request=request)
        raise AssertionError(f"unexpected operation {op}")

    @property
    def operations(self):
        return [payload.get("operationName") for payload in self.requests]


def test_top_level_cycles_with_filter():
    server = CyclesServer(
        {"data": {"cycles": {"nodes": [_cycle("c1", True, 4)], "pageInfo": {}}}}, []
    )
    page = list_cycles(_client(server), "t1", current=True, limit=5)

    assert server.operations == ["CyclesPage"]
    assert server.requests[0]["variables"] == {
        "first": 5,
        "filter": {"team": {"id": {"eq": "t1"}}, "isActive": {"eq": True}},
    }
    assert page.nodes[0].number == 4
    assert page.truncated is False


def test_unknown_cycles_field_falls_back_to_team_cycles():
    server = CyclesServer(UNKNOWN_CYCLES, [_cycle("c1", False), _cycle("c2", True, 2)])
    page = list_cycles(_client(server), "t1", current=True)

    assert server.operations == ["CyclesPage", "TeamCyclesPage"]
    assert server.requests[1]["variables"] == {"id": "t1"}
    assert [c.id for c in page.nodes] == ["c2"]
    assert page.truncated is False


def test_fallback_flags_truncation_when_more_pages_exist(caplog):
    server = CyclesServer(
        UNKNOWN_CYCLES, [_cycle("c1", False), _cycle("c2", True, 2)], has_next_page=True
    )
    with caplog.at_level(logging.WARNING):
        page = list_cycles(_client(server), "t1", current=True, limit=2)

    assert [c.id for c in page.nodes] == ["c2"]
    assert page.truncated is True
    assert page.page_info.has_next_page is True
    assert any("filtered client-side" in record.getMessage() for record in caplog.records)


def test_fallback_without_current_returns_all():
    server = CyclesServer(
        UNKNOWN_CYCLES, [_cycle("c1", False), _cycle("c2", True, 2)], has_next_page=True
    )
    page = list_cycles(_client(server), "t1")
    assert [c.id for c in page.nodes] == ["c1", "c2"]
    assert page.truncated is False


def test_other_graphql_errors_propagate():
    server = CyclesServer({"errors": [{"message": "Internal error"}]}, [])
    with pytest.raises(GraphQLOperationError):
        list_cycles(_client(server), "t1")
    assert server.operations == ["CyclesPage"]


def test_schema_without_query_cycles_skips_top_level():
    server = CyclesServer(UNKNOWN_CYCLES, [_cycle("c9", True, 9)])
    client = _client(server)
    cache = SchemaCache(client)
    cache._snapshot = SchemaSnapshot(
        fetched_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
        query=SchemaTypeInfo.from_dict({"fields": [{"name": "team"}]}),
    )
    cache._loaded.set()

    page = list_cycles(client, "t1", current=True, schema=cache)
    assert server.operations == [None, "TeamCyclesPage"]
    assert server.requests[0]["variables"] == {"name": "Query"}
    assert page.nodes[0].id == "c9"


def test_fallback_missing_team_is_not_found():
    def handler(request: httpx.Request) -> httpx.Response:
        payload = json.loads(request.content.decode("utf-8"))
        if payload["operationName"] == "CyclesPage":
            return httpx.Response(200, json=UNKNOWN_CYCLES, request=request)
        return httpx.Response(200, json={"data": {"team": None}}, request=request)

    with pytest.raises(NotFoundError):
        list_cycles(_client(handler), "t-missing")


def test_get_cycle():
    def handler(request: httpx.Request) -> httpx.Response:
        payload = json.loads(request.content.decode("utf-8"))
        assert payload["operationName"] == "CycleById"
        return httpx.Response(200, json={"data": {"cycle": _cycle("c3", True, 3)}}, request=request)

    cycle = get_cycle(_client(handler), "c3")
    assert cycle.name == "Cycle 3"
    assert cycle.is_active is True
