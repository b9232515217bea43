import json

import httpx
import pytest

from linear_cli.graph.api.resolve import (
    is_likely_id,
    resolve_cycle_id,
    resolve_issue_id,
    resolve_label_ids,
    resolve_project_id,
    resolve_state_id,
    resolve_team_id,
    resolve_user_id,
)
from linear_graphql.auth import ApiKeyAuth
from linear_graphql.client import GraphQLClient
from linear_graphql.errors import NotFoundError, ValidationError

UUID = "5f2c1b9e-0d3a-4c6b-9e8f-1a2b3c4d5e6f"
TEAM_UUID = "0b7e6a52-3c1d-4f8e-a9b0-c1d2e3f4a5b6"


class Router:
    """Answers GraphQL requests by operation name and records them."""

    def __init__(self, responses=None):
        self.responses = responses or {}
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        payload = json.loads(request.content.decode("utf-8"))
        self.requests.append(payload)
        op = payload.get("operationName")
        body = self.responses.get(op)
        if body is None:
            raise AssertionError(f"unexpected operation {op}")
        if callable(body):
            body = body(payload)
        return httpx.Response(200, json=body, request=request)

    @property
    def operations(self):
        return [payload.get("operationName") for payload in self.requests]


def _client(router):
    http_client = httpx.Client(transport=httpx.MockTransport(router), timeout=5.0)
    return GraphQLClient(
        "https://api.linear.app", auth=ApiKeyAuth("lin_api_test"), http_client=http_client
    )


def test_is_likely_id():
    assert is_likely_id(UUID)
    assert not is_likely_id("ENG-123")
    assert not is_likely_id("a" * 40)
    assert not is_likely_id("a-b-c-d-e")
    assert not is_likely_id("")


def test_id_shaped_aliases_issue_no_lookups():
    router = Router()
    client = _client(router)

    assert resolve_user_id(client, UUID) == UUID
    assert resolve_state_id(client, TEAM_UUID, UUID) == UUID
    assert resolve_label_ids(client, [UUID, " ", UUID]) == [UUID, UUID]
    assert resolve_project_id(client, UUID) == UUID
    assert resolve_cycle_id(client, TEAM_UUID, UUID) == UUID
    assert router.requests == []


def test_resolve_user_me_uses_viewer():
    router = Router({"Viewer": {"data": {"viewer": {"id": "u1", "name": "Ada", "email": "a@x"}}}})
    assert resolve_user_id(_client(router), "me") == "u1"
    assert router.operations == ["Viewer"]


def test_resolve_user_me_falls_back_to_me_field():
    router = Router(
        {
            "Viewer": {
                "errors": [{"message": 'Cannot query field "viewer" on type "Query".'}],
            },
            "Me": {"data": {"me": {"id": "u2", "name": "Bo", "email": "b@x"}}},
        }
    )
    assert resolve_user_id(_client(router), "me") == "u2"
    assert router.operations == ["Viewer", "Me"]


def test_resolve_user_by_email():
    router = Router({"UserByEmail": {"data": {"users": {"nodes": [{"id": "u3"}]}}}})
    assert resolve_user_id(_client(router), "dev@example.com") == "u3"
    assert router.requests[0]["variables"] == {"email": "dev@example.com"}


def test_resolve_user_unknown_email_is_not_found():
    router = Router({"UserByEmail": {"data": {"users": {"nodes": []}}}})
    with pytest.raises(NotFoundError):
        resolve_user_id(_client(router), "ghost@example.com")


def test_resolve_user_rejects_plain_names():
    router = Router()
    with pytest.raises(ValidationError) as excinfo:
        resolve_user_id(_client(router), "bob")
    assert "me" in str(excinfo.value)
    assert router.requests == []


def test_resolve_team_by_key():
    router = Router(
        {"TeamByKey": {"data": {"teams": {"nodes": [{"id": "t1", "key": "ENG", "name": "Eng"}]}}}}
    )
    assert resolve_team_id(_client(router), "ENG") == "t1"
    assert router.operations == ["TeamByKey"]
    assert router.requests[0]["variables"] == {"key": "ENG"}


def test_resolve_team_id_shaped_confirms_then_falls_back_to_key():
    router = Router(
        {
            "TeamById": {"data": {"team": None}},
            "TeamByKey": {
                "data": {"teams": {"nodes": [{"id": "t9", "key": TEAM_UUID, "name": "Odd"}]}}
            },
        }
    )
    assert resolve_team_id(_client(router), TEAM_UUID) == "t9"
    assert router.operations == ["TeamById", "TeamByKey"]


def test_resolve_team_missing_key_is_not_found():
    router = Router({"TeamByKey": {"data": {"teams": {"nodes": []}}}})
    with pytest.raises(NotFoundError):
        resolve_team_id(_client(router), "NOPE")


def test_resolve_state_name_is_case_insensitive():
    router = Router(
        {
            "WorkflowStates": {
                "data": {
                    "team": {
                        "states": {
                            "nodes": [
                                {"id": "s1", "name": "Todo", "type": "unstarted"},
                                {"id": "s2", "name": "In Progress", "type": "started"},
                            ]
                        }
                    }
                }
            }
        }
    )
    assert resolve_state_id(_client(router), "t1", "in progress") == "s2"
    assert "$id: String!" in router.requests[0]["query"]


def test_resolve_state_unknown_name():
    router = Router({"WorkflowStates": {"data": {"team": {"states": {"nodes": []}}}}})
    with pytest.raises(NotFoundError):
        resolve_state_id(_client(router), "t1", "Blocked")


def test_resolve_labels_one_miss_fails_batch():
    def label(payload):
        name = payload["variables"]["name"]
        nodes = [{"id": "l-bug"}] if name == "bug" else []
        return {"data": {"issueLabels": {"nodes": nodes}}}

    router = Router({"LabelByName": label})
    client = _client(router)

    assert resolve_label_ids(client, ["bug"]) == ["l-bug"]
    with pytest.raises(NotFoundError) as excinfo:
        resolve_label_ids(client, ["bug", "ui"])
    assert "ui" in str(excinfo.value)
    assert [r["variables"]["name"] for r in router.requests] == ["bug", "bug", "ui"]


def test_resolve_project_by_name():
    router = Router({"ProjectByName": {"data": {"projects": {"nodes": [{"id": "p1"}]}}}})
    assert resolve_project_id(_client(router), "Roadmap") == "p1"


def test_resolve_current_cycle():
    router = Router(
        {
            "CyclesPage": {
                "data": {
                    "cycles": {
                        "nodes": [{"id": "c7", "name": "Cycle 7", "number": 7, "isActive": True}],
                        "pageInfo": {"hasNextPage": False, "endCursor": None},
                    }
                }
            }
        }
    )
    assert resolve_cycle_id(_client(router), "t1", "current") == "c7"
    variables = router.requests[0]["variables"]
    assert variables["first"] == 1
    assert variables["filter"] == {"team": {"id": {"eq": "t1"}}, "isActive": {"eq": True}}


def test_resolve_current_cycle_none_active():
    router = Router({"CyclesPage": {"data": {"cycles": {"nodes": []}}}})
    with pytest.raises(NotFoundError):
        resolve_cycle_id(_client(router), "t1", "current")


def _team_cycles_pages(payload):
    after = payload["variables"].get("after")
    if after is None:
        nodes = [{"id": "c-old", "name": "Cycle 1", "number": 1, "isActive": False}]
        page_info = {"hasNextPage": True, "endCursor": "cur-1"}
    else:
        assert after == "cur-1"
        nodes = [{"id": "c-active", "name": "Cycle 2", "number": 2, "isActive": True}]
        page_info = {"hasNextPage": False, "endCursor": "cur-2"}
    return {"data": {"team": {"cycles": {"nodes": nodes, "pageInfo": page_info}}}}


def test_resolve_current_cycle_follows_team_pages_on_fallback():
    router = Router(
        {
            "CyclesPage": {
                "errors": [{"message": 'Cannot query field "cycles" on type "Query".'}]
            },
            "TeamCyclesPage": _team_cycles_pages,
        }
    )
    assert resolve_cycle_id(_client(router), "team-1", "current") == "c-active"
    assert router.operations == ["CyclesPage", "TeamCyclesPage", "CyclesPage", "TeamCyclesPage"]


def test_resolve_current_cycle_stops_when_pages_run_out():
    def inactive_only(payload):
        nodes = [{"id": "c-old", "name": "Cycle 1", "number": 1, "isActive": False}]
        page_info = {"hasNextPage": False, "endCursor": "cur-1"}
        return {"data": {"team": {"cycles": {"nodes": nodes, "pageInfo": page_info}}}}

    router = Router(
        {
            "CyclesPage": {
                "errors": [{"message": 'Cannot query field "cycles" on type "Query".'}]
            },
            "TeamCyclesPage": inactive_only,
        }
    )
    with pytest.raises(NotFoundError):
        resolve_cycle_id(_client(router), "team-1", "current")
    assert router.operations == ["CyclesPage", "TeamCyclesPage"]


def test_resolve_cycle_rejects_names():
    router = Router()
    with pytest.raises(ValidationError):
        resolve_cycle_id(_client(router), "t1", "Cycle 7")
    assert router.requests == []


def test_resolve_issue_identifier():
    router = Router({"IssueId": {"data": {"issue": {"id": UUID}}}})
    assert resolve_issue_id(_client(router), "ENG-12") == UUID
    assert router.requests[0]["variables"] == {"id": "ENG-12"}


def test_resolve_issue_missing():
    router = Router({"IssueId": {"data": {"issue": None}}})
    with pytest.raises(NotFoundError):
        resolve_issue_id(_client(router), "ENG-404")


def test_blank_values_are_validation_errors():
    client = _client(Router())
    with pytest.raises(ValidationError):
        resolve_team_id(client, " ")
    with pytest.raises(ValidationError):
        resolve_user_id(client, "")
