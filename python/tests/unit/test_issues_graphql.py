import json

import httpx
import pytest

from linear_cli.canonical_models import IssueFilter
from linear_cli.graph.api.comments import create_comment, list_issue_comments
from linear_cli.graph.api.issues import (
    build_issue_filter,
    create_issue,
    get_issue,
    list_issues,
    update_issue,
)
from linear_cli.graph.api.relations import delete_issue_relation, list_issue_relations
from linear_graphql.auth import ApiKeyAuth
from linear_graphql.client import GraphQLClient
from linear_graphql.errors import NotFoundError, SerializationError, TransportError, ValidationError


def _client(handler):
    http_client = httpx.Client(transport=httpx.MockTransport(handler), timeout=5.0)
    return GraphQLClient(
        "https://api.linear.app", auth=ApiKeyAuth("lin_api_test"), http_client=http_client
    )


def test_empty_filter_is_none():
    assert build_issue_filter(IssueFilter()) is None
    assert build_issue_filter(IssueFilter(priority=-1)) is None


def test_filter_shape():
    built = build_issue_filter(
        IssueFilter(
            team_id="t1",
            assignee_id="u1",
            state_id="s1",
            label_ids=["l1", "l2"],
            project_id="p1",
            cycle_id="c1",
            search="crash",
            priority=2,
        )
    )
    assert built == {
        "team": {"id": {"eq": "t1"}},
        "assignee": {"id": {"eq": "u1"}},
        "state": {"id": {"eq": "s1"}},
        "labels": {"id": {"in": ["l1", "l2"]}},
        "project": {"id": {"eq": "p1"}},
        "cycle": {"id": {"eq": "c1"}},
        "title": {"contains": "crash"},
        "priority": {"eq": 2},
    }


def test_priority_zero_is_a_real_filter():
    assert build_issue_filter(IssueFilter(priority=0)) == {"priority": {"eq": 0}}


def test_list_issues_without_filter_omits_argument():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        payload = json.loads(request.content.decode("utf-8"))
        seen.append(payload)
        return httpx.Response(
            200,
            json={
                "data": {
                    "issues": {
                        "nodes": [
                            {
                                "id": "i1",
                                "identifier": "ENG-1",
                                "title": "Crash on start",
                                "url": "https://linear.app/x/issue/ENG-1",
                                "priority": 2,
                                "state": {"name": "Todo"},
                                "assignee": None,
                                "team": {"key": "ENG"},
                                "cycle": {"name": "Cycle 3"},
                            }
                        ],
                        "pageInfo": {"hasNextPage": True, "endCursor": "cur-1"},
                    }
                }
            },
            request=request,
        )

    page = list_issues(_client(handler), IssueFilter(), limit=25)

    assert seen[0]["operationName"] == "IssuesPage"
    assert seen[0]["variables"] == {"first": 25}
    issue = page.nodes[0]
    assert issue.identifier == "ENG-1"
    assert issue.state == "Todo"
    assert issue.assignee == ""
    assert issue.team_key == "ENG"
    assert issue.cycle == "Cycle 3"
    assert page.page_info.has_next_page is True
    assert page.page_info.end_cursor == "cur-1"


def test_list_issues_sends_filter_and_cursor():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(json.loads(request.content.decode("utf-8")))
        return httpx.Response(200, json={"data": {"issues": {"nodes": []}}}, request=request)

    list_issues(_client(handler), IssueFilter(team_id="t1"), limit=10, after="cur-1")
    assert seen[0]["variables"] == {
        "first": 10,
        "after": "cur-1",
        "filter": {"team": {"id": {"eq": "t1"}}},
    }


def test_get_issue_maps_detail():
    def handler(request: httpx.Request) -> httpx.Response:
        payload = json.loads(request.content.decode("utf-8"))
        assert payload["operationName"] == "IssueDetail"
        return httpx.Response(
            200,
            json={
                "data": {
                    "issue": {
                        "id": "i1",
                        "identifier": "ENG-1",
                        "title": "Crash",
                        "url": "https://linear.app/x/issue/ENG-1",
                        "description": "It crashes",
                        "priority": 1,
                        "createdAt": "2024-01-01T00:00:00Z",
                        "updatedAt": "2024-01-02T00:00:00Z",
                        "team": {"id": "t1", "key": "ENG"},
                        "state": {"name": "In Progress"},
                        "assignee": {"name": "Ada"},
                        "cycle": None,
                        "project": {"name": "Stability"},
                        "labels": {"nodes": [{"name": "bug"}, {"name": "p1"}]},
                    }
                }
            },
            request=request,
        )

    issue = get_issue(_client(handler), "ENG-1")

    assert issue.team_id == "t1"
    assert issue.state == "In Progress"
    assert issue.assignee == "Ada"
    assert issue.cycle == ""
    assert issue.project == "Stability"
    assert issue.labels == ["bug", "p1"]


def test_get_issue_null_is_not_found():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"data": {"issue": None}}, request=request)

    with pytest.raises(NotFoundError):
        get_issue(_client(handler), "ENG-404")


def test_missing_data_is_serialization_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"data": None}, request=request)

    with pytest.raises(SerializationError):
        get_issue(_client(handler), "ENG-1")


def test_malformed_field_is_serialization_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200, json={"data": {"issue": {"id": "i1", "priority": "high"}}}, request=request
        )

    with pytest.raises(SerializationError):
        get_issue(_client(handler), "ENG-1")


def test_create_issue_sends_input():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(json.loads(request.content.decode("utf-8")))
        return httpx.Response(
            200,
            json={
                "data": {
                    "issueCreate": {
                        "issue": {"id": "i2", "identifier": "ENG-2", "title": "New", "url": "u"}
                    }
                }
            },
            request=request,
        )

    issue = create_issue(_client(handler), {"teamId": "t1", "title": "New"})
    assert seen[0]["variables"] == {"input": {"teamId": "t1", "title": "New"}}
    assert issue.identifier == "ENG-2"


def test_update_issue_strips_id_from_input():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(json.loads(request.content.decode("utf-8")))
        return httpx.Response(
            200,
            json={
                "data": {
                    "issueUpdate": {
                        "issue": {"id": "i1", "identifier": "ENG-1", "title": "T", "url": "u"}
                    }
                }
            },
            request=request,
        )

    update_issue(_client(handler), {"id": "i1", "stateId": "s2"})
    assert seen[0]["operationName"] == "IssueUpdate"
    assert seen[0]["variables"] == {"id": "i1", "input": {"stateId": "s2"}}


def test_update_issue_requires_id():
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    with pytest.raises(ValidationError):
        update_issue(_client(handler), {"title": "x"})


def test_comments_request_body_data_by_default():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(json.loads(request.content.decode("utf-8")))
        return httpx.Response(
            200,
            json={
                "data": {
                    "issue": {
                        "comments": {
                            "nodes": [
                                {
                                    "id": "c1",
                                    "body": "",
                                    "bodyData": {"type": "doc", "content": []},
                                    "createdAt": "2024-01-01T00:00:00Z",
                                    "user": {"name": "Ada", "email": "ada@x"},
                                }
                            ]
                        }
                    }
                }
            },
            request=request,
        )

    comments = list_issue_comments(_client(handler), "i1", limit=5)

    assert "bodyData" in seen[0]["query"]
    assert seen[0]["variables"] == {"first": 5, "id": "i1"}
    assert json.loads(comments[0].body_data) == {"type": "doc", "content": []}
    assert comments[0].user_name == "Ada"


def test_create_comment_rejects_blank_body():
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    with pytest.raises(ValidationError):
        create_comment(_client(handler), "i1", "   ")


def _relation_node(relation_id, issue_id, related_id):
    return {
        "id": relation_id,
        "type": "blocks",
        "issue": {"id": issue_id},
        "relatedIssue": {"id": related_id},
    }


def test_list_issue_relations_maps_both_directions():
    node = _relation_node

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={
                "data": {
                    "issue": {
                        "relations": {"nodes": [node("r1", "i1", "i2")]},
                        "inverseRelations": {"nodes": [node("r2", "i3", "i1")]},
                    }
                }
            },
            request=request,
        )

    relations = list_issue_relations(_client(handler), "i1")
    assert relations.relations[0].related_issue_id == "i2"
    assert relations.inverse_relations[0].issue_id == "i3"


def test_delete_relation_failure_is_transport_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200, json={"data": {"issueRelationDelete": {"success": False}}}, request=request
        )

    with pytest.raises(TransportError):
        delete_issue_relation(_client(handler), "r1")
