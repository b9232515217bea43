import json
from datetime import datetime, timezone

import httpx

from linear_cli.client import LinearClient

NOW = datetime(2024, 6, 1, tzinfo=timezone.utc)

SCHEMA = {
    "__type": {
        "fields": [
            {
                "name": "issue",
                "args": [
                    {
                        "name": "id",
                        "type": {
                            "kind": "NON_NULL",
                            "name": None,
                            "ofType": {"kind": "SCALAR", "name": "ID"},
                        },
                    }
                ],
            }
        ]
    },
    "issue": {"fields": [{"name": "descriptionData"}, {"name": "attachments"}]},
    "comment": {"fields": [{"name": "body"}]},
    "user": {"fields": [{"name": "email"}]},
}


def test_connect_adapts_queries_to_schema(tmp_path):
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        payload = json.loads(request.content.decode("utf-8"))
        seen.append(payload)
        op = payload.get("operationName")
        if op is None and payload.get("variables"):
            return httpx.Response(200, json={"data": {"__type": None}}, request=request)
        if op is None:
            return httpx.Response(200, json={"data": SCHEMA}, request=request)
        if op == "IssueDescription":
            issue = {"id": "i1", "description": "", "descriptionData": {"type": "doc"}}
            return httpx.Response(200, json={"data": {"issue": issue}}, request=request)
        if op == "IssueComments":
            return httpx.Response(
                200,
                json={"data": {"issue": {"comments": {"nodes": []}}}},
                request=request,
            )
        if op == "IssueAttachments":
            return httpx.Response(
                200,
                json={"data": {"issue": {"attachments": {"nodes": []}}}},
                request=request,
            )
        raise AssertionError(f"unexpected operation {op}")

    with httpx.Client(transport=httpx.MockTransport(handler)) as http_client:
        with LinearClient.connect(
            "lin_api_test",
            schema_path=tmp_path / "schema.json",
            http_client=http_client,
            now=lambda: NOW,
        ) as client:
            uploads = client.issue_uploads("ENG-1", limit=10)

    assert uploads == []
    ops = [payload.get("operationName") for payload in seen]
    assert ops[0] is None
    by_op = {payload.get("operationName"): payload for payload in seen}
    assert "$id: ID!" in by_op["IssueDescription"]["query"]
    assert "descriptionData" in by_op["IssueDescription"]["query"]
    assert "bodyData" not in by_op["IssueComments"]["query"]
    assert (tmp_path / "schema.json").exists()


def test_client_without_schema_uses_defaults():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        payload = json.loads(request.content.decode("utf-8"))
        seen.append(payload)
        return httpx.Response(
            200,
            json={"data": {"viewer": {"id": "u1", "name": "Ada", "email": "ada@x"}}},
            request=request,
        )

    with httpx.Client(transport=httpx.MockTransport(handler)) as http_client:
        client = LinearClient.connect("lin_api_test", introspect=False, http_client=http_client)
        user = client.me()
        client.close()
        assert not http_client.is_closed

    assert user.email == "ada@x"
    assert [payload["operationName"] for payload in seen] == ["Viewer"]
