from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from linear_graphql.client import GraphQLClient
from linear_graphql.errors import NotFoundError, ValidationError

from ...canonical_models import IssueDetail, IssueFilter, IssuePage, IssueSummary
from ..gen import linear_api as api
from ..mappers.cycles import map_page_info
from ..mappers.issues import map_issue_detail, map_issue_ref, map_issue_summary
from ..schema_cache import SchemaCache
from .common import execute_data, has_field, id_type, page_variables


def _eq_id(value: str) -> Dict[str, Any]:
    return {"id": {"eq": value}}


def build_issue_filter(issue_filter: IssueFilter) -> Optional[Dict[str, Any]]:
    """``IssueFilter`` input object, or ``None`` when nothing is set."""
    if issue_filter is None or issue_filter.is_empty():
        return None
    out: Dict[str, Any] = {}
    if issue_filter.team_id:
        out["team"] = _eq_id(issue_filter.team_id)
    if issue_filter.assignee_id:
        out["assignee"] = _eq_id(issue_filter.assignee_id)
    if issue_filter.state_id:
        out["state"] = _eq_id(issue_filter.state_id)
    if issue_filter.label_ids:
        out["labels"] = {"id": {"in": list(issue_filter.label_ids)}}
    if issue_filter.project_id:
        out["project"] = _eq_id(issue_filter.project_id)
    if issue_filter.cycle_id:
        out["cycle"] = _eq_id(issue_filter.cycle_id)
    if issue_filter.search:
        out["title"] = {"contains": issue_filter.search}
    priority = issue_filter.effective_priority
    if priority is not None:
        out["priority"] = {"eq": priority}
    return out


def _require_issue_ref(value: str) -> str:
    cleaned = (value or "").strip()
    if not cleaned:
        raise ValidationError("issue id is required")
    return cleaned


def get_issue_id(
    client: GraphQLClient, issue_ref: str, *, schema: Optional[SchemaCache] = None
) -> str:
    ref = _require_issue_ref(issue_ref)
    data = execute_data(
        client,
        api.issue_id_query(id_type(schema, "issue")),
        variables={"id": ref},
        operation_name="IssueId",
    )
    issue_id = api.parse_issue_id(data)
    if not issue_id:
        raise NotFoundError(f"issue {ref!r} not found")
    return issue_id


def get_issue(
    client: GraphQLClient, issue_ref: str, *, schema: Optional[SchemaCache] = None
) -> IssueDetail:
    ref = _require_issue_ref(issue_ref)
    data = execute_data(
        client,
        api.issue_detail_query(id_type(schema, "issue")),
        variables={"id": ref},
        operation_name="IssueDetail",
    )
    node = api.parse_issue_detail(data)
    if node is None:
        raise NotFoundError(f"issue {ref!r} not found")
    return map_issue_detail(issue=node)


def get_issue_description(
    client: GraphQLClient, issue_ref: str, *, schema: Optional[SchemaCache] = None
) -> api.IssueDescriptionNode:
    """Description text, plus ``descriptionData`` when the schema exposes it."""
    ref = _require_issue_ref(issue_ref)
    include_data = has_field(schema, "Issue", "descriptionData", default=False)
    data = execute_data(
        client,
        api.issue_description_query(id_type(schema, "issue"), include_data),
        variables={"id": ref},
        operation_name="IssueDescription",
    )
    node = api.parse_issue_description(data)
    if node is None:
        raise NotFoundError(f"issue {ref!r} not found")
    return node


def list_issues(
    client: GraphQLClient,
    issue_filter: Optional[IssueFilter] = None,
    *,
    limit: int = 0,
    after: str = "",
) -> IssuePage:
    variables = page_variables(limit, after)
    built = build_issue_filter(issue_filter) if issue_filter is not None else None
    if built is not None:
        variables["filter"] = built
    data = execute_data(
        client,
        api.ISSUES_PAGE_QUERY,
        variables=variables,
        operation_name="IssuesPage",
    )
    conn = api.parse_issues_page(data)
    return IssuePage(
        nodes=[map_issue_summary(issue=node) for node in conn.nodes],
        page_info=map_page_info(page_info=conn.page_info),
    )


def create_issue(client: GraphQLClient, issue_input: Mapping[str, Any]) -> IssueSummary:
    if not issue_input:
        raise ValidationError("issue input is required")
    data = execute_data(
        client,
        api.ISSUE_CREATE_MUTATION,
        variables={"input": dict(issue_input)},
        operation_name="IssueCreate",
    )
    node = api.parse_issue_payload(data, "issueCreate")
    if node is None:
        raise NotFoundError("issueCreate returned no issue")
    return map_issue_ref(issue=node)


def update_issue(client: GraphQLClient, issue_input: Mapping[str, Any]) -> IssueSummary:
    """Update an issue; ``issue_input["id"]`` is sent as the separate ``id`` argument."""
    raw_id = (issue_input or {}).get("id")
    issue_id = raw_id.strip() if isinstance(raw_id, str) else ""
    if not issue_id:
        raise ValidationError("issue id is required")
    trimmed = {key: value for key, value in issue_input.items() if key != "id"}
    data = execute_data(
        client,
        api.ISSUE_UPDATE_MUTATION,
        variables={"id": issue_id, "input": trimmed},
        operation_name="IssueUpdate",
    )
    node = api.parse_issue_payload(data, "issueUpdate")
    if node is None:
        raise NotFoundError(f"issue {issue_id!r} not found")
    return map_issue_ref(issue=node)
