from __future__ import annotations

from typing import Optional

from linear_graphql.client import GraphQLClient
from linear_graphql.errors import NotFoundError, TransportError, ValidationError

from ...canonical_models import IssueRelation, IssueRelationSet
from ..gen import linear_api as api
from ..mappers.issues import map_relation, map_relation_set
from ..schema_cache import SchemaCache
from .common import execute_data, id_type, page_variables


def _require(value: str, name: str) -> str:
    cleaned = (value or "").strip()
    if not cleaned:
        raise ValidationError(f"{name} is required")
    return cleaned


def list_issue_relations(
    client: GraphQLClient,
    issue_id: str,
    *,
    limit: int = 0,
    schema: Optional[SchemaCache] = None,
) -> IssueRelationSet:
    issue_id_clean = _require(issue_id, "issue id")
    variables = page_variables(limit)
    variables["id"] = issue_id_clean
    data = execute_data(
        client,
        api.issue_relations_query(id_type(schema, "issue")),
        variables=variables,
        operation_name="IssueRelations",
    )
    node = api.parse_issue_relations(data)
    if node is None:
        raise NotFoundError(f"issue {issue_id_clean!r} not found")
    return map_relation_set(relations=node)


def create_issue_relation(
    client: GraphQLClient, issue_id: str, related_issue_id: str, relation_type: str
) -> IssueRelation:
    relation_input = {
        "issueId": _require(issue_id, "issue id"),
        "relatedIssueId": _require(related_issue_id, "related issue id"),
        "type": _require(relation_type, "relation type"),
    }
    data = execute_data(
        client,
        api.ISSUE_RELATION_CREATE_MUTATION,
        variables={"input": relation_input},
        operation_name="IssueRelationCreate",
    )
    node = api.parse_relation_create(data)
    if node is None:
        raise NotFoundError("issueRelationCreate returned no relation")
    return map_relation(relation=node)


def delete_issue_relation(client: GraphQLClient, relation_id: str) -> None:
    relation_id_clean = _require(relation_id, "relation id")
    data = execute_data(
        client,
        api.ISSUE_RELATION_DELETE_MUTATION,
        variables={"id": relation_id_clean},
        operation_name="IssueRelationDelete",
    )
    success = api.parse_relation_delete(data)
    if success is None:
        raise NotFoundError(f"relation {relation_id_clean!r} not found")
    if not success:
        raise TransportError(f"relation delete failed: {relation_id_clean}")
