from __future__ import annotations

from typing import List, Optional

from linear_graphql.client import GraphQLClient
from linear_graphql.errors import NotFoundError, ValidationError

from ...canonical_models import Comment
from ..gen import linear_api as api
from ..mappers.issues import map_comment
from ..schema_cache import SchemaCache
from .common import execute_data, has_field, id_type, page_variables


def list_issue_comments(
    client: GraphQLClient,
    issue_id: str,
    *,
    limit: int = 0,
    schema: Optional[SchemaCache] = None,
) -> List[Comment]:
    issue_id_clean = (issue_id or "").strip()
    if not issue_id_clean:
        raise ValidationError("issue id is required")

    # bodyData is requested unless a loaded schema says Comment lacks it.
    include_body_data = has_field(schema, "Comment", "bodyData", default=True)
    variables = page_variables(limit)
    variables["id"] = issue_id_clean
    data = execute_data(
        client,
        api.issue_comments_query(id_type(schema, "issue"), include_body_data),
        variables=variables,
        operation_name="IssueComments",
    )
    nodes = api.parse_issue_comments(data)
    if nodes is None:
        raise NotFoundError(f"issue {issue_id_clean!r} not found")
    return [map_comment(comment=node) for node in nodes]


def create_comment(client: GraphQLClient, issue_id: str, body: str) -> str:
    if not (body or "").strip():
        raise ValidationError("comment body is required")
    issue_id_clean = (issue_id or "").strip()
    if not issue_id_clean:
        raise ValidationError("issue id is required")
    data = execute_data(
        client,
        api.COMMENT_CREATE_MUTATION,
        variables={"input": {"issueId": issue_id_clean, "body": body}},
        operation_name="CommentCreate",
    )
    comment_id = api.parse_comment_create(data)
    if not comment_id:
        raise NotFoundError("commentCreate returned no comment")
    return comment_id
