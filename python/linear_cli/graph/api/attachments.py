from __future__ import annotations

from typing import List, Optional

from linear_graphql.client import GraphQLClient
from linear_graphql.errors import NotFoundError, ValidationError

from ...attachments import extract_attachments_from_comments, extract_uploads, merge_attachments
from ...canonical_models import Attachment
from ..gen import linear_api as api
from ..mappers.issues import map_attachment
from ..schema_cache import SchemaCache
from .comments import list_issue_comments
from .common import execute_data, has_field, id_type, page_variables
from .issues import get_issue_description


def list_structured_attachments(
    client: GraphQLClient,
    issue_id: str,
    *,
    limit: int = 0,
    schema: Optional[SchemaCache] = None,
) -> List[Attachment]:
    issue_id_clean = (issue_id or "").strip()
    if not issue_id_clean:
        raise ValidationError("issue id is required")

    include_source = has_field(schema, "Attachment", "source", default=False)
    variables = page_variables(limit)
    variables["id"] = issue_id_clean
    data = execute_data(
        client,
        api.issue_attachments_query(id_type(schema, "issue"), include_source),
        variables=variables,
        operation_name="IssueAttachments",
    )
    nodes = api.parse_issue_attachments(data)
    if nodes is None:
        raise NotFoundError(f"issue {issue_id_clean!r} not found")
    return [map_attachment(attachment=node) for node in nodes]


def list_issue_attachments(
    client: GraphQLClient,
    issue_id: str,
    *,
    limit: int = 0,
    schema: Optional[SchemaCache] = None,
) -> List[Attachment]:
    """Structured attachments; upload links from comments when there are none."""
    structured: List[Attachment] = []
    if has_field(schema, "Issue", "attachments", default=True):
        structured = list_structured_attachments(client, issue_id, limit=limit, schema=schema)
    if structured:
        return structured
    comments = list_issue_comments(client, issue_id, limit=limit, schema=schema)
    return extract_attachments_from_comments(comments)


def list_issue_uploads(
    client: GraphQLClient,
    issue_id: str,
    *,
    limit: int = 0,
    schema: Optional[SchemaCache] = None,
) -> List[Attachment]:
    """Every file reachable from an issue.

    Structured attachments come first, then uploads linked from the
    description, then uploads linked from comments; duplicates by URL are
    dropped.
    """
    structured: List[Attachment] = []
    if has_field(schema, "Issue", "attachments", default=True):
        structured = list_structured_attachments(client, issue_id, limit=limit, schema=schema)
    description = get_issue_description(client, issue_id, schema=schema)
    comments = list_issue_comments(client, issue_id, limit=limit, schema=schema)
    return merge_attachments(
        structured,
        extract_uploads(description.description, description.description_data),
        extract_attachments_from_comments(comments),
    )
