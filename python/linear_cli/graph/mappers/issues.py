from __future__ import annotations

from typing import List, Optional, Sequence

from ...canonical_models import (
    Attachment,
    Comment,
    IssueDetail,
    IssueRelation,
    IssueRelationSet,
    IssueSummary,
)
from ..gen import linear_api as api


def _require_non_empty(value: Optional[str], path: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{path} is required")
    return value.strip()


def map_issue_summary(*, issue: api.IssueSummaryNode) -> IssueSummary:
    if issue is None:
        raise ValueError("issue is required")
    return IssueSummary(
        id=_require_non_empty(issue.id, "issue.id"),
        identifier=issue.identifier,
        title=issue.title,
        url=issue.url,
        state=issue.state_name,
        assignee=issue.assignee_name,
        team_key=issue.team_key,
        cycle=issue.cycle_name,
        priority=issue.priority,
    )


def map_issue_ref(*, issue: api.IssueRefNode) -> IssueSummary:
    if issue is None:
        raise ValueError("issue is required")
    return IssueSummary(
        id=_require_non_empty(issue.id, "issue.id"),
        identifier=issue.identifier,
        title=issue.title,
        url=issue.url,
    )


def map_issue_detail(*, issue: api.IssueDetailNode) -> IssueDetail:
    if issue is None:
        raise ValueError("issue is required")
    return IssueDetail(
        id=_require_non_empty(issue.id, "issue.id"),
        identifier=issue.identifier,
        title=issue.title,
        url=issue.url,
        description=issue.description,
        priority=issue.priority,
        state=issue.state_name,
        assignee=issue.assignee_name,
        team_id=issue.team_id,
        team_key=issue.team_key,
        cycle=issue.cycle_name,
        project=issue.project_name,
        labels=list(issue.label_names),
        created_at=issue.created_at,
        updated_at=issue.updated_at,
    )


def map_comment(*, comment: api.CommentNode) -> Comment:
    if comment is None:
        raise ValueError("comment is required")
    return Comment(
        id=_require_non_empty(comment.id, "comment.id"),
        body=comment.body,
        body_data=comment.body_data,
        created_at=comment.created_at,
        user_name=comment.user_name,
        user_email=comment.user_email,
    )


def map_attachment(*, attachment: api.AttachmentNode) -> Attachment:
    """Structured attachment; ``url`` falls back to ``source`` when empty."""
    if attachment is None:
        raise ValueError("attachment is required")
    url = attachment.url.strip() or attachment.source.strip()
    return Attachment(
        id=_require_non_empty(attachment.id, "attachment.id"),
        title=attachment.title,
        url=url,
        created_at=attachment.created_at,
    )


def map_relation(*, relation: api.RelationNode) -> IssueRelation:
    if relation is None:
        raise ValueError("relation is required")
    return IssueRelation(
        id=_require_non_empty(relation.id, "relation.id"),
        issue_id=relation.issue_id,
        related_issue_id=relation.related_issue_id,
        type=relation.type,
    )


def _map_relations(relations: Sequence[api.RelationNode]) -> List[IssueRelation]:
    return [map_relation(relation=relation) for relation in relations]


def map_relation_set(*, relations: api.RelationsNode) -> IssueRelationSet:
    if relations is None:
        raise ValueError("relations is required")
    return IssueRelationSet(
        relations=_map_relations(relations.relations),
        inverse_relations=_map_relations(relations.inverse_relations),
    )
