from __future__ import annotations

from linear_graphql.errors import NotFoundError, ValidationError

from .api import LinearAPI
from .canonical_models import IssueSummary

COMPLETED = "completed"
UNSTARTED = "unstarted"


def set_issue_state_by_type(api: LinearAPI, issue_ref: str, state_type: str) -> IssueSummary:
    """Move an issue to the first workflow state of its team with ``state_type``."""
    issue = api.issue(issue_ref)
    wanted = state_type.lower()
    for state in api.workflow_states(issue.team_id):
        if state.type.lower() == wanted:
            return api.issue_update({"id": issue.id, "stateId": state.id})
    raise NotFoundError(f"no {state_type} state for team {issue.team_key or issue.team_id}")


def close_issue(api: LinearAPI, issue_ref: str) -> IssueSummary:
    return set_issue_state_by_type(api, issue_ref, COMPLETED)


def reopen_issue(api: LinearAPI, issue_ref: str) -> IssueSummary:
    return set_issue_state_by_type(api, issue_ref, UNSTARTED)


def add_comment(api: LinearAPI, issue_ref: str, body: str) -> str:
    if not (body or "").strip():
        raise ValidationError("comment body is required")
    issue_id = api.resolve_issue_id(issue_ref)
    return api.issue_comment(issue_id, body)
