"""Resolving human-friendly references into Linear IDs.

Aliases accepted here: team keys, ``me``, user emails, state names, label
names, project names and ``current`` for cycles. Anything shaped like an ID
is taken as-is, without a lookup, except teams, whose ID is confirmed first.
"""

from __future__ import annotations

from typing import List, Optional, Sequence

from linear_graphql.client import GraphQLClient
from linear_graphql.errors import (
    GraphQLOperationError,
    NotFoundError,
    ValidationError,
)

from ..gen import linear_api as api
from ..schema_cache import SchemaCache
from .common import execute_data
from .cycles import list_cycles
from .issues import get_issue_id
from .teams import get_team_by_id, get_team_by_key, list_workflow_states
from .users import find_user_id_by_email, get_viewer

ID_MIN_LENGTH = 30
ID_MIN_HYPHENS = 4


def is_likely_id(value: str) -> bool:
    """UUID-like: at least 30 characters and at least 4 hyphens."""
    if not value or len(value) < ID_MIN_LENGTH:
        return False
    return value.count("-") >= ID_MIN_HYPHENS


def _require(value: str, name: str) -> str:
    cleaned = (value or "").strip()
    if not cleaned:
        raise ValidationError(f"{name} is required")
    return cleaned


def resolve_team_id(
    client: GraphQLClient, key_or_id: str, *, schema: Optional[SchemaCache] = None
) -> str:
    value = _require(key_or_id, "team")
    if is_likely_id(value):
        try:
            return get_team_by_id(client, value, schema=schema).id
        except (NotFoundError, GraphQLOperationError):
            pass
    return get_team_by_key(client, value).id


def resolve_user_id(client: GraphQLClient, value: str) -> str:
    value = _require(value, "user")
    if value == "me":
        return get_viewer(client).id
    if is_likely_id(value):
        return value
    if "@" in value:
        return find_user_id_by_email(client, value)
    raise ValidationError("assignee must be 'me', an id, or an email")


def resolve_state_id(
    client: GraphQLClient,
    team_id: str,
    value: str,
    *,
    schema: Optional[SchemaCache] = None,
) -> str:
    value = _require(value, "state")
    if is_likely_id(value):
        return value
    wanted = value.lower()
    for state in list_workflow_states(client, team_id, schema=schema):
        if state.name.lower() == wanted:
            return state.id
    raise NotFoundError(f"state {value!r} not found")


def resolve_label_ids(client: GraphQLClient, labels: Sequence[str]) -> List[str]:
    """IDs for every label; one miss fails the whole batch."""
    ids: List[str] = []
    for label in labels or ():
        label = (label or "").strip()
        if not label:
            continue
        if is_likely_id(label):
            ids.append(label)
            continue
        data = execute_data(
            client,
            api.LABEL_BY_NAME_QUERY,
            variables={"name": label},
            operation_name="LabelByName",
        )
        label_id = api.parse_first_node_id(data, "issueLabels")
        if not label_id:
            raise NotFoundError(f"label {label!r} not found")
        ids.append(label_id)
    return ids


def resolve_project_id(client: GraphQLClient, value: str) -> str:
    value = _require(value, "project")
    if is_likely_id(value):
        return value
    data = execute_data(
        client,
        api.PROJECT_BY_NAME_QUERY,
        variables={"name": value},
        operation_name="ProjectByName",
    )
    project_id = api.parse_first_node_id(data, "projects")
    if not project_id:
        raise NotFoundError(f"project {value!r} not found")
    return project_id


def resolve_cycle_id(
    client: GraphQLClient,
    team_id: str,
    value: str,
    *,
    schema: Optional[SchemaCache] = None,
) -> str:
    value = _require(value, "cycle")
    if value == "current":
        after = ""
        while True:
            page = list_cycles(client, team_id, current=True, limit=1, after=after, schema=schema)
            if page.nodes:
                return page.nodes[0].id
            # Team-nested pages are filtered client-side; the active one may be further on.
            cursor = page.page_info.end_cursor
            if not page.page_info.has_next_page or not cursor or cursor == after:
                raise NotFoundError("no active cycle")
            after = cursor
    if is_likely_id(value):
        return value
    raise ValidationError("cycle must be an id or 'current'")


def resolve_issue_id(
    client: GraphQLClient, value: str, *, schema: Optional[SchemaCache] = None
) -> str:
    """Canonical ID for an issue identifier (``ENG-12``) or ID."""
    return get_issue_id(client, value, schema=schema)
