from __future__ import annotations

from typing import List, Optional

from linear_graphql.client import GraphQLClient
from linear_graphql.errors import NotFoundError, ValidationError

from ...canonical_models import Team, WorkflowState
from ..gen import linear_api as api
from ..mappers.teams import map_team, map_workflow_state
from ..schema_cache import SchemaCache
from .common import execute_data, id_type


def _require(value: str, name: str) -> str:
    cleaned = (value or "").strip()
    if not cleaned:
        raise ValidationError(f"{name} is required")
    return cleaned


def list_teams(client: GraphQLClient) -> List[Team]:
    data = execute_data(client, api.TEAMS_QUERY, operation_name="Teams")
    return [map_team(team=node) for node in api.parse_teams(data)]


def get_team_by_id(
    client: GraphQLClient, team_id: str, *, schema: Optional[SchemaCache] = None
) -> Team:
    team_id_clean = _require(team_id, "team_id")
    data = execute_data(
        client,
        api.team_by_id_query(id_type(schema, "team")),
        variables={"id": team_id_clean},
        operation_name="TeamById",
    )
    node = api.parse_team(data)
    if node is None:
        raise NotFoundError(f"team {team_id_clean!r} not found")
    return map_team(team=node)


def get_team_by_key(client: GraphQLClient, key: str) -> Team:
    key_clean = _require(key, "team key")
    data = execute_data(
        client,
        api.TEAM_BY_KEY_QUERY,
        variables={"key": key_clean},
        operation_name="TeamByKey",
    )
    nodes = api.parse_teams(data)
    if not nodes:
        raise NotFoundError(f"team {key_clean!r} not found")
    return map_team(team=nodes[0])


def list_workflow_states(
    client: GraphQLClient, team_id: str, *, schema: Optional[SchemaCache] = None
) -> List[WorkflowState]:
    team_id_clean = _require(team_id, "team_id")
    data = execute_data(
        client,
        api.workflow_states_query(id_type(schema, "team")),
        variables={"id": team_id_clean},
        operation_name="WorkflowStates",
    )
    nodes = api.parse_workflow_states(data)
    if nodes is None:
        raise NotFoundError(f"team {team_id_clean!r} not found")
    return [map_workflow_state(state=node) for node in nodes]
