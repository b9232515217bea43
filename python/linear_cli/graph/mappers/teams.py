from __future__ import annotations

from typing import Optional

from ...canonical_models import Team, User, WorkflowState
from ..gen import linear_api as api


def _require_non_empty(value: Optional[str], path: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{path} is required")
    return value.strip()


def map_user(*, user: api.UserNode) -> User:
    if user is None:
        raise ValueError("user is required")
    return User(
        id=_require_non_empty(user.id, "user.id"),
        name=user.name.strip(),
        email=user.email.strip(),
    )


def map_team(*, team: api.TeamNode) -> Team:
    if team is None:
        raise ValueError("team is required")
    return Team(
        id=_require_non_empty(team.id, "team.id"),
        key=team.key.strip(),
        name=team.name.strip(),
    )


def map_workflow_state(*, state: api.StateNode) -> WorkflowState:
    if state is None:
        raise ValueError("state is required")
    return WorkflowState(
        id=_require_non_empty(state.id, "state.id"),
        name=state.name,
        type=state.type,
    )
