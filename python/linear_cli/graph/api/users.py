from __future__ import annotations

from typing import Optional

from linear_graphql.client import GraphQLClient
from linear_graphql.errors import GraphQLOperationError, NotFoundError, ValidationError

from ...canonical_models import User
from ..gen import linear_api as api
from ..mappers.teams import map_user
from .common import execute_data


def get_viewer(client: GraphQLClient) -> User:
    """The authenticated user.

    Queries ``viewer`` and falls back to ``me`` only when the server reports
    ``viewer`` as an unknown field.
    """
    try:
        data = execute_data(client, api.VIEWER_QUERY, operation_name="Viewer")
        node = api.parse_viewer(data, "viewer")
    except GraphQLOperationError as exc:
        if not exc.has_unknown_field("viewer"):
            raise
        data = execute_data(client, api.ME_QUERY, operation_name="Me")
        node = api.parse_viewer(data, "me")
    if node is None:
        raise NotFoundError("viewer not found")
    return map_user(user=node)


def find_user_id_by_email(client: GraphQLClient, email: str) -> str:
    email_clean = (email or "").strip()
    if not email_clean:
        raise ValidationError("email is required")
    data = execute_data(
        client,
        api.USER_BY_EMAIL_QUERY,
        variables={"email": email_clean},
        operation_name="UserByEmail",
    )
    user_id: Optional[str] = api.parse_first_node_id(data, "users")
    if not user_id:
        raise NotFoundError(f"user {email_clean!r} not found")
    return user_id
