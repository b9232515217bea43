from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from linear_graphql.client import GraphQLClient
from linear_graphql.errors import SerializationError

from ..gen.linear_api import DEFAULT_ID_TYPE
from ..schema_cache import SchemaCache


def id_type(schema: Optional[SchemaCache], field_name: str) -> str:
    """GraphQL type of ``Query.<field_name>(id:)``, ``String`` when unknown."""
    if schema is None:
        return DEFAULT_ID_TYPE
    return schema.arg_base_type(field_name, "id") or DEFAULT_ID_TYPE


def has_field(
    schema: Optional[SchemaCache], type_name: str, field_name: str, *, default: bool
) -> bool:
    if schema is None:
        return default
    return schema.has_field(type_name, field_name, default=default)


def execute_data(
    client: GraphQLClient,
    query: str,
    *,
    variables: Optional[Mapping[str, Any]] = None,
    operation_name: Optional[str] = None,
) -> Dict[str, Any]:
    result = client.execute(query, variables=variables, operation_name=operation_name)
    if result.data is None:
        raise SerializationError("Missing GraphQL data in response")
    return result.data


def page_variables(limit: int = 0, after: str = "") -> Dict[str, Any]:
    variables: Dict[str, Any] = {}
    if limit and limit > 0:
        variables["first"] = limit
    if after:
        variables["after"] = after
    return variables
