from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from linear_graphql.client import GraphQLClient
from linear_graphql.errors import GraphQLOperationError, NotFoundError, ValidationError
from linear_graphql.logging import get_logger

from ...canonical_models import Cycle, CyclePage
from ..gen import linear_api as api
from ..mappers.cycles import map_cycle, map_page_info
from ..schema_cache import SchemaCache
from .common import execute_data, has_field, id_type, page_variables


def _to_page(conn: api.CyclesConnection) -> CyclePage:
    return CyclePage(
        nodes=[map_cycle(cycle=node) for node in conn.nodes],
        page_info=map_page_info(page_info=conn.page_info),
    )


def list_cycles(
    client: GraphQLClient,
    team_id: str,
    *,
    current: bool = False,
    limit: int = 0,
    after: str = "",
    schema: Optional[SchemaCache] = None,
    logger: Optional[logging.Logger] = None,
) -> CyclePage:
    """Cycles of one team, optionally only the active ones.

    Uses top-level ``cycles(filter:)``; when the schema lacks ``Query.cycles``
    (known from the snapshot or reported by the server) the team-nested
    connection is used instead and ``current`` is applied client-side.
    """
    team_id_clean = (team_id or "").strip()
    if not team_id_clean:
        raise ValidationError("team id is required")

    if not has_field(schema, "Query", "cycles", default=True):
        return _list_cycles_via_team(
            client, team_id_clean, current=current, limit=limit, after=after,
            schema=schema, logger=logger,
        )

    cycle_filter: Dict[str, Any] = {"team": {"id": {"eq": team_id_clean}}}
    if current:
        cycle_filter["isActive"] = {"eq": True}
    variables = page_variables(limit, after)
    variables["filter"] = cycle_filter

    try:
        data = execute_data(
            client,
            api.CYCLES_PAGE_QUERY,
            variables=variables,
            operation_name="CyclesPage",
        )
    except GraphQLOperationError as exc:
        if not exc.has_unknown_field("cycles"):
            raise
        get_logger(logger).debug("Query.cycles unavailable; using team cycles")
        return _list_cycles_via_team(
            client, team_id_clean, current=current, limit=limit, after=after,
            schema=schema, logger=logger,
        )
    return _to_page(api.parse_cycles_page(data))


def _list_cycles_via_team(
    client: GraphQLClient,
    team_id: str,
    *,
    current: bool,
    limit: int,
    after: str,
    schema: Optional[SchemaCache],
    logger: Optional[logging.Logger],
) -> CyclePage:
    variables = page_variables(limit, after)
    variables["id"] = team_id
    data = execute_data(
        client,
        api.team_cycles_query(id_type(schema, "team")),
        variables=variables,
        operation_name="TeamCyclesPage",
    )
    conn = api.parse_team_cycles_page(data)
    if conn is None:
        raise NotFoundError(f"team {team_id!r} not found")

    page = _to_page(conn)
    if not current:
        return page

    active = [cycle for cycle in page.nodes if cycle.is_active]
    truncated = page.page_info.has_next_page and len(active) < len(page.nodes)
    if truncated:
        get_logger(logger).warning(
            "Active cycles filtered client-side; %d of %d cycles dropped and more pages exist",
            len(page.nodes) - len(active),
            len(page.nodes),
        )
    return CyclePage(nodes=active, page_info=page.page_info, truncated=truncated)


def get_cycle(
    client: GraphQLClient, cycle_id: str, *, schema: Optional[SchemaCache] = None
) -> Cycle:
    cycle_id_clean = (cycle_id or "").strip()
    if not cycle_id_clean:
        raise ValidationError("cycle id is required")
    data = execute_data(
        client,
        api.cycle_by_id_query(id_type(schema, "cycle")),
        variables={"id": cycle_id_clean},
        operation_name="CycleById",
    )
    node = api.parse_cycle(data)
    if node is None:
        raise NotFoundError(f"cycle {cycle_id_clean!r} not found")
    return map_cycle(cycle=node)
