from __future__ import annotations

from typing import Optional

from ...canonical_models import Cycle, PageInfo
from ..gen import linear_api as api


def _require_non_empty(value: Optional[str], path: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{path} is required")
    return value.strip()


def map_cycle(*, cycle: api.CycleNode) -> Cycle:
    if cycle is None:
        raise ValueError("cycle is required")
    return Cycle(
        id=_require_non_empty(cycle.id, "cycle.id"),
        name=cycle.name,
        number=cycle.number,
        starts_at=cycle.starts_at,
        ends_at=cycle.ends_at,
        is_active=cycle.is_active,
    )


def map_page_info(*, page_info: api.PageInfoNode) -> PageInfo:
    if page_info is None:
        return PageInfo()
    return PageInfo(
        has_next_page=page_info.has_next_page,
        end_cursor=page_info.end_cursor,
    )
