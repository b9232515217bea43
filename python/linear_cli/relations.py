"""Blocking-relation edits for one issue.

Edits are planned first: every reference is resolved and checked before any
mutation is sent, then the plan is applied in order.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence

from linear_graphql.errors import ValidationError

from .api import LinearAPI

BLOCKS = "blocks"
EXISTING_RELATIONS_LIMIT = 200


def unique(values: Iterable[str]) -> List[str]:
    seen = set()
    out: List[str] = []
    for value in values:
        value = (value or "").strip()
        if not value or value in seen:
            continue
        seen.add(value)
        out.append(value)
    return out


def split_comma(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


@dataclass(frozen=True)
class RelationEdits:
    blocks: Sequence[str] = ()
    blocked_by: Sequence[str] = ()
    remove_blocks: Sequence[str] = ()
    remove_blocked_by: Sequence[str] = ()

    @classmethod
    def from_csv(
        cls,
        blocks: Optional[str] = None,
        blocked_by: Optional[str] = None,
        remove_blocks: Optional[str] = None,
        remove_blocked_by: Optional[str] = None,
    ) -> "RelationEdits":
        return cls(
            blocks=split_comma(blocks),
            blocked_by=split_comma(blocked_by),
            remove_blocks=split_comma(remove_blocks),
            remove_blocked_by=split_comma(remove_blocked_by),
        )

    def is_empty(self) -> bool:
        return not (self.blocks or self.blocked_by or self.remove_blocks or self.remove_blocked_by)


@dataclass(frozen=True)
class RelationAction:
    """One planned mutation: ``delete`` carries ``relation_id``, ``create`` the pair."""

    kind: str
    relation_id: str = ""
    issue_id: str = ""
    related_issue_id: str = ""
    relation_type: str = BLOCKS


@dataclass
class _RelationIndex:
    outgoing: Dict[str, str] = field(default_factory=dict)
    incoming: Dict[str, str] = field(default_factory=dict)


def _existing_index(api: LinearAPI, issue_id: str) -> _RelationIndex:
    existing = api.issue_relations(issue_id, EXISTING_RELATIONS_LIMIT)
    index = _RelationIndex()
    for rel in existing.relations:
        if rel.type.lower() == BLOCKS:
            index.outgoing[rel.related_issue_id] = rel.id
    for rel in existing.inverse_relations:
        if rel.type.lower() == BLOCKS:
            index.incoming[rel.issue_id] = rel.id
    return index


def plan_issue_relations(
    api: LinearAPI,
    issue_id: str,
    edits: RelationEdits,
    *,
    fetch_existing: bool = True,
) -> List[RelationAction]:
    """Resolve every reference and compute the mutations, without sending any."""
    add_blocks = unique(edits.blocks)
    add_blocked_by = unique(edits.blocked_by)
    remove_blocks = unique(edits.remove_blocks)
    remove_blocked_by = unique(edits.remove_blocked_by)
    if not (add_blocks or add_blocked_by or remove_blocks or remove_blocked_by):
        return []

    index = _existing_index(api, issue_id) if fetch_existing else _RelationIndex()

    def resolve_target(ref: str) -> str:
        target = api.resolve_issue_id(ref)
        if target == issue_id:
            raise ValidationError("cannot relate issue to itself")
        return target

    actions: List[RelationAction] = []
    for ref in remove_blocks:
        relation_id = index.outgoing.pop(resolve_target(ref), "")
        if relation_id:
            actions.append(RelationAction(kind="delete", relation_id=relation_id))
    for ref in remove_blocked_by:
        relation_id = index.incoming.pop(resolve_target(ref), "")
        if relation_id:
            actions.append(RelationAction(kind="delete", relation_id=relation_id))
    for ref in add_blocks:
        target = resolve_target(ref)
        if target in index.outgoing:
            continue
        index.outgoing[target] = "planned"
        actions.append(RelationAction(kind="create", issue_id=issue_id, related_issue_id=target))
    for ref in add_blocked_by:
        source = resolve_target(ref)
        if source in index.incoming:
            continue
        index.incoming[source] = "planned"
        actions.append(RelationAction(kind="create", issue_id=source, related_issue_id=issue_id))
    return actions


def sync_issue_relations(
    api: LinearAPI,
    issue_id: str,
    edits: RelationEdits,
    *,
    fetch_existing: bool = True,
) -> List[RelationAction]:
    """Apply relation edits to ``issue_id`` and return the mutations sent."""
    actions = plan_issue_relations(api, issue_id, edits, fetch_existing=fetch_existing)
    for action in actions:
        if action.kind == "delete":
            api.issue_relation_delete(action.relation_id)
        else:
            api.issue_relation_create(action.issue_id, action.related_issue_id, action.relation_type)
    return actions
