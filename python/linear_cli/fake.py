from __future__ import annotations

from dataclasses import replace
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from linear_graphql.errors import NotFoundError, ValidationError

from .canonical_models import (
    Attachment,
    Comment,
    Cycle,
    CyclePage,
    IssueDetail,
    IssueFilter,
    IssuePage,
    IssueRelation,
    IssueRelationSet,
    IssueSummary,
    PageInfo,
    Team,
    User,
    WorkflowState,
)
from .graph.api.resolve import is_likely_id


def _summary(issue: IssueDetail) -> IssueSummary:
    return IssueSummary(
        id=issue.id,
        identifier=issue.identifier,
        title=issue.title,
        url=issue.url,
        state=issue.state,
        assignee=issue.assignee,
        team_key=issue.team_key,
        cycle=issue.cycle,
        priority=issue.priority,
    )


class FakeLinearAPI:
    """In-memory ``LinearAPI``.

    Seed it through the ``add_*`` helpers, script failures with
    ``fail(method, error)``, and inspect ``calls`` afterwards.
    """

    def __init__(self, viewer: Optional[User] = None):
        self.viewer = viewer or User(id="user-me", name="Me", email="me@example.com")
        self.calls: List[Tuple[str, Tuple[Any, ...]]] = []
        self.failures: Dict[str, Exception] = {}
        self.closed = False

        self._teams: List[Team] = []
        self._states: Dict[str, List[WorkflowState]] = {}
        self._users: Dict[str, str] = {}
        self._labels: Dict[str, str] = {}
        self._projects: Dict[str, str] = {}
        self._issues: Dict[str, IssueDetail] = {}
        self._comments: Dict[str, List[Comment]] = {}
        self._attachments: Dict[str, List[Attachment]] = {}
        self._uploads: Dict[str, List[Attachment]] = {}
        self._relations: Dict[str, IssueRelation] = {}
        self._cycles: Dict[str, List[Cycle]] = {}
        self._next_id = 0

    def _record(self, method: str, *args: Any) -> None:
        self.calls.append((method, args))
        error = self.failures.get(method)
        if error is not None:
            raise error

    def _new_id(self, prefix: str) -> str:
        self._next_id += 1
        return f"{prefix}-{self._next_id}"

    def fail(self, method: str, error: Exception) -> None:
        self.failures[method] = error

    def call_names(self) -> List[str]:
        return [name for name, _ in self.calls]

    def add_team(self, team: Team, states: Sequence[WorkflowState] = ()) -> None:
        self._teams.append(team)
        self._states[team.id] = list(states)

    def add_user(self, email: str, user_id: str) -> None:
        self._users[email] = user_id

    def add_label(self, name: str, label_id: str) -> None:
        self._labels[name] = label_id

    def add_project(self, name: str, project_id: str) -> None:
        self._projects[name] = project_id

    def add_issue(
        self,
        issue: IssueDetail,
        *,
        comments: Sequence[Comment] = (),
        attachments: Sequence[Attachment] = (),
        uploads: Sequence[Attachment] = (),
    ) -> None:
        self._issues[issue.id] = issue
        self._comments[issue.id] = list(comments)
        self._attachments[issue.id] = list(attachments)
        self._uploads[issue.id] = list(uploads)

    def add_relation(self, relation: IssueRelation) -> None:
        self._relations[relation.id] = relation

    def add_cycle(self, team_id: str, cycle: Cycle) -> None:
        self._cycles.setdefault(team_id, []).append(cycle)

    def relations(self) -> List[IssueRelation]:
        return list(self._relations.values())

    def _find_issue(self, value: str) -> IssueDetail:
        issue = self._issues.get(value)
        if issue is not None:
            return issue
        for candidate in self._issues.values():
            if candidate.identifier == value:
                return candidate
        raise NotFoundError(f"issue {value!r} not found")

    def me(self) -> User:
        self._record("me")
        return self.viewer

    def teams(self) -> List[Team]:
        self._record("teams")
        return list(self._teams)

    def resolve_team_id(self, key_or_id: str) -> str:
        self._record("resolve_team_id", key_or_id)
        for team in self._teams:
            if key_or_id in (team.id, team.key):
                return team.id
        raise NotFoundError(f"team {key_or_id!r} not found")

    def resolve_user_id(self, value: str) -> str:
        self._record("resolve_user_id", value)
        if value == "me":
            return self.viewer.id
        if is_likely_id(value):
            return value
        if "@" in value:
            if value in self._users:
                return self._users[value]
            raise NotFoundError(f"user {value!r} not found")
        raise ValidationError("assignee must be 'me', an id, or an email")

    def resolve_state_id(self, team_id: str, value: str) -> str:
        self._record("resolve_state_id", team_id, value)
        if is_likely_id(value):
            return value
        for state in self._states.get(team_id, []):
            if state.name.lower() == value.lower():
                return state.id
        raise NotFoundError(f"state {value!r} not found")

    def resolve_label_ids(self, labels: Sequence[str]) -> List[str]:
        self._record("resolve_label_ids", tuple(labels))
        ids = []
        for label in labels:
            if not label:
                continue
            if is_likely_id(label):
                ids.append(label)
            elif label in self._labels:
                ids.append(self._labels[label])
            else:
                raise NotFoundError(f"label {label!r} not found")
        return ids

    def resolve_project_id(self, value: str) -> str:
        self._record("resolve_project_id", value)
        if is_likely_id(value):
            return value
        if value in self._projects:
            return self._projects[value]
        raise NotFoundError(f"project {value!r} not found")

    def resolve_cycle_id(self, team_id: str, value: str) -> str:
        self._record("resolve_cycle_id", team_id, value)
        if value == "current":
            for cycle in self._cycles.get(team_id, []):
                if cycle.is_active:
                    return cycle.id
            raise NotFoundError("no active cycle")
        if is_likely_id(value):
            return value
        raise ValidationError("cycle must be an id or 'current'")

    def resolve_issue_id(self, value: str) -> str:
        self._record("resolve_issue_id", value)
        return self._find_issue(value).id

    def issue(self, value: str) -> IssueDetail:
        self._record("issue", value)
        return self._find_issue(value)

    def issue_comments(self, issue_id: str, limit: int = 0) -> List[Comment]:
        self._record("issue_comments", issue_id, limit)
        comments = self._comments.get(self._find_issue(issue_id).id, [])
        return comments[:limit] if limit > 0 else list(comments)

    def issue_attachments(self, issue_id: str, limit: int = 0) -> List[Attachment]:
        self._record("issue_attachments", issue_id, limit)
        return list(self._attachments.get(self._find_issue(issue_id).id, []))

    def issue_uploads(self, issue_id: str, limit: int = 0) -> List[Attachment]:
        self._record("issue_uploads", issue_id, limit)
        return list(self._uploads.get(self._find_issue(issue_id).id, []))

    def issue_relations(self, issue_id: str, limit: int = 0) -> IssueRelationSet:
        self._record("issue_relations", issue_id, limit)
        canonical = self._find_issue(issue_id).id
        return IssueRelationSet(
            relations=[r for r in self._relations.values() if r.issue_id == canonical],
            inverse_relations=[
                r for r in self._relations.values() if r.related_issue_id == canonical
            ],
        )

    def issues(
        self, issue_filter: Optional[IssueFilter] = None, limit: int = 0, after: str = ""
    ) -> IssuePage:
        self._record("issues", issue_filter, limit, after)
        nodes = [_summary(issue) for issue in self._issues.values()]
        if limit > 0:
            nodes = nodes[:limit]
        return IssuePage(nodes=nodes, page_info=PageInfo())

    def issue_create(self, issue_input: Mapping[str, Any]) -> IssueSummary:
        self._record("issue_create", dict(issue_input))
        issue_id = self._new_id("issue")
        while issue_id in self._issues:
            issue_id = self._new_id("issue")
        team_id = str(issue_input.get("teamId", ""))
        team_key = next((t.key for t in self._teams if t.id == team_id), "")
        issue = IssueDetail(
            id=issue_id,
            identifier=f"{team_key or 'ISS'}-{len(self._issues) + 1}",
            title=str(issue_input.get("title", "")),
            description=str(issue_input.get("description", "")),
            team_id=team_id,
            team_key=team_key,
        )
        self.add_issue(issue)
        return _summary(issue)

    def issue_update(self, issue_input: Mapping[str, Any]) -> IssueSummary:
        self._record("issue_update", dict(issue_input))
        issue_id = issue_input.get("id")
        if not issue_id:
            raise ValidationError("issue id is required")
        issue = self._find_issue(str(issue_id))
        changes: Dict[str, Any] = {}
        if "title" in issue_input:
            changes["title"] = issue_input["title"]
        if "description" in issue_input:
            changes["description"] = issue_input["description"]
        state_id = issue_input.get("stateId")
        if state_id:
            for state in self._states.get(issue.team_id, []):
                if state.id == state_id:
                    changes["state"] = state.name
        updated = replace(issue, **changes)
        self._issues[issue.id] = updated
        return _summary(updated)

    def issue_comment(self, issue_id: str, body: str) -> str:
        self._record("issue_comment", issue_id, body)
        if not (body or "").strip():
            raise ValidationError("comment body is required")
        canonical = self._find_issue(issue_id).id
        comment = Comment(id=self._new_id("comment"), body=body)
        self._comments.setdefault(canonical, []).append(comment)
        return comment.id

    def issue_relation_create(
        self, issue_id: str, related_issue_id: str, relation_type: str
    ) -> IssueRelation:
        self._record("issue_relation_create", issue_id, related_issue_id, relation_type)
        relation = IssueRelation(
            id=self._new_id("relation"),
            issue_id=issue_id,
            related_issue_id=related_issue_id,
            type=relation_type,
        )
        self._relations[relation.id] = relation
        return relation

    def issue_relation_delete(self, relation_id: str) -> None:
        self._record("issue_relation_delete", relation_id)
        if self._relations.pop(relation_id, None) is None:
            raise NotFoundError(f"relation {relation_id!r} not found")

    def cycles(
        self, team_id: str, current: bool = False, limit: int = 0, after: str = ""
    ) -> CyclePage:
        self._record("cycles", team_id, current, limit, after)
        nodes = [c for c in self._cycles.get(team_id, []) if c.is_active or not current]
        if limit > 0:
            nodes = nodes[:limit]
        return CyclePage(nodes=nodes, page_info=PageInfo())

    def cycle(self, cycle_id: str) -> Cycle:
        self._record("cycle", cycle_id)
        for cycles in self._cycles.values():
            for cycle in cycles:
                if cycle.id == cycle_id:
                    return cycle
        raise NotFoundError(f"cycle {cycle_id!r} not found")

    def workflow_states(self, team_id: str) -> List[WorkflowState]:
        self._record("workflow_states", team_id)
        if team_id not in self._states:
            raise NotFoundError(f"team {team_id!r} not found")
        return list(self._states[team_id])

    def close(self) -> None:
        self.closed = True
