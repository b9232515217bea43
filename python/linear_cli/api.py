from __future__ import annotations

from typing import Any, List, Mapping, Optional, Protocol, Sequence

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
    Team,
    User,
    WorkflowState,
)


class LinearAPI(Protocol):
    """Operations the command layer needs from Linear.

    ``LinearClient`` talks to the GraphQL API; ``FakeLinearAPI`` is the
    in-memory stand-in used by tests.
    """

    def me(self) -> User: ...

    def teams(self) -> List[Team]: ...

    def resolve_team_id(self, key_or_id: str) -> str: ...

    def resolve_user_id(self, value: str) -> str: ...

    def resolve_state_id(self, team_id: str, value: str) -> str: ...

    def resolve_label_ids(self, labels: Sequence[str]) -> List[str]: ...

    def resolve_project_id(self, value: str) -> str: ...

    def resolve_cycle_id(self, team_id: str, value: str) -> str: ...

    def resolve_issue_id(self, value: str) -> str: ...

    def issue(self, value: str) -> IssueDetail: ...

    def issue_comments(self, issue_id: str, limit: int = 0) -> List[Comment]: ...

    def issue_attachments(self, issue_id: str, limit: int = 0) -> List[Attachment]: ...

    def issue_uploads(self, issue_id: str, limit: int = 0) -> List[Attachment]: ...

    def issue_relations(self, issue_id: str, limit: int = 0) -> IssueRelationSet: ...

    def issues(
        self, issue_filter: Optional[IssueFilter] = None, limit: int = 0, after: str = ""
    ) -> IssuePage: ...

    def issue_create(self, issue_input: Mapping[str, Any]) -> IssueSummary: ...

    def issue_update(self, issue_input: Mapping[str, Any]) -> IssueSummary: ...

    def issue_comment(self, issue_id: str, body: str) -> str: ...

    def issue_relation_create(
        self, issue_id: str, related_issue_id: str, relation_type: str
    ) -> IssueRelation: ...

    def issue_relation_delete(self, relation_id: str) -> None: ...

    def cycles(
        self, team_id: str, current: bool = False, limit: int = 0, after: str = ""
    ) -> CyclePage: ...

    def cycle(self, cycle_id: str) -> Cycle: ...

    def workflow_states(self, team_id: str) -> List[WorkflowState]: ...

    def close(self) -> None: ...
