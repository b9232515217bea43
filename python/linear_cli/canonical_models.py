from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass(frozen=True)
class User:
    id: str
    name: str
    email: str = ""


@dataclass(frozen=True)
class Team:
    id: str
    key: str
    name: str


@dataclass(frozen=True)
class WorkflowState:
    id: str
    name: str
    type: str


@dataclass(frozen=True)
class IssueSummary:
    id: str
    identifier: str
    title: str
    url: str = ""
    state: str = ""
    assignee: str = ""
    team_key: str = ""
    cycle: str = ""
    priority: int = 0


@dataclass(frozen=True)
class Comment:
    id: str
    body: str = ""
    body_data: str = ""
    created_at: str = ""
    user_name: str = ""
    user_email: str = ""


@dataclass(frozen=True)
class Attachment:
    id: str
    title: str = ""
    url: str = ""
    file_name: str = ""
    created_at: str = ""
    comment_id: str = ""


@dataclass(frozen=True)
class IssueDetail:
    id: str
    identifier: str
    title: str
    url: str = ""
    description: str = ""
    priority: int = 0
    state: str = ""
    assignee: str = ""
    team_id: str = ""
    team_key: str = ""
    cycle: str = ""
    project: str = ""
    labels: List[str] = field(default_factory=list)
    created_at: str = ""
    updated_at: str = ""
    comments: List[Comment] = field(default_factory=list)
    uploads: List[Attachment] = field(default_factory=list)


@dataclass(frozen=True)
class IssueRelation:
    id: str
    issue_id: str
    related_issue_id: str
    type: str


@dataclass(frozen=True)
class IssueRelationSet:
    # relations: this issue -> other; inverse_relations: other -> this issue
    relations: List[IssueRelation] = field(default_factory=list)
    inverse_relations: List[IssueRelation] = field(default_factory=list)


@dataclass(frozen=True)
class IssueFilter:
    team_id: str = ""
    assignee_id: str = ""
    state_id: str = ""
    label_ids: List[str] = field(default_factory=list)
    project_id: str = ""
    cycle_id: str = ""
    search: str = ""
    priority: Optional[int] = None

    @property
    def effective_priority(self) -> Optional[int]:
        if self.priority is None or self.priority < 0:
            return None
        return self.priority

    def is_empty(self) -> bool:
        return not (
            self.team_id
            or self.assignee_id
            or self.state_id
            or self.label_ids
            or self.project_id
            or self.cycle_id
            or self.search
            or self.effective_priority is not None
        )


@dataclass(frozen=True)
class PageInfo:
    has_next_page: bool = False
    end_cursor: str = ""


@dataclass(frozen=True)
class IssuePage:
    nodes: List[IssueSummary] = field(default_factory=list)
    page_info: PageInfo = field(default_factory=PageInfo)


@dataclass(frozen=True)
class Cycle:
    id: str
    name: str = ""
    number: int = 0
    starts_at: str = ""
    ends_at: str = ""
    is_active: bool = False


@dataclass(frozen=True)
class CyclePage:
    nodes: List[Cycle] = field(default_factory=list)
    page_info: PageInfo = field(default_factory=PageInfo)
    # Set when a client-side "current only" filter dropped cycles from a page
    # that has further pages, so the result may be incomplete.
    truncated: bool = False
