# Linear GraphQL documents and typed response models.
# Each operation has an explicit response structure; the raw ``data`` envelope
# stays untyped until it is handed to the matching ``parse_*`` function.
from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from linear_graphql.errors import SerializationError

DEFAULT_ID_TYPE = "String"

VIEWER_QUERY = """query Viewer {
  viewer { id name email }
}
"""

ME_QUERY = """query Me {
  me { id name email }
}
"""

TEAMS_QUERY = """query Teams {
  teams { nodes { id key name } }
}
"""

TEAM_BY_KEY_QUERY = """query TeamByKey($key: String!) {
  teams(filter: { key: { eq: $key } }) { nodes { id key name } }
}
"""

USER_BY_EMAIL_QUERY = """query UserByEmail($email: String!) {
  users(filter: { email: { eq: $email } }) { nodes { id } }
}
"""

LABEL_BY_NAME_QUERY = """query LabelByName($name: String!) {
  issueLabels(filter: { name: { eq: $name } }) { nodes { id } }
}
"""

PROJECT_BY_NAME_QUERY = """query ProjectByName($name: String!) {
  projects(filter: { name: { eq: $name } }) { nodes { id } }
}
"""

ISSUES_PAGE_QUERY = """query IssuesPage($filter: IssueFilter, $first: Int, $after: String) {
  issues(filter: $filter, first: $first, after: $after) {
    nodes {
      id
      identifier
      title
      url
      priority
      state { name }
      assignee { name }
      team { key }
      cycle { name }
    }
    pageInfo { hasNextPage endCursor }
  }
}
"""

ISSUE_CREATE_MUTATION = """mutation IssueCreate($input: IssueCreateInput!) {
  issueCreate(input: $input) {
    issue { id identifier title url }
  }
}
"""

ISSUE_UPDATE_MUTATION = """mutation IssueUpdate($id: String!, $input: IssueUpdateInput!) {
  issueUpdate(id: $id, input: $input) {
    issue { id identifier title url }
  }
}
"""

COMMENT_CREATE_MUTATION = """mutation CommentCreate($input: CommentCreateInput!) {
  commentCreate(input: $input) {
    comment { id }
  }
}
"""

ISSUE_RELATION_CREATE_MUTATION = """mutation IssueRelationCreate($input: IssueRelationCreateInput!) {
  issueRelationCreate(input: $input) {
    issueRelation { id type issue { id } relatedIssue { id } }
  }
}
"""

ISSUE_RELATION_DELETE_MUTATION = """mutation IssueRelationDelete($id: String!) {
  issueRelationDelete(id: $id) { success }
}
"""

_CYCLE_FIELDS = "id name number startsAt endsAt isActive"

CYCLES_PAGE_QUERY = f"""query CyclesPage($filter: CycleFilter, $first: Int, $after: String) {{
  cycles(filter: $filter, first: $first, after: $after) {{
    nodes {{ {_CYCLE_FIELDS} }}
    pageInfo {{ hasNextPage endCursor }}
  }}
}}
"""


def team_by_id_query(id_type: str = DEFAULT_ID_TYPE) -> str:
    return f"""query TeamById($id: {id_type}!) {{
  team(id: $id) {{ id key name }}
}}
"""


def workflow_states_query(id_type: str = DEFAULT_ID_TYPE) -> str:
    return f"""query WorkflowStates($id: {id_type}!) {{
  team(id: $id) {{
    states {{ nodes {{ id name type }} }}
  }}
}}
"""


def team_cycles_query(id_type: str = DEFAULT_ID_TYPE) -> str:
    return f"""query TeamCyclesPage($id: {id_type}!, $first: Int, $after: String) {{
  team(id: $id) {{
    cycles(first: $first, after: $after) {{
      nodes {{ {_CYCLE_FIELDS} }}
      pageInfo {{ hasNextPage endCursor }}
    }}
  }}
}}
"""


def cycle_by_id_query(id_type: str = DEFAULT_ID_TYPE) -> str:
    return f"""query CycleById($id: {id_type}!) {{
  cycle(id: $id) {{ {_CYCLE_FIELDS} }}
}}
"""


def issue_id_query(id_type: str = DEFAULT_ID_TYPE) -> str:
    return f"""query IssueId($id: {id_type}!) {{
  issue(id: $id) {{ id }}
}}
"""


def issue_detail_query(id_type: str = DEFAULT_ID_TYPE) -> str:
    return f"""query IssueDetail($id: {id_type}!) {{
  issue(id: $id) {{
    id
    identifier
    title
    url
    description
    priority
    createdAt
    updatedAt
    team {{ id key }}
    state {{ name }}
    assignee {{ name }}
    cycle {{ name }}
    project {{ name }}
    labels {{ nodes {{ name }} }}
  }}
}}
"""


def issue_description_query(
    id_type: str = DEFAULT_ID_TYPE, include_description_data: bool = False
) -> str:
    extra = " descriptionData" if include_description_data else ""
    return f"""query IssueDescription($id: {id_type}!) {{
  issue(id: $id) {{ id description{extra} }}
}}
"""


def issue_comments_query(
    id_type: str = DEFAULT_ID_TYPE, include_body_data: bool = True
) -> str:
    body_data = " bodyData" if include_body_data else ""
    return f"""query IssueComments($id: {id_type}!, $first: Int) {{
  issue(id: $id) {{
    comments(first: $first) {{
      nodes {{ id body{body_data} createdAt user {{ name email }} }}
    }}
  }}
}}
"""


def issue_attachments_query(
    id_type: str = DEFAULT_ID_TYPE, include_source: bool = True
) -> str:
    source = " source" if include_source else ""
    return f"""query IssueAttachments($id: {id_type}!, $first: Int) {{
  issue(id: $id) {{
    attachments(first: $first) {{
      nodes {{ id title url{source} createdAt }}
    }}
  }}
}}
"""


def issue_relations_query(id_type: str = DEFAULT_ID_TYPE) -> str:
    node = "nodes { id type issue { id } relatedIssue { id } }"
    return f"""query IssueRelations($id: {id_type}!, $first: Int) {{
  issue(id: $id) {{
    relations(first: $first) {{ {node} }}
    inverseRelations(first: $first) {{ {node} }}
  }}
}}
"""


def _expect_dict(obj: Any, path: str) -> Dict[str, Any]:
    if not isinstance(obj, dict):
        raise SerializationError(f"Expected object at {path}")
    return obj


def _optional_dict(obj: Any, path: str) -> Optional[Dict[str, Any]]:
    if obj is None:
        return None
    return _expect_dict(obj, path)


def _expect_list(obj: Any, path: str) -> List[Any]:
    if not isinstance(obj, list):
        raise SerializationError(f"Expected list at {path}")
    return obj


def _expect_str(obj: Any, path: str) -> str:
    if not isinstance(obj, str):
        raise SerializationError(f"Expected string at {path}")
    return obj


def _str_or_empty(obj: Any, path: str) -> str:
    if obj is None:
        return ""
    return _expect_str(obj, path)


def _int_or_zero(obj: Any, path: str) -> int:
    if obj is None:
        return 0
    if isinstance(obj, bool) or not isinstance(obj, (int, float)):
        raise SerializationError(f"Expected number at {path}")
    return int(obj)


def _bool_or_false(obj: Any, path: str) -> bool:
    if obj is None:
        return False
    if not isinstance(obj, bool):
        raise SerializationError(f"Expected boolean at {path}")
    return obj


def _json_text(obj: Any, path: str) -> str:
    # bodyData/descriptionData is a JSON string on Linear, an object on some
    # deployments.
    if obj is None:
        return ""
    if isinstance(obj, str):
        return obj
    if isinstance(obj, (dict, list)):
        return json.dumps(obj)
    raise SerializationError(f"Expected document at {path}")


def _nodes(obj: Any, path: str) -> List[Any]:
    conn = _optional_dict(obj, path)
    if conn is None:
        return []
    raw = conn.get("nodes")
    if raw is None:
        return []
    return _expect_list(raw, f"{path}.nodes")


def _name_of(obj: Any, path: str) -> str:
    ref = _optional_dict(obj, path)
    if ref is None:
        return ""
    return _str_or_empty(ref.get("name"), f"{path}.name")


def _id_of(obj: Any, path: str) -> str:
    ref = _optional_dict(obj, path)
    if ref is None:
        return ""
    return _str_or_empty(ref.get("id"), f"{path}.id")


@dataclass(frozen=True)
class UserNode:
    id: str
    name: str
    email: str

    @staticmethod
    def from_dict(obj: Any, path: str) -> "UserNode":
        raw = _expect_dict(obj, path)
        return UserNode(
            id=_expect_str(raw.get("id"), f"{path}.id"),
            name=_str_or_empty(raw.get("name"), f"{path}.name"),
            email=_str_or_empty(raw.get("email"), f"{path}.email"),
        )


@dataclass(frozen=True)
class TeamNode:
    id: str
    key: str
    name: str

    @staticmethod
    def from_dict(obj: Any, path: str) -> "TeamNode":
        raw = _expect_dict(obj, path)
        return TeamNode(
            id=_expect_str(raw.get("id"), f"{path}.id"),
            key=_str_or_empty(raw.get("key"), f"{path}.key"),
            name=_str_or_empty(raw.get("name"), f"{path}.name"),
        )


@dataclass(frozen=True)
class StateNode:
    id: str
    name: str
    type: str

    @staticmethod
    def from_dict(obj: Any, path: str) -> "StateNode":
        raw = _expect_dict(obj, path)
        return StateNode(
            id=_expect_str(raw.get("id"), f"{path}.id"),
            name=_str_or_empty(raw.get("name"), f"{path}.name"),
            type=_str_or_empty(raw.get("type"), f"{path}.type"),
        )


@dataclass(frozen=True)
class PageInfoNode:
    has_next_page: bool
    end_cursor: str

    @staticmethod
    def from_dict(obj: Any, path: str) -> "PageInfoNode":
        raw = _optional_dict(obj, path) or {}
        return PageInfoNode(
            has_next_page=_bool_or_false(raw.get("hasNextPage"), f"{path}.hasNextPage"),
            end_cursor=_str_or_empty(raw.get("endCursor"), f"{path}.endCursor"),
        )


@dataclass(frozen=True)
class IssueRefNode:
    id: str
    identifier: str
    title: str
    url: str

    @staticmethod
    def from_dict(obj: Any, path: str) -> "IssueRefNode":
        raw = _expect_dict(obj, path)
        return IssueRefNode(
            id=_expect_str(raw.get("id"), f"{path}.id"),
            identifier=_str_or_empty(raw.get("identifier"), f"{path}.identifier"),
            title=_str_or_empty(raw.get("title"), f"{path}.title"),
            url=_str_or_empty(raw.get("url"), f"{path}.url"),
        )


@dataclass(frozen=True)
class IssueSummaryNode:
    id: str
    identifier: str
    title: str
    url: str
    priority: int
    state_name: str
    assignee_name: str
    team_key: str
    cycle_name: str

    @staticmethod
    def from_dict(obj: Any, path: str) -> "IssueSummaryNode":
        raw = _expect_dict(obj, path)
        team = _optional_dict(raw.get("team"), f"{path}.team") or {}
        return IssueSummaryNode(
            id=_expect_str(raw.get("id"), f"{path}.id"),
            identifier=_str_or_empty(raw.get("identifier"), f"{path}.identifier"),
            title=_str_or_empty(raw.get("title"), f"{path}.title"),
            url=_str_or_empty(raw.get("url"), f"{path}.url"),
            priority=_int_or_zero(raw.get("priority"), f"{path}.priority"),
            state_name=_name_of(raw.get("state"), f"{path}.state"),
            assignee_name=_name_of(raw.get("assignee"), f"{path}.assignee"),
            team_key=_str_or_empty(team.get("key"), f"{path}.team.key"),
            cycle_name=_name_of(raw.get("cycle"), f"{path}.cycle"),
        )


@dataclass(frozen=True)
class IssueDetailNode:
    id: str
    identifier: str
    title: str
    url: str
    description: str
    priority: int
    created_at: str
    updated_at: str
    team_id: str
    team_key: str
    state_name: str
    assignee_name: str
    cycle_name: str
    project_name: str
    label_names: List[str]

    @staticmethod
    def from_dict(obj: Any, path: str) -> "IssueDetailNode":
        raw = _expect_dict(obj, path)
        team = _optional_dict(raw.get("team"), f"{path}.team") or {}
        labels = [
            _name_of(item, f"{path}.labels.nodes[{i}]")
            for i, item in enumerate(_nodes(raw.get("labels"), f"{path}.labels"))
        ]
        return IssueDetailNode(
            id=_expect_str(raw.get("id"), f"{path}.id"),
            identifier=_str_or_empty(raw.get("identifier"), f"{path}.identifier"),
            title=_str_or_empty(raw.get("title"), f"{path}.title"),
            url=_str_or_empty(raw.get("url"), f"{path}.url"),
            description=_str_or_empty(raw.get("description"), f"{path}.description"),
            priority=_int_or_zero(raw.get("priority"), f"{path}.priority"),
            created_at=_str_or_empty(raw.get("createdAt"), f"{path}.createdAt"),
            updated_at=_str_or_empty(raw.get("updatedAt"), f"{path}.updatedAt"),
            team_id=_str_or_empty(team.get("id"), f"{path}.team.id"),
            team_key=_str_or_empty(team.get("key"), f"{path}.team.key"),
            state_name=_name_of(raw.get("state"), f"{path}.state"),
            assignee_name=_name_of(raw.get("assignee"), f"{path}.assignee"),
            cycle_name=_name_of(raw.get("cycle"), f"{path}.cycle"),
            project_name=_name_of(raw.get("project"), f"{path}.project"),
            label_names=[name for name in labels if name],
        )


@dataclass(frozen=True)
class IssueDescriptionNode:
    id: str
    description: str
    description_data: str

    @staticmethod
    def from_dict(obj: Any, path: str) -> "IssueDescriptionNode":
        raw = _expect_dict(obj, path)
        return IssueDescriptionNode(
            id=_expect_str(raw.get("id"), f"{path}.id"),
            description=_str_or_empty(raw.get("description"), f"{path}.description"),
            description_data=_json_text(raw.get("descriptionData"), f"{path}.descriptionData"),
        )


@dataclass(frozen=True)
class CommentNode:
    id: str
    body: str
    body_data: str
    created_at: str
    user_name: str
    user_email: str

    @staticmethod
    def from_dict(obj: Any, path: str) -> "CommentNode":
        raw = _expect_dict(obj, path)
        user = _optional_dict(raw.get("user"), f"{path}.user") or {}
        return CommentNode(
            id=_expect_str(raw.get("id"), f"{path}.id"),
            body=_str_or_empty(raw.get("body"), f"{path}.body"),
            body_data=_json_text(raw.get("bodyData"), f"{path}.bodyData"),
            created_at=_str_or_empty(raw.get("createdAt"), f"{path}.createdAt"),
            user_name=_str_or_empty(user.get("name"), f"{path}.user.name"),
            user_email=_str_or_empty(user.get("email"), f"{path}.user.email"),
        )


@dataclass(frozen=True)
class AttachmentNode:
    id: str
    title: str
    url: str
    source: str
    created_at: str

    @staticmethod
    def from_dict(obj: Any, path: str) -> "AttachmentNode":
        raw = _expect_dict(obj, path)
        source = raw.get("source")
        # Attachment.source is JSON on current schemas and a URL string on
        # older ones; only the string form is usable as a link.
        return AttachmentNode(
            id=_expect_str(raw.get("id"), f"{path}.id"),
            title=_str_or_empty(raw.get("title"), f"{path}.title"),
            url=_str_or_empty(raw.get("url"), f"{path}.url"),
            source=source if isinstance(source, str) else "",
            created_at=_str_or_empty(raw.get("createdAt"), f"{path}.createdAt"),
        )


@dataclass(frozen=True)
class RelationNode:
    id: str
    type: str
    issue_id: str
    related_issue_id: str

    @staticmethod
    def from_dict(obj: Any, path: str) -> "RelationNode":
        raw = _expect_dict(obj, path)
        return RelationNode(
            id=_expect_str(raw.get("id"), f"{path}.id"),
            type=_str_or_empty(raw.get("type"), f"{path}.type"),
            issue_id=_id_of(raw.get("issue"), f"{path}.issue"),
            related_issue_id=_id_of(raw.get("relatedIssue"), f"{path}.relatedIssue"),
        )


@dataclass(frozen=True)
class RelationsNode:
    relations: List[RelationNode]
    inverse_relations: List[RelationNode]


@dataclass(frozen=True)
class CycleNode:
    id: str
    name: str
    number: int
    starts_at: str
    ends_at: str
    is_active: bool

    @staticmethod
    def from_dict(obj: Any, path: str) -> "CycleNode":
        raw = _expect_dict(obj, path)
        return CycleNode(
            id=_expect_str(raw.get("id"), f"{path}.id"),
            name=_str_or_empty(raw.get("name"), f"{path}.name"),
            number=_int_or_zero(raw.get("number"), f"{path}.number"),
            starts_at=_str_or_empty(raw.get("startsAt"), f"{path}.startsAt"),
            ends_at=_str_or_empty(raw.get("endsAt"), f"{path}.endsAt"),
            is_active=_bool_or_false(raw.get("isActive"), f"{path}.isActive"),
        )


@dataclass(frozen=True)
class IssuesConnection:
    nodes: List[IssueSummaryNode]
    page_info: PageInfoNode


@dataclass(frozen=True)
class CyclesConnection:
    nodes: List[CycleNode]
    page_info: PageInfoNode

    @staticmethod
    def from_dict(obj: Any, path: str) -> "CyclesConnection":
        raw = _optional_dict(obj, path) or {}
        return CyclesConnection(
            nodes=[
                CycleNode.from_dict(item, f"{path}.nodes[{i}]")
                for i, item in enumerate(_nodes(raw, path))
            ],
            page_info=PageInfoNode.from_dict(raw.get("pageInfo"), f"{path}.pageInfo"),
        )


def _root(data: Any) -> Dict[str, Any]:
    return _expect_dict(data, "data")


def parse_viewer(data: Any, field: str = "viewer") -> Optional[UserNode]:
    raw = _root(data).get(field)
    if raw is None:
        return None
    return UserNode.from_dict(raw, f"data.{field}")


def parse_teams(data: Any) -> List[TeamNode]:
    return [
        TeamNode.from_dict(item, f"data.teams.nodes[{i}]")
        for i, item in enumerate(_nodes(_root(data).get("teams"), "data.teams"))
    ]


def parse_team(data: Any) -> Optional[TeamNode]:
    raw = _root(data).get("team")
    if raw is None:
        return None
    return TeamNode.from_dict(raw, "data.team")


def parse_first_node_id(data: Any, field: str) -> Optional[str]:
    nodes = _nodes(_root(data).get(field), f"data.{field}")
    if not nodes:
        return None
    first = _expect_dict(nodes[0], f"data.{field}.nodes[0]")
    return _expect_str(first.get("id"), f"data.{field}.nodes[0].id")


def parse_workflow_states(data: Any) -> Optional[List[StateNode]]:
    team = _optional_dict(_root(data).get("team"), "data.team")
    if team is None:
        return None
    return [
        StateNode.from_dict(item, f"data.team.states.nodes[{i}]")
        for i, item in enumerate(_nodes(team.get("states"), "data.team.states"))
    ]


def parse_issue_id(data: Any) -> Optional[str]:
    issue = _optional_dict(_root(data).get("issue"), "data.issue")
    if issue is None:
        return None
    return _expect_str(issue.get("id"), "data.issue.id")


def parse_issue_detail(data: Any) -> Optional[IssueDetailNode]:
    raw = _root(data).get("issue")
    if raw is None:
        return None
    return IssueDetailNode.from_dict(raw, "data.issue")


def parse_issue_description(data: Any) -> Optional[IssueDescriptionNode]:
    raw = _root(data).get("issue")
    if raw is None:
        return None
    return IssueDescriptionNode.from_dict(raw, "data.issue")


def parse_issue_comments(data: Any) -> Optional[List[CommentNode]]:
    issue = _optional_dict(_root(data).get("issue"), "data.issue")
    if issue is None:
        return None
    return [
        CommentNode.from_dict(item, f"data.issue.comments.nodes[{i}]")
        for i, item in enumerate(_nodes(issue.get("comments"), "data.issue.comments"))
    ]


def parse_issue_attachments(data: Any) -> Optional[List[AttachmentNode]]:
    issue = _optional_dict(_root(data).get("issue"), "data.issue")
    if issue is None:
        return None
    return [
        AttachmentNode.from_dict(item, f"data.issue.attachments.nodes[{i}]")
        for i, item in enumerate(_nodes(issue.get("attachments"), "data.issue.attachments"))
    ]


def parse_issue_relations(data: Any) -> Optional[RelationsNode]:
    issue = _optional_dict(_root(data).get("issue"), "data.issue")
    if issue is None:
        return None
    return RelationsNode(
        relations=[
            RelationNode.from_dict(item, f"data.issue.relations.nodes[{i}]")
            for i, item in enumerate(_nodes(issue.get("relations"), "data.issue.relations"))
        ],
        inverse_relations=[
            RelationNode.from_dict(item, f"data.issue.inverseRelations.nodes[{i}]")
            for i, item in enumerate(
                _nodes(issue.get("inverseRelations"), "data.issue.inverseRelations")
            )
        ],
    )


def parse_issues_page(data: Any) -> IssuesConnection:
    conn = _optional_dict(_root(data).get("issues"), "data.issues") or {}
    return IssuesConnection(
        nodes=[
            IssueSummaryNode.from_dict(item, f"data.issues.nodes[{i}]")
            for i, item in enumerate(_nodes(conn, "data.issues"))
        ],
        page_info=PageInfoNode.from_dict(conn.get("pageInfo"), "data.issues.pageInfo"),
    )


def parse_issue_payload(data: Any, mutation: str) -> Optional[IssueRefNode]:
    payload = _optional_dict(_root(data).get(mutation), f"data.{mutation}") or {}
    issue = payload.get("issue")
    if issue is None:
        return None
    return IssueRefNode.from_dict(issue, f"data.{mutation}.issue")


def parse_comment_create(data: Any) -> Optional[str]:
    payload = _optional_dict(_root(data).get("commentCreate"), "data.commentCreate") or {}
    comment = _optional_dict(payload.get("comment"), "data.commentCreate.comment")
    if comment is None:
        return None
    return _expect_str(comment.get("id"), "data.commentCreate.comment.id")


def parse_relation_create(data: Any) -> Optional[RelationNode]:
    payload = (
        _optional_dict(_root(data).get("issueRelationCreate"), "data.issueRelationCreate")
        or {}
    )
    relation = payload.get("issueRelation")
    if relation is None:
        return None
    return RelationNode.from_dict(relation, "data.issueRelationCreate.issueRelation")


def parse_relation_delete(data: Any) -> Optional[bool]:
    payload = _optional_dict(_root(data).get("issueRelationDelete"), "data.issueRelationDelete")
    if payload is None:
        return None
    return _bool_or_false(payload.get("success"), "data.issueRelationDelete.success")


def parse_cycles_page(data: Any) -> CyclesConnection:
    return CyclesConnection.from_dict(_root(data).get("cycles"), "data.cycles")


def parse_team_cycles_page(data: Any) -> Optional[CyclesConnection]:
    team = _optional_dict(_root(data).get("team"), "data.team")
    if team is None:
        return None
    return CyclesConnection.from_dict(team.get("cycles"), "data.team.cycles")


def parse_cycle(data: Any) -> Optional[CycleNode]:
    raw = _root(data).get("cycle")
    if raw is None:
        return None
    return CycleNode.from_dict(raw, "data.cycle")
