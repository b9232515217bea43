from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, List, Mapping, Optional, Sequence, Union

import httpx

from linear_graphql.auth import ApiKeyAuth
from linear_graphql.client import GraphQLClient
from linear_graphql.logging import get_logger

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
from .graph.api import attachments as attachments_api
from .graph.api import comments as comments_api
from .graph.api import cycles as cycles_api
from .graph.api import issues as issues_api
from .graph.api import relations as relations_api
from .graph.api import resolve
from .graph.api import teams as teams_api
from .graph.api import users as users_api
from .graph.schema_cache import SchemaCache

DEFAULT_BASE_URL = "https://api.linear.app"
DEFAULT_TIMEOUT_SECONDS = 10.0


class LinearClient:
    """Live ``LinearAPI`` over one ``GraphQLClient``.

    ``schema`` enables schema adaptation (ID variable types, optional fields,
    the ``cycles`` fallback). Without it every adaptive choice uses its
    default.
    """

    def __init__(
        self,
        graphql: GraphQLClient,
        *,
        schema: Optional[SchemaCache] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.graphql = graphql
        self.schema = schema
        self.logger = get_logger(logger)

    @classmethod
    def connect(
        cls,
        api_key: str,
        *,
        base_url: str = DEFAULT_BASE_URL,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        schema_path: Optional[Union[str, Path]] = None,
        introspect: bool = True,
        http_client: Optional[httpx.Client] = None,
        logger: Optional[logging.Logger] = None,
        now: Optional[Callable[[], datetime]] = None,
        user_agent: Optional[str] = None,
    ) -> "LinearClient":
        graphql = GraphQLClient(
            base_url,
            auth=ApiKeyAuth(api_key),
            timeout_seconds=timeout_seconds,
            http_client=http_client,
            logger=logger,
            user_agent=user_agent,
        )
        schema = (
            SchemaCache(graphql, schema_path, now=now, logger=logger) if introspect else None
        )
        return cls(graphql, schema=schema, logger=logger)

    def __enter__(self) -> "LinearClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        self.graphql.close()

    def me(self) -> User:
        return users_api.get_viewer(self.graphql)

    def teams(self) -> List[Team]:
        return teams_api.list_teams(self.graphql)

    def resolve_team_id(self, key_or_id: str) -> str:
        return resolve.resolve_team_id(self.graphql, key_or_id, schema=self.schema)

    def resolve_user_id(self, value: str) -> str:
        return resolve.resolve_user_id(self.graphql, value)

    def resolve_state_id(self, team_id: str, value: str) -> str:
        return resolve.resolve_state_id(self.graphql, team_id, value, schema=self.schema)

    def resolve_label_ids(self, labels: Sequence[str]) -> List[str]:
        return resolve.resolve_label_ids(self.graphql, labels)

    def resolve_project_id(self, value: str) -> str:
        return resolve.resolve_project_id(self.graphql, value)

    def resolve_cycle_id(self, team_id: str, value: str) -> str:
        return resolve.resolve_cycle_id(self.graphql, team_id, value, schema=self.schema)

    def resolve_issue_id(self, value: str) -> str:
        return resolve.resolve_issue_id(self.graphql, value, schema=self.schema)

    def issue(self, value: str) -> IssueDetail:
        return issues_api.get_issue(self.graphql, value, schema=self.schema)

    def issue_comments(self, issue_id: str, limit: int = 0) -> List[Comment]:
        return comments_api.list_issue_comments(
            self.graphql, issue_id, limit=limit, schema=self.schema
        )

    def issue_attachments(self, issue_id: str, limit: int = 0) -> List[Attachment]:
        return attachments_api.list_issue_attachments(
            self.graphql, issue_id, limit=limit, schema=self.schema
        )

    def issue_uploads(self, issue_id: str, limit: int = 0) -> List[Attachment]:
        return attachments_api.list_issue_uploads(
            self.graphql, issue_id, limit=limit, schema=self.schema
        )

    def issue_relations(self, issue_id: str, limit: int = 0) -> IssueRelationSet:
        return relations_api.list_issue_relations(
            self.graphql, issue_id, limit=limit, schema=self.schema
        )

    def issues(
        self, issue_filter: Optional[IssueFilter] = None, limit: int = 0, after: str = ""
    ) -> IssuePage:
        return issues_api.list_issues(self.graphql, issue_filter, limit=limit, after=after)

    def issue_create(self, issue_input: Mapping[str, Any]) -> IssueSummary:
        return issues_api.create_issue(self.graphql, issue_input)

    def issue_update(self, issue_input: Mapping[str, Any]) -> IssueSummary:
        return issues_api.update_issue(self.graphql, issue_input)

    def issue_comment(self, issue_id: str, body: str) -> str:
        return comments_api.create_comment(self.graphql, issue_id, body)

    def issue_relation_create(
        self, issue_id: str, related_issue_id: str, relation_type: str
    ) -> IssueRelation:
        return relations_api.create_issue_relation(
            self.graphql, issue_id, related_issue_id, relation_type
        )

    def issue_relation_delete(self, relation_id: str) -> None:
        relations_api.delete_issue_relation(self.graphql, relation_id)

    def cycles(
        self, team_id: str, current: bool = False, limit: int = 0, after: str = ""
    ) -> CyclePage:
        return cycles_api.list_cycles(
            self.graphql,
            team_id,
            current=current,
            limit=limit,
            after=after,
            schema=self.schema,
            logger=self.logger,
        )

    def cycle(self, cycle_id: str) -> Cycle:
        return cycles_api.get_cycle(self.graphql, cycle_id, schema=self.schema)

    def workflow_states(self, team_id: str) -> List[WorkflowState]:
        return teams_api.list_workflow_states(self.graphql, team_id, schema=self.schema)
