__version__ = "0.1.0"

from .api import LinearAPI
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
from .client import LinearClient
from .fake import FakeLinearAPI

__all__ = [
    "__version__",
    "LinearAPI",
    "LinearClient",
    "FakeLinearAPI",
    "Attachment",
    "Comment",
    "Cycle",
    "CyclePage",
    "IssueDetail",
    "IssueFilter",
    "IssuePage",
    "IssueRelation",
    "IssueRelationSet",
    "IssueSummary",
    "PageInfo",
    "Team",
    "User",
    "WorkflowState",
]
