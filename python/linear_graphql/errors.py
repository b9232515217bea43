from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional

from .models import GraphQLErrorItem


class LinearAPIError(Exception):
    pass


class TransportError(LinearAPIError):
    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        body_snippet: str = "",
    ):
        super().__init__(message)
        self.status_code = status_code
        self.body_snippet = body_snippet


class SerializationError(TransportError):
    def __init__(self, message: str):
        super().__init__(message)


class UnauthorizedError(LinearAPIError):
    def __init__(self, status_code: int):
        super().__init__(f"unauthorized (HTTP {status_code})")
        self.status_code = status_code


class RateLimitError(LinearAPIError):
    def __init__(
        self,
        status_code: int,
        retry_after: Optional[datetime] = None,
        header_value: Optional[str] = None,
    ):
        message = f"Rate limited (HTTP {status_code})"
        if retry_after:
            message = f"{message}; retry_at={retry_after.isoformat()}"
        if header_value:
            message = f"{message}; Retry-After={header_value}"
        super().__init__(message)
        self.status_code = status_code
        self.retry_after = retry_after
        self.header_value = header_value


class NotFoundError(LinearAPIError):
    def __init__(self, message: str = "not found"):
        super().__init__(message)


class ValidationError(LinearAPIError, ValueError):
    pass


class GraphQLOperationError(LinearAPIError):
    def __init__(
        self,
        errors: List[GraphQLErrorItem],
        partial_data: Optional[Any] = None,
    ):
        if errors:
            message = "; ".join(err.message for err in errors)
        else:
            message = "GraphQL operation failed"
        super().__init__(message)
        self.errors = errors
        self.partial_data = partial_data

    def has_unknown_field(self, field: str) -> bool:
        needle = f'Cannot query field "{field}"'
        return any(needle in err.message for err in self.errors)


GraphQLError = GraphQLOperationError
