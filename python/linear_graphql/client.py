from __future__ import annotations

import json
import logging
from typing import Any, Dict, Mapping, Optional

import httpx

from .auth import AuthProvider
from .errors import (
    GraphQLOperationError,
    RateLimitError,
    SerializationError,
    TransportError,
    UnauthorizedError,
)
from .logging import get_logger, sanitize_headers, snippet
from .models import GraphQLResult, parse_error_items
from .retry import parse_retry_after

UNAUTHORIZED_STATUSES = frozenset({401, 403})
RATE_LIMITED_STATUSES = frozenset({429, 503, 504})


class GraphQLClient:
    """Minimal synchronous GraphQL-over-HTTP client.

    One ``execute`` call is one POST; nothing is retried. HTTP statuses are
    classified before the body is read:

    - 401/403 raise ``UnauthorizedError``
    - 429/503/504 raise ``RateLimitError``
    - anything else is decoded as a GraphQL envelope; ``errors`` raise
      ``GraphQLOperationError``.
    """

    def __init__(
        self,
        base_url: str,
        auth: Optional[AuthProvider] = None,
        *,
        timeout_seconds: float = 30.0,
        http_client: Optional[httpx.Client] = None,
        logger: Optional[logging.Logger] = None,
        user_agent: Optional[str] = None,
    ):
        base = (base_url or "").strip()
        if not base:
            raise ValueError("base_url is required")
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be > 0")
        self.endpoint = base.rstrip("/") + "/graphql"
        self.auth = auth
        self.timeout_seconds = timeout_seconds
        self.logger = get_logger(logger)
        self.user_agent = user_agent
        self._owns_http_client = http_client is None
        self._http = http_client or httpx.Client(timeout=timeout_seconds)

    def __enter__(self) -> "GraphQLClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_http_client:
            self._http.close()

    def _headers(self) -> Dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if self.user_agent:
            headers["User-Agent"] = self.user_agent
        if self.auth is not None:
            self.auth.apply(headers)
        return headers

    def execute(
        self,
        query: str,
        variables: Optional[Mapping[str, Any]] = None,
        *,
        operation_name: Optional[str] = None,
    ) -> GraphQLResult:
        if not query or not query.strip():
            raise ValueError("query is required")

        payload: Dict[str, Any] = {"query": query}
        if variables:
            payload["variables"] = dict(variables)
        if operation_name:
            payload["operationName"] = operation_name

        try:
            body = json.dumps(payload)
        except (TypeError, ValueError) as exc:
            raise SerializationError(f"encode request: {exc}") from exc

        headers = self._headers()
        self.logger.debug(
            "GraphQL POST %s operation=%s headers=%s",
            self.endpoint,
            operation_name or "<anonymous>",
            sanitize_headers(headers),
        )

        try:
            response = self._http.post(
                self.endpoint,
                content=body.encode("utf-8"),
                headers=headers,
                timeout=self.timeout_seconds,
            )
        except httpx.HTTPError as exc:
            raise TransportError(f"request failed: {exc}") from exc

        return self._handle_response(response)

    def _handle_response(self, response: httpx.Response) -> GraphQLResult:
        status = response.status_code
        if status in UNAUTHORIZED_STATUSES:
            self.logger.warning("GraphQL request unauthorized; status=%s", status)
            raise UnauthorizedError(status)
        if status in RATE_LIMITED_STATUSES:
            header_value = response.headers.get("Retry-After")
            retry_after = None
            if header_value:
                try:
                    retry_after, _ = parse_retry_after(header_value)
                except ValueError:
                    retry_after = None
            self.logger.warning(
                "Rate limited; status=%s Retry-After=%s", status, header_value
            )
            raise RateLimitError(status, retry_after=retry_after, header_value=header_value)

        try:
            raw = response.json()
        except (json.JSONDecodeError, UnicodeDecodeError, ValueError) as exc:
            if status >= 400:
                raise TransportError(
                    f"Unexpected HTTP status {status}",
                    status_code=status,
                    body_snippet=snippet(response.text),
                ) from exc
            raise SerializationError(f"decode response: {exc}") from exc

        if not isinstance(raw, dict):
            raise SerializationError("Expected JSON object in GraphQL response")

        data = raw.get("data")
        if data is not None and not isinstance(data, dict):
            raise SerializationError("Expected object at data")
        errors = parse_error_items(raw.get("errors"))
        extensions = raw.get("extensions") if isinstance(raw.get("extensions"), dict) else None

        if errors:
            self.logger.debug(
                "GraphQL errors: %s", "; ".join(err.message for err in errors)
            )
            raise GraphQLOperationError(errors=errors, partial_data=data)

        return GraphQLResult(data=data, errors=None, extensions=extensions)
