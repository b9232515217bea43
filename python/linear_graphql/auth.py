from __future__ import annotations

from typing import Callable, MutableMapping, Union


class AuthProvider:
    def apply(self, headers: MutableMapping[str, str]) -> None:
        raise NotImplementedError


def normalize_token(token: str) -> str:
    """Trim whitespace and drop an optional case-insensitive ``Bearer `` prefix."""
    trimmed = (token or "").strip()
    if not trimmed:
        return ""
    if trimmed.lower().startswith("bearer "):
        return trimmed[len("bearer ") :].strip()
    return trimmed


class ApiKeyAuth(AuthProvider):
    """Personal API key auth.

    Linear expects the key as the raw ``Authorization`` value, with no scheme
    prefix. An empty key sends no header at all.
    """

    def __init__(self, token: Union[str, Callable[[], str]]):
        self._token_getter = token if callable(token) else (lambda: token)

    def apply(self, headers: MutableMapping[str, str]) -> None:
        token = normalize_token(self._token_getter() or "")
        if token:
            headers["Authorization"] = token
