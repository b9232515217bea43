from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional, Tuple

from .client import DEFAULT_BASE_URL, DEFAULT_TIMEOUT_SECONDS
from .credentials import CredentialStore
from .graph.schema_cache import default_schema_path

API_KEY_ENV = "LINEAR_API_KEY"
API_URL_ENV = "LINEAR_API_URL"

NO_API_KEY_MESSAGE = "no Linear API key found; run 'linear auth login' or set LINEAR_API_KEY"


class MissingAPIKeyError(Exception):
    def __init__(self, message: str = NO_API_KEY_MESSAGE):
        super().__init__(message)


@dataclass(frozen=True)
class Settings:
    base_url: str = DEFAULT_BASE_URL
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    schema_path: Optional[Path] = None


def resolve_api_key(
    flag_value: Optional[str],
    store: Optional[CredentialStore],
    environ: Optional[Mapping[str, str]] = None,
) -> Tuple[str, str]:
    """``(api_key, source)``; source is ``flag``, ``env``, ``file`` or ``none``."""
    env = os.environ if environ is None else environ
    if flag_value:
        return flag_value, "flag"
    env_value = env.get(API_KEY_ENV, "")
    if env_value:
        return env_value, "env"
    if store is not None:
        stored = store.load()
        if stored is not None and stored.api_key:
            return stored.api_key, "file"
    return "", "none"


def require_api_key(
    flag_value: Optional[str],
    store: Optional[CredentialStore],
    environ: Optional[Mapping[str, str]] = None,
) -> str:
    api_key, _ = resolve_api_key(flag_value, store, environ)
    if not api_key:
        raise MissingAPIKeyError()
    return api_key


def load_settings(
    timeout_seconds: Optional[float] = None, environ: Optional[Mapping[str, str]] = None
) -> Settings:
    env = os.environ if environ is None else environ
    base_url = (env.get(API_URL_ENV) or "").strip() or DEFAULT_BASE_URL
    timeout = DEFAULT_TIMEOUT_SECONDS if timeout_seconds is None else float(timeout_seconds)
    if timeout <= 0:
        raise ValueError("timeout must be > 0")
    return Settings(
        base_url=base_url,
        timeout_seconds=timeout,
        schema_path=default_schema_path(dict(env)),
    )
