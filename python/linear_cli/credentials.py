from __future__ import annotations

import json
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional, Union

AUTH_FILE_NAME = "auth.json"


class CredentialStoreError(Exception):
    """The auth file exists but cannot be read or decoded."""


@dataclass(frozen=True)
class StoredCredential:
    api_key: str
    saved_at: Optional[datetime] = None


def default_store_path(environ: Optional[Dict[str, str]] = None) -> Path:
    env = os.environ if environ is None else environ
    base = (env.get("XDG_DATA_HOME") or "").strip()
    if base:
        return Path(base) / "linear" / AUTH_FILE_NAME
    return Path.home() / ".local" / "share" / "linear" / AUTH_FILE_NAME


def _parse_saved_at(value: object) -> Optional[datetime]:
    if not isinstance(value, str) or not value:
        return None
    text = value[:-1] + "+00:00" if value.endswith("Z") else value
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


class CredentialStore:
    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def load(self) -> Optional[StoredCredential]:
        try:
            with open(self.path, "r", encoding="utf-8") as handle:
                raw = json.load(handle)
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise CredentialStoreError(f"open auth file: {exc}") from exc
        except ValueError as exc:
            raise CredentialStoreError(f"decode auth file: {exc}") from exc

        if not isinstance(raw, dict):
            raise CredentialStoreError("decode auth file: expected JSON object")
        api_key = raw.get("api_key")
        if not isinstance(api_key, str) or not api_key:
            return None
        return StoredCredential(api_key=api_key, saved_at=_parse_saved_at(raw.get("saved_at")))

    def save(self, api_key: str, now: Optional[datetime] = None) -> None:
        if not api_key:
            raise ValueError("api key is empty")
        saved_at = now or datetime.now(timezone.utc)

        self.path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
        tmp = self.path.with_name(self.path.name + ".tmp")
        fd = os.open(str(tmp), os.O_CREAT | os.O_TRUNC | os.O_WRONLY, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            json.dump({"api_key": api_key, "saved_at": saved_at.isoformat()}, handle, indent=2)
            handle.write("\n")
        os.replace(tmp, self.path)

    def delete(self) -> None:
        try:
            self.path.unlink()
        except FileNotFoundError:
            return
