from __future__ import annotations

import json
import logging
import os
import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Set, Union

from linear_graphql.client import GraphQLClient
from linear_graphql.errors import LinearAPIError, SerializationError
from linear_graphql.logging import get_logger

SCHEMA_FILE_NAME = "schema.json"
DEFAULT_MAX_AGE = timedelta(hours=24)

_TYPE_REF_3 = "type { kind name ofType { kind name ofType { kind name } } }"
_TYPE_REF_4 = "type { kind name ofType { kind name ofType { kind name ofType { kind name } } } }"

SCHEMA_QUERY = f"""query {{
  __type(name: "Query") {{
    fields {{
      name
      args {{
        name
        {_TYPE_REF_4}
      }}
      {_TYPE_REF_3}
    }}
  }}
  issue: __type(name: "Issue") {{
    fields {{ name {_TYPE_REF_3} }}
  }}
  comment: __type(name: "Comment") {{
    fields {{ name {_TYPE_REF_3} }}
  }}
  user: __type(name: "User") {{
    fields {{ name {_TYPE_REF_3} }}
  }}
}}
"""

SCHEMA_TYPE_QUERY = f"""query($name: String!) {{
  __type(name: $name) {{
    fields {{ name {_TYPE_REF_4} }}
  }}
}}
"""

_BUCKETS = ("query", "issue", "comment", "user")


@dataclass(frozen=True)
class TypeRef:
    kind: str = ""
    name: str = ""
    of_type: Optional["TypeRef"] = None

    def base_name(self) -> str:
        """Name of the innermost named type, unwrapping NON_NULL/LIST."""
        cur: Optional[TypeRef] = self
        while cur is not None:
            if cur.name:
                return cur.name
            cur = cur.of_type
        return ""

    @staticmethod
    def from_dict(obj: Any) -> "TypeRef":
        if not isinstance(obj, dict):
            return TypeRef()
        of_type = obj.get("ofType")
        return TypeRef(
            kind=obj.get("kind") or "",
            name=obj.get("name") or "",
            of_type=TypeRef.from_dict(of_type) if isinstance(of_type, dict) else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "name": self.name,
            "ofType": self.of_type.to_dict() if self.of_type is not None else None,
        }


@dataclass(frozen=True)
class SchemaArg:
    name: str
    type: TypeRef

    @staticmethod
    def from_dict(obj: Any) -> "SchemaArg":
        raw = obj if isinstance(obj, dict) else {}
        return SchemaArg(name=raw.get("name") or "", type=TypeRef.from_dict(raw.get("type")))

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "type": self.type.to_dict()}


@dataclass(frozen=True)
class SchemaField:
    name: str
    type: TypeRef = field(default_factory=TypeRef)
    args: List[SchemaArg] = field(default_factory=list)

    @staticmethod
    def from_dict(obj: Any) -> "SchemaField":
        raw = obj if isinstance(obj, dict) else {}
        args = raw.get("args") if isinstance(raw.get("args"), list) else []
        return SchemaField(
            name=raw.get("name") or "",
            type=TypeRef.from_dict(raw.get("type")),
            args=[SchemaArg.from_dict(arg) for arg in args],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "args": [arg.to_dict() for arg in self.args],
            "type": self.type.to_dict(),
        }


@dataclass(frozen=True)
class SchemaTypeInfo:
    fields: List[SchemaField] = field(default_factory=list)

    def get(self, field_name: str) -> Optional[SchemaField]:
        wanted = field_name.lower()
        for item in self.fields:
            if item.name.lower() == wanted:
                return item
        return None

    @staticmethod
    def from_dict(obj: Any) -> "SchemaTypeInfo":
        raw = obj if isinstance(obj, dict) else {}
        fields = raw.get("fields") if isinstance(raw.get("fields"), list) else []
        return SchemaTypeInfo(fields=[SchemaField.from_dict(item) for item in fields])

    def to_dict(self) -> Dict[str, Any]:
        return {"fields": [item.to_dict() for item in self.fields]}


@dataclass
class SchemaSnapshot:
    """Introspected subset of the Linear schema.

    ``types`` is the extension map: types outside the four built-in buckets,
    or built-in types missing a requested field, introspected on first use
    and persisted alongside the snapshot.
    """

    fetched_at: datetime
    query: SchemaTypeInfo = field(default_factory=SchemaTypeInfo)
    issue: SchemaTypeInfo = field(default_factory=SchemaTypeInfo)
    comment: SchemaTypeInfo = field(default_factory=SchemaTypeInfo)
    user: SchemaTypeInfo = field(default_factory=SchemaTypeInfo)
    types: Dict[str, SchemaTypeInfo] = field(default_factory=dict)

    def is_fresh(self, now: datetime, max_age: timedelta = DEFAULT_MAX_AGE) -> bool:
        return now - self.fetched_at < max_age

    def bucket(self, type_name: str) -> Optional[SchemaTypeInfo]:
        key = type_name.lower()
        if key in _BUCKETS:
            return getattr(self, key)
        return self.types.get(type_name)

    def get_field(self, type_name: str, field_name: str) -> Optional[SchemaField]:
        info = self.bucket(type_name)
        found = info.get(field_name) if info is not None else None
        if found is None and type_name.lower() in _BUCKETS:
            extra = self.types.get(type_name)
            found = extra.get(field_name) if extra is not None else None
        return found

    def arg_base_type(self, field_name: str, arg_name: str) -> Optional[str]:
        root = self.query.get(field_name)
        if root is None:
            return None
        wanted = arg_name.lower()
        for arg in root.args:
            if arg.name.lower() == wanted:
                return arg.type.base_name() or None
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fetched_at": self.fetched_at.isoformat(),
            "query": self.query.to_dict(),
            "issue": self.issue.to_dict(),
            "comment": self.comment.to_dict(),
            "user": self.user.to_dict(),
            "types": {name: info.to_dict() for name, info in self.types.items()},
        }

    @staticmethod
    def from_dict(obj: Any) -> "SchemaSnapshot":
        if not isinstance(obj, dict):
            raise SerializationError("Expected object at schema")
        fetched_at = _parse_timestamp(obj.get("fetched_at"))
        if fetched_at is None:
            raise SerializationError("Missing schema.fetched_at")
        types = obj.get("types") if isinstance(obj.get("types"), dict) else {}
        return SchemaSnapshot(
            fetched_at=fetched_at,
            query=SchemaTypeInfo.from_dict(obj.get("query")),
            issue=SchemaTypeInfo.from_dict(obj.get("issue")),
            comment=SchemaTypeInfo.from_dict(obj.get("comment")),
            user=SchemaTypeInfo.from_dict(obj.get("user")),
            types={str(name): SchemaTypeInfo.from_dict(info) for name, info in types.items()},
        )


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def default_schema_path(environ: Optional[Dict[str, str]] = None) -> Path:
    env = os.environ if environ is None else environ
    base = (env.get("XDG_DATA_HOME") or "").strip()
    if base:
        return Path(base) / "linear" / SCHEMA_FILE_NAME
    return Path.home() / ".local" / "share" / "linear" / SCHEMA_FILE_NAME


def load_snapshot_file(path: Union[str, Path]) -> Optional[SchemaSnapshot]:
    """Read a persisted snapshot; unreadable or invalid files count as missing."""
    try:
        with open(path, "r", encoding="utf-8") as handle:
            raw = json.load(handle)
        return SchemaSnapshot.from_dict(raw)
    except (OSError, ValueError, SerializationError):
        return None


def save_snapshot_file(path: Union[str, Path], snapshot: SchemaSnapshot) -> None:
    target = Path(path)
    target.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
    tmp = target.with_name(target.name + ".tmp")
    fd = os.open(str(tmp), os.O_CREAT | os.O_TRUNC | os.O_WRONLY, 0o600)
    with os.fdopen(fd, "w", encoding="utf-8") as handle:
        json.dump(snapshot.to_dict(), handle, indent=2)
        handle.write("\n")
    os.replace(tmp, target)


class SchemaCache:
    """Per-client introspection cache with a persisted 24h snapshot.

    ``snapshot()`` is the lazy guard: the first caller loads, concurrent callers
    wait for it, and the outcome (including "schema unavailable") is kept until
    ``invalidate()``.
    """

    def __init__(
        self,
        client: GraphQLClient,
        path: Optional[Union[str, Path]] = None,
        *,
        now: Optional[Callable[[], datetime]] = None,
        max_age: timedelta = DEFAULT_MAX_AGE,
        logger: Optional[logging.Logger] = None,
    ):
        self.client = client
        self.path = Path(path) if path else None
        self.max_age = max_age
        self._now = now or _utcnow
        self.logger = get_logger(logger)

        self._lock = threading.Lock()
        self._loaded = threading.Event()
        self._loading = False
        self._snapshot: Optional[SchemaSnapshot] = None
        self._missing_types: Set[str] = set()
        self._type_loads: Dict[str, threading.Event] = {}

    def fetch(self) -> SchemaSnapshot:
        result = self.client.execute(SCHEMA_QUERY)
        data = result.data or {}
        query_type = data.get("__type")
        if not isinstance(query_type, dict):
            raise SerializationError("schema query type not found")
        return SchemaSnapshot(
            fetched_at=self._now(),
            query=SchemaTypeInfo.from_dict(query_type),
            issue=SchemaTypeInfo.from_dict(data.get("issue")),
            comment=SchemaTypeInfo.from_dict(data.get("comment")),
            user=SchemaTypeInfo.from_dict(data.get("user")),
        )

    def load(self) -> SchemaSnapshot:
        if self.path is None:
            return self.fetch()

        cached = load_snapshot_file(self.path)
        if cached is not None:
            if cached.is_fresh(self._now(), self.max_age):
                return cached
            try:
                fresh = self.fetch()
            except LinearAPIError as exc:
                self.logger.warning(
                    "Schema refresh failed; using snapshot from %s: %s",
                    cached.fetched_at.isoformat(),
                    exc,
                )
                return cached
            self._persist(fresh)
            return fresh

        fresh = self.fetch()
        self._persist(fresh)
        return fresh

    def _persist(self, snapshot: SchemaSnapshot) -> None:
        if self.path is None:
            return
        try:
            save_snapshot_file(self.path, snapshot)
        except OSError as exc:
            self.logger.warning("Failed to write schema cache %s: %s", self.path, exc)

    def snapshot(self) -> Optional[SchemaSnapshot]:
        """Loaded snapshot, or ``None`` when the schema is unavailable."""
        with self._lock:
            if self._loaded.is_set():
                return self._snapshot
            leader = not self._loading
            self._loading = True

        if not leader:
            self._loaded.wait()
            return self._snapshot

        snapshot: Optional[SchemaSnapshot] = None
        try:
            snapshot = self.load()
        except LinearAPIError as exc:
            self.logger.warning("Schema unavailable; using defaults: %s", exc)
        finally:
            with self._lock:
                self._snapshot = snapshot
                self._loading = False
                self._loaded.set()
        return snapshot

    def invalidate(self) -> None:
        with self._lock:
            if self._loading:
                return
            self._snapshot = None
            self._missing_types.clear()
            self._loaded.clear()

    @property
    def available(self) -> bool:
        return self.snapshot() is not None

    def arg_base_type(self, field_name: str, arg_name: str) -> Optional[str]:
        snapshot = self.snapshot()
        if snapshot is None:
            return None
        return snapshot.arg_base_type(field_name, arg_name)

    def load_type(self, type_name: str) -> Optional[SchemaTypeInfo]:
        """Introspect one type into the extension map (one call per type)."""
        snapshot = self.snapshot()
        if snapshot is None:
            return None
        with self._lock:
            known = snapshot.types.get(type_name)
            if known is not None and known.fields:
                return known
            if type_name in self._missing_types:
                return None
            pending = self._type_loads.get(type_name)
            leader = pending is None
            if leader:
                pending = threading.Event()
                self._type_loads[type_name] = pending

        if not leader:
            pending.wait()
            with self._lock:
                return snapshot.types.get(type_name)

        try:
            result = self.client.execute(SCHEMA_TYPE_QUERY, variables={"name": type_name})
            raw = (result.data or {}).get("__type")
            with self._lock:
                if not isinstance(raw, dict):
                    self._missing_types.add(type_name)
                    return None
                info = SchemaTypeInfo.from_dict(raw)
                snapshot.types[type_name] = info
                self._persist(snapshot)
            return info
        finally:
            with self._lock:
                self._type_loads.pop(type_name, None)
            pending.set()

    def get_field(self, type_name: str, field_name: str) -> Optional[SchemaField]:
        """Field from the snapshot; a miss falls through to per-type introspection."""
        snapshot = self.snapshot()
        if snapshot is None:
            return None
        with self._lock:
            found = snapshot.get_field(type_name, field_name)
        if found is not None:
            return found
        info = self.load_type(type_name)
        return info.get(field_name) if info is not None else None

    def has_field(self, type_name: str, field_name: str, *, default: bool = False) -> bool:
        """Whether ``type_name.field_name`` exists; ``default`` when unknowable."""
        if self.snapshot() is None:
            return default
        try:
            return self.get_field(type_name, field_name) is not None
        except LinearAPIError as exc:
            self.logger.warning("Introspection of %s failed: %s", type_name, exc)
            return default
