from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Optional, Union
from urllib.parse import urlparse

import httpx

from linear_graphql.errors import TransportError
from linear_graphql.logging import get_logger

from .attachments import sanitize_file_name, url_base_name
from .canonical_models import Attachment

TEMP_PREFIX = ".linear-attachment-"
AUTH_HOST = "linear.app"


def should_send_auth(url: str) -> bool:
    host = (urlparse(url).hostname or "").lower()
    return host == AUTH_HOST or host.endswith("." + AUTH_HOST)


def attachment_file_name(attachment: Attachment) -> str:
    if attachment.file_name:
        return sanitize_file_name(attachment.file_name)
    if attachment.title:
        return sanitize_file_name(attachment.title)
    base = url_base_name(attachment.url) if attachment.url else ""
    if base and base not in (".", "/"):
        return sanitize_file_name(base)
    return f"attachment-{attachment.id}"


def unique_path(path: Union[str, Path], overwrite: bool = False) -> Path:
    """``path``, or ``stem-N.ext`` for the first N that does not exist yet."""
    candidate = Path(path)
    if overwrite or not candidate.exists():
        return candidate
    suffix = candidate.suffix
    stem = str(candidate)[: len(str(candidate)) - len(suffix)] if suffix else str(candidate)
    index = 1
    while True:
        numbered = Path(f"{stem}-{index}{suffix}")
        if not numbered.exists():
            return numbered
        index += 1


def download_to_file(
    http_client: httpx.Client,
    url: str,
    path: Union[str, Path],
    *,
    api_key: str = "",
    logger: Optional[logging.Logger] = None,
) -> Path:
    """Stream ``url`` into ``path`` through a temp file in the same directory."""
    target = Path(path)
    headers = {}
    if api_key and should_send_auth(url):
        headers["Authorization"] = api_key
    get_logger(logger).debug("Downloading %s -> %s", url, target)

    fd, tmp_name = tempfile.mkstemp(prefix=TEMP_PREFIX, dir=str(target.parent))
    try:
        with os.fdopen(fd, "wb") as handle:
            with http_client.stream("GET", url, headers=headers) as response:
                if not 200 <= response.status_code < 300:
                    raise TransportError(
                        f"download failed: HTTP {response.status_code}",
                        status_code=response.status_code,
                    )
                for chunk in response.iter_bytes():
                    handle.write(chunk)
        os.replace(tmp_name, target)
    except httpx.HTTPError as exc:
        _remove_quietly(tmp_name)
        raise TransportError(f"download failed: {exc}") from exc
    except BaseException:
        _remove_quietly(tmp_name)
        raise
    return target


def _remove_quietly(path: str) -> None:
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
