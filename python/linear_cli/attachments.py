"""Recovering attachment metadata from Linear text and document-model bodies.

Linear stores uploaded files on ``uploads.linear.app``. Issues created from the
UI often have no structured attachment records for them; the links only live
in markdown bodies (``[name](url)``), as bare URLs, or inside the rich-text
document tree stored in ``bodyData``/``descriptionData``.
"""

from __future__ import annotations

import json
import re
from dataclasses import replace
from typing import Any, Dict, Iterable, List, Optional, Sequence
from urllib.parse import unquote, urlparse

from .canonical_models import Attachment, Comment

UPLOADS_HOST = "uploads.linear.app"
DEFAULT_FILE_NAME = "attachment"

MARKDOWN_UPLOAD_RE = re.compile(r"\[([^\]]+)\]\((https?://uploads\.linear\.app/[^\)\s]+)\)")
BARE_UPLOAD_RE = re.compile(r"https?://uploads\.linear\.app/[^\s\)]+")


def sanitize_file_name(name: str) -> str:
    cleaned = (name or "").strip()
    for char in ("\\", "/", ":"):
        cleaned = cleaned.replace(char, "_")
    if cleaned in ("", ".", ".."):
        return DEFAULT_FILE_NAME
    return cleaned


def url_base_name(url: str) -> str:
    path = unquote(urlparse(url).path or "")
    stripped = path.rstrip("/")
    if not stripped:
        return ""
    return stripped.rsplit("/", 1)[-1]


def preferred_file_name(title: str, url: str) -> str:
    """Local file name for an upload.

    A link text that looks like a file name wins, then the last URL path
    segment, then the bare link text.
    """
    title = (title or "").strip()
    if title and "." in title:
        return sanitize_file_name(title)
    base = url_base_name(url)
    if base and base not in (".", "/"):
        return sanitize_file_name(base)
    if title:
        return sanitize_file_name(title)
    return DEFAULT_FILE_NAME


def is_upload_url(url: str) -> bool:
    return bool(url) and BARE_UPLOAD_RE.fullmatch(url.strip()) is not None


def _upload(url: str, title: str = "") -> Attachment:
    return Attachment(id=url, title=title, url=url, file_name=preferred_file_name(title, url))


def merge_attachments(*groups: Iterable[Attachment]) -> List[Attachment]:
    """Concatenate groups, keeping the first attachment seen for each URL."""
    seen = set()
    merged: List[Attachment] = []
    for group in groups:
        for item in group:
            key = item.url or item.id
            if not key or key in seen:
                continue
            seen.add(key)
            merged.append(item)
    return merged


def parse_upload_links(text: str) -> List[Attachment]:
    """Upload links in ``text``: markdown links first, then bare URLs."""
    if not text:
        return []
    linked = [_upload(match.group(2), match.group(1)) for match in MARKDOWN_UPLOAD_RE.finditer(text)]
    bare = [_upload(match.group(0)) for match in BARE_UPLOAD_RE.finditer(text)]
    return merge_attachments(linked, bare)


def _attrs(node: Dict[str, Any]) -> Dict[str, Any]:
    attrs = node.get("attrs")
    return attrs if isinstance(attrs, dict) else {}


def _text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def _walk_document(node: Any, out: List[Attachment]) -> None:
    if isinstance(node, list):
        for child in node:
            _walk_document(child, out)
        return
    if not isinstance(node, dict):
        return

    node_type = node.get("type")
    attrs = _attrs(node)
    if node_type == "file":
        href = _text(attrs.get("href"))
        if is_upload_url(href):
            out.append(_upload(href, _text(attrs.get("name"))))
    elif node_type == "image":
        src = _text(attrs.get("src"))
        if is_upload_url(src):
            out.append(_upload(src, _text(attrs.get("alt")) or _text(attrs.get("title"))))
    elif node_type == "text":
        text = node.get("text") if isinstance(node.get("text"), str) else ""
        marks = node.get("marks") if isinstance(node.get("marks"), list) else []
        for mark in marks:
            if isinstance(mark, dict) and mark.get("type") == "link":
                href = _text(_attrs(mark).get("href"))
                if is_upload_url(href):
                    out.append(_upload(href, text.strip()))
        out.extend(parse_upload_links(text))

    _walk_document(node.get("content"), out)


def parse_document_uploads(document: Any) -> List[Attachment]:
    """Uploads referenced by a rich-text document tree."""
    found: List[Attachment] = []
    _walk_document(document, found)
    return merge_attachments(found)


def _parse_document(raw: str) -> Optional[Any]:
    try:
        parsed = json.loads(raw)
    except ValueError:
        return None
    if isinstance(parsed, dict) and ("type" in parsed or "content" in parsed):
        return parsed
    return None


def extract_uploads(body: str, body_data: str = "") -> List[Attachment]:
    """Uploads from a markdown body, or from ``body_data`` when the body is empty."""
    if body:
        return parse_upload_links(body)
    if not body_data:
        return []
    document = _parse_document(body_data)
    if document is not None:
        return parse_document_uploads(document)
    return parse_upload_links(body_data)


def extract_attachments_from_comments(comments: Sequence[Comment]) -> List[Attachment]:
    found: List[Attachment] = []
    for comment in comments:
        for item in extract_uploads(comment.body, comment.body_data):
            found.append(replace(item, comment_id=comment.id, created_at=comment.created_at))
    return merge_attachments(found)
