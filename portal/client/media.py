"""Media URL normalisation for records returned by the API.

Stored media paths may be absolute URLs, ``/uploads/...`` paths or bare
relative paths such as ``projects/3/cover.png``. Everything that is not
already absolute is resolved against the static-file origin, which is the
API base URL with a leading ``/api`` and ``/vN`` segment removed.
"""

import re
from typing import Any
from urllib.parse import urlsplit

_ABSOLUTE = re.compile(r"^(https?:)?//", re.IGNORECASE)
_UPLOAD_DIRS = re.compile(r"^(images|projects|articles|startups)/", re.IGNORECASE)
_MEDIA_EXT = re.compile(r"(png|jpe?g|gif|webp|mp4|webm)$", re.IGNORECASE)
_VERSION = re.compile(r"^v\d+$", re.IGNORECASE)


def static_base(api_base_url: str) -> str:
    """Origin for static files derived from the API base URL."""
    if not api_base_url:
        return ""
    parts = urlsplit(api_base_url)
    if not parts.scheme or not parts.netloc:
        return api_base_url.rstrip("/")

    segments = [s for s in parts.path.split("/") if s]
    if segments and segments[0].lower() == "api":
        segments.pop(0)
    if segments and _VERSION.match(segments[0]):
        segments.pop(0)
    path = "/" + "/".join(segments) if segments else ""
    return f"{parts.scheme}://{parts.netloc}{path}"


def resolve_media_url(path: str | None, base: str) -> str | None:
    """Resolve a stored media path to a fetchable URL. ``base`` is a static origin."""
    if not path:
        return None
    path = re.sub(r"\\+", "/", path)
    if _ABSOLUTE.match(path):
        return path

    cleaned = re.sub(r"^//+", "/", path)
    if cleaned.startswith("/uploads"):
        return f"{base}{cleaned}"
    if cleaned.startswith("uploads/"):
        return f"{base}/{cleaned}"
    if _UPLOAD_DIRS.match(cleaned):
        return f"{base}/uploads/{cleaned}"
    if base and _MEDIA_EXT.search(cleaned):
        return f"{base}/{cleaned.lstrip('/')}"
    return cleaned


def normalize_submission_media(record: dict[str, Any], base: str) -> dict[str, Any]:
    """Return a copy of ``record`` with its cover and media URLs resolved."""
    normalized = dict(record)
    normalized["cover_image"] = resolve_media_url(record.get("cover_image"), base)
    if record.get("media") is not None:
        normalized["media"] = [
            {**m, "url": resolve_media_url(m.get("url"), base) or m.get("url")}
            for m in record["media"]
        ]
    return normalized
