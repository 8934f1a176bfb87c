"""Response format negotiation: media types, path extensions and Accept headers."""

from __future__ import annotations

import posixpath

# Media type -> format name
MEDIA_TYPE_FORMATS: dict[str, str] = {
    "text/html": "html",
    "application/xhtml+xml": "html",
    "application/json": "json",
    "text/x-json": "json",
    "application/xml": "xml",
    "text/xml": "xml",
    "text/javascript": "js",
    "application/javascript": "js",
    "application/x-javascript": "js",
    "text/css": "css",
    "text/plain": "text",
    "text/csv": "csv",
    "application/atom+xml": "atom",
    "application/rss+xml": "rss",
}

EXTENSION_FORMATS: dict[str, str] = {
    ".html": "html",
    ".htm": "html",
    ".json": "json",
    ".xml": "xml",
    ".js": "js",
    ".css": "css",
    ".txt": "text",
    ".csv": "csv",
    ".atom": "atom",
    ".rss": "rss",
}


def format_for_media_type(content_type: str | None) -> str | None:
    """``application/json; charset=utf-8`` -> ``json``."""
    if not content_type:
        return None
    media_type = content_type.split(";", 1)[0].strip().lower()
    if media_type in MEDIA_TYPE_FORMATS:
        return MEDIA_TYPE_FORMATS[media_type]
    if media_type.endswith("+json"):
        return "json"
    if media_type.endswith("+xml"):
        return "xml"
    return None


def format_for_path(path: str) -> str | None:
    """``/reports/1.json`` -> ``json``."""
    _, ext = posixpath.splitext(path)
    return EXTENSION_FORMATS.get(ext.lower()) if ext else None


def format_for_accept(accept: str | None) -> str | None:
    """Highest-quality known format in an Accept header; wildcards never match."""
    if not accept:
        return None
    best: tuple[float, int, str] | None = None
    for position, part in enumerate(accept.split(",")):
        pieces = [p.strip() for p in part.split(";")]
        fmt = format_for_media_type(pieces[0])
        if fmt is None:
            continue
        quality = 1.0
        for param in pieces[1:]:
            key, _, value = param.partition("=")
            if key.strip().lower() == "q":
                try:
                    quality = float(value)
                except ValueError:
                    quality = 0.0
        if quality <= 0:
            continue
        # Earlier entries win ties
        candidate = (quality, -position, fmt)
        if best is None or candidate > best:
            best = candidate
    return best[2] if best else None
