from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from email.utils import parsedate_to_datetime
from urllib.parse import urlsplit

DEFAULT_MIMETYPE = "application/octet-stream"


def is_http_url(value: str) -> bool:
    """True for absolute http(s) URLs with a host, False for anything urlsplit rejects."""
    try:
        parsed = urlsplit(value)
    except ValueError:
        return False
    return parsed.scheme in {"http", "https"} and bool(parsed.netloc)


def parse_target_uri(value: str | None) -> str:
    """Normalize a WARC-Target-URI, raising ValueError when it is unusable."""
    if not value:
        raise ValueError("empty target URI")
    uri = value.strip()
    # WARC/1.0 writers sometimes wrap the URI in angle brackets
    if uri.startswith("<") and uri.endswith(">"):
        uri = uri[1:-1].strip()
    parsed = urlsplit(uri)
    if not parsed.scheme or not parsed.netloc or any(c.isspace() for c in uri):
        raise ValueError(f"malformed target URI: {value!r}")
    return uri


def has_suffix(name: str, suffixes: Iterable[str]) -> bool:
    lowered = name.lower()
    return any(lowered.endswith(suffix.lower()) for suffix in suffixes)


def get_header(headers: Iterable[tuple[str, str]], name: str) -> str | None:
    """First value of a header, case-insensitive."""
    wanted = name.lower()
    for key, value in headers:
        if key.lower() == wanted:
            return value
    return None


def parse_content_type(value: str | None) -> tuple[str, str | None]:
    """Split a Content-Type header into (mimetype, charset)."""
    if not value:
        return DEFAULT_MIMETYPE, None
    mimetype, _, params = value.partition(";")
    mimetype = mimetype.strip().lower() or DEFAULT_MIMETYPE
    charset = None
    for param in params.split(";"):
        key, _, val = param.partition("=")
        if key.strip().lower() == "charset":
            charset = val.strip().strip('"\'') or None
    return mimetype, charset


def parse_http_date(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None


def parse_warc_date(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
