from __future__ import annotations

import re
from dataclasses import dataclass, field
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from utm_guard.models import TRACKING_KEYS, TrackingParams, is_tracking_key

DEFAULT_SCHEME = "https"

_SCHEME_RE = re.compile(r"^[a-z][a-z0-9+.-]*://", re.IGNORECASE)
_INVALID_HOST_CHARS_RE = re.compile(r"[\s<>\"{}|\\^`]")


@dataclass(frozen=True, slots=True)
class DecomposedUrl:
    """A URL split into its base, the non-tracking query pairs and the UTM values."""

    scheme: str
    netloc: str
    path: str
    fragment: str = ""
    other_params: tuple[tuple[str, str], ...] = ()
    tracking: TrackingParams = field(default_factory=TrackingParams)


def ensure_scheme(url: str) -> str:
    value = url.strip()
    if _SCHEME_RE.match(value):
        return value
    return f"{DEFAULT_SCHEME}://{value}"


def decompose_url(url: str) -> DecomposedUrl:
    """Split ``url`` (scheme assumed when missing), raising ValueError when malformed."""
    parsed = urlsplit(ensure_scheme(url))

    scheme = parsed.scheme.lower()
    if scheme not in {"http", "https"}:
        raise ValueError(f"Unsupported scheme: {parsed.scheme!r}")

    hostname = parsed.hostname
    if not hostname or _INVALID_HOST_CHARS_RE.search(parsed.netloc):
        raise ValueError(f"Invalid host in URL: {url!r}")
    # Raises ValueError on a non-numeric or out of range port.
    parsed.port

    other_params: list[tuple[str, str]] = []
    tracking: dict[str, str] = {}
    for key, value in parse_qsl(parsed.query, keep_blank_values=True):
        if is_tracking_key(key):
            tracking.setdefault(key, value)
        else:
            other_params.append((key, value))

    return DecomposedUrl(
        scheme=scheme,
        netloc=parsed.netloc,
        path=parsed.path,
        fragment=parsed.fragment,
        other_params=tuple(other_params),
        tracking=TrackingParams.from_mapping(tracking),
    )


def compose_url(decomposed: DecomposedUrl, *, skip_blank: bool = False) -> str:
    """Serialize with non-tracking pairs first, then UTM keys in canonical order."""
    query_items = list(decomposed.other_params)
    for key in TRACKING_KEYS:
        value = decomposed.tracking.get(key)
        if value is None:
            continue
        if skip_blank and not value.strip():
            continue
        query_items.append((key, value))

    query = urlencode(query_items)
    path = decomposed.path or "/"

    return urlunsplit((decomposed.scheme, decomposed.netloc, path, query, decomposed.fragment))
