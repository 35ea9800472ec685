from __future__ import annotations

import logging
import re

from utm_guard.models import MACRO_TOKEN, ParseErrorKind, ParseResult
from utm_guard.utils.url_utils import decompose_url, ensure_scheme

logger = logging.getLogger(__name__)

_WHITESPACE_RE = re.compile(r"\s")
_MACRO_PLACEHOLDER = "keyword_placeholder"


def parse_url(raw: str) -> ParseResult:
    """Extract the UTM parameters of ``raw``.

    Succeeds with an empty parameter set when the URL carries no UTM keys;
    the caller decides whether that is a problem.
    """
    trimmed = (raw or "").strip()
    if not trimmed:
        return ParseResult.failure(
            ParseErrorKind.EMPTY_INPUT,
            "Please enter a URL to validate.",
        )

    before_fragment = trimmed.split("#", 1)[0]
    if before_fragment.count("?") > 1:
        return ParseResult.failure(
            ParseErrorKind.MALFORMED_QUERY,
            'Invalid URL: multiple "?" characters detected. '
            'A valid URL has only one "?" before the query string.',
        )

    try:
        decomposed = decompose_url(trimmed)
    except ValueError as exc:
        logger.debug("Rejected URL %r: %s", trimmed, exc)
        return ParseResult.failure(
            ParseErrorKind.INVALID_URL,
            "Invalid URL format. Please enter a valid URL "
            "(e.g. https://example.com?utm_source=google).",
        )

    return ParseResult(
        params=decomposed.tracking,
        normalized_url=ensure_scheme(trimmed),
        other_params=decomposed.other_params,
    )


def has_spaces(value: str) -> bool:
    return _WHITESPACE_RE.search(value) is not None


def is_lowercase(value: str) -> bool:
    return value == value.lower()


def is_valid_value(value: str, pattern: str, allow_macro: bool = False) -> bool:
    """Check ``value`` against the allowed-character pattern.

    With ``allow_macro`` the ``{keyword}`` token is accepted anywhere in the value.
    """
    if not value:
        return False
    candidate = value.replace(MACRO_TOKEN, _MACRO_PLACEHOLDER) if allow_macro else value
    return re.search(pattern, candidate) is not None
