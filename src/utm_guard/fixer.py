from __future__ import annotations

import logging
import re
from dataclasses import replace
from typing import Iterable

from utm_guard.models import Finding, TrackingParams, is_tracking_key
from utm_guard.utils.url_utils import compose_url, decompose_url

logger = logging.getLogger(__name__)

_ALTERNATIVE_SEPARATOR = " or "
_SUGGESTION_RE = re.compile(r"^(\w+)=(.+)$")


def apply_fix(url: str, suggestion: str) -> str:
    """Set the ``key=value`` pair of ``suggestion`` on ``url``.

    Only the first of several ``" or "``-joined alternatives is used. Returns
    ``url`` unchanged when the suggestion or the URL cannot be understood.
    """
    first = suggestion.split(_ALTERNATIVE_SEPARATOR, 1)[0].strip()
    match = _SUGGESTION_RE.match(first)
    if match is None or not is_tracking_key(match.group(1)):
        logger.debug("Ignoring non-applicable suggestion %r", suggestion)
        return url

    key, value = match.groups()
    try:
        decomposed = decompose_url(url)
    except ValueError as exc:
        logger.debug("Cannot apply %r to %r: %s", suggestion, url, exc)
        return url

    updated = replace(decomposed, tracking=decomposed.tracking.with_value(key, value))
    return compose_url(updated)


def apply_all_fixes(url: str, findings: Iterable[Finding]) -> str:
    """Apply the suggestions of blocking findings in order; warnings are left alone."""
    current = url
    for finding in findings:
        if finding.is_blocking and finding.suggestion:
            current = apply_fix(current, finding.suggestion)
    return current


def build_clean_url(url: str, params: TrackingParams) -> str:
    """Rebuild the query of ``url`` from ``params``, keeping non-UTM pairs first."""
    try:
        decomposed = decompose_url(url)
    except ValueError as exc:
        logger.debug("Cannot rebuild %r: %s", url, exc)
        return url

    return compose_url(replace(decomposed, tracking=params), skip_blank=True)
