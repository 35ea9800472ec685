from __future__ import annotations

import logging
from typing import Callable, Iterable

from utm_guard.models import ChannelConfig, TrackingParams
from utm_guard.repository import RulesRepository, default_repository

logger = logging.getLogger(__name__)


def detect_channel(
    params: TrackingParams,
    repository: RulesRepository | None = None,
) -> str | None:
    """Guess the channel a parameter set was built for.

    Tries, in order: a channel accepting both source and medium, a channel
    accepting the source (paid channels first), a channel accepting the
    medium, and finally the first channel that allows UTM parameters at all.
    Returns None only when both source and medium are missing.
    """
    source = (params.source or "").lower()
    medium = (params.medium or "").lower()
    if not source and not medium:
        return None

    repository = repository or default_repository()
    candidates = [channel for channel in repository.all_channels() if not channel.disallow_utm]

    for channel in candidates:
        if _source_matches(channel, source, allow_free_text=True) and _medium_matches(
            channel, medium
        ):
            return _found(channel, "source+medium")

    if source:
        paid = [channel for channel in candidates if channel.is_paid]
        match = _first(paid, lambda channel: _source_matches(channel, source))
        if match is None:
            match = _first(candidates, lambda channel: _source_matches(channel, source))
        if match is not None:
            return _found(match, "source")

    if medium:
        match = _first(candidates, lambda channel: _medium_matches(channel, medium))
        if match is not None:
            return _found(match, "medium")

    if candidates:
        return _found(candidates[0], "fallback")
    return None


def _source_matches(channel: ChannelConfig, source: str, *, allow_free_text: bool = False) -> bool:
    if not source:
        return False
    rule = channel.rule_for("utm_source")
    if rule is None:
        return False
    return rule.allows(source) or (allow_free_text and rule.free_text_allowed)


def _medium_matches(channel: ChannelConfig, medium: str) -> bool:
    if not medium:
        return False
    rule = channel.rule_for("utm_medium")
    return rule is not None and rule.allows(medium)


def _first(
    channels: Iterable[ChannelConfig],
    predicate: Callable[[ChannelConfig], bool],
) -> ChannelConfig | None:
    return next((channel for channel in channels if predicate(channel)), None)


def _found(channel: ChannelConfig, stage: str) -> str:
    logger.debug("Detected channel %s via %s match", channel.id, stage)
    return channel.id
