"""Read-only access to a loaded rulebook."""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path

from utm_guard.config import DEFAULT_RULES_PATH, load_rules
from utm_guard.models import ChannelConfig, GlobalRules, RulesConfig

logger = logging.getLogger(__name__)


class RulesRepository:
    def __init__(self, config: RulesConfig) -> None:
        self._config = config
        self._by_id = {channel.id: channel for channel in config.channels}

    @property
    def version(self) -> int:
        return self._config.version

    def all_channels(self) -> tuple[ChannelConfig, ...]:
        return self._config.channels

    def channel_by_id(self, channel_id: str) -> ChannelConfig | None:
        return self._by_id.get(channel_id)

    def global_rules(self) -> GlobalRules:
        return self._config.global_rules

    def channels_by_platform(self) -> dict[str, list[ChannelConfig]]:
        grouped: dict[str, list[ChannelConfig]] = {}
        for channel in self._config.channels:
            grouped.setdefault(channel.platform, []).append(channel)
        return grouped

    def platforms_with_traffic_types(self) -> list[str]:
        """Platforms offering both a paid and an organic channel."""
        return [
            platform
            for platform, channels in self.channels_by_platform().items()
            if _has_paid_and_organic(channels)
        ]

    def has_traffic_type_toggle(self, channel_id: str) -> bool:
        channel = self.channel_by_id(channel_id)
        if channel is None:
            return False
        return _has_paid_and_organic(self.channels_by_platform()[channel.platform])

    def channel_id_for(self, platform: str, traffic_type: str) -> str | None:
        for channel in self._config.channels:
            if channel.platform == platform and channel.traffic_type == traffic_type:
                return channel.id
        return None

    def traffic_type_of(self, channel_id: str) -> str:
        channel = self.channel_by_id(channel_id)
        return channel.traffic_type if channel else "paid"


def load_repository(path: str | Path) -> RulesRepository:
    config = load_rules(path)
    logger.debug(
        "Loaded rules v%d from %s with %d channels",
        config.version,
        path,
        len(config.channels),
    )
    return RulesRepository(config)


@lru_cache(maxsize=1)
def default_repository() -> RulesRepository:
    return load_repository(DEFAULT_RULES_PATH)


def _has_paid_and_organic(channels: list[ChannelConfig]) -> bool:
    traffic_types = {channel.traffic_type for channel in channels}
    return "paid" in traffic_types and "organic" in traffic_types
