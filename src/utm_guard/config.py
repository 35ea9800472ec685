from __future__ import annotations

import re
from pathlib import Path
from types import MappingProxyType
from typing import Any

import yaml

from utm_guard.models import (
    TRACKING_KEYS,
    ChannelConfig,
    GlobalRules,
    ParamRule,
    RulesConfig,
    is_tracking_key,
)

RULES_ENV_VAR = "UTM_GUARD_RULES"
DEFAULT_RULES_PATH = Path(__file__).parent / "data" / "default_rules.yaml"


class ConfigError(ValueError):
    """Raised when a rules document has the wrong shape."""


def _as_string_list(value: Any, *, field_name: str) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ConfigError(f"{field_name} must be a list of strings, got: {type(value)!r}")
    return [str(item).strip() for item in value if str(item).strip()]


def _as_bool(value: Any, *, field_name: str) -> bool:
    if isinstance(value, bool):
        return value

    if isinstance(value, int) and value in {0, 1}:
        return bool(value)

    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in {"true", "1", "yes", "on"}:
            return True
        if normalized in {"false", "0", "no", "off"}:
            return False

    raise ConfigError(f"{field_name} must be a boolean")


def _as_int(value: Any, *, field_name: str, minimum: int | None = None) -> int:
    if isinstance(value, bool):
        raise ConfigError(f"{field_name} must be an integer")

    try:
        parsed = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{field_name} must be an integer") from exc

    if minimum is not None and parsed < minimum:
        raise ConfigError(f"{field_name} must be >= {minimum}")
    return parsed


def _as_optional_string(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _as_mapping(value: Any, *, field_name: str) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError(f"{field_name} must be a mapping")
    return value


def load_rules(path: str | Path) -> RulesConfig:
    rules_path = Path(path).expanduser().resolve()
    if not rules_path.exists():
        raise ConfigError(f"Rules file not found: {rules_path}")

    with rules_path.open("r", encoding="utf-8") as handle:
        try:
            parsed = yaml.safe_load(handle) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"Rules file is not valid YAML/JSON: {exc}") from exc

    return parse_rules(parsed)


def parse_rules(parsed: Any) -> RulesConfig:
    if not isinstance(parsed, dict):
        raise ConfigError("Rules root must be a mapping")

    version = _as_int(parsed.get("version", 1), field_name="version", minimum=1)
    global_rules = _parse_global_rules(
        _as_mapping(parsed.get("globalRules"), field_name="globalRules")
    )

    raw_channels = parsed.get("channels", [])
    if not isinstance(raw_channels, list) or not raw_channels:
        raise ConfigError("Rules must define at least one channel")

    channels: list[ChannelConfig] = []
    seen_ids: set[str] = set()
    for index, raw_channel in enumerate(raw_channels, start=1):
        channel = _parse_channel(raw_channel, index=index)
        if channel.id in seen_ids:
            raise ConfigError(f"Duplicate channel id: {channel.id}")
        seen_ids.add(channel.id)
        channels.append(channel)

    return RulesConfig(version=version, global_rules=global_rules, channels=tuple(channels))


def _parse_global_rules(raw: dict[str, Any]) -> GlobalRules:
    defaults = GlobalRules()

    required_params = (
        _as_string_list(raw["requiredParams"], field_name="globalRules.requiredParams")
        if "requiredParams" in raw
        else list(defaults.required_params)
    )
    unknown = [param for param in required_params if not is_tracking_key(param)]
    if unknown:
        raise ConfigError(
            f"globalRules.requiredParams has unknown keys: {', '.join(unknown)}"
        )

    pattern = str(raw.get("allowedValuePattern", defaults.allowed_value_pattern))
    try:
        re.compile(pattern)
    except re.error as exc:
        raise ConfigError(f"globalRules.allowedValuePattern is invalid: {exc}") from exc

    return GlobalRules(
        required_params=tuple(required_params),
        lowercase_only=_as_bool(
            raw.get("lowercaseOnly", defaults.lowercase_only),
            field_name="globalRules.lowercaseOnly",
        ),
        allowed_value_pattern=pattern,
        disallow_spaces=_as_bool(
            raw.get("disallowSpaces", defaults.disallow_spaces),
            field_name="globalRules.disallowSpaces",
        ),
        disallow_multiple_question_marks=_as_bool(
            raw.get(
                "disallowMultipleQuestionMarks",
                defaults.disallow_multiple_question_marks,
            ),
            field_name="globalRules.disallowMultipleQuestionMarks",
        ),
        require_any_utm=_as_bool(
            raw.get("requireAnyUtm", defaults.require_any_utm),
            field_name="globalRules.requireAnyUtm",
        ),
    )


def _parse_channel(raw: Any, *, index: int) -> ChannelConfig:
    if not isinstance(raw, dict):
        raise ConfigError(f"Channel entry #{index} must be a mapping")

    channel_id = str(raw.get("id", "")).strip()
    label = str(raw.get("label", "")).strip()
    if not channel_id or not label:
        raise ConfigError(f"Channel entry #{index} missing one of: id, label")

    raw_rules = _as_mapping(raw.get("rules"), field_name=f"channels.{channel_id}.rules")
    rules: dict[str, ParamRule] = {}
    for key in raw_rules:
        if not is_tracking_key(key):
            raise ConfigError(
                f"channels.{channel_id}.rules has unknown key '{key}' "
                f"(expected one of: {', '.join(TRACKING_KEYS)})"
            )
    # Canonical key order regardless of document order.
    for key in TRACKING_KEYS:
        if key in raw_rules:
            rules[key] = _parse_param_rule(
                _as_mapping(raw_rules[key], field_name=f"channels.{channel_id}.rules.{key}"),
                field_prefix=f"channels.{channel_id}.rules.{key}",
            )

    return ChannelConfig(
        id=channel_id,
        label=label,
        platform=str(raw.get("platform", "")).strip() or channel_id,
        traffic_type=str(raw.get("trafficType", "paid")).strip() or "paid",
        disallow_utm=_as_bool(
            raw.get("disallowUtm", False),
            field_name=f"channels.{channel_id}.disallowUtm",
        ),
        rules=MappingProxyType(rules),
    )


def _parse_param_rule(raw: dict[str, Any], *, field_prefix: str) -> ParamRule:
    return ParamRule(
        required=_as_bool(raw.get("required", False), field_name=f"{field_prefix}.required"),
        allowed_values=tuple(
            _as_string_list(raw.get("allowedValues"), field_name=f"{field_prefix}.allowedValues")
        ),
        preferred_value=_as_optional_string(raw.get("preferredValue")),
        warning_if_not_preferred=_as_bool(
            raw.get("warningIfNotPreferred", False),
            field_name=f"{field_prefix}.warningIfNotPreferred",
        ),
        free_text_allowed=_as_bool(
            raw.get("freeTextAllowed", False),
            field_name=f"{field_prefix}.freeTextAllowed",
        ),
        allow_keyword_macro=_as_bool(
            raw.get("allowKeywordMacro", False),
            field_name=f"{field_prefix}.allowKeywordMacro",
        ),
        warn_if_missing=_as_bool(
            raw.get("warnIfMissing", False),
            field_name=f"{field_prefix}.warnIfMissing",
        ),
        guidance=_as_optional_string(raw.get("guidance")),
        examples=tuple(
            _as_string_list(raw.get("examples"), field_name=f"{field_prefix}.examples")
        ),
    )
