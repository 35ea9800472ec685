from __future__ import annotations

import logging

from utm_guard.models import (
    TRACKING_KEYS,
    ChannelConfig,
    Finding,
    GlobalRules,
    ParamRule,
    Severity,
    TrackingParams,
    ValidationOutcome,
)
from utm_guard.normalizer import normalize_value
from utm_guard.parser import has_spaces, is_lowercase, is_valid_value
from utm_guard.repository import RulesRepository, default_repository

logger = logging.getLogger(__name__)

_GENERIC_DEFAULTS = {
    "utm_campaign": "campaign_name",
    "utm_content": "content_name",
    "utm_term": "keyword",
}
_MAX_EXAMPLES = 2


class RuleValidator:
    """Checks a parameter set against the global rules and one channel's rules.

    Blocking problems land in ``errors``, stylistic ones in ``warnings``.
    Within the global pass each value reports at most one problem, in the
    order spaces, casing, allowed characters.
    """

    def __init__(self, repository: RulesRepository) -> None:
        self.repository = repository

    def validate(self, params: TrackingParams, channel_id: str) -> ValidationOutcome:
        outcome = ValidationOutcome(params=params, channel_id=channel_id)
        channel = self.repository.channel_by_id(channel_id)

        if channel is None:
            outcome.errors.append(_error(f"Unknown channel: {channel_id}"))
        elif channel.disallow_utm:
            if any(value for _, value in params.items()):
                outcome.errors.append(
                    _error(f"{channel.label} should not use UTM parameters (organic traffic)")
                )
        else:
            global_rules = self.repository.global_rules()
            self._check_global_rules(params, channel, global_rules, outcome)
            self._check_channel_rules(params, channel, global_rules, outcome)

        logger.debug(
            "Validated against %s | errors=%d warnings=%d",
            channel_id,
            len(outcome.errors),
            len(outcome.warnings),
        )
        return outcome

    def _check_global_rules(
        self,
        params: TrackingParams,
        channel: ChannelConfig,
        global_rules: GlobalRules,
        outcome: ValidationOutcome,
    ) -> None:
        if global_rules.require_any_utm and params.is_empty():
            outcome.errors.append(_error("No UTM parameters found in the URL"))

        for key in global_rules.required_params:
            if _is_blank(params.get(key)):
                outcome.errors.append(_missing(key, channel))

        for key in TRACKING_KEYS:
            value = params.get(key)
            if _is_blank(value):
                continue

            rule = channel.rule_for(key)
            allow_macro = rule is not None and rule.allow_keyword_macro
            cleaned = normalize_value(value, preserve_macro=allow_macro)
            suggestion = f"{key}={cleaned}" if cleaned else None

            if global_rules.disallow_spaces and has_spaces(value):
                message = f'{key} contains spaces: "{value}"'
            elif global_rules.lowercase_only and not is_lowercase(value):
                message = f'{key} must be lowercase: "{value}"'
            elif not is_valid_value(value, global_rules.allowed_value_pattern, allow_macro):
                message = (
                    f"{key} contains invalid characters. "
                    f'Only a-z, 0-9, and underscores are allowed: "{value}"'
                )
            else:
                continue

            outcome.errors.append(_error(message, param=key, suggestion=suggestion))

    def _check_channel_rules(
        self,
        params: TrackingParams,
        channel: ChannelConfig,
        global_rules: GlobalRules,
        outcome: ValidationOutcome,
    ) -> None:
        for key, rule in channel.rules.items():
            value = params.get(key)

            if _is_blank(value):
                if rule.required and key not in global_rules.required_params:
                    outcome.errors.append(_missing(key, channel))
                elif rule.warn_if_missing:
                    outcome.warnings.append(_reminder(key, rule, channel))
                continue

            if not rule.allowed_values:
                continue

            if not rule.allows(value):
                if rule.free_text_allowed:
                    continue
                expected = '" or "'.join(rule.allowed_values)
                outcome.errors.append(
                    _error(
                        f'For {channel.label}, {key} must be "{expected}", got "{value}"',
                        param=key,
                        suggestion=f"{key}={rule.preferred_value or rule.allowed_values[0]}",
                    )
                )
            elif (
                rule.warning_if_not_preferred
                and rule.preferred_value
                and value.lower() != rule.preferred_value.lower()
            ):
                outcome.warnings.append(
                    Finding(
                        severity=Severity.WARNING,
                        message=(
                            f'Using "{value}" as {key} is acceptable, '
                            f'but "{rule.preferred_value}" is preferred'
                        ),
                        param=key,
                        suggestion=f"{key}={rule.preferred_value}",
                    )
                )


def validate(
    params: TrackingParams,
    channel_id: str,
    repository: RulesRepository | None = None,
) -> ValidationOutcome:
    return RuleValidator(repository or default_repository()).validate(params, channel_id)


def default_value_for(key: str, channel: ChannelConfig) -> str:
    rule = channel.rule_for(key)
    if rule is not None and rule.preferred_value:
        return rule.preferred_value
    if rule is not None and rule.allowed_values:
        return rule.allowed_values[0]

    if key == "utm_source":
        return normalize_value(channel.platform) or "source"
    if key == "utm_medium":
        return "organic" if channel.traffic_type == "organic" else "paid"
    return _GENERIC_DEFAULTS[key]


def _is_blank(value: str | None) -> bool:
    return value is None or not value.strip()


def _error(message: str, *, param: str | None = None, suggestion: str | None = None) -> Finding:
    return Finding(severity=Severity.ERROR, message=message, param=param, suggestion=suggestion)


def _missing(key: str, channel: ChannelConfig) -> Finding:
    return _error(
        f"Missing required parameter: {key}",
        param=key,
        suggestion=f"{key}={default_value_for(key, channel)}",
    )


def _reminder(key: str, rule: ParamRule, channel: ChannelConfig) -> Finding:
    parts = [f"Consider adding {key} for {channel.label}."]
    if rule.guidance:
        parts.append(rule.guidance)
    if rule.examples:
        parts.append(f"Examples: {', '.join(rule.examples[:_MAX_EXAMPLES])}")
    return Finding(severity=Severity.WARNING, message=" ".join(parts), param=key)
