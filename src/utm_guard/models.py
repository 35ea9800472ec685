from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Iterator, Mapping

TRACKING_KEYS: tuple[str, ...] = (
    "utm_source",
    "utm_medium",
    "utm_campaign",
    "utm_content",
    "utm_term",
)

MACRO_TOKEN = "{keyword}"

_FIELD_BY_KEY = {key: key.removeprefix("utm_") for key in TRACKING_KEYS}


def is_tracking_key(key: str) -> bool:
    return key in _FIELD_BY_KEY


@dataclass(frozen=True, slots=True)
class TrackingParams:
    """The five UTM values of a URL.

    ``None`` means the key was not in the URL at all, ``""`` means it was
    present with an empty value.
    """

    source: str | None = None
    medium: str | None = None
    campaign: str | None = None
    content: str | None = None
    term: str | None = None

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, str | None]) -> TrackingParams:
        unknown = [key for key in mapping if key not in _FIELD_BY_KEY]
        if unknown:
            raise KeyError(f"Unknown tracking parameter(s): {', '.join(sorted(unknown))}")
        return cls(**{_FIELD_BY_KEY[key]: value for key, value in mapping.items()})

    def get(self, key: str) -> str | None:
        return getattr(self, _FIELD_BY_KEY[key])

    def with_value(self, key: str, value: str | None) -> TrackingParams:
        return replace(self, **{_FIELD_BY_KEY[key]: value})

    def items(self) -> Iterator[tuple[str, str]]:
        for key in TRACKING_KEYS:
            value = self.get(key)
            if value is not None:
                yield key, value

    def to_dict(self) -> dict[str, str]:
        return dict(self.items())

    def is_empty(self) -> bool:
        return not any(value.strip() for _, value in self.items())


@dataclass(frozen=True, slots=True)
class ParamRule:
    required: bool = False
    allowed_values: tuple[str, ...] = ()
    preferred_value: str | None = None
    warning_if_not_preferred: bool = False
    free_text_allowed: bool = False
    allow_keyword_macro: bool = False
    warn_if_missing: bool = False
    guidance: str | None = None
    examples: tuple[str, ...] = ()

    def allows(self, value: str) -> bool:
        lowered = value.lower()
        return any(lowered == allowed.lower() for allowed in self.allowed_values)


@dataclass(frozen=True, slots=True)
class ChannelConfig:
    id: str
    label: str
    platform: str
    traffic_type: str
    disallow_utm: bool = False
    rules: Mapping[str, ParamRule] = field(default_factory=dict)

    def rule_for(self, key: str) -> ParamRule | None:
        return self.rules.get(key)

    @property
    def is_paid(self) -> bool:
        return self.traffic_type in {"paid", "paid_search"}


@dataclass(frozen=True, slots=True)
class GlobalRules:
    required_params: tuple[str, ...] = ("utm_source", "utm_medium", "utm_campaign")
    lowercase_only: bool = True
    allowed_value_pattern: str = r"^[a-z0-9_]+$"
    disallow_spaces: bool = True
    disallow_multiple_question_marks: bool = True
    require_any_utm: bool = False


@dataclass(frozen=True, slots=True)
class RulesConfig:
    version: int
    global_rules: GlobalRules
    channels: tuple[ChannelConfig, ...]


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


@dataclass(frozen=True, slots=True)
class Finding:
    severity: Severity
    message: str
    param: str | None = None
    suggestion: str | None = None

    @property
    def is_blocking(self) -> bool:
        return self.severity is Severity.ERROR


@dataclass(slots=True)
class ValidationOutcome:
    params: TrackingParams
    channel_id: str
    errors: list[Finding] = field(default_factory=list)
    warnings: list[Finding] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    @property
    def has_warnings(self) -> bool:
        return bool(self.warnings)

    @property
    def findings(self) -> list[Finding]:
        return [*self.errors, *self.warnings]


class ParseErrorKind(str, Enum):
    EMPTY_INPUT = "empty_input"
    MALFORMED_QUERY = "malformed_query"
    INVALID_URL = "invalid_url"


@dataclass(frozen=True, slots=True)
class ParseError:
    kind: ParseErrorKind
    message: str


@dataclass(frozen=True, slots=True)
class ParseResult:
    params: TrackingParams = field(default_factory=TrackingParams)
    normalized_url: str = ""
    other_params: tuple[tuple[str, str], ...] = ()
    error: ParseError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def failure(cls, kind: ParseErrorKind, message: str) -> ParseResult:
        return cls(error=ParseError(kind=kind, message=message))
