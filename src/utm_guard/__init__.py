"""Validate and repair UTM tracking parameters against a rulebook."""

from .detector import detect_channel
from .fixer import apply_all_fixes, apply_fix, build_clean_url
from .models import (
    TRACKING_KEYS,
    Finding,
    ParseErrorKind,
    ParseResult,
    Severity,
    TrackingParams,
    ValidationOutcome,
)
from .normalizer import normalize_value
from .parser import parse_url
from .repository import RulesRepository, default_repository, load_repository
from .validator import validate

__all__ = [
    "TRACKING_KEYS",
    "Finding",
    "ParseErrorKind",
    "ParseResult",
    "RulesRepository",
    "Severity",
    "TrackingParams",
    "ValidationOutcome",
    "apply_all_fixes",
    "apply_fix",
    "build_clean_url",
    "default_repository",
    "detect_channel",
    "load_repository",
    "normalize_value",
    "parse_url",
    "validate",
]
