from __future__ import annotations

import argparse
import logging
import os
import sys

from utm_guard.config import RULES_ENV_VAR, ConfigError
from utm_guard.detector import detect_channel
from utm_guard.fixer import apply_all_fixes, build_clean_url
from utm_guard.logging_config import setup_logging
from utm_guard.models import Finding, TrackingParams, ValidationOutcome
from utm_guard.normalizer import normalize_value
from utm_guard.parser import parse_url
from utm_guard.repository import RulesRepository, default_repository, load_repository
from utm_guard.validator import validate

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="utm-guard",
        description="Validate UTM parameters of a URL and suggest corrections.",
    )
    parser.add_argument(
        "-r",
        "--rules",
        help=f"Path to a rules YAML/JSON file (default: ${RULES_ENV_VAR} or bundled rules)",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        help="Log level (e.g. INFO, DEBUG)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    check = subparsers.add_parser("check", help="Validate the UTM parameters of a URL")
    check.add_argument("url")
    check.add_argument("--channel", help="Channel id to validate against (default: detect)")
    check.add_argument(
        "--fix",
        action="store_true",
        help="Also print the URL with all blocking findings fixed",
    )

    subparsers.add_parser("channels", help="List configured channels")

    normalize = subparsers.add_parser("normalize", help="Print the cleaned-up form of a value")
    normalize.add_argument("value")
    normalize.add_argument(
        "--keep-macro",
        action="store_true",
        help="Keep the {keyword} macro untouched",
    )

    build = subparsers.add_parser("build", help="Rebuild a URL with the given UTM values")
    build.add_argument("url")
    build.add_argument(
        "--set",
        dest="assignments",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="UTM value to set, may be repeated (e.g. utm_source=google)",
    )

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(args.log_level)

    if args.command == "normalize":
        print(normalize_value(args.value, preserve_macro=args.keep_macro))
        return 0

    if args.command == "build":
        try:
            params = _parse_assignments(args.assignments)
        except (KeyError, ValueError) as exc:
            parser.error(str(exc))
        print(build_clean_url(args.url, params))
        return 0

    try:
        repository = _load_repository(args.rules)
    except ConfigError as exc:
        print(f"Config error: {exc}", file=sys.stderr)
        return 2

    if args.command == "channels":
        for channel in repository.all_channels():
            marker = " (no UTM)" if channel.disallow_utm else ""
            print(f"{channel.id}\t{channel.label}\t{channel.platform}\t{channel.traffic_type}{marker}")
        return 0

    return _run_check(
        repository=repository,
        url=args.url,
        channel_id=args.channel,
        fix=args.fix,
    )


def _load_repository(rules_path: str | None) -> RulesRepository:
    path = rules_path or os.getenv(RULES_ENV_VAR, "").strip()
    if path:
        return load_repository(path)
    return default_repository()


def _run_check(
    *,
    repository: RulesRepository,
    url: str,
    channel_id: str | None,
    fix: bool,
) -> int:
    result = parse_url(url)
    if not result.ok:
        print(f"Parse error: {result.error.message}", file=sys.stderr)
        return 2

    channel_id = channel_id or detect_channel(result.params, repository)
    if channel_id is None:
        first = next((c for c in repository.all_channels() if not c.disallow_utm), None)
        channel_id = first.id if first else ""
        logger.info("No source or medium to detect from; using %s", channel_id)

    outcome = validate(result.params, channel_id, repository)
    _print_outcome(outcome)

    if fix and not outcome.is_valid:
        print("")
        print(f"Fixed URL: {apply_all_fixes(result.normalized_url, outcome.errors)}")

    return 0 if outcome.is_valid else 1


def _print_outcome(outcome: ValidationOutcome) -> None:
    print(f"Channel: {outcome.channel_id}")
    for key, value in outcome.params.items():
        print(f"  {key} = {value!r}")

    if outcome.is_valid and not outcome.has_warnings:
        print("OK: all UTM parameters pass")
        return

    for finding in outcome.findings:
        print(_render_finding(finding))


def _render_finding(finding: Finding) -> str:
    label = "ERROR" if finding.is_blocking else "WARNING"
    line = f"[{label}] {finding.message}"
    if finding.suggestion:
        line = f"{line}\n    suggestion: {finding.suggestion}"
    return line


def _parse_assignments(assignments: list[str]) -> TrackingParams:
    values: dict[str, str] = {}
    for assignment in assignments:
        key, sep, value = assignment.partition("=")
        if not sep:
            raise ValueError(f"Expected KEY=VALUE, got: {assignment}")
        values[key.strip()] = value
    return TrackingParams.from_mapping(values)


if __name__ == "__main__":
    raise SystemExit(main())
