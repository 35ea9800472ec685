from __future__ import annotations

from utm_guard.config import parse_rules
from utm_guard.detector import detect_channel
from utm_guard.models import TrackingParams
from utm_guard.repository import RulesRepository


def _repository(channels: list[dict]) -> RulesRepository:
    return RulesRepository(parse_rules({"version": 1, "channels": channels}))


def test_no_source_or_medium_detects_nothing() -> None:
    assert detect_channel(TrackingParams()) is None
    assert detect_channel(TrackingParams(campaign="spring_sale")) is None


def test_exact_source_and_medium_match_is_case_insensitive() -> None:
    params = TrackingParams(source="Google", medium="CPC", campaign="Spring Sale")

    assert detect_channel(params) == "google_ads"


def test_exact_match_distinguishes_paid_and_organic() -> None:
    assert detect_channel(TrackingParams(source="facebook", medium="paid_social")) == "meta_paid"
    assert detect_channel(TrackingParams(source="instagram", medium="social")) == "meta_organic"


def test_source_only_prefers_paid_channels() -> None:
    assert detect_channel(TrackingParams(source="facebook")) == "meta_paid"
    assert detect_channel(TrackingParams(source="linkedin", medium="banner")) == "linkedin_paid"


def test_source_only_falls_back_to_any_traffic_type() -> None:
    repository = _repository(
        [
            {"id": "generic", "label": "Generic"},
            {
                "id": "partner_organic",
                "label": "Partner organic",
                "trafficType": "organic",
                "rules": {"utm_source": {"allowedValues": ["partner"]}},
            },
        ]
    )

    assert detect_channel(TrackingParams(source="partner"), repository) == "partner_organic"


def test_free_text_source_only_counts_with_matching_medium() -> None:
    assert detect_channel(TrackingParams(source="my_list", medium="email")) == "newsletter"
    assert detect_channel(TrackingParams(source="my_list")) == "google_ads"


def test_medium_only_match() -> None:
    assert detect_channel(TrackingParams(medium="social")) == "meta_organic"


def test_unmatched_values_fall_back_to_first_channel_allowing_utm() -> None:
    repository = _repository(
        [
            {"id": "organic_search", "label": "Organic search", "disallowUtm": True},
            {"id": "display", "label": "Display", "rules": {"utm_medium": {"allowedValues": ["display"]}}},
        ]
    )

    assert detect_channel(TrackingParams(source="unknown", medium="nothing"), repository) == "display"


def test_channels_forbidding_utm_are_never_detected() -> None:
    repository = _repository(
        [
            {
                "id": "organic_search",
                "label": "Organic search",
                "disallowUtm": True,
                "rules": {
                    "utm_source": {"allowedValues": ["google"]},
                    "utm_medium": {"allowedValues": ["organic"]},
                },
            },
            {"id": "paid_search", "label": "Paid search", "trafficType": "paid_search"},
        ]
    )

    params = TrackingParams(source="google", medium="organic")
    assert detect_channel(params, repository) == "paid_search"


def test_only_forbidding_channels_detects_nothing() -> None:
    repository = _repository([{"id": "organic", "label": "Organic", "disallowUtm": True}])

    assert detect_channel(TrackingParams(source="google"), repository) is None


def test_mixed_case_rulebook_values_are_detected() -> None:
    repository = _repository(
        [
            {"id": "display", "label": "Display"},
            {
                "id": "search",
                "label": "Search",
                "trafficType": "paid_search",
                "rules": {
                    "utm_source": {"allowedValues": ["Google"]},
                    "utm_medium": {"allowedValues": ["CPC"]},
                },
            },
        ]
    )

    assert detect_channel(TrackingParams(source="google", medium="cpc"), repository) == "search"
    assert detect_channel(TrackingParams(medium="cpc"), repository) == "search"
