from __future__ import annotations

from utm_guard.repository import default_repository, load_repository


def test_default_repository_is_loaded_once() -> None:
    assert default_repository() is default_repository()


def test_channel_lookup() -> None:
    repository = default_repository()

    channel = repository.channel_by_id("google_ads")
    assert channel is not None
    assert channel.label == "Google Ads (paid)"
    assert channel.rule_for("utm_term").allow_keyword_macro is True
    assert repository.channel_by_id("does_not_exist") is None
    assert repository.all_channels()[0].id == "google_ads"
    assert repository.global_rules().required_params == (
        "utm_source",
        "utm_medium",
        "utm_campaign",
    )


def test_forbidding_channels_carry_no_rules() -> None:
    for channel in default_repository().all_channels():
        if channel.disallow_utm:
            assert dict(channel.rules) == {}


def test_platform_grouping() -> None:
    repository = default_repository()

    grouped = repository.channels_by_platform()
    assert [channel.id for channel in grouped["meta"]] == ["meta_paid", "meta_organic"]
    assert repository.platforms_with_traffic_types() == ["meta", "linkedin"]
    assert repository.has_traffic_type_toggle("meta_organic") is True
    assert repository.has_traffic_type_toggle("google_ads") is False
    assert repository.has_traffic_type_toggle("nope") is False


def test_traffic_type_lookups() -> None:
    repository = default_repository()

    assert repository.channel_id_for("linkedin", "organic") == "linkedin_organic"
    assert repository.channel_id_for("linkedin", "owned") is None
    assert repository.traffic_type_of("microsoft_ads") == "paid_search"
    assert repository.traffic_type_of("nope") == "paid"


def test_load_repository_from_file(tmp_path) -> None:
    path = tmp_path / "rules.yaml"
    path.write_text(
        "version: 5\nchannels:\n  - id: only\n    label: Only channel\n",
        encoding="utf-8",
    )

    repository = load_repository(path)

    assert repository.version == 5
    assert [channel.id for channel in repository.all_channels()] == ["only"]
    assert repository.channel_by_id("only").platform == "only"
