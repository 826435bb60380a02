"""Tests for the category → adapter registry."""

import pytest

from funding_radar.adapters import (
    FACEBOOK,
    LINKEDIN,
    AdapterOptions,
    JsonApiAdapter,
    SocialAdapter,
    StaticHtmlAdapter,
    create_adapter,
    list_available,
)
from funding_radar.models import SourceCategory


@pytest.mark.parametrize(
    "category, adapter_type",
    [
        (SourceCategory.ACADEMIC_SITE, StaticHtmlAdapter),
        (SourceCategory.GENERIC_HTTP, StaticHtmlAdapter),
        (SourceCategory.GOVERNMENT_API, JsonApiAdapter),
        (SourceCategory.SOCIAL_LINKEDIN, SocialAdapter),
        (SourceCategory.SOCIAL_FACEBOOK, SocialAdapter),
    ],
)
def test_every_category_has_an_adapter(category, adapter_type) -> None:
    assert isinstance(create_adapter(category), adapter_type)


def test_social_profiles_follow_category() -> None:
    assert create_adapter(SourceCategory.SOCIAL_LINKEDIN).profile is LINKEDIN
    assert create_adapter(SourceCategory.SOCIAL_FACEBOOK).profile is FACEBOOK


def test_category_given_as_string() -> None:
    assert isinstance(create_adapter("government-api"), JsonApiAdapter)


def test_unknown_category() -> None:
    with pytest.raises(ValueError):
        create_adapter("rss-feed")


def test_options_reach_adapter() -> None:
    adapter = create_adapter(
        SourceCategory.SOCIAL_FACEBOOK,
        AdapterOptions(facebook_api_key="from-config", settle_delay=0.5),
    )
    assert adapter._fallback_credential == "from-config"
    assert adapter._settle_delay == 0.5


def test_registry_covers_all_categories() -> None:
    assert set(list_available()) == set(SourceCategory)
