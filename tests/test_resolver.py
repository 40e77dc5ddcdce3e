import pytest

from ecofood.errors import FetchError, MalformedRecordError, NotFoundError
from ecofood.resolver import MultiSourceResolver

BARCODE = "3017620422003"


@pytest.fixture
def tiers(fake_client, make_record):
    """Primary, secondary and tertiary fakes that all know the barcode."""
    return [
        fake_client("Open Food Facts", make_record(data_quality_score=80)),
        fake_client("USDA FoodData Central", make_record(source="USDA FoodData Central", data_quality_score=80)),
        fake_client("EFSA", make_record(source="EFSA", data_quality_score=80)),
    ]


def test_primary_hit_never_touches_fallbacks(tiers, builder):
    result = MultiSourceResolver(tiers, builder).analyze(BARCODE)
    assert result.data_source == "Open Food Facts"
    assert tiers[0].calls == [BARCODE]
    assert tiers[1].calls == []
    assert tiers[2].calls == []


def test_secondary_used_when_primary_has_no_record(tiers, builder):
    tiers[0].result = None
    result = MultiSourceResolver(tiers, builder).analyze(BARCODE)
    assert result.data_source == "USDA FoodData Central"
    assert len(result.ingredients) == 1
    assert tiers[2].calls == []


def test_tertiary_after_fetch_failure_and_malformed_record(tiers, builder):
    tiers[0].error = FetchError("Server error: 503", "Open Food Facts", 503)
    tiers[1].error = MalformedRecordError("no identity")
    result = MultiSourceResolver(tiers, builder).analyze(BARCODE)
    assert result.data_source == "EFSA"
    assert [len(t.calls) for t in tiers] == [1, 1, 1]


def test_tertiary_only_has_lower_trust_than_primary(tiers, builder):
    primary = MultiSourceResolver(tiers, builder).analyze(BARCODE)
    tiers[0].result = None
    tiers[1].result = None
    tertiary = MultiSourceResolver(tiers, builder).analyze(BARCODE)
    assert tertiary.trust_score < primary.trust_score
    assert "EFSA" in tertiary.data_source


def test_not_found_everywhere(tiers, builder):
    for tier in tiers:
        tier.result = None
    with pytest.raises(NotFoundError) as excinfo:
        MultiSourceResolver(tiers, builder).analyze(BARCODE)
    assert excinfo.value.barcode == BARCODE


def test_earlier_fetch_errors_are_not_surfaced(tiers, builder):
    tiers[0].error = FetchError("Network error. Please check your connection", "Open Food Facts")
    tiers[1].result = None
    tiers[2].result = None
    with pytest.raises(NotFoundError):
        MultiSourceResolver(tiers, builder).analyze(BARCODE)


def test_final_tier_fetch_error_is_surfaced(tiers, builder):
    tiers[0].result = None
    tiers[1].result = None
    tiers[2].error = FetchError("Too many requests. Please try again later", "EFSA", 429)
    with pytest.raises(FetchError) as excinfo:
        MultiSourceResolver(tiers, builder).analyze(BARCODE)
    assert excinfo.value.status_code == 429


def test_requires_source_clients(builder):
    with pytest.raises(ValueError):
        MultiSourceResolver([], builder)
