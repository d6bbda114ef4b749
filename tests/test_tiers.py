# tests/test_tiers.py
import pytest

from migrate_alerts.alerts.tiers import TIER_BOUNDS, Tier, classify


@pytest.mark.parametrize("minutes,tier", [
    (0, Tier.IMMINENT),
    (4, Tier.IMMINENT),
    (5, Tier.IMMINENT),
    (5.0001, Tier.SOON),
    (15, Tier.SOON),
    (15.5, Tier.UPCOMING),
    (30, Tier.UPCOMING),
    (30.0001, Tier.SCHEDULED),
    (1440, Tier.SCHEDULED),
])
def test_boundaries_inclusive_on_upper_edge(minutes, tier):
    assert classify(minutes) is tier


def test_negative_minutes_rejected():
    with pytest.raises(ValueError):
        classify(-1)


def test_urgency_ordering():
    ranked = sorted(Tier, key=lambda t: t.urgency, reverse=True)
    assert ranked == [Tier.IMMINENT, Tier.SOON, Tier.UPCOMING, Tier.SCHEDULED]


def test_presentation_metadata():
    assert Tier.IMMINENT.color == 0xFF0000
    assert Tier.SCHEDULED.color == 0x00FF00
    assert "IMMINENT" in Tier.IMMINENT.label
    assert str(Tier.SOON) == "soon"


def test_bounds_hold_tier_members():
    assert [tier for _, tier in TIER_BOUNDS] == [Tier.IMMINENT, Tier.SOON, Tier.UPCOMING]
    assert all(isinstance(tier, Tier) for _, tier in TIER_BOUNDS)
