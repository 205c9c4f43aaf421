"""Tests for lifecycle status derivation."""

from datetime import datetime, timedelta, timezone

import pytest

from pigeonpost.tracking import TrackingStatus, derive_status, resolve_status

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize('remaining, expected', [
    (timedelta(seconds=-1), TrackingStatus.DELIVERED),
    (timedelta(0), TrackingStatus.DELIVERED),
    (timedelta(seconds=1), TrackingStatus.APPROACHING),
    (timedelta(minutes=30) - timedelta(seconds=1), TrackingStatus.APPROACHING),
    (timedelta(minutes=30), TrackingStatus.APPROACHING),
    (timedelta(minutes=30, seconds=1), TrackingStatus.IN_TRANSIT),
    (timedelta(hours=2), TrackingStatus.IN_TRANSIT),
    (timedelta(hours=2, seconds=1), TrackingStatus.ASSIGNED),
    (timedelta(hours=4), TrackingStatus.ASSIGNED),
    (timedelta(hours=4, seconds=1), TrackingStatus.PROCESSING),
    (timedelta(days=3), TrackingStatus.PROCESSING),
])
def test_derive_status_boundaries(remaining, expected):
    assert derive_status(NOW, NOW + remaining) is expected


def test_derive_status_is_deterministic():
    eta = NOW + timedelta(hours=1)
    assert derive_status(NOW, eta) == derive_status(NOW, eta)


def test_status_values_match_wire_names():
    assert [s.value for s in TrackingStatus] == [
        'processing', 'assigned', 'in-transit', 'approaching', 'delivered',
    ]


class TestParse:
    def test_known_values(self):
        assert TrackingStatus.parse('in-transit') is TrackingStatus.IN_TRANSIT
        assert TrackingStatus.parse(' Delivered ') is TrackingStatus.DELIVERED
        assert TrackingStatus.parse(TrackingStatus.ASSIGNED) is TrackingStatus.ASSIGNED

    def test_free_text_is_none(self):
        assert TrackingStatus.parse('delayed') is None
        assert TrackingStatus.parse('') is None
        assert TrackingStatus.parse(None) is None


class TestResolveStatus:
    def test_clock_advances_stored_stage(self):
        assert resolve_status(TrackingStatus.PROCESSING, TrackingStatus.APPROACHING) is TrackingStatus.APPROACHING

    def test_clock_never_rolls_back_recorded_stage(self):
        assert resolve_status(TrackingStatus.DELIVERED, TrackingStatus.ASSIGNED) is TrackingStatus.DELIVERED

    def test_missing_stored_stage_uses_derived(self):
        assert resolve_status(None, TrackingStatus.IN_TRANSIT) is TrackingStatus.IN_TRANSIT
