"""Tests for display timeline generation."""

from datetime import datetime, timedelta, timezone

import pytest

from pigeonpost.tracking import STAGES, TrackingStatus, generate_timeline

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
CREATED = NOW - timedelta(hours=1)
STAGE_NAMES = [
    'Message Received',
    'Pigeon Assigned',
    'In Flight',
    'Approaching Destination',
    'Delivered',
]


@pytest.mark.parametrize('eta', [
    NOW - timedelta(days=1),
    NOW,
    NOW + timedelta(minutes=5),
    NOW + timedelta(days=2),
])
def test_always_five_stages_in_order(eta):
    timeline = generate_timeline(NOW, CREATED, eta, TrackingStatus.PROCESSING)
    assert [e.stage for e in timeline] == STAGE_NAMES
    assert [name for name, _ in STAGES] == STAGE_NAMES


class TestPastDue:
    def test_all_completed_ending_at_eta(self):
        eta = NOW - timedelta(minutes=10)
        timeline = generate_timeline(NOW, CREATED, eta, TrackingStatus.PROCESSING)

        assert all(e.completed for e in timeline)
        assert timeline[-1].time == eta

        times = [e.time for e in timeline]
        assert all(a < b for a, b in zip(times, times[1:]))
        assert [b - a for a, b in zip(times, times[1:])] == [timedelta(hours=1)] * 4

    def test_ignores_created_at(self):
        eta = NOW - timedelta(hours=2)
        early = generate_timeline(NOW, NOW - timedelta(days=30), eta, 'delivered')
        late = generate_timeline(NOW, NOW - timedelta(minutes=1), eta, 'delivered')
        assert early == late

    def test_exactly_due_is_past_due(self):
        timeline = generate_timeline(NOW, CREATED, NOW, TrackingStatus.APPROACHING)
        assert all(e.completed for e in timeline)
        assert timeline[-1].time == NOW


class TestFuture:
    def test_stage_times_follow_offsets(self):
        eta = NOW + timedelta(hours=10)
        timeline = generate_timeline(NOW, CREATED, eta, TrackingStatus.PROCESSING)

        assert [e.time for e in timeline] == [
            NOW,
            NOW + timedelta(hours=2),
            NOW + timedelta(hours=4),
            NOW + timedelta(hours=8),
            eta,
        ]

    @pytest.mark.parametrize('status, expected', [
        (TrackingStatus.PROCESSING, [True, False, False, False, False]),
        (TrackingStatus.ASSIGNED, [True, True, False, False, False]),
        (TrackingStatus.IN_TRANSIT, [True, True, True, False, False]),
        (TrackingStatus.APPROACHING, [True, True, True, True, False]),
        (TrackingStatus.DELIVERED, [True, True, True, True, True]),
    ])
    def test_completion_follows_status(self, status, expected):
        eta = NOW + timedelta(hours=1)
        timeline = generate_timeline(NOW, CREATED, eta, status)
        assert [e.completed for e in timeline] == expected

    def test_accepts_status_strings(self):
        eta = NOW + timedelta(hours=1)
        timeline = generate_timeline(NOW, CREATED, eta, 'in-transit')
        assert [e.completed for e in timeline] == [True, True, True, False, False]

    def test_unknown_status_compares_against_clock(self):
        eta = NOW + timedelta(hours=1)
        timeline = generate_timeline(NOW, CREATED, eta, 'delayed')
        assert [e.completed for e in timeline] == [True, False, False, False, False]

    def test_flags_stable_across_calls(self):
        eta = NOW + timedelta(hours=3)
        first = generate_timeline(NOW, CREATED, eta, TrackingStatus.ASSIGNED)
        second = generate_timeline(NOW + timedelta(microseconds=500), CREATED, eta, TrackingStatus.ASSIGNED)

        assert [e.completed for e in first] == [e.completed for e in second]
        assert [e.stage for e in first] == [e.stage for e in second]
        for a, b in zip(first, second):
            assert abs(a.time - b.time) < timedelta(seconds=1)


def test_entry_to_dict():
    eta = NOW + timedelta(hours=1)
    entry = generate_timeline(NOW, CREATED, eta, TrackingStatus.PROCESSING)[0]
    assert entry.to_dict() == {
        'stage': 'Message Received',
        'time': '2026-03-01T12:00:00+00:00',
        'completed': True,
    }
