"""Tests for the tracking repository."""

import re
from datetime import timedelta

import pytest
from sqlalchemy import func, select, update

from pigeonpost.clock import utcnow
from pigeonpost.errors import NotFound, ValidationError
from pigeonpost.models import SessionLocal, Tracking, TrackingUpdate, storage_session
from pigeonpost.services import TrackingRepository
from pigeonpost.tracking import TrackingStatus


def _stored_status(tracking_number):
    with storage_session() as session:
        return session.execute(
            select(Tracking.status).where(Tracking.tracking_number == tracking_number)
        ).scalar_one()


def _move_delivery(tracking_number, when):
    with storage_session() as session:
        session.execute(
            update(Tracking)
            .where(Tracking.tracking_number == tracking_number)
            .values(estimated_delivery=when)
        )


def _create(repository, hours=3, **extra):
    return repository.create(
        sender='Ada',
        recipient='Grace',
        message='Meet me at the loft',
        estimated_delivery=utcnow() + timedelta(hours=hours),
        **extra
    )


class TestCreate:
    def test_create_derives_status_and_logs_initial_event(self, tracking):
        assert re.fullmatch(r'PPS[0-9A-Z]+', tracking.tracking_number)
        assert tracking.status is TrackingStatus.ASSIGNED
        assert len(tracking.timeline) == 5
        assert [u.created_by for u in tracking.updates] == ['system']
        assert tracking.sender_address == 'Pigeon Post Service'
        assert tracking.recipient_address == 'Delivery Location'
        assert _stored_status(tracking.tracking_number) == 'assigned'

    def test_create_accepts_iso_strings_and_addresses(self, repository):
        view = repository.create(
            sender='Ada',
            recipient='Grace',
            message='hello',
            estimated_delivery=(utcnow() + timedelta(days=1)).isoformat().replace('+00:00', 'Z'),
            sender_address='Lovelace Loft',
            recipient_address='Hopper House',
            pigeon_name='Percy',
        )

        assert view.status is TrackingStatus.PROCESSING
        assert view.sender_address == 'Lovelace Loft'
        assert view.recipient_address == 'Hopper House'
        assert view.pigeon_name == 'Percy'

    def test_tracking_numbers_unique(self, repository):
        numbers = {_create(repository).tracking_number for _ in range(5)}
        assert len(numbers) == 5

    @pytest.mark.parametrize('missing', ['sender', 'recipient', 'message', 'estimated_delivery'])
    def test_missing_required_field(self, repository, missing):
        kwargs = {
            'sender': 'Ada',
            'recipient': 'Grace',
            'message': 'hi',
            'estimated_delivery': utcnow() + timedelta(hours=1),
        }
        kwargs[missing] = None

        with pytest.raises(ValidationError):
            repository.create(**kwargs)

    def test_malformed_delivery_time(self, repository):
        with pytest.raises(ValidationError):
            repository.create(sender='Ada', recipient='Grace', message='hi', estimated_delivery='next tuesday')

    @pytest.mark.parametrize('field', ['sender', 'recipient', 'message'])
    def test_non_text_field_rejected(self, repository, field):
        kwargs = dict(
            sender='Ada',
            recipient='Grace',
            message='hi',
            estimated_delivery=utcnow() + timedelta(hours=1),
        )
        kwargs[field] = 123

        with pytest.raises(ValidationError, match=field):
            repository.create(**kwargs)


class TestRead:
    def test_unknown_number(self, repository):
        with pytest.raises(NotFound):
            repository.get('PPSMISSING')

    def test_stale_status_recomputed_and_persisted(self, repository, tracking):
        _move_delivery(tracking.tracking_number, utcnow() - timedelta(minutes=5))

        view = repository.get(tracking.tracking_number)

        assert view.status is TrackingStatus.DELIVERED
        assert all(e.completed for e in view.timeline)
        assert _stored_status(tracking.tracking_number) == 'delivered'

    def test_persist_failure_not_surfaced(self, tracking, tmp_path, caplog):
        from sqlalchemy import create_engine
        from sqlalchemy.orm import sessionmaker

        broken = sessionmaker(bind=create_engine(f'sqlite:///{tmp_path}/missing/dir/x.db'))
        calls = []

        def factory():
            calls.append(1)
            return SessionLocal() if len(calls) == 1 else broken()

        _move_delivery(tracking.tracking_number, utcnow() + timedelta(minutes=10))
        repository = TrackingRepository(session_factory=factory)

        view = repository.get(tracking.tracking_number)

        assert view.status is TrackingStatus.APPROACHING
        assert _stored_status(tracking.tracking_number) == 'assigned'
        assert 'Failed to persist recomputed status' in caplog.text

    def test_write_back_keeps_concurrent_status_change(self, tracking, updates):
        calls = []

        def factory():
            calls.append(1)
            if len(calls) == 2:
                # An admin marks it delivered between the read and the write-back
                updates.append_update(
                    tracking.tracking_number, 'delivered', 'Loft', 'Handed over',
                )
            return SessionLocal()

        _move_delivery(tracking.tracking_number, utcnow() + timedelta(hours=1))
        repository = TrackingRepository(session_factory=factory)

        view = repository.get(tracking.tracking_number)

        assert len(calls) == 2
        assert view.status is TrackingStatus.IN_TRANSIT
        assert _stored_status(tracking.tracking_number) == 'delivered'

    def test_list_all_newest_first(self, repository):
        first = _create(repository, hours=1)
        second = _create(repository, hours=10)

        views = repository.list_all()

        assert [v.tracking_number for v in views] == [second.tracking_number, first.tracking_number]
        assert views[0].status is TrackingStatus.PROCESSING
        assert views[1].status is TrackingStatus.IN_TRANSIT
        assert all(v.updates is None for v in views)


def test_delivered_update_end_to_end(repository, updates):
    created = _create(repository, hours=3)
    assert repository.get(created.tracking_number).status is TrackingStatus.ASSIGNED

    updates.append_update(
        created.tracking_number,
        status='delivered',
        location='Grace\'s windowsill',
        description='Handed over',
    )
    view = repository.get(created.tracking_number)

    assert view.status is TrackingStatus.DELIVERED
    assert [u.created_by for u in view.updates] == ['system', 'admin']
    assert view.updates[0].timestamp <= view.updates[1].timestamp
    assert all(e.completed for e in view.timeline)


class TestEdit:
    def test_update_without_status_rederives(self, repository, tracking):
        view = repository.update(
            tracking.tracking_number,
            sender='Ada L.',
            recipient='Grace H.',
            message='Changed plans',
            estimated_delivery=utcnow() + timedelta(minutes=20),
        )

        assert view.sender == 'Ada L.'
        assert view.message == 'Changed plans'
        assert view.status is TrackingStatus.APPROACHING
        assert _stored_status(tracking.tracking_number) == 'approaching'

    def test_update_without_status_drops_label(self, repository, tracking):
        repository.set_status(tracking.tracking_number, 'delayed')

        view = repository.update(
            tracking.tracking_number,
            sender='Ada',
            recipient='Grace',
            message='m',
            estimated_delivery=utcnow() + timedelta(hours=3),
        )

        assert view.status_label is None
        assert view.status is TrackingStatus.ASSIGNED

    def test_update_with_status_sets_it(self, repository, tracking):
        view = repository.update(
            tracking.tracking_number,
            sender='Ada',
            recipient='Grace',
            message='m',
            estimated_delivery=utcnow() + timedelta(days=2),
            status='delivered',
        )
        assert view.status is TrackingStatus.DELIVERED

    def test_update_unknown(self, repository):
        with pytest.raises(NotFound):
            repository.update(
                'PPSNOPE', sender='a', recipient='b', message='c',
                estimated_delivery=utcnow() + timedelta(hours=1),
            )

    def test_set_status_without_event(self, repository, tracking):
        view = repository.set_status(tracking.tracking_number, 'approaching')

        assert view.status is TrackingStatus.APPROACHING
        assert len(view.updates) == 1

    def test_set_status_with_event(self, repository, tracking):
        view = repository.set_status(
            tracking.tracking_number,
            'issue',
            location='Barn',
            description='Pigeon distracted by seeds',
            emoji='⚠️',
        )

        assert view.status_label == 'issue'
        assert view.status is TrackingStatus.ASSIGNED
        assert view.updates[-1].label == 'issue'
        assert view.updates[-1].emoji == '⚠️'

    def test_set_status_requires_value(self, repository, tracking):
        with pytest.raises(ValidationError):
            repository.set_status(tracking.tracking_number, '')

    def test_set_status_rejects_non_text(self, repository, tracking):
        with pytest.raises(ValidationError):
            repository.set_status(tracking.tracking_number, 5)

    def test_delete_cascades_updates(self, repository, updates, tracking):
        updates.append_update(tracking.tracking_number, status='in-transit', location='Sky', description='Flying')

        repository.delete(tracking.tracking_number)

        with pytest.raises(NotFound):
            repository.get(tracking.tracking_number)
        with storage_session() as session:
            remaining = session.execute(select(func.count(TrackingUpdate.id))).scalar_one()
        assert remaining == 0

    def test_delete_unknown(self, repository):
        with pytest.raises(NotFound):
            repository.delete('PPSNOPE')


class TestAdminOperations:
    def test_refresh_all_statuses(self, repository):
        due = _create(repository, hours=3)
        _create(repository, hours=10)
        _move_delivery(due.tracking_number, utcnow() - timedelta(seconds=1))

        assert repository.refresh_all_statuses() == 1
        assert _stored_status(due.tracking_number) == 'delivered'
        assert repository.refresh_all_statuses() == 0

    def test_status_counts(self, repository):
        _create(repository, hours=3)
        _create(repository, hours=3)
        _create(repository, hours=10)

        assert repository.status_counts() == {
            'total': 3,
            'processing': 1,
            'assigned': 2,
            'inTransit': 0,
            'approaching': 0,
            'delivered': 0,
        }

    def test_clear_all(self, repository):
        _create(repository)
        _create(repository)

        assert repository.clear_all() == 2
        assert repository.list_all() == []
        assert repository.status_counts()['total'] == 0
