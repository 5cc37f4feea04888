# tests/test_cronjob_poller.py

from __future__ import annotations

from datetime import date, datetime, time, timedelta

import pytest
from django.utils import timezone

from cronjob.models import Cronjob, Interval
from cronjob.poller import CronjobPoller, auto_abbreviation, run_tick
from task.models import Priority, Task

pytestmark = pytest.mark.django_db

NINE = time(9, 0, 0)


def at(clock: time, day: date | None = None) -> datetime:
    return timezone.make_aware(datetime.combine(day or timezone.localdate(), clock))


@pytest.fixture()
def make_cronjob(assignee):
    def _make_cronjob(**overrides):
        values = {
            'task_description': 'Back up the shared drive',
            'creation_time': NINE,
            'user': assignee,
            'interval': Interval.DAILY,
            'priority': Priority.MEDIUM,
        }
        values.update(overrides)
        return Cronjob.objects.create(**values)
    return _make_cronjob


def anchor_on(cronjob: Cronjob, day: date) -> Cronjob:
    Cronjob.objects.filter(pk=cronjob.pk).update(created_at=at(time(8, 0), day))
    cronjob.refresh_from_db()
    return cronjob


# ----------------------------
# run_tick
# ----------------------------

def test_daily_template_fires_at_its_second(service, notifier, make_cronjob, assignee) -> None:
    cronjob = make_cronjob()
    now = at(NINE)

    created = run_tick(now=now, service=service)

    assert len(created) == 1
    task = created[0]
    assert task.abbreviation == auto_abbreviation(cronjob, now)
    assert task.abbreviation.startswith(f'AUTO-{cronjob.pk}-')
    assert task.description == 'Back up the shared drive'
    assert task.assigned_user == assignee
    assert task.created_user == assignee
    assert task.priority == Priority.MEDIUM
    assert task.due_date == timezone.localdate(now)
    assert notifier.kinds == ['task_created']

    cronjob.refresh_from_db()
    assert cronjob.last_fired_at == now


def test_same_second_fires_only_once(service, make_cronjob) -> None:
    make_cronjob()
    now = at(NINE)

    run_tick(now=now, service=service)
    assert run_tick(now=now + timedelta(microseconds=400), service=service) == []
    assert Task.objects.count() == 1


def test_other_seconds_do_not_fire(service, make_cronjob) -> None:
    make_cronjob()

    assert run_tick(now=at(time(9, 0, 1)), service=service) == []
    assert run_tick(now=at(time(8, 59, 59)), service=service) == []
    assert Task.objects.count() == 0


def test_failing_template_does_not_stop_the_tick(service, make_cronjob, make_user) -> None:
    disabled = make_user('left-company', is_active=False)
    broken = make_cronjob(user=disabled)
    healthy = make_cronjob(task_description='Rotate the logs')

    created = run_tick(now=at(NINE), service=service)

    assert [t.description for t in created] == ['Rotate the logs']
    broken.refresh_from_db()
    healthy.refresh_from_db()
    assert broken.last_fired_at is None
    assert healthy.last_fired_at is not None


def test_weekly_template_fires_on_its_weekday(service, make_cronjob) -> None:
    today = timezone.localdate()
    cronjob = anchor_on(make_cronjob(interval=Interval.WEEKLY), today - timedelta(days=14))
    assert run_tick(now=at(NINE, today), service=service) != []

    Cronjob.objects.filter(pk=cronjob.pk).update(last_fired_at=None)
    anchor_on(cronjob, today - timedelta(days=15))
    assert run_tick(now=at(NINE, today), service=service) == []


# ----------------------------
# Cronjob.is_due_on
# ----------------------------

@pytest.mark.parametrize('interval, anchor, day, expected', [
    (Interval.DAILY, date(2025, 1, 10), date(2025, 1, 9), False),
    (Interval.DAILY, date(2025, 1, 10), date(2025, 3, 2), True),
    (Interval.WEEKLY, date(2025, 1, 6), date(2025, 1, 13), True),
    (Interval.WEEKLY, date(2025, 1, 6), date(2025, 1, 14), False),
    (Interval.MONTHLY, date(2025, 1, 15), date(2025, 2, 15), True),
    (Interval.MONTHLY, date(2025, 1, 15), date(2025, 2, 16), False),
    (Interval.MONTHLY, date(2025, 1, 31), date(2025, 2, 28), True),
    (Interval.QUARTERLY, date(2025, 1, 15), date(2025, 4, 15), True),
    (Interval.QUARTERLY, date(2025, 1, 15), date(2025, 3, 15), False),
    (Interval.HALF_YEARLY, date(2025, 1, 15), date(2025, 7, 15), True),
    (Interval.YEARLY, date(2024, 2, 29), date(2025, 2, 28), True),
    (Interval.YEARLY, date(2024, 2, 29), date(2025, 3, 1), False),
])
def test_is_due_on(make_cronjob, interval, anchor, day, expected) -> None:
    cronjob = anchor_on(make_cronjob(interval=interval), anchor)
    assert cronjob.is_due_on(day) is expected


# ----------------------------
# CronjobPoller
# ----------------------------

def test_overlapping_tick_is_skipped(service) -> None:
    poller = CronjobPoller(interval=60, service=service)
    poller._lock.acquire()
    try:
        assert poller.tick(now=at(NINE)) is None
    finally:
        poller._lock.release()


@pytest.mark.django_db(transaction=True)
def test_tick_runs_due_templates(service, make_cronjob) -> None:
    make_cronjob()
    poller = CronjobPoller(interval=60, service=service)

    created = poller.tick(now=at(NINE))

    assert len(created) == 1


def test_ticks_align_to_interval_boundaries() -> None:
    poller = CronjobPoller(interval=60, clock=lambda: 125.0)
    assert poller.seconds_until_next_tick() == pytest.approx(55.0)


def test_stopped_poller_exits() -> None:
    poller = CronjobPoller(interval=60, clock=lambda: 0.5)
    poller.stop()
    poller.run_forever()


# ----------------------------
# API
# ----------------------------

def test_cronjob_api_is_admin_only(client_for, assignee, admin_user) -> None:
    payload = {
        'task_description': 'Send the weekly digest',
        'creation_time': '09:00:00',
        'user': assignee.pk,
        'interval': 'weekly',
        'priority': 'normal',
    }

    assert client_for(assignee).post('/api/v1/cronjobs/', payload, format='json').status_code == 403

    response = client_for(admin_user).post('/api/v1/cronjobs/', payload, format='json')
    assert response.status_code == 201
    assert response.json()['creation_time'] == '09:00:00'
    assert response.json()['user']['id'] == assignee.pk
