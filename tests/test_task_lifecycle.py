# tests/test_task_lifecycle.py

from __future__ import annotations

from datetime import timedelta

import pytest
from django.db import IntegrityError, transaction
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from activity.models import ActionType, ActivityLog
from task.exceptions import TaskConflict, TaskNotFound, TaskPermissionDenied
from task.models import LegacyStatus, Priority, Task, TaskState
from task.services import list_tasks

pytestmark = pytest.mark.django_db


def snapshot(task: Task) -> dict:
    row = Task.objects.values().get(pk=task.pk)
    row.pop('updated_at')
    return row


def log_count(task: Task, action_type: str | None = None) -> int:
    qs = ActivityLog.objects.filter(task_id=task.pk)
    if action_type:
        qs = qs.filter(action_type=action_type)
    return qs.count()


# ----------------------------
# create
# ----------------------------

def test_create_defaults_and_side_effects(service, notifier, creator, assignee) -> None:
    task = service.create_task(creator, {
        'description': '  Ship release notes  ',
        'assigned_user': assignee,
        'priority': Priority.MEDIUM,
    })

    assert task.description == 'Ship release notes'
    assert task.created_user == creator
    assert task.assigned_user == assignee
    assert task.due_date == timezone.localdate()
    assert task.state == TaskState.OPEN
    assert task.completed is False
    assert task.status is None
    assert task.abbreviation.startswith('M')

    assert log_count(task, ActionType.CREATE) == 1
    assert notifier.kinds == ['task_created']
    assert notifier.sent[0].actor_id == creator.pk


@pytest.mark.parametrize('data, field', [
    ({'description': '', 'priority': 'high'}, 'description'),
    ({'description': 'x', 'priority': 'urgent'}, 'priority'),
    ({'description': 'x', 'priority': 'high', 'assigned_user': None}, 'assigned_user'),
])
def test_create_rejects_malformed_input_before_persisting(service, notifier, creator, assignee, data, field) -> None:
    payload = {'assigned_user': assignee, **data}
    with pytest.raises(ValidationError) as exc:
        service.create_task(creator, payload)

    assert field in exc.value.detail
    assert Task.objects.count() == 0
    assert ActivityLog.objects.count() == 0
    assert notifier.sent == []


def test_create_rejects_disabled_assignee(service, creator, make_user) -> None:
    disabled = make_user('gone', is_active=False)
    with pytest.raises(ValidationError):
        service.create_task(creator, {'description': 'x', 'assigned_user': disabled})


def test_list_tasks_scopes_and_filters(service, task, creator, assignee, outsider, admin_user) -> None:
    service.create_task(outsider, {'description': 'Private errand', 'assigned_user': outsider})
    service.mark_complete(assignee, task.pk)

    assert list(list_tasks(creator)) == [task]
    assert list(list_tasks(assignee, 'completed')) == [task]
    assert list(list_tasks(assignee, 'pending')) == []
    assert list_tasks(admin_user).count() == 2
    with pytest.raises(ValidationError):
        list_tasks(assignee, 'later')


def test_unknown_task_is_not_found(service, assignee) -> None:
    with pytest.raises(TaskNotFound):
        service.get_task(9999)
    with pytest.raises(TaskNotFound):
        service.mark_complete(assignee, 9999)
    with pytest.raises(TaskNotFound):
        service.get_task_by_abbreviation('H99990001')


# ----------------------------
# hold / resume
# ----------------------------

def test_put_on_hold_and_resume(service, notifier, task, assignee) -> None:
    held = service.put_on_hold(assignee, task.pk, 'waiting for data')
    assert held.state == TaskState.ON_HOLD
    assert held.on_hold_reason == 'waiting for data'
    assert held.status == LegacyStatus.ON_HOLD
    assert held.completed is False

    resumed = service.resume(assignee, task.pk)
    assert resumed.state == TaskState.OPEN
    assert resumed.on_hold_reason == ''

    assert notifier.kinds == ['task_on_hold', 'task_resumed']
    assert log_count(task, ActionType.UPDATE) == 2


def test_hold_requires_reason(service, notifier, task, assignee) -> None:
    before = snapshot(task)
    with pytest.raises(ValidationError):
        service.put_on_hold(assignee, task.pk, '   ')
    assert snapshot(task) == before
    assert notifier.sent == []


def test_only_assignee_can_hold(service, notifier, task, creator) -> None:
    before = snapshot(task)
    with pytest.raises(TaskPermissionDenied):
        service.put_on_hold(creator, task.pk, 'not mine to pause')
    assert snapshot(task) == before
    assert log_count(task, ActionType.UPDATE) == 0
    assert notifier.sent == []


def test_cannot_hold_completed_task(service, task, assignee) -> None:
    service.mark_complete(assignee, task.pk)
    with pytest.raises(TaskConflict):
        service.put_on_hold(assignee, task.pk, 'too late')


def test_resume_requires_hold(service, task, assignee) -> None:
    with pytest.raises(TaskConflict):
        service.resume(assignee, task.pk)


# ----------------------------
# complete / incomplete
# ----------------------------

def test_creator_cannot_mark_complete(service, notifier, task, creator) -> None:
    before = snapshot(task)
    with pytest.raises(TaskPermissionDenied):
        service.mark_complete(creator, task.pk)

    assert snapshot(task) == before
    assert log_count(task, ActionType.COMPLETED) == 0
    assert notifier.sent == []


def test_complete_from_hold_clears_reason(service, task, assignee) -> None:
    service.put_on_hold(assignee, task.pk, 'blocked')
    done = service.mark_complete(assignee, task.pk)

    assert done.completed is True
    assert done.state == TaskState.COMPLETED
    assert done.status == LegacyStatus.COMPLETED
    assert done.on_hold_reason == ''


def test_completing_twice_does_not_duplicate_log(service, notifier, task, assignee) -> None:
    service.mark_complete(assignee, task.pk)
    before = snapshot(task)

    with pytest.raises(TaskConflict):
        service.mark_complete(assignee, task.pk)

    assert snapshot(task) == before
    assert log_count(task, ActionType.COMPLETED) == 1
    assert notifier.kinds == ['task_completed']


def test_mark_incomplete(service, notifier, task, assignee, creator) -> None:
    with pytest.raises(TaskConflict):
        service.mark_incomplete(assignee, task.pk)

    service.mark_complete(assignee, task.pk)
    with pytest.raises(TaskPermissionDenied):
        service.mark_incomplete(creator, task.pk)

    reopened = service.mark_incomplete(assignee, task.pk)
    assert reopened.state == TaskState.OPEN
    assert reopened.status is None
    assert notifier.kinds == ['task_completed', 'task_reopened']


# ----------------------------
# extension requests
# ----------------------------

def test_extension_request_and_approval(service, notifier, task, assignee, creator) -> None:
    new_date = timezone.localdate() + timedelta(days=10)

    requested = service.request_extension(assignee, task.pk, new_date, 'need more time')
    assert requested.requested_date == new_date
    assert requested.requested_date_reason == 'need more time'
    assert requested.status == LegacyStatus.REQUEST_DATE_EXTENSION

    approved = service.approve_extension(creator, task.pk)
    assert approved.due_date == new_date
    assert approved.requested_date is None
    assert approved.requested_date_reason is None
    assert approved.is_request_date_extension_approved is True
    assert approved.status is None

    assert notifier.kinds == ['task_extension_requested', 'task_extension_approved']


def test_extension_rejection_keeps_due_date(service, task, assignee, creator) -> None:
    original_due = task.due_date
    service.request_extension(assignee, task.pk, original_due + timedelta(days=3), 'vacation')

    rejected = service.reject_extension(creator, task.pk)
    assert rejected.due_date == original_due
    assert rejected.requested_date is None
    assert rejected.requested_date_reason is None
    assert rejected.is_request_date_extension_approved is False


def test_assignee_cannot_approve_own_request(service, notifier, task, assignee) -> None:
    service.request_extension(assignee, task.pk, timezone.localdate() + timedelta(days=1), 'please')
    before = snapshot(task)

    with pytest.raises(TaskPermissionDenied):
        service.approve_extension(assignee, task.pk)
    with pytest.raises(TaskPermissionDenied):
        service.reject_extension(assignee, task.pk)

    assert snapshot(task) == before
    assert notifier.kinds == ['task_extension_requested']


def test_only_one_pending_request(service, task, assignee) -> None:
    later = timezone.localdate() + timedelta(days=5)
    service.request_extension(assignee, task.pk, later, 'first')
    with pytest.raises(TaskConflict):
        service.request_extension(assignee, task.pk, later + timedelta(days=1), 'second')


def test_request_requires_date_and_reason(service, task, assignee) -> None:
    with pytest.raises(ValidationError) as exc:
        service.request_extension(assignee, task.pk, None, '')
    assert set(exc.value.detail) == {'requested_date', 'requested_date_reason'}

    with pytest.raises(ValidationError):
        service.request_extension(assignee, task.pk, timezone.localdate() - timedelta(days=1), 'past')


def test_request_blocked_on_hold_or_completed(service, task, assignee) -> None:
    later = timezone.localdate() + timedelta(days=5)
    service.put_on_hold(assignee, task.pk, 'paused')
    with pytest.raises(TaskConflict):
        service.request_extension(assignee, task.pk, later, 'x')

    service.mark_complete(assignee, task.pk)
    with pytest.raises(TaskConflict):
        service.request_extension(assignee, task.pk, later, 'x')


def test_approve_without_request_conflicts(service, task, creator) -> None:
    with pytest.raises(TaskConflict):
        service.approve_extension(creator, task.pk)


def test_pending_request_cannot_be_decided_after_completion(service, notifier, task, assignee, creator) -> None:
    original_due = task.due_date
    later = timezone.localdate() + timedelta(days=5)
    service.request_extension(assignee, task.pk, later, 'more time')
    service.mark_complete(assignee, task.pk)

    with pytest.raises(TaskConflict):
        service.approve_extension(creator, task.pk)
    with pytest.raises(TaskConflict):
        service.reject_extension(creator, task.pk)

    reloaded = Task.objects.get(pk=task.pk)
    assert reloaded.due_date == original_due
    assert reloaded.requested_date == later
    assert notifier.kinds == ['task_extension_requested', 'task_completed']


def test_pending_request_survives_hold(service, task, assignee) -> None:
    later = timezone.localdate() + timedelta(days=5)
    service.request_extension(assignee, task.pk, later, 'more time')
    held = service.put_on_hold(assignee, task.pk, 'blocked')

    assert held.state == TaskState.ON_HOLD
    assert held.requested_date == later


# ----------------------------
# delegation
# ----------------------------

def test_delegate_moves_rights_to_new_assignee(service, notifier, task, assignee, creator, make_user) -> None:
    helper = make_user('helper')

    delegated = service.delegate(assignee, task.pk, helper)
    assert delegated.assigned_user == helper
    assert notifier.sent[-1].kind == 'task_delegated'

    with pytest.raises(TaskPermissionDenied):
        service.mark_complete(assignee, task.pk)
    with pytest.raises(TaskPermissionDenied):
        service.delete_task(assignee, task.pk)

    assert service.mark_complete(helper, task.pk).completed is True


def test_delegate_guards(service, task, assignee, creator, make_user) -> None:
    helper = make_user('helper')

    with pytest.raises(TaskPermissionDenied):
        service.delegate(creator, task.pk, helper)
    with pytest.raises(ValidationError):
        service.delegate(assignee, task.pk, assignee)

    service.put_on_hold(assignee, task.pk, 'paused')
    with pytest.raises(TaskConflict):
        service.delegate(assignee, task.pk, helper)


# ----------------------------
# edit / delete
# ----------------------------

def test_update_by_creator_notifies_assignee(service, notifier, task, creator) -> None:
    new_due = timezone.localdate() + timedelta(days=2)
    updated = service.update_task(creator, task.pk, {
        'description': 'Prepare the annual report',
        'due_date': new_due,
        'remarks': 'see last year',
        'abbreviation': 'IGNORED',
    })

    assert updated.description == 'Prepare the annual report'
    assert updated.due_date == new_due
    assert updated.abbreviation == task.abbreviation
    assert notifier.kinds == ['task_updated']
    assert log_count(task, ActionType.UPDATE) == 1


def test_update_guards(service, task, outsider, assignee) -> None:
    with pytest.raises(TaskPermissionDenied):
        service.update_task(outsider, task.pk, {'remarks': 'hi'})
    with pytest.raises(ValidationError):
        service.update_task(assignee, task.pk, {})

    service.mark_complete(assignee, task.pk)
    with pytest.raises(TaskConflict):
        service.update_task(assignee, task.pk, {'remarks': 'late edit'})


def test_delete_cascades_logs_and_records_deletion(service, notifier, task, creator, assignee) -> None:
    service.put_on_hold(assignee, task.pk, 'paused')
    assert log_count(task) == 2

    deleted = service.delete_task(creator, task.pk)

    assert deleted.pk == task.pk
    assert not Task.objects.filter(pk=task.pk).exists()
    assert log_count(task) == 0
    entry = ActivityLog.objects.get(action_type=ActionType.DELETE)
    assert entry.task is None
    assert entry.task_abbreviation == task.abbreviation
    assert entry.user == creator
    assert notifier.sent[-1].kind == 'task_deleted'

    with pytest.raises(TaskNotFound):
        service.get_task(task.pk)


def test_delete_guards(service, task, outsider, assignee) -> None:
    with pytest.raises(TaskPermissionDenied):
        service.delete_task(outsider, task.pk)

    service.mark_complete(assignee, task.pk)
    with pytest.raises(TaskConflict):
        service.delete_task(assignee, task.pk)
    assert Task.objects.filter(pk=task.pk).exists()


# ----------------------------
# invariants held by the database
# ----------------------------

def test_database_rejects_on_hold_without_reason(task) -> None:
    with pytest.raises(IntegrityError), transaction.atomic():
        Task.objects.filter(pk=task.pk).update(state=TaskState.ON_HOLD)


def test_database_rejects_half_extension_request(task) -> None:
    with pytest.raises(IntegrityError), transaction.atomic():
        Task.objects.filter(pk=task.pk).update(requested_date=timezone.localdate())
