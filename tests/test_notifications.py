# tests/test_notifications.py

from __future__ import annotations

from types import SimpleNamespace

import pytest

from notifications.notifier import NotificationKind, Notifier, build_notification, resolve_recipient
from notifications.registry import RegistryClosed, SessionRegistry

from .fakes import FakeSender

CREATOR_ID = 1
ASSIGNEE_ID = 2


def make_task(**overrides) -> SimpleNamespace:
    values = {
        'pk': 10,
        'abbreviation': 'H25060001',
        'description': '<p>Renew the <b>lease</b></p>',
        'created_user_id': CREATOR_ID,
        'assigned_user_id': ASSIGNEE_ID,
    }
    values.update(overrides)
    return SimpleNamespace(**values)


# ----------------------------
# SessionRegistry
# ----------------------------

def test_emit_reaches_every_session_of_the_user() -> None:
    sender = FakeSender()
    registry = SessionRegistry(send=sender)
    registry.join(ASSIGNEE_ID, 'tab-1')
    registry.join(ASSIGNEE_ID, 'tab-2')
    registry.join(CREATOR_ID, 'other')

    delivered = registry.emit(ASSIGNEE_ID, {'kind': 'task_created'})

    assert delivered == 2
    assert sorted(session for session, _ in sender.delivered) == ['tab-1', 'tab-2']


def test_emit_without_sessions_is_a_no_op() -> None:
    sender = FakeSender()
    registry = SessionRegistry(send=sender)

    assert registry.emit(ASSIGNEE_ID, {'kind': 'task_created'}) == 0
    assert sender.delivered == []


def test_leave_stops_delivery() -> None:
    sender = FakeSender()
    registry = SessionRegistry(send=sender)
    registry.join(ASSIGNEE_ID, 'tab-1')

    assert registry.leave('tab-1') == ASSIGNEE_ID
    assert registry.leave('tab-1') is None
    assert not registry.is_connected(ASSIGNEE_ID)
    assert registry.emit(ASSIGNEE_ID, {}) == 0


def test_session_belongs_to_one_user() -> None:
    registry = SessionRegistry(send=FakeSender())
    registry.join(CREATOR_ID, 'shared')
    registry.join(ASSIGNEE_ID, 'shared')

    assert registry.sessions_for(CREATOR_ID) == frozenset()
    assert registry.sessions_for(ASSIGNEE_ID) == frozenset({'shared'})


def test_failing_session_does_not_block_others() -> None:
    sender = FakeSender(failing={'stale'})
    registry = SessionRegistry(send=sender)
    registry.join(ASSIGNEE_ID, 'stale')
    registry.join(ASSIGNEE_ID, 'live')

    assert registry.emit(ASSIGNEE_ID, {'kind': 'x'}) == 1
    assert sender.delivered == [('live', {'kind': 'x'})]


def test_closed_registry_refuses_joins_and_drops_messages() -> None:
    sender = FakeSender()
    registry = SessionRegistry(send=sender)
    registry.join(ASSIGNEE_ID, 'tab-1')
    registry.close()

    assert registry.closed
    assert registry.emit(ASSIGNEE_ID, {}) == 0
    with pytest.raises(RegistryClosed):
        registry.join(ASSIGNEE_ID, 'tab-2')


# ----------------------------
# routing and payload
# ----------------------------

@pytest.mark.parametrize('kind, expected', [
    (NotificationKind.TASK_CREATED, ASSIGNEE_ID),
    (NotificationKind.TASK_DELEGATED, ASSIGNEE_ID),
    (NotificationKind.TASK_EXTENSION_APPROVED, ASSIGNEE_ID),
    (NotificationKind.TASK_EXTENSION_REJECTED, ASSIGNEE_ID),
    (NotificationKind.TASK_COMPLETED, CREATOR_ID),
    (NotificationKind.TASK_ON_HOLD, CREATOR_ID),
    (NotificationKind.TASK_RESUMED, CREATOR_ID),
    (NotificationKind.TASK_EXTENSION_REQUESTED, CREATOR_ID),
])
def test_fixed_direction_recipients(kind, expected) -> None:
    assert resolve_recipient(kind, make_task()) == expected


def test_shared_events_go_to_the_other_party() -> None:
    task = make_task()

    assert resolve_recipient(NotificationKind.TASK_UPDATED, task, actor_id=ASSIGNEE_ID) == CREATOR_ID
    assert resolve_recipient(NotificationKind.TASK_UPDATED, task, actor_id=CREATOR_ID) == ASSIGNEE_ID
    assert resolve_recipient('task_deleted', task, actor_id=ASSIGNEE_ID) == CREATOR_ID


def test_notification_payload() -> None:
    payload = build_notification(NotificationKind.TASK_CREATED, make_task(), ASSIGNEE_ID, actor_id=CREATOR_ID)

    assert payload['type'] == 'notification'
    assert payload['kind'] == 'task_created'
    assert payload['task_id'] == 10
    assert payload['abbreviation'] == 'H25060001'
    assert payload['title'] == 'Renew the lease'
    assert payload['message'] == 'New task created: Renew the lease'
    assert payload['user_id'] == ASSIGNEE_ID
    assert payload['actor_id'] == CREATOR_ID
    assert payload['timestamp']


# ----------------------------
# Notifier
# ----------------------------

def test_notifier_pushes_to_recipient_sessions() -> None:
    sender = FakeSender()
    registry = SessionRegistry(send=sender)
    registry.join(CREATOR_ID, 'creator-tab')

    notification = Notifier(registry).notify(
        NotificationKind.TASK_COMPLETED, make_task(), SimpleNamespace(pk=ASSIGNEE_ID),
    )

    assert notification['user_id'] == CREATOR_ID
    assert sender.delivered == [('creator-tab', notification)]


def test_notifier_never_raises() -> None:
    class ExplodingRegistry:
        def emit(self, user_id, message):
            raise RuntimeError('transport down')

    assert Notifier(ExplodingRegistry()).notify(NotificationKind.TASK_CREATED, make_task()) is None
    assert Notifier(SessionRegistry(send=FakeSender())).notify('not_a_kind', make_task()) is None
