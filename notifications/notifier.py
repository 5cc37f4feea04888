import logging
from enum import Enum

from django.utils import timezone

from utils.text import strip_html

logger = logging.getLogger(__name__)


class NotificationKind(str, Enum):
    TASK_CREATED = 'task_created'
    TASK_UPDATED = 'task_updated'
    TASK_COMPLETED = 'task_completed'
    TASK_REOPENED = 'task_reopened'
    TASK_ON_HOLD = 'task_on_hold'
    TASK_RESUMED = 'task_resumed'
    TASK_EXTENSION_REQUESTED = 'task_extension_requested'
    TASK_EXTENSION_APPROVED = 'task_extension_approved'
    TASK_EXTENSION_REJECTED = 'task_extension_rejected'
    TASK_DELEGATED = 'task_delegated'
    TASK_DELETED = 'task_deleted'
    TASK_FILES_UPDATED = 'task_files_updated'


MESSAGES = {
    NotificationKind.TASK_CREATED: 'New task created: {}',
    NotificationKind.TASK_UPDATED: 'Task updated: {}',
    NotificationKind.TASK_COMPLETED: 'Task completed: {}',
    NotificationKind.TASK_REOPENED: 'Task reopened: {}',
    NotificationKind.TASK_ON_HOLD: 'Task put on hold: {}',
    NotificationKind.TASK_RESUMED: 'Task resumed: {}',
    NotificationKind.TASK_EXTENSION_REQUESTED: 'Extension requested for task: {}',
    NotificationKind.TASK_EXTENSION_APPROVED: 'Extension approved for task: {}',
    NotificationKind.TASK_EXTENSION_REJECTED: 'Extension rejected for task: {}',
    NotificationKind.TASK_DELEGATED: 'Task delegated to you: {}',
    NotificationKind.TASK_DELETED: 'Task deleted: {}',
    NotificationKind.TASK_FILES_UPDATED: 'Task files updated: {}',
}

# Events the assignee raises for the creator's attention
TO_CREATOR = {
    NotificationKind.TASK_COMPLETED,
    NotificationKind.TASK_REOPENED,
    NotificationKind.TASK_ON_HOLD,
    NotificationKind.TASK_RESUMED,
    NotificationKind.TASK_EXTENSION_REQUESTED,
}

# Events the assignee has to act on
TO_ASSIGNEE = {
    NotificationKind.TASK_CREATED,
    NotificationKind.TASK_EXTENSION_APPROVED,
    NotificationKind.TASK_EXTENSION_REJECTED,
    NotificationKind.TASK_DELEGATED,
}


def resolve_recipient(kind, task, actor_id=None):
    """
    Pick the user a lifecycle event is pushed to.

    Fixed-direction events go to the creator or the assignee; the rest
    (updates, deletion, file changes) go to whichever party did not act.
    """
    kind = NotificationKind(kind)
    if kind in TO_CREATOR:
        return task.created_user_id
    if kind in TO_ASSIGNEE:
        return task.assigned_user_id
    if actor_id is not None and actor_id == task.assigned_user_id:
        return task.created_user_id
    return task.assigned_user_id


def build_notification(kind, task, user_id, actor_id=None):
    kind = NotificationKind(kind)
    title = strip_html(task.description) or task.abbreviation
    return {
        'type': 'notification',
        'kind': kind.value,
        'task_id': task.pk,
        'abbreviation': task.abbreviation,
        'title': title,
        'message': MESSAGES[kind].format(title),
        'actor_id': actor_id,
        'user_id': user_id,
        'timestamp': timezone.now().isoformat(),
    }


class Notifier:
    """
    Fire-and-forget fan-out of task lifecycle events to a user's sessions.
    ``notify`` never raises: the task state is the record, the push is a hint.
    """

    def __init__(self, registry):
        self.registry = registry

    def notify(self, kind, task, actor=None):
        actor_id = getattr(actor, 'pk', actor)
        try:
            user_id = resolve_recipient(kind, task, actor_id)
            if user_id is None:
                return None
            notification = build_notification(kind, task, user_id, actor_id)
            delivered = self.registry.emit(user_id, notification)
            logger.info(
                f"Emitted {notification['kind']} for task {task.abbreviation} "
                f"to user {user_id} ({delivered} session(s))"
            )
            return notification
        except Exception:
            logger.exception(f"Error emitting {kind} notification for task {getattr(task, 'pk', None)}")
            return None
