"""
Task lifecycle engine.

The only writer of task rows. Each operation validates its input, locks the
row, checks who is acting and whether the task's state allows the change,
then saves, appends one activity entry and pushes one notification.

Guards run before any write, so a rejected call leaves the row, the activity
log and the notification channel untouched.
"""

import copy
import logging

from django.contrib.auth.models import User
from django.db import transaction
from django.db.models import Count, Q
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from activity import services as activity_services
from activity.models import ActionType, ActivityLog
from notifications.notifier import NotificationKind
from .abbreviation import next_abbreviation
from .exceptions import TaskConflict, TaskFileNotFound, TaskNotFound, TaskPermissionDenied
from .models import Priority, Task, TaskState
from .storage import TaskFileStorage

logger = logging.getLogger(__name__)

TASK_FILTERS = ('all', 'pending', 'completed', 'overdue', 'date_extension', 'on_hold')

EDITABLE_FIELDS = ('description', 'due_date', 'priority', 'remarks')


def visible_tasks(user):
    """Admins see every task, everyone else the tasks they are assigned to or created."""
    qs = Task.objects.select_related('assigned_user', 'created_user')
    if user.is_staff:
        return qs
    return qs.filter(Q(assigned_user=user) | Q(created_user=user))


def filter_tasks(qs, filter_name='all', today=None):
    today = today or timezone.localdate()
    filter_name = filter_name or 'all'

    if filter_name == 'all':
        return qs
    if filter_name == 'pending':
        return qs.exclude(state=TaskState.COMPLETED).filter(due_date__gte=today)
    if filter_name == 'completed':
        return qs.filter(state=TaskState.COMPLETED)
    if filter_name == 'overdue':
        return qs.exclude(state=TaskState.COMPLETED).filter(due_date__lt=today)
    if filter_name == 'date_extension':
        return qs.filter(requested_date__isnull=False)
    if filter_name == 'on_hold':
        return qs.filter(state=TaskState.ON_HOLD)

    raise ValidationError({'filter': f"Unknown filter '{filter_name}'. Expected one of: {', '.join(TASK_FILTERS)}"})


def list_tasks(user, filter_name='all', today=None):
    """Tasks ``user`` may see, narrowed to one of TASK_FILTERS."""
    return filter_tasks(visible_tasks(user), filter_name, today)


def task_stats(user, today=None):
    today = today or timezone.localdate()
    not_completed = ~Q(state=TaskState.COMPLETED)
    return visible_tasks(user).aggregate(
        total=Count('id'),
        completed=Count('id', filter=Q(state=TaskState.COMPLETED)),
        pending=Count('id', filter=not_completed & Q(due_date__gte=today)),
        overdue=Count('id', filter=not_completed & Q(due_date__lt=today)),
        on_hold=Count('id', filter=Q(state=TaskState.ON_HOLD)),
        date_extension=Count('id', filter=Q(requested_date__isnull=False)),
    )


class TaskService:

    def __init__(self, notifier=None, record_activity=None, storage=None):
        self._notifier = notifier
        self.record_activity = record_activity or activity_services.record
        self.storage = storage or TaskFileStorage()

    @property
    def notifier(self):
        if self._notifier is None:
            from notifications.apps import get_notifier
            self._notifier = get_notifier()
        return self._notifier

    # ----------------------------
    # Lookups
    # ----------------------------

    def get_task(self, task_id):
        try:
            return Task.objects.select_related('assigned_user', 'created_user').get(pk=task_id)
        except (Task.DoesNotExist, ValueError, TypeError):
            raise TaskNotFound(f"Task {task_id} not found")

    def get_task_by_abbreviation(self, abbreviation):
        try:
            return Task.objects.select_related('assigned_user', 'created_user').get(abbreviation=abbreviation)
        except Task.DoesNotExist:
            raise TaskNotFound(f"Task {abbreviation} not found")

    def _lock(self, task_id):
        try:
            return Task.objects.select_for_update().get(pk=task_id)
        except (Task.DoesNotExist, ValueError, TypeError):
            raise TaskNotFound(f"Task {task_id} not found")

    # ----------------------------
    # Guards
    # ----------------------------

    @staticmethod
    def _require_assignee(actor, task, what):
        if actor.pk != task.assigned_user_id:
            raise TaskPermissionDenied(f"Only the assignee can {what}.")

    @staticmethod
    def _require_creator(actor, task, what):
        if actor.pk != task.created_user_id:
            raise TaskPermissionDenied(f"Only the creator can {what}.")

    @staticmethod
    def _require_party(actor, task, what):
        if actor.pk not in (task.assigned_user_id, task.created_user_id):
            raise TaskPermissionDenied(f"Only the assignee or the creator can {what}.")

    @staticmethod
    def _require_not_completed(task, message):
        if task.state == TaskState.COMPLETED:
            raise TaskConflict(message)

    @staticmethod
    def _require_not_on_hold(task, message):
        if task.state == TaskState.ON_HOLD:
            raise TaskConflict(message)

    @staticmethod
    def _validate_assignee(user, field='assigned_user'):
        if user is None:
            raise ValidationError({field: 'This field is required.'})
        if not isinstance(user, User):
            try:
                user = User.objects.get(pk=user)
            except (User.DoesNotExist, ValueError, TypeError):
                raise ValidationError({field: f"User {user} does not exist."})
        if not user.is_active:
            raise ValidationError({field: 'Tasks cannot be assigned to a disabled user.'})
        return user

    def _save(self, task, actor, fields, action_type):
        task.save(update_fields=[*fields, 'updated_at'])
        self.record_activity(actor, task, action_type)

    # ----------------------------
    # Create / edit / delete
    # ----------------------------

    def create_task(self, actor, data):
        """
        Create a task. ``data`` holds description, assigned_user, priority and
        optionally due_date, remarks, created_user and abbreviation (recurring
        tasks bring their own).
        """
        description = (data.get('description') or '').strip()
        if not description:
            raise ValidationError({'description': 'This field is required.'})

        priority = data.get('priority') or Priority.NORMAL
        if priority not in Priority.values:
            raise ValidationError({'priority': f"'{priority}' is not a valid priority."})

        assignee = self._validate_assignee(data.get('assigned_user'))
        creator = data.get('created_user') or actor
        if creator is None:
            raise ValidationError({'created_user': 'This field is required.'})

        with transaction.atomic():
            abbreviation = data.get('abbreviation') or next_abbreviation(priority)
            task = Task.objects.create(
                abbreviation=abbreviation,
                description=description,
                assigned_user=assignee,
                created_user=creator,
                due_date=data.get('due_date') or timezone.localdate(),
                priority=priority,
                remarks=data.get('remarks') or '',
            )
            self.record_activity(creator, task, ActionType.CREATE)

        logger.info(f"Task {task.abbreviation} created by {creator.pk} for {assignee.pk}")
        self.notifier.notify(NotificationKind.TASK_CREATED, task, creator)
        return task

    def update_task(self, actor, task_id, data):
        changes = {field: data[field] for field in EDITABLE_FIELDS if field in data}
        if not changes:
            raise ValidationError({'detail': f"Nothing to update. Editable fields: {', '.join(EDITABLE_FIELDS)}"})
        if 'description' in changes:
            changes['description'] = (changes['description'] or '').strip()
            if not changes['description']:
                raise ValidationError({'description': 'This field may not be blank.'})
        if 'priority' in changes and changes['priority'] not in Priority.values:
            raise ValidationError({'priority': f"'{changes['priority']}' is not a valid priority."})
        if 'due_date' in changes and changes['due_date'] is None:
            raise ValidationError({'due_date': 'This field may not be null.'})
        if 'remarks' in changes:
            changes['remarks'] = changes['remarks'] or ''

        with transaction.atomic():
            task = self._lock(task_id)
            self._require_party(actor, task, 'edit this task')
            self._require_not_completed(task, 'A completed task cannot be edited.')

            for field, value in changes.items():
                setattr(task, field, value)
            self._save(task, actor, list(changes), ActionType.UPDATE)

        logger.info(f"Task {task.abbreviation} updated by {actor.pk}: {', '.join(changes)}")
        self.notifier.notify(NotificationKind.TASK_UPDATED, task, actor)
        return task

    def delete_task(self, actor, task_id):
        """
        Delete a task with its activity rows, then its stored files.

        The files go after the rows are gone: if removing them fails the
        directory is left for ``sweep_task_files`` rather than resurrecting a
        half-deleted task.
        """
        with transaction.atomic():
            task = self._lock(task_id)
            self._require_party(actor, task, 'delete this task')
            self._require_not_completed(task, 'A completed task cannot be deleted.')

            snapshot = copy.copy(task)
            ActivityLog.objects.filter(task=task).delete()
            task.delete()
            self.record_activity(actor, None, ActionType.DELETE, abbreviation=snapshot.abbreviation)

        try:
            self.storage.delete_task_directory(snapshot.pk)
        except OSError:
            logger.exception(f"Could not remove files of deleted task {snapshot.abbreviation}")

        logger.info(f"Task {snapshot.abbreviation} deleted by {actor.pk}")
        self.notifier.notify(NotificationKind.TASK_DELETED, snapshot, actor)
        return snapshot

    # ----------------------------
    # Hold / complete
    # ----------------------------

    def put_on_hold(self, actor, task_id, reason):
        reason = (reason or '').strip()
        if not reason:
            raise ValidationError({'on_hold_reason': 'A reason is required to put a task on hold.'})

        with transaction.atomic():
            task = self._lock(task_id)
            self._require_assignee(actor, task, 'put this task on hold')
            self._require_not_completed(task, 'A completed task cannot be put on hold.')
            self._require_not_on_hold(task, 'Task is already on hold.')

            task.state = TaskState.ON_HOLD
            task.on_hold_reason = reason
            self._save(task, actor, ['state', 'on_hold_reason'], ActionType.UPDATE)

        logger.info(f"Task {task.abbreviation} put on hold by {actor.pk}")
        self.notifier.notify(NotificationKind.TASK_ON_HOLD, task, actor)
        return task

    def resume(self, actor, task_id):
        with transaction.atomic():
            task = self._lock(task_id)
            self._require_assignee(actor, task, 'resume this task')
            if task.state != TaskState.ON_HOLD:
                raise TaskConflict('Task is not on hold.')

            task.state = TaskState.OPEN
            task.on_hold_reason = ''
            self._save(task, actor, ['state', 'on_hold_reason'], ActionType.UPDATE)

        logger.info(f"Task {task.abbreviation} resumed by {actor.pk}")
        self.notifier.notify(NotificationKind.TASK_RESUMED, task, actor)
        return task

    def mark_complete(self, actor, task_id):
        with transaction.atomic():
            task = self._lock(task_id)
            self._require_assignee(actor, task, 'complete this task')
            self._require_not_completed(task, 'Task is already completed.')

            task.state = TaskState.COMPLETED
            task.on_hold_reason = ''
            self._save(task, actor, ['state', 'on_hold_reason'], ActionType.COMPLETED)

        logger.info(f"Task {task.abbreviation} completed by {actor.pk}")
        self.notifier.notify(NotificationKind.TASK_COMPLETED, task, actor)
        return task

    def mark_incomplete(self, actor, task_id):
        with transaction.atomic():
            task = self._lock(task_id)
            self._require_assignee(actor, task, 'reopen this task')
            if task.state != TaskState.COMPLETED:
                raise TaskConflict('Task is not completed.')

            task.state = TaskState.OPEN
            self._save(task, actor, ['state'], ActionType.UPDATE)

        logger.info(f"Task {task.abbreviation} reopened by {actor.pk}")
        self.notifier.notify(NotificationKind.TASK_REOPENED, task, actor)
        return task

    # ----------------------------
    # Due date extension
    # ----------------------------

    def request_extension(self, actor, task_id, requested_date, reason):
        reason = (reason or '').strip()
        errors = {}
        if requested_date is None:
            errors['requested_date'] = 'This field is required.'
        elif requested_date < timezone.localdate():
            errors['requested_date'] = 'The requested date cannot be in the past.'
        if not reason:
            errors['requested_date_reason'] = 'This field is required.'
        if errors:
            raise ValidationError(errors)

        with transaction.atomic():
            task = self._lock(task_id)
            self._require_assignee(actor, task, 'request a due date extension')
            self._require_not_completed(task, 'A completed task cannot be extended.')
            self._require_not_on_hold(task, 'Resume the task before requesting an extension.')
            if task.has_pending_extension:
                raise TaskConflict('An extension request is already pending.')

            task.requested_date = requested_date
            task.requested_date_reason = reason
            task.is_request_date_extension_approved = None
            self._save(
                task, actor,
                ['requested_date', 'requested_date_reason', 'is_request_date_extension_approved'],
                ActionType.UPDATE,
            )

        logger.info(f"Extension to {requested_date} requested for task {task.abbreviation} by {actor.pk}")
        self.notifier.notify(NotificationKind.TASK_EXTENSION_REQUESTED, task, actor)
        return task

    def approve_extension(self, actor, task_id):
        with transaction.atomic():
            task = self._lock(task_id)
            self._require_creator(actor, task, 'approve an extension request')
            self._require_not_completed(task, 'A completed task cannot be extended.')
            if not task.has_pending_extension:
                raise TaskConflict('There is no pending extension request.')

            task.due_date = task.requested_date
            task.requested_date = None
            task.requested_date_reason = None
            task.is_request_date_extension_approved = True
            self._save(
                task, actor,
                ['due_date', 'requested_date', 'requested_date_reason', 'is_request_date_extension_approved'],
                ActionType.UPDATE,
            )

        logger.info(f"Extension approved for task {task.abbreviation}, due {task.due_date}")
        self.notifier.notify(NotificationKind.TASK_EXTENSION_APPROVED, task, actor)
        return task

    def reject_extension(self, actor, task_id):
        with transaction.atomic():
            task = self._lock(task_id)
            self._require_creator(actor, task, 'reject an extension request')
            self._require_not_completed(task, 'A completed task cannot be extended.')
            if not task.has_pending_extension:
                raise TaskConflict('There is no pending extension request.')

            task.requested_date = None
            task.requested_date_reason = None
            task.is_request_date_extension_approved = False
            self._save(
                task, actor,
                ['requested_date', 'requested_date_reason', 'is_request_date_extension_approved'],
                ActionType.UPDATE,
            )

        logger.info(f"Extension rejected for task {task.abbreviation}")
        self.notifier.notify(NotificationKind.TASK_EXTENSION_REJECTED, task, actor)
        return task

    # ----------------------------
    # Delegation
    # ----------------------------

    def delegate(self, actor, task_id, new_assignee):
        new_assignee = self._validate_assignee(new_assignee)

        with transaction.atomic():
            task = self._lock(task_id)
            self._require_assignee(actor, task, 'delegate this task')
            self._require_not_on_hold(task, 'A task on hold cannot be delegated.')
            if new_assignee.pk == task.assigned_user_id:
                raise ValidationError({'assigned_user': 'The task is already assigned to this user.'})

            task.assigned_user = new_assignee
            self._save(task, actor, ['assigned_user'], ActionType.UPDATE)

        logger.info(f"Task {task.abbreviation} delegated by {actor.pk} to {new_assignee.pk}")
        self.notifier.notify(NotificationKind.TASK_DELEGATED, task, actor)
        return task

    # ----------------------------
    # Files
    # ----------------------------

    def attach_files(self, actor, task_id, uploaded_files):
        uploaded_files = list(uploaded_files or [])
        if not uploaded_files:
            raise ValidationError({'files': 'No files provided.'})

        with transaction.atomic():
            task = self._lock(task_id)
            self._require_assignee(actor, task, 'attach files')
            self._require_not_completed(task, 'Files cannot be attached to a completed task.')
            self._require_not_on_hold(task, 'Files cannot be attached to a task on hold.')

            staged = []
            try:
                for uploaded in uploaded_files:
                    staged.append(self.storage.stage(task.pk, uploaded))
                # Last upload wins when one batch repeats a name
                latest = {descriptor['name']: descriptor for descriptor, _ in staged}
                task.files = [f for f in task.files or [] if f.get('name') not in latest] + list(latest.values())
                self._save(task, actor, ['files'], ActionType.UPDATE)
                # Last step: existing files are only replaced once the row is written
                self.storage.commit(task.pk, [
                    (descriptor, path) for descriptor, path in staged if latest[descriptor['name']] is descriptor
                ])
            finally:
                self.storage.discard([path for _, path in staged])

        logger.info(f"{len(latest)} file(s) attached to task {task.abbreviation}")
        self.notifier.notify(NotificationKind.TASK_FILES_UPDATED, task, actor)
        return task

    def detach_file(self, actor, task_id, file_name):
        if not file_name:
            raise ValidationError({'file_name': 'This field is required.'})

        with transaction.atomic():
            task = self._lock(task_id)
            self._require_assignee(actor, task, 'remove files')
            self._require_not_completed(task, 'Files cannot be removed from a completed task.')
            self._require_not_on_hold(task, 'Files cannot be removed from a task on hold.')
            if file_name not in task.file_names():
                raise TaskFileNotFound(f"File '{file_name}' not found in task {task.abbreviation}")

            task.files = [f for f in task.files if f.get('name') != file_name]
            self._save(task, actor, ['files'], ActionType.UPDATE)
            # Last step: a failing delete rolls the row back with it
            self.storage.delete(task.pk, file_name)

        logger.info(f"File {file_name} removed from task {task.abbreviation}")
        self.notifier.notify(NotificationKind.TASK_FILES_UPDATED, task, actor)
        return task
