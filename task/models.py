from django.contrib.auth.models import User
from django.db import models
from django.db.models import Q
from django.utils import timezone


class Priority(models.TextChoices):
    NORMAL = 'normal', 'Normal'
    MEDIUM = 'medium', 'Medium'
    HIGH = 'high', 'High'


class TaskState(models.TextChoices):
    OPEN = 'open', 'Open'
    ON_HOLD = 'on_hold', 'On Hold'
    COMPLETED = 'completed', 'Completed'


class LegacyStatus(models.TextChoices):
    COMPLETED = 'completed', 'Completed'
    ON_HOLD = 'on_hold', 'On Hold'
    REQUEST_DATE_EXTENSION = 'request_date_extension', 'Request Date Extension'


class Task(models.Model):
    """
    A unit of work owned by one assignee and one creator.

    ``state`` is the single source of truth for open / on hold / completed.
    A pending extension request (``requested_date`` + ``requested_date_reason``)
    may sit on top of an open or on-hold task. The check constraints below keep
    the on-hold reason and the request fields consistent with it.
    """
    abbreviation = models.CharField(max_length=255, unique=True, editable=False)
    description = models.TextField(max_length=2000)
    assigned_user = models.ForeignKey(User, on_delete=models.PROTECT, related_name='assigned_tasks')
    created_user = models.ForeignKey(User, on_delete=models.PROTECT, related_name='created_tasks')
    due_date = models.DateField(default=timezone.localdate)
    priority = models.CharField(max_length=10, choices=Priority.choices, default=Priority.NORMAL)
    state = models.CharField(max_length=20, choices=TaskState.choices, default=TaskState.OPEN)
    on_hold_reason = models.TextField(blank=True, default='')
    requested_date = models.DateField(null=True, blank=True)
    requested_date_reason = models.TextField(null=True, blank=True)
    is_request_date_extension_approved = models.BooleanField(null=True, blank=True)
    remarks = models.CharField(max_length=500, blank=True, default='')
    files = models.JSONField(default=list, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.abbreviation

    class Meta:
        ordering = ['-created_at']
        constraints = [
            models.CheckConstraint(
                condition=(
                    (Q(state=TaskState.ON_HOLD) & ~Q(on_hold_reason=''))
                    | (~Q(state=TaskState.ON_HOLD) & Q(on_hold_reason=''))
                ),
                name='task_on_hold_reason_matches_state',
            ),
            models.CheckConstraint(
                condition=(
                    Q(requested_date__isnull=True, requested_date_reason__isnull=True)
                    | Q(requested_date__isnull=False, requested_date_reason__isnull=False)
                ),
                name='task_extension_request_complete',
            ),
        ]

    @property
    def completed(self):
        return self.state == TaskState.COMPLETED

    @property
    def on_hold(self):
        return self.state == TaskState.ON_HOLD

    @property
    def has_pending_extension(self):
        return self.requested_date is not None

    @property
    def status(self):
        """The single status tag older clients expect next to ``completed``."""
        if self.state == TaskState.COMPLETED:
            return LegacyStatus.COMPLETED
        if self.state == TaskState.ON_HOLD:
            return LegacyStatus.ON_HOLD
        if self.has_pending_extension:
            return LegacyStatus.REQUEST_DATE_EXTENSION
        return None

    @property
    def is_overdue(self):
        return not self.completed and self.due_date < timezone.localdate()

    def file_names(self):
        return [f.get('name') for f in self.files or []]


class AbbreviationSequence(models.Model):
    """Last issued abbreviation number per (priority, year, month)."""
    priority = models.CharField(max_length=10, choices=Priority.choices)
    year = models.PositiveSmallIntegerField()
    month = models.PositiveSmallIntegerField()
    last_value = models.PositiveIntegerField(default=0)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=['priority', 'year', 'month'], name='unique_abbreviation_sequence'),
        ]

    def __str__(self):
        return f"{self.priority} {self.year}-{self.month:02d}: {self.last_value}"
