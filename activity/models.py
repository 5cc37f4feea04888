from django.db import models
from django.contrib.auth.models import User


class ActionType(models.TextChoices):
    CREATE = 'create', 'Create'
    UPDATE = 'update', 'Update'
    DELETE = 'delete', 'Delete'
    COMPLETED = 'completed', 'Completed'


class ActivityLog(models.Model):
    """
    Append-only audit row, one per task mutation.

    Rows referencing a task are removed with it. The ``delete`` entry therefore
    carries no task reference, only the abbreviation of the deleted task.
    """
    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='activity_logs')
    task = models.ForeignKey('task.Task', on_delete=models.CASCADE, null=True, blank=True, related_name='activity_logs')
    task_abbreviation = models.CharField(max_length=255, blank=True, default='')
    action_type = models.CharField(max_length=20, choices=ActionType.choices)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    def __str__(self):
        return f"{self.action_type} - {self.task_abbreviation}"

    class Meta:
        ordering = ['-id']
