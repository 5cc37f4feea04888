import logging

from django.db import DatabaseError, transaction

from .models import ActivityLog

logger = logging.getLogger(__name__)


def record(user, task, action_type, abbreviation=None):
    """
    Append one activity row.

    Logging is best-effort: a storage error is logged and swallowed so the
    mutation that triggered it still commits. The savepoint keeps a failed
    insert from poisoning the surrounding transaction.
    """
    try:
        with transaction.atomic():
            return ActivityLog.objects.create(
                user=user,
                task=task,
                task_abbreviation=abbreviation or getattr(task, 'abbreviation', '') or '',
                action_type=action_type,
            )
    except DatabaseError:
        logger.exception(
            f"Failed to record {action_type} activity for task "
            f"{abbreviation or getattr(task, 'abbreviation', None)}"
        )
        return None
