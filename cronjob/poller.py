"""
Recurring task poller.

Once per tick, every template whose time of day equals the current time (to
the second) and whose interval has an occurrence today becomes one task.

Delivery is at most once and best effort: ticks missed while the process was
down are not replayed, and a template whose second is never hit by a tick
never fires. Ticks are aligned to multiples of the interval (the top of each
minute by default), so templates scheduled on a whole minute are the ones
that fire.
"""

import logging
import threading
import time

from django.db import close_old_connections, transaction
from django.utils import timezone

from task.services import TaskService
from .models import Cronjob

logger = logging.getLogger(__name__)


def current_time_of_day(now):
    return timezone.localtime(now).time().replace(microsecond=0)


def auto_abbreviation(cronjob, now):
    return f"AUTO-{cronjob.pk}-{int(now.timestamp() * 1000)}"


def due_cronjobs(now):
    """Templates scheduled for this exact second today."""
    today = timezone.localdate(now)
    matching = Cronjob.objects.select_related('user').filter(creation_time=current_time_of_day(now))
    return [cronjob for cronjob in matching if cronjob.is_due_on(today)]


def create_task_from_cronjob(cronjob, now, service):
    fired_at = now.replace(microsecond=0)
    with transaction.atomic():
        # Claim the occurrence first so a second tick in the same second skips it
        claimed = (
            Cronjob.objects
            .filter(pk=cronjob.pk)
            .exclude(last_fired_at=fired_at)
            .update(last_fired_at=fired_at)
        )
        if not claimed:
            logger.info(f"Cronjob {cronjob.pk} already fired at {fired_at}")
            return None

        return service.create_task(cronjob.user, {
            'description': cronjob.task_description,
            'assigned_user': cronjob.user,
            'created_user': cronjob.user,
            'priority': cronjob.priority,
            'due_date': timezone.localdate(now),
            'abbreviation': auto_abbreviation(cronjob, now),
        })


def run_tick(now=None, service=None):
    """
    Process one tick. A template that fails is logged and skipped; the others
    in the same tick still run. Returns the tasks created.
    """
    now = now or timezone.now()
    service = service or TaskService()
    cronjobs = due_cronjobs(now)
    logger.info(f"Found {len(cronjobs)} cronjobs to process at {current_time_of_day(now)}")

    created = []
    for cronjob in cronjobs:
        try:
            task = create_task_from_cronjob(cronjob, now, service)
        except Exception:
            logger.exception(f"Failed to create task for cronjob {cronjob.pk}")
            continue
        if task is not None:
            logger.info(f"Task {task.abbreviation} created for cronjob {cronjob.pk}")
            created.append(task)
    return created


class CronjobPoller:
    """
    Runs ``run_tick`` on a fixed interval. A tick that starts while another is
    still running (HTTP trigger, slow database) is skipped, never overlapped.
    """

    def __init__(self, interval=60, service=None, clock=time.time):
        self.interval = interval
        self.service = service
        self.clock = clock
        self._lock = threading.Lock()
        self._stop = threading.Event()

    def tick(self, now=None):
        if not self._lock.acquire(blocking=False):
            logger.warning("Previous cronjob tick still running, skipping this one")
            return None
        try:
            close_old_connections()
            return run_tick(now=now, service=self.service)
        finally:
            self._lock.release()

    def seconds_until_next_tick(self):
        return self.interval - (self.clock() % self.interval)

    def run_forever(self):
        logger.info(f"Cronjob poller started, interval {self.interval}s")
        while not self._stop.wait(self.seconds_until_next_tick()):
            try:
                self.tick()
            except Exception:
                logger.exception("Error while running scheduled tasks")
        logger.info("Cronjob poller stopped")

    def stop(self):
        self._stop.set()
