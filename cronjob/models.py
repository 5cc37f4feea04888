import calendar

from django.contrib.auth.models import User
from django.db import models
from django.utils import timezone

from task.models import Priority


class Interval(models.TextChoices):
    DAILY = 'daily', 'Daily'
    WEEKLY = 'weekly', 'Weekly'
    MONTHLY = 'monthly', 'Monthly'
    QUARTERLY = 'quarterly', 'Quarterly'
    HALF_YEARLY = 'half_yearly', 'Half Yearly'
    YEARLY = 'yearly', 'Yearly'


# months between two occurrences
MONTH_STEPS = {
    Interval.MONTHLY: 1,
    Interval.QUARTERLY: 3,
    Interval.HALF_YEARLY: 6,
    Interval.YEARLY: 12,
}


def _default_time():
    return timezone.localtime().time().replace(microsecond=0)


class Cronjob(models.Model):
    """
    Recurring task template. At ``creation_time`` on each day its interval
    allows, the poller turns it into a task assigned to ``user``.
    """
    task_description = models.TextField(max_length=2000)
    creation_time = models.TimeField(default=_default_time)
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='cronjobs')
    interval = models.CharField(max_length=20, choices=Interval.choices, default=Interval.DAILY)
    priority = models.CharField(max_length=10, choices=Priority.choices, default=Priority.NORMAL)
    last_fired_at = models.DateTimeField(null=True, blank=True, editable=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.get_interval_display()} at {self.creation_time}: {self.task_description[:50]}"

    class Meta:
        ordering = ['creation_time', 'id']

    def anchor_date(self):
        return timezone.localdate(self.created_at) if self.created_at else timezone.localdate()

    def is_due_on(self, day):
        """Whether the interval has an occurrence on ``day`` (counted from the day it was created)."""
        anchor = self.anchor_date()
        if day < anchor:
            return False
        if self.interval == Interval.DAILY:
            return True
        if self.interval == Interval.WEEKLY:
            return day.weekday() == anchor.weekday()

        step = MONTH_STEPS[self.interval]
        months = (day.year - anchor.year) * 12 + (day.month - anchor.month)
        if months % step:
            return False
        # anchor on the 31st fires on the last day of shorter months
        last_day = calendar.monthrange(day.year, day.month)[1]
        return day.day == min(anchor.day, last_day)
