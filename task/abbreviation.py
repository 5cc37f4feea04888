import re

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from .models import AbbreviationSequence, Priority

PRIORITY_PREFIX = {
    Priority.NORMAL: 'N',
    Priority.MEDIUM: 'M',
    Priority.HIGH: 'H',
}

# H25060001 -> priority H, June 2025, 1st high priority task of that month
ABBREVIATION_REGEX = re.compile(
    r'^(?P<prefix>[NMH])(?P<year>\d{2})(?P<month>\d{2})(?P<sequence>\d{4,})$'
)


def format_abbreviation(priority, year, month, sequence):
    return f"{PRIORITY_PREFIX[Priority(priority)]}{year % 100:02d}{month:02d}{sequence:04d}"


def next_abbreviation(priority, on=None):
    """
    Issue the next abbreviation for ``priority`` in the month of ``on``.

    The counter row is locked and bumped in place, so concurrent creators
    never read the same value.
    """
    on = on or timezone.localdate()
    with transaction.atomic():
        counter, _ = AbbreviationSequence.objects.select_for_update().get_or_create(
            priority=priority, year=on.year, month=on.month,
        )
        AbbreviationSequence.objects.filter(pk=counter.pk).update(last_value=F('last_value') + 1)
        counter.refresh_from_db(fields=['last_value'])
    return format_abbreviation(priority, on.year, on.month, counter.last_value)
