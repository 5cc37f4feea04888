# tests/test_abbreviation.py

from __future__ import annotations

from datetime import date

import pytest
from django.utils import timezone

from task.abbreviation import ABBREVIATION_REGEX, format_abbreviation, next_abbreviation
from task.models import Priority

pytestmark = pytest.mark.django_db


def test_first_high_priority_task_of_the_month() -> None:
    assert next_abbreviation(Priority.HIGH, on=date(2025, 6, 3)) == 'H25060001'


def test_sequence_increases_within_priority_and_month() -> None:
    june = date(2025, 6, 3)
    assert next_abbreviation(Priority.HIGH, on=june) == 'H25060001'
    assert next_abbreviation(Priority.HIGH, on=june) == 'H25060002'


def test_sequences_are_independent_per_priority_and_month() -> None:
    assert next_abbreviation(Priority.HIGH, on=date(2025, 6, 3)) == 'H25060001'
    assert next_abbreviation(Priority.NORMAL, on=date(2025, 6, 3)) == 'N25060001'
    assert next_abbreviation(Priority.MEDIUM, on=date(2025, 6, 30)) == 'M25060001'
    assert next_abbreviation(Priority.HIGH, on=date(2025, 7, 1)) == 'H25070001'
    assert next_abbreviation(Priority.HIGH, on=date(2025, 6, 28)) == 'H25060002'


def test_format_pads_year_month_and_sequence() -> None:
    assert format_abbreviation(Priority.NORMAL, 2031, 1, 42) == 'N31010042'


def test_created_tasks_get_unique_well_formed_codes(service, creator, assignee) -> None:
    today = timezone.localdate()
    codes = []
    for priority in (Priority.NORMAL, Priority.HIGH, Priority.NORMAL, Priority.MEDIUM):
        task = service.create_task(creator, {
            'description': f'{priority} work',
            'assigned_user': assignee,
            'priority': priority,
        })
        codes.append(task.abbreviation)

    assert len(set(codes)) == len(codes)
    for code in codes:
        match = ABBREVIATION_REGEX.match(code)
        assert match, code
        assert match['year'] == f'{today.year % 100:02d}'
        assert match['month'] == f'{today.month:02d}'
    assert codes[0].endswith('0001') and codes[2].endswith('0002')
    assert [c[0] for c in codes] == ['N', 'H', 'N', 'M']
