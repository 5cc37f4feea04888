from datetime import timedelta

from django.db.models import Q
from django.utils import timezone
from rest_framework import viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from activity.models import ActionType, ActivityLog
from task.models import TaskState
from task.services import task_stats, visible_tasks


class DashboardViewset(viewsets.ViewSet):
    permission_classes = [IsAuthenticated]

    @action(detail=False, methods=['get'])
    def dashboard_data(self, request):
        """
        Task count cards with a comparison against the previous period
        """
        today = timezone.localdate()

        current_month_start = today.replace(day=1)
        last_month_start = (current_month_start - timedelta(days=1)).replace(day=1)
        last_month_end = current_month_start - timedelta(days=1)

        current_week_start = today - timedelta(days=today.weekday())
        last_week_start = current_week_start - timedelta(days=7)
        last_week_end = current_week_start - timedelta(days=1)

        tasks = visible_tasks(request.user)

        return Response({
            'totals': task_stats(request.user, today),
            'tasks_created': self._get_created_tasks(tasks, today, current_month_start, last_month_start, last_month_end),
            'tasks_completed': self._get_completed_tasks(tasks, today, current_week_start, last_week_start, last_week_end),
            'overdue_tasks': self._get_overdue_tasks(tasks, today, current_week_start),
        })

    def _get_created_tasks(self, tasks, today, current_month_start, last_month_start, last_month_end):
        """
        Tasks created this month vs last month
        """
        current_count = tasks.filter(
            created_at__date__gte=current_month_start,
            created_at__date__lte=today
        ).count()
        last_month_count = tasks.filter(
            created_at__date__gte=last_month_start,
            created_at__date__lte=last_month_end
        ).count()
        return self._card(current_count, last_month_count)

    def _get_completed_tasks(self, tasks, today, current_week_start, last_week_start, last_week_end):
        """
        Completions this week vs last week, counted from the activity log
        """
        completions = ActivityLog.objects.filter(
            action_type=ActionType.COMPLETED,
            task__in=tasks.values('pk'),
        )
        current_count = completions.filter(
            created_at__date__gte=current_week_start,
            created_at__date__lte=today
        ).count()
        last_week_count = completions.filter(
            created_at__date__gte=last_week_start,
            created_at__date__lte=last_week_end
        ).count()
        return self._card(current_count, last_week_count)

    def _get_overdue_tasks(self, tasks, today, current_week_start):
        """
        Overdue now vs overdue at the start of this week (fewer is better)
        """
        open_tasks = tasks.filter(~Q(state=TaskState.COMPLETED))
        current_count = open_tasks.filter(due_date__lt=today).count()
        last_week_count = open_tasks.filter(due_date__lt=current_week_start).count()
        return self._card(current_count, last_week_count, inverse=True)

    def _card(self, current, previous, inverse=False):
        trend_data = self._calculate_trend(current, previous, inverse=inverse)
        return {
            'count': current,
            'comparison': {
                'previous_period': previous,
                'difference': current - previous,
                'percentage': trend_data['percentage'],
                'trend': trend_data['trend']
            }
        }

    def _calculate_trend(self, current, previous, inverse=False):
        """
        Percentage change and trend direction (growing/declining/steady).
        With ``inverse`` a drop counts as growth (overdue tasks).
        """
        if previous == 0:
            if current == 0:
                percentage = 0
                trend = 'steady'
            else:
                percentage = 100
                trend = 'declining' if inverse else 'growing'
        else:
            percentage = round(((current - previous) / previous) * 100, 2)

            if percentage > 5:
                trend = 'declining' if inverse else 'growing'
            elif percentage < -5:
                trend = 'growing' if inverse else 'declining'
            else:
                trend = 'steady'

        return {
            'percentage': abs(percentage),
            'trend': trend
        }
