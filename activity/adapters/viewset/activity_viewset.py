from django.db.models import Q
from django.utils.dateparse import parse_date, parse_datetime
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import viewsets
from rest_framework.exceptions import ValidationError
from rest_framework.permissions import IsAuthenticated

from activity.models import ActivityLog
from activity.adapters.serializers.activity_log_serializer import ActivityLogSerializer
from utils.custom_paginator import CustomPaginator


class ActivityLogViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Activity log API, newest first.

    Admins see every entry; other users see entries they made or that
    concern tasks they are assigned to or created.
    Supports ``?since=<ISO date or datetime>`` and ``?task=<id>``.
    """
    serializer_class = ActivityLogSerializer
    pagination_class = CustomPaginator
    permission_classes = [IsAuthenticated]

    def get_queryset(self):
        user = self.request.user
        qs = ActivityLog.objects.select_related('user', 'task')

        if not user.is_staff:
            qs = qs.filter(
                Q(user=user) | Q(task__assigned_user=user) | Q(task__created_user=user)
            )

        since = self.request.query_params.get('since')
        if since:
            try:
                parsed = parse_datetime(since) or parse_date(since)
            except ValueError:
                parsed = None
            if parsed is None:
                raise ValidationError({'since': 'Expected an ISO date or datetime'})
            if hasattr(parsed, 'hour'):
                qs = qs.filter(created_at__gt=parsed)
            else:
                qs = qs.filter(created_at__date__gte=parsed)

        task_id = self.request.query_params.get('task')
        if task_id:
            try:
                task_id = int(task_id)
            except ValueError:
                raise ValidationError({'task': 'Expected a task id'})
            qs = qs.filter(task_id=task_id)

        return qs.distinct().order_by('-id')

    @extend_schema(parameters=[
        OpenApiParameter('since', str, description='Only entries created after this date/datetime'),
        OpenApiParameter('task', int, description='Only entries for this task'),
    ])
    def list(self, request, *args, **kwargs):
        return super().list(request, *args, **kwargs)
