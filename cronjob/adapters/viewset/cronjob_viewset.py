import logging

from django_filters.rest_framework import DjangoFilterBackend
from drf_spectacular.utils import extend_schema
from rest_framework import filters, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAdminUser, IsAuthenticated
from rest_framework.response import Response

from cronjob.apps import get_poller
from cronjob.models import Cronjob
from task.adapters.serializers.task_serializer import TaskSerializer
from utils.custom_paginator import CustomPaginator
from ..serializers.cronjob_serializer import CronjobSerializer, CronjobWriteSerializer

logger = logging.getLogger(__name__)


class CronjobViewSet(viewsets.ModelViewSet):
    """
    Recurring task templates, admin only.
    """
    queryset = Cronjob.objects.select_related('user').order_by('creation_time', 'id')
    serializer_class = CronjobSerializer
    pagination_class = CustomPaginator
    permission_classes = [IsAuthenticated, IsAdminUser]
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['interval', 'priority', 'user']
    search_fields = ['task_description']
    ordering_fields = ['creation_time', 'created_at', 'priority']

    def get_serializer_class(self):
        if self.action in ('create', 'update', 'partial_update'):
            return CronjobWriteSerializer
        return CronjobSerializer

    @extend_schema(request=CronjobWriteSerializer, responses={201: CronjobSerializer})
    def create(self, request, *args, **kwargs):
        write_serializer = self.get_serializer(data=request.data)
        write_serializer.is_valid(raise_exception=True)
        instance = write_serializer.save()
        logger.info(f"Cronjob {instance.pk} created by {request.user.pk}")

        read_serializer = CronjobSerializer(instance)
        headers = self.get_success_headers(read_serializer.data)
        return Response(read_serializer.data, status=status.HTTP_201_CREATED, headers=headers)

    @extend_schema(request=CronjobWriteSerializer, responses={200: CronjobSerializer})
    def update(self, request, *args, **kwargs):
        partial = kwargs.pop('partial', False)
        instance = self.get_object()

        write_serializer = self.get_serializer(instance, data=request.data, partial=partial)
        write_serializer.is_valid(raise_exception=True)
        instance = write_serializer.save()

        read_serializer = CronjobSerializer(instance)
        return Response(read_serializer.data)

    @extend_schema(request=None, responses={200: TaskSerializer(many=True)})
    @action(detail=False, methods=['post'])
    def run(self, request):
        """Run one poller tick now. Answers 409 while another tick is running."""
        created = get_poller().tick()
        if created is None:
            return Response({'detail': 'A cronjob tick is already running'}, status=status.HTTP_409_CONFLICT)
        return Response(TaskSerializer(created, many=True).data)
