from django.http import FileResponse
from django_filters.rest_framework import DjangoFilterBackend
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import filters, status, viewsets
from rest_framework.decorators import action
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from utils.custom_paginator import CustomPaginator
from task.exceptions import TaskFileNotFound
from task.permission import TaskAccessPermission
from task.services import TASK_FILTERS, TaskService, list_tasks, task_stats, visible_tasks
from ..serializers.task_serializer import (
    CompleteSerializer,
    DelegateSerializer,
    ExtensionRequestSerializer,
    FileDetachSerializer,
    FileUploadSerializer,
    HoldSerializer,
    TaskSerializer,
    TaskStatsSerializer,
    TaskUpdateSerializer,
    TaskWriteSerializer,
)


class TaskViewset(viewsets.ModelViewSet):
    """
    Tasks API.

    - list is scoped to tasks the user is assigned to or created (admins: all)
    - ``?filter=all|pending|completed|overdue|date_extension|on_hold`` picks one view
    - every state change goes through TaskService, which enforces who may do what
    """
    serializer_class = TaskSerializer
    pagination_class = CustomPaginator
    permission_classes = [IsAuthenticated, TaskAccessPermission]
    parser_classes = [JSONParser, MultiPartParser, FormParser]

    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['priority', 'assigned_user', 'created_user']
    search_fields = ['abbreviation', 'description']
    ordering_fields = ['due_date', 'created_at', 'updated_at', 'priority', 'abbreviation']
    ordering = ['-created_at']

    service_class = TaskService

    def get_service(self):
        return self.service_class()

    def get_queryset(self):
        if self.action == 'list':
            qs = list_tasks(self.request.user, self.request.query_params.get('filter', 'all'))
        else:
            qs = visible_tasks(self.request.user)
        return qs.order_by('-created_at')

    def get_serializer_class(self):
        if self.action == 'create':
            return TaskWriteSerializer
        if self.action in ('update', 'partial_update'):
            return TaskUpdateSerializer
        return TaskSerializer

    def _respond(self, task, status_code=status.HTTP_200_OK):
        return Response(TaskSerializer(task, context=self.get_serializer_context()).data, status=status_code)

    @extend_schema(parameters=[
        OpenApiParameter('filter', str, enum=list(TASK_FILTERS), description='Task view, defaults to all'),
    ])
    def list(self, request, *args, **kwargs):
        return super().list(request, *args, **kwargs)

    @extend_schema(request=TaskWriteSerializer, responses={201: TaskSerializer})
    def create(self, request, *args, **kwargs):
        write_serializer = self.get_serializer(data=request.data)
        write_serializer.is_valid(raise_exception=True)
        task = self.get_service().create_task(request.user, write_serializer.validated_data)

        read_serializer = TaskSerializer(task, context=self.get_serializer_context())
        headers = self.get_success_headers(read_serializer.data)
        return Response(read_serializer.data, status=status.HTTP_201_CREATED, headers=headers)

    @extend_schema(request=TaskUpdateSerializer, responses={200: TaskSerializer})
    def update(self, request, *args, **kwargs):
        partial = kwargs.pop('partial', False)
        instance = self.get_object()

        write_serializer = self.get_serializer(data=request.data, partial=partial)
        write_serializer.is_valid(raise_exception=True)
        task = self.get_service().update_task(request.user, instance.pk, write_serializer.validated_data)
        return self._respond(task)

    def destroy(self, request, *args, **kwargs):
        instance = self.get_object()
        self.get_service().delete_task(request.user, instance.pk)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(request=CompleteSerializer, responses={200: TaskSerializer})
    @action(detail=True, methods=['post'])
    def complete(self, request, pk=None):
        """Mark complete, or incomplete with ``{"completed": false}``."""
        task = self.get_object()
        serializer = CompleteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        service = self.get_service()
        if serializer.validated_data['completed']:
            task = service.mark_complete(request.user, task.pk)
        else:
            task = service.mark_incomplete(request.user, task.pk)
        return self._respond(task)

    @extend_schema(request=HoldSerializer, responses={200: TaskSerializer})
    @action(detail=True, methods=['post'])
    def hold(self, request, pk=None):
        task = self.get_object()
        serializer = HoldSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        task = self.get_service().put_on_hold(request.user, task.pk, serializer.validated_data['on_hold_reason'])
        return self._respond(task)

    @extend_schema(request=None, responses={200: TaskSerializer})
    @action(detail=True, methods=['post'])
    def resume(self, request, pk=None):
        task = self.get_object()
        task = self.get_service().resume(request.user, task.pk)
        return self._respond(task)

    @extend_schema(request=ExtensionRequestSerializer, responses={200: TaskSerializer})
    @action(detail=True, methods=['post'], url_path='request-extension')
    def request_extension(self, request, pk=None):
        task = self.get_object()
        serializer = ExtensionRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        task = self.get_service().request_extension(
            request.user,
            task.pk,
            serializer.validated_data['requested_date'],
            serializer.validated_data['requested_date_reason'],
        )
        return self._respond(task)

    @extend_schema(request=None, responses={200: TaskSerializer})
    @action(detail=True, methods=['post'], url_path='approve-extension')
    def approve_extension(self, request, pk=None):
        task = self.get_object()
        task = self.get_service().approve_extension(request.user, task.pk)
        return self._respond(task)

    @extend_schema(request=None, responses={200: TaskSerializer})
    @action(detail=True, methods=['post'], url_path='reject-extension')
    def reject_extension(self, request, pk=None):
        task = self.get_object()
        task = self.get_service().reject_extension(request.user, task.pk)
        return self._respond(task)

    @extend_schema(request=DelegateSerializer, responses={200: TaskSerializer})
    @action(detail=True, methods=['post'])
    def delegate(self, request, pk=None):
        task = self.get_object()
        serializer = DelegateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        task = self.get_service().delegate(request.user, task.pk, serializer.validated_data['assigned_user'])
        return self._respond(task)

    @extend_schema(request=FileUploadSerializer, responses={200: TaskSerializer})
    @action(detail=True, methods=['post'])
    def files(self, request, pk=None):
        task = self.get_object()
        uploaded = request.FILES.getlist('files')
        task = self.get_service().attach_files(request.user, task.pk, uploaded)
        return self._respond(task)

    @extend_schema(request=FileDetachSerializer, responses={200: TaskSerializer})
    @files.mapping.delete
    def remove_file(self, request, pk=None):
        task = self.get_object()
        serializer = FileDetachSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        task = self.get_service().detach_file(request.user, task.pk, serializer.validated_data['file_name'])
        return self._respond(task)

    @action(detail=True, methods=['get'], url_path='files/(?P<file_name>[^/]+)')
    def download(self, request, pk=None, file_name=None):
        task = self.get_object()
        storage = self.get_service().storage
        if file_name not in task.file_names() or not storage.exists(task.pk, file_name):
            raise TaskFileNotFound(f"File '{file_name}' not found in task {task.abbreviation}")
        return FileResponse(storage.open(task.pk, file_name), as_attachment=True, filename=file_name)

    @action(detail=False, methods=['get'], url_path='by-abbreviation/(?P<abbreviation>[^/.]+)')
    def by_abbreviation(self, request, abbreviation=None):
        task = self.get_service().get_task_by_abbreviation(abbreviation)
        # Same visibility as retrieve
        self.kwargs[self.lookup_field] = task.pk
        return self._respond(self.get_object())

    @extend_schema(responses={200: TaskStatsSerializer})
    @action(detail=False, methods=['get'])
    def stats(self, request):
        return Response(task_stats(request.user))
