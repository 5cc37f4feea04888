from rest_framework import status
from rest_framework.exceptions import APIException, NotFound, PermissionDenied


class TaskPermissionDenied(PermissionDenied):
    default_detail = 'You are not allowed to change this task.'


class TaskNotFound(NotFound):
    default_detail = 'Task not found.'


class TaskFileNotFound(NotFound):
    default_detail = 'File not found in task.'


class TaskConflict(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'The task is not in a state that allows this change.'
    default_code = 'conflict'
