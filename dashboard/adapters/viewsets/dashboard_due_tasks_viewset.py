from django.db.models import Q
from django.utils import timezone
from rest_framework.response import Response
from rest_framework.views import APIView

from task.adapters.serializers.task_serializer import TaskSerializer
from task.models import TaskState
from task.services import visible_tasks


class DueTasksView(APIView):
    """
    Tasks of the current user due until today and not completed
    """
    def get(self, request):
        today = timezone.localdate()

        due_tasks = visible_tasks(request.user).filter(
            ~Q(state=TaskState.COMPLETED),
            due_date__lte=today
        ).order_by('due_date')

        serializer = TaskSerializer(due_tasks, many=True)

        return Response({"due_tasks": serializer.data})
