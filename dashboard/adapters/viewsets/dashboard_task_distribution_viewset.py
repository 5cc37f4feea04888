from django.db.models import Case, CharField, Count, F, Q, Value, When
from django.utils import timezone
from rest_framework.response import Response
from rest_framework.views import APIView

from task.models import TaskState
from task.services import visible_tasks


class TaskStateDistribution(APIView):
    def get(self, request):
        today = timezone.localdate()

        tasks = visible_tasks(request.user).annotate(
            display_state=Case(
                When(Q(due_date__lt=today) & ~Q(state=TaskState.COMPLETED), then=Value('overdue')),
                default=F('state'),
                output_field=CharField()
            )
        )

        state_distribution = (
            tasks.values('display_state')
            .annotate(count=Count('id'))
            .order_by('display_state')
        )

        return Response({"state_distribution": list(state_distribution)})


class TaskPriorityDistribution(APIView):
    def get(self, request):
        tasks = visible_tasks(request.user).filter(~Q(state=TaskState.COMPLETED))

        priority_distribution = (
            tasks.values('priority')
            .annotate(count=Count('id'))
            .order_by('priority')
        )

        return Response({"priority_distribution": list(priority_distribution)})
