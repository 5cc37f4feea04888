from rest_framework.permissions import BasePermission


class TaskAccessPermission(BasePermission):
    """
    Object permission for tasks.

    - admin (is_staff): may read every task
    - assignee / creator: may read and act on the task
    - anyone else: denied

    What each party may change is decided by TaskService.
    """

    def has_permission(self, request, view):
        user = getattr(request, "user", None)
        return bool(user and user.is_authenticated)

    def has_object_permission(self, request, view, obj):
        user = request.user
        if user.is_staff:
            return True
        return user.pk in (obj.assigned_user_id, obj.created_user_id)
