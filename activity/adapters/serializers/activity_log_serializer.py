from rest_framework import serializers

from activity.models import ActivityLog


class ActivityLogSerializer(serializers.ModelSerializer):
    """
    Activity log entry with the acting user's name and the task code.
    """
    user_name = serializers.SerializerMethodField()
    task_id = serializers.IntegerField(source='task.id', read_only=True, default=None)

    class Meta:
        model = ActivityLog
        fields = ['id', 'user', 'user_name', 'task_id', 'task_abbreviation', 'action_type', 'created_at']
        read_only_fields = fields

    def get_user_name(self, obj):
        if obj.user is None:
            return None
        return obj.user.get_full_name() or obj.user.username
