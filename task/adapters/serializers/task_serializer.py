from django.contrib.auth.models import User
from rest_framework import serializers

from task.models import Priority, Task


class TaskUserSerializer(serializers.ModelSerializer):
    name = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = ('id', 'username', 'email', 'name')

    def get_name(self, obj):
        return obj.get_full_name() or obj.username


class TaskFileSerializer(serializers.Serializer):
    name = serializers.CharField()
    path = serializers.CharField()
    type = serializers.CharField()
    size = serializers.IntegerField()


class TaskSerializer(serializers.ModelSerializer):
    assigned_user = TaskUserSerializer(read_only=True)
    created_user = TaskUserSerializer(read_only=True)
    assigned_user_id = serializers.IntegerField(read_only=True)
    created_user_id = serializers.IntegerField(read_only=True)
    completed = serializers.BooleanField(read_only=True)
    status = serializers.CharField(read_only=True, allow_null=True)
    is_overdue = serializers.BooleanField(read_only=True)
    files = TaskFileSerializer(many=True, read_only=True)

    class Meta:
        model = Task
        fields = (
            'id',
            'abbreviation',
            'description',
            'assigned_user',
            'assigned_user_id',
            'created_user',
            'created_user_id',
            'due_date',
            'priority',
            'state',
            'completed',
            'status',
            'on_hold_reason',
            'requested_date',
            'requested_date_reason',
            'is_request_date_extension_approved',
            'is_overdue',
            'remarks',
            'files',
            'created_at',
            'updated_at',
        )
        read_only_fields = fields


class TaskWriteSerializer(serializers.Serializer):
    description = serializers.CharField(max_length=2000)
    assigned_user = serializers.PrimaryKeyRelatedField(queryset=User.objects.filter(is_active=True))
    due_date = serializers.DateField(required=False)
    priority = serializers.ChoiceField(choices=Priority.choices, default=Priority.NORMAL)
    remarks = serializers.CharField(max_length=500, required=False, allow_blank=True)


class TaskUpdateSerializer(serializers.Serializer):
    description = serializers.CharField(max_length=2000, required=False)
    due_date = serializers.DateField(required=False)
    priority = serializers.ChoiceField(choices=Priority.choices, required=False)
    remarks = serializers.CharField(max_length=500, required=False, allow_blank=True)


class CompleteSerializer(serializers.Serializer):
    completed = serializers.BooleanField(default=True)


class HoldSerializer(serializers.Serializer):
    on_hold_reason = serializers.CharField()


class ExtensionRequestSerializer(serializers.Serializer):
    requested_date = serializers.DateField()
    requested_date_reason = serializers.CharField()


class DelegateSerializer(serializers.Serializer):
    assigned_user = serializers.PrimaryKeyRelatedField(queryset=User.objects.filter(is_active=True))


class FileUploadSerializer(serializers.Serializer):
    files = serializers.ListField(child=serializers.FileField(), allow_empty=False)


class FileDetachSerializer(serializers.Serializer):
    file_name = serializers.CharField()


class TaskStatsSerializer(serializers.Serializer):
    total = serializers.IntegerField()
    completed = serializers.IntegerField()
    pending = serializers.IntegerField()
    overdue = serializers.IntegerField()
    on_hold = serializers.IntegerField()
    date_extension = serializers.IntegerField()
