from django.contrib.auth.models import User
from rest_framework import serializers

from cronjob.models import Cronjob
from task.adapters.serializers.task_serializer import TaskUserSerializer


class CronjobSerializer(serializers.ModelSerializer):
    user = TaskUserSerializer(read_only=True)
    user_id = serializers.IntegerField(read_only=True)

    class Meta:
        model = Cronjob
        fields = (
            'id', 'task_description', 'creation_time', 'user', 'user_id',
            'interval', 'priority', 'last_fired_at', 'created_at', 'updated_at',
        )
        read_only_fields = fields


class CronjobWriteSerializer(serializers.ModelSerializer):
    user = serializers.PrimaryKeyRelatedField(queryset=User.objects.filter(is_active=True))

    class Meta:
        model = Cronjob
        fields = ('task_description', 'creation_time', 'user', 'interval', 'priority')

    def validate_task_description(self, value):
        if not value.strip():
            raise serializers.ValidationError('This field may not be blank.')
        return value.strip()

    def validate_creation_time(self, value):
        # The poller matches whole seconds
        return value.replace(microsecond=0, tzinfo=None)
