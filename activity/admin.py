from django.contrib import admin

from .models import ActivityLog


@admin.register(ActivityLog)
class ActivityLogAdmin(admin.ModelAdmin):
    list_display = ('task_abbreviation', 'action_type', 'user', 'created_at')
    search_fields = ('task_abbreviation', 'user__email')
    list_filter = ('action_type', 'created_at')
    readonly_fields = ('user', 'task', 'task_abbreviation', 'action_type', 'created_at')

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False
