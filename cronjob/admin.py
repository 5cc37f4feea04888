from django.contrib import admin
from django_summernote.admin import SummernoteModelAdmin

from .models import Cronjob


@admin.register(Cronjob)
class CronjobAdmin(SummernoteModelAdmin):
    list_display = ('creation_time', 'interval', 'priority', 'user', 'last_fired_at')
    list_filter = ('interval', 'priority')
    search_fields = ('task_description', 'user__email')
    readonly_fields = ('last_fired_at', 'created_at', 'updated_at')
    summernote_fields = ('task_description',)
