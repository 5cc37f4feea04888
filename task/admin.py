from django.contrib import admin
from django_summernote.admin import SummernoteModelAdmin

from .models import AbbreviationSequence, Task


@admin.register(Task)
class TaskAdmin(SummernoteModelAdmin):
    list_display = ('abbreviation', 'assigned_user', 'created_user', 'due_date', 'priority', 'state')
    list_filter = ('state', 'priority', 'due_date')
    search_fields = ('abbreviation', 'description')
    readonly_fields = ('abbreviation', 'files', 'created_at', 'updated_at')
    summernote_fields = ('description',)


@admin.register(AbbreviationSequence)
class AbbreviationSequenceAdmin(admin.ModelAdmin):
    list_display = ('priority', 'year', 'month', 'last_value')
    list_filter = ('priority', 'year')
