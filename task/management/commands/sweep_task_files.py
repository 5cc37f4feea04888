from django.core.management.base import BaseCommand

from task.models import Task
from task.storage import TaskFileStorage


class Command(BaseCommand):
    help = "Remove attachments no task points at and descriptors whose file is gone."

    def handle(self, *args, **options):
        removed, dropped = TaskFileStorage().sweep_orphans(Task.objects.all())
        self.stdout.write(self.style.SUCCESS(
            f"Removed {len(removed)} orphaned path(s), dropped {len(dropped)} dangling descriptor(s)"
        ))
