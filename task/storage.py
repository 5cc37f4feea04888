import logging
import mimetypes
import os
import shutil
import uuid

from django.conf import settings
from django.core.files.storage import FileSystemStorage
from django.utils.text import get_valid_filename

logger = logging.getLogger(__name__)

# Uploads in flight and replaced files waiting to be dropped; not a task directory
STAGING_DIR = ".staging"


class TaskFileStorage:
    """
    Attachment store: files of task ``<id>`` live under ``<root>/<id>/``.
    Task rows only keep descriptors ``{name, path, type, size}``.
    """

    def __init__(self, location=None):
        self.location = str(location or settings.TASKFLOW_DOCUMENT_ROOT)
        self.storage = FileSystemStorage(location=self.location)

    def _relative_path(self, task_id, name):
        return f"{task_id}/{name}"

    def clean_name(self, name):
        return get_valid_filename(os.path.basename(name or ''))

    def stage(self, task_id, uploaded_file):
        """
        Write an upload to the staging area without touching the task's files.
        Returns ``(descriptor, staged_path)``; ``commit`` moves it into place.
        """
        name = self.clean_name(uploaded_file.name)
        staged_path = self.storage.save(f"{STAGING_DIR}/{uuid.uuid4().hex}-{name}", uploaded_file)

        content_type = getattr(uploaded_file, 'content_type', None) or mimetypes.guess_type(name)[0]
        descriptor = {
            'name': name,
            'path': self._relative_path(task_id, name),
            'type': content_type or 'application/octet-stream',
            'size': uploaded_file.size,
        }
        return descriptor, staged_path

    def commit(self, task_id, staged):
        """
        Move staged uploads into ``<root>/<task_id>/``. A file with the same
        name is replaced. Either every file lands or, on OSError, the
        directory is put back as it was.
        """
        os.makedirs(self.task_directory(task_id), exist_ok=True)
        placed, backups = [], []
        try:
            for descriptor, staged_path in staged:
                final = self.storage.path(descriptor['path'])
                if os.path.exists(final):
                    backup = self.storage.path(f"{STAGING_DIR}/{uuid.uuid4().hex}.bak")
                    os.replace(final, backup)
                    backups.append((backup, final))
                os.replace(self.storage.path(staged_path), final)
                placed.append(final)
        except OSError:
            for final in reversed(placed):
                os.remove(final)
            for backup, final in reversed(backups):
                os.replace(backup, final)
            raise

        for backup, _ in backups:
            os.remove(backup)
        for descriptor, _ in staged:
            logger.info(f"Stored {descriptor['path']} ({descriptor['size']} bytes)")

    def discard(self, staged_paths):
        for staged_path in staged_paths:
            if self.storage.exists(staged_path):
                self.storage.delete(staged_path)

    def delete(self, task_id, name):
        relative_path = self._relative_path(task_id, name)
        if self.storage.exists(relative_path):
            self.storage.delete(relative_path)
            logger.info(f"Deleted {relative_path}")

    def exists(self, task_id, name):
        return self.storage.exists(self._relative_path(task_id, name))

    def open(self, task_id, name):
        return self.storage.open(self._relative_path(task_id, name), 'rb')

    def task_directory(self, task_id):
        return os.path.join(self.location, str(task_id))

    def delete_task_directory(self, task_id):
        directory = self.task_directory(task_id)
        if os.path.isdir(directory):
            shutil.rmtree(directory)
            logger.info(f"Removed directory {directory}")

    def sweep_orphans(self, tasks):
        """
        Reconcile the store with task rows.

        Removes directories of tasks that no longer exist and files no
        descriptor points at; drops descriptors whose file is gone. ``tasks``
        is an iterable of Task rows (saved when their descriptors change).
        Returns ``(removed_paths, dropped_descriptors)``.
        """
        removed, dropped = [], []
        known = {}
        for task in tasks:
            known[str(task.pk)] = task

        if os.path.isdir(self.location):
            for entry in sorted(os.listdir(self.location)):
                directory = os.path.join(self.location, entry)
                if entry.startswith('.') or not os.path.isdir(directory):
                    continue
                task = known.get(entry)
                if task is None:
                    shutil.rmtree(directory)
                    removed.append(directory)
                    continue
                referenced = set(task.file_names())
                for name in sorted(os.listdir(directory)):
                    if name not in referenced:
                        os.remove(os.path.join(directory, name))
                        removed.append(os.path.join(directory, name))

        for task in known.values():
            kept = [f for f in task.files or [] if self.exists(task.pk, f.get('name'))]
            if len(kept) != len(task.files or []):
                dropped.extend(f for f in task.files if f not in kept)
                task.files = kept
                task.save(update_fields=['files', 'updated_at'])

        for path in removed:
            logger.warning(f"Removed orphaned attachment {path}")
        for descriptor in dropped:
            logger.warning(f"Dropped dangling attachment descriptor {descriptor.get('path')}")
        return removed, dropped
