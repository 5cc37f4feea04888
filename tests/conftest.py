# tests/conftest.py

from __future__ import annotations

import pytest
from rest_framework.test import APIClient

from task.models import Priority
from task.services import TaskService
from task.storage import TaskFileStorage

from .fakes import FakeNotifier


@pytest.fixture(autouse=True)
def document_root(settings, tmp_path):
    """Attachments of every test go to a throwaway directory."""
    root = tmp_path / 'documents'
    root.mkdir()
    settings.TASKFLOW_DOCUMENT_ROOT = str(root)
    return root


@pytest.fixture()
def make_user(django_user_model):
    def _make_user(username, **extra):
        return django_user_model.objects.create_user(
            username=username,
            email=f'{username}@example.com',
            password='s3cret-pass-123',
            **extra,
        )
    return _make_user


@pytest.fixture()
def creator(make_user):
    return make_user('creator', first_name='Cora')


@pytest.fixture()
def assignee(make_user):
    return make_user('assignee', first_name='Abe')


@pytest.fixture()
def outsider(make_user):
    return make_user('outsider')


@pytest.fixture()
def admin_user(make_user):
    return make_user('admin', is_staff=True)


@pytest.fixture()
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture()
def service(notifier, document_root) -> TaskService:
    return TaskService(notifier=notifier, storage=TaskFileStorage(document_root))


@pytest.fixture()
def task(service, notifier, creator, assignee):
    created = service.create_task(creator, {
        'description': 'Prepare the quarterly report',
        'assigned_user': assignee,
        'priority': Priority.HIGH,
    })
    notifier.sent.clear()
    return created


@pytest.fixture()
def api_client() -> APIClient:
    return APIClient()


@pytest.fixture()
def client_for(api_client):
    def _client_for(user):
        api_client.force_authenticate(user=user)
        return api_client
    return _client_for
