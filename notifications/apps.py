import atexit

from django.apps import AppConfig


class NotificationsConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'notifications'

    registry = None
    notifier = None

    def ready(self):
        from .notifier import Notifier
        from .registry import SessionRegistry

        self.registry = SessionRegistry()
        self.notifier = Notifier(self.registry)
        atexit.register(self.registry.close)


def get_registry():
    from django.apps import apps
    return apps.get_app_config('notifications').registry


def get_notifier():
    from django.apps import apps
    return apps.get_app_config('notifications').notifier
