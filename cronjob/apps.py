from django.apps import AppConfig


class CronjobConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'cronjob'

    poller = None

    def ready(self):
        from django.conf import settings
        from .poller import CronjobPoller

        # Shared by the scheduler loop and manual triggers so their ticks never overlap
        self.poller = CronjobPoller(interval=settings.TASKFLOW_CRONJOB_INTERVAL)


def get_poller():
    from django.apps import apps
    return apps.get_app_config('cronjob').poller
