import logging
import signal

from django.core.management.base import BaseCommand

from cronjob.apps import get_poller
from cronjob.models import Cronjob

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = "Run the recurring task poller (one tick per interval, aligned to the clock)."

    def add_arguments(self, parser):
        parser.add_argument('--interval', type=int, help='Seconds between ticks (default: TASKFLOW_CRONJOB_INTERVAL)')
        parser.add_argument('--once', action='store_true', help='Run a single tick now and exit')

    def handle(self, *args, **options):
        poller = get_poller()
        if options['interval']:
            poller.interval = options['interval']

        if options['once']:
            created = poller.tick() or []
            self.stdout.write(self.style.SUCCESS(f"Created {len(created)} task(s)"))
            return

        # Fails fast when the database is unreachable
        Cronjob.objects.exists()
        logger.info("Database connection verified")

        signal.signal(signal.SIGTERM, lambda *_: poller.stop())
        try:
            poller.run_forever()
        except KeyboardInterrupt:
            poller.stop()
