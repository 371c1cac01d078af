import signal
import logging
from time import sleep

from django.core.management.base import BaseCommand

from inventory.services import AlertNotificationService

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = 'Email the current low stock, expiring and negative stock alerts to the configured recipients'

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.running = True

    def add_arguments(self, parser):
        parser.add_argument(
            '--daemon',
            action='store_true',
            help='Keep running and repeat the sweep every --interval seconds'
        )
        parser.add_argument(
            '--interval',
            type=int,
            default=3600,
            help='Seconds between sweeps in daemon mode (default: 3600)'
        )

    def handle(self, *args, **options):
        service = AlertNotificationService()

        if not options['daemon']:
            self._sweep(service)
            return

        interval = max(1, options['interval'])
        signal.signal(signal.SIGINT, self._signal_handler)
        signal.signal(signal.SIGTERM, self._signal_handler)

        self.stdout.write(self.style.SUCCESS(f'Starting alert notifier, interval {interval}s'))

        while self.running:
            try:
                self._sweep(service)
            except Exception as e:
                logger.error(f'Error in alert sweep: {e}')
                self.stdout.write(self.style.ERROR(f'Error: {e}'))

            for _ in range(interval):
                if not self.running:
                    break
                sleep(1)

        self.stdout.write(self.style.SUCCESS('Alert notifier stopped.'))

    def _sweep(self, service):
        result = service.notify_active()
        self.stdout.write(
            f"{result['message']}: sent={result['sent']} skipped={result['skipped']} "
            f"errors={result['errors']} total={result['total_alerts']}"
        )

    def _signal_handler(self, signum, frame):
        self.stdout.write('\nReceived shutdown signal, stopping...')
        self.running = False
