import time

from django.conf import settings
from django.core.management.base import BaseCommand, CommandError
import redis
from redis.exceptions import ConnectionError


class Command(BaseCommand):
    """Block until the Celery broker answers, so workers and beat start cleanly"""

    help = 'Wait for the Redis broker named in CELERY_BROKER_URL'

    def add_arguments(self, parser):
        parser.add_argument('--attempts', type=int, default=30)
        parser.add_argument('--interval', type=float, default=2.0, help='Seconds between attempts')

    def handle(self, *args, **options):
        broker_url = settings.CELERY_BROKER_URL
        if not broker_url.startswith(('redis://', 'rediss://')):
            raise CommandError(f'CELERY_BROKER_URL is not a Redis URL: {broker_url}')

        self.stdout.write('Waiting for the Redis broker...')
        client = redis.Redis.from_url(broker_url)
        attempts = options['attempts']

        for attempt in range(1, attempts + 1):
            try:
                client.ping()
                self.stdout.write(self.style.SUCCESS('Redis broker is available'))
                return
            except ConnectionError:
                self.stdout.write(f'Broker unavailable, retrying in {options["interval"]}s ({attempt}/{attempts})')
                time.sleep(options['interval'])

        raise CommandError(f'Could not reach the Redis broker after {attempts} attempts')
