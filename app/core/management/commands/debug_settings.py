from django.core.management.base import BaseCommand
from django.conf import settings
import os


class Command(BaseCommand):
    help = 'Debug Django settings and marketplace policy configuration'

    def handle(self, *args, **options):
        self.stdout.write(self.style.SUCCESS('=== DJANGO SETTINGS DEBUG ==='))

        env_setting = os.environ.get('DJANGO_SETTINGS_MODULE', 'Not set')
        self.stdout.write(f"DJANGO_SETTINGS_MODULE (env): {env_setting}")
        self.stdout.write(f"Django settings module: {settings.SETTINGS_MODULE}")
        self.stdout.write(f"DEBUG: {settings.DEBUG}")

        db_host = settings.DATABASES['default'].get('HOST', '')
        db_name = settings.DATABASES['default']['NAME']
        self.stdout.write(f"Database: {db_name} @ {db_host or 'local'}")

        self.stdout.write(self.style.SUCCESS('--- Booking policy ---'))
        for key, value in settings.BOOKING_POLICY.items():
            self.stdout.write(f"{key}: {value}")

        self.stdout.write(self.style.SUCCESS('--- Revenue ---'))
        for key, value in settings.REVENUE_SETTINGS.items():
            self.stdout.write(f"{key}: {value}")

        stripe_config = settings.PAYMENT_PROVIDERS.get('STRIPE', {})
        if stripe_config.get('ENABLED'):
            if stripe_config.get('WEBHOOK_SECRET'):
                self.stdout.write(self.style.SUCCESS("Stripe webhooks configured"))
            else:
                self.stdout.write(self.style.WARNING("Stripe enabled but STRIPE_WEBHOOK_SECRET is missing"))
        else:
            self.stdout.write(self.style.WARNING("Stripe is disabled"))

        self.stdout.write(self.style.SUCCESS('=== END DEBUG ==='))
