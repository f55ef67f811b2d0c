# revenue/management/commands/reconcile_revenue.py
from django.core.management.base import BaseCommand

from core.exceptions import AlreadyRecognizedError, MarketplaceError
from appointments.models import Appointment
from revenue.models import WalletTransaction
from revenue.services import RevenueRecognitionEngine


class Command(BaseCommand):
    help = 'Recognize revenue for completed appointments whose recognition failed'

    def add_arguments(self, parser):
        parser.add_argument(
            '--appointment',
            type=str,
            help='Only reconcile this appointment id'
        )
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='List the appointments that would be reconciled'
        )

    def handle(self, *args, **options):
        recognized_ids = WalletTransaction.objects.filter(
            category__in=WalletTransaction.RECOGNITION_CATEGORIES,
            appointment__isnull=False,
        ).values_list('appointment_id', flat=True)

        pending = Appointment.objects.filter(status='completed').exclude(
            appointment_id__in=recognized_ids
        ).order_by('start_time')
        if options['appointment']:
            pending = pending.filter(appointment_id=options['appointment'])

        appointment_ids = list(pending.values_list('appointment_id', flat=True))
        self.stdout.write(f"{len(appointment_ids)} completed appointment(s) without recognized revenue")

        if options['dry_run']:
            for appointment_id in appointment_ids:
                self.stdout.write(f"  [DRY RUN] {appointment_id}")
            return

        fixed = 0
        failed = 0
        for appointment_id in appointment_ids:
            try:
                result = RevenueRecognitionEngine.recognize(appointment_id)
                fixed += 1
                self.stdout.write(self.style.SUCCESS(f"  {appointment_id}: recognized {result['amount']}"))
            except AlreadyRecognizedError:
                self.stdout.write(f"  {appointment_id}: already recognized")
            except MarketplaceError as e:
                failed += 1
                self.stdout.write(self.style.ERROR(f"  {appointment_id}: {type(e).__name__}: {str(e)}"))

        style = self.style.SUCCESS if failed == 0 else self.style.WARNING
        self.stdout.write(style(f"Reconciled {fixed}, failed {failed}"))
