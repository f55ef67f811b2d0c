# core/management/commands/generate_sample_data.py
import random
from datetime import time
from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from factories.users import ClientFactory
from factories.psychologists import (
    PsychologistFactory,
    PsychologistPricingFactory,
    AvailabilityRuleFactory,
)


class Command(BaseCommand):
    help = 'Generate psychologists with prices and weekly availability, plus clients, for development'

    def add_arguments(self, parser):
        parser.add_argument(
            '--psychologists',
            type=int,
            default=5,
            help='Number of psychologists to create (default: 5)'
        )
        parser.add_argument(
            '--clients',
            type=int,
            default=20,
            help='Number of clients to create (default: 20)'
        )
        parser.add_argument(
            '--seed',
            type=int,
            help='Random seed for reproducible data'
        )

    def handle(self, *args, **options):
        if options['seed']:
            random.seed(options['seed'])
            self.stdout.write(self.style.SUCCESS(f'Using random seed: {options["seed"]}'))

        if options['psychologists'] < 0 or options['clients'] < 0:
            raise CommandError('Counts cannot be negative')

        self.stdout.write('Starting sample data generation...\n')

        with transaction.atomic():
            for _ in range(options['psychologists']):
                pricing = PsychologistPricingFactory()
                # Weekday mornings and a couple of afternoons
                for day in range(1, 6):
                    AvailabilityRuleFactory(psychologist=pricing.psychologist, day_of_week=day,
                                            start_time=time(9, 0), end_time=time(13, 0))
                    if random.random() < 0.4:
                        AvailabilityRuleFactory(psychologist=pricing.psychologist, day_of_week=day,
                                                start_time=time(15, 0), end_time=time(19, 0))

            for _ in range(options['clients']):
                ClientFactory()

        self.stdout.write(self.style.SUCCESS(
            f"Created {options['psychologists']} psychologists and {options['clients']} clients"
        ))
