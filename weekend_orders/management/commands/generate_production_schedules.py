"""
Create production schedules for the upcoming weekends.

Existing dates are skipped, so the command is safe to run from cron.
"""
from django.core.exceptions import ValidationError
from django.core.management.base import BaseCommand, CommandError
from django.utils.dateparse import parse_time

from weekend_orders.conf import get_setting
from weekend_orders.services import ScheduleService


class Command(BaseCommand):
    help = 'Creates Saturday/Sunday production schedules for the coming weeks'

    def add_arguments(self, parser):
        parser.add_argument(
            '--weeks',
            type=int,
            default=None,
            help='Number of weekends to generate (default: schedule_weeks_ahead setting)',
        )
        parser.add_argument(
            '--max-burritos',
            type=int,
            default=None,
            help='Capacity for each new production day',
        )
        parser.add_argument(
            '--cutoff',
            default=None,
            help='Order cutoff time, HH:MM or HH:MM:SS',
        )

    def handle(self, *args, **options):
        weeks = options['weeks']
        if weeks is None:
            weeks = get_setting('schedule_weeks_ahead')
        if weeks < 1:
            raise CommandError('--weeks must be at least 1')

        cutoff = None
        if options['cutoff']:
            cutoff = parse_time(options['cutoff'])
            if cutoff is None:
                raise CommandError(f"Invalid cutoff time: {options['cutoff']}")

        try:
            created = ScheduleService.create_upcoming_schedules(
                weeks=weeks,
                max_burritos=options['max_burritos'],
                cutoff_time=cutoff,
            )
        except ValidationError as exc:
            raise CommandError('; '.join(exc.messages)) from exc

        for schedule in created:
            self.stdout.write(f'  - {schedule}')

        skipped = weeks * 2 - len(created)
        self.stdout.write(
            self.style.SUCCESS(f'[OK] Created {len(created)} schedules, skipped {skipped} existing')
        )
