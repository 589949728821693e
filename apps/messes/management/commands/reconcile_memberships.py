"""
Management command to check mess membership consistency.

Compares each user's current mess pointer and the member projection with
the membership ledger, and realigns them to the ledger with ``--fix``.

Usage:
    python manage.py reconcile_memberships
    python manage.py reconcile_memberships --fix
"""

from django.core.management.base import BaseCommand

from apps.messes.services import reconcile_memberships


class Command(BaseCommand):
    help = 'Report (and optionally fix) users, memberships and members that disagree'

    def add_arguments(self, parser):
        parser.add_argument(
            '--fix',
            action='store_true',
            help='Apply corrections instead of only reporting',
        )

    def handle(self, *args, **options):
        fix = options['fix']
        report = reconcile_memberships(fix=fix)

        if report.is_consistent:
            self.stdout.write(
                self.style.SUCCESS('Memberships are consistent. Nothing to do.')
            )
            return

        sections = [
            ('Users pointing at a mess without membership', report.dangling_pointers),
            ('Active memberships without a matching pointer', report.orphaned_memberships),
            ('Admin flag mismatches', report.admin_flag_mismatches),
            ('Member projection mismatches', report.projection_mismatches),
        ]
        self.stdout.write(f'\nFound {report.issue_count} issue(s):\n')
        for title, issues in sections:
            if not issues:
                continue
            self.stdout.write(f'{title}:')
            for line in issues:
                self.stdout.write(f'  - {line}')

        if not fix:
            self.stdout.write(
                self.style.WARNING('\nReport only: run with --fix to apply corrections.')
            )
            return

        self.stdout.write(
            self.style.SUCCESS(f'\nFixed {report.issue_count} issue(s).')
        )
