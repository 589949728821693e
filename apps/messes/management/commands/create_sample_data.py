"""
Management command to create sample data for trying out the API.

Usage:
    python manage.py create_sample_data

This creates:
- 4 users (admin, alice, bob, charlie)
- 1 mess administered by alice, with bob as an accepted member
- 1 pending join request from charlie

All membership changes go through MembershipService, so users, the
membership ledger and the member projection stay consistent.
"""

from django.core.management.base import BaseCommand
from django.db import transaction

from apps.accounts.models import User
from apps.messes.models import Mess, MessMembership, JoinRequest, Member
from apps.messes.services import MembershipService


class Command(BaseCommand):
    help = 'Create sample data for testing the API'

    def add_arguments(self, parser):
        parser.add_argument(
            '--clear',
            action='store_true',
            help='Clear existing data before creating new sample data',
        )

    @transaction.atomic
    def handle(self, *args, **options):
        if options['clear']:
            self.stdout.write('Clearing existing data...')
            self.clear_data()

        self.stdout.write('Creating sample data...')

        users = self.create_users()
        mess = self.create_mess(users)

        self.stdout.write(self.style.SUCCESS('Sample data created successfully!'))
        self.stdout.write('')
        self.stdout.write(f'Mess "{mess.name}" identifier code: {mess.identifier_code}')
        self.stdout.write('')
        self.stdout.write('Test accounts:')
        self.stdout.write('  admin@example.com / admin123 (superuser)')
        self.stdout.write('  alice@example.com / password123 (mess admin)')
        self.stdout.write('  bob@example.com / password123 (member)')
        self.stdout.write('  charlie@example.com / password123 (pending request)')

    def clear_data(self):
        """Clear all data from the database."""
        Member.objects.all().delete()
        JoinRequest.objects.all().delete()
        MessMembership.objects.all().delete()
        User.objects.update(current_mess=None, is_mess_admin=False)
        Mess.objects.all().delete()
        User.objects.filter(is_superuser=False).delete()
        User.objects.filter(email='admin@example.com').delete()

    def create_users(self):
        """Create test users."""
        self.stdout.write('  Creating users...')

        admin, _ = User.objects.get_or_create(
            email='admin@example.com',
            defaults={
                'display_name': 'Admin User',
                'is_staff': True,
                'is_superuser': True,
            }
        )
        admin.set_password('admin123')
        admin.save()

        users = {'admin': admin}
        for key, display_name in [
            ('alice', 'Alice Cook'),
            ('bob', 'Bob Grocer'),
            ('charlie', 'Charlie Newcomer'),
        ]:
            user, _ = User.objects.get_or_create(
                email=f'{key}@example.com',
                defaults={'display_name': display_name},
            )
            user.set_password('password123')
            user.save()
            users[key] = user

        return users

    def create_mess(self, users):
        """Create a mess with one member and one pending request."""
        self.stdout.write('  Creating mess...')
        service = MembershipService()

        alice = User.objects.get(pk=users['alice'].pk)
        if alice.current_mess_id is not None:
            self.stdout.write('  Alice already has a mess, reusing it')
            return alice.current_mess

        mess = service.create_mess(
            name='Green House Mess',
            address='12 College Road',
            user=alice,
        )

        bob_request = service.request_to_join(mess_id=mess.id, user=users['bob'])
        service.accept_request(request_id=bob_request.id, admin=alice)
        service.request_to_join(mess_id=mess.id, user=users['charlie'])

        return mess
