from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand
from django.db import transaction

from taxdesk_core.models import UserRole
from taxdesk_core.workflows import rules

DEFAULT_USERS = (
    ("accueil_user", rules.INTAKE),
    ("gestion_user", rules.MANAGEMENT),
    ("caisse_user", rules.CASHIER),
    ("chef_division_user", rules.DIVISION_HEAD),
)


class Command(BaseCommand):
    help = "Create one user per workflow role when the user table is empty"

    def add_arguments(self, parser):
        parser.add_argument(
            "--password",
            default="password123",
            help="Password given to every seeded user (default: password123)",
        )
        parser.add_argument(
            "--force",
            action="store_true",
            help="Create missing default users even if other users exist",
        )

    def handle(self, *args, **options):
        User = get_user_model()

        if User.objects.exists() and not options["force"]:
            self.stdout.write("Users already exist; nothing to seed.")
            return

        created = 0
        with transaction.atomic():
            for username, role in DEFAULT_USERS:
                user, was_created = User.objects.get_or_create(username=username)
                if was_created:
                    user.set_password(options["password"])
                    user.save(update_fields=["password"])
                    created += 1
                UserRole.objects.update_or_create(user=user, defaults={"role": role})

        self.stdout.write(self.style.SUCCESS(f"Seeded {created} default user(s)."))
