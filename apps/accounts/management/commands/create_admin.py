import os
from django.core.management.base import BaseCommand
from django.conf import settings
from django.contrib.auth import get_user_model

from apps.accounts.models import Role


class Command(BaseCommand):
    help = "Create or promote an ADMIN account."

    def add_arguments(self, parser):
        parser.add_argument('--email', type=str, default=os.getenv("ADMIN_EMAIL"))
        parser.add_argument('--password', type=str, default=os.getenv("ADMIN_PASSWORD"))
        parser.add_argument('--name', type=str, default=os.getenv("ADMIN_NAME", "Administrator"))

    def handle(self, *args, **options):
        # 1. Safety Check for Production
        if not settings.DEBUG and not os.getenv("ALLOW_CREATE_ADMIN_IN_PROD") == "True":
            self.stderr.write(self.style.ERROR(
                "Production Lock: Set ALLOW_CREATE_ADMIN_IN_PROD=True to run this."
            ))
            return

        email = options['email']
        password = options['password']

        if not email or not password:
            self.stderr.write(self.style.ERROR(
                "Missing --email/--password (or ADMIN_EMAIL / ADMIN_PASSWORD env vars)."
            ))
            return

        User = get_user_model()

        # 2. Get or Create
        user, created = User.objects.get_or_create(
            email=email.strip().lower(),
            defaults={"name": options['name'], "role": Role.ADMIN, "is_active": True}
        )

        # 3. Enforce Permissions
        user.is_staff = True
        user.is_superuser = True
        user.role = Role.ADMIN
        user.set_password(password)
        user.save()

        if created:
            self.stdout.write(self.style.SUCCESS(f"Created admin: {user.email}"))
        else:
            self.stdout.write(self.style.WARNING(f"Updated admin: {user.email}"))
