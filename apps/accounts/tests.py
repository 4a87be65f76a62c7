import os
from io import StringIO
from unittest import mock

from django.core.management import call_command
from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase, APIClient
from rest_framework_simplejwt.tokens import AccessToken

from apps.utils.exceptions import Forbidden, InvalidArgument, NotFound, Unauthorized
from .models import User, Role
from .permissions import require_any_role, require_role, require_self_or_admin
from .services import AccountService


class RoleGuardTests(TestCase):
    def test_require_role(self):
        require_role(Role.ADMIN, Role.ADMIN)
        with self.assertRaises(Forbidden) as ctx:
            require_role(Role.CUSTOMER, Role.ADMIN, "create product")
        self.assertIn("cannot create product", ctx.exception.message)

    def test_require_any_role(self):
        require_any_role(Role.CUSTOMER, Role.ADMIN, Role.CUSTOMER)
        with self.assertRaises(Forbidden):
            require_any_role(Role.ADMIN, Role.CUSTOMER)

    def test_self_or_admin(self):
        u1, u2 = User(), User()
        require_self_or_admin(Role.CUSTOMER, u1.id, u1.id)
        # UUID against its string form
        require_self_or_admin(Role.CUSTOMER, u1.id, str(u1.id))
        require_self_or_admin(Role.ADMIN, u1.id, u2.id)
        with self.assertRaises(Forbidden):
            require_self_or_admin(Role.CUSTOMER, u1.id, u2.id)

    def test_self_match_ignores_uuid_case(self):
        user = User()
        require_self_or_admin(Role.CUSTOMER, user.id, str(user.id).upper())
        require_self_or_admin(Role.CUSTOMER, str(user.id).upper(), user.id.hex)
        with self.assertRaises(Forbidden):
            require_self_or_admin(Role.CUSTOMER, user.id, "not-a-uuid")


class AccountServiceTests(TestCase):
    def setUp(self):
        self.customer = AccountService.register("Jane", "jane@example.com", "secret1")
        self.admin = User.objects.create_superuser(
            email="admin@example.com", password="adminpass", name="Admin"
        )

    def test_register_creates_customer_with_hashed_password(self):
        self.assertEqual(self.customer.role, Role.CUSTOMER)
        self.assertNotEqual(self.customer.password, "secret1")
        self.assertTrue(self.customer.check_password("secret1"))

    def test_register_rejects_duplicate_email(self):
        with self.assertRaises(InvalidArgument) as ctx:
            AccountService.register("Other", "JANE@example.com", "secret2")
        self.assertEqual(ctx.exception.field, "email")
        self.assertEqual(User.objects.filter(email="jane@example.com").count(), 1)

    def test_register_validates_input(self):
        with self.assertRaises(InvalidArgument):
            AccountService.register("", "x@example.com", "secret1")
        with self.assertRaises(InvalidArgument):
            AccountService.register("X", "bad-email", "secret1")
        with self.assertRaises(InvalidArgument):
            AccountService.register("X", "x@example.com", "123")

    def test_login_issues_token_with_role_claim(self):
        result = AccountService.login("Jane@Example.com", "secret1")
        self.assertEqual(result["type"], "Bearer")

        token = AccessToken(result["token"])
        self.assertEqual(token["user_id"], str(self.customer.id))
        self.assertEqual(token["role"], Role.CUSTOMER)
        self.assertEqual(token["email"], "jane@example.com")

    def test_login_rejects_bad_credentials(self):
        with self.assertRaises(Unauthorized):
            AccountService.login("jane@example.com", "wrong-pass")
        with self.assertRaises(Unauthorized):
            AccountService.login("nobody@example.com", "secret1")

    def test_get_user_self_or_admin(self):
        other = AccountService.register("Bob", "bob@example.com", "secret1")

        self.assertEqual(
            AccountService.get_user(self.customer.id, self.customer.id, Role.CUSTOMER), self.customer
        )
        self.assertEqual(AccountService.get_user(other.id, self.admin.id, Role.ADMIN), other)
        with self.assertRaises(Forbidden):
            AccountService.get_user(other.id, self.customer.id, Role.CUSTOMER)

    def test_get_missing_user(self):
        with self.assertRaises(NotFound):
            AccountService.get_user_entity("not-a-uuid")


class AccountAPITests(APITestCase):
    def setUp(self):
        self.client = APIClient()

    def test_register_then_login_then_profile(self):
        resp = self.client.post(
            reverse("user-register"),
            {"name": "Jane", "email": "jane@example.com", "password": "secret1"},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        self.assertEqual(resp.data["role"], Role.CUSTOMER)
        self.assertNotIn("password", resp.data)

        resp = self.client.post(
            reverse("user-login"),
            {"email": "jane@example.com", "password": "secret1"},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        token = resp.data["token"]

        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {token}")
        resp = self.client.get(reverse("user-profile"))
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["email"], "jane@example.com")

    def test_duplicate_registration_is_400(self):
        AccountService.register("Jane", "jane@example.com", "secret1")
        resp = self.client.post(
            reverse("user-register"),
            {"name": "Jane", "email": "jane@example.com", "password": "secret1"},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(resp.data["code"], "invalid_argument")

    def test_bad_login_is_401(self):
        resp = self.client.post(
            reverse("user-login"),
            {"email": "ghost@example.com", "password": "secret1"},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_profile_requires_token(self):
        resp = self.client.get(reverse("user-profile"))
        self.assertEqual(resp.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_customer_cannot_read_other_user(self):
        jane = AccountService.register("Jane", "jane@example.com", "secret1")
        bob = AccountService.register("Bob", "bob@example.com", "secret1")

        self.client.force_authenticate(jane)
        resp = self.client.get(reverse("user-detail", kwargs={"user_id": bob.id}))
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)

        resp = self.client.get(reverse("user-detail", kwargs={"user_id": jane.id}))
        self.assertEqual(resp.status_code, status.HTTP_200_OK)


class CreateAdminCommandTests(TestCase):
    @mock.patch.dict(os.environ, {"ALLOW_CREATE_ADMIN_IN_PROD": "True"})
    def test_creates_admin(self):
        out = StringIO()
        call_command("create_admin", email="Root@Example.com", password="rootpass", stdout=out)

        admin = User.objects.get(email="root@example.com")
        self.assertEqual(admin.role, Role.ADMIN)
        self.assertTrue(admin.is_staff)
        self.assertTrue(admin.check_password("rootpass"))
        self.assertIn("Created admin", out.getvalue())

    @mock.patch.dict(os.environ, {"ALLOW_CREATE_ADMIN_IN_PROD": ""})
    def test_production_lock(self):
        err = StringIO()
        call_command("create_admin", email="root@example.com", password="rootpass", stderr=err)
        self.assertFalse(User.objects.filter(email="root@example.com").exists())
        self.assertIn("Production Lock", err.getvalue())
