# apps/utils/tests.py
import json
import logging
from decimal import Decimal

from django.test import TestCase, RequestFactory
from django.urls import reverse
from rest_framework import status
from rest_framework.exceptions import ValidationError

from .exceptions import (
    ConsistencyFault,
    Forbidden,
    InsufficientStock,
    InvalidArgument,
    NotFound,
    custom_exception_handler,
)
from .logging import JSONFormatter
from .validators import (
    validate_email,
    validate_not_empty,
    validate_password,
    validate_positive,
    validate_price,
    validate_stock,
)


class ValidatorTests(TestCase):
    def test_not_empty_strips(self):
        self.assertEqual(validate_not_empty("  Laptop ", "name"), "Laptop")
        for value in (None, "", "   "):
            with self.assertRaises(InvalidArgument) as ctx:
                validate_not_empty(value, "name")
            self.assertEqual(ctx.exception.field, "name")

    def test_email_is_normalized(self):
        self.assertEqual(validate_email("Jane@Example.COM"), "jane@example.com")
        with self.assertRaises(InvalidArgument):
            validate_email("not-an-email")
        with self.assertRaises(InvalidArgument):
            validate_email(None)

    def test_password_length(self):
        self.assertEqual(validate_password("secret"), "secret")
        with self.assertRaises(InvalidArgument):
            validate_password("short")

    def test_price_must_be_positive_decimal(self):
        self.assertEqual(validate_price("10.00"), Decimal("10.00"))
        # Floats go through str() so 0.1 stays 0.1
        self.assertEqual(validate_price(0.1), Decimal("0.1"))

        for bad in (0, "-1", None, "abc", True):
            with self.assertRaises(InvalidArgument):
                validate_price(bad)

    def test_price_must_fit_the_column(self):
        self.assertEqual(validate_price("99999999.99"), Decimal("99999999.99"))
        self.assertEqual(validate_price("10.500"), Decimal("10.500"))

        for bad in ("10.005", "0.001", "100000000", "123456789.5"):
            with self.assertRaises(InvalidArgument) as ctx:
                validate_price(bad)
            self.assertEqual(ctx.exception.field, "price")

    def test_stock_and_positive(self):
        self.assertEqual(validate_stock(0), 0)
        with self.assertRaises(InvalidArgument):
            validate_stock(-1)

        self.assertEqual(validate_positive(3, "quantity"), 3)
        for bad in (0, -2, "3", None):
            with self.assertRaises(InvalidArgument) as ctx:
                validate_positive(bad, "quantity")
            self.assertEqual(ctx.exception.field, "quantity")


class ExceptionHandlerTests(TestCase):
    def setUp(self):
        self.request = RequestFactory().get("/api/orders/1")

    def _handle(self, exc):
        return custom_exception_handler(exc, {"request": self.request})

    def test_application_errors_map_to_status_and_body(self):
        cases = [
            (InvalidArgument("items", "Order must contain at least one item"), 400, "invalid_argument"),
            (NotFound("Order", "abc"), 404, "not_found"),
            (Forbidden("Cannot access other user's data"), 403, "forbidden"),
            (InsufficientStock("p-1", 3, available=2), 409, "insufficient_stock"),
        ]
        for exc, expected_status, code in cases:
            response = self._handle(exc)
            self.assertEqual(response.status_code, expected_status)
            self.assertEqual(response.data["code"], code)
            self.assertEqual(response.data["path"], "/api/orders/1")
            self.assertIn("timestamp", response.data)

    def test_insufficient_stock_names_the_product(self):
        response = self._handle(InsufficientStock("p-1", 3, available=2, product_name="Laptop"))
        self.assertEqual(response.data["product_id"], "p-1")
        self.assertEqual(response.data["requested"], 3)
        self.assertIn("Laptop", response.data["message"])

    def test_consistency_fault_is_opaque(self):
        cause = InsufficientStock("p-1", 3, available=0)
        response = self._handle(ConsistencyFault(cause, order_id="o-1"))
        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertEqual(response.data, {"error": "Internal Server Error", "code": "server_error"})

    def test_drf_errors_use_default_handler(self):
        response = self._handle(ValidationError({"name": ["This field is required."]}))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("name", response.data)

    def test_unknown_errors_become_opaque_500(self):
        response = self._handle(RuntimeError("database exploded"))
        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertNotIn("exploded", str(response.data))


class HealthCheckTests(TestCase):
    def test_health_reports_database(self):
        response = self.client.get(reverse("health-check"))
        self.assertEqual(response.status_code, 200)


class JSONFormatterTests(TestCase):
    def test_scrubs_sensitive_keys_and_keeps_context(self):
        record = logging.LogRecord(
            "apps.accounts.services", logging.INFO, __file__, 1,
            {"email": "jane@example.com", "password": "secret1", "nested": {"Token": "abc"}},
            None, None,
        )
        record.order_id = "o-1"

        payload = json.loads(JSONFormatter().format(record))
        self.assertIn("***REDACTED***", payload["msg"])
        self.assertNotIn("secret1", payload["msg"])
        self.assertNotIn("abc", payload["msg"])
        self.assertEqual(payload["order_id"], "o-1")
        self.assertEqual(payload["lvl"], "INFO")
