# apps/orders/tests.py
import time
import concurrent.futures
from datetime import timedelta
from decimal import Decimal
from unittest import mock

from django.contrib.auth import get_user_model
from django.db import connection
from django.test import TestCase, TransactionTestCase
from django.urls import reverse
from django.utils import timezone

from rest_framework.test import APITestCase, APIClient
from rest_framework import status

from apps.accounts.models import Role
from apps.catalog.models import Category, Product
from apps.inventory.services import StockLedger
from apps.utils.exceptions import Forbidden, InsufficientStock, InvalidArgument, NotFound
from apps.orders.models import Order, OrderItem
from apps.orders.services import OrderService


User = get_user_model()


class OrderFixtureMixin:
    def make_fixtures(self):
        self.customer = User.objects.create_user(
            email="jane@example.com", password="secret1", name="Jane"
        )
        self.other = User.objects.create_user(
            email="bob@example.com", password="secret1", name="Bob"
        )
        self.admin = User.objects.create_superuser(
            email="admin@example.com", password="adminpass", name="Admin"
        )
        self.category = Category.objects.create(name="Electronics")
        self.laptop = Product.objects.create(
            name="Laptop", price=Decimal("10.00"), stock=5, category=self.category
        )
        self.mouse = Product.objects.create(
            name="Mouse", price=Decimal("2.50"), stock=10, category=self.category
        )

    def place(self, user, items):
        return OrderService.place_order(user.id, user.role, items)


class PlaceOrderTests(OrderFixtureMixin, TestCase):
    def setUp(self):
        self.make_fixtures()

    def test_order_decrements_stock_and_totals(self):
        order = self.place(self.customer, [(self.laptop.id, 3)])

        self.assertEqual(order.total_amount, Decimal("30.00"))
        self.assertEqual(order.status, Order.Status.CREATED)
        self.assertEqual(order.user, self.customer)
        self.laptop.refresh_from_db()
        self.assertEqual(self.laptop.stock, 2)

        # Second order for the same quantity cannot be covered any more
        with self.assertRaises(InsufficientStock):
            self.place(self.customer, [(self.laptop.id, 3)])

        self.laptop.refresh_from_db()
        self.assertEqual(self.laptop.stock, 2)
        self.assertEqual(Order.objects.count(), 1)

    def test_total_is_sum_of_lines(self):
        order = self.place(self.customer, [(self.laptop.id, 2), {"product_id": self.mouse.id, "quantity": 3}])

        self.assertEqual(order.total_amount, Decimal("27.50"))
        lines = list(order.items.all())
        self.assertEqual(len(lines), 2)
        self.assertEqual(sum(line.line_total for line in lines), order.total_amount)

    def test_lines_snapshot_price(self):
        order = self.place(self.customer, [(self.laptop.id, 1)])

        Product.objects.filter(pk=self.laptop.pk).update(price=Decimal("99.00"))

        order = OrderService.get_order(order.id, self.customer.id, Role.CUSTOMER)
        self.assertEqual(order.items.get().unit_price, Decimal("10.00"))
        self.assertEqual(order.total_amount, Decimal("10.00"))

    def test_empty_items_rejected(self):
        for items in ([], None):
            with self.assertRaises(InvalidArgument) as ctx:
                self.place(self.customer, items)
            self.assertEqual(ctx.exception.field, "items")
        self.assertFalse(Order.objects.exists())

    def test_non_positive_quantity_rejected(self):
        with self.assertRaises(InvalidArgument) as ctx:
            self.place(self.customer, [(self.mouse.id, 1), (self.laptop.id, 0)])
        self.assertEqual(ctx.exception.field, "quantity")

        self.mouse.refresh_from_db()
        self.assertEqual(self.mouse.stock, 10)
        self.assertFalse(Order.objects.exists())

    def test_unknown_product(self):
        with self.assertRaises(NotFound):
            self.place(self.customer, [("00000000-0000-0000-0000-000000000000", 1)])
        self.assertFalse(Order.objects.exists())

    def test_admin_cannot_order(self):
        with self.assertRaises(Forbidden):
            self.place(self.admin, [(self.laptop.id, 1)])
        self.laptop.refresh_from_db()
        self.assertEqual(self.laptop.stock, 5)

    def test_passed_deadline_persists_nothing(self):
        with self.assertRaises(InvalidArgument) as ctx:
            OrderService.place_order(
                self.customer.id, Role.CUSTOMER, [(self.laptop.id, 1)],
                deadline=time.monotonic() - 1,
            )
        self.assertEqual(ctx.exception.field, "deadline")
        self.assertFalse(Order.objects.exists())
        self.laptop.refresh_from_db()
        self.assertEqual(self.laptop.stock, 5)


class PlaceOrderAtomicityTests(OrderFixtureMixin, TestCase):
    """
    Failures after the order rows are written must leave nothing behind.
    """

    def setUp(self):
        self.make_fixtures()

    def test_failed_second_decrement_rolls_back_everything(self):
        real_decrement = StockLedger.decrement_stock
        calls = []

        def flaky_decrement(product_id, quantity):
            calls.append(product_id)
            if len(calls) == 2:
                raise InsufficientStock(product_id, quantity, available=0)
            return real_decrement(product_id, quantity)

        with mock.patch.object(StockLedger, "decrement_stock", side_effect=flaky_decrement):
            with self.assertRaises(InsufficientStock):
                self.place(self.customer, [(self.laptop.id, 2), (self.mouse.id, 4)])

        self.assertEqual(len(calls), 2)
        self.assertFalse(Order.objects.exists())
        self.assertFalse(OrderItem.objects.exists())

        self.laptop.refresh_from_db()
        self.mouse.refresh_from_db()
        self.assertEqual(self.laptop.stock, 5)
        self.assertEqual(self.mouse.stock, 10)

    def test_stale_precheck_is_caught_by_ledger(self):
        # Pre-check sees plenty of stock; the row only holds 5
        stale = Product.objects.get(pk=self.laptop.pk)
        stale.stock = 100

        with mock.patch.object(StockLedger, "get_product", return_value=stale):
            with self.assertRaises(InsufficientStock):
                self.place(self.customer, [(self.laptop.id, 6)])

        self.assertFalse(Order.objects.exists())
        self.laptop.refresh_from_db()
        self.assertEqual(self.laptop.stock, 5)


class OrderQueryTests(OrderFixtureMixin, TestCase):
    def setUp(self):
        self.make_fixtures()
        self.order = self.place(self.customer, [(self.laptop.id, 1)])
        self.other_order = self.place(self.other, [(self.mouse.id, 2)])

    def test_owner_and_admin_can_read(self):
        self.assertEqual(OrderService.get_order(self.order.id, self.customer.id, Role.CUSTOMER), self.order)
        self.assertEqual(OrderService.get_order(self.order.id, self.admin.id, Role.ADMIN), self.order)

    def test_other_customer_forbidden(self):
        with self.assertRaises(Forbidden):
            OrderService.get_order(self.order.id, self.other.id, Role.CUSTOMER)

    def test_missing_order(self):
        with self.assertRaises(NotFound):
            OrderService.get_order("00000000-0000-0000-0000-000000000000", self.admin.id, Role.ADMIN)
        with self.assertRaises(NotFound):
            OrderService.get_order("nope", self.admin.id, Role.ADMIN)

    def test_list_for_user(self):
        orders = OrderService.list_orders_for_user(self.customer.id, self.customer.id, Role.CUSTOMER)
        self.assertEqual(orders, [self.order])

        with self.assertRaises(Forbidden):
            OrderService.list_orders_for_user(self.other.id, self.customer.id, Role.CUSTOMER)

        orders = OrderService.list_orders_for_user(self.other.id, self.admin.id, Role.ADMIN)
        self.assertEqual(orders, [self.other_order])

    def test_list_for_self_with_upper_case_id(self):
        orders = OrderService.list_orders_for_user(
            str(self.customer.id).upper(), self.customer.id, Role.CUSTOMER
        )
        self.assertEqual(orders, [self.order])

    def test_list_all_is_admin_only_and_newest_first(self):
        Order.objects.filter(pk=self.order.pk).update(created_at=timezone.now() - timedelta(hours=1))

        orders = OrderService.list_all_orders(Role.ADMIN)
        self.assertEqual([o.id for o in orders], [self.other_order.id, self.order.id])

        with self.assertRaises(Forbidden):
            OrderService.list_all_orders(Role.CUSTOMER)

    def test_list_all_filtered_by_status(self):
        OrderService.update_order_status(self.order.id, "CONFIRMED", Role.ADMIN)

        confirmed = OrderService.list_all_orders(Role.ADMIN, status="confirmed")
        self.assertEqual([o.id for o in confirmed], [self.order.id])

        with self.assertRaises(InvalidArgument):
            OrderService.list_all_orders(Role.ADMIN, status="SHIPPED")


class OrderStatusTests(OrderFixtureMixin, TestCase):
    def setUp(self):
        self.make_fixtures()
        self.order = self.place(self.customer, [(self.laptop.id, 1)])

    def test_admin_confirms_order(self):
        updated = OrderService.update_order_status(self.order.id, Order.Status.CONFIRMED, Role.ADMIN)
        self.assertEqual(updated.status, Order.Status.CONFIRMED)

        reread = OrderService.get_order(self.order.id, self.customer.id, Role.CUSTOMER)
        self.assertEqual(reread.status, Order.Status.CONFIRMED)

    def test_any_transition_is_accepted(self):
        OrderService.update_order_status(self.order.id, "CANCELLED", Role.ADMIN)

        with self.assertLogs("apps.orders.services", level="WARNING"):
            updated = OrderService.update_order_status(self.order.id, "CREATED", Role.ADMIN)
        self.assertEqual(updated.status, Order.Status.CREATED)

    def test_customer_cannot_update_status(self):
        with self.assertRaises(Forbidden):
            OrderService.update_order_status(self.order.id, "CONFIRMED", Role.CUSTOMER)
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, Order.Status.CREATED)

    def test_unknown_status_and_order(self):
        with self.assertRaises(InvalidArgument):
            OrderService.update_order_status(self.order.id, "SHIPPED", Role.ADMIN)
        with self.assertRaises(NotFound):
            OrderService.update_order_status(
                "00000000-0000-0000-0000-000000000000", "CONFIRMED", Role.ADMIN
            )


class OrderAPITests(OrderFixtureMixin, APITestCase):
    def setUp(self):
        self.client = APIClient()
        self.make_fixtures()

    def test_customer_places_order(self):
        self.client.force_authenticate(self.customer)
        payload = {"items": [{"product_id": str(self.laptop.id), "quantity": 3}]}

        resp = self.client.post(reverse("orders-list"), payload, format="json")
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Decimal(resp.data["total_amount"]), Decimal("30.00"))
        self.assertEqual(resp.data["status"], "CREATED")
        self.assertEqual(resp.data["items"][0]["quantity"], 3)

        resp = self.client.post(reverse("orders-list"), payload, format="json")
        self.assertEqual(resp.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(resp.data["code"], "insufficient_stock")

    def test_empty_order_is_400(self):
        self.client.force_authenticate(self.customer)
        resp = self.client.post(reverse("orders-list"), {"items": []}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(resp.data["field"], "items")

    def test_admin_order_is_403(self):
        self.client.force_authenticate(self.admin)
        payload = {"items": [{"product_id": str(self.laptop.id), "quantity": 1}]}
        resp = self.client.post(reverse("orders-list"), payload, format="json")
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)

    def test_anonymous_is_401(self):
        resp = self.client.get(reverse("orders-mine"))
        self.assertEqual(resp.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_status_update_and_listings(self):
        order = self.place(self.customer, [(self.mouse.id, 2)])

        self.client.force_authenticate(self.admin)
        url = reverse("orders-update-status", kwargs={"pk": order.id})
        resp = self.client.patch(f"{url}?status=CONFIRMED")
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["status"], "CONFIRMED")

        resp = self.client.get(reverse("orders-all-orders"), {"status": "CONFIRMED"})
        self.assertEqual([o["id"] for o in resp.data], [str(order.id)])

        self.client.force_authenticate(self.customer)
        resp = self.client.get(reverse("orders-mine"))
        self.assertEqual(len(resp.data), 1)

        resp = self.client.get(reverse("orders-detail", kwargs={"pk": order.id}))
        self.assertEqual(resp.status_code, status.HTTP_200_OK)

        resp = self.client.get(reverse("orders-all-orders"))
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)

    def test_status_body_must_be_an_object(self):
        order = self.place(self.customer, [(self.mouse.id, 1)])
        self.client.force_authenticate(self.admin)
        url = reverse("orders-update-status", kwargs={"pk": order.id})

        resp = self.client.patch(url, ["CONFIRMED"], format="json")
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

        resp = self.client.patch(url, {"status": "confirmed"}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["status"], "CONFIRMED")

    def test_other_customer_cannot_see_order(self):
        order = self.place(self.customer, [(self.mouse.id, 1)])

        self.client.force_authenticate(self.other)
        resp = self.client.get(reverse("orders-detail", kwargs={"pk": order.id}))
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)

        resp = self.client.get(reverse("orders-for-user", kwargs={"user_id": self.customer.id}))
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)


class ConcurrentOrderTests(OrderFixtureMixin, TransactionTestCase):
    # Real transactions so each thread commits on its own connection

    def setUp(self):
        self.make_fixtures()

    def test_concurrent_orders_never_oversell(self):
        """Six orders racing for 3 of the last 5 laptops: exactly one wins"""
        racers = [self.customer.id, self.other.id] * 3

        def place(user_id):
            try:
                OrderService.place_order(user_id, Role.CUSTOMER, [(self.laptop.id, 3)])
                return 3
            except InsufficientStock:
                return 0
            finally:
                connection.close()

        with concurrent.futures.ThreadPoolExecutor(max_workers=len(racers)) as executor:
            sold = [f.result() for f in [executor.submit(place, uid) for uid in racers]]

        self.assertLessEqual(sum(sold), 5)
        self.assertEqual(sold.count(3), 1)
        self.laptop.refresh_from_db()
        self.assertEqual(self.laptop.stock, 2)
        self.assertEqual(Order.objects.count(), 1)
        self.assertEqual(OrderItem.objects.count(), 1)
