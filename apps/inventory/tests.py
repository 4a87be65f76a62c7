from decimal import Decimal

from django.test import TestCase

from apps.catalog.models import Category, Product
from apps.utils.exceptions import InsufficientStock, InvalidArgument, NotFound
from .services import StockLedger


class StockLedgerTests(TestCase):
    def setUp(self):
        category = Category.objects.create(name="Electronics")
        self.product = Product.objects.create(
            name="Laptop", price=Decimal("10.00"), stock=5, category=category
        )

    def test_decrement_reduces_stock(self):
        StockLedger.decrement_stock(self.product.id, 3)
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 2)

    def test_decrement_to_zero(self):
        StockLedger.decrement_stock(self.product.id, 5)
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 0)

    def test_insufficient_stock_leaves_stock_unchanged(self):
        with self.assertRaises(InsufficientStock) as ctx:
            StockLedger.decrement_stock(self.product.id, 6)

        self.assertEqual(ctx.exception.available, 5)
        self.assertEqual(ctx.exception.requested, 6)
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 5)

    def test_unknown_product(self):
        with self.assertRaises(NotFound):
            StockLedger.decrement_stock("00000000-0000-0000-0000-000000000000", 1)
        with self.assertRaises(NotFound):
            StockLedger.get_product("garbage")

    def test_quantity_must_be_positive(self):
        for quantity in (0, -1):
            with self.assertRaises(InvalidArgument):
                StockLedger.decrement_stock(self.product.id, quantity)
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 5)
