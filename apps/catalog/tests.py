# apps/catalog/tests.py
from decimal import Decimal

from django.test import TestCase
from django.urls import reverse
from django.contrib.auth import get_user_model

from rest_framework.test import APITestCase, APIClient
from rest_framework import status

from apps.accounts.models import Role
from apps.utils.exceptions import Forbidden, InvalidArgument, NotFound
from .models import Category, Product
from .services import CategoryService, ProductService

User = get_user_model()


class CategoryServiceTests(TestCase):
    def test_admin_creates_and_updates_category(self):
        cat = CategoryService.create_category(" Electronics ", "Gadgets", Role.ADMIN)
        self.assertEqual(cat.name, "Electronics")

        cat = CategoryService.update_category(cat.id, "Electronics & Tech", None, Role.ADMIN)
        self.assertEqual(cat.name, "Electronics & Tech")
        self.assertIsNone(cat.description)

    def test_customer_cannot_write(self):
        with self.assertRaises(Forbidden):
            CategoryService.create_category("Books", None, Role.CUSTOMER)
        self.assertFalse(Category.objects.exists())

    def test_duplicate_name_rejected(self):
        CategoryService.create_category("Books", None, Role.ADMIN)
        with self.assertRaises(InvalidArgument):
            CategoryService.create_category("books", None, Role.ADMIN)

    def test_cannot_delete_category_with_products(self):
        cat = Category.objects.create(name="Books")
        Product.objects.create(name="Novel", price=Decimal("5.00"), stock=1, category=cat)

        with self.assertRaises(InvalidArgument):
            CategoryService.delete_category(cat.id, Role.ADMIN)
        self.assertTrue(Category.objects.filter(pk=cat.pk).exists())

    def test_missing_category(self):
        with self.assertRaises(NotFound):
            CategoryService.get_category("00000000-0000-0000-0000-000000000000")


class ProductServiceTests(TestCase):
    def setUp(self):
        self.cat = Category.objects.create(name="Electronics")

    def test_create_product(self):
        product = ProductService.create_product(
            "Laptop", "14 inch", "999.99", 10, self.cat.id, Role.ADMIN
        )
        self.assertEqual(product.price, Decimal("999.99"))
        self.assertEqual(product.stock, 10)
        self.assertEqual(product.category, self.cat)

    def test_create_product_validation(self):
        with self.assertRaises(InvalidArgument):
            ProductService.create_product("Laptop", None, "0", 1, self.cat.id, Role.ADMIN)
        with self.assertRaises(InvalidArgument):
            ProductService.create_product("Laptop", None, "10", -1, self.cat.id, Role.ADMIN)
        with self.assertRaises(NotFound):
            ProductService.create_product(
                "Laptop", None, "10", 1, "00000000-0000-0000-0000-000000000000", Role.ADMIN
            )
        with self.assertRaises(Forbidden):
            ProductService.create_product("Laptop", None, "10", 1, self.cat.id, Role.CUSTOMER)
        with self.assertRaises(InvalidArgument):
            ProductService.create_product("Laptop", None, "9.999", 1, self.cat.id, Role.ADMIN)
        with self.assertRaises(InvalidArgument):
            ProductService.create_product("Laptop", None, Decimal("1E+9"), 1, self.cat.id, Role.ADMIN)
        self.assertFalse(Product.objects.exists())

    def test_update_and_delete(self):
        product = ProductService.create_product("Mouse", None, "20.00", 5, self.cat.id, Role.ADMIN)
        product = ProductService.update_product(
            product.id, "Mouse Pro", "Wireless", "25.50", 8, self.cat.id, Role.ADMIN
        )
        self.assertEqual(product.name, "Mouse Pro")
        self.assertEqual(product.price, Decimal("25.50"))

        ProductService.delete_product(product.id, Role.ADMIN)
        with self.assertRaises(NotFound):
            ProductService.get_product(product.id)

    def test_list_by_category(self):
        other = Category.objects.create(name="Books")
        ProductService.create_product("Laptop", None, "10", 1, self.cat.id, Role.ADMIN)
        ProductService.create_product("Novel", None, "5", 1, other.id, Role.ADMIN)

        names = [p.name for p in ProductService.list_products_by_category(self.cat.id)]
        self.assertEqual(names, ["Laptop"])
        self.assertEqual(len(ProductService.list_products()), 2)


class CatalogAPITests(APITestCase):
    def setUp(self):
        self.client = APIClient()
        self.admin = User.objects.create_superuser(
            email="admin@example.com", password="adminpass", name="Admin"
        )
        self.customer = User.objects.create_user(
            email="jane@example.com", password="secret1", name="Jane"
        )
        self.cat = Category.objects.create(name="Electronics")
        self.product = Product.objects.create(
            name="Laptop", price=Decimal("999.99"), stock=3, category=self.cat
        )

    def test_public_reads(self):
        resp = self.client.get(reverse("product-list"))
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data[0]["name"], "Laptop")
        self.assertEqual(resp.data[0]["category_name"], "Electronics")

        resp = self.client.get(reverse("product-by-category", kwargs={"category_id": self.cat.id}))
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(len(resp.data), 1)

        resp = self.client.get(reverse("category-detail", kwargs={"pk": self.cat.id}))
        self.assertEqual(resp.status_code, status.HTTP_200_OK)

    def test_missing_product_is_404(self):
        resp = self.client.get(
            reverse("product-detail", kwargs={"pk": "00000000-0000-0000-0000-000000000000"})
        )
        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(resp.data["code"], "not_found")

    def test_admin_creates_product(self):
        self.client.force_authenticate(self.admin)
        payload = {
            "name": "Phone",
            "description": "Smartphone",
            "price": "499.00",
            "stock": 7,
            "category_id": str(self.cat.id),
        }
        resp = self.client.post(reverse("product-list"), payload, format="json")
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        self.assertEqual(resp.data["stock"], 7)

    def test_customer_cannot_create_product(self):
        self.client.force_authenticate(self.customer)
        payload = {"name": "Phone", "price": "499.00", "stock": 7, "category_id": str(self.cat.id)}
        resp = self.client.post(reverse("product-list"), payload, format="json")
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)

    def test_anonymous_write_is_401(self):
        resp = self.client.post(reverse("category-list"), {"name": "Books"}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_401_UNAUTHORIZED)
