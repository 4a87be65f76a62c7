import logging

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.db.models import ProtectedError

from apps.accounts.models import Role
from apps.accounts.permissions import require_role
from apps.utils.exceptions import InvalidArgument, NotFound
from apps.utils.validators import validate_not_empty, validate_price, validate_stock
from .models import Category, Product

logger = logging.getLogger(__name__)


def _clean_description(description):
    return description.strip() if description is not None else None


class CategoryService:
    """
    Category management. Reads are public, writes are ADMIN only.
    """

    @staticmethod
    def get_category_entity(category_id) -> Category:
        try:
            return Category.objects.get(pk=category_id)
        except (Category.DoesNotExist, DjangoValidationError, ValueError):
            raise NotFound("Category", category_id)

    @staticmethod
    def create_category(name, description, acting_role) -> Category:
        logger.info(f"Create category request: {name}")
        require_role(acting_role, Role.ADMIN, "create category")

        name = validate_not_empty(name, "name")
        if Category.objects.filter(name__iexact=name).exists():
            raise InvalidArgument("name", "Category name already exists")

        category = Category.objects.create(
            name=name,
            description=_clean_description(description),
        )
        logger.info(f"Category created with id: {category.id}")
        return category

    @staticmethod
    def update_category(category_id, name, description, acting_role) -> Category:
        logger.info(f"Update category request for id: {category_id}")
        require_role(acting_role, Role.ADMIN, "update category")

        name = validate_not_empty(name, "name")
        category = CategoryService.get_category_entity(category_id)

        # New name must not be taken by another category
        if (
            category.name.lower() != name.lower()
            and Category.objects.filter(name__iexact=name).exclude(pk=category.pk).exists()
        ):
            raise InvalidArgument("name", "Category name already exists")

        category.name = name
        category.description = _clean_description(description)
        category.save(update_fields=["name", "description", "updated_at"])
        logger.info(f"Category updated with id: {category.id}")
        return category

    @staticmethod
    def delete_category(category_id, acting_role):
        logger.info(f"Delete category request for id: {category_id}")
        require_role(acting_role, Role.ADMIN, "delete category")

        category = CategoryService.get_category_entity(category_id)
        try:
            category.delete()
        except ProtectedError:
            raise InvalidArgument("category", "Category still has products")
        logger.info(f"Category deleted with id: {category_id}")

    @staticmethod
    def get_category(category_id) -> Category:
        logger.info(f"Fetching category with id: {category_id}")
        return CategoryService.get_category_entity(category_id)

    @staticmethod
    def list_categories():
        logger.info("Fetching all categories")
        return list(Category.objects.all())


class ProductService:
    """
    Catalog management for products. Stock changes caused by orders go
    through apps.inventory.services.StockLedger, never through here.
    """

    @staticmethod
    def _validated_fields(name, description, price, stock, category_id):
        return {
            "name": validate_not_empty(name, "name"),
            "description": _clean_description(description),
            "price": validate_price(price),
            "stock": validate_stock(stock),
            "category": CategoryService.get_category_entity(category_id),
        }

    @staticmethod
    def create_product(name, description, price, stock, category_id, acting_role) -> Product:
        logger.info(f"Create product request: {name}")
        require_role(acting_role, Role.ADMIN, "create product")

        fields = ProductService._validated_fields(name, description, price, stock, category_id)
        product = Product.objects.create(**fields)
        logger.info(f"Product created with id: {product.id}")
        return product

    @staticmethod
    @transaction.atomic
    def update_product(product_id, name, description, price, stock, category_id, acting_role) -> Product:
        logger.info(f"Update product request for id: {product_id}")
        require_role(acting_role, Role.ADMIN, "update product")

        fields = ProductService._validated_fields(name, description, price, stock, category_id)

        # Lock the row so an admin stock overwrite cannot interleave with an order decrement
        try:
            product = Product.objects.select_for_update().get(pk=product_id)
        except (Product.DoesNotExist, DjangoValidationError, ValueError):
            raise NotFound("Product", product_id)

        for attr, value in fields.items():
            setattr(product, attr, value)
        product.save()
        logger.info(f"Product updated with id: {product.id}")
        return product

    @staticmethod
    def delete_product(product_id, acting_role):
        logger.info(f"Delete product request for id: {product_id}")
        require_role(acting_role, Role.ADMIN, "delete product")

        product = ProductService.get_product(product_id)
        try:
            product.delete()
        except ProtectedError:
            # Placed orders keep referencing their products
            raise InvalidArgument("product", "Product is referenced by existing orders")
        logger.info(f"Product deleted with id: {product_id}")

    @staticmethod
    def get_product(product_id) -> Product:
        logger.info(f"Fetching product with id: {product_id}")
        try:
            return Product.objects.select_related("category").get(pk=product_id)
        except (Product.DoesNotExist, DjangoValidationError, ValueError):
            raise NotFound("Product", product_id)

    @staticmethod
    def list_products():
        logger.info("Fetching all products")
        return list(Product.objects.select_related("category").all())

    @staticmethod
    def list_products_by_category(category_id):
        logger.info(f"Fetching products for category: {category_id}")
        category = CategoryService.get_category_entity(category_id)
        return list(category.products.select_related("category").all())
