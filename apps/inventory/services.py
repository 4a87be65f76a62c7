import logging

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db.models import F
from django.utils import timezone

from apps.catalog.models import Product
from apps.utils.exceptions import InsufficientStock, NotFound
from apps.utils.validators import validate_positive

logger = logging.getLogger(__name__)


class StockLedger:
    """
    Authoritative source of a product's price and stock.
    ALL order-driven stock changes must pass through here.
    """

    @staticmethod
    def get_product(product_id) -> Product:
        try:
            return Product.objects.get(pk=product_id)
        except (Product.DoesNotExist, DjangoValidationError, ValueError):
            raise NotFound("Product", product_id)

    @staticmethod
    def decrement_stock(product_id, quantity: int) -> None:
        """
        Check and write collapse into one conditional UPDATE, so the database
        serializes concurrent decrements on the same row:

            UPDATE product SET stock = stock - q WHERE id = :id AND stock >= q

        When no row matches, nothing was written and we only need to tell a
        missing product from a short one.
        """
        validate_positive(quantity, "quantity")

        try:
            updated = (
                Product.objects
                .filter(pk=product_id, stock__gte=quantity)
                .update(stock=F("stock") - quantity, updated_at=timezone.now())
            )
        except (DjangoValidationError, ValueError):
            raise NotFound("Product", product_id)

        if updated:
            logger.info(f"Stock reduced for product: {product_id} by quantity: {quantity}")
            return

        product = StockLedger.get_product(product_id)
        logger.warning(
            f"Insufficient stock for {product_id}. "
            f"Required: {quantity}, Available: {product.stock}"
        )
        raise InsufficientStock(
            product_id=product_id,
            requested=quantity,
            available=product.stock,
            product_name=product.name,
        )
