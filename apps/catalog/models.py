# apps/catalog/models.py
from django.db import models

from apps.utils.models import TimestampedModel


class Category(TimestampedModel):
    name = models.CharField(max_length=255, unique=True)
    description = models.TextField(null=True, blank=True)

    class Meta:
        verbose_name_plural = "Categories"
        ordering = ["name"]

    def __str__(self):
        return self.name


class Product(TimestampedModel):
    """
    Sellable item. `stock` is the authoritative on-hand count and is only
    decremented through the StockLedger; the check constraint keeps it
    from ever being persisted below zero.
    """
    name = models.CharField(max_length=255)
    description = models.TextField(null=True, blank=True)

    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        help_text="Current unit price; orders snapshot it at placement",
    )
    stock = models.IntegerField(default=0)

    category = models.ForeignKey(
        Category,
        on_delete=models.PROTECT,
        related_name='products',
    )

    class Meta:
        ordering = ["name"]
        indexes = [
            models.Index(fields=["category"], name="catalog_product_category_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(stock__gte=0),
                name='product_stock_non_negative'
            ),
            models.CheckConstraint(
                condition=models.Q(price__gte=0),
                name='product_price_non_negative'
            ),
        ]

    def __str__(self):
        return f"{self.name} ({self.stock} in stock)"
