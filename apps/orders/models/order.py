from django.db import models
from django.conf import settings
from apps.utils.models import TimestampedModel

__all__ = ["Order", "OrderQuerySet"]


class OrderQuerySet(models.QuerySet):
    """
    Store lookups: by id, by owning user, by status, unfiltered.
    Results come back newest first.
    """

    def with_details(self):
        return self.select_related('user').prefetch_related('items__product')

    def for_user(self, user_id):
        return self.filter(user_id=user_id)

    def with_status(self, status):
        return self.filter(status=status)


class Order(TimestampedModel):
    class Status(models.TextChoices):
        CREATED = "CREATED", "Order created but not confirmed"
        CONFIRMED = "CONFIRMED", "Order confirmed and ready for processing"
        CANCELLED = "CANCELLED", "Order cancelled"

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name='orders')

    # Fixed at placement; never recomputed from current product prices
    total_amount = models.DecimalField(max_digits=12, decimal_places=2)

    status = models.CharField(max_length=20, choices=Status.choices, default=Status.CREATED, db_index=True)

    objects = OrderQuerySet.as_manager()

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.id} [{self.status}]"
