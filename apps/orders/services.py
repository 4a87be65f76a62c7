import logging
import time
from decimal import Decimal

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction

from apps.accounts.models import Role
from apps.accounts.permissions import require_any_role, require_role, require_self_or_admin
from apps.accounts.services import AccountService
from apps.inventory.services import StockLedger
from apps.utils.exceptions import ConsistencyFault, InsufficientStock, InvalidArgument, NotFound
from apps.utils.validators import validate_positive
from .models import Order, OrderItem

logger = logging.getLogger(__name__)

# Roles allowed to place orders. Admins do not order on their own behalf.
ORDERING_ROLES = (Role.CUSTOMER,)

# The workflow orders are meant to follow. Status updates are not rejected
# when they leave it; such moves are logged.
INTENDED_TRANSITIONS = {
    (Order.Status.CREATED, Order.Status.CONFIRMED),
    (Order.Status.CREATED, Order.Status.CANCELLED),
}


class OrderService:
    """
    Order placement and lifecycle. Every method takes the acting identity
    as explicit arguments and authorizes before touching data.
    """

    @staticmethod
    def place_order(acting_user_id, acting_role, items, deadline=None) -> Order:
        """
        Places an order for the acting customer.

        1. Authorize & validate the request (nothing written yet)
        2. Price every line from the ledger & pre-check stock
        3. Persist order + items and decrement stock (one atomic block)

        `items` is a sequence of (product_id, quantity) pairs or of dicts with
        those keys. `deadline` is an optional time.monotonic() value; once it
        has passed the order is abandoned before anything is persisted.
        """
        logger.info(f"Create order request for user: {acting_user_id}")

        # 1. Authorization & input shape
        require_any_role(acting_role, *ORDERING_ROLES)

        if not items:
            raise InvalidArgument("items", "Order must contain at least one item")

        # 2. Trusted price calculation, in input order
        priced_lines = []
        for item in items:
            product_id, quantity = OrderService._unpack_line(item)
            validate_positive(quantity, "quantity")

            product = StockLedger.get_product(product_id)

            # Fail fast only; the ledger re-checks atomically on decrement
            if product.stock < quantity:
                logger.warning(
                    f"Order rejected: product {product.id} has {product.stock}, requested {quantity}"
                )
                raise InsufficientStock(
                    product_id=product.id,
                    requested=quantity,
                    available=product.stock,
                    product_name=product.name,
                )

            priced_lines.append({
                "product": product,
                "quantity": quantity,
                "unit_price": product.price,
            })

        total_amount = sum(
            (line["unit_price"] * line["quantity"] for line in priced_lines),
            Decimal("0.00"),
        )
        logger.info(f"Order total calculated: {total_amount}")

        user = AccountService.get_user_entity(acting_user_id)

        if deadline is not None and time.monotonic() > deadline:
            logger.warning(f"Order for user {acting_user_id} abandoned: deadline passed before persisting")
            raise InvalidArgument("deadline", "Deadline passed before the order could be placed")

        # 3. Atomic persist + decrement
        try:
            order = OrderService._persist_and_decrement(user, priced_lines, total_amount)
        except ConsistencyFault as fault:
            # Everything written for this order has been rolled back by now
            logger.error(f"Order placement rolled back: {fault}", exc_info=fault)
            raise fault.cause from fault

        logger.info(f"Order created with id: {order.id} and total: {total_amount}")
        return Order.objects.with_details().get(pk=order.pk)

    @staticmethod
    @transaction.atomic
    def _persist_and_decrement(user, priced_lines, total_amount) -> Order:
        order = Order.objects.create(
            user=user,
            total_amount=total_amount,
            status=Order.Status.CREATED,
        )

        OrderItem.objects.bulk_create([
            OrderItem(
                order=order,
                product=line["product"],
                quantity=line["quantity"],
                unit_price=line["unit_price"],
            ) for line in priced_lines
        ])

        # Stock may have moved since the pre-check; the ledger decides.
        # Deterministic product order keeps concurrent orders from deadlocking.
        for line in sorted(priced_lines, key=lambda line: str(line["product"].id)):
            try:
                StockLedger.decrement_stock(line["product"].id, line["quantity"])
            except (InsufficientStock, NotFound) as exc:
                raise ConsistencyFault(exc, order_id=order.id) from exc

        return order

    @staticmethod
    def _unpack_line(item):
        if isinstance(item, dict):
            product_id, quantity = item.get("product_id"), item.get("quantity")
        else:
            try:
                product_id, quantity = item
            except (TypeError, ValueError):
                raise InvalidArgument("items", "Each item must be a (product_id, quantity) pair")

        if product_id is None:
            raise InvalidArgument("product_id", "Cannot be empty")
        return product_id, quantity

    @staticmethod
    def _parse_status(status):
        if isinstance(status, str):
            status = status.strip().upper()
        try:
            return Order.Status(status)
        except ValueError:
            raise InvalidArgument("status", f"Unknown order status: {status}")

    @staticmethod
    @transaction.atomic
    def update_order_status(order_id, new_status, acting_role) -> Order:
        logger.info(f"Update order status request for order: {order_id}")

        require_role(acting_role, Role.ADMIN, "update order status")
        status = OrderService._parse_status(new_status)

        try:
            order = Order.objects.select_for_update().get(pk=order_id)
        except (Order.DoesNotExist, DjangoValidationError, ValueError):
            raise NotFound("Order", order_id)

        previous = order.status
        if previous != status and (previous, status) not in INTENDED_TRANSITIONS:
            logger.warning(f"Order {order.id} moved outside the usual workflow: {previous} -> {status}")

        order.status = status
        order.save(update_fields=["status", "updated_at"])

        logger.info(f"Order {order.id} status updated to: {status}")
        return Order.objects.with_details().get(pk=order.pk)

    @staticmethod
    def get_order(order_id, acting_user_id, acting_role) -> Order:
        logger.info(f"Fetch order by id: {order_id}")

        try:
            order = Order.objects.with_details().get(pk=order_id)
        except (Order.DoesNotExist, DjangoValidationError, ValueError):
            raise NotFound("Order", order_id)

        require_self_or_admin(acting_role, acting_user_id, order.user_id)
        return order

    @staticmethod
    def list_orders_for_user(target_user_id, acting_user_id, acting_role):
        logger.info(f"Fetch orders for user: {target_user_id}")

        require_self_or_admin(acting_role, acting_user_id, target_user_id)

        try:
            return list(Order.objects.with_details().for_user(target_user_id))
        except (DjangoValidationError, ValueError):
            raise InvalidArgument("user_id", f"Malformed user id: {target_user_id}")

    @staticmethod
    def list_all_orders(acting_role, status=None):
        logger.info("Fetch all orders")

        require_role(acting_role, Role.ADMIN, "view all orders")

        orders = Order.objects.with_details()
        if status:
            orders = orders.with_status(OrderService._parse_status(status))
        return list(orders)
