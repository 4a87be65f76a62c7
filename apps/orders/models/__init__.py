"""
Top-level models import shim for the Orders app, so that

    from apps.orders.models import Order

works while the models live in separate modules.
"""

from .order import *          # Order, OrderQuerySet
from .item import *           # OrderItem
