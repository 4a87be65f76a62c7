from decimal import Decimal, InvalidOperation

from django.core.exceptions import ValidationError
from django.core.validators import validate_email as django_validate_email

from .exceptions import InvalidArgument

MIN_PASSWORD_LENGTH = 6

# Matches Product.price (max_digits=10, decimal_places=2)
PRICE_MAX_DIGITS = 10
PRICE_DECIMAL_PLACES = 2


def validate_not_empty(value, field_name):
    if value is None or not str(value).strip():
        raise InvalidArgument(field_name, "Cannot be empty")
    return str(value).strip()


def validate_email(value):
    try:
        django_validate_email(value or "")
    except ValidationError:
        raise InvalidArgument("email", "Invalid email format")
    return value.strip().lower()


def validate_password(value):
    if value is None or len(value) < MIN_PASSWORD_LENGTH:
        raise InvalidArgument(
            "password", f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
        )
    return value


def validate_price(value):
    """Money must be a positive Decimal; floats are converted via str() to stay exact."""
    if value is None or isinstance(value, bool):
        raise InvalidArgument("price", "Price must be greater than 0")
    try:
        price = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise InvalidArgument("price", "Price must be a decimal number")
    if not price.is_finite() or price <= 0:
        raise InvalidArgument("price", "Price must be greater than 0")

    # Trailing zeros do not count against the scale (10.500 is 10.50)
    _, digits, exponent = price.normalize().as_tuple()
    if -exponent > PRICE_DECIMAL_PLACES:
        raise InvalidArgument("price", f"Price cannot have more than {PRICE_DECIMAL_PLACES} decimal places")
    if len(digits) + exponent > PRICE_MAX_DIGITS - PRICE_DECIMAL_PLACES:
        raise InvalidArgument("price", "Price is too large")
    return price


def validate_stock(value):
    if not isinstance(value, int) or isinstance(value, bool) or value < 0:
        raise InvalidArgument("stock", "Stock cannot be negative")
    return value


def validate_positive(value, field_name):
    if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
        raise InvalidArgument(field_name, "Must be greater than 0")
    return value
