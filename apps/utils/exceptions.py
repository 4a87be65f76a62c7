import logging

from django.utils import timezone
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class ApplicationError(Exception):
    """
    Base of every domain error raised by the service layer.
    Each error carries a machine-readable code and the HTTP status it maps to.
    """
    code = "application_error"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message, field=None):
        self.message = message
        self.field = field
        super().__init__(message)

    def as_dict(self):
        return {
            "error": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "field": self.field,
        }


class InvalidArgument(ApplicationError):
    """Malformed or empty input."""
    code = "invalid_argument"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, field, reason):
        super().__init__(f"Invalid {field}: {reason}", field=field)
        self.reason = reason


class NotFound(ApplicationError):
    code = "not_found"
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, resource, identifier, field="id"):
        super().__init__(f"{resource} not found with {field}: {identifier}", field=field)
        self.resource = resource
        self.identifier = identifier


class InsufficientStock(ApplicationError):
    """
    Raised when a product cannot cover the requested quantity.
    Kept apart from InvalidArgument so clients can show stock messaging.
    """
    code = "insufficient_stock"
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, product_id, requested, available=None, product_name=None):
        label = product_name or product_id
        super().__init__(f"Insufficient stock for product: {label}", field="stock")
        self.product_id = product_id
        self.requested = requested
        self.available = available

    def as_dict(self):
        data = super().as_dict()
        data["product_id"] = str(self.product_id)
        data["requested"] = self.requested
        return data


class Forbidden(ApplicationError):
    code = "forbidden"
    status_code = status.HTTP_403_FORBIDDEN


class Unauthorized(ApplicationError):
    code = "unauthorized"
    status_code = status.HTTP_401_UNAUTHORIZED

    def __init__(self, message="Invalid credentials"):
        super().__init__(message)


class ConsistencyFault(ApplicationError):
    """
    Internal: a stock decrement failed after the order rows were written.
    Raising it inside the atomic block rolls the whole order back.
    """
    code = "consistency_fault"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, cause, order_id=None):
        super().__init__(f"Stock decrement failed for order {order_id}: {cause}")
        self.cause = cause
        self.order_id = order_id


def _request_path(context):
    request = context.get("request") if context else None
    return getattr(request, "path", None)


def custom_exception_handler(exc, context):
    # Internal faults never leak their detail to the client
    if isinstance(exc, ConsistencyFault):
        logger.error(f"Consistency fault reached the transport layer: {exc}", exc_info=exc)
        return _opaque_server_error()

    if isinstance(exc, ApplicationError):
        logger.warning(f"{exc.__class__.__name__}: {exc.message}")
        body = exc.as_dict()
        body.update({
            "status_code": exc.status_code,
            "timestamp": timezone.now().isoformat(),
            "path": _request_path(context),
        })
        return Response(body, status=exc.status_code)

    # Call REST framework's default exception handler for its own exceptions
    response = exception_handler(exc, context)

    # If response is None, it's an unhandled server error (500)
    if response is None:
        logger.error(f"Unhandled Exception: {exc}", exc_info=exc)
        return _opaque_server_error()

    return response


def _opaque_server_error():
    return Response(
        {"error": "Internal Server Error", "code": "server_error"},
        status=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
