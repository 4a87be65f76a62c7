import logging
import time

from django.http import JsonResponse
from django.utils.deprecation import MiddlewareMixin

logger = logging.getLogger(__name__)


class RequestLogMiddleware:
    """
    One log line per request: method, path, status and duration.
    """
    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        started = time.monotonic()
        response = self.get_response(request)
        elapsed_ms = (time.monotonic() - started) * 1000

        user = getattr(request, "user", None)
        user_id = user.pk if user is not None and user.is_authenticated else None
        logger.info(
            f"{request.method} {request.path} -> {response.status_code} ({elapsed_ms:.1f}ms)",
            extra={"user_id": user_id, "request_path": request.path},
        )
        return response


class GlobalExceptionMiddleware(MiddlewareMixin):
    """
    Last line of defense for non-DRF views.
    """
    def process_exception(self, request, exception):
        logger.exception(f"Unhandled Middleware Exception: {exception}")
        if request.path.startswith('/api/'):
            return JsonResponse(
                {"error": "Internal Server Error", "code": "server_error"},
                status=500
            )
        return None  # Let Django's default 500 handler work for HTML
