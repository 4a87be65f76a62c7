import logging

from django.db import DatabaseError, connection
from django.http import JsonResponse

logger = logging.getLogger(__name__)


def health_check(request):
    components = {"db": "unknown"}
    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
        components["db"] = "ok"
        return JsonResponse({"status": "ok", "components": components}, status=200)
    except DatabaseError as e:
        logger.error(f"Health check failed: {e}")
        components["db"] = "error"
        return JsonResponse({"status": "error", "components": components}, status=503)
