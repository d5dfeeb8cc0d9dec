"""
common.health
~~~~~~~~~~~~~
GET /health/ – lightweight liveness + readiness probe.

Returns:
    200  {"status": "ok", "db": "ok", "document_store": "ok"}
    503  {"status": "degraded", "db": "error: <msg>", ...} – a store is unreachable
"""
import structlog
from django.apps import apps
from django.db import connection, OperationalError
from django.http import JsonResponse
from pymongo.errors import PyMongoError

logger = structlog.get_logger(__name__)


def health_check(request):
    """Return service health including relational and document store status."""
    db_status: str
    mongo_status: str

    try:
        connection.ensure_connection()
        db_status = "ok"
    except OperationalError as exc:
        db_status = f"error: {exc}"
        logger.error("health_check_db_failure", error=str(exc))

    try:
        apps.get_app_config("storage").document_store.ping()
        mongo_status = "ok"
    except PyMongoError as exc:
        mongo_status = f"error: {exc}"
        logger.error("health_check_document_store_failure", error=str(exc))

    healthy = db_status == "ok" and mongo_status == "ok"
    payload = {
        "status": "ok" if healthy else "degraded",
        "db": db_status,
        "document_store": mongo_status,
    }
    return JsonResponse(payload, status=200 if healthy else 503)
