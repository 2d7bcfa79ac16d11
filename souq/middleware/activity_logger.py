# souq/middleware/activity_logger.py
import logging
import time
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger("souq.activity")

MODIFYING_METHODS = ("POST", "PUT", "PATCH", "DELETE")


class ActivityLoggerMiddleware(BaseHTTPMiddleware):
    """
    Writes one activity line per state-changing request. Domain audit rows
    are written by the services inside their own transactions; this only
    records who called what and how it ended.
    """

    async def dispatch(self, request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)

        if request.method not in MODIFYING_METHODS:
            return response

        # Set by get_current_user; the User row may be expired by a rollback
        user_id = getattr(request.state, "user_id", None)
        message = getattr(
            request.state,
            "activity_message",
            f"Performed {request.method} on {request.url.path}",
        )
        elapsed_ms = (time.perf_counter() - started) * 1000

        logger.info(
            "user=%s %s %s -> %s (%.1f ms) %s",
            user_id or "-",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
            message,
        )
        return response
