import time
import uuid
from typing import Callable

import structlog
from django.http import HttpRequest, HttpResponse

REQUEST_ID_HEADER = "X-Request-ID"
MAX_REQUEST_ID_LENGTH = 128

logger = structlog.get_logger(__name__)


def _incoming_request_id(request: HttpRequest) -> str:
    value = request.META.get("HTTP_X_REQUEST_ID", "").strip()
    if not value or len(value) > MAX_REQUEST_ID_LENGTH or not value.isprintable():
        return str(uuid.uuid4())
    return value


class CorrelationIdMiddleware:
    """Tags every request, its log lines and its response with one id.

    A client-supplied ``X-Request-ID`` is reused when it is short and
    printable; otherwise a UUID4 is generated.  The id is bound into
    ``structlog.contextvars`` so the order engine, the outbox writer and
    the exception handler all log it without passing it around.
    """

    def __init__(self, get_response: Callable[[HttpRequest], HttpResponse]) -> None:
        self.get_response = get_response

    def __call__(self, request: HttpRequest) -> HttpResponse:
        cid = _incoming_request_id(request)
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(correlation_id=cid)

        started = time.monotonic()
        logger.info("http.request_started", method=request.method, path=request.path)

        response = self.get_response(request)

        logger.info(
            "http.request_finished",
            method=request.method,
            path=request.path,
            status_code=response.status_code,
            duration_ms=round((time.monotonic() - started) * 1000, 2),
        )
        response[REQUEST_ID_HEADER] = cid
        return response
