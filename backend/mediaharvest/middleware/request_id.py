"""Request ID propagation for API requests and worker jobs.

API requests read X-Request-ID from the incoming header (or generate a
UUID4) and echo it back on the response. Worker jobs bind their Celery task
id (or a generated id for in-process jobs) so that every log line emitted
while a URL is being scraped can be correlated.
"""

import contextvars
import uuid
from contextlib import contextmanager

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

request_id_var: contextvars.ContextVar[str] = contextvars.ContextVar(
    "request_id", default=""
)


@contextmanager
def bound_request_id(rid: str | None = None):
    """Bind ``rid`` (or a fresh UUID4) for the duration of the block."""
    rid = rid or str(uuid.uuid4())
    token = request_id_var.set(rid)
    try:
        yield rid
    finally:
        request_id_var.reset(token)


class RequestIDMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        with bound_request_id(request.headers.get("X-Request-ID")) as rid:
            response = await call_next(request)
            response.headers["X-Request-ID"] = rid
            return response


def get_request_id() -> str:
    """Current request/job ID (empty string outside of any bound context)."""
    return request_id_var.get()
