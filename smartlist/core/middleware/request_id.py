import time
from uuid import uuid4

from starlette.middleware.base import BaseHTTPMiddleware

from smartlist.core.logging import latency_bucket_ms, log_event, request_id_ctx_var

REQUEST_ID_HEADER = "x-request-id"


class RequestIdMiddleware(BaseHTTPMiddleware):
    """
    Correlate remote store requests with their log lines.

    A client-supplied x-request-id is reused so sync client and server logs
    line up; otherwise a fresh id is minted. The id is echoed on the response
    and stamped on every log record emitted while the request is handled.
    """

    async def dispatch(self, request, call_next):
        rid = request.headers.get(REQUEST_ID_HEADER) or uuid4().hex
        request.state.request_id = rid
        token = request_id_ctx_var.set(rid)
        start = time.perf_counter()
        try:
            response = await call_next(request)
            response.headers[REQUEST_ID_HEADER] = rid
            log_event(
                "info",
                "request.complete",
                event_type="http.request",
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "status": response.status_code,
                    "latency_bucket": latency_bucket_ms((time.perf_counter() - start) * 1000),
                },
            )
        finally:
            request_id_ctx_var.reset(token)
        return response
