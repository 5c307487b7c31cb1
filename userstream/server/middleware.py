"""
MODULE OVERVIEW:
FastAPI middleware to track request timings.

WHAT IS HAPPENING HERE:
We add an `X-Process-Time-Ms` header so clients can see the server-side cost of
each request. For the event stream the handler returns as soon as the response
object is built, so the number only covers setup, not the life of the stream.
"""

import time
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from loguru import logger

QUIET_PATHS = ("/stream-resource", "/healthz")


class TimingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        start_time = time.perf_counter()

        response = await call_next(request)

        process_time_ms = (time.perf_counter() - start_time) * 1000
        response.headers["X-Process-Time-Ms"] = f"{process_time_ms:.2f}"

        if request.url.path not in QUIET_PATHS:
            logger.debug(
                f"{request.method} {request.url.path} status={response.status_code} "
                f"completed in {process_time_ms:.2f}ms"
            )

        return response
