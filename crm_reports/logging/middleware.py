import time
import logging
from typing import Callable

from fastapi import Request, Response
from starlette.background import BackgroundTask
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from crm_reports.logging.recorder import HOSTNAME, USERNAME, record_request

logger = logging.getLogger(__name__)

# Content types whose bodies are worth storing in the log table
TEXT_CONTENT_TYPES = ("application/json", "text/plain")


class LoggingMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp):
        super().__init__(app)
        logger.info(f"Logging middleware initialized with username: {USERNAME} on host: {HOSTNAME}")

    async def dispatch(self, request: Request, call_next: Callable):
        # Paths that should be excluded from logging
        excluded_paths = ["/api/logs", "/docs", "/openapi.json"]

        if any(request.url.path.startswith(path) for path in excluded_paths):
            return await call_next(request)

        # --- Start timer ---
        start_time = time.time()

        # --- Read request body ---
        body_bytes = await request.body()
        request_body = body_bytes.decode("utf-8", errors="ignore")

        # Reconstruct stream
        async def receive() -> dict:
            return {"type": "http.request", "body": body_bytes}

        request = Request(request.scope, receive=receive)

        response = await call_next(request)

        duration_ms = (time.time() - start_time) * 1000
        status_code = response.status_code
        content_type = response.headers.get("content-type", "")
        log_body = any(content_type.startswith(text_type) for text_type in TEXT_CONTENT_TYPES)

        response_body = b""
        if isinstance(response, Response) and hasattr(response, "body"):
            response_body = response.body
        elif hasattr(response, "body_iterator"):
            # Buffer the streamed chunks so the body can be logged after sending
            original_iterator = response.body_iterator
            chunks = []

            async def buffer_iterator():
                nonlocal response_body
                async for chunk in original_iterator:
                    chunks.append(chunk)
                    yield chunk
                response_body = b"".join(chunks)

            response.body_iterator = buffer_iterator()

        def log_to_db():
            if not log_body:
                body_to_log = f"[{content_type or 'unknown'} content not logged]"
            elif response_body:
                body_to_log = response_body.decode("utf-8", errors="ignore")
            else:
                body_to_log = "[Response body not available]"
            record_request(
                request,
                status_code,
                request_body=request_body,
                response_body=body_to_log,
                processing_time=duration_ms,
            )

        response.background = getattr(response, "background", None) or BackgroundTask(log_to_db)
        return response
