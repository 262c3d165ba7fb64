import logging
import time

logger = logging.getLogger("app.requests")


class RequestLoggingMiddleware:
    """Log every HTTP request on arrival and on completion with its status and duration."""

    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        start = time.perf_counter()
        method = scope.get("method")
        path = scope.get("path")
        client = scope.get("client")
        logger.info(
            "Incoming request %s %s from %s",
            method, path, client[0] if client else "-",
        )
        status_holder = {}

        async def send_with_logging(message):
            if message["type"] == "http.response.start":
                status_holder["status"] = message["status"]
                duration_ms = (time.perf_counter() - start) * 1000
                logger.info(
                    "Request completed %s %s %s in %.1fms",
                    method, path, message["status"], duration_ms,
                )
            await send(message)

        try:
            await self.app(scope, receive, send_with_logging)
        except Exception:
            if "status" not in status_holder:
                logger.error("Request failed %s %s before a response was sent", method, path)
            raise


class SecurityHeadersMiddleware:
    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        async def send_with_headers(message):
            if message["type"] == "http.response.start":
                message.setdefault("headers", [])
                message["headers"].extend([
                    (b"X-Content-Type-Options", b"nosniff"),
                    (b"X-Frame-Options", b"DENY"),
                    (b"X-XSS-Protection", b"1; mode=block"),
                ])
            await send(message)

        await self.app(scope, receive, send_with_headers)
