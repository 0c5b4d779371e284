import logging
import time

logger = logging.getLogger(__name__)


class AccessLogMiddleware:
    """Logs method, path, chosen upstream, status and duration for each request."""
    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        state = scope.setdefault("state", {})
        started = time.perf_counter()
        status = {"code": None}

        async def send_wrapper(message):
            if message["type"] == "http.response.start":
                status["code"] = message["status"]
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            # handlers record the selected upstream on request.state
            upstream = state.get("upstream", "-")
            elapsed_ms = (time.perf_counter() - started) * 1000
            logger.info(
                "%s %s -> %s %s (%.1f ms)",
                scope["method"],
                scope["path"],
                upstream,
                status["code"] if status["code"] is not None else "aborted",
                elapsed_ms,
            )
