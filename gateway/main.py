import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import httpx
import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import Settings, configure_logging
from .middleware import AccessLogMiddleware
from .routing import RouteTable

logger = logging.getLogger(__name__)

HOP_BY_HOP_HEADERS = {
    b'connection',
    b'keep-alive',
    b'proxy-authenticate',
    b'proxy-authorization',
    b'te',
    b'trailers',
    b'transfer-encoding',
    b'upgrade',
    b'host',
}

# the client decodes the body, so length/encoding no longer describe it
RESPONSE_EXCLUDED_HEADERS = {
    "content-encoding",
    "content-length",
    "transfer-encoding",
    "connection",
    "date",
    "server",
}

PROXY_METHODS = ["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS", "HEAD"]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown logic."""
    #---- Startup ----
    settings: Settings = app.state.settings
    owns_client = not hasattr(app.state, 'http_client')
    if owns_client:
        app.state.http_client = httpx.AsyncClient(timeout=settings.upstream_timeout)

    for rule in app.state.routes.rules:
        logger.info("Route %s* -> %s (%s)", rule.prefix, rule.upstream, rule.name)

    try:
        yield
    finally:
        #---- Shutdown ----
        logger.info("Shutting down API gateway")
        if owns_client:
            await app.state.http_client.aclose()


def upstream_url(base: str, request: Request) -> str:
    """Join the upstream base with the untouched client path and query string."""
    raw_path = request.scope.get("raw_path")
    path = raw_path.split(b"?")[0].decode("latin-1") if raw_path else request.url.path
    url = base.rstrip("/") + path
    query = request.url.query
    if query:
        url += "?" + query
    return url


async def health(request: Request):
    settings: Settings = request.app.state.settings
    return {
        "status": "healthy",
        "service": "api-gateway",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "upstreamServices": {
            "frontend": settings.frontend_service_url,
            "environment": settings.environment_service_url,
        },
    }


async def proxy(path: str, request: Request):
    rule = request.app.state.routes.match(request.url.path)
    request.state.upstream = rule.name

    url = upstream_url(rule.upstream, request)
    headers = [
        (k, v) for k, v in request.headers.raw if k.lower() not in HOP_BY_HOP_HEADERS
    ] # headers excluding hop_by_hop headers; httpx sets host for the upstream

    body = await request.body()

    # ---- Proxy Request ----
    logger.debug("Forwarding %s %s to %s", request.method, url, rule.name)
    try:
        resp = await request.app.state.http_client.request(
            request.method,
            url,
            headers=headers,
            content=body,
        )
    except httpx.RequestError as exc:
        logger.error("Error proxying to %s (%s): %s", rule.name, rule.upstream, exc)
        return JSONResponse(
            status_code=503,
            content={
                "error": f"{rule.name} unavailable",
                "upstream": rule.name,
                "target": rule.upstream,
                "message": str(exc),
            },
        )

    logger.debug("Response from %s: %s", rule.name, resp.status_code)
    headers = {}
    if request.method == "HEAD" and "content-length" in resp.headers:
        # no body to measure; keep the upstream's declared length
        headers["content-length"] = resp.headers["content-length"]
    response = Response(content=resp.content, status_code=resp.status_code, headers=headers)
    for k, v in resp.headers.multi_items():
        if k.lower() not in RESPONSE_EXCLUDED_HEADERS:
            response.headers.append(k, v)
    return response


def create_app(settings: Settings | None = None) -> FastAPI:
    """Wire a gateway app around an immutable route table built from settings."""
    settings = settings or Settings.from_env()

    app = FastAPI(title="API Gateway", lifespan=lifespan)
    app.state.settings = settings
    app.state.routes = RouteTable(settings.route_rules())

    app.add_api_route("/health", health, methods=["GET"])
    app.add_api_route("/{path:path}", proxy, methods=PROXY_METHODS)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(AccessLogMiddleware)
    return app


application = create_app()


def run() -> None:
    settings: Settings = application.state.settings
    configure_logging(settings.log_level)
    logger.info("Starting API gateway on port %s", settings.port)
    uvicorn.run(
        application,
        host="0.0.0.0",
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
