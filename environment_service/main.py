import logging
import sys
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import Settings, configure_logging
from .loader import DatasetLoadError, load_dataset
from .models import TierNotFoundError
from .store import EnvironmentDataset

logger = logging.getLogger(__name__)

AVAILABLE_ENDPOINTS = [
    "GET /health",
    "GET /api/environments",
    "GET /api/environments/:env",
    "GET /api/environments-list",
]

EXAMPLES = [
    "GET /api/environments/uat",
    "GET /api/environments/pet",
    "GET /api/environments/prod",
]


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Environment service ready with tiers %s", app.state.dataset.keys())
    try:
        yield
    finally:
        logger.info("Shutting down environment service, finishing current requests")


async def health(request: Request):
    settings: Settings = request.app.state.settings
    return {
        "status": "healthy",
        "service": settings.service_name,
        "version": settings.version,
        "uptime": time.monotonic() - request.app.state.started_at,
        "timestamp": _now(),
    }


async def list_environments(request: Request):
    dataset: EnvironmentDataset = request.app.state.dataset
    return {
        "success": True,
        "data": dataset.all(),
        "count": dataset.count,
        "timestamp": _now(),
    }


async def get_environment(tier: str, request: Request):
    tier_key, record = request.app.state.dataset.get(tier)
    logger.info("Returned %s environment data", tier_key.value)
    return {
        "success": True,
        "environment": tier_key.value,
        "data": record,
        "timestamp": _now(),
    }


async def environment_keys(request: Request):
    keys = request.app.state.dataset.keys()
    return {
        "success": True,
        "environments": keys,
        "count": len(keys),
        "timestamp": _now(),
    }


async def tier_not_found_handler(request: Request, exc: TierNotFoundError):
    logger.info("Environment %s not found", exc.identifier)
    return JSONResponse(
        status_code=404,
        content={
            "success": False,
            "error": str(exc),
            "availableEnvironments": exc.available,
            "hint": "Try: " + ", ".join(k.lower() for k in exc.available[:-1])
                    + f", or {exc.available[-1].lower()}",
        },
    )


async def not_found_handler(request: Request, exc: StarletteHTTPException):
    # 405 is reported as 404: only the listed method/path pairs exist
    if exc.status_code not in (404, 405):
        return await http_exception_handler(request, exc)
    logger.info("404 - Endpoint not found: %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=404,
        content={
            "success": False,
            "error": "Endpoint not found",
            "requestedPath": request.url.path,
            "availableEndpoints": AVAILABLE_ENDPOINTS,
            "examples": EXAMPLES,
        },
    )


async def internal_error_handler(request: Request, exc: Exception):
    logger.exception("Internal server error on %s", request.url.path)
    return JSONResponse(
        status_code=500,
        content={"success": False, "error": "Internal server error", "message": str(exc)},
    )


def create_app(dataset: EnvironmentDataset, settings: Settings | None = None) -> FastAPI:
    """Wire the HTTP layer around an already loaded dataset."""
    settings = settings or Settings()

    app = FastAPI(title="Environment Service", version=settings.version, lifespan=lifespan)
    app.state.settings = settings
    app.state.dataset = dataset
    app.state.started_at = time.monotonic()

    app.add_api_route("/health", health, methods=["GET"])
    app.add_api_route("/api/environments", list_environments, methods=["GET"])
    app.add_api_route("/api/environments-list", environment_keys, methods=["GET"])
    app.add_api_route("/api/environments/{tier}", get_environment, methods=["GET"])

    app.add_exception_handler(TierNotFoundError, tier_not_found_handler)
    app.add_exception_handler(StarletteHTTPException, not_found_handler)
    app.add_exception_handler(Exception, internal_error_handler)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    return app


def build_application(settings: Settings) -> FastAPI:
    """Load the dataset, then build the app. Raises DatasetLoadError on any tier failure."""
    dataset = load_dataset(settings.data_dir)
    return create_app(dataset, settings)


def run() -> None:
    settings = Settings.from_env()
    configure_logging(settings.log_level)
    logger.info("Starting environment service")

    try:
        app = build_application(settings)
    except DatasetLoadError as exc:
        logger.critical("Failed to load environment data: %s", exc)
        logger.critical("Make sure the JSON files exist in %s", settings.data_dir)
        sys.exit(1)

    logger.info("Listening on port %s", settings.port)
    uvicorn.run(app, host="0.0.0.0", port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    run()
