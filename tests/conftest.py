# Centralized pytest configuration file (fixtures, hooks, plugins, etc.)
import json

import httpx
import pytest
from asgi_lifespan import LifespanManager
from fastapi import FastAPI, Request, Response
from httpx import AsyncClient, ASGITransport

from environment_service.config import Settings as EnvironmentSettings
from environment_service.loader import load_dataset
from environment_service.main import create_app as create_environment_app
from gateway.config import Settings as GatewaySettings
from gateway.main import create_app as create_gateway_app

RECORDS = {
    "UAT": {"environment": "UAT", "baseUrl": "https://uat.example.test", "replicas": 1},
    "PET": {
        "environment": "PET",
        "baseUrl": "https://pet.example.test",
        "database": {"host": "db-pet", "port": 5432},
        "tags": ["perf", "Mixed-Case"],
    },
    "PROD": {"environment": "PROD", "baseUrl": "https://prod.example.test", "replicas": 3},
}


def write_records(directory, records=RECORDS):
    for tier, record in records.items():
        (directory / f"env-details_{tier}.json").write_text(json.dumps(record))
    return directory


#----Environment service----
@pytest.fixture
def data_dir(tmp_path):
    return write_records(tmp_path)


@pytest.fixture
def dataset(data_dir):
    return load_dataset(data_dir)


@pytest.fixture
def environment_app(dataset, data_dir) -> FastAPI:
    return create_environment_app(dataset, EnvironmentSettings(data_dir=data_dir))


@pytest.fixture
async def environment_client(environment_app: FastAPI):
    async with LifespanManager(environment_app):
        async with AsyncClient(
                transport=ASGITransport(app=environment_app),
                base_url="http://environment") as client:
            yield client


#----Gateway----
@pytest.fixture
def frontend_app() -> FastAPI:
    app = FastAPI()     # mock frontend upstream for tests

    @app.get("/cookies")
    async def cookies():  # tests repeated response headers
        response = Response(content=b"ok", media_type="text/plain")
        response.set_cookie("a", "1")
        response.set_cookie("b", "2")
        response.headers["server"] = "frontend-server"
        response.headers["date"] = "Mon, 19 Oct 2026 10:00:00 GMT"
        return response

    @app.api_route("/download", methods=["GET", "HEAD"])
    async def download(request: Request):  # tests HEAD relay keeps the declared length
        if request.method == "HEAD":
            return Response(headers={"content-length": "50"}, media_type="text/plain")
        return Response(content=b"x" * 50, media_type="text/plain")

    @app.api_route("/{path:path}", methods=["GET", "POST"])
    async def echo(path: str, request: Request):  # tests path, query, header and body forwarding
        return {
            "message": "hello from frontend",
            "method": request.method,
            "path": request.url.path,
            "query": request.url.query,
            "body": (await request.body()).decode(),
            "received_headers": dict(request.headers),
        }

    return app


@pytest.fixture
def gateway_settings() -> GatewaySettings:
    return GatewaySettings(
        frontend_service_url="http://frontend",
        environment_service_url="http://environment",
    )


def refuse_connection(request: httpx.Request):
    raise httpx.ConnectError("[Errno 111] Connection refused", request=request)


async def _gateway_client(settings, mounts):
    upstream_client = AsyncClient(mounts=mounts)
    gateway_app = create_gateway_app(settings)
    # injected client is used by the lifespan instead of a real one
    gateway_app.state.http_client = upstream_client

    async with LifespanManager(gateway_app):
        async with AsyncClient(
                transport=ASGITransport(app=gateway_app),
                base_url="http://gateway") as client:
            yield client

    await upstream_client.aclose()


@pytest.fixture
async def gateway_client(gateway_settings, environment_app, frontend_app):
    """Gateway test client with both upstreams served in-process via ASGITransport"""
    mounts = {
        "http://environment": ASGITransport(app=environment_app),
        "http://frontend": ASGITransport(app=frontend_app),
    }
    async for client in _gateway_client(gateway_settings, mounts):
        yield client


@pytest.fixture
async def gateway_client_api_down(gateway_settings, frontend_app):
    """Gateway test client whose environment upstream refuses connections"""
    mounts = {
        "http://environment": httpx.MockTransport(refuse_connection),
        "http://frontend": ASGITransport(app=frontend_app),
    }
    async for client in _gateway_client(gateway_settings, mounts):
        yield client
