import logging
from os import getenv

from pydantic import BaseModel, ConfigDict, Field, field_validator


class RouteRule(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    prefix: str
    upstream: str


class Settings(BaseModel):
    port: int = 8080
    frontend_service_url: str = "http://localhost:3000"
    environment_service_url: str = "http://localhost:8081"
    api_prefix: str = "/api"
    upstream_timeout: float = 20.0
    log_level: str = "INFO"
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])

    @field_validator("api_prefix")
    @classmethod
    def validate_api_prefix(cls, v):
        # an empty or root prefix would shadow the frontend catch-all
        if v.strip("/") == "":
            raise ValueError("api_prefix must name a path segment, e.g. '/api'")
        return v

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from process environment, falling back to defaults."""
        values = {
            "port": getenv("PORT"),
            "frontend_service_url": getenv("FRONTEND_SERVICE_URL"),
            "environment_service_url": getenv("ENVIRONMENT_SERVICE_URL"),
            "api_prefix": getenv("API_PREFIX"),
            "upstream_timeout": getenv("UPSTREAM_TIMEOUT"),
            "log_level": getenv("LOG_LEVEL"),
        }
        origins = getenv("CORS_ORIGINS")
        if origins:
            values["cors_origins"] = [o.strip() for o in origins.split(",") if o.strip()]
        return cls(**{k: v for k, v in values.items() if v is not None})

    def route_rules(self) -> list[RouteRule]:
        # /api/* -> environment service, everything else -> frontend
        return [
            RouteRule(name="Environment Service", prefix=self.api_prefix,
                      upstream=self.environment_service_url),
            RouteRule(name="Frontend Service", prefix="/",
                      upstream=self.frontend_service_url),
        ]


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
