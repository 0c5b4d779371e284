import logging
from os import getenv
from pathlib import Path

from pydantic import BaseModel, Field

DEFAULT_DATA_DIR = Path(__file__).parent / "data"


class Settings(BaseModel):
    port: int = 8081
    data_dir: Path = DEFAULT_DATA_DIR
    service_name: str = "environment-service"
    version: str = "1.0.0"
    log_level: str = "INFO"
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])

    @classmethod
    def from_env(cls) -> "Settings":
        values = {
            "port": getenv("PORT"),
            "data_dir": getenv("ENVIRONMENT_DATA_DIR"),
            "log_level": getenv("LOG_LEVEL"),
        }
        origins = getenv("CORS_ORIGINS")
        if origins:
            values["cors_origins"] = [o.strip() for o in origins.split(",") if o.strip()]
        return cls(**{k: v for k, v in values.items() if v is not None})


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
