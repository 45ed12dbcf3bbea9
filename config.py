import os
import re
from datetime import timedelta
from functools import lru_cache
from typing import List, Literal
from urllib.parse import urlparse

from dotenv import load_dotenv
from fastapi import Request
from pydantic import BaseModel, ConfigDict, Field

DEFAULT_MONGODB_URI = "mongodb://localhost:27017/express-backend"
DEFAULT_DB_NAME = "express-backend"

_DURATION_RE = re.compile(r"^\s*(\d+)\s*([smhd]?)\s*$")
_DURATION_UNITS = {"": 1, "s": 1, "m": 60, "h": 3600, "d": 86400}


def parse_duration(value: str) -> timedelta:
    """Parse ``"1d"``, ``"12h"``, ``"30m"``, ``"45s"`` or plain seconds."""
    match = _DURATION_RE.match(value or "")
    if not match:
        raise ValueError(f"Invalid duration: {value!r}")
    amount, unit = match.groups()
    return timedelta(seconds=int(amount) * _DURATION_UNITS[unit])


def database_name_from_uri(uri: str) -> str:
    path = urlparse(uri).path.lstrip("/")
    return path or DEFAULT_DB_NAME


class Settings(BaseModel):
    model_config = ConfigDict(frozen=True)

    environment: Literal["development", "production", "test"] = "development"
    port: int = 3000
    mongodb_uri: str = DEFAULT_MONGODB_URI
    mongodb_db: str = DEFAULT_DB_NAME
    jwt_secret: str = "default_jwt_secret"
    jwt_alg: str = "HS256"
    jwt_expiration: timedelta = timedelta(days=1)
    log_level: str = "INFO"
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @classmethod
    def from_env(cls) -> "Settings":
        # Environment / Security
        mongodb_uri = os.getenv("MONGODB_URI", DEFAULT_MONGODB_URI)
        origins = os.getenv("CORS_ORIGIN", "*")
        return cls(
            environment=os.getenv("ENVIRONMENT", "development"),
            port=int(os.getenv("PORT", "3000")),
            mongodb_uri=mongodb_uri,
            mongodb_db=os.getenv("MONGODB_DB") or database_name_from_uri(mongodb_uri),
            jwt_secret=os.getenv("JWT_SECRET", "default_jwt_secret"),
            jwt_alg=os.getenv("JWT_ALG", "HS256"),
            jwt_expiration=parse_duration(os.getenv("JWT_EXPIRATION", "1d")),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
        )


@lru_cache
def get_settings() -> Settings:
    load_dotenv()
    return Settings.from_env()


def app_settings(request: Request) -> Settings:
    return request.app.state.settings
