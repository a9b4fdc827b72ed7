"""
Service settings loaded from the environment.

Variables may also come from a `.env` file in the working directory (loaded
with python-dotenv). Database credentials are validated lazily, when the
database gateway is first built, so the app can still be imported without them.
"""
import os
from typing import List

from dotenv import load_dotenv
from pydantic import BaseModel, Field

load_dotenv()


def _required_env(name: str) -> str:
    value = os.getenv(name)
    if not value:
        raise RuntimeError(
            f"Missing required environment variable '{name}'. "
            "Set it in the environment or in the .env file."
        )
    return value


class DatabaseConfig(BaseModel):
    host: str = "localhost"
    port: int = 3306
    user: str
    password: str
    database: str
    timeout_seconds: float = Field(10.0, gt=0, description="Connect/read/write timeout")

    # PUBLIC_INTERFACE
    @classmethod
    def from_env(cls) -> "DatabaseConfig":
        """Build the database configuration from MYSQL_* variables."""
        return cls(
            host=os.getenv("MYSQL_HOST", "localhost"),
            port=int(os.getenv("MYSQL_PORT", "3306")),
            user=_required_env("MYSQL_USER"),
            password=_required_env("MYSQL_PASSWORD"),
            database=_required_env("MYSQL_DATABASE"),
            timeout_seconds=float(os.getenv("DB_TIMEOUT_SECONDS", "10")),
        )


class Settings(BaseModel):
    service_name: str = "techquiz-api"
    server_port: int = 3000
    log_level: str = "INFO"
    cors_allow_origins: List[str] = Field(default_factory=lambda: ["http://localhost:3001"])


def _split_origins(value: str) -> List[str]:
    return [o.strip() for o in value.split(",") if o.strip()]


# PUBLIC_INTERFACE
def load_settings() -> Settings:
    """Read the non-database settings from the environment."""
    settings = Settings(
        server_port=int(os.getenv("SERVER_PORT", "3000")),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )
    origins = os.getenv("CORS_ALLOW_ORIGINS")
    if origins:
        settings.cors_allow_origins = _split_origins(origins)
    return settings


settings = load_settings()
