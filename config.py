"""
Configuration management for the catalog service.

Settings come from environment variables; a local .env file is loaded first.
"""
import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import List, Optional

from dotenv import load_dotenv

from errors import ConfigurationError

load_dotenv()


def _split_csv(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass
class Settings:
    database_url: Optional[str] = None
    database_name: Optional[str] = None

    jwt_secret: Optional[str] = None
    jwt_algorithm: str = "HS256"
    jwt_expires_minutes: int = 60

    # When set, signup requires a matching x-auth-secret header
    signup_secret: Optional[str] = None

    cors_origins: List[str] = field(default_factory=lambda: ["*"])

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            database_url=os.getenv("DATABASE_URL"),
            database_name=os.getenv("DATABASE_NAME"),
            jwt_secret=os.getenv("JWT_SECRET"),
            jwt_algorithm=os.getenv("JWT_ALGORITHM", "HS256"),
            jwt_expires_minutes=int(os.getenv("JWT_EXPIRES_MINUTES", "60")),
            signup_secret=os.getenv("SIGNUP_SECRET") or None,
            cors_origins=_split_csv(os.getenv("CORS_ORIGINS", "*")),
        )

    def validate(self) -> None:
        """Fail fast on settings the process cannot run without."""
        missing = [
            name
            for name, value in (
                ("DATABASE_URL", self.database_url),
                ("DATABASE_NAME", self.database_name),
                ("JWT_SECRET", self.jwt_secret),
            )
            if not value
        ]
        if missing:
            raise ConfigurationError(f"Missing required settings: {', '.join(missing)}")
        if self.jwt_expires_minutes <= 0:
            raise ConfigurationError("JWT_EXPIRES_MINUTES must be positive")


@lru_cache()
def get_settings() -> Settings:
    return Settings.from_env()
