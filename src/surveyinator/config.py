"""Environment-driven configuration for the survey API."""

import os
from dataclasses import dataclass, field
from typing import List

from .auth.tokens import DEFAULT_TOKEN_TTL_HOURS
from .errors import ConfigError

DEFAULT_DB_PATH = "/data/surveyinator.db"
DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 8080


def parse_origins(value: str) -> List[str]:
    """Split a comma-separated origin list, dropping blanks."""
    return [s.strip() for s in (value or "").split(",") if s.strip()]


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.lower() in ('true', '1', 'yes')


@dataclass
class SurveyConfig:
    """Settings for one API deployment."""

    token_secret: str
    allowed_origins: List[str] = field(default_factory=list)
    db_path: str = DEFAULT_DB_PATH
    encryption_key: str = None
    require_encryption: bool = False
    token_ttl_hours: float = DEFAULT_TOKEN_TTL_HOURS
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT

    def __post_init__(self):
        if not self.token_secret:
            raise ConfigError("TOKEN_SECRET environment variable is required")
        if self.token_ttl_hours <= 0:
            raise ConfigError("TOKEN_TTL_HOURS must be positive")

    def origin_allowed(self, origin: str) -> bool:
        return bool(origin) and origin in self.allowed_origins

    @classmethod
    def from_env(cls) -> "SurveyConfig":
        """Build config from environment variables.

        Raises:
            ConfigError: If TOKEN_SECRET is missing or a number is malformed
        """
        try:
            ttl = float(os.getenv("TOKEN_TTL_HOURS", str(DEFAULT_TOKEN_TTL_HOURS)))
            port = int(os.getenv("PORT", str(DEFAULT_PORT)))
        except ValueError as e:
            raise ConfigError(f"Invalid numeric setting: {e}")

        return cls(
            token_secret=os.getenv("TOKEN_SECRET", ""),
            allowed_origins=parse_origins(os.getenv("ALLOWED_ORIGINS", "")),
            db_path=os.getenv("DB_PATH", DEFAULT_DB_PATH),
            encryption_key=os.getenv("ENCRYPTION_KEY") or None,
            require_encryption=_env_bool("REQUIRE_ENCRYPTION"),
            token_ttl_hours=ttl,
            host=os.getenv("HOST", DEFAULT_HOST),
            port=port,
        )
