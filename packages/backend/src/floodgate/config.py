"""Application configuration via environment variables.

Uses pydantic-settings to load config from env vars with FLOODGATE_ prefix.
Loaded once at import; the JWT secret in particular is never derived from
request data.

Learn: `disable_users_and_auth` flips the whole gateway into bypass mode
(single pseudo-user, no tokens checked). See floodgate.services.gateway.
"""

from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings

DEFAULT_SECRET = "change-me-in-production"


class Settings(BaseSettings):
    """All app configuration. Set via FLOODGATE_* env vars."""

    # Auth
    disable_users_and_auth: bool = False
    jwt_secret: str = DEFAULT_SECRET
    jwt_algorithm: str = "HS256"
    token_lifetime_seconds: int = 60 * 60 * 24 * 7  # one week
    bcrypt_rounds: int = 12

    # Session cookie
    cookie_name: str = "jwt"
    cookie_secure: bool = False

    # Storage: users DB + one settings DB per user under db_path/<user>/settings
    db_path: str = "./database"
    database_url: str = ""

    # Client connection for the bypass-mode pseudo-user. socket path wins if set.
    client_host: str = "127.0.0.1"
    client_port: int = 5000
    client_socket_path: str = ""

    # Server
    environment: str = "development"
    debug: bool = False
    host: str = "127.0.0.1"
    port: int = 3000

    # CORS
    cors_origins: list[str] = [
        "http://localhost:3000",
        "http://localhost:4200",
    ]

    model_config = {"env_prefix": "FLOODGATE_"}

    @property
    def users_database_url(self) -> str:
        """Explicit database_url, or a SQLite file next to the settings stores."""
        if self.database_url:
            return self.database_url
        return f"sqlite+aiosqlite:///{Path(self.db_path) / 'users.db'}"

    @model_validator(mode="after")
    def validate_production_settings(self):
        """Ensure sensitive defaults are changed in non-development environments."""
        if self.environment != "development" and self.jwt_secret == DEFAULT_SECRET:
            raise ValueError(
                "FLOODGATE_JWT_SECRET must be set to a secure value in "
                "non-development environments. Generate one with: "
                "floodgate secret"
            )
        return self


# Singleton — import this everywhere
settings = Settings()
