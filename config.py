"""
Application settings

All process configuration is read here, once, into an immutable Settings
object that is handed to create_app(). Values come from the environment,
optionally seeded from a .env file.
"""

import os
from dataclasses import dataclass
from typing import Optional, Tuple

from dotenv import load_dotenv

DEFAULT_JWT_SECRET = "dev-secret-change-me"

DEFAULT_CORS_ORIGINS = (
    "http://localhost:5500",
    "http://127.0.0.1:5500",
    "https://quiz-campus.vercel.app",
)


def _bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def _origins(value: Optional[str]) -> Tuple[str, ...]:
    if not value:
        return DEFAULT_CORS_ORIGINS
    return tuple(o.strip() for o in value.split(",") if o.strip())


@dataclass(frozen=True)
class Settings:
    database_url: str = "mongodb://localhost:27017"
    database_name: str = "campus"
    database_timeout_ms: int = 5000
    port: int = 8000

    jwt_secret: str = DEFAULT_JWT_SECRET
    jwt_algorithm: str = "HS256"
    session_token_ttl: int = 24 * 60 * 60
    bcrypt_rounds: int = 10

    reset_token_ttl: int = 60 * 60
    reset_url: str = "http://localhost:5500/reset-password.html"

    mail_host: str = "localhost"
    mail_port: int = 587
    mail_username: str = ""
    mail_password: str = ""
    mail_from: str = "no-reply@quizcampus.local"
    mail_use_tls: bool = True
    mail_timeout: float = 10.0

    cors_origins: Tuple[str, ...] = DEFAULT_CORS_ORIGINS
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, dotenv: bool = True) -> "Settings":
        if dotenv:
            load_dotenv()
        env = os.environ
        return cls(
            database_url=env.get("DATABASE_URL", cls.database_url),
            database_name=env.get("DATABASE_NAME", cls.database_name),
            database_timeout_ms=int(env.get("DATABASE_TIMEOUT_MS", cls.database_timeout_ms)),
            port=int(env.get("PORT", cls.port)),
            jwt_secret=env.get("JWT_SECRET", cls.jwt_secret),
            jwt_algorithm=env.get("JWT_ALGORITHM", cls.jwt_algorithm),
            session_token_ttl=int(env.get("SESSION_TOKEN_TTL", cls.session_token_ttl)),
            bcrypt_rounds=int(env.get("BCRYPT_ROUNDS", cls.bcrypt_rounds)),
            reset_token_ttl=int(env.get("RESET_TOKEN_TTL", cls.reset_token_ttl)),
            reset_url=env.get("RESET_URL", cls.reset_url),
            mail_host=env.get("MAIL_HOST", cls.mail_host),
            mail_port=int(env.get("MAIL_PORT", cls.mail_port)),
            mail_username=env.get("MAIL_USERNAME", cls.mail_username),
            mail_password=env.get("MAIL_PASSWORD", cls.mail_password),
            mail_from=env.get("MAIL_FROM", cls.mail_from),
            mail_use_tls=_bool(env.get("MAIL_USE_TLS", "true")),
            mail_timeout=float(env.get("MAIL_TIMEOUT", cls.mail_timeout)),
            cors_origins=_origins(env.get("CORS_ORIGINS")),
            log_level=env.get("LOG_LEVEL", cls.log_level).upper(),
        )
