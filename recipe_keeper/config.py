import logging
import os
from dataclasses import dataclass, field
from typing import List, Optional

from dotenv import load_dotenv

from .errors import ConfigurationError

DEFAULT_CORS_ORIGINS = [
    "http://localhost:5176",
    "http://localhost:5175",
    "http://localhost:5173",
]

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@dataclass
class Settings:
    supabase_url: str
    supabase_key: str
    database_url: str = "sqlite:///./recipes.db"
    host: str = "0.0.0.0"
    port: int = 5000
    cors_origins: List[str] = field(default_factory=lambda: list(DEFAULT_CORS_ORIGINS))
    auth_timeout: float = 10.0
    log_level: str = "INFO"


def _split_origins(raw: Optional[str]) -> List[str]:
    if not raw:
        return list(DEFAULT_CORS_ORIGINS)
    return [o.strip() for o in raw.split(",") if o.strip()]


def load_settings(env: Optional[dict] = None) -> Settings:
    """Build Settings from the environment.

    When ``env`` is None the process environment is used, after loading an
    optional ``.env`` file. Raises ConfigurationError when the identity
    provider URL or key is missing.
    """
    if env is None:
        load_dotenv()
        env = os.environ

    supabase_url = env.get("SUPABASE_URL")
    if not supabase_url:
        raise ConfigurationError("Server configuration error: SUPABASE_URL is missing")

    supabase_key = env.get("SUPABASE_ANON_KEY") or env.get("SUPABASE_KEY")
    if not supabase_key:
        raise ConfigurationError("Server configuration error: SUPABASE_ANON_KEY is missing")

    try:
        port = int(env.get("PORT") or 5000)
        auth_timeout = float(env.get("AUTH_TIMEOUT") or 10)
    except ValueError as exc:
        raise ConfigurationError("Server configuration error: invalid number", str(exc))

    return Settings(
        supabase_url=supabase_url.rstrip("/"),
        supabase_key=supabase_key,
        database_url=env.get("DATABASE_URL") or "sqlite:///./recipes.db",
        host=env.get("HOST") or "0.0.0.0",
        port=port,
        cors_origins=_split_origins(env.get("CORS_ORIGINS")),
        auth_timeout=auth_timeout,
        log_level=(env.get("LOG_LEVEL") or "INFO").upper(),
    )


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=level, format=LOG_FORMAT)
