"""Runtime configuration, built once at process start from the environment."""
import os
from typing import Mapping, NamedTuple, Optional

from dotenv import load_dotenv

from .log import get_logger

logger = get_logger(__name__)

INSECURE_DEFAULT_SECRET = "dev-secret-change-me"


class Settings(NamedTuple):
    jwt_secret: str
    jwt_secret_is_default: bool
    token_ttl_hours: float
    database_url: Optional[str]
    db_host: str
    db_port: int
    db_user: str
    db_password: str
    db_name: str
    db_pool_size: int
    db_pool_timeout: float
    upload_dir: str
    port: int
    log_level: str
    log_format: str


def _int(env: Mapping[str, str], key: str, default: int) -> int:
    raw = env.get(key)
    if raw in (None, ""):
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{key} must be an integer, got {raw!r}")


def _float(env: Mapping[str, str], key: str, default: float) -> float:
    raw = env.get(key)
    if raw in (None, ""):
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{key} must be a number, got {raw!r}")


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Build the immutable settings value.

    When ``environ`` is omitted a ``.env`` file in the working directory is
    loaded first and the process environment is used.
    """
    if environ is None:
        load_dotenv()
        environ = os.environ

    secret = environ.get("JWT_SECRET") or ""
    is_default = not secret
    if is_default:
        secret = INSECURE_DEFAULT_SECRET

    database_url = environ.get("DATABASE_URL") or None

    return Settings(
        jwt_secret=secret,
        jwt_secret_is_default=is_default,
        token_ttl_hours=_float(environ, "JWT_TTL_HOURS", 8.0),
        database_url=database_url,
        db_host=environ.get("DB_HOST") or "localhost",
        db_port=_int(environ, "DB_PORT", 3306),
        db_user=environ.get("DB_USER", ""),
        db_password=environ.get("DB_PASSWORD", ""),
        db_name=environ.get("DB_NAME", ""),
        db_pool_size=_int(environ, "DB_POOL_SIZE", 10),
        db_pool_timeout=_float(environ, "DB_POOL_TIMEOUT", 30.0),
        upload_dir=environ.get("UPLOAD_DIR") or "uploads",
        port=_int(environ, "PORT", 3000),
        log_level=(environ.get("LOG_LEVEL") or "INFO").upper(),
        log_format=(environ.get("LOG_FORMAT") or "text").lower(),
    )


def warn_if_insecure(settings: Settings) -> None:
    if settings.jwt_secret_is_default:
        logger.warning(
            "JWT_SECRET is not set; using an insecure built-in signing key. "
            "Anyone who knows it can forge session tokens. Set JWT_SECRET before deploying."
        )
