from typing import Any, Dict

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import URL, Engine, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker

from .config import Settings
from .log import get_logger

logger = get_logger(__name__)

Base = declarative_base()

# MySQL server error codes worth a hint at startup
ER_ACCESS_DENIED_ERROR = 1045
ER_BAD_DB_ERROR = 1049


class StoreBackend:
    """Where the relational store lives and how to connect to it."""

    name = "base"

    def __init__(self, settings: Settings):
        self.settings = settings

    def url(self) -> URL:
        raise NotImplementedError

    def engine_options(self) -> Dict[str, Any]:
        # Bounded pool: at most pool_size connections, waiters give up after pool_timeout.
        return {
            "pool_size": self.settings.db_pool_size,
            "max_overflow": 0,
            "pool_timeout": self.settings.db_pool_timeout,
            "pool_pre_ping": True,
        }

    def describe(self) -> str:
        return f"{self.name}: {self.url().render_as_string(hide_password=True)}"

    def create_engine(self) -> Engine:
        return create_engine(self.url(), future=True, **self.engine_options())


class MySQLBackend(StoreBackend):
    name = "mysql"

    def url(self) -> URL:
        s = self.settings
        return URL.create(
            "mysql+pymysql",
            username=s.db_user or None,
            password=s.db_password or None,
            host=s.db_host,
            port=s.db_port,
            database=s.db_name or None,
            query={"charset": "utf8mb4"},
        )


class UrlBackend(StoreBackend):
    name = "url"

    def url(self) -> URL:
        raw = self.settings.database_url
        # Hosting providers still hand out the pre-1.4 scheme
        if raw.startswith("postgres://"):
            raw = "postgresql://" + raw[len("postgres://"):]
        return make_url(raw)

    @property
    def is_sqlite(self) -> bool:
        return self.url().get_backend_name() == "sqlite"

    def engine_options(self) -> Dict[str, Any]:
        if self.is_sqlite:
            # For SQLite, enable check_same_thread=False for multithreading in FastAPI
            return {"connect_args": {"check_same_thread": False}}
        return super().engine_options()

    def create_engine(self) -> Engine:
        engine = super().create_engine()
        if self.is_sqlite:
            enable_sqlite_foreign_keys(engine)
        return engine


def enable_sqlite_foreign_keys(engine: Engine) -> None:
    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def select_backend(settings: Settings) -> StoreBackend:
    if settings.database_url:
        return UrlBackend(settings)
    return MySQLBackend(settings)


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine, future=True)


def _startup_hint(exc: SQLAlchemyError) -> str:
    orig = getattr(exc, "orig", None)
    args = getattr(orig, "args", ())
    code = args[0] if args else None
    if code == ER_ACCESS_DENIED_ERROR:
        return "Access denied: check DB_USER and DB_PASSWORD."
    if code == ER_BAD_DB_ERROR:
        return "Unknown database: make sure the database named by DB_NAME exists."
    return ""


def ensure_store_reachable(engine: Engine) -> None:
    """Open one connection or terminate the process."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.critical(f"Could not connect to the database: {e}")
        hint = _startup_hint(e)
        if hint:
            logger.critical(hint)
        raise SystemExit(1) from e
    logger.info("Database connection established")


def init_db(engine: Engine) -> None:
    # Create tables if not existing. In production, use a migration tool.
    from . import models  # noqa: F401  register tables on Base

    Base.metadata.create_all(bind=engine)
