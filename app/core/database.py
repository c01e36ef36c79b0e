import importlib.util
import logging
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase
from sqlalchemy.pool import StaticPool
from urllib.parse import urlparse
from app.core.config import Settings, get_settings


class Base(DeclarativeBase):
    pass


settings = get_settings()
logger = logging.getLogger(__name__)

# Floors for the Postgres pool. Webhook bursts, app polling and trigger
# sessions all draw from it; smaller pools surface as 503s.
MIN_POOL_SIZE = 5
MIN_MAX_OVERFLOW = 5
MIN_POOL_TIMEOUT = 8


def _resolve_database_url(database_url: str) -> str:
    if database_url.startswith("postgres://"):
        # SQLAlchemy 2 only accepts the postgresql:// scheme.
        database_url = database_url.replace("postgres://", "postgresql://", 1)
    if not database_url.startswith("postgresql://"):
        return database_url
    if importlib.util.find_spec("psycopg2") is None and importlib.util.find_spec("psycopg") is not None:
        return database_url.replace("postgresql://", "postgresql+psycopg://", 1)
    return database_url


def _is_memory_sqlite(database_url: str) -> bool:
    return database_url in {"sqlite://", "sqlite:///:memory:"}


def _build_connect_args(database_url: str) -> dict:
    parsed = urlparse(database_url)
    if parsed.scheme.startswith("sqlite"):
        # Trigger handlers run in FastAPI's threadpool with their own session.
        return {"check_same_thread": False}
    if not parsed.scheme.startswith("postgresql"):
        return {}

    connect_args = {
        "keepalives": 1,
        "keepalives_idle": 30,
        "keepalives_interval": 10,
        "keepalives_count": 5,
    }
    if parsed.hostname not in {"localhost", "127.0.0.1", "db"}:
        connect_args["sslmode"] = "require"
    return connect_args


def _postgres_pool_kwargs(config: Settings) -> dict:
    requested = {
        "pool_size": int(config.db_pool_size),
        "max_overflow": int(config.db_max_overflow),
        "pool_timeout": int(config.db_pool_timeout),
    }
    floors = {"pool_size": MIN_POOL_SIZE, "max_overflow": MIN_MAX_OVERFLOW, "pool_timeout": MIN_POOL_TIMEOUT}
    effective = {key: max(floors[key], value) for key, value in requested.items()}
    if effective != requested:
        logger.warning("Adjusted DB pool settings for stability: %s -> %s", requested, effective)
    return {
        **effective,
        "pool_pre_ping": config.db_pool_pre_ping,
        "pool_recycle": config.db_pool_recycle,
        "pool_use_lifo": True,
    }


def _pool_kwargs(database_url: str, config: Settings) -> dict:
    if database_url.startswith("postgresql"):
        return _postgres_pool_kwargs(config)
    if _is_memory_sqlite(database_url):
        # One shared connection, otherwise every session sees an empty database.
        return {"poolclass": StaticPool}
    return {}


database_url = _resolve_database_url(str(settings.database_url))

engine = create_engine(
    database_url,
    **_pool_kwargs(database_url, settings),
    connect_args=_build_connect_args(database_url),
)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
