"""Async SQLAlchemy engine and session helpers."""

import ssl
from typing import Any, AsyncGenerator, Dict, Tuple
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlmodel import SQLModel

from airfeed.config import settings

# libpq query args that asyncpg rejects as connect kwargs
_LIBPQ_ONLY_ARGS = {"sslmode", "channel_binding"}


def _normalize_db_url(url: str) -> str:
    """Select the asyncpg driver for bare ``postgres://``/``postgresql://`` URLs.

    URLs naming a driver (``postgresql+psycopg``, ``sqlite+aiosqlite``) are
    returned unchanged.
    """
    try:
        u = make_url(url)
    except Exception:
        for prefix in ("postgresql://", "postgres://"):
            if url.startswith(prefix):
                return "postgresql+asyncpg://" + url[len(prefix):]
        return url

    if u.drivername in ("postgres", "postgresql"):
        u = u.set(drivername="postgresql+asyncpg")
    return u.render_as_string(hide_password=False)


def _ssl_connect_arg(sslmode: str) -> Any:
    """Translate a libpq ``sslmode`` into asyncpg's ``ssl`` argument.

    Returns None when the driver's own negotiation should be used.
    """
    mode = sslmode.lower()
    if mode == "disable":
        return False
    if mode in {"allow", "prefer"}:
        return None

    ssl_context = ssl.create_default_context()
    if mode == "require":
        ssl_context.check_hostname = False
        ssl_context.verify_mode = ssl.CERT_NONE
    elif mode == "verify-ca":
        ssl_context.check_hostname = False
    return ssl_context


def _prepare_asyncpg_connection(url: str) -> Tuple[str, Dict[str, Any]]:
    """Normalize a database URL and derive driver connect kwargs.

    Only asyncpg URLs are rewritten: libpq-only query args are stripped and
    ``sslmode`` becomes an ``ssl`` connect argument.
    """
    normalized_url = _normalize_db_url(url)
    if not normalized_url.startswith("postgresql+asyncpg://"):
        return normalized_url, {}

    split = urlsplit(normalized_url)
    query = dict(parse_qsl(split.query, keep_blank_values=True))
    sslmode = query.get("sslmode")
    kept = [(k, v) for k, v in query.items() if k not in _LIBPQ_ONLY_ARGS]
    cleaned_url = urlunsplit(split._replace(query=urlencode(kept))).rstrip("?")

    connect_args: Dict[str, Any] = {}
    if sslmode:
        ssl_arg = _ssl_connect_arg(sslmode)
        if ssl_arg is not None:
            connect_args["ssl"] = ssl_arg

    return cleaned_url, connect_args


def create_engine_for(url: str, *, echo: bool = False) -> AsyncEngine:
    """Build an async engine for any supported database URL."""
    cleaned_url, connect_args = _prepare_asyncpg_connection(url)
    return create_async_engine(
        cleaned_url,
        echo=echo,
        pool_pre_ping=True,
        connect_args=connect_args,
    )


def session_factory_for(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Sessions keep loaded rows usable after their transaction ends."""
    return async_sessionmaker(bind=bind, expire_on_commit=False, class_=AsyncSession)


DATABASE_URL = _normalize_db_url(settings.database_url)
engine = create_engine_for(settings.database_url, echo=settings.sql_echo)
SessionLocal = session_factory_for(engine)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield an async database session with no transaction open."""
    async with SessionLocal() as session:
        yield session


def import_tables() -> None:
    """Import every table module so SQLModel metadata is fully populated."""
    from airfeed.schemas import download_tasks, media_files, podcast_episodes, podcasts  # noqa: F401


async def init_db():
    """Initialize the database (create tables)."""
    import_tables()

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


async def dispose_engine() -> None:
    """Dispose of the async engine and its connection pool."""
    await engine.dispose()


def describe_database_url(url: str) -> str:
    """Return a sanitized, human-readable description of the DB URL for logging.

    Example: "postgresql+asyncpg://user@host:5432/dbname"
    Passwords are never included.
    """
    try:
        u = make_url(url)
        auth = u.username or "?"
        host = u.host or "?"
        port = f":{u.port}" if u.port else ""
        db = u.database or "?"
        return f"{u.drivername}://{auth}@{host}{port}/{db}"
    except Exception:
        return "<unparseable database URL>"
