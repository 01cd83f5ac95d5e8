import structlog

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from land_gateway.core.config import settings

logger = structlog.get_logger()


def build_engine(url: str, echo: bool = False) -> AsyncEngine:
    """Create the async engine for the mirror store.

    Pool and server-side timeouts only apply to PostgreSQL; other dialects
    (SQLite in tests) get SQLAlchemy defaults.
    """
    if make_url(url).get_backend_name() != "postgresql":
        return create_async_engine(url, echo=echo)
    return create_async_engine(
        url,
        echo=echo,
        pool_size=10,
        max_overflow=10,
        pool_pre_ping=True,               # Drop stale connections before use
        pool_recycle=1800,
        pool_timeout=30,
        connect_args={
            "server_settings": {
                "statement_timeout": "30000",
                "idle_in_transaction_session_timeout": "60000",
                "lock_timeout": "10000",     # approvals take a row lock
            },
            "command_timeout": 30,
        },
    )


engine = build_engine(settings.DATABASE_URL, echo=settings.APP_DEBUG)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    pass
