from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool

from footiedrop.core.config import settings

Base = declarative_base()


def make_engine(url: str | None = None) -> AsyncEngine:
    url = url or settings.database_url
    kwargs = {"echo": False}
    if url.startswith("sqlite"):
        # local runs; no server to ping
        kwargs["connect_args"] = {"check_same_thread": False}
    else:
        kwargs["pool_pre_ping"] = True
    if settings.DISABLE_ASYNC_DB_POOL:
        kwargs["poolclass"] = NullPool
    return create_async_engine(url, **kwargs)


engine = make_engine()

# Credential writes commit inside the services and the same objects are
# returned to the routes afterwards, so they must survive the commit.
AsyncSessionLocal = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


async def get_db():
    async with AsyncSessionLocal() as session:
        yield session


@asynccontextmanager
async def async_session():
    """Session for code running outside a request, e.g. the OTP purge job."""
    async with AsyncSessionLocal() as session:
        yield session
