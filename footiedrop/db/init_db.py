"""Create the credential tables on a fresh database.

Run as ``footiedrop-init-db``. Existing tables are left untouched.
"""
import asyncio
import logging

from sqlalchemy.ext.asyncio import AsyncEngine

from footiedrop.core.logging_config import setup_logging
from footiedrop.db.base import Base
from footiedrop.db.session import engine

log = logging.getLogger(__name__)


async def create_schema(bind: AsyncEngine) -> None:
    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    log.info("Schema ready: %s", ", ".join(sorted(Base.metadata.tables)))


async def _init() -> None:
    try:
        await create_schema(engine)
    finally:
        await engine.dispose()


def main():
    setup_logging()
    asyncio.run(_init())


if __name__ == "__main__":
    main()
