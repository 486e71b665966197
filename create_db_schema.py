import asyncio
import logging

from config.settings import settings
from core.db import Database
from core.logging import configure_logging

logger = logging.getLogger(__name__)


async def main():
    """
    One-time script to create the accounts tables in the configured database.
    Uses a temporary Database built from settings.MYSQL_ASYNC_URL.
    """
    db_url = settings.MYSQL_ASYNC_URL
    if not db_url or db_url.startswith("disabled"):
        raise RuntimeError(f"MYSQL_ASYNC_URL is not configured correctly: {db_url}")

    database = Database(db_url)
    try:
        await database.create_all()
    finally:
        await database.dispose()
    logger.info("Database schema created/updated successfully.")


if __name__ == "__main__":
    configure_logging(settings.LOG_LEVEL)
    asyncio.run(main())
