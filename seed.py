"""Create the super admin from SUPER_ADMIN_* settings without starting the API."""
import asyncio
import logging

from pos_backend.core.config import settings
from pos_backend.core.database import init_db
from pos_backend.core.logging import configure_logging
from pos_backend.services.bootstrap import ensure_super_admin

logger = logging.getLogger("pos_backend.seed")


async def seed_data():
    configure_logging()
    logger.info("Connecting to database '%s'", settings.DATABASE_NAME)
    client = await init_db()

    try:
        admin = await ensure_super_admin()
    finally:
        client.close()

    if admin:
        logger.info("Super admin ready: %s / %s", admin.username, admin.email)
    else:
        logger.info("Nothing to do")


if __name__ == "__main__":
    asyncio.run(seed_data())
