import asyncio
import logging
import sys

from lightbnb.config import get_settings
from lightbnb.db import Database, PropertyRepository


async def main():
    """Open the store, make sure the schema exists, then shut it down cleanly."""
    settings = get_settings()

    logging.basicConfig(
        level=settings.log_level_value,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stdout,
    )
    logger = logging.getLogger(__name__)

    async with Database.from_settings(settings.db) as db:
        await db.initialize_schema()
        listings = await PropertyRepository(db).search(limit=1)
        logger.info("Store ready at %s (%d reviewed listing(s) sampled)", db.path, len(listings))


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except (KeyboardInterrupt, SystemExit):
        logging.info("Stopped.")
