"""Process entry point: wires the importer and runs the startup autoscan."""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from logbook.core.config import settings
from logbook.core.logging import get_logger, setup_logging
from logbook.db.session import init_db
from logbook.remote.client import LogbookApiClient
from logbook.services.importer import FlightImporter
from logbook.services.settings import KeyValueStore

# Initialize logging
setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def importer_lifespan() -> AsyncGenerator[FlightImporter, None]:
    """Build the importer, schedule the startup autoscan, and clean up on exit."""
    logger.info(
        "starting_importer",
        app_name=settings.app_name,
        version=settings.version,
        backend_url=settings.backend_url,
    )

    await init_db()
    backend = LogbookApiClient()
    importer = FlightImporter(backend, KeyValueStore())

    try:
        await importer.start_autoscan()
        yield importer
    finally:
        await importer.aclose()
        await backend.close()
        logger.info("shutting_down_importer")


async def run_autoscan() -> None:
    """Run the startup autoscan to completion."""
    async with importer_lifespan() as importer:
        await importer.background.wait()
        state = importer.background.state
        logger.info(
            "autoscan_finished",
            outcome=state.outcome.value,
            message=state.summary.message if state.summary else None,
        )


def main() -> None:
    asyncio.run(run_autoscan())


if __name__ == "__main__":
    main()
