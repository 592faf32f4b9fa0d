"""Run the firehose worker: ``python -m listfeed``.

Configuration comes from LISTFEED_* and LISTFEED_MONGO_* environment
variables (see ListFeedSettings and MongoConfiguration).
"""

import asyncio
import logging

from .config import ListFeedSettings
from .ingestion import FirehoseSubscriber
from .integrations.mongodb import (
    MongoCheckpointStore,
    MongoConfiguration,
    MongoPostIndex,
    MongoRetentionCompactor,
)

LOGGER = logging.getLogger("listfeed")


def build_subscriber(settings: ListFeedSettings, mongo: MongoConfiguration) -> FirehoseSubscriber:
    service = settings.subscription_endpoint
    return FirehoseSubscriber(
        service=service,
        handler=MongoPostIndex(mongo),
        checkpoints=MongoCheckpointStore(mongo, service),
        compactor=MongoRetentionCompactor(mongo, settings.retain_history),
        reconnect_delay=settings.subscription_reconnect_delay,
        max_reconnect_delay=settings.max_reconnect_delay,
        checkpoint_interval=settings.checkpoint_interval,
    )


async def main() -> None:
    settings = ListFeedSettings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    mongo = MongoConfiguration()
    LOGGER.info(
        "Starting firehose worker",
        extra={"service": settings.subscription_endpoint, "database": mongo.database},
    )
    try:
        await build_subscriber(settings, mongo).run()
    finally:
        await mongo.on_shutdown()


if __name__ == "__main__":
    asyncio.run(main())
