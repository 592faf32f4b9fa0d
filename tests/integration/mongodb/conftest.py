"""Pytest fixtures for MongoDB integration tests."""

from contextlib import asynccontextmanager
from collections.abc import AsyncIterator

import pytest
import pytest_asyncio
from pymongo.errors import PyMongoError

from listfeed.integrations.mongodb import MongoConfiguration

# Assumes a MongoDB container is running locally on port 27017
LOCAL_MONGO_URI = "mongodb://localhost:27017/?serverSelectionTimeoutMS=1000"


@asynccontextmanager
async def create_config(
    request: pytest.FixtureRequest,
    prefix: str = "test",
) -> AsyncIterator[MongoConfiguration]:
    """Create a MongoConfiguration on a fresh database, with cleanup."""
    db_name = f"{prefix}_{request.node.name}"[:63]
    config = MongoConfiguration(uri=LOCAL_MONGO_URI, database=db_name)
    try:
        await config.client.admin.command("ping")
    except PyMongoError:
        await config.on_shutdown()
        pytest.skip("MongoDB is not reachable on localhost:27017")
    await config.client.drop_database(config.database)
    try:
        yield config
    finally:
        await config.client.drop_database(config.database)
        await config.on_shutdown()


@pytest_asyncio.fixture
async def mongo_config(request: pytest.FixtureRequest) -> AsyncIterator[MongoConfiguration]:
    """Create a MongoConfiguration pointing to local MongoDB."""
    async with create_config(request) as config:
        yield config
