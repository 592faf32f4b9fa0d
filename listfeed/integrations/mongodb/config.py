"""MongoDB configuration using pydantic-settings."""

from functools import cached_property
from typing import Any

from pydantic_settings import BaseSettings
from pymongo.asynchronous.collection import AsyncCollection
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.asynchronous.mongo_client import AsyncMongoClient


class MongoConfiguration(BaseSettings):
    """Configuration and factory for MongoDB resources.

    All settings can be configured via environment variables with the
    LISTFEED_MONGO_ prefix. For example:
    - LISTFEED_MONGO_URI=mongodb://localhost:27017
    - LISTFEED_MONGO_DATABASE=listfeed
    - LISTFEED_MONGO_POSTS_COLLECTION=post

    The configuration also acts as a factory, providing lazy-initialized
    properties for the MongoDB client, database, and collections.

    Attributes:
        uri: MongoDB connection URI.
        database: Database name to use.
        checkpoints_collection: Collection holding one cursor per service.
        posts_collection: Collection holding indexed posts.

    Example:
        >>> config = MongoConfiguration()
        >>> checkpoints = MongoCheckpointStore(config, "wss://bsky.network")
        >>> ...
        >>> await config.on_shutdown()
    """

    uri: str = "mongodb://localhost:27017"
    database: str = "listfeed"

    checkpoints_collection: str = "sub_state"
    posts_collection: str = "post"

    model_config = {"env_prefix": "LISTFEED_MONGO_"}

    @cached_property
    def client(self) -> AsyncMongoClient[dict[str, Any]]:
        """Get the MongoDB async client.

        The client is lazily created and cached for reuse.
        """
        return AsyncMongoClient(self.uri, tz_aware=True)

    @cached_property
    def db(self) -> AsyncDatabase[dict[str, Any]]:
        return self.client[self.database]

    @cached_property
    def checkpoints(self) -> AsyncCollection[dict[str, Any]]:
        """Get the checkpoints collection."""
        return self.db[self.checkpoints_collection]

    @cached_property
    def posts(self) -> AsyncCollection[dict[str, Any]]:
        """Get the posts collection."""
        return self.db[self.posts_collection]

    async def on_shutdown(self) -> None:
        """Close the MongoDB client connection if it was created."""
        if "client" in self.__dict__:
            await self.client.close()
